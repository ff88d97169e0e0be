"""
Scheduling Domain

Meetings, invitations and the availability engine.

Structure:
```
app/domain/scheduling/
├── __init__.py
├── schemas.py              # Request/response models, invitation response variants
├── repository.py           # Person, meeting and invitation queries
├── slot_finder.py          # Candidate generation, business hours, scoring
├── availability_service.py # Busy time, conflict checks, slot search, alternatives
├── proposal_service.py     # Invitation responses and proposal decisions
├── meeting_service.py      # Meeting create/read/list/update/delete
├── permissions.py          # Organizer / recipient capability checks
└── router.py               # /availability, /invitations, /meetings endpoints
```

Invitation states: PENDING, ACCEPTED, DECLINED, PROPOSED, SUPERSEDED, CANCELLED.
Only ACCEPTED invitations (and organized meetings) count as busy time.
"""

from .router import availability_router, invitations_router, meetings_router

__all__ = ["availability_router", "invitations_router", "meetings_router"]
