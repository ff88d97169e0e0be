"""Capability checks for meetings and invitations"""

from typing import Optional

from fastapi import HTTPException

from ...models import Invitation, Meeting, User
from ...shared.validators import normalize_email

# One message for every denial so callers can't tell which resources exist
NOT_AUTHORIZED = "Not authorized to perform this action"


def require_actor(actor: Optional[User]) -> User:
    if actor is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return actor


def can_organize(actor: Optional[User], meeting: Meeting) -> bool:
    return actor is not None and meeting.organizer_id == actor.id


def is_recipient(actor: Optional[User], invitation: Invitation) -> bool:
    return actor is not None and normalize_email(actor.email) == invitation.recipient_email


def deny() -> HTTPException:
    return HTTPException(status_code=403, detail=NOT_AUTHORIZED)
