"""Scheduling routers - FastAPI endpoints for availability, meetings and invitations"""

import logging
from datetime import date, datetime
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Invitation, InvitationStatus, User
from ...services.notification_service import (
    notify_invitation_response,
    notify_meeting_cancelled,
    notify_meeting_created,
    notify_meeting_rescheduled,
    notify_proposal_decision,
    snapshot_meeting,
)
from ...shared.time_utils import ensure_utc, format_human
from .availability_service import AvailabilityService, resolve_request_timezone
from .meeting_service import MeetingService, localize_meeting
from .proposal_service import ProposalService
from .schemas import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    InvitationResponse,
    InvitationResponseVariants,
    InvitationSummary,
    MeetingCreate,
    MeetingResponse,
    MeetingUpdate,
    RejectProposalRequest,
    SlotSearchRequest,
    SlotSearchResponse,
)

logger = logging.getLogger(__name__)

availability_router = APIRouter(prefix="/availability", tags=["Availability"])
invitations_router = APIRouter(prefix="/invitations", tags=["Invitations"])
meetings_router = APIRouter(prefix="/meetings", tags=["Meetings"])

NO_COMMON_SLOT = "No available time slots found for all participants"


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def get_proposal_service(db: Session = Depends(get_db)) -> ProposalService:
    """Dependency injection for ProposalService"""
    return ProposalService(db)


def get_meeting_service(db: Session = Depends(get_db)) -> MeetingService:
    """Dependency injection for MeetingService"""
    return MeetingService(db)


def _invitation_response(invitation: Invitation) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.id,
        meeting_id=invitation.meeting_id,
        meeting_title=invitation.meeting.title if invitation.meeting else None,
        recipient_email=invitation.recipient_email,
        status=invitation.status,
        proposed_start=invitation.proposed_start,
        proposed_end=invitation.proposed_end,
        response_note=invitation.response_note,
        responded_at=invitation.responded_at,
        created_at=invitation.created_at,
    )


# ============================================================================
# AVAILABILITY
# ============================================================================


@availability_router.post("/check", response_model=AvailabilityCheckResponse)
async def check_availability(
    data: AvailabilityCheckRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Check whether each participant is free for the proposed time"""
    results = service.check_participants(data.participants, data.start, data.end)
    return AvailabilityCheckResponse(participants=results)


@availability_router.post("/slots", response_model=SlotSearchResponse)
async def find_meeting_slots(
    data: SlotSearchRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Suggest up to five common slots; 422 with code no_common_slot when there are none"""
    tz_name = resolve_request_timezone(data.timezone, current_user)
    result = service.find_meeting_slots(
        data.participants, data.range_start, data.range_end, data.duration_minutes, tz_name
    )

    if not result["suggestions"]:
        logger.info(f"📭 No common slot for {len(data.participants)} participants")
        return JSONResponse(
            status_code=422,
            content={
                "detail": NO_COMMON_SLOT,
                "code": "no_common_slot",
                "unresolved_participants": result["unresolved_participants"],
            },
        )

    return SlotSearchResponse(**result)


# ============================================================================
# INVITATIONS
# ============================================================================


@invitations_router.get("", response_model=list[InvitationResponse])
async def list_my_invitations(
    status: Optional[InvitationStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """Invitations addressed to the current user, optionally filtered by status"""
    invitations = service.list_my_invitations(current_user, status)
    return [_invitation_response(i) for i in invitations]


@invitations_router.patch("/{invitation_id}", response_model=InvitationResponse)
async def respond_to_invitation(
    invitation_id: int,
    data: Annotated[InvitationResponseVariants, Body(discriminator="status")],
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """Accept, decline, or propose a different time"""
    invitation = service.respond(current_user, invitation_id, data)

    meeting = snapshot_meeting(invitation.meeting)
    proposed_start_text = proposed_end_text = None
    if invitation.status == InvitationStatus.PROPOSED:
        proposed_start_text = format_human(invitation.proposed_start, meeting["timezone"])
        proposed_end_text = format_human(invitation.proposed_end, meeting["timezone"])

    background_tasks.add_task(
        notify_invitation_response,
        meeting=meeting,
        recipient_email=invitation.recipient_email,
        status=invitation.status.value,
        proposed_start_text=proposed_start_text,
        proposed_end_text=proposed_end_text,
        note=invitation.response_note,
    )

    return _invitation_response(invitation)


@invitations_router.post("/{invitation_id}/accept-proposal", response_model=MeetingResponse)
async def accept_proposal(
    invitation_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """Organizer accepts a proposed time; the meeting moves and other proposals are superseded"""
    meeting = service.accept_proposal(current_user, invitation_id)

    snapshot = snapshot_meeting(meeting)
    proposer = next(i for i in meeting.invitations if i.id == invitation_id)
    others = [
        i.recipient_email
        for i in meeting.invitations
        if i.id != invitation_id
        and i.status in (InvitationStatus.ACCEPTED, InvitationStatus.PENDING)
    ]

    background_tasks.add_task(
        notify_proposal_decision,
        meeting=snapshot,
        recipient_email=proposer.recipient_email,
        accepted=True,
    )
    if others:
        background_tasks.add_task(notify_meeting_rescheduled, meeting=snapshot, recipients=others)

    return localize_meeting(meeting, current_user.timezone)


@invitations_router.post("/{invitation_id}/reject-proposal", response_model=InvitationResponse)
async def reject_proposal(
    invitation_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[RejectProposalRequest] = None,
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """Organizer rejects a proposed time; the meeting keeps its schedule"""
    invitation = service.reject_proposal(
        current_user, invitation_id, data.response_note if data else None
    )

    background_tasks.add_task(
        notify_proposal_decision,
        meeting=snapshot_meeting(invitation.meeting),
        recipient_email=invitation.recipient_email,
        accepted=False,
        note=invitation.response_note,
    )

    return _invitation_response(invitation)


# ============================================================================
# MEETINGS
# ============================================================================


@meetings_router.post("", response_model=MeetingResponse, status_code=201)
async def create_meeting(
    data: MeetingCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    """Create a meeting and invite its participants"""
    meeting = service.create_meeting(current_user, data)

    recipients = [i.recipient_email for i in meeting.invitations]
    if recipients:
        background_tasks.add_task(
            notify_meeting_created, meeting=snapshot_meeting(meeting), recipients=recipients
        )

    return localize_meeting(meeting, current_user.timezone)


@meetings_router.get("", response_model=list[MeetingResponse])
async def list_meetings(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    include_invitations: bool = Query(False),
    timezone: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    """Meetings in a time window, rendered in the viewer's timezone"""
    meetings = service.list_meetings(
        current_user,
        ensure_utc(start) if start else None,
        ensure_utc(end) if end else None,
        include_invitations,
    )
    viewer_tz = resolve_request_timezone(timezone, current_user)
    return [localize_meeting(m, viewer_tz) for m in meetings]


@meetings_router.get("/day", response_model=list[MeetingResponse])
async def list_day(
    day: date = Query(..., alias="date"),
    include_invitations: bool = Query(False),
    timezone: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    meetings = service.list_day(current_user, day, include_invitations, timezone)
    viewer_tz = resolve_request_timezone(timezone, current_user)
    return [localize_meeting(m, viewer_tz) for m in meetings]


@meetings_router.get("/week", response_model=list[MeetingResponse])
async def list_week(
    day: date = Query(..., alias="date"),
    include_invitations: bool = Query(False),
    timezone: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    """Monday-to-Sunday week containing the given date"""
    meetings = service.list_week(current_user, day, include_invitations, timezone)
    viewer_tz = resolve_request_timezone(timezone, current_user)
    return [localize_meeting(m, viewer_tz) for m in meetings]


@meetings_router.get("/{meeting_id}", response_model=MeetingResponse)
async def get_meeting(
    meeting_id: int,
    timezone: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = service.get_meeting(current_user, meeting_id)
    return localize_meeting(meeting, resolve_request_timezone(timezone, current_user))


@meetings_router.patch("/{meeting_id}", response_model=MeetingResponse)
async def update_meeting(
    meeting_id: int,
    data: MeetingUpdate,
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    meeting = service.update_meeting(current_user, meeting_id, data)
    return localize_meeting(meeting, current_user.timezone)


@meetings_router.delete("/{meeting_id}")
async def delete_meeting(
    meeting_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: MeetingService = Depends(get_meeting_service),
):
    """Delete a meeting, cancelling every invitation and notifying the recipients"""
    snapshot, recipients = service.delete_meeting(current_user, meeting_id)

    if recipients:
        background_tasks.add_task(notify_meeting_cancelled, meeting=snapshot, recipients=recipients)

    return {"message": "Meeting deleted", "cancelled_invitations": len(recipients)}


@meetings_router.get("/{meeting_id}/invitations", response_model=list[InvitationResponse])
async def list_meeting_invitations(
    meeting_id: int,
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    invitations = service.list_meeting_invitations(current_user, meeting_id)
    return [_invitation_response(i) for i in invitations]


@meetings_router.get("/{meeting_id}/proposals", response_model=list[InvitationResponse])
async def list_meeting_proposals(
    meeting_id: int,
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """Open time proposals awaiting the organizer's decision"""
    invitations = service.list_meeting_proposals(current_user, meeting_id)
    return [_invitation_response(i) for i in invitations]


@meetings_router.get("/{meeting_id}/invitations/summary", response_model=InvitationSummary)
async def invitation_summary(
    meeting_id: int,
    current_user: User = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    return service.invitation_summary(current_user, meeting_id)


__all__ = ["availability_router", "invitations_router", "meetings_router"]
