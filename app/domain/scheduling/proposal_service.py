"""
Invitation negotiation service

Status workflow:
    PENDING  -> ACCEPTED | DECLINED | PROPOSED     (recipient responds)
    PROPOSED -> ACCEPTED                           (organizer accepts the proposal,
                                                    meeting moves, sibling proposals
                                                    become SUPERSEDED)
    PROPOSED -> DECLINED                           (organizer rejects the proposal)
    any      -> CANCELLED                          (meeting deleted, see MeetingService)

Every transition is a compare-and-set on the current status so two writers
racing on the same invitation cannot both win.
"""

import logging
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...models import Invitation, InvitationStatus, Meeting, User, utcnow
from .permissions import can_organize, deny, is_recipient, require_actor
from .repository import InvitationRepository, MeetingRepository
from .schemas import AcceptInvitation, DeclineInvitation, ProposeNewTime

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_NOTE = "Proposal rejected by organizer"


class ProposalService:
    """Service layer for invitation responses and time proposals"""

    def __init__(self, db: Session):
        self.db = db
        self.invitations = InvitationRepository()
        self.meetings = MeetingRepository()

    def _get_invitation(self, invitation_id: int) -> Invitation:
        invitation = self.invitations.get_invitation_by_id(self.db, invitation_id)
        if not invitation:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return invitation

    @staticmethod
    def _ensure_not_cancelled(invitation: Invitation) -> None:
        if invitation.status == InvitationStatus.CANCELLED:
            raise HTTPException(status_code=409, detail="Invitation has been cancelled")

    def _get_organized_meeting(self, actor: Optional[User], meeting_id: int) -> Meeting:
        actor = require_actor(actor)
        meeting = self.meetings.get_meeting_by_id(self.db, meeting_id)
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")
        if not can_organize(actor, meeting):
            raise deny()
        return meeting

    # ========================================================================
    # RECIPIENT RESPONSES
    # ========================================================================

    def respond(
        self,
        actor: Optional[User],
        invitation_id: int,
        response: Union[AcceptInvitation, DeclineInvitation, ProposeNewTime],
    ) -> Invitation:
        """Accept, decline or propose a new time for a PENDING invitation"""
        actor = require_actor(actor)
        invitation = self._get_invitation(invitation_id)

        if not is_recipient(actor, invitation):
            logger.warning(f"⚠️ {actor.email} tried to respond to invitation {invitation_id}")
            raise deny()

        self._ensure_not_cancelled(invitation)
        if invitation.status != InvitationStatus.PENDING:
            raise HTTPException(
                status_code=409,
                detail=f"Invitation has already been responded to ({invitation.status.value})",
            )

        now = utcnow()
        values = {
            "status": InvitationStatus(response.status),
            "response_note": response.response_note,
            "responded_at": now,
            "updated_at": now,
        }
        if isinstance(response, ProposeNewTime):
            values["proposed_start"] = response.proposed_start
            values["proposed_end"] = response.proposed_end

        try:
            if not self.invitations.transition_from(
                self.db, invitation.id, InvitationStatus.PENDING, **values
            ):
                raise HTTPException(
                    status_code=409, detail="Invitation has already been responded to"
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(invitation)
        logger.info(f"✅ {actor.email} responded {invitation.status.value} to invitation {invitation.id}")
        return invitation

    # ========================================================================
    # ORGANIZER DECISIONS
    # ========================================================================

    def accept_proposal(self, actor: Optional[User], invitation_id: int) -> Meeting:
        """
        Move the meeting to the proposed time.

        One transaction: lock the meeting row, flip the invitation from
        PROPOSED to ACCEPTED, copy the proposal onto the meeting and supersede
        every other open proposal. Any failure rolls all of it back.
        """
        actor = require_actor(actor)
        invitation = self._get_invitation(invitation_id)
        meeting = invitation.meeting

        if not can_organize(actor, meeting):
            raise deny()

        self._ensure_not_cancelled(invitation)
        if invitation.status != InvitationStatus.PROPOSED:
            raise HTTPException(status_code=409, detail="Invitation does not have a pending proposal")
        if not invitation.proposed_start or not invitation.proposed_end:
            raise HTTPException(
                status_code=409, detail="Invitation proposal is missing time information"
            )

        proposed_start = invitation.proposed_start
        proposed_end = invitation.proposed_end
        now = utcnow()

        try:
            meeting = self.meetings.lock_meeting(self.db, meeting.id)
            if meeting is None:
                raise HTTPException(status_code=404, detail="Meeting not found")

            if not self.invitations.transition_from(
                self.db,
                invitation.id,
                InvitationStatus.PROPOSED,
                status=InvitationStatus.ACCEPTED,
                proposed_start=None,
                proposed_end=None,
                responded_at=now,
                updated_at=now,
            ):
                raise HTTPException(
                    status_code=409, detail="Invitation does not have a pending proposal"
                )

            meeting.start_at = proposed_start
            meeting.end_at = proposed_end
            self.db.flush()

            superseded = self.invitations.supersede_other_proposals(
                self.db, meeting.id, invitation.id, now
            )
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Meeting {invitation.meeting_id} changed while accepting proposal {invitation_id}")
            raise HTTPException(
                status_code=409, detail="Meeting was modified concurrently, please retry"
            ) from e
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to accept proposal {invitation_id}: {str(e)}")
            raise

        self.db.refresh(meeting)
        logger.info(
            f"✅ Proposal {invitation_id} accepted: meeting {meeting.id} moved to "
            f"{meeting.start_at.isoformat()}, {superseded} other proposals superseded"
        )
        return meeting

    def reject_proposal(
        self, actor: Optional[User], invitation_id: int, note: Optional[str] = None
    ) -> Invitation:
        """Decline the proposal; the meeting keeps its time"""
        actor = require_actor(actor)
        invitation = self._get_invitation(invitation_id)

        if not can_organize(actor, invitation.meeting):
            raise deny()

        self._ensure_not_cancelled(invitation)
        if invitation.status != InvitationStatus.PROPOSED:
            raise HTTPException(status_code=409, detail="Invitation does not have a pending proposal")

        now = utcnow()
        try:
            if not self.invitations.transition_from(
                self.db,
                invitation.id,
                InvitationStatus.PROPOSED,
                status=InvitationStatus.DECLINED,
                proposed_start=None,
                proposed_end=None,
                response_note=note if note and note.strip() else DEFAULT_REJECTION_NOTE,
                responded_at=now,
                updated_at=now,
            ):
                raise HTTPException(
                    status_code=409, detail="Invitation does not have a pending proposal"
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(invitation)
        logger.info(f"❌ Proposal rejected for invitation {invitation_id}")
        return invitation

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_my_invitations(
        self, actor: Optional[User], status: Optional[InvitationStatus] = None
    ) -> list[Invitation]:
        actor = require_actor(actor)
        return self.invitations.get_for_recipient(self.db, actor.email, status)

    def list_meeting_invitations(self, actor: Optional[User], meeting_id: int) -> list[Invitation]:
        meeting = self._get_organized_meeting(actor, meeting_id)
        return self.invitations.get_for_meeting(self.db, meeting.id)

    def list_meeting_proposals(self, actor: Optional[User], meeting_id: int) -> list[Invitation]:
        meeting = self._get_organized_meeting(actor, meeting_id)
        return self.invitations.get_for_meeting(self.db, meeting.id, InvitationStatus.PROPOSED)

    def invitation_summary(self, actor: Optional[User], meeting_id: int) -> dict:
        meeting = self._get_organized_meeting(actor, meeting_id)
        counts = self.invitations.count_by_status(self.db, meeting.id)

        total = sum(counts.values())
        accepted = counts.get(InvitationStatus.ACCEPTED, 0)
        summary = {
            "total": total,
            "accepted": accepted,
            "declined": counts.get(InvitationStatus.DECLINED, 0),
            "pending": counts.get(InvitationStatus.PENDING, 0),
            "proposed": counts.get(InvitationStatus.PROPOSED, 0),
            "superseded": counts.get(InvitationStatus.SUPERSEDED, 0),
            "acceptance_rate": (accepted * 100.0 / total) if total else 0.0,
        }
        logger.debug(f"📊 Meeting {meeting_id} invitation summary: {summary}")
        return summary
