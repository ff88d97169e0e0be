"""Scheduling repository - Database operations for people, meetings and invitations"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Invitation, InvitationStatus, Meeting, User
from ...shared.validators import normalize_email


class UserRepository:
    """Repository for person lookups"""

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        """Case-insensitive lookup; emails are stored lower-case"""
        return db.query(User).filter(User.email == normalize_email(email)).first()


class MeetingRepository:
    """Repository for meeting database operations. Soft-deleted meetings are never returned."""

    @staticmethod
    def _active(db: Session):
        return db.query(Meeting).filter(Meeting.deleted_at.is_(None))

    @staticmethod
    def get_meeting_by_id(db: Session, meeting_id: int) -> Optional[Meeting]:
        return (
            MeetingRepository._active(db)
            .options(joinedload(Meeting.organizer))
            .filter(Meeting.id == meeting_id)
            .first()
        )

    @staticmethod
    def lock_meeting(db: Session, meeting_id: int) -> Optional[Meeting]:
        """SELECT ... FOR UPDATE on the meeting row (a no-op on SQLite)"""
        return (
            MeetingRepository._active(db)
            .filter(Meeting.id == meeting_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def get_organized_overlapping(
        db: Session, organizer_id: int, start: datetime, end: datetime
    ) -> list[Meeting]:
        """Meetings organized by the person that overlap [start, end)"""
        return (
            MeetingRepository._active(db)
            .filter(
                Meeting.organizer_id == organizer_id,
                Meeting.start_at < end,
                Meeting.end_at > start,
            )
            .order_by(Meeting.start_at)
            .all()
        )

    @staticmethod
    def get_accepted_overlapping(
        db: Session, email: str, start: datetime, end: datetime
    ) -> list[Meeting]:
        """Meetings the person accepted an invitation to that overlap [start, end)"""
        return (
            MeetingRepository._active(db)
            .join(Invitation, Invitation.meeting_id == Meeting.id)
            .filter(
                Invitation.recipient_email == normalize_email(email),
                Invitation.status == InvitationStatus.ACCEPTED,
                Meeting.start_at < end,
                Meeting.end_at > start,
            )
            .order_by(Meeting.start_at)
            .all()
        )

    @staticmethod
    def get_organized(db: Session, organizer_id: int) -> list[Meeting]:
        return (
            MeetingRepository._active(db)
            .filter(Meeting.organizer_id == organizer_id)
            .order_by(Meeting.start_at)
            .all()
        )

    @staticmethod
    def get_accepted(db: Session, email: str) -> list[Meeting]:
        return (
            MeetingRepository._active(db)
            .join(Invitation, Invitation.meeting_id == Meeting.id)
            .filter(
                Invitation.recipient_email == normalize_email(email),
                Invitation.status == InvitationStatus.ACCEPTED,
            )
            .order_by(Meeting.start_at)
            .all()
        )

    @staticmethod
    def create_meeting(
        db: Session, organizer_id: int, participant_emails: list[str], **meeting_data
    ) -> Meeting:
        """Create a meeting and one PENDING invitation per participant in one commit"""
        meeting = Meeting(organizer_id=organizer_id, **meeting_data)
        db.add(meeting)
        db.flush()

        for email in participant_emails:
            db.add(
                Invitation(
                    meeting_id=meeting.id,
                    recipient_email=email,
                    status=InvitationStatus.PENDING,
                )
            )

        db.commit()
        db.refresh(meeting)
        return meeting

    @staticmethod
    def update_meeting(db: Session, meeting: Meeting, **updates) -> Meeting:
        for key, value in updates.items():
            if value is not None and hasattr(meeting, key):
                setattr(meeting, key, value)
        db.commit()
        db.refresh(meeting)
        return meeting


class InvitationRepository:
    """Repository for invitation database operations"""

    @staticmethod
    def get_invitation_by_id(db: Session, invitation_id: int) -> Optional[Invitation]:
        """Invitation by id, including CANCELLED ones whose meeting was deleted"""
        return (
            db.query(Invitation)
            .options(joinedload(Invitation.meeting).joinedload(Meeting.organizer))
            .filter(Invitation.id == invitation_id)
            .first()
        )

    @staticmethod
    def get_for_meeting(
        db: Session, meeting_id: int, status: Optional[InvitationStatus] = None
    ) -> list[Invitation]:
        query = db.query(Invitation).filter(Invitation.meeting_id == meeting_id)
        if status is not None:
            query = query.filter(Invitation.status == status)
        return query.order_by(Invitation.id).all()

    @staticmethod
    def get_for_recipient(
        db: Session, email: str, status: Optional[InvitationStatus] = None
    ) -> list[Invitation]:
        """A person's invitations, newest first; CANCELLED ones stay visible"""
        query = (
            db.query(Invitation)
            .options(joinedload(Invitation.meeting))
            .filter(Invitation.recipient_email == normalize_email(email))
        )
        if status is not None:
            query = query.filter(Invitation.status == status)
        return query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()

    @staticmethod
    def is_invited(db: Session, meeting_id: int, email: str) -> bool:
        return (
            db.query(Invitation.id)
            .filter(
                Invitation.meeting_id == meeting_id,
                Invitation.recipient_email == normalize_email(email),
            )
            .first()
            is not None
        )

    @staticmethod
    def count_by_status(db: Session, meeting_id: int) -> dict[InvitationStatus, int]:
        rows = (
            db.query(Invitation.status, func.count(Invitation.id))
            .filter(Invitation.meeting_id == meeting_id)
            .group_by(Invitation.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def transition_from(
        db: Session,
        invitation_id: int,
        expected: InvitationStatus,
        **values,
    ) -> bool:
        """
        Compare-and-set: apply values only while the invitation is still in the
        expected status. Returns False when another writer got there first.
        Does not commit.
        """
        rowcount = (
            db.query(Invitation)
            .filter(Invitation.id == invitation_id, Invitation.status == expected)
            .update(values, synchronize_session="fetch")
        )
        return rowcount == 1

    @staticmethod
    def supersede_other_proposals(
        db: Session, meeting_id: int, accepted_invitation_id: int, now: datetime
    ) -> int:
        """Move every other PROPOSED invitation of the meeting to SUPERSEDED. Does not commit."""
        return (
            db.query(Invitation)
            .filter(
                Invitation.meeting_id == meeting_id,
                Invitation.id != accepted_invitation_id,
                Invitation.status == InvitationStatus.PROPOSED,
            )
            .update(
                {
                    "status": InvitationStatus.SUPERSEDED,
                    "proposed_start": None,
                    "proposed_end": None,
                    "updated_at": now,
                },
                synchronize_session="fetch",
            )
        )

    @staticmethod
    def cancel_for_meeting(db: Session, meeting_id: int, now: datetime) -> int:
        """Cascade CANCELLED onto every live invitation of a meeting. Does not commit."""
        return (
            db.query(Invitation)
            .filter(
                Invitation.meeting_id == meeting_id,
                Invitation.status != InvitationStatus.CANCELLED,
            )
            .update(
                {
                    "status": InvitationStatus.CANCELLED,
                    "proposed_start": None,
                    "proposed_end": None,
                    "updated_at": now,
                },
                synchronize_session="fetch",
            )
        )

    @staticmethod
    def get_pending_starting_between(
        db: Session, start: datetime, end: datetime
    ) -> list[Invitation]:
        """Unreminded PENDING invitations whose live meeting starts within (start, end]"""
        return (
            db.query(Invitation)
            .join(Meeting, Invitation.meeting_id == Meeting.id)
            .options(joinedload(Invitation.meeting).joinedload(Meeting.organizer))
            .filter(
                Invitation.status == InvitationStatus.PENDING,
                Invitation.reminder_sent_at.is_(None),
                Meeting.deleted_at.is_(None),
                Meeting.start_at > start,
                Meeting.start_at <= end,
            )
            .order_by(Meeting.start_at, Invitation.id)
            .all()
        )
