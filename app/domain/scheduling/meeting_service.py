"""Meeting service - Business logic for meeting lifecycle"""

import logging
import uuid
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...config import JITSI_BASE_URL
from ...models import InvitationStatus, Meeting, User, utcnow
from ...services.notification_service import snapshot_meeting
from ...shared.time_utils import (
    end_of_day,
    format_iso8601,
    sanitize_timezone,
    start_of_day,
    to_local,
    week_boundaries,
)
from ...shared.validators import normalize_email
from .permissions import can_organize, deny, require_actor
from .repository import InvitationRepository, MeetingRepository
from .schemas import MeetingCreate, MeetingUpdate

logger = logging.getLogger(__name__)


def generate_meeting_link() -> str:
    """Fresh Jitsi room; Jitsi creates rooms on first join"""
    base = JITSI_BASE_URL if JITSI_BASE_URL.endswith("/") else f"{JITSI_BASE_URL}/"
    return f"{base}{uuid.uuid4()}"


def localize_meeting(meeting: Meeting, viewer_timezone: Optional[str] = None) -> dict:
    """Meeting fields plus start/end rendered for the viewer (viewer zone, else the meeting's, else UTC)"""
    tz_name = sanitize_timezone(viewer_timezone, meeting.timezone)
    return {
        "id": meeting.id,
        "organizer_id": meeting.organizer_id,
        "organizer_email": meeting.organizer.email,
        "organizer_name": meeting.organizer.display_name,
        "title": meeting.title,
        "description": meeting.description,
        "location": meeting.location,
        "video_conference_link": meeting.video_conference_link,
        "start": meeting.start_at,
        "end": meeting.end_at,
        "timezone": meeting.timezone,
        "recurrence_rule": meeting.recurrence_rule,
        "participants": [
            inv.recipient_email
            for inv in meeting.invitations
            if inv.status != InvitationStatus.CANCELLED
        ],
        "viewer_timezone": tz_name,
        "start_localized": format_iso8601(meeting.start_at, tz_name),
        "end_localized": format_iso8601(meeting.end_at, tz_name),
        "created_at": meeting.created_at,
        "updated_at": meeting.updated_at,
    }


class MeetingService:
    """Service layer for meeting business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MeetingRepository()
        self.invitations = InvitationRepository()

    def _get_meeting(self, meeting_id: int) -> Meeting:
        meeting = self.repo.get_meeting_by_id(self.db, meeting_id)
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")
        return meeting

    def get_meeting(self, actor: Optional[User], meeting_id: int) -> Meeting:
        """Organizer or any invitee may read a meeting"""
        actor = require_actor(actor)
        meeting = self._get_meeting(meeting_id)
        if not can_organize(actor, meeting) and not self.invitations.is_invited(
            self.db, meeting.id, actor.email
        ):
            raise deny()
        return meeting

    def list_meetings(
        self,
        actor: Optional[User],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_invitations: bool = False,
    ) -> list[Meeting]:
        """
        Meetings the actor organizes overlapping [start, end), plus the ones
        they accepted when include_invitations is set. Sorted by start.
        Without a window every meeting is returned.
        """
        actor = require_actor(actor)
        if start is not None and end is not None and end <= start:
            raise HTTPException(status_code=400, detail="End time must be after start time")

        if start is not None and end is not None:
            meetings = self.repo.get_organized_overlapping(self.db, actor.id, start, end)
            if include_invitations:
                meetings += self.repo.get_accepted_overlapping(self.db, actor.email, start, end)
        else:
            meetings = self.repo.get_organized(self.db, actor.id)
            if include_invitations:
                meetings += self.repo.get_accepted(self.db, actor.email)

        unique = {m.id: m for m in meetings}
        return sorted(unique.values(), key=lambda m: (m.start_at, m.id))

    def list_day(
        self,
        actor: Optional[User],
        day: date,
        include_invitations: bool = False,
        viewer_timezone: Optional[str] = None,
    ) -> list[Meeting]:
        actor = require_actor(actor)
        tz_name = sanitize_timezone(viewer_timezone, actor.timezone)
        return self.list_meetings(
            actor, start_of_day(day, tz_name), end_of_day(day, tz_name), include_invitations
        )

    def list_week(
        self,
        actor: Optional[User],
        day: date,
        include_invitations: bool = False,
        viewer_timezone: Optional[str] = None,
    ) -> list[Meeting]:
        actor = require_actor(actor)
        tz_name = sanitize_timezone(viewer_timezone, actor.timezone)
        week_start, week_end = week_boundaries(day, tz_name)
        return self.list_meetings(actor, week_start, week_end, include_invitations)

    def create_meeting(self, actor: Optional[User], data: MeetingCreate) -> Meeting:
        """Create a meeting and a PENDING invitation for every participant"""
        actor = require_actor(actor)
        if data.end <= data.start:
            raise HTTPException(status_code=400, detail="End time must be after start time")

        tz_name = sanitize_timezone(data.timezone, actor.timezone)
        organizer_email = normalize_email(actor.email)
        participants = [email for email in data.participants if email != organizer_email]

        logger.info(
            f"📥 Creating meeting '{data.title}' for {actor.email} with {len(participants)} participants"
        )

        try:
            meeting = self.repo.create_meeting(
                self.db,
                actor.id,
                participants,
                title=data.title,
                description=data.description,
                location=data.location,
                video_conference_link=data.video_conference_link or generate_meeting_link(),
                start_at=data.start,
                end_at=data.end,
                timezone=tz_name,
                recurrence_rule=data.recurrence_rule,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create meeting: {str(e)}")
            raise

        logger.info(
            f"✅ Meeting {meeting.id} created ({to_local(meeting.start_at, tz_name).isoformat()} {tz_name})"
        )
        return meeting

    def update_meeting(self, actor: Optional[User], meeting_id: int, data: MeetingUpdate) -> Meeting:
        actor = require_actor(actor)
        meeting = self._get_meeting(meeting_id)
        if not can_organize(actor, meeting):
            raise deny()

        updates = data.model_dump(exclude_unset=True)
        new_start = updates.pop("start", None) or meeting.start_at
        new_end = updates.pop("end", None) or meeting.end_at
        if new_end <= new_start:
            raise HTTPException(status_code=400, detail="End time must be after start time")

        updates["start_at"] = new_start
        updates["end_at"] = new_end

        try:
            meeting = self.repo.update_meeting(self.db, meeting, **updates)
        except StaleDataError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=409, detail="Meeting was modified concurrently, please retry"
            ) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Meeting {meeting.id} updated")
        return meeting

    def delete_meeting(self, actor: Optional[User], meeting_id: int) -> tuple[dict, list[str]]:
        """
        Cancel every invitation, then remove the meeting.

        Returns the notification snapshot and the recipients to tell, captured
        before the meeting disappears from queries.
        """
        actor = require_actor(actor)
        meeting = self._get_meeting(meeting_id)
        if not can_organize(actor, meeting):
            raise deny()

        snapshot = snapshot_meeting(meeting)
        recipients = [
            inv.recipient_email
            for inv in meeting.invitations
            if inv.status != InvitationStatus.CANCELLED
        ]

        now = utcnow()
        try:
            cancelled = self.invitations.cancel_for_meeting(self.db, meeting.id, now)
            meeting.deleted_at = now
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to delete meeting {meeting_id}: {str(e)}")
            raise

        logger.info(f"🗑️ Meeting {meeting_id} deleted, {cancelled} invitations cancelled")
        return snapshot, recipients
