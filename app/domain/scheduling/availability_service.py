"""Availability service - Busy time, conflict checks and meeting slot search"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import build_slot_search_key, cache
from ...config import (
    MAX_MEETING_DURATION_MINUTES,
    MAX_SUGGESTIONS,
    PER_ATTENDEE_LOOKAHEAD_DAYS,
    PER_ATTENDEE_SUGGESTIONS,
    SLOT_CACHE_TTL_SECONDS,
)
from ...models import Meeting, User
from ...shared.time_utils import format_iso8601, intervals_overlap, sanitize_timezone
from ...shared.validators import dedupe_emails
from .repository import MeetingRepository, UserRepository
from .slot_finder import find_free_slots

logger = logging.getLogger(__name__)


def _render_slots(slots: list[dict], tz_name: str) -> list[dict]:
    """JSON-safe slots with start/end as ISO-8601 in tz_name"""
    return [
        {
            "start": format_iso8601(slot["start"], tz_name),
            "end": format_iso8601(slot["end"], tz_name),
            "score": slot["score"],
        }
        for slot in slots
    ]


class AvailabilityService:
    """Service layer for availability and slot finding"""

    def __init__(self, db: Session, slot_cache=None):
        self.db = db
        self.users = UserRepository()
        self.meetings = MeetingRepository()
        self.cache = slot_cache if slot_cache is not None else cache

    # ========================================================================
    # BUSY TIME
    # ========================================================================

    def get_busy_meetings(self, user: User, start: datetime, end: datetime) -> list[Meeting]:
        """
        Meetings that make the person busy inside [start, end): the ones they
        organize plus the ones they accepted an invitation to. Duplicates are
        possible. Database errors propagate.
        """
        organized = self.meetings.get_organized_overlapping(self.db, user.id, start, end)
        accepted = self.meetings.get_accepted_overlapping(self.db, user.email, start, end)
        logger.debug(
            f"📋 {user.email}: {len(organized)} organized + {len(accepted)} accepted meetings "
            f"between {start.isoformat()} and {end.isoformat()}"
        )
        return organized + accepted

    def _busy_intervals(self, user: User, start: datetime, end: datetime):
        return [(m.start_at, m.end_at) for m in self.get_busy_meetings(user, start, end)]

    # ========================================================================
    # CONFLICT CHECK
    # ========================================================================

    def check_person(self, email: str, start: datetime, end: datetime) -> dict:
        """
        Availability of one person for [start, end).

        Fail-closed: an unknown person, or any error while reading their
        calendar, reports the person as unavailable.
        """
        user = None
        display_name = None
        try:
            user = self.users.get_by_email(self.db, email)
            if not user:
                logger.warning(f"⚠️ User with email {email} not found in system")
                return {
                    "email": email,
                    "display_name": None,
                    "available": False,
                    "user_found": False,
                    "conflicts": [],
                    "suggested_alternatives": [],
                }

            display_name = user.display_name
            conflicts = []
            seen = set()
            for meeting in self.get_busy_meetings(user, start, end):
                if meeting.id in seen:
                    continue
                if intervals_overlap(meeting.start_at, meeting.end_at, start, end):
                    seen.add(meeting.id)
                    conflicts.append(
                        {
                            "meeting_id": meeting.id,
                            "title": meeting.title,
                            "start": meeting.start_at,
                            "end": meeting.end_at,
                        }
                    )
        except Exception as e:
            logger.error(f"❌ Error checking availability for {email}: {str(e)}", exc_info=True)
            self.db.rollback()
            return {
                "email": email,
                "display_name": display_name,
                "available": False,
                "user_found": user is not None,
                "conflicts": [],
                "suggested_alternatives": [],
            }

        alternatives = []
        if conflicts:
            logger.info(f"🚨 {email} is unavailable ({len(conflicts)} conflicts)")
            try:
                alternatives = self.find_alternative_slots(user, start, end)
            except Exception as e:
                logger.error(f"❌ Error finding alternatives for {email}: {str(e)}", exc_info=True)
                self.db.rollback()
        else:
            logger.info(f"✅ {email} is available")

        return {
            "email": email,
            "display_name": display_name,
            "available": not conflicts,
            "user_found": True,
            "conflicts": conflicts,
            "suggested_alternatives": alternatives,
        }

    def check_participants(self, emails: list[str], start: datetime, end: datetime) -> list[dict]:
        if end <= start:
            raise HTTPException(status_code=400, detail="End time must be after start time")

        emails = dedupe_emails(emails)
        logger.info(f"🔍 Checking availability for {len(emails)} participants")

        results = [self.check_person(email, start, end) for email in emails]

        available = sum(1 for r in results if r["available"])
        logger.info(
            f"✅ Availability check complete: {available} available, {len(results) - available} unavailable"
        )
        return results

    # ========================================================================
    # SLOT SEARCH
    # ========================================================================

    def find_alternative_slots(
        self,
        user: User,
        proposed_start: datetime,
        proposed_end: datetime,
        limit: int = PER_ATTENDEE_SUGGESTIONS,
    ) -> list[dict]:
        """Free slots for one person from the proposed start onwards, in their own timezone"""
        duration = proposed_end - proposed_start
        if duration <= timedelta(0):
            return []

        tz_name = sanitize_timezone(user.timezone)
        search_end = max(
            proposed_start + timedelta(days=PER_ATTENDEE_LOOKAHEAD_DAYS),
            proposed_end + duration,
        )

        busy = self._busy_intervals(user, proposed_start, search_end)
        slots = find_free_slots(
            range_start=proposed_start,
            range_end=search_end,
            duration=duration,
            tz_name=tz_name,
            busy=busy,
            limit=max(1, limit),
            not_before=proposed_start,
            reference=proposed_start,
        )
        return _render_slots(slots, tz_name)

    def find_meeting_slots(
        self,
        emails: list[str],
        range_start: datetime,
        range_end: datetime,
        duration_minutes: int,
        tz_name: str,
    ) -> dict:
        """
        Top-ranked slots where every resolvable participant is free.

        Returns {"suggestions": [...], "unresolved_participants": [...]}. An
        empty suggestion list means there is no common slot. Participants whose
        calendar could not be read are listed as unresolved and the result is
        not cached.
        """
        if not emails:
            raise HTTPException(status_code=400, detail="At least one participant is required")
        if range_end <= range_start:
            raise HTTPException(status_code=400, detail="Range end must be after range start")
        if duration_minutes <= 0:
            raise HTTPException(status_code=400, detail="Duration must be positive")
        if duration_minutes > MAX_MEETING_DURATION_MINUTES:
            raise HTTPException(
                status_code=400,
                detail=f"Duration cannot exceed {MAX_MEETING_DURATION_MINUTES} minutes",
            )

        emails = dedupe_emails(emails)
        tz_name = sanitize_timezone(tz_name)
        key = build_slot_search_key(
            emails, range_start.isoformat(), range_end.isoformat(), duration_minutes, tz_name
        )

        def compute() -> dict:
            busy = []
            unresolved = []
            for email in emails:
                try:
                    user = self.users.get_by_email(self.db, email)
                    if user:
                        busy.extend(self._busy_intervals(user, range_start, range_end))
                except Exception as e:
                    logger.error(f"❌ Could not resolve busy time for {email}: {str(e)}")
                    self.db.rollback()
                    unresolved.append(email)

            slots = find_free_slots(
                range_start=range_start,
                range_end=range_end,
                duration=timedelta(minutes=duration_minutes),
                tz_name=tz_name,
                busy=busy,
                limit=MAX_SUGGESTIONS,
            )
            logger.info(
                f"📊 Slot search for {len(emails)} participants: {len(slots)} suggestions"
                + (f", {len(unresolved)} unresolved" if unresolved else "")
            )
            return {
                "suggestions": _render_slots(slots, tz_name),
                "unresolved_participants": unresolved,
            }

        return self.cache.get_or_compute(
            key,
            compute,
            ttl=SLOT_CACHE_TTL_SECONDS,
            should_cache=lambda result: not result["unresolved_participants"],
        )


def resolve_request_timezone(requested: Optional[str], actor: Optional[User]) -> str:
    """Requested zone, else the actor's own, else UTC"""
    return sanitize_timezone(requested, actor.timezone if actor else None)
