"""
Invitation reminders
Emails recipients who still haven't answered an invitation shortly before the
meeting starts. Each invitation is reminded at most once.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import REMINDER_MINUTES_BEFORE
from ..domain.scheduling.repository import InvitationRepository
from ..models import utcnow
from .notification_service import notify_invitation_reminder, snapshot_meeting

logger = logging.getLogger(__name__)


async def send_pending_invitation_reminders(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Remind every PENDING recipient whose meeting starts within the next
    REMINDER_MINUTES_BEFORE minutes.

    Returns:
        dict with found, sent and failed counts
    """
    now = now or utcnow()
    horizon = now + timedelta(minutes=REMINDER_MINUTES_BEFORE)

    invitations = InvitationRepository.get_pending_starting_between(db, now, horizon)
    summary = {"found": len(invitations), "sent": 0, "failed": 0}

    for invitation in invitations:
        result = await notify_invitation_reminder(
            snapshot_meeting(invitation.meeting), invitation.recipient_email
        )
        if result["email_sent"]:
            invitation.reminder_sent_at = now
            summary["sent"] += 1
        else:
            summary["failed"] += 1

    if summary["sent"]:
        db.commit()
        logger.info(f"⏰ Sent {summary['sent']} invitation reminders")

    return summary
