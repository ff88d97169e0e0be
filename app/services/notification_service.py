"""
Meeting Notification Service
Fire-and-forget delivery of meeting emails. Every helper catches and logs
delivery failures so a notification can never change the outcome of the
request that queued it.

Helpers take a plain meeting snapshot (see snapshot_meeting) rather than ORM
objects because they run as background tasks after the request session closed.
"""

import logging
from typing import Optional

from ..email_service import (
    send_invitation_reminder_email,
    send_invitation_response_email,
    send_meeting_cancelled_email,
    send_meeting_invitation_email,
    send_meeting_rescheduled_email,
    send_proposal_decision_email,
)
from ..models import Meeting
from ..shared.time_utils import format_human, sanitize_timezone

logger = logging.getLogger(__name__)


def snapshot_meeting(meeting: Meeting) -> dict:
    """Everything a notification needs, rendered in the meeting's own timezone"""
    tz_name = sanitize_timezone(meeting.timezone)
    organizer = meeting.organizer
    return {
        "meeting_id": meeting.id,
        "title": meeting.title,
        "organizer_email": organizer.email,
        "organizer_label": organizer.label,
        "timezone": tz_name,
        "start_text": format_human(meeting.start_at, tz_name),
        "end_text": format_human(meeting.end_at, tz_name),
        "description": meeting.description,
        "location": meeting.location,
        "video_link": meeting.video_conference_link,
    }


async def send_notification(
    recipient: Optional[str],
    notification_type: str,
    email_func,
    email_kwargs: dict,
) -> dict:
    """
    Send one email notification, never raising

    Returns:
        Dict with email_sent and email_error
    """
    result = {"email_sent": False, "email_error": None}

    if not recipient:
        logger.debug(f"⚠️ No email address for {notification_type} notification")
        return result

    try:
        logger.info(f"📧 Sending {notification_type} email to {recipient}")
        await email_func(to=recipient, **email_kwargs)
        result["email_sent"] = True
        logger.info(f"✅ {notification_type} email sent successfully to {recipient}")
    except Exception as e:
        result["email_error"] = str(e)
        logger.error(f"❌ Failed to send {notification_type} email to {recipient}: {e}")

    return result


async def notify_meeting_created(meeting: dict, recipients: list[str]) -> list[dict]:
    results = []
    for recipient in recipients:
        results.append(
            await send_notification(
                recipient=recipient,
                notification_type="meeting_invitation",
                email_func=send_meeting_invitation_email,
                email_kwargs={
                    "title": meeting["title"],
                    "organizer_label": meeting["organizer_label"],
                    "organizer_email": meeting["organizer_email"],
                    "start_text": meeting["start_text"],
                    "end_text": meeting["end_text"],
                    "timezone": meeting["timezone"],
                    "meeting_id": meeting["meeting_id"],
                    "description": meeting["description"],
                    "location": meeting["location"],
                    "video_link": meeting["video_link"],
                },
            )
        )
    return results


async def notify_invitation_response(
    meeting: dict,
    recipient_email: str,
    status: str,
    proposed_start_text: Optional[str] = None,
    proposed_end_text: Optional[str] = None,
    note: Optional[str] = None,
) -> dict:
    """Tell the organizer how an invitee responded"""
    return await send_notification(
        recipient=meeting["organizer_email"],
        notification_type="invitation_response",
        email_func=send_invitation_response_email,
        email_kwargs={
            "title": meeting["title"],
            "recipient_email": recipient_email,
            "status": status,
            "meeting_id": meeting["meeting_id"],
            "proposed_start_text": proposed_start_text,
            "proposed_end_text": proposed_end_text,
            "note": note,
        },
    )


async def notify_proposal_decision(
    meeting: dict, recipient_email: str, accepted: bool, note: Optional[str] = None
) -> dict:
    return await send_notification(
        recipient=recipient_email,
        notification_type="proposal_accepted" if accepted else "proposal_rejected",
        email_func=send_proposal_decision_email,
        email_kwargs={
            "title": meeting["title"],
            "accepted": accepted,
            "meeting_id": meeting["meeting_id"],
            "start_text": meeting["start_text"],
            "end_text": meeting["end_text"],
            "timezone": meeting["timezone"],
            "note": note,
        },
    )


async def notify_meeting_rescheduled(meeting: dict, recipients: list[str]) -> list[dict]:
    results = []
    for recipient in recipients:
        results.append(
            await send_notification(
                recipient=recipient,
                notification_type="meeting_rescheduled",
                email_func=send_meeting_rescheduled_email,
                email_kwargs={
                    "title": meeting["title"],
                    "meeting_id": meeting["meeting_id"],
                    "start_text": meeting["start_text"],
                    "end_text": meeting["end_text"],
                    "timezone": meeting["timezone"],
                },
            )
        )
    return results


async def notify_meeting_cancelled(meeting: dict, recipients: list[str]) -> list[dict]:
    results = []
    for recipient in recipients:
        results.append(
            await send_notification(
                recipient=recipient,
                notification_type="meeting_cancelled",
                email_func=send_meeting_cancelled_email,
                email_kwargs={
                    "title": meeting["title"],
                    "organizer_label": meeting["organizer_label"],
                    "start_text": meeting["start_text"],
                    "timezone": meeting["timezone"],
                },
            )
        )
    return results


async def notify_invitation_reminder(meeting: dict, recipient_email: str) -> dict:
    return await send_notification(
        recipient=recipient_email,
        notification_type="invitation_reminder",
        email_func=send_invitation_reminder_email,
        email_kwargs={
            "title": meeting["title"],
            "organizer_label": meeting["organizer_label"],
            "meeting_id": meeting["meeting_id"],
            "start_text": meeting["start_text"],
            "timezone": meeting["timezone"],
            "video_link": meeting["video_link"],
        },
    )
