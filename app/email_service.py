"""
Email Service using Resend
Meeting notifications rendered from MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    invitation_reminder_template,
    invitation_response_template,
    meeting_cancelled_template,
    meeting_invitation_template,
    meeting_rescheduled_template,
    proposal_decision_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a result object/dict with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            if getattr(result, "errors", None):
                logger.warning(f"MJML compilation warnings: {result.errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Meeting notifications
# ============================================


async def send_meeting_invitation_email(
    to: str,
    title: str,
    organizer_label: str,
    organizer_email: str,
    start_text: str,
    end_text: str,
    timezone: str,
    meeting_id: int,
    description: Optional[str] = None,
    location: Optional[str] = None,
    video_link: Optional[str] = None,
) -> dict:
    """Invite a participant to a newly created meeting"""
    mjml_content = meeting_invitation_template(
        title=title,
        organizer_label=organizer_label,
        organizer_email=organizer_email,
        start_text=start_text,
        end_text=end_text,
        timezone=timezone,
        meeting_id=meeting_id,
        description=description,
        location=location,
        video_link=video_link,
    )
    return await send_email(
        to=to,
        subject=f"Invitation: {title} @ {start_text}",
        mjml_content=mjml_content,
    )


async def send_invitation_response_email(
    to: str,
    title: str,
    recipient_email: str,
    status: str,
    meeting_id: int,
    proposed_start_text: Optional[str] = None,
    proposed_end_text: Optional[str] = None,
    note: Optional[str] = None,
) -> dict:
    """Tell the organizer that an invitee responded"""
    mjml_content = invitation_response_template(
        title=title,
        recipient_email=recipient_email,
        status=status,
        meeting_id=meeting_id,
        proposed_start_text=proposed_start_text,
        proposed_end_text=proposed_end_text,
        note=note,
    )
    return await send_email(
        to=to,
        subject=f'{recipient_email} has {status.lower()} your invitation to "{title}"',
        mjml_content=mjml_content,
    )


async def send_proposal_decision_email(
    to: str,
    title: str,
    accepted: bool,
    meeting_id: int,
    start_text: str,
    end_text: str,
    timezone: str,
    note: Optional[str] = None,
) -> dict:
    mjml_content = proposal_decision_template(
        title=title,
        accepted=accepted,
        meeting_id=meeting_id,
        start_text=start_text,
        end_text=end_text,
        timezone=timezone,
        note=note,
    )
    outcome = "accepted" if accepted else "declined"
    return await send_email(
        to=to,
        subject=f"Your proposed time for {title} was {outcome}",
        mjml_content=mjml_content,
    )


async def send_meeting_rescheduled_email(
    to: str,
    title: str,
    meeting_id: int,
    start_text: str,
    end_text: str,
    timezone: str,
) -> dict:
    mjml_content = meeting_rescheduled_template(
        title=title,
        meeting_id=meeting_id,
        start_text=start_text,
        end_text=end_text,
        timezone=timezone,
    )
    return await send_email(
        to=to,
        subject=f"Rescheduled: {title} @ {start_text}",
        mjml_content=mjml_content,
    )


async def send_meeting_cancelled_email(
    to: str,
    title: str,
    organizer_label: str,
    start_text: str,
    timezone: str,
) -> dict:
    mjml_content = meeting_cancelled_template(
        title=title,
        organizer_label=organizer_label,
        start_text=start_text,
        timezone=timezone,
    )
    return await send_email(
        to=to,
        subject=f"Cancelled: {title}",
        mjml_content=mjml_content,
    )


async def send_invitation_reminder_email(
    to: str,
    title: str,
    organizer_label: str,
    meeting_id: int,
    start_text: str,
    timezone: str,
    video_link: Optional[str] = None,
) -> dict:
    mjml_content = invitation_reminder_template(
        title=title,
        organizer_label=organizer_label,
        meeting_id=meeting_id,
        start_text=start_text,
        timezone=timezone,
        video_link=video_link,
    )
    return await send_email(
        to=to,
        subject=f"Reminder: {title} starts soon",
        mjml_content=mjml_content,
    )
