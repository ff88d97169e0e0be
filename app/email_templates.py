"""
MJML Email Templates
All meeting notification emails, built on one responsive MJML wrapper
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{escape(title)}</mj-title>
        <mj-preview>{escape(preview_text)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {escape(title)}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="0">
              You're receiving this because you were invited to a meeting.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_row(label: str, value: Optional[str]) -> str:
    if not value:
        return ""
    return f"""
    <mj-text font-size="15px" color="{THEME['text_primary']}" padding="4px 0">
      <strong>{label}:</strong> {escape(value)}
    </mj-text>
    """


def _meeting_details(
    start_text: str,
    end_text: str,
    timezone: str,
    location: Optional[str] = None,
    video_link: Optional[str] = None,
) -> str:
    return (
        _detail_row("Start", start_text)
        + _detail_row("End", end_text)
        + _detail_row("Timezone", timezone)
        + _detail_row("Location", location)
        + _detail_row("Video conference", video_link)
    )


def meeting_url(meeting_id: int) -> str:
    return f"{FRONTEND_URL}/meetings/{meeting_id}"


def meeting_invitation_template(
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
) -> str:
    """Invitation sent to every participant when a meeting is created"""
    description_section = ""
    if description:
        description_section = f"""
        <mj-text color="{THEME['text_muted']}" font-size="14px" padding="16px 0 0 0">
          {escape(description)}
        </mj-text>
        """

    content = f"""
    <mj-text>
      <strong>{escape(organizer_label)}</strong> ({escape(organizer_email)}) has invited you to
      <strong>{escape(title)}</strong>.
    </mj-text>

    {_meeting_details(start_text, end_text, timezone, location, video_link)}

    {description_section}

    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="20px 0 0 0">
      Accept, decline or propose a different time from your invitations.
    </mj-text>
    """

    return get_base_template(
        title=f"Invitation: {title}",
        preview_text=f"{organizer_label} invited you to {title}",
        content_sections=content,
        cta_url=meeting_url(meeting_id),
        cta_label="Respond",
    )


def invitation_response_template(
    title: str,
    recipient_email: str,
    status: str,
    meeting_id: int,
    proposed_start_text: Optional[str] = None,
    proposed_end_text: Optional[str] = None,
    note: Optional[str] = None,
) -> str:
    """Tells the organizer how an invitee answered"""
    verb = {
        "ACCEPTED": "accepted",
        "DECLINED": "declined",
        "PROPOSED": "proposed a new time for",
    }.get(status, status.lower())

    proposal_section = ""
    if status == "PROPOSED":
        proposal_section = (
            _detail_row("Proposed start", proposed_start_text)
            + _detail_row("Proposed end", proposed_end_text)
            + f"""
            <mj-text color="#92400e" font-size="14px" padding="20px 0 0 0">
              ⏰ <strong>Action Required:</strong> Accept or reject this proposal.
            </mj-text>
            """
        )

    note_section = ""
    if note:
        note_section = f"""
        <mj-text font-size="14px" color="{THEME['text_muted']}" padding="16px 0 0 0">
          <strong>Note:</strong><br/>
          {escape(note)}
        </mj-text>
        """

    content = f"""
    <mj-text>
      <strong>{escape(recipient_email)}</strong> has {verb} your invitation to
      <strong>{escape(title)}</strong>.
    </mj-text>

    {proposal_section}
    {note_section}
    """

    return get_base_template(
        title=f"{recipient_email} {verb} {title}",
        preview_text=f"Response to {title}",
        content_sections=content,
        cta_url=meeting_url(meeting_id),
        cta_label="View Meeting",
    )


def proposal_decision_template(
    title: str,
    accepted: bool,
    meeting_id: int,
    start_text: str,
    end_text: str,
    timezone: str,
    note: Optional[str] = None,
) -> str:
    """Tells an invitee whether the organizer took their proposed time"""
    if accepted:
        headline = "Your proposed time was accepted"
        body = f"The organizer moved <strong>{escape(title)}</strong> to your proposed time."
        details = _meeting_details(start_text, end_text, timezone)
    else:
        headline = "Your proposed time was declined"
        body = f"The organizer kept the original time for <strong>{escape(title)}</strong>."
        details = _detail_row("Reason", note)

    content = f"""
    <mj-text>
      {body}
    </mj-text>

    {details}
    """

    return get_base_template(
        title=headline,
        preview_text=f"{headline}: {title}",
        content_sections=content,
        cta_url=meeting_url(meeting_id),
        cta_label="View Meeting",
    )


def meeting_rescheduled_template(
    title: str,
    meeting_id: int,
    start_text: str,
    end_text: str,
    timezone: str,
) -> str:
    """Sent to the other invitees when an accepted proposal moves the meeting"""
    content = f"""
    <mj-text>
      <strong>{escape(title)}</strong> has been moved to a new time.
    </mj-text>

    {_meeting_details(start_text, end_text, timezone)}
    """

    return get_base_template(
        title=f"Rescheduled: {title}",
        preview_text=f"{title} has a new time",
        content_sections=content,
        cta_url=meeting_url(meeting_id),
        cta_label="View Meeting",
    )


def meeting_cancelled_template(
    title: str,
    organizer_label: str,
    start_text: str,
    timezone: str,
) -> str:
    """Cancellation notice; the meeting no longer exists so there is no link"""
    content = f"""
    <mj-text>
      <strong>{escape(organizer_label)}</strong> has cancelled <strong>{escape(title)}</strong>.
    </mj-text>

    {_detail_row("Was scheduled for", start_text)}
    {_detail_row("Timezone", timezone)}

    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="20px 0 0 0">
      No action is needed.
    </mj-text>
    """

    return get_base_template(
        title=f"Cancelled: {title}",
        preview_text=f"{title} has been cancelled",
        content_sections=content,
    )


def invitation_reminder_template(
    title: str,
    organizer_label: str,
    meeting_id: int,
    start_text: str,
    timezone: str,
    video_link: Optional[str] = None,
) -> str:
    """Nudge for an invitee who has not answered and the meeting is about to start"""
    content = f"""
    <mj-text>
      <strong>{escape(title)}</strong> from {escape(organizer_label)} starts soon and you haven't responded yet.
    </mj-text>

    {_detail_row("Start", start_text)}
    {_detail_row("Timezone", timezone)}
    {_detail_row("Video conference", video_link)}
    """

    return get_base_template(
        title=f"Starting soon: {title}",
        preview_text=f"{title} starts soon",
        content_sections=content,
        cta_url=meeting_url(meeting_id),
        cta_label="Respond Now",
    )
