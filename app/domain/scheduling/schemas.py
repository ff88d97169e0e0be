"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...config import MAX_MEETING_DURATION_MINUTES
from ...models import InvitationStatus
from ...shared.time_utils import ensure_utc
from ...shared.validators import dedupe_emails, validate_email, validate_timezone


def _validate_participants(emails: list[str]) -> list[str]:
    if not emails:
        raise ValueError("At least one participant is required")
    for email in emails:
        validate_email(email)
    return dedupe_emails(emails)


# ============================================================================
# AVAILABILITY
# ============================================================================


class AvailabilityCheckRequest(BaseModel):
    """Point-in-time availability check for one or more people"""

    participants: list[str]
    start: datetime
    end: datetime

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, v):
        return _validate_participants(v)

    @field_validator("start", "end")
    @classmethod
    def normalize_instant(cls, v):
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class SlotSearchRequest(BaseModel):
    """Schema for finding common meeting slots"""

    participants: list[str]
    range_start: datetime
    range_end: datetime
    duration_minutes: int
    timezone: Optional[str] = None

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, v):
        return _validate_participants(v)

    @field_validator("range_start", "range_end")
    @classmethod
    def normalize_instant(cls, v):
        return ensure_utc(v)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be positive")
        if v > MAX_MEETING_DURATION_MINUTES:
            raise ValueError(f"Duration cannot exceed {MAX_MEETING_DURATION_MINUTES} minutes")
        return v

    @model_validator(mode="after")
    def validate_range(self):
        if self.range_end <= self.range_start:
            raise ValueError("Range end must be after range start")
        return self


class SlotSuggestion(BaseModel):
    start: datetime
    end: datetime
    score: float


class SlotSearchResponse(BaseModel):
    suggestions: list[SlotSuggestion]
    # Participants whose calendars could not be read; the slots were not verified against them
    unresolved_participants: list[str] = []


class ConflictResponse(BaseModel):
    meeting_id: int
    title: str
    start: datetime
    end: datetime


class ParticipantAvailability(BaseModel):
    email: str
    display_name: Optional[str] = None
    available: bool
    user_found: bool
    conflicts: list[ConflictResponse] = []
    suggested_alternatives: list[SlotSuggestion] = []


class AvailabilityCheckResponse(BaseModel):
    participants: list[ParticipantAvailability]


# ============================================================================
# MEETINGS
# ============================================================================


class MeetingCreate(BaseModel):
    """Schema for creating a new meeting"""

    title: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    video_conference_link: Optional[str] = Field(None, max_length=500)
    start: datetime
    end: datetime
    timezone: Optional[str] = None
    recurrence_rule: Optional[str] = Field(None, max_length=500)
    participants: list[str] = []

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, v):
        for email in v:
            validate_email(email)
        return dedupe_emails(v)

    @field_validator("start", "end")
    @classmethod
    def normalize_instant(cls, v):
        return ensure_utc(v)


class MeetingUpdate(BaseModel):
    """Schema for updating an existing meeting"""

    title: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    video_conference_link: Optional[str] = Field(None, max_length=500)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    timezone: Optional[str] = None
    recurrence_rule: Optional[str] = Field(None, max_length=500)

    @field_validator("start", "end")
    @classmethod
    def normalize_instant(cls, v):
        if v is None:
            return v
        return ensure_utc(v)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return validate_timezone(v)


class MeetingResponse(BaseModel):
    """Meeting with start/end also rendered in the viewer's timezone"""

    id: int
    organizer_id: int
    organizer_email: str
    organizer_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    video_conference_link: Optional[str] = None
    start: datetime
    end: datetime
    timezone: str
    recurrence_rule: Optional[str] = None
    participants: list[str] = []
    viewer_timezone: str
    start_localized: str
    end_localized: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# INVITATIONS
# ============================================================================


class AcceptInvitation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["ACCEPTED"]
    response_note: Optional[str] = Field(None, max_length=500)


class DeclineInvitation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["DECLINED"]
    response_note: Optional[str] = Field(None, max_length=500)


class ProposeNewTime(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["PROPOSED"]
    proposed_start: datetime
    proposed_end: datetime
    response_note: Optional[str] = Field(None, max_length=500)

    @field_validator("proposed_start", "proposed_end")
    @classmethod
    def normalize_instant(cls, v):
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.proposed_end <= self.proposed_start:
            raise ValueError("Proposed end must be after proposed start")
        return self


# The status field selects the variant; proposal fields only exist on PROPOSED
InvitationResponseVariants = Union[AcceptInvitation, DeclineInvitation, ProposeNewTime]


class RejectProposalRequest(BaseModel):
    response_note: Optional[str] = Field(None, max_length=500)


class InvitationResponse(BaseModel):
    id: int
    meeting_id: int
    meeting_title: Optional[str] = None
    recipient_email: str
    status: InvitationStatus
    proposed_start: Optional[datetime] = None
    proposed_end: Optional[datetime] = None
    response_note: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvitationSummary(BaseModel):
    total: int
    accepted: int
    declined: int
    pending: int
    proposed: int
    superseded: int
    acceptance_rate: float
