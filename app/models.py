import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, always hands back timezone-aware UTC datetimes"""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    PROPOSED = "PROPOSED"
    SUPERSEDED = "SUPERSEDED"
    CANCELLED = "CANCELLED"


class User(Base):
    """A person who can organize meetings or be invited to them"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=True)
    email = Column(String(320), unique=True, index=True, nullable=False)  # stored lower-case
    display_name = Column(String(100), nullable=True)
    timezone = Column(String(50), default="UTC", nullable=False)  # IANA zone id
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    meetings = relationship("Meeting", back_populates="organizer")

    @property
    def label(self) -> str:
        return self.display_name or self.email


class Meeting(Base):
    __tablename__ = "meetings"
    __table_args__ = (CheckConstraint("end_at > start_at", name="ck_meetings_end_after_start"),)

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(200), nullable=True)
    video_conference_link = Column(String(500), nullable=True)

    start_at = Column(UTCDateTime, nullable=False, index=True)
    end_at = Column(UTCDateTime, nullable=False, index=True)
    timezone = Column(String(50), nullable=False, default="UTC")  # authoring timezone
    recurrence_rule = Column(String(500), nullable=True)  # opaque RRULE text, never expanded

    # Optimistic concurrency: bumped on every flush that touches the row
    version = Column(Integer, nullable=False, default=1)
    # Soft delete: a deleted meeting keeps its CANCELLED invitations visible to recipients
    deleted_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organizer = relationship("User", back_populates="meetings")
    invitations = relationship(
        "Invitation", back_populates="meeting", order_by="Invitation.id"
    )

    __mapper_args__ = {"version_id_col": version}


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        UniqueConstraint("meeting_id", "recipient_email", name="uq_invitation_meeting_recipient"),
        # Proposal fields exist only while the invitation is PROPOSED
        CheckConstraint(
            "(status = 'PROPOSED' AND proposed_start IS NOT NULL AND proposed_end IS NOT NULL "
            "AND proposed_end > proposed_start) "
            "OR (status != 'PROPOSED' AND proposed_start IS NULL AND proposed_end IS NULL)",
            name="ck_invitations_proposal_fields",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id"), nullable=False, index=True)
    recipient_email = Column(String(320), nullable=False, index=True)  # stored lower-case

    # Status workflow: PENDING → ACCEPTED | DECLINED | PROPOSED
    #                  PROPOSED → ACCEPTED (organizer accepts) | DECLINED (organizer rejects)
    #                  PROPOSED → SUPERSEDED (a sibling proposal was accepted)
    #                  any → CANCELLED (meeting deleted)
    status = Column(
        Enum(InvitationStatus, name="invitation_status", native_enum=False, length=20),
        default=InvitationStatus.PENDING,
        nullable=False,
        index=True,
    )

    proposed_start = Column(UTCDateTime, nullable=True)
    proposed_end = Column(UTCDateTime, nullable=True)
    response_note = Column(String(500), nullable=True)
    responded_at = Column(UTCDateTime, nullable=True)
    reminder_sent_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    meeting = relationship("Meeting", back_populates="invitations")
