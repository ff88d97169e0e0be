import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import get_current_user
from app.cache import Cache
from app.database import Base, get_db
from app.main import app as fastapi_app
from app.models import Invitation, InvitationStatus, Meeting, User


class FakeCache(Cache):
    """Dictionary-backed cache that keeps the JSON round trip of the real one"""

    def __init__(self):
        super().__init__(enabled=False)
        self.store = {}
        self.hits = 0
        self.misses = 0

    def get(self, key):
        if key in self.store:
            self.hits += 1
            return json.loads(self.store[key])
        self.misses += 1
        return None

    def set(self, key, value, ttl=300):
        self.store[key] = json.dumps(value)
        return True

    def delete(self, key):
        return self.store.pop(key, None) is not None


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def slot_cache(monkeypatch):
    fake = FakeCache()
    monkeypatch.setattr("app.domain.scheduling.availability_service.cache", fake)
    return fake


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Every e-mail the application tried to deliver"""
    sent = []

    async def fake_send_email(to, subject, mjml_content, from_address=None):
        sent.append({"to": to, "subject": subject, "mjml": mjml_content})
        return {"id": f"test-{len(sent)}"}

    monkeypatch.setattr("app.email_service.send_email", fake_send_email)
    return sent


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Make the given user the authenticated actor for API calls"""

    def _login(user: User) -> User:
        fastapi_app.dependency_overrides[get_current_user] = lambda: user
        return user

    yield _login
    fastapi_app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def make_user(db_session):
    def _make(email: str, display_name: str = None, tz: str = "UTC") -> User:
        user = User(
            email=email.lower(),
            display_name=display_name,
            timezone=tz,
            firebase_uid=f"uid-{email.lower()}",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_meeting(db_session):
    """
    Insert a meeting directly. invitees maps recipient email to status;
    PROPOSED is not supported here, proposals go through the service.
    """

    def _make(
        organizer: User,
        start: datetime,
        end: datetime,
        invitees: dict = None,
        title: str = "Planning",
        tz: str = "UTC",
    ) -> Meeting:
        meeting = Meeting(
            organizer_id=organizer.id,
            title=title,
            start_at=start,
            end_at=end,
            timezone=tz,
            video_conference_link="https://meet.jit.si/test-room",
        )
        db_session.add(meeting)
        db_session.flush()
        for email, status in (invitees or {}).items():
            db_session.add(
                Invitation(
                    meeting_id=meeting.id,
                    recipient_email=email.lower(),
                    status=status,
                    responded_at=start if status != InvitationStatus.PENDING else None,
                )
            )
        db_session.commit()
        db_session.refresh(meeting)
        return meeting

    return _make


@pytest.fixture
def invitation_for(db_session):
    def _get(meeting: Meeting, email: str) -> Invitation:
        return (
            db_session.query(Invitation)
            .filter(Invitation.meeting_id == meeting.id, Invitation.recipient_email == email.lower())
            .one()
        )

    return _get
