from datetime import datetime, timezone

import pytest

from app.models import Invitation, InvitationStatus

API = "/api/v1"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture
def olivia(make_user):
    return make_user("olivia@example.com", "Olivia", tz="America/New_York")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", "Bob")


def meeting_payload(**overrides) -> dict:
    payload = {
        "title": "Quarterly planning",
        "start": "2025-03-03T15:00:00Z",
        "end": "2025-03-03T16:00:00Z",
        "participants": ["bob@example.com"],
    }
    payload.update(overrides)
    return payload


class TestCreateMeeting:
    def test_create_invites_participants(self, client, login, olivia, bob, sent_emails, db_session):
        login(olivia)

        response = client.post(
            f"{API}/meetings",
            json=meeting_payload(
                participants=["Bob@Example.com", "bob@example.com", "OLIVIA@example.com", "dave@example.com"]
            ),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["participants"] == ["bob@example.com", "dave@example.com"]
        assert data["organizer_email"] == "olivia@example.com"
        assert data["timezone"] == "America/New_York"
        assert data["video_conference_link"].startswith("https://meet.jit.si/")
        assert data["start_localized"] == "2025-03-03T10:00:00-05:00"

        invitations = db_session.query(Invitation).filter(Invitation.meeting_id == data["id"]).all()
        assert {i.status for i in invitations} == {InvitationStatus.PENDING}
        assert sorted(email["to"] for email in sent_emails) == ["bob@example.com", "dave@example.com"]

    def test_explicit_link_and_timezone_are_kept(self, client, login, olivia, bob):
        login(olivia)

        response = client.post(
            f"{API}/meetings",
            json=meeting_payload(video_conference_link="https://zoom.example/j/1", timezone="Europe/Berlin"),
        )

        data = response.json()
        assert data["video_conference_link"] == "https://zoom.example/j/1"
        assert data["timezone"] == "Europe/Berlin"

    def test_invalid_timezone_falls_back_to_organizer(self, client, login, olivia, bob):
        login(olivia)

        response = client.post(f"{API}/meetings", json=meeting_payload(timezone="Moon/Base"))

        assert response.status_code == 201
        assert response.json()["timezone"] == "America/New_York"

    def test_end_before_start(self, client, login, olivia):
        login(olivia)

        response = client.post(
            f"{API}/meetings",
            json=meeting_payload(start="2025-03-03T16:00:00Z", end="2025-03-03T15:00:00Z"),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "End time must be after start time"

    def test_invalid_participant_email(self, client, login, olivia):
        login(olivia)

        response = client.post(f"{API}/meetings", json=meeting_payload(participants=["bob-at-example"]))

        assert response.status_code == 400
        assert "Invalid email address" in response.json()["detail"]


class TestReadMeeting:
    def test_organizer_and_invitee_can_read(self, client, login, olivia, bob, make_meeting):
        meeting = make_meeting(
            olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), invitees={"bob@example.com": InvitationStatus.PENDING}
        )

        login(olivia)
        assert client.get(f"{API}/meetings/{meeting.id}").status_code == 200

        login(bob)
        response = client.get(f"{API}/meetings/{meeting.id}", params={"timezone": "Asia/Tokyo"})
        assert response.status_code == 200
        assert response.json()["start_localized"] == "2025-03-04T00:00:00+09:00"

    def test_stranger_is_denied(self, client, login, olivia, make_user, make_meeting):
        meeting = make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16))
        login(make_user("eve@example.com"))

        response = client.get(f"{API}/meetings/{meeting.id}")

        assert response.status_code == 403
        assert response.json()["detail"] == "Not authorized to perform this action"

    def test_unknown_meeting(self, client, login, olivia):
        login(olivia)
        assert client.get(f"{API}/meetings/999").status_code == 404


class TestListMeetings:
    def test_window_and_accepted_invitations(self, client, login, olivia, bob, make_meeting):
        make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), title="Own")
        make_meeting(
            bob,
            utc(2025, 3, 3, 12),
            utc(2025, 3, 3, 13),
            invitees={"olivia@example.com": InvitationStatus.ACCEPTED},
            title="Bob's sync",
        )
        make_meeting(olivia, utc(2025, 3, 10, 15), utc(2025, 3, 10, 16), title="Next week")
        login(olivia)

        params = {"start": "2025-03-03T00:00:00Z", "end": "2025-03-04T00:00:00Z"}
        own = client.get(f"{API}/meetings", params=params).json()
        both = client.get(f"{API}/meetings", params={**params, "include_invitations": "true"}).json()

        assert [m["title"] for m in own] == ["Own"]
        assert [m["title"] for m in both] == ["Bob's sync", "Own"]
        assert both[0]["viewer_timezone"] == "America/New_York"

    def test_day_view_uses_the_viewer_timezone(self, client, login, olivia, make_meeting):
        # 22:00 on March 3rd in New York
        make_meeting(olivia, utc(2025, 3, 4, 3), utc(2025, 3, 4, 4), title="Late call")
        login(olivia)

        new_york = client.get(f"{API}/meetings/day", params={"date": "2025-03-03"}).json()
        in_utc = client.get(f"{API}/meetings/day", params={"date": "2025-03-03", "timezone": "UTC"}).json()

        assert [m["title"] for m in new_york] == ["Late call"]
        assert in_utc == []

    def test_week_view(self, client, login, olivia, make_meeting):
        make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), title="Monday")
        make_meeting(olivia, utc(2025, 3, 9, 15), utc(2025, 3, 9, 16), title="Sunday")
        make_meeting(olivia, utc(2025, 3, 10, 15), utc(2025, 3, 10, 16), title="Next Monday")
        login(olivia)

        week = client.get(f"{API}/meetings/week", params={"date": "2025-03-05"}).json()

        assert [m["title"] for m in week] == ["Monday", "Sunday"]


class TestUpdateMeeting:
    def test_organizer_updates(self, client, login, olivia, make_meeting):
        meeting = make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16))
        login(olivia)

        response = client.patch(
            f"{API}/meetings/{meeting.id}",
            json={"title": "Renamed", "end": "2025-03-03T17:00:00Z"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Renamed"
        assert parse(data["start"]) == utc(2025, 3, 3, 15)
        assert parse(data["end"]) == utc(2025, 3, 3, 17)

    def test_end_before_existing_start(self, client, login, olivia, make_meeting):
        meeting = make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16))
        login(olivia)

        response = client.patch(f"{API}/meetings/{meeting.id}", json={"end": "2025-03-03T14:00:00Z"})

        assert response.status_code == 400

    def test_invalid_timezone(self, client, login, olivia, make_meeting):
        meeting = make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16))
        login(olivia)

        response = client.patch(f"{API}/meetings/{meeting.id}", json={"timezone": "Atlantis/Capital"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid timezone: Atlantis/Capital"

    def test_invitee_cannot_update(self, client, login, olivia, bob, make_meeting):
        meeting = make_meeting(
            olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), invitees={"bob@example.com": InvitationStatus.ACCEPTED}
        )
        login(bob)

        response = client.patch(f"{API}/meetings/{meeting.id}", json={"title": "Mine now"})

        assert response.status_code == 403


class TestDeleteMeeting:
    def test_delete_cancels_every_invitation(
        self, client, login, olivia, bob, make_meeting, db_session, sent_emails
    ):
        meeting = make_meeting(
            olivia,
            utc(2025, 3, 3, 15),
            utc(2025, 3, 3, 16),
            invitees={
                "bob@example.com": InvitationStatus.ACCEPTED,
                "carol@example.com": InvitationStatus.PENDING,
                "dave@example.com": InvitationStatus.DECLINED,
            },
        )
        meeting_id = meeting.id
        login(olivia)

        response = client.delete(f"{API}/meetings/{meeting_id}")

        assert response.status_code == 200
        assert response.json() == {"message": "Meeting deleted", "cancelled_invitations": 3}

        statuses = {
            i.status for i in db_session.query(Invitation).filter(Invitation.meeting_id == meeting_id)
        }
        assert statuses == {InvitationStatus.CANCELLED}
        assert sorted(email["to"] for email in sent_emails) == [
            "bob@example.com",
            "carol@example.com",
            "dave@example.com",
        ]
        assert all(email["subject"].startswith("Cancelled:") for email in sent_emails)

        assert client.get(f"{API}/meetings/{meeting_id}").status_code == 404

    def test_recipient_still_sees_cancelled_invitation(self, client, login, olivia, bob, make_meeting):
        meeting = make_meeting(
            olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), invitees={"bob@example.com": InvitationStatus.PENDING}
        )
        login(olivia)
        client.delete(f"{API}/meetings/{meeting.id}")

        login(bob)
        invitations = client.get(f"{API}/invitations").json()

        assert [i["status"] for i in invitations] == ["CANCELLED"]

    def test_deleted_meeting_frees_the_organizer(self, client, login, olivia, make_meeting):
        meeting = make_meeting(olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16))
        login(olivia)
        client.delete(f"{API}/meetings/{meeting.id}")

        response = client.post(
            f"{API}/availability/check",
            json={
                "participants": ["olivia@example.com"],
                "start": "2025-03-03T15:00:00Z",
                "end": "2025-03-03T16:00:00Z",
            },
        )

        assert response.json()["participants"][0]["available"] is True

    def test_only_organizer_deletes(self, client, login, olivia, bob, make_meeting):
        meeting = make_meeting(
            olivia, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), invitees={"bob@example.com": InvitationStatus.ACCEPTED}
        )
        login(bob)

        assert client.delete(f"{API}/meetings/{meeting.id}").status_code == 403
