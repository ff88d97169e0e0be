from datetime import datetime, timezone

import pytest

from app.models import InvitationStatus

API = "/api/v1"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def team(make_user):
    return {
        "olivia": make_user("olivia@example.com", "Olivia"),
        "alice": make_user("alice@example.com", "Alice"),
        "bob": make_user("bob@example.com", "Bob"),
    }


@pytest.fixture
def meeting(team, make_meeting):
    return make_meeting(
        team["olivia"],
        utc(2025, 3, 3, 15),
        utc(2025, 3, 3, 16),
        invitees={
            "alice@example.com": InvitationStatus.PENDING,
            "bob@example.com": InvitationStatus.ACCEPTED,
        },
        title="Roadmap",
    )


class TestAuthentication:
    def test_missing_token(self, client, team):
        response = client.get(f"{API}/meetings")
        assert response.status_code == 401

    def test_health_needs_no_token(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestSlotSearchEndpoint:
    def test_suggestions(self, client, login, team):
        login(team["olivia"])

        response = client.post(
            f"{API}/availability/slots",
            json={
                "participants": ["alice@example.com", "bob@example.com"],
                "range_start": "2025-03-03T14:00:00Z",
                "range_end": "2025-03-03T22:00:00Z",
                "duration_minutes": 60,
                "timezone": "America/New_York",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["suggestions"]) == 5
        assert data["suggestions"][0]["start"] == "2025-03-03T09:00:00-05:00"
        assert data["suggestions"][0]["score"] == 110.0
        assert data["unresolved_participants"] == []

    def test_no_common_slot_is_422(self, client, login, team, make_meeting):
        make_meeting(team["alice"], utc(2025, 3, 3, 9), utc(2025, 3, 3, 17))
        login(team["olivia"])

        response = client.post(
            f"{API}/availability/slots",
            json={
                "participants": ["alice@example.com", "bob@example.com"],
                "range_start": "2025-03-03T09:00:00Z",
                "range_end": "2025-03-03T17:00:00Z",
                "duration_minutes": 30,
            },
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "no_common_slot"
        assert body["detail"] == "No available time slots found for all participants"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"participants": []}, "At least one participant is required"),
            ({"duration_minutes": 0}, "Duration must be positive"),
            ({"duration_minutes": 481}, "Duration cannot exceed 480 minutes"),
            ({"range_end": "2025-03-03T08:00:00Z"}, "Range end must be after range start"),
        ],
    )
    def test_validation_errors_are_400(self, client, login, team, overrides, message):
        login(team["olivia"])
        payload = {
            "participants": ["alice@example.com"],
            "range_start": "2025-03-03T09:00:00Z",
            "range_end": "2025-03-03T17:00:00Z",
            "duration_minutes": 60,
        }
        payload.update(overrides)

        response = client.post(f"{API}/availability/slots", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == message


class TestAvailabilityCheckEndpoint:
    def test_conflict(self, client, login, team, meeting):
        login(team["olivia"])

        response = client.post(
            f"{API}/availability/check",
            json={
                "participants": ["bob@example.com", "alice@example.com"],
                "start": "2025-03-03T15:30:00Z",
                "end": "2025-03-03T16:30:00Z",
            },
        )

        assert response.status_code == 200
        bob_result, alice_result = response.json()["participants"]
        assert bob_result["available"] is False
        assert [c["title"] for c in bob_result["conflicts"]] == ["Roadmap"]
        assert len(bob_result["suggested_alternatives"]) == 3
        # A pending invitation leaves Alice free
        assert alice_result["available"] is True

    def test_inverted_range(self, client, login, team):
        login(team["olivia"])

        response = client.post(
            f"{API}/availability/check",
            json={
                "participants": ["bob@example.com"],
                "start": "2025-03-03T16:00:00Z",
                "end": "2025-03-03T15:00:00Z",
            },
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "End time must be after start time"


class TestInvitationEndpoints:
    def test_accept_notifies_organizer(self, client, login, team, meeting, invitation_for, sent_emails):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])

        response = client.patch(f"{API}/invitations/{invitation.id}", json={"status": "ACCEPTED"})

        assert response.status_code == 200
        assert response.json()["status"] == "ACCEPTED"
        assert response.json()["meeting_title"] == "Roadmap"
        assert [email["to"] for email in sent_emails] == ["olivia@example.com"]

    def test_proposal_fields_rejected_on_accept(self, client, login, team, meeting, invitation_for):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])

        response = client.patch(
            f"{API}/invitations/{invitation.id}",
            json={
                "status": "ACCEPTED",
                "proposed_start": "2025-03-04T10:00:00Z",
                "proposed_end": "2025-03-04T11:00:00Z",
            },
        )

        assert response.status_code == 400
        assert "proposed_start" in response.json()["detail"]
        assert invitation_for(meeting, "alice@example.com").status == InvitationStatus.PENDING

    def test_proposal_requires_both_times(self, client, login, team, meeting, invitation_for):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])

        response = client.patch(
            f"{API}/invitations/{invitation.id}",
            json={"status": "PROPOSED", "proposed_start": "2025-03-04T10:00:00Z"},
        )

        assert response.status_code == 400
        assert "proposed_end" in response.json()["detail"]

    def test_unknown_status(self, client, login, team, meeting, invitation_for):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])

        response = client.patch(f"{API}/invitations/{invitation.id}", json={"status": "MAYBE"})

        assert response.status_code == 400

    def test_second_response_is_409(self, client, login, team, meeting, invitation_for):
        invitation = invitation_for(meeting, "bob@example.com")
        login(team["bob"])

        response = client.patch(f"{API}/invitations/{invitation.id}", json={"status": "DECLINED"})

        assert response.status_code == 409

    def test_proposal_round_trip(self, client, login, team, meeting, invitation_for, sent_emails):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])
        client.patch(
            f"{API}/invitations/{invitation.id}",
            json={
                "status": "PROPOSED",
                "proposed_start": "2025-03-04T10:00:00Z",
                "proposed_end": "2025-03-04T11:00:00Z",
                "response_note": "Clashes with standup",
            },
        )

        login(team["olivia"])
        proposals = client.get(f"{API}/meetings/{meeting.id}/proposals").json()
        assert [p["recipient_email"] for p in proposals] == ["alice@example.com"]

        sent_emails.clear()
        response = client.post(f"{API}/invitations/{invitation.id}/accept-proposal")

        assert response.status_code == 200
        assert response.json()["start_localized"] == "2025-03-04T10:00:00+00:00"
        recipients = sorted(email["to"] for email in sent_emails)
        # Decision to the proposer, reschedule notice to the other attendee
        assert recipients == ["alice@example.com", "bob@example.com"]

    def test_reject_proposal(self, client, login, team, meeting, invitation_for, sent_emails):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])
        client.patch(
            f"{API}/invitations/{invitation.id}",
            json={
                "status": "PROPOSED",
                "proposed_start": "2025-03-04T10:00:00Z",
                "proposed_end": "2025-03-04T11:00:00Z",
            },
        )

        login(team["olivia"])
        sent_emails.clear()
        response = client.post(
            f"{API}/invitations/{invitation.id}/reject-proposal", json={"response_note": "Room taken"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "DECLINED"
        assert response.json()["response_note"] == "Room taken"
        assert [email["to"] for email in sent_emails] == ["alice@example.com"]

    def test_reject_without_body(self, client, login, team, meeting, invitation_for):
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])
        client.patch(
            f"{API}/invitations/{invitation.id}",
            json={
                "status": "PROPOSED",
                "proposed_start": "2025-03-04T10:00:00Z",
                "proposed_end": "2025-03-04T11:00:00Z",
            },
        )

        login(team["olivia"])
        response = client.post(f"{API}/invitations/{invitation.id}/reject-proposal")

        assert response.status_code == 200
        assert response.json()["response_note"] == "Proposal rejected by organizer"

    def test_summary_endpoint(self, client, login, team, meeting):
        login(team["olivia"])

        response = client.get(f"{API}/meetings/{meeting.id}/invitations/summary")

        assert response.json() == {
            "total": 2,
            "accepted": 1,
            "declined": 0,
            "pending": 1,
            "proposed": 0,
            "superseded": 0,
            "acceptance_rate": 50.0,
        }

    def test_my_invitations_filtered_by_status(self, client, login, team, meeting):
        login(team["bob"])

        accepted = client.get(f"{API}/invitations", params={"status": "ACCEPTED"}).json()
        pending = client.get(f"{API}/invitations", params={"status": "PENDING"}).json()

        assert [i["meeting_title"] for i in accepted] == ["Roadmap"]
        assert pending == []


class TestNotificationFailures:
    def test_failed_delivery_does_not_change_the_result(
        self, client, login, team, meeting, invitation_for, monkeypatch
    ):
        async def broken_send_email(to, subject, mjml_content, from_address=None):
            raise RuntimeError("mail provider down")

        monkeypatch.setattr("app.email_service.send_email", broken_send_email)
        invitation = invitation_for(meeting, "alice@example.com")
        login(team["alice"])

        response = client.patch(f"{API}/invitations/{invitation.id}", json={"status": "DECLINED"})

        assert response.status_code == 200
        assert invitation_for(meeting, "alice@example.com").status == InvitationStatus.DECLINED

        login(team["olivia"])
        response = client.delete(f"{API}/meetings/{meeting.id}")
        assert response.status_code == 200
