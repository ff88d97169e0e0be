from datetime import date, datetime, timezone

import pytest

from app.shared.time_utils import (
    end_of_day,
    ensure_utc,
    format_human,
    format_iso8601,
    intervals_overlap,
    is_valid_timezone,
    sanitize_timezone,
    start_of_day,
    to_local,
    to_utc,
    week_boundaries,
)
from app.shared.validators import dedupe_emails, validate_email, validate_timezone


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestTimezones:
    def test_valid_and_invalid_zones(self):
        assert is_valid_timezone("America/New_York")
        assert not is_valid_timezone("Mars/Olympus_Mons")
        assert not is_valid_timezone("")
        assert not is_valid_timezone(None)

    def test_sanitize_prefers_requested_then_fallback_then_utc(self):
        assert sanitize_timezone("Asia/Tokyo", "Europe/Berlin") == "Asia/Tokyo"
        assert sanitize_timezone("Not/AZone", "Europe/Berlin") == "Europe/Berlin"
        assert sanitize_timezone(None, None) == "UTC"
        assert sanitize_timezone("Not/AZone", "Also/Wrong") == "UTC"

    def test_naive_datetimes_are_utc(self):
        assert ensure_utc(datetime(2025, 3, 3, 14, 0)) == utc(2025, 3, 3, 14, 0)
        assert ensure_utc(datetime(2025, 3, 3, 14, 0)).tzinfo == timezone.utc

    def test_local_round_trip(self):
        instant = utc(2025, 3, 3, 14, 0)
        local = to_local(instant, "America/New_York")
        assert (local.hour, local.minute) == (9, 0)
        assert to_utc(local.replace(tzinfo=None), "America/New_York") == instant

    def test_dst_transition(self):
        # US daylight saving time started on 2025-03-09
        assert to_utc(datetime(2025, 3, 7, 9, 0), "America/New_York") == utc(2025, 3, 7, 14, 0)
        assert to_utc(datetime(2025, 3, 10, 9, 0), "America/New_York") == utc(2025, 3, 10, 13, 0)


class TestBoundaries:
    def test_day_boundaries_follow_the_zone(self):
        assert start_of_day(date(2025, 3, 3), "America/New_York") == utc(2025, 3, 3, 5, 0)
        assert end_of_day(date(2025, 3, 3), "America/New_York") == utc(2025, 3, 4, 5, 0)

    def test_week_runs_monday_to_monday(self):
        start, end = week_boundaries(date(2025, 3, 5), "UTC")
        assert start == utc(2025, 3, 3)
        assert end == utc(2025, 3, 10)

    def test_back_to_back_intervals_do_not_overlap(self):
        assert not intervals_overlap(utc(2025, 3, 3, 9), utc(2025, 3, 3, 10), utc(2025, 3, 3, 10), utc(2025, 3, 3, 11))
        assert intervals_overlap(utc(2025, 3, 3, 9), utc(2025, 3, 3, 10), utc(2025, 3, 3, 9, 59), utc(2025, 3, 3, 11))


class TestFormatting:
    def test_iso8601_carries_the_offset(self):
        assert format_iso8601(utc(2025, 3, 3, 14), "America/New_York") == "2025-03-03T09:00:00-05:00"
        assert format_iso8601(utc(2025, 3, 3, 14), "UTC") == "2025-03-03T14:00:00+00:00"

    def test_human_format(self):
        assert format_human(utc(2025, 3, 3, 14), "America/New_York") == "Monday, March 3, 2025 at 09:00 AM EST"


class TestValidators:
    def test_email_is_lower_cased(self):
        assert validate_email("  Alice@Example.COM ") == "alice@example.com"

    def test_invalid_email(self):
        with pytest.raises(ValueError, match="Invalid email address"):
            validate_email("not-an-email")

    def test_invalid_timezone(self):
        with pytest.raises(ValueError, match="Invalid timezone"):
            validate_timezone("Europe/Atlantis")
        assert validate_timezone(" Europe/Paris ") == "Europe/Paris"

    def test_dedupe_keeps_first_seen_order(self):
        assert dedupe_emails(["B@x.com", "a@x.com", "b@X.com"]) == ["b@x.com", "a@x.com"]
