"""
Candidate slot generation and scoring

Pure functions over UTC instants. Busy time comes in as (start, end) pairs;
nothing here touches the database or the cache.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Iterable, Optional

from ...config import BUSINESS_END_HOUR, BUSINESS_START_HOUR, SLOT_STRIDE_MINUTES
from ...shared.time_utils import intervals_overlap, to_local

BUSINESS_START = time(BUSINESS_START_HOUR, 0)
BUSINESS_END = time(BUSINESS_END_HOUR, 0)

BASE_SCORE = 100.0
PENALTY_PER_MINUTE = 0.01
PREFERRED_UTC_HOURS = (10, 14)
PREFERRED_HOUR_BONUS = 10.0


def within_business_hours(start: datetime, end: datetime, tz_name: str) -> bool:
    """Local start at or after 09:00 and local end at or before 17:00 on the same local day"""
    local_start = to_local(start, tz_name)
    local_end = to_local(end, tz_name)
    if local_end.date() != local_start.date():
        return False
    return local_start.time() >= BUSINESS_START and local_end.time() <= BUSINESS_END


def generate_candidates(
    range_start: datetime,
    range_end: datetime,
    duration: timedelta,
    tz_name: str,
    stride: timedelta = timedelta(minutes=SLOT_STRIDE_MINUTES),
) -> list[tuple[datetime, datetime]]:
    """Business-hours candidates every `stride` from range_start while start + duration <= range_end"""
    candidates = []
    current = range_start
    while current + duration <= range_end:
        end = current + duration
        if within_business_hours(current, end, tz_name):
            candidates.append((current, end))
        current += stride
    return candidates


def is_free(
    start: datetime, end: datetime, busy: Iterable[tuple[datetime, datetime]]
) -> bool:
    return not any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in busy)


def filter_free(
    candidates: list[tuple[datetime, datetime]],
    busy: list[tuple[datetime, datetime]],
) -> list[tuple[datetime, datetime]]:
    return [(start, end) for start, end in candidates if is_free(start, end, busy)]


def score_slot(start: datetime, reference: datetime) -> float:
    """
    100 points, minus 0.01 per minute after reference, plus 10 when the slot
    starts at 10:00 or 14:00 UTC. Never negative.
    """
    minutes = int((start - reference).total_seconds() // 60)
    score = BASE_SCORE - minutes * PENALTY_PER_MINUTE
    if start.astimezone(timezone.utc).hour in PREFERRED_UTC_HOURS:
        score += PREFERRED_HOUR_BONUS
    return round(max(0.0, score), 2)


def rank_slots(
    slots: list[tuple[datetime, datetime]], reference: datetime, limit: int
) -> list[dict]:
    """Score against reference, best first, earlier start on ties"""
    scored = [
        {"start": start, "end": end, "score": score_slot(start, reference)}
        for start, end in slots
    ]
    scored.sort(key=lambda slot: (-slot["score"], slot["start"]))
    return scored[:limit]


def find_free_slots(
    range_start: datetime,
    range_end: datetime,
    duration: timedelta,
    tz_name: str,
    busy: list[tuple[datetime, datetime]],
    limit: int,
    not_before: Optional[datetime] = None,
    reference: Optional[datetime] = None,
) -> list[dict]:
    """
    Generate, filter against busy time, score and rank.

    Args:
        not_before: drop candidates starting earlier than this instant
        reference: instant scores are measured from (defaults to range_start)
    """
    candidates = generate_candidates(range_start, range_end, duration, tz_name)
    free = filter_free(candidates, busy)
    if not_before is not None:
        free = [(start, end) for start, end in free if start >= not_before]
    return rank_slots(free, reference or range_start, limit)
