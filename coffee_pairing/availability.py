"""
Weekly availability overlap.

Slots are compared in naive day-of-week / minute-of-day terms. Each slot carries
a timezone label that is passed through untouched; no timezone conversion is
performed, so two members in different zones are compared as if their wall
clocks agreed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import MAX_SUGGESTIONS, MIN_OVERLAP_MINUTES, MIN_SLOT_MINUTES
from .data_models import AvailabilitySlot, Candidate, minutes_to_time
from .matching_models import ProposedSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlapWindow:
    day_of_week: int
    start_minute: int
    end_minute: int

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    def __str__(self) -> str:
        return f"day {self.day_of_week} {minutes_to_time(self.start_minute)}-{minutes_to_time(self.end_minute)}"


def overlap_window(slot1: AvailabilitySlot, slot2: AvailabilitySlot) -> Optional[OverlapWindow]:
    """Intersection of two slots, or None if they fall on different days or do not intersect."""
    if slot1.day_of_week != slot2.day_of_week:
        return None
    start = max(slot1.start_minute, slot2.start_minute)
    end = min(slot1.end_minute, slot2.end_minute)
    if start >= end:
        return None
    return OverlapWindow(slot1.day_of_week, start, end)


def overlap_minutes(slot1: AvailabilitySlot, slot2: AvailabilitySlot) -> int:
    window = overlap_window(slot1, slot2)
    return window.duration_minutes if window else 0


def same_day_slot_pairs(
    availability1: Sequence[AvailabilitySlot],
    availability2: Sequence[AvailabilitySlot],
) -> Iterable[Tuple[AvailabilitySlot, AvailabilitySlot]]:
    for slot1 in availability1:
        for slot2 in availability2:
            if slot1.day_of_week == slot2.day_of_week:
                yield slot1, slot2


def find_overlapping_availability(
    availability1: Sequence[AvailabilitySlot],
    availability2: Sequence[AvailabilitySlot],
    min_duration_minutes: int = MIN_OVERLAP_MINUTES,
) -> List[OverlapWindow]:
    """Return same-day intersections lasting at least ``min_duration_minutes``.

    Results are unique and sorted by day of week, then start time.
    """
    windows = set()
    for slot1, slot2 in same_day_slot_pairs(availability1, availability2):
        window = overlap_window(slot1, slot2)
        if window is not None and window.duration_minutes >= min_duration_minutes:
            windows.add(window)
    return sorted(windows, key=lambda w: (w.day_of_week, w.start_minute, w.end_minute))


def next_weekday(today: date, day_of_week: int) -> date:
    """Next date strictly after ``today`` that falls on ``day_of_week`` (0 = Monday)."""
    days_ahead = (day_of_week - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def suggest_meeting_times(
    availability1: Sequence[AvailabilitySlot],
    availability2: Sequence[AvailabilitySlot],
    timezone: str,
    today: date,
    min_duration_minutes: int = MIN_OVERLAP_MINUTES,
    limit: int = MAX_SUGGESTIONS,
) -> List[ProposedSlot]:
    """
    Turn overlapping weekly windows into dated meeting suggestions.

    Args:
        availability1: First participant's slots.
        availability2: Second participant's slots.
        timezone: Label attached to every suggestion (the first participant's
            profile timezone). It is not used for conversion.
        today: Reference date; each window is placed on the next occurrence of
            its weekday after this date.
        min_duration_minutes: Shortest acceptable overlap.
        limit: Maximum number of suggestions returned.

    Returns:
        Up to ``limit`` proposed slots ordered by weekday then start time.
    """
    overlaps = find_overlapping_availability(availability1, availability2, min_duration_minutes)
    suggestions = [
        ProposedSlot(
            date=next_weekday(today, w.day_of_week),
            day_of_week=w.day_of_week,
            start_minute=w.start_minute,
            end_minute=w.end_minute,
            timezone=timezone,
        )
        for w in overlaps[: max(0, limit)]
    ]
    logger.debug("Found %d overlaps, suggesting %d slots", len(overlaps), len(suggestions))
    return suggestions


def is_valid_slot(slot: AvailabilitySlot, min_slot_minutes: int = MIN_SLOT_MINUTES) -> bool:
    return (
        0 <= slot.day_of_week <= 6
        and slot.start_minute < slot.end_minute
        and slot.duration_minutes >= min_slot_minutes
    )


def has_conflict(new_slot: AvailabilitySlot, existing: Iterable[AvailabilitySlot]) -> bool:
    """True if ``new_slot`` intersects any existing slot on the same day."""
    return any(overlap_minutes(new_slot, slot) > 0 for slot in existing)


def drop_short_slots(candidate: Candidate, min_slot_minutes: int = MIN_SLOT_MINUTES) -> Candidate:
    """Return ``candidate`` without availability slots shorter than ``min_slot_minutes``."""
    kept = tuple(s for s in candidate.availability if is_valid_slot(s, min_slot_minutes))
    if len(kept) == len(candidate.availability):
        return candidate
    logger.debug(
        "Dropping %d slot(s) under %d minutes for %s",
        len(candidate.availability) - len(kept),
        min_slot_minutes,
        candidate.id,
    )
    return candidate.model_copy(update={"availability": kept})
