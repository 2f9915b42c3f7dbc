from datetime import time
from typing import Iterable, List, Tuple

from .schemas import AvailabilitySlot, Event, TimeSlot, VolunteerProfile, Weekday
from .scoring import clamp_score

NO_AVAILABILITY_SCORE = 30
WEEKEND_PENALTY_FACTOR = 0.5
PREFERRED_SLOT_BONUS = 10

MINUTES_PER_DAY = 24 * 60

Window = Tuple[int, int]


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def slot_window(slot: AvailabilitySlot) -> Window:
    start = to_minutes(slot.start_time)
    end = to_minutes(slot.end_time)
    if end == 0:
        end = MINUTES_PER_DAY
    return start, end


def event_window(event: Event) -> Window:
    """Minutes since midnight on the event's start day, wall-clock as given."""
    start_dt = event.start_date
    end_dt = event.window_end
    start = to_minutes(start_dt.time())
    if end_dt.date() > start_dt.date():
        end = MINUTES_PER_DAY
    else:
        end = to_minutes(end_dt.time())
    return start, max(start, end)


def merge_windows(windows: Iterable[Window]) -> List[Window]:
    merged: List[Window] = []
    for start, end in sorted(windows):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def covered_fraction(windows: Iterable[Window], start: int, end: int) -> float:
    merged = merge_windows(windows)

    # zero-length event: covered if it starts inside a slot
    if end <= start:
        return 1.0 if any(s <= start < e for s, e in merged) else 0.0

    covered = sum(max(0, min(e, end) - max(s, start)) for s, e in merged)
    return min(1.0, covered / (end - start))


def slots_for_event(slots: Iterable[AvailabilitySlot], event: Event) -> List[AvailabilitySlot]:
    day = Weekday(event.start_date.weekday())
    event_date = event.start_date.date()
    return [
        s for s in slots
        if (s.is_recurring and s.day_of_week == day)
        or (not s.is_recurring and s.specific_date == event_date)
    ]


def calculate_availability_score(profile: VolunteerProfile, event: Event) -> int:
    if not profile.availability:
        return NO_AVAILABILITY_SCORE

    day_slots = slots_for_event(profile.availability, event)
    if not day_slots:
        return 0

    start, end = event_window(event)
    score = 100 * covered_fraction([slot_window(s) for s in day_slots], start, end)

    preferences = profile.preferences
    if preferences:
        if preferences.weekdays_only and Weekday(event.start_date.weekday()).is_weekend:
            score *= WEEKEND_PENALTY_FACTOR

        if TimeSlot.for_hour(event.start_date.hour) in preferences.preferred_time_slots:
            score = min(100, score + PREFERRED_SLOT_BONUS)

    return clamp_score(score)
