from typing import Iterable, List, Mapping, Optional, Sequence

from . import config
from .errors import MissingProfileError
from .matching import calculate_match_score
from .schemas import (
    Event,
    EventMatch,
    EventSuggestions,
    EventSummary,
    MatchingStats,
    MatchResult,
    RankedMatch,
    ScoreDistribution,
    SuggestionsResponse,
    Volunteer,
    VolunteerSummary,
)
from .scoring import REQUIRED_SKILLS_SHARE, clamp_score


def find_volunteers_for_event(
    event: Event,
    volunteer_pool: Iterable[Volunteer],
    *,
    limit: Optional[int] = None,
    min_score: Optional[int] = None,
    include_assigned: bool = False,
    assigned_volunteer_ids: Iterable[str] = (),
    skill_names: Optional[Mapping[str, str]] = None,
) -> List[RankedMatch]:
    """
    Score every volunteer in the pool against one event and return the shortlist,
    best first. Volunteers that could not be scored (no profile) are dropped.
    Ties are broken on volunteer id so the order is reproducible.
    """
    if limit is None:
        limit = config.DEFAULT_RANK_LIMIT

    assigned = set(assigned_volunteer_ids or ())
    ranked = []

    for volunteer in volunteer_pool or []:
        if not include_assigned and volunteer.id in assigned:
            continue

        result = calculate_match_score(volunteer, event, skill_names)
        if result.error:
            continue
        if min_score is not None and result.total_score < min_score:
            continue

        ranked.append(RankedMatch(**dict(result), volunteer=VolunteerSummary.from_volunteer(volunteer)))

    ranked.sort(key=lambda m: (-m.total_score, m.volunteer.id))
    return ranked[:limit]


def find_events_for_volunteer(
    volunteer: Volunteer,
    events: Iterable[Event],
    *,
    limit: Optional[int] = None,
    min_score: Optional[int] = 0,
    skill_names: Optional[Mapping[str, str]] = None,
) -> List[EventMatch]:
    if volunteer.profile is None:
        raise MissingProfileError(volunteer.id)

    if limit is None:
        limit = config.DEFAULT_EVENT_RANK_LIMIT

    ranked = []
    for event in events or []:
        result = calculate_match_score(volunteer, event, skill_names)
        if min_score is not None and result.total_score < min_score:
            continue
        ranked.append(EventMatch(**dict(result), event=EventSummary.from_event(event)))

    ranked.sort(key=lambda m: (-m.total_score, m.event.id))
    return ranked[:limit]


# (lowest total score, distribution bucket)
DISTRIBUTION_BANDS = (
    (80, "excellent"),
    (60, "good"),
    (40, "fair"),
    (0, "poor"),
)

DEFAULT_SUGGESTION_MIN_SCORE = 70
DEFAULT_SUGGESTIONS_PER_EVENT = 5


def generate_matching_stats(matches: Sequence[MatchResult], event: Event) -> MatchingStats:
    """
    Summarise a ranked list: mean total, how many fall in each band, and the
    share of candidates that meet every required skill of the event.
    """
    if not matches:
        return MatchingStats()

    distribution = dict.fromkeys((name for _, name in DISTRIBUTION_BANDS), 0)
    for match in matches:
        for lowest, name in DISTRIBUTION_BANDS:
            if match.total_score >= lowest:
                distribution[name] += 1
                break

    if not any(r.required for r in event.required_skills):
        coverage = 100
    else:
        covered = sum(
            1 for m in matches
            if m.score_breakdown is not None and m.score_breakdown.skills >= REQUIRED_SKILLS_SHARE
        )
        coverage = clamp_score(100 * covered / len(matches))

    return MatchingStats(
        average_score=round(sum(m.total_score for m in matches) / len(matches), 1),
        score_distribution=ScoreDistribution(**distribution),
        skills_coverage=coverage,
    )


def get_automatic_suggestions(
    events: Iterable[Event],
    volunteer_pool: Sequence[Volunteer],
    *,
    min_score: int = DEFAULT_SUGGESTION_MIN_SCORE,
    max_per_event: int = DEFAULT_SUGGESTIONS_PER_EVENT,
    assigned_by_event: Optional[Mapping[str, Iterable[str]]] = None,
    skill_names: Optional[Mapping[str, str]] = None,
) -> SuggestionsResponse:
    """
    Shortlist volunteers for every event that still has open spots.
    Events without a qualifying candidate are left out; the rest are ordered
    most urgent first, then by the number of open spots.
    """
    assigned_by_event = assigned_by_event or {}
    needing = [e for e in events or [] if e.needs_volunteers]

    suggestions = []
    for event in needing:
        matches = find_volunteers_for_event(
            event,
            volunteer_pool,
            limit=max_per_event,
            min_score=min_score,
            assigned_volunteer_ids=assigned_by_event.get(event.id, ()),
            skill_names=skill_names,
        )
        if not matches:
            continue
        suggestions.append(EventSuggestions(
            event=EventSummary.from_event(event),
            urgency_level=event.urgency_level,
            spots_needed=event.spots_needed,
            suggestions=matches,
        ))

    suggestions.sort(key=lambda s: (-s.urgency_level.rank, -s.spots_needed, s.event.id))

    return SuggestionsResponse(
        suggestions=suggestions,
        total_events=len(needing),
        events_with_suggestions=len(suggestions),
    )
