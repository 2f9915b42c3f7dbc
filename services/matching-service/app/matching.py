from types import MappingProxyType
from typing import List, Mapping, Optional

from .availability import calculate_availability_score
from .schemas import (
    Event,
    MatchQuality,
    MatchResult,
    Recommendation,
    ScoreBreakdown,
    Volunteer,
    VolunteerProfile,
)
from .scoring import (
    calculate_location_score,
    calculate_preferences_score,
    calculate_reliability_score,
    calculate_skills_score,
    clamp_score,
    missing_required_skills,
)

ALGORITHM_VERSION = "1.0.0"

MISSING_PROFILE_ERROR = "missing profile"

WEIGHTS = MappingProxyType({
    "location": 0.25,
    "skills": 0.30,
    "availability": 0.20,
    "preferences": 0.15,
    "reliability": 0.10,
})

# (lowest score, label), highest band first
QUALITY_BANDS = (
    (90, MatchQuality.EXCELLENT),
    (80, MatchQuality.VERY_GOOD),
    (70, MatchQuality.GOOD),
    (60, MatchQuality.FAIR),
    (50, MatchQuality.MODERATE),
    (30, MatchQuality.POOR),
    (0, MatchQuality.VERY_POOR),
)

COMPONENT_DESCRIPTIONS = {
    "location": "Distance to the event relative to the volunteer's travel radius",
    "skills": "Coverage of required skills at the minimum level, plus optional skills",
    "availability": "Overlap of the volunteer's slots with the event window",
    "preferences": "Cause alignment and event urgency",
    "reliability": "Profile completeness (contact details)",
}


def get_match_quality(score: float) -> MatchQuality:
    for lowest, label in QUALITY_BANDS:
        if score >= lowest:
            return label
    return MatchQuality.VERY_POOR


def score_breakdown(profile: VolunteerProfile, event: Event) -> ScoreBreakdown:
    return ScoreBreakdown(
        location=calculate_location_score(profile, event),
        skills=calculate_skills_score(profile.skills, event.required_skills),
        availability=calculate_availability_score(profile, event),
        preferences=calculate_preferences_score(profile, event),
        reliability=calculate_reliability_score(profile),
    )


def weighted_total(breakdown: ScoreBreakdown) -> int:
    return clamp_score(sum(weight * getattr(breakdown, name) for name, weight in WEIGHTS.items()))


def build_recommendations(
    breakdown: ScoreBreakdown,
    total_score: int,
    profile: VolunteerProfile,
    event: Event,
    skill_names: Optional[Mapping[str, str]] = None,
) -> List[Recommendation]:
    skill_names = skill_names or {}
    recommendations = []

    if breakdown.location < 50:
        recommendations.append(Recommendation(
            type="location",
            priority="medium",
            message="This event is far from the volunteer's location. Consider transportation options.",
        ))

    if breakdown.skills < 60:
        missing = [
            skill_names.get(skill_id, skill_id)
            for skill_id in missing_required_skills(profile.skills, event.required_skills)
        ]
        if missing:
            recommendations.append(Recommendation(
                type="skills",
                priority="high",
                message=f"Volunteer may need training in: {', '.join(missing)}.",
                missing_skills=missing,
            ))

    if breakdown.availability < 50:
        recommendations.append(Recommendation(
            type="availability",
            priority="high",
            message="Limited availability overlap. Consider adjusting the event timing or splitting it into shorter shifts.",
        ))

    if breakdown.preferences < 40:
        recommendations.append(Recommendation(
            type="preferences",
            priority="low",
            message="This event does not align with the volunteer's stated preferences.",
        ))

    if total_score >= 80:
        recommendations.append(Recommendation(
            type="overall", priority="info",
            message="Excellent match. This volunteer is highly suitable for this event.",
        ))
    elif total_score >= 60:
        recommendations.append(Recommendation(
            type="overall", priority="info",
            message="Good match. Consider this volunteer for assignment.",
        ))
    elif total_score >= 40:
        recommendations.append(Recommendation(
            type="overall", priority="medium",
            message="Moderate match. Review the weaker areas before assignment.",
        ))
    else:
        recommendations.append(Recommendation(
            type="overall", priority="high",
            message="Poor match. Consider alternative volunteers.",
        ))

    return recommendations


def calculate_match_score(
    volunteer: Optional[Volunteer],
    event: Event,
    skill_names: Optional[Mapping[str, str]] = None,
) -> MatchResult:
    if event is None:
        raise TypeError("calculate_match_score requires an event")

    volunteer_id = volunteer.id if volunteer is not None else None
    profile = volunteer.profile if volunteer is not None else None

    if profile is None:
        return MatchResult(
            volunteer_id=volunteer_id,
            event_id=event.id,
            total_score=0,
            error=MISSING_PROFILE_ERROR,
        )

    breakdown = score_breakdown(profile, event)
    total = weighted_total(breakdown)

    return MatchResult(
        volunteer_id=volunteer_id,
        event_id=event.id,
        total_score=total,
        score_breakdown=breakdown,
        match_quality=get_match_quality(total),
        recommendations=build_recommendations(breakdown, total, profile, event, skill_names),
    )


def algorithm_info() -> dict:
    bands = {}
    upper = 100
    for lowest, label in QUALITY_BANDS:
        bands[label.value] = f"{lowest}-{upper}"
        upper = lowest - 1

    return {
        "version": ALGORITHM_VERSION,
        "weights": dict(WEIGHTS),
        "components": {
            name: {"weight": weight, "description": COMPONENT_DESCRIPTIONS[name]}
            for name, weight in WEIGHTS.items()
        },
        "scoring": {"range": "0-100", "qualityBands": bands},
    }
