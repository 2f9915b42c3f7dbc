import math
from typing import Dict, Iterable

from . import config
from .geo import calculate_distance
from .schemas import (
    Event,
    SkillRequirement,
    UrgencyLevel,
    VolunteerProfile,
    VolunteerSkill,
    norm,
)

NEUTRAL_SCORE = 50

REQUIRED_SKILLS_SHARE = 70
OPTIONAL_SKILLS_SHARE = 30

CAUSE_MATCH_SCORE = 70
CAUSE_MISMATCH_SCORE = 40

URGENCY_BONUS = {
    UrgencyLevel.URGENT: 20,
    UrgencyLevel.HIGH: 10,
    UrgencyLevel.NORMAL: 0,
    UrgencyLevel.LOW: -10,
}

RELIABILITY_BASELINE = 75
RELIABILITY_PER_FIELD = 5
COMPLETENESS_FIELDS = ("first_name", "last_name", "phone", "address")


def clamp_score(value: float) -> int:
    """Clamp to [0, 100] and round half up."""
    if value != value:  # NaN
        return 0
    bounded = min(100.0, max(0.0, float(value)))
    return int(math.floor(bounded + 0.5))


def calculate_location_score(profile: VolunteerProfile, event: Event) -> int:
    if not profile.has_coordinates or not event.has_coordinates:
        return NEUTRAL_SCORE

    distance = calculate_distance(
        profile.latitude,
        profile.longitude,
        event.latitude,
        event.longitude,
    )

    max_distance = None
    if profile.preferences:
        max_distance = profile.preferences.max_distance
    if not max_distance or max_distance <= 0:
        max_distance = config.DEFAULT_MAX_DISTANCE_KM

    # 100 at the volunteer's door, 50 at the edge of their radius, 0 at twice the radius
    if distance <= max_distance:
        score = 100 - (distance / max_distance) * 50
    else:
        score = max(0, 50 - ((distance - max_distance) / max_distance) * 50)

    return clamp_score(score)


def _best_proficiency_ranks(volunteer_skills: Iterable[VolunteerSkill]) -> Dict[str, int]:
    ranks: Dict[str, int] = {}
    for skill in volunteer_skills or []:
        rank = skill.proficiency.rank
        if rank > ranks.get(skill.skill_id, -1):
            ranks[skill.skill_id] = rank
    return ranks


def is_requirement_met(ranks: Dict[str, int], requirement: SkillRequirement) -> bool:
    held = ranks.get(requirement.skill_id)
    return held is not None and held >= requirement.min_level.rank


def calculate_skills_score(volunteer_skills, required_skills) -> int:
    required = [r for r in required_skills or [] if r.required]
    optional = [r for r in required_skills or [] if not r.required]

    if not required and not optional:
        return 100

    ranks = _best_proficiency_ranks(volunteer_skills)

    def ratio(requirements):
        if not requirements:
            return 1.0
        met = sum(1 for r in requirements if is_requirement_met(ranks, r))
        return met / len(requirements)

    required_ratio = ratio(required)
    if required_ratio < 1:
        return clamp_score(required_ratio * REQUIRED_SKILLS_SHARE)

    return clamp_score(REQUIRED_SKILLS_SHARE + OPTIONAL_SKILLS_SHARE * ratio(optional))


def missing_required_skills(volunteer_skills, required_skills) -> list[str]:
    ranks = _best_proficiency_ranks(volunteer_skills)
    return [
        r.skill_id
        for r in required_skills or []
        if r.required and not is_requirement_met(ranks, r)
    ]


def calculate_preferences_score(profile: VolunteerProfile, event: Event) -> int:
    preferences = profile.preferences
    if preferences is None:
        return NEUTRAL_SCORE

    category = norm(event.category)
    if category and category in preferences.causes:
        score = CAUSE_MATCH_SCORE
    else:
        score = CAUSE_MISMATCH_SCORE

    score += URGENCY_BONUS.get(event.urgency_level, 0)
    return clamp_score(score)


def calculate_reliability_score(profile: VolunteerProfile) -> int:
    """Profile-completeness proxy (contact fields), not participation history."""
    populated = sum(
        1 for field in COMPLETENESS_FIELDS
        if (getattr(profile, field) or "").strip()
    )
    return clamp_score(RELIABILITY_BASELINE + RELIABILITY_PER_FIELD * populated)
