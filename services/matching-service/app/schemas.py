from datetime import date, datetime, time, timezone
from enum import Enum, IntEnum
from typing import Annotated, List, Optional, Set

from dateutil import parser
from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .config import DEFAULT_RANK_LIMIT
from .geo import miles_to_km


def norm(s: str) -> str:
    return (s or "").strip().lower()


def _stringify(value):
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# upstream ids are sometimes numeric
Identifier = Annotated[str, BeforeValidator(_stringify)]


class Proficiency(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls._value2member_map_.get(norm(value))
        return None

    @property
    def rank(self) -> int:
        return PROFICIENCY_ORDER.index(self)


PROFICIENCY_ORDER = (
    Proficiency.BEGINNER,
    Proficiency.INTERMEDIATE,
    Proficiency.ADVANCED,
    Proficiency.EXPERT,
)


class UrgencyLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        key = norm(value)
        key = _URGENCY_ALIASES.get(key, key)
        return cls._value2member_map_.get(key)

    @property
    def rank(self) -> int:
        return URGENCY_ORDER.index(self)


_URGENCY_ALIASES = {"medium": "normal", "critical": "urgent"}

URGENCY_ORDER = (
    UrgencyLevel.LOW,
    UrgencyLevel.NORMAL,
    UrgencyLevel.HIGH,
    UrgencyLevel.URGENT,
)


class TimeSlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @classmethod
    def for_hour(cls, hour: int) -> "TimeSlot":
        if hour < 12:
            return cls.MORNING
        if hour < 17:
            return cls.AFTERNOON
        return cls.EVENING


class Weekday(IntEnum):
    """Python weekday numbering (Monday=0)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def is_weekend(self) -> bool:
        return self >= Weekday.SATURDAY


class MatchQuality(str, Enum):
    EXCELLENT = "Excellent"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    FAIR = "Fair"
    MODERATE = "Moderate"
    POOR = "Poor"
    VERY_POOR = "Very Poor"


def _valid_entries(model, items) -> list:
    """
    Validate a list of nested records, dropping the ones that don't parse.
    Malformed skills/slots count as unmet instead of rejecting the whole profile.
    """
    if not items:
        return []
    valid = []
    for item in items:
        if isinstance(item, model):
            valid.append(item)
            continue
        try:
            valid.append(model.model_validate(item))
        except ValidationError:
            continue
    return valid


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ---- Volunteer side ----

class VolunteerSkill(CamelModel):
    skill_id: Identifier
    proficiency: Proficiency = Proficiency.BEGINNER

    @field_validator("proficiency", mode="before")
    @classmethod
    def _parse_proficiency(cls, value):
        if value is None:
            return Proficiency.BEGINNER
        return Proficiency(value) if isinstance(value, str) else value


class AvailabilitySlot(CamelModel):
    day_of_week: Optional[Weekday] = None
    specific_date: Optional[date] = None
    start_time: time
    end_time: time
    is_recurring: bool = True

    @model_validator(mode="before")
    @classmethod
    def _infer_recurring(cls, data):
        if isinstance(data, dict) and "isRecurring" not in data and "is_recurring" not in data:
            specific = data.get("specificDate", data.get("specific_date"))
            data = {**data, "isRecurring": specific is None}
        return data

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _parse_day(cls, value):
        if value is None or isinstance(value, Weekday):
            return value
        if isinstance(value, str):
            name = norm(value)
            if not name.isdigit():
                try:
                    return Weekday[name.upper()]
                except KeyError:
                    raise ValueError(f"Unknown day of week: {value}") from None
            value = int(name)
        if isinstance(value, int) and not isinstance(value, bool):
            if not 0 <= value <= 6:
                raise ValueError(f"Day of week out of range: {value}")
            # upstream numbering is 0=Sunday
            return Weekday((value - 1) % 7)
        return value

    @field_validator("specific_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and value:
            return parser.isoparse(value).date()
        return value

    @model_validator(mode="after")
    def _check_slot(self):
        if self.is_recurring and self.day_of_week is None:
            raise ValueError("Recurring slot requires dayOfWeek")
        if not self.is_recurring and self.specific_date is None:
            raise ValueError("One-off slot requires specificDate")
        # 00:00 as end time means the end of the day
        if self.end_time != time(0, 0) and self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class Preferences(CamelModel):
    causes: Set[str] = Field(default_factory=set)
    max_distance: Optional[float] = None
    max_distance_miles: Optional[float] = None
    weekdays_only: bool = False
    preferred_time_slots: Set[TimeSlot] = Field(default_factory=set)

    @model_validator(mode="before")
    @classmethod
    def _convert_miles(cls, data):
        """Distances are kilometers internally; miles are converted on the way in."""
        if not isinstance(data, dict):
            return data
        km = data.get("maxDistance", data.get("max_distance"))
        miles = data.get("maxDistanceMiles", data.get("max_distance_miles"))
        if km is None and miles is not None:
            data = {k: v for k, v in data.items() if k not in ("maxDistance", "max_distance")}
            data["maxDistance"] = miles_to_km(float(miles))
        return data

    @field_validator("causes", mode="before")
    @classmethod
    def _normalize_causes(cls, value):
        if not value:
            return set()
        return {norm(c) for c in value if isinstance(c, str) and norm(c)}

    @field_validator("preferred_time_slots", mode="before")
    @classmethod
    def _parse_time_slots(cls, value):
        if not value:
            return set()
        known = TimeSlot._value2member_map_
        return {known[norm(v)] for v in value if isinstance(v, str) and norm(v) in known}


class VolunteerProfile(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    skills: List[VolunteerSkill] = Field(default_factory=list)
    availability: List[AvailabilitySlot] = Field(default_factory=list)
    preferences: Optional[Preferences] = None

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def _drop_malformed_skills(cls, value):
        return _valid_entries(VolunteerSkill, value)

    @field_validator("availability", mode="before")
    @classmethod
    def _drop_malformed_slots(cls, value):
        return _valid_entries(AvailabilitySlot, value)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Volunteer(CamelModel):
    id: Identifier
    email: Optional[str] = None
    profile: Optional[VolunteerProfile] = None

    @property
    def display_name(self) -> Optional[str]:
        if not self.profile:
            return None
        parts = [p.strip() for p in (self.profile.first_name, self.profile.last_name) if p and p.strip()]
        return " ".join(parts) or None


# ---- Event side ----

class SkillRequirement(CamelModel):
    skill_id: Identifier
    min_level: Proficiency = Proficiency.BEGINNER
    required: bool = Field(default=True, validation_alias=AliasChoices("required", "isRequired"))

    @field_validator("min_level", mode="before")
    @classmethod
    def _parse_min_level(cls, value):
        # an unreadable level still counts as a requirement, at the lowest level
        if isinstance(value, Proficiency):
            return value
        try:
            return Proficiency(value)
        except ValueError:
            return Proficiency.BEGINNER


class Event(CamelModel):
    id: Identifier
    title: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    category: Optional[str] = None
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL
    required_skills: List[SkillRequirement] = Field(
        default_factory=list,
        validation_alias=AliasChoices("requiredSkills", "required_skills", "requirements"),
    )
    status: Optional[str] = None
    max_volunteers: Optional[int] = Field(default=None, ge=0)
    current_volunteers: int = Field(default=0, ge=0)

    @field_validator("current_volunteers", mode="before")
    @classmethod
    def _default_current(cls, value):
        return 0 if value is None else value

    @field_validator("urgency_level", mode="before")
    @classmethod
    def _parse_urgency(cls, value):
        if value is None:
            return UrgencyLevel.NORMAL
        return UrgencyLevel(value) if isinstance(value, str) else value

    @field_validator("required_skills", mode="before")
    @classmethod
    def _drop_malformed_requirements(cls, value):
        return _valid_entries(SkillRequirement, value)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def window_end(self) -> datetime:
        return self.end_date or self.start_date

    @property
    def spots_needed(self) -> int:
        if self.max_volunteers is None:
            return 0
        return max(0, self.max_volunteers - self.current_volunteers)

    @property
    def needs_volunteers(self) -> bool:
        return self.spots_needed > 0


# ---- Results ----

class ScoreBreakdown(CamelModel):
    location: int = Field(ge=0, le=100)
    skills: int = Field(ge=0, le=100)
    availability: int = Field(ge=0, le=100)
    preferences: int = Field(ge=0, le=100)
    reliability: int = Field(ge=0, le=100)


class Recommendation(CamelModel):
    type: str
    priority: str
    message: str
    missing_skills: Optional[List[str]] = None


class MatchResult(CamelModel):
    volunteer_id: Optional[str] = None
    event_id: Optional[str] = None
    total_score: int = Field(ge=0, le=100)
    score_breakdown: Optional[ScoreBreakdown] = None
    match_quality: Optional[MatchQuality] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
    error: Optional[str] = None
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class VolunteerSummary(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_volunteer(cls, volunteer: Volunteer) -> "VolunteerSummary":
        return cls(id=volunteer.id, name=volunteer.display_name, email=volunteer.email)


class EventSummary(CamelModel):
    id: str
    title: Optional[str] = None
    start_date: datetime
    category: Optional[str] = None
    urgency_level: UrgencyLevel

    @classmethod
    def from_event(cls, event: Event) -> "EventSummary":
        return cls(
            id=event.id,
            title=event.title,
            start_date=event.start_date,
            category=event.category,
            urgency_level=event.urgency_level,
        )


class RankedMatch(MatchResult):
    volunteer: VolunteerSummary


class EventMatch(MatchResult):
    event: EventSummary


class ScoreDistribution(CamelModel):
    excellent: int = 0
    good: int = 0
    fair: int = 0
    poor: int = 0


class MatchingStats(CamelModel):
    average_score: float = 0
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    skills_coverage: int = Field(default=0, ge=0, le=100)


class EventSuggestions(CamelModel):
    event: EventSummary
    urgency_level: UrgencyLevel
    spots_needed: int
    suggestions: List[RankedMatch]


# ---- API payloads ----

class FindVolunteersRequest(CamelModel):
    limit: int = Field(default=DEFAULT_RANK_LIMIT, ge=1, le=500)
    min_score: Optional[int] = Field(default=None, ge=0, le=100)
    include_assigned: bool = False


class FindVolunteersResponse(CamelModel):
    event: EventSummary
    matches: List[RankedMatch]
    total_volunteers: int
    stats: Optional[MatchingStats] = None
    message: Optional[str] = None


class SuggestionsResponse(CamelModel):
    suggestions: List[EventSuggestions]
    total_events: int
    events_with_suggestions: int


class VolunteerEventsResponse(CamelModel):
    volunteer: VolunteerSummary
    matches: List[EventMatch]
    total_events: int
    message: Optional[str] = None


class ScoreRequest(CamelModel):
    volunteer: Volunteer
    event: Event
