"""
Tests for record validation at the service boundary.
"""

from datetime import date, time

import pytest
from pydantic import ValidationError

from volunteer_matching.schemas import (
    AvailabilitySlot,
    Event,
    Preferences,
    Proficiency,
    TimeSlot,
    UrgencyLevel,
    Volunteer,
    VolunteerProfile,
    Weekday,
)


class TestAvailabilitySlot:
    def test_day_name(self):
        slot = AvailabilitySlot.model_validate(
            {"dayOfWeek": "Tuesday", "startTime": "09:00", "endTime": "12:00"}
        )
        assert slot.day_of_week == Weekday.TUESDAY
        assert slot.is_recurring is True
        assert slot.start_time == time(9, 0)

    @pytest.mark.parametrize(
        "upstream,expected",
        [(0, Weekday.SUNDAY), (1, Weekday.MONDAY), (6, Weekday.SATURDAY), ("3", Weekday.WEDNESDAY)],
    )
    def test_numeric_day_uses_sunday_first_numbering(self, upstream, expected):
        slot = AvailabilitySlot.model_validate(
            {"dayOfWeek": upstream, "startTime": "09:00", "endTime": "12:00"}
        )
        assert slot.day_of_week == expected

    def test_specific_date_from_datetime_string(self):
        slot = AvailabilitySlot.model_validate(
            {"specificDate": "2024-12-16T00:00:00.000Z", "startTime": "09:00", "endTime": "12:00"}
        )
        assert slot.is_recurring is False
        assert slot.specific_date == date(2024, 12, 16)

    def test_midnight_end_is_allowed(self):
        slot = AvailabilitySlot.model_validate(
            {"dayOfWeek": "Friday", "startTime": "20:00", "endTime": "00:00"}
        )
        assert slot.end_time == time(0, 0)

    @pytest.mark.parametrize(
        "data",
        [
            {"dayOfWeek": "Funday", "startTime": "09:00", "endTime": "12:00"},
            {"dayOfWeek": 9, "startTime": "09:00", "endTime": "12:00"},
            {"dayOfWeek": "Monday", "startTime": "12:00", "endTime": "09:00"},
            {"isRecurring": True, "startTime": "09:00", "endTime": "12:00"},
            {"isRecurring": False, "dayOfWeek": "Monday", "startTime": "09:00", "endTime": "12:00"},
        ],
    )
    def test_invalid_slots(self, data):
        with pytest.raises(ValidationError):
            AvailabilitySlot.model_validate(data)


class TestVolunteerProfile:
    def test_malformed_entries_are_dropped(self):
        profile = VolunteerProfile.model_validate({
            "skills": [
                {"skillId": "skill_001", "proficiency": "EXPERT"},
                {"skillId": "skill_002", "proficiency": "wizard"},
                "not-a-skill",
            ],
            "availability": [
                {"dayOfWeek": "Monday", "startTime": "09:00", "endTime": "17:00"},
                {"dayOfWeek": "Monday", "startTime": "late", "endTime": "17:00"},
            ],
        })
        assert [s.skill_id for s in profile.skills] == ["skill_001"]
        assert profile.skills[0].proficiency == Proficiency.EXPERT
        assert len(profile.availability) == 1

    def test_null_lists(self):
        profile = VolunteerProfile.model_validate({"skills": None, "availability": None})
        assert profile.skills == []
        assert profile.availability == []

    def test_has_coordinates(self):
        assert VolunteerProfile(latitude=1.0, longitude=2.0).has_coordinates
        assert not VolunteerProfile(latitude=None, longitude=2.0).has_coordinates


class TestPreferences:
    def test_miles_are_converted_to_km(self):
        prefs = Preferences.model_validate({"maxDistanceMiles": 10})
        assert prefs.max_distance == pytest.approx(16.09344)

    def test_km_wins_over_miles(self):
        prefs = Preferences.model_validate({"maxDistance": 25, "maxDistanceMiles": 10})
        assert prefs.max_distance == 25

    def test_causes_and_slots_are_normalized(self):
        prefs = Preferences.model_validate({
            "causes": [" Environmental ", "COMMUNITY"],
            "preferredTimeSlots": ["Morning", "night"],
        })
        assert prefs.causes == {"environmental", "community"}
        assert prefs.preferred_time_slots == {TimeSlot.MORNING}


class TestEvent:
    def test_urgency_aliases(self, event_data):
        assert Event.model_validate({**event_data, "urgencyLevel": "critical"}).urgency_level == UrgencyLevel.URGENT
        assert Event.model_validate({**event_data, "urgencyLevel": "Medium"}).urgency_level == UrgencyLevel.NORMAL
        assert Event.model_validate({**event_data, "urgencyLevel": None}).urgency_level == UrgencyLevel.NORMAL

    def test_unknown_urgency_is_rejected(self, event_data):
        with pytest.raises(ValidationError):
            Event.model_validate({**event_data, "urgencyLevel": "whenever"})

    def test_requirements_alias_and_is_required(self, event_data):
        data = {k: v for k, v in event_data.items() if k != "requiredSkills"}
        data["requirements"] = [
            {"skillId": 7, "minLevel": "ADVANCED", "isRequired": False},
        ]
        event = Event.model_validate(data)
        assert event.required_skills[0].skill_id == "7"
        assert event.required_skills[0].min_level == Proficiency.ADVANCED
        assert event.required_skills[0].required is False

    @pytest.mark.parametrize("level", ["master", 3, None, ""])
    def test_unknown_min_level_reads_as_beginner(self, event_data, level):
        data = {**event_data, "requiredSkills": [{"skillId": "skill_001", "minLevel": level}]}
        event = Event.model_validate(data)
        assert len(event.required_skills) == 1
        assert event.required_skills[0].min_level == Proficiency.BEGINNER

    def test_capacity(self, event_data):
        event = Event.model_validate({**event_data, "maxVolunteers": 10, "currentVolunteers": 7})
        assert event.spots_needed == 3
        assert event.needs_volunteers

        full = Event.model_validate({**event_data, "maxVolunteers": 5, "currentVolunteers": 5})
        assert not full.needs_volunteers

        unbounded = Event.model_validate({**event_data, "currentVolunteers": None})
        assert unbounded.current_volunteers == 0
        assert unbounded.spots_needed == 0

    def test_window_end_defaults_to_start(self, event_data):
        data = {k: v for k, v in event_data.items() if k != "endDate"}
        event = Event.model_validate(data)
        assert event.window_end == event.start_date

    def test_numeric_id(self, event_data):
        assert Event.model_validate({**event_data, "id": 42}).id == "42"


class TestVolunteer:
    def test_display_name(self):
        volunteer = Volunteer.model_validate(
            {"id": "v1", "profile": {"firstName": "Ada", "lastName": " Lovelace "}}
        )
        assert volunteer.display_name == "Ada Lovelace"

    def test_without_profile(self):
        volunteer = Volunteer.model_validate({"id": "v1"})
        assert volunteer.profile is None
        assert volunteer.display_name is None


def test_orderings():
    assert Proficiency.BEGINNER.rank < Proficiency.INTERMEDIATE.rank < Proficiency.ADVANCED.rank < Proficiency.EXPERT.rank
    assert UrgencyLevel.LOW.rank < UrgencyLevel.NORMAL.rank < UrgencyLevel.HIGH.rank < UrgencyLevel.URGENT.rank
