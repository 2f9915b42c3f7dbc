"""
Pytest configuration and shared fixtures.
"""

import copy
from typing import Any, Dict

import pytest
from redis import exceptions as redis_exceptions

from volunteer_matching import cache
from volunteer_matching.schemas import Event, Volunteer


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio the service uses."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.sets: Dict[str, set] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        deleted = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                deleted += 1
            if self.sets.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def sadd(self, key, *members):
        members_set = self.sets.setdefault(key, set())
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    async def srem(self, key, *members):
        members_set = self.sets.get(key, set())
        removed = len(members_set & set(members))
        members_set.difference_update(members)
        return removed

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, redis):
        self._redis = redis
        self._calls = []

    def __getattr__(self, name):
        method = getattr(self._redis, name)

        def queue(*args, **kwargs):
            self._calls.append((method, args, kwargs))
            return self

        return queue

    async def execute(self):
        results = []
        for method, args, kwargs in self._calls:
            results.append(await method(*args, **kwargs))
        self._calls = []
        return results


@pytest.fixture
def fake_redis(no_redis, monkeypatch) -> FakeRedis:
    redis = FakeRedis()
    monkeypatch.setattr(cache, "redis_client", redis)
    return redis


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    """Tests run without Redis unless they ask for fake_redis."""
    monkeypatch.setattr(cache, "redis_client", None)


@pytest.fixture
def volunteer_data() -> Dict[str, Any]:
    """Volunteer in downtown Houston, free Mondays 09:00-17:00."""
    return {
        "id": "user_002",
        "email": "volunteer2@example.com",
        "profile": {
            "latitude": 29.7604,
            "longitude": -95.3698,
            "skills": [
                {"skillId": "skill_001", "proficiency": "intermediate"},
                {"skillId": "skill_002", "proficiency": "advanced"},
            ],
            "availability": [
                {"dayOfWeek": "Monday", "startTime": "09:00", "endTime": "17:00", "isRecurring": True},
            ],
            "preferences": {
                "causes": ["community", "environmental"],
                "maxDistance": 50,
                "preferredTimeSlots": ["morning"],
            },
        },
    }


@pytest.fixture
def event_data() -> Dict[str, Any]:
    """Monday-morning cleanup about 1 km from the volunteer."""
    return {
        "id": "event_001",
        "title": "Community Cleanup",
        "latitude": 29.7520,
        "longitude": -95.3720,
        "startDate": "2024-12-16T10:00:00Z",
        "endDate": "2024-12-16T12:00:00Z",
        "category": "environmental",
        "urgencyLevel": "normal",
        "requiredSkills": [
            {"skillId": "skill_001", "minLevel": "beginner", "required": True},
        ],
        "status": "published",
    }


@pytest.fixture
def volunteer(volunteer_data) -> Volunteer:
    return Volunteer.model_validate(volunteer_data)


@pytest.fixture
def event(event_data) -> Event:
    return Event.model_validate(event_data)


@pytest.fixture
def make_volunteer(volunteer_data):
    """Build a volunteer from the base fixture with profile fields overridden."""

    def build(volunteer_id: str = "user_002", **profile_overrides) -> Volunteer:
        data = copy.deepcopy(volunteer_data)
        data["id"] = volunteer_id
        data["profile"].update(profile_overrides)
        return Volunteer.model_validate(data)

    return build


@pytest.fixture
def make_event(event_data):
    """Build an event from the base fixture with fields overridden."""

    def build(**overrides) -> Event:
        data = copy.deepcopy(event_data)
        data.update(overrides)
        return Event.model_validate(data)

    return build


class BrokenRedis:
    """Every call fails the way an unreachable server does."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise redis_exceptions.ConnectionError("connection refused")

        return fail

    def pipeline(self):
        return FakePipeline(self)


@pytest.fixture
def broken_redis(no_redis, monkeypatch) -> BrokenRedis:
    redis = BrokenRedis()
    monkeypatch.setattr(cache, "redis_client", redis)
    return redis
