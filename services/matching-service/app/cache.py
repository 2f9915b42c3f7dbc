import asyncio

import redis.asyncio as redis

from .clients import fetch_skill_name
from .config import (
    MATCH_CACHE_TTL_SECONDS,
    REDIS_URL,
    SERVICE_NAME,
    SKILL_CACHE_TTL_SECONDS,
    SKILL_MISS_TTL_SECONDS,
)

redis_client = redis.from_url(REDIS_URL, decode_responses=True) if REDIS_URL else None

# set of event ids that currently have cached match lists
EVENTS_INDEX_KEY = "matchkeys:events"

# cached in place of a name when the lookup found nothing
MISSING_SKILL_NAME = ""


def enabled() -> bool:
    return redis_client is not None


# ---- Ranked match lists ----

def match_cache_key(event_id: str, limit: int, min_score: int | None, include_assigned: bool) -> str:
    min_part = "none" if min_score is None else str(min_score)
    return f"match:event:{event_id}:limit={limit}:min={min_part}:assigned={int(include_assigned)}"


def event_index_key(event_id: str) -> str:
    return f"matchkeys:event:{event_id}"


async def get_cached_matches(key: str) -> str | None:
    if not enabled():
        return None
    try:
        return await redis_client.get(key)
    except redis.RedisError as e:
        print(f"[{SERVICE_NAME}] cache read failed for {key}: {e}")
        return None


async def set_cached_matches(event_id: str, key: str, value: str, ttl_seconds: int = MATCH_CACHE_TTL_SECONDS):
    """
    Store a ranked list and index it under its event so the whole event can be
    invalidated when the event, its assignments or any profile changes.
    """
    if not enabled():
        return
    index_key = event_index_key(event_id)
    try:
        pipe = redis_client.pipeline()
        pipe.set(key, value, ex=ttl_seconds)
        pipe.sadd(index_key, key)
        pipe.expire(index_key, ttl_seconds + 5)  # keep index close to cache TTL
        pipe.sadd(EVENTS_INDEX_KEY, event_id)
        # refreshed on every write; lapses once no event has a live list
        pipe.expire(EVENTS_INDEX_KEY, ttl_seconds + 5)
        await pipe.execute()
    except redis.RedisError as e:
        print(f"[{SERVICE_NAME}] cache write failed for {key}: {e}")


async def invalidate_event(event_id: str) -> int:
    """Delete all cached lists for one event. Returns number of cache keys deleted."""
    if not enabled():
        return 0
    index_key = event_index_key(event_id)
    try:
        keys = await redis_client.smembers(index_key)

        pipe = redis_client.pipeline()
        if keys:
            pipe.delete(*list(keys))
        pipe.delete(index_key)
        pipe.srem(EVENTS_INDEX_KEY, event_id)
        results = await pipe.execute()
    except redis.RedisError as e:
        print(f"[{SERVICE_NAME}] cache invalidation failed for event {event_id}: {e}")
        raise

    if keys and results and isinstance(results[0], int):
        return results[0]
    return 0


async def invalidate_all_events() -> int:
    if not enabled():
        return 0
    try:
        event_ids = await redis_client.smembers(EVENTS_INDEX_KEY)
    except redis.RedisError as e:
        print(f"[{SERVICE_NAME}] cache invalidation failed: {e}")
        raise

    deleted = 0
    for event_id in event_ids:
        deleted += await invalidate_event(event_id)
    return deleted


# ---- Skill names ----

class SkillNameCache:
    """
    Read-through skill id -> name lookup backed by Redis.
    Entries are dropped when a skill is created or renamed (see event_consumer).
    Misses are cached for a short time so a failing skill service is not
    called again on every request.
    """

    def __init__(
        self,
        loader,
        ttl_seconds: int = SKILL_CACHE_TTL_SECONDS,
        miss_ttl_seconds: int = SKILL_MISS_TTL_SECONDS,
    ):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self.miss_ttl_seconds = miss_ttl_seconds

    @staticmethod
    def key(skill_id: str) -> str:
        return f"skill_name:{skill_id}"

    async def _cached(self, skill_id: str) -> str | None:
        if not enabled():
            return None
        try:
            return await redis_client.get(self.key(skill_id))
        except redis.RedisError as e:
            print(f"[{SERVICE_NAME}] skill cache read failed: {e}")
            return None

    async def _store(self, skill_id: str, name: str, ttl_seconds: int):
        if not enabled():
            return
        try:
            await redis_client.set(self.key(skill_id), name, ex=ttl_seconds)
        except redis.RedisError as e:
            print(f"[{SERVICE_NAME}] skill cache write failed: {e}")

    async def get_many(self, skill_ids) -> dict[str, str]:
        names = {}
        misses = []
        for skill_id in dict.fromkeys(skill_ids):
            name = await self._cached(skill_id)
            if name is None:
                misses.append(skill_id)
            elif name != MISSING_SKILL_NAME:
                names[skill_id] = name

        loaded = await asyncio.gather(*(self._loader(skill_id) for skill_id in misses))
        for skill_id, name in zip(misses, loaded):
            if name:
                names[skill_id] = name
                await self._store(skill_id, name, self.ttl_seconds)
            else:
                await self._store(skill_id, MISSING_SKILL_NAME, self.miss_ttl_seconds)
        return names

    async def invalidate(self, skill_id: str):
        if not enabled():
            return
        try:
            await redis_client.delete(self.key(skill_id))
        except redis.RedisError as e:
            print(f"[{SERVICE_NAME}] skill cache invalidation failed for {skill_id}: {e}")
            raise


skill_names = SkillNameCache(fetch_skill_name)
