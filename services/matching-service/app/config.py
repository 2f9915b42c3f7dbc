import os

SERVICE_NAME = "matching-service"

VOLUNTEER_SERVICE_URL = os.getenv("VOLUNTEER_SERVICE_URL") or "http://volunteer-service:8000"
EVENT_SERVICE_URL = os.getenv("EVENT_SERVICE_URL") or "http://event-service:8000"
SKILL_SERVICE_URL = os.getenv("SKILL_SERVICE_URL") or VOLUNTEER_SERVICE_URL

# optional: caching and cache invalidation are disabled when unset
REDIS_URL = os.getenv("REDIS_URL")
RABBIT_URL = os.getenv("RABBIT_URL")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT") or "2.0")

DEFAULT_MAX_DISTANCE_KM = float(os.getenv("DEFAULT_MAX_DISTANCE_KM") or "50")
DEFAULT_RANK_LIMIT = int(os.getenv("DEFAULT_RANK_LIMIT") or "20")
DEFAULT_EVENT_RANK_LIMIT = int(os.getenv("DEFAULT_EVENT_RANK_LIMIT") or "10")

MATCH_CACHE_TTL_SECONDS = int(os.getenv("MATCH_CACHE_TTL_SECONDS") or "60")
SKILL_CACHE_TTL_SECONDS = int(os.getenv("SKILL_CACHE_TTL_SECONDS") or str(24 * 60 * 60))
# unknown or unreachable skills are remembered briefly so lookups don't pile up
SKILL_MISS_TTL_SECONDS = int(os.getenv("SKILL_MISS_TTL_SECONDS") or "60")
