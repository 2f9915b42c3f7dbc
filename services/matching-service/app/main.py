import asyncio

from fastapi import FastAPI

from . import cache
from .config import SERVICE_NAME
from .event_consumer import start_consumer_with_retry
from .middleware import RequestLoggingMiddleware
from .routes import router

app = FastAPI(title="Volunteer Matching Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)

_consumer_conn = None
_consumer_task = None
_stop_event = asyncio.Event()


async def _run_consumer():
    global _consumer_conn
    _consumer_conn = await start_consumer_with_retry(_stop_event)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "cache_enabled": cache.enabled(),
        "events_enabled": _consumer_conn is not None,
    }


@app.on_event("startup")
async def startup():
    global _consumer_task
    # consumer retries in the background; the API serves without it
    _consumer_task = asyncio.create_task(_run_consumer())


@app.on_event("shutdown")
async def shutdown():
    _stop_event.set()
    if _consumer_task:
        try:
            await _consumer_task
        except Exception as e:
            print(f"[{SERVICE_NAME}] consumer task ended with error: {e}")
    try:
        if _consumer_conn and not _consumer_conn.is_closed:
            await _consumer_conn.close()
    except Exception as e:
        print(f"[{SERVICE_NAME}] consumer close failed: {e}")
    if cache.redis_client is not None:
        await cache.redis_client.aclose()
