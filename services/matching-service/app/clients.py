import httpx
from fastapi import HTTPException
from pydantic import ValidationError

from .config import (
    EVENT_SERVICE_URL,
    HTTP_TIMEOUT,
    SERVICE_NAME,
    SKILL_SERVICE_URL,
    VOLUNTEER_SERVICE_URL,
)
from .schemas import Event, Volunteer

INACTIVE_ASSIGNMENT_STATUSES = {"cancelled", "canceled", "declined"}


def _headers(request_id: str | None) -> dict:
    return {"X-Request-Id": request_id} if request_id else {}


def _unwrap(payload):
    # upstream services answer either the bare record or {"status": ..., "data": ...}
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


async def _get(url: str, params: dict | None = None, request_id: str | None = None):
    """
    GET an upstream resource. Returns None on 404.
    Timeouts map to 504, any other upstream failure to 502.
    """
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            resp = await client.get(url, params=params, headers=_headers(request_id))
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return _unwrap(resp.json())
    except httpx.TimeoutException:
        raise HTTPException(status_code=504, detail=f"Timeout calling upstream: {url}")
    except httpx.HTTPStatusError as e:
        raise HTTPException(
            status_code=502,
            detail=f"Upstream {url} responded {e.response.status_code}",
        )
    except (httpx.HTTPError, ValueError):
        raise HTTPException(status_code=502, detail=f"Bad gateway calling upstream: {url}")


def _parse_one(model, payload, url: str):
    if payload is None:
        return None
    try:
        return model.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=502, detail=f"Malformed record from upstream: {url}")


def _parse_many(model, items, kind: str) -> list:
    parsed = []
    for item in items or []:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            ref = item.get("id") if isinstance(item, dict) else None
            print(f"[{SERVICE_NAME}] skipping malformed {kind} id={ref}: {e.error_count()} error(s)")
    return parsed


# -------- EVENTS --------

async def fetch_event(event_id: str, request_id: str | None = None) -> Event | None:
    url = f"{EVENT_SERVICE_URL}/events/{event_id}"
    return _parse_one(Event, await _get(url, request_id=request_id), url)


async def fetch_published_events(request_id: str | None = None) -> list[Event]:
    items = await _get(
        f"{EVENT_SERVICE_URL}/events",
        params={"status": "published"},
        request_id=request_id,
    )
    return _parse_many(Event, items, "event")


async def fetch_assigned_volunteer_ids(event_id: str, request_id: str | None = None) -> set[str]:
    items = await _get(f"{EVENT_SERVICE_URL}/events/{event_id}/assignments", request_id=request_id)
    assigned = set()
    for item in items or []:
        if not isinstance(item, dict):
            continue
        status = (item.get("status") or "").strip().lower()
        volunteer_id = item.get("volunteerId") or item.get("volunteer_id")
        if volunteer_id is not None and status not in INACTIVE_ASSIGNMENT_STATUSES:
            assigned.add(str(volunteer_id))
    return assigned


# -------- VOLUNTEERS --------

async def fetch_volunteers(request_id: str | None = None) -> list[Volunteer]:
    items = await _get(f"{VOLUNTEER_SERVICE_URL}/volunteers", request_id=request_id)
    return _parse_many(Volunteer, items, "volunteer")


async def fetch_volunteer(volunteer_id: str, request_id: str | None = None) -> Volunteer | None:
    url = f"{VOLUNTEER_SERVICE_URL}/volunteers/{volunteer_id}"
    return _parse_one(Volunteer, await _get(url, request_id=request_id), url)


# -------- SKILLS --------

async def fetch_skill_name(skill_id: str) -> str | None:
    """
    Skill names only decorate recommendations; any failure falls back to None
    and the caller shows the skill id instead.
    """
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            r = await client.get(f"{SKILL_SERVICE_URL}/skills/{skill_id}")
            if r.status_code != 200:
                return None
            skill = _unwrap(r.json())
    except Exception:
        return None
    if isinstance(skill, dict):
        return skill.get("name")
    return None
