import asyncio

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool

from . import cache, clients
from .config import DEFAULT_EVENT_RANK_LIMIT
from .errors import MissingProfileError
from .matching import algorithm_info, calculate_match_score
from .ranking import (
    DEFAULT_SUGGESTION_MIN_SCORE,
    DEFAULT_SUGGESTIONS_PER_EVENT,
    find_events_for_volunteer,
    find_volunteers_for_event,
    generate_matching_stats,
    get_automatic_suggestions,
)
from .schemas import (
    EventSummary,
    FindVolunteersRequest,
    FindVolunteersResponse,
    MatchResult,
    ScoreRequest,
    SuggestionsResponse,
    VolunteerEventsResponse,
    VolunteerSummary,
)

router = APIRouter(prefix="/matching", tags=["Matching"])


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _required_skill_ids(events) -> list[str]:
    return [r.skill_id for e in events for r in e.required_skills if r.required]


@router.post("/events/{event_id}/volunteers", response_model=FindVolunteersResponse)
async def find_volunteers(event_id: str, request: Request, data: FindVolunteersRequest | None = None):
    data = data or FindVolunteersRequest()

    key = cache.match_cache_key(event_id, data.limit, data.min_score, data.include_assigned)
    cached = await cache.get_cached_matches(key)
    if cached:
        return FindVolunteersResponse.model_validate_json(cached)

    request_id = _request_id(request)
    event = await clients.fetch_event(event_id, request_id=request_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")

    volunteers = await clients.fetch_volunteers(request_id=request_id)

    assigned = set()
    if not data.include_assigned:
        assigned = await clients.fetch_assigned_volunteer_ids(event_id, request_id=request_id)

    names = await cache.skill_names.get_many(_required_skill_ids([event]))

    # scoring is CPU-bound; keep it off the event loop
    matches = await run_in_threadpool(
        find_volunteers_for_event,
        event,
        volunteers,
        limit=data.limit,
        min_score=data.min_score,
        include_assigned=data.include_assigned,
        assigned_volunteer_ids=assigned,
        skill_names=names,
    )

    message = None
    if not volunteers:
        message = "No available volunteers found"
    elif not matches:
        message = "No volunteers met the matching criteria"

    response = FindVolunteersResponse(
        event=EventSummary.from_event(event),
        matches=matches,
        total_volunteers=len(volunteers),
        stats=generate_matching_stats(matches, event),
        message=message,
    )
    await cache.set_cached_matches(event_id, key, response.model_dump_json(by_alias=True))
    return response


@router.get("/volunteers/{volunteer_id}/events", response_model=VolunteerEventsResponse)
async def find_events(
    volunteer_id: str,
    request: Request,
    limit: int = Query(DEFAULT_EVENT_RANK_LIMIT, ge=1, le=100),
    min_score: int = Query(0, ge=0, le=100, alias="minScore"),
):
    request_id = _request_id(request)
    volunteer = await clients.fetch_volunteer(volunteer_id, request_id=request_id)
    if volunteer is None:
        raise HTTPException(status_code=404, detail="Volunteer not found")
    if volunteer.profile is None:
        raise HTTPException(status_code=404, detail=str(MissingProfileError(volunteer_id)))

    events = await clients.fetch_published_events(request_id=request_id)
    names = await cache.skill_names.get_many(_required_skill_ids(events))

    matches = await run_in_threadpool(
        find_events_for_volunteer,
        volunteer,
        events,
        limit=limit,
        min_score=min_score,
        skill_names=names,
    )

    return VolunteerEventsResponse(
        volunteer=VolunteerSummary.from_volunteer(volunteer),
        matches=matches,
        total_events=len(events),
        message=None if events else "No available events found",
    )


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    request: Request,
    min_score: int = Query(DEFAULT_SUGGESTION_MIN_SCORE, ge=0, le=100, alias="minScore"),
    max_suggestions: int = Query(DEFAULT_SUGGESTIONS_PER_EVENT, ge=1, le=50, alias="maxSuggestions"),
):
    request_id = _request_id(request)

    events = [e for e in await clients.fetch_published_events(request_id=request_id) if e.needs_volunteers]
    volunteers = await clients.fetch_volunteers(request_id=request_id) if events else []

    assigned = await asyncio.gather(*(
        clients.fetch_assigned_volunteer_ids(e.id, request_id=request_id) for e in events
    ))
    names = await cache.skill_names.get_many(_required_skill_ids(events))

    return await run_in_threadpool(
        get_automatic_suggestions,
        events,
        volunteers,
        min_score=min_score,
        max_per_event=max_suggestions,
        assigned_by_event={e.id: ids for e, ids in zip(events, assigned)},
        skill_names=names,
    )


@router.get("/calculate/{volunteer_id}/{event_id}", response_model=MatchResult)
async def calculate_match(volunteer_id: str, event_id: str, request: Request):
    request_id = _request_id(request)

    volunteer = await clients.fetch_volunteer(volunteer_id, request_id=request_id)
    if volunteer is None:
        raise HTTPException(status_code=404, detail="Volunteer not found")

    event = await clients.fetch_event(event_id, request_id=request_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")

    names = await cache.skill_names.get_many(_required_skill_ids([event]))
    return calculate_match_score(volunteer, event, names)


@router.post("/score", response_model=MatchResult)
async def score(data: ScoreRequest):
    return calculate_match_score(data.volunteer, data.event)


@router.get("/algorithm-info")
async def get_algorithm_info():
    return algorithm_info()
