import asyncio
import json

import aio_pika
from aio_pika import ExchangeType

from . import cache
from .config import RABBIT_URL, SERVICE_NAME

EXCHANGE_NAME = "domain_events"
QUEUE_NAME = "matching_service_domain_events"

SKILL_EVENTS = {"skill.created", "skill.updated"}
EVENT_SCOPED_EVENTS = {"event.updated", "assignment.created", "assignment.cancelled"}
PROFILE_EVENTS = {"volunteer.profile_updated"}

ROUTING_KEYS = sorted(SKILL_EVENTS | EVENT_SCOPED_EVENTS | PROFILE_EVENTS)

IDEMPOTENCY_TTL_SECONDS = 60 * 60  # 1 hour
RETRY_SECONDS = 5


async def _already_processed(event_id: str) -> bool:
    if not cache.enabled():
        return False
    return bool(await cache.redis_client.get(_processed_key(event_id)))


async def _mark_processed(event_id: str):
    if cache.enabled():
        await cache.redis_client.set(_processed_key(event_id), "1", ex=IDEMPOTENCY_TTL_SECONDS)


def _processed_key(event_id: str) -> str:
    return f"processed_event:{event_id}"


async def apply_event(event_type: str, data: dict):
    """Invalidate whatever cached state the domain event makes stale."""
    if event_type in SKILL_EVENTS:
        skill_id = data.get("skill_id") or data.get("skillId") or data.get("id")
        if skill_id:
            await cache.skill_names.invalidate(str(skill_id))
        return

    if event_type in EVENT_SCOPED_EVENTS:
        event_id = data.get("event_id") or data.get("eventId")
        if event_id:
            await cache.invalidate_event(str(event_id))
        return

    # a profile change can move a volunteer in or out of any shortlist
    if event_type in PROFILE_EVENTS:
        await cache.invalidate_all_events()


async def handle_message(message: aio_pika.IncomingMessage):
    # a failed invalidation is redelivered once, then dropped
    async with message.process(requeue=True, reject_on_redelivered=True):
        try:
            payload = json.loads(message.body.decode("utf-8"))
        except Exception:
            return

        event_id = payload.get("event_id")
        event_type = payload.get("event_type")
        data = payload.get("data") or {}

        if not event_id or not event_type:
            return

        if event_type not in set(ROUTING_KEYS):
            return

        if await _already_processed(event_id):
            return

        await apply_event(event_type, data)
        await _mark_processed(event_id)


async def _connect_and_consume():
    connection = await aio_pika.connect_robust(RABBIT_URL)

    channel = await connection.channel()
    await channel.set_qos(prefetch_count=50)

    exchange = await channel.declare_exchange(
        EXCHANGE_NAME,
        ExchangeType.TOPIC,
        durable=True,
    )

    queue = await channel.declare_queue(
        QUEUE_NAME,
        durable=True,
    )

    for rk in ROUTING_KEYS:
        await queue.bind(exchange, routing_key=rk)

    await queue.consume(handle_message)

    print(f"[{SERVICE_NAME}] event consumer started (cache invalidation)")
    return connection


async def start_consumer_with_retry(stop_event: asyncio.Event):
    if not RABBIT_URL:
        print(f"[{SERVICE_NAME}] RABBIT_URL not set; cache invalidation events disabled")
        return None

    while not stop_event.is_set():
        try:
            return await _connect_and_consume()
        except Exception as e:
            print(f"[{SERVICE_NAME}] consumer connect failed, retrying in {RETRY_SECONDS}s: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=RETRY_SECONDS)
            except asyncio.TimeoutError:
                continue

    return None
