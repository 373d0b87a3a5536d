from __future__ import annotations

import json
import os
from contextlib import suppress
from datetime import datetime
from typing import Any, AsyncIterator

import redis.asyncio as redis

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
_redis = None
_fake_server = None


async def get_redis():
    global _redis, _fake_server
    if os.getenv("TESTING") == "1":
        # one shared server, a fresh client per event loop
        from fakeredis import FakeServer, aioredis

        if _fake_server is None:
            _fake_server = FakeServer()
        return aioredis.FakeRedis(server=_fake_server)
    if _redis is None:
        _redis = redis.from_url(REDIS_URL)
    return _redis


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize_event(event: dict[str, Any]) -> str:
    return json.dumps(event, default=_json_default)


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


async def publish_user_event(user_id: str, event: dict[str, Any]) -> None:
    r = await get_redis()
    await r.publish(user_channel(user_id), _serialize_event(event))


async def iter_user_events(user_id: str) -> AsyncIterator[str]:
    """Yield raw JSON events published for one user."""
    r = await get_redis()
    channel = user_channel(user_id)
    pubsub = r.pubsub()
    await pubsub.subscribe(channel)
    try:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            data = message.get("data")
            if isinstance(data, bytes):
                yield data.decode()
            else:
                yield str(data)
    finally:
        with suppress(Exception):
            await pubsub.unsubscribe(channel)
        with suppress(AttributeError):
            await pubsub.close()
