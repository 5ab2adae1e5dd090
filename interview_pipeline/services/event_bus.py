"""Pipeline event fan-out.

The facade and the notification sink only publish. subscribe/unsubscribe are the
attachment point for the real-time push transport (websocket or SSE), which is
deployed outside this service; each connection holds one bounded queue.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict

import redis.asyncio as redis
from redis.exceptions import RedisError

from interview_pipeline.core.config import settings

logger = logging.getLogger("ipl.events")


class EventBus:
    """Fans pipeline events out to local subscriber queues, via Redis pub/sub when configured."""

    def __init__(self, redis_url: str | None = None, channel: str = "ipl:events") -> None:
        self._subscribers: set[asyncio.Queue[str]] = set()
        self._lock = asyncio.Lock()
        self._redis_url = (settings.redis_url if redis_url is None else redis_url).strip()
        self._redis: redis.Redis | None = None
        self._redis_lock = asyncio.Lock()
        self._listener_task: asyncio.Task | None = None
        self._channel = channel

    async def _broadcast(self, data: str) -> None:
        async with self._lock:
            for queue in list(self._subscribers):
                if queue.full():
                    # Slow consumers lose their oldest event.
                    queue.get_nowait()
                queue.put_nowait(data)

    async def _ensure_redis(self) -> bool:
        if not self._redis_url:
            return False
        if self._redis is None:
            async with self._redis_lock:
                if self._redis is None:
                    self._redis = redis.from_url(self._redis_url, decode_responses=True)
        await self._ensure_listener()
        return True

    async def _ensure_listener(self) -> None:
        if self._listener_task and not self._listener_task.done():
            return
        self._listener_task = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        if not self._redis:
            return
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if not message or message.get("type") != "message":
                    continue
                data = message.get("data")
                if isinstance(data, bytes):
                    data = data.decode()
                if not isinstance(data, str):
                    continue
                await self._broadcast(data)
        finally:
            await pubsub.close()

    async def subscribe(self) -> asyncio.Queue[str]:
        """Register a bounded queue for a push connection; pair with unsubscribe on disconnect."""
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=200)
        async with self._lock:
            self._subscribers.add(queue)
        await self._ensure_redis()
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[str]) -> None:
        async with self._lock:
            self._subscribers.discard(queue)

    async def publish(self, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
        if await self._ensure_redis():
            try:
                if self._redis:
                    await self._redis.publish(self._channel, data)
                    return
            except RedisError:
                logger.warning("redis_publish_failed", exc_info=True)
        await self._broadcast(data)


event_bus = EventBus()
