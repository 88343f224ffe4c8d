"""Pub/sub transport for job progress events.

Workers publish JSON payloads to a named stream; API processes subscribe and
forward them to websocket clients. Redis pub/sub is used when jobs run in
Celery workers. The in-memory broker only reaches subscribers in the same
process, which is what ``task_backend=inline`` (and the test suite) needs.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import redis.asyncio as redis

from repo_recon.config import settings

logger = logging.getLogger("repo_recon.progress")


class Subscription(Protocol):
    def __aiter__(self) -> AsyncIterator[dict[str, Any]]: ...

    async def aclose(self) -> None: ...


class ProgressBus(Protocol):
    async def publish(self, stream: str, payload: dict[str, Any]) -> None: ...

    async def subscribe(self, stream: str) -> Subscription: ...

    async def close(self) -> None: ...


class _RedisSubscription:
    def __init__(self, pubsub, stream: str) -> None:
        self._pubsub = pubsub
        self._stream = stream

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                yield json.loads(message["data"])
            except (TypeError, ValueError):
                logger.warning("progress_bad_payload stream=%s", self._stream)

    async def aclose(self) -> None:
        await self._pubsub.unsubscribe(self._stream)
        await self._pubsub.aclose()


class RedisProgressBus:
    def __init__(self, url: str) -> None:
        self._redis = redis.from_url(url, decode_responses=True)

    async def publish(self, stream: str, payload: dict[str, Any]) -> None:
        await self._redis.publish(stream, json.dumps(payload))

    async def subscribe(self, stream: str) -> _RedisSubscription:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(stream)
        return _RedisSubscription(pubsub, stream)

    async def close(self) -> None:
        await self._redis.aclose()


class _QueueSubscription:
    def __init__(self, bus: "InMemoryProgressBus", stream: str, queue: asyncio.Queue) -> None:
        self._bus = bus
        self._stream = stream
        self._queue = queue

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            yield await self._queue.get()

    async def aclose(self) -> None:
        await self._bus._unsubscribe(self._stream, self._queue)


class InMemoryProgressBus:
    """Process-local publisher/subscriber broker."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[asyncio.Queue]] = {}
        self._lock = asyncio.Lock()

    async def publish(self, stream: str, payload: dict[str, Any]) -> None:
        async with self._lock:
            queues = list(self._subscribers.get(stream, []))
        for queue in queues:
            await queue.put(payload)

    async def subscribe(self, stream: str) -> _QueueSubscription:
        queue: asyncio.Queue = asyncio.Queue()
        async with self._lock:
            self._subscribers.setdefault(stream, []).append(queue)
        return _QueueSubscription(self, stream, queue)

    async def _unsubscribe(self, stream: str, queue: asyncio.Queue) -> None:
        async with self._lock:
            queues = self._subscribers.get(stream)
            if not queues:
                return
            if queue in queues:
                queues.remove(queue)
            if not queues:
                self._subscribers.pop(stream, None)

    def subscriber_count(self, stream: str) -> int:
        return len(self._subscribers.get(stream, []))

    async def close(self) -> None:
        return None


_memory_bus: InMemoryProgressBus | None = None
_shared_bus: ProgressBus | None = None


def build_progress_bus() -> ProgressBus:
    """Create a bus for the current event loop.

    Redis connections are bound to the loop that opened them, so every Celery
    task run (one ``asyncio.run`` per attempt) builds and closes its own. The
    memory bus is always the process-wide instance.
    """

    global _memory_bus
    if settings.progress_backend == "memory":
        if _memory_bus is None:
            _memory_bus = InMemoryProgressBus()
        return _memory_bus
    return RedisProgressBus(settings.redis_url)


def get_progress_bus() -> ProgressBus:
    """Process-wide bus for the API (FastAPI dependency)."""

    global _shared_bus
    if _shared_bus is None:
        _shared_bus = build_progress_bus()
    return _shared_bus


async def close_progress_bus() -> None:
    global _shared_bus
    if _shared_bus is not None:
        await _shared_bus.close()
        _shared_bus = None
