"""Background task queue using Redis lists.

The API enqueues follow-up work that is not part of the engine's
answer (notifying a user that a certificate was issued, nudging a user
whose renewal deadline is near) and returns immediately; the worker
process (``python -m cpd_service.worker``) drains the queues.

  Producer (API):    LPUSH task onto a Redis list
  Consumer (Worker): BRPOP from the list, dispatch, loop

LPUSH at the head plus BRPOP at the tail gives FIFO order.  BRPOP blocks
until a task arrives or the timeout expires, so an idle worker does not
spin.

Delivery is at-most-once: a worker that crashes mid-task loses it.
Notifications are advisory, the certificate itself is already stored.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from cpd_service.core.metrics import QUEUE_DEPTH
from cpd_service.db.redis import redis_pool

CERTIFICATE_ISSUED = "certificate_issued"
COMPLIANCE_REMINDER = "compliance_reminder"


@dataclass(frozen=True, slots=True)
class Task:
    """A unit of background work.

    id:      Unique identifier for tracking and logging.
    queue:   Which queue this task belongs to (certificate_issued,
             compliance_reminder).
    payload: JSON-serializable data the handler needs.
    """

    id: str
    queue: str
    payload: dict


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """In-memory task queue for tests, no Redis needed."""

    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        tasks = self._queues.setdefault(queue, [])
        tasks.append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        tasks = self._queues.get(queue, [])
        if not tasks:
            return None
        task = tasks.pop(0)  # FIFO: remove from front
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))


class RedisTaskQueue:
    """Redis-backed task queue using LPUSH/BRPOP."""

    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        task_json = json.dumps(
            {
                "id": task.id,
                "queue": task.queue,
                "payload": task.payload,
            }
        )
        depth = await self._redis.lpush(f"{self._PREFIX}{queue}", task_json)
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        # Waits up to `timeout` seconds; None means no task arrived
        result = await self._redis.brpop(f"{self._PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, task_json = result
        data = json.loads(task_json)
        return Task(**data)

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(f"{self._PREFIX}{queue}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
