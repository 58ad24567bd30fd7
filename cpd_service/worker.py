"""Background worker for notification tasks.

RUN:  python -m cpd_service.worker

Same image as the API, different command.  The API enqueues; this
process hands each task to the notification collaborator (email/push
delivery is outside this service, so a hand-off is one structured log
line carrying the figures the message needs).

Queues:
  certificate_issued   a certificate was created on any pathway
  compliance_reminder  recompute a user's progress and send the gaps
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import datetime, timezone
from typing import Any

from cpd_service.core.config import SETTINGS
from cpd_service.core.logging import setup_logging
from cpd_service.repos.store import store
from cpd_service.services.compliance import ComplianceAggregator
from cpd_service.services.task_queue import (
    CERTIFICATE_ISSUED,
    COMPLIANCE_REMINDER,
    task_queue,
)

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

# Holdings further than this from their deadline get no reminder
REMINDER_HORIZON_DAYS = 90

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(CERTIFICATE_ISSUED)
async def handle_certificate_issued(payload: dict) -> None:
    logger.info(
        "Notify certificate issued: %s (%s hours) %s",
        payload.get("title"),
        payload.get("hours"),
        payload.get("verification_url"),
        extra={
            "user_id": payload.get("user_id"),
            "certificate_code": payload.get("certificate_code"),
        },
    )


def reminder_lines(user_id: str, now: datetime | None = None) -> list[dict]:
    """Holdings worth a reminder: a gap remains and the deadline is near or past.

    Holdings without a deadline are skipped.
    """
    now = now or datetime.now(timezone.utc)
    lines = []
    for progress in ComplianceAggregator(store).compute_all(user_id, now):
        days = progress.days_until_deadline
        if days is None or days > REMINDER_HORIZON_DAYS:
            continue
        if progress.total_gap <= 0 and progress.ethics_gap <= 0 and progress.structured_gap <= 0:
            continue
        lines.append(
            {
                "credential": progress.credential_name,
                "days_until_deadline": days,
                "progress_percent": progress.progress_percent,
                "total_gap": progress.total_gap,
                "ethics_gap": progress.ethics_gap,
                "structured_gap": progress.structured_gap,
            }
        )
    return lines


@register_handler(COMPLIANCE_REMINDER)
async def handle_compliance_reminder(payload: dict) -> None:
    user_id = payload["user_id"]
    lines = reminder_lines(user_id)
    if not lines:
        logger.info("No reminder needed", extra={"user_id": user_id})
        return
    for line in lines:
        logger.info(
            "Notify compliance reminder: %s %d days left, %d%% complete, gap %g h "
            "(ethics %g h, structured %g h)",
            line["credential"],
            line["days_until_deadline"],
            line["progress_percent"],
            line["total_gap"],
            line["ethics_gap"],
            line["structured_gap"],
            extra={"user_id": user_id},
        )


async def run_worker() -> None:
    """Poll every registered queue and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            task = await task_queue.dequeue(queue_name, timeout=1)
            if task is None:
                continue

            handler = HANDLERS[queue_name]
            try:
                await handler(task.payload)
                logger.info("Task %s on [%s] completed", task.id, queue_name)
            except Exception:
                # TODO: push to a dead-letter list once delivery retries exist
                logger.exception("Task %s on [%s] failed", task.id, queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
