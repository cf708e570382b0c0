"""Fixed-interval polling of asynchronous DashScope tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from wanx_client.client import ConfigurationError, UpstreamError
from wanx_client.models import ErrorKind, ServiceResult, TaskStatus

logger = logging.getLogger(__name__)

_GENERIC_FAILURE = "Task failed"


class TaskLookup(Protocol):
    async def lookup(self, task_id: str) -> Any: ...


def _raw_status(body: Any) -> Any:
    output = body.get("output") if isinstance(body, dict) else None
    return output.get("task_status") if isinstance(output, dict) else None


def _has_output(body: Any) -> bool:
    return isinstance(body, dict) and isinstance(body.get("output"), dict)


def task_status_of(body: Any) -> TaskStatus:
    """Read ``output.task_status`` from a task body."""
    return TaskStatus.parse(_raw_status(body))


def failure_message_of(body: Any) -> str:
    """Pick the upstream error message from a FAILED task body."""
    if isinstance(body, dict):
        metrics = body.get("task_metrics")
        if isinstance(metrics, dict) and metrics.get("error_message"):
            return str(metrics["error_message"])
        output = body.get("output")
        if isinstance(output, dict) and output.get("message"):
            return str(output["message"])
    return _GENERIC_FAILURE


async def poll_until_terminal(
    gateway: TaskLookup,
    task_id: str,
    max_attempts: int = 60,
    interval: float = 2.0,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ServiceResult[dict]:
    """Poll a task until it reaches a terminal state or the attempt budget runs out.

    Each attempt performs exactly one ``gateway.lookup``. Between attempts the
    loop sleeps ``interval`` seconds, so a task that never finishes costs
    ``max_attempts`` lookups and ``max_attempts - 1`` sleeps.

    Upstream errors, and task bodies without an ``output`` object, are logged
    and retried on any attempt but the last. A missing credential is surfaced
    immediately. A present but unrecognised ``task_status`` ends the poll.

    The caller must not poll the same task_id from two coroutines at once.

    Args:
        gateway: Object exposing ``async lookup(task_id)``.
        task_id: The task identifier.
        max_attempts: Maximum number of lookups (>= 1).
        interval: Seconds to wait between attempts (>= 0).
        sleep: Awaitable delay function.

    Returns:
        ``ServiceResult.ok(body)`` with the SUCCEEDED task body, or a failure
        tagged TASK_FAILED, UNKNOWN_STATUS, TIMEOUT, UPSTREAM or CONFIGURATION.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if interval < 0:
        raise ValueError(f"interval must be >= 0, got {interval}")

    for attempt in range(1, max_attempts + 1):
        is_last = attempt == max_attempts
        try:
            body = await gateway.lookup(task_id)
        except ConfigurationError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.CONFIGURATION)
        except UpstreamError as exc:
            error = str(exc)
        else:
            error = None if _has_output(body) else f"Task {task_id} lookup returned no output: {body!r}"

        if error is not None:
            if is_last:
                return ServiceResult.fail(error, ErrorKind.UPSTREAM)
            logger.warning(
                "Status lookup for task %s failed (attempt %d/%d): %s",
                task_id, attempt, max_attempts, error,
            )
            await sleep(interval)
            continue

        status = task_status_of(body)
        logger.debug("Task %s: status=%s (attempt %d/%d)", task_id, status.value, attempt, max_attempts)

        if status is TaskStatus.SUCCEEDED:
            return ServiceResult.ok(body)
        if status is TaskStatus.FAILED:
            return ServiceResult.fail(failure_message_of(body), ErrorKind.TASK_FAILED)
        if status is TaskStatus.UNKNOWN:
            return ServiceResult.fail(f"Unknown task status: {_raw_status(body)}", ErrorKind.UNKNOWN_STATUS)

        if not is_last:
            await sleep(interval)

    return ServiceResult.fail(
        f"Task {task_id} did not finish after {max_attempts} attempts, try again later",
        ErrorKind.TIMEOUT,
    )
