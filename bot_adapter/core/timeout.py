"""Deadline wrapper for arbitrary awaitables.

``with_timeout`` races a unit of work against a timer. The timer handle is
cancelled on every exit path so long-running processes do not accumulate
pending callbacks on the loop.

On expiry the work is cancelled by default. Callers that must not interrupt
the work (or wrap something that cannot be interrupted, such as a thread
executor future) pass ``cancel=False``; the task is then left running and
its late outcome is drained and logged.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from bot_adapter.core.errors import TimeoutExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _expire(expired: asyncio.Future) -> None:
    if not expired.done():
        expired.set_result(None)


def _drain_late_outcome(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("abandoned_operation_failed", extra={"error": repr(exc)})
    else:
        logger.debug("abandoned_operation_completed")


def _discard(aw: Awaitable) -> None:
    # A coroutine that was never awaited would otherwise warn on GC.
    if asyncio.iscoroutine(aw):
        aw.close()


async def with_timeout(
    aw: Awaitable[T],
    timeout_ms: int,
    error: BaseException | None = None,
    *,
    cancel: bool = True,
) -> T:
    """Await *aw*, failing with *error* if it does not settle within *timeout_ms*.

    The outcome of *aw* (value or exception) is propagated unchanged when it
    settles first. A non-positive budget fails immediately without starting
    the work.
    """
    if error is None:
        error = TimeoutExceeded(timeout_ms)

    if timeout_ms <= 0:
        _discard(aw)
        raise error

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(aw)
    expired = loop.create_future()
    timer = loop.call_later(timeout_ms / 1000, _expire, expired)

    try:
        await asyncio.wait({task, expired}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        timer.cancel()
        if not expired.done():
            expired.cancel()

    if task.done():
        return task.result()

    logger.warning("operation_timed_out", extra={"timeout_ms": timeout_ms, "cancelled": cancel})
    if cancel:
        task.cancel()
    task.add_done_callback(_drain_late_outcome)
    raise error
