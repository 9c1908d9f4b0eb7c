"""
Interceptors composed around operation-queue work.

Each interceptor takes a zero-argument work callable and returns a new async
callable with the same result, so they stack::

    work = compose(
        hire,
        partial(with_logging, name="staff hire", actor_id=actor_id),
        partial(with_audit, audit_repo=audit_repo, entry_factory=make_entry),
    )
    await queue.enqueue(work, actor_id, guild_id)
"""

from __future__ import annotations

import inspect
import time
from typing import Any, Awaitable, Callable, Optional

from lexcord.datatypes.audit_datatypes import AuditEntry
from lexcord.repositories.audit_log_repo import AuditLogRepository
from lexcord.services.operation_queue import Work
from lexcord.util.logger import get_logger

logger = get_logger("interceptors")

Interceptor = Callable[[Work], Callable[[], Awaitable[Any]]]


async def _call(work: Work) -> Any:
    result = work()
    if inspect.isawaitable(result):
        result = await result
    return result


def with_logging(
    work: Work,
    *,
    name: str,
    actor_id: Optional[str] = None,
    guild_id: Optional[str] = None,
) -> Callable[[], Awaitable[Any]]:
    """Log start, duration and failure of ``work``. Errors are re-raised."""

    async def wrapped() -> Any:
        started = time.perf_counter()
        logger.debug("[INTERCEPTOR] %s started (actor=%s, guild=%s)", name, actor_id, guild_id)
        try:
            result = await _call(work)
        except Exception as exc:
            logger.error(
                "[INTERCEPTOR] %s failed after %.0fms (actor=%s, guild=%s): %s",
                name,
                (time.perf_counter() - started) * 1000,
                actor_id,
                guild_id,
                exc,
            )
            raise
        logger.info(
            "[INTERCEPTOR] %s completed in %.0fms", name, (time.perf_counter() - started) * 1000
        )
        return result

    return wrapped


def with_audit(
    work: Work,
    *,
    audit_repo: AuditLogRepository,
    entry_factory: Callable[[Any], Optional[AuditEntry]],
) -> Callable[[], Awaitable[Any]]:
    """
    Write an audit entry after ``work`` succeeds.

    ``entry_factory`` receives the work's result and returns the entry to
    store, or None to skip auditing. A failed audit write is logged; it does
    not turn a completed mutation into a failure.
    """

    async def wrapped() -> Any:
        result = await _call(work)
        entry = entry_factory(result)
        if entry is not None:
            try:
                await audit_repo.add(entry)
            except Exception:
                logger.exception("[INTERCEPTOR] Failed to write audit entry for %s", entry.action.value)
        return result

    return wrapped


def compose(work: Work, *interceptors: Interceptor) -> Callable[[], Awaitable[Any]]:
    """Wrap ``work`` with each interceptor in turn; the first is innermost."""
    if not interceptors:
        return lambda: _call(work)
    wrapped: Callable[[], Any] = work
    for interceptor in interceptors:
        wrapped = interceptor(wrapped)
    return wrapped
