"""
Operation Queue.

A single serialisation point for staff-mutating work. Callers submit a
callable and await the returned future; one worker task drains the pending
list so that no two operations ever run at the same time.

Ordering
--------
* Elevated operations (the guild owner's) always dequeue before normal ones.
* Within one priority class operations run in submission order.

Failure model
-------------
* An exception raised by the work (synchronously or after awaiting) rejects
  only that caller's future; the worker moves on.
* Each operation has a deadline measured from submission. A pending
  operation past its deadline is dropped. A running one is never cancelled:
  its caller is released with `OperationTimeoutError` and the worker waits
  for the work to finish before starting the next operation.
* `clear_queue` rejects every pending and running caller with
  `QueueClearedError`; running work still completes.
"""

from __future__ import annotations

import asyncio
import bisect
import inspect
import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from lexcord.util.logger import get_logger

logger = get_logger("operation_queue")

T = TypeVar("T")
Work = Callable[[], Union[Awaitable[T], T]]

HIGH_PRIORITY = 1
NORMAL_PRIORITY = 2


class OperationQueueError(Exception):
    """Base class for errors raised by the queue itself rather than by the work."""


class OperationTimeoutError(OperationQueueError):
    def __init__(self, operation_id: str, timeout_seconds: float) -> None:
        super().__init__(f"Operation timed out after {timeout_seconds:g} seconds")
        self.operation_id = operation_id
        self.timeout_seconds = timeout_seconds


class QueueClearedError(OperationQueueError):
    def __init__(self) -> None:
        super().__init__("Queue cleared")


@dataclass(slots=True)
class QueuedOperation:
    """A unit of work waiting for, or holding, the worker."""

    id: str
    work: Work
    actor_id: str
    guild_id: str
    elevated: bool
    sequence: int
    future: asyncio.Future
    timeout_seconds: float
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    timeout_handle: Optional[asyncio.TimerHandle] = None

    @property
    def priority(self) -> int:
        return HIGH_PRIORITY if self.elevated else NORMAL_PRIORITY


def _sort_key(operation: QueuedOperation) -> tuple[int, int]:
    return (operation.priority, operation.sequence)


@dataclass(frozen=True, slots=True)
class PendingOperationInfo:
    id: str
    actor_id: str
    guild_id: str
    priority: int
    enqueued_at: datetime


@dataclass(frozen=True, slots=True)
class QueueStatus:
    queue_length: int
    processing: bool
    operations: List[PendingOperationInfo]


class OperationQueue:
    """
    Priority-aware, single-worker queue shared by every guild.

    Attributes:
        timeout_seconds: Deadline applied to operations enqueued from now on.
    """

    def __init__(self, timeout_seconds: float = 30.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._pending: List[QueuedOperation] = []
        self._running: Dict[str, QueuedOperation] = {}
        self._processing = False
        self._worker: asyncio.Task[None] | None = None
        self._sequence = itertools.count()

    # ------------------------------------------------------
    # Public API
    # ------------------------------------------------------

    def enqueue(
        self,
        work: Work,
        actor_id: str,
        guild_id: str,
        elevated: bool = False,
    ) -> asyncio.Future:
        """
        Submit ``work`` and return a future for its result.

        Submission never blocks; the worker is started if idle.

        Args:
            work: Zero-argument callable, sync or async.
            actor_id: Discord user id of the requester.
            guild_id: Guild the work mutates.
            elevated: Whether the requester is privileged (guild owner).
        """
        loop = asyncio.get_running_loop()
        sequence = next(self._sequence)
        operation = QueuedOperation(
            id=f"{actor_id}-{sequence}-{uuid.uuid4().hex[:8]}",
            work=work,
            actor_id=str(actor_id),
            guild_id=str(guild_id),
            elevated=elevated,
            sequence=sequence,
            future=loop.create_future(),
            timeout_seconds=self.timeout_seconds,
        )
        operation.timeout_handle = loop.call_later(self.timeout_seconds, self._expire, operation.id)
        bisect.insort(self._pending, operation, key=_sort_key)

        logger.debug(
            "[OPERATION QUEUE] Enqueued %s (actor=%s, guild=%s, elevated=%s, queue_length=%d)",
            operation.id,
            operation.actor_id,
            operation.guild_id,
            elevated,
            len(self._pending),
        )
        self._ensure_worker()
        return operation.future

    def get_queue_length(self) -> int:
        return len(self._pending)

    def get_queue_status(self) -> QueueStatus:
        return QueueStatus(
            queue_length=len(self._pending),
            processing=self._processing,
            operations=[
                PendingOperationInfo(
                    id=op.id,
                    actor_id=op.actor_id,
                    guild_id=op.guild_id,
                    priority=op.priority,
                    enqueued_at=op.enqueued_at,
                )
                for op in self._pending
            ],
        )

    def is_processing(self) -> bool:
        return self._processing

    def has_operations_for_user(self, actor_id: str) -> bool:
        """True if a pending or running operation belongs to ``actor_id``."""
        actor_id = str(actor_id)
        return any(op.actor_id == actor_id for op in self._pending) or any(
            op.actor_id == actor_id for op in self._running.values()
        )

    def set_timeout_ms(self, timeout_ms: int) -> None:
        """Change the deadline for operations enqueued after this call."""
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        self.timeout_seconds = timeout_ms / 1000

    def clear_queue(self) -> None:
        """Reject every pending and running operation and empty the queue."""
        cleared = self._pending + list(self._running.values())
        self._pending = []

        for operation in cleared:
            self._settle(operation, error=QueueClearedError())

        logger.info("[OPERATION QUEUE] Queue cleared (%d operations rejected)", len(cleared))

    async def shutdown(self, grace_seconds: Optional[float] = None) -> None:
        """
        Clear the queue and wait for the worker to exit. Safe to call twice.

        Running work gets ``grace_seconds`` (default: the operation timeout)
        to finish before the worker is cancelled.
        """
        self.clear_queue()
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            grace = self.timeout_seconds if grace_seconds is None else grace_seconds
            done, _ = await asyncio.wait({worker}, timeout=grace)
            if not done:
                logger.warning("[OPERATION QUEUE] Running work did not finish within %gs; cancelling", grace)
                worker.cancel()
                await asyncio.gather(worker, return_exceptions=True)
        self._processing = False
        logger.info("[OPERATION QUEUE] Shut down")

    # ------------------------------------------------------
    # Worker
    # ------------------------------------------------------

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._drain(), name="lexcord-operation-queue"
            )

    async def _drain(self) -> None:
        self._processing = True
        try:
            while self._pending:
                operation = self._pending.pop(0)
                if operation.future.done():
                    # Caller gave up before the operation was reached.
                    self._cancel_timer(operation)
                    continue
                await self._run(operation)
        finally:
            self._processing = False

    async def _run(self, operation: QueuedOperation) -> None:
        self._running[operation.id] = operation
        logger.debug(
            "[OPERATION QUEUE] Running %s (remaining=%d)", operation.id, len(self._pending)
        )
        try:
            result = operation.work()
            if inspect.isawaitable(result):
                # A deadline or a clear only releases the caller; the work
                # itself runs to completion before the next operation starts.
                result = await result
        except asyncio.CancelledError:
            self._settle(operation, error=QueueClearedError())
            raise
        except Exception as exc:
            self._log_failure(operation, exc)
            self._settle(operation, error=exc)
        else:
            if operation.future.done():
                logger.info(
                    "[OPERATION QUEUE] %s finished after its caller was released (actor=%s)",
                    operation.id,
                    operation.actor_id,
                )
            self._settle(operation, result=result)
            logger.debug("[OPERATION QUEUE] Completed %s", operation.id)
        finally:
            self._running.pop(operation.id, None)

    # ------------------------------------------------------
    # Helpers
    # ------------------------------------------------------

    def _expire(self, operation_id: str) -> None:
        for index, operation in enumerate(self._pending):
            if operation.id == operation_id:
                del self._pending[index]
                logger.warning(
                    "[OPERATION QUEUE] Operation %s timed out in queue (actor=%s, guild=%s)",
                    operation.id,
                    operation.actor_id,
                    operation.guild_id,
                )
                self._settle(operation, error=OperationTimeoutError(operation.id, operation.timeout_seconds))
                return

        operation = self._running.get(operation_id)
        if operation is not None:
            logger.warning(
                "[OPERATION QUEUE] Running operation %s timed out (actor=%s, guild=%s)",
                operation.id,
                operation.actor_id,
                operation.guild_id,
            )
            self._settle(operation, error=OperationTimeoutError(operation.id, operation.timeout_seconds))

    def _settle(self, operation: QueuedOperation, *, result: Any = None, error: BaseException | None = None) -> None:
        self._cancel_timer(operation)
        future = operation.future
        if future.done():
            return
        if isinstance(error, asyncio.CancelledError):
            future.cancel()
        elif error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    @staticmethod
    def _cancel_timer(operation: QueuedOperation) -> None:
        if operation.timeout_handle is not None:
            operation.timeout_handle.cancel()
            operation.timeout_handle = None

    @staticmethod
    def _log_failure(operation: QueuedOperation, error: BaseException) -> None:
        logger.error(
            "[OPERATION QUEUE] Operation %s failed (actor=%s): %s",
            operation.id,
            operation.actor_id,
            error,
        )
