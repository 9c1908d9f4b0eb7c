"""Tests for the staff operation queue."""

import asyncio

import pytest

from lexcord.services.operation_queue import (
    HIGH_PRIORITY,
    NORMAL_PRIORITY,
    OperationQueue,
    OperationTimeoutError,
    QueueClearedError,
)


def recorder(order, label, gate=None):
    async def work():
        if gate is not None:
            await gate.wait()
        order.append(label)
        return label

    return work


@pytest.mark.asyncio
async def test_fifo_within_same_priority():
    queue = OperationQueue()
    order = []

    futures = [queue.enqueue(recorder(order, n), "u1", "g1") for n in ("a", "b", "c")]
    results = await asyncio.gather(*futures)

    assert results == ["a", "b", "c"]
    assert order == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_elevated_operations_run_before_waiting_normal_ones():
    queue = OperationQueue()
    order = []
    gate = asyncio.Event()

    normal1 = queue.enqueue(recorder(order, "normal1", gate), "member", "g1")
    await asyncio.sleep(0)  # let the worker pick up normal1

    normal2 = queue.enqueue(recorder(order, "normal2"), "member", "g1")
    owner1 = queue.enqueue(recorder(order, "owner1"), "owner", "g1", elevated=True)
    owner2 = queue.enqueue(recorder(order, "owner2"), "owner", "g1", elevated=True)

    status = queue.get_queue_status()
    assert status.processing is True
    assert [op.priority for op in status.operations] == [HIGH_PRIORITY, HIGH_PRIORITY, NORMAL_PRIORITY]

    gate.set()
    await asyncio.gather(normal1, normal2, owner1, owner2)

    assert order == ["normal1", "owner1", "owner2", "normal2"]


@pytest.mark.asyncio
async def test_synchronous_throw_rejects_only_that_operation():
    queue = OperationQueue()

    def explode():
        raise ValueError("boom")

    bad = queue.enqueue(explode, "u1", "g1")
    good = queue.enqueue(lambda: 42, "u1", "g1")

    with pytest.raises(ValueError, match="boom"):
        await bad
    assert await good == 42


@pytest.mark.asyncio
async def test_async_failure_does_not_stop_worker():
    queue = OperationQueue()

    async def fail():
        raise RuntimeError("db down")

    failed = queue.enqueue(fail, "u1", "g1")
    after = queue.enqueue(recorder([], "after"), "u2", "g1")

    with pytest.raises(RuntimeError):
        await failed
    assert await after == "after"
    assert queue.is_processing() is False


@pytest.mark.asyncio
async def test_clear_queue_rejects_pending_and_running():
    queue = OperationQueue()
    gate = asyncio.Event()
    order = []

    running = queue.enqueue(recorder(order, "running", gate), "u1", "g1")
    await asyncio.sleep(0)
    pending = [queue.enqueue(recorder(order, f"p{i}"), "u2", "g1") for i in range(2)]

    queue.clear_queue()

    assert queue.get_queue_length() == 0
    for future in [running, *pending]:
        with pytest.raises(QueueClearedError, match="Queue cleared"):
            await future

    # The running work is not interrupted, and the queue keeps working.
    gate.set()
    assert await queue.enqueue(lambda: "fresh", "u3", "g1") == "fresh"
    assert order == ["running"]


@pytest.mark.asyncio
async def test_pending_operation_times_out_without_affecting_others():
    queue = OperationQueue(timeout_seconds=5)
    gate = asyncio.Event()

    blocker = queue.enqueue(recorder([], "blocker", gate), "u1", "g1")
    await asyncio.sleep(0)

    queue.set_timeout_ms(50)
    waiting = queue.enqueue(lambda: "late", "u2", "g1")

    with pytest.raises(OperationTimeoutError) as excinfo:
        await waiting
    assert excinfo.value.timeout_seconds == pytest.approx(0.05)
    assert queue.get_queue_length() == 0

    gate.set()
    assert await blocker == "blocker"


@pytest.mark.asyncio
async def test_running_operation_timeout_releases_caller_but_work_completes():
    queue = OperationQueue()
    gate = asyncio.Event()
    order = []

    queue.set_timeout_ms(50)
    slow = queue.enqueue(recorder(order, "slow", gate), "u1", "g1")
    queue.set_timeout_ms(5000)
    follower = queue.enqueue(recorder(order, "follower"), "u2", "g1")

    with pytest.raises(OperationTimeoutError, match="timed out"):
        await slow

    # The worker is still busy with the timed-out work.
    assert order == []
    assert not follower.done()
    assert queue.is_processing() is True
    assert queue.has_operations_for_user("u1") is True

    gate.set()
    assert await follower == "follower"
    assert order == ["slow", "follower"]
    assert queue.has_operations_for_user("u1") is False


@pytest.mark.asyncio
async def test_has_operations_for_user_sees_running_and_pending():
    queue = OperationQueue()
    gate = asyncio.Event()

    alice = queue.enqueue(recorder([], "alice", gate), "alice", "g1")
    await asyncio.sleep(0)
    bob = queue.enqueue(recorder([], "bob"), "bob", "g1")

    assert queue.has_operations_for_user("alice") is True
    assert queue.has_operations_for_user("bob") is True
    assert queue.has_operations_for_user("carol") is False

    gate.set()
    await asyncio.gather(alice, bob)
    assert queue.has_operations_for_user("alice") is False


@pytest.mark.asyncio
async def test_shutdown_rejects_pending_work_and_lets_running_work_finish():
    queue = OperationQueue()
    gate = asyncio.Event()
    order = []

    running = queue.enqueue(recorder(order, "running", gate), "u1", "g1")
    await asyncio.sleep(0)
    pending = queue.enqueue(recorder(order, "never"), "u1", "g1")

    shutting_down = asyncio.ensure_future(queue.shutdown())
    await asyncio.sleep(0)
    gate.set()
    await shutting_down

    with pytest.raises(QueueClearedError):
        await running
    with pytest.raises(QueueClearedError):
        await pending
    assert order == ["running"]
    assert queue.is_processing() is False


@pytest.mark.asyncio
async def test_shutdown_cancels_work_that_outlives_the_grace_period():
    queue = OperationQueue()
    never = asyncio.Event()

    hanging = queue.enqueue(recorder([], "hang", never), "u1", "g1")
    await asyncio.sleep(0)

    await queue.shutdown(grace_seconds=0.05)

    with pytest.raises(QueueClearedError):
        await hanging
    assert queue.is_processing() is False


def test_set_timeout_ms_rejects_non_positive():
    queue = OperationQueue()
    with pytest.raises(ValueError):
        queue.set_timeout_ms(0)
