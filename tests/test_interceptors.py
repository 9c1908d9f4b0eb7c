from functools import partial
from unittest.mock import AsyncMock

import pytest

from lexcord.datatypes.audit_datatypes import AuditAction, AuditDetails, AuditEntry
from lexcord.services.interceptors import compose, with_audit, with_logging
from lexcord.services.operation_queue import OperationQueue


def hire_entry(result):
    return AuditEntry(
        guild_id="g1",
        action=AuditAction.STAFF_HIRED,
        actor_id="owner",
        target_id=result["user_id"],
        details=AuditDetails(reason="Hired"),
    )


@pytest.mark.asyncio
async def test_with_logging_passes_result_through_sync_work():
    wrapped = with_logging(lambda: 7, name="sync work")
    assert await wrapped() == 7


@pytest.mark.asyncio
async def test_with_logging_reraises():
    async def broken():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await with_logging(broken, name="broken work")()


@pytest.mark.asyncio
async def test_with_audit_writes_entry_after_success():
    audit_repo = AsyncMock()

    async def hire():
        return {"user_id": "42"}

    result = await with_audit(hire, audit_repo=audit_repo, entry_factory=hire_entry)()

    assert result == {"user_id": "42"}
    entry = audit_repo.add.await_args.args[0]
    assert entry.action is AuditAction.STAFF_HIRED
    assert entry.target_id == "42"


@pytest.mark.asyncio
async def test_with_audit_skips_audit_on_failure_and_when_factory_returns_none():
    audit_repo = AsyncMock()

    async def fail():
        raise RuntimeError("no seats left")

    with pytest.raises(RuntimeError):
        await with_audit(fail, audit_repo=audit_repo, entry_factory=hire_entry)()
    await with_audit(lambda: None, audit_repo=audit_repo, entry_factory=lambda _: None)()

    audit_repo.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_with_audit_keeps_result_when_audit_write_fails():
    audit_repo = AsyncMock()
    audit_repo.add.side_effect = RuntimeError("audit table locked")

    result = await with_audit(lambda: {"user_id": "1"}, audit_repo=audit_repo, entry_factory=hire_entry)()

    assert result == {"user_id": "1"}


@pytest.mark.asyncio
async def test_compose_runs_through_queue():
    audit_repo = AsyncMock()
    calls = []

    async def hire():
        calls.append("hire")
        return {"user_id": "9"}

    work = compose(
        hire,
        partial(with_logging, name="staff hire", actor_id="owner", guild_id="g1"),
        partial(with_audit, audit_repo=audit_repo, entry_factory=hire_entry),
    )
    queue = OperationQueue()

    assert await queue.enqueue(work, "owner", "g1", elevated=True) == {"user_id": "9"}
    assert calls == ["hire"]
    audit_repo.add.assert_awaited_once()


@pytest.mark.asyncio
async def test_compose_without_interceptors_still_awaitable():
    assert await compose(lambda: "plain")() == "plain"
