"""Tests for the SQLite-backed document and audit log repositories."""

from datetime import datetime, timedelta, timezone

import pytest

from lexcord.datatypes.audit_datatypes import AuditAction, AuditDetails, AuditEntry
from lexcord.datatypes.integrity_datatypes import EntityType


class TestDocumentRepository:
    @pytest.mark.asyncio
    async def test_add_assigns_id_and_round_trips(self, repositories):
        hired = datetime(2024, 3, 1, tzinfo=timezone.utc)

        added = await repositories.staff.add(
            {"guild_id": "g1", "user_id": "42", "role": "Paralegal", "hired_at": hired}
        )

        assert len(added["id"]) == 32
        assert added["hired_at"] == hired.isoformat()
        assert await repositories.staff.find_by_id(added["id"]) == added

    @pytest.mark.asyncio
    async def test_collections_and_guilds_are_isolated(self, repositories):
        await repositories.staff.add({"guild_id": "g1", "user_id": "1"})
        await repositories.staff.add({"guild_id": "g1", "user_id": "2"})
        await repositories.staff.add({"guild_id": "g2", "user_id": "3"})
        await repositories.cases.add({"guild_id": "g1", "title": "Doe v. Roe"})

        staff = await repositories.staff.find_by_guild_id("g1")

        assert [doc["user_id"] for doc in staff] == ["1", "2"]
        assert len(await repositories.cases.find_by_guild_id("g1")) == 1
        assert await repositories.jobs.find_by_guild_id("g1") == []

    @pytest.mark.asyncio
    async def test_find_by_user_id_is_guild_scoped(self, repositories):
        await repositories.staff.add({"guild_id": "g1", "user_id": "7", "role": "Paralegal"})

        assert (await repositories.staff.find_by_user_id("g1", "7"))["role"] == "Paralegal"
        assert await repositories.staff.find_by_user_id("g2", "7") is None

    @pytest.mark.asyncio
    async def test_update_merges_and_removes_keys(self, repositories):
        case = await repositories.cases.add(
            {"guild_id": "g1", "lead_attorney_id": "5", "assigned_lawyer_ids": ["5"]}
        )

        updated = await repositories.cases.update(
            case["id"], {"lead_attorney_id": None, "status": "closed", "id": "hijack"}
        )

        assert updated["id"] == case["id"]
        assert "lead_attorney_id" not in updated
        assert updated["status"] == "closed"
        assert await repositories.cases.find_by_id(case["id"]) == updated

    @pytest.mark.asyncio
    async def test_update_and_delete_missing_document(self, repositories):
        assert await repositories.jobs.update("nope", {"title": "x"}) is None
        assert await repositories.jobs.delete("nope") is False

    @pytest.mark.asyncio
    async def test_delete(self, repositories):
        job = await repositories.jobs.add({"guild_id": "g1", "title": "Paralegal opening"})

        assert await repositories.jobs.delete(job["id"]) is True
        assert await repositories.jobs.find_by_id(job["id"]) is None

    def test_for_entity_maps_every_type(self, repositories):
        assert repositories.for_entity(EntityType.STAFF) is repositories.staff
        assert repositories.for_entity(EntityType.REMINDER) is repositories.reminders
        assert {repositories.for_entity(t).collection for t in EntityType} == {
            "staff",
            "cases",
            "applications",
            "jobs",
            "retainers",
            "feedback",
            "reminders",
        }


class TestAuditLogRepository:
    @pytest.mark.asyncio
    async def test_add_and_read_back_newest_first(self, audit_repo):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for offset, action in enumerate([AuditAction.STAFF_HIRED, AuditAction.STAFF_PROMOTED]):
            await audit_repo.add(
                AuditEntry(
                    guild_id="g1",
                    action=action,
                    actor_id="owner",
                    target_id="42",
                    details=AuditDetails(reason="Quarterly review", after={"role": "Junior Partner"}),
                    timestamp=start + timedelta(minutes=offset),
                )
            )

        entries = await audit_repo.find_by_guild_id("g1")

        assert [e.action for e in entries] == [AuditAction.STAFF_PROMOTED, AuditAction.STAFF_HIRED]
        assert entries[0].id is not None
        assert entries[0].details.reason == "Quarterly review"
        assert entries[0].details.after == {"role": "Junior Partner"}
        assert entries[0].details.before is None
        assert entries[0].timestamp == start + timedelta(minutes=1)
        assert await audit_repo.find_by_guild_id("g2") == []

    @pytest.mark.asyncio
    async def test_count_for_target(self, audit_repo):
        for target in ("1", "1", "2"):
            await audit_repo.add(
                AuditEntry(
                    guild_id="g1",
                    action=AuditAction.SYSTEM_REPAIR,
                    actor_id="SYSTEM",
                    target_id=target,
                    details=AuditDetails(reason="repair"),
                )
            )

        assert await audit_repo.count_for_target("g1", "1", AuditAction.SYSTEM_REPAIR) == 2
        assert await audit_repo.count_for_target("g1", "1", AuditAction.STAFF_FIRED) == 0
