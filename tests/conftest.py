"""
Pytest configuration and fixtures for Lexcord tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import discord  # noqa: E402

from lexcord.database.db_connection import ConnectionManager  # noqa: E402
from lexcord.repositories.audit_log_repo import AuditLogRepository  # noqa: E402
from lexcord.repositories.document_repo import Repositories  # noqa: E402


GUILD_ID = 1000


class FakeRole:
    def __init__(self, role_id: int, name: str):
        self.id = role_id
        self.name = name


class FakeMember:
    """Just enough of ``discord.Member`` for the conflict engine."""

    def __init__(self, member_id: int, name: str, roles, guild=None, joined_at=None):
        self.id = member_id
        self.name = name
        self.roles = list(roles)
        self.guild = guild or FakeGuild([], guild_id=GUILD_ID)
        self.joined_at = joined_at
        self.remove_roles = AsyncMock(side_effect=self._remove_roles)
        self.send = AsyncMock()
        self.failing_role_ids: set[int] = set()

    async def _remove_roles(self, *roles, reason=None):
        for role in roles:
            if role.id in self.failing_role_ids:
                raise http_error(discord.Forbidden, 403, "Missing Permissions")
            self.roles = [r for r in self.roles if r.id != role.id]

    def __str__(self):
        return self.name


class FakeGuild:
    def __init__(self, members, guild_id: int = GUILD_ID, owner_id: int = 1):
        self.id = guild_id
        self.owner_id = owner_id
        self.members = list(members)
        self.missing_member_ids: set[int] = set()
        for member in self.members:
            member.guild = self

    async def _iterate(self):
        for member in self.members:
            yield member

    def fetch_members(self, limit=None):
        return self._iterate()

    async def fetch_member(self, member_id: int):
        if member_id in self.missing_member_ids:
            raise http_error(discord.NotFound, 404, "Unknown Member")
        for member in self.members:
            if member.id == member_id:
                return member
        raise http_error(discord.NotFound, 404, "Unknown Member")


def http_error(cls, status: int, message: str):
    response = MagicMock(status=status, reason=message)
    return cls(response, message)


STAFF_ROLE_IDS = {
    "Managing Partner": 106,
    "Senior Partner": 105,
    "Partner": 115,
    "Junior Partner": 104,
    "Senior Associate": 103,
    "Junior Associate": 102,
    "Associate": 112,
    "Paralegal": 101,
    "Member": 900,
    "Client": 901,
}


@pytest.fixture
def make_member():
    """Factory building a member holding the named roles."""

    def _make(member_id: int, *role_names: str, name: str | None = None, guild=None):
        roles = [FakeRole(STAFF_ROLE_IDS[role_name], role_name) for role_name in role_names]
        return FakeMember(member_id, name or f"user{member_id}", roles, guild=guild)

    return _make


@pytest.fixture
def make_guild():
    def _make(members, owner_id: int = 1):
        return FakeGuild(members, owner_id=owner_id)

    return _make


@pytest_asyncio.fixture
async def connection(tmp_path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "lexcord-test.db")
    yield manager
    await manager.close()


@pytest.fixture
def repositories(connection):
    return Repositories.create(connection)


@pytest.fixture
def audit_repo(connection):
    return AuditLogRepository(connection)
