"""
Document repositories for guild-scoped staffing records.

Each collection (staff, cases, applications, ...) is a partition of the
``documents`` table. Records are plain dicts with a string ``id``; the
``guild_id`` and ``user_id`` keys are mirrored into indexed columns so the
lookups below never scan JSON.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol

from lexcord.database.db_connection import ConnectionManager
from lexcord.datatypes.integrity_datatypes import Document, EntityType
from lexcord.util.logger import get_logger

logger = get_logger("document_repo")


class Repository(Protocol):
    """Operations the staffing core needs from a collection."""

    async def find_by_guild_id(self, guild_id: str) -> List[Document]: ...

    async def find_by_id(self, entity_id: str) -> Optional[Document]: ...

    async def find_by_user_id(self, guild_id: str, user_id: str) -> Optional[Document]: ...

    async def update(self, entity_id: str, patch: Mapping[str, Any]) -> Optional[Document]: ...

    async def add(self, entity: Mapping[str, Any]) -> Document: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _encode(document: Mapping[str, Any]) -> str:
    return json.dumps(document, default=_json_default, ensure_ascii=False, sort_keys=True)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class DocumentRepository:
    """CRUD for one collection of the ``documents`` table."""

    def __init__(self, collection: str, connection: ConnectionManager) -> None:
        self.collection = collection
        self._connection = connection

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_guild_id(self, guild_id: str) -> List[Document]:
        """Return every document of the guild in insertion order."""
        async with self._connection.read() as conn:
            async with conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND guild_id = ? ORDER BY rowid",
                (self.collection, str(guild_id)),
            ) as cursor:
                rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    async def find_by_id(self, entity_id: str) -> Optional[Document]:
        async with self._connection.read() as conn:
            async with conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (self.collection, str(entity_id)),
            ) as cursor:
                row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def find_by_user_id(self, guild_id: str, user_id: str) -> Optional[Document]:
        """Return the first document owned by ``user_id`` in the guild."""
        async with self._connection.read() as conn:
            async with conn.execute(
                "SELECT data FROM documents "
                "WHERE collection = ? AND guild_id = ? AND user_id = ? ORDER BY rowid LIMIT 1",
                (self.collection, str(guild_id), str(user_id)),
            ) as cursor:
                row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, entity: Mapping[str, Any]) -> Document:
        """Insert a document, assigning a fresh ``id`` when it has none."""
        document: Document = dict(entity)
        document["id"] = str(document.get("id") or uuid.uuid4().hex)

        async with self._connection.transaction() as conn:
            await conn.execute(
                "INSERT INTO documents (collection, id, guild_id, user_id, data) VALUES (?, ?, ?, ?, ?)",
                (
                    self.collection,
                    document["id"],
                    _optional_str(document.get("guild_id")),
                    _optional_str(document.get("user_id")),
                    _encode(document),
                ),
            )
        logger.debug("[%s] Added document %s", self.collection.upper(), document["id"])
        return json.loads(_encode(document))

    async def update(self, entity_id: str, patch: Mapping[str, Any]) -> Optional[Document]:
        """
        Shallow-merge ``patch`` into the stored document.

        A ``None`` value removes the key. The ``id`` key cannot be changed.

        Returns:
            The updated document, or None when no document has this id.
        """
        async with self._connection.transaction() as conn:
            async with conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (self.collection, str(entity_id)),
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                logger.warning("[%s] Update skipped, document %s not found", self.collection.upper(), entity_id)
                return None

            document: Document = json.loads(row[0])
            for key, value in patch.items():
                if key == "id":
                    continue
                if value is None:
                    document.pop(key, None)
                else:
                    document[key] = value

            await conn.execute(
                "UPDATE documents SET data = ?, guild_id = ?, user_id = ? WHERE collection = ? AND id = ?",
                (
                    _encode(document),
                    _optional_str(document.get("guild_id")),
                    _optional_str(document.get("user_id")),
                    self.collection,
                    str(entity_id),
                ),
            )
        return json.loads(_encode(document))

    async def delete(self, entity_id: str) -> bool:
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (self.collection, str(entity_id)),
            )
            return cursor.rowcount > 0


@dataclass(frozen=True)
class Repositories:
    """The seven guild-scoped collections read by the integrity scanner."""

    staff: Repository
    cases: Repository
    applications: Repository
    jobs: Repository
    retainers: Repository
    feedback: Repository
    reminders: Repository

    @classmethod
    def create(cls, connection: ConnectionManager) -> "Repositories":
        return cls(
            staff=DocumentRepository("staff", connection),
            cases=DocumentRepository("cases", connection),
            applications=DocumentRepository("applications", connection),
            jobs=DocumentRepository("jobs", connection),
            retainers=DocumentRepository("retainers", connection),
            feedback=DocumentRepository("feedback", connection),
            reminders=DocumentRepository("reminders", connection),
        )

    def for_entity(self, entity_type: EntityType) -> Repository:
        return _BY_ENTITY[entity_type](self)


_BY_ENTITY: Dict[EntityType, Any] = {
    EntityType.STAFF: lambda repos: repos.staff,
    EntityType.CASE: lambda repos: repos.cases,
    EntityType.APPLICATION: lambda repos: repos.applications,
    EntityType.JOB: lambda repos: repos.jobs,
    EntityType.RETAINER: lambda repos: repos.retainers,
    EntityType.FEEDBACK: lambda repos: repos.feedback,
    EntityType.REMINDER: lambda repos: repos.reminders,
}
