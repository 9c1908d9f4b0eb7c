"""
Persistent storage for audit log entries.

Timestamps are stored as ISO-8601 strings in UTC so ordering by the column
matches chronological order.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import List

from lexcord.database.db_connection import ConnectionManager
from lexcord.datatypes.audit_datatypes import AuditAction, AuditDetails, AuditEntry
from lexcord.util.logger import get_logger

logger = get_logger("audit_log_repo")


class AuditLogRepository:
    """Append-only access to the ``audit_log`` table."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection

    async def add(self, entry: AuditEntry) -> AuditEntry:
        """Insert an entry and return it with its assigned id."""
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(
                "INSERT INTO audit_log (guild_id, action, actor_id, target_id, details, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    str(entry.guild_id),
                    entry.action.value,
                    str(entry.actor_id),
                    None if entry.target_id is None else str(entry.target_id),
                    json.dumps(entry.details_dict(), default=str, ensure_ascii=False),
                    entry.timestamp.isoformat(),
                ),
            )
            entry.id = cursor.lastrowid
        logger.debug("[AUDIT] %s by %s on %s", entry.action.value, entry.actor_id, entry.target_id)
        return entry

    async def find_by_guild_id(self, guild_id: str, limit: int = 100) -> List[AuditEntry]:
        """Return the newest ``limit`` entries of the guild, newest first."""
        async with self._connection.read() as conn:
            async with conn.execute(
                "SELECT id, guild_id, action, actor_id, target_id, details, timestamp "
                "FROM audit_log WHERE guild_id = ? ORDER BY timestamp DESC, id DESC LIMIT ?",
                (str(guild_id), limit),
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    async def count_for_target(self, guild_id: str, target_id: str, action: AuditAction) -> int:
        async with self._connection.read() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM audit_log WHERE guild_id = ? AND target_id = ? AND action = ?",
                (str(guild_id), str(target_id), action.value),
            ) as cursor:
                row = await cursor.fetchone()
        return int(row[0]) if row else 0


def _row_to_entry(row) -> AuditEntry:
    details = json.loads(row[5] or "{}")
    return AuditEntry(
        id=row[0],
        guild_id=row[1],
        action=AuditAction(row[2]),
        actor_id=row[3],
        target_id=row[4],
        details=AuditDetails(
            reason=details.get("reason", ""),
            metadata=details.get("metadata", {}),
            before=details.get("before"),
            after=details.get("after"),
        ),
        timestamp=datetime.fromisoformat(row[6]),
    )
