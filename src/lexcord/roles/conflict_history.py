"""
Per-guild history of conflict resolutions.

Process-lifetime state only; a restart starts every guild with an empty
history. Each guild keeps at most ``limit`` entries, oldest dropped first.
"""

from __future__ import annotations

from collections import Counter, deque
from typing import Deque, Dict, List

from lexcord.datatypes.staff_datatypes import ConflictResolutionResult, ConflictStatistics


class ConflictHistory:
    def __init__(self, limit: int = 100) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: Dict[str, Deque[ConflictResolutionResult]] = {}

    def record(self, guild_id: str, result: ConflictResolutionResult) -> None:
        key = str(guild_id)
        if key not in self._entries:
            self._entries[key] = deque(maxlen=self.limit)
        self._entries[key].append(result)

    def entries(self, guild_id: str) -> List[ConflictResolutionResult]:
        return list(self._entries.get(str(guild_id), ()))

    def clear(self, guild_id: str) -> None:
        self._entries.pop(str(guild_id), None)

    def statistics(self, guild_id: str) -> ConflictStatistics:
        """Summarise the guild's history; removed role names are counted per removal."""
        history = self.entries(guild_id)
        removed = Counter(role for result in history for role in result.removed_roles)
        successful = sum(1 for result in history if result.resolved)
        return ConflictStatistics(
            total_resolutions=len(history),
            successful_resolutions=successful,
            failed_resolutions=len(history) - successful,
            most_common_conflicts=dict(removed.most_common()),
        )
