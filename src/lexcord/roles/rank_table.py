"""
Staff rank lookup table and conflict severity scoring.

The table maps each `StaffRank` to its hierarchy level, seat limit and the
Discord role names that grant it. Role names not in the table are simply not
staff roles; nothing here raises for an unknown name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

import discord

from lexcord.datatypes.discord_datatypes import RoleID
from lexcord.datatypes.staff_datatypes import (
    ConflictSeverity,
    RoleAssignment,
    SeverityThresholds,
    StaffRank,
)


@dataclass(frozen=True, slots=True)
class RankDefinition:
    rank: StaffRank
    level: int
    max_count: int
    display_names: FrozenSet[str]


DEFAULT_RANKS: tuple[RankDefinition, ...] = (
    RankDefinition(StaffRank.MANAGING_PARTNER, 6, 1, frozenset({"Managing Partner"})),
    RankDefinition(StaffRank.SENIOR_PARTNER, 5, 3, frozenset({"Senior Partner", "Partner"})),
    RankDefinition(StaffRank.JUNIOR_PARTNER, 4, 5, frozenset({"Junior Partner"})),
    RankDefinition(StaffRank.SENIOR_ASSOCIATE, 3, 10, frozenset({"Senior Associate"})),
    RankDefinition(StaffRank.JUNIOR_ASSOCIATE, 2, 10, frozenset({"Junior Associate", "Associate"})),
    RankDefinition(StaffRank.PARALEGAL, 1, 10, frozenset({"Paralegal"})),
)


class RankTable:
    """Typed rank lookup, validated on construction."""

    def __init__(self, definitions: Iterable[RankDefinition] = DEFAULT_RANKS) -> None:
        self._definitions: List[RankDefinition] = sorted(definitions, key=lambda d: d.level, reverse=True)
        self._by_rank: Dict[StaffRank, RankDefinition] = {d.rank: d for d in self._definitions}
        self._by_name: Dict[str, RankDefinition] = {
            name: d for d in self._definitions for name in d.display_names
        }
        self.validate()

    def validate(self) -> None:
        """
        Check the table for inconsistencies.

        Raises:
            ValueError: On a repeated rank or level, a non-positive level or
                seat limit, a rank without display names, or a display name
                claimed by two ranks.
        """
        seen_ranks: set[StaffRank] = set()
        seen_levels: set[int] = set()
        seen_names: Dict[str, StaffRank] = {}

        for definition in self._definitions:
            if definition.rank in seen_ranks:
                raise ValueError(f"Rank {definition.rank.value} is defined twice")
            if definition.level in seen_levels:
                raise ValueError(f"Hierarchy level {definition.level} is used by more than one rank")
            if definition.level < 1 or definition.max_count < 1:
                raise ValueError(f"Rank {definition.rank.value} needs a positive level and seat limit")
            if not definition.display_names:
                raise ValueError(f"Rank {definition.rank.value} has no display names")
            for name in definition.display_names:
                if name in seen_names:
                    raise ValueError(
                        f"Role name '{name}' maps to both {seen_names[name].value} and {definition.rank.value}"
                    )
                seen_names[name] = definition.rank
            seen_ranks.add(definition.rank)
            seen_levels.add(definition.level)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def ranks(self) -> List[StaffRank]:
        """All ranks, highest first."""
        return [d.rank for d in self._definitions]

    @property
    def top_level(self) -> int:
        return self._definitions[0].level

    def definition(self, rank: StaffRank) -> RankDefinition:
        return self._by_rank[rank]

    def level_of(self, rank: StaffRank) -> int:
        return self._by_rank[rank].level

    def rank_for_role_name(self, role_name: str) -> Optional[StaffRank]:
        definition = self._by_name.get(role_name)
        return definition.rank if definition else None

    def is_staff_role(self, role_name: str) -> bool:
        return role_name in self._by_name

    def staff_roles_of(self, member: discord.Member) -> List[RoleAssignment]:
        """Project the member's roles onto the hierarchy, highest level first.

        Roles of equal level keep the member's role order.
        """
        assignments = []
        for role in member.roles:
            definition = self._by_name.get(role.name)
            if definition is None:
                continue
            assignments.append(
                RoleAssignment(
                    role_id=RoleID(role.id),
                    role_name=role.name,
                    rank=definition.rank,
                    hierarchy_level=definition.level,
                )
            )
        assignments.sort(key=lambda a: a.hierarchy_level, reverse=True)
        return assignments


def score_conflict_severity(levels: Sequence[int], thresholds: SeverityThresholds) -> ConflictSeverity:
    """
    Score a conflict from the hierarchy levels of the roles involved.

    Two or more distinct senior ranks is CRITICAL. Otherwise the gap between
    the highest and lowest level decides: ``high_gap`` or more is HIGH,
    ``medium_gap`` or more is MEDIUM, anything less is LOW. Roles granting the
    same rank count once.
    """
    distinct = sorted(set(levels), reverse=True)
    if len(distinct) < 2:
        return ConflictSeverity.LOW

    if sum(1 for level in distinct if level >= thresholds.senior_level) > 1:
        return ConflictSeverity.CRITICAL

    gap = distinct[0] - distinct[-1]
    if gap >= thresholds.high_gap:
        return ConflictSeverity.HIGH
    if gap >= thresholds.medium_gap:
        return ConflictSeverity.MEDIUM
    return ConflictSeverity.LOW
