"""
Staff hierarchy and role-conflict data types.

- `StaffRank`: the firm's promotion ladder, valued by canonical display name.
- `RoleAssignment`: a member's Discord role mapped onto a rank.
- `RoleConflict`: a member holding two or more ranks at once.
- `ConflictResolutionResult`: the immutable outcome of resolving one conflict.
- Progress, report and statistics containers returned by the conflict engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from lexcord.datatypes.discord_datatypes import DiscordUsername, GuildID, RoleID, UserID


class StaffRank(str, Enum):
    """Staff ranks, highest first. Values are the canonical Discord role names."""

    MANAGING_PARTNER = "Managing Partner"
    SENIOR_PARTNER = "Senior Partner"
    JUNIOR_PARTNER = "Junior Partner"
    SENIOR_ASSOCIATE = "Senior Associate"
    JUNIOR_ASSOCIATE = "Junior Associate"
    PARALEGAL = "Paralegal"


class ConflictSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class SeverityThresholds:
    """Tunable cut-offs for conflict severity scoring.

    Attributes:
        high_gap: Level gap between the extreme ranks at or above which a conflict is HIGH.
        medium_gap: Level gap at or above which a conflict is MEDIUM.
        senior_level: Ranks at or above this level are senior; two senior ranks on
            one member is CRITICAL regardless of gap.
    """

    high_gap: int = 3
    medium_gap: int = 2
    senior_level: int = 5

    def __post_init__(self) -> None:
        if self.medium_gap < 1 or self.high_gap <= self.medium_gap:
            raise ValueError(
                f"Severity thresholds must satisfy 1 <= medium_gap < high_gap "
                f"(got medium_gap={self.medium_gap}, high_gap={self.high_gap})"
            )


@dataclass(frozen=True, slots=True)
class RoleAssignment:
    """A Discord role the member holds, projected onto the rank hierarchy."""

    role_id: RoleID
    role_name: str
    rank: StaffRank
    hierarchy_level: int


@dataclass(slots=True)
class RoleConflict:
    """A member simultaneously holding more than one staff rank.

    ``conflicting_roles`` is ordered highest level first and always holds at
    least two entries; ``highest_role`` is its maximum-level element.
    """

    user_id: UserID
    username: DiscordUsername
    guild_id: GuildID
    conflicting_roles: List[RoleAssignment]
    highest_role: RoleAssignment
    severity: ConflictSeverity
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if len(self.conflicting_roles) < 2:
            raise ValueError("A role conflict needs at least two conflicting roles")
        top_level = max(role.hierarchy_level for role in self.conflicting_roles)
        if self.highest_role not in self.conflicting_roles or self.highest_role.hierarchy_level != top_level:
            raise ValueError("highest_role must be the maximum-level conflicting role")

    @property
    def role_names(self) -> List[str]:
        return [role.role_name for role in self.conflicting_roles]


@dataclass(frozen=True, slots=True)
class ConflictResolutionResult:
    user_id: UserID
    resolved: bool
    removed_roles: Tuple[str, ...]
    kept_role: str
    error: Optional[str] = None
    resolved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class SyncProgress:
    """Running counters reported to progress callbacks during scans and bulk resolution."""

    total: int
    processed: int = 0
    conflicts_found: int = 0
    conflicts_resolved: int = 0
    errors: int = 0
    current_user: Optional[str] = None


@dataclass(slots=True)
class RoleValidationResult:
    is_valid: bool
    conflicts: List[str] = field(default_factory=list)
    prevention_reason: Optional[str] = None


@dataclass(slots=True)
class RoleChangeCheck:
    has_conflict: bool
    should_prevent: bool
    conflict: Optional[RoleConflict] = None
    prevention_reason: Optional[str] = None


@dataclass(slots=True)
class IncrementalSyncResult:
    conflicts: List[RoleConflict] = field(default_factory=list)
    resolved: List[ConflictResolutionResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ConflictReport:
    """Guild-wide snapshot of staff role conflicts."""

    guild_id: GuildID
    total_members: int
    members_with_roles: int
    conflicts_found: int
    conflicts_by_role: Dict[str, int]
    conflicts_by_severity: Dict[ConflictSeverity, int]
    resolution_history: List[ConflictResolutionResult] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class ConflictStatistics:
    total_resolutions: int
    successful_resolutions: int
    failed_resolutions: int
    most_common_conflicts: Dict[str, int]
