"""
Cross-entity integrity data types.

Documents are plain dicts keyed by an opaque string ``id``. Validation rules
inspect one document at a time and return `ValidationIssue`s; some issues
carry an async repair closure that the scanner may run later.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

import discord

Document = Dict[str, Any]
# Returns False when the problem was already gone and nothing was written.
RepairAction = Callable[[], Awaitable[Optional[bool]]]


class IssueSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort key: critical issues first."""
        return _SEVERITY_ORDER[self]


_SEVERITY_ORDER = {IssueSeverity.CRITICAL: 0, IssueSeverity.WARNING: 1, IssueSeverity.INFO: 2}


class EntityType(str, Enum):
    """Guild-scoped collections checked by the integrity scanner, in scan order."""

    STAFF = "staff"
    CASE = "case"
    APPLICATION = "application"
    JOB = "job"
    RETAINER = "retainer"
    FEEDBACK = "feedback"
    REMINDER = "reminder"


@dataclass(eq=False, slots=True)
class ValidationIssue:
    """
    One violated invariant on one document.

    Attributes:
        severity: How bad the violation is.
        entity_type: Collection of the offending document.
        entity_id: ``id`` of the offending document.
        message: Human readable description.
        rule_name: Name of the rule that produced the issue.
        field: Offending field, if the issue is about one.
        reference: Offending value (for example the dangling id) used to tell
            apart several issues of one rule on the same field.
        can_auto_repair: Whether ``repair_action`` may be executed unattended.
        repair_action: Async closure that fixes the document.
        guild_id: Guild the document belongs to; filled in by the scanner.
    """

    severity: IssueSeverity
    entity_type: EntityType
    entity_id: str
    message: str
    rule_name: str = ""
    field: Optional[str] = None
    reference: Optional[str] = None
    can_auto_repair: bool = False
    repair_action: Optional[RepairAction] = None
    guild_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.can_auto_repair and self.repair_action is None:
            raise ValueError(
                f"Issue '{self.message}' is marked auto-repairable but has no repair action"
            )

    @property
    def issue_id(self) -> str:
        """Stable identifier; identical across scans of unchanged data."""
        return ":".join(
            (
                self.entity_type.value,
                self.entity_id,
                self.rule_name,
                self.field or "",
                self.reference or "",
            )
        )


@dataclass(slots=True)
class ValidationContext:
    """
    Information shared by every rule evaluated in one pass.

    ``guild`` is the live Discord guild when the caller has one; rules that
    check channels are skipped without it.
    """

    guild_id: str
    operation: str = "scan"
    metadata: Dict[str, Any] = field(default_factory=dict)
    guild: Optional[discord.Guild] = None


RuleResult = Union[List[ValidationIssue], Awaitable[List[ValidationIssue]]]
RuleFunction = Callable[[Mapping[str, Any], ValidationContext], RuleResult]


@dataclass(slots=True)
class ValidationRule:
    """A named check for one entity type. Lower ``priority`` runs first."""

    name: str
    description: str
    entity_type: EntityType
    priority: int
    validate: RuleFunction


@dataclass(slots=True)
class IntegrityReport:
    guild_id: str
    scan_started_at: datetime
    scan_completed_at: datetime
    total_entities_scanned: int
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def issues_by_severity(self) -> Dict[IssueSeverity, int]:
        counts = {severity: 0 for severity in IssueSeverity}
        for issue in self.issues:
            counts[issue.severity] += 1
        return counts

    @property
    def issues_by_entity_type(self) -> Dict[EntityType, int]:
        counts: Dict[EntityType, int] = {}
        for issue in self.issues:
            counts[issue.entity_type] = counts.get(issue.entity_type, 0) + 1
        return counts

    @property
    def repairable_issues(self) -> int:
        return sum(1 for issue in self.issues if issue.can_auto_repair)

    @property
    def issue_ids(self) -> List[str]:
        return [issue.issue_id for issue in self.issues]


@dataclass(frozen=True, slots=True)
class FailedRepair:
    issue_id: str
    entity_type: EntityType
    entity_id: str
    error: str


@dataclass(slots=True)
class RepairResult:
    total_issues_found: int
    issues_repaired: int = 0
    issues_failed: int = 0
    issues_skipped: int = 0
    repaired_issues: List[ValidationIssue] = field(default_factory=list)
    failed_repairs: List[FailedRepair] = field(default_factory=list)
    dry_run: bool = False
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
