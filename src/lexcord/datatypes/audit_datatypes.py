"""
Audit log record types.

The action taxonomy belongs to the audit layer; staffing components only
pick an action and fill in the details.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class AuditAction(str, Enum):
    STAFF_HIRED = "staff_hired"
    STAFF_FIRED = "staff_fired"
    STAFF_PROMOTED = "staff_promoted"
    STAFF_DEMOTED = "staff_demoted"
    ROLE_SYNC_PERFORMED = "role_sync_performed"
    ROLE_LIMIT_BYPASSED = "role_limit_bypassed"
    GUILD_OWNER_BYPASS = "guild_owner_bypass"
    CASE_ASSIGNED = "case_assigned"
    LEAD_ATTORNEY_REMOVED = "lead_attorney_removed"
    SYSTEM_REPAIR = "system_repair"


SYSTEM_ACTOR_ROLE_SYNC = "System-RoleSync"
SYSTEM_ACTOR_REPAIR = "SYSTEM"


@dataclass(slots=True)
class AuditDetails:
    reason: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None


@dataclass(slots=True)
class AuditEntry:
    """One audit record: who did what to whom, and why."""

    guild_id: str
    action: AuditAction
    actor_id: str
    details: AuditDetails
    target_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None

    def details_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self.details).items() if value is not None}
