"""
Built-in integrity rules.

One group of rules per collection. Each rule is an async function
``(document, context) -> list[ValidationIssue]`` that looks up referenced
documents through the repositories. Severity and repairability are fixed per
rule.

Repair actions re-read the document (and whatever it references) and only
patch it if the problem is still there. A repair that finds nothing left to
fix returns False, so running one twice, or after the record was fixed by
hand, leaves the data alone.
"""

from __future__ import annotations

import inspect
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

import discord

from lexcord.datatypes.integrity_datatypes import (
    Document,
    EntityType,
    IssueSeverity,
    RepairAction,
    ValidationContext,
    ValidationIssue,
    ValidationRule,
)
from lexcord.datatypes.staff_datatypes import StaffRank
from lexcord.repositories.document_repo import Repositories, Repository

STAFF_STATUSES = frozenset({"active", "inactive", "terminated"})
SAFE_STAFF_STATUS = "inactive"
ACTIVE = "active"
CASE_IN_PROGRESS = "in-progress"

# Ranks that may not lead a case.
NON_LEAD_RANKS = frozenset({StaffRank.PARALEGAL.value.lower(), StaffRank.JUNIOR_ASSOCIATE.value.lower()})

# Recommended ceiling of in-progress cases per rank.
WORKLOAD_LIMITS = {
    StaffRank.MANAGING_PARTNER.value.lower(): 20,
    StaffRank.SENIOR_PARTNER.value.lower(): 15,
    StaffRank.JUNIOR_PARTNER.value.lower(): 12,
    StaffRank.SENIOR_ASSOCIATE.value.lower(): 10,
    StaffRank.JUNIOR_ASSOCIATE.value.lower(): 8,
    StaffRank.PARALEGAL.value.lower(): 5,
}
DEFAULT_WORKLOAD_LIMIT = 10

StillBroken = Callable[[Document], Union[bool, Awaitable[bool]]]


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _is_before(document: Document, later_field: str, earlier_field: str) -> bool:
    """True if ``later_field`` holds a timestamp earlier than ``earlier_field``."""
    later = _as_datetime(document.get(later_field))
    earlier = _as_datetime(document.get(earlier_field))
    return later is not None and earlier is not None and later < earlier


def _rank_key(staff: Document) -> str:
    return str(staff.get("role") or "").replace("_", " ").strip().lower()


def _hired_after_case(lawyer: Document, case: Document) -> bool:
    hired_at = _as_datetime(lawyer.get("hired_at"))
    created_at = _as_datetime(case.get("created_at"))
    return hired_at is not None and created_at is not None and hired_at > created_at


def _channel_missing(guild: discord.Guild, channel_id: Any) -> bool:
    try:
        return guild.get_channel(int(channel_id)) is None
    except (TypeError, ValueError):
        return True


def _guarded_patch(
    repo: Repository,
    entity_id: str,
    patch: Mapping[str, Any],
    still_broken: StillBroken,
) -> RepairAction:
    """Apply ``patch`` only if a fresh read of the document still shows the problem."""

    async def repair() -> bool:
        current = await repo.find_by_id(entity_id)
        if current is None:
            return False
        broken = still_broken(current)
        if inspect.isawaitable(broken):
            broken = await broken
        if not broken:
            return False
        await repo.update(entity_id, dict(patch))
        return True

    return repair


class BuiltinRules:
    """Rule implementations bound to one set of repositories."""

    def __init__(self, repositories: Repositories) -> None:
        self.repos = repositories

    def rules(self) -> List[ValidationRule]:
        return [
            ValidationRule("staff-status-valid", "Staff status must be a known employment status",
                           EntityType.STAFF, 10, self.staff_status_valid),
            ValidationRule("staff-role-consistency", "Paralegals and junior associates cannot lead cases",
                           EntityType.STAFF, 20, self.staff_role_consistency),
            ValidationRule("staff-workload-balance", "Active staff stay within their rank's case load",
                           EntityType.STAFF, 30, self.staff_workload_balance),
            ValidationRule("staff-promotion-chain", "Nobody promotes themselves",
                           EntityType.STAFF, 40, self.staff_promotion_chain),
            ValidationRule("staff-self-hire", "Staff members cannot hire themselves",
                           EntityType.STAFF, 50, self.staff_self_hire),
            ValidationRule("case-staff-assignments", "Case lawyers must reference active staff",
                           EntityType.CASE, 10, self.case_staff_assignments),
            ValidationRule("case-temporal-consistency", "Case dates must agree with each other and with hiring",
                           EntityType.CASE, 20, self.case_temporal_consistency),
            ValidationRule("case-lead-in-assigned", "The lead attorney is one of the assigned lawyers",
                           EntityType.CASE, 30, self.case_lead_in_assigned),
            ValidationRule("case-channel-existence", "Case channels must exist in Discord",
                           EntityType.CASE, 40, self.case_channel_existence),
            ValidationRule("application-job-reference", "Applications must reference an existing job",
                           EntityType.APPLICATION, 10, self.application_job_reference),
            ValidationRule("application-reviewer-reference", "Application reviewers must be staff",
                           EntityType.APPLICATION, 20, self.application_reviewer_reference),
            ValidationRule("application-review-consistency", "Reviews happen after submission and name a reviewer",
                           EntityType.APPLICATION, 30, self.application_review_consistency),
            ValidationRule("job-role-reference", "Jobs must advertise a known staff rank",
                           EntityType.JOB, 10, self.job_role_reference),
            ValidationRule("retainer-lawyer-reference", "Retainers must reference an active lawyer",
                           EntityType.RETAINER, 10, self.retainer_lawyer_reference),
            ValidationRule("feedback-staff-reference", "Feedback targets must be staff",
                           EntityType.FEEDBACK, 10, self.feedback_staff_reference),
            ValidationRule("reminder-case-reference", "Reminders must reference an existing case",
                           EntityType.REMINDER, 10, self.reminder_case_reference),
            ValidationRule("reminder-channel-existence", "Active reminders must post to an existing channel",
                           EntityType.REMINDER, 20, self.reminder_channel_existence),
        ]

    async def _find_staff(self, context: ValidationContext, user_id: Any) -> Optional[Document]:
        return await self.repos.staff.find_by_user_id(context.guild_id, str(user_id))

    async def _staff_missing(self, context: ValidationContext, user_id: Any) -> bool:
        return await self._find_staff(context, user_id) is None

    # ------------------------------------------------------------------
    # Staff
    # ------------------------------------------------------------------

    async def staff_status_valid(self, staff: Document, context: ValidationContext) -> List[ValidationIssue]:
        status = staff.get("status")
        if status in STAFF_STATUSES:
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.CRITICAL,
                entity_type=EntityType.STAFF,
                entity_id=staff["id"],
                field="status",
                reference=str(status),
                message=f"Invalid staff status: {status}",
                can_auto_repair=True,
                repair_action=_guarded_patch(
                    self.repos.staff,
                    staff["id"],
                    {"status": SAFE_STAFF_STATUS},
                    lambda current: current.get("status") not in STAFF_STATUSES,
                ),
            )
        ]

    async def staff_role_consistency(self, staff: Document, context: ValidationContext) -> List[ValidationIssue]:
        if _rank_key(staff) not in NON_LEAD_RANKS:
            return []
        user_id = str(staff.get("user_id"))
        cases = await self.repos.cases.find_by_guild_id(context.guild_id)
        led = [case for case in cases if str(case.get("lead_attorney_id")) == user_id]
        if not led:
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.CRITICAL,
                entity_type=EntityType.STAFF,
                entity_id=staff["id"],
                field="role",
                message=f"Staff member with role {staff.get('role')} cannot be lead attorney on {len(led)} case(s)",
            )
        ]

    async def staff_workload_balance(self, staff: Document, context: ValidationContext) -> List[ValidationIssue]:
        if staff.get("status") != ACTIVE:
            return []
        user_id = str(staff.get("user_id"))
        cases = await self.repos.cases.find_by_guild_id(context.guild_id)
        in_progress = [
            case
            for case in cases
            if case.get("status") == CASE_IN_PROGRESS
            and user_id in (str(lid) for lid in case.get("assigned_lawyer_ids") or [])
        ]
        limit = WORKLOAD_LIMITS.get(_rank_key(staff), DEFAULT_WORKLOAD_LIMIT)
        if len(in_progress) <= limit:
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.STAFF,
                entity_id=staff["id"],
                field="case_load",
                message=(
                    f"Staff member has {len(in_progress)} active cases, "
                    f"exceeding recommended limit of {limit}"
                ),
            )
        ]

    async def staff_promotion_chain(self, staff: Document, context: ValidationContext) -> List[ValidationIssue]:
        user_id = str(staff.get("user_id"))
        seen: set[str] = set()
        reported: set[str] = set()
        issues: List[ValidationIssue] = []

        for promotion in staff.get("promotion_history") or []:
            promoted_by = str(promotion.get("promoted_by"))
            if promoted_by == user_id:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        entity_type=EntityType.STAFF,
                        entity_id=staff["id"],
                        field="promotion_history",
                        reference=promoted_by,
                        message="Staff member appears as their own promoter",
                    )
                )
                break
            if promoted_by in seen and promoted_by not in reported:
                reported.add(promoted_by)
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        entity_type=EntityType.STAFF,
                        entity_id=staff["id"],
                        field="promotion_history",
                        reference=promoted_by,
                        message=f"Promoter {promoted_by} appears more than once in promotion history",
                    )
                )
            seen.add(promoted_by)
        return issues

    async def staff_self_hire(self, staff: Document, context: ValidationContext) -> List[ValidationIssue]:
        hired_by = staff.get("hired_by")
        if not hired_by or str(hired_by) != str(staff.get("user_id")):
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.STAFF,
                entity_id=staff["id"],
                field="hired_by",
                message="Staff member hired by themselves",
            )
        ]

    # ------------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------------

    async def case_staff_assignments(self, case: Document, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        case_id = case["id"]

        lead_id = case.get("lead_attorney_id")
        if lead_id:
            lead = await self._find_staff(context, lead_id)
            if lead is None:

                async def lead_still_dangling(current: Document) -> bool:
                    return str(current.get("lead_attorney_id")) == str(lead_id) and await self._staff_missing(
                        context, lead_id
                    )

                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        entity_type=EntityType.CASE,
                        entity_id=case_id,
                        field="lead_attorney_id",
                        reference=str(lead_id),
                        message=f"Lead attorney {lead_id} not found in staff records",
                        can_auto_repair=True,
                        repair_action=_guarded_patch(
                            self.repos.cases, case_id, {"lead_attorney_id": None}, lead_still_dangling
                        ),
                    )
                )
            elif lead.get("status") != ACTIVE:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        entity_type=EntityType.CASE,
                        entity_id=case_id,
                        field="lead_attorney_id",
                        reference=str(lead_id),
                        message=f"Lead attorney {lead_id} is not active (status: {lead.get('status')})",
                    )
                )

        for lawyer_id in case.get("assigned_lawyer_ids") or []:
            lawyer = await self._find_staff(context, lawyer_id)
            if lawyer is None:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        entity_type=EntityType.CASE,
                        entity_id=case_id,
                        field="assigned_lawyer_ids",
                        reference=str(lawyer_id),
                        message=f"Assigned lawyer {lawyer_id} not found in staff records",
                        can_auto_repair=True,
                        repair_action=self._remove_assigned_lawyer(context, case_id, str(lawyer_id)),
                    )
                )
            elif lawyer.get("status") != ACTIVE:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        entity_type=EntityType.CASE,
                        entity_id=case_id,
                        field="assigned_lawyer_ids",
                        reference=str(lawyer_id),
                        message=f"Assigned lawyer {lawyer_id} is not active (status: {lawyer.get('status')})",
                    )
                )
        return issues

    def _remove_assigned_lawyer(
        self,
        context: ValidationContext,
        case_id: str,
        lawyer_id: str,
        *,
        hired_after_case: bool = False,
    ) -> RepairAction:
        """
        Drop ``lawyer_id`` from the case's assigned lawyers.

        The lawyer is only dropped while still assigned and still at fault:
        missing from staff records, or with ``hired_after_case`` hired after
        the case was opened.
        """

        async def repair() -> bool:
            current = await self.repos.cases.find_by_id(case_id)
            if current is None:
                return False
            lawyers = list(current.get("assigned_lawyer_ids") or [])
            if lawyer_id not in (str(lid) for lid in lawyers):
                return False

            lawyer = await self._find_staff(context, lawyer_id)
            if hired_after_case:
                still_broken = lawyer is not None and _hired_after_case(lawyer, current)
            else:
                still_broken = lawyer is None
            if not still_broken:
                return False

            remaining = [lid for lid in lawyers if str(lid) != lawyer_id]
            await self.repos.cases.update(case_id, {"assigned_lawyer_ids": remaining})
            return True

        return repair

    async def case_temporal_consistency(self, case: Document, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        case_id = case["id"]

        for lawyer_id in case.get("assigned_lawyer_ids") or []:
            lawyer = await self._find_staff(context, lawyer_id)
            if lawyer is not None and _hired_after_case(lawyer, case):
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        entity_type=EntityType.CASE,
                        entity_id=case_id,
                        field="assigned_lawyer_ids",
                        reference=str(lawyer_id),
                        message=f"Lawyer {lawyer_id} was hired after case was created",
                        can_auto_repair=True,
                        repair_action=self._remove_assigned_lawyer(
                            context, case_id, str(lawyer_id), hired_after_case=True
                        ),
                    )
                )

        if _is_before(case, "closed_at", "created_at"):
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.CRITICAL,
                    entity_type=EntityType.CASE,
                    entity_id=case_id,
                    field="closed_at",
                    message="Case closed date is before creation date",
                    can_auto_repair=True,
                    repair_action=_guarded_patch(
                        self.repos.cases,
                        case_id,
                        {"closed_at": None},
                        lambda current: _is_before(current, "closed_at", "created_at"),
                    ),
                )
            )
        return issues

    async def case_lead_in_assigned(self, case: Document, context: ValidationContext) -> List[ValidationIssue]:
        lead_id = case.get("lead_attorney_id")
        assigned = [str(lid) for lid in case.get("assigned_lawyer_ids") or []]
        if not lead_id or str(lead_id) in assigned:
            return []
        # Dangling or late-hired leads are reported by other rules; appending them would undo those repairs.
        lead = await self._find_staff(context, lead_id)
        if lead is None or _hired_after_case(lead, case):
            return []

        case_id = case["id"]

        async def repair() -> bool:
            current = await self.repos.cases.find_by_id(case_id)
            if current is None or str(current.get("lead_attorney_id")) != str(lead_id):
                return False
            lawyers = list(current.get("assigned_lawyer_ids") or [])
            if str(lead_id) in (str(lid) for lid in lawyers):
                return False
            lawyers.append(lead_id)
            await self.repos.cases.update(case_id, {"assigned_lawyer_ids": lawyers})
            return True

        return [
            ValidationIssue(
                severity=IssueSeverity.INFO,
                entity_type=EntityType.CASE,
                entity_id=case_id,
                field="assigned_lawyer_ids",
                reference=str(lead_id),
                message="Lead attorney is not in assigned lawyers list",
                can_auto_repair=True,
                repair_action=repair,
            )
        ]

    async def case_channel_existence(self, case: Document, context: ValidationContext) -> List[ValidationIssue]:
        guild = context.guild
        channel_id = case.get("channel_id")
        if guild is None or not channel_id or not _channel_missing(guild, channel_id):
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.CASE,
                entity_id=case["id"],
                field="channel_id",
                reference=str(channel_id),
                message=f"Case channel {channel_id} not found in Discord",
                can_auto_repair=True,
                repair_action=_guarded_patch(
                    self.repos.cases,
                    case["id"],
                    {"channel_id": None},
                    lambda current: str(current.get("channel_id")) == str(channel_id)
                    and _channel_missing(guild, channel_id),
                ),
            )
        ]

    # ------------------------------------------------------------------
    # Applications and jobs
    # ------------------------------------------------------------------

    async def application_job_reference(
        self, application: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        job_id = application.get("job_id")
        if not job_id:
            return []

        job = await self.repos.jobs.find_by_id(str(job_id))
        if job is None:
            return [
                ValidationIssue(
                    severity=IssueSeverity.CRITICAL,
                    entity_type=EntityType.APPLICATION,
                    entity_id=application["id"],
                    field="job_id",
                    reference=str(job_id),
                    message=f"Referenced job {job_id} not found",
                )
            ]
        if application.get("status") == "pending" and job.get("is_open") is False:

            async def still_pending_for_closed_job(current: Document) -> bool:
                if current.get("status") != "pending" or str(current.get("job_id")) != str(job_id):
                    return False
                current_job = await self.repos.jobs.find_by_id(str(job_id))
                return current_job is not None and current_job.get("is_open") is False

            return [
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    entity_type=EntityType.APPLICATION,
                    entity_id=application["id"],
                    field="status",
                    reference=str(job_id),
                    message="Application is pending for a closed job",
                    can_auto_repair=True,
                    repair_action=_guarded_patch(
                        self.repos.applications,
                        application["id"],
                        {"status": "withdrawn"},
                        still_pending_for_closed_job,
                    ),
                )
            ]
        return []

    async def application_reviewer_reference(
        self, application: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        reviewer = application.get("reviewed_by")
        if not reviewer or await self._find_staff(context, reviewer) is not None:
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.APPLICATION,
                entity_id=application["id"],
                field="reviewed_by",
                reference=str(reviewer),
                message=f"Reviewer {reviewer} not found in staff records",
            )
        ]

    async def application_review_consistency(
        self, application: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        if _is_before(application, "reviewed_at", "created_at"):
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.CRITICAL,
                    entity_type=EntityType.APPLICATION,
                    entity_id=application["id"],
                    field="reviewed_at",
                    message="Application reviewed before it was created",
                    can_auto_repair=True,
                    repair_action=_guarded_patch(
                        self.repos.applications,
                        application["id"],
                        {"reviewed_at": None},
                        lambda current: _is_before(current, "reviewed_at", "created_at"),
                    ),
                )
            )
        if application.get("status") == "accepted" and not application.get("reviewed_by"):
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    entity_type=EntityType.APPLICATION,
                    entity_id=application["id"],
                    field="reviewed_by",
                    message="Accepted application has no reviewer",
                )
            )
        return issues

    async def job_role_reference(self, job: Document, context: ValidationContext) -> List[ValidationIssue]:
        role = job.get("staff_role")
        if role is None or role in {rank.value for rank in StaffRank}:
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.JOB,
                entity_id=job["id"],
                field="staff_role",
                reference=str(role),
                message=f"Job advertises unknown staff role {role}",
            )
        ]

    # ------------------------------------------------------------------
    # Retainers, feedback, reminders
    # ------------------------------------------------------------------

    async def retainer_lawyer_reference(
        self, retainer: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        lawyer_id = retainer.get("lawyer_id")
        if not lawyer_id:
            return []

        lawyer = await self._find_staff(context, lawyer_id)
        if lawyer is None:
            return [
                ValidationIssue(
                    severity=IssueSeverity.CRITICAL,
                    entity_type=EntityType.RETAINER,
                    entity_id=retainer["id"],
                    field="lawyer_id",
                    reference=str(lawyer_id),
                    message=f"Lawyer {lawyer_id} not found in staff records",
                )
            ]
        if lawyer.get("status") != ACTIVE:
            return [
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    entity_type=EntityType.RETAINER,
                    entity_id=retainer["id"],
                    field="lawyer_id",
                    reference=str(lawyer_id),
                    message=f"Lawyer {lawyer_id} is not active (status: {lawyer.get('status')})",
                )
            ]
        return []

    async def feedback_staff_reference(
        self, feedback: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        target = feedback.get("target_staff_id")
        if not target or feedback.get("is_for_firm"):
            return []
        if await self._find_staff(context, target) is not None:
            return []

        async def target_still_dangling(current: Document) -> bool:
            return (
                not current.get("is_for_firm")
                and str(current.get("target_staff_id")) == str(target)
                and await self._staff_missing(context, target)
            )

        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.FEEDBACK,
                entity_id=feedback["id"],
                field="target_staff_id",
                reference=str(target),
                message=f"Target staff member {target} not found",
                can_auto_repair=True,
                repair_action=_guarded_patch(
                    self.repos.feedback,
                    feedback["id"],
                    {"target_staff_id": None, "target_staff_username": None, "is_for_firm": True},
                    target_still_dangling,
                ),
            )
        ]

    async def reminder_case_reference(
        self, reminder: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        case_id = reminder.get("case_id")
        if not case_id or await self.repos.cases.find_by_id(str(case_id)) is not None:
            return []

        async def case_still_missing(current: Document) -> bool:
            return (
                str(current.get("case_id")) == str(case_id)
                and await self.repos.cases.find_by_id(str(case_id)) is None
            )

        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.REMINDER,
                entity_id=reminder["id"],
                field="case_id",
                reference=str(case_id),
                message=f"Referenced case {case_id} not found",
                can_auto_repair=True,
                repair_action=_guarded_patch(self.repos.reminders, reminder["id"], {"case_id": None}, case_still_missing),
            )
        ]

    async def reminder_channel_existence(
        self, reminder: Document, context: ValidationContext
    ) -> List[ValidationIssue]:
        guild = context.guild
        channel_id = reminder.get("channel_id")
        if guild is None or not channel_id or not reminder.get("is_active"):
            return []
        if not _channel_missing(guild, channel_id):
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                entity_type=EntityType.REMINDER,
                entity_id=reminder["id"],
                field="channel_id",
                reference=str(channel_id),
                message=f"Reminder channel {channel_id} not found in Discord",
                can_auto_repair=True,
                repair_action=_guarded_patch(
                    self.repos.reminders,
                    reminder["id"],
                    {"is_active": False},
                    lambda current: bool(current.get("is_active"))
                    and str(current.get("channel_id")) == str(channel_id)
                    and _channel_missing(guild, channel_id),
                ),
            )
        ]


def build_builtin_rules(repositories: Repositories) -> List[ValidationRule]:
    return BuiltinRules(repositories).rules()
