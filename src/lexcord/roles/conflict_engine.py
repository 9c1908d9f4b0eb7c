"""
Role Conflict Engine.

Detects guild members holding more than one staff rank at once and resolves
those conflicts by removing every rank role except one.

Conflicts are recomputed from the member's live roles on every call; only
the resolutions are remembered, in a bounded per-guild `ConflictHistory`,
and in the audit log.

Error handling
--------------
* Detection and severity scoring never raise for a well-formed member.
* A failed role removal, DM, audit write or member fetch is logged and
  recorded in the returned result; the remaining items still run.
* `scan_guild_for_conflicts` and `generate_conflict_report` propagate a
  failure to list the guild's members, since there is no partial answer.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

import discord

from lexcord.datatypes.audit_datatypes import (
    SYSTEM_ACTOR_ROLE_SYNC,
    AuditAction,
    AuditDetails,
    AuditEntry,
)
from lexcord.datatypes.discord_datatypes import DiscordUsername, GuildID, UserID
from lexcord.datatypes.staff_datatypes import (
    ConflictReport,
    ConflictResolutionResult,
    ConflictSeverity,
    ConflictStatistics,
    IncrementalSyncResult,
    RoleAssignment,
    RoleChangeCheck,
    RoleConflict,
    RoleValidationResult,
    SeverityThresholds,
    SyncProgress,
)
from lexcord.repositories.audit_log_repo import AuditLogRepository
from lexcord.roles.conflict_history import ConflictHistory
from lexcord.roles.rank_table import RankTable, score_conflict_severity
from lexcord.util.logger import get_logger

logger = get_logger("role_conflict_engine")

ProgressCallback = Callable[[SyncProgress], Union[None, Awaitable[None]]]

REMOVAL_REASON = "Resolving role conflict - keeping highest role only"
AUTOMATIC_RESOLUTION_REASON = "Automatic role conflict resolution"


def build_resolution_embed(result: ConflictResolutionResult) -> discord.Embed:
    """DM sent to a member whose conflicting roles were cleaned up."""
    embed = discord.Embed(
        title="Staff Role Conflict Resolved",
        description=(
            "Multiple staff roles were detected on your account. "
            "The conflict has been resolved automatically."
        ),
        color=discord.Color.orange(),
    )
    embed.add_field(name="Roles Removed", value="\n".join(result.removed_roles) or "None", inline=True)
    embed.add_field(name="Role Kept", value=result.kept_role, inline=True)
    embed.add_field(
        name="Why did this happen?",
        value="Staff members can only hold one role at a time. Your highest-ranking role is kept.",
        inline=False,
    )
    embed.set_footer(text="If you believe this was an error, please contact an administrator.")
    return embed


class RoleConflictEngine:
    """
    Detection, scoring and resolution of staff rank conflicts.

    Args:
        audit_repo: Destination for one audit entry per resolution.
        rank_table: Role name to rank lookup. Defaults to the firm's ladder.
        history: Per-guild resolution history shared with the caller.
        thresholds: Severity cut-offs.
        progress_interval: Members between two progress callbacks in a scan.
        pause_every: Members between two rate-limit pauses in a scan.
        pause_seconds: Length of a scan pause; 0 disables pausing.
        bulk_pause_every: Resolutions between two pauses in bulk resolution.
        bulk_pause_seconds: Length of a bulk resolution pause.
    """

    def __init__(
        self,
        audit_repo: AuditLogRepository,
        *,
        rank_table: Optional[RankTable] = None,
        history: Optional[ConflictHistory] = None,
        thresholds: Optional[SeverityThresholds] = None,
        progress_interval: int = 10,
        pause_every: int = 50,
        pause_seconds: float = 1.0,
        bulk_pause_every: int = 10,
        bulk_pause_seconds: float = 0.5,
    ) -> None:
        self.audit_repo = audit_repo
        self.rank_table = rank_table or RankTable()
        self.history = history or ConflictHistory()
        self.thresholds = thresholds or SeverityThresholds()
        self.progress_interval = max(1, progress_interval)
        self.pause_every = max(1, pause_every)
        self.pause_seconds = pause_seconds
        self.bulk_pause_every = max(1, bulk_pause_every)
        self.bulk_pause_seconds = bulk_pause_seconds
        self._last_sync: Dict[str, datetime] = {}

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def score_severity(self, roles: Sequence[RoleAssignment]) -> ConflictSeverity:
        return score_conflict_severity([role.hierarchy_level for role in roles], self.thresholds)

    def detect_member_conflicts(self, member: discord.Member) -> Optional[RoleConflict]:
        """Return the member's conflict, or None when they hold at most one staff role."""
        staff_roles = self.rank_table.staff_roles_of(member)
        if len(staff_roles) < 2:
            return None

        conflict = RoleConflict(
            user_id=UserID.from_user(member),
            username=DiscordUsername.from_user(member),
            guild_id=GuildID.from_guild(member.guild),
            conflicting_roles=staff_roles,
            highest_role=staff_roles[0],
            severity=self.score_severity(staff_roles),
        )
        logger.warning(
            "[ROLE CONFLICT] %s holds %s (severity=%s)",
            conflict.username,
            ", ".join(conflict.role_names),
            conflict.severity.value,
        )
        return conflict

    async def scan_guild_for_conflicts(
        self,
        guild: discord.Guild,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[RoleConflict]:
        """
        Check every member of the guild, in member order.

        ``progress_callback`` receives a snapshot every ``progress_interval``
        members and once more at the end.
        """
        members = await self._fetch_all_members(guild)
        conflicts = await self._scan_members(members, progress_callback)
        self.update_last_sync_timestamp(str(guild.id))
        logger.info(
            "[ROLE CONFLICT] Guild %s scan complete: %d conflicts among %d members",
            guild.id,
            len(conflicts),
            len(members),
        )
        return conflicts

    async def _scan_members(
        self,
        members: Sequence[discord.Member],
        progress_callback: Optional[ProgressCallback],
    ) -> List[RoleConflict]:
        conflicts: List[RoleConflict] = []
        progress = SyncProgress(total=len(members))

        for member in members:
            progress.processed += 1
            progress.current_user = str(member)

            conflict = self.detect_member_conflicts(member)
            if conflict is not None:
                conflicts.append(conflict)
                progress.conflicts_found += 1

            if progress.processed % self.progress_interval == 0:
                await self._report(progress_callback, progress)

            if progress.processed % self.pause_every == 0 and self.pause_seconds > 0:
                await asyncio.sleep(self.pause_seconds)

        await self._report(progress_callback, progress)
        return conflicts

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_conflict(
        self,
        member: discord.Member,
        conflict: RoleConflict,
        notify: bool = True,
    ) -> ConflictResolutionResult:
        """Remove every conflicting role except the highest one."""
        return await self._resolve(member, conflict, conflict.highest_role, notify)

    async def resolve_conflict_manually(
        self,
        member: discord.Member,
        conflict: RoleConflict,
        keep_role_name: str,
        actor_id: str,
        reason: Optional[str] = None,
        notify: bool = True,
    ) -> ConflictResolutionResult:
        """Resolve a conflict keeping an operator-chosen role instead of the highest."""
        keep = next((role for role in conflict.conflicting_roles if role.role_name == keep_role_name), None)
        if keep is None:
            logger.warning(
                "[ROLE CONFLICT] Manual resolution for %s rejected: %s is not one of %s",
                conflict.username,
                keep_role_name,
                ", ".join(conflict.role_names),
            )
            return ConflictResolutionResult(
                user_id=conflict.user_id,
                resolved=False,
                removed_roles=(),
                kept_role="",
                error=f"Invalid role selection: {keep_role_name}",
            )

        result = await self._resolve(member, conflict, keep, notify)
        await self._write_audit(
            AuditEntry(
                guild_id=str(conflict.guild_id),
                action=AuditAction.ROLE_SYNC_PERFORMED,
                actor_id=str(actor_id),
                target_id=str(conflict.user_id),
                details=AuditDetails(
                    reason=f"Manual resolution: {reason or 'No reason given'}",
                    before={"roles": conflict.role_names},
                    after={"role": keep.role_name},
                    metadata={
                        "conflict_severity": conflict.severity.value,
                        "removed_roles": list(result.removed_roles),
                        "resolved": result.resolved,
                        "manual_resolution": True,
                        "resolved_by": str(actor_id),
                    },
                ),
            )
        )
        return result

    async def _resolve(
        self,
        member: discord.Member,
        conflict: RoleConflict,
        keep: RoleAssignment,
        notify: bool,
    ) -> ConflictResolutionResult:
        to_remove = [role for role in conflict.conflicting_roles if role.role_id != keep.role_id]
        removed: List[str] = []
        failures: List[str] = []

        for role in to_remove:
            try:
                await member.remove_roles(discord.Object(id=role.role_id.to_int()), reason=REMOVAL_REASON)
                removed.append(role.role_name)
            except Exception as exc:
                logger.error(
                    "[ROLE CONFLICT] Failed to remove %s from %s: %s", role.role_name, conflict.username, exc
                )
                failures.append(f"{role.role_name} ({exc})")

        resolved = len(removed) == len(to_remove)
        result = ConflictResolutionResult(
            user_id=conflict.user_id,
            resolved=resolved,
            removed_roles=tuple(removed),
            kept_role=keep.role_name,
            error=None if resolved else f"Failed to remove role(s): {', '.join(failures)}",
        )

        await self._write_audit(
            AuditEntry(
                guild_id=str(conflict.guild_id),
                action=AuditAction.ROLE_SYNC_PERFORMED,
                actor_id=SYSTEM_ACTOR_ROLE_SYNC,
                target_id=str(conflict.user_id),
                details=AuditDetails(
                    reason=AUTOMATIC_RESOLUTION_REASON,
                    before={"roles": conflict.role_names},
                    after={"role": keep.role_name},
                    metadata={
                        "conflict_severity": conflict.severity.value,
                        "removed_roles": list(removed),
                        "resolved": resolved,
                        "error": result.error,
                    },
                ),
            )
        )

        if notify:
            await self._notify(member, result)

        self.history.record(str(conflict.guild_id), result)
        logger.info(
            "[ROLE CONFLICT] Resolved %s: removed [%s], kept %s (resolved=%s)",
            conflict.username,
            ", ".join(removed),
            keep.role_name,
            resolved,
        )
        return result

    async def bulk_resolve_conflicts(
        self,
        guild: discord.Guild,
        conflicts: Iterable[RoleConflict],
        progress_callback: Optional[ProgressCallback] = None,
        notify: bool = True,
    ) -> List[ConflictResolutionResult]:
        """
        Resolve previously detected conflicts, re-fetching each member first.

        A member that can no longer be fetched is logged, counted as an error
        and skipped.
        """
        conflicts = list(conflicts)
        results: List[ConflictResolutionResult] = []
        progress = SyncProgress(total=len(conflicts), conflicts_found=len(conflicts))

        for conflict in conflicts:
            progress.current_user = str(conflict.username)
            try:
                member = await guild.fetch_member(conflict.user_id.to_int())
            except Exception as exc:
                logger.error("[ROLE CONFLICT] Could not fetch member %s: %s", conflict.user_id, exc)
                progress.errors += 1
            else:
                result = await self.resolve_conflict(member, conflict, notify)
                results.append(result)
                if result.resolved:
                    progress.conflicts_resolved += 1
                else:
                    progress.errors += 1

            progress.processed += 1
            await self._report(progress_callback, progress)

            if progress.processed % self.bulk_pause_every == 0 and self.bulk_pause_seconds > 0:
                await asyncio.sleep(self.bulk_pause_seconds)

        logger.info(
            "[ROLE CONFLICT] Bulk resolution in guild %s: %d resolved, %d errors",
            guild.id,
            progress.conflicts_resolved,
            progress.errors,
        )
        return results

    # ------------------------------------------------------------------
    # Pre-assignment checks
    # ------------------------------------------------------------------

    def validate_role_assignment(self, member: discord.Member, new_role_name: str) -> RoleValidationResult:
        """Refuse giving a staff rank to a member who already holds a different one."""
        if not self.rank_table.is_staff_role(new_role_name):
            return RoleValidationResult(is_valid=True)

        held = [
            role.role_name
            for role in self.rank_table.staff_roles_of(member)
            if role.role_name != new_role_name
        ]
        if not held:
            return RoleValidationResult(is_valid=True)

        return RoleValidationResult(
            is_valid=False,
            conflicts=held,
            prevention_reason=(
                f"Member already has staff role(s): {', '.join(held)}. "
                "Only one staff role is allowed at a time."
            ),
        )

    def check_role_change_for_conflicts(
        self,
        member: discord.Member,
        old_role_names: Iterable[str],
        new_role_names: Iterable[str],
    ) -> RoleChangeCheck:
        """Inspect a role update; adding a staff rank on top of another is flagged for prevention."""
        old_staff = [name for name in old_role_names if self.rank_table.is_staff_role(name)]
        new_staff = [name for name in new_role_names if self.rank_table.is_staff_role(name)]
        added = [name for name in new_staff if name not in old_staff]

        conflict = self.detect_member_conflicts(member)
        if added and old_staff:
            return RoleChangeCheck(
                has_conflict=True,
                should_prevent=True,
                conflict=conflict,
                prevention_reason=(
                    f"Cannot assign multiple staff roles. User already has: {', '.join(old_staff)}"
                ),
            )
        return RoleChangeCheck(has_conflict=conflict is not None, should_prevent=False, conflict=conflict)

    # ------------------------------------------------------------------
    # Incremental sync
    # ------------------------------------------------------------------

    async def incremental_sync(
        self,
        guild: discord.Guild,
        member_ids: Optional[Sequence[str]] = None,
        auto_resolve: bool = False,
        since: Optional[datetime] = None,
    ) -> IncrementalSyncResult:
        """
        Check a subset of the guild.

        With ``member_ids`` only those members are fetched and checked.
        Otherwise members holding a staff role, plus members who joined after
        ``since``, are checked. Failures are collected in ``errors``.
        """
        result = IncrementalSyncResult()
        members: List[discord.Member] = []

        if member_ids:
            for member_id in member_ids:
                try:
                    members.append(await guild.fetch_member(int(member_id)))
                except Exception as exc:
                    result.errors.append(f"Failed to fetch member {member_id}: {exc}")
        else:
            try:
                all_members = await self._fetch_all_members(guild)
            except Exception as exc:
                logger.error("[ROLE CONFLICT] Incremental sync of guild %s failed: %s", guild.id, exc)
                result.errors.append(f"Incremental sync error: {exc}")
                return result
            members = [
                member
                for member in all_members
                if self.rank_table.staff_roles_of(member) or _joined_after(member, since)
            ]

        for member in members:
            conflict = self.detect_member_conflicts(member)
            if conflict is None:
                continue
            result.conflicts.append(conflict)
            if auto_resolve:
                result.resolved.append(await self.resolve_conflict(member, conflict, notify=True))

        self.update_last_sync_timestamp(str(guild.id))
        logger.info(
            "[ROLE CONFLICT] Incremental sync of guild %s: %d conflicts, %d resolved, %d errors",
            guild.id,
            len(result.conflicts),
            len(result.resolved),
            len(result.errors),
        )
        return result

    def get_last_sync_timestamp(self, guild_id: str) -> Optional[datetime]:
        return self._last_sync.get(str(guild_id))

    def update_last_sync_timestamp(self, guild_id: str) -> None:
        self._last_sync[str(guild_id)] = datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def generate_conflict_report(self, guild: discord.Guild) -> ConflictReport:
        members = await self._fetch_all_members(guild)
        conflicts = await self._scan_members(members, None)

        conflicts_by_role: Dict[str, int] = {}
        conflicts_by_severity = {severity: 0 for severity in ConflictSeverity}
        for conflict in conflicts:
            conflicts_by_severity[conflict.severity] += 1
            for name in conflict.role_names:
                conflicts_by_role[name] = conflicts_by_role.get(name, 0) + 1

        return ConflictReport(
            guild_id=GuildID.from_guild(guild),
            total_members=len(members),
            members_with_roles=sum(1 for member in members if self.rank_table.staff_roles_of(member)),
            conflicts_found=len(conflicts),
            conflicts_by_role=conflicts_by_role,
            conflicts_by_severity=conflicts_by_severity,
            resolution_history=self.history.entries(str(guild.id)),
        )

    def get_conflict_statistics(self, guild_id: str) -> ConflictStatistics:
        return self.history.statistics(str(guild_id))

    def clear_conflict_history(self, guild_id: str) -> None:
        self.history.clear(str(guild_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _fetch_all_members(guild: discord.Guild) -> List[discord.Member]:
        return [member async for member in guild.fetch_members(limit=None)]

    @staticmethod
    async def _report(callback: Optional[ProgressCallback], progress: SyncProgress) -> None:
        if callback is None:
            return
        try:
            outcome = callback(dataclasses.replace(progress))
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("[ROLE CONFLICT] Progress callback failed")

    async def _write_audit(self, entry: AuditEntry) -> None:
        try:
            await self.audit_repo.add(entry)
        except Exception:
            logger.exception("[ROLE CONFLICT] Failed to write audit entry for %s", entry.target_id)

    @staticmethod
    async def _notify(member: discord.Member, result: ConflictResolutionResult) -> None:
        try:
            await member.send(embed=build_resolution_embed(result))
        except (discord.Forbidden, discord.HTTPException) as exc:
            logger.warning("[ROLE CONFLICT] Could not DM %s: %s", member, exc)


def _joined_after(member: discord.Member, since: Optional[datetime]) -> bool:
    joined_at = getattr(member, "joined_at", None)
    return since is not None and joined_at is not None and joined_at > since
