"""
Staff integrity cog: role conflict and data integrity slash commands.

Command groups:
- /role-conflicts scan | resolve | report
- /integrity scan | repair

All commands require the Manage Server permission and reply ephemerally.
Commands that change roles or documents run through the operation queue;
the guild owner's requests are elevated.
"""

from functools import partial

import discord
from discord import Option
from discord.ext import commands

from lexcord.datatypes.audit_datatypes import AuditAction, AuditDetails, AuditEntry
from lexcord.datatypes.integrity_datatypes import IntegrityReport, RepairResult
from lexcord.datatypes.staff_datatypes import ConflictReport, RoleConflict
from lexcord.runtime import LexcordRuntime
from lexcord.services.interceptors import compose, with_audit, with_logging
from lexcord.services.operation_queue import OperationQueueError
from lexcord.util.logger import get_logger

logger = get_logger("staff_integrity_cog")

MAX_LISTED = 10

SEVERITY_COLORS = {
    "critical": discord.Color.dark_red(),
    "high": discord.Color.red(),
    "medium": discord.Color.orange(),
    "low": discord.Color.gold(),
}


def build_conflicts_embed(conflicts: list[RoleConflict]) -> discord.Embed:
    if not conflicts:
        return discord.Embed(
            title="Role Conflicts",
            description="No staff role conflicts found.",
            color=discord.Color.green(),
        )

    # SEVERITY_COLORS is ordered worst first
    worst = min(conflicts, key=lambda c: list(SEVERITY_COLORS).index(c.severity.value))
    embed = discord.Embed(
        title="Role Conflicts",
        description=f"{len(conflicts)} member(s) hold more than one staff role.",
        color=SEVERITY_COLORS[worst.severity.value],
    )
    for conflict in conflicts[:MAX_LISTED]:
        embed.add_field(
            name=f"{conflict.username} ({conflict.severity.value})",
            value=f"{', '.join(conflict.role_names)}\nKeeps: {conflict.highest_role.role_name}",
            inline=False,
        )
    if len(conflicts) > MAX_LISTED:
        embed.set_footer(text=f"...and {len(conflicts) - MAX_LISTED} more")
    return embed


def build_conflict_report_embed(report: ConflictReport) -> discord.Embed:
    embed = discord.Embed(title="Role Conflict Report", color=discord.Color.blue())
    embed.add_field(name="Members", value=str(report.total_members), inline=True)
    embed.add_field(name="With Staff Roles", value=str(report.members_with_roles), inline=True)
    embed.add_field(name="Conflicts", value=str(report.conflicts_found), inline=True)
    embed.add_field(
        name="By Severity",
        value="\n".join(f"{severity.value}: {count}" for severity, count in report.conflicts_by_severity.items()),
        inline=True,
    )
    embed.add_field(
        name="By Role",
        value="\n".join(f"{name}: {count}" for name, count in report.conflicts_by_role.items()) or "None",
        inline=True,
    )
    embed.add_field(name="Past Resolutions", value=str(len(report.resolution_history)), inline=True)
    return embed


def build_integrity_embed(report: IntegrityReport) -> discord.Embed:
    color = discord.Color.green() if not report.issues else discord.Color.orange()
    embed = discord.Embed(
        title="Integrity Scan",
        description=(
            f"Scanned {report.total_entities_scanned} records and found {len(report.issues)} issue(s), "
            f"{report.repairable_issues} auto-repairable."
        ),
        color=color,
    )
    embed.add_field(
        name="By Severity",
        value="\n".join(f"{severity.value}: {count}" for severity, count in report.issues_by_severity.items()),
        inline=True,
    )
    embed.add_field(
        name="By Collection",
        value="\n".join(f"{kind.value}: {count}" for kind, count in report.issues_by_entity_type.items()) or "None",
        inline=True,
    )
    for issue in report.issues[:MAX_LISTED]:
        embed.add_field(
            name=f"[{issue.severity.value}] {issue.entity_type.value} {issue.entity_id}",
            value=issue.message,
            inline=False,
        )
    return embed


def build_repair_embed(result: RepairResult) -> discord.Embed:
    title = "Integrity Repair (dry run)" if result.dry_run else "Integrity Repair"
    embed = discord.Embed(
        title=title,
        description=(
            f"{result.issues_repaired} repaired, {result.issues_failed} failed, {result.issues_skipped} already fixed "
            f"out of {result.total_issues_found} issue(s)."
        ),
        color=discord.Color.red() if result.issues_failed else discord.Color.green(),
    )
    for failure in result.failed_repairs[:MAX_LISTED]:
        embed.add_field(name=failure.issue_id, value=failure.error or "Unknown error", inline=False)
    return embed


class StaffIntegrityCog(commands.Cog):
    """Operator commands for staff role conflicts and record integrity."""

    def __init__(self, discord_bot_instance, runtime: LexcordRuntime):
        self.discord_bot_instance = discord_bot_instance
        self.runtime = runtime
        logger.info("[STAFF INTEGRITY CMDS] Staff integrity cog loaded")

    async def _check_permissions(self, ctx: discord.ApplicationContext) -> bool:
        """Require a guild context and the Manage Server permission."""
        if not ctx.guild_id or ctx.guild is None:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        if not ctx.user.guild_permissions.manage_guild:
            await ctx.respond("You need Manage Server permission.", ephemeral=True)
            return False
        return True

    async def _run_queued(self, ctx: discord.ApplicationContext, name: str, work, audit_entry=None):
        """
        Run ``work`` through the operation queue; returns None and replies on queue errors.

        ``audit_entry`` maps the work's result to an operator audit entry, or None.
        """
        actor_id = str(ctx.user.id)
        guild_id = str(ctx.guild_id)
        interceptors = [partial(with_logging, name=name, actor_id=actor_id, guild_id=guild_id)]
        if audit_entry is not None:
            interceptors.append(partial(with_audit, audit_repo=self.runtime.audit_log, entry_factory=audit_entry))
        wrapped = compose(work, *interceptors)
        try:
            return await self.runtime.operation_queue.enqueue(
                wrapped,
                actor_id,
                guild_id,
                elevated=ctx.guild.owner_id == ctx.user.id,
            )
        except OperationQueueError as exc:
            await ctx.send_followup(f"Could not complete {name}: {exc}", ephemeral=True)
            return None

    role_conflicts = discord.SlashCommandGroup("role-conflicts", "Detect and resolve members holding several staff roles")

    @role_conflicts.command(name="scan", description="List members holding more than one staff role")
    async def scan_conflicts(self, ctx: discord.ApplicationContext):
        if not await self._check_permissions(ctx):
            return
        await ctx.defer(ephemeral=True)

        conflicts = await self.runtime.conflict_engine.scan_guild_for_conflicts(ctx.guild)
        await ctx.send_followup(embed=build_conflicts_embed(conflicts), ephemeral=True)

    @role_conflicts.command(name="resolve", description="Remove all but the highest staff role from conflicting members")
    async def resolve_conflicts(
        self,
        ctx: discord.ApplicationContext,
        notify: Option(bool, "DM affected members.", default=True),  # type: ignore
    ):
        if not await self._check_permissions(ctx):
            return
        await ctx.defer(ephemeral=True)

        engine = self.runtime.conflict_engine
        guild = ctx.guild

        # Detection only reads roles; only the removals hold the queue.
        conflicts = await engine.scan_guild_for_conflicts(guild)
        if not conflicts:
            await ctx.send_followup(embed=build_conflicts_embed([]), ephemeral=True)
            return

        async def work():
            return await engine.bulk_resolve_conflicts(guild, conflicts, notify=notify)

        results = await self._run_queued(ctx, "role conflict resolution", work)
        if results is None:
            return

        resolved = sum(1 for result in results if result.resolved)
        embed = discord.Embed(
            title="Role Conflicts Resolved",
            description=f"{resolved} of {len(results)} conflict(s) fully resolved.",
            color=discord.Color.green() if resolved == len(results) else discord.Color.orange(),
        )
        for result in [r for r in results if not r.resolved][:MAX_LISTED]:
            embed.add_field(name=f"<@{result.user_id}>", value=result.error or "Unknown error", inline=False)
        await ctx.send_followup(embed=embed, ephemeral=True)

    @role_conflicts.command(name="report", description="Show role conflict totals and resolution history")
    async def conflict_report(self, ctx: discord.ApplicationContext):
        if not await self._check_permissions(ctx):
            return
        await ctx.defer(ephemeral=True)

        report = await self.runtime.conflict_engine.generate_conflict_report(ctx.guild)
        await ctx.send_followup(embed=build_conflict_report_embed(report), ephemeral=True)

    integrity = discord.SlashCommandGroup("integrity", "Check staffing records for broken references")

    @integrity.command(name="scan", description="Scan this server's records for integrity issues")
    async def scan_integrity(self, ctx: discord.ApplicationContext):
        if not await self._check_permissions(ctx):
            return
        await ctx.defer(ephemeral=True)

        report = await self.runtime.integrity_scanner.scan_for_integrity_issues(str(ctx.guild_id), ctx.guild)
        await ctx.send_followup(embed=build_integrity_embed(report), ephemeral=True)

    @integrity.command(name="repair", description="Scan and auto-repair integrity issues")
    async def repair_integrity(
        self,
        ctx: discord.ApplicationContext,
        dry_run: Option(bool, "Only count what would be repaired.", default=False),  # type: ignore
    ):
        if not await self._check_permissions(ctx):
            return
        await ctx.defer(ephemeral=True)

        scanner = self.runtime.integrity_scanner
        guild_id = str(ctx.guild_id)
        guild = ctx.guild

        async def work():
            report = await scanner.scan_for_integrity_issues(guild_id, guild)
            return await scanner.repair_integrity_issues(report.issues, dry_run=dry_run)

        def operator_entry(result: RepairResult):
            if result.dry_run:
                return None
            return AuditEntry(
                guild_id=guild_id,
                action=AuditAction.SYSTEM_REPAIR,
                actor_id=str(ctx.user.id),
                details=AuditDetails(
                    reason="Integrity repair requested",
                    metadata={
                        "total_issues_found": result.total_issues_found,
                        "issues_repaired": result.issues_repaired,
                        "issues_failed": result.issues_failed,
                    },
                ),
            )

        result = await self._run_queued(ctx, "integrity repair", work, audit_entry=operator_entry)
        if result is None:
            return
        await ctx.send_followup(embed=build_repair_embed(result), ephemeral=True)


def setup(discord_bot_instance, runtime: LexcordRuntime):
    """Add the staff integrity cog to the supplied Discord bot instance."""
    discord_bot_instance.add_cog(StaffIntegrityCog(discord_bot_instance, runtime))
