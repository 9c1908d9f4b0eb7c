"""
Cross-Entity Integrity Scanner.

Loads every guild-scoped collection, runs the registered rules over each
document and reports the issues found. Issues that carry a repair action can
be fed back to `IntegrityScanner.repair_integrity_issues`.

Rules for an entity type run in ascending ``priority``; built-in rules are
registered first, so on equal priority they run before custom rules.
"""

from __future__ import annotations

import inspect
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import discord

from lexcord.datatypes.audit_datatypes import SYSTEM_ACTOR_REPAIR, AuditAction, AuditDetails, AuditEntry
from lexcord.datatypes.integrity_datatypes import (
    Document,
    EntityType,
    FailedRepair,
    IntegrityReport,
    RepairResult,
    ValidationContext,
    ValidationIssue,
    ValidationRule,
)
from lexcord.integrity.rules import build_builtin_rules
from lexcord.integrity.validation_cache import ValidationCache, cache_key
from lexcord.repositories.audit_log_repo import AuditLogRepository
from lexcord.repositories.document_repo import Repositories
from lexcord.util.logger import get_logger

logger = get_logger("integrity_scanner")


class IntegrityScanner:
    """
    Rule registry plus scan, repair and single-entity validation.

    Args:
        repositories: The seven guild-scoped collections.
        audit_repo: Destination for one audit entry per successful repair.
        cache_ttl_seconds: Lifetime of cached single-entity validation results.
        include_builtin_rules: Register the built-in rule set.
    """

    def __init__(
        self,
        repositories: Repositories,
        audit_repo: AuditLogRepository,
        *,
        cache_ttl_seconds: float = 300.0,
        include_builtin_rules: bool = True,
    ) -> None:
        self.repositories = repositories
        self.audit_repo = audit_repo
        self._rules: Dict[EntityType, List[ValidationRule]] = {entity_type: [] for entity_type in EntityType}
        self._cache = ValidationCache(cache_ttl_seconds)

        if include_builtin_rules:
            for rule in build_builtin_rules(repositories):
                self._rules[rule.entity_type].append(rule)

    # ------------------------------------------------------------------
    # Rule registry
    # ------------------------------------------------------------------

    def add_custom_rule(self, rule: ValidationRule) -> None:
        """Register a rule; it runs in every later scan and validation."""
        self._rules[rule.entity_type].append(rule)
        self._cache.invalidate(f"{rule.entity_type.value}:")
        logger.info(
            "[INTEGRITY] Registered custom rule %s for %s (priority %d)",
            rule.name,
            rule.entity_type.value,
            rule.priority,
        )

    def get_validation_rules(self, entity_type: Optional[EntityType] = None) -> List[ValidationRule]:
        """Registered rules in execution order, for one entity type or all of them."""
        if entity_type is not None:
            return self._ordered_rules(entity_type)
        return [rule for kind in EntityType for rule in self._ordered_rules(kind)]

    def _ordered_rules(self, entity_type: EntityType) -> List[ValidationRule]:
        return sorted(self._rules[entity_type], key=lambda rule: rule.priority)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan_for_integrity_issues(
        self, guild_id: str, guild: Optional[discord.Guild] = None
    ) -> IntegrityReport:
        """
        Run every rule over every document of the guild.

        The validation cache is cleared first so a scan always reads the
        current state of the store. Pass the live ``guild`` to also check
        that referenced channels still exist.
        """
        self._cache.invalidate()
        started_at = datetime.now(timezone.utc)
        context = ValidationContext(guild_id=str(guild_id), guild=guild)
        issues: List[ValidationIssue] = []
        scanned = 0

        for entity_type in EntityType:
            repo = self.repositories.for_entity(entity_type)
            try:
                documents = await repo.find_by_guild_id(str(guild_id))
            except Exception:
                logger.exception("[INTEGRITY] Failed to load %s documents for guild %s", entity_type.value, guild_id)
                continue

            for document in documents:
                scanned += 1
                issues.extend(await self._run_rules(document, entity_type, context))

        report = IntegrityReport(
            guild_id=str(guild_id),
            scan_started_at=started_at,
            scan_completed_at=datetime.now(timezone.utc),
            total_entities_scanned=scanned,
            issues=issues,
        )
        logger.info(
            "[INTEGRITY] Scan of guild %s: %d entities, %d issues (%d repairable)",
            guild_id,
            scanned,
            len(issues),
            report.repairable_issues,
        )
        return report

    async def _run_rules(
        self,
        document: Document,
        entity_type: EntityType,
        context: ValidationContext,
    ) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for rule in self._ordered_rules(entity_type):
            try:
                outcome = rule.validate(document, context)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception:
                logger.exception(
                    "[INTEGRITY] Rule %s failed on %s %s", rule.name, entity_type.value, document.get("id")
                )
                continue

            for issue in outcome or []:
                if not issue.rule_name:
                    issue.rule_name = rule.name
                if issue.guild_id is None:
                    issue.guild_id = context.guild_id
                issues.append(issue)
        return issues

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    async def repair_integrity_issues(
        self,
        issues: Iterable[ValidationIssue],
        dry_run: bool = False,
    ) -> RepairResult:
        """
        Run the repair action of every auto-repairable issue, critical first.

        A failing repair is recorded in ``failed_repairs`` and the pass goes
        on. Issues without a repair action are skipped and not counted as
        failures. A repair that finds its problem already fixed (returns
        False) counts as skipped and is not audited. With ``dry_run`` nothing
        is executed or audited; repairable issues are counted as if they had
        been repaired.
        """
        issues = list(issues)
        result = RepairResult(total_issues_found=len(issues), dry_run=dry_run)

        for issue in sorted(issues, key=lambda i: i.severity.rank):
            if not issue.can_auto_repair or issue.repair_action is None:
                continue

            if dry_run:
                result.issues_repaired += 1
                result.repaired_issues.append(issue)
                continue

            try:
                outcome = await issue.repair_action()
            except Exception as exc:
                logger.warning("[INTEGRITY] Repair of %s failed: %s", issue.issue_id, exc)
                result.issues_failed += 1
                result.failed_repairs.append(
                    FailedRepair(
                        issue_id=issue.issue_id,
                        entity_type=issue.entity_type,
                        entity_id=issue.entity_id,
                        error=str(exc),
                    )
                )
                continue

            if outcome is False:
                logger.info("[INTEGRITY] %s no longer applies; nothing repaired", issue.issue_id)
                result.issues_skipped += 1
                continue

            result.issues_repaired += 1
            result.repaired_issues.append(issue)
            await self._audit_repair(issue)

        if not dry_run:
            self.clear_validation_cache()

        result.completed_at = datetime.now(timezone.utc)
        logger.info(
            "[INTEGRITY] Repair pass%s: %d repaired, %d failed, %d skipped, %d issues total",
            " (dry run)" if dry_run else "",
            result.issues_repaired,
            result.issues_failed,
            result.issues_skipped,
            result.total_issues_found,
        )
        return result

    async def _audit_repair(self, issue: ValidationIssue) -> None:
        entry = AuditEntry(
            guild_id=issue.guild_id or "",
            action=AuditAction.SYSTEM_REPAIR,
            actor_id=SYSTEM_ACTOR_REPAIR,
            target_id=issue.entity_id,
            details=AuditDetails(
                reason=f"Auto-repaired integrity issue: {issue.message}",
                metadata={
                    "severity": issue.severity.value,
                    "entity_type": issue.entity_type.value,
                    "field": issue.field,
                    "rule": issue.rule_name,
                },
            ),
        )
        try:
            await self.audit_repo.add(entry)
        except Exception:
            logger.exception("[INTEGRITY] Failed to audit repair of %s", issue.issue_id)

    # ------------------------------------------------------------------
    # Single-entity validation
    # ------------------------------------------------------------------

    async def validate_before_operation(
        self,
        entity: Document,
        entity_type: EntityType,
        operation: str = "update",
        context: Optional[ValidationContext] = None,
    ) -> List[ValidationIssue]:
        """
        Run the rules for one document before a write.

        Results are cached per document for the cache TTL.
        """
        entity_id = entity.get("id")
        key = cache_key(entity_type, str(entity_id)) if entity_id else None
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        if context is None:
            context = ValidationContext(guild_id=str(entity.get("guild_id", "")), operation=operation)
        issues = await self._run_rules(entity, entity_type, context)

        if key is not None:
            self._cache.set(key, issues)
        return issues

    async def batch_validate(
        self,
        entities: Iterable[Tuple[Document, EntityType]],
        context: Optional[ValidationContext] = None,
    ) -> Dict[str, List[ValidationIssue]]:
        """Validate a mixed list of documents; only documents with issues appear in the result."""
        results: Dict[str, List[ValidationIssue]] = {}
        for entity, entity_type in entities:
            issues = await self.validate_before_operation(entity, entity_type, "batch", context)
            if issues:
                results[str(entity.get("id"))] = issues
        return results

    def clear_validation_cache(self) -> None:
        self._cache.invalidate()
