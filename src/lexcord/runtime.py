"""
Composition root for the staffing consistency layer.

`LexcordRuntime` owns one instance of every stateful component: the
database connection, the repositories, the operation queue, the conflict
history and the two engines built on top of them. Command handlers receive
the runtime instead of reaching for module-level singletons.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from lexcord.configuration.app_configuration import AppConfig, app_config
from lexcord.database.db_connection import ConnectionManager
from lexcord.integrity.scanner import IntegrityScanner
from lexcord.repositories.audit_log_repo import AuditLogRepository
from lexcord.repositories.document_repo import Repositories
from lexcord.roles.conflict_engine import RoleConflictEngine
from lexcord.roles.conflict_history import ConflictHistory
from lexcord.services.operation_queue import OperationQueue
from lexcord.util.logger import get_logger

logger = get_logger("runtime")


class LexcordRuntime:
    """
    Wires the components together from configuration.

    Args:
        config: Application configuration; defaults to the shared instance.
        database_path: Overrides ``config.database_path``.
    """

    def __init__(self, config: AppConfig = app_config, database_path: Optional[Path] = None) -> None:
        self.config = config
        self.database_path = database_path or config.database_path

        self.connection = ConnectionManager()
        self.repositories = Repositories.create(self.connection)
        self.audit_log = AuditLogRepository(self.connection)

        self.operation_queue = OperationQueue(timeout_seconds=config.queue_timeout_seconds)
        self.conflict_history = ConflictHistory(limit=config.conflict_history_limit)
        self.conflict_engine = RoleConflictEngine(
            self.audit_log,
            history=self.conflict_history,
            thresholds=config.severity_thresholds,
            progress_interval=config.conflict_progress_interval,
            pause_every=config.conflict_pause_every,
            pause_seconds=config.conflict_pause_seconds,
            bulk_pause_every=config.bulk_resolve_pause_every,
            bulk_pause_seconds=config.bulk_resolve_pause_seconds,
        )
        self.integrity_scanner = IntegrityScanner(
            self.repositories,
            self.audit_log,
            cache_ttl_seconds=config.validation_cache_ttl_seconds,
        )

    async def start(self) -> None:
        """Open the database and create the schema."""
        await self.connection.open(self.database_path)
        logger.info("[RUNTIME] Started with database %s", self.database_path)

    async def shutdown(self) -> None:
        """Reject queued work, then close the database."""
        try:
            await self.operation_queue.shutdown()
        except Exception:
            logger.exception("[RUNTIME] Error while shutting down the operation queue")
        await self.connection.close()
        logger.info("[RUNTIME] Shutdown complete")
