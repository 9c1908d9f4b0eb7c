from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from lexcord.datatypes.staff_datatypes import SeverityThresholds
from lexcord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    Caches the contents of ``./config/app_config.yml`` and exposes typed
    shortcuts with defaults for every setting the staffing core reads.
    A missing or malformed file yields the defaults.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping; using defaults.", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        value = self._section("database").get("path", "data/lexcord.db")
        return Path(str(value))

    @property
    def queue_timeout_seconds(self) -> float:
        """Seconds an operation may wait in the staffing queue before it is rejected."""
        return float(self._section("operation_queue").get("timeout_seconds", 30.0))

    @property
    def validation_cache_ttl_seconds(self) -> float:
        return float(self._section("integrity").get("cache_ttl_seconds", 300.0))

    @property
    def conflict_progress_interval(self) -> int:
        """Number of members between two progress callbacks during a guild scan."""
        return int(self._section("role_conflicts").get("progress_interval", 10))

    @property
    def conflict_pause_every(self) -> int:
        return int(self._section("role_conflicts").get("pause_every", 50))

    @property
    def conflict_pause_seconds(self) -> float:
        return float(self._section("role_conflicts").get("pause_seconds", 1.0))

    @property
    def bulk_resolve_pause_every(self) -> int:
        return int(self._section("role_conflicts").get("bulk_pause_every", 10))

    @property
    def bulk_resolve_pause_seconds(self) -> float:
        return float(self._section("role_conflicts").get("bulk_pause_seconds", 0.5))

    @property
    def conflict_history_limit(self) -> int:
        """Resolutions kept per guild before the oldest are dropped."""
        return int(self._section("role_conflicts").get("history_limit", 100))

    @property
    def severity_thresholds(self) -> SeverityThresholds:
        """Return the conflict severity cut-offs.

        Falls back to the defaults when the configured values are inconsistent.
        """
        section = self._section("role_conflicts").get("severity", {})
        if not isinstance(section, dict):
            section = {}
        try:
            return SeverityThresholds(
                high_gap=int(section.get("high_gap", 3)),
                medium_gap=int(section.get("medium_gap", 2)),
                senior_level=int(section.get("senior_level", 5)),
            )
        except (TypeError, ValueError) as exc:
            logger.error("[APP CONFIGURATION] Invalid severity thresholds (%s); using defaults.", exc)
            return SeverityThresholds()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
