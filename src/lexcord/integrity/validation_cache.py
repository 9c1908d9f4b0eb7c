"""
Short-lived cache of per-entity validation results.

Keys are ``"<entity_type>:<entity_id>"``. Entries expire after the TTL and
the scanner clears the whole cache at the start of each scan and after each
repair pass.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

from lexcord.datatypes.integrity_datatypes import EntityType, ValidationIssue
from lexcord.util.logger import get_logger

logger = get_logger("validation_cache")


def cache_key(entity_type: EntityType, entity_id: str) -> str:
    return f"{entity_type.value}:{entity_id}"


class ValidationCache:
    """TTL-based cache of validation results."""

    def __init__(self, ttl_seconds: float = 300.0):
        self._cache: Dict[str, Tuple[float, List[ValidationIssue]]] = {}
        self._ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[List[ValidationIssue]]:
        """
        Return the cached issues for ``key`` if still fresh.

        Returns:
            A copy of the cached list, or None when missing or expired.
        """
        entry = self._cache.get(key)
        if entry is None:
            return None
        stored_at, issues = entry
        if time.monotonic() - stored_at < self._ttl_seconds:
            logger.debug("[VALIDATION CACHE] Hit for key: %s", key)
            return list(issues)
        del self._cache[key]
        logger.debug("[VALIDATION CACHE] Expired key: %s", key)
        return None

    def set(self, key: str, issues: List[ValidationIssue]) -> None:
        self._cache[key] = (time.monotonic(), list(issues))

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """
        Drop entries whose key contains ``pattern``, or every entry when None.

        Returns:
            Number of entries dropped.
        """
        if pattern is None:
            count = len(self._cache)
            self._cache.clear()
            logger.debug("[VALIDATION CACHE] Cleared all %d entries", count)
            return count
        keys = [key for key in self._cache if pattern in key]
        for key in keys:
            del self._cache[key]
        logger.debug("[VALIDATION CACHE] Cleared %d entries matching '%s'", len(keys), pattern)
        return len(keys)

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self._cache), "ttl_seconds": self._ttl_seconds}

    def __len__(self) -> int:
        return len(self._cache)
