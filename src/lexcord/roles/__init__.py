"""
Staff rank hierarchy and role conflict handling.

Public API:
    - RankTable / score_conflict_severity: rank lookup and severity scoring
    - ConflictHistory: per-guild resolution history
    - RoleConflictEngine: detection, resolution, scans and reports
"""
from lexcord.roles.conflict_engine import RoleConflictEngine
from lexcord.roles.conflict_history import ConflictHistory
from lexcord.roles.rank_table import DEFAULT_RANKS, RankDefinition, RankTable, score_conflict_severity

__all__ = [
    "ConflictHistory",
    "DEFAULT_RANKS",
    "RankDefinition",
    "RankTable",
    "RoleConflictEngine",
    "score_conflict_severity",
]
