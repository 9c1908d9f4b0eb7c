"""
Database package for Lexcord.

Public API:
    - ConnectionManager: owner of the single aiosqlite connection
    - SchemaManager: document, audit log and schema version tables
"""
from lexcord.database.db_connection import ConnectionManager
from lexcord.database.db_schema import SchemaManager

__all__ = ["ConnectionManager", "SchemaManager"]
