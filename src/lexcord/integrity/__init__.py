"""Cross-entity integrity scanning and repair for guild staffing records."""
from lexcord.integrity.scanner import IntegrityScanner
from lexcord.integrity.validation_cache import ValidationCache

__all__ = ["IntegrityScanner", "ValidationCache"]
