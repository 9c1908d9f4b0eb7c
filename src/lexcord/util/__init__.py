"""
Utility helpers for Lexcord.

- **logger.py**: Centralized logging configuration with colored console output
  through prompt_toolkit and a rotating per-session log file. Silences the
  chattier Discord and database internals.
"""
