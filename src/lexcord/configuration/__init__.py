"""
Configuration management for Lexcord.

- **app_configuration.py**: File-locked YAML loader for global settings: the
  document store path, the staffing queue timeout, the integrity validation
  cache TTL, and the role-conflict scan pacing, history size and severity
  thresholds. Falls back to defaults on missing or malformed config files.
"""
