"""
Data types shared across Lexcord.

- **discord_datatypes.py**: Snowflake wrappers (UserID, GuildID, RoleID) and DiscordUsername.
- **staff_datatypes.py**: Staff ranks, role conflicts, severity thresholds and conflict reports.
- **integrity_datatypes.py**: Validation rules, issues, integrity reports and repair results.
- **audit_datatypes.py**: Audit actions and entries.
"""
