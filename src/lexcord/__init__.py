"""Lexcord: staffing consistency layer for a Discord law firm role-play community."""
