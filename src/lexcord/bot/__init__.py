"""Discord-facing layer: slash command cogs."""
