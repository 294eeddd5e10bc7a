"""Core logic: configuration, entry resolution, sync and check."""
