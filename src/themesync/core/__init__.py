"""Core theme sync logic: data model, theme resolution and settings extraction."""
