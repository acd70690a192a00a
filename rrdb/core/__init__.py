"""Core primitives: timebox alignment and the consolidating ring store."""
