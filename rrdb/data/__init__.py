"""Snapshot encoding and on-disk persistence."""
