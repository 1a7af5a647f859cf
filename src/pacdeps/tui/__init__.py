"""Textual explorer for pacdeps snapshots."""
