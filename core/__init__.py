"""Shared infrastructure: configuration, event log, sqlite and time helpers."""
