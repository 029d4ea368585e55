"""Defaults shared by the list models."""

from __future__ import annotations

DEFAULT_ATTEMPTS_COUNT = 3
DEFAULT_BATCH_SIZE = 256

# Keys read from the settings collaborator.
SETTINGS_ATTEMPTS_KEY = "server.attempts"
SETTINGS_BATCH_SIZE_KEY = "server.batch_size"
SETTINGS_UPDATED_AT_SUFFIX = "updated_at"

# Connections kept per SQLite database.
DEFAULT_POOL_SIZE = 5
