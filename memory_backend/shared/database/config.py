"""
Database configuration constants.

This module centralizes all configuration constants for database and
storage operations, including retry settings, timeouts, table names and
the resumable upload protocol settings.
"""

import os


class DatabaseConfig:
    """Technical configuration constants for database operations."""

    # Retry settings
    DEFAULT_RETRY_ATTEMPTS = 3
    DEFAULT_INITIAL_DELAY = 1.0

    # Timeout settings (seconds)
    DEFAULT_TIMEOUT_CONNECT = 30.0
    DEFAULT_TIMEOUT_POOL = 30.0

    # Postgres function used for atomic counter updates
    INCREMENT_FUNCTION = "increment_counters"


class TableNames:
    """Database table names - centralized to avoid magic strings."""

    USERS = "users"
    MEMORIES = "memories"
    FOLDERS = "folders"

    # Collection segment -> owner column used to scope child collections
    OWNER_COLUMNS = {
        USERS: "user_id",
    }

    @classmethod
    def all(cls):
        return (cls.USERS, cls.MEMORIES, cls.FOLDERS)


class BucketNames:
    """Supabase Storage bucket names."""

    MEMORIES = os.getenv("MEMORY_BUCKET", "memories")


class StorageConfig:
    """Resumable (TUS) upload settings for Supabase Storage."""

    TUS_VERSION = "1.0.0"
    RESUMABLE_ENDPOINT = "/storage/v1/upload/resumable"

    # Supabase requires every chunk except the last to be exactly 6 MiB
    CHUNK_SIZE = 6 * 1024 * 1024

    MAX_RESUME_ATTEMPTS = 3
    RESUME_INITIAL_DELAY = 0.5

    CACHE_CONTROL = "3600"

    DEFAULT_TIMEOUT = 120.0
