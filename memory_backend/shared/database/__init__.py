"""Database client and operations.

This package provides:
- Supabase client management (client.py)
- Configuration constants (config.py)
- Custom exceptions (exceptions.py)
- Input validation (validators.py)
- Retry with backoff (retry.py)
- Document-style table access with atomic counters (documents.py)
- Object storage with resumable uploads (storage.py)
"""

from .client import (
    get_supabase_admin_client,
)

from .config import (
    DatabaseConfig,
    TableNames,
    BucketNames,
    StorageConfig,
)

from .exceptions import (
    DatabaseError,
    DocumentNotFoundError,
    ValidationError,
    StorageError,
    ConfigurationError,
    TransferCancelledError,
)

from .documents import DocumentStore
from .storage import ObjectStorage, StoredObject

__all__ = [
    # Client
    'get_supabase_admin_client',

    # Configuration
    'DatabaseConfig',
    'TableNames',
    'BucketNames',
    'StorageConfig',

    # Exceptions
    'DatabaseError',
    'DocumentNotFoundError',
    'ValidationError',
    'StorageError',
    'ConfigurationError',
    'TransferCancelledError',

    # Capabilities
    'DocumentStore',
    'ObjectStorage',
    'StoredObject',
]
