"""
Database exception classes.

This module defines all custom exceptions for database and storage
operations, providing a clear hierarchy for error handling.
"""


class DatabaseError(Exception):
    """Base exception for database operations.

    All database-related exceptions inherit from this class,
    allowing for broad exception catching when needed.
    """
    pass


class DocumentNotFoundError(DatabaseError):
    """Raised when a document cannot be found.

    This exception is raised when:
    - An update targets a row that does not exist
    - A counter increment targets a row that does not exist
    """
    pass


class ValidationError(DatabaseError):
    """Raised when input validation fails.

    This exception is raised when:
    - A collection path is malformed
    - A document ID is empty
    - A storage path escapes its prefix
    """
    pass


class StorageError(DatabaseError):
    """Raised when file storage operations fail.

    This exception is raised when:
    - A resumable upload session cannot be created or continued
    - File deletion from Supabase Storage fails
    - A public URL cannot be resolved
    """
    pass


class ConfigurationError(DatabaseError):
    """Raised when configuration is invalid.

    This exception is raised when:
    - Supabase client is not available
    - Required environment variables are missing
    """
    pass


class TransferCancelledError(StorageError):
    """Raised when a caller cancels an in-flight resumable upload.

    The upload session has already been terminated when this is raised,
    so no partial object is left in the bucket.
    """
    pass
