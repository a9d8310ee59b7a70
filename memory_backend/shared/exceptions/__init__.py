"""Custom exceptions for error handling"""
from shared.exceptions.errors import (
    MemoryUploadException,
    ValidationError,
    MissingParameterError,
    InvalidParameterError,
    SizeLimitExceededError,
    TypeNotAllowedError,
    UploadFailedError,
    UploadCancelledError,
    PersistenceFailedError,
    MemoryNotFoundError,
    BlobDeletionError,
    DeleteFailedError
)

__all__ = [
    'MemoryUploadException',
    'ValidationError',
    'MissingParameterError',
    'InvalidParameterError',
    'SizeLimitExceededError',
    'TypeNotAllowedError',
    'UploadFailedError',
    'UploadCancelledError',
    'PersistenceFailedError',
    'MemoryNotFoundError',
    'BlobDeletionError',
    'DeleteFailedError'
]
