"""Custom exceptions for the application.

This module provides the exception hierarchy for the memory upload
pipeline. Every error a caller can see from a single-file upload or a
delete is one of these types.

Exception Hierarchy:
    MemoryUploadException (base)
    ├── ValidationError
    │   ├── MissingParameterError
    │   ├── InvalidParameterError
    │   ├── SizeLimitExceededError
    │   └── TypeNotAllowedError
    ├── UploadFailedError
    │   └── UploadCancelledError
    ├── PersistenceFailedError
    ├── MemoryNotFoundError
    ├── BlobDeletionError
    └── DeleteFailedError
"""

from typing import Dict, List, Optional, Any


class MemoryUploadException(Exception):
    """Base exception for all memory upload operations.

    All custom exceptions inherit from this base class, providing consistent
    error handling with rich context information and actionable suggestions.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        details: Additional error context (dict)
        original_exception: Original exception if this is a wrapper
        suggestions: List of actionable suggestions for resolving the error
    """

    def __init__(
        self,
        message: str,
        error_code: str = "MEMORY_UPLOAD_ERROR",
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None
    ):
        """Initialize MemoryUploadException.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error identifier
            details: Additional context information
            original_exception: Original exception if wrapping another error
            suggestions: List of suggested actions to resolve the error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.original_exception = original_exception
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response.

        Returns:
            Dictionary suitable for JSON serialization containing error details
        """
        result = {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details
        }
        if self.suggestions:
            result["suggestions"] = self.suggestions
        return result


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(MemoryUploadException):
    """Base class for validation errors.

    Raised before any network or storage call when the input cannot be
    uploaded as given. Never retried automatically.
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('error_code', 'VALIDATION_ERROR')
        super().__init__(message, **kwargs)


class MissingParameterError(ValidationError):
    """Raised when a required parameter is missing.

    Example:
        raise MissingParameterError('user_id')
    """

    def __init__(self, parameter: str, **kwargs):
        message = f"Missing required parameter: {parameter}"
        kwargs.setdefault('error_code', 'MISSING_PARAMETER')
        kwargs.setdefault('details', {}).update({'parameter': parameter})
        super().__init__(message, **kwargs)


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid or out of range.

    Example:
        raise InvalidParameterError('quality', 1.5, 'Must be between 0.0 and 1.0')
    """

    def __init__(
        self,
        parameter: str,
        value: Any,
        reason: Optional[str] = None,
        **kwargs
    ):
        message = f"Invalid value for parameter '{parameter}': {value}"
        if reason:
            message += f" - {reason}"
        kwargs.setdefault('error_code', 'INVALID_PARAMETER')
        kwargs.setdefault('details', {}).update({
            'parameter': parameter,
            'value': str(value),
            'reason': reason
        })
        super().__init__(message, **kwargs)


class SizeLimitExceededError(ValidationError):
    """Raised when a file is larger than the plan allows.

    Example:
        raise SizeLimitExceededError(size=15728640, max_size=10485760, plan='free')
    """

    def __init__(self, size: int, max_size: int, plan: str, **kwargs):
        limit_mb = max_size / (1024 * 1024)
        message = f"File size exceeds {limit_mb:g}MB limit for {plan} plan"
        kwargs.setdefault('error_code', 'SIZE_LIMIT_EXCEEDED')
        kwargs.setdefault('details', {}).update({
            'size': size,
            'max_size': max_size,
            'plan': plan
        })
        kwargs.setdefault('suggestions', [
            "Compress the file or upload a smaller version",
            "Upgrade your plan for larger uploads"
        ])
        super().__init__(message, **kwargs)


class TypeNotAllowedError(ValidationError):
    """Raised when the plan does not allow the file's MIME type.

    Example:
        raise TypeNotAllowedError(file_type='video/mp4', plan='free', allowed=['image/*', 'text/*'])
    """

    def __init__(self, file_type: str, plan: str, allowed: List[str], **kwargs):
        message = f"File type {file_type} not allowed for {plan} plan"
        kwargs.setdefault('error_code', 'TYPE_NOT_ALLOWED')
        kwargs.setdefault('details', {}).update({
            'file_type': file_type,
            'plan': plan,
            'allowed_types': list(allowed)
        })
        kwargs.setdefault('suggestions', [
            f"Upload one of: {', '.join(allowed)}",
            "Upgrade your plan to upload any file type"
        ])
        super().__init__(message, **kwargs)


# ============================================================================
# Transfer Errors
# ============================================================================

class UploadFailedError(MemoryUploadException):
    """Raised when the blob transfer fails.

    Nothing was persisted; the whole pipeline can be retried from scratch.

    Example:
        raise UploadFailedError('IMG_001.jpg', 'Connection reset')
    """

    def __init__(self, file_name: str, reason: str, **kwargs):
        message = f"Upload failed for {file_name}: {reason}"
        kwargs.setdefault('error_code', 'UPLOAD_FAILED')
        kwargs.setdefault('details', {}).update({
            'file_name': file_name,
            'reason': reason
        })
        kwargs.setdefault('suggestions', [
            "Retry the upload",
            "Check network connectivity"
        ])
        super().__init__(message, **kwargs)


class UploadCancelledError(UploadFailedError):
    """Raised when the caller cancelled the upload through its handle."""

    def __init__(self, file_name: str, **kwargs):
        kwargs.setdefault('error_code', 'UPLOAD_CANCELLED')
        kwargs.setdefault('suggestions', [])
        super().__init__(file_name, "cancelled by caller", **kwargs)


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceFailedError(MemoryUploadException):
    """Raised when the memory record could not be written after the blob
    upload succeeded.

    The blob at ``storage_path`` is orphaned and needs cleanup. Not a
    subclass of UploadFailedError: retrying the whole upload would store
    the file twice.

    Example:
        raise PersistenceFailedError('users/u1/memories/1700000000000_abc.jpg', url, 'timeout')
    """

    def __init__(
        self,
        storage_path: str,
        download_url: Optional[str],
        reason: str,
        **kwargs
    ):
        message = f"Failed to create memory document for {storage_path}: {reason}"
        kwargs.setdefault('error_code', 'PERSISTENCE_FAILED')
        kwargs.setdefault('details', {}).update({
            'storage_path': storage_path,
            'download_url': download_url,
            'reason': reason,
            'orphaned_blob': True
        })
        kwargs.setdefault('suggestions', [
            "The uploaded file is stored but not indexed; run the orphan cleanup job",
        ])
        super().__init__(message, **kwargs)
        self.storage_path = storage_path
        self.download_url = download_url


class MemoryNotFoundError(MemoryUploadException):
    """Raised when a memory record does not exist.

    Example:
        raise MemoryNotFoundError('user-123', 'memory-456')
    """

    def __init__(self, user_id: str, memory_id: str, **kwargs):
        message = f"Memory not found: {memory_id}"
        kwargs.setdefault('error_code', 'MEMORY_NOT_FOUND')
        kwargs.setdefault('details', {}).update({
            'user_id': user_id,
            'memory_id': memory_id
        })
        super().__init__(message, **kwargs)


class BlobDeletionError(MemoryUploadException):
    """Raised when a memory's blob could not be deleted.

    The memory record is left in place so the blob stays reachable.
    """

    def __init__(self, storage_path: str, reason: str, **kwargs):
        message = f"Failed to delete file {storage_path}: {reason}"
        kwargs.setdefault('error_code', 'BLOB_DELETION_FAILED')
        kwargs.setdefault('details', {}).update({
            'storage_path': storage_path,
            'reason': reason
        })
        kwargs.setdefault('suggestions', ["Retry the delete"])
        super().__init__(message, **kwargs)


class DeleteFailedError(MemoryUploadException):
    """Raised when the memory record could not be read or removed.

    When ``storage_path`` is set the blob is already gone and the record
    may still point at it.
    """

    def __init__(self, memory_id: str, reason: str, storage_path: Optional[str] = None, **kwargs):
        message = f"Failed to delete memory {memory_id}: {reason}"
        kwargs.setdefault('error_code', 'DELETE_FAILED')
        kwargs.setdefault('details', {}).update({
            'memory_id': memory_id,
            'storage_path': storage_path,
            'reason': reason
        })
        kwargs.setdefault('suggestions', ["Retry the delete"])
        super().__init__(message, **kwargs)
