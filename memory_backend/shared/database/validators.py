"""
Input validation functions for database operations.

This module provides validation functions for document IDs, collection
paths, storage paths and filename sanitization.
"""

import re
from dataclasses import dataclass, field
from typing import Dict

from .config import TableNames
from .exceptions import ValidationError


SAFE_EXTENSION_PATTERN = re.compile(r'^[A-Za-z0-9]{1,10}$')


@dataclass(frozen=True)
class CollectionRef:
    """Table and owner filters resolved from a collection path."""

    table: str
    scope: Dict[str, str] = field(default_factory=dict)


def validate_path_segment(segment: str) -> bool:
    """Validate a single path segment (user ID, folder ID, file name).

    Args:
        segment: Path segment to validate

    Returns:
        bool: True if the segment is non-empty and cannot escape its prefix
    """
    if not segment or not isinstance(segment, str):
        return False
    if '/' in segment or '\\' in segment:
        return False
    return segment not in ('.', '..')


def parse_collection_path(collection_path: str) -> CollectionRef:
    """Resolve a document-style collection path to a table and owner scope.

    Paths alternate collection and document segments, e.g.
    ``users/{userId}/memories`` maps to the ``memories`` table filtered by
    ``user_id``.

    Args:
        collection_path: Slash-separated collection path

    Returns:
        CollectionRef: Target table plus equality filters

    Raises:
        ValidationError: If the path is malformed or names an unknown table
    """
    if not collection_path or not isinstance(collection_path, str):
        raise ValidationError(f"Invalid collection path: {collection_path!r}")

    segments = collection_path.strip('/').split('/')
    if len(segments) % 2 == 0:
        raise ValidationError(
            f"Collection path must end with a collection name: {collection_path}"
        )

    scope = {}
    for index in range(0, len(segments) - 1, 2):
        parent, parent_id = segments[index], segments[index + 1]
        owner_column = TableNames.OWNER_COLUMNS.get(parent)
        if owner_column is None:
            raise ValidationError(f"Unknown parent collection '{parent}' in {collection_path}")
        if not validate_path_segment(parent_id):
            raise ValidationError(f"Invalid document ID in collection path: {collection_path}")
        scope[owner_column] = parent_id

    table = segments[-1]
    if table not in TableNames.all():
        raise ValidationError(f"Unknown collection '{table}' in {collection_path}")

    return CollectionRef(table=table, scope=scope)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal attacks.

    Removes path separators and parent directory references.

    Args:
        filename: Original filename from user input

    Returns:
        str: Sanitized filename safe for storage paths
    """
    if not filename:
        return ""
    return re.sub(r'[/\\]|\.\.', '', filename)


def file_extension(filename: str, default: str = "unknown") -> str:
    """Extract a safe, lowercase extension from a caller-supplied name.

    Args:
        filename: Original filename (may be empty)
        default: Value returned when no usable extension exists

    Returns:
        str: Extension without the leading dot
    """
    name = sanitize_filename(filename or "")
    if '.' not in name:
        return default
    extension = name.rsplit('.', 1)[1]
    if not SAFE_EXTENSION_PATTERN.match(extension):
        return default
    return extension.lower()
