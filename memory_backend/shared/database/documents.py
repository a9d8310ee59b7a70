"""
Document-style access to Supabase tables.

The mobile app addresses its data with document paths such as
``users/{userId}/memories/{memoryId}``. This module maps those paths onto
Postgres tables (see ``validators.parse_collection_path``) and exposes
write, update, read, delete and atomic increment operations.

Counters are never updated with read-then-write. ``increment_fields`` calls
the ``increment_counters`` SQL function (see ``migrations/``), which runs a
single ``UPDATE ... SET col = col + delta`` so concurrent uploads for the
same user cannot lose updates.
"""

import logging
from typing import Any, Dict, Optional

from supabase import Client

from .client import get_supabase_admin_client
from .config import DatabaseConfig
from .exceptions import DatabaseError, DocumentNotFoundError, ValidationError
from .retry import is_unsent_error, retry_database_operation
from .validators import parse_collection_path, validate_path_segment


logger = logging.getLogger(__name__)


class DocumentStore:
    """Supabase-backed document database capability."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        """Get Supabase client (lazy initialization)."""
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    def _query(self, collection_path: str, document_id: str, query):
        if not validate_path_segment(document_id):
            raise ValidationError(f"Invalid document ID: {document_id!r}")

        ref = parse_collection_path(collection_path)
        query = query.eq("id", document_id)
        for column, value in ref.scope.items():
            query = query.eq(column, value)
        return query

    def write(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> None:
        """Insert a new document in one statement.

        Args:
            collection_path: Collection path, e.g. ``users/u1/memories``
            document_id: Primary key of the new row
            fields: Column values

        Raises:
            DatabaseError: If the insert fails
        """
        if not validate_path_segment(document_id):
            raise ValidationError(f"Invalid document ID: {document_id!r}")

        ref = parse_collection_path(collection_path)
        row = {**fields, **ref.scope, "id": document_id}

        def _insert():
            return self.client.table(ref.table).insert(row).execute()

        response = retry_database_operation(_insert, should_retry=is_unsent_error)
        if hasattr(response, 'error') and response.error:
            raise DatabaseError(f"Error writing {collection_path}/{document_id}: {response.error}")

    def update(self, collection_path: str, document_id: str, partial_fields: Dict[str, Any]) -> None:
        """Update selected columns of an existing document.

        Raises:
            DocumentNotFoundError: If no row matched
            DatabaseError: If the update fails
        """
        ref = parse_collection_path(collection_path)

        def _update():
            query = self.client.table(ref.table).update(partial_fields)
            return self._query(collection_path, document_id, query).execute()

        response = retry_database_operation(_update)
        if hasattr(response, 'error') and response.error:
            raise DatabaseError(f"Error updating {collection_path}/{document_id}: {response.error}")
        if not response.data:
            raise DocumentNotFoundError(f"Document not found: {collection_path}/{document_id}")

    def read(self, collection_path: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Read one document.

        Returns:
            dict: The row, or None if it does not exist
        """
        ref = parse_collection_path(collection_path)

        def _select():
            query = self.client.table(ref.table).select("*")
            return self._query(collection_path, document_id, query).limit(1).execute()

        response = retry_database_operation(_select)
        if response.data:
            return response.data[0]
        return None

    def delete(self, collection_path: str, document_id: str) -> bool:
        """Delete one document.

        Returns:
            bool: True if a row was deleted, False if none matched
        """
        ref = parse_collection_path(collection_path)

        def _delete():
            query = self.client.table(ref.table).delete()
            return self._query(collection_path, document_id, query).execute()

        response = retry_database_operation(_delete)
        if hasattr(response, 'error') and response.error:
            raise DatabaseError(f"Error deleting {collection_path}/{document_id}: {response.error}")
        return bool(response.data)

    def increment(self, collection_path: str, document_id: str, field: str, delta: float) -> None:
        """Atomically add ``delta`` to one numeric column."""
        self.increment_fields(collection_path, document_id, {field: delta})

    def increment_fields(self, collection_path: str, document_id: str, deltas: Dict[str, float]) -> None:
        """Atomically add deltas to several numeric columns of one row.

        All columns are changed by the same UPDATE statement, so the row is
        either fully updated or untouched.

        Raises:
            DocumentNotFoundError: If the target row does not exist
            DatabaseError: If the RPC call fails
        """
        if not deltas:
            return
        if not validate_path_segment(document_id):
            raise ValidationError(f"Invalid document ID: {document_id!r}")

        ref = parse_collection_path(collection_path)
        params = {
            "p_table": ref.table,
            "p_id": document_id,
            "p_deltas": deltas,
            "p_scope": ref.scope,
        }

        def _rpc():
            return self.client.rpc(DatabaseConfig.INCREMENT_FUNCTION, params).execute()

        response = retry_database_operation(_rpc, should_retry=is_unsent_error)
        if hasattr(response, 'error') and response.error:
            raise DatabaseError(
                f"Error incrementing {collection_path}/{document_id}: {response.error}"
            )
        # The function returns the number of rows it touched
        if response.data in (0, None, []):
            raise DocumentNotFoundError(f"Document not found: {collection_path}/{document_id}")
