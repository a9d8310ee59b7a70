"""
Metadata Writer and Aggregate Updater

Writes MemoryRecords after a successful blob upload and keeps the per-user
and per-folder counters in step with them.

Consistency model:
- The record write is a single insert; it either lands or it doesn't.
- Counter updates run after the record write, each as one atomic
  increment (never read-then-write). They are best-effort: a failed
  counter update is logged with ``event=aggregate_update_failed`` and
  reported in the returned AggregateUpdate, but does not fail the upload
  or delete that triggered it.
- A record write that fails after the blob upload leaves an orphaned blob.
  That is reported as PersistenceFailedError and logged with
  ``event=orphaned_blob`` for the cleanup job.
- A record delete that fails after the blob was removed leaves a dangling
  record. That is reported as DeleteFailedError and logged with
  ``event=dangling_record``.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from domains.upload.models import (
    DeleteResult,
    MemoryRecord,
    ProcessedFile,
    UploadOptions,
    UploadResult,
)
from shared.database import DocumentStore, ObjectStorage
from shared.database.config import TableNames
from shared.database.exceptions import DatabaseError, StorageError
from shared.exceptions import (
    BlobDeletionError,
    DeleteFailedError,
    MemoryNotFoundError,
    PersistenceFailedError,
)

logger = logging.getLogger(__name__)


def memories_collection(user_id: str) -> str:
    return f"{TableNames.USERS}/{user_id}/{TableNames.MEMORIES}"


def folders_collection(user_id: str) -> str:
    return f"{TableNames.USERS}/{user_id}/{TableNames.FOLDERS}"


@dataclass(frozen=True)
class AggregateUpdate:
    """Outcome of the best-effort counter updates for one create/delete."""

    user_updated: bool
    folder_updated: Optional[bool] = None

    @property
    def ok(self) -> bool:
        return self.user_updated and self.folder_updated is not False


class AggregateUpdater:
    """Maintains users.storage_used / users.total_files and folders.file_count."""

    def __init__(self, documents: Optional[DocumentStore] = None):
        self.documents = documents or DocumentStore()

    def _increment(self, target: str, collection_path: str, document_id: str, deltas: Dict[str, int]) -> bool:
        try:
            self.documents.increment_fields(collection_path, document_id, deltas)
            return True
        except DatabaseError as e:
            logger.warning(
                f"Failed to update {target} stats for {collection_path}/{document_id}: {e}",
                extra={
                    "event": "aggregate_update_failed",
                    "target": target,
                    "collection_path": collection_path,
                    "document_id": document_id,
                    "deltas": deltas,
                }
            )
            return False

    def apply(self, user_id: str, file_size: int, folder_id: Optional[str] = None, sign: int = 1) -> AggregateUpdate:
        """Add (sign=1) or remove (sign=-1) one file from the counters."""
        folder_updated = None
        if folder_id:
            folder_updated = self._increment(
                "folder", folders_collection(user_id), folder_id, {"file_count": sign}
            )

        user_updated = self._increment(
            "user", TableNames.USERS, user_id,
            {"storage_used": sign * file_size, "total_files": sign}
        )
        return AggregateUpdate(user_updated=user_updated, folder_updated=folder_updated)


class MetadataWriter:
    """Creates and deletes MemoryRecords together with their blobs' counters."""

    def __init__(
        self,
        documents: Optional[DocumentStore] = None,
        storage: Optional[ObjectStorage] = None,
        aggregates: Optional[AggregateUpdater] = None
    ):
        self.documents = documents or DocumentStore()
        self.storage = storage or ObjectStorage()
        self.aggregates = aggregates or AggregateUpdater(self.documents)

    def persist(
        self,
        user_id: str,
        processed: ProcessedFile,
        upload: UploadResult,
        options: Optional[UploadOptions] = None,
        original_name: Optional[str] = None
    ) -> MemoryRecord:
        """Write the record for an uploaded blob and bump the counters.

        Raises:
            PersistenceFailedError: If the record write failed (blob orphaned)
        """
        options = options or UploadOptions()
        record = MemoryRecord.new(
            user_id,
            file_name=processed.name,
            original_name=original_name or processed.name,
            file_type=processed.mime_type,
            file_size=processed.size,
            download_url=upload.download_url,
            storage_path=upload.storage_path,
            width=processed.width,
            height=processed.height,
            compressed=processed.compressed,
            folder_id=options.folder_id,
            category=options.category,
            tags=list(options.tags),
            description=options.description,
            is_public=options.is_public,
        )

        try:
            self.documents.write(memories_collection(user_id), record.id, record.to_document())
        except DatabaseError as e:
            logger.error(
                f"Failed to create memory document, blob orphaned at {upload.storage_path}: {e}",
                extra={
                    "event": "orphaned_blob",
                    "user_id": user_id,
                    "storage_path": upload.storage_path,
                }
            )
            raise PersistenceFailedError(
                upload.storage_path, upload.download_url, str(e), original_exception=e
            )

        self.aggregates.apply(user_id, record.file_size, record.folder_id, sign=1)
        return record

    def delete(self, user_id: str, memory_id: str) -> DeleteResult:
        """Delete a memory's blob, then its record, then reverse its counters.

        Raises:
            MemoryNotFoundError: If the record does not exist
            BlobDeletionError: If the blob could not be deleted; the record
                is kept in that case
            DeleteFailedError: If the record could not be read or removed
        """
        collection = memories_collection(user_id)
        try:
            row = self.documents.read(collection, memory_id)
        except DatabaseError as e:
            raise DeleteFailedError(memory_id, str(e), original_exception=e)
        if row is None:
            raise MemoryNotFoundError(user_id, memory_id)

        record = MemoryRecord.from_document(row)

        if record.storage_path:
            try:
                removed = self.storage.delete(record.storage_path)
            except StorageError as e:
                raise BlobDeletionError(record.storage_path, str(e), original_exception=e)
            if not removed:
                logger.warning(f"Blob for memory {memory_id} was already missing: {record.storage_path}")

        try:
            deleted = self.documents.delete(collection, memory_id)
        except DatabaseError as e:
            logger.error(
                f"Failed to delete memory document {memory_id}, record still points at "
                f"removed blob {record.storage_path}: {e}",
                extra={
                    "event": "dangling_record",
                    "user_id": user_id,
                    "memory_id": memory_id,
                    "storage_path": record.storage_path,
                }
            )
            raise DeleteFailedError(memory_id, str(e), storage_path=record.storage_path, original_exception=e)
        if not deleted:
            # Deleted concurrently; counters were already reversed there
            raise MemoryNotFoundError(user_id, memory_id)

        aggregates = self.aggregates.apply(user_id, record.file_size, record.folder_id, sign=-1)
        logger.info(f"Deleted memory {memory_id} for user {user_id}")
        return DeleteResult(
            success=True,
            deleted_memory_id=memory_id,
            aggregates_updated=aggregates.ok
        )
