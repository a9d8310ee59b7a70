"""
Upload Service
Validate -> Process -> Upload -> Persist -> Aggregate for one file, plus
delete and batch entry points.
"""
import logging
from dataclasses import replace
from typing import Optional, Sequence

from domains.upload.models import (
    BatchOptions,
    BatchResult,
    DeleteResult,
    MemoryRecord,
    UploadCandidate,
    UploadOptions,
    read_content,
)
from domains.upload.services.batch import BatchCoordinator
from domains.upload.services.persistence import AggregateUpdater, MetadataWriter
from domains.upload.services.processor import FileProcessor
from domains.upload.services.uploader import BlobUploader
from domains.upload.services.validator import validate_file
from shared.database import DocumentStore, ObjectStorage
from shared.database.exceptions import StorageError
from shared.exceptions import (
    MemoryUploadException,
    MissingParameterError,
    UploadCancelledError,
    UploadFailedError,
)
from shared.media import ImageTransformer

logger = logging.getLogger(__name__)


class UploadService:
    """Entry point for memory uploads and deletes."""

    def __init__(
        self,
        storage: Optional[ObjectStorage] = None,
        documents: Optional[DocumentStore] = None,
        transformer: Optional[ImageTransformer] = None
    ):
        self.storage = storage or ObjectStorage()
        self.documents = documents or DocumentStore()
        self.processor = FileProcessor(transformer)
        self.uploader = BlobUploader(self.storage)
        self.aggregates = AggregateUpdater(self.documents)
        self.writer = MetadataWriter(self.documents, self.storage, self.aggregates)
        self.coordinator = BatchCoordinator(self.upload_file)

    def upload_file(
        self,
        candidate: UploadCandidate,
        user_id: str,
        options: Optional[UploadOptions] = None
    ) -> MemoryRecord:
        """
        Upload one file and create its memory record.

        Either returns the complete MemoryRecord or raises exactly one
        MemoryUploadException subclass. ``options.on_error`` is called with
        that exception before it is raised; ``options.on_complete`` is
        called with the record on success.

        Raises:
            MissingParameterError: If ``candidate`` or ``user_id`` is missing
            SizeLimitExceededError, TypeNotAllowedError: Plan limits
            UploadFailedError: Transfer failed; nothing was persisted
            UploadCancelledError: Cancelled through ``options.handle``
            PersistenceFailedError: Blob uploaded but record not written
        """
        options = options or UploadOptions()
        try:
            record = self._upload(candidate, user_id, options)
        except MemoryUploadException as e:
            if options.on_error:
                options.on_error(e)
            raise

        if options.on_complete:
            options.on_complete(record)
        return record

    def _upload(self, candidate: UploadCandidate, user_id: str, options: UploadOptions) -> MemoryRecord:
        if not user_id:
            raise MissingParameterError('user_id')
        if candidate is None or candidate.content is None:
            raise MissingParameterError('file')

        display_name = candidate.name or 'file'

        if candidate.size is None:
            # Path or URI without a declared size: size is needed for validation
            try:
                content = read_content(candidate.content)
            except OSError as e:
                raise UploadFailedError(display_name, f"Could not read file: {e}", original_exception=e)
            candidate = replace(candidate, content=content, size=len(content))

        validate_file(candidate, options.plan_tier)

        try:
            processed = self.processor.process(candidate, options.compression)
        except OSError as e:
            raise UploadFailedError(display_name, f"Could not read file: {e}", original_exception=e)

        handle = options.handle
        upload = self.uploader.upload(
            processed,
            user_id,
            original_name=candidate.name,
            category=options.category,
            handle=handle,
            on_progress=options.on_progress,
            deadline=options.deadline,
        )

        # Last point at which cancellation is honoured
        if handle is not None and handle.cancelled:
            self._discard_blob(upload.storage_path)
            raise UploadCancelledError(display_name)

        record = self.writer.persist(user_id, processed, upload, options, original_name=candidate.name)
        logger.info(f"Uploaded memory {record.id} for user {user_id} ({record.file_size} bytes)")
        return record

    def _discard_blob(self, storage_path: str) -> None:
        try:
            self.storage.delete(storage_path)
        except StorageError as e:
            logger.error(
                f"Failed to remove blob of cancelled upload {storage_path}: {e}",
                extra={"event": "orphaned_blob", "storage_path": storage_path}
            )

    def delete_file(self, user_id: str, memory_id: str) -> DeleteResult:
        """
        Delete a memory: blob, then record, then counters.

        Raises:
            MissingParameterError: If ``user_id`` or ``memory_id`` is missing
            MemoryNotFoundError: If the memory does not exist
            BlobDeletionError: If the blob could not be deleted (record kept)
            DeleteFailedError: If the record could not be read or removed
        """
        if not user_id:
            raise MissingParameterError('user_id')
        if not memory_id:
            raise MissingParameterError('memory_id')
        return self.writer.delete(user_id, memory_id)

    def batch_upload(
        self,
        files: Sequence[UploadCandidate],
        user_id: str,
        options: Optional[BatchOptions] = None
    ) -> BatchResult:
        """Upload many files with bounded concurrency. Never raises per-file errors."""
        return self.coordinator.run(files, user_id, options)
