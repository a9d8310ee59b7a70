"""
Blob Uploader
Streams processed files to Supabase Storage under users/{userId}/memories/
"""
import logging
import secrets
import string
import threading
import time
from datetime import datetime, timezone
from typing import Optional

from domains.upload.config import UploadConfig
from domains.upload.models import ProcessedFile, UploadResult
from domains.upload.services.progress import ProgressCallback, ProgressTracker
from shared.database import ObjectStorage
from shared.database.exceptions import TransferCancelledError
from shared.database.validators import file_extension, validate_path_segment
from shared.exceptions import InvalidParameterError, UploadCancelledError, UploadFailedError

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_SUFFIX_LENGTH = 9


class UploadHandle:
    """Cancellation and progress handle for one in-flight upload.

    Thread-safe; ``cancel()`` may be called from any thread. Cancellation
    is honoured up to the moment metadata persistence starts.
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self.progress = 0.0

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


def generate_file_name(original_name: Optional[str]) -> str:
    """Collision-resistant storage name: ``{epoch_ms}_{9 base36 chars}.{ext}``.

    Only the extension of the caller-supplied name is kept.
    """
    timestamp = int(time.time() * 1000)
    suffix = ''.join(secrets.choice(BASE36_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    return f"{timestamp}_{suffix}.{file_extension(original_name)}"


def build_storage_path(user_id: str, file_name: str) -> str:
    """Blob path for a user's memory: ``users/{userId}/memories/{fileName}``."""
    if not validate_path_segment(user_id):
        raise InvalidParameterError('user_id', user_id, 'Must not contain path separators')
    if not validate_path_segment(file_name):
        raise InvalidParameterError('file_name', file_name, 'Must not contain path separators')
    return f"users/{user_id}/memories/{file_name}"


class BlobUploader:
    """Uploads ProcessedFile bytes and returns a durable reference."""

    def __init__(self, storage: Optional[ObjectStorage] = None):
        self.storage = storage or ObjectStorage()

    def upload(
        self,
        processed: ProcessedFile,
        user_id: str,
        original_name: Optional[str] = None,
        category: str = UploadConfig.DEFAULT_CATEGORY,
        handle: Optional[UploadHandle] = None,
        on_progress: Optional[ProgressCallback] = None,
        deadline: Optional[float] = None
    ) -> UploadResult:
        """Transfer one file.

        Raises:
            UploadCancelledError: If ``handle`` was cancelled mid-transfer
            UploadFailedError: On any transport or storage failure
        """
        file_name = generate_file_name(processed.name)
        storage_path = build_storage_path(user_id, file_name)

        def report(fraction: float, sent: int, total: int) -> None:
            if handle is not None:
                handle.progress = fraction
            if on_progress:
                on_progress(fraction, sent, total)

        tracker = ProgressTracker(report)
        custom_metadata = {
            "originalName": original_name or "unknown",
            "category": category,
            "userId": user_id,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }

        display_name = original_name or processed.name
        try:
            stored = self.storage.put(
                storage_path,
                processed.content,
                processed.mime_type,
                custom_metadata=custom_metadata,
                on_progress=tracker.update,
                should_cancel=(lambda: handle.cancelled) if handle is not None else None,
                deadline=deadline,
            )
        except TransferCancelledError as e:
            logger.info(f"Upload cancelled for {display_name} ({storage_path})")
            raise UploadCancelledError(display_name, original_exception=e)
        except Exception as e:
            logger.error(f"Upload error for {display_name}: {e}")
            raise UploadFailedError(display_name, str(e), original_exception=e)

        return UploadResult(
            file_name=file_name,
            storage_path=stored.path,
            download_url=stored.download_url,
        )
