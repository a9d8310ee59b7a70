# Upload Domain
# Memory uploads: plan validation, image compression, resumable blob
# transfer, metadata records and per-user/per-folder counters
#
# Components:
# - services/: Pipeline steps
#   - validator.py: Plan-based size/type checks
#   - processor.py: Optional image compression
#   - uploader.py: Resumable blob upload with progress and cancellation
#   - persistence.py: MemoryRecord writes, deletes and counter updates
#   - batch.py: Bounded-concurrency batch uploads
#   - pipeline.py: UploadService tying the steps together
# - models.py: Value objects passed between steps
# - config.py: Plan limits, compression settings, upload constants

from domains.upload.services.pipeline import UploadService
from domains.upload.services.uploader import UploadHandle
from domains.upload.models import (
    UploadCandidate,
    UploadOptions,
    BatchOptions,
    MemoryRecord,
    BatchResult,
    DeleteResult
)

__all__ = [
    'UploadService',
    'UploadHandle',
    'UploadCandidate',
    'UploadOptions',
    'BatchOptions',
    'MemoryRecord',
    'BatchResult',
    'DeleteResult'
]
