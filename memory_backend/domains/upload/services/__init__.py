# Upload Services
from domains.upload.services.validator import validate_file, is_type_allowed, type_matches
from domains.upload.services.processor import FileProcessor, canonical_name
from domains.upload.services.progress import ProgressTracker
from domains.upload.services.uploader import (
    BlobUploader,
    UploadHandle,
    generate_file_name,
    build_storage_path
)
from domains.upload.services.persistence import (
    AggregateUpdate,
    AggregateUpdater,
    MetadataWriter,
    memories_collection,
    folders_collection
)
from domains.upload.services.batch import BatchCoordinator
from domains.upload.services.pipeline import UploadService

__all__ = [
    'validate_file',
    'is_type_allowed',
    'type_matches',
    'FileProcessor',
    'canonical_name',
    'ProgressTracker',
    'BlobUploader',
    'UploadHandle',
    'generate_file_name',
    'build_storage_path',
    'AggregateUpdate',
    'AggregateUpdater',
    'MetadataWriter',
    'memories_collection',
    'folders_collection',
    'BatchCoordinator',
    'UploadService'
]
