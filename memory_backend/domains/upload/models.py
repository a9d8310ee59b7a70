"""
Upload Domain Models
Value objects passed between the pipeline steps and returned to callers
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import unquote, urlparse

from domains.upload.config import CompressionConfig, PlanTier, UploadConfig
from shared.exceptions import InvalidParameterError

ContentRef = Union[bytes, bytearray, str, Path]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


def read_content(content: ContentRef) -> bytes:
    """Load the bytes behind a buffer, local path or ``file://`` URI.

    Raises:
        OSError: If the referenced file cannot be read
    """
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if isinstance(content, str) and content.startswith('file://'):
        content = unquote(urlparse(content).path)
    with open(content, 'rb') as f:
        return f.read()


@dataclass
class UploadCandidate:
    """A caller-supplied file, before validation. Never persisted."""

    content: ContentRef
    mime_type: Optional[str] = None
    size: Optional[int] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.size is None and isinstance(self.content, (bytes, bytearray)):
            self.size = len(self.content)

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type) and self.mime_type.startswith('image/')


@dataclass
class ProcessedFile:
    """Candidate after optional compression; owned by one pipeline run."""

    content: bytes
    mime_type: str
    size: int
    name: str
    width: Optional[int] = None
    height: Optional[int] = None
    compressed: bool = False


@dataclass(frozen=True)
class UploadResult:
    """Where the blob uploader put the bytes."""

    file_name: str
    storage_path: str
    download_url: str


@dataclass
class MemoryRecord:
    """Persisted metadata for one stored memory.

    ``storage_path`` and ``download_url`` are set together or not at all.
    """

    id: str
    user_id: str
    file_name: str
    original_name: str
    file_type: str
    file_size: int
    download_url: Optional[str] = None
    storage_path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    compressed: bool = False
    folder_id: Optional[str] = None
    category: str = UploadConfig.DEFAULT_CATEGORY
    tags: List[str] = field(default_factory=list)
    description: str = ""
    is_public: bool = False
    shared_with: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    upload_source: str = UploadConfig.UPLOAD_SOURCE
    upload_version: str = UploadConfig.UPLOAD_VERSION

    def __post_init__(self):
        if (self.storage_path is None) != (self.download_url is None):
            raise InvalidParameterError(
                'storage_path', self.storage_path,
                'storage_path and download_url must be set together'
            )

    @classmethod
    def new(cls, user_id: str, **attributes) -> "MemoryRecord":
        """Create a record with a freshly generated ID."""
        return cls(id=str(uuid.uuid4()), user_id=user_id, **attributes)

    def to_document(self) -> Dict[str, Any]:
        """Map to database columns."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "file_name": self.file_name,
            "original_name": self.original_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "download_url": self.download_url,
            "storage_path": self.storage_path,
            "width": self.width,
            "height": self.height,
            "compressed": self.compressed,
            "folder_id": self.folder_id,
            "category": self.category,
            "tags": list(self.tags),
            "description": self.description,
            "is_public": self.is_public,
            "shared_with": list(self.shared_with),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "upload_source": self.upload_source,
            "upload_version": self.upload_version,
        }

    @classmethod
    def from_document(cls, row: Dict[str, Any]) -> "MemoryRecord":
        """Build from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            file_name=row.get("file_name", ""),
            original_name=row.get("original_name", ""),
            file_type=row.get("file_type", UploadConfig.DEFAULT_MIME_TYPE),
            file_size=int(row.get("file_size") or 0),
            download_url=row.get("download_url"),
            storage_path=row.get("storage_path"),
            width=row.get("width"),
            height=row.get("height"),
            compressed=bool(row.get("compressed", False)),
            folder_id=row.get("folder_id"),
            category=row.get("category") or UploadConfig.DEFAULT_CATEGORY,
            tags=list(row.get("tags") or []),
            description=row.get("description") or "",
            is_public=bool(row.get("is_public", False)),
            shared_with=list(row.get("shared_with") or []),
            created_at=_parse_timestamp(row.get("created_at")) or utc_now(),
            updated_at=_parse_timestamp(row.get("updated_at")) or utc_now(),
            upload_source=row.get("upload_source") or UploadConfig.UPLOAD_SOURCE,
            upload_version=row.get("upload_version") or UploadConfig.UPLOAD_VERSION,
        )

    def to_dict(self) -> Dict[str, Any]:
        """camelCase view handed back to the mobile client."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "fileName": self.file_name,
            "originalName": self.original_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "downloadURL": self.download_url,
            "storagePath": self.storage_path,
            "width": self.width,
            "height": self.height,
            "compressed": self.compressed,
            "folderId": self.folder_id,
            "category": self.category,
            "tags": list(self.tags),
            "description": self.description,
            "isPublic": self.is_public,
            "sharedWith": list(self.shared_with),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "uploadSource": self.upload_source,
            "uploadVersion": self.upload_version,
        }


@dataclass(frozen=True)
class DeleteResult:
    success: bool
    deleted_memory_id: str
    aggregates_updated: bool = True


@dataclass(frozen=True)
class BatchFileError:
    """One failed file in a batch."""

    file: Optional[str]
    error: str
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "error": self.error, "error_code": self.error_code}


@dataclass
class BatchResult:
    """Summary of a batch upload. A batch always resolves, even if every file fails."""

    results: List[MemoryRecord] = field(default_factory=list)
    errors: List[BatchFileError] = field(default_factory=list)
    success: bool = True

    @property
    def uploaded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "uploaded": self.uploaded,
            "failed": self.failed,
            "results": [record.to_dict() for record in self.results],
            "errors": [error.to_dict() for error in self.errors],
        }


@dataclass
class UploadOptions:
    """Per-upload options for the single-file pipeline."""

    folder_id: Optional[str] = None
    category: str = UploadConfig.DEFAULT_CATEGORY
    tags: List[str] = field(default_factory=list)
    description: str = ""
    is_public: bool = False
    plan_tier: Union[PlanTier, str] = PlanTier.FREE
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    on_progress: Optional[Callable[[float, int, int], None]] = None
    on_complete: Optional[Callable[[MemoryRecord], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
    handle: Optional[Any] = None
    # Absolute time.monotonic() value; the transfer is abandoned after it
    deadline: Optional[float] = None

    def __post_init__(self):
        if isinstance(self.compression, dict):
            self.compression = CompressionConfig.from_dict(self.compression)


@dataclass
class BatchOptions:
    """Options for a batch upload; ``upload`` applies to every file."""

    max_concurrent: int = UploadConfig.DEFAULT_MAX_CONCURRENT
    upload: UploadOptions = field(default_factory=UploadOptions)
    on_batch_progress: Optional[Callable[[int, float, int], None]] = None
    on_file_complete: Optional[Callable[[MemoryRecord, int, int], None]] = None
    on_batch_complete: Optional[Callable[[List[MemoryRecord], List[BatchFileError]], None]] = None
    # One UploadHandle per file, in input order; there is no batch-wide cancel
    handles: Optional[List[Any]] = None

    def __post_init__(self):
        if isinstance(self.max_concurrent, bool) or not isinstance(self.max_concurrent, int) or self.max_concurrent < 1:
            raise InvalidParameterError('max_concurrent', self.max_concurrent, 'Must be a positive integer')
