"""
File Processor
Optional image compression ahead of upload. Never fails the upload: any
transform error falls back to the original file.
"""
import logging
import os
from typing import Optional

from domains.upload.config import CompressionConfig, UploadConfig
from domains.upload.models import ProcessedFile, UploadCandidate, read_content
from shared.media import CANONICAL_EXTENSION, CANONICAL_MIME_TYPE, ImageTransformer

logger = logging.getLogger(__name__)


def canonical_name(name: Optional[str]) -> str:
    """Swap the extension for the canonical image extension."""
    if not name:
        return UploadConfig.DEFAULT_IMAGE_NAME
    stem, _ = os.path.splitext(name)
    return f"{stem or name}.{CANONICAL_EXTENSION}"


class FileProcessor:
    """Applies CompressionConfig to upload candidates."""

    def __init__(self, transformer: Optional[ImageTransformer] = None):
        self.transformer = transformer or ImageTransformer()

    def _original(self, candidate: UploadCandidate, content: bytes) -> ProcessedFile:
        return ProcessedFile(
            content=content,
            mime_type=candidate.mime_type or UploadConfig.DEFAULT_MIME_TYPE,
            name=candidate.name or UploadConfig.DEFAULT_FILE_NAME,
            size=len(content),
            compressed=False,
        )

    def process(self, candidate: UploadCandidate, compression: Optional[CompressionConfig] = None) -> ProcessedFile:
        """Compress an image candidate, or pass any other file through.

        Raises:
            OSError: If the candidate's content cannot be read at all
        """
        compression = compression or CompressionConfig()
        content = read_content(candidate.content)

        if not compression.enabled or not candidate.is_image:
            return self._original(candidate, content)

        try:
            result = self.transformer.resize(
                content,
                compression.max_width,
                compression.max_height,
                compression.quality,
            )
        except Exception as e:
            logger.warning(f"File processing failed for {candidate.name!r}, using original: {e}")
            return self._original(candidate, content)

        return ProcessedFile(
            content=result.content,
            mime_type=CANONICAL_MIME_TYPE,
            name=canonical_name(candidate.name),
            size=len(result.content),
            width=result.width,
            height=result.height,
            compressed=True,
        )
