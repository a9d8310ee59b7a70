"""Media transforms (image compression and resizing)"""
from shared.media.transform import (
    ImageTransformer,
    TransformResult,
    CANONICAL_MIME_TYPE,
    CANONICAL_EXTENSION,
)

__all__ = [
    'ImageTransformer',
    'TransformResult',
    'CANONICAL_MIME_TYPE',
    'CANONICAL_EXTENSION',
]
