"""Image transforms for memory uploads.

Images are normalised to JPEG, fitted inside a bounding box without
upscaling, and re-encoded at the requested quality.
"""
import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

CANONICAL_FORMAT = "JPEG"
CANONICAL_MIME_TYPE = "image/jpeg"
CANONICAL_EXTENSION = "jpg"


@dataclass(frozen=True)
class TransformResult:
    content: bytes
    width: int
    height: int


def jpeg_quality(quality: float) -> int:
    """Map a 0.0-1.0 quality factor onto Pillow's 1-100 JPEG scale."""
    return max(1, min(100, int(round(quality * 100))))


class ImageTransformer:
    """Media transform capability backed by Pillow."""

    def resize(self, content: bytes, max_width: int, max_height: int, quality: float) -> TransformResult:
        """Fit an image inside max_width x max_height and re-encode as JPEG.

        Aspect ratio is preserved and images already inside the box keep
        their size. EXIF orientation is applied before resizing so portrait
        photos from phones stay upright.
        """
        with Image.open(io.BytesIO(content)) as im:
            im = ImageOps.exif_transpose(im)
            if im.mode != "RGB":
                im = im.convert("RGB")
            im.thumbnail((max_width, max_height), Image.LANCZOS)
            width, height = im.size

            buf = io.BytesIO()
            im.save(buf, format=CANONICAL_FORMAT, quality=jpeg_quality(quality), optimize=True)

        data = buf.getvalue()
        logger.debug(f"Re-encoded image to {width}x{height}, {len(data)} bytes")
        return TransformResult(content=data, width=width, height=height)
