"""
Upload Domain Configuration
Plan limits, compression options and pipeline constants
"""
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Tuple, Union

from shared.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

MIB: int = 1024 * 1024


class UploadConfig:
    """Pipeline constants."""

    UPLOAD_SOURCE: str = "mobile_app"
    UPLOAD_VERSION: str = "1.0.0"
    DEFAULT_CATEGORY: str = "general"
    DEFAULT_MIME_TYPE: str = "application/octet-stream"
    DEFAULT_FILE_NAME: str = "file"
    DEFAULT_IMAGE_NAME: str = "image.jpg"

    DEFAULT_MAX_CONCURRENT: int = 3

    # Progress tracking
    EMIT_INTERVAL: float = 0.3  # Emit every 300ms at most, final 100% always sent


class PlanTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    FAMILY = "family"

    @classmethod
    def resolve(cls, value: Union["PlanTier", str, None]) -> "PlanTier":
        """Resolve a plan name, falling back to the free plan for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown plan tier {value!r}, applying free plan limits")
            return cls.FREE


@dataclass(frozen=True)
class PlanLimits:
    """Upload limits for one plan tier.

    ``allowed_type_patterns`` entries are literal MIME types, ``type/*``
    prefixes, or ``*`` for any type.
    """

    max_size_bytes: int
    allowed_type_patterns: Tuple[str, ...]

    def __post_init__(self):
        if self.max_size_bytes <= 0:
            raise InvalidParameterError('max_size_bytes', self.max_size_bytes, 'Must be positive')
        if not self.allowed_type_patterns:
            raise InvalidParameterError('allowed_type_patterns', self.allowed_type_patterns, 'Must not be empty')

    @property
    def restricts_types(self) -> bool:
        return "*" not in self.allowed_type_patterns


PLAN_LIMITS: Dict[PlanTier, PlanLimits] = {
    PlanTier.FREE: PlanLimits(10 * MIB, ("image/*", "text/*")),
    PlanTier.PREMIUM: PlanLimits(100 * MIB, ("*",)),
    PlanTier.FAMILY: PlanLimits(500 * MIB, ("*",)),
}


@dataclass(frozen=True)
class CompressionConfig:
    """Image compression options.

    Non-image files are never touched, whatever these options say.
    """

    enabled: bool = True
    quality: float = 0.8
    max_width: int = 1920
    max_height: int = 1080

    def __post_init__(self):
        if not isinstance(self.enabled, bool):
            raise InvalidParameterError('enabled', self.enabled, 'Must be a boolean')
        if isinstance(self.quality, bool) or not isinstance(self.quality, (int, float)) \
                or not 0.0 <= self.quality <= 1.0:
            raise InvalidParameterError('quality', self.quality, 'Must be between 0.0 and 1.0')
        for name in ('max_width', 'max_height'):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise InvalidParameterError(name, value, 'Must be a positive integer')

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "CompressionConfig":
        """Build from a camelCase or snake_case option dict.

        Raises:
            InvalidParameterError: For unrecognised keys or invalid values
        """
        aliases = {'maxWidth': 'max_width', 'maxHeight': 'max_height'}
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (options or {}).items():
            name = aliases.get(key, key)
            if name not in known:
                raise InvalidParameterError('compression', key, f"Unrecognised option, expected one of {sorted(known)}")
            kwargs[name] = value
        return cls(**kwargs)
