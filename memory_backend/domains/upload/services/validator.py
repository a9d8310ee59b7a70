"""
File Validator
Plan-based size and type checks, run before any network or storage call
"""
from typing import Iterable, Optional, Union

from domains.upload.config import PLAN_LIMITS, PlanTier
from domains.upload.models import UploadCandidate
from shared.exceptions import SizeLimitExceededError, TypeNotAllowedError


def type_matches(mime_type: Optional[str], pattern: str) -> bool:
    """Match a MIME type against ``*``, ``type/*`` or a literal type."""
    if pattern == "*":
        return True
    if not mime_type:
        return False
    if pattern.endswith("/*"):
        return mime_type.lower().startswith(pattern[:-1].lower())
    return mime_type.lower() == pattern.lower()


def is_type_allowed(mime_type: Optional[str], patterns: Iterable[str]) -> bool:
    return any(type_matches(mime_type, pattern) for pattern in patterns)


def validate_file(candidate: UploadCandidate, plan_tier: Union[PlanTier, str, None] = PlanTier.FREE) -> bool:
    """Check a candidate against its plan's limits.

    Pure and deterministic; safe to call any number of times.

    Args:
        candidate: File to check (declared size and MIME type are used)
        plan_tier: Plan name; unknown names get the free plan's limits

    Returns:
        bool: True if the file may be uploaded

    Raises:
        SizeLimitExceededError: If the declared size is above the plan limit
        TypeNotAllowedError: If the plan restricts types and none match
    """
    tier = PlanTier.resolve(plan_tier)
    limits = PLAN_LIMITS[tier]
    size = candidate.size or 0

    if size > limits.max_size_bytes:
        raise SizeLimitExceededError(size=size, max_size=limits.max_size_bytes, plan=tier.value)

    if limits.restricts_types and not is_type_allowed(candidate.mime_type, limits.allowed_type_patterns):
        raise TypeNotAllowedError(
            file_type=candidate.mime_type,
            plan=tier.value,
            allowed=list(limits.allowed_type_patterns)
        )

    return True
