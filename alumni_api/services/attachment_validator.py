"""Attachment policy checks.

``validate_attachment`` is a pure function of the upload metadata and a policy.
The MIME type is checked before, and independently of, the size, so every input
gets exactly one verdict: accepted, invalid type, or too large.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple

from alumni_api.core.exceptions import AttachmentTooLargeError, InvalidAttachmentTypeError
from alumni_api.models.common import ContentKind

DEFAULT_ALLOWED_TYPES: Tuple[str, ...] = ("image/*",)
DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class RejectionReason(str, Enum):
    INVALID_TYPE = "invalid_type"
    TOO_LARGE = "too_large"


@dataclass(frozen=True)
class AttachmentMeta:
    mime_type: str
    byte_size: int


@dataclass(frozen=True)
class AttachmentPolicy:
    allowed_types: Tuple[str, ...] = DEFAULT_ALLOWED_TYPES
    max_bytes: int = DEFAULT_MAX_BYTES

    def describe_types(self) -> str:
        return ", ".join(self.allowed_types)


@dataclass(frozen=True)
class AttachmentVerdict:
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str = ""

    def raise_for_rejection(self) -> None:
        if self.accepted:
            return
        if self.reason is RejectionReason.INVALID_TYPE:
            raise InvalidAttachmentTypeError(self.message, error_code="INVALID_TYPE")
        raise AttachmentTooLargeError(self.message, error_code="TOO_LARGE")


ACCEPTED = AttachmentVerdict(accepted=True)


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lower-case and drop parameters: 'Image/PNG; q=1' -> 'image/png'."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def mime_type_matches(mime_type: str, allowed: str) -> bool:
    allowed = normalize_mime_type(allowed)
    if "/" not in mime_type:
        return False
    family, _, subtype = mime_type.partition("/")
    if not family or not subtype:
        return False
    if allowed == "*/*":
        return True
    if allowed.endswith("/*"):
        return family == allowed[:-2]
    return mime_type == allowed


def validate_attachment(meta: AttachmentMeta, policy: AttachmentPolicy) -> AttachmentVerdict:
    mime_type = normalize_mime_type(meta.mime_type)
    if not any(mime_type_matches(mime_type, allowed) for allowed in policy.allowed_types):
        return AttachmentVerdict(
            accepted=False,
            reason=RejectionReason.INVALID_TYPE,
            message=f"Invalid file type '{meta.mime_type or 'unknown'}'. Allowed types: {policy.describe_types()}",
        )
    if meta.byte_size > policy.max_bytes:
        max_mb = policy.max_bytes / (1024 * 1024)
        return AttachmentVerdict(
            accepted=False,
            reason=RejectionReason.TOO_LARGE,
            message=f"File too large. Maximum size: {max_mb:g}MB",
        )
    return ACCEPTED


@dataclass(frozen=True)
class AttachmentPolicyTable:
    """Upload policy per content kind."""
    policies: Mapping[ContentKind, AttachmentPolicy] = field(default_factory=dict)
    default: AttachmentPolicy = AttachmentPolicy()

    def for_kind(self, kind: ContentKind) -> AttachmentPolicy:
        return self.policies.get(kind, self.default)

    @classmethod
    def uniform(cls, allowed_types: Iterable[str], max_bytes: int) -> "AttachmentPolicyTable":
        policy = AttachmentPolicy(allowed_types=tuple(allowed_types), max_bytes=max_bytes)
        policies: Dict[ContentKind, AttachmentPolicy] = {kind: policy for kind in ContentKind}
        return cls(policies=policies, default=policy)
