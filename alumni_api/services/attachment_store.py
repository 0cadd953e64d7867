"""Blob storage for content attachments.

Stores never re-check upload policy; callers run the attachment validator first.
``delete`` is idempotent in every implementation.
"""
import mimetypes
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from alumni_api.core.logging_config import get_logger
from alumni_api.models.common import Attachment, new_entity_id

logger = get_logger(__name__)


class AttachmentStore(Protocol):
    def store(self, content: bytes, declared_mime_type: str, owner_entity_id: str) -> Attachment:
        ...

    def delete(self, attachment_id: str) -> None:
        ...


class InMemoryAttachmentStore:
    """Process-local blob store for development and tests."""

    def __init__(self, uri_prefix: str = "memory://attachments"):
        self.uri_prefix = uri_prefix.rstrip("/")
        self._blobs: Dict[str, Tuple[bytes, str]] = {}
        self._lock = Lock()

    def store(self, content: bytes, declared_mime_type: str, owner_entity_id: str) -> Attachment:
        attachment_id = new_entity_id()
        with self._lock:
            self._blobs[attachment_id] = (bytes(content), declared_mime_type)
        return Attachment(
            id=attachment_id,
            uri=f"{self.uri_prefix}/{attachment_id}",
            declared_mime_type=declared_mime_type,
            byte_size=len(content),
            owner_entity_id=owner_entity_id,
        )

    def delete(self, attachment_id: str) -> None:
        with self._lock:
            self._blobs.pop(attachment_id, None)

    def exists(self, attachment_id: str) -> bool:
        with self._lock:
            return attachment_id in self._blobs

    def read(self, attachment_id: str) -> Optional[bytes]:
        with self._lock:
            blob = self._blobs.get(attachment_id)
        return blob[0] if blob else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)


class LocalDiskAttachmentStore:
    """Files under a directory that the app serves at ``url_prefix``."""

    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def store(self, content: bytes, declared_mime_type: str, owner_entity_id: str) -> Attachment:
        attachment_id = new_entity_id()
        extension = mimetypes.guess_extension(declared_mime_type.split(";")[0].strip()) or ""
        filename = f"{attachment_id}{extension}"
        (self.root / filename).write_bytes(content)
        logger.debug(f"Stored attachment {attachment_id} ({len(content)} bytes) at {filename}")
        return Attachment(
            id=attachment_id,
            uri=f"{self.url_prefix}/{filename}",
            declared_mime_type=declared_mime_type,
            byte_size=len(content),
            owner_entity_id=owner_entity_id,
        )

    def delete(self, attachment_id: str) -> None:
        for path in self.root.glob(f"{attachment_id}*"):
            path.unlink(missing_ok=True)
            logger.debug(f"Deleted attachment file {path.name}")


class SupabaseAttachmentStore:
    """Objects in a Supabase Storage bucket, keyed by attachment id."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def store(self, content: bytes, declared_mime_type: str, owner_entity_id: str) -> Attachment:
        attachment_id = new_entity_id()
        self._bucket().upload(
            path=attachment_id,
            file=content,
            file_options={"content-type": declared_mime_type, "upsert": "false"},
        )
        uri = self._bucket().get_public_url(attachment_id)
        return Attachment(
            id=attachment_id,
            uri=uri,
            declared_mime_type=declared_mime_type,
            byte_size=len(content),
            owner_entity_id=owner_entity_id,
        )

    def delete(self, attachment_id: str) -> None:
        # remove() reports missing objects as an empty result, not an error
        self._bucket().remove([attachment_id])
