"""
Use Case: Attach File

Size ceiling → MIME whitelist → upload to the file host → persist the
{type, url, publicId} row on exactly one parent.

Nothing leaves the process when the ceiling is exceeded. If the row
cannot be written after a successful upload, or the unit of work
holding it rolls back, the hosted blob is destroyed again.
"""

import logging
from dataclasses import dataclass

from civil_registry.core.errors import PayloadTooLarge, UploadFailed, ValidationError
from civil_registry.core.interfaces.storage_service import IStorageService, StorageRef

logger = logging.getLogger(__name__)


@dataclass
class UploadPolicy:
    """Per-endpoint upload constraints."""
    max_bytes: int
    folder: str = ""
    allowed_types: tuple[str, ...] = ()       # empty = any MIME type


class AttachFileUseCase:
    """
    Use Case: push a binary to the file host, optionally linking it to a request.

    Dependency Injection: the storage port comes through the constructor;
    `store` is only needed when the file is linked to a parent row.
    """

    def __init__(self, storage: IStorageService, store=None):
        self._storage = storage
        self._store = store

    def upload(self, data: bytes, filename: str, content_type: str, policy: UploadPolicy) -> StorageRef:
        """Validate and upload. Returns the hosted reference, no database write."""
        size = len(data)
        if size == 0:
            raise ValidationError("file", message="Aucun fichier fourni")
        if size > policy.max_bytes:
            raise PayloadTooLarge(policy.max_bytes, size)
        if policy.allowed_types and content_type not in policy.allowed_types:
            raise ValidationError(
                "file",
                message="Type de fichier non autorisé. Formats acceptés : PDF, JPEG, PNG",
            )

        try:
            ref = self._storage.upload(data, filename, content_type=content_type, folder=policy.folder)
        except UploadFailed:
            raise
        except Exception as e:
            logger.exception(f"Upload of {filename} failed")
            raise UploadFailed() from e

        if not ref.url:
            if ref.public_id:
                self._discard(ref)
            raise UploadFailed()
        logger.info(f"Uploaded {filename} ({size} bytes) as {ref.public_id}")
        return ref

    def execute(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        policy: UploadPolicy,
        document_type: str,
        birth_declaration_id: str | None = None,
        birth_certificate_id: str | None = None,
    ):
        """Upload, then persist the document row on the given parent."""
        if (birth_declaration_id is None) == (birth_certificate_id is None):
            raise ValueError("A document belongs to exactly one parent")

        ref = self.upload(data, filename, content_type, policy)
        try:
            document = self._store.documents.add(
                type=document_type,
                url=ref.url,
                public_id=ref.public_id,
                birth_declaration_id=birth_declaration_id,
                birth_certificate_id=birth_certificate_id,
            )
        except Exception:
            self._discard(ref)
            raise
        # The row only becomes durable at commit; a rolled-back unit of work discards the blob.
        self._store.after_rollback(lambda: self._discard(ref))
        return document

    def _discard(self, ref: StorageRef):
        try:
            self._storage.delete(ref.public_id, resource_type=ref.resource_type)
            logger.warning(f"Discarded hosted file {ref.public_id}")
        except Exception:
            logger.exception(f"Could not discard hosted file {ref.public_id} ({ref.resource_type})")
