"""
Contract: Storage Service

Uploads and removes binary attachments (scans, PDFs, final
certificates) on an external file host (Cloudinary, S3...).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class StorageRef:
    """Reference to a hosted file."""
    url: str                      # durable https URL, empty if the host returned none
    public_id: str                # host-side identifier, used for deletion
    size_bytes: int
    content_type: str
    folder: str = ""
    resource_type: str = "image"  # host-side class of the blob, needed to delete it


class IStorageService(ABC):
    """
    Port: Storage Service

    Persists binary artefacts outside the database. Implementations may
    be Cloudinary, S3, a local filesystem, etc.
    """

    @abstractmethod
    def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str = "application/octet-stream",
        folder: str = "",
    ) -> StorageRef:
        """
        Upload a file.

        Args:
            data: File content.
            filename: Original filename (used to build the public id).
            content_type: MIME type.
            folder: Folder/prefix on the host.

        Returns:
            StorageRef with the durable URL and public id.
        """
        ...

    @abstractmethod
    def delete(self, public_id: str, resource_type: str = "image") -> None:
        """
        Remove a hosted file. Raises if the host did not remove it.

        Args:
            public_id: Identifier returned by `upload`.
            resource_type: `StorageRef.resource_type` of that upload.
        """
        ...
