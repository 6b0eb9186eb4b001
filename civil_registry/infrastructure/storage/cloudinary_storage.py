"""
Adapter: Cloudinary Storage Service

Concrete IStorageService over the Cloudinary SDK (signed uploads and
destroys, credentials passed per call).
"""

from __future__ import annotations

import logging
from pathlib import PurePath

import cloudinary.exceptions
import cloudinary.uploader

from civil_registry.core.errors import UploadFailed
from civil_registry.core.interfaces.storage_service import IStorageService, StorageRef

logger = logging.getLogger(__name__)


class CloudinaryStorageService(IStorageService):
    """
    File hosting on Cloudinary.

    Uploads use `resource_type=auto` so PDFs and images share one path;
    the resource type Cloudinary picked is kept on the reference so the
    blob can be destroyed again. The hosted URL returned is `secure_url`.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str) -> None:
        if not cloud_name or not api_key or not api_secret:
            raise ValueError("Cloudinary credentials are not configured")
        self._credentials = {"cloud_name": cloud_name, "api_key": api_key, "api_secret": api_secret}

    def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str = "application/octet-stream",
        folder: str = "",
    ) -> StorageRef:
        options = {"resource_type": "auto", "filename": PurePath(filename).name or "upload"}
        if folder:
            options["folder"] = folder
        try:
            result = cloudinary.uploader.upload(data, **options, **self._credentials)
        except cloudinary.exceptions.Error as exc:
            logger.error(f"Cloudinary upload of {filename} failed: {exc}")
            raise UploadFailed() from exc

        return StorageRef(
            url=result.get("secure_url") or "",
            public_id=result.get("public_id") or "",
            size_bytes=int(result.get("bytes") or len(data)),
            content_type=content_type,
            folder=folder,
            resource_type=result.get("resource_type") or "image",
        )

    def delete(self, public_id: str, resource_type: str = "image") -> None:
        """Destroy a hosted blob. Anything but `ok` (including `not found`) is an error."""
        result = cloudinary.uploader.destroy(public_id, resource_type=resource_type, **self._credentials)
        outcome = result.get("result")
        if outcome != "ok":
            raise RuntimeError(f"Cloudinary destroy of {resource_type}/{public_id} returned {outcome!r}")
        logger.info(f"Cloudinary destroy {resource_type}/{public_id}: ok")
