from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, Optional, Protocol

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from telemetry.logging_utils import get_logger

logger = get_logger(__name__)


class ImageUploadError(RuntimeError):
    """The image host could not store an attachment."""


class ImageHost(Protocol):
    async def upload(self, ref: Any) -> str:
        """Store the image behind ``ref`` (a URL, path or file object) and return its public URL."""
        ...


class CloudinaryImageHost:
    """Uploads remote images into a Cloudinary folder and returns the secure URL."""

    def __init__(
        self,
        *,
        folder: str = "ile_properties",
        cloudinary_url: Optional[str] = None,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
    ) -> None:
        self.folder = folder
        if cloudinary_url:
            os.environ["CLOUDINARY_URL"] = cloudinary_url
            cloudinary.reset_config()
        if cloud_name and api_key and api_secret:
            cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def _upload_sync(self, source: Any) -> Dict[str, Any]:
        return cloudinary.uploader.upload(source, folder=self.folder, resource_type="image")

    async def upload(self, ref: Any) -> str:
        try:
            result = await asyncio.to_thread(self._upload_sync, ref)
        except cloudinary.exceptions.Error as exc:
            raise ImageUploadError(f"Cloudinary rejected the upload: {exc}") from exc
        url = (result or {}).get("secure_url")
        if not url:
            raise ImageUploadError("Cloudinary response did not include secure_url")
        logger.info("image_uploaded", extra={"folder": self.folder, "public_id": result.get("public_id")})
        return url
