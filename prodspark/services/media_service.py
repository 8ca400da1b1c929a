"""
Media upload service backed by Cloudinary unsigned uploads.

Returned URLs are treated as opaque strings by the rest of the API.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from prodspark.core.config import settings

logger = logging.getLogger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


class MediaConfigError(RuntimeError):
    """Cloudinary credentials are not configured."""


class MediaUploadError(RuntimeError):
    """Cloudinary rejected the upload or could not be reached."""


class InvalidMediaError(ValueError):
    """The file is not an acceptable image."""


@dataclass
class MediaFile:
    """An uploaded file held in memory."""
    filename: str
    content: bytes
    content_type: str


class MediaService:
    """Uploads images and returns their durable URLs."""

    def __init__(
        self,
        cloud_name: str = None,
        upload_preset: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name if cloud_name is not None else settings.cloudinary_cloud_name
        self.upload_preset = upload_preset if upload_preset is not None else settings.cloudinary_upload_preset
        self.timeout = timeout or settings.cloudinary_timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    def validate(self, media: MediaFile) -> None:
        """Reject files the directory does not accept."""
        if media.content_type not in settings.allowed_image_types:
            raise InvalidMediaError(f"Unsupported image type: {media.content_type}")
        if not media.content:
            raise InvalidMediaError(f"Empty file: {media.filename}")
        if len(media.content) > settings.max_file_size:
            raise InvalidMediaError(
                f"{media.filename} is larger than {settings.max_file_size // (1024 * 1024)}MB"
            )

    async def upload_image(self, media: MediaFile, client: Optional[httpx.AsyncClient] = None) -> str:
        """
        Upload one image.

        Args:
            media: The file to upload
            client: Optional shared client (used by upload_images)

        Returns:
            Cloudinary secure_url
        """
        if not self.is_configured:
            raise MediaConfigError("Missing Cloudinary cloud name or upload preset")
        self.validate(media)

        if client is None:
            async with self._client() as own_client:
                return await self._post(own_client, media)
        return await self._post(client, media)

    async def upload_images(self, files: List[MediaFile]) -> List[str]:
        """Upload several images concurrently, preserving input order."""
        if not files:
            return []
        if not self.is_configured:
            raise MediaConfigError("Missing Cloudinary cloud name or upload preset")
        for media in files:
            self.validate(media)

        async with self._client() as client:
            return list(await asyncio.gather(*(self._post(client, media) for media in files)))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _post(self, client: httpx.AsyncClient, media: MediaFile) -> str:
        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name)
        try:
            response = await client.post(
                url,
                data={"upload_preset": self.upload_preset, "cloud_name": self.cloud_name},
                files={"file": (media.filename, media.content, media.content_type)},
            )
        except httpx.HTTPError as e:
            logger.error(f"Cloudinary request failed for {media.filename}: {e}")
            raise MediaUploadError("Failed to upload image to Cloudinary") from e

        if response.status_code >= 400:
            message = _error_message(response) or "Failed to upload image to Cloudinary"
            logger.error(f"Cloudinary upload rejected ({response.status_code}): {message}")
            raise MediaUploadError(message)

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Cloudinary returned a non-JSON body ({response.status_code}) for {media.filename}")
            raise MediaUploadError("Cloudinary returned an unreadable response") from e

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not secure_url:
            raise MediaUploadError("Cloudinary response did not include a secure_url")

        logger.info(f"Uploaded {media.filename} ({len(media.content)} bytes)")
        return secure_url


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        return (response.json().get("error") or {}).get("message")
    except ValueError:
        return None


# Global media service instance
media_service = MediaService()
