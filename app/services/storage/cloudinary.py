"""
Cloudinary Storage Service Implementation

Uploads restaurant images to Cloudinary as base64 data URIs.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET
"""

import asyncio
import base64
import logging

import cloudinary.api
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.core.config import Settings
from app.services.storage.base import BaseStorageService, ImageUploadResult

logger = logging.getLogger(__name__)


class CloudinaryStorageService(BaseStorageService):
    """
    Production Cloudinary storage service.

    Credentials are passed with every call instead of through the SDK's
    global ``cloudinary.config``. The SDK is blocking, so calls run in a
    worker thread.
    """

    def __init__(self, settings: Settings):
        """
        Raises:
            ValueError: If any Cloudinary credential is missing
        """
        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            raise ValueError(
                "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET "
                "are required outside development mode."
            )

        self._credentials = {
            "cloud_name": settings.cloudinary_cloud_name,
            "api_key": settings.cloudinary_api_key,
            "api_secret": settings.cloudinary_api_secret,
        }

        logger.info(
            f"CloudinaryStorageService initialized "
            f"(cloud={settings.cloudinary_cloud_name})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "cloudinary"

    async def upload_image(self, data: bytes, content_type: str) -> ImageUploadResult:
        encoded = base64.b64encode(data).decode("ascii")
        data_uri = f"data:{content_type};base64,{encoded}"

        try:
            response = await asyncio.to_thread(
                cloudinary.uploader.upload, data_uri, **self._credentials
            )
        except CloudinaryError as e:
            logger.error(f"Cloudinary: Upload failed - {e}")
            return ImageUploadResult(success=False, error_message=str(e))

        logger.info(f"Cloudinary: Image uploaded - {response.get('public_id')}")

        return ImageUploadResult(
            success=True,
            url=response.get("url"),
            public_id=response.get("public_id"),
        )

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(cloudinary.api.ping, **self._credentials)
            return True
        except CloudinaryError as e:
            logger.error(f"Cloudinary: Health check failed - {e}")
            return False
