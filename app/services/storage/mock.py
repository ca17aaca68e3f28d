"""
Mock Storage Service Implementation

Records the size of uploaded images (the newest ``max_images`` of them)
and hands out fake URLs.
Used in development mode (ENV_MODE=development) and by the test suite.
"""

import logging
import mimetypes
import uuid
from collections import OrderedDict

from app.services.storage.base import BaseStorageService, ImageUploadResult

logger = logging.getLogger(__name__)


class MockStorageService(BaseStorageService):
    """
    Attributes:
        base_url: Prefix of the generated image URLs
        fail_uploads: Simulate the provider rejecting every upload
        max_images: Upload records kept before the oldest are dropped
        images: Byte size of each stored image, keyed by public id
    """

    def __init__(
        self,
        base_url: str = "http://localhost:7000/mock-images",
        fail_uploads: bool = False,
        max_images: int = 100,
    ):
        self.base_url = base_url.rstrip("/")
        self.fail_uploads = fail_uploads
        self.max_images = max_images
        self.images: OrderedDict[str, int] = OrderedDict()

        logger.info("MockStorageService initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def upload_image(self, data: bytes, content_type: str) -> ImageUploadResult:
        if self.fail_uploads:
            logger.debug("Mock: Image upload failed")
            return ImageUploadResult(success=False, error_message="Mock upload failure")

        public_id = uuid.uuid4().hex[:20]
        extension = mimetypes.guess_extension(content_type) or ""
        self.images[public_id] = len(data)
        while len(self.images) > self.max_images:
            self.images.popitem(last=False)

        logger.info(f"Mock: Image stored - {public_id} ({len(data)} bytes)")

        return ImageUploadResult(
            success=True,
            url=f"{self.base_url}/{public_id}{extension}",
            public_id=public_id,
        )

    async def health_check(self) -> bool:
        return True
