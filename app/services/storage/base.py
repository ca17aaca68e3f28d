"""
Image Storage Service Abstract Base Class

Restaurant images are stored by an external service; the database only
keeps the returned URL.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class ImageUploadResult:
    """
    Standardized result from an image upload.

    Attributes:
        success: Whether the image was stored
        url: Public URL of the stored image
        public_id: Provider-side identifier
        error_message: Error description if the upload failed
    """
    success: bool
    url: Optional[str] = None
    public_id: Optional[str] = None
    error_message: Optional[str] = None


class BaseStorageService(ABC):
    """Abstract base class for image storage services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the storage provider (e.g. "mock", "cloudinary")."""
        pass

    @abstractmethod
    async def upload_image(self, data: bytes, content_type: str) -> ImageUploadResult:
        """
        Store an image.

        Args:
            data: Raw image bytes
            content_type: MIME type reported by the client (e.g. "image/png")

        Returns:
            ImageUploadResult: Standardized result object
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
