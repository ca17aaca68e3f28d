"""
Image Storage Service Factory

Environment Switching:
    - ENV_MODE=development → MockStorageService (in-memory)
    - ENV_MODE=staging/production → CloudinaryStorageService
"""

import logging

from fastapi import Request

from app.core.config import Settings
from app.services.storage.base import BaseStorageService, ImageUploadResult
from app.services.storage.mock import MockStorageService
from app.services.storage.cloudinary import CloudinaryStorageService

logger = logging.getLogger(__name__)


def build_storage_service(settings: Settings) -> BaseStorageService:
    """
    Build the configured storage service instance.

    Raises:
        ValueError: If real services are requested but Cloudinary settings are missing
    """
    if settings.is_development:
        logger.info("Storage Service: Using MockStorageService (development mode)")
        return MockStorageService(
            base_url=f"http://localhost:{settings.api_port}/mock-images",
        )

    logger.info(
        f"Storage Service: Using CloudinaryStorageService "
        f"({settings.env_mode.value} mode)"
    )
    return CloudinaryStorageService(settings)


def get_storage_service(request: Request) -> BaseStorageService:
    """FastAPI dependency returning the process-wide storage service."""
    return request.app.state.storage_service


__all__ = [
    "build_storage_service",
    "get_storage_service",
    "BaseStorageService",
    "ImageUploadResult",
    "MockStorageService",
    "CloudinaryStorageService",
]
