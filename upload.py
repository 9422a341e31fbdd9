"""
Upload Relay - admin image uploads forwarded to Cloudinary.

Files are filtered by content type and size, then uploaded through the
Cloudinary SDK. Without a configured cloud the relay refuses the
upload; there is no local-disk fallback.
"""

import io
import logging
from typing import Any, Dict, Iterable, Optional, Protocol

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from auth import ADMIN_ROLE, AuthGate
from errors import InvalidFile, ServiceUnavailable, UploadFailed
from schemas import Identity
from settings import UploadSettings

logger = logging.getLogger(__name__)

# fit within 1200x800, then automatic quality and format
TRANSFORMATION = [
    {"width": 1200, "height": 800, "crop": "limit"},
    {"quality": "auto"},
    {"fetch_format": "auto"},
]


class ImageHost(Protocol):
    def upload(self, filename: str, content_type: str, data: bytes) -> str:
        """Store the image and return its public URL."""
        ...


class CloudinaryHost:
    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 folder: str = "landingpage/projects", timeout: int = 30):
        self.folder = folder
        self.timeout = timeout
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def upload(self, filename: str, content_type: str, data: bytes) -> str:
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                resource_type="image",
                folder=self.folder,
                transformation=TRANSFORMATION,
                timeout=self.timeout,
            )
            return result["secure_url"]
        except (CloudinaryError, KeyError) as e:
            logger.error(f"Cloudinary upload error: {e}")
            raise UploadFailed() from e


class UploadRelay:
    def __init__(self, host: Optional[ImageHost], allowed_types: Iterable[str],
                 max_file_size: int = 5 * 1024 * 1024):
        self.host = host
        self.allowed_types = list(allowed_types)
        self.max_file_size = max_file_size

    @classmethod
    def from_settings(cls, settings: UploadSettings) -> "UploadRelay":
        host = None
        if settings.host_configured:
            host = CloudinaryHost(
                settings.cloud_name,
                settings.api_key,
                settings.api_secret,
                folder=settings.folder,
                timeout=settings.timeout_seconds,
            )
        return cls(host, settings.allowed_types, settings.max_file_size)

    def check_file(self, content_type: Optional[str], size: int) -> None:
        if content_type not in self.allowed_types:
            raise InvalidFile("Invalid file type. Allowed types: " + ", ".join(self.allowed_types))
        if size > self.max_file_size:
            raise InvalidFile(f"File too large. Maximum size is {self.max_file_size} bytes")

    def upload_image(self, identity: Identity, filename: Optional[str],
                     content_type: Optional[str], data: Optional[bytes]) -> Dict[str, Any]:
        AuthGate.authorize(identity, ADMIN_ROLE)
        if data is None:
            raise InvalidFile("No image file provided")
        self.check_file(content_type, len(data))
        if self.host is None:
            raise ServiceUnavailable()

        image_url = self.host.upload(filename or "image", content_type, data)
        logger.info(f"Image uploaded by {identity.email}: {image_url}")
        return {"imageUrl": image_url, "originalName": filename, "size": len(data)}
