"""
Blob storage for report images

BlobStore is the contract the upload coordinator depends on: upload() is an
async stream of progress snapshots whose last item carries the fetchable URL.
CloudinaryBlobStore implements it on top of the Cloudinary SDK.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import unquote, urlparse

import cloudinary
import cloudinary.api
import cloudinary.uploader

from ..core.config import settings
from ..core.exceptions import TransportException
from ..core.logging_config import get_logger
from ..models.upload_models import UploadSnapshot

logger = get_logger("blob_store")

# Allowed MIME types for submitted images
ALLOWED_MIME_TYPES = {
    'image/jpeg', 'image/jpg', 'image/png', 'image/webp', 'image/gif', 'image/bmp', 'image/heic'
}

_VERSION_SEGMENT = re.compile(r"^v\d+$")


class BlobStore(ABC):
    """Remote object storage for image bytes"""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> AsyncIterator[UploadSnapshot]:
        """Upload bytes to path, yielding progress; the final snapshot has the URL"""

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Delete a previously uploaded blob by its URL"""

    def get_health_status(self) -> Dict[str, Any]:
        return {"status": "unknown"}


def public_id_from_url(url: str) -> Optional[str]:
    """
    Extract the Cloudinary public id from a delivery URL

    https://res.cloudinary.com/<cloud>/image/upload/v123/reports/u1/17_a.jpg
    -> reports/u1/17_a
    """
    path = unquote(urlparse(url).path)
    marker = "/upload/"
    if marker not in path:
        return None
    segments = path.split(marker, 1)[1].split("/")
    if segments and _VERSION_SEGMENT.match(segments[0]):
        segments = segments[1:]
    if not segments or not segments[-1]:
        return None
    public_id = "/".join(segments)
    return public_id.rsplit(".", 1)[0] if "." in segments[-1] else public_id


class CloudinaryBlobStore(BlobStore):
    """Service for managing image uploads to Cloudinary"""

    def __init__(self):
        self.configured = False
        self._configure_cloudinary()

    def _configure_cloudinary(self):
        """Configure Cloudinary with environment settings"""
        try:
            if all([settings.cloudinary_cloud_name, settings.cloudinary_api_key, settings.cloudinary_api_secret]):
                cloudinary.config(
                    cloud_name=settings.cloudinary_cloud_name,
                    api_key=settings.cloudinary_api_key,
                    api_secret=settings.cloudinary_api_secret,
                    secure=True
                )
                self.configured = True
                logger.info("✅ Cloudinary configured successfully")
            else:
                logger.warning("⚠️ Cloudinary credentials not found in environment")
        except Exception as e:
            logger.error(f"❌ Failed to configure Cloudinary: {e}")

    def get_health_status(self) -> Dict[str, Any]:
        """Get Cloudinary health status for /health endpoint"""
        if not self.configured:
            return {
                "status": "not_configured",
                "configured": False,
                "error": "Cloudinary credentials not provided"
            }

        try:
            usage = cloudinary.api.usage()
            return {
                "status": "healthy",
                "configured": True,
                "cloud_name": settings.cloudinary_cloud_name,
                "credits_used": usage.get('credits', {}).get('used_percent', 0),
                "storage_used_mb": usage.get('storage', {}).get('used', 0) / (1024 * 1024)
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "configured": True,
                "error": str(e)
            }

    async def upload(self, path: str, data: bytes, content_type: str) -> AsyncIterator[UploadSnapshot]:
        """
        Upload image bytes to Cloudinary

        The SDK call is blocking and reports no intermediate progress, so it
        runs in a worker thread between a 0% and a 100% snapshot.

        Args:
            path: Destination path; the extension is dropped for the public id
            data: Encoded image bytes
            content_type: Declared MIME type

        Yields:
            UploadSnapshot events, the last one with the secure URL
        """
        if not self.configured:
            raise TransportException("Image storage is not configured")

        total = len(data)
        public_id = path.rsplit(".", 1)[0]
        upload_options = {
            'public_id': public_id,
            'resource_type': 'image',
            'overwrite': False,
            'flags': 'progressive',
        }

        yield UploadSnapshot(bytes_transferred=0, total_bytes=total)
        try:
            result = await asyncio.to_thread(cloudinary.uploader.upload, data, **upload_options)
        except Exception as e:
            logger.error(f"❌ Failed to upload image {path}: {e}")
            raise TransportException(f"Upload failed for {path}: {e}", {"path": path}) from e

        url = result.get('secure_url')
        if not url:
            raise TransportException(f"Upload of {path} returned no URL", {"path": path})

        logger.info(f"✅ Image uploaded successfully: {path} ({result.get('bytes', total)} bytes, {content_type})")
        yield UploadSnapshot(bytes_transferred=total, total_bytes=total, url=url)

    async def delete(self, url: str) -> bool:
        """
        Delete image from Cloudinary

        Args:
            url: Delivery URL returned by upload()

        Returns:
            bool: True if successful, False otherwise
        """
        if not self.configured:
            logger.warning("Cloudinary not configured, cannot delete image")
            return False

        public_id = public_id_from_url(url)
        if not public_id:
            logger.warning(f"⚠️ Not a Cloudinary delivery URL: {url}")
            return False

        try:
            result = await asyncio.to_thread(cloudinary.uploader.destroy, public_id)
            success = result.get('result') == 'ok'

            if success:
                logger.info(f"✅ Image deleted successfully: {public_id}")
            else:
                logger.warning(f"⚠️ Image deletion may have failed: {public_id} - {result}")

            return success

        except Exception as e:
            logger.error(f"❌ Failed to delete image {public_id}: {e}")
            return False


# Global blob store instance
blob_store = CloudinaryBlobStore()
