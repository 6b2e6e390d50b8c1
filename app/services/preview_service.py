"""
Thumbnail previews for selected images

Previews are temporary files owned by a submission form; they must be
released once the submission succeeds or fails.
"""

import io
import os
import tempfile
from dataclasses import dataclass
from typing import Optional
from PIL import Image

from ..core.logging_config import get_logger
from ..models.upload_models import RawImage

logger = get_logger("preview_service")

PREVIEW_SIZE = (200, 200)


@dataclass
class PreviewHandle:
    """Temporary thumbnail file"""
    path: str
    source_filename: str
    released: bool = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass


class PreviewService:
    """Create thumbnail previews in a temporary directory"""

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory

    def create(self, image: RawImage) -> Optional[PreviewHandle]:
        """Write a JPEG thumbnail; None if the image cannot be decoded"""
        try:
            with Image.open(io.BytesIO(image.data)) as source:
                thumbnail = source.convert("RGB")
                thumbnail.thumbnail(PREVIEW_SIZE)
                fd, path = tempfile.mkstemp(prefix="preview_", suffix=".jpg", dir=self.directory)
                with os.fdopen(fd, "wb") as handle:
                    thumbnail.save(handle, format="JPEG", quality=70)
        except Exception as e:
            logger.warning(f"⚠️ Could not create preview for {image.filename}: {e}")
            return None
        return PreviewHandle(path=path, source_filename=image.filename)


# Global preview service instance
preview_service = PreviewService()
