"""
Image normalizer: downscale and re-encode photos into a target size band

The quality search is a bounded binary search between 0.4 and 0.95 with a
fixed number of iterations. Failures never raise; they come back as a
NormalizationResult carrying the error so the caller can keep the original.
"""

import asyncio
import io
from dataclasses import dataclass
from typing import Optional, Tuple
from PIL import Image, ImageOps

from ..core.config import settings
from ..core.exceptions import NormalizationException
from ..core.logging_config import get_logger
from ..models.upload_models import NormalizedImage, RawImage, jpeg_filename

logger = get_logger("image_normalizer")

QUALITY_LOW = 0.4
QUALITY_HIGH = 0.95
SEARCH_ITERATIONS = 7


class JpegEncoder:
    """Pillow JPEG codec with a quality parameter in [0.0, 1.0]"""

    content_type = "image/jpeg"

    def encode(self, image: Image.Image, quality: float) -> Optional[bytes]:
        buffer = io.BytesIO()
        pil_quality = max(1, min(95, int(round(quality * 100))))
        image.save(buffer, format="JPEG", quality=pil_quality, optimize=True)
        data = buffer.getvalue()
        return data or None


@dataclass
class NormalizationResult:
    """Outcome of normalize(); exactly one of image/error is set"""
    image: Optional[NormalizedImage] = None
    error: Optional[NormalizationException] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.image is not None


def scaled_dimensions(width: int, height: int, max_width: int) -> Tuple[int, int]:
    """Downscale-only target size preserving aspect ratio"""
    if width <= max_width:
        return width, height
    scale = max_width / width
    return max_width, max(1, int(height * scale + 0.5))


class ImageNormalizer:
    """Resize and re-encode images to fit a byte-size band"""

    def __init__(
        self,
        max_width: Optional[int] = None,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
        encoder=None
    ):
        self.max_width = max_width or settings.image_max_width
        self.min_bytes = settings.image_target_min_bytes if min_bytes is None else min_bytes
        self.max_bytes = settings.image_target_max_bytes if max_bytes is None else max_bytes
        self.encoder = encoder or JpegEncoder()

    async def normalize(self, raw: RawImage) -> NormalizationResult:
        """
        Normalize one image off the event loop

        Args:
            raw: Decodable source image

        Returns:
            NormalizationResult with the encoded image or the codec error
        """
        return await asyncio.to_thread(self.normalize_sync, raw)

    def normalize_sync(self, raw: RawImage) -> NormalizationResult:
        try:
            with Image.open(io.BytesIO(raw.data)) as source:
                image = ImageOps.exif_transpose(source)
                if image.mode != "RGB":
                    image = image.convert("RGB")
                target = scaled_dimensions(image.width, image.height, self.max_width)
                if target != image.size:
                    image = image.resize(target, Image.Resampling.LANCZOS)
                else:
                    image.load()
        except Exception as e:
            logger.warning(f"⚠️ Could not decode {raw.filename}: {e}")
            return NormalizationResult(error=NormalizationException(
                f"Could not decode {raw.filename}", {"reason": str(e)}
            ))

        best: Optional[bytes] = None
        attempts = 0
        low, high = QUALITY_LOW, QUALITY_HIGH
        try:
            for _ in range(SEARCH_ITERATIONS):
                quality = (low + high) / 2
                attempts += 1
                blob = self.encoder.encode(image, quality)
                if not blob:
                    break
                best = blob
                size = len(blob)
                if size > self.max_bytes:
                    high = quality
                elif size < self.min_bytes:
                    low = quality
                else:
                    break
        except Exception as e:
            logger.warning(f"⚠️ Encoding failed for {raw.filename}: {e}")
            return NormalizationResult(
                error=NormalizationException(f"Could not encode {raw.filename}", {"reason": str(e)}),
                attempts=attempts
            )

        if best is None:
            return NormalizationResult(
                error=NormalizationException(f"Encoder produced no output for {raw.filename}"),
                attempts=attempts
            )

        normalized = NormalizedImage(
            data=best,
            content_type=self.encoder.content_type,
            filename=jpeg_filename(raw.filename),
            width=image.width,
            height=image.height
        )
        logger.info(
            f"📷 Normalized {raw.filename}: {raw.size} → {normalized.size} bytes, "
            f"{image.width}x{image.height} in {attempts} attempts"
        )
        return NormalizationResult(image=normalized, attempts=attempts)


# Global normalizer instance
image_normalizer = ImageNormalizer()
