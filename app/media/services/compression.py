"""
JPEG recompression used for the moderation size retry.

Sightengine refuses images above its own size limit (error code 14). The
moderation gateway then recompresses the image once with Pillow and
resubmits it. The compressed bytes are only used for moderation.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import PurePath

from PIL import Image

from media.services.payload import MediaPayload

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 90


class CompressionError(Exception):
    """Raised when an image cannot be decoded or re-encoded."""


class ImageCompressor:
    """
    Re-encode images as JPEG at a fixed quality.

    Example:
        compressor = ImageCompressor(quality=90)
        smaller = compressor.compress(payload)
    """

    def __init__(self, quality: int = DEFAULT_QUALITY):
        self.quality = quality

    def compress(self, payload: MediaPayload) -> MediaPayload:
        """
        Return a JPEG copy of the image.

        Raises:
            CompressionError: If the bytes are not a decodable image.
        """
        try:
            with Image.open(BytesIO(payload.content)) as img:
                img = _convert_to_rgb(img)
                buffer = BytesIO()
                img.save(buffer, format="JPEG", quality=self.quality, optimize=True)
        except (Image.UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise CompressionError(f"Unable to compress {payload.file_name}: {e}") from e

        compressed = buffer.getvalue()
        logger.info(
            "Compressed image for moderation",
            extra={
                "file_name": payload.file_name,
                "original_bytes": payload.size,
                "compressed_bytes": len(compressed),
                "quality": self.quality,
            },
        )
        return MediaPayload(
            content=compressed,
            file_name=str(PurePath(payload.file_name).with_suffix(".jpg")),
            content_type="image/jpeg",
        )


def _convert_to_rgb(img: Image.Image) -> Image.Image:
    """Flatten any color mode onto RGB; transparency becomes white."""
    if img.mode == "RGB":
        return img

    if img.mode == "LA" or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA")

    if img.mode == "RGBA":
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background

    return img.convert("RGB")
