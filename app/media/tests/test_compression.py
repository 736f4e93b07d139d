"""Tests for ImageCompressor."""

from io import BytesIO

import pytest
from PIL import Image

from media.services.compression import CompressionError, ImageCompressor
from media.services.payload import MediaPayload


def _decode(payload: MediaPayload) -> Image.Image:
    return Image.open(BytesIO(payload.content))


class TestImageCompressor:
    """Tests for JPEG recompression."""

    def test_png_becomes_jpeg(self, png_payload):
        result = ImageCompressor(quality=80).compress(png_payload)

        assert result.content_type == "image/jpeg"
        assert result.file_name == "logo.jpg"
        with _decode(result) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"

    def test_transparency_flattened_to_white(self):
        image = Image.new("RGBA", (8, 8), color=(0, 0, 0, 0))
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        payload = MediaPayload(buffer.getvalue(), "clear.png", "image/png")

        result = ImageCompressor().compress(payload)

        with _decode(result) as img:
            red, green, blue = img.getpixel((4, 4))
        assert min(red, green, blue) > 245

    def test_lower_quality_is_smaller(self):
        image = Image.effect_noise((256, 256), 64).convert("RGB")
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        payload = MediaPayload(buffer.getvalue(), "noise.png", "image/png")

        high = ImageCompressor(quality=95).compress(payload)
        low = ImageCompressor(quality=30).compress(payload)

        assert low.size < high.size

    def test_undecodable_bytes(self):
        payload = MediaPayload(b"definitely not an image", "broken.jpg", "image/jpeg")

        with pytest.raises(CompressionError, match="broken.jpg"):
            ImageCompressor().compress(payload)
