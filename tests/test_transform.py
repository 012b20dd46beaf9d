"""Tests for HEIC conversion and thumbnails."""

import io

import pytest
from PIL import Image

from rankeffect.errors import TransformFault
from rankeffect.transform import convert_heic, make_thumbnail, prepare_media


def image_bytes(size=(800, 600), fmt="PNG", color="red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, fmt)
    return buf.getvalue()


def open_image(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class TestMakeThumbnail:
    def test_square_jpeg(self):
        thumb = open_image(make_thumbnail(image_bytes((800, 600))))
        assert thumb.format == "JPEG"
        assert thumb.size == (400, 400)

    def test_portrait_source(self):
        thumb = open_image(make_thumbnail(image_bytes((300, 900)), size=100))
        assert thumb.size == (100, 100)

    def test_garbage_raises(self):
        with pytest.raises(TransformFault, match="thumbnail"):
            make_thumbnail(b"not an image")


class TestConvertHeic:
    def test_garbage_raises_with_filename(self):
        with pytest.raises(TransformFault) as exc_info:
            convert_heic(b"not an image", filename="IMG_1.heic")
        assert exc_info.value.filename == "IMG_1.heic"

    def test_output_is_jpeg(self):
        # Any decodable image goes through the same path as HEIC input
        assert open_image(convert_heic(image_bytes())).format == "JPEG"


class TestPrepareMedia:
    def test_plain_image_untouched(self):
        data = image_bytes()
        assert prepare_media("a.png", data, "image/png") == (data, "image/png")

    def test_thumbnail_for_image(self):
        data, content_type = prepare_media("a.png", image_bytes(), "image/png", thumbnail=True)
        assert content_type == "image/jpeg"
        assert open_image(data).size == (400, 400)

    def test_no_thumbnail_for_video(self):
        data, content_type = prepare_media("clip.mp4", b"\x00video", "video/mp4", thumbnail=True)
        assert (data, content_type) == (b"\x00video", "video/mp4")

    def test_heic_always_converted(self):
        data, content_type = prepare_media("IMG_1.HEIC", image_bytes(), "image/heic")
        assert content_type == "image/jpeg"
        assert open_image(data).size == (800, 600)

    def test_heic_failure_propagates(self):
        with pytest.raises(TransformFault):
            prepare_media("IMG_1.heic", b"broken", "image/heic")

    def test_failed_thumbnail_returns_original(self, caplog):
        data, content_type = prepare_media("a.jpg", b"broken", "image/jpeg", thumbnail=True)
        assert (data, content_type) == (b"broken", "image/jpeg")
        assert "Thumbnail generation failed for a.jpg" in caplog.text
