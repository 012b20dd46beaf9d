"""HEIC conversion and thumbnail generation for served media.

HEIC/HEIF decoding is provided by pillow-heif, registered as a Pillow opener
at import time.
"""

import io
import logging

import pillow_heif
from PIL import Image, UnidentifiedImageError

from .errors import TransformFault
from .models import HEIC_EXTENSIONS, file_extension, is_video_file

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

HEIC_JPEG_QUALITY = 90
THUMB_SIZE = 400
THUMB_QUALITY = 80

_IMAGE_ERRORS = (UnidentifiedImageError, OSError, ValueError)


def _to_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    img.convert("RGB").save(buf, "JPEG", quality=quality)
    return buf.getvalue()


def convert_heic(data: bytes, filename: str | None = None) -> bytes:
    """Convert HEIC/HEIF bytes to JPEG. Raises TransformFault on failure."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _to_jpeg(img, HEIC_JPEG_QUALITY)
    except _IMAGE_ERRORS as e:
        raise TransformFault(f"Failed to convert HEIC image: {e}", filename=filename) from e


def make_thumbnail(data: bytes, size: int = THUMB_SIZE) -> bytes:
    """Square center-crop thumbnail as JPEG bytes."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = img.convert("RGB")
            w, h = img.size
            side = min(w, h)
            left = (w - side) // 2
            top = (h - side) // 2
            img = img.crop((left, top, left + side, top + side))
            img = img.resize((size, size), Image.LANCZOS)
            return _to_jpeg(img, THUMB_QUALITY)
    except _IMAGE_ERRORS as e:
        raise TransformFault(f"Failed to create thumbnail: {e}") from e


def prepare_media(
    filename: str,
    data: bytes,
    content_type: str = "application/octet-stream",
    thumbnail: bool = False,
) -> tuple[bytes, str]:
    """Make media bytes displayable, returning (bytes, content type).

    HEIC images are always converted to JPEG. Thumbnails are only made for
    images; if one cannot be made the full image is returned instead.
    """
    if file_extension(filename) in HEIC_EXTENSIONS:
        data = convert_heic(data, filename=filename)
        content_type = "image/jpeg"

    if thumbnail and not is_video_file(filename):
        try:
            data = make_thumbnail(data)
            content_type = "image/jpeg"
        except TransformFault as e:
            logger.warning("Thumbnail generation failed for %s: %s", filename, e)

    return data, content_type
