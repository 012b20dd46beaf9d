"""Upload a batch of local media files to the remote library.

Each file is validated, given a unique timestamped name and uploaded on its
own; a failure is recorded for that file and the batch carries on.
"""

import logging
import mimetypes
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .errors import TransformFault
from .models import MediaItem, file_extension

logger = logging.getLogger(__name__)

VALID_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/heic",
        "image/heif",
        "video/mp4",
        "video/webm",
        "video/quicktime",
    }
)
VALID_EXTENSIONS = frozenset(
    {"jpg", "jpeg", "png", "gif", "webp", "heic", "heif", "mp4", "webm", "mov"}
)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

# mimetypes does not know HEIC on every platform
_EXTRA_TYPES = {"heic": "image/heic", "heif": "image/heif", "mov": "video/quicktime"}


def guess_mime_type(filename: str) -> str:
    extra = _EXTRA_TYPES.get(file_extension(filename))
    if extra:
        return extra
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def is_valid_media(filename: str, content_type: str | None = None) -> bool:
    """Accept known media MIME types, or known extensions when the type is off."""
    return content_type in VALID_MIME_TYPES or file_extension(filename) in VALID_EXTENSIONS


def unique_filename(name: str, now: float | None = None) -> str:
    """Prefix a sanitized name with the epoch milliseconds."""
    timestamp = int((time.time() if now is None else now) * 1000)
    return f"{timestamp}_{_UNSAFE_CHARS.sub('_', name)}"


@dataclass
class UploadFailure:
    path: Path
    reason: str


@dataclass
class BatchResult:
    uploaded: list[MediaItem] = field(default_factory=list)
    failed: list[UploadFailure] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


async def upload_batch(
    uploader,
    paths: list[Path],
    on_progress: Callable[[int, int], None] | None = None,
) -> BatchResult:
    """Upload files one by one through uploader.upload_file().

    Args:
        uploader: Object with an async upload_file(filename, data, mime_type).
        paths: Local files to upload, in order.
        on_progress: Called with (completed, total) after each attempted file.
    """
    result = BatchResult()
    total = len(paths)

    for done, path in enumerate(paths, start=1):
        mime_type = guess_mime_type(path.name)
        if not is_valid_media(path.name, mime_type):
            logger.warning("Skipping %s: not an image or video", path)
            result.skipped.append(path)
        else:
            try:
                data = path.read_bytes()
                item = await uploader.upload_file(
                    unique_filename(path.name), data, mime_type
                )
                result.uploaded.append(item)
            except (TransformFault, OSError) as e:
                logger.error("Failed to upload %s: %s", path, e)
                result.failed.append(UploadFailure(path=path, reason=str(e)))

        if on_progress:
            on_progress(done, total)

    logger.info(
        "Upload batch finished: %d uploaded, %d failed, %d skipped",
        len(result.uploaded),
        len(result.failed),
        len(result.skipped),
    )
    return result
