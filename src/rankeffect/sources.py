"""Merge remote and local media listings into one gallery sequence."""

import logging
from pathlib import Path

from .models import MEDIA_EXTENSIONS, MediaItem, file_extension

logger = logging.getLogger(__name__)


def scan_media_dir(media_dir: Path) -> list[str]:
    """Sorted filenames of the supported media files directly in media_dir."""
    if not media_dir.is_dir():
        logger.debug("Local media directory %s does not exist", media_dir)
        return []
    return sorted(
        p.name
        for p in media_dir.iterdir()
        if p.is_file() and file_extension(p.name) in MEDIA_EXTENSIONS
    )


class MediaAggregator:
    """Lists gallery media: remote items first, then local ones.

    The remote lister is anything with an async list_media_files() method
    (normally a SharePointClient). Its ListingFault propagates unchanged; the
    caller decides whether to fall back to local media.
    """

    def __init__(
        self,
        remote=None,
        local_files: list[str] | None = None,
        media_dir: Path | None = None,
    ):
        self._remote = remote
        self._local_files = list(local_files or [])
        self._media_dir = media_dir

    async def list_remote_media(self) -> list[MediaItem]:
        if self._remote is None:
            return []
        return list(await self._remote.list_media_files())

    def list_local_media(self) -> list[MediaItem]:
        filenames = self._local_files
        if not filenames and self._media_dir is not None:
            filenames = scan_media_dir(self._media_dir)
        return [MediaItem(filename=name) for name in filenames]

    async def aggregate(self) -> list[MediaItem]:
        remote = await self.list_remote_media()
        local = self.list_local_media()
        logger.info("Aggregated %d remote and %d local media items", len(remote), len(local))
        return remote + local
