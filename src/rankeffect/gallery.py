"""Gallery session state: media, votes, selection and in-flight votes.

A controller moves through three states:

    LOADING      -> READY          load() finished (even on listing failure)
    READY        -> DETAIL_OPEN    select(item)
    DETAIL_OPEN  -> READY          deselect(), or the selected item got hidden

One controller is created per session; sessions share nothing but the vote
store.
"""

import asyncio
import enum
import logging

from .errors import ListingFault
from .models import MediaItem, VoteRecord
from .voting import is_hidden

logger = logging.getLogger(__name__)

DEFAULT_SURFACE = "detail"


class GalleryState(enum.Enum):
    LOADING = "loading"
    READY = "ready"
    DETAIL_OPEN = "detail_open"


class GalleryController:
    def __init__(self, vote_store, aggregator, url_prefix: str = "/media"):
        self._vote_store = vote_store
        self._aggregator = aggregator
        self._url_prefix = url_prefix.rstrip("/")
        self._recorders = {
            "up": vote_store.record_upvote,
            "down": vote_store.record_downvote,
            "veto": vote_store.record_veto,
        }
        self._pending: set[str] = set()
        self.state = GalleryState.LOADING
        self.media: list[MediaItem] = []
        self.votes: dict[str, VoteRecord] = {}
        self.selected: MediaItem | None = None
        self.error: str | None = None  # non-fatal banner, e.g. remote listing failed

    async def load(self) -> None:
        """Fetch votes and media together, falling back to local media."""
        self.state = GalleryState.LOADING
        self.error = None

        votes, media = await asyncio.gather(
            self._vote_store.get_all_votes(),
            self._aggregator.aggregate(),
            return_exceptions=True,
        )
        if isinstance(votes, BaseException):
            raise votes
        if isinstance(media, ListingFault):
            logger.warning("Remote listing failed, showing local media only: %s", media)
            self.error = str(media)
            media = self._aggregator.list_local_media()
        elif isinstance(media, BaseException):
            raise media

        self.votes = votes
        self.media = media
        self.state = GalleryState.READY
        logger.info("Gallery ready with %d media items", len(self.media))

    def visible_items(self) -> list[MediaItem]:
        """Media not hidden by vetos; items without votes are always shown."""
        return [
            item
            for item in self.media
            if item.filename not in self.votes
            or not is_hidden(self.votes[item.filename].vetos)
        ]

    def votes_for(self, filename: str) -> VoteRecord:
        return self.votes.get(filename) or VoteRecord(filename)

    def selected_record(self) -> VoteRecord | None:
        if self.selected is None:
            return None
        return self.votes_for(self.selected.filename)

    def select(self, item: MediaItem) -> None:
        self.selected = item
        self.state = GalleryState.DETAIL_OPEN

    def deselect(self) -> None:
        self.selected = None
        if self.state == GalleryState.DETAIL_OPEN:
            self.state = GalleryState.READY

    def is_pending(self, surface: str = DEFAULT_SURFACE) -> bool:
        return surface in self._pending

    async def apply_vote(
        self, filename: str, kind: str, surface: str = DEFAULT_SURFACE
    ) -> VoteRecord | None:
        """Record a vote and adopt the store's confirmed counts.

        kind is "up", "down" or "veto". Returns None without contacting the
        store while another vote from the same surface is in flight.
        StoreWriteFault propagates and leaves the vote map untouched.
        """
        try:
            recorder = self._recorders[kind]
        except KeyError:
            raise ValueError(f"Unknown vote kind: {kind!r}") from None

        if surface in self._pending:
            logger.debug("Rejected %s vote for %s: %s is busy", kind, filename, surface)
            return None

        self._pending.add(surface)
        try:
            record = await recorder(filename)
        finally:
            self._pending.discard(surface)

        self.votes[filename] = record
        if (
            self.selected is not None
            and self.selected.filename == filename
            and is_hidden(record.vetos)
        ):
            logger.info("%s is now hidden, closing detail view", filename)
            self.deselect()
        return record

    def media_path(self, item: MediaItem) -> str:
        """Remote URL, or the static asset path for local media."""
        return item.url or f"{self._url_prefix}/{item.filename}"
