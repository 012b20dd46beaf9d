"""Error types raised across the gallery.

Read faults are recovered where they occur; every other fault is propagated
to the caller, which decides how to degrade.
"""


class GalleryError(RuntimeError):
    """Base class for all gallery faults."""


class StoreReadFault(GalleryError):
    """Reading vote documents failed. Recovered by the vote store."""


class StoreWriteFault(GalleryError):
    """Recording a vote failed. The vote must not be shown as applied."""


class ListingFault(GalleryError):
    """Listing remote media failed. Triggers the local-only fallback."""


class TransformFault(GalleryError):
    """Uploading or converting a single media file failed."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(message)
        self.filename = filename


class AuthenticationError(GalleryError):
    """Credentials were rejected by the authentication gate."""
