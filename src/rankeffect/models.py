"""Data models for gallery media and their vote counters."""

from dataclasses import dataclass

VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "mov", "avi"})
HEIC_EXTENSIONS = frozenset({"heic", "heif"})

# Extensions listed from remote libraries and local media directories
MEDIA_EXTENSIONS = frozenset(
    {"jpg", "jpeg", "png", "gif", "webp", "heic", "heif", "mp4", "mov", "webm"}
)

VOTE_FIELDS = ("upvotes", "downvotes", "vetos")


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot, or "" when there is none."""
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def is_video_file(filename: str) -> bool:
    return file_extension(filename) in VIDEO_EXTENSIONS


@dataclass(frozen=True)
class MediaItem:
    filename: str
    id: str | None = None  # external content id (remote items only)
    url: str | None = None  # remote URL (remote items only)
    size: int | None = None
    mime_type: str | None = None

    @property
    def kind(self) -> str:
        return "video" if is_video_file(self.filename) else "image"

    @property
    def is_remote(self) -> bool:
        return self.id is not None or self.url is not None

    @property
    def is_heic(self) -> bool:
        return file_extension(self.filename) in HEIC_EXTENSIONS


@dataclass
class VoteRecord:
    filename: str
    upvotes: int = 0
    downvotes: int = 0
    vetos: int = 0

    @classmethod
    def from_fields(cls, filename: str, fields: dict) -> "VoteRecord":
        """Build a record from a stored document, validating the counters.

        Missing counters count as zero. Raises ValueError for negative or
        non-integer counters.
        """
        counts = {}
        for name in VOTE_FIELDS:
            value = fields.get(name, 0)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} for {filename!r} is not an integer: {value!r}")
            if value < 0:
                raise ValueError(f"{name} for {filename!r} is negative: {value}")
            counts[name] = value
        return cls(filename=fields.get("filename") or filename, **counts)

    def to_fields(self) -> dict:
        return {
            "filename": self.filename,
            "upvotes": self.upvotes,
            "downvotes": self.downvotes,
            "vetos": self.vetos,
        }
