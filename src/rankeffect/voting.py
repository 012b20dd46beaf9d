"""Approval quota and visibility rules.

Both functions are pure; counters are validated when records are read from
the store, so negative input is not handled here.
"""

# Number of vetos at which an item disappears from the gallery
HIDE_THRESHOLD = 2


def compute_quota(upvotes: int, downvotes: int) -> float | None:
    """Share of upvotes among up- and downvotes, or None when nobody voted."""
    total = upvotes + downvotes
    if total == 0:
        return None
    return upvotes / total


def is_hidden(vetos: int) -> bool:
    return vetos >= HIDE_THRESHOLD


def format_quota(quota: float | None) -> str:
    if quota is None:
        return "No votes yet"
    return f"{round(quota * 100)}% positive"


def quota_tone(quota: float | None) -> str:
    """Classify a quota as "neutral", "positive" or "negative" for display."""
    if quota is None:
        return "neutral"
    return "positive" if quota >= 0.5 else "negative"
