"""Stream ranking and sorting by quality label."""

from __future__ import annotations

from streamgarr.domain.entities import Stream

# Checked in order; first substring hit wins.
_RESOLUTION_TOKENS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("4k", "2160"), 2160),
    (("1440",), 1440),
    (("1080",), 1080),
    (("720",), 720),
    (("480",), 480),
    (("360",), 360),
    (("240",), 240),
)

ORIGINAL_RANK = 2200
AUTO_RANK = 1000
UNKNOWN_RANK = 0


def quality_rank(label: str) -> int:
    """Numeric rank for a quality label.

    "1080p" -> 1080, "4K" -> 2160, "Original" -> 2200, "Auto" -> 1000,
    anything unrecognized -> 0.
    """
    q = label.strip().lower()
    for tokens, rank in _RESOLUTION_TOKENS:
        if any(t in q for t in tokens):
            return rank
    if q == "original":
        return ORIGINAL_RANK
    if q == "auto":
        return AUTO_RANK
    return UNKNOWN_RANK


class StreamSorter:
    """Ranking: quality only (best first), stable for equal ranks."""

    def rank(self, stream: Stream) -> int:
        return quality_rank(stream.quality)

    def sort(self, streams: list[Stream]) -> list[Stream]:
        """Return a new list sorted descending by rank.

        ``sorted`` is stable, so streams of equal rank keep their
        provider/result order.
        """
        return sorted(streams, key=self.rank, reverse=True)
