"""
Party-size bands.

The walk-in queue is really several parallel queues, one per band, so a
party of two never waits behind a party of eight for a table it could
not use anyway. Each band keeps its own 1..n ranking.
"""

from enum import Enum


class SizeBand(str, Enum):
    """Party-size buckets, smallest first."""
    B1_2 = "1-2"
    B3_4 = "3-4"
    B5_6 = "5-6"
    B7_8 = "7-8"
    B9_10 = "9-10"
    B10_PLUS = "10+"  # 11 and above


ALL_BANDS: tuple[SizeBand, ...] = tuple(SizeBand)

# Upper bound (inclusive) of each bounded band
_BAND_CEILINGS: tuple[tuple[int, SizeBand], ...] = (
    (2, SizeBand.B1_2),
    (4, SizeBand.B3_4),
    (6, SizeBand.B5_6),
    (8, SizeBand.B7_8),
    (10, SizeBand.B9_10),
)

_BAND_LABELS = {
    SizeBand.B1_2: "1–2 people",
    SizeBand.B3_4: "3–4 people",
    SizeBand.B5_6: "5–6 people",
    SizeBand.B7_8: "7–8 people",
    SizeBand.B9_10: "9–10 people",
    SizeBand.B10_PLUS: "10+ people",
}


def classify(party_size: int) -> SizeBand:
    """
    Map a party size to its band.

    Raises:
        ValueError: if party_size is below 1. A party of zero has no band
            and must never be silently filed under 1-2.
    """
    if party_size < 1:
        raise ValueError(f"party_size must be at least 1, got {party_size}")

    for ceiling, band in _BAND_CEILINGS:
        if party_size <= ceiling:
            return band
    return SizeBand.B10_PLUS


def matches_band(party_size: int, band: SizeBand) -> bool:
    """Check if a party size belongs to a specific band."""
    return party_size >= 1 and classify(party_size) == band


def band_label(band: SizeBand) -> str:
    """Human-friendly label, e.g. '3–4 people'."""
    return _BAND_LABELS[SizeBand(band)]
