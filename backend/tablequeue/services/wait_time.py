"""
Wait-time estimation per party-size band.

An estimate is the mean number of minutes between a ticket being created
and being seated, taken from tickets seated earlier. Today's samples win
when there are any; otherwise the trailing historical window (full local
days before today) is used. Both figures are always returned so the UI can
say where a number came from.

No sample means no estimate. A missing estimate is None, never 0.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.config import get_settings
from tablequeue.models import QueueTicket, Restaurant, TicketStatus
from tablequeue.services.size_groups import ALL_BANDS, SizeBand, classify
from tablequeue.utils.timezone import day_bounds, trailing_days_bounds, utc_now

TODAY = "today"
HISTORICAL = "historical"


@dataclass(frozen=True)
class WaitTimeSample:
    band: SizeBand
    wait_minutes: float


@dataclass(frozen=True)
class BandAverage:
    minutes: int
    sample_count: int


@dataclass
class WaitTimeEstimate:
    """Estimate for one band, with provenance."""
    band: SizeBand
    minutes: Optional[int] = None
    source: Optional[str] = None  # 'today', 'historical' or None
    sample_count: int = 0
    today_minutes: Optional[int] = None
    today_samples: int = 0
    historical_minutes: Optional[int] = None
    historical_samples: int = 0

    @property
    def available(self) -> bool:
        return self.minutes is not None


def wait_minutes(created_at: datetime, seated_at: Optional[datetime]) -> Optional[float]:
    """
    Minutes waited, or None when the row cannot be a sample.

    Zero and negative durations come from clock skew or bad data and are
    dropped rather than clamped.
    """
    if seated_at is None:
        return None
    minutes = (seated_at - created_at).total_seconds() / 60
    if minutes <= 0:
        return None
    return minutes


def samples_from_rows(rows: Iterable[tuple[int, datetime, Optional[datetime]]]) -> list[WaitTimeSample]:
    """Build samples from (party_size, created_at, seated_at) rows."""
    samples = []
    for party_size, created_at, seated_at in rows:
        if party_size is None or party_size < 1:
            continue
        minutes = wait_minutes(created_at, seated_at)
        if minutes is not None:
            samples.append(WaitTimeSample(band=classify(party_size), wait_minutes=minutes))
    return samples


def _round_minutes(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def average_by_band(
    samples: Iterable[WaitTimeSample],
    min_samples: int = 1,
) -> dict[SizeBand, BandAverage]:
    """
    Mean wait per band, rounded to whole minutes.

    Bands with fewer than `min_samples` samples are left out entirely.
    """
    grouped: dict[SizeBand, list[float]] = defaultdict(list)
    for sample in samples:
        grouped[sample.band].append(sample.wait_minutes)

    averages = {}
    for band, values in grouped.items():
        if len(values) >= max(min_samples, 1):
            averages[band] = BandAverage(
                minutes=_round_minutes(sum(values) / len(values)),
                sample_count=len(values),
            )
    return averages


async def collect_samples(
    db: AsyncSession,
    restaurant_id: UUID,
    start: datetime,
    end: datetime,
) -> list[WaitTimeSample]:
    """Samples from tickets created in [start, end) and seated."""
    result = await db.execute(
        select(QueueTicket.party_size, QueueTicket.created_at, QueueTicket.seated_at)
        .where(
            QueueTicket.restaurant_id == restaurant_id,
            QueueTicket.status == TicketStatus.SEATED.value,
            QueueTicket.seated_at.is_not(None),
            QueueTicket.created_at >= start,
            QueueTicket.created_at < end,
        )
    )
    return samples_from_rows(result.all())


def combine(
    band: SizeBand,
    today: dict[SizeBand, BandAverage],
    historical: dict[SizeBand, BandAverage],
) -> WaitTimeEstimate:
    """Pick today's average when present, else the historical one."""
    estimate = WaitTimeEstimate(band=band)

    if band in today:
        estimate.today_minutes = today[band].minutes
        estimate.today_samples = today[band].sample_count
    if band in historical:
        estimate.historical_minutes = historical[band].minutes
        estimate.historical_samples = historical[band].sample_count

    if estimate.today_minutes is not None:
        estimate.minutes = estimate.today_minutes
        estimate.source = TODAY
        estimate.sample_count = estimate.today_samples
    elif estimate.historical_minutes is not None:
        estimate.minutes = estimate.historical_minutes
        estimate.source = HISTORICAL
        estimate.sample_count = estimate.historical_samples

    return estimate


async def estimate_all_bands(
    db: AsyncSession,
    restaurant: Restaurant,
    as_of: Optional[datetime] = None,
    strict: bool = False,
) -> dict[SizeBand, WaitTimeEstimate]:
    """
    Estimates for every band in one pass over the two windows.

    Args:
        db: Database session
        restaurant: Restaurant whose timezone defines "today"
        as_of: Naive UTC instant to estimate for (default: now)
        strict: Require the configured minimum sample count before
            trusting an average (settings screen display)
    """
    settings = get_settings()
    as_of = as_of or utc_now()
    timezone = restaurant.timezone or settings.default_timezone
    min_samples = settings.wait_time_min_samples if strict else 1

    today_start, today_end = day_bounds(as_of, timezone)
    history_start, history_end = trailing_days_bounds(
        as_of, timezone, settings.wait_time_history_days
    )

    today = average_by_band(
        await collect_samples(db, restaurant.id, today_start, today_end),
        min_samples=min_samples,
    )
    historical = average_by_band(
        await collect_samples(db, restaurant.id, history_start, history_end),
        min_samples=min_samples,
    )

    return {band: combine(band, today, historical) for band in ALL_BANDS}


async def estimate(
    db: AsyncSession,
    restaurant: Restaurant,
    band: SizeBand,
    as_of: Optional[datetime] = None,
    strict: bool = False,
) -> WaitTimeEstimate:
    """Estimate for a single band. See estimate_all_bands."""
    estimates = await estimate_all_bands(db, restaurant, as_of=as_of, strict=strict)
    return estimates[SizeBand(band)]


def general_average(estimates: Iterable[WaitTimeEstimate]) -> Optional[int]:
    """
    Sample-weighted mean over every band that has an estimate.

    Shown as the restaurant-wide "typical wait". None when no band has one.
    """
    total = 0.0
    samples = 0
    for band_estimate in estimates:
        if band_estimate.minutes is None:
            continue
        total += band_estimate.minutes * band_estimate.sample_count
        samples += band_estimate.sample_count

    if samples == 0:
        return None
    return _round_minutes(total / samples)
