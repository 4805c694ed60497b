"""
Live queue positions.

Two distinct notions of "position" exist and are kept apart on purpose:

- band rank: 1-based place of a waiting ticket among waiting tickets of
  the same size band. This is what the front-of-house board shows.
- queue index: 1-based place in the restaurant-wide chronological list of
  waiting tickets, regardless of band. This is what the public ticket
  status page reports as `position`.

Everything here is a pure function over a snapshot of tickets. Callers
load the snapshot; nothing is written back.
"""

from datetime import datetime
from typing import Iterable, Protocol, Sequence
from uuid import UUID

from tablequeue.models.queue_ticket import TicketStatus
from tablequeue.services.size_groups import ALL_BANDS, SizeBand, classify


class TicketLike(Protocol):
    id: UUID
    party_size: int
    status: str
    created_at: datetime


def chronological(tickets: Iterable[TicketLike]) -> list[TicketLike]:
    """Sort by creation time, ticket id breaking ties deterministically."""
    return sorted(tickets, key=lambda t: (t.created_at, str(t.id)))


def waiting_only(tickets: Iterable[TicketLike]) -> list[TicketLike]:
    """Waiting tickets in chronological order."""
    return chronological(t for t in tickets if t.status == TicketStatus.WAITING)


def band_ranks(tickets: Iterable[TicketLike]) -> dict[SizeBand, dict[UUID, int]]:
    """
    Rank waiting tickets within their own size band.

    Every band is present in the result, possibly empty. Within a band ranks
    run 1..n with no gaps, in creation order.
    """
    ranks: dict[SizeBand, dict[UUID, int]] = {band: {} for band in ALL_BANDS}

    for ticket in waiting_only(tickets):
        band_map = ranks[classify(ticket.party_size)]
        band_map[ticket.id] = len(band_map) + 1

    return ranks


def band_rank(ticket_id: UUID, tickets: Sequence[TicketLike]) -> int | None:
    """Rank of one ticket within its band, or None if it is not waiting."""
    for ticket in tickets:
        if ticket.id == ticket_id:
            if ticket.status != TicketStatus.WAITING:
                return None
            return band_ranks(tickets)[classify(ticket.party_size)].get(ticket_id)
    return None


def queue_index(ticket_id: UUID, tickets: Iterable[TicketLike]) -> int | None:
    """1-based index in the restaurant-wide list of waiting tickets."""
    for index, ticket in enumerate(waiting_only(tickets), start=1):
        if ticket.id == ticket_id:
            return index
    return None


def count_waiting_by_band(tickets: Iterable[TicketLike]) -> dict[SizeBand, int]:
    """How many parties are waiting in each band."""
    return {band: len(ranked) for band, ranked in band_ranks(tickets).items()}
