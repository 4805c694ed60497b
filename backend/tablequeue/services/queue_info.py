"""
Queue info for the customer-facing ticket status page.

Read-only. Aggregates the live waiting list of a restaurant and, when a
ticket id is given, where that ticket stands in it. A ticket that cannot be
placed (other restaurant, outside the lookback window, no longer waiting)
is a normal outcome and yields `position = None`, not an error.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.models import QueueTicket, TicketStatus
from tablequeue.services import positions
from tablequeue.services.queue_service import list_live_tickets, lookback_cutoff
from tablequeue.services.restaurant_service import get_queue_limits, get_restaurant
from tablequeue.services.size_groups import band_label
from tablequeue.utils.timezone import utc_now


@dataclass
class TicketSnapshot:
    id: UUID
    status: str
    party_size: int
    customer_name: str
    position_number: int
    created_at: datetime


@dataclass
class QueueInfo:
    restaurant_id: UUID
    restaurant_name: str
    total_groups: int
    total_people: int
    # Restaurant-wide chronological index among waiting tickets
    position: Optional[int]
    # Rank among waiting tickets of the same size band
    band_rank: Optional[int]
    size_group: Optional[str]
    ticket: Optional[TicketSnapshot]
    tolerance_minutes: int
    max_party_size: int
    queue_capacity: int
    cutoff: datetime


async def _find_ticket(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
    cutoff: datetime,
) -> Optional[QueueTicket]:
    """The ticket, if it belongs to this restaurant and is inside the window."""
    result = await db.execute(
        select(QueueTicket).where(
            QueueTicket.id == ticket_id,
            QueueTicket.restaurant_id == restaurant_id,
            QueueTicket.created_at >= cutoff,
        )
    )
    return result.scalar_one_or_none()


async def get_queue_info(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> QueueInfo:
    """
    Aggregate counts and, optionally, one ticket's standing.

    Raises:
        RestaurantNotFound: unknown restaurant. An unknown ticket never raises.
    """
    now = now or utc_now()
    cutoff = lookback_cutoff(now)

    restaurant = await get_restaurant(db, restaurant_id)
    limits = await get_queue_limits(db, restaurant.id)

    waiting = await list_live_tickets(
        db, restaurant.id, now=now, statuses=(TicketStatus.WAITING.value,)
    )

    info = QueueInfo(
        restaurant_id=restaurant.id,
        restaurant_name=restaurant.name,
        total_groups=len(waiting),
        total_people=sum(t.party_size for t in waiting),
        position=None,
        band_rank=None,
        size_group=None,
        ticket=None,
        tolerance_minutes=limits.tolerance_minutes,
        max_party_size=limits.max_party_size,
        queue_capacity=limits.queue_capacity,
        cutoff=cutoff,
    )

    if ticket_id is None:
        return info

    ticket = await _find_ticket(db, restaurant.id, ticket_id, cutoff)
    if ticket is None:
        return info

    info.ticket = TicketSnapshot(
        id=ticket.id,
        status=ticket.status,
        party_size=ticket.party_size,
        customer_name=ticket.customer_name,
        position_number=ticket.position_number,
        created_at=ticket.created_at,
    )
    info.size_group = band_label(ticket.size_band)
    info.position = positions.queue_index(ticket.id, waiting)
    info.band_rank = positions.band_rank(ticket.id, waiting)
    return info
