"""
Restaurant queue API endpoints.

Front-of-house operations on a restaurant's walk-in queue. All endpoints
except the restaurant lookup require staff access.
"""

import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.auth.dependencies import verify_staff_access
from tablequeue.database import get_db
from tablequeue.models import TicketStatus
from tablequeue.schemas.queue import (
    BoardTicketResponse,
    ClearQueueResponse,
    QueueBoardResponse,
    QueueSettingsResponse,
    QueueSettingsUpdate,
    SeatResponse,
    TicketCreate,
    TicketResponse,
    WaitTimeResponse,
    WaitTimesResponse,
)
from tablequeue.services import positions, queue_service, restaurant_service, wait_time
from tablequeue.services.size_groups import band_label
from tablequeue.utils.timezone import utc_now

router = APIRouter()


# =============================================================================
# Response Schemas
# =============================================================================

class RestaurantResponse(BaseModel):
    """Restaurant information."""
    id: uuid.UUID
    name: str
    slug: str
    timezone: str
    is_active: bool

    class Config:
        from_attributes = True


# =============================================================================
# Restaurant Endpoints
# =============================================================================

@router.get("/{slug}", response_model=RestaurantResponse)
async def get_restaurant(
    slug: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Get a specific restaurant by slug.
    """
    return await restaurant_service.get_restaurant_by_slug(db, slug)


# =============================================================================
# Queue Board
# =============================================================================

@router.get(
    "/{restaurant_id}/queue/tickets",
    response_model=QueueBoardResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def get_queue_board(
    restaurant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Live board: waiting and called tickets inside the lookback window.

    Waiting tickets carry their rank within their size band, their place in
    the restaurant-wide list, and the band's current wait estimate.
    """
    now = utc_now()
    restaurant = await restaurant_service.get_restaurant(db, restaurant_id)
    tickets = await queue_service.list_live_tickets(db, restaurant.id, now=now)
    estimates = await wait_time.estimate_all_bands(db, restaurant, as_of=now)

    ranks = positions.band_ranks(tickets)
    waiting = positions.waiting_only(tickets)
    queue_indexes = {t.id: index for index, t in enumerate(waiting, start=1)}

    board = []
    for ticket in tickets:
        entry = BoardTicketResponse.model_validate(ticket)
        entry.size_group = band_label(ticket.size_band)
        if ticket.status == TicketStatus.WAITING:
            band = ticket.size_band
            entry.band_rank = ranks[band].get(ticket.id)
            entry.queue_index = queue_indexes.get(ticket.id)
            entry.estimated_wait_minutes = estimates[band].minutes
            entry.estimate_source = estimates[band].source
        board.append(entry)

    return QueueBoardResponse(
        tickets=board,
        total_groups=len(waiting),
        total_people=sum(t.party_size for t in waiting),
        waiting_by_band=positions.count_waiting_by_band(tickets),
    )


# =============================================================================
# Ticket Lifecycle
# =============================================================================

@router.post(
    "/{restaurant_id}/queue/tickets",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_staff_access)],
)
async def create_ticket(
    restaurant_id: uuid.UUID,
    data: TicketCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a walk-in party to the queue."""
    return await queue_service.enqueue(
        db,
        restaurant_id,
        customer_name=data.customer_name,
        phone=data.phone,
        party_size=data.party_size,
        priority=data.priority.value,
        notes=data.notes,
        email=data.email,
        customer_id=data.customer_id,
    )


@router.get(
    "/{restaurant_id}/queue/tickets/{ticket_id}",
    response_model=TicketResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def get_ticket(
    restaurant_id: uuid.UUID,
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await queue_service.get_ticket(db, restaurant_id, ticket_id)


@router.post(
    "/{restaurant_id}/queue/tickets/{ticket_id}/call",
    response_model=TicketResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def call_ticket(
    restaurant_id: uuid.UUID,
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Call the party to the host stand. Calling again re-announces."""
    return await queue_service.call_ticket(db, restaurant_id, ticket_id)


@router.post(
    "/{restaurant_id}/queue/tickets/{ticket_id}/seat",
    response_model=SeatResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def seat_ticket(
    restaurant_id: uuid.UUID,
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Seat a called party.

    Retrying on an already-seated ticket succeeds without counting the
    visit twice. `warning` is set when the seat went through but the
    customer's visit counter could not be updated yet.
    """
    result = await queue_service.seat_ticket(db, restaurant_id, ticket_id)
    return SeatResponse(
        ticket=TicketResponse.model_validate(result.ticket),
        visit_recorded=result.visit_recorded,
        warning=result.warning,
    )


@router.post(
    "/{restaurant_id}/queue/tickets/{ticket_id}/cancel",
    response_model=TicketResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def cancel_ticket(
    restaurant_id: uuid.UUID,
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await queue_service.cancel_ticket(db, restaurant_id, ticket_id)


@router.post(
    "/{restaurant_id}/queue/tickets/{ticket_id}/no-show",
    response_model=TicketResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def no_show_ticket(
    restaurant_id: uuid.UUID,
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await queue_service.mark_no_show(db, restaurant_id, ticket_id)


@router.post(
    "/{restaurant_id}/queue/clear",
    response_model=ClearQueueResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def clear_queue(
    restaurant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Cancel every waiting ticket. Clearing an empty queue is a no-op."""
    cleared = await queue_service.clear_queue(db, restaurant_id)
    return ClearQueueResponse(cleared=cleared)


# =============================================================================
# Wait Times & Settings
# =============================================================================

@router.get(
    "/{restaurant_id}/queue/wait-times",
    response_model=WaitTimesResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def get_wait_times(
    restaurant_id: uuid.UUID,
    strict: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """
    Average wait per size band, today or over the trailing week.

    With `strict=true` an average needs the configured minimum number of
    samples before it is reported. `general_average_minutes` weighs every
    band's estimate by its sample count.
    """
    restaurant = await restaurant_service.get_restaurant(db, restaurant_id)
    estimates = await wait_time.estimate_all_bands(db, restaurant, strict=strict)

    bands = [
        WaitTimeResponse(
            band=band,
            label=band_label(band),
            minutes=estimate.minutes,
            source=estimate.source,
            sample_count=estimate.sample_count,
            today_minutes=estimate.today_minutes,
            today_samples=estimate.today_samples,
            historical_minutes=estimate.historical_minutes,
            historical_samples=estimate.historical_samples,
        )
        for band, estimate in estimates.items()
    ]
    return WaitTimesResponse(
        bands=bands,
        general_average_minutes=wait_time.general_average(estimates.values()),
    )


@router.get(
    "/{restaurant_id}/queue/settings",
    response_model=QueueSettingsResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def get_queue_settings(
    restaurant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await restaurant_service.get_restaurant(db, restaurant_id)
    return await restaurant_service.get_queue_limits(db, restaurant_id)


@router.put(
    "/{restaurant_id}/queue/settings",
    response_model=QueueSettingsResponse,
    dependencies=[Depends(verify_staff_access)],
)
async def update_queue_settings(
    restaurant_id: uuid.UUID,
    data: QueueSettingsUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await restaurant_service.save_queue_settings(
        db,
        restaurant_id,
        max_party_size=data.max_party_size,
        queue_capacity=data.queue_capacity,
        tolerance_minutes=data.tolerance_minutes,
    )
