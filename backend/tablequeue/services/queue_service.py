"""
Walk-in queue ticket lifecycle.

    waiting --call--> called --seat--> seated
    waiting --cancel--> canceled       called --cancel--> canceled
    waiting --no_show--> no_show       called --no_show--> no_show

seated, canceled and no_show are terminal. Every status change is a
conditional UPDATE (`WHERE status IN (<allowed sources>)`), so when two
staff members act on the same ticket at once the first write wins and the
second one sees the winner's state.

Seating also bumps the linked customer's visit counter. That counter
update is a separate, best-effort step: the seat is committed first, and a
failed counter update is logged and retried later by sync_pending_visits,
never rolled back into the ticket.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.config import get_settings
from tablequeue.models import (
    Customer,
    QueueTicket,
    QueueTicketEvent,
    Restaurant,
    TicketEventType,
    TicketPriority,
    TicketStatus,
)
from tablequeue.services.errors import (
    InvalidTransition,
    QueueFull,
    TicketNotFound,
    ValidationFailed,
)
from tablequeue.services.restaurant_service import (
    find_customer_by_phone,
    get_customer,
    get_queue_limits,
    get_restaurant,
)
from tablequeue.utils.timezone import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    action: str
    sources: frozenset[str]
    target: TicketStatus
    timestamp_field: str
    event_type: TicketEventType
    # Repeating it on a ticket already at `target` succeeds without change
    idempotent: bool = False


CALL = Transition(
    action="call",
    sources=frozenset({TicketStatus.WAITING.value}),
    target=TicketStatus.CALLED,
    timestamp_field="called_at",
    event_type=TicketEventType.CALLED,
    idempotent=True,
)
SEAT = Transition(
    action="seat",
    sources=frozenset({TicketStatus.CALLED.value}),
    target=TicketStatus.SEATED,
    timestamp_field="seated_at",
    event_type=TicketEventType.SEATED,
    idempotent=True,
)
CANCEL = Transition(
    action="cancel",
    sources=frozenset({TicketStatus.WAITING.value, TicketStatus.CALLED.value}),
    target=TicketStatus.CANCELED,
    timestamp_field="canceled_at",
    event_type=TicketEventType.CANCELED,
    idempotent=True,
)
NO_SHOW = Transition(
    action="no_show",
    sources=frozenset({TicketStatus.WAITING.value, TicketStatus.CALLED.value}),
    target=TicketStatus.NO_SHOW,
    timestamp_field="no_show_at",
    event_type=TicketEventType.NO_SHOW,
)

VISIT_RETRY_WARNING = "Seated, but the customer's visit could not be recorded. It will be retried."


@dataclass
class SeatResult:
    ticket: QueueTicket
    visit_recorded: bool
    warning: Optional[str] = None


# =============================================================================
# Reads
# =============================================================================

async def get_ticket(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
) -> QueueTicket:
    """Load a ticket, scoped to its restaurant."""
    result = await db.execute(
        select(QueueTicket).where(
            QueueTicket.id == ticket_id,
            QueueTicket.restaurant_id == restaurant_id,
        )
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()

    if not ticket:
        raise TicketNotFound(ticket_id)

    return ticket


def lookback_cutoff(now: datetime) -> datetime:
    """Oldest creation time still considered part of the live queue."""
    return now - timedelta(hours=get_settings().queue_lookback_hours)


async def list_live_tickets(
    db: AsyncSession,
    restaurant_id: UUID,
    now: Optional[datetime] = None,
    statuses: tuple[str, ...] = (TicketStatus.WAITING.value, TicketStatus.CALLED.value),
) -> list[QueueTicket]:
    """
    Tickets inside the lookback window, oldest first.

    Waiting tickets older than the window are treated as abandoned and left
    out of every live view, even though their status was never changed.
    """
    now = now or utc_now()
    result = await db.execute(
        select(QueueTicket)
        .where(
            QueueTicket.restaurant_id == restaurant_id,
            QueueTicket.status.in_(statuses),
            QueueTicket.created_at >= lookback_cutoff(now),
        )
        .order_by(QueueTicket.created_at, QueueTicket.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def count_waiting(db: AsyncSession, restaurant_id: UUID, now: datetime) -> int:
    result = await db.execute(
        select(func.count(QueueTicket.id)).where(
            QueueTicket.restaurant_id == restaurant_id,
            QueueTicket.status == TicketStatus.WAITING.value,
            QueueTicket.created_at >= lookback_cutoff(now),
        )
    )
    return result.scalar_one()


# =============================================================================
# Enqueue
# =============================================================================

def counter_lock_statement(restaurant_id: UUID):
    """Row lock on the restaurant, serializing enqueues and queue clears."""
    return (
        select(Restaurant.id)
        .where(Restaurant.id == restaurant_id)
        .with_for_update()
    )


async def next_position_number(db: AsyncSession, restaurant_id: UUID) -> int:
    """
    Advance and return the restaurant's ticket counter.

    The restaurant row is locked first, so the "anyone waiting?" check runs
    after any concurrent enqueue has committed and two tickets can never get
    the same number. Numbering restarts at 1 once nobody is waiting.
    """
    await db.execute(counter_lock_statement(restaurant_id))

    someone_waiting = await db.scalar(
        select(
            select(QueueTicket.id)
            .where(
                QueueTicket.restaurant_id == restaurant_id,
                QueueTicket.status == TicketStatus.WAITING.value,
            )
            .exists()
        )
    )
    result = await db.execute(
        update(Restaurant)
        .where(Restaurant.id == restaurant_id)
        .values(
            queue_sequence=Restaurant.queue_sequence + 1 if someone_waiting else 1
        )
        .returning(Restaurant.queue_sequence)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one()


async def enqueue(
    db: AsyncSession,
    restaurant_id: UUID,
    customer_name: str,
    phone: Optional[str],
    party_size: int,
    priority: str = TicketPriority.NORMAL.value,
    notes: Optional[str] = None,
    email: Optional[str] = None,
    customer_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> QueueTicket:
    """
    Add a walk-in party to the queue.

    Raises:
        RestaurantNotFound: unknown restaurant
        ValidationFailed: bad party size, priority or name
        QueueFull: the restaurant's queue capacity is reached
        CustomerNotFound: customer_id given but not a customer of this restaurant
    """
    now = now or utc_now()
    restaurant = await get_restaurant(db, restaurant_id)
    limits = await get_queue_limits(db, restaurant.id)

    if not customer_name or not customer_name.strip():
        raise ValidationFailed("customer_name is required")
    if party_size < 1:
        raise ValidationFailed("party_size must be at least 1")
    if party_size > limits.max_party_size:
        raise ValidationFailed(
            f"party_size {party_size} exceeds the maximum of {limits.max_party_size}"
        )
    try:
        priority = TicketPriority(priority).value
    except ValueError:
        raise ValidationFailed(f"Unknown priority '{priority}'")

    if await count_waiting(db, restaurant.id, now) >= limits.queue_capacity:
        raise QueueFull(f"Queue is full ({limits.queue_capacity} parties waiting)")

    # Link the CRM record: explicit id first, otherwise match by phone
    if customer_id is not None:
        customer = await get_customer(db, customer_id, restaurant_id=restaurant.id)
        customer_id = customer.id
    elif phone:
        customer = await find_customer_by_phone(db, restaurant.id, phone)
        customer_id = customer.id if customer else None

    ticket = QueueTicket(
        id=uuid.uuid4(),
        restaurant_id=restaurant.id,
        customer_id=customer_id,
        customer_name=customer_name.strip(),
        phone=phone,
        email=email,
        party_size=party_size,
        priority=priority,
        notes=notes,
        status=TicketStatus.WAITING.value,
        position_number=await next_position_number(db, restaurant.id),
        created_at=now,
    )
    db.add(ticket)
    await db.flush()

    db.add(QueueTicketEvent(
        id=uuid.uuid4(),
        ticket_id=ticket.id,
        event_type=TicketEventType.JOINED.value,
        at=now,
    ))
    await db.commit()
    await db.refresh(ticket)

    logger.info(
        "Ticket #%s joined queue of restaurant %s (party of %s, band %s)",
        ticket.position_number, restaurant.id, ticket.party_size, ticket.size_band.value,
    )
    return ticket


# =============================================================================
# Transitions
# =============================================================================

async def _apply(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
    transition: Transition,
    now: Optional[datetime] = None,
) -> tuple[QueueTicket, bool]:
    """
    Apply a transition.

    Returns (ticket, changed). `changed` is False when an idempotent
    transition finds the ticket already in the target state, which callers
    treat as success. A non-idempotent repeat (no-show on a no-show ticket)
    raises InvalidTransition like any other move out of a terminal state.
    """
    ticket = await get_ticket(db, restaurant_id, ticket_id)

    if ticket.status == transition.target.value and transition.idempotent:
        return ticket, False
    if ticket.status not in transition.sources:
        raise InvalidTransition(ticket.id, ticket.status, transition.action)

    now = now or utc_now()
    result = await db.execute(
        update(QueueTicket)
        .where(
            QueueTicket.id == ticket.id,
            QueueTicket.status.in_(transition.sources),
        )
        .values(status=transition.target.value, **{transition.timestamp_field: now})
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        # Someone else moved the ticket between our read and our write
        await db.rollback()
        ticket = await get_ticket(db, restaurant_id, ticket_id)
        await db.refresh(ticket)
        if ticket.status == transition.target.value and transition.idempotent:
            return ticket, False
        raise InvalidTransition(ticket.id, ticket.status, transition.action)

    db.add(QueueTicketEvent(
        id=uuid.uuid4(),
        ticket_id=ticket.id,
        event_type=transition.event_type.value,
        at=now,
    ))
    await db.commit()
    await db.refresh(ticket)

    logger.info(
        "Ticket #%s (%s) -> %s",
        ticket.position_number, ticket.id, ticket.status,
    )
    return ticket, True


async def call_ticket(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
    now: Optional[datetime] = None,
) -> QueueTicket:
    """
    Call a waiting party to the host stand.

    Calling an already-called ticket is a re-announce: it succeeds and keeps
    the original called_at.
    """
    ticket, changed = await _apply(db, restaurant_id, ticket_id, CALL, now)
    if not changed:
        logger.info("Ticket #%s re-announced", ticket.position_number)
    return ticket


async def seat_ticket(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
    now: Optional[datetime] = None,
) -> SeatResult:
    """
    Seat a called party, then record the customer's visit.

    Safe to retry: an already-seated ticket is returned as-is, and the visit
    counter is bumped at most once per ticket.
    """
    now = now or utc_now()
    ticket, _ = await _apply(db, restaurant_id, ticket_id, SEAT, now)

    if ticket.customer_id is None or ticket.visit_recorded_at is not None:
        return SeatResult(ticket=ticket, visit_recorded=ticket.visit_recorded_at is not None)

    # The seat is committed. Keep this snapshot out of the session so a
    # failed counter update cannot expire it.
    db.expunge(ticket)
    try:
        recorded = await record_visit(db, ticket.id, now=now)
    except SQLAlchemyError:
        await db.rollback()
        logger.warning(
            "Visit counter update failed for ticket %s (customer %s); left for sync",
            ticket.id, ticket.customer_id, exc_info=True,
        )
        return SeatResult(ticket=ticket, visit_recorded=False, warning=VISIT_RETRY_WARNING)

    return SeatResult(
        ticket=await get_ticket(db, restaurant_id, ticket.id),
        visit_recorded=recorded,
    )


async def cancel_ticket(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
    now: Optional[datetime] = None,
) -> QueueTicket:
    ticket, _ = await _apply(db, restaurant_id, ticket_id, CANCEL, now)
    return ticket


async def mark_no_show(
    db: AsyncSession,
    restaurant_id: UUID,
    ticket_id: UUID,
    now: Optional[datetime] = None,
) -> QueueTicket:
    """Mark a party as gone. Not idempotent: a repeat raises InvalidTransition."""
    ticket, _ = await _apply(db, restaurant_id, ticket_id, NO_SHOW, now)
    return ticket


async def clear_queue(
    db: AsyncSession,
    restaurant_id: UUID,
    now: Optional[datetime] = None,
) -> int:
    """
    Cancel every waiting ticket of a restaurant at once.

    All-or-nothing: one UPDATE plus its audit rows and the counter reset,
    in one transaction. Returns how many tickets were canceled; 0 on an
    empty queue.
    """
    now = now or utc_now()
    await get_restaurant(db, restaurant_id)

    try:
        # An enqueue in flight either commits first and is cleared too, or
        # waits and is numbered after the reset
        await db.execute(counter_lock_statement(restaurant_id))

        result = await db.execute(
            update(QueueTicket)
            .where(
                QueueTicket.restaurant_id == restaurant_id,
                QueueTicket.status == TicketStatus.WAITING.value,
            )
            .values(status=TicketStatus.CANCELED.value, canceled_at=now)
            .returning(QueueTicket.id)
            .execution_options(synchronize_session=False)
        )
        cleared_ids = list(result.scalars().all())

        db.add_all(
            QueueTicketEvent(
                id=uuid.uuid4(),
                ticket_id=cleared_id,
                event_type=TicketEventType.CLEARED.value,
                at=now,
            )
            for cleared_id in cleared_ids
        )

        # Nobody is waiting any more, so numbering starts over
        await db.execute(
            update(Restaurant)
            .where(Restaurant.id == restaurant_id)
            .values(queue_sequence=0)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Clearing queue of restaurant %s failed", restaurant_id)
        raise

    # Instances loaded earlier in this session still hold the old status
    db.expire_all()

    logger.info("Cleared queue of restaurant %s: %d tickets canceled", restaurant_id, len(cleared_ids))
    return len(cleared_ids)


# =============================================================================
# Customer visit side effect
# =============================================================================

async def record_visit(
    db: AsyncSession,
    ticket_id: UUID,
    now: Optional[datetime] = None,
) -> bool:
    """
    Bump the visit counter of a seated ticket's customer, exactly once.

    The ticket's visit_recorded_at is claimed with a conditional UPDATE in
    the same transaction as the counter increment, so retries and the sync
    task can never count a visit twice.

    Returns:
        True if this call recorded the visit, False if there was nothing to do.
    """
    now = now or utc_now()

    claimed = await db.execute(
        update(QueueTicket)
        .where(
            QueueTicket.id == ticket_id,
            QueueTicket.status == TicketStatus.SEATED.value,
            QueueTicket.customer_id.is_not(None),
            QueueTicket.visit_recorded_at.is_(None),
        )
        .values(visit_recorded_at=now)
        .returning(QueueTicket.customer_id)
        .execution_options(synchronize_session=False)
    )
    customer_id = claimed.scalar_one_or_none()
    if customer_id is None:
        return False

    bumped = await db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(
            total_visits=Customer.total_visits + 1,
            last_visit_date=now,
        )
        .execution_options(synchronize_session=False)
    )
    if bumped.rowcount == 0:
        logger.warning("Customer %s of ticket %s no longer exists", customer_id, ticket_id)

    db.add(QueueTicketEvent(
        id=uuid.uuid4(),
        ticket_id=ticket_id,
        event_type=TicketEventType.VISIT_RECORDED.value,
        at=now,
    ))
    await db.commit()

    logger.info("Recorded visit of customer %s for ticket %s", customer_id, ticket_id)
    return True


async def sync_pending_visits(db: AsyncSession, limit: int = 100) -> int:
    """
    Retry the visit side effect for seated tickets that never got it.

    Returns how many visits were recorded.
    """
    result = await db.execute(
        select(QueueTicket.id)
        .where(
            QueueTicket.status == TicketStatus.SEATED.value,
            QueueTicket.customer_id.is_not(None),
            QueueTicket.visit_recorded_at.is_(None),
        )
        .order_by(QueueTicket.seated_at)
        .limit(limit)
    )
    pending = list(result.scalars().all())

    recorded = 0
    for ticket_id in pending:
        try:
            if await record_visit(db, ticket_id):
                recorded += 1
        except SQLAlchemyError:
            await db.rollback()
            logger.warning("Visit sync failed for ticket %s", ticket_id, exc_info=True)

    if pending:
        logger.info("Visit sync: %d of %d pending visits recorded", recorded, len(pending))
    return recorded
