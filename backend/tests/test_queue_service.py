"""Tests for enqueue and the ticket lifecycle."""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from conftest import T0
from tablequeue.models import Customer, QueueTicket, QueueTicketEvent, Restaurant, TicketStatus
from tablequeue.services import queue_service
from tablequeue.services.errors import (
    CustomerNotFound,
    InvalidTransition,
    QueueFull,
    RestaurantNotFound,
    TicketNotFound,
    ValidationFailed,
)


def later(minutes: int):
    return T0 + timedelta(minutes=minutes)


async def join(db, restaurant, party_size=2, name="Guest", phone=None, at=T0, **kwargs):
    return await queue_service.enqueue(db, restaurant.id, name, phone, party_size, now=at, **kwargs)


async def events_of(db, ticket_id):
    result = await db.execute(
        select(QueueTicketEvent.event_type)
        .where(QueueTicketEvent.ticket_id == ticket_id)
        .order_by(QueueTicketEvent.at)
    )
    return list(result.scalars().all())


# =============================================================================
# Enqueue
# =============================================================================

async def test_enqueue_creates_waiting_ticket(db, restaurant):
    ticket = await join(db, restaurant, party_size=3, name="  Marta ", priority="vip", notes="window")

    assert ticket.status == TicketStatus.WAITING.value
    assert ticket.customer_name == "Marta"
    assert ticket.party_size == 3
    assert ticket.priority == "vip"
    assert ticket.position_number == 1
    assert ticket.created_at == T0
    assert ticket.called_at is None
    assert await events_of(db, ticket.id) == ["joined"]


async def test_position_numbers_increase(db, restaurant):
    first = await join(db, restaurant, at=later(0))
    second = await join(db, restaurant, at=later(1))
    third = await join(db, restaurant, party_size=7, at=later(2))

    assert [first.position_number, second.position_number, third.position_number] == [1, 2, 3]


async def test_position_numbers_restart_when_nobody_waits(db, restaurant):
    first = await join(db, restaurant, at=later(0))
    await queue_service.cancel_ticket(db, restaurant.id, first.id, now=later(1))

    again = await join(db, restaurant, at=later(2))

    assert again.position_number == 1


async def test_position_numbers_keep_counting_while_someone_waits(db, restaurant):
    first = await join(db, restaurant, at=later(0))
    second = await join(db, restaurant, at=later(1))
    await queue_service.cancel_ticket(db, restaurant.id, first.id, now=later(2))

    third = await join(db, restaurant, at=later(3))

    assert second.position_number == 2
    assert third.position_number == 3


def test_counter_is_locked_before_numbering():
    statement = queue_service.counter_lock_statement(uuid.uuid4())
    compiled = str(statement.compile(dialect=postgresql.dialect()))

    assert "FROM restaurants" in compiled
    assert compiled.rstrip().endswith("FOR UPDATE")


async def test_enqueue_unknown_restaurant(db):
    with pytest.raises(RestaurantNotFound):
        await queue_service.enqueue(db, uuid.uuid4(), "Nobody", None, 2, now=T0)


@pytest.mark.parametrize("party_size", [0, -2])
async def test_enqueue_rejects_bad_party_size(db, restaurant, party_size):
    with pytest.raises(ValidationFailed):
        await join(db, restaurant, party_size=party_size)

    assert (await db.execute(select(func.count(QueueTicket.id)))).scalar_one() == 0


async def test_enqueue_rejects_party_above_default_max(db, restaurant):
    with pytest.raises(ValidationFailed):
        await join(db, restaurant, party_size=9)


async def test_enqueue_uses_saved_max_party_size(db, restaurant, queue_settings):
    ticket = await join(db, restaurant, party_size=12)
    assert ticket.party_size == 12

    with pytest.raises(ValidationFailed):
        await join(db, restaurant, party_size=13)


async def test_enqueue_rejects_blank_name_and_unknown_priority(db, restaurant):
    with pytest.raises(ValidationFailed):
        await join(db, restaurant, name="   ")
    with pytest.raises(ValidationFailed):
        await join(db, restaurant, priority="urgent")


async def test_enqueue_respects_capacity(db, restaurant, queue_settings):
    for minute in range(queue_settings.queue_capacity):
        await join(db, restaurant, at=later(minute))

    with pytest.raises(QueueFull) as exc_info:
        await join(db, restaurant, at=later(10))

    assert exc_info.value.status_code == 422
    assert exc_info.value.code == "queue_full"


async def test_enqueue_links_customer_by_phone(db, restaurant, customer):
    ticket = await join(db, restaurant, phone=customer.phone)
    assert ticket.customer_id == customer.id

    stranger = await join(db, restaurant, phone="+5511000000000", at=later(1))
    assert stranger.customer_id is None


async def test_enqueue_with_foreign_customer_id(db, restaurant, other_restaurant):
    foreigner = Customer(id=uuid.uuid4(), restaurant_id=other_restaurant.id, name="Leo", total_visits=0)
    db.add(foreigner)
    await db.commit()

    with pytest.raises(CustomerNotFound):
        await join(db, restaurant, customer_id=foreigner.id)


# =============================================================================
# Transitions
# =============================================================================

async def test_full_lifecycle(db, restaurant):
    ticket = await join(db, restaurant)

    called = await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(5))
    assert called.status == TicketStatus.CALLED.value
    assert called.called_at == later(5)

    result = await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(9))
    assert result.ticket.status == TicketStatus.SEATED.value
    assert result.ticket.seated_at == later(9)
    assert result.ticket.terminal_at == later(9)
    assert result.visit_recorded is False
    assert result.warning is None

    assert await events_of(db, ticket.id) == ["joined", "called", "seated"]


async def test_recall_keeps_original_called_at(db, restaurant):
    ticket = await join(db, restaurant)
    await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(5))

    again = await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(8))

    assert again.status == TicketStatus.CALLED.value
    assert again.called_at == later(5)


async def test_seat_requires_called(db, restaurant):
    ticket = await join(db, restaurant)

    with pytest.raises(InvalidTransition):
        await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(3))

    reloaded = await queue_service.get_ticket(db, restaurant.id, ticket.id)
    assert reloaded.status == TicketStatus.WAITING.value
    assert reloaded.seated_at is None


async def test_seat_twice_counts_visit_once(db, restaurant, customer):
    ticket = await join(db, restaurant, phone=customer.phone)
    await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(5))

    first = await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(10))
    second = await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(12))

    assert first.visit_recorded is True
    assert second.ticket.status == TicketStatus.SEATED.value
    assert second.ticket.seated_at == later(10)

    refreshed = await db.get(Customer, customer.id, populate_existing=True)
    assert refreshed.total_visits == 4
    assert refreshed.last_visit_date == later(10)


@pytest.mark.parametrize("action", [queue_service.cancel_ticket, queue_service.mark_no_show])
async def test_cannot_leave_seated(db, restaurant, action):
    ticket = await join(db, restaurant)
    await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(1))
    await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(2))

    with pytest.raises(InvalidTransition) as exc_info:
        await action(db, restaurant.id, ticket.id, now=later(3))

    assert exc_info.value.current == TicketStatus.SEATED.value
    reloaded = await queue_service.get_ticket(db, restaurant.id, ticket.id)
    assert reloaded.status == TicketStatus.SEATED.value
    assert reloaded.canceled_at is None
    assert reloaded.no_show_at is None


async def test_cancel_is_idempotent(db, restaurant):
    ticket = await join(db, restaurant)

    first = await queue_service.cancel_ticket(db, restaurant.id, ticket.id, now=later(4))
    second = await queue_service.cancel_ticket(db, restaurant.id, ticket.id, now=later(6))

    assert first.canceled_at == later(4)
    assert second.canceled_at == later(4)
    assert await events_of(db, ticket.id) == ["joined", "canceled"]


async def test_no_show_from_called_keeps_its_own_timestamp(db, restaurant):
    ticket = await join(db, restaurant)
    await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(5))

    gone = await queue_service.mark_no_show(db, restaurant.id, ticket.id, now=later(20))

    assert gone.status == TicketStatus.NO_SHOW.value
    assert gone.no_show_at == later(20)
    assert gone.canceled_at is None
    assert gone.terminal_at == later(20)


async def test_repeated_no_show_is_rejected(db, restaurant):
    ticket = await join(db, restaurant)
    first = await queue_service.mark_no_show(db, restaurant.id, ticket.id, now=later(15))

    with pytest.raises(InvalidTransition) as exc_info:
        await queue_service.mark_no_show(db, restaurant.id, ticket.id, now=later(20))

    assert exc_info.value.current == TicketStatus.NO_SHOW.value
    reloaded = await queue_service.get_ticket(db, restaurant.id, ticket.id)
    assert reloaded.no_show_at == first.no_show_at == later(15)
    assert await events_of(db, ticket.id) == ["joined", "no_show"]


def test_only_call_seat_and_cancel_are_idempotent():
    assert queue_service.CALL.idempotent
    assert queue_service.SEAT.idempotent
    assert queue_service.CANCEL.idempotent
    assert not queue_service.NO_SHOW.idempotent


async def test_call_after_cancel_is_rejected(db, restaurant):
    ticket = await join(db, restaurant)
    await queue_service.cancel_ticket(db, restaurant.id, ticket.id, now=later(1))

    with pytest.raises(InvalidTransition):
        await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(2))


async def test_ticket_of_another_restaurant_is_not_found(db, restaurant, other_restaurant):
    ticket = await join(db, restaurant)

    with pytest.raises(TicketNotFound):
        await queue_service.call_ticket(db, other_restaurant.id, ticket.id, now=later(1))
    with pytest.raises(TicketNotFound):
        await queue_service.cancel_ticket(db, restaurant.id, uuid.uuid4(), now=later(1))


async def test_first_write_wins_across_sessions(db, session_maker, restaurant):
    ticket = await join(db, restaurant)
    await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(1))

    async with session_maker() as other:
        await queue_service.cancel_ticket(other, restaurant.id, ticket.id, now=later(2))

    with pytest.raises(InvalidTransition) as exc_info:
        await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(3))

    assert exc_info.value.current == TicketStatus.CANCELED.value


# =============================================================================
# Clear queue
# =============================================================================

async def test_clear_queue_cancels_all_waiting(db, restaurant):
    tickets = [await join(db, restaurant, at=later(i)) for i in range(4)]

    cleared = await queue_service.clear_queue(db, restaurant.id, now=later(30))

    assert cleared == 4
    for ticket in tickets:
        reloaded = await queue_service.get_ticket(db, restaurant.id, ticket.id)
        assert reloaded.status == TicketStatus.CANCELED.value
        assert reloaded.canceled_at == later(30)
        assert await events_of(db, ticket.id) == ["joined", "cleared"]

    assert await queue_service.count_waiting(db, restaurant.id, later(30)) == 0
    assert await queue_service.clear_queue(db, restaurant.id, now=later(31)) == 0

    restarted = await join(db, restaurant, at=later(40))
    assert restarted.position_number == 1


async def test_clear_queue_leaves_called_and_other_restaurants(db, restaurant, other_restaurant):
    called = await join(db, restaurant, at=later(0))
    await queue_service.call_ticket(db, restaurant.id, called.id, now=later(1))
    await join(db, restaurant, at=later(2))
    elsewhere = await join(db, other_restaurant, at=later(3))

    assert await queue_service.clear_queue(db, restaurant.id, now=later(5)) == 1

    assert (await queue_service.get_ticket(db, restaurant.id, called.id)).status == "called"
    assert (await queue_service.get_ticket(db, other_restaurant.id, elsewhere.id)).status == "waiting"


# =============================================================================
# Customer visits
# =============================================================================

async def test_failed_visit_update_keeps_seat_and_is_synced_later(db, restaurant, customer, monkeypatch):
    ticket = await join(db, restaurant, phone=customer.phone)
    await queue_service.call_ticket(db, restaurant.id, ticket.id, now=later(5))

    async def broken_record_visit(*args, **kwargs):
        raise SQLAlchemyError("customers table locked")

    with monkeypatch.context() as patched:
        patched.setattr(queue_service, "record_visit", broken_record_visit)
        result = await queue_service.seat_ticket(db, restaurant.id, ticket.id, now=later(10))

    assert result.ticket.status == TicketStatus.SEATED.value
    assert result.visit_recorded is False
    assert result.warning == queue_service.VISIT_RETRY_WARNING

    seated = await queue_service.get_ticket(db, restaurant.id, ticket.id)
    assert seated.status == TicketStatus.SEATED.value
    assert seated.visit_recorded_at is None

    assert await queue_service.sync_pending_visits(db) == 1
    assert await queue_service.sync_pending_visits(db) == 0

    refreshed = await db.get(Customer, customer.id, populate_existing=True)
    assert refreshed.total_visits == 4


async def test_record_visit_ignores_unseated_tickets(db, restaurant, customer):
    ticket = await join(db, restaurant, phone=customer.phone)

    assert await queue_service.record_visit(db, ticket.id, now=later(1)) is False

    refreshed = await db.get(Customer, customer.id, populate_existing=True)
    assert refreshed.total_visits == 3


async def test_restaurant_counter_survives_in_database(db, restaurant):
    await join(db, restaurant, at=later(0))
    await join(db, restaurant, at=later(1))

    stored = await db.get(Restaurant, restaurant.id, populate_existing=True)
    assert stored.queue_sequence == 2
