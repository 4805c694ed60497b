"""QueueTicket model - a walk-in party's place in the queue."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tablequeue.database import Base
from tablequeue.services.size_groups import SizeBand, classify
from tablequeue.utils.timezone import utc_now


class TicketStatus(str, Enum):
    """Lifecycle states of a queue ticket."""
    WAITING = "waiting"
    CALLED = "called"
    SEATED = "seated"
    CANCELED = "canceled"
    NO_SHOW = "no_show"


class TicketPriority(str, Enum):
    """Advisory priority shown on the board. Does not change ranking."""
    NORMAL = "normal"
    HIGH = "high"
    VIP = "vip"


class QueueTicket(Base):
    """
    A single walk-in party's queue entry.

    Tickets start `waiting` and end in one of the terminal states
    (seated, canceled, no_show). Each transition timestamp is written
    exactly once and never cleared.

    Neither the per-band rank nor the wait estimate is stored here; both
    are recomputed from the live ticket set on every read.
    """

    __tablename__ = "queue_tickets"
    __table_args__ = (
        Index("ix_queue_tickets_restaurant_status_created", "restaurant_id", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("restaurants.id"),
        nullable=False,
    )
    # Weak reference: the ticket never owns the customer record
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id"),
    )

    # Guest
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(20),
        default=TicketPriority.NORMAL.value,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(20),
        default=TicketStatus.WAITING.value,
        nullable=False,
    )
    # Ticket number handed to the guest, restaurant-wide
    position_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timing
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )
    called_at: Mapped[datetime | None] = mapped_column(DateTime)
    seated_at: Mapped[datetime | None] = mapped_column(DateTime)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime)
    no_show_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Set when the customer's visit counter has been bumped for this ticket
    visit_recorded_at: Mapped[datetime | None] = mapped_column(DateTime)

    def __repr__(self) -> str:
        return f"<QueueTicket #{self.position_number} {self.customer_name} ({self.status})>"

    @property
    def size_band(self) -> SizeBand:
        return classify(self.party_size)

    @property
    def terminal_at(self) -> datetime | None:
        """Timestamp of the terminal transition, whichever one it was."""
        return self.seated_at or self.canceled_at or self.no_show_at
