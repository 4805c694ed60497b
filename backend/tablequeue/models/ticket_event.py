"""QueueTicketEvent model - audit trail of ticket transitions."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tablequeue.database import Base
from tablequeue.utils.timezone import utc_now


class TicketEventType(str, Enum):
    JOINED = "joined"
    CALLED = "called"
    SEATED = "seated"
    CANCELED = "canceled"
    NO_SHOW = "no_show"
    CLEARED = "cleared"  # canceled by a bulk queue clear
    VISIT_RECORDED = "visit_recorded"


class QueueTicketEvent(Base):
    """One row per applied transition or side effect of a ticket."""

    __tablename__ = "queue_ticket_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    ticket_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("queue_tickets.id"),
        nullable=False,
        index=True,
    )
    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<QueueTicketEvent {self.event_type} @ {self.at}>"
