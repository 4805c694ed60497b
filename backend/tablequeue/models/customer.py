"""Customer model - CRM record of a restaurant guest."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tablequeue.database import Base
from tablequeue.utils.timezone import utc_now


class Customer(Base):
    """
    Guest record used by loyalty and marketing.

    Queue tickets only reference customers; seating a ticket bumps
    `total_visits` and `last_visit_date`.
    """

    __tablename__ = "customers"

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

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), index=True)
    email: Mapped[str | None] = mapped_column(String(255))

    # Loyalty counters
    total_visits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_visit_date: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Customer {self.name} visits={self.total_visits}>"
