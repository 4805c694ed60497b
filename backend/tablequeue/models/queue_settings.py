"""QueueSettings model - per-restaurant queue limits."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tablequeue.database import Base
from tablequeue.utils.timezone import utc_now


class QueueSettings(Base):
    """
    Operational settings for a restaurant's walk-in queue.

    Read-only from the queue engine's point of view; edited from the
    dashboard settings screen.
    """

    __tablename__ = "queue_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("restaurants.id"),
        unique=True,
        nullable=False,
    )

    max_party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    queue_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    tolerance_minutes: Mapped[int] = mapped_column(Integer, nullable=False)  # grace period after a call

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<QueueSettings {self.restaurant_id} max={self.max_party_size}>"
