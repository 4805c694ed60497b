"""Restaurant model - an establishment running a walk-in queue."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tablequeue.database import Base
from tablequeue.utils.timezone import utc_now


class Restaurant(Base):
    """
    Restaurant entity.

    `queue_sequence` is the per-restaurant ticket counter. It is only ever
    advanced by a single UPDATE ... RETURNING statement so that concurrent
    enqueues never hand out the same number.
    """

    __tablename__ = "restaurants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    # Decides where the "today" window for wait-time statistics starts
    timezone: Mapped[str] = mapped_column(String(50), default="America/Sao_Paulo")

    queue_sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Restaurant {self.name}>"
