"""
Pydantic schemas for queue endpoints.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tablequeue.models import TicketPriority
from tablequeue.services.size_groups import SizeBand


# Request schemas

class TicketCreate(BaseModel):
    """Schema for adding a party to the queue."""
    customer_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    party_size: int
    priority: TicketPriority = TicketPriority.NORMAL
    notes: Optional[str] = None
    customer_id: Optional[UUID] = None


class QueueInfoRequest(BaseModel):
    """Body of the public queue info call."""
    restaurant_id: UUID
    ticket_id: Optional[UUID] = None


class QueueSettingsUpdate(BaseModel):
    max_party_size: int = Field(..., ge=1)
    queue_capacity: int = Field(..., ge=1)
    tolerance_minutes: int = Field(..., ge=0)


# Response schemas

class TicketResponse(BaseModel):
    """Schema for ticket data in responses."""
    id: UUID
    restaurant_id: UUID
    customer_id: Optional[UUID] = None
    customer_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    party_size: int
    size_band: SizeBand
    priority: str
    status: str
    position_number: int
    notes: Optional[str] = None
    created_at: datetime
    called_at: Optional[datetime] = None
    seated_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None
    terminal_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BoardTicketResponse(TicketResponse):
    """A live ticket as shown on the front-of-house board."""
    size_group: Optional[str] = None  # band label, e.g. "3–4 people"
    band_rank: Optional[int] = None  # rank within its size band, waiting only
    queue_index: Optional[int] = None  # restaurant-wide, waiting only
    estimated_wait_minutes: Optional[int] = None
    estimate_source: Optional[str] = None


class QueueBoardResponse(BaseModel):
    tickets: list[BoardTicketResponse]
    total_groups: int
    total_people: int
    waiting_by_band: dict[SizeBand, int]


class SeatResponse(BaseModel):
    ticket: TicketResponse
    visit_recorded: bool
    warning: Optional[str] = None


class ClearQueueResponse(BaseModel):
    cleared: int


class TicketSnapshotResponse(BaseModel):
    id: UUID
    status: str
    party_size: int
    customer_name: str
    position_number: int
    created_at: datetime

    class Config:
        from_attributes = True


class QueueInfoResponse(BaseModel):
    """Public queue status; `position` is null whenever it is unknown."""
    restaurant_id: UUID
    restaurant_name: str
    total_groups: int
    total_people: int
    position: Optional[int] = None
    band_rank: Optional[int] = None
    size_group: Optional[str] = None
    ticket: Optional[TicketSnapshotResponse] = None
    tolerance_minutes: int
    max_party_size: int
    queue_capacity: int
    cutoff: datetime

    class Config:
        from_attributes = True


class WaitTimeResponse(BaseModel):
    band: SizeBand
    label: str
    minutes: Optional[int] = None  # null = no estimate available
    source: Optional[str] = None
    sample_count: int
    today_minutes: Optional[int] = None
    today_samples: int
    historical_minutes: Optional[int] = None
    historical_samples: int


class WaitTimesResponse(BaseModel):
    bands: list[WaitTimeResponse]
    general_average_minutes: Optional[int] = None  # weighted by sample count


class QueueSettingsResponse(BaseModel):
    max_party_size: int
    queue_capacity: int
    tolerance_minutes: int

    class Config:
        from_attributes = True
