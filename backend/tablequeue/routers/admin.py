"""
Admin API endpoints for managing restaurants and CRM records.

All endpoints require staff access (valid `X-Staff-API-Key` header when a
key is configured).
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.auth.dependencies import verify_staff_access
from tablequeue.database import get_db
from tablequeue.services import queue_service, restaurant_service

router = APIRouter(dependencies=[Depends(verify_staff_access)])


# =============================================================================
# Schemas
# =============================================================================

# --- Restaurant Schemas ---

class RestaurantCreate(BaseModel):
    """Schema for creating a new restaurant."""
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100)
    timezone: Optional[str] = None  # IANA name, e.g. "America/Sao_Paulo"


class RestaurantResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    timezone: str
    queue_sequence: int
    is_active: bool

    class Config:
        from_attributes = True


# --- Customer Schemas ---

class CustomerCreate(BaseModel):
    """Schema for creating a CRM customer."""
    restaurant_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)


class CustomerResponse(BaseModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    total_visits: int
    last_visit_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class VisitSyncResponse(BaseModel):
    recorded: int


# =============================================================================
# Restaurant Admin Endpoints
# =============================================================================

@router.post("/restaurants", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    data: RestaurantCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new restaurant. Slugs are unique."""
    return await restaurant_service.create_restaurant(
        db,
        name=data.name,
        slug=data.slug,
        timezone=data.timezone,
    )


# =============================================================================
# Customer Admin Endpoints
# =============================================================================

@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a customer record.

    Tickets joining with the same phone number are linked to it, and seating
    them counts a visit.
    """
    return await restaurant_service.create_customer(
        db,
        restaurant_id=data.restaurant_id,
        name=data.name,
        phone=data.phone,
        email=data.email,
    )


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await restaurant_service.get_customer(db, customer_id)


# =============================================================================
# Maintenance
# =============================================================================

@router.post("/visits/sync", response_model=VisitSyncResponse)
async def sync_visits(
    db: AsyncSession = Depends(get_db),
):
    """Record customer visits still pending for seated tickets."""
    recorded = await queue_service.sync_pending_visits(db)
    return VisitSyncResponse(recorded=recorded)
