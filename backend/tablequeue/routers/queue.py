"""
Public queue API endpoints.

Backs the customer-facing ticket status page reached through the link a
guest receives after joining the queue.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.database import get_db
from tablequeue.schemas.queue import QueueInfoRequest, QueueInfoResponse
from tablequeue.services.queue_info import get_queue_info

router = APIRouter()


@router.post("/info", response_model=QueueInfoResponse)
async def queue_info(
    request: QueueInfoRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Current queue totals and, optionally, one ticket's standing.

    `position` is the ticket's place among all waiting parties of the
    restaurant, `band_rank` its place among parties of the same size. Both
    are null when the ticket is unknown, belongs to another restaurant,
    is older than the lookback window or is no longer waiting.
    """
    info = await get_queue_info(db, request.restaurant_id, request.ticket_id)
    return QueueInfoResponse.model_validate(info)
