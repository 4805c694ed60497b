"""
Queue domain errors.

Services raise these; main.py turns them into JSON responses carrying the
HTTP status and a machine-readable code, so the dashboard can tell "ticket
already gone" from "wrong action for this ticket".
"""

from typing import Optional
from uuid import UUID


class QueueError(Exception):
    """Base class for queue domain errors."""
    status_code = 400
    code = "queue_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(QueueError):
    """Input rejected before any state change."""
    status_code = 422
    code = "validation_failed"


class QueueFull(ValidationFailed):
    code = "queue_full"


class RestaurantNotFound(QueueError):
    status_code = 404
    code = "restaurant_not_found"

    def __init__(self, restaurant_id: UUID | str):
        super().__init__(f"Restaurant {restaurant_id} not found")
        self.restaurant_id = restaurant_id


class TicketNotFound(QueueError):
    status_code = 404
    code = "ticket_not_found"

    def __init__(self, ticket_id: UUID | str):
        super().__init__(f"Ticket {ticket_id} not found")
        self.ticket_id = ticket_id


class CustomerNotFound(QueueError):
    status_code = 404
    code = "customer_not_found"

    def __init__(self, customer_id: UUID | str):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


class InvalidTransition(QueueError):
    """The ticket's current status does not allow the requested action."""
    status_code = 409
    code = "invalid_transition"

    def __init__(self, ticket_id: UUID | str, current: str, action: str, detail: Optional[str] = None):
        super().__init__(detail or f"Cannot {action} ticket {ticket_id}: status is '{current}'")
        self.ticket_id = ticket_id
        self.current = current
        self.action = action
