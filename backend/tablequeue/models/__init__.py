# Database models
from tablequeue.models.restaurant import Restaurant
from tablequeue.models.queue_settings import QueueSettings
from tablequeue.models.customer import Customer
from tablequeue.models.queue_ticket import (
    QueueTicket,
    TicketPriority,
    TicketStatus,
)
from tablequeue.models.ticket_event import QueueTicketEvent, TicketEventType

__all__ = [
    "Restaurant",
    "QueueSettings",
    "Customer",
    "QueueTicket",
    "TicketPriority",
    "TicketStatus",
    "QueueTicketEvent",
    "TicketEventType",
]
