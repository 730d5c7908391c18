from ticketing.stores.django_store import DjangoTicketingStore
from ticketing.stores.interfaces import (
    EventStore,
    InventoryStore,
    MemberStore,
    PaymentStore,
    TicketingStore,
)

__all__ = [
    "DjangoTicketingStore",
    "EventStore",
    "InventoryStore",
    "MemberStore",
    "PaymentStore",
    "TicketingStore",
]
