"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Services receive one
store handle and never reach the ORM directly.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Iterable

from ticketing.domain import (
    Allocation,
    AllocationDeficit,
    AllocationId,
    Event,
    EventId,
    FlowRecord,
    Member,
    MemberId,
    Money,
    NumberInterval,
    Payment,
    RangeId,
    Ticket,
    TicketFilter,
    TicketFlow,
    TicketId,
    TicketOrdering,
    TicketOrigin,
    TicketRange,
)


class EventStore(ABC):
    """Read access to events."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...


class MemberStore(ABC):
    """Read access to members."""

    @abstractmethod
    def get_member(self, member_id: MemberId) -> Member | None:
        """Return a member by ID, or None if not found."""
        ...

    @abstractmethod
    def list_members(self, event_id: EventId) -> list[Member]:
        """Return the members of an event."""
        ...

    @abstractmethod
    def count_members(self, event_id: EventId) -> int:
        ...


class PaymentStore(ABC):
    """Read access to payments. Deleted payments are never returned."""

    @abstractmethod
    def list_payments(
        self,
        event_id: EventId,
        member_id: MemberId | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Payment]:
        """Return non-deleted payments of an event's members, optionally
        narrowed to one member and to ``since <= payed_at <= until``."""
        ...


class InventoryStore(ABC):
    """Persistence for ranges, tickets, allocations and the flow log."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager wrapping a single transaction."""
        ...

    # Ranges

    @abstractmethod
    def get_range(self, range_id: RangeId, lock: bool = False) -> TicketRange | None:
        """Return a range by ID, deleted or not. ``lock`` holds the row until commit."""
        ...

    @abstractmethod
    def list_ranges(self, event_id: EventId, include_deleted: bool = False) -> list[TicketRange]:
        """Return the ranges of an event ordered by start ascending."""
        ...

    @abstractmethod
    def find_overlapping_ranges(
        self, event_id: EventId, interval: NumberInterval, exclude: RangeId | None = None
    ) -> list[TicketRange]:
        """Return active ranges of the event intersecting ``interval``."""
        ...

    @abstractmethod
    def create_range(self, event_id: EventId, interval: NumberInterval, type: str, cost: Money | None) -> TicketRange:
        ...

    @abstractmethod
    def update_range_bounds(self, range_id: RangeId, interval: NumberInterval) -> None:
        ...

    @abstractmethod
    def mark_range_generated(self, range_id: RangeId, at: datetime) -> None:
        ...

    # Tickets

    @abstractmethod
    def existing_numbers(self, event_id: EventId, intervals: Iterable[NumberInterval]) -> set[int]:
        """Return ticket numbers of the event that fall inside any of ``intervals``."""
        ...

    @abstractmethod
    def create_tickets(
        self, event_id: EventId, range_id: RangeId, numbers: Iterable[int], origin: TicketOrigin
    ) -> int:
        """Insert one unassigned ticket per number, skipping numbers already taken.

        Returns the number of rows inserted.
        """
        ...

    @abstractmethod
    def create_ticket(
        self,
        event_id: EventId,
        range_id: RangeId,
        number: int,
        origin: TicketOrigin,
        member_id: MemberId | None = None,
        name: str | None = None,
        phone: str | None = None,
        description: str | None = None,
    ) -> Ticket:
        ...

    @abstractmethod
    def get_ticket(self, ticket_id: TicketId, lock: bool = False) -> Ticket | None:
        ...

    @abstractmethod
    def get_ticket_by_number(self, event_id: EventId, number: int) -> Ticket | None:
        ...

    @abstractmethod
    def get_tickets(self, ticket_ids: Iterable[TicketId], lock: bool = False) -> list[Ticket]:
        """Return the tickets that exist among ``ticket_ids``, ordered by number."""
        ...

    @abstractmethod
    def list_tickets(
        self,
        event_id: EventId,
        ticket_filter: TicketFilter,
        ordering: TicketOrdering = TicketOrdering.NUMBER_ASC,
    ) -> list[Ticket]:
        ...

    @abstractmethod
    def list_unassigned_tickets(
        self, event_id: EventId, range_ids: Iterable[RangeId], lock: bool = False
    ) -> list[Ticket]:
        """Return tickets without member in the given ranges, lowest number first."""
        ...

    @abstractmethod
    def count_tickets(self, event_id: EventId, ticket_filter: TicketFilter) -> int:
        ...

    @abstractmethod
    def count_tickets_by_range(self, event_id: EventId, ticket_filter: TicketFilter) -> dict[RangeId, int]:
        ...

    @abstractmethod
    def count_member_tickets_by_range(
        self, event_id: EventId, exclude_returned: bool = False
    ) -> dict[tuple[MemberId, RangeId], int]:
        """Return ticket counts keyed by (member, range) for bound tickets."""
        ...

    @abstractmethod
    def bind_tickets(
        self, ticket_ids: list[TicketId], member_id: MemberId, allocation_id: AllocationId | None
    ) -> int:
        """Bind still-unassigned tickets to a member. Returns rows updated."""
        ...

    @abstractmethod
    def release_ticket(self, ticket_id: TicketId) -> None:
        """Clear member, allocation and returned flag of a ticket."""
        ...

    @abstractmethod
    def mark_delivered(self, ticket_id: TicketId, at: datetime) -> bool:
        """Set ``delivered_at`` only where it is still null. Returns whether a row changed."""
        ...

    @abstractmethod
    def set_returned(self, ticket_id: TicketId, returned: bool) -> None:
        ...

    @abstractmethod
    def update_ticket_details(self, ticket_id: TicketId, details: dict[str, str | None]) -> None:
        """Update the free-form contact fields of a ticket."""
        ...

    # Allocations

    @abstractmethod
    def get_allocation(self, allocation_id: AllocationId) -> Allocation | None:
        ...

    @abstractmethod
    def upsert_allocation(self, member_id: MemberId, range_id: RangeId, quantity: int) -> Allocation:
        ...

    @abstractmethod
    def count_linked(self, allocation_id: AllocationId) -> int:
        """Return how many tickets are bound to the allocation."""
        ...

    @abstractmethod
    def list_allocation_deficits(
        self, event_id: EventId, member_id: MemberId | None = None
    ) -> list[AllocationDeficit]:
        """Return allocations on active ranges annotated with linked counts."""
        ...

    # Flows

    @abstractmethod
    def append_flows(self, event_id: EventId, records: Iterable[FlowRecord], performed_by: str | None) -> int:
        """Append flow rows. Returns how many were written."""
        ...

    @abstractmethod
    def list_flows(self, ticket_id: TicketId) -> list[TicketFlow]:
        """Return the flows of a ticket oldest first."""
        ...


class TicketingStore(EventStore, MemberStore, PaymentStore, InventoryStore):
    """Everything the ticketing services read and write."""
