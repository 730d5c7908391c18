"""Domain models representing persisted state and operation results.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from ticketing.domain.value_objects import (
    AllocationId,
    EventId,
    MemberId,
    Money,
    NumberInterval,
    Quantity,
    RangeId,
    TicketId,
)


class TicketOrigin(Enum):
    """How a ticket came to exist."""

    PRE_GENERATED = "PRE_GENERATED"
    AFTER_IMPORT = "AFTER_IMPORT"


class FlowType(Enum):
    """Kinds of custody change recorded in the audit trail."""

    ASSIGNED = "ASSIGNED"
    DETACHED = "DETACHED"
    CHECKED_IN = "CHECKED_IN"
    RETURNED_TOGGLED = "RETURNED_TOGGLED"


class PaymentType(Enum):
    CASH = "CASH"
    PIX = "PIX"


class TicketState(Enum):
    """Custody state of a ticket. The returned flag is tracked apart from it."""

    UNASSIGNED = "UNASSIGNED"
    ASSIGNED = "ASSIGNED"
    DELIVERED = "DELIVERED"


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    name: str
    read_only: bool
    auto_generate_tickets_total_per_member: int | None
    created_at: datetime


@dataclass(frozen=True)
class Member:
    """Domain representation of a Member."""

    id: MemberId
    event_id: EventId
    name: str
    order: int | None
    is_all_confirmed_but_not_yet_fully_paid: bool
    created_at: datetime


@dataclass(frozen=True)
class Payment:
    """Domain representation of a non-deleted Payment.

    ``amount`` is a signed Decimal: corrections and refunds are recorded as
    negative payments.
    """

    id: str
    member_id: MemberId
    amount: Decimal
    type: PaymentType
    payed_at: datetime


@dataclass(frozen=True)
class TicketRange:
    """Domain representation of a TicketRange."""

    id: RangeId
    event_id: EventId
    start: int
    end: int
    type: str
    cost: Money | None
    generated_at: datetime | None
    deleted_at: datetime | None
    created_at: datetime

    @property
    def interval(self) -> NumberInterval:
        return NumberInterval(self.start, self.end)

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket."""

    id: TicketId
    event_id: EventId
    number: int
    range_id: RangeId
    member_id: MemberId | None
    allocation_id: AllocationId | None
    delivered_at: datetime | None
    returned: bool
    origin: TicketOrigin
    name: str | None = None
    phone: str | None = None
    description: str | None = None

    @property
    def state(self) -> TicketState:
        if self.delivered_at is not None:
            return TicketState.DELIVERED
        if self.member_id is not None:
            return TicketState.ASSIGNED
        return TicketState.UNASSIGNED

    @property
    def is_critica(self) -> bool:
        """Delivered and returned at the same time: reported, never rejected."""
        return self.returned and self.delivered_at is not None


@dataclass(frozen=True)
class Allocation:
    """Domain representation of a MemberTicketAllocation."""

    id: AllocationId
    member_id: MemberId
    range_id: RangeId
    quantity: Quantity
    created_at: datetime


@dataclass(frozen=True)
class AllocationDeficit:
    """Outstanding demand of a member against one range.

    ``allocation_id`` is None for the implicit per-member quantity of events
    with ``auto_generate_tickets_total_per_member`` set.
    """

    allocation_id: AllocationId | None
    member_id: MemberId
    range_id: RangeId
    quantity: int
    linked_count: int
    member_order: int | None
    member_created_at: datetime
    range_start: int

    @property
    def deficit(self) -> int:
        return self.quantity - self.linked_count

    @property
    def priority(self) -> tuple:
        """Sort key: member order ascending with nulls last, then creation time."""
        return (
            self.member_order is None,
            self.member_order or 0,
            self.member_created_at,
            self.range_start,
        )


@dataclass(frozen=True)
class TicketFlow:
    """Append-only audit record of a custody change."""

    id: str
    ticket_id: TicketId
    event_id: EventId
    type: FlowType
    from_member_id: MemberId | None
    to_member_id: MemberId | None
    performed_by: str | None
    created_at: datetime


@dataclass(frozen=True)
class RangeExpansion:
    """Result of an expand-only range update."""

    changed: bool
    previous: NumberInterval
    current: NumberInterval
    tickets_created: int = 0


@dataclass(frozen=True)
class AssignmentResult:
    """Result of a deficit-driven assignment run."""

    assigned: int
    nothing_to_do: bool = False


@dataclass(frozen=True)
class UnassignResult:
    ticket: Ticket
    was_returned: bool


@dataclass(frozen=True)
class CheckInResult:
    ticket: Ticket
    already_checked_in: bool


@dataclass(frozen=True)
class TypeCount:
    type: str
    ticket_count: int


@dataclass(frozen=True)
class MemberStatus:
    """Payoff status of one member."""

    member_id: MemberId
    total_tickets: int
    tickets_per_type: dict[str, int]
    cost_per_type: dict[str, Money]
    cost_expected: Money
    paid: Decimal
    is_paid_off: bool
    is_all_confirmed_but_not_yet_fully_paid: bool


@dataclass(frozen=True)
class EventDashboard:
    """Event-wide statistics computed on demand."""

    total_tickets: int
    total_tickets_linked_to_members: int
    total_not_returned: int
    total_delivered: int
    total_returned: int
    total_critica: int
    total_after_import: int
    total_members: int
    total_value_paid: Decimal
    total_value_paid_recent: Decimal
    paid_tickets: int
    unpaid_tickets: int
    confirmed_unpaid_tickets: int
    predicted_tickets: int
    tickets_per_type: list[TypeCount] = field(default_factory=list)
    linked_per_type: list[TypeCount] = field(default_factory=list)
    delivered_per_type: list[TypeCount] = field(default_factory=list)
    critica_per_type: list[TypeCount] = field(default_factory=list)
    paid_per_type: list[TypeCount] = field(default_factory=list)
    predicted_per_type: list[TypeCount] = field(default_factory=list)


@dataclass(frozen=True)
class RangeTotal:
    """Quantity and value of a member's tickets from one range."""

    range_id: RangeId
    quantity: int
    total_value: Money


@dataclass(frozen=True)
class MemberExport:
    """Settlement line of a member who still holds undelivered tickets.

    ``balance`` is ``total_paid - total_amount``: negative while the member
    owes money.
    """

    member_id: MemberId
    name: str
    tickets: list[Ticket]
    payments: list[Payment]
    tickets_by_range: list[RangeTotal]
    total_amount: Money
    total_paid: Decimal
    total_paid_pix: Decimal
    total_paid_cash: Decimal
    balance: Decimal


@dataclass(frozen=True)
class EventExport:
    members: list[MemberExport]
    pending_tickets: list[Ticket]
    critica_tickets: list[Ticket]


@dataclass(frozen=True)
class RangeSpec:
    """Bounds, label and price of a range to create."""

    start: int
    end: int
    type: str
    cost: Money | None = None


@dataclass(frozen=True)
class AllocationEntry:
    """Requested quantity for one range, as supplied when a member is registered."""

    range_id: str
    quantity: int


@dataclass(frozen=True)
class FlowRecord:
    """A flow row to append; the store stamps id, event and time."""

    ticket_id: TicketId
    type: FlowType
    from_member_id: MemberId | None = None
    to_member_id: MemberId | None = None
