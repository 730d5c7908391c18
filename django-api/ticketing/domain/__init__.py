from ticketing.domain.filters import TicketFilter, TicketOrdering, TicketStatusFilter
from ticketing.domain.models import (
    Allocation,
    AllocationDeficit,
    AllocationEntry,
    AssignmentResult,
    CheckInResult,
    Event,
    EventDashboard,
    EventExport,
    FlowRecord,
    FlowType,
    Member,
    MemberExport,
    MemberStatus,
    Payment,
    PaymentType,
    RangeExpansion,
    RangeSpec,
    RangeTotal,
    Ticket,
    TicketFlow,
    TicketOrigin,
    TicketRange,
    TicketState,
    TypeCount,
    UnassignResult,
)
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

__all__ = [
    "Allocation",
    "AllocationDeficit",
    "AllocationEntry",
    "AssignmentResult",
    "CheckInResult",
    "Event",
    "EventDashboard",
    "EventExport",
    "FlowRecord",
    "FlowType",
    "Member",
    "MemberExport",
    "MemberStatus",
    "Payment",
    "PaymentType",
    "RangeExpansion",
    "RangeSpec",
    "RangeTotal",
    "Ticket",
    "TicketFlow",
    "TicketOrigin",
    "TicketRange",
    "TicketState",
    "TypeCount",
    "UnassignResult",
    "TicketFilter",
    "TicketOrdering",
    "TicketStatusFilter",
    "EventId",
    "MemberId",
    "RangeId",
    "TicketId",
    "AllocationId",
    "Money",
    "Quantity",
    "NumberInterval",
]
