"""Typed filter and sort options for ticket listings."""

from dataclasses import dataclass
from enum import Enum

from ticketing.domain.models import TicketOrigin
from ticketing.domain.value_objects import MemberId, RangeId


class TicketStatusFilter(Enum):
    ALL = "all"
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    DELIVERED = "delivered"
    RETURNED = "returned"
    NOT_RETURNED = "not_returned"
    PENDING = "pending"
    CRITICA = "critica"


class TicketOrdering(Enum):
    NUMBER_ASC = "number"
    NUMBER_DESC = "-number"
    CREATED_ASC = "created_at"
    CREATED_DESC = "-created_at"


@dataclass(frozen=True)
class TicketFilter:
    """Criteria for listing the tickets of one event.

    ``linked_only`` narrows any status to tickets bound to a member, which is
    how the dashboard counts custody states.
    """

    status: TicketStatusFilter = TicketStatusFilter.ALL
    range_id: RangeId | None = None
    member_id: MemberId | None = None
    number: int | None = None
    origin: TicketOrigin | None = None
    linked_only: bool = False
