"""Domain error codes for the ticketing module.

Errors are grouped in four kinds that callers map to their own transport:
``NotFoundError``, ``ForbiddenError``, ``ValidationError`` and
``ConflictError``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    RANGE_NOT_FOUND = "RANGE_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    ALLOCATION_NOT_FOUND = "ALLOCATION_NOT_FOUND"
    READ_ONLY_EVENT = "READ_ONLY_EVENT"
    INVALID_ID = "INVALID_ID"
    INVALID_RANGE = "INVALID_RANGE"
    RANGE_OVERLAP = "RANGE_OVERLAP"
    INVALID_RANGE_CHANGE = "INVALID_RANGE_CHANGE"
    NUMBER_CONFLICT = "NUMBER_CONFLICT"
    NUMBER_OUT_OF_RANGE = "NUMBER_OUT_OF_RANGE"
    DUPLICATE_TICKET_NUMBER = "DUPLICATE_TICKET_NUMBER"
    MISSING_ALLOCATIONS = "MISSING_ALLOCATIONS"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    INVALID_MEMBER = "INVALID_MEMBER"
    INVALID_ALLOCATION = "INVALID_ALLOCATION"
    NO_RANGES = "NO_RANGES"
    NO_MEMBERS = "NO_MEMBERS"
    TICKET_DELETION_FORBIDDEN = "TICKET_DELETION_FORBIDDEN"
    INVALID_TICKET_FIELD = "INVALID_TICKET_FIELD"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """A referenced record does not exist in the event's scope."""


class ForbiddenError(DomainError):
    """The operation is not allowed on the target."""


class ValidationError(DomainError):
    """The request breaks a domain rule."""


class ConflictError(DomainError):
    """The request collides with existing state."""


def _join(values: Iterable[object]) -> str:
    return ", ".join(str(value) for value in values)


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class MemberNotFoundError(NotFoundError):
    """Raised when a member is not found in the event."""

    def __init__(self, member_id: str) -> None:
        super().__init__(
            code=ErrorCode.MEMBER_NOT_FOUND,
            message="Member not found in this event",
        )
        self.member_id = member_id


class RangeNotFoundError(NotFoundError):
    """Raised when an active ticket range is not found in the event."""

    def __init__(self, range_id: str) -> None:
        super().__init__(
            code=ErrorCode.RANGE_NOT_FOUND,
            message="Ticket range not found",
        )
        self.range_id = range_id


class TicketNotFoundError(NotFoundError):
    """Raised when one or more tickets are not found in the event."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message=f"Tickets not found for this event: {_join(missing)}",
        )
        self.missing = missing


class AllocationNotFoundError(NotFoundError):
    """Raised when an allocation is not found."""

    def __init__(self, allocation_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALLOCATION_NOT_FOUND,
            message="Allocation not found",
        )
        self.allocation_id = allocation_id


class ReadOnlyEventError(ForbiddenError):
    """Raised when a mutation targets a read-only event."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.READ_ONLY_EVENT,
            message="Event is read-only",
        )
        self.event_id = event_id


class InvalidIdError(ValidationError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {kind} ID format",
        )
        self.kind = kind


class InvalidRangeError(ValidationError):
    """Raised when a range has start greater than end."""

    def __init__(self, start: int, end: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_RANGE,
            message=f"Range start {start} is greater than end {end}",
        )
        self.start = start
        self.end = end


class RangeOverlapError(ValidationError):
    """Raised when a range would overlap an active range of the same event."""

    def __init__(self, start: int, end: int, conflicting) -> None:
        super().__init__(
            code=ErrorCode.RANGE_OVERLAP,
            message=(
                f"Range ({start}-{end}) overlaps with existing range "
                f'"{conflicting.type}" ({conflicting.start}-{conflicting.end})'
            ),
        )
        self.conflicting = conflicting


class InvalidRangeChangeError(ValidationError):
    """Raised when an update would shrink a range."""

    def __init__(self, field: str, current: int, requested: int) -> None:
        verb = "decrease" if field == "end" else "increase"
        super().__init__(
            code=ErrorCode.INVALID_RANGE_CHANGE,
            message=(
                f"Cannot {verb} '{field}' from {current} to {requested}. "
                "This would remove existing tickets."
            ),
        )
        self.field = field


class NumberConflictError(ValidationError):
    """Raised when an expansion would re-issue numbers that already exist."""

    def __init__(self, numbers: list[int]) -> None:
        super().__init__(
            code=ErrorCode.NUMBER_CONFLICT,
            message=f"Cannot expand range. Tickets already exist with numbers: {_join(numbers)}",
        )
        self.numbers = numbers


class NumberOutOfRangeError(ValidationError):
    """Raised when a ticket number falls outside every active range."""

    def __init__(self, number: int) -> None:
        super().__init__(
            code=ErrorCode.NUMBER_OUT_OF_RANGE,
            message=f"Ticket number {number} is not inside any ticket range of this event",
        )
        self.number = number


class DuplicateTicketNumberError(ConflictError):
    """Raised when a ticket number was already issued for the event."""

    def __init__(self, number: int) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_TICKET_NUMBER,
            message=f"Ticket number {number} already exists for this event",
        )
        self.number = number


class MissingAllocationsError(ValidationError):
    """Raised when allocations do not cover every active range of the event."""

    def __init__(self, range_ids: list[str]) -> None:
        super().__init__(
            code=ErrorCode.MISSING_ALLOCATIONS,
            message=f"Ticket allocations missing for ranges: {_join(range_ids)}",
        )
        self.range_ids = range_ids


class InvalidQuantityError(ValidationError):
    """Raised when an allocation quantity is negative."""

    def __init__(self, quantity: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message=f"Quantity must be zero or positive, got {quantity}",
        )
        self.quantity = quantity


class AlreadyAssignedError(ValidationError):
    """Raised when tickets in a batch are already bound to a member."""

    def __init__(self, numbers: list[int]) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_ASSIGNED,
            message=f"Tickets already assigned: {_join(numbers)}",
        )
        self.numbers = numbers


class NotAssignedError(ValidationError):
    """Raised when detaching a ticket that has no member."""

    def __init__(self, number: int) -> None:
        super().__init__(
            code=ErrorCode.NOT_ASSIGNED,
            message=f"Ticket {number} is not assigned to any member",
        )
        self.number = number


class InvalidMemberError(ValidationError):
    """Raised when a member does not belong to the event."""

    def __init__(self, member_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_MEMBER,
            message="Member not found or does not belong to this event",
        )
        self.member_id = member_id


class InvalidAllocationError(ValidationError):
    """Raised when an allocation does not belong to the target member."""

    def __init__(self, allocation_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ALLOCATION,
            message="Invalid allocation for this member",
        )
        self.allocation_id = allocation_id


class NoRangesError(ValidationError):
    """Raised when an event has no active ticket range."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NO_RANGES,
            message="No ticket ranges defined for this event",
        )


class NoMembersError(ValidationError):
    """Raised when an event has no members."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NO_MEMBERS,
            message="No members found for this event",
        )


class TicketDeletionForbiddenError(ValidationError):
    """Raised on every attempt to delete a ticket."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TICKET_DELETION_FORBIDDEN,
            message="Tickets cannot be deleted",
        )


class InvalidTicketFieldError(ValidationError):
    """Raised when a detail update names a field other than the contact details."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TICKET_FIELD,
            message=f"Cannot update ticket fields: {_join(fields)}",
        )
        self.fields = fields
