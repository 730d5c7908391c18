"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, Self
from uuid import UUID


@dataclass(frozen=True)
class _Identifier:
    value: UUID

    @classmethod
    def from_string(cls, value: str | UUID) -> Self:
        if isinstance(value, UUID):
            return cls(value=value)
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class EventId(_Identifier):
    """Unique identifier for an Event."""


@dataclass(frozen=True)
class MemberId(_Identifier):
    """Unique identifier for a Member."""


@dataclass(frozen=True)
class RangeId(_Identifier):
    """Unique identifier for a TicketRange."""


@dataclass(frozen=True)
class TicketId(_Identifier):
    """Unique identifier for a Ticket."""


@dataclass(frozen=True)
class AllocationId(_Identifier):
    """Unique identifier for a MemberTicketAllocation."""


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def __mul__(self, times: int) -> "Money":
        return Money(self.amount * times)

    def __ge__(self, other: "Money") -> bool:
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount:.2f}"

    @classmethod
    def zero(cls) -> "Money":
        return cls(Decimal("0"))


@dataclass(frozen=True)
class Quantity:
    """Non-negative integer representing a desired ticket count."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Quantity cannot be negative")


@dataclass(frozen=True)
class NumberInterval:
    """Inclusive interval of ticket numbers."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("Interval start cannot be greater than end")

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __contains__(self, number: object) -> bool:
        return isinstance(number, int) and self.start <= number <= self.end

    def overlaps(self, other: "NumberInterval") -> bool:
        return self.start <= other.end and other.start <= self.end

    def expansion_deltas(self, new: "NumberInterval") -> list["NumberInterval"]:
        """Return the intervals ``new`` adds on either side of this one.

        ``new`` must contain this interval.
        """
        deltas = []
        if new.start < self.start:
            deltas.append(NumberInterval(new.start, self.start - 1))
        if new.end > self.end:
            deltas.append(NumberInterval(self.end + 1, new.end))
        return deltas
