"""Unit tests for domain primitives.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ticketing.domain import (
    AllocationDeficit,
    EventId,
    MemberId,
    Money,
    NumberInterval,
    Quantity,
    RangeId,
    Ticket,
    TicketId,
    TicketOrigin,
    TicketState,
)
from ticketing.domain.errors import (
    ConflictError,
    DuplicateTicketNumberError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    RangeOverlapError,
    ReadOnlyEventError,
    TicketDeletionForbiddenError,
    TicketNotFoundError,
    ValidationError,
)

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def make_ticket(**overrides) -> Ticket:
    values = dict(
        id=TicketId(uuid4()),
        event_id=EventId(uuid4()),
        number=1,
        range_id=RangeId(uuid4()),
        member_id=None,
        allocation_id=None,
        delivered_at=None,
        returned=False,
        origin=TicketOrigin.PRE_GENERATED,
    )
    values.update(overrides)
    return Ticket(**values)


class TestMoney:
    """Tests for Money value object."""

    def test_money_accepts_zero(self):
        """Money can be created with zero."""
        assert Money(Decimal("0")).amount == Decimal("0")

    def test_money_rejects_negative_amount(self):
        """Money raises ValueError for negative amount."""
        with pytest.raises(ValueError):
            Money(Decimal("-0.01"))

    def test_money_str_format(self):
        """Money string representation is formatted to 2 decimal places."""
        assert str(Money(Decimal("50"))) == "50.00"

    def test_money_arithmetic(self):
        """Money adds, multiplies by a count and compares."""
        total = Money(Decimal("10.50")) * 3 + Money(Decimal("1.50"))
        assert total == Money(Decimal("33.00"))
        assert total >= Money(Decimal("33"))
        assert not Money.zero() >= total


class TestQuantity:
    """Tests for Quantity value object."""

    def test_quantity_accepts_zero(self):
        assert Quantity(0).value == 0

    def test_quantity_rejects_negative_value(self):
        with pytest.raises(ValueError):
            Quantity(-1)


class TestNumberInterval:
    """Tests for NumberInterval value object."""

    def test_single_number_interval(self):
        interval = NumberInterval(5, 5)
        assert len(interval) == 1
        assert list(interval) == [5]

    def test_rejects_start_after_end(self):
        with pytest.raises(ValueError):
            NumberInterval(10, 9)

    def test_contains_is_inclusive(self):
        interval = NumberInterval(1, 100)
        assert 1 in interval
        assert 100 in interval
        assert 101 not in interval

    def test_overlaps_on_shared_boundary(self):
        """Ranges sharing an endpoint overlap."""
        assert NumberInterval(1, 100).overlaps(NumberInterval(100, 150))
        assert not NumberInterval(1, 100).overlaps(NumberInterval(101, 150))

    def test_expansion_deltas_on_both_sides(self):
        deltas = NumberInterval(10, 20).expansion_deltas(NumberInterval(5, 25))
        assert deltas == [NumberInterval(5, 9), NumberInterval(21, 25)]

    def test_expansion_deltas_end_only(self):
        deltas = NumberInterval(1, 100).expansion_deltas(NumberInterval(1, 150))
        assert deltas == [NumberInterval(101, 150)]


class TestIdentifiers:
    """Tests for identifier value objects."""

    def test_from_string_valid_uuid(self):
        value = uuid4()
        assert EventId.from_string(str(value)).value == value

    def test_from_string_accepts_uuid(self):
        value = uuid4()
        assert MemberId.from_string(value) == MemberId(value)

    def test_from_string_invalid_uuid(self):
        with pytest.raises(ValueError):
            EventId.from_string("not-a-uuid")


class TestTicketState:
    """Tests for derived ticket state."""

    def test_unassigned(self):
        assert make_ticket().state == TicketState.UNASSIGNED

    def test_assigned(self):
        assert make_ticket(member_id=MemberId(uuid4())).state == TicketState.ASSIGNED

    def test_delivered(self):
        ticket = make_ticket(member_id=MemberId(uuid4()), delivered_at=NOW)
        assert ticket.state == TicketState.DELIVERED

    def test_critica_requires_delivered_and_returned(self):
        assert make_ticket(delivered_at=NOW, returned=True).is_critica
        assert not make_ticket(returned=True).is_critica
        assert not make_ticket(delivered_at=NOW).is_critica


class TestAllocationDeficit:
    """Tests for deficit arithmetic and priority."""

    def make(self, order, minute=0, quantity=5, linked=0):
        return AllocationDeficit(
            allocation_id=None,
            member_id=MemberId(uuid4()),
            range_id=RangeId(uuid4()),
            quantity=quantity,
            linked_count=linked,
            member_order=order,
            member_created_at=NOW.replace(minute=minute),
            range_start=1,
        )

    def test_deficit_is_quantity_minus_linked(self):
        assert self.make(order=1, quantity=5, linked=2).deficit == 3

    def test_priority_puts_null_order_last(self):
        unordered = self.make(order=None, minute=0)
        second = self.make(order=2, minute=1)
        first = self.make(order=1, minute=2)
        ranked = sorted([unordered, second, first], key=lambda d: d.priority)
        assert ranked == [first, second, unordered]

    def test_priority_ties_break_on_creation_time(self):
        later = self.make(order=1, minute=5)
        earlier = self.make(order=1, minute=1)
        assert sorted([later, earlier], key=lambda d: d.priority) == [earlier, later]


class TestDomainErrors:
    """Tests for error kinds and messages."""

    def test_error_kinds(self):
        assert isinstance(TicketNotFoundError(["x"]), NotFoundError)
        assert isinstance(ReadOnlyEventError("x"), ForbiddenError)
        assert isinstance(DuplicateTicketNumberError(7), ConflictError)
        assert isinstance(TicketDeletionForbiddenError(), ValidationError)

    def test_str_includes_code(self):
        assert str(ReadOnlyEventError("x")) == "READ_ONLY_EVENT: Event is read-only"

    def test_overlap_message_names_conflicting_range(self):
        class Existing:
            type = "Rifa"
            start = 1
            end = 100

        error = RangeOverlapError(50, 150, Existing())
        assert error.code == ErrorCode.RANGE_OVERLAP
        assert error.message == 'Range (50-150) overlaps with existing range "Rifa" (1-100)'
