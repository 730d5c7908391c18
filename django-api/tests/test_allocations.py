"""Tests for AllocationService: quantities, deficits and coverage checks.

Run with: pytest tests/test_allocations.py -v
"""

from uuid import uuid4

import pytest

from ticketing import models
from ticketing.domain import AllocationEntry, EventId, Quantity
from ticketing.domain.errors import (
    AllocationNotFoundError,
    InvalidQuantityError,
    MemberNotFoundError,
    MissingAllocationsError,
    RangeNotFoundError,
    ReadOnlyEventError,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def ranges(range_service, event):
    return [
        range_service.create_range(event.id, 1, 100, "Rifa"),
        range_service.create_range(event.id, 101, 200, "Rifa VIP"),
    ]


class TestSetAllocation:
    """Tests for AllocationService.set_allocation."""

    def test_create_then_replace(self, allocation_service, event, member, ranges):
        """Setting twice keeps a single row per member and range."""
        first = allocation_service.set_allocation(event.id, member.id, ranges[0].id, 5)
        second = allocation_service.set_allocation(event.id, member.id, ranges[0].id, 8)

        assert first.id == second.id
        assert second.quantity == Quantity(8)
        assert models.MemberTicketAllocation.objects.filter(member=member).count() == 1

    def test_zero_quantity_allowed(self, allocation_service, event, member, ranges):
        allocation = allocation_service.set_allocation(event.id, member.id, ranges[0].id, 0)
        assert allocation_service.deficit(allocation.id) == 0

    def test_negative_quantity(self, allocation_service, event, member, ranges):
        with pytest.raises(InvalidQuantityError):
            allocation_service.set_allocation(event.id, member.id, ranges[0].id, -1)

    def test_member_of_other_event(self, allocation_service, event, make_member, ranges):
        stranger = make_member(models.Event.objects.create(name="Other"))
        with pytest.raises(MemberNotFoundError):
            allocation_service.set_allocation(event.id, stranger.id, ranges[0].id, 1)

    def test_deleted_range(self, allocation_service, event, member, ranges):
        models.TicketRange.objects.filter(id=ranges[0].id.value).update(deleted_at=ranges[0].created_at)
        with pytest.raises(RangeNotFoundError):
            allocation_service.set_allocation(event.id, member.id, ranges[0].id, 1)

    def test_read_only_event(self, allocation_service, event, member, ranges):
        models.Event.objects.filter(id=event.id).update(read_only=True)
        with pytest.raises(ReadOnlyEventError):
            allocation_service.set_allocation(event.id, member.id, ranges[0].id, 1)


class TestDeficit:
    """Tests for AllocationService.deficit."""

    def test_deficit_counts_bound_tickets(self, allocation_service, event, member, ranges):
        allocation = allocation_service.set_allocation(event.id, member.id, ranges[0].id, 5)
        models.Ticket.objects.filter(event=event, number__in=[1, 2]).update(
            member=member, allocation_id=allocation.id.value
        )

        assert allocation_service.deficit(allocation.id) == 3

    def test_over_allocated_deficit_is_negative(self, allocation_service, event, member, ranges):
        allocation = allocation_service.set_allocation(event.id, member.id, ranges[0].id, 1)
        models.Ticket.objects.filter(event=event, number__in=[1, 2]).update(
            member=member, allocation_id=allocation.id.value
        )

        assert allocation_service.deficit(allocation.id) == -1

    def test_unknown_allocation(self, allocation_service):
        with pytest.raises(AllocationNotFoundError):
            allocation_service.deficit(uuid4())

    def test_list_member_allocations(self, allocation_service, event, member, ranges):
        allocation_service.set_allocation(event.id, member.id, ranges[1].id, 2)
        allocation_service.set_allocation(event.id, member.id, ranges[0].id, 4)

        listed = allocation_service.list_member_allocations(event.id, member.id)

        assert [(d.range_start, d.quantity, d.deficit) for d in listed] == [(1, 4, 4), (101, 2, 2)]


class TestValidateAllocations:
    """Tests for coverage of active ranges."""

    def test_missing_range_is_reported(self, allocation_service, event, ranges):
        with pytest.raises(MissingAllocationsError) as exc_info:
            allocation_service.validate_allocations(event.id, [AllocationEntry(str(ranges[0].id), 3)])

        assert exc_info.value.range_ids == [str(ranges[1].id)]

    def test_full_coverage_passes(self, allocation_service, event, ranges):
        entries = [AllocationEntry(str(r.id), 0) for r in ranges]
        allocation_service.validate_allocations(event.id, entries)

    def test_auto_quantity_needs_no_entries(self, allocation_service, event, ranges):
        models.Event.objects.filter(id=event.id).update(auto_generate_tickets_total_per_member=2)
        allocation_service.validate_allocations(event.id, [])

    def test_register_member_allocations(self, allocation_service, event, member, ranges):
        entries = [AllocationEntry(str(ranges[0].id), 3), AllocationEntry(str(ranges[1].id), 1)]

        allocations = allocation_service.register_member_allocations(event.id, member.id, entries)

        assert [a.quantity.value for a in allocations] == [3, 1]
        assert models.MemberTicketAllocation.objects.filter(member=member).count() == 2

    def test_register_rejects_partial_coverage(self, allocation_service, event, member, ranges):
        with pytest.raises(MissingAllocationsError):
            allocation_service.register_member_allocations(
                event.id, member.id, [AllocationEntry(str(ranges[0].id), 3)]
            )
        assert not models.MemberTicketAllocation.objects.filter(member=member).exists()


class TestOutstandingDeficits:
    """Tests for the priority-ordered deficit list."""

    def test_ordered_by_member_order_nulls_last(self, allocation_service, store, event, make_member, ranges):
        late = make_member(event, name="No order")
        second = make_member(event, name="Second", order=2)
        first = make_member(event, name="First", order=1)
        for member in (late, second, first):
            allocation_service.set_allocation(event.id, member.id, ranges[0].id, 1)

        deficits = allocation_service.outstanding_deficits(store.get_event(EventId(event.id)))

        assert [d.member_id.value for d in deficits] == [first.id, second.id, late.id]
