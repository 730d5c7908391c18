"""Allocation ledger: desired ticket quantities per member and range."""

import structlog

from ticketing.domain import (
    Allocation,
    AllocationDeficit,
    AllocationEntry,
    AllocationId,
    Event,
    RangeId,
)
from ticketing.domain.errors import (
    AllocationNotFoundError,
    InvalidQuantityError,
    MissingAllocationsError,
    RangeNotFoundError,
)
from ticketing.services.common import (
    parse_id,
    require_event,
    require_member,
    require_writable_event,
)
from ticketing.stores.interfaces import TicketingStore

logger = structlog.get_logger(__name__)


class AllocationService:
    """Service for recording ticket demand and computing deficits."""

    def __init__(self, store: TicketingStore) -> None:
        self._store = store

    def _active_range_ids(self, event: Event) -> list[RangeId]:
        return [ticket_range.id for ticket_range in self._store.list_ranges(event.id)]

    def _resolve_range(self, event: Event, range_id: str) -> RangeId:
        resolved = parse_id(RangeId, range_id, "range")
        ticket_range = self._store.get_range(resolved)
        if ticket_range is None or ticket_range.event_id != event.id or not ticket_range.is_active:
            raise RangeNotFoundError(str(range_id))
        return resolved

    def set_allocation(self, event_id: str, member_id: str, range_id: str, quantity: int) -> Allocation:
        """Create or replace the quantity a member wants from a range. Zero is allowed.

        Raises:
            ReadOnlyEventError: If the event is locked.
            MemberNotFoundError: If the member is not part of the event.
            RangeNotFoundError: If the range is not an active range of the event.
            InvalidQuantityError: If ``quantity`` is negative.
        """
        if quantity < 0:
            raise InvalidQuantityError(quantity)
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            member = require_member(self._store, event, member_id)
            resolved = self._resolve_range(event, range_id)
            allocation = self._store.upsert_allocation(member.id, resolved, quantity)

        logger.info(
            "allocation_set",
            event_id=str(event.id),
            member_id=str(member.id),
            range_id=str(resolved),
            quantity=quantity,
        )
        return allocation

    def deficit(self, allocation_id: str) -> int:
        """Return quantity minus the tickets currently bound to the allocation."""
        allocation = self._store.get_allocation(parse_id(AllocationId, allocation_id, "allocation"))
        if allocation is None:
            raise AllocationNotFoundError(str(allocation_id))
        return allocation.quantity.value - self._store.count_linked(allocation.id)

    def validate_allocations(self, event_id: str, entries: list[AllocationEntry]) -> None:
        """Check that ``entries`` cover every active range of the event.

        Events with ``auto_generate_tickets_total_per_member`` need no
        explicit entries.

        Raises:
            MissingAllocationsError: Listing the uncovered range ids.
            RangeNotFoundError: If an entry names a range outside the event.
            InvalidQuantityError: If an entry has a negative quantity.
        """
        event = require_event(self._store, event_id)
        self._validate_entries(event, entries)

    def _validate_entries(self, event: Event, entries: list[AllocationEntry]) -> list[RangeId]:
        resolved = []
        for entry in entries:
            if entry.quantity < 0:
                raise InvalidQuantityError(entry.quantity)
            resolved.append(self._resolve_range(event, entry.range_id))

        if event.auto_generate_tickets_total_per_member is None:
            provided = set(resolved)
            missing = [str(range_id) for range_id in self._active_range_ids(event) if range_id not in provided]
            if missing:
                raise MissingAllocationsError(missing)
        return resolved

    def register_member_allocations(
        self, event_id: str, member_id: str, entries: list[AllocationEntry]
    ) -> list[Allocation]:
        """Validate and store the allocations supplied with a new member, atomically."""
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            member = require_member(self._store, event, member_id)
            resolved = self._validate_entries(event, entries)
            allocations = [
                self._store.upsert_allocation(member.id, range_id, entry.quantity)
                for range_id, entry in zip(resolved, entries)
            ]

        logger.info(
            "member_allocations_registered",
            event_id=str(event.id),
            member_id=str(member.id),
            ranges=len(allocations),
        )
        return allocations

    def list_member_allocations(self, event_id: str, member_id: str) -> list[AllocationDeficit]:
        """Return each allocation of a member with its linked count and deficit."""
        event = require_event(self._store, event_id)
        member = require_member(self._store, event, member_id)
        deficits = self._store.list_allocation_deficits(event.id, member_id=member.id)
        return sorted(deficits, key=lambda d: d.range_start)

    def outstanding_deficits(self, event: Event) -> list[AllocationDeficit]:
        """Return every positive deficit of the event in assignment priority order.

        With ``auto_generate_tickets_total_per_member`` set, each member has an
        implicit demand of that many tickets from every active range, counted
        against all tickets the member already holds from it. An explicit
        allocation for the same member and range takes precedence.
        """
        deficits = self._store.list_allocation_deficits(event.id)

        auto_quantity = event.auto_generate_tickets_total_per_member
        if auto_quantity is not None:
            explicit = {(d.member_id, d.range_id) for d in deficits}
            held = self._store.count_member_tickets_by_range(event.id)
            ranges = self._store.list_ranges(event.id)
            for member in self._store.list_members(event.id):
                for ticket_range in ranges:
                    key = (member.id, ticket_range.id)
                    if key in explicit:
                        continue
                    deficits.append(
                        AllocationDeficit(
                            allocation_id=None,
                            member_id=member.id,
                            range_id=ticket_range.id,
                            quantity=auto_quantity,
                            linked_count=held.get(key, 0),
                            member_order=member.order,
                            member_created_at=member.created_at,
                            range_start=ticket_range.start,
                        )
                    )

        return sorted((d for d in deficits if d.deficit > 0), key=lambda d: d.priority)
