"""Range service - owns the ticket number space of an event.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import structlog

from ticketing.domain import (
    Money,
    NumberInterval,
    RangeExpansion,
    RangeId,
    RangeSpec,
    TicketOrigin,
    TicketRange,
)
from ticketing.domain.errors import (
    InvalidRangeChangeError,
    InvalidRangeError,
    NumberConflictError,
    RangeNotFoundError,
    RangeOverlapError,
)
from ticketing.services.common import parse_id, require_event, require_writable_event
from ticketing.services.inventory_service import InventoryService
from ticketing.stores.interfaces import TicketingStore

logger = structlog.get_logger(__name__)


class RangeService:
    """Service for creating and expanding ticket ranges."""

    def __init__(self, store: TicketingStore) -> None:
        self._store = store
        self._inventory = InventoryService(store)

    def list_ranges(self, event_id: str) -> list[TicketRange]:
        """Return active ranges of an event, lowest start first."""
        event = require_event(self._store, event_id)
        return self._store.list_ranges(event.id)

    def get_range(self, event_id: str, range_id: str) -> TicketRange:
        """Return an active range of an event.

        Raises:
            RangeNotFoundError: If the range is missing, deleted, or belongs
                to another event.
        """
        event = require_event(self._store, event_id)
        ticket_range = self._store.get_range(parse_id(RangeId, range_id, "range"))
        if ticket_range is None or ticket_range.event_id != event.id or not ticket_range.is_active:
            raise RangeNotFoundError(str(range_id))
        return ticket_range

    def create_range(
        self, event_id: str, start: int, end: int, type: str, cost: Money | None = None
    ) -> TicketRange:
        """Create a range and pre-generate one ticket per number.

        Raises:
            EventNotFoundError: If the event does not exist.
            ReadOnlyEventError: If the event is locked.
            InvalidRangeError: If ``start`` is greater than ``end``.
            RangeOverlapError: If the range intersects an active range.
        """
        return self.create_ranges(event_id, [RangeSpec(start, end, type, cost)])[0]

    def create_ranges(self, event_id: str, specs: list[RangeSpec]) -> list[TicketRange]:
        """Create several ranges in one transaction, as done when an event is set up.

        Ranges of the same batch must not overlap each other either.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            created = []
            for spec in specs:
                if spec.start > spec.end:
                    raise InvalidRangeError(spec.start, spec.end)
                interval = NumberInterval(spec.start, spec.end)

                overlapping = self._store.find_overlapping_ranges(event.id, interval)
                if overlapping:
                    logger.info(
                        "range_overlap_rejected",
                        event_id=str(event.id),
                        start=spec.start,
                        end=spec.end,
                        conflicting_range_id=str(overlapping[0].id),
                    )
                    raise RangeOverlapError(spec.start, spec.end, overlapping[0])

                ticket_range = self._store.create_range(event.id, interval, spec.type, spec.cost)
                self._inventory.generate_tickets(ticket_range)
                created.append(self._store.get_range(ticket_range.id))

        for ticket_range in created:
            logger.info(
                "range_created",
                event_id=str(event.id),
                range_id=str(ticket_range.id),
                type=ticket_range.type,
                start=ticket_range.start,
                end=ticket_range.end,
            )
        return created

    def expand_range(
        self,
        event_id: str,
        range_id: str,
        new_start: int | None = None,
        new_end: int | None = None,
    ) -> RangeExpansion:
        """Grow a range and create tickets for the added numbers.

        Ranges only grow: ``end`` may increase and ``start`` may decrease.
        An unchanged request is a no-op result.

        Raises:
            ReadOnlyEventError: If the event is locked.
            RangeNotFoundError: If the range is not an active range of the event.
            InvalidRangeChangeError: If the request would shrink the range.
            RangeOverlapError: If the new bounds intersect another active range.
            NumberConflictError: If any added number already exists as a ticket.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            current = self._store.get_range(parse_id(RangeId, range_id, "range"), lock=True)
            if current is None or current.event_id != event.id or not current.is_active:
                raise RangeNotFoundError(str(range_id))

            start = current.start if new_start is None else new_start
            end = current.end if new_end is None else new_end
            if end < current.end:
                raise InvalidRangeChangeError("end", current.end, end)
            if start > current.start:
                raise InvalidRangeChangeError("start", current.start, start)

            previous = current.interval
            expanded = NumberInterval(start, end)
            if expanded == previous:
                return RangeExpansion(changed=False, previous=previous, current=previous)

            overlapping = self._store.find_overlapping_ranges(event.id, expanded, exclude=current.id)
            if overlapping:
                raise RangeOverlapError(start, end, overlapping[0])

            deltas = previous.expansion_deltas(expanded)
            conflicts = self._store.existing_numbers(event.id, deltas)
            if conflicts:
                raise NumberConflictError(sorted(conflicts))

            self._store.update_range_bounds(current.id, expanded)
            created = self._store.create_tickets(
                event.id,
                current.id,
                (number for delta in deltas for number in delta),
                TicketOrigin.AFTER_IMPORT,
            )

        logger.info(
            "range_expanded",
            event_id=str(event.id),
            range_id=str(current.id),
            previous_start=previous.start,
            previous_end=previous.end,
            start=expanded.start,
            end=expanded.end,
            tickets_created=created,
        )
        return RangeExpansion(changed=True, previous=previous, current=expanded, tickets_created=created)
