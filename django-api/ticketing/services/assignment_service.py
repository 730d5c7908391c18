"""Assignment engine - binds tickets to members.

Deficit-driven runs walk outstanding allocations in priority order and hand
out the lowest free numbers of each range. Manual assignment binds an
explicit batch of tickets. Every binding change appends one flow row and
happens inside a single transaction.
"""

from collections import defaultdict

import structlog

from ticketing.domain import (
    AllocationId,
    AssignmentResult,
    EventId,
    FlowRecord,
    FlowType,
    MemberId,
    RangeId,
    Ticket,
    TicketId,
    UnassignResult,
)
from ticketing.domain.errors import (
    AlreadyAssignedError,
    InvalidAllocationError,
    InvalidMemberError,
    NoMembersError,
    NoRangesError,
    NotAssignedError,
    TicketNotFoundError,
)
from ticketing.services.allocation_service import AllocationService
from ticketing.services.common import parse_id, require_writable_event
from ticketing.stores.interfaces import TicketingStore

logger = structlog.get_logger(__name__)


class AssignmentService:
    """Service for binding and unbinding tickets and members."""

    def __init__(self, store: TicketingStore) -> None:
        self._store = store
        self._allocations = AllocationService(store)

    def _bind(
        self,
        event_id: EventId,
        tickets: list[Ticket],
        member_id: MemberId,
        allocation_id: AllocationId | None,
        performed_by: str | None,
    ) -> None:
        updated = self._store.bind_tickets([t.id for t in tickets], member_id, allocation_id)
        if updated != len(tickets):
            # Another operator took some of these tickets since they were read.
            taken = [t.number for t in self._store.get_tickets([t.id for t in tickets]) if t.member_id != member_id]
            raise AlreadyAssignedError(sorted(taken))
        self._store.append_flows(
            event_id,
            [FlowRecord(t.id, FlowType.ASSIGNED, to_member_id=member_id) for t in tickets],
            performed_by,
        )

    def run_assignment(self, event_id: str, performed_by: str | None = None) -> AssignmentResult:
        """Fill outstanding deficits from the pool of unassigned tickets.

        Deficits are served by member order (nulls last), then member creation
        time. Each takes ``min(deficit, pool size)`` tickets from the front of
        its range's pool, lowest numbers first, so a rerun over the same state
        picks the same numbers.

        Raises:
            ReadOnlyEventError: If the event is locked.
            NoRangesError: If the event has no active range.
            NoMembersError: If the event has no member.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            ranges = self._store.list_ranges(event.id)
            if not ranges:
                raise NoRangesError()
            if self._store.count_members(event.id) == 0:
                raise NoMembersError()

            unassigned = self._store.list_unassigned_tickets(event.id, [r.id for r in ranges], lock=True)
            if not unassigned:
                logger.info("assignment_nothing_to_do", event_id=str(event.id))
                return AssignmentResult(assigned=0, nothing_to_do=True)

            pools: dict[RangeId, list[Ticket]] = defaultdict(list)
            for ticket in unassigned:
                pools[ticket.range_id].append(ticket)

            assigned = 0
            for deficit in self._allocations.outstanding_deficits(event):
                pool = pools[deficit.range_id]
                if not pool:
                    continue
                taken = pool[: deficit.deficit]
                del pool[: deficit.deficit]
                self._bind(event.id, taken, deficit.member_id, deficit.allocation_id, performed_by)
                assigned += len(taken)

        logger.info(
            "assignment_completed",
            event_id=str(event.id),
            assigned=assigned,
            performed_by=performed_by,
        )
        return AssignmentResult(assigned=assigned)

    def assign_tickets(
        self,
        event_id: str,
        ticket_ids: list[str],
        member_id: str,
        performed_by: str | None = None,
        allocation_id: str | None = None,
    ) -> list[Ticket]:
        """Bind an explicit batch of tickets to a member. All or nothing.

        Raises:
            ReadOnlyEventError: If the event is locked.
            TicketNotFoundError: Listing ids that are not tickets of the event.
            AlreadyAssignedError: Listing numbers that already have a member.
            InvalidMemberError: If the member is not part of the event.
            InvalidAllocationError: If the allocation is not the member's.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            requested = list(dict.fromkeys(parse_id(TicketId, value, "ticket") for value in ticket_ids))

            tickets = [t for t in self._store.get_tickets(requested, lock=True) if t.event_id == event.id]
            found = {t.id for t in tickets}
            missing = [str(ticket_id) for ticket_id in requested if ticket_id not in found]
            if missing:
                raise TicketNotFoundError(missing)

            already = [t.number for t in tickets if t.member_id is not None]
            if already:
                raise AlreadyAssignedError(already)

            member = self._store.get_member(parse_id(MemberId, member_id, "member"))
            if member is None or member.event_id != event.id:
                raise InvalidMemberError(str(member_id))

            allocation = None
            if allocation_id is not None:
                allocation = self._store.get_allocation(parse_id(AllocationId, allocation_id, "allocation"))
                if allocation is None or allocation.member_id != member.id:
                    raise InvalidAllocationError(str(allocation_id))

            if tickets:
                self._bind(event.id, tickets, member.id, allocation.id if allocation else None, performed_by)
            result = self._store.get_tickets(found)

        logger.info(
            "tickets_assigned",
            event_id=str(event.id),
            member_id=str(member.id),
            ticket_numbers=[t.number for t in result],
            performed_by=performed_by,
        )
        return result

    def unassign_ticket(self, event_id: str, ticket_id: str, performed_by: str | None = None) -> UnassignResult:
        """Detach a ticket from its member.

        The returned flag is reset because an unassigned ticket is not
        attributable to anyone. ``was_returned`` reports the flag from before
        detachment.

        Raises:
            ReadOnlyEventError: If the event is locked.
            TicketNotFoundError: If the ticket is not part of the event.
            NotAssignedError: If the ticket has no member.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            ticket = self._store.get_ticket(parse_id(TicketId, ticket_id, "ticket"), lock=True)
            if ticket is None or ticket.event_id != event.id:
                raise TicketNotFoundError([str(ticket_id)])
            if ticket.member_id is None:
                raise NotAssignedError(ticket.number)

            self._store.release_ticket(ticket.id)
            self._store.append_flows(
                event.id,
                [FlowRecord(ticket.id, FlowType.DETACHED, from_member_id=ticket.member_id)],
                performed_by,
            )
            released = self._store.get_ticket(ticket.id)

        logger.info(
            "ticket_unassigned",
            event_id=str(event.id),
            ticket_number=ticket.number,
            member_id=str(ticket.member_id),
            was_returned=ticket.returned,
            performed_by=performed_by,
        )
        return UnassignResult(ticket=released, was_returned=ticket.returned)
