"""Ticket inventory: materializes numbered tickets and answers ticket queries."""

import structlog
from django.utils import timezone

from ticketing.domain import (
    FlowRecord,
    FlowType,
    MemberId,
    Ticket,
    TicketFilter,
    TicketId,
    TicketOrdering,
    TicketOrigin,
    TicketRange,
)
from ticketing.domain.errors import (
    DuplicateTicketNumberError,
    InvalidMemberError,
    InvalidTicketFieldError,
    NumberOutOfRangeError,
    TicketNotFoundError,
)
from ticketing.services.common import parse_id, require_event, require_writable_event
from ticketing.stores.interfaces import TicketingStore

logger = structlog.get_logger(__name__)

DETAIL_FIELDS = ("name", "phone", "description")


class InventoryService:
    """Service for the per-number ticket rows of an event."""

    def __init__(self, store: TicketingStore) -> None:
        self._store = store

    def generate_tickets(self, ticket_range: TicketRange, origin: TicketOrigin = TicketOrigin.PRE_GENERATED) -> int:
        """Create one unassigned ticket per number of ``ticket_range``.

        Numbers that already exist for the event are skipped, so the call is
        safe to repeat.

        Returns:
            Number of tickets created.
        """
        with self._store.atomic():
            created = self._store.create_tickets(
                ticket_range.event_id, ticket_range.id, ticket_range.interval, origin
            )
            self._store.mark_range_generated(ticket_range.id, timezone.now())
        logger.info(
            "tickets_generated",
            event_id=str(ticket_range.event_id),
            range_id=str(ticket_range.id),
            start=ticket_range.start,
            end=ticket_range.end,
            created=created,
        )
        return created

    def get_ticket(self, event_id: str, ticket_id: str) -> Ticket:
        """Return a ticket of the event.

        Raises:
            InvalidIdError: If an ID is malformed.
            EventNotFoundError: If the event does not exist.
            TicketNotFoundError: If the ticket is not part of the event.
        """
        event = require_event(self._store, event_id)
        ticket = self._store.get_ticket(parse_id(TicketId, ticket_id, "ticket"))
        if ticket is None or ticket.event_id != event.id:
            raise TicketNotFoundError([str(ticket_id)])
        return ticket

    def list_tickets(
        self,
        event_id: str,
        ticket_filter: TicketFilter | None = None,
        ordering: TicketOrdering = TicketOrdering.NUMBER_ASC,
    ) -> list[Ticket]:
        """Return the tickets of an event matching ``ticket_filter``."""
        event = require_event(self._store, event_id)
        return self._store.list_tickets(event.id, ticket_filter or TicketFilter(), ordering)

    def create_ticket(
        self,
        event_id: str,
        number: int,
        member_id: str | None = None,
        name: str | None = None,
        phone: str | None = None,
        description: str | None = None,
        performed_by: str | None = None,
    ) -> Ticket:
        """Issue a single ticket with an explicit number.

        The ticket is attached to the active range containing ``number`` and
        tagged ``AFTER_IMPORT``. When a member is given an ASSIGNED flow is
        written.

        Raises:
            ReadOnlyEventError: If the event is locked.
            DuplicateTicketNumberError: If the number already exists.
            NumberOutOfRangeError: If no active range contains the number.
            InvalidMemberError: If the member is not part of the event.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            if self._store.get_ticket_by_number(event.id, number) is not None:
                raise DuplicateTicketNumberError(number)

            ticket_range = next(
                (r for r in self._store.list_ranges(event.id) if number in r.interval),
                None,
            )
            if ticket_range is None:
                raise NumberOutOfRangeError(number)

            member = None
            if member_id is not None:
                member = self._store.get_member(parse_id(MemberId, member_id, "member"))
                if member is None or member.event_id != event.id:
                    raise InvalidMemberError(str(member_id))

            ticket = self._store.create_ticket(
                event.id,
                ticket_range.id,
                number,
                TicketOrigin.AFTER_IMPORT,
                member_id=member.id if member else None,
                name=name,
                phone=phone,
                description=description,
            )
            if member is not None:
                self._store.append_flows(
                    event.id,
                    [FlowRecord(ticket.id, FlowType.ASSIGNED, to_member_id=member.id)],
                    performed_by,
                )

        logger.info(
            "ticket_created",
            event_id=str(event.id),
            ticket_number=number,
            member_id=str(member.id) if member else None,
            performed_by=performed_by,
        )
        return ticket

    def update_ticket_details(self, event_id: str, ticket_id: str, **details: str | None) -> Ticket:
        """Update ``name``, ``phone`` or ``description`` of a ticket.

        Custody fields are never touched here.

        Raises:
            InvalidTicketFieldError: If a field other than the contact details
                is passed.
        """
        unknown = set(details) - set(DETAIL_FIELDS)
        if unknown:
            raise InvalidTicketFieldError(sorted(unknown))

        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            ticket = self._store.get_ticket(parse_id(TicketId, ticket_id, "ticket"), lock=True)
            if ticket is None or ticket.event_id != event.id:
                raise TicketNotFoundError([str(ticket_id)])
            if details:
                self._store.update_ticket_details(ticket.id, details)
            updated = self._store.get_ticket(ticket.id)

        logger.info("ticket_details_updated", event_id=str(event.id), ticket_number=ticket.number)
        return updated
