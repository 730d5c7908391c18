"""Ticket lifecycle: check-in, returns, and the audit trail."""

from typing import NoReturn

import structlog
from django.utils import timezone

from ticketing.domain import (
    CheckInResult,
    FlowRecord,
    FlowType,
    Ticket,
    TicketFlow,
    TicketId,
)
from ticketing.domain.errors import TicketDeletionForbiddenError, TicketNotFoundError
from ticketing.services.common import parse_id, require_event, require_writable_event
from ticketing.stores.interfaces import TicketingStore

logger = structlog.get_logger(__name__)


class LifecycleService:
    """Service for the delivery and return states of a ticket.

    Delivery is one-way: once ``delivered_at`` is set it stays. The returned
    flag toggles freely. A ticket both delivered and returned is a "critica"
    anomaly, counted in reports but not rejected.
    """

    def __init__(self, store: TicketingStore) -> None:
        self._store = store

    def _event_ticket(self, event, ticket_id: str, lock: bool = False) -> Ticket:
        ticket = self._store.get_ticket(parse_id(TicketId, ticket_id, "ticket"), lock=lock)
        if ticket is None or ticket.event_id != event.id:
            raise TicketNotFoundError([str(ticket_id)])
        return ticket

    def check_in(self, event_id: str, ticket_number: int, performed_by: str | None = None) -> CheckInResult:
        """Mark a scanned ticket as delivered.

        Scanning an already delivered ticket is not an error: the current
        snapshot comes back with ``already_checked_in`` set, and nothing is
        written. The write is a conditional update on ``delivered_at`` being
        null, so of two simultaneous scans only one records the delivery.

        Raises:
            ReadOnlyEventError: If the event is locked.
            TicketNotFoundError: If no ticket has that number in the event.
        """
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            ticket = self._store.get_ticket_by_number(event.id, ticket_number)
            if ticket is None:
                raise TicketNotFoundError([str(ticket_number)])

            if ticket.delivered_at is None and self._store.mark_delivered(ticket.id, timezone.now()):
                self._store.append_flows(
                    event.id,
                    [FlowRecord(ticket.id, FlowType.CHECKED_IN)],
                    performed_by,
                )
                already_checked_in = False
            else:
                already_checked_in = True
            current = self._store.get_ticket(ticket.id)

        logger.info(
            "ticket_checked_in",
            event_id=str(event.id),
            ticket_number=ticket_number,
            already_checked_in=already_checked_in,
            performed_by=performed_by,
        )
        return CheckInResult(ticket=current, already_checked_in=already_checked_in)

    def toggle_returned(self, event_id: str, ticket_id: str, performed_by: str | None = None) -> Ticket:
        """Flip the returned flag and record a RETURNED_TOGGLED flow."""
        with self._store.atomic():
            event = require_writable_event(self._store, event_id)
            ticket = self._event_ticket(event, ticket_id, lock=True)
            self._store.set_returned(ticket.id, not ticket.returned)
            self._store.append_flows(
                event.id,
                [
                    FlowRecord(
                        ticket.id,
                        FlowType.RETURNED_TOGGLED,
                        from_member_id=ticket.member_id,
                        to_member_id=ticket.member_id,
                    )
                ],
                performed_by,
            )
            updated = self._store.get_ticket(ticket.id)

        logger.info(
            "ticket_returned_toggled",
            event_id=str(event.id),
            ticket_number=ticket.number,
            returned=updated.returned,
            critica=updated.is_critica,
            performed_by=performed_by,
        )
        return updated

    def delete_ticket(self, event_id: str, ticket_id: str) -> NoReturn:
        """Refuse deletion: issued numbers are permanent."""
        logger.warning("ticket_deletion_refused", event_id=str(event_id), ticket_id=str(ticket_id))
        raise TicketDeletionForbiddenError()

    def ticket_history(self, event_id: str, ticket_id: str) -> list[TicketFlow]:
        """Return the flow rows of a ticket, oldest first."""
        event = require_event(self._store, event_id)
        ticket = self._event_ticket(event, ticket_id)
        return self._store.list_flows(ticket.id)
