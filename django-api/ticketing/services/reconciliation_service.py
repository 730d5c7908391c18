"""Reconciliation of ticket cost against payments.

Statuses, dashboards and exports are computed from current storage on every
call; nothing is cached between calls.
"""

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Iterable

import structlog
from django.conf import settings
from django.utils import timezone

from ticketing.domain import (
    EventDashboard,
    EventExport,
    EventId,
    Member,
    MemberExport,
    MemberId,
    MemberStatus,
    Money,
    Payment,
    PaymentType,
    RangeId,
    RangeTotal,
    Ticket,
    TicketFilter,
    TicketOrigin,
    TicketRange,
    TicketStatusFilter,
    TypeCount,
)
from ticketing.services.common import require_event, require_member
from ticketing.stores.interfaces import TicketingStore

logger = structlog.get_logger(__name__)


def _ticket_cost(ticket_range: TicketRange) -> Money:
    if ticket_range.cost is not None:
        return ticket_range.cost
    return Money(Decimal(settings.TICKETING_DEFAULT_TICKET_COST))


def _per_type(ranges: list[TicketRange], counts: dict[RangeId, int]) -> list[TypeCount]:
    """Fold per-range counts into per-type counts, in range order."""
    totals: dict[str, int] = {}
    for ticket_range in ranges:
        totals[ticket_range.type] = totals.get(ticket_range.type, 0) + counts.get(ticket_range.id, 0)
    return [TypeCount(type=type, ticket_count=count) for type, count in totals.items()]


def _sum_type_counts(statuses: list[MemberStatus]) -> list[TypeCount]:
    totals: dict[str, int] = {}
    for status in statuses:
        for type, count in status.tickets_per_type.items():
            totals[type] = totals.get(type, 0) + count
    return [TypeCount(type=type, ticket_count=count) for type, count in totals.items()]


def _total(payments: Iterable[Payment]) -> Decimal:
    # Payments are signed: refunds and corrections come in as negative amounts.
    return sum((payment.amount for payment in payments), Decimal("0"))


def _by_member(payments: list[Payment]) -> dict[MemberId, list[Payment]]:
    grouped: dict[MemberId, list[Payment]] = defaultdict(list)
    for payment in payments:
        grouped[payment.member_id].append(payment)
    return grouped


class ReconciliationService:
    """Service for member payoff status, event dashboards and settlement exports."""

    def __init__(self, store: TicketingStore) -> None:
        self._store = store

    def _ranges_by_id(self, event_id: EventId) -> dict[RangeId, TicketRange]:
        # Tickets keep their range after it is deleted, so costs look up every range.
        return {r.id: r for r in self._store.list_ranges(event_id, include_deleted=True)}

    def _member_status(
        self,
        member: Member,
        held: dict[RangeId, int],
        ranges_by_id: dict[RangeId, TicketRange],
        payments: list[Payment],
    ) -> MemberStatus:
        tickets_per_type: dict[str, int] = {}
        cost_per_type: dict[str, Money] = {}
        for range_id, count in held.items():
            ticket_range = ranges_by_id[range_id]
            tickets_per_type[ticket_range.type] = tickets_per_type.get(ticket_range.type, 0) + count
            cost = _ticket_cost(ticket_range) * count
            cost_per_type[ticket_range.type] = cost_per_type.get(ticket_range.type, Money.zero()) + cost

        cost_expected = Money.zero()
        for cost in cost_per_type.values():
            cost_expected = cost_expected + cost
        paid = _total(payments)

        return MemberStatus(
            member_id=member.id,
            total_tickets=sum(tickets_per_type.values()),
            tickets_per_type=tickets_per_type,
            cost_per_type=cost_per_type,
            cost_expected=cost_expected,
            paid=paid,
            is_paid_off=paid >= cost_expected.amount,
            is_all_confirmed_but_not_yet_fully_paid=member.is_all_confirmed_but_not_yet_fully_paid,
        )

    def _statuses(self, event_id: EventId, members: list[Member], payments: list[Payment]) -> list[MemberStatus]:
        ranges_by_id = self._ranges_by_id(event_id)
        held: dict[MemberId, dict[RangeId, int]] = defaultdict(dict)
        for (member_id, range_id), count in self._store.count_member_tickets_by_range(
            event_id, exclude_returned=True
        ).items():
            held[member_id][range_id] = count

        paid_by = _by_member(payments)
        return [
            self._member_status(member, held[member.id], ranges_by_id, paid_by[member.id])
            for member in members
        ]

    def member_status(self, event_id: str, member_id: str) -> MemberStatus:
        """Return cost, payments and payoff status of one member.

        Expected cost sums the range cost of every ticket the member holds
        that is not returned; ranges without a cost use
        ``TICKETING_DEFAULT_TICKET_COST``. Overpayment is not tracked.

        Raises:
            EventNotFoundError: If the event does not exist.
            MemberNotFoundError: If the member is not part of the event.
        """
        event = require_event(self._store, event_id)
        member = require_member(self._store, event, member_id)
        payments = self._store.list_payments(event.id, member_id=member.id)
        return self._statuses(event.id, [member], payments)[0]

    def event_dashboard(self, event_id: str) -> EventDashboard:
        """Aggregate ticket, payment and payoff figures for an event.

        Custody counts only consider tickets bound to a member, except
        ``total_tickets`` and ``tickets_per_type``. ``delivered_per_type``
        leaves critica tickets out; they have their own breakdown.
        """
        event = require_event(self._store, event_id)
        store = self._store

        def count(status: TicketStatusFilter, **kwargs) -> int:
            return store.count_tickets(event.id, TicketFilter(status=status, linked_only=True, **kwargs))

        def by_range(status: TicketStatusFilter, linked_only: bool = True) -> dict[RangeId, int]:
            return store.count_tickets_by_range(event.id, TicketFilter(status=status, linked_only=linked_only))

        ranges = store.list_ranges(event.id)
        delivered = by_range(TicketStatusFilter.DELIVERED)
        critica = by_range(TicketStatusFilter.CRITICA)
        delivered_ok = {range_id: total - critica.get(range_id, 0) for range_id, total in delivered.items()}

        now = timezone.now()
        since = now - timedelta(days=settings.TICKETING_PAYMENT_WINDOW_DAYS)

        payments = store.list_payments(event.id)
        statuses = self._statuses(event.id, store.list_members(event.id), payments)
        paid = [s for s in statuses if s.is_paid_off]
        unpaid = [s for s in statuses if not s.is_paid_off]
        confirmed_unpaid = [s for s in unpaid if s.is_all_confirmed_but_not_yet_fully_paid]
        predicted = paid + confirmed_unpaid

        dashboard = EventDashboard(
            total_tickets=store.count_tickets(event.id, TicketFilter()),
            total_tickets_linked_to_members=count(TicketStatusFilter.ALL),
            total_not_returned=count(TicketStatusFilter.NOT_RETURNED),
            total_delivered=count(TicketStatusFilter.DELIVERED),
            total_returned=count(TicketStatusFilter.RETURNED),
            total_critica=count(TicketStatusFilter.CRITICA),
            total_after_import=count(TicketStatusFilter.ALL, origin=TicketOrigin.AFTER_IMPORT),
            total_members=len(statuses),
            total_value_paid=_total(payments),
            total_value_paid_recent=_total(store.list_payments(event.id, since=since, until=now)),
            paid_tickets=sum(s.total_tickets for s in paid),
            unpaid_tickets=sum(s.total_tickets for s in unpaid),
            confirmed_unpaid_tickets=sum(s.total_tickets for s in confirmed_unpaid),
            predicted_tickets=sum(s.total_tickets for s in predicted),
            tickets_per_type=_per_type(ranges, by_range(TicketStatusFilter.ALL, linked_only=False)),
            linked_per_type=_per_type(ranges, by_range(TicketStatusFilter.ALL)),
            delivered_per_type=_per_type(ranges, delivered_ok),
            critica_per_type=_per_type(ranges, critica),
            paid_per_type=_sum_type_counts(paid),
            predicted_per_type=_sum_type_counts(predicted),
        )
        logger.debug("event_dashboard_computed", event_id=str(event.id), total_tickets=dashboard.total_tickets)
        return dashboard

    def _member_export(
        self,
        member: Member,
        tickets: list[Ticket],
        ranges_by_id: dict[RangeId, TicketRange],
        payments: list[Payment],
    ) -> MemberExport:
        quantities: dict[RangeId, int] = {}
        values: dict[RangeId, Money] = {}
        total_amount = Money.zero()
        for ticket in tickets:
            cost = _ticket_cost(ranges_by_id[ticket.range_id])
            quantities[ticket.range_id] = quantities.get(ticket.range_id, 0) + 1
            values[ticket.range_id] = values.get(ticket.range_id, Money.zero()) + cost
            total_amount = total_amount + cost

        total_paid = _total(payments)
        return MemberExport(
            member_id=member.id,
            name=member.name,
            tickets=tickets,
            payments=payments,
            tickets_by_range=[
                RangeTotal(range_id=range_id, quantity=quantity, total_value=values[range_id])
                for range_id, quantity in quantities.items()
            ],
            total_amount=total_amount,
            total_paid=total_paid,
            total_paid_pix=_total(p for p in payments if p.type == PaymentType.PIX),
            total_paid_cash=_total(p for p in payments if p.type == PaymentType.CASH),
            balance=total_paid - total_amount.amount,
        )

    def export_members(self, event_id: str) -> EventExport:
        """Build the settlement report of an event.

        Only members still holding at least one undelivered, non-returned
        ticket are listed. Each line covers all of the member's non-returned
        tickets, and lines run from the largest balance (paid ahead) down to
        the largest debt. The report also lists every pending ticket and
        every critica ticket of the event, by number.

        Raises:
            EventNotFoundError: If the event does not exist.
        """
        event = require_event(self._store, event_id)
        store = self._store

        held: dict[MemberId, list[Ticket]] = defaultdict(list)
        for ticket in store.list_tickets(event.id, TicketFilter(status=TicketStatusFilter.NOT_RETURNED, linked_only=True)):
            held[ticket.member_id].append(ticket)

        pending = store.list_tickets(event.id, TicketFilter(status=TicketStatusFilter.PENDING))
        owing = {ticket.member_id for ticket in pending if ticket.member_id is not None}

        ranges_by_id = self._ranges_by_id(event.id)
        paid_by = _by_member(store.list_payments(event.id))
        lines = [
            self._member_export(member, held[member.id], ranges_by_id, paid_by[member.id])
            for member in store.list_members(event.id)
            if member.id in owing
        ]
        lines.sort(key=lambda line: (-line.balance, line.name))

        export = EventExport(
            members=lines,
            pending_tickets=pending,
            critica_tickets=store.list_tickets(event.id, TicketFilter(status=TicketStatusFilter.CRITICA)),
        )
        logger.info(
            "event_export_built",
            event_id=str(event.id),
            members=len(export.members),
            pending_tickets=len(export.pending_tickets),
        )
        return export
