"""Django ORM implementation of the TicketingStore."""

from datetime import datetime
from decimal import Decimal
from itertools import islice
from typing import Iterable, Iterator

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, QuerySet
from django.utils import timezone

from ticketing import models
from ticketing.domain import (
    Allocation,
    AllocationDeficit,
    AllocationId,
    Event,
    EventId,
    FlowRecord,
    FlowType,
    Member,
    MemberId,
    Money,
    NumberInterval,
    Payment,
    PaymentType,
    Quantity,
    RangeId,
    Ticket,
    TicketFilter,
    TicketFlow,
    TicketId,
    TicketOrdering,
    TicketOrigin,
    TicketRange,
    TicketStatusFilter,
)
from ticketing.stores.interfaces import TicketingStore


def _batched(values: Iterable, size: int) -> Iterator[list]:
    iterator = iter(values)
    while batch := list(islice(iterator, size)):
        yield batch


def _money(value: Decimal | None) -> Money | None:
    return Money(Decimal(value)) if value is not None else None


def _optional_id(cls, value):
    return cls(value=value) if value is not None else None


def _to_event(obj: models.Event) -> Event:
    return Event(
        id=EventId(obj.id),
        name=obj.name,
        read_only=obj.read_only,
        auto_generate_tickets_total_per_member=obj.auto_generate_tickets_total_per_member,
        created_at=obj.created_at,
    )


def _to_member(obj: models.Member) -> Member:
    return Member(
        id=MemberId(obj.id),
        event_id=EventId(obj.event_id),
        name=obj.name,
        order=obj.order,
        is_all_confirmed_but_not_yet_fully_paid=obj.is_all_confirmed_but_not_yet_fully_paid,
        created_at=obj.created_at,
    )


def _to_payment(obj: models.Payment) -> Payment:
    return Payment(
        id=str(obj.id),
        member_id=MemberId(obj.member_id),
        amount=Decimal(obj.amount),
        type=PaymentType(obj.type),
        payed_at=obj.payed_at,
    )


def _to_range(obj: models.TicketRange) -> TicketRange:
    return TicketRange(
        id=RangeId(obj.id),
        event_id=EventId(obj.event_id),
        start=obj.start,
        end=obj.end,
        type=obj.type,
        cost=_money(obj.cost),
        generated_at=obj.generated_at,
        deleted_at=obj.deleted_at,
        created_at=obj.created_at,
    )


def _to_ticket(obj: models.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(obj.id),
        event_id=EventId(obj.event_id),
        number=obj.number,
        range_id=RangeId(obj.ticket_range_id),
        member_id=_optional_id(MemberId, obj.member_id),
        allocation_id=_optional_id(AllocationId, obj.allocation_id),
        delivered_at=obj.delivered_at,
        returned=obj.returned,
        origin=TicketOrigin(obj.created),
        name=obj.name,
        phone=obj.phone,
        description=obj.description,
    )


def _to_allocation(obj: models.MemberTicketAllocation) -> Allocation:
    return Allocation(
        id=AllocationId(obj.id),
        member_id=MemberId(obj.member_id),
        range_id=RangeId(obj.event_ticket_range_id),
        quantity=Quantity(obj.quantity),
        created_at=obj.created_at,
    )


def _to_flow(obj: models.TicketFlow) -> TicketFlow:
    return TicketFlow(
        id=str(obj.id),
        ticket_id=TicketId(obj.ticket_id),
        event_id=EventId(obj.event_id),
        type=FlowType(obj.type),
        from_member_id=_optional_id(MemberId, obj.from_member_id),
        to_member_id=_optional_id(MemberId, obj.to_member_id),
        performed_by=obj.performed_by,
        created_at=obj.created_at,
    )


_STATUS_FILTERS = {
    TicketStatusFilter.ALL: Q(),
    TicketStatusFilter.UNASSIGNED: Q(member__isnull=True),
    TicketStatusFilter.ASSIGNED: Q(member__isnull=False),
    TicketStatusFilter.DELIVERED: Q(delivered_at__isnull=False),
    TicketStatusFilter.RETURNED: Q(returned=True),
    TicketStatusFilter.NOT_RETURNED: Q(returned=False),
    TicketStatusFilter.PENDING: Q(returned=False, delivered_at__isnull=True),
    TicketStatusFilter.CRITICA: Q(returned=True, delivered_at__isnull=False),
}


class DjangoTicketingStore(TicketingStore):
    """Relational store backed by the Django ORM."""

    @property
    def _batch_size(self) -> int:
        return settings.TICKETING_BULK_BATCH_SIZE

    def atomic(self):
        return transaction.atomic()

    def _tickets(self, event_id: EventId, ticket_filter: TicketFilter) -> QuerySet:
        qs = models.Ticket.objects.filter(event_id=event_id.value).filter(_STATUS_FILTERS[ticket_filter.status])
        if ticket_filter.linked_only:
            qs = qs.filter(member__isnull=False)
        if ticket_filter.range_id is not None:
            qs = qs.filter(ticket_range_id=ticket_filter.range_id.value)
        if ticket_filter.member_id is not None:
            qs = qs.filter(member_id=ticket_filter.member_id.value)
        if ticket_filter.number is not None:
            qs = qs.filter(number=ticket_filter.number)
        if ticket_filter.origin is not None:
            qs = qs.filter(created=ticket_filter.origin.value)
        return qs

    # Events, members, payments

    def get_event(self, event_id: EventId) -> Event | None:
        obj = models.Event.objects.filter(id=event_id.value).first()
        return _to_event(obj) if obj else None

    def get_member(self, member_id: MemberId) -> Member | None:
        obj = models.Member.objects.filter(id=member_id.value).first()
        return _to_member(obj) if obj else None

    def list_members(self, event_id: EventId) -> list[Member]:
        qs = models.Member.objects.filter(event_id=event_id.value).order_by("created_at")
        return [_to_member(obj) for obj in qs]

    def count_members(self, event_id: EventId) -> int:
        return models.Member.objects.filter(event_id=event_id.value).count()

    def list_payments(
        self,
        event_id: EventId,
        member_id: MemberId | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Payment]:
        qs = models.Payment.objects.filter(member__event_id=event_id.value, deleted_at__isnull=True)
        if member_id is not None:
            qs = qs.filter(member_id=member_id.value)
        if since is not None:
            qs = qs.filter(payed_at__gte=since)
        if until is not None:
            qs = qs.filter(payed_at__lte=until)
        return [_to_payment(obj) for obj in qs.order_by("payed_at")]

    # Ranges

    def get_range(self, range_id: RangeId, lock: bool = False) -> TicketRange | None:
        qs = models.TicketRange.objects.filter(id=range_id.value)
        if lock:
            qs = qs.select_for_update()
        obj = qs.first()
        return _to_range(obj) if obj else None

    def list_ranges(self, event_id: EventId, include_deleted: bool = False) -> list[TicketRange]:
        qs = models.TicketRange.objects.filter(event_id=event_id.value)
        if not include_deleted:
            qs = qs.filter(deleted_at__isnull=True)
        return [_to_range(obj) for obj in qs.order_by("start")]

    def find_overlapping_ranges(
        self, event_id: EventId, interval: NumberInterval, exclude: RangeId | None = None
    ) -> list[TicketRange]:
        qs = models.TicketRange.objects.filter(
            event_id=event_id.value,
            deleted_at__isnull=True,
            start__lte=interval.end,
            end__gte=interval.start,
        )
        if exclude is not None:
            qs = qs.exclude(id=exclude.value)
        return [_to_range(obj) for obj in qs.order_by("start")]

    def create_range(self, event_id: EventId, interval: NumberInterval, type: str, cost: Money | None) -> TicketRange:
        obj = models.TicketRange.objects.create(
            event_id=event_id.value,
            start=interval.start,
            end=interval.end,
            type=type,
            cost=cost.amount if cost is not None else None,
        )
        return _to_range(obj)

    def update_range_bounds(self, range_id: RangeId, interval: NumberInterval) -> None:
        models.TicketRange.objects.filter(id=range_id.value).update(start=interval.start, end=interval.end)

    def mark_range_generated(self, range_id: RangeId, at: datetime) -> None:
        models.TicketRange.objects.filter(id=range_id.value).update(generated_at=at)

    # Tickets

    def existing_numbers(self, event_id: EventId, intervals: Iterable[NumberInterval]) -> set[int]:
        bounds = Q()
        for interval in intervals:
            bounds |= Q(number__gte=interval.start, number__lte=interval.end)
        if not bounds:
            return set()
        qs = models.Ticket.objects.filter(bounds, event_id=event_id.value)
        return set(qs.values_list("number", flat=True))

    def create_tickets(
        self, event_id: EventId, range_id: RangeId, numbers: Iterable[int], origin: TicketOrigin
    ) -> int:
        numbers = sorted(set(numbers))
        if not numbers:
            return 0
        taken = self.existing_numbers(event_id, [NumberInterval(numbers[0], numbers[-1])])
        objs = [
            models.Ticket(
                event_id=event_id.value,
                ticket_range_id=range_id.value,
                number=number,
                created=origin.value,
            )
            for number in numbers
            if number not in taken
        ]
        models.Ticket.objects.bulk_create(objs, batch_size=self._batch_size, ignore_conflicts=True)
        return len(objs)

    def create_ticket(
        self,
        event_id: EventId,
        range_id: RangeId,
        number: int,
        origin: TicketOrigin,
        member_id: MemberId | None = None,
        name: str | None = None,
        phone: str | None = None,
        description: str | None = None,
    ) -> Ticket:
        obj = models.Ticket.objects.create(
            event_id=event_id.value,
            ticket_range_id=range_id.value,
            number=number,
            created=origin.value,
            member_id=member_id.value if member_id is not None else None,
            name=name,
            phone=phone,
            description=description,
        )
        return _to_ticket(obj)

    def get_ticket(self, ticket_id: TicketId, lock: bool = False) -> Ticket | None:
        qs = models.Ticket.objects.filter(id=ticket_id.value)
        if lock:
            qs = qs.select_for_update()
        obj = qs.first()
        return _to_ticket(obj) if obj else None

    def get_ticket_by_number(self, event_id: EventId, number: int) -> Ticket | None:
        obj = models.Ticket.objects.filter(event_id=event_id.value, number=number).first()
        return _to_ticket(obj) if obj else None

    def get_tickets(self, ticket_ids: Iterable[TicketId], lock: bool = False) -> list[Ticket]:
        tickets = []
        for batch in _batched((ticket_id.value for ticket_id in ticket_ids), self._batch_size):
            qs = models.Ticket.objects.filter(id__in=batch)
            if lock:
                qs = qs.select_for_update()
            tickets.extend(_to_ticket(obj) for obj in qs)
        return sorted(tickets, key=lambda ticket: ticket.number)

    def list_tickets(
        self,
        event_id: EventId,
        ticket_filter: TicketFilter,
        ordering: TicketOrdering = TicketOrdering.NUMBER_ASC,
    ) -> list[Ticket]:
        qs = self._tickets(event_id, ticket_filter).order_by(ordering.value, "number")
        return [_to_ticket(obj) for obj in qs]

    def list_unassigned_tickets(
        self, event_id: EventId, range_ids: Iterable[RangeId], lock: bool = False
    ) -> list[Ticket]:
        qs = models.Ticket.objects.filter(
            event_id=event_id.value,
            ticket_range_id__in=[range_id.value for range_id in range_ids],
            member__isnull=True,
        ).order_by("number")
        if lock:
            qs = qs.select_for_update()
        return [_to_ticket(obj) for obj in qs]

    def count_tickets(self, event_id: EventId, ticket_filter: TicketFilter) -> int:
        return self._tickets(event_id, ticket_filter).count()

    def count_tickets_by_range(self, event_id: EventId, ticket_filter: TicketFilter) -> dict[RangeId, int]:
        rows = (
            self._tickets(event_id, ticket_filter)
            .order_by()
            .values("ticket_range_id")
            .annotate(total=Count("id"))
        )
        return {RangeId(row["ticket_range_id"]): row["total"] for row in rows}

    def count_member_tickets_by_range(
        self, event_id: EventId, exclude_returned: bool = False
    ) -> dict[tuple[MemberId, RangeId], int]:
        qs = models.Ticket.objects.filter(event_id=event_id.value, member__isnull=False)
        if exclude_returned:
            qs = qs.filter(returned=False)
        rows = qs.order_by().values("member_id", "ticket_range_id").annotate(total=Count("id"))
        return {(MemberId(row["member_id"]), RangeId(row["ticket_range_id"])): row["total"] for row in rows}

    def bind_tickets(
        self, ticket_ids: list[TicketId], member_id: MemberId, allocation_id: AllocationId | None
    ) -> int:
        updated = 0
        now = timezone.now()
        for batch in _batched((ticket_id.value for ticket_id in ticket_ids), self._batch_size):
            updated += models.Ticket.objects.filter(id__in=batch, member__isnull=True).update(
                member_id=member_id.value,
                allocation_id=allocation_id.value if allocation_id is not None else None,
                updated_at=now,
            )
        return updated

    def release_ticket(self, ticket_id: TicketId) -> None:
        models.Ticket.objects.filter(id=ticket_id.value).update(
            member_id=None,
            allocation_id=None,
            returned=False,
            updated_at=timezone.now(),
        )

    def mark_delivered(self, ticket_id: TicketId, at: datetime) -> bool:
        updated = models.Ticket.objects.filter(id=ticket_id.value, delivered_at__isnull=True).update(
            delivered_at=at,
            updated_at=at,
        )
        return updated == 1

    def set_returned(self, ticket_id: TicketId, returned: bool) -> None:
        models.Ticket.objects.filter(id=ticket_id.value).update(returned=returned, updated_at=timezone.now())

    def update_ticket_details(self, ticket_id: TicketId, details: dict[str, str | None]) -> None:
        models.Ticket.objects.filter(id=ticket_id.value).update(**details, updated_at=timezone.now())

    # Allocations

    def get_allocation(self, allocation_id: AllocationId) -> Allocation | None:
        obj = models.MemberTicketAllocation.objects.filter(id=allocation_id.value).first()
        return _to_allocation(obj) if obj else None

    def upsert_allocation(self, member_id: MemberId, range_id: RangeId, quantity: int) -> Allocation:
        obj, _ = models.MemberTicketAllocation.objects.update_or_create(
            member_id=member_id.value,
            event_ticket_range_id=range_id.value,
            defaults={"quantity": quantity},
        )
        return _to_allocation(obj)

    def count_linked(self, allocation_id: AllocationId) -> int:
        return models.Ticket.objects.filter(allocation_id=allocation_id.value).count()

    def list_allocation_deficits(
        self, event_id: EventId, member_id: MemberId | None = None
    ) -> list[AllocationDeficit]:
        qs = (
            models.MemberTicketAllocation.objects.filter(
                member__event_id=event_id.value,
                event_ticket_range__deleted_at__isnull=True,
            )
            .select_related("member", "event_ticket_range")
            .annotate(linked_count=Count("tickets"))
        )
        if member_id is not None:
            qs = qs.filter(member_id=member_id.value)
        return [
            AllocationDeficit(
                allocation_id=AllocationId(obj.id),
                member_id=MemberId(obj.member_id),
                range_id=RangeId(obj.event_ticket_range_id),
                quantity=obj.quantity,
                linked_count=obj.linked_count,
                member_order=obj.member.order,
                member_created_at=obj.member.created_at,
                range_start=obj.event_ticket_range.start,
            )
            for obj in qs
        ]

    # Flows

    def append_flows(self, event_id: EventId, records: Iterable[FlowRecord], performed_by: str | None) -> int:
        objs = [
            models.TicketFlow(
                ticket_id=record.ticket_id.value,
                event_id=event_id.value,
                type=record.type.value,
                from_member_id=record.from_member_id.value if record.from_member_id else None,
                to_member_id=record.to_member_id.value if record.to_member_id else None,
                performed_by=performed_by,
            )
            for record in records
        ]
        models.TicketFlow.objects.bulk_create(objs, batch_size=self._batch_size)
        return len(objs)

    def list_flows(self, ticket_id: TicketId) -> list[TicketFlow]:
        qs = models.TicketFlow.objects.filter(ticket_id=ticket_id.value).order_by("created_at", "id")
        return [_to_flow(obj) for obj in qs]
