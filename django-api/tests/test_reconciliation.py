"""Tests for ReconciliationService: member payoff status, the event dashboard and
the settlement export.

Run with: pytest tests/test_reconciliation.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from freezegun import freeze_time

from ticketing import models
from ticketing.domain import Money, TypeCount
from ticketing.domain.errors import EventNotFoundError, MemberNotFoundError

pytestmark = pytest.mark.django_db

OLD_PAYMENT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def give(event, member, *numbers, **fields):
    models.Ticket.objects.filter(event=event, number__in=numbers).update(member=member, **fields)


def money(value) -> Money:
    return Money(Decimal(value))


class TestMemberStatus:
    """Tests for ReconciliationService.member_status."""

    @pytest.fixture
    def priced(self, range_service, event, member):
        range_service.create_range(event.id, 1, 10, "Rifa", money("50"))
        give(event, member, 1, 2)
        return member

    def test_exact_payment_is_paid_off(self, reconciliation_service, event, priced, make_payment):
        make_payment(priced, "60")
        make_payment(priced, "40")

        status = reconciliation_service.member_status(event.id, priced.id)

        assert status.cost_expected == money("100")
        assert status.paid == Decimal("100")
        assert status.is_paid_off

    def test_one_short_is_not_paid_off(self, reconciliation_service, event, priced, make_payment):
        make_payment(priced, "99")

        status = reconciliation_service.member_status(event.id, priced.id)

        assert not status.is_paid_off

    def test_deleted_payment_is_ignored(self, reconciliation_service, event, priced, make_payment):
        make_payment(priced, "99")
        make_payment(priced, "1", deleted_at=OLD_PAYMENT)

        assert not reconciliation_service.member_status(event.id, priced.id).is_paid_off

    def test_returned_tickets_cost_nothing(self, reconciliation_service, event, priced, make_payment):
        make_payment(priced, "50")
        models.Ticket.objects.filter(event=event, number=2).update(returned=True)

        status = reconciliation_service.member_status(event.id, priced.id)

        assert status.total_tickets == 1
        assert status.cost_expected == money("50")
        assert status.is_paid_off

    def test_range_without_cost_uses_default(self, range_service, reconciliation_service, event, member, settings):
        settings.TICKETING_DEFAULT_TICKET_COST = Decimal("25")
        range_service.create_range(event.id, 1, 10, "Rifa")
        give(event, member, 1, 2, 3)

        status = reconciliation_service.member_status(event.id, member.id)

        assert status.cost_expected == money("75")
        assert status.cost_per_type == {"Rifa": money("75")}

    def test_member_without_tickets_is_paid_off(self, reconciliation_service, event, member):
        status = reconciliation_service.member_status(event.id, member.id)

        assert status.total_tickets == 0
        assert status.cost_expected == Money.zero()
        assert status.is_paid_off

    def test_refund_is_subtracted(self, range_service, reconciliation_service, event, member, make_payment):
        """A negative payment (refund or correction) lowers the paid total."""
        range_service.create_range(event.id, 1, 10, "Rifa", money("10"))
        give(event, member, 1)
        make_payment(member, "20")
        make_payment(member, "-5")

        status = reconciliation_service.member_status(event.id, member.id)

        assert status.paid == Decimal("15")
        assert status.is_paid_off
        assert reconciliation_service.event_dashboard(event.id).total_value_paid == Decimal("15")

    def test_refund_below_cost_is_not_paid_off(self, reconciliation_service, event, priced, make_payment):
        make_payment(priced, "100")
        make_payment(priced, "-30", type=models.Payment.PaymentType.CASH)

        status = reconciliation_service.member_status(event.id, priced.id)

        assert status.paid == Decimal("70")
        assert not status.is_paid_off

    def test_other_members_payments_do_not_count(
        self, reconciliation_service, event, priced, make_member, make_payment
    ):
        other = make_member(event, name="Bruno")
        make_payment(other, "500")
        make_payment(priced, "50")

        status = reconciliation_service.member_status(event.id, priced.id)

        assert status.paid == Decimal("50")
        assert not status.is_paid_off

    def test_member_of_other_event(self, reconciliation_service, event, make_member):
        stranger = make_member(models.Event.objects.create(name="Other"))
        with pytest.raises(MemberNotFoundError):
            reconciliation_service.member_status(event.id, stranger.id)


class TestEventDashboard:
    """Tests for ReconciliationService.event_dashboard."""

    @pytest.fixture
    def stocked(self, range_service, event, make_member, make_payment):
        range_service.create_range(event.id, 1, 10, "Rifa", money("10"))
        range_service.create_range(event.id, 101, 105, "VIP")

        paid = make_member(event, name="Paid", order=1)
        confirmed = make_member(event, name="Confirmed", order=2, confirmed=True)
        owing = make_member(event, name="Owing", order=3)

        give(event, paid, 1, 2)
        give(event, confirmed, 3, 4, 5, 101)
        give(event, owing, 6, delivered_at=OLD_PAYMENT, returned=True)
        give(event, owing, 102, delivered_at=OLD_PAYMENT)

        make_payment(paid, "20")
        make_payment(confirmed, "10", payed_at=OLD_PAYMENT)
        make_payment(owing, "1000", deleted_at=OLD_PAYMENT)
        return {"paid": paid, "confirmed": confirmed, "owing": owing}

    @pytest.fixture
    def dashboard(self, reconciliation_service, event, stocked):
        with freeze_time("2024-03-05 12:00"):
            return reconciliation_service.event_dashboard(event.id)

    def test_custody_counts(self, dashboard):
        assert dashboard.total_tickets == 15
        assert dashboard.total_tickets_linked_to_members == 8
        assert dashboard.total_not_returned == 7
        assert dashboard.total_delivered == 2
        assert dashboard.total_returned == 1
        assert dashboard.total_critica == 1
        assert dashboard.total_after_import == 0
        assert dashboard.total_members == 3

    def test_payment_totals(self, dashboard):
        """Deleted payments are excluded and the recent total covers the last seven days."""
        assert dashboard.total_value_paid == Decimal("30")
        assert dashboard.total_value_paid_recent == Decimal("20")

    def test_payoff_ticket_counts(self, dashboard):
        assert dashboard.paid_tickets == 2
        assert dashboard.unpaid_tickets == 5
        assert dashboard.confirmed_unpaid_tickets == 4
        assert dashboard.predicted_tickets == 6

    def test_per_type_breakdowns(self, dashboard):
        assert dashboard.tickets_per_type == [TypeCount("Rifa", 10), TypeCount("VIP", 5)]
        assert dashboard.linked_per_type == [TypeCount("Rifa", 6), TypeCount("VIP", 2)]
        assert dashboard.delivered_per_type == [TypeCount("Rifa", 0), TypeCount("VIP", 1)]
        assert dashboard.critica_per_type == [TypeCount("Rifa", 1), TypeCount("VIP", 0)]
        assert dashboard.paid_per_type == [TypeCount("Rifa", 2)]
        assert {c.type: c.ticket_count for c in dashboard.predicted_per_type} == {"Rifa": 5, "VIP": 1}

    def test_expansion_tickets_are_after_import(self, range_service, reconciliation_service, event, stocked):
        ticket_range = range_service.list_ranges(event.id)[1]
        range_service.expand_range(event.id, ticket_range.id, new_end=107)
        give(event, stocked["owing"], 106, 107)

        assert reconciliation_service.event_dashboard(event.id).total_after_import == 2

    def test_unknown_event(self, reconciliation_service):
        with pytest.raises(EventNotFoundError):
            reconciliation_service.event_dashboard(uuid4())


class TestExportMembers:
    """Tests for ReconciliationService.export_members."""

    @pytest.fixture
    def ranges(self, range_service, event, settings):
        settings.TICKETING_DEFAULT_TICKET_COST = Decimal("25")
        return {
            "rifa": range_service.create_range(event.id, 1, 10, "Rifa", money("10")),
            "vip": range_service.create_range(event.id, 101, 105, "VIP"),
        }

    @pytest.fixture
    def export(self, reconciliation_service, event, ranges, make_member, make_payment):
        ana = make_member(event, name="Ana")
        bruno = make_member(event, name="Bruno")
        carla = make_member(event, name="Carla")
        dora = make_member(event, name="Dora")
        eva = make_member(event, name="Eva")
        make_member(event, name="Fabio")

        give(event, ana, 1, 2, 101)
        give(event, bruno, 3)
        give(event, bruno, 4, delivered_at=OLD_PAYMENT)
        give(event, bruno, 5, returned=True)
        give(event, carla, 6, delivered_at=OLD_PAYMENT)
        give(event, carla, 7, delivered_at=OLD_PAYMENT, returned=True)
        give(event, dora, 8, returned=True)
        give(event, eva, 9)

        make_payment(ana, "30")
        make_payment(ana, "20", type=models.Payment.PaymentType.CASH)
        make_payment(bruno, "5")
        make_payment(bruno, "100", deleted_at=OLD_PAYMENT)
        make_payment(eva, "10")
        return reconciliation_service.export_members(event.id)

    def test_lists_only_members_with_pending_tickets(self, export):
        """Delivered-only, returned-only and empty members are left out."""
        assert {line.name for line in export.members} == {"Ana", "Bruno", "Eva"}

    def test_ordered_from_credit_to_debt(self, export):
        assert [(line.name, line.balance) for line in export.members] == [
            ("Ana", Decimal("5")),
            ("Eva", Decimal("0")),
            ("Bruno", Decimal("-15")),
        ]

    def test_tickets_grouped_by_range(self, export, ranges):
        """Ranges without a cost are priced at the default ticket cost."""
        ana = export.members[0]

        assert [t.number for t in ana.tickets] == [1, 2, 101]
        assert [(r.range_id, r.quantity, r.total_value) for r in ana.tickets_by_range] == [
            (ranges["rifa"].id, 2, money("20")),
            (ranges["vip"].id, 1, money("25")),
        ]
        assert ana.total_amount == money("45")

    def test_payment_totals_by_type(self, export):
        ana = export.members[0]

        assert ana.total_paid == Decimal("50")
        assert ana.total_paid_pix == Decimal("30")
        assert ana.total_paid_cash == Decimal("20")
        assert len(ana.payments) == 2

    def test_delivered_tickets_count_returned_do_not(self, export):
        bruno = export.members[-1]

        assert [t.number for t in bruno.tickets] == [3, 4]
        assert bruno.total_amount == money("20")
        assert bruno.total_paid == Decimal("5")

    def test_pending_and_critica_tickets(self, export):
        """Pending tickets include unassigned ones, in number order."""
        assert [t.number for t in export.pending_tickets] == [1, 2, 3, 9, 10, 101, 102, 103, 104, 105]
        assert [t.number for t in export.critica_tickets] == [7]

    def test_refund_lowers_balance(self, reconciliation_service, event, ranges, member, make_payment):
        give(event, member, 1)
        make_payment(member, "10")
        make_payment(member, "-4")

        line = reconciliation_service.export_members(event.id).members[0]

        assert line.total_paid == Decimal("6")
        assert line.total_paid_pix == Decimal("6")
        assert line.balance == Decimal("-4")

    def test_unknown_event(self, reconciliation_service):
        with pytest.raises(EventNotFoundError):
            reconciliation_service.export_members(uuid4())
