"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from ticketing import models
from ticketing.services import (
    AllocationService,
    AssignmentService,
    InventoryService,
    LifecycleService,
    RangeService,
    ReconciliationService,
)
from ticketing.stores import DjangoTicketingStore

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def store() -> DjangoTicketingStore:
    return DjangoTicketingStore()


@pytest.fixture
def range_service(store) -> RangeService:
    return RangeService(store)


@pytest.fixture
def inventory_service(store) -> InventoryService:
    return InventoryService(store)


@pytest.fixture
def allocation_service(store) -> AllocationService:
    return AllocationService(store)


@pytest.fixture
def assignment_service(store) -> AssignmentService:
    return AssignmentService(store)


@pytest.fixture
def lifecycle_service(store) -> LifecycleService:
    return LifecycleService(store)


@pytest.fixture
def reconciliation_service(store) -> ReconciliationService:
    return ReconciliationService(store)


@pytest.fixture
def event(db) -> models.Event:
    return models.Event.objects.create(name="Spring Raffle")


@pytest.fixture
def read_only_event(db) -> models.Event:
    return models.Event.objects.create(name="Closed Raffle", read_only=True)


@pytest.fixture
def make_member(db):
    """Create members with deterministic creation times, one minute apart by default."""
    created = []

    def _make(event, name=None, order=None, confirmed=False, created_at=None):
        member = models.Member.objects.create(
            event=event,
            name=name or f"Member {len(created) + 1}",
            order=order,
            is_all_confirmed_but_not_yet_fully_paid=confirmed,
        )
        stamp = created_at or BASE_TIME + timedelta(minutes=len(created))
        models.Member.objects.filter(id=member.id).update(created_at=stamp)
        member.refresh_from_db()
        created.append(member)
        return member

    return _make


@pytest.fixture
def make_payment(db):
    def _make(member, amount, payed_at=None, type=models.Payment.PaymentType.PIX, deleted_at=None):
        return models.Payment.objects.create(
            member=member,
            amount=Decimal(amount),
            type=type,
            payed_at=payed_at or BASE_TIME,
            deleted_at=deleted_at,
        )

    return _make


@pytest.fixture
def member(event, make_member) -> models.Member:
    return make_member(event, name="Ana")
