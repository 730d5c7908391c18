"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    read_only = models.BooleanField(default=False)
    auto_generate_tickets_total_per_member = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class Member(models.Model):
    """Persistence model for event members."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="members")
    name = models.CharField(max_length=255)
    order = models.IntegerField(null=True, blank=True)
    is_all_confirmed_but_not_yet_fully_paid = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["event", "order"], name="member_event_order_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class Payment(models.Model):
    """Persistence model for member payments. Deleted payments keep a tombstone."""

    class PaymentType(models.TextChoices):
        CASH = "CASH"
        PIX = "PIX"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    member = models.ForeignKey(Member, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    type = models.CharField(max_length=8, choices=PaymentType.choices)
    payed_at = models.DateTimeField()
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["member", "deleted_at"], name="payment_member_deleted_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.amount}"


class TicketRange(models.Model):
    """Persistence model for contiguous ticket number ranges."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_ranges")
    start = models.IntegerField()
    end = models.IntegerField()
    type = models.CharField(max_length=100)
    cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    generated_at = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["start"]
        indexes = [
            models.Index(fields=["event", "start"], name="range_event_start_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(start__lte=models.F("end")), name="ticket_range_start_lte_end"),
        ]

    def __str__(self) -> str:
        return f"{self.type} ({self.start}-{self.end})"


class MemberTicketAllocation(models.Model):
    """Persistence model for the ticket quantity promised to a member from a range."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="ticket_allocations")
    event_ticket_range = models.ForeignKey(TicketRange, on_delete=models.PROTECT, related_name="allocations")
    quantity = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["member", "event_ticket_range"], name="unique_member_range_allocation"),
        ]

    def __str__(self) -> str:
        return f"{self.member_id} x{self.quantity}"


class TicketQuerySet(models.QuerySet):
    def delete(self):
        raise models.ProtectedError("Tickets cannot be deleted", set(self))


class Ticket(models.Model):
    """Persistence model for a numbered ticket. Rows are never deleted."""

    class Origin(models.TextChoices):
        PRE_GENERATED = "PRE_GENERATED"
        AFTER_IMPORT = "AFTER_IMPORT"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="tickets")
    number = models.IntegerField()
    ticket_range = models.ForeignKey(TicketRange, on_delete=models.PROTECT, related_name="tickets")
    member = models.ForeignKey(
        Member, on_delete=models.PROTECT, null=True, blank=True, related_name="tickets"
    )
    allocation = models.ForeignKey(
        MemberTicketAllocation, on_delete=models.SET_NULL, null=True, blank=True, related_name="tickets"
    )
    delivered_at = models.DateTimeField(null=True, blank=True)
    returned = models.BooleanField(default=False)
    created = models.CharField(max_length=16, choices=Origin.choices, default=Origin.PRE_GENERATED)
    name = models.CharField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=32, null=True, blank=True)
    description = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TicketQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["event", "number"], name="unique_ticket_number_per_event"),
        ]
        indexes = [
            models.Index(fields=["event", "member"], name="ticket_event_member_idx"),
            models.Index(fields=["ticket_range", "member", "number"], name="ticket_range_pool_idx"),
            models.Index(fields=["allocation"], name="ticket_allocation_idx"),
        ]

    def __str__(self) -> str:
        return f"#{self.number}"

    def delete(self, *args, **kwargs):
        raise models.ProtectedError("Tickets cannot be deleted", {self})


class TicketFlow(models.Model):
    """Append-only audit trail of ticket custody changes."""

    class FlowType(models.TextChoices):
        ASSIGNED = "ASSIGNED"
        DETACHED = "DETACHED"
        CHECKED_IN = "CHECKED_IN"
        RETURNED_TOGGLED = "RETURNED_TOGGLED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket = models.ForeignKey(Ticket, on_delete=models.PROTECT, related_name="flows")
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="ticket_flows")
    type = models.CharField(max_length=20, choices=FlowType.choices)
    from_member_id = models.UUIDField(null=True, blank=True)
    to_member_id = models.UUIDField(null=True, blank=True)
    performed_by = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["ticket", "created_at"], name="flow_ticket_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.ticket_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Ticket flows are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Ticket flows are append-only")
