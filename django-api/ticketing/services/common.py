"""Guards shared by the ticketing services."""

from typing import TypeVar
from uuid import UUID

from ticketing.domain import Event, EventId, Member, MemberId
from ticketing.domain.errors import (
    EventNotFoundError,
    InvalidIdError,
    MemberNotFoundError,
    ReadOnlyEventError,
)
from ticketing.stores.interfaces import TicketingStore

IdT = TypeVar("IdT")


def parse_id(cls: type[IdT], value: str | UUID, kind: str) -> IdT:
    """Build an identifier value object.

    Raises:
        InvalidIdError: If ``value`` is not a valid UUID.
    """
    try:
        return cls.from_string(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidIdError(kind) from exc


def require_event(store: TicketingStore, event_id: str | UUID) -> Event:
    """Return the event or raise EventNotFoundError."""
    event = store.get_event(parse_id(EventId, event_id, "event"))
    if event is None:
        raise EventNotFoundError(str(event_id))
    return event


def require_writable_event(store: TicketingStore, event_id: str | UUID) -> Event:
    """Return the event if it accepts mutations.

    Raises:
        EventNotFoundError: If the event does not exist.
        ReadOnlyEventError: If the event is locked.
    """
    event = require_event(store, event_id)
    if event.read_only:
        raise ReadOnlyEventError(str(event.id))
    return event


def require_member(store: TicketingStore, event: Event, member_id: str | UUID) -> Member:
    """Return a member of ``event`` or raise MemberNotFoundError."""
    member = store.get_member(parse_id(MemberId, member_id, "member"))
    if member is None or member.event_id != event.id:
        raise MemberNotFoundError(str(member_id))
    return member
