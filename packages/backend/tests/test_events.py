"""Domain event vocabulary tests."""

import pytest

from pocketbook.events.types import (
    CATEGORY_DELETED,
    DomainEvent,
    EventName,
    UnknownEventError,
    user_channel,
)


def test_event_names_match_client_contract():
    assert {e.value for e in EventName} == {
        "expense:created",
        "expense:updated",
        "expense:deleted",
        "category:created",
        "category:updated",
        "category:deleted",
    }


def test_create_from_string():
    event = DomainEvent.create("expense:deleted", {"id": "e1"})
    assert event.name is EventName.EXPENSE_DELETED
    assert event.to_message() == {"event": "expense:deleted", "data": {"id": "e1"}}


def test_create_from_enum_and_constant():
    assert DomainEvent.create(EventName.CATEGORY_DELETED, None).name.value == CATEGORY_DELETED


def test_unknown_event_rejected():
    with pytest.raises(UnknownEventError):
        DomainEvent.create("expense:archived", {})


def test_user_channel_naming():
    assert user_channel("user-1") == "user:user-1"
