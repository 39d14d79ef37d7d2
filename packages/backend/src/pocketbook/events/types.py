"""Event type constants and the transient DomainEvent value.

Learn: Centralizing event types as constants prevents typos and
makes it easy to discover all event types in the system. The names
match what the browser client subscribes to, so they are part of the
wire contract and must not change casually.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class EventName(str, Enum):
    """Fixed set of change notifications a client can receive."""

    EXPENSE_CREATED = "expense:created"
    EXPENSE_UPDATED = "expense:updated"
    EXPENSE_DELETED = "expense:deleted"
    CATEGORY_CREATED = "category:created"
    CATEGORY_UPDATED = "category:updated"
    CATEGORY_DELETED = "category:deleted"


# ─── Expense lifecycle ───────────────────────────────────

EXPENSE_CREATED = EventName.EXPENSE_CREATED.value
EXPENSE_UPDATED = EventName.EXPENSE_UPDATED.value
EXPENSE_DELETED = EventName.EXPENSE_DELETED.value

# ─── Category lifecycle ──────────────────────────────────

CATEGORY_CREATED = EventName.CATEGORY_CREATED.value
CATEGORY_UPDATED = EventName.CATEGORY_UPDATED.value
CATEGORY_DELETED = EventName.CATEGORY_DELETED.value

USER_CHANNEL_PREFIX = "user:"


class UnknownEventError(ValueError):
    """Raised when an event name is outside the fixed EventName set."""


def user_channel(user_id: str) -> str:
    """Channel that groups every connection of one user."""
    return f"{USER_CHANNEL_PREFIX}{user_id}"


@dataclass(frozen=True)
class DomainEvent:
    """A named change notification with an opaque payload.

    Built and consumed within a single dispatch; never stored.
    """

    name: EventName
    payload: Any = field(default=None)

    @classmethod
    def create(cls, name: Union[str, EventName], payload: Any) -> "DomainEvent":
        try:
            return cls(name=EventName(name), payload=payload)
        except ValueError:
            raise UnknownEventError(f"Unknown event: {name!r}") from None

    def to_message(self) -> dict[str, Any]:
        """Frame sent to the client: {"event": ..., "data": ...}."""
        return {"event": self.name.value, "data": self.payload}
