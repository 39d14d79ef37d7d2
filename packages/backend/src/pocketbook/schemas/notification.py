"""Pydantic schemas for the internal notify API.

Learn: The expense/category API (a separate service) posts here after
every committed create/update/delete. `event` is validated against the
fixed EventName set; `data` is passed through to clients untouched.
"""

from typing import Any

from pydantic import BaseModel, Field

from pocketbook.events.types import EventName


# ─── Notify (API layer → realtime) ──────────────────────


class NotifyRequest(BaseModel):
    """A committed change to push to the owner's sockets."""
    user_id: str = Field(..., min_length=1, description="Owner of the changed record")
    event: EventName = Field(..., description="e.g. expense:created")
    data: Any = Field(
        None,
        description="Full record for created/updated, {'id': ...} for deleted",
    )


class NotifyResponse(BaseModel):
    user_id: str
    event: EventName
    delivered: int


# ─── Stats (realtime → operator) ────────────────────────


class RegistryStats(BaseModel):
    users: int
    connections: int


class DispatcherStatsRead(BaseModel):
    dispatched: int
    delivered: int
    dropped_offline: int
    send_failures: int
    rejected: int


class RealtimeStats(BaseModel):
    backplane: str
    registry: RegistryStats
    channels: int
    dispatcher: DispatcherStatsRead
