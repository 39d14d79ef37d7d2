"""Notify API — lets the expense/category service push change events.

Learn: The CRUD service calls POST /notify after its write commits.
The response reports how many sockets were reached, but a zero (user
offline) is a normal outcome, never an error. Only a malformed request
(unknown event, empty user id) is rejected, with 422.
"""

from fastapi import APIRouter, Depends

from pocketbook.api.deps import get_realtime
from pocketbook.realtime.hub import RealtimeHub
from pocketbook.schemas.notification import (
    NotifyRequest,
    NotifyResponse,
    RealtimeStats,
)

router = APIRouter()


@router.post("/notify", response_model=NotifyResponse, status_code=202)
async def notify(
    body: NotifyRequest,
    hub: RealtimeHub = Depends(get_realtime),
):
    """Deliver one change event to every live connection of the user."""
    delivered = await hub.dispatcher.dispatch(body.user_id, body.event, body.data)
    return NotifyResponse(user_id=body.user_id, event=body.event, delivered=delivered)


@router.get("/realtime/stats", response_model=RealtimeStats)
async def realtime_stats(hub: RealtimeHub = Depends(get_realtime)):
    """Registry size and dispatcher counters."""
    return hub.stats()
