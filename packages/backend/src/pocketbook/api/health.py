"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and,
when the Redis backplane is configured, that Redis is reachable.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from pocketbook import __version__
from pocketbook.api.deps import get_realtime
from pocketbook.realtime.hub import RealtimeHub

router = APIRouter()


@router.get("/health")
async def health_check(hub: RealtimeHub = Depends(get_realtime)):
    """Check server health and backplane connectivity."""
    checks = {
        "server": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    backplane = await hub.check_backplane()
    checks["backplane"] = backplane
    checks["connections"] = len(hub.registry)

    status = "degraded" if backplane.startswith("error") else "healthy"
    return {"status": status, **checks}
