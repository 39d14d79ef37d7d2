from fastapi import Request

from pocketbook.realtime.hub import RealtimeHub


def get_realtime(request: Request) -> RealtimeHub:
    """FastAPI dependency — the process-wide hub built in the lifespan."""
    return request.app.state.realtime
