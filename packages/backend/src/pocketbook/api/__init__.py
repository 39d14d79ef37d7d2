"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health is open; notify and stats require the
internal API key.
"""

from fastapi import APIRouter, Depends

from pocketbook.api.health import router as health_router
from pocketbook.api.notify import router as notify_router
from pocketbook.auth.dependencies import require_internal_key

_internal = [Depends(require_internal_key)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])

# Internal routes — shared key between services
api_router.include_router(notify_router, tags=["realtime"], dependencies=_internal)
