"""FastAPI auth dependencies.

Learn: The notify and stats endpoints are internal — only the API layer
and operators call them. They share a secret via the x-api-key header,
compared in constant time. With no key configured (development only;
config.py refuses this elsewhere) the endpoints are open.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException

from pocketbook.config import settings


async def require_internal_key(
    x_api_key: Optional[str] = Header(None),
) -> None:
    """Reject requests without the shared internal API key."""
    expected = settings.internal_api_key
    if not expected:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")
