"""JWT token creation and verification.

Learn: A bare user id lets any client listen to any user's channel.
With POCKETBOOK_REQUIRE_SIGNED_TOKEN=true the socket must instead present
a token signed by the API layer; its "sub" claim is the user id.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from pocketbook.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token for a realtime client."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    expires = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": user_id,
        "type": "access",
        "exp": expires,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise TokenError("Not an access token")
    return payload


def user_id_from_token(token: str) -> str:
    return verify_token(token)["sub"]
