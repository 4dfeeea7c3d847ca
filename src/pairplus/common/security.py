"""Request authentication helpers."""

from typing import Optional

from fastapi import Header, HTTPException

from pairplus.common.exceptions import AuthError
from pairplus.identity.verifier import TokenVerifier

BEARER_PREFIX = "Bearer "


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


async def authenticate(authorization: Optional[str], verifier: TokenVerifier) -> str:
    """Return the caller's principal id or raise AuthError."""
    token = parse_bearer(authorization)
    if token is None:
        raise AuthError()
    uid = await verifier.verify(token)
    if not uid:
        raise AuthError("Invalid auth token")
    return uid


async def require_service_token(
    x_pairplus_service_token: str = Header(..., alias="X-PairPlus-Service-Token"),
) -> str:
    """FastAPI dependency that validates the internal service token header."""
    from pairplus.common.config import get_settings

    settings = get_settings()
    if x_pairplus_service_token != settings.service_token:
        raise HTTPException(status_code=403, detail="Invalid service token")
    return x_pairplus_service_token
