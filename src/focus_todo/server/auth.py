"""JWT handling for the resource server and the BFF."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import AuthSettings, get_config


logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(
    subject: str,
    expires_minutes: Optional[int] = None,
    settings: Optional[AuthSettings] = None,
) -> str:
    """Create a signed access token for a user id.

    Args:
        subject: User id placed in the ``sub`` claim
        expires_minutes: Lifetime (uses the configured default if None)
        settings: Auth settings (uses the global config if None)

    Returns:
        Encoded JWT
    """
    settings = settings or get_config().auth
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_minutes
    claims: Dict[str, Any] = {
        "sub": subject,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    if settings.audience:
        claims["aud"] = settings.audience
    if settings.issuer:
        claims["iss"] = settings.issuer
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[AuthSettings] = None) -> Dict[str, Any]:
    """Decode and validate an access token, raising 401 on failure."""
    settings = settings or get_config().auth
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.audience,
            issuer=settings.issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        raise _unauthorized("Invalid token")

    if not payload.get("sub"):
        raise _unauthorized("Invalid token payload")
    return payload


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """FastAPI dependency returning the ``sub`` of the bearer token or raising 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")
    return str(decode_access_token(credentials.credentials)["sub"])
