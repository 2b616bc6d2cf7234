"""Bearer tokens carrying the actor identity (sub, name, role)."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from edu_access.domain.exceptions import AuthenticationException
from edu_access.infrastructure.config.settings import get_settings


def create_access_token(
    user_id: str,
    role: str,
    display_name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed token for an actor"""
    settings = get_settings()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {"sub": user_id, "role": role, "exp": expire}
    if display_name:
        claims["name"] = display_name

    encoded_jwt = jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
    assert isinstance(encoded_jwt, str)
    return encoded_jwt


def verify_token(token: str) -> dict[str, Any]:
    """Decode a token, raising AuthenticationException when it is invalid or incomplete"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        raise AuthenticationException(f"Invalid token: {e}") from e

    if not isinstance(payload, dict) or not payload.get("sub") or not payload.get("role"):
        raise AuthenticationException("Token is missing actor claims")
    return payload
