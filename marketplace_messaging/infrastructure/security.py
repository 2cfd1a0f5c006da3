"""Bearer token helpers shared with the identity provider."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from marketplace_messaging.config import get_settings
from marketplace_messaging.domain.entities import Identity
from marketplace_messaging.domain.errors import Unauthenticated


def create_access_token(
    user_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a token carrying the claims the identity provider issues.

    Production tokens come from the identity provider; this is used by tests
    and ``scripts/issue_dev_token.py``.
    """

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, object] = {"sub": user_id, "exp": expire}
    if name:
        claims["name"] = name
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.secret_key, algorithm=settings.token_algorithm)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    except JWTError as exc:
        raise Unauthenticated("Could not validate credentials") from exc


def identity_from_token(token: str | None) -> Identity:
    """Resolve the caller :class:`Identity` carried by ``token``."""

    if not token:
        raise Unauthenticated("Authentication required")
    claims = decode_access_token(token)
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise Unauthenticated("Token has no subject")
    name = claims.get("name")
    email = claims.get("email")
    return Identity(
        user_id=subject.strip(),
        name=name if isinstance(name, str) and name.strip() else None,
        email=email if isinstance(email, str) and "@" in email else None,
    )


__all__ = ["create_access_token", "decode_access_token", "identity_from_token"]
