"""FastAPI dependency utilities."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace_messaging.domain.entities import Identity
from marketplace_messaging.infrastructure.realtime import RealtimeFanout, realtime_fanout
from marketplace_messaging.infrastructure.security import identity_from_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """Return the caller identity carried by the bearer token."""

    token = credentials.credentials if credentials else None
    return identity_from_token(token)


def get_realtime_fanout() -> RealtimeFanout:
    """Return the process-wide fan-out used to publish realtime events."""

    return realtime_fanout
