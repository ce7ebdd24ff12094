import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_SECRET = "change-me-in-prod"


def create_session_token(session_id: str, expires_minutes: Optional[int] = None) -> str:
    """Signed access token whose subject is the session id."""
    if settings.SECRET_KEY == _DEFAULT_SECRET:
        logger.warning("JWT_SECRET_KEY is not configured; using the development default")
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": session_id, "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: Optional[str]) -> Optional[str]:
    """Return the session id carried by *token*, or None if it is invalid or expired."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != "access":
        return None
    return payload.get("sub")
