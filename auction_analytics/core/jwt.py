"""JWT token utilities. Tokens are issued by the auth service; this service only reads them."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from auction_analytics.core.config import settings


class TokenData(BaseModel):
    """JWT Token payload data."""

    user_id: str
    exp: datetime


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: User id the token is issued for
        expires_minutes: Lifetime override, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        JWT token string
    """
    if expires_minutes is None:
        expires_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    now = datetime.now(timezone.utc)

    payload = {
        "user_id": user_id,
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }

    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        TokenData if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("user_id")
    exp = payload.get("exp")
    if not user_id or exp is None:
        return None

    return TokenData(
        user_id=str(user_id),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
    )
