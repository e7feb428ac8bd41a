from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from achievement_portal.config import Settings


class TokenError(Exception):
    pass


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.access_token_expire_days))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Returns the verified claims. Raises TokenError for expired, badly signed
    or structurally invalid tokens, and for tokens without a subject.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except JWTError as e:
        raise TokenError("Invalid token") from e

    if not payload.get("sub"):
        raise TokenError("Invalid token payload")

    return payload
