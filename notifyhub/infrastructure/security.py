"""Bearer token helpers."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from notifyhub.config import get_settings

ALGORITHM = "HS256"


def create_access_token(
    user_id: str, *, role: str | None = None, expires_delta: timedelta | None = None
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict = {"sub": str(user_id), "exp": expire}
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


__all__ = ["ALGORITHM", "create_access_token", "decode_access_token"]
