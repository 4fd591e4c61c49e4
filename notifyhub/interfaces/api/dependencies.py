"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from notifyhub.infrastructure.backend import BackendUser
from notifyhub.infrastructure.notifications import ChangeFeedPublisher, change_feed_publisher
from notifyhub.infrastructure.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str) -> BackendUser:
    """Resolve the authenticated user for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _credentials_error() from exc

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise _credentials_error()

    role = payload.get("role")
    return BackendUser(id=user_id, role=role if isinstance(role, str) else None)


def get_current_user(token: str = Depends(oauth2_scheme)) -> BackendUser:
    """Return the authenticated user from the provided token."""

    return resolve_current_user(token)


def require_admin(current_user: BackendUser = Depends(get_current_user)) -> BackendUser:
    """Ensure the authenticated user has administrator privileges."""

    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return current_user


def get_change_feed_publisher() -> ChangeFeedPublisher:
    """Return the publisher that broadcasts notification row changes."""

    return change_feed_publisher
