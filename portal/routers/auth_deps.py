"""
Authentication and role dependencies.

Tokens are accepted from ``Authorization: Bearer <jwt>`` or the ``authtoken``
header used by the web client. Scheduled-job endpoints use a static API key
instead of a user token.
"""
import hmac
import logging
from typing import Callable, List, Optional

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.database import get_db
from portal.models.user import User, UserRole
from portal.schemas.auth import TokenData
from portal.services import auth as auth_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    bearer_token: Optional[str] = Depends(oauth2_scheme),
    authtoken: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """
    Extracts and validates the current user from the JWT token.
    """
    token = bearer_token or authtoken
    if not token:
        raise _unauthorized("Not authenticated")

    payload = auth_service.decode_access_token(token)
    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise _unauthorized("Could not validate credentials")
    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise _unauthorized("TOKEN_EXPIRED")
    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise _unauthorized("Invalid token type")

    token_data = TokenData(email=payload.get("sub"), role=payload.get("role"))
    if token_data.email is None:
        logger.warning("Authentication failed: Missing subject (email) in token")
        raise _unauthorized("Missing subject in token")

    user = db.query(User).filter(User.email == token_data.email).first()
    if user is None:
        logger.warning(f"Authentication failed: User {token_data.email} not found in database")
        raise _unauthorized("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {token_data.email} is inactive")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    return user


def get_optional_user(
    bearer_token: Optional[str] = Depends(oauth2_scheme),
    authtoken: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Public endpoints that behave differently for signed-in staff."""
    if not (bearer_token or authtoken):
        return None
    try:
        return get_current_user(bearer_token, authtoken, db)
    except HTTPException:
        return None


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role([UserRole.admin]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_manager():
    """Managers and admins."""
    return require_role([UserRole.admin, UserRole.manager])


def require_admin():
    return require_role([UserRole.admin])


def ensure_self_or_manager(current_user: User, owner_id: int) -> None:
    if current_user.id != owner_id and not current_user.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only access your own records."
        )


def require_cron_key(api_key: Optional[str] = Query(default=None, alias="apiKey")) -> None:
    """Always rejects when no CRON_API_KEY is configured."""
    expected = settings.cron_api_key
    if not expected or not api_key or not hmac.compare_digest(api_key, expected):
        logger.warning("Unauthorized scheduled job call")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid or missing API key",
        )
