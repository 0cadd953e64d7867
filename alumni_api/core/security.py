"""Request context and bearer-token verification.

Token issuance belongs to the authentication service; this module only verifies
tokens and turns their claims into a request-scoped ``RequestContext``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from alumni_api.core import config
from alumni_api.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    UnauthorizedError,
)
from alumni_api.core.logging_config import get_logger

logger = get_logger(__name__)

ADMIN_ROLES = ("admin",)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Verified caller claims for a single request."""
    is_admin: bool = False
    user_id: Optional[str] = None


ANONYMOUS = RequestContext()


def _settings():
    if config.settings is None:
        raise ConfigurationError(
            "Settings not initialized. Ensure environment variables are set.",
            error_code="SETTINGS_NOT_INITIALIZED"
        )
    return config.settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token. Used by tooling and tests."""
    settings = _settings()
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    settings = _settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected access token: {e}")
        raise AuthenticationError("Invalid or expired token", error_code="INVALID_TOKEN")


def context_from_claims(claims: Dict[str, Any]) -> RequestContext:
    is_admin = claims.get("is_admin") is True or claims.get("role") in ADMIN_ROLES
    return RequestContext(is_admin=is_admin, user_id=claims.get("sub"))


def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> RequestContext:
    """Resolve the caller. Requests without a token are anonymous public callers."""
    if credentials is None or not credentials.credentials:
        return ANONYMOUS
    return context_from_claims(decode_access_token(credentials.credentials))


def require_admin(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Dependency for admin-only routes."""
    ensure_admin(ctx)
    return ctx


def ensure_admin(ctx: RequestContext) -> None:
    if not ctx.is_admin:
        raise UnauthorizedError("Admin privileges required", error_code="ADMIN_REQUIRED")
