"""
FastAPI Dependencies - Authentication, authorization and service wiring.

NO DICTIONARIES - All dependencies return typed objects.
"""

import secrets
from dataclasses import dataclass

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.config import settings
from toolflix.db.session import get_db
from toolflix.exceptions import AuthError, ForbiddenError
from toolflix.services.chat import ChatService
from toolflix.services.chat_messages import ChatMessageService
from toolflix.services.clock import Clock, now_ms
from toolflix.services.premium import PremiumService
from toolflix.services.site_stats import SiteStatsService
from toolflix.services.tokens import TokenService
from toolflix.services.users import UserService, verify_access_token

logger = get_logger(__name__)

# ============================================================================
# User JWT Authentication
# ============================================================================


@dataclass
class AuthenticatedUser:
    """Authenticated user identity from a JWT."""

    user_id: str
    nick: str
    role: str = "user"

    @property
    def is_master(self) -> bool:
        return self.nick == settings.master_nick


@dataclass
class AdminPrincipal:
    """Caller allowed to use operator endpoints."""

    method: str  # "admin_key" or "master"
    nick: str | None = None


# Bearer token scheme for JWT auth
bearer_scheme = HTTPBearer(auto_error=False)


def _identity_from_token(token: str) -> AuthenticatedUser | None:
    payload = verify_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    return AuthenticatedUser(
        user_id=str(payload["sub"]),
        nick=str(payload.get("nick", "")),
        role=str(payload.get("role", "user")),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    Require a valid user JWT.

    Accepts: Authorization: Bearer {jwt}

    Raises:
        AuthError(401): NO_TOKEN when the header is missing, TOKEN_INVALID
            when the token fails verification
    """
    if credentials is None:
        raise AuthError("Authorization header required", error_code="NO_TOKEN")

    user = _identity_from_token(credentials.credentials)
    if user is None:
        raise AuthError("Invalid or expired token", error_code="TOKEN_INVALID")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser | None:
    """Resolve the user JWT if one was sent; never raises."""
    if credentials is None:
        return None
    return _identity_from_token(credentials.credentials)


async def require_admin(
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> AdminPrincipal:
    """
    Require operator privileges.

    Granted by an X-Admin-Key header matching ADMIN_KEY (when configured),
    or by a user JWT belonging to the master account.

    Raises:
        ForbiddenError(403): neither credential is present and valid
    """
    if settings.admin_key and x_admin_key:
        if secrets.compare_digest(x_admin_key.encode(), settings.admin_key.encode()):
            return AdminPrincipal(method="admin_key")
        logger.warning("admin_key_rejected")

    if user is not None and user.is_master:
        return AdminPrincipal(method="master", nick=user.nick)

    logger.warning("admin_access_denied", user_id=user.user_id if user else None)
    raise ForbiddenError()


# ============================================================================
# Service Wiring
# ============================================================================


def get_clock() -> Clock:
    """Time source for request handlers (overridden in tests)."""
    return now_ms


def get_token_service(
    db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)
) -> TokenService:
    return TokenService(db, clock=clock)


def get_premium_service(db: AsyncSession = Depends(get_db)) -> PremiumService:
    return PremiumService(db)


def get_chat_service(
    db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)
) -> ChatService:
    return ChatService(db, clock=clock)


def get_chat_message_service(
    db: AsyncSession = Depends(get_db),
    chats: ChatService = Depends(get_chat_service),
    clock: Clock = Depends(get_clock),
) -> ChatMessageService:
    return ChatMessageService(db, clock=clock, chats=chats)


def get_user_service(
    db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)
) -> UserService:
    return UserService(db, clock=clock)


def get_site_stats_service(db: AsyncSession = Depends(get_db)) -> SiteStatsService:
    return SiteStatsService(db)
