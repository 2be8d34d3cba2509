"""
API Routes - accounts, token redemption, premium lookups and site stats.

NO DICTIONARIES - All requests/responses use Pydantic models.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from toolflix.api.dependencies import (
    AuthenticatedUser,
    get_current_user,
    get_premium_service,
    get_site_stats_service,
    get_token_service,
    get_user_service,
)
from toolflix.db.session import get_db
from toolflix.exceptions import TokenAlreadyUsedError, TokenExpiredError, TokenNotFoundError
from toolflix.models.api import (
    AddXpRequest,
    AddXpResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    OkResponse,
    PremiumCountResponse,
    PremiumStatusResponse,
    RedeemTokenRequest,
    RedeemTokenResponse,
    RegisterRequest,
    UserProfile,
    VisitsResponse,
)
from toolflix.services.premium import PremiumService
from toolflix.services.site_stats import SiteStatsService
from toolflix.services.tokens import TokenService
from toolflix.services.users import UserService

router = APIRouter()


# ============================================================================
# Accounts
# ============================================================================


@router.post("/auth/register", response_model=OkResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    users: UserService = Depends(get_user_service),
) -> OkResponse:
    """Create an account. Fails with 409 NICK_EXISTS for a taken nick."""
    await users.register(request.nick, request.password)
    return OkResponse()


@router.post("/auth/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    users: UserService = Depends(get_user_service),
) -> LoginResponse:
    """Exchange nick and password for a bearer token."""
    token, user = await users.login(request.nick, request.password)
    return LoginResponse(
        token=token,
        user=UserProfile(id=user.user_id, nick=user.nick, xp=user.xp),
    )


@router.get("/users/me", response_model=MeResponse)
async def get_me(
    user: AuthenticatedUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> MeResponse:
    profile = await users.get_user(user.user_id)
    return MeResponse(user=UserProfile(id=profile.user_id, nick=profile.nick, xp=profile.xp))


@router.post("/users/me/xp", response_model=AddXpResponse)
async def add_xp(
    request: AddXpRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> AddXpResponse:
    xp = await users.add_xp(user.user_id, request.amount)
    return AddXpResponse(xp=xp)


# ============================================================================
# Tokens / Premium
# ============================================================================


@router.post("/tokens/redeem", response_model=RedeemTokenResponse)
async def redeem_token(
    request: RedeemTokenRequest,
    tokens: TokenService = Depends(get_token_service),
) -> RedeemTokenResponse:
    """
    Redeem a premium token for a user.

    Rejected redemptions are answered with 200 and ``valid: false`` plus the
    reason code; missing fields are 400 and storage failures 500.
    """
    try:
        result = await tokens.redeem(request.token, request.user_id)
    except (TokenNotFoundError, TokenExpiredError, TokenAlreadyUsedError) as exc:
        return RedeemTokenResponse(ok=False, valid=False, reason=exc.error_code)

    return RedeemTokenResponse(ok=True, valid=True, user_id=result.user_id)


@router.get("/premium/count", response_model=PremiumCountResponse)
async def premium_count(
    premium: PremiumService = Depends(get_premium_service),
) -> PremiumCountResponse:
    total = await premium.total_premium_count()
    return PremiumCountResponse(total_premium=total)


@router.get("/premium/{user_id}", response_model=PremiumStatusResponse)
async def premium_status(
    user_id: str,
    premium: PremiumService = Depends(get_premium_service),
) -> PremiumStatusResponse:
    result = await premium.is_premium(user_id)
    return PremiumStatusResponse(premium=result.premium, since=result.since)


# ============================================================================
# Site Stats
# ============================================================================


@router.post("/stats/visits", response_model=VisitsResponse)
async def record_visit(
    stats: SiteStatsService = Depends(get_site_stats_service),
) -> VisitsResponse:
    count = await stats.increment_visits()
    return VisitsResponse(count=count)


@router.get("/stats/visits", response_model=VisitsResponse)
async def get_visits(
    stats: SiteStatsService = Depends(get_site_stats_service),
) -> VisitsResponse:
    count = await stats.get_visits()
    return VisitsResponse(count=count)


# ============================================================================
# Health
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """
    Health check for load balancer.

    Verifies database connectivity.
    """
    try:
        await db.execute(text("SELECT 1"))

        return HealthResponse(
            status="healthy",
            database="connected",
            timestamp=datetime.now(UTC).isoformat(),
        )

    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(exc),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        ) from exc
