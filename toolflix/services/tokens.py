"""
Token Ledger - premium redemption codes.

Issues one-time tokens and redeems them into premium grants.

Redemption is a compare-and-set on the token row followed by an idempotent
grant upsert, both in one transaction:
- the token is claimed only if unexpired and unclaimed (or claimed by the
  same user), so two users can never both redeem it
- the grant is ``INSERT ... ON CONFLICT DO NOTHING``, so the first grant's
  ``since`` is kept and repeated redemptions never add rows
- any storage failure rolls back both writes
"""

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.config import settings
from toolflix.db.models import PremiumUser, Token
from toolflix.db.session import dialect_insert
from toolflix.exceptions import (
    StorageError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenNotFoundError,
    ValidationError,
)
from toolflix.models.domain import RedemptionResult, TokenData
from toolflix.observability.metrics import metrics
from toolflix.observability.tracing import get_tracer
from toolflix.services.clock import (
    MS_PER_DAY,
    Clock,
    CodeGenerator,
    generate_token_code,
    normalize_token_code,
    now_ms,
)

logger = get_logger(__name__)
tracer = get_tracer(__name__)

MAX_VALIDITY_DAYS = 3650
_MAX_CODE_ATTEMPTS = 5


def _to_token_data(token: Token) -> TokenData:
    return TokenData(
        code=token.token,
        created_at=token.created_at,
        expires_at=token.expires_at,
        used_by=token.used_by,
        used_at=token.used_at,
    )


class TokenService:
    """
    Token ledger backed by the tokens and premium_users tables.

    Usage:
        service = TokenService(db)
        token = await service.issue_token(validity_days=30)
        result = await service.redeem(token.code, user_id="u_123")
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = now_ms,
        code_generator: CodeGenerator = generate_token_code,
    ) -> None:
        self.session = session
        self.clock = clock
        self.code_generator = code_generator

    async def issue_token(self, validity_days: int | None = None) -> TokenData:
        """
        Issue a new unredeemed token valid for ``validity_days`` days.

        Raises:
            ValidationError: validity_days is not a positive integer
            StorageError: the insert failed
        """
        if validity_days is None:
            validity_days = settings.token_default_validity_days
        if (
            isinstance(validity_days, bool)
            or not isinstance(validity_days, int)
            or not 0 < validity_days <= MAX_VALIDITY_DAYS
        ):
            raise ValidationError(
                f"days must be an integer between 1 and {MAX_VALIDITY_DAYS}",
                error_code="DAYS_INVALID",
            )

        now = self.clock()
        expires_at = now + validity_days * MS_PER_DAY

        try:
            for attempt in range(1, _MAX_CODE_ATTEMPTS + 1):
                code = normalize_token_code(self.code_generator())
                stmt = (
                    dialect_insert(self.session, Token)
                    .values(
                        token=code,
                        created_at=now,
                        expires_at=expires_at,
                        used_by=None,
                        used_at=None,
                    )
                    .on_conflict_do_nothing(index_elements=["token"])
                )
                result = await self.session.execute(stmt)
                if result.rowcount == 1:
                    await self.session.commit()
                    break
                logger.warning("token_code_collision", attempt=attempt)
            else:
                await self.session.rollback()
                raise StorageError("token_issue")
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("token_issue_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "token_issue")
            raise StorageError("token_issue") from exc

        metrics.tokens_issued_total.inc()
        logger.info("token_issued", expires_at=expires_at, validity_days=validity_days)

        return TokenData(
            code=code,
            created_at=now,
            expires_at=expires_at,
            used_by=None,
            used_at=None,
        )

    async def get_token(self, code: str) -> TokenData | None:
        """Look up a token by (case-insensitive) code."""
        stmt = (
            select(Token)
            .where(Token.token == normalize_token_code(code))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        token = result.scalar_one_or_none()
        return _to_token_data(token) if token else None

    async def redeem(self, code: str, user_id: str) -> RedemptionResult:
        """
        Redeem a token for ``user_id`` and grant premium.

        Raises:
            ValidationError: code or user id missing
            TokenNotFoundError: no token matches the code
            TokenExpiredError: the token is past its expiry
            TokenAlreadyUsedError: another user already redeemed it
            StorageError: the transaction failed and was rolled back
        """
        normalized = normalize_token_code(code or "")
        user_id = (user_id or "").strip()
        if not normalized:
            raise ValidationError("token is required", error_code="TOKEN_REQUIRED")
        if not user_id:
            raise ValidationError("userId is required", error_code="USER_ID_REQUIRED")

        now = self.clock()

        with tracer.start_as_current_span("token_redeem"):
            try:
                claim = await self.session.execute(
                    update(Token)
                    .where(
                        Token.token == normalized,
                        Token.expires_at >= now,
                        or_(Token.used_by.is_(None), Token.used_by == user_id),
                    )
                    .values(used_by=user_id, used_at=now)
                    .execution_options(synchronize_session=False)
                )

                if claim.rowcount == 0:
                    await self.session.rollback()
                    await self._raise_redemption_failure(normalized, user_id, now)

                grant = await self.session.execute(
                    dialect_insert(self.session, PremiumUser)
                    .values(user_id=user_id, since=now)
                    .on_conflict_do_nothing(index_elements=["user_id"])
                )
                newly_granted = grant.rowcount == 1

                since = await self.session.scalar(
                    select(PremiumUser.since).where(PremiumUser.user_id == user_id)
                )
                await self.session.commit()

            except SQLAlchemyError as exc:
                await self.session.rollback()
                logger.error("token_redeem_failed", user_id=user_id, error=str(exc))
                metrics.record_error(type(exc).__name__, "token_redeem")
                raise StorageError("token_redeem") from exc

        metrics.record_redemption("valid")
        if newly_granted:
            metrics.premium_grants_total.inc()

        logger.info(
            "token_redeemed",
            user_id=user_id,
            premium_granted=newly_granted,
            premium_since=since,
        )

        return RedemptionResult(
            code=normalized,
            user_id=user_id,
            redeemed_at=now,
            premium_since=since if since is not None else now,
        )

    async def _raise_redemption_failure(self, code: str, user_id: str, now: int) -> None:
        """Re-read a token the conditional claim skipped and raise the matching error."""
        token = await self.get_token(code)

        if token is None:
            metrics.record_redemption(TokenNotFoundError.error_code)
            logger.info("token_redeem_rejected", reason="not_found", user_id=user_id)
            raise TokenNotFoundError(code)

        if token.is_expired(now):
            metrics.record_redemption(TokenExpiredError.error_code)
            logger.info("token_redeem_rejected", reason="expired", user_id=user_id)
            raise TokenExpiredError(code, token.expires_at)

        if token.used_by is not None and token.used_by != user_id:
            metrics.record_redemption(TokenAlreadyUsedError.error_code)
            logger.info("token_redeem_rejected", reason="used_by_other", user_id=user_id)
            raise TokenAlreadyUsedError(code)

        # The row changed between the claim and the re-read
        logger.error("token_redeem_inconsistent", user_id=user_id)
        raise StorageError("token_redeem")
