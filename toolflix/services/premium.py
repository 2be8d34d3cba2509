"""
Premium Registry - read side of premium entitlement.

Grants are written by the token ledger on redemption and never expire or
get revoked.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.db.models import PremiumUser
from toolflix.exceptions import StorageError, ValidationError
from toolflix.models.domain import PremiumStatus
from toolflix.observability.metrics import metrics

logger = get_logger(__name__)


class PremiumService:
    """Lookups over the premium_users table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def is_premium(self, user_id: str) -> PremiumStatus:
        """Return whether ``user_id`` holds premium, and since when."""
        user_id = (user_id or "").strip()
        if not user_id:
            raise ValidationError("userId is required", error_code="USER_ID_REQUIRED")

        try:
            since = await self.session.scalar(
                select(PremiumUser.since).where(PremiumUser.user_id == user_id)
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("premium_lookup_failed", user_id=user_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "premium_lookup")
            raise StorageError("premium_lookup") from exc

        if since is None:
            return PremiumStatus(user_id=user_id, premium=False)
        return PremiumStatus(user_id=user_id, premium=True, since=since)

    async def total_premium_count(self) -> int:
        """Count every premium grant ever made."""
        try:
            total = await self.session.scalar(select(func.count()).select_from(PremiumUser))
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("premium_count_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "premium_count")
            raise StorageError("premium_count") from exc
        return int(total or 0)
