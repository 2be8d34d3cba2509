"""
Tests for PremiumService.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from toolflix.exceptions import StorageError, ValidationError
from toolflix.services.premium import PremiumService


class TestIsPremium:
    """Tests for is_premium."""

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_premium(self, premium_service):
        """A user without a grant is not premium and has no since."""
        status = await premium_service.is_premium("u_nobody")

        assert status.premium is False
        assert status.since is None
        assert status.user_id == "u_nobody"

    @pytest.mark.asyncio
    async def test_redeemed_user_is_premium(self, token_service, premium_service, t0):
        """Redeeming a token makes the user premium since the redemption."""
        token = await token_service.issue_token()
        await token_service.redeem(token.code, "u_1")

        status = await premium_service.is_premium("u_1")

        assert status.premium is True
        assert status.since == t0

    @pytest.mark.asyncio
    async def test_premium_never_lapses(self, token_service, premium_service, clock):
        """Grants outlive the token that created them."""
        token = await token_service.issue_token(validity_days=1)
        await token_service.redeem(token.code, "u_1")
        clock.advance_days(400)

        assert (await premium_service.is_premium("u_1")).premium is True

    @pytest.mark.asyncio
    async def test_blank_user_id_rejected(self, premium_service):
        """Blank user ids are a validation error."""
        with pytest.raises(ValidationError) as exc_info:
            await premium_service.is_premium("  ")
        assert exc_info.value.error_code == "USER_ID_REQUIRED"

    @pytest.mark.asyncio
    async def test_database_error_becomes_storage_error(self):
        """SQLAlchemy errors are surfaced as StorageError."""
        db = AsyncMock(spec=AsyncSession)
        db.scalar.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StorageError):
            await PremiumService(db).is_premium("u_1")

        db.rollback.assert_awaited()


class TestTotalPremiumCount:
    """Tests for total_premium_count."""

    @pytest.mark.asyncio
    async def test_empty_registry(self, premium_service):
        """No grants counts zero."""
        assert await premium_service.total_premium_count() == 0

    @pytest.mark.asyncio
    async def test_counts_distinct_users(self, token_service, premium_service):
        """Each premium user counts once regardless of tokens redeemed."""
        for user_id in ("u_1", "u_2", "u_1"):
            token = await token_service.issue_token()
            await token_service.redeem(token.code, user_id)

        assert await premium_service.total_premium_count() == 2

    @pytest.mark.asyncio
    async def test_database_error_rolls_back(self):
        """A failed count leaves the session usable for the next statement."""
        db = AsyncMock(spec=AsyncSession)
        db.scalar.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StorageError) as exc_info:
            await PremiumService(db).total_premium_count()

        assert exc_info.value.operation == "premium_count"
        db.rollback.assert_awaited_once()
