"""
Tests for API dependencies (user JWT and operator authorization).
"""

from unittest.mock import patch

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from toolflix.api.dependencies import (
    AuthenticatedUser,
    get_current_user,
    get_optional_user,
    require_admin,
)
from toolflix.config import settings
from toolflix.exceptions import AuthError, ForbiddenError


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUser:
    """Tests for get_current_user."""

    @pytest.mark.asyncio
    async def test_valid_token(self, user_token):
        user = await get_current_user(_bearer(user_token))

        assert user.user_id == "u_alice"
        assert user.nick == "alice"
        assert user.is_master is False

    @pytest.mark.asyncio
    async def test_missing_header(self):
        with pytest.raises(AuthError) as exc_info:
            await get_current_user(None)
        assert exc_info.value.error_code == "NO_TOKEN"

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        with pytest.raises(AuthError) as exc_info:
            await get_current_user(_bearer("garbage"))
        assert exc_info.value.error_code == "TOKEN_INVALID"

    @pytest.mark.asyncio
    async def test_optional_user_never_raises(self):
        assert await get_optional_user(None) is None
        assert await get_optional_user(_bearer("garbage")) is None


class TestRequireAdmin:
    """Tests for require_admin."""

    @pytest.mark.asyncio
    async def test_admin_key(self):
        principal = await require_admin(x_admin_key=settings.admin_key, user=None)
        assert principal.method == "admin_key"

    @pytest.mark.asyncio
    async def test_master_jwt(self):
        master = AuthenticatedUser(user_id="u_m", nick=settings.master_nick)
        principal = await require_admin(x_admin_key=None, user=master)

        assert principal.method == "master"
        assert principal.nick == settings.master_nick

    @pytest.mark.asyncio
    async def test_wrong_key_falls_back_to_master(self):
        master = AuthenticatedUser(user_id="u_m", nick=settings.master_nick)
        principal = await require_admin(x_admin_key="wrong", user=master)
        assert principal.method == "master"

    @pytest.mark.asyncio
    async def test_regular_user_forbidden(self):
        user = AuthenticatedUser(user_id="u_1", nick="alice")
        with pytest.raises(ForbiddenError):
            await require_admin(x_admin_key=None, user=user)

    @pytest.mark.asyncio
    async def test_nothing_forbidden(self):
        with pytest.raises(ForbiddenError):
            await require_admin(x_admin_key=None, user=None)

    @pytest.mark.asyncio
    async def test_key_auth_disabled_when_unset(self):
        """An empty ADMIN_KEY never matches, even an empty header."""
        with patch.object(settings, "admin_key", ""):
            with pytest.raises(ForbiddenError):
                await require_admin(x_admin_key="", user=None)
