"""
Tests for domain models and the clock helpers.
"""

from dataclasses import FrozenInstanceError

import pytest

from toolflix.models.domain import ChatData, SenderRole, TokenData
from toolflix.services.clock import (
    MS_PER_DAY,
    FakeClock,
    new_id,
    normalize_token_code,
    prefixed_id_generator,
)


class TestTokenData:
    """Tests for TokenData."""

    def test_expiry_must_follow_creation(self):
        """A token cannot expire at or before creation."""
        with pytest.raises(ValueError):
            TokenData(code="TFX-A", created_at=10, expires_at=10, used_by=None, used_at=None)

    def test_is_expired_exclusive(self):
        """Expired strictly after expires_at."""
        token = TokenData(code="TFX-A", created_at=0, expires_at=100, used_by=None, used_at=None)
        assert token.is_expired(100) is False
        assert token.is_expired(101) is True

    def test_is_redeemed(self):
        token = TokenData(code="TFX-A", created_at=0, expires_at=100, used_by="u_1", used_at=5)
        assert token.is_redeemed is True

    def test_frozen(self):
        """Snapshots are immutable."""
        token = TokenData(code="TFX-A", created_at=0, expires_at=100, used_by=None, used_at=None)
        with pytest.raises(FrozenInstanceError):
            token.used_by = "u_1"  # type: ignore[misc]


class TestChatData:
    """Tests for ChatData."""

    def test_is_expired_exclusive(self):
        chat = ChatData(chat_id="c", user_id="u", created_at=0, expires_at=50, last_activity_at=0)
        assert chat.is_expired(50) is False
        assert chat.is_expired(51) is True


class TestSenderRole:
    """Tests for SenderRole."""

    def test_values(self):
        """Wire values are lowercase."""
        assert SenderRole("user") is SenderRole.USER
        assert SenderRole.OPERATOR.value == "operator"


class TestClockHelpers:
    """Tests for id, code and time helpers."""

    def test_fake_clock_advances(self):
        clock = FakeClock(start=1_000)
        assert clock() == 1_000
        assert clock.advance(500) == 1_500
        assert clock.advance_days(1) == 1_500 + MS_PER_DAY
        assert clock() == 1_500 + MS_PER_DAY

    def test_prefixed_ids_unique(self):
        generate = prefixed_id_generator("c_")
        ids = {generate() for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("c_") for i in ids)

    def test_new_id_without_prefix(self):
        assert len(new_id()) == 32

    def test_normalize_token_code(self):
        assert normalize_token_code("  tfx-abc123-def456\n") == "TFX-ABC123-DEF456"
