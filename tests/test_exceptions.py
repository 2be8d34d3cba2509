"""
Tests for exception classes.

Covers status codes, wire error codes, attributes and extra response fields.
"""

import pytest

from toolflix.exceptions import (
    AuthError,
    ChatExpiredError,
    ChatNotFoundError,
    ConflictError,
    EmptyMessageError,
    ExpiredError,
    ForbiddenError,
    InvalidCredentialsError,
    MessageTooLongError,
    NickTakenError,
    NotFoundError,
    RateLimitedError,
    StorageError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenNotFoundError,
    ToolflixError,
    UserNotFoundError,
    ValidationError,
)


class TestToolflixError:
    """Tests for the base class."""

    def test_is_exception(self):
        """ToolflixError is a subclass of Exception."""
        assert issubclass(ToolflixError, Exception)

    def test_defaults(self):
        """The base error is a 500 with no extra fields."""
        exc = ToolflixError("boom")
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.extra() == {}


class TestStatusAndCodes:
    """Every concrete error maps to its HTTP status and code."""

    @pytest.mark.parametrize(
        "exc,status_code,error_code",
        [
            (ValidationError("bad"), 400, "VALIDATION_ERROR"),
            (ValidationError("bad", error_code="DAYS_INVALID"), 400, "DAYS_INVALID"),
            (EmptyMessageError(), 400, "EMPTY_MESSAGE"),
            (MessageTooLongError(600, 500), 400, "MESSAGE_TOO_LONG"),
            (AuthError("no"), 401, "UNAUTHORIZED"),
            (InvalidCredentialsError(), 401, "INVALID"),
            (ForbiddenError(), 403, "ADMIN_OR_MASTER_REQUIRED"),
            (TokenNotFoundError("TFX-A"), 404, "TOKEN_INEXISTENTE"),
            (ChatNotFoundError("c_1"), 404, "CHAT_NOT_FOUND"),
            (UserNotFoundError("u_1"), 404, "NOT_FOUND"),
            (TokenAlreadyUsedError("TFX-A"), 409, "TOKEN_JA_USADO"),
            (NickTakenError("alice"), 409, "NICK_EXISTS"),
            (RateLimitedError(1000), 429, "RATE_LIMITED"),
            (TokenExpiredError("TFX-A", 5), 410, "TOKEN_EXPIRADO"),
            (ChatExpiredError("c_1", 5), 410, "CHAT_EXPIRED"),
            (StorageError("token_redeem"), 500, "STORAGE_ERROR"),
        ],
    )
    def test_mapping(self, exc, status_code, error_code):
        assert exc.status_code == status_code
        assert exc.error_code == error_code

    def test_error_code_override_is_per_instance(self):
        """Overriding the code on one instance leaves the class default alone."""
        ValidationError("bad", error_code="NICK_REQUIRED")
        assert ValidationError("bad").error_code == "VALIDATION_ERROR"


class TestHierarchy:
    """Subclasses are catchable by their family."""

    def test_families(self):
        assert isinstance(EmptyMessageError(), ValidationError)
        assert isinstance(ForbiddenError(), AuthError)
        assert isinstance(TokenNotFoundError("x"), NotFoundError)
        assert isinstance(RateLimitedError(1), ConflictError)
        assert isinstance(ChatExpiredError("c", 1), ExpiredError)


class TestExtraFields:
    """Tests for extra response fields."""

    def test_rate_limited_carries_wait(self):
        """RateLimitedError reports waitMs."""
        exc = RateLimitedError(wait_ms=12_345)
        assert exc.wait_ms == 12_345
        assert exc.extra() == {"waitMs": 12_345}
        assert "12345" in str(exc)

    def test_message_too_long_carries_limit(self):
        """MessageTooLongError reports maxLength."""
        exc = MessageTooLongError(length=600, max_length=500)
        assert exc.extra() == {"maxLength": 500}
        assert "600" in str(exc)

    def test_expired_carries_expiry(self):
        """Expired errors keep the expiry instant."""
        exc = TokenExpiredError("TFX-A", expires_at=42)
        assert exc.expires_at == 42
        assert exc.code == "TFX-A"

    def test_storage_error_hides_details(self):
        """StorageError names only the operation."""
        exc = StorageError("chat_open")
        assert exc.operation == "chat_open"
        assert str(exc) == "Storage error during chat_open"
