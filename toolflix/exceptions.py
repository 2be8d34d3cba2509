"""
Exception Classes - Strongly typed exception hierarchy.

Every error carries the HTTP status and the wire error code it maps to.
"""

from typing import Any


class ToolflixError(Exception):
    """Base exception for all ToolFlix errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def extra(self) -> dict[str, Any]:
        """Additional fields to include in the error response body."""
        return {}


# ============================================================================
# Validation (400)
# ============================================================================


class ValidationError(ToolflixError):
    """Raised when input is malformed or missing."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, error_code: str | None = None) -> None:
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(f"Validation error: {message}")


class EmptyMessageError(ValidationError):
    """Raised when a chat message is empty after trimming."""

    def __init__(self) -> None:
        super().__init__("Message cannot be empty", error_code="EMPTY_MESSAGE")


class MessageTooLongError(ValidationError):
    """Raised when a chat message exceeds the maximum length."""

    def __init__(self, length: int, max_length: int) -> None:
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Message has {length} characters, maximum is {max_length}",
            error_code="MESSAGE_TOO_LONG",
        )

    def extra(self) -> dict[str, Any]:
        return {"maxLength": self.max_length}


# ============================================================================
# Authentication / Authorization (401 / 403)
# ============================================================================


class AuthError(ToolflixError):
    """Raised when a credential is missing or invalid."""

    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str, error_code: str | None = None) -> None:
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(f"Authentication failed: {message}")


class InvalidCredentialsError(AuthError):
    """Raised when nick or password do not match."""

    def __init__(self) -> None:
        super().__init__("Invalid nick or password", error_code="INVALID")


class ForbiddenError(AuthError):
    """Raised when the caller lacks the privilege for an operation."""

    status_code = 403
    error_code = "ADMIN_OR_MASTER_REQUIRED"

    def __init__(self, message: str = "Admin key or master account required") -> None:
        super().__init__(message)


# ============================================================================
# Not Found (404)
# ============================================================================


class NotFoundError(ToolflixError):
    """Raised when a referenced resource does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class TokenNotFoundError(NotFoundError):
    """Raised when no token matches the redeemed code."""

    error_code = "TOKEN_INEXISTENTE"

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__("Token", code)


class ChatNotFoundError(NotFoundError):
    """Raised when a chat id does not exist."""

    error_code = "CHAT_NOT_FOUND"

    def __init__(self, chat_id: str) -> None:
        self.chat_id = chat_id
        super().__init__("Chat", chat_id)


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not exist."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__("User", user_id)


# ============================================================================
# Conflict (409 / 429)
# ============================================================================


class ConflictError(ToolflixError):
    """Raised when an operation conflicts with existing state."""

    status_code = 409
    error_code = "CONFLICT"


class TokenAlreadyUsedError(ConflictError):
    """Raised when a token was already redeemed by a different user."""

    error_code = "TOKEN_JA_USADO"

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Token {code} already redeemed by another user")


class NickTakenError(ConflictError):
    """Raised when registering a nick that already exists."""

    error_code = "NICK_EXISTS"

    def __init__(self, nick: str) -> None:
        self.nick = nick
        super().__init__(f"Nick already registered: {nick}")


class RateLimitedError(ConflictError):
    """Raised when a user sends chat messages too quickly."""

    status_code = 429
    error_code = "RATE_LIMITED"

    def __init__(self, wait_ms: int) -> None:
        self.wait_ms = wait_ms
        super().__init__(f"Rate limited, retry in {wait_ms} ms")

    def extra(self) -> dict[str, Any]:
        return {"waitMs": self.wait_ms}


# ============================================================================
# Expired (410)
# ============================================================================


class ExpiredError(ToolflixError):
    """Raised when a time-boxed resource is past its expiry."""

    status_code = 410
    error_code = "EXPIRED"

    def __init__(self, resource: str, resource_id: str, expires_at: int) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.expires_at = expires_at
        super().__init__(f"{resource} {resource_id} expired at {expires_at}")


class TokenExpiredError(ExpiredError):
    """Raised when redeeming a token past its expiry."""

    error_code = "TOKEN_EXPIRADO"

    def __init__(self, code: str, expires_at: int) -> None:
        self.code = code
        super().__init__("Token", code, expires_at)


class ChatExpiredError(ExpiredError):
    """Raised when an operator writes to an expired chat."""

    error_code = "CHAT_EXPIRED"

    def __init__(self, chat_id: str, expires_at: int) -> None:
        self.chat_id = chat_id
        super().__init__("Chat", chat_id, expires_at)


# ============================================================================
# Storage (500)
# ============================================================================


class StorageError(ToolflixError):
    """Raised when a persistence operation fails unexpectedly."""

    status_code = 500
    error_code = "STORAGE_ERROR"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Storage error during {operation}")
