"""
Domain Models - Internal business logic models using dataclasses.

All data structures returned by services are strongly typed immutable
dataclasses; routes translate them into API models.
"""

from dataclasses import dataclass
from enum import Enum


class SenderRole(str, Enum):
    """Author role of a chat message."""

    USER = "user"
    OPERATOR = "operator"


@dataclass(frozen=True)
class UserData:
    """Immutable user profile snapshot (no credential material)."""

    user_id: str
    nick: str
    xp: int
    created_at: int


@dataclass(frozen=True)
class TokenData:
    """Immutable token snapshot."""

    code: str
    created_at: int
    expires_at: int
    used_by: str | None
    used_at: int | None

    def __post_init__(self) -> None:
        """Validate token constraints."""
        if self.expires_at <= self.created_at:
            raise ValueError(
                f"Token expiry must be after creation: {self.created_at} >= {self.expires_at}"
            )

    @property
    def is_redeemed(self) -> bool:
        """True once any user redeemed the token."""
        return self.used_by is not None

    def is_expired(self, now: int) -> bool:
        """True when ``now`` is past the expiry instant."""
        return now > self.expires_at


@dataclass(frozen=True)
class RedemptionResult:
    """Outcome of a successful token redemption."""

    code: str
    user_id: str
    redeemed_at: int
    premium_since: int
    valid: bool = True


@dataclass(frozen=True)
class PremiumStatus:
    """Premium entitlement for a single user."""

    user_id: str
    premium: bool
    since: int | None = None


@dataclass(frozen=True)
class ChatData:
    """Immutable chat session snapshot."""

    chat_id: str
    user_id: str
    created_at: int
    expires_at: int
    last_activity_at: int

    def is_expired(self, now: int) -> bool:
        """True when ``now`` is past the expiry instant."""
        return now > self.expires_at


@dataclass(frozen=True)
class ChatSummary:
    """Chat row for the operator listing, with the owner's nick when known."""

    chat_id: str
    user_id: str
    nick: str | None
    created_at: int
    expires_at: int
    last_activity_at: int


@dataclass(frozen=True)
class MessageData:
    """Immutable chat message snapshot."""

    message_id: str
    chat_id: str
    sender: SenderRole
    message: str
    created_at: int


@dataclass(frozen=True)
class SweepResult:
    """Rows removed by one expired-chat sweep."""

    chats_deleted: int
    messages_deleted: int
