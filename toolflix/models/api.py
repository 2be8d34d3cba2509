"""
API Models - Pydantic models for request/response validation.

Wire format is camelCase; Python attributes stay snake_case through aliases.
Request fields default to empty values so the services can report the
specific error code for a missing field.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from toolflix.models.domain import SenderRole


class ApiModel(BaseModel):
    """Base model emitting camelCase and accepting either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OkResponse(ApiModel):
    """Bare success acknowledgement."""

    ok: bool = True


# ============================================================================
# Account Models
# ============================================================================


class RegisterRequest(ApiModel):
    """POST /auth/register request body."""

    nick: str = ""
    password: str = ""


class LoginRequest(ApiModel):
    """POST /auth/login request body."""

    nick: str = ""
    password: str = ""


class UserProfile(ApiModel):
    """Public user profile."""

    id: str
    nick: str
    xp: int


class LoginResponse(ApiModel):
    """POST /auth/login response."""

    ok: bool = True
    token: str
    user: UserProfile


class MeResponse(ApiModel):
    """GET /users/me response."""

    ok: bool = True
    user: UserProfile


class AddXpRequest(ApiModel):
    """POST /users/me/xp request body."""

    amount: int = 0


class AddXpResponse(ApiModel):
    """POST /users/me/xp response."""

    ok: bool = True
    xp: int


# ============================================================================
# Token / Premium Models
# ============================================================================


class IssueTokenRequest(ApiModel):
    """POST /tokens/issue request body."""

    days: StrictInt | None = Field(None, description="Validity window in days (default 30)")


class IssueTokenResponse(ApiModel):
    """POST /tokens/issue response."""

    ok: bool = True
    token: str
    created_at: int
    expires_at: int


class RedeemTokenRequest(ApiModel):
    """POST /tokens/redeem request body."""

    token: str = ""
    user_id: str = ""


class RedeemTokenResponse(ApiModel):
    """POST /tokens/redeem response - rejected redemptions carry a reason."""

    ok: bool
    valid: bool
    reason: Literal["TOKEN_INEXISTENTE", "TOKEN_EXPIRADO", "TOKEN_JA_USADO"] | None = None
    user_id: str | None = None


class PremiumStatusResponse(ApiModel):
    """GET /premium/{userId} response."""

    ok: bool = True
    premium: bool
    since: int | None = None


class PremiumCountResponse(ApiModel):
    """GET /premium/count response."""

    ok: bool = True
    total_premium: int


# ============================================================================
# Chat Models
# ============================================================================


class ChatSendRequest(ApiModel):
    """POST /chat/send and POST /chat/admin/{chatId}/send request body."""

    message: str | None = None


class ChatSendResponse(ApiModel):
    """POST /chat/send response."""

    ok: bool = True
    chat_id: str
    expires_at: int


class ChatMessageItem(ApiModel):
    """Single chat message in listings."""

    sender: SenderRole
    message: str
    created_at: int


class ChatMessagesResponse(ApiModel):
    """GET /chat/messages response."""

    ok: bool = True
    chat_id: str
    expires_at: int | None = None
    messages: list[ChatMessageItem]


class OperatorSendResponse(ApiModel):
    """POST /chat/admin/{chatId}/send response."""

    ok: bool = True
    chat_id: str
    created_at: int


class ChatSummaryItem(ApiModel):
    """Chat row for the operator listing."""

    chat_id: str
    user_id: str
    nick: str | None = None
    created_at: int
    expires_at: int
    last_activity_at: int


class ChatListResponse(ApiModel):
    """GET /chat/admin/list response."""

    ok: bool = True
    chats: list[ChatSummaryItem]


# ============================================================================
# Site Stats / Health Models
# ============================================================================


class VisitsResponse(ApiModel):
    """GET/POST /stats/visits response."""

    ok: bool = True
    count: int


class HealthResponse(BaseModel):
    """GET /health response."""

    status: Literal["healthy", "unhealthy"]
    database: Literal["connected", "disconnected"]
    timestamp: str
