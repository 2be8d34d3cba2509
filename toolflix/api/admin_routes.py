"""
Operator routes: token issuance and the support chat console.

Protected by require_admin (X-Admin-Key or the master account's JWT).
"""

from fastapi import APIRouter, Depends
from structlog import get_logger

from toolflix.api.dependencies import (
    AdminPrincipal,
    get_chat_message_service,
    get_chat_service,
    get_token_service,
    require_admin,
)
from toolflix.exceptions import ChatNotFoundError
from toolflix.models.api import (
    ChatListResponse,
    ChatMessageItem,
    ChatMessagesResponse,
    ChatSendRequest,
    ChatSummaryItem,
    IssueTokenRequest,
    IssueTokenResponse,
    OperatorSendResponse,
)
from toolflix.services.chat import ChatService
from toolflix.services.chat_messages import ChatMessageService
from toolflix.services.tokens import TokenService

logger = get_logger(__name__)
router = APIRouter(tags=["admin"])


@router.post("/tokens/issue", response_model=IssueTokenResponse)
async def issue_token(
    request: IssueTokenRequest | None = None,
    admin: AdminPrincipal = Depends(require_admin),
    tokens: TokenService = Depends(get_token_service),
) -> IssueTokenResponse:
    """Issue a new premium token valid for ``days`` days (default 30)."""
    token = await tokens.issue_token(request.days if request else None)
    logger.info("admin_token_issued", method=admin.method, expires_at=token.expires_at)
    return IssueTokenResponse(
        token=token.code,
        created_at=token.created_at,
        expires_at=token.expires_at,
    )


@router.get("/chat/admin/list", response_model=ChatListResponse)
async def list_chats(
    admin: AdminPrincipal = Depends(require_admin),
    chats: ChatService = Depends(get_chat_service),
) -> ChatListResponse:
    """List live chats, most recently active first."""
    summaries = await chats.list_chats()
    return ChatListResponse(
        chats=[
            ChatSummaryItem(
                chat_id=s.chat_id,
                user_id=s.user_id,
                nick=s.nick,
                created_at=s.created_at,
                expires_at=s.expires_at,
                last_activity_at=s.last_activity_at,
            )
            for s in summaries
        ]
    )


@router.get("/chat/admin/{chat_id}/messages", response_model=ChatMessagesResponse)
async def get_chat_messages(
    chat_id: str,
    admin: AdminPrincipal = Depends(require_admin),
    chats: ChatService = Depends(get_chat_service),
    messages: ChatMessageService = Depends(get_chat_message_service),
) -> ChatMessagesResponse:
    """Read a live chat's messages. Expired chats are swept and answer 404."""
    await chats.sweep_expired()
    chat = await chats.get_chat(chat_id)
    if chat is None:
        raise ChatNotFoundError(chat_id)

    items = await messages.list_messages(chat_id)
    return ChatMessagesResponse(
        chat_id=chat_id,
        expires_at=chat.expires_at,
        messages=[
            ChatMessageItem(sender=m.sender, message=m.message, created_at=m.created_at)
            for m in items
        ],
    )


@router.post("/chat/admin/{chat_id}/send", response_model=OperatorSendResponse)
async def send_operator_message(
    chat_id: str,
    request: ChatSendRequest,
    admin: AdminPrincipal = Depends(require_admin),
    messages: ChatMessageService = Depends(get_chat_message_service),
) -> OperatorSendResponse:
    """Reply in a chat. Unknown chats answer 404, expired ones 410."""
    message = await messages.append_operator_message(chat_id, request.message)
    logger.info("operator_replied", chat_id=chat_id, method=admin.method)
    return OperatorSendResponse(chat_id=chat_id, created_at=message.created_at)
