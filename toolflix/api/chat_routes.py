"""
Support chat routes for signed-in users.

A user's chat is opened lazily by the first send or read and lives for the
configured TTL; once expired it is swept and the next request opens a new one.
"""

from fastapi import APIRouter, Depends

from toolflix.api.dependencies import (
    AuthenticatedUser,
    get_chat_message_service,
    get_chat_service,
    get_current_user,
)
from toolflix.models.api import (
    ChatMessageItem,
    ChatMessagesResponse,
    ChatSendRequest,
    ChatSendResponse,
)
from toolflix.services.chat import ChatService
from toolflix.services.chat_messages import ChatMessageService, validate_message_text

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/send", response_model=ChatSendResponse)
async def send_message(
    request: ChatSendRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    chats: ChatService = Depends(get_chat_service),
    messages: ChatMessageService = Depends(get_chat_message_service),
) -> ChatSendResponse:
    """
    Send a message to support.

    Answers 429 RATE_LIMITED with ``waitMs`` when the previous message in the
    chat was sent less than the rate-limit window ago.
    """
    # Reject bad bodies before a chat gets opened for them
    validate_message_text(request.message, messages.max_length)

    chat = await chats.get_or_create_active_chat(user.user_id)
    await messages.append_user_message(chat, request.message)
    return ChatSendResponse(chat_id=chat.chat_id, expires_at=chat.expires_at)


@router.get("/messages", response_model=ChatMessagesResponse)
async def get_messages(
    user: AuthenticatedUser = Depends(get_current_user),
    chats: ChatService = Depends(get_chat_service),
    messages: ChatMessageService = Depends(get_chat_message_service),
) -> ChatMessagesResponse:
    """Return the caller's active chat and its messages in send order."""
    chat = await chats.get_or_create_active_chat(user.user_id)
    items = await messages.list_messages(chat.chat_id)
    return ChatMessagesResponse(
        chat_id=chat.chat_id,
        expires_at=chat.expires_at,
        messages=[
            ChatMessageItem(sender=m.sender, message=m.message, created_at=m.created_at)
            for m in items
        ],
    )
