"""
Chat Message Log - append-only messages scoped to a chat.

User messages are rate limited per chat: a new user message is rejected
while the previous one is younger than the configured spacing. Operator
replies are never rate limited, but cannot revive an expired chat.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.config import settings
from toolflix.db.models import Chat, ChatMessage
from toolflix.exceptions import (
    ChatExpiredError,
    ChatNotFoundError,
    EmptyMessageError,
    MessageTooLongError,
    RateLimitedError,
    StorageError,
)
from toolflix.models.domain import ChatData, MessageData, SenderRole
from toolflix.observability.metrics import metrics
from toolflix.services.chat import ChatService
from toolflix.services.clock import Clock, IdGenerator, now_ms, prefixed_id_generator

logger = get_logger(__name__)


def validate_message_text(text: str | None, max_length: int | None = None) -> str:
    """
    Trim and validate a chat message body.

    Raises:
        EmptyMessageError: nothing left after trimming
        MessageTooLongError: longer than ``max_length`` characters
    """
    if max_length is None:
        max_length = settings.chat_max_message_length
    cleaned = (text or "").strip()
    if not cleaned:
        raise EmptyMessageError()
    if len(cleaned) > max_length:
        raise MessageTooLongError(len(cleaned), max_length)
    return cleaned


def _to_message_data(message: ChatMessage) -> MessageData:
    return MessageData(
        message_id=message.id,
        chat_id=message.chat_id,
        sender=SenderRole(message.sender),
        message=message.message,
        created_at=message.created_at,
    )


class ChatMessageService:
    """Append and list chat messages."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = now_ms,
        id_generator: IdGenerator = prefixed_id_generator("m_"),
        chats: ChatService | None = None,
        rate_limit_ms: int | None = None,
        max_length: int | None = None,
        list_cap: int | None = None,
    ) -> None:
        self.session = session
        self.clock = clock
        self.id_generator = id_generator
        self.chats = chats or ChatService(session, clock=clock)
        self.rate_limit_ms = (
            rate_limit_ms if rate_limit_ms is not None else settings.chat_rate_limit_ms
        )
        self.max_length = max_length if max_length is not None else settings.chat_max_message_length
        self.list_cap = list_cap if list_cap is not None else settings.chat_message_list_cap

    async def append_user_message(self, chat: ChatData, text: str | None) -> MessageData:
        """
        Append a user-authored message to ``chat``.

        Raises:
            EmptyMessageError / MessageTooLongError: invalid body
            RateLimitedError: previous user message is too recent (carries wait_ms)
            StorageError: the write failed
        """
        cleaned = validate_message_text(text, self.max_length)
        now = self.clock()

        try:
            # Row lock on the chat serializes concurrent sends until commit
            await self.session.execute(
                update(Chat)
                .where(Chat.id == chat.chat_id)
                .values(last_activity_at=now)
                .execution_options(synchronize_session=False)
            )
            last_at = await self.session.scalar(
                select(ChatMessage.created_at)
                .where(
                    ChatMessage.chat_id == chat.chat_id,
                    ChatMessage.sender == SenderRole.USER.value,
                )
                .order_by(ChatMessage.created_at.desc())
                .limit(1)
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_rate_check_failed", chat_id=chat.chat_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_rate_check")
            raise StorageError("chat_rate_check") from exc

        if last_at is not None:
            elapsed = now - last_at
            if elapsed < self.rate_limit_ms:
                wait_ms = self.rate_limit_ms - elapsed
                await self.session.rollback()
                metrics.chat_rate_limited_total.inc()
                logger.info(
                    "chat_rate_limited",
                    chat_id=chat.chat_id,
                    user_id=chat.user_id,
                    wait_ms=wait_ms,
                )
                raise RateLimitedError(wait_ms)

        return await self._append(chat.chat_id, SenderRole.USER, cleaned, now)

    async def append_operator_message(self, chat_id: str, text: str | None) -> MessageData:
        """
        Append an operator reply to an existing, unexpired chat.

        Raises:
            EmptyMessageError / MessageTooLongError: invalid body
            ChatNotFoundError: unknown chat id
            ChatExpiredError: the chat is past its expiry
            StorageError: the write failed
        """
        cleaned = validate_message_text(text, self.max_length)
        now = self.clock()

        chat = await self.chats.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        if chat.is_expired(now):
            raise ChatExpiredError(chat_id, chat.expires_at)

        return await self._append(chat_id, SenderRole.OPERATOR, cleaned, now)

    async def _append(self, chat_id: str, sender: SenderRole, text: str, now: int) -> MessageData:
        message = ChatMessage(
            id=self.id_generator(),
            chat_id=chat_id,
            sender=sender.value,
            message=text,
            created_at=now,
        )
        self.session.add(message)

        # Commits the pending insert together with the activity update
        await self.chats.touch_activity(chat_id, now)

        metrics.record_chat_message(sender.value)
        logger.info("chat_message_appended", chat_id=chat_id, sender=sender.value)

        return MessageData(
            message_id=message.id,
            chat_id=chat_id,
            sender=sender,
            message=text,
            created_at=now,
        )

    async def list_messages(self, chat_id: str, limit: int | None = None) -> list[MessageData]:
        """
        List a chat's messages in ascending creation order.

        Returns at most ``limit`` of the earliest messages, never more than
        the configured cap.
        """
        cap = self.list_cap if limit is None else max(0, min(limit, self.list_cap))
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .limit(cap)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_messages_list_failed", chat_id=chat_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_messages_list")
            raise StorageError("chat_messages_list") from exc
        return [_to_message_data(message) for message in result.scalars().all()]
