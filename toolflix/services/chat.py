"""
Chat Session Manager - one time-boxed support chat per user.

Per-user states are NoActiveChat and ActiveChat. An expired chat is never
served: every read or write first sweeps chats whose expiry has passed
(together with their messages), collapsing ExpiredChat back to NoActiveChat.

Chats are opened lazily by the user's first send or read. Creation is an
``INSERT ... ON CONFLICT (user_id) DO NOTHING`` against the unique
constraint on chats.user_id, so concurrent first requests from one user
converge on a single row instead of racing a check-then-insert.
"""

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.config import settings
from toolflix.db.models import Chat, ChatMessage, User
from toolflix.db.session import dialect_insert
from toolflix.exceptions import StorageError, ValidationError
from toolflix.models.domain import ChatData, ChatSummary, SweepResult
from toolflix.observability.metrics import metrics
from toolflix.services.clock import Clock, IdGenerator, now_ms, prefixed_id_generator

logger = get_logger(__name__)


def _to_chat_data(chat: Chat) -> ChatData:
    return ChatData(
        chat_id=chat.id,
        user_id=chat.user_id,
        created_at=chat.created_at,
        expires_at=chat.expires_at,
        last_activity_at=chat.last_activity_at,
    )


class ChatService:
    """
    Chat lifecycle over the chats table.

    Usage:
        service = ChatService(db)
        chat = await service.get_or_create_active_chat(user_id)
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = now_ms,
        id_generator: IdGenerator = prefixed_id_generator("c_"),
        ttl_ms: int | None = None,
    ) -> None:
        self.session = session
        self.clock = clock
        self.id_generator = id_generator
        self.ttl_ms = ttl_ms if ttl_ms is not None else settings.chat_ttl_ms

    async def sweep_expired(self, now: int | None = None) -> SweepResult:
        """
        Delete every chat with ``expires_at < now`` and its messages.

        Idempotent and safe to run concurrently; deleting nothing is not an error.
        """
        if now is None:
            now = self.clock()
        try:
            result = await self._sweep(now)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_sweep_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_sweep")
            raise StorageError("chat_sweep") from exc
        return result

    async def _sweep(self, now: int) -> SweepResult:
        expired_ids = select(Chat.id).where(Chat.expires_at < now)

        messages = await self.session.execute(
            delete(ChatMessage)
            .where(ChatMessage.chat_id.in_(expired_ids))
            .execution_options(synchronize_session=False)
        )
        chats = await self.session.execute(
            delete(Chat).where(Chat.expires_at < now).execution_options(synchronize_session=False)
        )

        result = SweepResult(
            chats_deleted=max(chats.rowcount or 0, 0),
            messages_deleted=max(messages.rowcount or 0, 0),
        )
        if result.chats_deleted or result.messages_deleted:
            metrics.record_sweep(result.chats_deleted, result.messages_deleted)
            logger.info(
                "expired_chats_swept",
                chats_deleted=result.chats_deleted,
                messages_deleted=result.messages_deleted,
            )
        return result

    async def _find_active(self, user_id: str, now: int) -> Chat | None:
        stmt = (
            select(Chat)
            .where(Chat.user_id == user_id, Chat.expires_at >= now)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_active_chat(self, user_id: str) -> ChatData:
        """
        Return the user's active chat, opening a new one if there is none.

        Always sweeps expired chats first. A new chat gets
        ``created_at = last_activity_at = now`` and ``expires_at = now + TTL``.
        """
        user_id = (user_id or "").strip()
        if not user_id:
            raise ValidationError("userId is required", error_code="USER_ID_REQUIRED")

        now = self.clock()
        created = False

        try:
            await self._sweep(now)

            chat = await self._find_active(user_id, now)
            if chat is None:
                insert_result = await self.session.execute(
                    dialect_insert(self.session, Chat)
                    .values(
                        id=self.id_generator(),
                        user_id=user_id,
                        created_at=now,
                        expires_at=now + self.ttl_ms,
                        last_activity_at=now,
                    )
                    .on_conflict_do_nothing(index_elements=["user_id"])
                )
                created = insert_result.rowcount == 1
                chat = await self._find_active(user_id, now)

            await self.session.commit()

        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_open_failed", user_id=user_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_open")
            raise StorageError("chat_open") from exc

        if chat is None:
            logger.error("chat_open_inconsistent", user_id=user_id)
            raise StorageError("chat_open")

        if created:
            metrics.chats_created_total.inc()
            logger.info("chat_created", chat_id=chat.id, user_id=user_id, expires_at=chat.expires_at)

        return _to_chat_data(chat)

    async def get_chat(self, chat_id: str) -> ChatData | None:
        """Look up a chat by id, expired or not."""
        try:
            result = await self.session.execute(
                select(Chat).where(Chat.id == chat_id).execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_lookup_failed", chat_id=chat_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_lookup")
            raise StorageError("chat_lookup") from exc
        chat = result.scalar_one_or_none()
        return _to_chat_data(chat) if chat else None

    async def touch_activity(self, chat_id: str, now: int | None = None) -> None:
        """
        Set ``last_activity_at`` for the operator listing and commit.

        Any writes already pending on the session commit together with it.
        """
        if now is None:
            now = self.clock()
        try:
            await self.session.execute(
                update(Chat)
                .where(Chat.id == chat_id)
                .values(last_activity_at=now)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_touch_failed", chat_id=chat_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_touch")
            raise StorageError("chat_touch") from exc

    async def list_chats(self) -> list[ChatSummary]:
        """
        List live chats, most recently active first.

        Ties on activity are broken by creation time, newest first.
        """
        await self.sweep_expired()

        stmt = (
            select(Chat, User.nick)
            .outerjoin(User, User.id == Chat.user_id)
            .order_by(Chat.last_activity_at.desc(), Chat.created_at.desc())
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("chat_list_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "chat_list")
            raise StorageError("chat_list") from exc

        return [
            ChatSummary(
                chat_id=chat.id,
                user_id=chat.user_id,
                nick=nick,
                created_at=chat.created_at,
                expires_at=chat.expires_at,
                last_activity_at=chat.last_activity_at,
            )
            for chat, nick in result.all()
        ]
