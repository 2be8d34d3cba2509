"""
Database Models - SQLAlchemy ORM models with strict typing.

All timestamps are epoch milliseconds (BIGINT), the same unit the API speaks.
"""

from sqlalchemy import BigInteger, CheckConstraint, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class User(Base):
    """
    ORM model for users table.

    Owned by the accounts subsystem; chats and premium grants reference
    users by id without a foreign key.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    nick: Mapped[str] = mapped_column(String(32), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("xp >= 0", name="ck_users_xp_non_negative"),
        UniqueConstraint("nick", name="uq_users_nick"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<User(id={self.id}, nick={self.nick}, xp={self.xp})>"


class Token(Base):
    """
    ORM model for tokens table.

    One-time premium redemption codes. Rows are never deleted.
    """

    __tablename__ = "tokens"

    # Primary Key - normalised (uppercase) code
    token: Mapped[str] = mapped_column(String(32), primary_key=True)

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Redemption state
    used_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    used_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        CheckConstraint("expires_at > created_at", name="ck_tokens_expiry_after_creation"),
        Index("idx_tokens_used_by", "used_by"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Token(token={self.token}, used_by={self.used_by}, expires_at={self.expires_at})>"


class PremiumUser(Base):
    """
    ORM model for premium_users table.

    One row per user that ever redeemed a token. Grants never expire.
    """

    __tablename__ = "premium_users"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    since: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<PremiumUser(user_id={self.user_id}, since={self.since})>"


class Chat(Base):
    """
    ORM model for chats table.

    A user holds at most one chat row; expired rows are swept before any
    chat read or write, so the unique constraint on user_id also guarantees
    at most one active chat per user.
    """

    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_chats_user_id"),
        Index("idx_chats_expires_at", "expires_at"),
        Index("idx_chats_last_activity", "last_activity_at", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Chat(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"


class ChatMessage(Base):
    """
    ORM model for chat_messages table.

    Append-only; rows are removed only when their chat is swept.
    """

    __tablename__ = "chat_messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    chat_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sender: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("sender IN ('user', 'operator')", name="ck_chat_messages_sender"),
        Index("idx_chat_messages_chat_created", "chat_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<ChatMessage(id={self.id}, chat_id={self.chat_id}, sender={self.sender})>"


class SiteStat(Base):
    """ORM model for site_stats table (global counters such as visits)."""

    __tablename__ = "site_stats"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<SiteStat(key={self.key}, value={self.value})>"
