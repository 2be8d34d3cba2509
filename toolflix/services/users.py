"""
User Accounts - registration, login and experience points.

Passwords are hashed with Argon2id; sessions are stateless HS256 JWTs.
"""

from datetime import UTC, datetime, timedelta

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.config import settings
from toolflix.db.models import User
from toolflix.exceptions import (
    InvalidCredentialsError,
    NickTakenError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)
from toolflix.models.domain import UserData
from toolflix.observability.metrics import metrics
from toolflix.services.clock import Clock, IdGenerator, now_ms, prefixed_id_generator

logger = get_logger(__name__)

NICK_MAX_LENGTH = 32
PASSWORD_MIN_LENGTH = 6
XP_MAX_INCREMENT = 1000


def _to_user_data(user: User) -> UserData:
    return UserData(
        user_id=user.id,
        nick=user.nick,
        xp=user.xp,
        created_at=user.created_at,
    )


def create_access_token(
    user: UserData,
    secret: str | None = None,
    expire_days: int | None = None,
) -> str:
    """Create a signed JWT for ``user``."""
    secret = secret or settings.jwt_secret
    expire_days = expire_days if expire_days is not None else settings.user_jwt_expire_days
    now = datetime.now(UTC)
    payload = {
        "sub": user.user_id,
        "nick": user.nick,
        "role": "master" if user.nick == settings.master_nick else "user",
        "iat": now,
        "exp": now + timedelta(days=expire_days),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def verify_access_token(token: str, secret: str | None = None) -> dict[str, str | int] | None:
    """Verify a JWT and return its payload, or None when invalid or expired."""
    try:
        payload: dict[str, str | int] = jwt.decode(
            token, secret or settings.jwt_secret, algorithms=["HS256"]
        )
        return payload
    except jwt.ExpiredSignatureError:
        logger.warning("jwt_token_expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("jwt_token_invalid", error=str(e))
        return None


class UserService:
    """Service for user accounts."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = now_ms,
        id_generator: IdGenerator = prefixed_id_generator("u_"),
    ) -> None:
        self.session = session
        self.clock = clock
        self.id_generator = id_generator
        self.password_hasher = PasswordHasher()

    async def register(self, nick: str, password: str) -> UserData:
        """
        Register a new account.

        Raises:
            ValidationError: nick missing/too long or password too short
            NickTakenError: nick already registered
        """
        nick = (nick or "").strip()
        password = password or ""
        if not nick:
            raise ValidationError("nick is required", error_code="NICK_REQUIRED")
        if len(nick) > NICK_MAX_LENGTH:
            raise ValidationError(
                f"nick must be at most {NICK_MAX_LENGTH} characters", error_code="NICK_TOO_LONG"
            )
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"password must have at least {PASSWORD_MIN_LENGTH} characters",
                error_code="PASS_MIN_6",
            )

        user = User(
            id=self.id_generator(),
            nick=nick,
            password_hash=self.password_hasher.hash(password),
            xp=0,
            created_at=self.clock(),
        )
        self.session.add(user)

        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("user_register_nick_taken", nick=nick)
            raise NickTakenError(nick) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("user_register_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "user_register")
            raise StorageError("user_register") from exc

        logger.info("user_registered", user_id=user.id, nick=nick)
        return _to_user_data(user)

    async def authenticate(self, nick: str, password: str) -> UserData:
        """
        Check credentials and return the user.

        Raises:
            InvalidCredentialsError: unknown nick or wrong password
        """
        nick = (nick or "").strip()
        try:
            result = await self.session.execute(select(User).where(User.nick == nick))
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("user_lookup_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "user_login")
            raise StorageError("user_login") from exc

        user = result.scalar_one_or_none()
        if user is None:
            logger.info("user_login_rejected", reason="unknown_nick")
            raise InvalidCredentialsError()

        try:
            self.password_hasher.verify(user.password_hash, password or "")
        except (VerifyMismatchError, VerificationError, InvalidHashError) as exc:
            logger.info("user_login_rejected", reason="bad_password", user_id=user.id)
            raise InvalidCredentialsError() from exc

        return _to_user_data(user)

    async def login(self, nick: str, password: str) -> tuple[str, UserData]:
        """Authenticate and issue an access token."""
        user = await self.authenticate(nick, password)
        token = create_access_token(user)
        logger.info("user_logged_in", user_id=user.user_id)
        return token, user

    async def get_user(self, user_id: str) -> UserData:
        """Get a user by id."""
        try:
            result = await self.session.execute(
                select(User).where(User.id == user_id).execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("user_lookup_failed", user_id=user_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "user_lookup")
            raise StorageError("user_lookup") from exc

        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return _to_user_data(user)

    async def add_xp(self, user_id: str, amount: int) -> int:
        """
        Atomically add ``amount`` experience points and return the new total.

        Raises:
            ValidationError: amount outside 1..1000
            UserNotFoundError: unknown user
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or not (
            0 < amount <= XP_MAX_INCREMENT
        ):
            raise ValidationError(
                f"amount must be between 1 and {XP_MAX_INCREMENT}", error_code="AMOUNT_INVALID"
            )

        try:
            result = await self.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(xp=User.xp + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise UserNotFoundError(user_id)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("user_add_xp_failed", user_id=user_id, error=str(exc))
            metrics.record_error(type(exc).__name__, "user_add_xp")
            raise StorageError("user_add_xp") from exc

        user = await self.get_user(user_id)
        logger.info("user_xp_added", user_id=user_id, amount=amount, xp=user.xp)
        return user.xp
