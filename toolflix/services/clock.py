"""
Time and identifier sources.

Services take these as constructor arguments so tests can pin the clock and
the generated ids/codes.
"""

import secrets
import time
from collections.abc import Callable
from uuid import uuid4

MS_PER_DAY = 86_400_000

TOKEN_PREFIX = "TFX"
TOKEN_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
TOKEN_BLOCK_LENGTH = 6
TOKEN_BLOCKS = 2

Clock = Callable[[], int]
IdGenerator = Callable[[], str]
CodeGenerator = Callable[[], str]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def new_id(prefix: str = "") -> str:
    """Generate a unique identifier, optionally prefixed (e.g. ``c_``)."""
    return f"{prefix}{uuid4().hex}"


def prefixed_id_generator(prefix: str) -> IdGenerator:
    """Return an IdGenerator producing ids with the given prefix."""

    def _generate() -> str:
        return new_id(prefix)

    return _generate


def generate_token_code() -> str:
    """
    Generate a human-transcribable redemption code.

    Format: TFX-XXXXXX-XXXXXX, uppercase letters and digits drawn from a
    CSPRNG (36^12 possible codes).
    """
    blocks = [
        "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_BLOCK_LENGTH))
        for _ in range(TOKEN_BLOCKS)
    ]
    return "-".join([TOKEN_PREFIX, *blocks])


def normalize_token_code(code: str) -> str:
    """Normalise a user-supplied code for lookup (trimmed, uppercase)."""
    return code.strip().upper()


class FakeClock:
    """
    Manually advanced clock for tests and scripted scenarios.

    Usage:
        clock = FakeClock(start=0)
        service = ChatService(session, clock=clock)
        clock.advance(30_000)
    """

    def __init__(self, start: int = 0) -> None:
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, ms: int) -> int:
        """Move the clock forward by ``ms`` milliseconds."""
        self.current += ms
        return self.current

    def advance_days(self, days: int) -> int:
        """Move the clock forward by whole days."""
        return self.advance(days * MS_PER_DAY)
