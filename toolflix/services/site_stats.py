"""Global site counters (visits)."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from toolflix.db.models import SiteStat
from toolflix.db.session import dialect_insert
from toolflix.exceptions import StorageError
from toolflix.observability.metrics import metrics

logger = get_logger(__name__)

VISITS_KEY = "visits"


class SiteStatsService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def increment_visits(self) -> int:
        """Atomically add one visit and return the new total."""
        stmt = dialect_insert(self.session, SiteStat).values(key=VISITS_KEY, value=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={"value": SiteStat.value + 1},
        ).returning(SiteStat.value)
        try:
            count = await self.session.scalar(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("visits_increment_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "visits_increment")
            raise StorageError("visits_increment") from exc
        return int(count or 0)

    async def get_visits(self) -> int:
        try:
            count = await self.session.scalar(
                select(SiteStat.value).where(SiteStat.key == VISITS_KEY)
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("visits_read_failed", error=str(exc))
            metrics.record_error(type(exc).__name__, "visits_read")
            raise StorageError("visits_read") from exc
        return int(count or 0)
