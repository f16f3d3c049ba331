"""Repository layer for ranked trend lists.

Each category (plus the derived 'overall' view) is stored as one ranked list.
Writes replace the whole list for a category inside one transaction, so a
reader sees either the previous list or the new one, never a mix.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from trendpulse.core.db import create_all, create_engine, create_session_factory
from trendpulse.core.errors import PersistenceError
from trendpulse.core.logging import get_logger
from trendpulse.core.models import Trend
from trendpulse.core.schemas import TrendItem

logger = get_logger(__name__)


class TrendStore(ABC):
    """Persistence boundary used by the pipeline."""

    @abstractmethod
    async def replace(self, category: str, items: Sequence[TrendItem]) -> int:
        """
        Replace the stored list for ``category`` with ``items``.

        Returns:
            Number of rows written

        Raises:
            PersistenceError: if the write failed; the previous list stays visible
        """

    @abstractmethod
    async def read_top(self, category: str, n: int) -> List[TrendItem]:
        """Return up to ``n`` items of ``category`` ordered by rank."""

    async def last_updated(self, category: str) -> Optional[datetime]:
        """Timestamp of the latest write for ``category``, if known."""
        return None


class SqlTrendStore(TrendStore):
    """SQLAlchemy-backed store (PostgreSQL in production, SQLite in tests)."""

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker] = None):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    @classmethod
    def from_url(cls, db_url: Optional[str] = None) -> "SqlTrendStore":
        return cls(create_engine(db_url))

    async def create_tables(self) -> None:
        await create_all(self.engine)

    async def replace(self, category: str, items: Sequence[TrendItem]) -> int:
        records = [item.to_record(storage_category=category) for item in items]

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(Trend).where(Trend.category == category))
                    session.add_all([
                        Trend(
                            category=record["category"],
                            rank=record["rank"],
                            title=record["title"],
                            summary=record["summary"],
                            source_url=record["source_url"],
                            source_name=record["source_name"],
                            change_rate=record["change_rate"],
                            payload=record["metadata"],
                        )
                        for record in records
                    ])
        except SQLAlchemyError as e:
            logger.error(f"Failed to replace trends for {category}: {e}")
            raise PersistenceError(category, str(e)) from e

        logger.info(f"Replaced {len(records)} trends for category {category}")
        return len(records)

    async def read_top(self, category: str, n: int) -> List[TrendItem]:
        try:
            async with self.session_factory() as session:
                stmt = (
                    select(Trend)
                    .where(Trend.category == category)
                    .order_by(Trend.rank.asc())
                    .limit(n)
                )
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read trends for {category}: {e}")
            raise PersistenceError(category, str(e)) from e

        return [TrendItem.from_record(row.to_record()) for row in rows]

    async def last_updated(self, category: str) -> Optional[datetime]:
        try:
            async with self.session_factory() as session:
                stmt = select(func.max(Trend.updated_at)).where(Trend.category == category)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read update time for {category}: {e}")
            raise PersistenceError(category, str(e)) from e

    async def close(self) -> None:
        await self.engine.dispose()


class InMemoryTrendStore(TrendStore):
    """Process-local store for dry runs and tests."""

    def __init__(self):
        self._lists: Dict[str, List[dict]] = {}
        self._updated: Dict[str, datetime] = {}

    async def replace(self, category: str, items: Sequence[TrendItem]) -> int:
        records = [item.to_record(storage_category=category) for item in items]
        self._lists[category] = records
        self._updated[category] = datetime.now(timezone.utc)
        return len(records)

    async def read_top(self, category: str, n: int) -> List[TrendItem]:
        records = sorted(self._lists.get(category, []), key=lambda r: r["rank"])
        return [TrendItem.from_record(record) for record in records[:n]]

    async def last_updated(self, category: str) -> Optional[datetime]:
        return self._updated.get(category)
