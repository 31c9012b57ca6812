"""Repository for feed sources."""

from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catchup_feed.config import CatchupFeedConfig
from catchup_feed.errors import NoRowsAffectedError, StorageError, ValidationError
from catchup_feed.models import Source as SourceModel
from catchup_feed.repository.predicate_builder import FilterCondition, Predicate, PredicateBuilder
from catchup_feed.repository.repository import Repository, SearchObserver
from catchup_feed.schemas.feed import (
    Source,
    SourceCreate,
    SourceSearchFilters,
    SourceType,
    dump_scraper_config,
    parse_scraper_config,
)
from catchup_feed.utils import ensure_utc

SOURCE_COLUMNS = "id, name, feed_url, last_crawled_at, active, source_type, scraper_config"
SOURCE_FIELDS = SOURCE_COLUMNS.split(", ")


def source_from_values(operation: str, values: Mapping[str, Any]) -> Source:
    """Build a Source from a stored row, decoding its scraper config.

    Raises:
        StorageError: the stored source type or scraper config cannot be decoded
    """
    try:
        source_type = SourceType(values["source_type"] or SourceType.RSS.value)
    except ValueError as exc:
        raise StorageError(operation, "unknown source_type") from exc

    raw_config = values["scraper_config"]
    scraper_config = None
    if raw_config is not None:
        try:
            scraper_config = parse_scraper_config(source_type, raw_config)
        except ValidationError as exc:
            raise StorageError(operation, "corrupt scraper_config") from exc

    return Source(
        id=values["id"],
        name=values["name"],
        feed_url=values["feed_url"],
        last_crawled_at=values["last_crawled_at"],
        active=values["active"],
        source_type=source_type,
        scraper_config=scraper_config,
    )


def _model_values(obj: SourceModel) -> dict[str, Any]:
    return {field: getattr(obj, field) for field in SOURCE_FIELDS}


def source_filter_conditions(filters: Optional[SourceSearchFilters]) -> List[FilterCondition]:
    """Translate source filters into conditions in binding order: type, then active."""
    if filters is None:
        return []
    conditions = []
    if filters.source_type is not None:
        conditions.append(FilterCondition("source_type", "=", filters.source_type.value))
    if filters.active is not None:
        conditions.append(FilterCondition("active", "=", filters.active))
    return conditions


class SourceRepository(Repository):
    """Repository for Source rows.

    Unlike article search, a source search with no keywords and no filters is a
    browse: it returns every source.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_config: CatchupFeedConfig,
        observer: Optional[SearchObserver] = None,
    ):
        super().__init__(session_maker, app_config, observer)
        self.predicates = PredicateBuilder(self.dialect, ["name", "feed_url"])

    def _source_predicate(
        self, keywords: Sequence[str], filters: Optional[SourceSearchFilters]
    ) -> Predicate:
        return self.predicates.build(keywords, source_filter_conditions(filters))

    async def get_by_id(self, source_id: int) -> Optional[Source]:
        async def work(session: AsyncSession) -> Optional[Source]:
            obj = await session.get(SourceModel, source_id)
            if obj is None:
                return None
            return source_from_values("get_by_id", _model_values(obj))

        return await self.run("get_by_id", work)

    async def list_all(self) -> List[Source]:
        return await self._list("list_all", active_only=False)

    async def list_active(self) -> List[Source]:
        return await self._list("list_active", active_only=True)

    async def _list(self, operation: str, active_only: bool) -> List[Source]:
        async def work(session: AsyncSession) -> List[Source]:
            query = select(SourceModel).order_by(SourceModel.id)
            if active_only:
                query = query.where(SourceModel.active.is_(True))
            result = await session.execute(query)
            return [source_from_values(operation, _model_values(obj)) for obj in result.scalars()]

        return await self.run(operation, work)

    async def search(self, keyword: str) -> List[Source]:
        """Sources whose name or feed URL contains ``keyword``."""
        return await self.search_with_filters([keyword], None)

    async def search_with_filters(
        self, keywords: Sequence[str], filters: Optional[SourceSearchFilters] = None
    ) -> List[Source]:
        """Sources matching every keyword and every filter, ordered by id."""
        predicate = self._source_predicate(keywords, filters)

        async def work(session: AsyncSession) -> List[Source]:
            sql = f"SELECT {SOURCE_COLUMNS} FROM sources {predicate.where_sql()} ORDER BY id ASC"
            result = await self.execute_driver_sql(session, sql, predicate.params)
            return [
                source_from_values("search_with_filters", row._mapping) for row in result.fetchall()
            ]

        return await self.run("search_with_filters", work, timeout=self.search_timeout)

    async def count_matching(
        self, keywords: Sequence[str], filters: Optional[SourceSearchFilters] = None
    ) -> int:
        predicate = self._source_predicate(keywords, filters)

        async def work(session: AsyncSession) -> int:
            sql = f"SELECT COUNT(*) FROM sources {predicate.where_sql()}"
            result = await self.execute_driver_sql(session, sql, predicate.params)
            return int(result.scalar_one())

        return await self.run("count_matching", work, timeout=self.search_timeout)

    async def create(self, data: SourceCreate) -> Source:
        """Insert a source. A missing source type means RSS.

        Raises:
            ValidationError: the scraper config does not fit the source type
        """
        source_type = data.source_type or SourceType.RSS
        scraper_config = parse_scraper_config(source_type, data.scraper_config)

        async def work(session: AsyncSession) -> Source:
            obj = SourceModel(
                name=data.name,
                feed_url=data.feed_url,
                active=data.active,
                source_type=source_type.value,
                scraper_config=dump_scraper_config(scraper_config),
            )
            session.add(obj)
            await session.flush()
            return source_from_values("create", _model_values(obj))

        return await self.run("create", work)

    async def update(self, source: Source) -> Source:
        """Write name, feed URL, active flag, type and config. ``last_crawled_at`` is left alone."""
        scraper_config = parse_scraper_config(source.source_type, source.scraper_config)

        async def work(session: AsyncSession) -> Source:
            result = await session.execute(
                update(SourceModel)
                .where(SourceModel.id == source.id)
                .values(
                    name=source.name,
                    feed_url=source.feed_url,
                    active=source.active,
                    source_type=source.source_type.value,
                    scraper_config=dump_scraper_config(scraper_config),
                )
            )
            if result.rowcount == 0:
                raise NoRowsAffectedError("update")
            return source

        return await self.run("update", work)

    async def delete(self, source_id: int) -> None:
        """Delete a source. Its articles go with it (ON DELETE CASCADE)."""

        async def work(session: AsyncSession) -> None:
            result = await session.execute(delete(SourceModel).where(SourceModel.id == source_id))
            if result.rowcount == 0:
                raise NoRowsAffectedError("delete")

        await self.run("delete", work)

    async def touch_crawled_at(self, source_id: int, crawled_at: datetime) -> None:
        async def work(session: AsyncSession) -> None:
            result = await session.execute(
                update(SourceModel)
                .where(SourceModel.id == source_id)
                .values(last_crawled_at=ensure_utc(crawled_at))
            )
            if result.rowcount == 0:
                raise NoRowsAffectedError("touch_crawled_at")

        await self.run("touch_crawled_at", work)
