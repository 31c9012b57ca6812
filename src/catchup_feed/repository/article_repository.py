"""Repository for articles: CRUD, keyword/filter search and URL existence checks."""

from typing import Any, List, Optional, Sequence

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catchup_feed.config import CatchupFeedConfig
from catchup_feed.errors import NoRowsAffectedError, TooManyParametersError
from catchup_feed.models import Article as ArticleModel
from catchup_feed.models import Source as SourceModel
from catchup_feed.repository.predicate_builder import FilterCondition, Predicate, PredicateBuilder
from catchup_feed.repository.repository import Repository, SearchObserver
from catchup_feed.schemas.feed import (
    Article,
    ArticleCreate,
    ArticleSearchFilters,
    ArticleWithSource,
)
from catchup_feed.utils import ensure_utc, utc_now

ARTICLE_ALIAS = "a"
ARTICLE_COLUMNS = "a.id, a.source_id, a.title, a.url, a.summary, a.published_at, a.created_at"
NEWEST_FIRST = "ORDER BY a.published_at DESC, a.id DESC"


def _article_from_row(row: Row) -> Article:
    mapping = row._mapping
    return Article.model_validate({key: mapping[key] for key in Article.model_fields})


def _article_with_source_from_row(row: Row) -> ArticleWithSource:
    return ArticleWithSource(article=_article_from_row(row), source_name=row._mapping["source_name"])


def article_filter_conditions(filters: Optional[ArticleSearchFilters]) -> List[FilterCondition]:
    """Translate article filters into conditions in binding order: source, from, to."""
    if filters is None:
        return []
    conditions = []
    if filters.source_id is not None:
        conditions.append(FilterCondition("source_id", "=", filters.source_id))
    if filters.published_from is not None:
        conditions.append(FilterCondition("published_at", ">=", filters.published_from))
    if filters.published_to is not None:
        conditions.append(FilterCondition("published_at", "<=", filters.published_to))
    return conditions


class ArticleRepository(Repository):
    """Repository for Article rows.

    Keyword search, filtered count and paginated search all build their WHERE
    clause through ``_article_predicate`` so they always agree on the matching
    rows. When there are no keywords and no filters, article search returns
    nothing: searching implies an intent to filter.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_config: CatchupFeedConfig,
        observer: Optional[SearchObserver] = None,
    ):
        super().__init__(session_maker, app_config, observer)
        self.predicates = PredicateBuilder(self.dialect, ["title", "summary"])

    def _article_predicate(
        self, keywords: Sequence[str], filters: Optional[ArticleSearchFilters]
    ) -> Predicate:
        return self.predicates.build(
            keywords, article_filter_conditions(filters), table_alias=ARTICLE_ALIAS
        )

    # Listing and lookups

    async def list_all(self) -> List[Article]:
        async def work(session: AsyncSession) -> List[Article]:
            query = select(ArticleModel).order_by(
                ArticleModel.published_at.desc(), ArticleModel.id.desc()
            )
            result = await session.execute(query)
            return [Article.model_validate(obj) for obj in result.scalars().all()]

        return await self.run("list_all", work)

    async def list_with_source(self) -> List[ArticleWithSource]:
        async def work(session: AsyncSession) -> List[ArticleWithSource]:
            sql = (
                f"SELECT {ARTICLE_COLUMNS}, s.name AS source_name "
                "FROM articles a INNER JOIN sources s ON a.source_id = s.id "
                f"{NEWEST_FIRST}"
            )
            result = await self.execute_driver_sql(session, sql)
            return [_article_with_source_from_row(row) for row in result.fetchall()]

        return await self.run("list_with_source", work)

    async def list_with_source_paginated(self, offset: int, limit: int) -> List[ArticleWithSource]:
        async def work(session: AsyncSession) -> List[ArticleWithSource]:
            sql = (
                f"SELECT {ARTICLE_COLUMNS}, s.name AS source_name "
                "FROM articles a INNER JOIN sources s ON a.source_id = s.id "
                f"{NEWEST_FIRST} "
                f"LIMIT {self.dialect.placeholder(1)} OFFSET {self.dialect.placeholder(2)}"
            )
            result = await self.execute_driver_sql(session, sql, (limit, offset))
            return [_article_with_source_from_row(row) for row in result.fetchall()]

        return await self.run("list_with_source_paginated", work)

    async def count(self) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(select(func.count()).select_from(ArticleModel))
            return int(result.scalar_one())

        return await self.run("count", work)

    async def get_by_id(self, article_id: int) -> Optional[Article]:
        async def work(session: AsyncSession) -> Optional[Article]:
            obj = await session.get(ArticleModel, article_id)
            return Article.model_validate(obj) if obj is not None else None

        return await self.run("get_by_id", work)

    async def get_with_source(self, article_id: int) -> Optional[ArticleWithSource]:
        async def work(session: AsyncSession) -> Optional[ArticleWithSource]:
            query = (
                select(ArticleModel, SourceModel.name)
                .join(SourceModel, ArticleModel.source_id == SourceModel.id)
                .where(ArticleModel.id == article_id)
            )
            row = (await session.execute(query)).first()
            if row is None:
                return None
            article, source_name = row
            return ArticleWithSource(article=Article.model_validate(article), source_name=source_name)

        return await self.run("get_with_source", work)

    # Search

    async def search(self, keyword: str) -> List[Article]:
        """Articles whose title or summary contains ``keyword``, newest first.

        An empty keyword matches every article.
        """
        return await self.search_with_filters([keyword], None)

    async def search_with_filters(
        self, keywords: Sequence[str], filters: Optional[ArticleSearchFilters] = None
    ) -> List[Article]:
        """Articles matching every keyword and every filter, newest first."""
        predicate = self._article_predicate(keywords, filters)
        if predicate.is_empty:
            logger.debug("Article search without keywords or filters, returning no rows")
            return []

        async def work(session: AsyncSession) -> List[Article]:
            sql = f"SELECT {ARTICLE_COLUMNS} FROM articles a {predicate.where_sql()} {NEWEST_FIRST}"
            result = await self.execute_driver_sql(session, sql, predicate.params)
            return [_article_from_row(row) for row in result.fetchall()]

        return await self.run("search_with_filters", work, timeout=self.search_timeout)

    async def count_matching(
        self, keywords: Sequence[str], filters: Optional[ArticleSearchFilters] = None
    ) -> int:
        """Number of rows ``search_with_filters`` returns for the same arguments."""
        predicate = self._article_predicate(keywords, filters)
        if predicate.is_empty:
            return 0

        async def work(session: AsyncSession) -> int:
            return await self._count(session, predicate)

        return await self.run("count_matching", work, timeout=self.search_timeout)

    async def search_with_filters_paginated(
        self,
        keywords: Sequence[str],
        filters: Optional[ArticleSearchFilters],
        offset: int,
        limit: int,
    ) -> tuple[List[ArticleWithSource], int]:
        """One page of matching articles joined with their source name, plus the total count.

        Count and page run in one session under a single deadline.
        """
        predicate = self._article_predicate(keywords, filters)
        if predicate.is_empty:
            return [], 0

        limit_placeholder = self.predicates.next_placeholder(predicate, 1)
        offset_placeholder = self.predicates.next_placeholder(predicate, 2)
        sql = (
            f"SELECT {ARTICLE_COLUMNS}, s.name AS source_name "
            "FROM articles a INNER JOIN sources s ON a.source_id = s.id "
            f"{predicate.where_sql()} {NEWEST_FIRST} "
            f"LIMIT {limit_placeholder} OFFSET {offset_placeholder}"
        )

        async def work(session: AsyncSession) -> tuple[List[ArticleWithSource], int]:
            total = await self._count(session, predicate)
            result = await self.execute_driver_sql(
                session, sql, (*predicate.params, limit, offset)
            )
            return [_article_with_source_from_row(row) for row in result.fetchall()], total

        return await self.run(
            "search_with_filters_paginated",
            work,
            timeout=self.search_timeout,
            row_count=lambda page: len(page[0]),
        )

    async def _count(self, session: AsyncSession, predicate: Predicate) -> int:
        sql = f"SELECT COUNT(*) FROM articles a {predicate.where_sql()}"
        result = await self.execute_driver_sql(session, sql, predicate.params)
        return int(result.scalar_one())

    # Writes

    async def create(self, data: ArticleCreate) -> Article:
        async def work(session: AsyncSession) -> Article:
            obj = ArticleModel(
                source_id=data.source_id,
                title=data.title,
                url=data.url,
                summary=data.summary,
                published_at=ensure_utc(data.published_at),
                created_at=utc_now(),
            )
            session.add(obj)
            await session.flush()
            return Article.model_validate(obj)

        return await self.run("create", work)

    async def update(self, article: Article) -> Article:
        """Write every mutable field of ``article``. ``created_at`` is never changed."""

        async def work(session: AsyncSession) -> Article:
            result = await session.execute(
                update(ArticleModel)
                .where(ArticleModel.id == article.id)
                .values(
                    source_id=article.source_id,
                    title=article.title,
                    url=article.url,
                    summary=article.summary,
                    published_at=ensure_utc(article.published_at),
                )
            )
            if result.rowcount == 0:
                raise NoRowsAffectedError("update")
            return article

        return await self.run("update", work)

    async def delete(self, article_id: int) -> None:
        async def work(session: AsyncSession) -> None:
            result = await session.execute(delete(ArticleModel).where(ArticleModel.id == article_id))
            if result.rowcount == 0:
                raise NoRowsAffectedError("delete")

        await self.run("delete", work)

    # Existence checks

    async def exists_by_url(self, url: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            query = select(ArticleModel.id).where(ArticleModel.url == url).limit(1)
            return (await session.execute(query)).first() is not None

        return await self.run("exists_by_url", work)

    def _parameter_ceiling(self) -> int:
        ceiling = self.app_config.batch_max_parameters
        if self.dialect.max_parameters is not None:
            ceiling = min(ceiling, self.dialect.max_parameters)
        return ceiling

    async def exists_by_url_batch(self, urls: Sequence[str]) -> dict[str, bool]:
        """Map each stored URL among ``urls`` to True. URLs that are not stored are omitted.

        Raises:
            TooManyParametersError: the input exceeds the backend's bound-parameter
                ceiling and chunking is disabled
        """
        unique_urls = list(dict.fromkeys(urls))
        if not unique_urls:
            return {}

        batches: List[List[Any]]
        if self.dialect.supports_array_binding:
            batches = [unique_urls]
        else:
            ceiling = self._parameter_ceiling()
            if len(unique_urls) > ceiling and not self.app_config.batch_chunking_enabled:
                raise TooManyParametersError("exists_by_url_batch", len(unique_urls), ceiling)
            batches = [unique_urls[i : i + ceiling] for i in range(0, len(unique_urls), ceiling)]

        async def work(session: AsyncSession) -> dict[str, bool]:
            found: dict[str, bool] = {}
            for batch in batches:
                if self.dialect.supports_array_binding:
                    sql = f"SELECT url FROM articles WHERE url = ANY({self.dialect.placeholder(1)})"
                    params: tuple[Any, ...] = (batch,)
                else:
                    placeholders = ", ".join(
                        self.dialect.placeholder(i + 1) for i in range(len(batch))
                    )
                    sql = f"SELECT url FROM articles WHERE url IN ({placeholders})"
                    params = tuple(batch)
                result = await self.execute_driver_sql(session, sql, params)
                for (url,) in result.fetchall():
                    found[url] = True
            return found

        return await self.run("exists_by_url_batch", work)
