"""Base class shared by the article, source and embedding repositories."""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, TypeVar

from loguru import logger
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catchup_feed import db
from catchup_feed.config import CatchupFeedConfig
from catchup_feed.errors import CatchupFeedError, DuplicateError, SearchTimeoutError, StorageError
from catchup_feed.repository.dialect import SqlDialect, dialect_for

T = TypeVar("T")


class SearchObserver(Protocol):
    """Receives one call per repository operation.

    ``error`` is None on success. Argument validation failures never reach the
    observer because they are raised before a query is issued; errors raised while
    the unit of work runs do.
    """

    def __call__(
        self,
        operation: str,
        duration: float,
        row_count: int,
        error: Optional[BaseException],
    ) -> None: ...


def _default_row_count(result: Any) -> int:
    if result is None:
        return 0
    if isinstance(result, (list, tuple, dict, set)):
        return len(result)
    return 1


class Repository:
    """Runs queries inside a scoped session and maps backend failures to typed errors."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_config: CatchupFeedConfig,
        observer: Optional[SearchObserver] = None,
    ):
        self.session_maker = session_maker
        self.app_config = app_config
        self.dialect: SqlDialect = dialect_for(app_config.database_backend)
        self.observer = observer

    @property
    def search_timeout(self) -> float:
        return self.app_config.search_timeout

    async def execute_driver_sql(
        self, session: AsyncSession, sql: str, params: Sequence[Any] = ()
    ) -> CursorResult:
        """Run dialect-specific SQL with positional parameters straight through the driver."""
        logger.trace(f"Executing SQL: {sql}")
        conn = await session.connection()
        if params:
            return await conn.exec_driver_sql(sql, tuple(params))
        return await conn.exec_driver_sql(sql)

    async def run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
        timeout: Optional[float] = None,
        failure_message: Optional[str] = None,
        row_count: Callable[[T], int] = _default_row_count,
    ) -> T:
        """Run ``work`` in a fresh scoped session.

        Args:
            operation: Name used in logs, error messages and observer events
            work: Coroutine function receiving the session
            timeout: Deadline in seconds for the whole unit of work, or None
            failure_message: Overrides the default "query failed" tag
            row_count: Derives the observed row count from the result

        Raises:
            SearchTimeoutError: the deadline passed before ``work`` finished
            DuplicateError: a unique constraint rejected the write
            StorageError: any other backend failure
        """
        started = time.perf_counter()
        try:
            async with db.scoped_session(self.session_maker) as session:
                if timeout is None:
                    result = await work(session)
                else:
                    result = await asyncio.wait_for(work(session), timeout)
        except asyncio.TimeoutError as exc:
            error = SearchTimeoutError(
                operation, timeout or 0.0, failure_message or StorageError.default_message
            )
            logger.warning(f"{operation} timed out after {timeout}s")
            self._notify(operation, started, 0, error)
            raise error from exc
        except IntegrityError as exc:
            error = self._integrity_error(operation, exc, failure_message)
            logger.error(f"{operation} failed: {type(exc).__name__}")
            self._notify(operation, started, 0, error)
            raise error from exc
        except SQLAlchemyError as exc:
            error = StorageError(operation, failure_message)
            # Only the exception type: the driver message can contain row values
            logger.error(f"{operation} failed: {type(exc).__name__}")
            self._notify(operation, started, 0, error)
            raise error from exc
        except CatchupFeedError as exc:
            # Raised by work itself: zero rows affected, corrupt stored values
            self._notify(operation, started, 0, exc)
            raise

        count = row_count(result)
        logger.debug(f"{operation} returned {count} row(s)")
        self._notify(operation, started, count, None)
        return result

    def _integrity_error(
        self, operation: str, exc: IntegrityError, failure_message: Optional[str]
    ) -> StorageError:
        detail = str(exc.orig).lower()
        if "unique" in detail or "duplicate" in detail:
            return DuplicateError(operation)
        return StorageError(operation, failure_message)

    def _notify(
        self,
        operation: str,
        started: float,
        row_count: int,
        error: Optional[BaseException],
    ) -> None:
        if self.observer is None:
            return
        self.observer(operation, time.perf_counter() - started, row_count, error)
