"""Tests for the per-operation observer hook."""

import pytest

from catchup_feed.errors import NoRowsAffectedError
from catchup_feed.repository.article_repository import ArticleRepository


class RecordingObserver:
    def __init__(self):
        self.events = []

    def __call__(self, operation, duration, row_count, error):
        self.events.append((operation, duration, row_count, error))


@pytest.mark.asyncio
async def test_observer_sees_successful_queries(session_maker, app_config, sample_articles):
    observer = RecordingObserver()
    repository = ArticleRepository(session_maker, app_config, observer=observer)

    rows = await repository.search_with_filters(["go"])
    page, total = await repository.search_with_filters_paginated(["go"], None, 0, 2)

    assert [event[0] for event in observer.events] == [
        "search_with_filters",
        "search_with_filters_paginated",
    ]
    assert observer.events[0][2] == len(rows) == 4
    assert observer.events[1][2] == len(page) == 2
    assert all(event[1] >= 0 for event in observer.events)
    assert all(event[3] is None for event in observer.events)


@pytest.mark.asyncio
async def test_observer_not_called_for_short_circuited_search(session_maker, app_config):
    observer = RecordingObserver()
    repository = ArticleRepository(session_maker, app_config, observer=observer)

    assert await repository.search_with_filters([]) == []
    assert observer.events == []


@pytest.mark.asyncio
async def test_observer_sees_errors_raised_by_the_unit_of_work(session_maker, app_config):
    observer = RecordingObserver()
    repository = ArticleRepository(session_maker, app_config, observer=observer)

    with pytest.raises(NoRowsAffectedError) as exc:
        await repository.delete(12345)

    ((operation, _, row_count, error),) = observer.events
    assert operation == "delete"
    assert row_count == 0
    assert error is exc.value
