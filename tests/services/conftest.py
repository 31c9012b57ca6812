import pytest

from catchup_feed.services.article_service import ArticleService
from catchup_feed.services.source_service import SourceService


@pytest.fixture
def article_service(article_repository, app_config) -> ArticleService:
    return ArticleService(article_repository, app_config)


@pytest.fixture
def source_service(source_repository) -> SourceService:
    return SourceService(source_repository)
