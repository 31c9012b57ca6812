"""Unit tests for cosine distance to similarity conversion."""

import pytest

from catchup_feed.repository.article_embedding_repository import _distance_to_similarity


def test_distance_to_similarity_formula():
    assert _distance_to_similarity(0.0) == 1.0
    assert _distance_to_similarity(1.0) == 0.0
    assert _distance_to_similarity(2.0) == -1.0
    assert _distance_to_similarity(0.25) == pytest.approx(0.75)
