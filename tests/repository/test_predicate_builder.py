"""Unit tests for the dialect-parameterized predicate builder."""

from datetime import datetime, timedelta, timezone

import pytest

from catchup_feed.errors import PredicateBuildError
from catchup_feed.repository.dialect import POSTGRES_DIALECT, SQLITE_DIALECT
from catchup_feed.repository.predicate_builder import FilterCondition, PredicateBuilder


def _builder(dialect):
    return PredicateBuilder(dialect, ["title", "summary"])


class TestSQLitePredicates:
    def test_empty_input_gives_empty_predicate(self):
        predicate = _builder(SQLITE_DIALECT).build([], [])

        assert predicate.is_empty
        assert predicate.clause == ""
        assert predicate.params == ()
        assert predicate.where_sql() == ""

    def test_single_keyword_binds_pattern_per_column(self):
        predicate = _builder(SQLITE_DIALECT).build(["golang"])

        assert predicate.clause == (
            "(title LIKE ? ESCAPE '\\' OR summary LIKE ? ESCAPE '\\')"
        )
        assert predicate.params == ("%golang%", "%golang%")
        assert predicate.where_sql().startswith("WHERE (title LIKE ?")

    def test_keywords_are_and_joined_in_input_order(self):
        predicate = _builder(SQLITE_DIALECT).build(["go", "api"])

        assert predicate.clause.count(" AND ") == 1
        assert predicate.params == ("%go%", "%go%", "%api%", "%api%")

    def test_keyword_patterns_are_escaped(self):
        predicate = _builder(SQLITE_DIALECT).build(["100%_done"])

        assert predicate.params == ("%100\\%\\_done%", "%100\\%\\_done%")

    def test_conditions_follow_keywords(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        conditions = [
            FilterCondition("source_id", "=", 7),
            FilterCondition("published_at", ">=", start),
            FilterCondition("published_at", "<=", start + timedelta(days=1)),
        ]
        predicate = _builder(SQLITE_DIALECT).build(["go"], conditions)

        assert predicate.conditions[1:] == (
            "source_id = ?",
            "published_at >= ?",
            "published_at <= ?",
        )
        assert predicate.params[2:] == (
            7,
            "2024-01-01 00:00:00.000000",
            "2024-01-02 00:00:00.000000",
        )

    def test_filters_only(self):
        predicate = _builder(SQLITE_DIALECT).build([], [FilterCondition("source_id", "=", 3)])

        assert predicate.clause == "source_id = ?"
        assert predicate.params == (3,)

    def test_datetimes_are_converted_to_utc(self):
        tokyo = timezone(timedelta(hours=9))
        value = datetime(2024, 1, 1, 9, 0, tzinfo=tokyo)
        predicate = _builder(SQLITE_DIALECT).build(
            [], [FilterCondition("published_at", ">=", value)]
        )

        assert predicate.params == ("2024-01-01 00:00:00.000000",)

    def test_table_alias_prefixes_every_column(self):
        predicate = _builder(SQLITE_DIALECT).build(
            ["go"], [FilterCondition("source_id", "=", 1)], table_alias="a"
        )

        assert predicate.clause == (
            "(a.title LIKE ? ESCAPE '\\' OR a.summary LIKE ? ESCAPE '\\') AND a.source_id = ?"
        )

    def test_empty_keyword_matches_everything(self):
        predicate = _builder(SQLITE_DIALECT).build([""])

        assert not predicate.is_empty
        assert predicate.params == ("%%", "%%")


class TestPostgresPredicates:
    def test_keyword_bound_once_and_reused(self):
        predicate = _builder(POSTGRES_DIALECT).build(["golang"])

        assert predicate.clause == "(title ILIKE $1 OR summary ILIKE $1)"
        assert predicate.params == ("%golang%",)

    def test_numbering_continues_through_conditions(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = start + timedelta(days=7)
        predicate = _builder(POSTGRES_DIALECT).build(
            ["go", "api"],
            [
                FilterCondition("source_id", "=", 5),
                FilterCondition("published_at", ">=", start),
                FilterCondition("published_at", "<=", end),
            ],
            table_alias="a",
        )

        assert predicate.clause == (
            "(a.title ILIKE $1 OR a.summary ILIKE $1) AND "
            "(a.title ILIKE $2 OR a.summary ILIKE $2) AND "
            "a.source_id = $3 AND a.published_at >= $4 AND a.published_at <= $5"
        )
        assert predicate.params == ("%go%", "%api%", 5, start, end)

    def test_datetimes_stay_datetimes(self):
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        predicate = _builder(POSTGRES_DIALECT).build(
            [], [FilterCondition("published_at", ">=", value)]
        )

        assert predicate.params == (value,)

    def test_next_placeholder_follows_predicate(self):
        builder = _builder(POSTGRES_DIALECT)
        predicate = builder.build(["go"], [FilterCondition("source_id", "=", 1)])

        assert builder.next_placeholder(predicate, 1) == "$3"
        assert builder.next_placeholder(predicate, 2) == "$4"


def test_same_input_builds_identical_predicates():
    """Count and search rely on repeated builds agreeing exactly."""
    builder = _builder(POSTGRES_DIALECT)
    conditions = [FilterCondition("source_id", "=", 1)]

    first = builder.build(["go", "api"], conditions, table_alias="a")
    second = builder.build(["go", "api"], conditions, table_alias="a")

    assert first == second


@pytest.mark.parametrize(
    "condition",
    [
        FilterCondition("source_id; DROP TABLE articles", "=", 1),
        FilterCondition("source_id", "LIKE", 1),
        FilterCondition("source_id", "!=", 1),
    ],
)
def test_rejects_unsafe_conditions(condition):
    with pytest.raises(PredicateBuildError):
        _builder(SQLITE_DIALECT).build([], [condition])


def test_rejects_bad_alias_and_columns():
    with pytest.raises(PredicateBuildError):
        _builder(SQLITE_DIALECT).build(["go"], table_alias="a b")
    with pytest.raises(PredicateBuildError):
        PredicateBuilder(SQLITE_DIALECT, [])
    with pytest.raises(PredicateBuildError):
        PredicateBuilder(SQLITE_DIALECT, ["title--"])
