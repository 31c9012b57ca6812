"""Shared WHERE-predicate construction for keyword and filter searches.

Search, count and paginated search all take their predicate from one
``PredicateBuilder.build`` call so the three queries cannot disagree about
which rows match. The builder returns the predicate body only; callers add the
``WHERE`` introducer (see ``Predicate.where_sql``) so the same output works in
``SELECT ...`` and ``SELECT COUNT(*) ...`` statements.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from loguru import logger

from catchup_feed.errors import PredicateBuildError
from catchup_feed.repository.dialect import SqlDialect
from catchup_feed.repository.escape import escape_like_pattern

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
COMPARISON_OPERATORS = frozenset({"=", ">=", "<="})


@dataclass(frozen=True)
class FilterCondition:
    """One structured filter: ``column operator value``."""

    column: str
    operator: str
    value: Any


@dataclass(frozen=True)
class Predicate:
    """A parameterized predicate body plus its bound values in placeholder order."""

    clause: str = ""
    params: tuple[Any, ...] = ()
    conditions: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.clause

    def where_sql(self) -> str:
        return f"WHERE {self.clause}" if self.clause else ""


class PredicateBuilder:
    """Builds keyword + filter predicates for one table and one dialect.

    Each keyword becomes a grouped ``(col_a OP p OR col_b OP p)`` condition, so a
    keyword must appear in at least one keyword column, and every keyword must
    match. Filter conditions follow the keyword groups in the order given.
    """

    def __init__(self, dialect: SqlDialect, keyword_columns: Sequence[str]):
        if not keyword_columns:
            raise PredicateBuildError("at least one keyword column is required")
        for column in keyword_columns:
            _check_identifier(column)
        self.dialect = dialect
        self.keyword_columns = tuple(keyword_columns)

    def build(
        self,
        keywords: Sequence[str],
        conditions: Sequence[FilterCondition] = (),
        table_alias: Optional[str] = None,
    ) -> Predicate:
        """Build the predicate for ``keywords`` and ``conditions``.

        Args:
            keywords: Free-text terms, matched literally (wildcards are escaped)
            conditions: Structured filters, already in binding order
            table_alias: Prefix for column references, required when the
                predicate is reused inside a joined query

        Returns:
            An empty Predicate when there is nothing to filter on, otherwise the
            AND-joined clause and its parameters.
        """
        if table_alias is not None and table_alias != "":
            _check_identifier(table_alias)
        prefix = f"{table_alias}." if table_alias else ""

        parts: list[str] = []
        params: list[Any] = []

        for keyword in keywords:
            pattern = escape_like_pattern(keyword)
            matches = []
            if self.dialect.reuses_placeholders:
                params.append(pattern)
                placeholder = self.dialect.placeholder(len(params))
                for column in self.keyword_columns:
                    matches.append(self.dialect.pattern_match(f"{prefix}{column}", placeholder))
            else:
                for column in self.keyword_columns:
                    params.append(pattern)
                    placeholder = self.dialect.placeholder(len(params))
                    matches.append(self.dialect.pattern_match(f"{prefix}{column}", placeholder))
            parts.append("(" + " OR ".join(matches) + ")")

        for condition in conditions:
            _check_identifier(condition.column)
            if condition.operator not in COMPARISON_OPERATORS:
                raise PredicateBuildError(f"unsupported operator: {condition.operator!r}")
            params.append(self.dialect.bind_value(condition.value))
            placeholder = self.dialect.placeholder(len(params))
            parts.append(f"{prefix}{condition.column} {condition.operator} {placeholder}")

        if not parts:
            return Predicate()

        clause = " AND ".join(parts)
        logger.trace(f"Built predicate: {clause}")
        return Predicate(clause=clause, params=tuple(params), conditions=tuple(parts))

    def next_placeholder(self, predicate: Predicate, offset: int = 1) -> str:
        """Placeholder for a parameter appended after the predicate's own parameters."""
        return self.dialect.placeholder(len(predicate.params) + offset)


def _check_identifier(name: str) -> None:
    if not IDENTIFIER_PATTERN.match(name):
        raise PredicateBuildError(f"invalid SQL identifier: {name!r}")
