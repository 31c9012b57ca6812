"""Dialect descriptors for the two supported SQL backends.

A descriptor captures everything the predicate builder and the repositories
need to know about a backend's query text: placeholder style, the substring
match operator, the escape clause that makes backslash escapes effective, and
how bound values must be shaped.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from catchup_feed.config import SQLITE_MAX_PARAMETERS, DatabaseBackend
from catchup_feed.utils import ensure_utc

# Matches SQLAlchemy's storage format for DateTime columns on SQLite
SQLITE_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class PlaceholderStyle(str, Enum):
    QMARK = "qmark"  # ?
    NUMERIC_DOLLAR = "numeric_dollar"  # $1, $2, ...


@dataclass(frozen=True)
class SqlDialect:
    """Query-text properties of one backend."""

    name: str
    placeholder_style: PlaceholderStyle
    pattern_operator: str
    escape_clause: str = ""
    max_parameters: Optional[int] = None
    supports_array_binding: bool = False
    datetime_as_text: bool = False

    @property
    def reuses_placeholders(self) -> bool:
        """Numbered placeholders can be referenced more than once with one bound value."""
        return self.placeholder_style == PlaceholderStyle.NUMERIC_DOLLAR

    def placeholder(self, position: int) -> str:
        """Placeholder for the 1-based parameter ``position``."""
        if self.placeholder_style == PlaceholderStyle.NUMERIC_DOLLAR:
            return f"${position}"
        return "?"

    def pattern_match(self, column: str, placeholder: str) -> str:
        return f"{column} {self.pattern_operator} {placeholder}{self.escape_clause}"

    def bind_value(self, value: Any) -> Any:
        """Shape a filter value the way the driver and stored data expect it."""
        if isinstance(value, datetime):
            value = ensure_utc(value)
            if self.datetime_as_text:
                return value.replace(tzinfo=None).strftime(SQLITE_DATETIME_FORMAT)
        return value


SQLITE_DIALECT = SqlDialect(
    name="sqlite",
    placeholder_style=PlaceholderStyle.QMARK,
    pattern_operator="LIKE",
    # SQLite LIKE has no default escape character
    escape_clause=" ESCAPE '\\'",
    max_parameters=SQLITE_MAX_PARAMETERS,
    datetime_as_text=True,
)

POSTGRES_DIALECT = SqlDialect(
    name="postgresql",
    placeholder_style=PlaceholderStyle.NUMERIC_DOLLAR,
    pattern_operator="ILIKE",
    supports_array_binding=True,
)


def dialect_for(backend: DatabaseBackend) -> SqlDialect:
    if backend == DatabaseBackend.POSTGRES:
        return POSTGRES_DIALECT
    return SQLITE_DIALECT
