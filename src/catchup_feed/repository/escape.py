"""Wildcard escaping for LIKE / ILIKE substring patterns."""


def escape_like_pattern(term: str) -> str:
    """Return a pattern that matches ``term`` as a literal substring.

    Backslash is escaped first so the escapes added for ``%`` and ``_`` are not
    doubled. An empty term yields ``%%``, which matches every row.

    Examples:
        "50%" -> "%50\\%%"
        "snake_case" -> "%snake\\_case%"
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
