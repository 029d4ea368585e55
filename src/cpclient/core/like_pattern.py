"""Translate user search text into SQL ``LIKE`` patterns."""

from __future__ import annotations

ANY_SEQUENCE = "%"
ANY_CHAR = "_"


def escape_filter(text: str) -> str:
    """Return a ``LIKE`` pattern built from the user search *text*.

    Literal ``_`` and ``%`` are dropped first, then the shell-style wildcards
    are translated (``*`` to ``%``, ``?`` to ``_``).  The result is always
    wrapped in ``%`` so the search matches anywhere in the column.

    >>> escape_filter("a_b%c")
    '%abc%'
    >>> escape_filter("*ab?")
    '%ab_%'
    >>> escape_filter("")
    '%%'
    """

    pattern = text.replace(ANY_CHAR, "").replace(ANY_SEQUENCE, "")
    pattern = pattern.replace("*", ANY_SEQUENCE).replace("?", ANY_CHAR)

    # Both ends are checked before either wildcard is added, so an empty
    # pattern becomes ``%%``.
    needs_prefix = not pattern.startswith(ANY_SEQUENCE)
    needs_suffix = not pattern.endswith(ANY_SEQUENCE)
    if needs_prefix:
        pattern = ANY_SEQUENCE + pattern
    if needs_suffix:
        pattern = pattern + ANY_SEQUENCE
    return pattern
