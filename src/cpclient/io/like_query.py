from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..cache.connection_pool import ConnectionPool

logger = logging.getLogger(__name__)

_SQLITE_MAX_INT = 2**63 - 1


class LikeQuery:
    """Run filtered ``SELECT`` statements against one table of a pooled database.

    Table and column names come from model configuration and are quoted as
    identifiers; the filter text and option values are always bound as
    parameters.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        table: str,
        columns: Sequence[str],
        search_columns: Optional[Sequence[str]] = None,
    ) -> None:
        if not columns:
            raise ValueError("LikeQuery requires at least one column")
        self._pool = pool
        self._table = table
        self._columns = list(columns)
        self._search_columns = list(search_columns or columns[:1])
        unknown = [name for name in self._search_columns if name not in self._columns]
        if unknown:
            raise ValueError(f"Unknown search columns for {table}: {unknown}")

    @property
    def table(self) -> str:
        return self._table

    def fetch(
        self, filter_text: str, options: Optional[Mapping[str, Any]] = None, *, pattern: bool = True
    ) -> List[Dict[str, Any]]:
        """Return the rows matching *filter_text*.

        With *pattern* set the text is treated as a ``LIKE`` pattern over the
        search columns; otherwise a non-empty text must equal one of them and
        an empty text selects every row.
        """

        query, params = self.build(filter_text, options or {}, pattern=pattern)
        logger.debug("LikeQuery: %s %r", query, params)
        rows = self._pool.execute_query(query, params)
        return [dict(row) for row in rows]

    def build(
        self, filter_text: str, options: Mapping[str, Any], *, pattern: bool = True
    ) -> Tuple[str, List[Any]]:
        columns = ", ".join(quote_identifier(name) for name in self._columns)
        query = f"SELECT {columns} FROM {quote_identifier(self._table)}"
        params: List[Any] = []

        if pattern or filter_text:
            operator = "LIKE" if pattern else "="
            clauses = [f"{quote_identifier(name)} {operator} ?" for name in self._search_columns]
            query += " WHERE " + " OR ".join(clauses)
            params.extend(filter_text for _ in self._search_columns)

        order = options.get("order")
        if order is not None:
            if order in self._columns:
                direction = "DESC" if bool(options.get("desc", False)) else "ASC"
                query += f" ORDER BY {quote_identifier(order)} {direction}"
            else:
                logger.warning("Ignoring unknown order column %r for %s", order, self._table)

        limit = _positive_int(options.get("limit"), "limit", minimum=1)
        offset = _positive_int(options.get("offset"), "offset", minimum=0)
        if limit is not None or offset is not None:
            query += " LIMIT ?"
            params.append(limit if limit is not None else -1)
            if offset is not None:
                query += " OFFSET ?"
                params.append(offset)

        return query, params


def quote_identifier(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _positive_int(value: Any, name: str, *, minimum: int) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Ignoring non-numeric %s option: %r", name, value)
        return None
    if isinstance(value, float) and not math.isfinite(value):
        logger.warning("Ignoring non-finite %s option: %r", name, value)
        return None
    number = int(value)
    # SQLite binds integers as signed 64-bit values.
    if number < minimum or number > _SQLITE_MAX_INT:
        logger.warning("Ignoring out of range %s option: %r", name, value)
        return None
    return number
