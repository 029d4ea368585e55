"""In-memory row storage owned by a list model."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set


class RowStore:
    """Hold the rows currently shown by a model and their selection state.

    Rows are plain dictionaries keyed by column name.  Selection is tracked by
    row key (the ``key_column`` value) so it survives a reload that returns
    the same records in a different order.
    """

    def __init__(self, key_column: str = "id") -> None:
        self._key_column = key_column
        self._rows: List[Dict[str, Any]] = []
        self._row_lookup: Dict[Any, int] = {}
        self._selected: Set[Any] = set()

    @property
    def rows(self) -> List[Dict[str, Any]]:
        return self._rows

    @property
    def key_column(self) -> str:
        return self._key_column

    def row_count(self) -> int:
        return len(self._rows)

    def set_rows(self, rows: Iterable[Dict[str, Any]]) -> None:
        """Replace the stored rows, keeping selection for keys still present."""
        self._rows = [dict(row) for row in rows]
        self.rebuild_lookup()
        self._selected &= set(self._row_lookup)

    def rebuild_lookup(self) -> None:
        self._row_lookup = {}
        for index, row in enumerate(self._rows):
            key = row.get(self._key_column)
            if key is not None:
                self._row_lookup[key] = index

    def row_at(self, row: int) -> Optional[Dict[str, Any]]:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def index_of(self, key: Any) -> Optional[int]:
        return self._row_lookup.get(key)

    def value(self, row: int, column: str) -> Any:
        data = self.row_at(row)
        if data is None:
            return None
        return data.get(column)

    def set_value(self, row: int, column: str, value: Any) -> bool:
        """Store *value* in *column* of *row*; return ``True`` when it changed."""
        data = self.row_at(row)
        if data is None:
            return False
        if column in data and data[column] == value:
            return False
        data[column] = value
        if column == self._key_column:
            self.rebuild_lookup()
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def is_selected(self, row: int) -> bool:
        data = self.row_at(row)
        if data is None:
            return False
        return data.get(self._key_column) in self._selected

    def set_selected(self, row: int, selected: bool) -> bool:
        """Update the selection flag of *row*; return ``True`` when it changed."""
        data = self.row_at(row)
        if data is None:
            return False
        key = data.get(self._key_column)
        if key is None or (key in self._selected) == selected:
            return False
        if selected:
            self._selected.add(key)
        else:
            self._selected.discard(key)
        return True

    def selected_rows(self) -> List[int]:
        return sorted(self._row_lookup[key] for key in self._selected if key in self._row_lookup)

    def clear_selection(self) -> List[int]:
        """Drop every selection flag and return the rows that were selected."""
        rows = self.selected_rows()
        self._selected.clear()
        return rows
