"""Base list model bridging the local row store, the server API and QML views."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING, Tuple, Type

from PySide6.QtCore import QAbstractListModel, QModelIndex, QObject, Qt, Signal, Slot

from ....api.server_api import ServerApi
from ....cache.row_store import RowStore
from ....config import (
    DEFAULT_ATTEMPTS_COUNT,
    DEFAULT_BATCH_SIZE,
    SETTINGS_ATTEMPTS_KEY,
    SETTINGS_BATCH_SIZE_KEY,
)
from ....core.like_pattern import escape_filter
from ....errors import MalformedOptionsError, OptionsNotAnObjectError
from ....utils.jsonio import parse_json_object
from .roles import Roles, column_for_role, role_names

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from PySide6.QtQuick import QQuickImageProvider


logger = logging.getLogger(__name__)


class ListSqlModel(QAbstractListModel):
    """Expose rows of a local database table to Qt views.

    Filtering is deferred: :meth:`set_filter` only emits :attr:`filterRequest`,
    which is connected back to this model with a queued connection.  The
    options payload is decoded on the next event loop turn and the concrete
    query runs in :meth:`set_filter_impl`, so the caller never waits for the
    database and never sees a decoding error.
    """

    filterRequest = Signal(str, str, bool)  # filter, options, escaped
    uploadProgress = Signal(int, int)
    updateFinished = Signal(bool)
    errorRaised = Signal(str)

    def __init__(
        self,
        connection_name: str,
        api: ServerApi,
        image_provider: "QQuickImageProvider",
        settings,
        columns: Sequence[str],
        *,
        key_column: str = "id",
        display_column: Optional[str] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        if api is None:
            raise ValueError("ListSqlModel requires a ServerApi instance")
        if image_provider is None:
            raise ValueError("ListSqlModel requires an image provider")
        if settings is None:
            raise ValueError("ListSqlModel requires a settings object")
        if not columns:
            raise ValueError("ListSqlModel requires at least one column")
        if key_column not in columns:
            raise ValueError(f"Key column {key_column!r} is not one of {list(columns)}")
        if display_column is not None and display_column not in columns:
            raise ValueError(f"Display column {display_column!r} is not one of {list(columns)}")

        self._connection_name = str(connection_name)
        self._api = api
        self._image_provider = image_provider
        self._settings = settings
        self._columns = tuple(columns)
        self._display_column = display_column or self._columns[0]
        self._store = RowStore(key_column)

        self._escape_filter = True
        self._last_filter_request: Optional[Tuple[str, str, bool]] = None
        self._attempts_count = DEFAULT_ATTEMPTS_COUNT
        self._request_batch_size = DEFAULT_BATCH_SIZE
        self._expected_upload_count = 0
        self._uploaded_count = 0
        self.restore_server_preferences()

        self._role_names = role_names(super().roleNames(), self._columns)

        self.filterRequest.connect(
            self._on_filter_dispatched, Qt.ConnectionType.QueuedConnection
        )

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    def connection_name(self) -> str:
        return self._connection_name

    def server_api(self) -> ServerApi:
        return self._api

    def image_provider(self) -> "QQuickImageProvider":
        return self._image_provider

    def settings(self):
        return self._settings

    def columns(self) -> Sequence[str]:
        return self._columns

    def row_store(self) -> RowStore:
        return self._store

    def submodel_arguments(self) -> Dict[str, Any]:
        """Return the constructor keywords a submodel inherits from this model."""
        return {
            "columns": self._columns,
            "key_column": self._store.key_column,
            "display_column": self._display_column,
        }

    # ------------------------------------------------------------------
    # Server preferences
    # ------------------------------------------------------------------
    def restore_server_preferences(self) -> None:
        self._attempts_count = _coerce_count(
            self._settings.get(SETTINGS_ATTEMPTS_KEY, DEFAULT_ATTEMPTS_COUNT),
            DEFAULT_ATTEMPTS_COUNT,
        )
        self._request_batch_size = _coerce_count(
            self._settings.get(SETTINGS_BATCH_SIZE_KEY, DEFAULT_BATCH_SIZE),
            DEFAULT_BATCH_SIZE,
        )

    def attempts_count(self) -> int:
        return self._attempts_count

    def set_attempts_count(self, count: int) -> None:
        self._attempts_count = max(1, int(count))

    def request_batch_size(self) -> int:
        return self._request_batch_size

    def set_request_batch_size(self, size: int) -> None:
        self._request_batch_size = max(1, int(size))

    def expected_upload_count(self) -> int:
        return self._expected_upload_count

    def uploaded_count(self) -> int:
        return self._uploaded_count

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    def need_escape_filter(self) -> bool:
        """Return ``True`` when filter text is turned into a ``LIKE`` pattern."""
        return self._escape_filter

    def set_escape_filter(self, enabled: bool) -> None:
        self._escape_filter = bool(enabled)

    @staticmethod
    def escape_filter(text: str) -> str:
        return escape_filter(text)

    @Slot(str, str)
    def set_filter(self, filter_text: str, options: str = "{}") -> None:
        """Queue a filter change; the query runs on a later event loop turn."""
        escaped = self.need_escape_filter()
        if escaped:
            filter_text = escape_filter(filter_text)
        self.filterRequest.emit(filter_text, options, escaped)

    @Slot(str, str, bool)
    def _on_filter_dispatched(
        self, filter_text: str, options: str, escaped: bool = True
    ) -> None:
        self._last_filter_request = (filter_text, options, escaped)
        try:
            parsed = parse_json_object(options)
        except MalformedOptionsError:
            logger.warning("Cannot parse filter options json: %r", options)
            parsed = {}
        except OptionsNotAnObjectError:
            logger.warning("Filter options must be json object: %r", options)
            parsed = {}
        self.set_filter_impl(filter_text, parsed, escaped)

    def set_filter_impl(self, filter_text: str, options: Dict[str, Any], escaped: bool) -> None:
        """Run the query for *filter_text* and reload the rows.

        *escaped* tells whether *filter_text* went through :func:`escape_filter`
        when :meth:`set_filter` queued it.
        """
        raise NotImplementedError

    def refresh(self) -> bool:
        """Queue the last applied filter request again.

        Returns ``False`` when no filter has been applied yet.
        """
        if self._last_filter_request is None:
            return False
        self.filterRequest.emit(*self._last_filter_request)
        return True

    # ------------------------------------------------------------------
    # Server refresh
    # ------------------------------------------------------------------
    def update_from_server(self) -> None:
        self.update_from_server_impl(self.attempts_count())

    def update_from_server_impl(self, attempts: int) -> None:
        """Fetch fresh records from the server, retrying up to *attempts* times."""
        raise NotImplementedError

    def _begin_upload(self, expected: int) -> None:
        self._expected_upload_count = max(0, expected)
        self._uploaded_count = 0
        self.uploadProgress.emit(self._uploaded_count, self._expected_upload_count)

    def _record_uploaded(self, count: int) -> None:
        self._uploaded_count = min(
            self._uploaded_count + count, self._expected_upload_count
        )
        self.uploadProgress.emit(self._uploaded_count, self._expected_upload_count)

    # ------------------------------------------------------------------
    # Row storage
    # ------------------------------------------------------------------
    def reset_rows(self, rows: Sequence[Dict[str, Any]]) -> None:
        """Replace every row and tell attached views to reload."""
        self.beginResetModel()
        self._store.set_rows(rows)
        self.endResetModel()

    def selected_rows(self) -> List[int]:
        return self._store.selected_rows()

    def clear_selection(self) -> None:
        for row in self._store.clear_selection():
            model_index = self.index(row, 0)
            self.dataChanged.emit(model_index, model_index, [int(Roles.SELECTED)])

    # ------------------------------------------------------------------
    # Qt model implementation
    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return self._store.row_count()

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < self._store.row_count()):
            return None
        row = index.row()
        if role == Roles.INDEX:
            return row
        if role == Roles.SELECTED:
            return self._store.is_selected(row)
        column = self._column_for(role)
        if column is None:
            return None
        return self._store.value(row, column)

    def setData(
        self, index: QModelIndex, value: Any, role: int = Qt.ItemDataRole.EditRole
    ) -> bool:  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < self._store.row_count()):
            return False
        row = index.row()
        if role == Roles.SELECTED:
            if self._store.set_selected(row, bool(value)):
                self.dataChanged.emit(index, index, [int(Roles.SELECTED)])
            return True
        column = self._column_for(role)
        if column is None:
            return super().setData(index, value, role)
        if self._store.set_value(row, column, value):
            self.dataChanged.emit(index, index, [int(role)])
        return True

    def roleNames(self) -> Dict[int, Any]:  # type: ignore[override]
        return self._role_names

    def _column_for(self, role: int) -> Optional[str]:
        if role in (Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole):
            return self._display_column
        return column_for_role(int(role), self._columns)


def create_submodel(
    source: ListSqlModel,
    model_cls: Optional[Type[ListSqlModel]] = None,
    **overrides: Any,
) -> ListSqlModel:
    """Build a model sharing *source*'s connection, API, image provider and settings.

    The collaborators are shared, not copied; keyword *overrides* replace the
    constructor arguments inherited through :meth:`ListSqlModel.submodel_arguments`.
    """

    cls = model_cls or type(source)
    arguments = source.submodel_arguments()
    arguments.update(overrides)
    submodel = cls(
        source.connection_name(),
        source.server_api(),
        source.image_provider(),
        source.settings(),
        **arguments,
    )
    submodel.set_escape_filter(source.need_escape_filter())
    submodel.set_attempts_count(source.attempts_count())
    submodel.set_request_batch_size(source.request_batch_size())
    return submodel


def _coerce_count(value: Any, default: int) -> int:
    try:
        count = int(round(float(value)))
    except (TypeError, ValueError):
        return default
    return max(1, count)
