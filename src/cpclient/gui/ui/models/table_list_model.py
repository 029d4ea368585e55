"""List model over a single table of the local cash point database."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from PySide6.QtCore import QObject, QThreadPool, Signal, Slot

from ....api.server_api import ServerApi
from ....cache.connection_pool import ConnectionPool
from ....config import SETTINGS_UPDATED_AT_SUFFIX
from ....io.like_query import LikeQuery, quote_identifier
from ..tasks.server_update_worker import ServerUpdateSignals, ServerUpdateWorker
from .list_sql_model import ListSqlModel

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from PySide6.QtQuick import QQuickImageProvider


logger = logging.getLogger(__name__)


class TableListModel(ListSqlModel):
    """Filter and refresh the rows of one database table."""

    filterApplied = Signal(str, int)  # filter, row count

    def __init__(
        self,
        connection_name: str,
        api: ServerApi,
        image_provider: "QQuickImageProvider",
        settings,
        *,
        table: str,
        columns: Sequence[str],
        search_columns: Optional[Sequence[str]] = None,
        key_column: str = "id",
        display_column: Optional[str] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(
            connection_name,
            api,
            image_provider,
            settings,
            columns,
            key_column=key_column,
            display_column=display_column,
            parent=parent,
        )
        self._table = table
        self._search_columns = tuple(search_columns or (self.columns()[0],))
        self._pool = ConnectionPool.get_pool(self.connection_name())
        self._query = LikeQuery(self._pool, table, self.columns(), self._search_columns)
        self._update_worker: Optional[ServerUpdateWorker] = None
        self._update_signals: Optional[ServerUpdateSignals] = None

    def table(self) -> str:
        return self._table

    def submodel_arguments(self) -> Dict[str, Any]:
        arguments = super().submodel_arguments()
        arguments["table"] = self._table
        arguments["search_columns"] = self._search_columns
        return arguments

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    def set_filter_impl(self, filter_text: str, options: Dict[str, Any], escaped: bool) -> None:
        try:
            rows = self._query.fetch(filter_text, options, pattern=escaped)
        except (sqlite3.Error, RuntimeError) as exc:
            logger.error("TableListModel: filter query on %s failed: %s", self._table, exc)
            self.errorRaised.emit(str(exc))
            return
        self.reset_rows(rows)
        self.filterApplied.emit(filter_text, len(rows))

    # ------------------------------------------------------------------
    # Server refresh
    # ------------------------------------------------------------------
    def is_updating(self) -> bool:
        return self._update_worker is not None

    def update_from_server_impl(self, attempts: int) -> None:
        if self._update_worker is not None:
            logger.debug("TableListModel: update of %s already running", self._table)
            return

        signals = ServerUpdateSignals(self)
        signals.started.connect(self._on_update_started)
        signals.batchReady.connect(self._on_batch_ready)
        signals.error.connect(self._on_update_error)
        signals.finished.connect(self._on_update_finished)

        worker = ServerUpdateWorker(
            self.server_api(),
            self._table,
            signals,
            attempts=attempts,
            batch_size=self.request_batch_size(),
        )
        self._update_signals = signals
        self._update_worker = worker
        QThreadPool.globalInstance().start(worker)

    def cancel_update(self) -> None:
        if self._update_worker is not None:
            self._update_worker.cancel()

    @Slot(int)
    def _on_update_started(self, expected: int) -> None:
        self._begin_upload(expected)

    @Slot(list)
    def _on_batch_ready(self, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        columns = ", ".join(quote_identifier(name) for name in self.columns())
        placeholders = ", ".join("?" for _ in self.columns())
        statement = (
            f"INSERT OR REPLACE INTO {quote_identifier(self._table)} ({columns}) VALUES ({placeholders})"
        )
        values = [tuple(row.get(name) for name in self.columns()) for row in rows]
        try:
            self._pool.execute_many(statement, values)
        except (sqlite3.Error, RuntimeError) as exc:
            logger.error("TableListModel: storing %d rows in %s failed: %s", len(rows), self._table, exc)
            self.errorRaised.emit(str(exc))
            return
        self._record_uploaded(len(rows))

    @Slot(str)
    def _on_update_error(self, message: str) -> None:
        logger.error("TableListModel: server update of %s failed: %s", self._table, message)
        self.errorRaised.emit(message)

    @Slot(bool)
    def _on_update_finished(self, success: bool) -> None:
        signals = self._update_signals
        self._update_worker = None
        self._update_signals = None
        if signals is not None:
            signals.deleteLater()

        if success:
            stamp = datetime.now(timezone.utc).isoformat()
            self.settings().set(f"{self._table}.{SETTINGS_UPDATED_AT_SUFFIX}", stamp)
            self.refresh()
        self.updateFinished.emit(success)
