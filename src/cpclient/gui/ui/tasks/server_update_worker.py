from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from PySide6.QtCore import QObject, QRunnable, QThread, Signal

from ....api.server_api import ServerApi
from ....errors import ServerApiError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class ServerUpdateSignals(QObject):
    """Signals for the ServerUpdateWorker."""

    started = Signal(int)  # expected record count
    batchReady = Signal(list)  # rows of one batch
    error = Signal(str)
    finished = Signal(bool)


class ServerUpdateWorker(QRunnable):
    """Background worker that downloads a table from the server in batches."""

    RETRY_DELAY_MS = 200

    def __init__(
        self,
        api: ServerApi,
        table: str,
        signals: ServerUpdateSignals,
        *,
        attempts: int,
        batch_size: int,
        retry_delay_ms: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._api = api
        self._table = table
        self._signals = signals
        self._attempts = max(1, attempts)
        self._batch_size = max(1, batch_size)
        self._retry_delay_ms = self.RETRY_DELAY_MS if retry_delay_ms is None else retry_delay_ms
        self._cancelled = False

    @property
    def signals(self) -> ServerUpdateSignals:
        return self._signals

    def cancel(self) -> None:
        self._cancelled = True

    def run(self) -> None:
        try:
            ids = self._call_with_retries(self._api.fetch_ids, self._table)
            self._signals.started.emit(len(ids))

            for start in range(0, len(ids), self._batch_size):
                if self._cancelled:
                    logger.info("Server update for %s cancelled", self._table)
                    self._signals.finished.emit(False)
                    return
                batch = ids[start : start + self._batch_size]
                rows = self._call_with_retries(self._api.fetch_rows, self._table, batch)
                self._signals.batchReady.emit(list(rows))
        except ServerApiError as exc:
            self._signals.error.emit(str(exc))
            self._signals.finished.emit(False)
            return

        self._signals.finished.emit(True)

    def _call_with_retries(self, func: Callable[..., _T], *args: Any) -> _T:
        for attempt in range(1, self._attempts + 1):
            try:
                return func(*args)
            except ServerApiError as exc:
                logger.warning(
                    "Server request for %s failed (attempt %d/%d): %s",
                    self._table,
                    attempt,
                    self._attempts,
                    exc,
                )
                if attempt == self._attempts:
                    raise
                if self._retry_delay_ms > 0:
                    QThread.msleep(self._retry_delay_ms * attempt)
        raise ServerApiError(f"No attempts made for {self._table}")  # pragma: no cover


__all__ = ["ServerUpdateSignals", "ServerUpdateWorker"]
