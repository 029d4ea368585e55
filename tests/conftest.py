import os
import sqlite3
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Ensure the project sources are importable without an editable install.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

pytest.importorskip("PySide6", reason="PySide6 is required for model tests", exc_type=ImportError)

from PySide6.QtCore import QCoreApplication, QEventLoop

from cpclient.api.server_api import ServerApi
from cpclient.cache.connection_pool import ConnectionPool
from cpclient.errors import ServerApiError

TOWN_COLUMNS = ("id", "name", "name_tr", "big")

TOWN_ROWS = [
    (1, "Moscow", "Moskva", 1),
    (2, "Murmansk", "Murmansk", 0),
    (3, "Saint Petersburg", "Sankt-Peterburg", 1),
    (4, "Tula", "Tula", 0),
    (5, "Omsk", "Omsk", 1),
]


class FakeSettings:
    """Dictionary-backed stand-in for the application settings object."""

    def __init__(self, values: Dict[str, Any] | None = None) -> None:
        self.values: Dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value


class FakeServerApi(ServerApi):
    """Serve records from memory, optionally failing the first few calls."""

    def __init__(self, records: Sequence[Dict[str, Any]] = (), failures: int = 0) -> None:
        self.records = {record["id"]: dict(record) for record in records}
        self.failures = failures
        self.calls: List[tuple] = []

    def _maybe_fail(self) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise ServerApiError("server unavailable")

    def fetch_ids(self, table: str) -> List[Any]:
        self.calls.append(("ids", table))
        self._maybe_fail()
        return sorted(self.records)

    def fetch_rows(self, table: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        self.calls.append(("rows", table, list(ids)))
        self._maybe_fail()
        return [self.records[record_id] for record_id in ids]


@pytest.fixture(scope="session")
def qapp() -> QCoreApplication:
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def drain(qapp: QCoreApplication):
    """Return a helper that runs queued events until nothing is left."""

    def _drain() -> None:
        for _ in range(5):
            qapp.processEvents(QEventLoop.ProcessEventsFlag.AllEvents, 50)

    return _drain


@pytest.fixture
def settings() -> FakeSettings:
    return FakeSettings()


@pytest.fixture
def server_api() -> FakeServerApi:
    return FakeServerApi()


@pytest.fixture
def image_provider() -> object:
    return object()


@pytest.fixture
def towns_db(tmp_path: Path) -> str:
    path = tmp_path / "cashpoints.sqlite"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE towns (id INTEGER PRIMARY KEY, name TEXT, name_tr TEXT, big INTEGER)"
    )
    conn.executemany("INSERT INTO towns VALUES (?, ?, ?, ?)", TOWN_ROWS)
    conn.commit()
    conn.close()
    yield str(path)
    ConnectionPool.close_all()


@pytest.fixture
def make_server_api():
    def _make(records: Sequence[Dict[str, Any]] = (), failures: int = 0) -> FakeServerApi:
        return FakeServerApi(records, failures)

    return _make
