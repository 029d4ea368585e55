import sqlite3
from typing import List
from unittest.mock import patch

import pytest
from PySide6.QtCore import QThreadPool

from cpclient.gui.ui.models import Roles, TableListModel, create_submodel
from cpclient.gui.ui.models.roles import column_role
from cpclient.gui.ui.tasks.server_update_worker import ServerUpdateWorker

COLUMNS = ("id", "name", "name_tr", "big")


@pytest.fixture
def model(qapp, towns_db, server_api, image_provider, settings) -> TableListModel:
    return TableListModel(
        towns_db,
        server_api,
        image_provider,
        settings,
        table="towns",
        columns=COLUMNS,
        search_columns=("name", "name_tr"),
        display_column="name",
    )


def _names(model: TableListModel) -> List[str]:
    return [model.data(model.index(row, 0), column_role(1)) for row in range(model.rowCount())]


def test_filter_runs_like_query_after_event_loop_turn(model: TableListModel, drain) -> None:
    applied = []
    model.filterApplied.connect(lambda text, count: applied.append((text, count)))

    model.set_filter("m*sk", '{"order": "id"}')
    assert model.rowCount() == 0
    assert applied == []

    drain()

    assert _names(model) == ["Moscow", "Murmansk", "Omsk"]
    assert applied == [("%m%sk%", 3)]


def test_single_character_wildcard(model: TableListModel, drain) -> None:
    model.set_filter("?msk")
    drain()
    assert _names(model) == ["Omsk"]


def test_typed_percent_and_underscore_are_not_wildcards(model: TableListModel, drain) -> None:
    model.set_filter("T_u%la")
    drain()
    assert _names(model) == ["Tula"]


def test_raw_filter_uses_exact_match(model: TableListModel, drain) -> None:
    model.set_escape_filter(False)

    model.set_filter("Tula")
    drain()
    assert _names(model) == ["Tula"]

    model.set_filter("", '{"order": "name", "desc": true, "limit": 2}')
    drain()
    assert _names(model) == ["Tula", "Saint Petersburg"]


def test_bad_options_still_apply_filter(model: TableListModel, drain) -> None:
    model.set_filter("omsk", "[1, 2]")
    drain()
    assert _names(model) == ["Omsk"]


@pytest.mark.parametrize(
    "options",
    [
        '{"order": "id", "limit": 1e400}',
        '{"order": "id", "offset": 1000000000000000000000000000000}',
        '{"order": "id", "limit": -1e400, "offset": 1e400}',
    ],
)
def test_out_of_range_numbers_still_apply_filter(
    model: TableListModel, drain, options: str
) -> None:
    errors = []
    model.errorRaised.connect(errors.append)

    model.set_filter("", options)
    drain()

    assert errors == []
    assert _names(model) == ["Moscow", "Murmansk", "Saint Petersburg", "Tula", "Omsk"]


def test_escape_mode_is_taken_when_filter_is_set(model: TableListModel, drain) -> None:
    model.set_filter("Tula")
    model.set_escape_filter(False)
    drain()

    # The queued request still runs as a LIKE pattern.
    assert _names(model) == ["Tula"]

    model.set_filter("Tul")
    model.set_escape_filter(True)
    drain()

    assert _names(model) == []


def test_reload_keeps_selection(model: TableListModel, drain) -> None:
    model.set_filter("", '{"order": "id"}')
    drain()
    model.setData(model.index(4, 0), True, Roles.SELECTED)

    model.set_filter("sk", '{"order": "id", "desc": true}')
    drain()

    assert _names(model) == ["Omsk", "Murmansk", "Moscow"]
    assert model.selected_rows() == [0]


def test_query_failure_is_reported(
    qapp, towns_db, server_api, image_provider, settings, drain
) -> None:
    model = TableListModel(
        towns_db, server_api, image_provider, settings, table="banks", columns=("id", "name")
    )
    errors = []
    model.errorRaised.connect(errors.append)

    model.set_filter("x")
    drain()

    assert model.rowCount() == 0
    assert len(errors) == 1
    assert "banks" in errors[0]


def test_submodel_filters_independently(model: TableListModel, drain) -> None:
    submodel = create_submodel(model)
    assert isinstance(submodel, TableListModel)
    assert submodel.table() == "towns"

    model.set_filter("tula")
    submodel.set_filter("omsk")
    drain()

    assert _names(model) == ["Tula"]
    assert _names(submodel) == ["Omsk"]


# ----------------------------------------------------------------------
# Server refresh
# ----------------------------------------------------------------------
def test_update_from_server_starts_worker(model: TableListModel) -> None:
    model.set_request_batch_size(2)
    with patch.object(QThreadPool, "globalInstance") as mock_pool_cls:
        mock_pool = mock_pool_cls.return_value

        model.update_from_server()
        # A second request while the first is running is ignored.
        model.update_from_server()

        assert mock_pool.start.call_count == 1
        worker = mock_pool.start.call_args[0][0]

    assert isinstance(worker, ServerUpdateWorker)
    assert worker._attempts == 3
    assert worker._batch_size == 2
    assert worker._table == "towns"
    assert model.is_updating() is True


def test_server_update_stores_rows_and_records_timestamp(
    qapp, towns_db, make_server_api, image_provider, settings, drain
) -> None:
    api = make_server_api(
        [
            {"id": 4, "name": "Tula", "name_tr": "Tula", "big": 1},
            {"id": 6, "name": "Tomsk", "name_tr": "Tomsk", "big": 1},
            {"id": 7, "name": "Kazan", "name_tr": "Kazan", "big": 1},
        ],
        failures=1,
    )
    model = TableListModel(
        towns_db, api, image_provider, settings, table="towns", columns=COLUMNS
    )
    model.set_request_batch_size(2)
    progress = []
    finished = []
    model.uploadProgress.connect(lambda done, total: progress.append((done, total)))
    model.updateFinished.connect(finished.append)

    with patch.object(QThreadPool, "globalInstance") as mock_pool_cls:
        model.update_from_server()
        worker = mock_pool_cls.return_value.start.call_args[0][0]

    worker._retry_delay_ms = 0
    worker.run()
    drain()

    assert finished == [True]
    assert progress == [(0, 3), (2, 3), (3, 3)]
    assert model.expected_upload_count() == 3
    assert model.uploaded_count() == 3
    assert model.is_updating() is False
    assert "towns.updated_at" in settings.values

    conn = sqlite3.connect(towns_db)
    try:
        stored = dict(conn.execute("SELECT id, big FROM towns").fetchall())
    finally:
        conn.close()
    assert stored[4] == 1
    assert stored[6] == 1 and stored[7] == 1
    assert len(stored) == 7


def test_server_update_failure(
    qapp, towns_db, make_server_api, image_provider, settings
) -> None:
    api = make_server_api([{"id": 9, "name": "Ufa", "name_tr": "Ufa", "big": 0}], failures=5)
    model = TableListModel(
        towns_db, api, image_provider, settings, table="towns", columns=COLUMNS
    )
    finished = []
    errors = []
    model.updateFinished.connect(finished.append)
    model.errorRaised.connect(errors.append)

    with patch.object(QThreadPool, "globalInstance") as mock_pool_cls:
        model.update_from_server()
        worker = mock_pool_cls.return_value.start.call_args[0][0]

    worker._retry_delay_ms = 0
    worker.run()

    assert finished == [False]
    assert errors == ["server unavailable"]
    assert api.calls == [("ids", "towns")] * 3
    assert "towns.updated_at" not in settings.values


def test_successful_update_reloads_filtered_rows(
    qapp, towns_db, make_server_api, image_provider, settings, drain
) -> None:
    api = make_server_api([{"id": 6, "name": "Tomsk", "name_tr": "Tomsk", "big": 1}])
    model = TableListModel(
        towns_db,
        api,
        image_provider,
        settings,
        table="towns",
        columns=COLUMNS,
        search_columns=("name",),
    )
    model.set_filter("*msk", '{"order": "id"}')
    drain()
    assert _names(model) == ["Omsk"]

    with patch.object(QThreadPool, "globalInstance") as mock_pool_cls:
        model.update_from_server()
        worker = mock_pool_cls.return_value.start.call_args[0][0]

    worker._retry_delay_ms = 0
    worker.run()
    drain()

    assert _names(model) == ["Omsk", "Tomsk"]


def test_failed_update_does_not_reload(
    qapp, towns_db, make_server_api, image_provider, settings, drain
) -> None:
    api = make_server_api([{"id": 6, "name": "Tomsk", "name_tr": "Tomsk", "big": 1}], failures=5)
    model = TableListModel(
        towns_db, api, image_provider, settings, table="towns", columns=COLUMNS, search_columns=("name",)
    )
    applied = []
    model.filterApplied.connect(lambda text, count: applied.append(text))
    model.set_filter("*msk")
    drain()

    with patch.object(QThreadPool, "globalInstance") as mock_pool_cls:
        model.update_from_server()
        worker = mock_pool_cls.return_value.start.call_args[0][0]

    worker._retry_delay_ms = 0
    worker.run()
    drain()

    assert applied == ["%msk%"]
    assert _names(model) == ["Omsk"]
