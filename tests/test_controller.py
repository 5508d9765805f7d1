"""Tests for the session controller."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterator, Sequence

import pytest

from dbsurf.controller import FocusRegion, SessionController
from dbsurf.errors import UnknownOperationError
from dbsurf.models import Column, QueryResult
from dbsurf.session import DatabaseEntryData, QueriesData, SessionData


class RecordingView:
    """SessionView that records every call it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args_of(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def activity_started(self) -> None:
        self._record("activity_started")

    def activity_stopped(self) -> None:
        self._record("activity_stopped")

    def show_error(self, message: str) -> None:
        self._record("show_error", message)

    def show_info(self, message: str) -> None:
        self._record("show_info", message)

    def focus_region(self, region: FocusRegion) -> None:
        self._record("focus_region", region)

    def database_added(self, db_id: str, name: str) -> None:
        self._record("database_added", db_id, name)

    def database_removed(self, db_id: str) -> None:
        self._record("database_removed", db_id)

    def current_database_changed(self, db_id: str | None, name: str) -> None:
        self._record("current_database_changed", db_id, name)

    def tables_loaded(self, db_id: str, tables: Sequence[str]) -> None:
        self._record("tables_loaded", db_id, list(tables))

    def columns_loaded(self, db_id: str, table: str, columns: Sequence[Column]) -> None:
        self._record("columns_loaded", db_id, table, list(columns))

    def result_ready(self, result: QueryResult) -> None:
        self._record("result_ready", result)

    def query_tab_changed(self, text: str, title: str) -> None:
        self._record("query_tab_changed", text, title)

    def show_help(self, rows: Sequence[tuple[str, str, str]]) -> None:
        self._record("show_help", list(rows))

    def prompt_add_database(self) -> None:
        self._record("prompt_add_database")

    def prompt_export(self, default_name: str) -> None:
        self._record("prompt_export", default_name)

    def exit(self) -> None:
        self._record("exit")


def _make_db(path: Path) -> Path:
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE t (id INTEGER, name TEXT)")
    conn.execute("INSERT INTO t VALUES (1, 'a')")
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def controller(view: RecordingView) -> Iterator[SessionController]:
    controller = SessionController(view)
    yield controller
    controller.shutdown()


def _settle(controller: SessionController) -> None:
    assert controller.wait_idle(timeout=5)
    controller.drain_updates()


def test_first_opened_database_becomes_current(controller: SessionController, view: RecordingView, tmp_path: Path) -> None:
    first = controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    second = controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "two.db"))})

    assert first is not None and second is not None
    assert controller.current_database == first
    assert view.args_of("database_added") == [(first, "one.db"), (second, "two.db")]
    assert view.args_of("current_database_changed") == [(first, "one.db")]


def test_open_failure_is_reported_not_raised(controller: SessionController, view: RecordingView, tmp_path: Path) -> None:
    assert controller.open_database("sqlite", {"file": str(tmp_path / "missing.db")}) is None
    assert controller.open_database("oracle", {}) is None

    errors = view.args_of("show_error")
    assert len(errors) == 2
    assert all(message.startswith("Opening database failed") for (message,) in errors)
    assert len(controller.registry) == 0


def test_exec_query_runs_in_background_and_shows_result(
    controller: SessionController, view: RecordingView, tmp_path: Path
) -> None:
    controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    controller.set_query_text("select id, name from t")

    assert controller.handle_key("Ctrl+Space") is True
    _settle(controller)

    assert view.names().count("activity_started") == 1
    assert view.names().count("activity_stopped") == 1
    (result,) = view.args_of("result_ready")[0]
    assert result.rows == (("1", "a"),)
    assert controller.last_result == result
    assert controller.focus is FocusRegion.RESULT


def test_failing_query_reports_error_and_keeps_running(
    controller: SessionController, view: RecordingView, tmp_path: Path
) -> None:
    controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    controller.set_query_text("selec broken")

    controller.dispatch("exec-query")
    _settle(controller)

    assert view.names().count("activity_started") == 1
    assert view.names().count("activity_stopped") == 1
    (message,) = view.args_of("show_error")[0]
    assert message.startswith("Query failed")
    assert not view.args_of("result_ready")
    assert controller.last_result is None

    controller.set_query_text("select 1")
    controller.dispatch("exec-query")
    _settle(controller)
    assert len(view.args_of("result_ready")) == 1


def test_exec_query_requires_database_and_text(controller: SessionController, view: RecordingView, tmp_path: Path) -> None:
    controller.set_query_text("select 1")
    controller.dispatch("exec-query")
    assert view.args_of("show_error")[-1] == ("No database has been selected",)

    controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    controller.set_query_text("   ")
    controller.dispatch("exec-query")
    assert view.args_of("show_error")[-1] == ("Enter a query to execute",)
    assert "activity_started" not in view.names()


def test_tables_and_columns_load_in_background(
    controller: SessionController, view: RecordingView, tmp_path: Path
) -> None:
    db_id = controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    assert db_id is not None

    controller.load_tables(db_id)
    controller.load_columns(db_id, "t")
    controller.load_columns(db_id, "missing")
    _settle(controller)

    assert view.args_of("tables_loaded") == [(db_id, ["t"])]
    assert view.args_of("columns_loaded") == [(db_id, "t", [Column("id", "INTEGER"), Column("name", "TEXT")])]
    (message,) = view.args_of("show_error")[0]
    assert "missing" in message
    assert view.names().count("activity_started") == view.names().count("activity_stopped") == 3


def test_set_current_and_close_follow_tree_selection(
    controller: SessionController, view: RecordingView, tmp_path: Path
) -> None:
    first = controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    second = controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "two.db"))})
    assert first is not None and second is not None

    controller.select_node(second, "t")
    controller.dispatch("set-current-db")
    assert controller.current_database == first

    controller.select_node(second)
    controller.dispatch("set-current-db")
    assert controller.current_database == second

    controller.dispatch("close-db")
    assert view.args_of("database_removed") == [(second,)]
    assert controller.current_database == first
    assert view.args_of("current_database_changed")[-1] == (first, "one.db")

    controller.select_node(first)
    controller.dispatch("close-db")
    assert controller.current_database is None
    assert view.args_of("current_database_changed")[-1] == (None, "")


def test_focus_operations(controller: SessionController, view: RecordingView) -> None:
    controller.handle_key("Tab")
    controller.handle_key("Ctrl+R")
    controller.handle_key("Ctrl+T")

    assert view.args_of("focus_region") == [
        (FocusRegion.QUERY_INPUT,),
        (FocusRegion.RESULT,),
        (FocusRegion.TREE,),
    ]
    assert controller.focus is FocusRegion.TREE


def test_unbound_key_is_not_handled(controller: SessionController, view: RecordingView) -> None:
    assert controller.handle_key("Ctrl+B") is False
    assert view.calls == []


def test_tab_operations_publish_text_and_title(controller: SessionController, view: RecordingView) -> None:
    controller.set_query_text("select 1")
    controller.dispatch("next-query-tab")
    controller.dispatch("prev-query-tab")
    controller.dispatch("close-tab")

    assert view.args_of("query_tab_changed") == [
        ("", "Query 2/2"),
        ("select 1", "Query 1/1"),
        ("select 1", "Query 1/1"),
    ]


def test_configure_rejects_unknown_operation(controller: SessionController) -> None:
    with pytest.raises(UnknownOperationError, match="Ctrl\\+Z"):
        controller.configure([("Ctrl+Z", "frobnicate")])

    keymap = controller.configure([("F5", "exec-query"), ("Ctrl+Q", "show-help")])
    assert controller.keymap is keymap
    assert keymap.resolve("Ctrl+Q") == "show-help"


def test_dispatch_unknown_operation_raises(controller: SessionController) -> None:
    with pytest.raises(UnknownOperationError):
        controller.dispatch("frobnicate")


def test_show_help_lists_bindings(controller: SessionController, view: RecordingView) -> None:
    controller.handle_key("Rune[?]")

    (rows,) = view.args_of("show_help")[0]
    assert ("Ctrl+Q", "quit", "Quit dbsurf") in rows
    assert [row[1] for row in rows] == sorted(row[1] for row in rows)


def test_quit_and_add_db_delegate_to_view(controller: SessionController, view: RecordingView) -> None:
    controller.handle_key("Ctrl+A")
    controller.handle_key("Ctrl+Q")

    assert view.names() == ["prompt_add_database", "exit"]


def test_download_and_export_result(controller: SessionController, view: RecordingView, tmp_path: Path) -> None:
    controller.dispatch("download-result")
    assert view.args_of("show_error")[-1] == ("There is no result to download",)

    controller.open_database("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    controller.set_query_text("select id, name from t")
    controller.dispatch("exec-query")
    _settle(controller)

    controller.dispatch("download-result")
    (default_name,) = view.args_of("prompt_export")[0]
    assert default_name.startswith("result_") and default_name.endswith(".csv")

    target = tmp_path / "out.csv"
    controller.export_result(str(target))
    assert target.read_text(encoding="utf-8").splitlines() == ["id,name", "1,a"]
    assert view.args_of("show_info")[-1] == (f"Result saved to {target}",)

    controller.export_result(str(tmp_path / "no-such-dir" / "out.csv"))
    assert view.args_of("show_error")[-1][0].startswith("Saving file failed")


def test_restore_and_snapshot_round_trip(controller: SessionController, view: RecordingView, tmp_path: Path) -> None:
    db_path = _make_db(tmp_path / "one.db")
    session = SessionData(
        databases=[
            DatabaseEntryData(driver="sqlite", connect_params={"file": str(db_path)}),
            DatabaseEntryData(driver="sqlite", connect_params={"file": str(tmp_path / "gone.db")}),
        ],
        queries=QueriesData(tabs=["select 1", "select 2"], index=1),
    )

    controller.restore(session)

    assert len(controller.registry) == 1
    assert view.args_of("query_tab_changed")[-1] == ("select 2", "Query 2/2")
    snapshot = controller.snapshot()
    assert snapshot.databases == [DatabaseEntryData(driver="sqlite", connect_params={"file": str(db_path)})]
    assert snapshot.queries == QueriesData(tabs=["select 1", "select 2"], index=1)


def test_start_announces_databases_opened_beforehand(view: RecordingView, tmp_path: Path) -> None:
    controller = SessionController(view)
    db_id = controller.registry.open_connection("sqlite", {"file": str(_make_db(tmp_path / "one.db"))})
    try:
        controller.start()
    finally:
        controller.shutdown()

    assert view.args_of("database_added") == [(db_id, "one.db")]
    assert view.args_of("current_database_changed") == [(db_id, "one.db")]
    assert view.args_of("query_tab_changed") == [("", "Query 1/1")]


def test_empty_workspace_snapshot_has_no_queries(controller: SessionController) -> None:
    assert controller.snapshot() == SessionData()
