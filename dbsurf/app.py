"""Textual application entry point for dbsurf."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Header, Input, TextArea

from .config import CONFIG_DIR, AppConfig, load_config
from .connectors import DriverKind
from .controller import FocusRegion, SessionController
from .errors import DbsurfError, UnknownOperationError
from .keymap import event_name
from .models import Column, QueryResult
from .registry import ConnectionRegistry
from .session import SessionData, load_session, save_session
from .widgets import (
    ConnectParamsScreen,
    DatabaseTree,
    DriverPickerScreen,
    ExportScreen,
    HelpScreen,
    QueryEditor,
    ResultTable,
    StatusBar,
)

LOG = logging.getLogger(__name__)

LOG_FILE = CONFIG_DIR / "dbsurf.log"


class DbsurfApp(App[None]):
    """Database tree on the left, query tabs and result grid on the right."""

    TITLE = "dbsurf"
    ENABLE_COMMAND_PALETTE = False
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        width: 3fr;
        height: 1fr;
    }
    """

    def __init__(
        self,
        *,
        config: AppConfig | None = None,
        session: SessionData | None = None,
        registry: ConnectionRegistry | None = None,
    ) -> None:
        super().__init__()
        self._app_config = config or AppConfig()
        self._restored_session = session
        self._session_controller = SessionController(self, registry=registry)
        self._session_controller.configure(self._app_config.key_overrides())
        self._pending_notifications: list[tuple[str, str]] = []
        self._db_tree: DatabaseTree | None = None
        self._query_editor: QueryEditor | None = None
        self._result_table: ResultTable | None = None
        self._status_bar: StatusBar | None = None

    @property
    def controller(self) -> SessionController:
        """Expose the session controller for tests and shutdown."""

        return self._session_controller

    def compose(self) -> ComposeResult:
        yield Header()
        self._db_tree = DatabaseTree(self._session_controller)
        self._query_editor = QueryEditor()
        self._result_table = ResultTable()
        yield Horizontal(
            self._db_tree,
            Vertical(self._query_editor, self._result_table, id="main-column"),
            id="content",
        )
        self._status_bar = StatusBar()
        yield self._status_bar

    def on_mount(self) -> None:
        self.set_interval(1 / 20, self._session_controller.drain_updates)
        self._session_controller.start(self._restored_session)
        self._flush_pending_notifications()
        self.focus_region(FocusRegion.TREE)

    async def on_event(self, event: events.Event) -> None:
        if isinstance(event, events.Key) and self._dispatch_key(event):
            return
        await super().on_event(event)

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        self._session_controller.set_query_text(event.text_area.text)

    def _dispatch_key(self, event: events.Key) -> bool:
        if isinstance(self.screen, ModalScreen):
            return False
        if event.is_printable and isinstance(self.focused, (TextArea, Input)):
            return False
        if self._query_editor is not None:
            # Changed messages may still be queued behind this key.
            self._session_controller.set_query_text(self._query_editor.text)
        handled = self._session_controller.handle_key(event_name(event.key, event.character))
        if handled:
            event.stop()
            event.prevent_default()
        return handled

    # SessionView ------------------------------------------------------------

    def activity_started(self) -> None:
        if self._status_bar is not None:
            self._status_bar.start_activity()

    def activity_stopped(self) -> None:
        if self._status_bar is not None:
            self._status_bar.stop_activity()

    def show_error(self, message: str) -> None:
        LOG.info("Reporting error", extra={"message_text": message})
        self._safe_notify(message, severity="error")

    def show_info(self, message: str) -> None:
        self._safe_notify(message, severity="information")

    def focus_region(self, region: FocusRegion) -> None:
        widget = {
            FocusRegion.TREE: self._db_tree,
            FocusRegion.QUERY_INPUT: self._query_editor,
            FocusRegion.RESULT: self._result_table,
        }[region]
        if widget is not None:
            widget.focus()

    def database_added(self, db_id: str, name: str) -> None:
        if self._db_tree is not None:
            self._db_tree.add_database(db_id, name)

    def database_removed(self, db_id: str) -> None:
        if self._db_tree is not None:
            self._db_tree.remove_database(db_id)

    def current_database_changed(self, db_id: str | None, name: str) -> None:
        if self._status_bar is not None:
            self._status_bar.set_context(f"Current DB: {name}" if db_id is not None else "No DB selected!")

    def tables_loaded(self, db_id: str, tables: Sequence[str]) -> None:
        if self._db_tree is not None:
            self._db_tree.show_tables(db_id, tables)

    def columns_loaded(self, db_id: str, table: str, columns: Sequence[Column]) -> None:
        if self._db_tree is not None:
            self._db_tree.show_columns(db_id, table, columns)

    def result_ready(self, result: QueryResult) -> None:
        if self._result_table is not None:
            self._result_table.show_result(result)
        if not result.columns:
            self._safe_notify(result.status, severity="information")

    def query_tab_changed(self, text: str, title: str) -> None:
        if self._query_editor is not None:
            self._query_editor.show_tab(text, title)

    def show_help(self, rows: Sequence[tuple[str, str, str]]) -> None:
        self.push_screen(HelpScreen(rows))

    def prompt_add_database(self) -> None:
        self.push_screen(DriverPickerScreen(self._session_controller.registry.drivers), self._driver_chosen)

    def prompt_export(self, default_name: str) -> None:
        self.push_screen(ExportScreen(default_name), self._export_chosen)

    # Dialog callbacks -------------------------------------------------------

    def _driver_chosen(self, kind: DriverKind | None) -> None:
        if kind is None:
            return
        spec = self._session_controller.registry.driver_spec(kind)

        def _params_entered(params: dict[str, str] | None) -> None:
            if params is not None:
                self._session_controller.open_database(kind, params)

        self.push_screen(ConnectParamsScreen(spec), _params_entered)

    def _export_chosen(self, path: str | None) -> None:
        if path:
            self._session_controller.export_result(path)

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display notification", extra={"message_text": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display queued notification", extra={"message_text": message})


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="dbsurf", description="Browse and query SQL databases from the terminal.")
    parser.add_argument("databases", nargs="*", metavar="FILE", help="SQLite database files to open")
    parser.add_argument("--config", type=Path, default=None, help="configuration file (TOML)")
    parser.add_argument("--session", type=Path, default=None, help="session file (JSON)")
    parser.add_argument("--log-file", type=Path, default=None, help="write the log here")
    parser.add_argument("--no-restore", action="store_true", help="don't reopen the previous session")
    parser.add_argument("--verbose", action="store_true", help="log debug messages")
    return parser.parse_args(argv)


def _configure_logging(path: Path | None, *, verbose: bool) -> None:
    log_path = path or LOG_FILE
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_path,
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Invoke the Textual application; returns the process exit code."""

    args = _parse_args(argv)
    _configure_logging(args.log_file, verbose=args.verbose)
    config = load_config(args.config)

    registry = ConnectionRegistry()
    for path in args.databases:
        try:
            registry.open_connection(DriverKind.SQLITE, {"file": path})
        except DbsurfError as exc:
            registry.close_all()
            print(f"dbsurf: couldn't open {path}: {exc}", file=sys.stderr)
            return 1

    session = None
    if config.restore_session and not args.no_restore:
        session = load_session(args.session)

    try:
        app = DbsurfApp(config=config, session=session, registry=registry)
    except UnknownOperationError as exc:
        registry.close_all()
        print(f"dbsurf: invalid key configuration: {exc}", file=sys.stderr)
        return 2

    try:
        app.run()
    finally:
        try:
            save_session(app.controller.snapshot(), args.session)
        except OSError:
            LOG.exception("Couldn't save session")
        app.controller.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
