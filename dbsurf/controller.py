"""Session controller wiring the registry, workspace and key map into the UI."""

from __future__ import annotations

import logging
import queue
import threading
import time
from enum import Enum
from typing import Callable, Iterable, Protocol, Sequence, TypeVar

from .errors import DbsurfError, UnknownOperationError
from .export import default_export_name, export_to_csv
from .keymap import KeyMap, Operation, OperationRegistry
from .models import Column, ConnectParams, QueryResult
from .registry import ConnectionRegistry
from .session import DatabaseEntryData, QueriesData, SessionData
from .workspace import QueryWorkspace

LOG = logging.getLogger(__name__)

T = TypeVar("T")

Update = Callable[[], None]


class FocusRegion(str, Enum):
    """UI regions that can hold input focus."""

    TREE = "tree"
    QUERY_INPUT = "query-input"
    RESULT = "result"


class SessionView(Protocol):
    """Presentation surface driven by the controller (always on the UI thread)."""

    def activity_started(self) -> None: ...

    def activity_stopped(self) -> None: ...

    def show_error(self, message: str) -> None: ...

    def show_info(self, message: str) -> None: ...

    def focus_region(self, region: FocusRegion) -> None: ...

    def database_added(self, db_id: str, name: str) -> None: ...

    def database_removed(self, db_id: str) -> None: ...

    def current_database_changed(self, db_id: str | None, name: str) -> None: ...

    def tables_loaded(self, db_id: str, tables: Sequence[str]) -> None: ...

    def columns_loaded(self, db_id: str, table: str, columns: Sequence[Column]) -> None: ...

    def result_ready(self, result: QueryResult) -> None: ...

    def query_tab_changed(self, text: str, title: str) -> None: ...

    def show_help(self, rows: Sequence[tuple[str, str, str]]) -> None: ...

    def prompt_add_database(self) -> None: ...

    def prompt_export(self, default_name: str) -> None: ...

    def exit(self) -> None: ...


class SessionController:
    """Executes named operations and keeps slow database I/O off the UI thread.

    Background workers never touch the view or the registry's bookkeeping.
    They post closures onto a single update queue which the presentation
    thread drains via :meth:`drain_updates`.
    """

    def __init__(
        self,
        view: SessionView,
        *,
        registry: ConnectionRegistry | None = None,
        workspace: QueryWorkspace | None = None,
    ) -> None:
        self._view = view
        self._registry = registry or ConnectionRegistry()
        self._workspace = workspace or QueryWorkspace()
        self._operations = OperationRegistry()
        self._operations.register_many(self._builtin_operations())
        self._keymap = KeyMap.from_bindings()
        self._updates: queue.SimpleQueue[Update] = queue.SimpleQueue()
        self._workers: set[threading.Thread] = set()
        self._workers_lock = threading.Lock()
        self._focus = FocusRegion.TREE
        self._current_db: str | None = None
        self._selected: tuple[str, str | None] | None = None
        self._last_result: QueryResult | None = None

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def workspace(self) -> QueryWorkspace:
        return self._workspace

    @property
    def operations(self) -> OperationRegistry:
        return self._operations

    @property
    def keymap(self) -> KeyMap:
        return self._keymap

    @property
    def focus(self) -> FocusRegion:
        return self._focus

    @property
    def current_database(self) -> str | None:
        return self._current_db

    @property
    def last_result(self) -> QueryResult | None:
        return self._last_result

    def configure(self, overrides: Iterable[tuple[str, str]] = ()) -> KeyMap:
        """Build the key map from defaults plus ``overrides`` and validate it."""

        keymap = KeyMap.from_bindings(overrides)
        keymap.validate(self._operations)
        self._keymap = keymap
        return keymap

    # Dispatch ---------------------------------------------------------------

    def handle_key(self, event_name: str) -> bool:
        """Run the operation bound to ``event_name``; False lets the event propagate."""

        name = self._keymap.resolve(event_name)
        if name is None:
            return False
        LOG.debug("Dispatching key", extra={"key": event_name, "operation": name})
        self.dispatch(name)
        return True

    def dispatch(self, name: str) -> None:
        if name not in self._operations:
            raise UnknownOperationError(f"Unknown operation: {name}")
        try:
            self._operations.execute(name)
        except DbsurfError as exc:
            self._view.show_error(str(exc))

    # Operations -------------------------------------------------------------

    def quit(self) -> None:
        self._workspace.commit()
        self._view.exit()

    def goto_query_input(self) -> None:
        self._set_focus(FocusRegion.QUERY_INPUT)

    def goto_tree(self) -> None:
        self._set_focus(FocusRegion.TREE)

    def goto_result(self) -> None:
        self._set_focus(FocusRegion.RESULT)

    def set_current_database(self) -> None:
        """Make the database selected in the tree the current one."""

        if self._selected is None:
            return
        db_id, table = self._selected
        if table is None and db_id in self._registry:
            self._set_current(db_id)

    def add_database(self) -> None:
        self._view.prompt_add_database()

    def exec_query(self) -> None:
        db_id = self._current_db
        if db_id is None:
            self._view.show_error("No database has been selected")
            return
        text = self._workspace.current_text()
        if not text.strip():
            self._view.show_error("Enter a query to execute")
            return
        self._run_in_background(
            lambda: self._registry.run_query(db_id, text),
            self._apply_result,
            "Query failed",
        )

    def show_help(self) -> None:
        self._view.show_help(self._keymap.help_rows(self._operations))

    def next_query_tab(self) -> None:
        self._workspace.next_tab()
        self._publish_tab()

    def prev_query_tab(self) -> None:
        self._workspace.prev_tab()
        self._publish_tab()

    def close_query_tab(self) -> None:
        self._workspace.close_tab()
        self._publish_tab()

    def close_database(self) -> None:
        """Close the database selected in the tree."""

        if self._selected is None:
            return
        db_id, table = self._selected
        if table is not None:
            return
        self.close_database_id(db_id)

    def download_result(self) -> None:
        if self._last_result is None:
            self._view.show_error("There is no result to download")
            return
        self._view.prompt_export(default_export_name())

    # Presentation-thread entry points ---------------------------------------

    def open_database(self, driver: str, params: ConnectParams) -> str | None:
        """Open and register a database; failures are reported, not raised."""

        try:
            db_id = self._registry.open_connection(driver, params)
        except DbsurfError as exc:
            self._view.show_error(f"Opening database failed: {exc}")
            return None
        self._view.database_added(db_id, self._registry.display_name(db_id))
        if self._current_db is None:
            self._set_current(db_id)
        return db_id

    def close_database_id(self, db_id: str) -> str:
        name = self._registry.close_connection(db_id)
        if not name:
            return name
        self._view.database_removed(db_id)
        if self._selected and self._selected[0] == db_id:
            self._selected = None
        if self._current_db == db_id:
            remaining = self._registry.ids()
            self._set_current(remaining[0] if remaining else None)
        return name

    def select_node(self, db_id: str | None, table: str | None = None) -> None:
        """Track the tree node under the cursor."""

        self._selected = (db_id, table) if db_id is not None else None

    def load_tables(self, db_id: str) -> None:
        self._run_in_background(
            lambda: self._registry.get_tables(db_id),
            lambda tables: self._view.tables_loaded(db_id, tables),
            "Listing tables failed",
        )

    def load_columns(self, db_id: str, table: str) -> None:
        self._run_in_background(
            lambda: self._registry.get_columns(db_id, table),
            lambda columns: self._view.columns_loaded(db_id, table, columns),
            f"Listing columns for {table} failed",
        )

    def set_query_text(self, text: str) -> None:
        self._workspace.set_current_text(text)

    def export_result(self, path: str) -> None:
        if self._last_result is None:
            self._view.show_error("There is no result to download")
            return
        try:
            target = export_to_csv(self._last_result, path)
        except OSError as exc:
            self._view.show_error(f"Saving file failed: {exc}")
            return
        self._view.show_info(f"Result saved to {target}")

    def start(self, session: SessionData | None = None) -> None:
        """Announce databases opened before the UI existed, then restore ``session``."""

        for db_id in self._registry.ids():
            self._view.database_added(db_id, self._registry.display_name(db_id))
        if self._current_db is None and len(self._registry):
            self._set_current(self._registry.ids()[0])
        if session is None:
            self._publish_tab()
        else:
            self.restore(session)

    def restore(self, session: SessionData) -> None:
        """Reopen the databases and tabs of a previous session."""

        for entry in session.databases:
            try:
                db_id = self._registry.open_connection(entry.driver, entry.connect_params)
            except DbsurfError as exc:
                LOG.warning("Couldn't restore database", extra={"driver": entry.driver, "error": str(exc)})
                continue
            self._view.database_added(db_id, self._registry.display_name(db_id))
            if self._current_db is None:
                self._set_current(db_id)
        if session.queries is not None:
            self._workspace.restore(session.queries.tabs, session.queries.index)
        self._publish_tab()

    def snapshot(self) -> SessionData:
        databases = [
            DatabaseEntryData(driver=entry.driver, connect_params=entry.connect_params)
            for entry in self._registry.snapshot()
        ]
        tabs = self._workspace.snapshot()
        queries = QueriesData(tabs=list(tabs.tabs), index=tabs.index) if tabs else None
        return SessionData(databases=databases, queries=queries)

    def shutdown(self, timeout: float | None = 1.0) -> None:
        self.wait_idle(timeout)
        self._registry.close_all()

    # Update queue -----------------------------------------------------------

    def drain_updates(self) -> int:
        """Apply queued updates on the calling (presentation) thread."""

        applied = 0
        while True:
            try:
                update = self._updates.get_nowait()
            except queue.Empty:
                return applied
            try:
                update()
            except Exception:
                LOG.exception("UI update failed")
            applied += 1

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Join outstanding workers; True when none remain."""

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._workers_lock:
                workers = tuple(self._workers)
            if not workers:
                return True
            for worker in workers:
                remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
                worker.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                with self._workers_lock:
                    return not self._workers

    def _post(self, update: Update) -> None:
        self._updates.put(update)

    def _post_error(self, message: str) -> None:
        self._post(lambda: self._view.show_error(message))

    def _run_in_background(
        self,
        call: Callable[[], T],
        on_success: Callable[[T], None],
        failure_message: str,
    ) -> None:
        self._view.activity_started()

        def _worker() -> None:
            try:
                LOG.debug("Background operation started", extra={"operation": failure_message})
                result = call()
            except DbsurfError as exc:
                self._post_error(f"{failure_message}: {exc}")
            except Exception as exc:
                LOG.exception("Background operation crashed", extra={"operation": failure_message})
                self._post_error(f"{failure_message}: {exc}")
            else:
                self._post(lambda: on_success(result))
            finally:
                LOG.debug("Background operation finished", extra={"operation": failure_message})
                self._post(self._view.activity_stopped)
                with self._workers_lock:
                    self._workers.discard(threading.current_thread())

        worker = threading.Thread(target=_worker, name="dbsurf-worker", daemon=True)
        with self._workers_lock:
            self._workers.add(worker)
        try:
            worker.start()
        except RuntimeError:
            with self._workers_lock:
                self._workers.discard(worker)
            self._post(self._view.activity_stopped)
            raise

    # Helpers ----------------------------------------------------------------

    def _apply_result(self, result: QueryResult) -> None:
        self._last_result = result
        self._view.result_ready(result)
        self._set_focus(FocusRegion.RESULT)

    def _set_focus(self, region: FocusRegion) -> None:
        self._focus = region
        self._view.focus_region(region)

    def _set_current(self, db_id: str | None) -> None:
        self._current_db = db_id
        name = self._registry.display_name(db_id) if db_id is not None else ""
        self._view.current_database_changed(db_id, name)

    def _publish_tab(self) -> None:
        self._view.query_tab_changed(self._workspace.current_text(), self._workspace.title())

    def _builtin_operations(self) -> list[Operation]:
        return [
            Operation("quit", "Quit dbsurf", self.quit),
            Operation("goto-queryinput", "Go to query input field", self.goto_query_input),
            Operation("goto-tree", "Go to database tree", self.goto_tree),
            Operation("goto-result", "Go to result table", self.goto_result),
            Operation("set-current-db", "Set selected database in tree as current database", self.set_current_database),
            Operation("add-db", "Open the dialog to add a new database", self.add_database),
            Operation("exec-query", "Execute query in input field and show result in table below", self.exec_query),
            Operation("show-help", "Show help screen", self.show_help),
            Operation("next-query-tab", "Go to next query tab", self.next_query_tab),
            Operation("prev-query-tab", "Go to previous query tab", self.prev_query_tab),
            Operation("close-tab", "Close current query tab", self.close_query_tab),
            Operation("close-db", "Close database currently selected in tree", self.close_database),
            Operation("download-result", "Download result to CSV file", self.download_result),
        ]


__all__ = ["FocusRegion", "SessionController", "SessionView"]
