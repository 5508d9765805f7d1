"""Modal screens: add database, export result and key help."""

from __future__ import annotations

from typing import Mapping, Sequence

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Input, Label, Select

from dbsurf.connectors import DriverKind, DriverSpec

_DIALOG_CSS = """
{name} {{
    align: center middle;
}}

{name} > #dialog {{
    width: 64;
    height: auto;
    max-height: 90%;
    padding: 1 2;
    border: thick $primary 60%;
    background: $surface;
}}

{name} .dialog-title {{
    text-style: bold;
    margin-bottom: 1;
}}

{name} .dialog-buttons {{
    height: auto;
    margin-top: 1;
    align-horizontal: right;
}}

{name} Button {{
    margin-left: 1;
}}
"""


class DriverPickerScreen(ModalScreen[DriverKind | None]):
    """First step of adding a database: choose the driver."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="DriverPickerScreen")
    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(self, drivers: Mapping[DriverKind, DriverSpec]) -> None:
        super().__init__()
        self._drivers = drivers

    def compose(self) -> ComposeResult:
        options = [(spec.label, kind) for kind, spec in self._drivers.items()]
        yield Vertical(
            Label("Add Database", classes="dialog-title"),
            Select(options, value=options[0][1], allow_blank=False, id="driver"),
            Horizontal(
                Button("Next", id="next", variant="primary"),
                Button("Cancel", id="cancel"),
                classes="dialog-buttons",
            ),
            id="dialog",
        )

    @on(Button.Pressed, "#next")
    def _next(self) -> None:
        self.dismiss(self.query_one("#driver", Select).value)

    @on(Button.Pressed, "#cancel")
    def action_cancel(self) -> None:
        self.dismiss(None)


class ConnectParamsScreen(ModalScreen[dict[str, str] | None]):
    """Second step of adding a database: one input per driver parameter."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="ConnectParamsScreen")
    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(self, spec: DriverSpec) -> None:
        super().__init__()
        self._spec = spec

    def compose(self) -> ComposeResult:
        fields = []
        for field in self._spec.fields:
            fields.append(Label(field.label))
            if field.choices:
                fields.append(
                    Select(
                        [(choice, choice) for choice in field.choices],
                        value=field.default or field.choices[0],
                        allow_blank=False,
                        id=f"param-{field.name}",
                    )
                )
            else:
                fields.append(Input(value=field.default, password=field.secret, id=f"param-{field.name}"))
        yield Vertical(
            Label(f"Add Database - {self._spec.label}", classes="dialog-title"),
            *fields,
            Horizontal(
                Button("Add Database", id="add", variant="primary"),
                Button("Cancel", id="cancel"),
                classes="dialog-buttons",
            ),
            id="dialog",
        )

    def values(self) -> dict[str, str]:
        params: dict[str, str] = {}
        for field in self._spec.fields:
            widget = self.query_one(f"#param-{field.name}")
            if isinstance(widget, Select):
                params[field.name] = str(widget.value)
            elif isinstance(widget, Input):
                params[field.name] = widget.value
        return params

    @on(Button.Pressed, "#add")
    @on(Input.Submitted)
    def _submit(self) -> None:
        self.dismiss(self.values())

    @on(Button.Pressed, "#cancel")
    def action_cancel(self) -> None:
        self.dismiss(None)


class ExportScreen(ModalScreen[str | None]):
    """Ask for the CSV file the current result is written to."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="ExportScreen")
    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(self, default_name: str) -> None:
        super().__init__()
        self._default_name = default_name

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label("Download Result", classes="dialog-title"),
            Label("Save to file"),
            Input(value=self._default_name, id="path"),
            Horizontal(
                Button("Save", id="save", variant="primary"),
                Button("Cancel", id="cancel"),
                classes="dialog-buttons",
            ),
            id="dialog",
        )

    @on(Button.Pressed, "#save")
    @on(Input.Submitted)
    def _save(self) -> None:
        path = self.query_one("#path", Input).value.strip()
        self.dismiss(path or None)

    @on(Button.Pressed, "#cancel")
    def action_cancel(self) -> None:
        self.dismiss(None)


class HelpScreen(ModalScreen[None]):
    """Key bindings and the operations they run."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="HelpScreen") + """
    HelpScreen > #dialog {
        width: 90%;
    }

    HelpScreen DataTable {
        height: auto;
        max-height: 24;
    }
    """
    BINDINGS = [
        Binding("escape", "close", "Close", show=False),
        Binding("q", "close", "Close", show=False),
    ]

    def __init__(self, rows: Sequence[tuple[str, str, str]]) -> None:
        super().__init__()
        self._rows = tuple(rows)

    def compose(self) -> ComposeResult:
        table: DataTable = DataTable(id="help-table", cursor_type="row")
        yield Vertical(
            Label("Key Bindings", classes="dialog-title"),
            table,
            Label("Press Esc to close"),
            id="dialog",
        )

    def on_mount(self) -> None:
        table = self.query_one("#help-table", DataTable)
        table.add_columns("Key", "Operation", "Description")
        table.add_rows(self._rows)
        table.focus()

    def action_close(self) -> None:
        self.dismiss(None)


__all__ = ["ConnectParamsScreen", "DriverPickerScreen", "ExportScreen", "HelpScreen"]
