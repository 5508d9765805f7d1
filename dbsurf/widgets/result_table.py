"""Grid showing the last query result."""

from __future__ import annotations

from textual.widgets import DataTable

from dbsurf.models import QueryResult


class ResultTable(DataTable):
    """Header row plus data rows, every cell already rendered to a string."""

    DEFAULT_CSS = """
    ResultTable {
        height: 3fr;
        border: round $primary 40%;
    }

    ResultTable:focus {
        border: round $primary;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="result-table", zebra_stripes=True)
        self.border_title = "Result"

    def show_result(self, result: QueryResult) -> None:
        self.clear(columns=True)
        self.border_title = f"Result · {result.status} · {result.elapsed_ms} ms"
        if not result.columns:
            return
        self.add_columns(*result.columns)
        self.add_rows(result.rows)


__all__ = ["ResultTable"]
