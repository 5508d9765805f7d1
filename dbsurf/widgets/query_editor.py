"""Text area holding the query of the active tab."""

from __future__ import annotations

from textual.widgets import TextArea


class QueryEditor(TextArea):
    """Query input; its border title shows the tab position."""

    DEFAULT_CSS = """
    QueryEditor {
        height: 1fr;
        border: round $primary 40%;
    }

    QueryEditor:focus {
        border: round $primary;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="query-input", soft_wrap=True)
        self.border_title = "Query 1/1"

    def show_tab(self, text: str, title: str) -> None:
        if self.text != text:
            self.load_text(text)
        self.border_title = title


__all__ = ["QueryEditor"]
