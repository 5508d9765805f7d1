"""Multi-tab query workspace."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True, slots=True)
class WorkspaceSnapshot:
    """Persistable tab state."""

    tabs: tuple[str, ...]
    index: int


class QueryWorkspace:
    """Ordered query tabs plus the text buffer of the active one.

    ``index`` may equal ``len(tabs)``: that denotes a new tab whose text has
    not been committed yet. A trailing empty tab only survives while it is
    the active one; navigating away from it discards it.
    """

    def __init__(self) -> None:
        self._tabs: list[str] = [""]
        self._index = 0
        self._text = ""

    @property
    def tabs(self) -> tuple[str, ...]:
        return tuple(self._tabs)

    @property
    def index(self) -> int:
        return self._index

    def current_text(self) -> str:
        return self._text

    def set_current_text(self, text: str) -> None:
        self._text = text

    def title(self) -> str:
        total = len(self._tabs)
        if self._index == total:
            total += 1
        return f"Query {self._index + 1}/{total}"

    def commit(self) -> None:
        """Store the active text in its tab, materializing a pending new tab."""

        self._snap_index()
        if self._index == len(self._tabs):
            if self._text:
                self._tabs.append(self._text)
        else:
            self._tabs[self._index] = self._text

    def next_tab(self) -> None:
        self.commit()
        last = len(self._tabs) - 1
        if self._index > last:
            # empty uncommitted tab
            self._index = 0
        elif self._index < last:
            self._index += 1
        elif self._tabs[last]:
            self._tabs.append("")
            self._index += 1
        else:
            self._drop_trailing_empty()
            self._index = 0
        self._load_current()

    def prev_tab(self) -> None:
        self.commit()
        if self._index == len(self._tabs) - 1 and self._drop_trailing_empty():
            self._index = len(self._tabs)
        self._index -= 1
        if self._index < 0:
            self._index = len(self._tabs) - 1
        self._load_current()

    def close_tab(self) -> None:
        """Remove the active tab; closing the only tab does nothing."""

        if len(self._tabs) == 1:
            return
        self._snap_index()
        if self._index == len(self._tabs):
            self._index -= 1
        else:
            del self._tabs[self._index]
            if self._index > 0:
                self._index -= 1
        self._load_current()

    def snapshot(self) -> WorkspaceSnapshot | None:
        """Tab state worth persisting, or None for a single empty tab."""

        self.commit()
        if len(self._tabs) == 1 and not self._tabs[0]:
            return None
        return WorkspaceSnapshot(tabs=tuple(self._tabs), index=self._index)

    def restore(self, tabs: Sequence[str], index: int) -> None:
        self._tabs = list(tabs) or [""]
        self._index = min(max(index, 0), len(self._tabs))
        self._load_current()

    def _snap_index(self) -> None:
        self._index = min(max(self._index, 0), len(self._tabs))

    def _drop_trailing_empty(self) -> bool:
        if len(self._tabs) > 1 and not self._tabs[-1]:
            self._tabs.pop()
            return True
        return False

    def _load_current(self) -> None:
        self._text = self._tabs[self._index] if self._index < len(self._tabs) else ""


__all__ = ["QueryWorkspace", "WorkspaceSnapshot"]
