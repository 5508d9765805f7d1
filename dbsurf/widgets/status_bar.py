"""Status line showing the current database and background activity."""

from __future__ import annotations

from textual.timer import Timer
from textual.widgets import Static

_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class StatusBar(Static):
    """Compact status strip at the bottom of the screen."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self) -> None:
        super().__init__("", id="status-bar")
        self._context = "No DB selected!"
        self._active = 0
        self._frame = 0
        self._timer: Timer | None = None

    @property
    def context(self) -> str:
        return self._context

    def on_mount(self) -> None:
        self._render_status()

    def set_context(self, text: str) -> None:
        self._context = text
        self._render_status()

    def start_activity(self) -> None:
        self._active += 1
        if self._timer is None:
            self._timer = self.set_interval(0.25, self._pulse)
        self._render_status()

    def stop_activity(self) -> None:
        self._active = max(self._active - 1, 0)
        if not self._active and self._timer is not None:
            self._timer.stop()
            self._timer = None
        self._render_status()

    def _pulse(self) -> None:
        self._frame = (self._frame + 1) % len(_FRAMES)
        self._render_status()

    def _render_status(self) -> None:
        if self._active:
            activity = f"{_FRAMES[self._frame]} Working ({self._active})"
        else:
            activity = "Press ? for help"
        self.update(f"{self._context} | {activity}")


__all__ = ["StatusBar"]
