"""Named operations and the rebindable key dispatch table."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Mapping

from .errors import UnknownOperationError

OperationHandler = Callable[[], None]


@dataclass(frozen=True, slots=True)
class Operation:
    """Invokable action reachable through a key binding."""

    name: str
    description: str
    handler: OperationHandler


class OperationRegistry:
    """Collects the operations the controller implements."""

    def __init__(self) -> None:
        self._operations: dict[str, Operation] = {}

    def register(self, operation: Operation) -> None:
        """Register an operation; names must be unique."""

        if operation.name in self._operations:
            raise ValueError(f"Operation '{operation.name}' is already registered")
        self._operations[operation.name] = operation

    def register_many(self, operations: Iterable[Operation]) -> None:
        for operation in operations:
            self.register(operation)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._operations.values())

    def names(self) -> frozenset[str]:
        return frozenset(self._operations)

    def get(self, name: str) -> Operation | None:
        return self._operations.get(name)

    def execute(self, name: str) -> None:
        """Run a registered operation by name."""

        self._operations[name].handler()


DEFAULT_BINDINGS: Mapping[str, str] = {
    "Ctrl+A": "add-db",
    "Ctrl+D": "download-result",
    "Tab": "goto-queryinput",
    "Ctrl+N": "next-query-tab",
    "Ctrl+Q": "quit",
    "Ctrl+P": "prev-query-tab",
    "Ctrl+R": "goto-result",
    "Ctrl+S": "set-current-db",
    "Ctrl+T": "goto-tree",
    "Ctrl+X": "close-tab",
    "Ctrl+Y": "close-db",
    "Ctrl+Space": "exec-query",
    "Rune[?]": "show-help",
}


class KeyMap:
    """Maps input event names such as ``Ctrl+A`` or ``Rune[?]`` to operation names."""

    def __init__(self, bindings: Mapping[str, str] | None = None) -> None:
        self._bindings: dict[str, str] = dict(bindings or {})

    @classmethod
    def from_bindings(
        cls,
        overrides: Iterable[tuple[str, str]] = (),
        *,
        defaults: Mapping[str, str] = DEFAULT_BINDINGS,
    ) -> KeyMap:
        """Seed the defaults, then apply overrides on top (whole-key replacement)."""

        keymap = cls(defaults)
        for key, operation in overrides:
            keymap.bind(key, operation)
        return keymap

    def bind(self, key: str, operation: str) -> None:
        self._bindings[key] = operation

    def resolve(self, key: str) -> str | None:
        return self._bindings.get(key)

    def items(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._bindings.items())

    def __len__(self) -> int:
        return len(self._bindings)

    def validate(self, operations: OperationRegistry | Iterable[str]) -> None:
        """Fail when any binding names an operation that does not exist."""

        known = operations.names() if isinstance(operations, OperationRegistry) else frozenset(operations)
        unknown = sorted((key, op) for key, op in self._bindings.items() if op not in known)
        if unknown:
            details = ", ".join(f"{key!r} -> {op!r}" for key, op in unknown)
            raise UnknownOperationError(f"Unknown operation in key bindings: {details}")

    def help_rows(self, operations: OperationRegistry) -> list[tuple[str, str, str]]:
        """``(key, operation, description)`` rows sorted by operation name."""

        rows = []
        for key, name in self._bindings.items():
            operation = operations.get(name)
            rows.append((key, name, operation.description if operation else ""))
        return sorted(rows, key=lambda row: (row[1], row[0]))


_KEY_NAMES = {
    "tab": "Tab",
    "enter": "Enter",
    "escape": "Esc",
    "space": "Space",
    "backspace": "Backspace",
    "delete": "Delete",
    "insert": "Insert",
    "home": "Home",
    "end": "End",
    "pageup": "PgUp",
    "pagedown": "PgDn",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "@": "Space",
}

_MODIFIERS = {"ctrl": "Ctrl", "alt": "Alt", "shift": "Shift", "meta": "Meta", "super": "Super"}


def event_name(key: str, character: str | None = None) -> str:
    """Canonical name of a Textual key event (``ctrl+a`` -> ``Ctrl+A``)."""

    *modifiers, base = key.split("+") if key != "+" else ["+"]
    if not modifiers and character and len(character) == 1 and character.isprintable():
        return f"Rune[{character}]"
    if base in _KEY_NAMES:
        name = _KEY_NAMES[base]
    elif len(base) == 1:
        name = base.upper()
    elif base.startswith("f") and base[1:].isdigit():
        name = base.upper()
    else:
        name = _character_name(base)
    prefix = "".join(f"{_MODIFIERS.get(modifier, modifier.capitalize())}+" for modifier in modifiers)
    return prefix + name


def _character_name(base: str) -> str:
    # Textual names punctuation after its unicode name, e.g. "question_mark".
    try:
        return unicodedata.lookup(base.replace("_", " ").upper())
    except KeyError:
        return base.capitalize()


__all__ = [
    "DEFAULT_BINDINGS",
    "KeyMap",
    "Operation",
    "OperationHandler",
    "OperationRegistry",
    "event_name",
]
