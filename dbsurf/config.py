"""App configuration loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

LOG = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "dbsurf"
CONFIG_FILE = CONFIG_DIR / "config.toml"


class KeyBindingConfig(BaseModel):
    """One ``[[keys]]`` entry overriding a default key binding."""

    key: str
    operation: str


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    restore_session: bool = True
    keys: list[KeyBindingConfig] = Field(default_factory=list)

    def key_overrides(self) -> list[tuple[str, str]]:
        """Configured bindings as ``(key, operation)`` pairs in file order."""

        return [(entry.key, entry.operation) for entry in self.keys]


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    config_path = path or CONFIG_FILE
    try:
        data = _read_config_file(config_path)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, UnicodeDecodeError, OSError):
        LOG.warning("Ignoring unreadable config file", exc_info=True, extra={"path": str(config_path)})
        return AppConfig()

    return AppConfig(
        restore_session=data.get("restore_session", AppConfig.model_fields["restore_session"].default),
        keys=data.get("keys", []),
    )


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    restore = raw.get("restore_session")
    if isinstance(restore, bool):
        data["restore_session"] = restore
    keys = raw.get("keys")
    if isinstance(keys, list):
        parsed: list[KeyBindingConfig] = []
        for entry in keys:
            if not isinstance(entry, dict):
                continue
            key = entry.get("key")
            operation = entry.get("operation")
            if isinstance(key, str) and isinstance(operation, str) and key and operation:
                parsed.append(KeyBindingConfig(key=key, operation=operation))
            else:
                LOG.warning("Skipping incomplete key binding", extra={"entry": repr(entry)})
        data["keys"] = parsed
    return data


__all__ = ["AppConfig", "CONFIG_DIR", "CONFIG_FILE", "KeyBindingConfig", "load_config"]
