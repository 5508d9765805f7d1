"""Session persistence: open databases and query tabs across restarts."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .config import CONFIG_DIR

LOG = logging.getLogger(__name__)

SESSION_FILE = CONFIG_DIR / "session.json"


class DatabaseEntryData(BaseModel):
    """An open database as stored in the session file."""

    driver: str
    connect_params: dict[str, str] = Field(default_factory=dict)


class QueriesData(BaseModel):
    """Query tabs as stored in the session file."""

    tabs: list[str] = Field(default_factory=list)
    index: int = 0


class SessionData(BaseModel):
    """Shape of the session file."""

    databases: list[DatabaseEntryData] = Field(default_factory=list)
    queries: QueriesData | None = None

    def is_empty(self) -> bool:
        return not self.databases and self.queries is None


def load_session(path: Path | None = None) -> SessionData:
    """Read the session file; a missing or corrupt file yields an empty session."""

    session_path = path or SESSION_FILE
    try:
        raw = session_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return SessionData()
    except (OSError, UnicodeDecodeError):
        LOG.warning("Couldn't read session file", exc_info=True, extra={"path": str(session_path)})
        return SessionData()
    try:
        return SessionData.model_validate_json(raw)
    except ValidationError:
        LOG.warning("Ignoring corrupt session file", exc_info=True, extra={"path": str(session_path)})
        return SessionData()


def save_session(session: SessionData, path: Path | None = None) -> None:
    """Persist the session, readable by the owner only."""

    session_path = path or SESSION_FILE
    session_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".session.", suffix=".tmp", dir=session_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(session.model_dump_json(indent=2))
            handle.write("\n")
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, session_path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


__all__ = [
    "DatabaseEntryData",
    "QueriesData",
    "SESSION_FILE",
    "SessionData",
    "load_session",
    "save_session",
]
