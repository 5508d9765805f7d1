"""Registry of the currently open database connections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .connectors import SUPPORTED_DRIVERS, Connector, DriverKind, DriverSpec
from .errors import ConnectError, NotOpenError, UnsupportedDriverError
from .models import Column, ConnectParams, DatabaseSnapshot, QueryResult

LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class ConnectionEntry:
    """Registry record binding an id to one live connector."""

    id: str
    kind: DriverKind
    params: dict[str, str]
    connector: Connector


class ConnectionRegistry:
    """Owns every open connector and hands out stable ids for them.

    Entries are only added or removed on the presentation thread; background
    workers merely look connectors up, so the mapping needs no lock.
    """

    def __init__(self, drivers: Mapping[DriverKind, DriverSpec] | None = None) -> None:
        self._drivers = dict(drivers if drivers is not None else SUPPORTED_DRIVERS)
        self._entries: dict[str, ConnectionEntry] = {}
        self._counter = 0

    @property
    def drivers(self) -> Mapping[DriverKind, DriverSpec]:
        """Driver table used to open connections."""

        return self._drivers

    def __contains__(self, db_id: object) -> bool:
        return db_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> tuple[str, ...]:
        """Ids of the open connections in the order they were opened."""

        return tuple(self._entries)

    def driver_spec(self, driver: str | DriverKind) -> DriverSpec:
        """Look up the driver table entry, failing for unknown kinds."""

        try:
            kind = DriverKind(driver)
        except ValueError:
            raise UnsupportedDriverError(f"Unsupported driver: {driver}") from None
        spec = self._drivers.get(kind)
        if spec is None:
            raise UnsupportedDriverError(f"Unsupported driver: {driver}")
        return spec

    def open_connection(self, driver: str | DriverKind, params: ConnectParams) -> str:
        """Open a connector and register it, returning the new connection id."""

        spec = self.driver_spec(driver)
        normalized = spec.normalize(params)
        target = spec.build_target(normalized)
        try:
            connector = spec.open(normalized, target)
        except ConnectError:
            LOG.warning("Opening database failed", extra={"driver": spec.kind.value}, exc_info=True)
            raise
        except Exception as exc:
            LOG.exception("Unexpected failure opening database", extra={"driver": spec.kind.value})
            raise ConnectError(str(exc)) from exc
        db_id = f"{spec.kind.value}-{self._counter}"
        self._counter += 1
        self._entries[db_id] = ConnectionEntry(id=db_id, kind=spec.kind, params=normalized, connector=connector)
        LOG.info("Opened database", extra={"db_id": db_id, "target_name": connector.display_name()})
        return db_id

    def close_connection(self, db_id: str) -> str:
        """Close and forget ``db_id``; unknown ids yield an empty name."""

        entry = self._entries.pop(db_id, None)
        if entry is None:
            return ""
        name = entry.connector.display_name()
        try:
            entry.connector.close()
        except Exception:
            LOG.exception("Closing database failed", extra={"db_id": db_id})
        LOG.info("Closed database", extra={"db_id": db_id, "target_name": name})
        return name

    def close_all(self) -> None:
        """Release every open connector (shutdown helper)."""

        for db_id in tuple(self._entries):
            self.close_connection(db_id)

    def display_name(self, db_id: str) -> str:
        return self._entry(db_id).connector.display_name()

    def driver_of(self, db_id: str) -> DriverKind:
        return self._entry(db_id).kind

    def get_tables(self, db_id: str) -> list[str]:
        return self._entry(db_id).connector.list_tables()

    def get_columns(self, db_id: str, table: str) -> list[Column]:
        return self._entry(db_id).connector.list_columns(table)

    def run_query(self, db_id: str, text: str) -> QueryResult:
        return self._entry(db_id).connector.run_query(text)

    def snapshot(self) -> list[DatabaseSnapshot]:
        """Driver kind and parameters of each open connection."""

        return [
            DatabaseSnapshot(driver=entry.kind.value, connect_params=dict(entry.params))
            for entry in self._entries.values()
        ]

    def _entry(self, db_id: str) -> ConnectionEntry:
        entry = self._entries.get(db_id)
        if entry is None:
            raise NotOpenError(f"Database {db_id} is not open")
        return entry


__all__ = ["ConnectionEntry", "ConnectionRegistry"]
