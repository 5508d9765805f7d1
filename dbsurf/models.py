"""Shared dataclasses used across connector/registry/controller modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

ConnectParams = Mapping[str, str]


@dataclass(frozen=True, slots=True)
class Column:
    """Name and declared type of a table column."""

    name: str
    type: str


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Normalized query output; every cell is already rendered to a string."""

    columns: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    status: str = "OK"
    elapsed_ms: int = 0
    row_count: int = 0


@dataclass(frozen=True, slots=True)
class DatabaseSnapshot:
    """Persistable description of an open connection."""

    driver: str
    connect_params: dict[str, str] = field(default_factory=dict)


__all__ = ["Column", "ConnectParams", "DatabaseSnapshot", "QueryResult"]
