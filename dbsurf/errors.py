"""Error taxonomy shared by connectors, the registry and the controller."""

from __future__ import annotations


class DbsurfError(RuntimeError):
    """Base class for recoverable, user-facing failures."""


class ConnectError(DbsurfError):
    """Raised when a database cannot be opened."""


class UnsupportedDriverError(DbsurfError):
    """Raised for a driver kind missing from the driver table."""


class NotOpenError(DbsurfError):
    """Raised when a connection id has no live connection."""


class QueryError(DbsurfError):
    """Raised when introspection or query execution fails."""


class UnknownOperationError(DbsurfError):
    """Raised when a key binding names an operation that is not registered."""


__all__ = [
    "ConnectError",
    "DbsurfError",
    "NotOpenError",
    "QueryError",
    "UnknownOperationError",
    "UnsupportedDriverError",
]
