"""CSV export of the last query result."""

from __future__ import annotations

import csv
import os
import tempfile
from datetime import datetime
from pathlib import Path

from .models import QueryResult


def default_export_name(now: datetime | None = None) -> str:
    """Suggested file name, e.g. ``result_20240131_235959.csv``."""

    return (now or datetime.now()).strftime("result_%Y%m%d_%H%M%S.csv")


def export_to_csv(result: QueryResult, path: str | os.PathLike[str]) -> Path:
    """Write the header row and data rows of ``result`` to ``path``.

    Rows go to a temporary file beside the target which then replaces it, so
    a failure part way through leaves any existing file untouched.
    """

    target = Path(path).expanduser()
    directory = target.parent
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(result.columns)
            writer.writerows(result.rows)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return target


__all__ = ["default_export_name", "export_to_csv"]
