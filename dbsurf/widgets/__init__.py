"""Widget library for the Textual UI."""

from __future__ import annotations

from .database_tree import DatabaseTree, NodeRef
from .dialogs import ConnectParamsScreen, DriverPickerScreen, ExportScreen, HelpScreen
from .query_editor import QueryEditor
from .result_table import ResultTable
from .status_bar import StatusBar

__all__ = [
    "ConnectParamsScreen",
    "DatabaseTree",
    "DriverPickerScreen",
    "ExportScreen",
    "HelpScreen",
    "NodeRef",
    "QueryEditor",
    "ResultTable",
    "StatusBar",
]
