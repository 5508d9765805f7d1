"""Tree of open databases, their tables and columns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from textual.widgets import Tree
from textual.widgets.tree import TreeNode

from dbsurf.controller import SessionController
from dbsurf.models import Column


@dataclass(frozen=True, slots=True)
class NodeRef:
    """Identifies the database (and optionally table) behind a tree node."""

    db_id: str
    table: str | None = None


class DatabaseTree(Tree[NodeRef]):
    """Databases at the top level; tables and columns load lazily on select."""

    DEFAULT_CSS = """
    DatabaseTree {
        width: 1fr;
        min-width: 22;
        border: round $primary 40%;
        background: $surface-darken-1;
    }

    DatabaseTree:focus {
        border: round $primary;
    }
    """

    def __init__(self, controller: SessionController) -> None:
        super().__init__("Databases", id="db-tree")
        self._session_controller = controller
        self.auto_expand = False
        self.border_title = "Databases"
        self.root.expand()

    def add_database(self, db_id: str, name: str) -> None:
        self.root.add(name, data=NodeRef(db_id))

    def remove_database(self, db_id: str) -> None:
        node = self._database_node(db_id)
        if node is not None:
            node.remove()

    def show_tables(self, db_id: str, tables: Sequence[str]) -> None:
        node = self._database_node(db_id)
        if node is None:
            return
        node.remove_children()
        for table in tables:
            node.add(table, data=NodeRef(db_id, table))
        node.expand()

    def show_columns(self, db_id: str, table: str, columns: Sequence[Column]) -> None:
        database = self._database_node(db_id)
        if database is None:
            return
        for node in database.children:
            if node.data is not None and node.data.table == table:
                node.remove_children()
                for column in columns:
                    node.add_leaf(f"{column.name} ({column.type})")
                node.expand()
                return

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted[NodeRef]) -> None:
        ref = event.node.data
        if ref is None:
            self._session_controller.select_node(None)
        else:
            self._session_controller.select_node(ref.db_id, ref.table)

    def on_tree_node_selected(self, event: Tree.NodeSelected[NodeRef]) -> None:
        node = event.node
        ref = node.data
        event.stop()
        if ref is None or node.children:
            node.toggle()
            return
        if ref.table is None:
            self._session_controller.load_tables(ref.db_id)
        else:
            self._session_controller.load_columns(ref.db_id, ref.table)

    def _database_node(self, db_id: str) -> TreeNode[NodeRef] | None:
        for node in self.root.children:
            if node.data is not None and node.data.db_id == db_id:
                return node
        return None


__all__ = ["DatabaseTree", "NodeRef"]
