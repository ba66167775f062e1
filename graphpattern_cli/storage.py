"""Persistence layer for named graph memories.

Each project memory is a directory holding a SQLite ``graph.db`` with the
node and edge tables plus a ``project.json`` metadata file. The detection
engine never touches this module directly; it reads through
:class:`~graphpattern_cli.adapters.GraphStoreAdapter`.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import MEMORY_DIR, STATE_FILE, ensure_base_dirs
from .models import GraphEdge, GraphNode

logger = logging.getLogger(__name__)


# ===================================================================
# ProjectManager  (manages directories / active project)
# ===================================================================

class ProjectManager:
    """Manage project memory directories and active project state."""

    def __init__(self) -> None:
        ensure_base_dirs()

    def list_projects(self) -> List[str]:
        if not MEMORY_DIR.exists():
            return []
        return sorted([p.name for p in MEMORY_DIR.iterdir() if p.is_dir()])

    def project_dir(self, project_name: str) -> Path:
        return MEMORY_DIR / project_name

    def create_or_get_project(self, project_name: str) -> Path:
        path = self.project_dir(project_name)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def set_current_project(self, project_name: str) -> None:
        ensure_base_dirs()
        STATE_FILE.write_text(
            json.dumps({"current_project": project_name}, indent=2),
            encoding="utf-8",
        )

    def get_current_project(self) -> Optional[str]:
        if not STATE_FILE.exists():
            return None
        try:
            payload = json.loads(STATE_FILE.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable state file %s", STATE_FILE)
            return None
        return payload.get("current_project")

    def unload_project(self) -> None:
        ensure_base_dirs()
        STATE_FILE.write_text(
            json.dumps({"current_project": None}, indent=2),
            encoding="utf-8",
        )

    def delete_project(self, project_name: str) -> bool:
        path = self.project_dir(project_name)
        if not path.exists():
            return False
        for child in sorted(path.glob("**/*"), reverse=True):
            if child.is_file():
                child.unlink()
            elif child.is_dir():
                child.rmdir()
        path.rmdir()
        return True


# ===================================================================
# GraphStore  (SQLite)
# ===================================================================

class GraphStore:
    """SQLite-backed node/edge store for one project memory."""

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = project_dir
        self.db_path = project_dir / "graph.db"
        self.meta_path = project_dir / "project.json"
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS nodes (
                node_id    TEXT PRIMARY KEY,
                node_type  TEXT NOT NULL,
                attributes TEXT
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS edges (
                src        TEXT NOT NULL,
                dst        TEXT NOT NULL,
                edge_type  TEXT NOT NULL,
                attributes TEXT
            )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_edges_src ON edges(src)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_edges_dst ON edges(dst)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_nodes_type ON nodes(node_type)")
        self.conn.commit()

    # ------------------------------------------------------------------
    # Clear / metadata
    # ------------------------------------------------------------------

    def clear(self) -> None:
        cur = self.conn.cursor()
        cur.execute("DELETE FROM edges")
        cur.execute("DELETE FROM nodes")
        self.conn.commit()

    def set_metadata(self, payload: Dict[str, Any]) -> None:
        self.meta_path.write_text(
            json.dumps(payload, indent=2), encoding="utf-8",
        )

    def get_metadata(self) -> Dict[str, Any]:
        if not self.meta_path.exists():
            return {}
        try:
            return json.loads(self.meta_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def insert_nodes(self, nodes: Iterable[GraphNode]) -> None:
        self.conn.executemany(
            "INSERT OR IGNORE INTO nodes (node_id, node_type, attributes) VALUES (?, ?, ?)",
            [
                (
                    node.node_id,
                    node.node_type,
                    json.dumps(node.attributes) if node.attributes else None,
                )
                for node in nodes
            ],
        )
        self.conn.commit()

    def insert_edges(self, edges: Iterable[GraphEdge]) -> None:
        cur = self.conn.cursor()
        cur.executemany(
            "INSERT INTO edges (src, dst, edge_type, attributes) VALUES (?, ?, ?, ?)",
            [
                (e.src, e.dst, e.edge_type, json.dumps(e.attributes) if e.attributes else None)
                for e in edges
            ],
        )
        self.conn.commit()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_nodes(self) -> List[sqlite3.Row]:
        return self.conn.execute("SELECT * FROM nodes ORDER BY rowid").fetchall()

    def get_node(self, node_id: str) -> Optional[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM nodes WHERE node_id = ? LIMIT 1", (node_id,),
        ).fetchone()

    def get_edges(self) -> List[sqlite3.Row]:
        return self.conn.execute("SELECT * FROM edges ORDER BY rowid").fetchall()

    def neighbors(self, src_node_id: str) -> List[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM edges WHERE src = ? ORDER BY rowid", (src_node_id,),
        ).fetchall()

    def reverse_neighbors(self, dst_node_id: str) -> List[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM edges WHERE dst = ? ORDER BY rowid", (dst_node_id,),
        ).fetchall()

    def counts(self) -> Dict[str, int]:
        nodes = self.conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]
        edges = self.conn.execute("SELECT COUNT(*) FROM edges").fetchone()[0]
        return {"nodes": nodes, "edges": edges}


# ===================================================================
# Row conversion
# ===================================================================

def row_to_node(row: sqlite3.Row) -> GraphNode:
    return GraphNode(
        node_id=row["node_id"],
        node_type=row["node_type"],
        attributes=json.loads(row["attributes"] or "{}"),
    )


def row_to_edge(row: sqlite3.Row) -> GraphEdge:
    return GraphEdge(
        src=row["src"],
        dst=row["dst"],
        edge_type=row["edge_type"],
        attributes=json.loads(row["attributes"] or "{}"),
    )
