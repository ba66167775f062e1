"""Load graphs from JSON or YAML documents.

Expected shape::

    nodes:
      - {id: a, type: module, attributes: {...}}
    edges:
      - {from: a, to: b, type: imports}
"""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from .config import SUPPORTED_GRAPH_EXTENSIONS
from .exceptions import AdapterError
from .models import GraphEdge, GraphNode


def parse_graph_document(payload: Any, source: str = "<document>") -> Tuple[List[GraphNode], List[GraphEdge]]:
    if not isinstance(payload, dict):
        raise AdapterError("Graph document must be a mapping", context={"source": source})

    nodes: List[GraphNode] = []
    for index, item in enumerate(payload.get("nodes") or []):
        if not isinstance(item, dict) or "id" not in item:
            raise AdapterError("Node entry needs an 'id'", context={"source": source, "index": index})
        nodes.append(GraphNode(
            node_id=str(item["id"]),
            node_type=str(item.get("type", "node")),
            attributes=_attributes(item, source, index),
        ))

    edges: List[GraphEdge] = []
    for index, item in enumerate(payload.get("edges") or []):
        if not isinstance(item, dict) or "from" not in item or "to" not in item:
            raise AdapterError(
                "Edge entry needs 'from' and 'to'", context={"source": source, "index": index},
            )
        edges.append(GraphEdge(
            src=str(item["from"]),
            dst=str(item["to"]),
            edge_type=str(item.get("type", "depends_on")),
            attributes=_attributes(item, source, index),
        ))

    return nodes, edges


def _attributes(item: Dict[str, Any], source: str, index: int) -> Dict[str, Any]:
    attributes = item.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise AdapterError("'attributes' must be a mapping", context={"source": source, "index": index})
    return _json_safe(attributes)


def _json_safe(value: Any) -> Any:
    """Coerce YAML scalars (dates, timestamps, ...) into JSON-compatible values."""
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def load_graph_file(path: Path) -> Tuple[List[GraphNode], List[GraphEdge]]:
    """Read nodes and edges from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        AdapterError: If the file is unreadable, of an unsupported type, or malformed.
    """
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_GRAPH_EXTENSIONS:
        raise AdapterError(
            f"Unsupported graph file type '{suffix}'",
            context={"supported": ", ".join(sorted(SUPPORTED_GRAPH_EXTENSIONS))},
        )
    try:
        text = path.read_text(encoding="utf-8")
        payload = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise AdapterError("Cannot read graph file", context={"path": str(path)}, cause=exc) from exc
    return parse_graph_document(payload, source=str(path))


def dump_graph_document(nodes: List[GraphNode], edges: List[GraphEdge]) -> Dict[str, Any]:
    return {
        "nodes": [n.to_dict() for n in nodes],
        "edges": [{**e.to_dict(), "attributes": dict(e.attributes)} for e in edges],
    }
