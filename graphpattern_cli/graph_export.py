"""Graph export helpers: Graphviz DOT with detected patterns highlighted."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .models import (
    CircularDependency,
    GraphEdge,
    GraphNode,
    PatternDetectionResult,
    PatternType,
)

_PATTERN_COLORS = {
    PatternType.CIRCULAR_DEPENDENCY: "red",
    PatternType.HUB_NODE: "orange",
    PatternType.DEAD_CODE: "gray",
    PatternType.ORPHANED_NODE: "blue",
}


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _highlights(result: Optional[PatternDetectionResult]) -> Tuple[Dict[str, str], Set[Tuple[str, str]]]:
    node_colors: Dict[str, str] = {}
    cycle_edges: Set[Tuple[str, str]] = set()
    if result is None:
        return node_colors, cycle_edges
    # Later types never override earlier ones: cycles win over hubs, etc.
    for pattern in result.patterns:
        color = _PATTERN_COLORS[pattern.type]
        for node_id in pattern.nodes:
            node_colors.setdefault(node_id, color)
        if isinstance(pattern, CircularDependency):
            cycle_edges.update(zip(pattern.cycle, pattern.cycle[1:]))
    return node_colors, cycle_edges


def to_dot(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    result: Optional[PatternDetectionResult] = None,
) -> str:
    node_ids = {n.node_id for n in nodes}
    node_colors, cycle_edges = _highlights(result)

    lines: List[str] = ["digraph GraphPatterns {", "  rankdir=LR;"]
    for node in nodes:
        attrs = f'label="{_esc(node.node_type)}\\n{_esc(node.node_id)}"'
        color = node_colors.get(node.node_id)
        if color:
            attrs += f', color="{color}", style="bold"'
        lines.append(f'  "{_esc(node.node_id)}" [{attrs}];')

    for edge in edges:
        if edge.src not in node_ids or edge.dst not in node_ids:
            continue
        attrs = f'label="{_esc(edge.edge_type)}"'
        if (edge.src, edge.dst) in cycle_edges:
            attrs += ', color="red", penwidth=2'
        lines.append(f'  "{_esc(edge.src)}" -> "{_esc(edge.dst)}" [{attrs}];')

    lines.append("}")
    return "\n".join(lines)


def export_dot(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    output_file: Path,
    result: Optional[PatternDetectionResult] = None,
) -> None:
    output_file.write_text(to_dot(nodes, edges, result), encoding="utf-8")
