"""Immutable graph view shared by every detector in one analysis pass."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import AbstractSet, Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .adapters import GraphAdapter, call_adapter
from .exceptions import AdapterError
from .models import GraphEdge, GraphNode, PatternDetectionConfig

logger = logging.getLogger(__name__)

_NO_EDGES: Tuple[GraphEdge, ...] = ()


class GraphSnapshot:
    """Filtered nodes and edges plus adjacency maps, built once per pass.

    Exclusions are applied here, centrally, so every detector sees the same
    view:

    - nodes whose type is in *excluded_node_types* are dropped, along with
      every edge touching them;
    - edges whose type is in *excluded_edge_types* are dropped (their
      endpoints stay);
    - edges whose endpoint is not a known node are dropped.

    Duplicate node ids keep the first occurrence; type exclusion is then
    decided by that first record alone.
    """

    def __init__(
        self,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
        excluded_node_types: AbstractSet[str] = frozenset(),
        excluded_edge_types: AbstractSet[str] = frozenset(),
    ) -> None:
        kept_nodes: Dict[str, GraphNode] = {}
        excluded_ids: Set[str] = set()
        duplicate_nodes = 0
        for node in nodes:
            if node.node_id in kept_nodes or node.node_id in excluded_ids:
                duplicate_nodes += 1
                continue
            if node.node_type in excluded_node_types:
                excluded_ids.add(node.node_id)
                continue
            kept_nodes[node.node_id] = node

        kept_edges: List[GraphEdge] = []
        by_source: Dict[str, List[GraphEdge]] = {}
        by_target: Dict[str, List[GraphEdge]] = {}
        excluded_edges = 0
        dropped_edges = 0
        unknown_endpoints = 0
        total_edges = 0
        for edge in edges:
            total_edges += 1
            if edge.edge_type in excluded_edge_types:
                excluded_edges += 1
                continue
            if edge.src not in kept_nodes or edge.dst not in kept_nodes:
                dropped_edges += 1
                if not {edge.src, edge.dst} & excluded_ids:
                    unknown_endpoints += 1
                continue
            kept_edges.append(edge)
            by_source.setdefault(edge.src, []).append(edge)
            by_target.setdefault(edge.dst, []).append(edge)

        if duplicate_nodes:
            logger.warning("Ignored %d duplicate node id(s)", duplicate_nodes)
        if unknown_endpoints:
            logger.warning("Dropped %d edge(s) pointing at unknown node ids", unknown_endpoints)
        if dropped_edges > unknown_endpoints:
            logger.debug("Dropped %d edge(s) touching excluded nodes", dropped_edges - unknown_endpoints)

        self.nodes: Tuple[GraphNode, ...] = tuple(kept_nodes.values())
        self.edges: Tuple[GraphEdge, ...] = tuple(kept_edges)
        self.node_ids: Tuple[str, ...] = tuple(kept_nodes)
        self._nodes_by_id: Mapping[str, GraphNode] = MappingProxyType(kept_nodes)
        self.edges_by_source: Mapping[str, Tuple[GraphEdge, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in by_source.items()}
        )
        self.edges_by_target: Mapping[str, Tuple[GraphEdge, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in by_target.items()}
        )
        self.stats: Mapping[str, int] = MappingProxyType({
            "nodes": len(self.nodes),
            "edges": len(self.edges),
            "excluded_nodes": len(excluded_ids),
            "excluded_edges": excluded_edges,
            "dropped_edges": dropped_edges,
            "duplicate_nodes": duplicate_nodes,
            "source_edges": total_edges,
        })

    @classmethod
    def from_config(
        cls,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
        config: Optional[PatternDetectionConfig] = None,
    ) -> "GraphSnapshot":
        config = config or PatternDetectionConfig()
        return cls(nodes, edges, config.excluded_node_types, config.excluded_edge_types)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes_by_id

    def node(self, node_id: str) -> GraphNode:
        return self._nodes_by_id[node_id]

    def edges_from(self, node_id: str) -> Tuple[GraphEdge, ...]:
        return self.edges_by_source.get(node_id, _NO_EDGES)

    def edges_to(self, node_id: str) -> Tuple[GraphEdge, ...]:
        return self.edges_by_target.get(node_id, _NO_EDGES)

    def out_degree(self, node_id: str) -> int:
        return len(self.edges_from(node_id))

    def in_degree(self, node_id: str) -> int:
        return len(self.edges_to(node_id))

    def successors(self, node_id: str) -> List[str]:
        """Distinct target ids in edge order."""
        return list(dict.fromkeys(e.dst for e in self.edges_from(node_id)))


def _validate_items(items: Any, kind: type, operation: str) -> List[Any]:
    try:
        values = list(items)
    except TypeError as exc:
        raise AdapterError(
            f"Adapter returned a non-iterable from '{operation}'",
            cause=exc,
        ) from exc
    for value in values:
        if not isinstance(value, kind):
            raise AdapterError(
                f"Malformed data from '{operation}'",
                context={"expected": kind.__name__, "got": type(value).__name__},
            )
    return values


async def acquire_snapshot(
    adapter: GraphAdapter,
    config: Optional[PatternDetectionConfig] = None,
) -> GraphSnapshot:
    """Bulk-fetch nodes and edges from *adapter* and build a filtered snapshot.

    Raises:
        AdapterError: If the adapter fails or returns malformed data.
    """
    nodes = _validate_items(await call_adapter(adapter.get_all_nodes), GraphNode, "get_all_nodes")
    edges = _validate_items(await call_adapter(adapter.get_all_edges), GraphEdge, "get_all_edges")
    snapshot = GraphSnapshot.from_config(nodes, edges, config)
    logger.debug("Snapshot built: %s", dict(snapshot.stats))
    return snapshot
