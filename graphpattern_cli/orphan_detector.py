"""Orphaned node detection from snapshot in/out degrees."""

from __future__ import annotations

import logging
from typing import List, Optional

from .cancellation import CancellationToken, check_cancelled
from .models import (
    GraphNode,
    OrphanedNode,
    PatternDetectionConfig,
    PatternSeverity,
    PatternType,
    make_pattern_id,
)
from .snapshot import GraphSnapshot

logger = logging.getLogger(__name__)

ENDPOINT_ATTRIBUTES = ("entry_point", "entrypoint", "exit_point", "public")
ENDPOINT_NODE_TYPES = frozenset({"entry", "entrypoint", "main", "endpoint", "export"})


def looks_like_endpoint(node: GraphNode) -> bool:
    """True when a node is marked as an intentional entry or exit point."""
    if node.node_type.lower() in ENDPOINT_NODE_TYPES:
        return True
    return any(bool(node.attributes.get(attr)) for attr in ENDPOINT_ATTRIBUTES)


class OrphanedNodeDetector:
    """Flag fully isolated nodes, and optionally source-only or sink-only ones."""

    def detect(
        self,
        snapshot: GraphSnapshot,
        config: Optional[PatternDetectionConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[OrphanedNode]:
        config = config or PatternDetectionConfig()
        patterns: List[OrphanedNode] = []

        for node in snapshot.nodes:
            check_cancelled(cancel_token)
            no_incoming = snapshot.in_degree(node.node_id) == 0
            no_outgoing = snapshot.out_degree(node.node_id) == 0

            if no_incoming and no_outgoing:
                patterns.append(self._build_pattern(node, True, True))
            elif config.detect_partially_isolated_nodes and (no_incoming or no_outgoing):
                patterns.append(self._build_pattern(node, no_incoming, no_outgoing))

        logger.debug("Orphaned node detector flagged %d node(s)", len(patterns))
        return patterns

    def _build_pattern(self, node: GraphNode, no_incoming: bool, no_outgoing: bool) -> OrphanedNode:
        node_id = node.node_id
        if no_incoming and no_outgoing:
            severity = PatternSeverity.WARNING
            description = f"Orphaned node: {node_id} has no incoming or outgoing edges (fully isolated)"
        elif no_incoming:
            severity = PatternSeverity.INFO
            description = f"Source node: {node_id} has no incoming edges (entry point or unused root)"
        else:
            severity = PatternSeverity.INFO
            description = f"Sink node: {node_id} has no outgoing edges (endpoint or dead end)"

        return OrphanedNode(
            pattern_id=make_pattern_id(PatternType.ORPHANED_NODE, [node_id]),
            severity=severity,
            description=description,
            nodes=[node_id],
            node_id=node_id,
            no_incoming=no_incoming,
            no_outgoing=no_outgoing,
            metadata={
                "node_type": node.node_type,
                "intentional_endpoint": looks_like_endpoint(node),
            },
        )
