"""Circular dependency detection using an iterative depth-first search."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .cancellation import CancellationToken, check_cancelled
from .models import (
    CircularDependency,
    GraphEdge,
    PatternDetectionConfig,
    PatternSeverity,
    PatternType,
    make_pattern_id,
)
from .snapshot import GraphSnapshot

logger = logging.getLogger(__name__)

# Cycle length (distinct nodes) -> severity: <=3 warning, 4-6 error, >6 critical.
WARNING_MAX_CYCLE_LENGTH = 3
ERROR_MAX_CYCLE_LENGTH = 6


def cycle_severity(cycle_length: int) -> PatternSeverity:
    if cycle_length <= WARNING_MAX_CYCLE_LENGTH:
        return PatternSeverity.WARNING
    if cycle_length <= ERROR_MAX_CYCLE_LENGTH:
        return PatternSeverity.ERROR
    return PatternSeverity.CRITICAL


def normalize_cycle(members: List[str]) -> Tuple[str, ...]:
    """Rotate an open cycle (no closing repeat) to start at its smallest node id."""
    if not members:
        return ()
    start = members.index(min(members))
    return tuple(members[start:] + members[:start])


class CircularDependencyDetector:
    """Find elementary cycles reachable through back edges of a DFS.

    Every node not yet visited starts a new search. A neighbour that is
    still on the current path closes a cycle; the search records it and
    does not descend past that neighbour. Rotations of an already reported
    cycle are dropped. The traversal keeps its own stack, so path length is
    not bounded by the interpreter's recursion limit.
    """

    def detect(
        self,
        snapshot: GraphSnapshot,
        config: Optional[PatternDetectionConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[CircularDependency]:
        patterns: List[CircularDependency] = []
        seen: Set[Tuple[str, ...]] = set()
        visited: Set[str] = set()

        for root in snapshot.node_ids:
            check_cancelled(cancel_token)
            if root in visited:
                continue
            for members in self._cycles_from(root, snapshot, visited):
                key = normalize_cycle(members)
                if key in seen:
                    continue
                seen.add(key)
                patterns.append(self._build_pattern(key, snapshot))

        logger.debug("Circular dependency detector found %d cycle(s)", len(patterns))
        return patterns

    def _cycles_from(
        self,
        root: str,
        snapshot: GraphSnapshot,
        visited: Set[str],
    ) -> Iterator[List[str]]:
        path: List[str] = [root]
        position: Dict[str, int] = {root: 0}
        stack: List[Iterator[str]] = [iter(snapshot.successors(root))]
        visited.add(root)

        while stack:
            neighbor = next(stack[-1], None)
            if neighbor is None:
                stack.pop()
                del position[path.pop()]
                continue
            if neighbor in position:
                yield path[position[neighbor]:]
            elif neighbor not in visited:
                visited.add(neighbor)
                position[neighbor] = len(path)
                path.append(neighbor)
                stack.append(iter(snapshot.successors(neighbor)))

    def _build_pattern(self, members: Tuple[str, ...], snapshot: GraphSnapshot) -> CircularDependency:
        cycle = list(members) + [members[0]]
        length = len(members)
        if length == 1:
            description = f"Self-referencing circular dependency: {members[0]} references itself"
        else:
            description = "Circular dependency detected: " + " → ".join(cycle)
        return CircularDependency(
            pattern_id=make_pattern_id(PatternType.CIRCULAR_DEPENDENCY, members),
            severity=cycle_severity(length),
            description=description,
            nodes=list(members),
            edges=_cycle_edges(cycle, snapshot),
            cycle=cycle,
            cycle_length=length,
            metadata={"self_loop": length == 1},
        )


def _cycle_edges(cycle: List[str], snapshot: GraphSnapshot) -> List[GraphEdge]:
    """First edge, in snapshot order, for each consecutive pair of the cycle."""
    edges: List[GraphEdge] = []
    for src, dst in zip(cycle, cycle[1:]):
        for edge in snapshot.edges_from(src):
            if edge.dst == dst:
                edges.append(edge)
                break
    return edges
