"""Dead code detection: nodes unreachable from the entry-point root set."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .cancellation import CancellationToken, check_cancelled
from .models import DeadCode, PatternDetectionConfig, PatternSeverity, PatternType, make_pattern_id
from .snapshot import GraphSnapshot

logger = logging.getLogger(__name__)

INFO_MAX_RATIO = 0.10
WARNING_MAX_RATIO = 0.40


def dead_code_severity(unreachable: int, total: int) -> PatternSeverity:
    ratio = unreachable / total if total else 0.0
    if ratio < INFO_MAX_RATIO:
        return PatternSeverity.INFO
    if ratio <= WARNING_MAX_RATIO:
        return PatternSeverity.WARNING
    return PatternSeverity.ERROR


@dataclass
class DeadCodeAnalysis:
    patterns: List[DeadCode]
    diagnostics: Dict[str, Any] = field(default_factory=dict)


class DeadCodeDetector:
    """Breadth-first reachability from the root set.

    Roots come from ``config.root_node_ids`` when given, otherwise every node
    with in-degree 0. All unreachable nodes are reported together as a
    single :class:`DeadCode` pattern. When no root is available the result
    is empty and the reason is recorded in the diagnostics.
    """

    def detect(
        self,
        snapshot: GraphSnapshot,
        config: Optional[PatternDetectionConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[DeadCode]:
        return self.analyze(snapshot, config, cancel_token).patterns

    def analyze(
        self,
        snapshot: GraphSnapshot,
        config: Optional[PatternDetectionConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DeadCodeAnalysis:
        config = config or PatternDetectionConfig()
        diagnostics: Dict[str, Any] = {}

        if config.root_node_ids is not None:
            roots = [r for r in config.root_node_ids if r in snapshot]
            missing = [r for r in config.root_node_ids if r not in snapshot]
            diagnostics["root_source"] = "explicit"
            if missing:
                logger.warning("Ignoring %d root id(s) not present in the graph", len(missing))
                diagnostics["missing_roots"] = missing
        else:
            roots = [n for n in snapshot.node_ids if snapshot.in_degree(n) == 0]
            diagnostics["root_source"] = "inferred"

        if not snapshot.node_ids:
            return DeadCodeAnalysis([], diagnostics)

        if not roots:
            diagnostics["roots_unavailable"] = True
            logger.info("Dead code analysis skipped: no root nodes available")
            return DeadCodeAnalysis([], diagnostics)

        visited: Set[str] = set()
        for root in roots:
            check_cancelled(cancel_token)
            if root in visited:
                continue
            visited.add(root)
            queue = deque([root])
            while queue:
                current = queue.popleft()
                for nxt in snapshot.successors(current):
                    if nxt not in visited:
                        visited.add(nxt)
                        queue.append(nxt)

        unreachable = [n for n in snapshot.node_ids if n not in visited]
        logger.debug(
            "Dead code detector: %d root(s), %d unreachable of %d",
            len(roots), len(unreachable), len(snapshot),
        )
        if not unreachable:
            return DeadCodeAnalysis([], diagnostics)

        total = len(snapshot)
        ratio = len(unreachable) / total
        pattern = DeadCode(
            pattern_id=make_pattern_id(PatternType.DEAD_CODE, unreachable),
            severity=dead_code_severity(len(unreachable), total),
            description=(
                f"Dead code: {len(unreachable)} of {total} node(s) unreachable "
                f"from {len(roots)} root(s): " + ", ".join(unreachable)
            ),
            nodes=list(unreachable),
            unreachable_nodes=list(unreachable),
            root_nodes=list(roots),
            metadata={
                "unreachable_count": len(unreachable),
                "total_nodes": total,
                "unreachable_ratio": round(ratio, 4),
                "root_source": diagnostics["root_source"],
            },
        )
        return DeadCodeAnalysis([pattern], diagnostics)
