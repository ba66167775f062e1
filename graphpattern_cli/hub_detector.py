"""Hub node detection: nodes with more connections than the configured threshold."""

from __future__ import annotations

import logging
from typing import List, Optional

from .cancellation import CancellationToken, check_cancelled
from .models import HubNode, PatternDetectionConfig, PatternSeverity, PatternType, make_pattern_id
from .snapshot import GraphSnapshot

logger = logging.getLogger(__name__)


def hub_severity(total: int, threshold: int) -> PatternSeverity:
    return PatternSeverity.WARNING if total <= 2 * threshold else PatternSeverity.ERROR


class HubNodeDetector:
    """Flag nodes whose in-degree plus out-degree is strictly above the threshold."""

    def detect(
        self,
        snapshot: GraphSnapshot,
        config: Optional[PatternDetectionConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[HubNode]:
        config = config or PatternDetectionConfig()
        threshold = config.hub_node_threshold
        patterns: List[HubNode] = []

        for node_id in snapshot.node_ids:
            check_cancelled(cancel_token)
            incoming = snapshot.in_degree(node_id)
            outgoing = snapshot.out_degree(node_id)
            total = incoming + outgoing
            if total <= threshold:
                continue

            patterns.append(HubNode(
                pattern_id=make_pattern_id(PatternType.HUB_NODE, [node_id]),
                severity=hub_severity(total, threshold),
                description=(
                    f"Hub node: {node_id} has {total} connections "
                    f"({incoming} in, {outgoing} out; threshold {threshold})"
                ),
                nodes=[node_id],
                node_id=node_id,
                incoming_count=incoming,
                outgoing_count=outgoing,
                total_connections=total,
                threshold=threshold,
                metadata={"excess_ratio": round(total / threshold, 3)},
            ))

        logger.debug("Hub node detector flagged %d node(s) above %d", len(patterns), threshold)
        return patterns
