"""Remediation advisor: a static table from pattern variant to suggested actions.

Every :class:`PatternType` has an entry; importing this module fails if one
is missing. Suggestions depend only on the pattern, so identical patterns
always receive identical advice.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List

from .models import (
    CircularDependency,
    DeadCode,
    DetectedPattern,
    HubNode,
    OrphanedNode,
    PatternType,
    RemediationSuggestion,
)


def _circular(pattern: CircularDependency) -> List[RemediationSuggestion]:
    if pattern.cycle_length == 1:
        refactor = RemediationSuggestion(
            action="refactor",
            description=f"Remove the self-reference on {pattern.nodes[0]}",
            steps=[
                "Identify the logic that makes the node depend on itself",
                "Extract it into a separate helper node",
                "Point the node at the extracted helper instead",
            ],
            priority=1,
            estimated_effort=2,
        )
    else:
        refactor = RemediationSuggestion(
            action="refactor",
            description="Break the cycle by inverting or removing one dependency: "
            + " → ".join(pattern.cycle),
            steps=[
                "Pick the weakest dependency in the cycle",
                "Introduce an interface or abstraction for the reverse direction",
                "Inject the abstraction so the direct dependency disappears",
            ],
            priority=1,
            estimated_effort=float(pattern.cycle_length + 1),
        )
    investigate = RemediationSuggestion(
        action="investigate",
        description="Check whether the circular dependency is intentional",
        steps=[
            "Review why each dependency in the cycle exists",
            "Confirm every dependency is still needed",
            "Document the rationale if the cycle cannot be removed",
        ],
        priority=2,
        estimated_effort=1,
    )
    return [refactor, investigate]


def _orphaned(pattern: OrphanedNode) -> List[RemediationSuggestion]:
    node_id = pattern.node_id
    if pattern.fully_isolated:
        if pattern.metadata.get("intentional_endpoint"):
            return [RemediationSuggestion(
                action="document",
                description=f"Document {node_id} as an intentional standalone entry/exit point",
                steps=[
                    "Describe why the node has no connections",
                    "Mark the node with entry/exit metadata",
                ],
                priority=2,
                estimated_effort=0.5,
            )]
        return [RemediationSuggestion(
            action="remove",
            description=f"Remove unused node {node_id}",
            steps=[
                "Verify nothing outside the graph references the node",
                "Remove the node",
            ],
            priority=1,
            estimated_effort=1,
        )]

    role = "entry point" if pattern.no_incoming else "endpoint"
    return [
        RemediationSuggestion(
            action="investigate",
            description=f"Verify that {node_id} is an intended {role}",
            steps=[
                f"Check whether {node_id} is expected to be a graph {role}",
                "Look for missing or accidentally removed edges",
            ],
            priority=1,
            estimated_effort=1,
        ),
        RemediationSuggestion(
            action="document",
            description=f"Document {node_id} as a system {role}",
            priority=2,
            estimated_effort=0.5,
        ),
    ]


def _hub(pattern: HubNode) -> List[RemediationSuggestion]:
    return [
        RemediationSuggestion(
            action="split",
            description=f"Split {pattern.node_id} into smaller, focused nodes",
            steps=[
                "Group the node's connections by responsibility",
                "Extract each group into its own node",
                "Re-route dependents to the extracted nodes",
            ],
            priority=1,
            estimated_effort=float(math.ceil(pattern.total_connections / 10)),
        ),
        RemediationSuggestion(
            action="document",
            description=(
                f"Document why {pattern.node_id} needs {pattern.total_connections} "
                f"connections (threshold {pattern.threshold})"
            ),
            priority=2,
            estimated_effort=1,
        ),
    ]


def _dead_code(pattern: DeadCode) -> List[RemediationSuggestion]:
    return [RemediationSuggestion(
        action="remove",
        description=(
            f"Remove {len(pattern.unreachable_nodes)} unreachable node(s): "
            + ", ".join(pattern.unreachable_nodes)
        ),
        steps=[f"Confirm and remove {node_id}" for node_id in pattern.unreachable_nodes],
        priority=1,
        estimated_effort=float(len(pattern.unreachable_nodes)),
    )]


REMEDIATION_TABLE: Dict[PatternType, Callable[..., List[RemediationSuggestion]]] = {
    PatternType.CIRCULAR_DEPENDENCY: _circular,
    PatternType.ORPHANED_NODE: _orphaned,
    PatternType.HUB_NODE: _hub,
    PatternType.DEAD_CODE: _dead_code,
}

_missing = set(PatternType) - set(REMEDIATION_TABLE)
if _missing:
    raise RuntimeError(f"No remediation mapping for: {sorted(t.value for t in _missing)}")


class RemediationAdvisor:
    """Attach table-driven suggestions to detected patterns."""

    def suggest(self, pattern: DetectedPattern) -> List[RemediationSuggestion]:
        suggestions = REMEDIATION_TABLE[pattern.type](pattern)
        return sorted(suggestions, key=lambda s: s.priority)

    def attach(self, patterns: List[DetectedPattern]) -> List[DetectedPattern]:
        for pattern in patterns:
            pattern.remediations = self.suggest(pattern)
        return patterns
