"""Core data models shared by the snapshot, detectors, advisor and service."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from .config import DEFAULT_HUB_THRESHOLD
from .exceptions import ConfigurationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===================================================================
# Graph
# ===================================================================

@dataclass(frozen=True)
class GraphNode:
    node_id: str
    node_type: str
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.node_id, "type": self.node_type, "attributes": dict(self.attributes)}


@dataclass(frozen=True)
class GraphEdge:
    src: str
    dst: str
    edge_type: str
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_self_loop(self) -> bool:
        return self.src == self.dst

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.src, "to": self.dst, "type": self.edge_type}


# ===================================================================
# Enums
# ===================================================================

class PatternType(str, Enum):
    """Detectable patterns, declared in report order."""

    CIRCULAR_DEPENDENCY = "circular_dependency"
    ORPHANED_NODE = "orphaned_node"
    HUB_NODE = "hub_node"
    DEAD_CODE = "dead_code"


PATTERN_TYPE_ORDER: Tuple[PatternType, ...] = tuple(PatternType)


class PatternSeverity(str, Enum):
    """Severity levels, strictly ordered info < warning < error < critical."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        return _SEVERITY_LEVELS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PatternSeverity):
            return NotImplemented
        return self.level < other.level

    def __le__(self, other: object) -> bool:
        if not isinstance(other, PatternSeverity):
            return NotImplemented
        return self.level <= other.level

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, PatternSeverity):
            return NotImplemented
        return self.level > other.level

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, PatternSeverity):
            return NotImplemented
        return self.level >= other.level


_SEVERITY_LEVELS = {
    PatternSeverity.INFO: 1,
    PatternSeverity.WARNING: 2,
    PatternSeverity.ERROR: 3,
    PatternSeverity.CRITICAL: 4,
}

RemediationAction = Literal["remove", "refactor", "document", "split", "merge", "investigate"]
REMEDIATION_ACTIONS: FrozenSet[str] = frozenset(
    {"remove", "refactor", "document", "split", "merge", "investigate"}
)


# ===================================================================
# Patterns
# ===================================================================

@dataclass
class RemediationSuggestion:
    """A suggested action for a detected pattern (priority 1 is highest)."""
    action: RemediationAction
    description: str
    priority: int
    steps: List[str] = field(default_factory=list)
    estimated_effort: Optional[float] = None

    def __post_init__(self):
        if self.action not in REMEDIATION_ACTIONS:
            raise ValueError(f"Unknown remediation action: {self.action!r}")
        if self.priority < 1:
            raise ValueError("Remediation priority must be a positive integer")
        if self.estimated_effort is not None and self.estimated_effort < 0:
            raise ValueError("Estimated effort cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "description": self.description,
            "steps": list(self.steps),
            "priority": self.priority,
            "estimated_effort": self.estimated_effort,
        }


_PATTERN_ID_NAMESPACE = uuid.UUID("6f1c2b9e-3f43-4c1e-9a57-0d6a4f2c8e11")


def make_pattern_id(pattern_type: PatternType, key: Iterable[str]) -> str:
    """Stable id for a pattern, derived from its type and identifying node ids."""
    return str(uuid.uuid5(_PATTERN_ID_NAMESPACE, pattern_type.value + ":" + "\x1f".join(key)))


@dataclass(kw_only=True)
class _PatternBase:
    pattern_id: str
    severity: PatternSeverity
    description: str
    nodes: List[str]
    edges: List[GraphEdge] = field(default_factory=list)
    remediations: List[RemediationSuggestion] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    detected_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.nodes:
            raise ValueError(f"{type(self).__name__} must involve at least one node")

    def _variant_fields(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.pattern_id,
            "type": self.type.value,  # type: ignore[attr-defined]
            "severity": self.severity.value,
            "description": self.description,
            "nodes": list(self.nodes),
            "edges": [e.to_dict() for e in self.edges],
            "remediations": [r.to_dict() for r in self.remediations],
            "metadata": dict(self.metadata),
            "detected_at": self.detected_at.isoformat(),
        }
        payload.update(self._variant_fields())
        return payload


@dataclass(kw_only=True)
class CircularDependency(_PatternBase):
    """A cycle; ``cycle`` starts at its smallest node id and repeats it at the end."""
    type: Literal[PatternType.CIRCULAR_DEPENDENCY] = field(
        default=PatternType.CIRCULAR_DEPENDENCY, init=False,
    )
    cycle: List[str]
    cycle_length: int

    def _variant_fields(self) -> Dict[str, Any]:
        return {"cycle": list(self.cycle), "cycle_length": self.cycle_length}


@dataclass(kw_only=True)
class OrphanedNode(_PatternBase):
    type: Literal[PatternType.ORPHANED_NODE] = field(
        default=PatternType.ORPHANED_NODE, init=False,
    )
    node_id: str
    no_incoming: bool
    no_outgoing: bool

    def __post_init__(self):
        super().__post_init__()
        if not (self.no_incoming or self.no_outgoing):
            raise ValueError("An orphaned node lacks incoming and/or outgoing edges")

    @property
    def fully_isolated(self) -> bool:
        return self.no_incoming and self.no_outgoing

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "no_incoming": self.no_incoming,
            "no_outgoing": self.no_outgoing,
        }


@dataclass(kw_only=True)
class HubNode(_PatternBase):
    type: Literal[PatternType.HUB_NODE] = field(default=PatternType.HUB_NODE, init=False)
    node_id: str
    incoming_count: int
    outgoing_count: int
    total_connections: int
    threshold: int

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "incoming_count": self.incoming_count,
            "outgoing_count": self.outgoing_count,
            "total_connections": self.total_connections,
            "threshold": self.threshold,
        }


@dataclass(kw_only=True)
class DeadCode(_PatternBase):
    type: Literal[PatternType.DEAD_CODE] = field(default=PatternType.DEAD_CODE, init=False)
    unreachable_nodes: List[str]
    root_nodes: List[str]

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            "unreachable_nodes": list(self.unreachable_nodes),
            "root_nodes": list(self.root_nodes),
        }


DetectedPattern = Union[CircularDependency, OrphanedNode, HubNode, DeadCode]


# ===================================================================
# Config / result
# ===================================================================

_CONFIG_KEYS = {
    "hub_node_threshold",
    "enabled_patterns",
    "min_severity",
    "include_remediations",
    "excluded_node_types",
    "excluded_edge_types",
    "detect_partially_isolated_nodes",
    "root_node_ids",
    "concurrent",
}


@dataclass
class PatternDetectionConfig:
    """Detection policy for one analysis pass.

    Values are normalized on construction: pattern types and severities may be
    given as strings, type exclusions as any iterable of strings. Invalid
    values raise :class:`ConfigurationError` before any detector runs.
    """
    hub_node_threshold: int = DEFAULT_HUB_THRESHOLD
    enabled_patterns: Tuple[PatternType, ...] = PATTERN_TYPE_ORDER
    min_severity: PatternSeverity = PatternSeverity.INFO
    include_remediations: bool = True
    excluded_node_types: FrozenSet[str] = frozenset()
    excluded_edge_types: FrozenSet[str] = frozenset()
    detect_partially_isolated_nodes: bool = False
    root_node_ids: Optional[Tuple[str, ...]] = None
    concurrent: bool = False

    def __post_init__(self):
        threshold = self.hub_node_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 1:
            raise ConfigurationError(
                "hub_node_threshold must be an integer >= 1",
                context={"hub_node_threshold": threshold},
            )

        if isinstance(self.enabled_patterns, (str, PatternType)) or not isinstance(
            self.enabled_patterns, Iterable
        ):
            raise ConfigurationError("enabled_patterns must be a collection of pattern types")
        enabled = set()
        for raw in self.enabled_patterns:
            try:
                enabled.add(PatternType(raw))
            except ValueError as exc:
                raise ConfigurationError(
                    f"Unknown pattern type: {raw!r}",
                    context={"valid": ", ".join(t.value for t in PatternType)},
                ) from exc
        self.enabled_patterns = tuple(t for t in PATTERN_TYPE_ORDER if t in enabled)

        try:
            self.min_severity = PatternSeverity(self.min_severity)
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown severity: {self.min_severity!r}",
                context={"valid": ", ".join(s.value for s in PatternSeverity)},
            ) from exc

        self.excluded_node_types = _string_set(self.excluded_node_types, "excluded_node_types")
        self.excluded_edge_types = _string_set(self.excluded_edge_types, "excluded_edge_types")

        if self.root_node_ids is not None:
            if isinstance(self.root_node_ids, str):
                raise ConfigurationError("root_node_ids must be a list of node ids, not a string")
            roots = tuple(self.root_node_ids)
            if not all(isinstance(r, str) for r in roots):
                raise ConfigurationError("root_node_ids must contain only strings")
            # An empty root list means "infer roots", same as leaving it unset.
            self.root_node_ids = tuple(dict.fromkeys(roots)) or None

        for flag in ("include_remediations", "detect_partially_isolated_nodes", "concurrent"):
            if not isinstance(getattr(self, flag), bool):
                raise ConfigurationError(f"{flag} must be a boolean")

    def is_enabled(self, pattern_type: PatternType) -> bool:
        return pattern_type in self.enabled_patterns

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PatternDetectionConfig":
        unknown = set(payload) - _CONFIG_KEYS
        if unknown:
            raise ConfigurationError(
                "Unknown detection config keys: " + ", ".join(sorted(unknown)),
            )
        return cls(**dict(payload))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hub_node_threshold": self.hub_node_threshold,
            "enabled_patterns": [t.value for t in self.enabled_patterns],
            "min_severity": self.min_severity.value,
            "include_remediations": self.include_remediations,
            "excluded_node_types": sorted(self.excluded_node_types),
            "excluded_edge_types": sorted(self.excluded_edge_types),
            "detect_partially_isolated_nodes": self.detect_partially_isolated_nodes,
            "root_node_ids": list(self.root_node_ids) if self.root_node_ids is not None else None,
            "concurrent": self.concurrent,
        }


def _string_set(values: Any, name: str) -> FrozenSet[str]:
    if isinstance(values, str):
        raise ConfigurationError(f"{name} must be a collection of type names, not a string")
    try:
        items = frozenset(values)
    except TypeError as exc:
        raise ConfigurationError(f"{name} must be a collection of type names") from exc
    if not all(isinstance(v, str) for v in items):
        raise ConfigurationError(f"{name} must contain only strings")
    return items


@dataclass
class PatternDetectionResult:
    patterns: List[DetectedPattern]
    summary: Dict[str, int]
    by_severity: Dict[str, int]
    config: PatternDetectionConfig
    analyzed_at: datetime
    analysis_time_ms: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def cancelled(self) -> bool:
        return bool(self.metadata.get("cancelled", False))

    @property
    def total(self) -> int:
        return self.summary["total"]

    def patterns_of_type(self, pattern_type: PatternType) -> List[DetectedPattern]:
        return [p for p in self.patterns if p.type == pattern_type]

    def patterns_with_severity(self, severity: PatternSeverity) -> List[DetectedPattern]:
        return [p for p in self.patterns if p.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "summary": dict(self.summary),
            "by_severity": dict(self.by_severity),
            "config": self.config.to_dict(),
            "analyzed_at": self.analyzed_at.isoformat(),
            "analysis_time_ms": self.analysis_time_ms,
            "metadata": dict(self.metadata),
        }
