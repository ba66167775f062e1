"""GraphPattern CLI: structural anti-pattern detection for directed graphs."""

from __future__ import annotations

__version__ = "1.0.0"

from .adapters import GraphAdapter, GraphStoreAdapter, InMemoryGraphAdapter
from .cancellation import CancellationToken
from .exceptions import AdapterError, ConfigurationError, DetectionCancelledError, GraphPatternError
from .models import (
    CircularDependency,
    DeadCode,
    DetectedPattern,
    GraphEdge,
    GraphNode,
    HubNode,
    OrphanedNode,
    PatternDetectionConfig,
    PatternDetectionResult,
    PatternSeverity,
    PatternType,
    RemediationSuggestion,
)
from .service import PatternDetectionService, detect_patterns, detect_patterns_async
from .snapshot import GraphSnapshot, acquire_snapshot

__all__ = [
    "__version__",
    "AdapterError",
    "CancellationToken",
    "CircularDependency",
    "ConfigurationError",
    "DeadCode",
    "DetectedPattern",
    "DetectionCancelledError",
    "GraphAdapter",
    "GraphEdge",
    "GraphNode",
    "GraphPatternError",
    "GraphSnapshot",
    "GraphStoreAdapter",
    "HubNode",
    "InMemoryGraphAdapter",
    "OrphanedNode",
    "PatternDetectionConfig",
    "PatternDetectionResult",
    "PatternDetectionService",
    "PatternSeverity",
    "PatternType",
    "RemediationSuggestion",
    "acquire_snapshot",
    "detect_patterns",
    "detect_patterns_async",
]
