"""Pattern detection service: runs the detectors and assembles one result."""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .adapters import GraphAdapter
from .cancellation import CancellationToken
from .cycle_detector import CircularDependencyDetector
from .dead_code_detector import DeadCodeDetector
from .exceptions import ConfigurationError, DetectionCancelledError
from .hub_detector import HubNodeDetector
from .models import (
    PATTERN_TYPE_ORDER,
    CircularDependency,
    DeadCode,
    DetectedPattern,
    HubNode,
    OrphanedNode,
    PatternDetectionConfig,
    PatternDetectionResult,
    PatternSeverity,
    PatternType,
    utcnow,
)
from .orphan_detector import OrphanedNodeDetector
from .remediation import RemediationAdvisor
from .snapshot import GraphSnapshot, acquire_snapshot

logger = logging.getLogger(__name__)

GraphSource = Union[GraphAdapter, GraphSnapshot]
ConfigLike = Union[PatternDetectionConfig, Mapping[str, Any], None]
_Findings = Tuple[List[DetectedPattern], Dict[str, Any]]


def resolve_config(config: ConfigLike) -> PatternDetectionConfig:
    if config is None:
        return PatternDetectionConfig()
    if isinstance(config, PatternDetectionConfig):
        return config
    if isinstance(config, Mapping):
        return PatternDetectionConfig.from_dict(config)
    raise ConfigurationError(
        "config must be a PatternDetectionConfig or a mapping",
        context={"got": type(config).__name__},
    )


class PatternDetectionService:
    """Orchestrates the four detectors over a single graph snapshot.

    Detectors are read-only over the snapshot. In concurrent mode each runs
    on a worker thread and the service thread alone merges their findings,
    always in the fixed type order (circular, orphaned, hub, dead code).
    """

    def __init__(self) -> None:
        self.circular_detector = CircularDependencyDetector()
        self.orphaned_detector = OrphanedNodeDetector()
        self.hub_detector = HubNodeDetector()
        self.dead_code_detector = DeadCodeDetector()
        self.advisor = RemediationAdvisor()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def detect(
        self,
        source: GraphSource,
        config: ConfigLike = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> PatternDetectionResult:
        """Synchronous entry point.

        Runs :meth:`detect_async` on a fresh event loop, so it must not be
        called from inside a running loop; await :meth:`detect_async` there.

        Raises:
            ConfigurationError: If *config* is invalid.
            AdapterError: If the snapshot cannot be acquired.
        """
        return asyncio.run(self.detect_async(source, config, cancel_token))

    async def detect_async(
        self,
        source: GraphSource,
        config: ConfigLike = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> PatternDetectionResult:
        resolved = resolve_config(config)
        started = time.perf_counter()
        logger.info("Starting pattern detection (%s)", ", ".join(t.value for t in resolved.enabled_patterns))

        if isinstance(source, GraphSnapshot):
            snapshot = GraphSnapshot.from_config(source.nodes, source.edges, resolved)
        else:
            snapshot = await acquire_snapshot(source, resolved)

        return self.analyze_snapshot(snapshot, resolved, cancel_token, started=started)

    def analyze_snapshot(
        self,
        snapshot: GraphSnapshot,
        config: ConfigLike = None,
        cancel_token: Optional[CancellationToken] = None,
        started: Optional[float] = None,
    ) -> PatternDetectionResult:
        """Run the enabled detectors over an already filtered *snapshot*."""
        config = resolve_config(config)
        if started is None:
            started = time.perf_counter()

        runners = self._runners()
        enabled = [t for t in PATTERN_TYPE_ORDER if config.is_enabled(t)]
        findings: Dict[PatternType, _Findings] = {}
        cancelled = False

        if config.concurrent and len(enabled) > 1:
            with ThreadPoolExecutor(max_workers=len(enabled), thread_name_prefix="detector") as pool:
                futures = {
                    t: pool.submit(runners[t], snapshot, config, cancel_token) for t in enabled
                }
                for pattern_type in enabled:
                    try:
                        findings[pattern_type] = futures[pattern_type].result()
                    except DetectionCancelledError:
                        cancelled = True
        else:
            for pattern_type in enabled:
                try:
                    findings[pattern_type] = runners[pattern_type](snapshot, config, cancel_token)
                except DetectionCancelledError:
                    cancelled = True
                    break

        return self._assemble(findings, snapshot, config, cancelled, started)

    # ------------------------------------------------------------------
    # Single-detector helpers
    # ------------------------------------------------------------------

    def detect_circular_dependencies(
        self, snapshot: GraphSnapshot, config: ConfigLike = None,
    ) -> List[CircularDependency]:
        return self.circular_detector.detect(snapshot, resolve_config(config))

    def detect_orphaned_nodes(
        self, snapshot: GraphSnapshot, config: ConfigLike = None,
    ) -> List[OrphanedNode]:
        return self.orphaned_detector.detect(snapshot, resolve_config(config))

    def detect_hub_nodes(
        self, snapshot: GraphSnapshot, config: ConfigLike = None,
    ) -> List[HubNode]:
        return self.hub_detector.detect(snapshot, resolve_config(config))

    def detect_dead_code(
        self, snapshot: GraphSnapshot, config: ConfigLike = None,
    ) -> List[DeadCode]:
        return self.dead_code_detector.detect(snapshot, resolve_config(config))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _runners(self) -> Dict[PatternType, Callable[..., _Findings]]:
        def run_dead_code(snapshot, config, token) -> _Findings:
            analysis = self.dead_code_detector.analyze(snapshot, config, token)
            return list(analysis.patterns), analysis.diagnostics

        def plain(detector) -> Callable[..., _Findings]:
            return lambda snapshot, config, token: (list(detector.detect(snapshot, config, token)), {})

        return {
            PatternType.CIRCULAR_DEPENDENCY: plain(self.circular_detector),
            PatternType.ORPHANED_NODE: plain(self.orphaned_detector),
            PatternType.HUB_NODE: plain(self.hub_detector),
            PatternType.DEAD_CODE: run_dead_code,
        }

    def _assemble(
        self,
        findings: Dict[PatternType, _Findings],
        snapshot: GraphSnapshot,
        config: PatternDetectionConfig,
        cancelled: bool,
        started: float,
    ) -> PatternDetectionResult:
        patterns: List[DetectedPattern] = []
        metadata: Dict[str, Any] = {"snapshot": dict(snapshot.stats)}

        for pattern_type in PATTERN_TYPE_ORDER:
            if pattern_type not in findings:
                continue
            raw, diagnostics = findings[pattern_type]
            if diagnostics:
                metadata[pattern_type.value] = diagnostics
            kept = [p for p in raw if p.severity >= config.min_severity]
            if config.include_remediations:
                self.advisor.attach(kept)
            patterns.extend(kept)

        summary = {t.value: 0 for t in PATTERN_TYPE_ORDER}
        by_severity = {s.value: 0 for s in PatternSeverity}
        for pattern in patterns:
            summary[pattern.type.value] += 1
            by_severity[pattern.severity.value] += 1
        summary["total"] = len(patterns)

        metadata["completed_detectors"] = [t.value for t in PATTERN_TYPE_ORDER if t in findings]
        if cancelled:
            metadata["cancelled"] = True
            metadata["incomplete"] = True

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            "Pattern detection %s: %d pattern(s) in %.1f ms",
            "cancelled" if cancelled else "finished",
            len(patterns),
            elapsed_ms,
        )
        return PatternDetectionResult(
            patterns=patterns,
            summary=summary,
            by_severity=by_severity,
            config=config,
            analyzed_at=utcnow(),
            analysis_time_ms=elapsed_ms,
            metadata=metadata,
        )


_default_service = PatternDetectionService()


def detect_patterns(
    source: GraphSource,
    config: ConfigLike = None,
    cancel_token: Optional[CancellationToken] = None,
) -> PatternDetectionResult:
    """Detect all enabled patterns in the graph supplied by *source*."""
    return _default_service.detect(source, config, cancel_token)


async def detect_patterns_async(
    source: GraphSource,
    config: ConfigLike = None,
    cancel_token: Optional[CancellationToken] = None,
) -> PatternDetectionResult:
    return await _default_service.detect_async(source, config, cancel_token)
