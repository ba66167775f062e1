"""Tests for the pattern detection service (aggregation, filtering, errors)."""

import asyncio
import json

import pytest

from graphpattern_cli.adapters import InMemoryGraphAdapter
from graphpattern_cli.cancellation import CancellationToken
from graphpattern_cli.exceptions import AdapterError, ConfigurationError, DetectionCancelledError
from graphpattern_cli.graph_io import load_graph_file
from graphpattern_cli.models import (
    PatternDetectionConfig,
    PatternSeverity,
    PatternType,
)
from graphpattern_cli.service import PatternDetectionService, detect_patterns, detect_patterns_async
from graphpattern_cli.snapshot import GraphSnapshot


def _comparable(result):
    payload = []
    for pattern in result.patterns:
        item = pattern.to_dict()
        item.pop("detected_at")
        payload.append(item)
    return payload


class _FailingAdapter:
    def __init__(self):
        self.calls = 0

    async def get_all_nodes(self):
        self.calls += 1
        raise ConnectionError("backing store offline")

    async def get_all_edges(self):
        self.calls += 1
        return []


class _SyncAdapter:
    def __init__(self, nodes, edges):
        self.nodes, self.edges = nodes, edges

    def get_all_nodes(self):
        return self.nodes

    def get_all_edges(self):
        return self.edges


class TestDetectPatterns:
    """End-to-end detection over the sample graph."""

    @pytest.fixture
    def adapter(self, sample_graph_path):
        return InMemoryGraphAdapter(*load_graph_file(sample_graph_path))

    def test_sample_graph(self, adapter):
        """Test the findings on the sample graph."""
        result = detect_patterns(adapter)

        assert result.summary == {
            "circular_dependency": 2,
            "orphaned_node": 1,
            "hub_node": 0,
            "dead_code": 1,
            "total": 4,
        }
        assert result.by_severity == {"info": 0, "warning": 4, "error": 0, "critical": 0}
        cycles = result.patterns_of_type(PatternType.CIRCULAR_DEPENDENCY)
        assert [c.cycle for c in cycles] == [
            ["repo", "service", "repo"],
            ["legacy_a", "legacy_b", "legacy_a"],
        ]
        dead = result.patterns_of_type(PatternType.DEAD_CODE)[0]
        assert dead.unreachable_nodes == ["legacy_a", "legacy_b"]
        assert dead.root_nodes == ["app", "orphan_x"]

    def test_patterns_grouped_in_type_order(self, adapter):
        """Test patterns grouped in type order."""
        result = detect_patterns(adapter, PatternDetectionConfig(hub_node_threshold=2))

        types = [p.type for p in result.patterns]
        assert types == sorted(types, key=list(PatternType).index)
        hubs = result.patterns_of_type(PatternType.HUB_NODE)
        assert [h.node_id for h in hubs] == ["service", "repo"]

    def test_idempotent(self, adapter):
        """Test two runs on the same graph give identical findings."""
        first = detect_patterns(adapter)
        second = detect_patterns(adapter)

        assert _comparable(first) == _comparable(second)
        assert first.summary == second.summary
        assert first.by_severity == second.by_severity

    def test_concurrent_matches_sequential(self, adapter):
        """Test concurrent matches sequential."""
        sequential = detect_patterns(adapter, PatternDetectionConfig(hub_node_threshold=2))
        concurrent = detect_patterns(
            adapter, PatternDetectionConfig(hub_node_threshold=2, concurrent=True),
        )

        assert _comparable(sequential) == _comparable(concurrent)

    def test_summary_counts_are_exact(self, adapter):
        """Test summary counts are exact."""
        result = detect_patterns(adapter, {"hub_node_threshold": 2, "detect_partially_isolated_nodes": True})

        assert result.summary["total"] == len(result.patterns)
        assert sum(result.by_severity.values()) == len(result.patterns)
        for pattern_type in PatternType:
            assert result.summary[pattern_type.value] == len(result.patterns_of_type(pattern_type))

    def test_remediations_attached_by_default(self, adapter):
        """Test remediations attached by default."""
        result = detect_patterns(adapter)

        assert all(p.remediations for p in result.patterns)

    def test_remediations_can_be_disabled(self, adapter):
        """Test remediations can be disabled."""
        result = detect_patterns(adapter, PatternDetectionConfig(include_remediations=False))

        assert result.patterns
        assert all(p.remediations == [] for p in result.patterns)

    def test_result_serializes_to_json(self, adapter):
        """Test result serializes to json."""
        payload = json.loads(json.dumps(detect_patterns(adapter).to_dict()))

        assert payload["summary"]["total"] == 4
        assert payload["config"]["hub_node_threshold"] == 10
        assert payload["patterns"][0]["type"] == "circular_dependency"

    def test_async_entry_point(self, adapter):
        """Test async entry point."""
        result = asyncio.run(detect_patterns_async(adapter))

        assert result.summary["total"] == 4

    def test_snapshot_source(self, build_graph):
        """Test a prebuilt snapshot can be passed instead of an adapter."""
        nodes, edges = build_graph([("A", "B"), ("B", "A")])
        snapshot = GraphSnapshot(nodes, edges)

        result = detect_patterns(snapshot)

        assert result.summary["circular_dependency"] == 1

    def test_synchronous_adapter_is_accepted(self, build_graph):
        """Test synchronous adapter is accepted."""
        adapter = _SyncAdapter(*build_graph([("A", "B")], nodes=["C"]))

        result = detect_patterns(adapter)

        assert result.summary["orphaned_node"] == 1


class TestFiltering:

    def test_min_severity_can_empty_result(self, build_graph):
        """Test a graph with only info/warning findings under min_severity=error."""
        adapter = InMemoryGraphAdapter(*build_graph([("A", "B")], nodes=["lonely"]))

        result = detect_patterns(adapter, PatternDetectionConfig(min_severity="error"))

        assert result is not None
        assert result.patterns == []
        assert result.summary["total"] == 0

    def test_min_severity_keeps_higher(self, build_graph):
        """Test min severity keeps higher."""
        edges = [("A", "B"), ("B", "C"), ("C", "D"), ("D", "A")]
        adapter = InMemoryGraphAdapter(*build_graph(edges))

        result = detect_patterns(adapter, PatternDetectionConfig(min_severity=PatternSeverity.ERROR))

        assert [p.type for p in result.patterns] == [PatternType.CIRCULAR_DEPENDENCY]

    def test_excluded_node_type_disappears_everywhere(self, build_graph):
        """Test an excluded node and its edges are gone before detection."""
        edges = [("A", "T"), ("T", "A"), ("T", "B")]
        nodes, edge_list = build_graph(edges, node_types={"T": "test"})
        config = PatternDetectionConfig(
            excluded_node_types={"test"},
            hub_node_threshold=1,
            detect_partially_isolated_nodes=True,
        )

        result = detect_patterns(InMemoryGraphAdapter(nodes, edge_list), config)

        assert all("T" not in p.nodes for p in result.patterns)
        assert result.summary["circular_dependency"] == 0
        orphans = {p.node_id for p in result.patterns_of_type(PatternType.ORPHANED_NODE)}
        assert orphans == {"A", "B"}

    def test_excluded_edge_type_does_not_cascade(self, build_graph):
        """Test excluded edge type does not cascade."""
        nodes, edges = build_graph([("A", "B", "imports")])

        result = detect_patterns(
            InMemoryGraphAdapter(nodes, edges), PatternDetectionConfig(excluded_edge_types=["imports"]),
        )

        orphans = [p.node_id for p in result.patterns_of_type(PatternType.ORPHANED_NODE)]
        assert orphans == ["A", "B"]

    def test_disabled_detectors_do_not_run(self, build_graph):
        """Test disabled detectors do not run."""
        adapter = InMemoryGraphAdapter(*build_graph([("A", "B"), ("B", "A")], nodes=["lonely"]))

        result = detect_patterns(adapter, PatternDetectionConfig(enabled_patterns=["orphaned_node"]))

        assert [p.type for p in result.patterns] == [PatternType.ORPHANED_NODE]
        assert result.metadata["completed_detectors"] == ["orphaned_node"]

    def test_dead_code_roots_unavailable_in_metadata(self, build_graph):
        """Test dead code roots unavailable in metadata."""
        adapter = InMemoryGraphAdapter(*build_graph([("A", "B"), ("B", "A")]))

        result = detect_patterns(adapter)

        assert result.metadata["dead_code"]["roots_unavailable"] is True
        assert result.summary["dead_code"] == 0


class TestErrors:

    def test_adapter_failure_propagates(self):
        """Test adapter failure propagates."""
        with pytest.raises(AdapterError) as excinfo:
            detect_patterns(_FailingAdapter())

        assert isinstance(excinfo.value.cause, ConnectionError)
        assert isinstance(excinfo.value.__cause__, ConnectionError)

    def test_malformed_adapter_data(self):
        """Test malformed adapter data."""
        adapter = _SyncAdapter([{"id": "A"}], [])

        with pytest.raises(AdapterError):
            detect_patterns(adapter)

    @pytest.mark.parametrize(
        "config",
        [
            {"hub_node_threshold": 0},
            {"hub_node_threshold": -3},
            {"enabled_patterns": ["god_object"]},
            {"min_severity": "fatal"},
            {"no_such_option": True},
        ],
    )
    def test_invalid_config_fails_before_adapter(self, config):
        """Test invalid config fails before adapter."""
        adapter = _FailingAdapter()

        with pytest.raises(ConfigurationError):
            detect_patterns(adapter, config)
        assert adapter.calls == 0


class TestCancellation:

    def test_cancelled_before_start_returns_partial_result(self, build_graph):
        """Test cancelled before start returns partial result."""
        token = CancellationToken()
        token.cancel()
        adapter = InMemoryGraphAdapter(*build_graph([("A", "B"), ("B", "A")]))

        result = detect_patterns(adapter, cancel_token=token)

        assert result.cancelled is True
        assert result.metadata["incomplete"] is True
        assert result.patterns == []
        assert result.summary["total"] == 0

    def test_patterns_found_before_cancellation_are_kept(self, build_graph):
        """Test patterns found before cancellation are kept."""
        token = CancellationToken()

        class _CancellingDetector:
            def detect(self, snapshot, config, cancel_token):
                cancel_token.cancel("stop")
                cancel_token.raise_if_cancelled()

        service = PatternDetectionService()
        service.hub_detector = _CancellingDetector()
        adapter = InMemoryGraphAdapter(*build_graph([("A", "B"), ("B", "A")], nodes=["lonely"]))

        result = service.detect(adapter, cancel_token=token)

        assert result.cancelled is True
        assert result.summary["circular_dependency"] == 1
        assert result.summary["orphaned_node"] == 1
        assert result.metadata["completed_detectors"] == ["circular_dependency", "orphaned_node"]

    def test_concurrent_cancellation_keeps_finished_detectors(self, build_graph):
        """Test a cancelled detector in concurrent mode does not discard the others."""

        class _CancelledDetector:
            def detect(self, snapshot, config, cancel_token):
                raise DetectionCancelledError(context={"reason": "stop"})

        service = PatternDetectionService()
        service.hub_detector = _CancelledDetector()
        adapter = InMemoryGraphAdapter(*build_graph([("A", "B"), ("B", "A")], nodes=["lonely"]))

        result = service.detect(adapter, PatternDetectionConfig(concurrent=True))

        assert result.cancelled is True
        assert result.metadata["completed_detectors"] == ["circular_dependency", "orphaned_node", "dead_code"]
        assert result.summary["circular_dependency"] == 1
        assert result.summary["orphaned_node"] == 1
        assert result.summary["hub_node"] == 0
        assert result.summary["dead_code"] == 1
        assert result.summary["total"] == len(result.patterns)
