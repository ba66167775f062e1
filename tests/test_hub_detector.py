"""Tests for hub node detection."""

import pytest

from graphpattern_cli.hub_detector import HubNodeDetector, hub_severity
from graphpattern_cli.models import PatternDetectionConfig, PatternSeverity


@pytest.fixture
def detector() -> HubNodeDetector:
    return HubNodeDetector()


def _star(center: str, fan_out: int, fan_in: int = 0):
    edges = [(center, f"out{i}") for i in range(fan_out)]
    edges += [(f"in{i}", center) for i in range(fan_in)]
    return edges


class TestHubNodeDetector:

    def test_total_equal_to_threshold_not_flagged(self, detector, build_snapshot):
        """Test the threshold comparison is strict."""
        snapshot = build_snapshot(_star("hub", 2, 1))

        patterns = detector.detect(snapshot, PatternDetectionConfig(hub_node_threshold=3))

        assert patterns == []

    def test_total_one_above_threshold_flagged(self, detector, build_snapshot):
        """Test total one above threshold flagged."""
        snapshot = build_snapshot(_star("hub", 2, 2))

        patterns = detector.detect(snapshot, PatternDetectionConfig(hub_node_threshold=3))

        assert len(patterns) == 1
        hub = patterns[0]
        assert hub.node_id == "hub"
        assert hub.incoming_count == 2
        assert hub.outgoing_count == 2
        assert hub.total_connections == 4
        assert hub.threshold == 3
        assert hub.severity == PatternSeverity.WARNING

    def test_far_over_threshold_is_error(self, detector, build_snapshot):
        """Test far over threshold is error."""
        snapshot = build_snapshot(_star("hub", 7))

        patterns = detector.detect(snapshot, PatternDetectionConfig(hub_node_threshold=3))

        assert patterns[0].severity == PatternSeverity.ERROR

    def test_default_threshold_is_ten(self, detector, build_snapshot):
        """Test default threshold is ten."""
        assert detector.detect(build_snapshot(_star("hub", 10))) == []
        assert len(detector.detect(build_snapshot(_star("hub", 11)))) == 1

    def test_parallel_edges_each_count(self, detector, build_snapshot):
        """Test parallel edges each count."""
        snapshot = build_snapshot([("A", "B", "calls"), ("A", "B", "imports")])

        patterns = detector.detect(snapshot, PatternDetectionConfig(hub_node_threshold=1))

        assert {p.node_id for p in patterns} == {"A", "B"}

    @pytest.mark.parametrize(
        "total,expected",
        [(11, PatternSeverity.WARNING), (20, PatternSeverity.WARNING), (21, PatternSeverity.ERROR)],
    )
    def test_hub_severity(self, total, expected):
        """Test hub severity."""
        assert hub_severity(total, 10) == expected
