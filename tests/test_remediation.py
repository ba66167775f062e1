"""Tests for the remediation advisor."""

import pytest

from graphpattern_cli.models import (
    CircularDependency,
    DeadCode,
    HubNode,
    OrphanedNode,
    PatternSeverity,
    PatternType,
)
from graphpattern_cli.remediation import REMEDIATION_TABLE, RemediationAdvisor


@pytest.fixture
def advisor() -> RemediationAdvisor:
    return RemediationAdvisor()


def _orphan(intentional: bool = False, no_outgoing: bool = True) -> OrphanedNode:
    return OrphanedNode(
        pattern_id="o1",
        severity=PatternSeverity.WARNING,
        description="orphan",
        nodes=["x"],
        node_id="x",
        no_incoming=True,
        no_outgoing=no_outgoing,
        metadata={"intentional_endpoint": intentional},
    )


def test_every_pattern_type_is_mapped():
    """Test every pattern type is mapped."""
    assert set(REMEDIATION_TABLE) == set(PatternType)


def test_circular_dependency(advisor):
    """Test a cycle gets refactor and investigate suggestions."""
    pattern = CircularDependency(
        pattern_id="c1",
        severity=PatternSeverity.WARNING,
        description="cycle",
        nodes=["A", "B"],
        cycle=["A", "B", "A"],
        cycle_length=2,
    )

    suggestions = advisor.suggest(pattern)

    assert [(s.action, s.priority) for s in suggestions] == [("refactor", 1), ("investigate", 2)]
    assert "A → B → A" in suggestions[0].description


def test_fully_isolated_orphan_is_removed(advisor):
    """Test fully isolated orphan is removed."""
    suggestions = advisor.suggest(_orphan())

    assert [(s.action, s.priority) for s in suggestions] == [("remove", 1)]


def test_intentional_endpoint_is_documented(advisor):
    """Test intentional endpoint is documented."""
    suggestions = advisor.suggest(_orphan(intentional=True))

    assert [(s.action, s.priority) for s in suggestions] == [("document", 2)]


def test_partially_isolated_orphan(advisor):
    """Test a source-only node gets investigate and document suggestions."""
    suggestions = advisor.suggest(_orphan(no_outgoing=False))

    assert [s.action for s in suggestions] == ["investigate", "document"]
    assert "entry point" in suggestions[0].description


def test_hub_node(advisor):
    """Test a hub gets split and document suggestions."""
    pattern = HubNode(
        pattern_id="h1",
        severity=PatternSeverity.ERROR,
        description="hub",
        nodes=["core"],
        node_id="core",
        incoming_count=15,
        outgoing_count=10,
        total_connections=25,
        threshold=10,
    )

    suggestions = advisor.suggest(pattern)

    assert [(s.action, s.priority) for s in suggestions] == [("split", 1), ("document", 2)]
    assert suggestions[0].estimated_effort == 3


def test_dead_code_single_removal(advisor):
    """Test dead code single removal."""
    pattern = DeadCode(
        pattern_id="d1",
        severity=PatternSeverity.WARNING,
        description="dead",
        nodes=["C", "D"],
        unreachable_nodes=["C", "D"],
        root_nodes=["A"],
    )

    suggestions = advisor.suggest(pattern)

    assert len(suggestions) == 1
    assert suggestions[0].action == "remove"
    assert suggestions[0].priority == 1
    assert "C, D" in suggestions[0].description
    assert len(suggestions[0].steps) == 2


def test_suggestions_are_reproducible(advisor):
    """Test suggestions are reproducible."""
    first = [s.to_dict() for s in advisor.suggest(_orphan())]
    second = [s.to_dict() for s in advisor.suggest(_orphan())]

    assert first == second
