"""Pytest configuration and fixtures for GraphPattern CLI tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Iterable, List, Optional, Sequence, Tuple

import pytest

from graphpattern_cli.models import GraphEdge, GraphNode, PatternDetectionConfig
from graphpattern_cli.snapshot import GraphSnapshot
from graphpattern_cli.storage import GraphStore, ProjectManager

EdgeSpec = Tuple[str, ...]  # (src, dst) or (src, dst, edge_type)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def _isolated_home(temp_dir: Path, monkeypatch):
    """Keep project memories and config files out of the real home directory.

    ``storage`` and ``config_manager`` import the paths at module load, so
    they are patched alongside ``config``.
    """
    base_dir = temp_dir / "home"
    memory_dir = base_dir / "memory"
    state_file = base_dir / "state.json"
    config_file = base_dir / "config.toml"

    monkeypatch.setattr("graphpattern_cli.config.BASE_DIR", base_dir)
    monkeypatch.setattr("graphpattern_cli.config.MEMORY_DIR", memory_dir)
    monkeypatch.setattr("graphpattern_cli.config.STATE_FILE", state_file)
    monkeypatch.setattr("graphpattern_cli.config.CONFIG_FILE", config_file)
    monkeypatch.setattr("graphpattern_cli.storage.MEMORY_DIR", memory_dir)
    monkeypatch.setattr("graphpattern_cli.storage.STATE_FILE", state_file)
    monkeypatch.setattr("graphpattern_cli.config_manager.BASE_DIR", base_dir)
    monkeypatch.setattr("graphpattern_cli.config_manager.CONFIG_FILE", config_file)
    return base_dir


@pytest.fixture
def config_file(_isolated_home: Path) -> Path:
    return _isolated_home / "config.toml"


@pytest.fixture
def temp_project_manager() -> ProjectManager:
    """Create a ProjectManager with temporary storage."""
    return ProjectManager()


@pytest.fixture
def temp_graph_store(temp_dir: Path) -> Generator[GraphStore, None, None]:
    """Create a GraphStore with temporary storage."""
    project_dir = temp_dir / "test_project"
    project_dir.mkdir(parents=True, exist_ok=True)
    store = GraphStore(project_dir)
    yield store
    store.close()


def _build_graph(
    edges: Iterable[EdgeSpec],
    nodes: Sequence[str] = (),
    node_types: Optional[Dict[str, str]] = None,
    attributes: Optional[Dict[str, dict]] = None,
) -> Tuple[List[GraphNode], List[GraphEdge]]:
    node_types = node_types or {}
    attributes = attributes or {}
    edge_list: List[GraphEdge] = []
    order: Dict[str, None] = dict.fromkeys(nodes)
    for spec in edges:
        src, dst = spec[0], spec[1]
        edge_type = spec[2] if len(spec) > 2 else "depends_on"
        edge_list.append(GraphEdge(src=src, dst=dst, edge_type=edge_type))
        order.setdefault(src, None)
        order.setdefault(dst, None)
    node_list = [
        GraphNode(node_id=n, node_type=node_types.get(n, "module"), attributes=attributes.get(n, {}))
        for n in order
    ]
    return node_list, edge_list


@pytest.fixture
def build_graph() -> Callable[..., Tuple[List[GraphNode], List[GraphEdge]]]:
    """Factory: edge specs (plus optional extra node ids) -> (nodes, edges).

    Nodes appear in the order given in *nodes*, then in first-seen edge order.
    """
    return _build_graph


@pytest.fixture
def build_snapshot() -> Callable[..., GraphSnapshot]:
    """Factory returning a snapshot filtered by an optional config."""

    def _factory(
        edges: Iterable[EdgeSpec],
        nodes: Sequence[str] = (),
        config: Optional[PatternDetectionConfig] = None,
        **kwargs,
    ) -> GraphSnapshot:
        node_list, edge_list = _build_graph(edges, nodes, **kwargs)
        return GraphSnapshot.from_config(node_list, edge_list, config)

    return _factory


@pytest.fixture
def sample_graph_path() -> Path:
    """Get path to the sample graph document."""
    return Path(__file__).parent / "fixtures" / "sample_graph.json"
