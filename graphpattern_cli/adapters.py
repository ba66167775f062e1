"""Graph adapters: the data sources a detection pass reads its snapshot from.

An adapter's operations may suspend the caller, so the protocol is written
with coroutines. Plain synchronous implementations are accepted as well;
:func:`call_adapter` awaits a return value only when it is awaitable.
"""

from __future__ import annotations

import inspect
import logging
import sqlite3
from collections import deque
from typing import Any, Awaitable, Callable, Dict, List, Protocol, Sequence, Union, runtime_checkable

from .exceptions import AdapterError
from .models import GraphEdge, GraphNode
from .storage import GraphStore, row_to_edge, row_to_node

logger = logging.getLogger(__name__)


@runtime_checkable
class GraphAdapter(Protocol):
    """Capability consumed by the detection engine."""

    async def get_all_nodes(self) -> Sequence[GraphNode]: ...

    async def get_all_edges(self) -> Sequence[GraphEdge]: ...

    async def get_edges_from(self, node_id: str) -> Sequence[GraphEdge]: ...

    async def get_edges_to(self, node_id: str) -> Sequence[GraphEdge]: ...

    async def has_path(self, from_id: str, to_id: str) -> bool: ...


async def call_adapter(
    operation: Callable[..., Union[Any, Awaitable[Any]]],
    *args: Any,
) -> Any:
    """Invoke an adapter operation, wrapping any failure in :class:`AdapterError`."""
    name = getattr(operation, "__name__", repr(operation))
    try:
        value = operation(*args)
        if inspect.isawaitable(value):
            value = await value
    except AdapterError:
        raise
    except Exception as exc:
        raise AdapterError(
            f"Adapter call '{name}' failed",
            context={"operation": name},
            cause=exc,
        ) from exc
    return value


def _reachable(start: str, successors: Callable[[str], List[str]], target: str) -> bool:
    if start == target:
        return True
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for nxt in successors(current):
            if nxt == target:
                return True
            if nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return False


class InMemoryGraphAdapter:
    """List-backed adapter, used for files loaded from disk and in tests."""

    def __init__(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> None:
        self._nodes = list(nodes)
        self._edges = list(edges)
        self._by_src: Dict[str, List[GraphEdge]] = {}
        self._by_dst: Dict[str, List[GraphEdge]] = {}
        for edge in self._edges:
            self._by_src.setdefault(edge.src, []).append(edge)
            self._by_dst.setdefault(edge.dst, []).append(edge)

    async def get_all_nodes(self) -> List[GraphNode]:
        return list(self._nodes)

    async def get_all_edges(self) -> List[GraphEdge]:
        return list(self._edges)

    async def get_edges_from(self, node_id: str) -> List[GraphEdge]:
        return list(self._by_src.get(node_id, []))

    async def get_edges_to(self, node_id: str) -> List[GraphEdge]:
        return list(self._by_dst.get(node_id, []))

    async def has_path(self, from_id: str, to_id: str) -> bool:
        return _reachable(
            from_id,
            lambda n: [e.dst for e in self._by_src.get(n, [])],
            to_id,
        )


class GraphStoreAdapter:
    """Adapter over a project's SQLite :class:`GraphStore`."""

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    def _query(self, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (sqlite3.Error, ValueError) as exc:
            raise AdapterError(
                "Graph store unavailable",
                context={"db_path": str(self.store.db_path)},
                cause=exc,
            ) from exc

    async def get_all_nodes(self) -> List[GraphNode]:
        return self._query(lambda: [row_to_node(r) for r in self.store.get_nodes()])

    async def get_all_edges(self) -> List[GraphEdge]:
        return self._query(lambda: [row_to_edge(r) for r in self.store.get_edges()])

    async def get_edges_from(self, node_id: str) -> List[GraphEdge]:
        return self._query(lambda: [row_to_edge(r) for r in self.store.neighbors(node_id)])

    async def get_edges_to(self, node_id: str) -> List[GraphEdge]:
        return self._query(lambda: [row_to_edge(r) for r in self.store.reverse_neighbors(node_id)])

    async def has_path(self, from_id: str, to_id: str) -> bool:
        return self._query(
            lambda: _reachable(
                from_id,
                lambda n: [r["dst"] for r in self.store.neighbors(n)],
                to_id,
            )
        )
