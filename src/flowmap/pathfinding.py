"""Path highlighting — shortest interaction path from the start screen.

Searches a hybrid graph: explicit transitions plus implicit parent → child
edges inferred from folder containment. The implicit edges are a fallback
for screens no recorded interaction reaches; they never influence ranking
or layout.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from flowmap.canvas import DIMMED, FADED, HIGHLIGHTED, SEARCH_HIT, SELECTED
from flowmap.config import Config
from flowmap.graph import Graph, normalize_key

if TYPE_CHECKING:
    from flowmap.session import GraphSession

EXPLICIT = "explicit"
IMPLICIT = "implicit"


@dataclass
class PathResult:
    """A found path: node keys from start to target and the edges between them."""

    nodes: list[str]
    edges: list[tuple[str, str, str]] = field(default_factory=list)  # (source, target, kind)

    @property
    def target(self) -> str:
        return self.nodes[-1]

    @property
    def explicit_pairs(self) -> set[tuple[str, str]]:
        return {(s, t) for s, t, kind in self.edges if kind == EXPLICIT}


@dataclass
class NotFound:
    """No path. ``target_key`` is the resolvable target, if any."""

    target: str
    target_key: str | None = None
    budget_exceeded: bool = False


def build_hybrid_graph(graph: Graph, rendered: Iterable[str]) -> nx.DiGraph:
    """Explicit edges first, then implicit hierarchy edges for unjoined pairs."""
    rendered = list(rendered)
    hybrid: nx.DiGraph = nx.DiGraph()
    hybrid.add_nodes_from(rendered)
    for edge in graph.edges:
        hybrid.add_edge(edge.source, edge.target, kind=EXPLICIT)
    for parent, children in graph.implicit_adjacency(rendered).items():
        for child in children:
            if not hybrid.has_edge(parent, child):
                hybrid.add_edge(parent, child, kind=IMPLICIT)
    return hybrid


def is_target(key: str, target: str) -> bool:
    """True when ``key`` is ``target`` or ends with ``/target``. One-directional."""
    nk, nt = normalize_key(key), normalize_key(target)
    return bool(nt) and (nk == nt or nk.endswith("/" + nt))


def find_path(
    hybrid: nx.DiGraph,
    start: str,
    target: str,
    max_steps: int | None = None,
) -> PathResult | NotFound:
    """Breadth-first search from ``start`` to ``target``.

    An exact node key matches only itself; a short name matches the first
    node whose key ends with it (see ``is_target``).

    Gives up (not found, ``budget_exceeded``) after ``max_steps`` edge
    expansions, so malformed or cyclic data always terminates.
    """
    budget = Config.MAX_SEARCH_STEPS if max_steps is None else max_steps
    if start not in hybrid:
        return NotFound(target=target)
    exact = target in hybrid

    def matches(key: str) -> bool:
        return key == target if exact else is_target(key, target)

    if matches(start):
        return PathResult(nodes=[start])

    parents: dict[str, str] = {}
    for steps, (u, v) in enumerate(nx.bfs_edges(hybrid, start)):
        if steps >= budget:
            return NotFound(target=target, budget_exceeded=True)
        parents[v] = u
        if matches(v):
            nodes = [v]
            while nodes[-1] != start:
                nodes.append(parents[nodes[-1]])
            nodes.reverse()
            edges = [(a, b, hybrid.edges[a, b]["kind"]) for a, b in zip(nodes, nodes[1:])]
            return PathResult(nodes=nodes, edges=edges)
    return NotFound(target=target)


class PathHighlighter:
    """Marks the path to a clicked node on the session canvas."""

    def __init__(self, session: GraphSession) -> None:
        self.session = session
        self.current: PathResult | NotFound | None = None

    def highlight_path_to(self, target: str) -> PathResult | NotFound:
        session = self.session
        canvas = session.canvas
        graph = session.graph
        start = graph.start_key

        # Resolve to one rendered key first, so BFS stops only at that node.
        element = canvas.find_node(target)
        if element is None:
            self.current = NotFound(target=target)
            return self.current

        result: PathResult | NotFound
        if start is None:
            result = NotFound(target=target)
        else:
            result = find_path(build_hybrid_graph(graph, canvas.nodes), start, element.key)

        if isinstance(result, PathResult):
            self._apply_path(result)
        else:
            result.target = target
            result.target_key = element.key
            self._clear()
            for other in canvas.nodes.values():
                other.classes.add(FADED)
            for edge in canvas.edges:
                edge.classes.add(FADED)
            element.classes.discard(FADED)
            element.classes.add(SELECTED)
            session.notify("info", "No linked path found")

        self.current = result
        return result

    def _apply_path(self, result: PathResult) -> None:
        canvas = self.session.canvas
        self._clear()
        on_path = set(result.nodes)
        pairs = result.explicit_pairs
        for key, element in canvas.nodes.items():
            element.classes.add(SELECTED if key in on_path else FADED)
        for edge in canvas.edges:
            edge.classes.add(HIGHLIGHTED if edge.pair in pairs else FADED)

    def _clear(self) -> None:
        self.session.canvas.clear_classes(SELECTED, FADED, HIGHLIGHTED, SEARCH_HIT, DIMMED)

    def clear_highlight(self) -> None:
        self._clear()
        self.current = None
