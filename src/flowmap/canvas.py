"""Canvas — the container region the engine renders into.

A plain scene model: positioned node cards and edge curves, each with a set
of state classes (``selected``, ``faded``, ``highlighted``, ...). Renderers
and host UIs read it; engine components write it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flowmap.graph import NodeKind, Position, PreviewState, resolve_key

# State classes.
SELECTED = "selected"
FADED = "faded"
HIGHLIGHTED = "highlighted"
SEARCH_HIT = "search-highlight"
DIMMED = "dimmed"
START = "start-node"

PLACEHOLDER_GLYPH = "⏳"
FALLBACK_GLYPH = "📄"

EMPTY_STATE_MESSAGE = "No sitemap data yet. Capture and merge some screens to build the sitemap."


@dataclass
class NodeElement:
    """A positioned node card."""

    key: str
    title: str
    kind: NodeKind
    x: float
    y: float
    is_start: bool = False
    classes: set[str] = field(default_factory=set)
    preview_state: PreviewState = PreviewState.NOT_LOADED
    preview: object | None = None
    placeholder: str | None = PLACEHOLDER_GLYPH

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    def move_to(self, position: Position) -> None:
        self.x, self.y = position.x, position.y


@dataclass
class EdgeElement:
    """A drawn connector between two node cards."""

    source: str
    target: str
    start: tuple[float, float]
    control1: tuple[float, float]
    control2: tuple[float, float]
    end: tuple[float, float]
    label: str = ""
    label_pos: tuple[float, float] | None = None
    classes: set[str] = field(default_factory=set)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target)

    @property
    def path_data(self) -> str:
        (x1, y1), (c1x, c1y), (c2x, c2y), (x2, y2) = self.start, self.control1, self.control2, self.end
        return f"M {x1:g} {y1:g} C {c1x:g} {c1y:g}, {c2x:g} {c2y:g}, {x2:g} {y2:g}"


@dataclass
class Canvas:
    """Everything currently rendered for one session."""

    nodes: dict[str, NodeElement] = field(default_factory=dict)
    edges: list[EdgeElement] = field(default_factory=list)
    empty_message: str | None = None
    node_width: float = 0
    node_height: float = 0

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def clear(self) -> None:
        self.nodes.clear()
        self.edges.clear()
        self.empty_message = None

    def add_node(self, element: NodeElement) -> NodeElement:
        if element.is_start:
            element.classes.add(START)
        self.nodes[element.key] = element
        return element

    def find_node(self, key: str | None) -> NodeElement | None:
        """Exact key first, then fuzzy suffix match."""
        resolved = resolve_key(self.nodes, key)
        return self.nodes.get(resolved) if resolved is not None else None

    def find_edge(self, source: str, target: str) -> EdgeElement | None:
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def clear_classes(self, *names: str) -> None:
        for element in [*self.nodes.values(), *self.edges]:
            element.classes.difference_update(names)
