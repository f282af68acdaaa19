"""Edge rendering — curved connectors and labels between node cards.

Each edge leaves the right side of its source card and enters the left side
of its target card as a cubic Bézier whose control points are offset
horizontally by ``min(|dx| * 0.5, MAX_CURVATURE)``. Labels sit on the true
curve midpoint (t = 0.5), not on the chord.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from flowmap.canvas import Canvas, EdgeElement
from flowmap.frames import FrameScheduler
from flowmap.graph import Graph, Position, dedupe_edges, resolve_key

MAX_CURVATURE: float = 150
CURVATURE_RATIO: float = 0.5
# Vertical anchor of connectors, measured from the top of a card.
EDGE_ANCHOR_Y: float = 80

Point = tuple[float, float]


def cubic_point(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    """Point on a cubic Bézier at parameter t."""
    u = 1 - t
    a, b, c, d = u**3, 3 * u**2 * t, 3 * u * t**2, t**3
    return (
        a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
        a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
    )


def edge_geometry(source: Position, target: Position, node_width: float) -> tuple[Point, Point, Point, Point]:
    """(start, control1, control2, end) for a connector between two cards."""
    x1, y1 = source.x + node_width, source.y + EDGE_ANCHOR_Y
    x2, y2 = target.x, target.y + EDGE_ANCHOR_Y
    curvature = min(abs(x2 - x1) * CURVATURE_RATIO, MAX_CURVATURE)
    return ((x1, y1), (x1 + curvature, y1), (x2 - curvature, y2), (x2, y2))


def lookup_position(positions: Mapping[str, Position], key: str) -> Position | None:
    """Position by exact key, falling back to fuzzy suffix match."""
    found = positions.get(key)
    if found is not None:
        return found
    resolved = resolve_key(positions, key)
    return positions.get(resolved) if resolved is not None else None


class EdgeRenderer:
    """Draws the graph's edges into a canvas.

    ``positions`` returns the live position map (it is replaced on every
    relayout); ``node_width`` the current card width.
    """

    def __init__(
        self,
        frames: FrameScheduler,
        positions: Callable[[], Mapping[str, Position]],
        node_width: Callable[[], float],
    ) -> None:
        self.frames = frames
        self._positions = positions
        self._node_width = node_width
        self._graph: Graph | None = None
        self._canvas: Canvas | None = None
        self._pending: int | None = None
        self.redraw_count = 0

    def draw_edges(self, graph: Graph, canvas: Canvas) -> list[EdgeElement]:
        """Replace the canvas edges with freshly computed ones.

        Edges whose endpoints have no position are skipped. Highlight state
        of pairs that were already drawn is carried over.
        """
        self._graph, self._canvas = graph, canvas
        previous = {edge.pair: edge.classes for edge in canvas.edges}
        positions = self._positions()
        width = self._node_width()

        drawn: list[EdgeElement] = []
        for edge in dedupe_edges(graph.edges):
            source = lookup_position(positions, edge.source)
            target = lookup_position(positions, edge.target)
            if source is None or target is None:
                continue
            start, c1, c2, end = edge_geometry(source, target, width)
            label = edge.display_label
            drawn.append(
                EdgeElement(
                    source=edge.source,
                    target=edge.target,
                    start=start,
                    control1=c1,
                    control2=c2,
                    end=end,
                    label=label,
                    label_pos=cubic_point(start, c1, c2, end, 0.5) if label else None,
                    classes=set(previous.get(edge.pair, ())),
                )
            )

        canvas.edges = drawn
        self.redraw_count += 1
        return drawn

    def redraw_edges_only(self) -> None:
        """Redraw from known positions on the next frame; coalesces repeat calls."""
        if self._pending is not None or self._graph is None:
            return
        self._pending = self.frames.request_frame(self._redraw)

    def _redraw(self, _now: float) -> None:
        self._pending = None
        if self._graph is not None and self._canvas is not None:
            self.draw_edges(self._graph, self._canvas)

    def flush(self) -> None:
        """Run a pending redraw immediately."""
        if self._pending is None:
            return
        self.frames.cancel_frame(self._pending)
        self._redraw(self.frames.now())

    def cancel(self) -> None:
        if self._pending is not None:
            self.frames.cancel_frame(self._pending)
            self._pending = None
