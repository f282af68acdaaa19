"""Node dragging — idle → dragging → idle, one node at a time.

Pointer movement is divided by the zoom scale so a drag tracks the cursor
1:1 on screen. Positions update live (with a throttled edge redraw) and the
final position is persisted once, optimistically, on release.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from flowmap.graph import Position
from flowmap.log import logger

if TYPE_CHECKING:
    from flowmap.session import GraphSession

PRIMARY_BUTTON = 0

# Net displacement (canvas units) a drag needs before it is saved.
MOVE_EPSILON: float = 2.0


@dataclass
class DragState:
    key: str
    pointer_x: float
    pointer_y: float
    origin: Position
    current: Position


@dataclass
class DragOutcome:
    key: str
    position: Position
    moved: bool


class DragRepositioner:
    """Pointer-drag state machine for node cards."""

    def __init__(self, session: GraphSession) -> None:
        self.session = session
        self.active: DragState | None = None

    @property
    def dragging(self) -> bool:
        return self.active is not None

    def press(self, key: str, x: float, y: float, button: int = PRIMARY_BUTTON) -> bool:
        """Start dragging ``key``. Returns False when the press is ignored."""
        if button != PRIMARY_BUTTON or self.active is not None:
            return False
        element = self.session.canvas.find_node(key)
        if element is None:
            return False
        self.active = DragState(
            key=element.key,
            pointer_x=x,
            pointer_y=y,
            origin=element.position,
            current=element.position,
        )
        return True

    def move(self, x: float, y: float) -> Position | None:
        drag = self.active
        if drag is None:
            return None
        scale = self.session.viewport.state.scale
        drag.current = Position(
            drag.origin.x + (x - drag.pointer_x) / scale,
            drag.origin.y + (y - drag.pointer_y) / scale,
        )
        self.session.place_node(drag.key, drag.current)
        self.session.edges.redraw_edges_only()
        return drag.current

    def release(self, x: float | None = None, y: float | None = None) -> DragOutcome | None:
        """Finish the drag; persists the final position when it moved."""
        if self.active is None:
            return None
        if x is not None and y is not None:
            self.move(x, y)
        drag, self.active = self.active, None

        final = drag.current
        moved = abs(final.x - drag.origin.x) > MOVE_EPSILON or abs(final.y - drag.origin.y) > MOVE_EPSILON
        if moved:
            self.session.graph.overrides[drag.key] = Position(final.x, final.y)
            self.session.flow.positions[drag.key] = final.to_dict()
            self.session.spawn(self._persist(drag.key, final))
        self.session.edges.redraw_edges_only()
        return DragOutcome(key=drag.key, position=final, moved=moved)

    def cancel(self) -> None:
        """Abort the drag and put the node back where it started."""
        if self.active is None:
            return
        drag, self.active = self.active, None
        self.session.place_node(drag.key, drag.origin)
        self.session.edges.redraw_edges_only()

    async def _persist(self, key: str, position: Position) -> None:
        session = self.session
        try:
            await session.backend.save_positions(session.project, {key: position.to_dict()})
        except Exception as exc:
            # The in-memory position stays; it diverges until the next reload.
            logger.warning(f"Failed to save position of {key!r}: {exc}")
            session.notify("warning", "Could not save node position")
        else:
            logger.debug(f"Saved position of {key!r}: ({position.x:g}, {position.y:g})")
