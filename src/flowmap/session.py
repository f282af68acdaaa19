"""GraphSession — one open sitemap canvas and everything it owns.

Pipeline per render pass:
  1. load()       flow descriptor + screen tree from the backend (awaited together)
  2. rebuild()    build graph → ranks → layout → node elements → edges
  3. center       on the start screen at 100 %, unless the view is preserved
  4. previews     lazy thumbnail loading for whatever is (nearly) on screen

All mutable state (graph, position map, viewport, canvas, highlight marks)
lives on the session. Every method that writes positions or the viewport
transform is synchronous; only collaborator calls are awaited.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable, Mapping
from dataclasses import dataclass

from flowmap.backends import FlowBackend, FlowDescriptor
from flowmap.canvas import EMPTY_STATE_MESSAGE, Canvas, NodeElement
from flowmap.config import Config, DevicePreset, get_preset, preset_for_profile
from flowmap.drag import PRIMARY_BUTTON, DragOutcome, DragRepositioner
from flowmap.edges import EdgeRenderer, lookup_position
from flowmap.exceptions import FlowLoadError, UnknownNodeError
from flowmap.frames import FrameScheduler, ManualFrameScheduler
from flowmap.graph import Graph, Position, build_graph
from flowmap.layout import layout
from flowmap.log import logger
from flowmap.pathfinding import NotFound, PathHighlighter, PathResult
from flowmap.preview import LazyPreviewLoader
from flowmap.ranking import assign_ranks
from flowmap.renderers.base import Renderer
from flowmap.renderers.svg import SvgRenderer
from flowmap.search import SearchNavigator
from flowmap.viewport import Animation, ViewportController

_NOTICE_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notice:
    """A non-fatal message for the host UI (toast, status line, ...)."""

    level: str
    message: str


class GraphSession:
    """Explicit context object for one sitemap canvas.

    ``frames`` drives animations and redraw throttling; it defaults to a
    ManualFrameScheduler, so hosts with a real event loop should pass an
    AsyncioFrameScheduler. ``device`` pins the preset; otherwise the flow's
    recorded device profile decides.
    """

    def __init__(
        self,
        project: str,
        backend: FlowBackend,
        frames: FrameScheduler | None = None,
        device: str | None = None,
        on_node_activated: Callable[[str], None] | None = None,
        on_node_selected: Callable[[str], None] | None = None,
        on_notice: Callable[[Notice], None] | None = None,
    ) -> None:
        self.project = project
        self.backend = backend
        self.frames = frames or ManualFrameScheduler()
        self.preset: DevicePreset = get_preset(device or Config.DEFAULT_DEVICE)
        self._device_pinned = device is not None

        self.on_node_activated = on_node_activated
        self.on_node_selected = on_node_selected
        self.on_notice = on_notice

        self.flow = FlowDescriptor()
        self.screen_tree: list[dict] = []
        self.graph = Graph()
        self.ranks: dict[str, int] = {}
        self.positions: dict[str, Position] = {}
        self.canvas = Canvas()
        self.notices: list[Notice] = []
        self.tasks: set[asyncio.Task] = set()
        self._rendered = False
        self._center_pending = False

        self.viewport = ViewportController(
            self.frames,
            locate=lambda key: lookup_position(self.positions, key),
            node_size=lambda: (self.preset.node_width, self.preset.node_height),
            on_change=self._viewport_changed,
        )
        self.edges = EdgeRenderer(
            self.frames,
            positions=lambda: self.positions,
            node_width=lambda: self.preset.node_width,
        )
        self.highlighter = PathHighlighter(self)
        self.drag = DragRepositioner(self)
        self.preview = LazyPreviewLoader(self)
        self.finder = SearchNavigator(self)

    # ─── Loading ──────────────────────────────────────────────────────────────

    async def load(self, preserve_view: bool = False) -> Canvas:
        """Fetch the flow and screen tree, then render them.

        Raises:
            FlowLoadError: either fetch failed (an ``error`` notice is emitted first).
        """
        try:
            flow, tree = await asyncio.gather(
                self.backend.get_flow_descriptor(self.project),
                self.backend.get_screen_tree(self.project),
            )
        except Exception as exc:
            self.notify("error", f"Could not load sitemap for {self.project!r}")
            if isinstance(exc, FlowLoadError):
                raise
            raise FlowLoadError(str(exc), {"project": self.project}) from exc

        if not self._device_pinned:
            self.preset = preset_for_profile(flow.device_profile)
        return self.rebuild(tree, flow, preserve_view=preserve_view)

    def rebuild(
        self,
        screen_tree: Iterable[Mapping] | None = None,
        flow: FlowDescriptor | None = None,
        preserve_view: bool = False,
    ) -> Canvas:
        """Rebuild the whole graph in full (no incremental patching)."""
        if screen_tree is not None:
            self.screen_tree = list(screen_tree)
        if flow is not None:
            self.flow = flow

        self._teardown_pass()
        self.graph = build_graph(self.screen_tree, self.flow.edges, self.flow.positions)
        self.viewport.reset(preserve_view)

        if self.graph.is_empty:
            self.ranks = {}
            self.positions = {}
            self.canvas.clear()
            self.canvas.empty_message = EMPTY_STATE_MESSAGE
            logger.info(f"Sitemap for {self.project!r} is empty")
            return self.canvas

        self.ranks = assign_ranks(self.graph)
        self._render()
        if not preserve_view or not self._rendered:
            self._center_pending = True
            self._center_on_start()
        self._rendered = True
        self.preview.observe()
        logger.info(
            f"Rendered {len(self.canvas.nodes)} screens and {len(self.canvas.edges)} transitions "
            f"for {self.project!r} ({self.preset.name})"
        )
        return self.canvas

    def switch_device(self, name: str) -> Canvas:
        """Relayout with another device preset; graph and ranks are reused.

        Raises:
            UnknownDevicePresetError: ``name`` is not a preset.
        """
        self.preset = get_preset(name)
        self._device_pinned = True
        if self.graph.is_empty:
            return self.canvas
        self._teardown_pass()
        self._render()
        self.preview.observe()
        logger.info(f"Switched {self.project!r} to the {self.preset.name} preset")
        return self.canvas

    async def reset_layout(self) -> bool:
        """Drop every saved position and reload. False (with a notice) on failure."""
        try:
            await self.backend.reset_positions(self.project)
        except Exception as exc:
            logger.error(f"Failed to reset positions of {self.project!r}: {exc}")
            self.notify("error", "Could not reset layout")
            return False
        try:
            await self.load(preserve_view=False)
        except FlowLoadError:
            return False
        return True

    def _teardown_pass(self) -> None:
        self.drag.active = None
        self.viewport.cancel_animation()
        self.edges.cancel()
        self.preview.reset()
        self.highlighter.current = None
        self.finder.current = None

    def _render(self) -> None:
        # Layout is complete before the first edge is drawn.
        self.positions = layout(self.graph, self.preset)
        canvas = self.canvas
        canvas.clear()
        canvas.node_width = self.preset.node_width
        canvas.node_height = self.preset.node_height
        for key, position in self.positions.items():
            node = self.graph.nodes[key]
            canvas.add_node(
                NodeElement(
                    key=key,
                    title=node.display_name,
                    kind=node.kind,
                    x=position.x,
                    y=position.y,
                    is_start=key == self.graph.start_key,
                )
            )
        self.edges.draw_edges(self.graph, canvas)

    def _center_on_start(self) -> None:
        # Wait for a measured viewport; resize() retries.
        state = self.viewport.state
        if not state.width or not state.height or self.graph.start_key is None:
            return
        self._center_pending = False
        self.viewport.center_on(self.graph.start_key, animate=False, reset_scale=True)

    # ─── Collaborator plumbing ────────────────────────────────────────────────

    def notify(self, level: str, message: str) -> Notice:
        notice = Notice(level, message)
        self.notices.append(notice)
        logger.log(_NOTICE_LEVELS.get(level, logging.INFO), f"[notice] {message}")
        if self.on_notice is not None:
            self.on_notice(notice)
        return notice

    def spawn(self, coro: Coroutine) -> asyncio.Task | None:
        """Run ``coro`` fire-and-forget on the running loop.

        Without a running loop the coroutine runs to completion right away
        and None is returned.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return None
        task = loop.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every spawned task (persistence, previews) to finish."""
        while self.tasks:
            await asyncio.gather(*list(self.tasks), return_exceptions=True)

    def place_node(self, key: str, position: Position) -> None:
        """Move one node everywhere it is tracked: graph, position map, canvas.

        Raises:
            UnknownNodeError: ``key`` is not a node of the current graph.
        """
        node = self.graph.nodes.get(key)
        if node is None:
            raise UnknownNodeError(key)
        moved = Position(position.x, position.y)
        self.positions[key] = moved
        node.position = Position(moved.x, moved.y)
        element = self.canvas.nodes.get(key)
        if element is not None:
            element.move_to(moved)

    def _viewport_changed(self) -> None:
        self.preview.check_visibility()

    # ─── Gestures ─────────────────────────────────────────────────────────────

    def pointer_down(self, x: float, y: float, node_key: str | None = None, button: int = PRIMARY_BUTTON) -> str | None:
        """Press on a node starts a drag, on the background a pan. Never both."""
        if button != PRIMARY_BUTTON or self.drag.dragging or self.viewport.state.is_dragging:
            return None
        if node_key is not None and self.drag.press(node_key, x, y, button):
            self.viewport.cancel_animation()
            return "drag"
        if node_key is not None:
            return None
        self.viewport.begin_pan(x, y)
        return "pan"

    def pointer_move(self, x: float, y: float) -> None:
        if self.drag.dragging:
            self.drag.move(x, y)
        elif self.viewport.state.is_dragging:
            self.viewport.move_pan(x, y)

    def pointer_up(self, x: float | None = None, y: float | None = None) -> DragOutcome | None:
        if self.drag.dragging:
            return self.drag.release(x, y)
        if self.viewport.state.is_dragging:
            if x is not None and y is not None:
                self.viewport.move_pan(x, y)
            if not self.viewport.end_pan():
                self.clear_highlight()
        return None

    def click_node(self, key: str) -> PathResult | NotFound:
        element = self.canvas.find_node(key)
        if element is not None and self.on_node_selected is not None:
            self.on_node_selected(element.key)
        return self.highlighter.highlight_path_to(element.key if element is not None else key)

    def double_click_node(self, key: str) -> str | None:
        element = self.canvas.find_node(key)
        if element is None:
            return None
        if self.on_node_activated is not None:
            self.on_node_activated(element.key)
        return element.key

    def clear_highlight(self) -> None:
        self.highlighter.clear_highlight()
        self.finder.current = None

    def search(self, query: str) -> str | None:
        return self.finder.search(query)

    def wheel(self, delta_y: float, x: float, y: float, ctrl: bool = False) -> None:
        self.viewport.wheel(delta_y, x, y, ctrl)

    def zoom_in(self) -> None:
        self.viewport.zoom_in()

    def zoom_out(self) -> None:
        self.viewport.zoom_out()

    def fit(self) -> Animation | None:
        """Animate back to the start screen at 100 %."""
        if self.graph.start_key is None:
            return None
        return self.viewport.center_on(self.graph.start_key, animate=True, reset_scale=True)

    def resize(self, width: float, height: float) -> None:
        self.viewport.resize(width, height)
        if self._center_pending:
            self._center_on_start()

    # ─── Output / teardown ────────────────────────────────────────────────────

    def to_svg(self, renderer: Renderer | None = None) -> str:
        """Serialize the canvas; ``renderer`` defaults to SvgRenderer."""
        return (renderer or SvgRenderer()).render(self.canvas)

    def close(self) -> None:
        """Unmount: stop animations and pending work, forget the canvas."""
        self._teardown_pass()
        for task in list(self.tasks):
            task.cancel()
        self.canvas.clear()
        self.viewport.reset()
