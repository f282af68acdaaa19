"""Lazy thumbnails — fetch a node's preview the first time it nears the viewport."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from flowmap.canvas import FALLBACK_GLYPH, NodeElement
from flowmap.config import Config
from flowmap.graph import PreviewState
from flowmap.log import logger

if TYPE_CHECKING:
    from flowmap.session import GraphSession


class LazyPreviewLoader:
    """Requests each node's thumbnail at most once per render pass."""

    def __init__(self, session: GraphSession, margin: float | None = None) -> None:
        self.session = session
        self.margin = Config.PREVIEW_MARGIN if margin is None else margin
        self.requested: set[str] = set()
        self.pending: set[asyncio.Task] = set()
        self._observing = False

    def observe(self) -> None:
        """Start watching the current canvas (a new render pass)."""
        self.reset()
        self._observing = True
        self.check_visibility()

    def reset(self) -> None:
        self.requested.clear()
        self._observing = False

    def is_visible(self, element: NodeElement) -> bool:
        viewport = self.session.viewport
        state = viewport.state
        if not state.width or not state.height:
            return False
        left, top, right, bottom = viewport.screen_rect(
            element.position, self.session.preset.node_width, self.session.preset.node_height
        )
        m = self.margin
        return right >= -m and left <= state.width + m and bottom >= -m and top <= state.height + m

    def check_visibility(self) -> list[str]:
        """Request previews for nodes that entered the look-ahead area."""
        if not self._observing:
            return []
        started: list[str] = []
        for key, element in self.session.canvas.nodes.items():
            if key in self.requested or not self.is_visible(element):
                continue
            self.requested.add(key)
            element.preview_state = PreviewState.LOADING
            self._set_node_state(key, PreviewState.LOADING)
            task = self.session.spawn(self._load(key, element))
            if task is not None:
                self.pending.add(task)
                task.add_done_callback(self.pending.discard)
            started.append(key)
        return started

    async def _load(self, key: str, element: NodeElement) -> None:
        session = self.session
        try:
            handle = await session.backend.get_preview(key, session.preset)
        except Exception as exc:
            logger.debug(f"Preview for {key!r} failed: {exc}")
            element.preview_state = PreviewState.ERROR
            element.placeholder = FALLBACK_GLYPH
            self._set_node_state(key, PreviewState.ERROR)
            return
        element.preview = handle
        element.preview_state = PreviewState.LOADED
        element.placeholder = None
        node = session.graph.nodes.get(key)
        if node is not None:
            node.preview = handle
        self._set_node_state(key, PreviewState.LOADED)

    def _set_node_state(self, key: str, state: PreviewState) -> None:
        node = self.session.graph.nodes.get(key)
        if node is not None:
            node.preview_state = state
