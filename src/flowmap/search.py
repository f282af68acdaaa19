"""Search — find a node by title or key and pan to it."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from flowmap.canvas import DIMMED, SEARCH_HIT, NodeElement

if TYPE_CHECKING:
    from flowmap.session import GraphSession


def find_match(nodes: Iterable[NodeElement], query: str) -> NodeElement | None:
    """Best match for ``query``, case-insensitive.

    Priority: exact title, title prefix, title substring, key substring.
    Within a tier the first node in canvas order wins.
    """
    needle = query.lower().strip()
    if not needle:
        return None
    candidates = list(nodes)
    tiers = (
        lambda n: n.title.lower() == needle,
        lambda n: n.title.lower().startswith(needle),
        lambda n: needle in n.title.lower(),
        lambda n: needle in n.key.lower(),
    )
    for matches in tiers:
        for node in candidates:
            if matches(node):
                return node
    return None


class SearchNavigator:
    def __init__(self, session: GraphSession) -> None:
        self.session = session
        self.current: str | None = None

    def clear(self) -> None:
        self.session.canvas.clear_classes(SEARCH_HIT, DIMMED)
        self.current = None

    def search(self, query: str) -> str | None:
        """Mark and center the best match.

        An empty query clears every highlight (path marks included) and
        leaves the viewport alone. Search never changes the zoom level.
        """
        if not (query or "").strip():
            self.session.clear_highlight()
            return None
        self.clear()
        canvas = self.session.canvas
        match = find_match(canvas.nodes.values(), query)
        if match is None:
            return None
        for element in canvas.nodes.values():
            if element is not match:
                element.classes.add(DIMMED)
        match.classes.add(SEARCH_HIT)
        self.current = match.key
        self.session.viewport.center_on(match.key, animate=True)
        return match.key
