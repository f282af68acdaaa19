"""Base renderer protocol."""

from __future__ import annotations

from typing import Protocol

from flowmap.canvas import Canvas


class Renderer(Protocol):
    """Protocol that all renderers must implement."""

    def render(self, canvas: Canvas) -> str:
        """Render the current canvas scene to an output string."""
        ...
