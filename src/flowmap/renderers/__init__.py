"""Canvas renderers."""

from flowmap.renderers.base import Renderer
from flowmap.renderers.svg import SvgRenderer

__all__ = ["Renderer", "SvgRenderer"]
