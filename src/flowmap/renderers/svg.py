"""SVG renderer — renders a Canvas scene to an SVG string."""

from __future__ import annotations

from flowmap.canvas import DIMMED, FADED, HIGHLIGHTED, Canvas, EdgeElement, NodeElement
from flowmap.config import INFO_BAR_HEIGHT
from flowmap.graph import PreviewState

# ─── Constants ──────────────────────────────────────────────────────────────

FONT_SIZE = 14
FONT_FAMILY = "system-ui, sans-serif"
PADDING = 40  # canvas padding in pixels
CORNER_RADIUS = 8

FADED_OPACITY = 0.2
DIMMED_OPACITY = 0.5

EDGE_COLOR = "#9aa4b2"
HIGHLIGHT_COLOR = "#2563eb"

_CARD_STYLE = 'fill="white" stroke="#d0d7de" stroke-width="1.5"'
_THUMB_STYLE = 'fill="#f6f8fa" stroke="none"'

EMPTY_WIDTH = 640
EMPTY_HEIGHT = 120


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _font(size: int = FONT_SIZE) -> str:
    return f'font-family="{FONT_FAMILY}" font-size="{size}"'


def _num(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _class_attr(base: str, classes: set[str]) -> str:
    return " ".join([base, *sorted(classes)])


def _opacity(classes: set[str]) -> str:
    if FADED in classes:
        return f' opacity="{FADED_OPACITY}"'
    if DIMMED in classes:
        return f' opacity="{DIMMED_OPACITY}"'
    return ""


# ─── Edge Rendering ─────────────────────────────────────────────────────────


def _render_edge(edge: EdgeElement) -> str:
    highlighted = HIGHLIGHTED in edge.classes
    stroke = HIGHLIGHT_COLOR if highlighted else EDGE_COLOR
    width = 3 if highlighted else 2
    marker = "arrowhead-highlighted" if highlighted else "arrowhead"
    opacity = _opacity(edge.classes)
    parts = [
        f'<path class="{_class_attr("sitemap-edge-path", edge.classes)}" d="{edge.path_data}" '
        f'fill="none" stroke="{stroke}" stroke-width="{width}" marker-end="url(#{marker})"{opacity}/>'
    ]
    if edge.label and edge.label_pos is not None:
        lx, ly = edge.label_pos
        fill = HIGHLIGHT_COLOR if highlighted else "#57606a"
        parts.append(
            f'<text class="{_class_attr("sitemap-edge-label", edge.classes)}" x="{_num(lx)}" y="{_num(ly - 6)}" '
            f'text-anchor="middle" {_font(FONT_SIZE - 2)} fill="{fill}"{opacity}>{_escape(edge.label)}</text>'
        )
    return "\n".join(parts)


# ─── Node Rendering ─────────────────────────────────────────────────────────


def _render_node(node: NodeElement, width: float, height: float) -> str:
    x, y = node.x, node.y
    thumb_h = height - INFO_BAR_HEIGHT
    classes = _class_attr(f"sitemap-node-visual {node.kind.value}", node.classes)
    parts = [
        f'<g class="{classes}" data-key="{_escape(node.key)}"{_opacity(node.classes)}>',
        f'  <rect x="{_num(x)}" y="{_num(y)}" width="{_num(width)}" height="{_num(height)}" '
        f'rx="{CORNER_RADIUS}" {_CARD_STYLE}/>',
        f'  <rect x="{_num(x)}" y="{_num(y)}" width="{_num(width)}" height="{_num(thumb_h)}" '
        f'rx="{CORNER_RADIUS}" {_THUMB_STYLE}/>',
    ]

    if node.preview_state is PreviewState.LOADED and node.preview is not None:
        parts.append(
            f'  <image href="{_escape(str(node.preview))}" x="{_num(x)}" y="{_num(y)}" '
            f'width="{_num(width)}" height="{_num(thumb_h)}" preserveAspectRatio="xMidYMin slice"/>'
        )
    elif node.placeholder:
        parts.append(
            f'  <text x="{_num(x + width / 2)}" y="{_num(y + thumb_h / 2)}" dominant-baseline="central" '
            f'text-anchor="middle" {_font(FONT_SIZE * 2)}>{node.placeholder}</text>'
        )

    parts.append(
        f'  <text class="node-badge" x="{_num(x + 8)}" y="{_num(y + 18)}" {_font(FONT_SIZE - 4)} '
        f'fill="#57606a">{node.kind.badge}</text>'
    )
    if node.is_start:
        parts.append(
            f'  <text class="start-badge" x="{_num(x + width - 8)}" y="{_num(y + 18)}" text-anchor="end" '
            f'{_font(FONT_SIZE - 4)} fill="{HIGHLIGHT_COLOR}">START</text>'
        )
    parts.append(
        f'  <text class="node-title" x="{_num(x + 12)}" y="{_num(y + thumb_h + INFO_BAR_HEIGHT / 2)}" '
        f'dominant-baseline="central" {_font()} fill="#1f2328">{_escape(node.title)}</text>'
    )
    parts.append("</g>")
    return "\n".join(parts)


# ─── Public Renderer ────────────────────────────────────────────────────────


def _bounds(canvas: Canvas) -> tuple[float, float, float, float]:
    xs: list[float] = []
    ys: list[float] = []
    for node in canvas.nodes.values():
        xs += [node.x, node.x + canvas.node_width]
        ys += [node.y, node.y + canvas.node_height]
    for edge in canvas.edges:
        for px, py in (edge.start, edge.control1, edge.control2, edge.end):
            xs.append(px)
            ys.append(py)
    return (min(xs) - PADDING, min(ys) - PADDING, max(xs) + PADDING, max(ys) + PADDING)


class SvgRenderer:
    """SVG renderer — consumes a Canvas, produces an SVG string."""

    def render(self, canvas: Canvas) -> str:
        if canvas.is_empty:
            return self._render_empty(canvas.empty_message or "")

        min_x, min_y, max_x, max_y = _bounds(canvas)
        svg_w, svg_h = max_x - min_x, max_y - min_y

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{_num(svg_w)}" height="{_num(svg_h)}" '
            f'viewBox="{_num(min_x)} {_num(min_y)} {_num(svg_w)} {_num(svg_h)}">',
            "<defs>",
            '  <marker id="arrowhead" markerWidth="10" markerHeight="7" refX="10" refY="3.5" orient="auto">',
            f'    <polygon points="0 0, 10 3.5, 0 7" fill="{EDGE_COLOR}"/>',
            "  </marker>",
            '  <marker id="arrowhead-highlighted" markerWidth="10" markerHeight="7" refX="10" refY="3.5" orient="auto">',
            f'    <polygon points="0 0, 10 3.5, 0 7" fill="{HIGHLIGHT_COLOR}"/>',
            "  </marker>",
            "</defs>",
            f'<rect x="{_num(min_x)}" y="{_num(min_y)}" width="{_num(svg_w)}" height="{_num(svg_h)}" fill="#fafbfc"/>',
        ]

        # Edges (behind nodes), sorted for deterministic output
        for edge in sorted(canvas.edges, key=lambda e: (e.source, e.target)):
            parts.append(_render_edge(edge))

        # Nodes (on top)
        for node in canvas.nodes.values():
            parts.append(_render_node(node, canvas.node_width, canvas.node_height))

        parts.append("</svg>")
        return "\n".join(parts)

    def _render_empty(self, message: str) -> str:
        return "\n".join(
            [
                f'<svg xmlns="http://www.w3.org/2000/svg" width="{EMPTY_WIDTH}" height="{EMPTY_HEIGHT}" '
                f'viewBox="0 0 {EMPTY_WIDTH} {EMPTY_HEIGHT}">',
                f'<rect width="{EMPTY_WIDTH}" height="{EMPTY_HEIGHT}" fill="#fafbfc"/>',
                f'<text class="empty-state" x="{EMPTY_WIDTH // 2}" y="{EMPTY_HEIGHT // 2}" dominant-baseline="central" '
                f'text-anchor="middle" {_font()} fill="#57606a">{_escape(message)}</text>',
                "</svg>",
            ]
        )
