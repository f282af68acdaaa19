"""Tests for renderers/svg.py — Canvas scene to SVG text."""

from __future__ import annotations

from flowmap.canvas import FADED, HIGHLIGHTED, Canvas, EdgeElement, NodeElement
from flowmap.graph import NodeKind, PreviewState
from flowmap.renderers import SvgRenderer
from flowmap.renderers.svg import FADED_OPACITY, HIGHLIGHT_COLOR

# ─── Helpers ──────────────────────────────────────────────────────────────────


def card(key: str, x: float, title: str | None = None, **kwargs) -> NodeElement:
    return NodeElement(key=key, title=title or key, kind=kwargs.pop("kind", NodeKind.PAGE), x=x, y=0, **kwargs)


def link(source: str, target: str, **kwargs) -> EdgeElement:
    return EdgeElement(
        source=source,
        target=target,
        start=(0, 0),
        control1=(10, 0),
        control2=(20, 0),
        end=(30, 0),
        **kwargs,
    )


def two_card_canvas() -> Canvas:
    canvas = Canvas(node_width=280, node_height=220)
    canvas.add_node(card("login", 0, is_start=True))
    canvas.add_node(card("home", 420))
    canvas.edges.append(link("login", "home", label="Sign in", label_pos=(15, 0)))
    return canvas


class TestSvgRenderer:
    def test_structure(self, make_session):
        svg = make_session().to_svg()
        assert svg.startswith("<svg ") and svg.endswith("</svg>")
        assert '<marker id="arrowhead"' in svg
        assert '<marker id="arrowhead-highlighted"' in svg
        assert svg.count('class="sitemap-node-visual') == 3
        assert svg.count(">START</text>") == 1
        assert svg.count('class="sitemap-edge-path') == 2

    def test_edges_drawn_below_nodes_in_stable_order(self, make_session):
        svg = make_session().to_svg()
        first_node = svg.index("<g ")
        assert svg.rindex("sitemap-edge-path") < first_node
        assert svg.index('d="M 10280 9855') > svg.index('d="M 10700 9855')

    def test_deterministic(self, make_session):
        assert make_session().to_svg() == make_session().to_svg()

    def test_state_classes_and_opacity(self):
        canvas = two_card_canvas()
        canvas.nodes["home"].classes.add(FADED)
        canvas.edges[0].classes.add(HIGHLIGHTED)
        svg = SvgRenderer().render(canvas)
        assert 'class="sitemap-node-visual page faded" data-key="home"' in svg
        assert f'opacity="{FADED_OPACITY}"' in svg
        assert 'marker-end="url(#arrowhead-highlighted)"' in svg
        assert f'stroke="{HIGHLIGHT_COLOR}"' in svg

    def test_edge_label(self):
        svg = SvgRenderer().render(two_card_canvas())
        assert 'class="sitemap-edge-label"' in svg
        assert ">Sign in</text>" in svg

    def test_text_is_escaped(self):
        canvas = Canvas(node_width=280, node_height=220)
        canvas.add_node(card("a", 0, title='A & B <"x">'))
        svg = SvgRenderer().render(canvas)
        assert "A &amp; B &lt;&quot;x&quot;&gt;" in svg

    def test_kind_badge(self):
        canvas = Canvas(node_width=280, node_height=220)
        canvas.add_node(card("m", 0, kind=NodeKind.MODAL))
        svg = SvgRenderer().render(canvas)
        assert 'class="sitemap-node-visual modal"' in svg
        assert f">{NodeKind.MODAL.badge}</text>" in svg

    def test_preview_image_or_placeholder(self):
        canvas = two_card_canvas()
        login = canvas.nodes["login"]
        login.preview_state = PreviewState.LOADED
        login.preview = "preview://desktop/login"
        login.placeholder = None
        svg = SvgRenderer().render(canvas)
        assert svg.count("<image ") == 1
        assert 'href="preview://desktop/login"' in svg
        assert f">{canvas.nodes['home'].placeholder}</text>" in svg

    def test_session_accepts_any_renderer(self, make_session):
        """to_svg hands the canvas to whatever Renderer it is given."""
        seen = []

        class KeyListRenderer:
            def render(self, canvas):
                seen.append(canvas)
                return ",".join(canvas.nodes)

        session = make_session()
        assert session.to_svg(KeyListRenderer()) == "login,home,dashboard"
        assert seen == [session.canvas]

    def test_empty_state(self):
        canvas = Canvas(empty_message="Nothing captured")
        svg = SvgRenderer().render(canvas)
        assert 'class="empty-state"' in svg
        assert ">Nothing captured</text>" in svg
        assert "<g " not in svg
