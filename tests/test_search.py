"""Tests for search.py — match priority and pan-only navigation."""

from __future__ import annotations

import pytest
from conftest import edge, page

from flowmap.canvas import DIMMED, FADED, HIGHLIGHTED, SEARCH_HIT, SELECTED, NodeElement
from flowmap.graph import NodeKind
from flowmap.search import find_match

# ─── Helpers ──────────────────────────────────────────────────────────────────


def element(key: str, title: str) -> NodeElement:
    return NodeElement(key=key, title=title, kind=NodeKind.PAGE, x=0, y=0)


DASH_TREE = [page("settings", name="Settings"), page("dashboard", name="Dashboard")]
DASH_EDGES = [edge("start", "settings"), edge("settings", "dashboard")]


class TestFindMatch:
    def test_prefix_beats_nothing(self):
        """'Dash' picks Dashboard by prefix; Settings never matches."""
        nodes = [element("settings", "Settings"), element("dashboard", "Dashboard")]
        assert find_match(nodes, "Dash").key == "dashboard"

    def test_exact_title_first(self):
        nodes = [element("a", "Dashboard"), element("b", "Dash")]
        assert find_match(nodes, "dash").key == "b"

    def test_prefix_before_substring(self):
        nodes = [element("a", "My reports"), element("b", "Reports archive")]
        assert find_match(nodes, "report").key == "b"

    def test_substring_before_key(self):
        nodes = [element("admin/users", "Users"), element("x", "Billing admin")]
        assert find_match(nodes, "admin").key == "x"

    def test_key_substring_last(self):
        nodes = [element("admin/users", "Users")]
        assert find_match(nodes, "admin").key == "admin/users"

    def test_case_and_whitespace(self):
        assert find_match([element("a", "Dashboard")], "  DASHBOARD ").key == "a"

    def test_empty_or_no_match(self):
        nodes = [element("a", "Dashboard")]
        assert find_match(nodes, "") is None
        assert find_match(nodes, "   ") is None
        assert find_match(nodes, "zzz") is None


class TestSearchNavigator:
    def test_match_is_marked_and_centered(self, make_session):
        """The viewport pans to the match at the current scale."""
        session = make_session(DASH_TREE, DASH_EDGES, size=(1000, 800))
        session.viewport.zoom_at(2.0, 500, 400)
        assert session.search("Dash") == "dashboard"

        nodes = session.canvas.nodes
        assert SEARCH_HIT in nodes["dashboard"].classes
        assert DIMMED in nodes["settings"].classes
        assert DIMMED not in nodes["dashboard"].classes

        assert session.viewport.animation is not None
        session.frames.run_until_idle()
        target = session.viewport.centering_target(nodes["dashboard"].position, 2.0)
        assert session.viewport.state.scale == 2.0
        assert (session.viewport.state.translate_x, session.viewport.state.translate_y) == pytest.approx(target)

    def test_empty_query_only_clears(self, make_session):
        """An empty query wipes search and path marks but never moves the view."""
        session = make_session(DASH_TREE, DASH_EDGES, size=(1000, 800))
        session.search("Dash")
        session.frames.run_until_idle()
        session.click_node("dashboard")
        session.click_node("settings")
        session.frames.run_until_idle()
        before = (session.viewport.state.translate_x, session.viewport.state.translate_y)
        assert session.search("") is None
        assert session.viewport.animation is None
        assert (session.viewport.state.translate_x, session.viewport.state.translate_y) == before
        for node in session.canvas.nodes.values():
            assert not node.classes & {SEARCH_HIT, DIMMED, SELECTED, FADED}
        assert all(HIGHLIGHTED not in e.classes and FADED not in e.classes for e in session.canvas.edges)
        assert session.highlighter.current is None

    def test_new_search_replaces_marks(self, make_session):
        session = make_session(DASH_TREE, DASH_EDGES, size=(1000, 800))
        session.search("Dash")
        session.search("Sett")
        nodes = session.canvas.nodes
        assert SEARCH_HIT in nodes["settings"].classes
        assert SEARCH_HIT not in nodes["dashboard"].classes
        assert DIMMED in nodes["dashboard"].classes

    def test_no_match(self, make_session):
        session = make_session(DASH_TREE, DASH_EDGES, size=(1000, 800))
        assert session.search("zzz") is None
        assert session.finder.current is None
        assert session.viewport.animation is None
