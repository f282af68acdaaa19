"""Tests for layout.py and config.py — swim-lane coordinates and device presets.

Layout tests cover:
  - lane x = origin + rank * column spacing (+ tab/modal offset)
  - per-lane vertical stacking from the shared centered baseline
  - saved overrides, honoured only under the desktop preset
  - determinism
"""

from __future__ import annotations

import pytest
from conftest import SCENARIO_A_EDGES, SCENARIO_A_TREE, edge, page

from flowmap.config import DEVICE_PRESETS, get_preset, preset_for_profile
from flowmap.exceptions import ConfigError, UnknownDevicePresetError
from flowmap.graph import Position, build_graph
from flowmap.layout import MODAL_OFFSET_X, TAB_OFFSET_X, layout, layout_order
from flowmap.ranking import assign_ranks

DESKTOP = DEVICE_PRESETS["desktop"]
TABLET = DEVICE_PRESETS["tablet"]

# ─── Helpers ──────────────────────────────────────────────────────────────────


def laid_out(tree, edges, preset=DESKTOP, positions=None) -> dict[str, Position]:
    graph = build_graph(tree, edges, positions)
    assign_ranks(graph)
    return layout(graph, preset)


# ─── Presets ──────────────────────────────────────────────────────────────────


class TestPresets:
    def test_node_height_includes_info_bar(self):
        assert DESKTOP.node_height == 220
        assert TABLET.node_height == 300
        assert DEVICE_PRESETS["mobile"].node_height == 320

    def test_preview_scale(self):
        assert DESKTOP.preview_scale == 0.2
        assert TABLET.preview_scale == 0.2604

    def test_get_preset_case_insensitive(self):
        assert get_preset("Tablet") is TABLET

    def test_unknown_preset(self):
        with pytest.raises(UnknownDevicePresetError) as info:
            get_preset("watch")
        assert isinstance(info.value, ConfigError)
        assert info.value.context == {"device": "watch"}

    def test_profile_fallback(self):
        assert preset_for_profile(None) is DESKTOP
        assert preset_for_profile("watch") is DESKTOP
        assert preset_for_profile("MOBILE") is DEVICE_PRESETS["mobile"]


# ─── Layout ───────────────────────────────────────────────────────────────────


class TestLayout:
    def test_lanes_follow_rank(self):
        """login/home/dashboard sit in lanes 0/1/2 on the shared baseline."""
        positions = laid_out(SCENARIO_A_TREE, SCENARIO_A_EDGES)
        baseline = 10000 - 3 * 300 / 4
        assert positions == {
            "login": Position(10000, baseline),
            "home": Position(10420, baseline),
            "dashboard": Position(10840, baseline),
        }

    def test_stacking_within_lane(self):
        """Two nodes in one lane stack by key, one row apart."""
        edges = [edge("start", "a"), edge("a", "c"), edge("a", "b")]
        positions = laid_out([page("a"), page("b"), page("c")], edges)
        assert positions["b"] == Position(10420, 9775)
        assert positions["c"] == Position(10420, 9775 + 300)

    def test_tab_and_modal_offsets(self):
        tree = [
            page("home", children=[
                {"name": "tab_info", "type": "tab", "path": "home/tab_info"},
                {"name": "modal_x", "type": "modal", "path": "home/modal_x"},
            ]),
        ]
        edges = [edge("start", "home"), edge("home", "home/tab_info"), edge("home", "home/modal_x")]
        positions = laid_out(tree, edges)
        assert positions["home/modal_x"] == Position(10420 + MODAL_OFFSET_X, 9775)
        assert positions["home/tab_info"] == Position(10420 + TAB_OFFSET_X, 9775 + 300)

    def test_overrides_under_desktop(self):
        """A saved position replaces the computed one; the lane cursor still advances."""
        edges = [edge("start", "a"), edge("a", "b"), edge("a", "c")]
        positions = laid_out([page("a"), page("b"), page("c")], edges, positions={"b": {"x": 5, "y": 6}})
        assert positions["b"] == Position(5, 6)
        assert positions["c"] == Position(10420, 9775 + 300)

    def test_overrides_ignored_under_other_presets(self):
        positions = laid_out(SCENARIO_A_TREE, SCENARIO_A_EDGES, TABLET, positions={"login": {"x": 5, "y": 6}})
        assert positions["login"] == Position(10000, 10000 - 3 * 360 / 4)

    def test_deterministic(self):
        """Running layout twice on the same graph gives identical positions."""
        graph = build_graph(SCENARIO_A_TREE, SCENARIO_A_EDGES)
        assign_ranks(graph)
        assert layout(graph, DESKTOP) == layout(graph, DESKTOP)

    def test_assigns_missing_ranks(self):
        graph = build_graph(SCENARIO_A_TREE, SCENARIO_A_EDGES)
        positions = layout(graph, DESKTOP)
        assert graph.nodes["dashboard"].rank == 2
        assert graph.nodes["dashboard"].position == positions["dashboard"]

    def test_order_is_rank_then_key(self):
        edges = [edge("start", "a"), edge("a", "c"), edge("a", "b")]
        graph = build_graph([page("c"), page("b"), page("a")], edges)
        assign_ranks(graph)
        assert [n.key for n in layout_order(graph)] == ["a", "b", "c"]

    def test_empty_graph(self):
        assert layout(build_graph([], []), DESKTOP) == {}
