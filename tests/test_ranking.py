"""Tests for ranking.py — start resolution and BFS swim-lane ranks."""

from __future__ import annotations

from conftest import SCENARIO_A_EDGES, edge, page

from flowmap.graph import build_graph
from flowmap.ranking import assign_ranks, resolve_start_key

# ─── Helpers ──────────────────────────────────────────────────────────────────


def ranks_of(tree, edges) -> dict[str, int]:
    graph = build_graph(tree, edges)
    return assign_ranks(graph)


# ─── Start resolution ─────────────────────────────────────────────────────────


class TestResolveStartKey:
    def test_start_edge_target(self):
        """The first start → X edge decides, even when X is not the first node."""
        graph = build_graph([page("home"), page("dashboard"), page("login")], SCENARIO_A_EDGES)
        assert graph.start_key == "login"

    def test_start_edge_suffix_match(self):
        graph = build_graph([page("app/home"), page("settings/billing")], [edge("start", "billing")])
        assert graph.start_key == "settings/billing"

    def test_home_fallback(self):
        """Without a start edge a screen literally named 'home' wins."""
        graph = build_graph([page("about"), page("app/home")], [edge("about", "home")])
        assert graph.start_key == "app/home"

    def test_unmatched_start_edge_falls_back(self):
        graph = build_graph([page("about"), page("home")], [edge("start", "ghost")])
        assert graph.start_key == "home"

    def test_first_node_fallback(self):
        graph = build_graph([page("alpha"), page("beta")], [])
        assert graph.start_key == "alpha"

    def test_empty(self):
        assert resolve_start_key({}, []) is None


# ─── Ranks ────────────────────────────────────────────────────────────────────


class TestAssignRanks:
    def test_linear_flow(self):
        """start→login, login→home, home→dashboard ranks 0, 1, 2."""
        ranks = ranks_of([page("login"), page("home"), page("dashboard")], SCENARIO_A_EDGES)
        assert ranks == {"login": 0, "home": 1, "dashboard": 2}

    def test_first_visit_wins(self):
        """A node reachable at two depths keeps the shorter one."""
        edges = [edge("start", "a"), edge("a", "b"), edge("b", "c"), edge("a", "c")]
        ranks = ranks_of([page("a"), page("b"), page("c")], edges)
        assert ranks["c"] == 1

    def test_unreachable_formula(self):
        """Unreached screens land after every reachable lane, offset by tree depth."""
        tree = [
            page("login"),
            page("home"),
            page("admin", children=[page("admin/users")]),
        ]
        ranks = ranks_of(tree, [edge("start", "login"), edge("login", "home")])
        assert ranks["login"] == 0 and ranks["home"] == 1
        assert ranks["admin"] == 1 + 1 + 0
        assert ranks["admin/users"] == 1 + 1 + 1

    def test_monotonic_along_reachable_edges(self):
        """rank(b) <= rank(a) + 1 for every explicit edge out of a reached node."""
        keys = ["a", "b", "c", "d", "e", "f"]
        pairs = [("a", "b"), ("b", "c"), ("c", "a"), ("a", "d"), ("d", "e"), ("e", "b"), ("c", "f"), ("f", "d")]
        graph = build_graph([page(k) for k in keys], [edge("start", "a")] + [edge(s, t) for s, t in pairs])
        ranks = assign_ranks(graph)
        for e in graph.edges:
            assert ranks[e.target] <= ranks[e.source] + 1, f"{e.pair} breaks monotonicity"

    def test_deterministic(self):
        tree = [page(k) for k in ("x", "y", "z", "w")]
        edges = [edge("start", "x"), edge("x", "z"), edge("x", "y"), edge("z", "w"), edge("y", "w")]
        assert ranks_of(tree, edges) == ranks_of(tree, edges)

    def test_rank_written_to_nodes(self):
        graph = build_graph([page("login"), page("home"), page("dashboard")], SCENARIO_A_EDGES)
        assign_ranks(graph)
        assert graph.nodes["dashboard"].rank == 2

    def test_explicit_start_argument(self):
        graph = build_graph([page("login"), page("home"), page("dashboard")], SCENARIO_A_EDGES)
        ranks = assign_ranks(graph, start_key="home")
        assert ranks["home"] == 0 and ranks["dashboard"] == 1
        # login is unreachable from home: max rank 1, depth 0
        assert ranks["login"] == 2

    def test_empty_graph(self):
        assert assign_ranks(build_graph([], [])) == {}
