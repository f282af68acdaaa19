"""Rank assignment — BFS distance from the start screen along explicit edges.

The rank is the horizontal swim lane. Screens no transition reaches are
still placed, after every reachable lane:

    rank = max_reachable_rank + 1 + hierarchy_level
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import networkx as nx

from flowmap.graph import START_MARKER, Graph, ScreenNode, TransitionEdge, resolve_key
from flowmap.log import logger


def resolve_start_key(nodes: Mapping[str, ScreenNode], edges: Sequence[TransitionEdge]) -> str | None:
    """Pick the start screen. Never fails on a non-empty node set.

    Resolution order:
      1. target of the first ``start → X`` edge, by exact or suffix match
      2. a screen literally named "home"
      3. the first screen
    """
    if not nodes:
        return None

    for edge in edges:
        if edge.source == START_MARKER:
            match = resolve_key(nodes, edge.target)
            if match is not None:
                return match
            logger.debug(f"Start edge target {edge.target!r} matches no screen")
            break

    for key, node in nodes.items():
        if node.name.lower() == "home":
            return key

    return next(iter(nodes))


def assign_ranks(graph: Graph, start_key: str | None = None) -> dict[str, int]:
    """Assign ``node.rank`` for every node and return the rank map.

    Uses ``graph.start_key`` when ``start_key`` is not given. Neighbors are
    visited in insertion order, so identical graphs always rank identically.
    """
    start = start_key if start_key is not None else graph.start_key
    if graph.is_empty:
        return {}
    if start not in graph.nodes:
        start = resolve_key(graph.nodes, start) or next(iter(graph.nodes))

    reachable: dict[str, int] = dict(nx.single_source_shortest_path_length(graph.explicit, start))
    max_rank = max(reachable.values(), default=0)

    ranks: dict[str, int] = {}
    for key, node in graph.nodes.items():
        if key in reachable:
            rank = reachable[key]
        else:
            rank = max_rank + 1 + node.hierarchy_level
        node.rank = rank
        ranks[key] = rank

    unreachable = len(graph.nodes) - len(reachable)
    logger.debug(f"Ranks assigned from {start!r}: {len(reachable)} reachable, {unreachable} unreachable")
    return ranks
