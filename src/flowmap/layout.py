"""Layout module — swim-lane coordinate assignment.

Phases:
  1. Ranking   (flowmap.ranking — BFS lane per node)
  2. Ordering  (rank asc, key asc — a total order)
  3. Stacking  (per-lane vertical cursor from a shared, centered baseline)
  4. Overrides (saved manual positions, default device preset only)

Horizontal position encodes graph distance; vertical position is a simple
stacking counter per lane, so layouts never overlap within a lane.
"""

from __future__ import annotations

from flowmap.config import Config, DevicePreset, is_default_preset
from flowmap.graph import Graph, NodeKind, Position, ScreenNode
from flowmap.log import logger
from flowmap.ranking import assign_ranks

# Tabs and modals trail their parent page inside the same lane.
TAB_OFFSET_X: float = 60
MODAL_OFFSET_X: float = 120

_KIND_OFFSET_X: dict[NodeKind, float] = {
    NodeKind.PAGE: 0,
    NodeKind.TAB: TAB_OFFSET_X,
    NodeKind.MODAL: MODAL_OFFSET_X,
}


def layout_order(graph: Graph) -> list[ScreenNode]:
    """Nodes sorted by (rank, key) — the reproducible stacking order."""
    return sorted(graph.nodes.values(), key=lambda n: (n.rank if n.rank is not None else 0, n.key))


def layout(graph: Graph, preset: DevicePreset) -> dict[str, Position]:
    """Assign a position to every node and return a fresh position map.

    Saved overrides replace the computed position only under the default
    (desktop) preset; other presets always get the computed layout.
    """
    if graph.is_empty:
        return {}
    if any(node.rank is None for node in graph.nodes.values()):
        assign_ranks(graph)

    ordered = layout_order(graph)
    baseline = Config.ORIGIN_Y - len(ordered) * preset.row_spacing / 4
    cursor: dict[int, float] = {}
    use_overrides = is_default_preset(preset)

    positions: dict[str, Position] = {}
    overridden = 0
    for node in ordered:
        rank = node.rank or 0
        x = Config.ORIGIN_X + rank * preset.column_spacing + _KIND_OFFSET_X[node.kind]
        y = cursor.get(rank, baseline)
        cursor[rank] = y + preset.row_spacing

        saved = graph.overrides.get(node.key) if use_overrides else None
        if saved is not None:
            x, y = saved.x, saved.y
            overridden += 1

        node.position = Position(x, y)
        positions[node.key] = Position(x, y)

    logger.debug(f"Layout ({preset.name}): {len(positions)} nodes, {overridden} from saved positions")
    return positions
