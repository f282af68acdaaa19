"""Graph model — canonical screen nodes and transition edges.

Pipeline:
  1. classify()      screen tree → ScreenNode list (pure, no side effects)
  2. parse_edges()   raw flow records → TransitionEdge list
  3. build_graph()   start resolution, endpoint resolution, dedup,
                     explicit adjacency (networkx DiGraph)

Every node is identified by its normalized key and nothing else.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import networkx as nx

from flowmap.log import logger

# Raw edge endpoint that stands for "wherever the capture session started".
START_MARKER = "start"

# Literal child name that turns a folder into an implicit page.
UI_DESCRIPTOR = "UI"

# One or more trailing capture-session timestamps, e.g. "login_153012".
_SESSION_SUFFIX = re.compile(r"(?:_\d{6})+$")

_DIRECT_TYPES = {"ui", "tab", "modal", "page", "screen"}
_DIRECT_NODE_TYPES = {"page", "tab", "modal"}


# ─── Keys ─────────────────────────────────────────────────────────────────────


def normalize_key(raw: str | None) -> str:
    """Canonical node key: forward slashes, no capture-session suffix.

    Idempotent: ``normalize_key(normalize_key(k)) == normalize_key(k)``.
    """
    if not raw:
        return ""
    key = str(raw).strip().replace("\\", "/")
    return _SESSION_SUFFIX.sub("", key)


def keys_match(a: str | None, b: str | None) -> bool:
    """Fuzzy suffix match: equal, or one is a ``/``-separated suffix of the other."""
    na, nb = normalize_key(a), normalize_key(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    return na.endswith("/" + nb) or nb.endswith("/" + na)


def resolve_key(keys: Iterable[str], name: str | None) -> str | None:
    """Resolve a possibly-short name to a known key: exact first, then fuzzy."""
    target = normalize_key(name)
    if not target:
        return None
    candidates = list(keys)
    if target in candidates:
        return target
    for key in candidates:
        if keys_match(key, target):
            return key
    return None


def parent_key(key: str) -> str | None:
    """Path prefix one segment up, or None at the top level."""
    if "/" not in key:
        return None
    return key.rsplit("/", 1)[0] or None


# ─── Data types ───────────────────────────────────────────────────────────────


class NodeKind(Enum):
    PAGE = "page"
    TAB = "tab"
    MODAL = "modal"

    @property
    def badge(self) -> str:
        return {NodeKind.PAGE: "PAGE", NodeKind.TAB: "TAB", NodeKind.MODAL: "MODAL"}[self]


class PreviewState(Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass
class Position:
    """A point on the infinite canvas (content coordinates)."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Mapping) -> Position:
        return cls(x=float(data["x"]), y=float(data["y"]))


@dataclass
class ScreenNode:
    """One screen on the sitemap."""

    key: str
    display_name: str
    kind: NodeKind
    hierarchy_level: int
    name: str = ""
    rank: int | None = None
    position: Position | None = None
    preview_state: PreviewState = PreviewState.NOT_LOADED
    preview: object | None = None


@dataclass
class TransitionEdge:
    """A recorded interaction that moved the user from one screen to another."""

    source: str
    target: str
    label: str | None = None
    interaction: dict | None = None
    timestamp: object = None

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target)

    @property
    def display_label(self) -> str:
        """Visible label: flow label (truncated), else interaction text/selector."""
        if self.label:
            return self.label if len(self.label) <= 40 else self.label[:37] + "..."
        if self.interaction:
            return str(self.interaction.get("text") or self.interaction.get("selector") or "")
        return ""


@dataclass
class Graph:
    """Canonical node/edge set for one render of the sitemap.

    ``explicit`` holds only transition edges; its adjacency lists keep
    insertion order so every traversal is reproducible.
    """

    nodes: dict[str, ScreenNode] = field(default_factory=dict)
    edges: list[TransitionEdge] = field(default_factory=list)
    explicit: nx.DiGraph = field(default_factory=nx.DiGraph)
    start_key: str | None = None
    overrides: dict[str, Position] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def explicit_adjacency(self) -> dict[str, list[str]]:
        return {key: list(self.explicit.successors(key)) for key in self.explicit.nodes}

    def implicit_adjacency(self, rendered: Iterable[str] | None = None) -> dict[str, list[str]]:
        """Parent → children edges inferred from path containment.

        Each rendered node hangs off its nearest rendered ancestor, so
        ``profile`` reaches ``profile/tabs/billing`` even when
        ``profile/tabs`` is not a screen.
        """
        keys = list(self.nodes) if rendered is None else [k for k in rendered]
        known = set(keys)
        adjacency: dict[str, list[str]] = {}
        for key in keys:
            ancestor = parent_key(key)
            while ancestor is not None and ancestor not in known:
                ancestor = parent_key(ancestor)
            if ancestor is not None:
                adjacency.setdefault(ancestor, []).append(key)
        return adjacency

    def resolve(self, name: str | None) -> str | None:
        return resolve_key(self.nodes, name)


# ─── Classification ───────────────────────────────────────────────────────────


def _kind_of(tree_node: Mapping) -> NodeKind:
    name = str(tree_node.get("name") or "")
    if name.startswith("tab_"):
        return NodeKind.TAB
    if name.startswith("modal_"):
        return NodeKind.MODAL
    declared = tree_node.get("nodeType") or tree_node.get("type")
    if declared == "tab":
        return NodeKind.TAB
    if declared == "modal":
        return NodeKind.MODAL
    return NodeKind.PAGE


def display_name(name: str, kind: NodeKind) -> str:
    """Human title: kind prefix dropped, underscores as spaces."""
    if kind is NodeKind.TAB and name.startswith("tab_"):
        name = name[len("tab_") :]
    elif kind is NodeKind.MODAL and name.startswith("modal_"):
        name = name[len("modal_") :]
    return name.replace("_", " ").strip()


def _is_direct_screen(tree_node: Mapping) -> bool:
    return tree_node.get("type") in _DIRECT_TYPES or tree_node.get("nodeType") in _DIRECT_NODE_TYPES


def _has_ui_descriptor(tree_node: Mapping) -> bool:
    return any(child.get("name") == UI_DESCRIPTOR for child in tree_node.get("children") or [])


def classify(tree: Iterable[Mapping]) -> list[ScreenNode]:
    """Walk the screen tree depth-first and return its screens.

    A node is a screen when it carries an explicit screen marker, or when it
    is a folder with a literal ``UI`` child (implicit page keyed by the
    folder's own path). The ``UI`` child of a promoted folder is never
    emitted on its own; every other child is still visited. Duplicate keys
    keep their first occurrence.
    """
    screens: list[ScreenNode] = []
    seen: set[str] = set()

    def visit(nodes: Iterable[Mapping], level: int) -> None:
        for tree_node in nodes:
            promoted = False
            if _is_direct_screen(tree_node) or _has_ui_descriptor(tree_node):
                promoted = not _is_direct_screen(tree_node)
                raw = tree_node.get("path") or tree_node.get("urlPath") or tree_node.get("name")
                key = normalize_key(raw)
                if key and key not in seen:
                    seen.add(key)
                    name = str(tree_node.get("name") or key.rsplit("/", 1)[-1])
                    kind = NodeKind.PAGE if promoted else _kind_of(tree_node)
                    screens.append(
                        ScreenNode(
                            key=key,
                            display_name=display_name(name, kind),
                            kind=kind,
                            hierarchy_level=level,
                            name=name,
                        )
                    )

            children = tree_node.get("children") or []
            if promoted:
                children = [c for c in children if c.get("name") != UI_DESCRIPTOR]
            if children:
                visit(children, level + 1)

    visit(tree, 0)
    return screens


# ─── Edges ────────────────────────────────────────────────────────────────────


def timestamp_value(raw: object) -> float:
    """Order key for edge timestamps (numbers, numeric strings, ISO-8601)."""
    if raw is None or isinstance(raw, bool):
        return float("-inf")
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip()
    try:
        return float(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return float("-inf")


def parse_edges(raw_edges: Iterable[Mapping] | None) -> list[TransitionEdge]:
    """Turn collaborator edge records into TransitionEdges (keys normalized)."""
    edges: list[TransitionEdge] = []
    for record in raw_edges or []:
        source = record.get("from")
        target = record.get("to")
        if not source or not target:
            continue
        edges.append(
            TransitionEdge(
                source=START_MARKER if source == START_MARKER else normalize_key(source),
                target=normalize_key(target),
                label=record.get("label") or None,
                interaction=record.get("interaction") or None,
                timestamp=record.get("timestamp"),
            )
        )
    return edges


def dedupe_edges(edges: Iterable[TransitionEdge]) -> list[TransitionEdge]:
    """Drop self-loops; keep the latest edge per (source, target) pair.

    Ties on timestamp keep the first edge seen. Pairs keep first-seen order.
    """
    unique: dict[tuple[str, str], TransitionEdge] = {}
    for edge in edges:
        if edge.source == edge.target:
            continue
        current = unique.get(edge.pair)
        if current is None or timestamp_value(edge.timestamp) > timestamp_value(current.timestamp):
            unique[edge.pair] = edge
    return list(unique.values())


# ─── Build ────────────────────────────────────────────────────────────────────


def build_graph(
    screen_tree: Iterable[Mapping] | None,
    flow_edges: Iterable[Mapping] | None,
    positions: Mapping[str, Mapping] | None = None,
) -> Graph:
    """Build the canonical Graph from a screen tree and raw flow edges.

    An empty tree yields an empty Graph; callers render an empty state.
    """
    from flowmap.ranking import resolve_start_key

    screens = classify(screen_tree or [])
    nodes = {screen.key: screen for screen in screens}
    raw = parse_edges(flow_edges)
    start_key = resolve_start_key(nodes, raw)

    resolved: list[TransitionEdge] = []
    dropped = 0
    for edge in raw:
        source = start_key if edge.source == START_MARKER else resolve_key(nodes, edge.source)
        target = resolve_key(nodes, edge.target)
        if source is None or target is None:
            dropped += 1
            continue
        resolved.append(
            TransitionEdge(
                source=source,
                target=target,
                label=edge.label,
                interaction=edge.interaction,
                timestamp=edge.timestamp,
            )
        )
    edges = dedupe_edges(resolved)

    explicit: nx.DiGraph = nx.DiGraph()
    explicit.add_nodes_from(nodes)
    for edge in edges:
        explicit.add_edge(edge.source, edge.target, edge=edge)

    overrides: dict[str, Position] = {}
    for raw_key, value in (positions or {}).items():
        try:
            overrides[normalize_key(raw_key)] = Position.from_dict(value)
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Ignoring malformed saved position for {raw_key!r}: {value!r}")

    if dropped:
        logger.debug(f"Dropped {dropped} edge(s) with unresolvable endpoints")
    logger.debug(f"Graph built: {len(nodes)} nodes, {len(edges)} edges, start={start_key!r}")

    return Graph(nodes=nodes, edges=edges, explicit=explicit, start_key=start_key, overrides=overrides)
