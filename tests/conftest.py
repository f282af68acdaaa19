"""Shared fixtures: an in-memory backend and a session factory."""

from __future__ import annotations

import copy

import pytest

from flowmap.backends import FlowDescriptor
from flowmap.exceptions import FlowLoadError, PersistenceError, PreviewError
from flowmap.frames import ManualFrameScheduler
from flowmap.session import GraphSession

# ─── Helpers ──────────────────────────────────────────────────────────────────


def page(path: str, name: str | None = None, children: list | None = None, **extra) -> dict:
    """A screen-tree entry marked as a page."""
    node = {"name": name or path.rsplit("/", 1)[-1], "path": path, "type": "page"}
    if children:
        node["children"] = children
    node.update(extra)
    return node


def edge(source: str, target: str, label: str | None = None, timestamp: object = None) -> dict:
    record = {"from": source, "to": target}
    if label is not None:
        record["label"] = label
    if timestamp is not None:
        record["timestamp"] = timestamp
    return record


SCENARIO_A_TREE = [page("login"), page("home"), page("dashboard")]
SCENARIO_A_EDGES = [edge("start", "login"), edge("login", "home"), edge("home", "dashboard")]


class MemoryBackend:
    """FlowBackend that keeps everything in memory and records every call."""

    def __init__(self, tree=None, edges=None, positions=None, device_profile=None):
        self.tree = list(tree or [])
        self.flow = {
            "edges": list(edges or []),
            "positions": dict(positions or {}),
            "deviceProfile": device_profile,
        }
        self.saved: list[tuple[str, dict]] = []
        self.preview_calls: list[str] = []
        self.resets = 0
        self.fail_load = False
        self.fail_save = False
        self.fail_reset = False
        self.fail_previews: set[str] = set()

    async def get_flow_descriptor(self, project: str) -> FlowDescriptor:
        if self.fail_load:
            raise FlowLoadError("flow unavailable", {"project": project})
        return FlowDescriptor.from_dict(copy.deepcopy(self.flow))

    async def get_screen_tree(self, project: str) -> list[dict]:
        return copy.deepcopy(self.tree)

    async def get_preview(self, node_key, preset):
        self.preview_calls.append(node_key)
        if node_key in self.fail_previews:
            raise PreviewError(f"no capture for {node_key}")
        return f"preview://{preset.name}/{node_key}"

    async def save_positions(self, project, positions):
        self.saved.append((project, {key: dict(value) for key, value in positions.items()}))
        if self.fail_save:
            raise PersistenceError("disk full")
        self.flow["positions"].update(positions)

    async def reset_positions(self, project):
        self.resets += 1
        if self.fail_reset:
            raise PersistenceError("read-only")
        self.flow["positions"] = {}


# ─── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def make_session():
    """Build a GraphSession already rendered (synchronously) from a tree and edges.

    ``size`` of None leaves the viewport unmeasured, so no previews load.
    """

    def factory(
        tree=SCENARIO_A_TREE,
        edges=SCENARIO_A_EDGES,
        positions=None,
        device=None,
        size=None,
        **callbacks,
    ) -> GraphSession:
        backend = MemoryBackend(tree, edges, positions)
        session = GraphSession("demo", backend, frames=ManualFrameScheduler(), device=device, **callbacks)
        if size is not None:
            session.resize(*size)
        session.rebuild(copy.deepcopy(backend.tree), FlowDescriptor.from_dict(copy.deepcopy(backend.flow)))
        return session

    return factory
