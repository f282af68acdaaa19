"""Collaborators — where flows, screen trees, previews and positions come from.

The engine only talks to the ``FlowBackend`` protocol. Two implementations
ship with it: a directory-per-project store and a client for the console's
REST API.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import requests

from flowmap.config import Config, DevicePreset
from flowmap.exceptions import CollaboratorError, FlowLoadError, PersistenceError, PreviewError
from flowmap.log import logger

FLOW_FILE = "flow.json"
TREE_FILE = "tree.json"
PREVIEW_FILES = ("thumbnail.png", "screen.html")


@dataclass
class FlowDescriptor:
    """Recorded interaction flow of a project."""

    edges: list[dict] = field(default_factory=list)
    positions: dict[str, dict] = field(default_factory=dict)
    device_profile: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping | None) -> FlowDescriptor:
        data = data or {}
        return cls(
            edges=list(data.get("edges") or []),
            positions=dict(data.get("positions") or {}),
            device_profile=data.get("deviceProfile"),
        )


class FlowBackend(Protocol):
    async def get_flow_descriptor(self, project: str) -> FlowDescriptor: ...

    async def get_screen_tree(self, project: str) -> list[dict]: ...

    async def get_preview(self, node_key: str, preset: DevicePreset) -> object: ...

    async def save_positions(self, project: str, positions: Mapping[str, Mapping]) -> None: ...

    async def reset_positions(self, project: str) -> None: ...


def preview_path(key: str) -> str:
    """Project-relative capture path of a node: the part after ``/main/``, no ``start/``."""
    relative = key.split("/main/", 1)[1] if "/main/" in key else key
    if relative.startswith("start/"):
        relative = relative[len("start/") :]
    return relative


# ─── Directory store ──────────────────────────────────────────────────────────


class FileFlowBackend:
    """Projects as directories under ``root``.

    Layout per project::

        <root>/<project>/flow.json     {"edges": [...], "positions": {...}, "deviceProfile": ...}
        <root>/<project>/tree.json     screen tree
        <root>/<project>/main/<path>/  captured screens (thumbnail.png / screen.html)
    """

    def __init__(self, root: str | Path, project: str | None = None) -> None:
        self.root = Path(root)
        self.project = project

    def project_dir(self, project: str) -> Path:
        return self.root / project

    def _read_json(self, path: Path, default: object) -> object:
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise FlowLoadError(f"Cannot read {path}: {exc}", {"path": str(path)}) from exc

    def _write_flow(self, project: str, flow: dict) -> None:
        path = self.project_dir(project) / FLOW_FILE
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(flow, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot write {path}: {exc}", {"path": str(path)}) from exc

    def _load_flow(self, project: str) -> dict:
        flow = self._read_json(self.project_dir(project) / FLOW_FILE, {"edges": []})
        if not isinstance(flow, dict):
            raise FlowLoadError(f"{FLOW_FILE} of {project!r} is not an object")
        return flow

    async def get_flow_descriptor(self, project: str) -> FlowDescriptor:
        return FlowDescriptor.from_dict(self._load_flow(project))

    async def get_screen_tree(self, project: str) -> list[dict]:
        tree = self._read_json(self.project_dir(project) / TREE_FILE, [])
        if not isinstance(tree, list):
            raise FlowLoadError(f"{TREE_FILE} of {project!r} is not a list")
        return tree

    async def get_preview(self, node_key: str, preset: DevicePreset) -> object:
        if self.project is None:
            raise PreviewError("No project bound for previews", {"key": node_key})
        screen_dir = self.project_dir(self.project) / "main" / preview_path(node_key)
        for name in PREVIEW_FILES:
            candidate = screen_dir / name
            if candidate.exists():
                return candidate
        raise PreviewError(f"No capture for {node_key!r}", {"key": node_key, "device": preset.name})

    async def save_positions(self, project: str, positions: Mapping[str, Mapping]) -> None:
        try:
            flow = self._load_flow(project)
        except FlowLoadError as exc:
            raise PersistenceError(str(exc), exc.context) from exc
        merged = dict(flow.get("positions") or {})
        merged.update({key: dict(value) for key, value in positions.items()})
        flow["positions"] = merged
        self._write_flow(project, flow)

    async def reset_positions(self, project: str) -> None:
        if not (self.project_dir(project) / FLOW_FILE).exists():
            return
        try:
            flow = self._load_flow(project)
        except FlowLoadError as exc:
            raise PersistenceError(str(exc), exc.context) from exc
        flow["positions"] = {}
        self._write_flow(project, flow)


# ─── REST client ──────────────────────────────────────────────────────────────


class HttpFlowBackend:
    """Client for the console's project API. Blocking calls run off the loop."""

    def __init__(self, base_url: str, project: str | None = None, timeout: int | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.project = project
        self.timeout = Config.API_TIMEOUT if timeout is None else timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def preview_url(self, project: str, node_key: str) -> str:
        safe = "/".join(quote(segment, safe="") for segment in preview_path(node_key).split("/"))
        return self.url(f"/api/capture/preview/{quote(project, safe='')}/main/{safe}?mode=thumbnail")

    def _request(self, method: str, path: str, error: type[CollaboratorError], **kwargs) -> dict:
        url = self.url(path)
        logger.debug(f"[API] {method} {url}")
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json() if resp.content else {}
        except (requests.RequestException, ValueError) as exc:
            raise error(f"{method} {url} failed: {exc}", {"url": url}) from exc

    async def get_flow_descriptor(self, project: str) -> FlowDescriptor:
        body = await asyncio.to_thread(
            self._request, "GET", f"/api/projects/{quote(project, safe='')}/flow", FlowLoadError
        )
        return FlowDescriptor.from_dict(body.get("flow"))

    async def get_screen_tree(self, project: str) -> list[dict]:
        path = f"/api/projects/{quote(project, safe='')}/main"
        body = await asyncio.to_thread(self._request, "GET", path, FlowLoadError)
        tree = body.get("tree") if isinstance(body, dict) else None
        if tree is None:
            return []
        if not isinstance(tree, list):
            raise FlowLoadError(f"Screen tree of {project!r} is not a list", {"url": self.url(path)})
        return tree

    async def get_preview(self, node_key: str, preset: DevicePreset) -> object:
        if self.project is None:
            raise PreviewError("No project bound for previews", {"key": node_key})
        url = self.preview_url(self.project, node_key)

        def head() -> str:
            try:
                resp = self.session.head(url, timeout=self.timeout, allow_redirects=True)
                resp.raise_for_status()
            except requests.RequestException as exc:
                raise PreviewError(f"Preview for {node_key!r} unavailable: {exc}", {"url": url}) from exc
            return url

        return await asyncio.to_thread(head)

    async def save_positions(self, project: str, positions: Mapping[str, Mapping]) -> None:
        await asyncio.to_thread(
            self._request,
            "POST",
            f"/api/projects/{quote(project, safe='')}/flow/positions",
            PersistenceError,
            json={"positions": {key: dict(value) for key, value in positions.items()}},
        )

    async def reset_positions(self, project: str) -> None:
        await asyncio.to_thread(
            self._request, "DELETE", f"/api/projects/{quote(project, safe='')}/flow/positions", PersistenceError
        )
