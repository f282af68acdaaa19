"""flowmap — sitemap / flow visualization engine."""

from flowmap.backends import FileFlowBackend, FlowBackend, FlowDescriptor, HttpFlowBackend
from flowmap.config import DEVICE_PRESETS, Config, DevicePreset, get_preset
from flowmap.exceptions import FlowMapError
from flowmap.graph import Graph, NodeKind, Position, ScreenNode, TransitionEdge, build_graph, normalize_key
from flowmap.session import GraphSession, Notice

__all__ = [
    "DEVICE_PRESETS",
    "Config",
    "DevicePreset",
    "FileFlowBackend",
    "FlowBackend",
    "FlowDescriptor",
    "FlowMapError",
    "Graph",
    "GraphSession",
    "HttpFlowBackend",
    "NodeKind",
    "Notice",
    "Position",
    "ScreenNode",
    "TransitionEdge",
    "build_graph",
    "get_preset",
    "normalize_key",
]
