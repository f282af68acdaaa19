"""Engine configuration.

Scalar settings live on ``Config`` and can be overridden through environment
variables. Device presets are a fixed table; they only scale the layout.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from flowmap.exceptions import UnknownDevicePresetError

# Manual position overrides only apply under this preset.
DEFAULT_PRESET_NAME: str = "desktop"

# Height of the title bar under each node thumbnail.
INFO_BAR_HEIGHT: int = 40


@dataclass(frozen=True)
class DevicePreset:
    """Per-device canvas geometry.

    ``render_width``/``render_height`` is the viewport the preview is rendered
    at before being scaled down to ``node_width``.
    """

    name: str
    node_width: int
    thumb_height: int
    column_spacing: int
    row_spacing: int
    render_width: int
    render_height: int

    @property
    def node_height(self) -> int:
        return self.thumb_height + INFO_BAR_HEIGHT

    @property
    def preview_scale(self) -> float:
        return round(self.node_width / self.render_width, 4)


DEVICE_PRESETS: dict[str, DevicePreset] = {
    "desktop": DevicePreset("desktop", 280, 180, 420, 300, 1400, 800),
    "tablet": DevicePreset("tablet", 200, 260, 330, 360, 768, 1024),
    "mobile": DevicePreset("mobile", 140, 280, 270, 400, 375, 812),
}


class Config:
    """Global engine settings."""

    # Large canvas origin, so nodes can be dragged in every direction.
    ORIGIN_X = float(os.getenv("FLOWMAP_ORIGIN_X", "10000"))
    ORIGIN_Y = float(os.getenv("FLOWMAP_ORIGIN_Y", "10000"))

    # BFS step budget for path highlighting.
    MAX_SEARCH_STEPS = int(os.getenv("FLOWMAP_MAX_SEARCH_STEPS", "5000"))

    # Look-ahead margin (screen px) for lazy previews.
    PREVIEW_MARGIN = float(os.getenv("FLOWMAP_PREVIEW_MARGIN", "300"))

    # Centering / search pan animation length.
    CENTER_ANIMATION_MS = float(os.getenv("FLOWMAP_CENTER_ANIMATION_MS", "500"))

    # Preset used when neither the caller nor the flow names a device.
    DEFAULT_DEVICE = os.getenv("FLOWMAP_DEFAULT_DEVICE", DEFAULT_PRESET_NAME)

    # HTTP collaborator timeout (seconds).
    API_TIMEOUT = int(os.getenv("FLOWMAP_API_TIMEOUT", "30"))


def get_preset(name: str) -> DevicePreset:
    """Look up a device preset by name.

    Raises:
        UnknownDevicePresetError: ``name`` is not in ``DEVICE_PRESETS``.
    """
    try:
        return DEVICE_PRESETS[name.lower()]
    except (KeyError, AttributeError):
        raise UnknownDevicePresetError(str(name)) from None


def preset_for_profile(profile: str | None) -> DevicePreset:
    """Preset for a captured device profile, falling back to desktop."""
    if profile and profile.lower() in DEVICE_PRESETS:
        return DEVICE_PRESETS[profile.lower()]
    return DEVICE_PRESETS[DEFAULT_PRESET_NAME]


def is_default_preset(preset: DevicePreset) -> bool:
    return preset.name == DEFAULT_PRESET_NAME
