"""Exception hierarchy.

Callers can catch the base class to intercept every engine failure, or a
subclass for a specific one:

    FlowMapError
    ├── ConfigError
    │   └── UnknownDevicePresetError
    ├── GraphError
    │   └── UnknownNodeError
    └── CollaboratorError
        ├── FlowLoadError
        ├── PersistenceError
        └── PreviewError

None of these escape a GraphSession gesture handler: the session turns them
into notices. They do propagate out of backends and the CLI.
"""

from __future__ import annotations


class FlowMapError(Exception):
    """Base of every flowmap error."""

    def __init__(self, message: str = "", context: dict | None = None):
        self.context = context or {}
        super().__init__(message)


# ── Configuration ──


class ConfigError(FlowMapError):
    """Invalid configuration value."""


class UnknownDevicePresetError(ConfigError):
    """A device preset name that is not in the preset table."""

    def __init__(self, name: str):
        super().__init__(f"Unknown device preset: {name!r}", {"device": name})
        self.name = name


# ── Graph ──


class GraphError(FlowMapError):
    """Graph-level lookup failure."""


class UnknownNodeError(GraphError):
    """No rendered node matches the given key."""

    def __init__(self, key: str):
        super().__init__(f"No node matches {key!r}", {"key": key})
        self.key = key


# ── Collaborators ──


class CollaboratorError(FlowMapError):
    """An external collaborator (storage, preview renderer) failed."""


class FlowLoadError(CollaboratorError):
    """The flow descriptor or the screen tree could not be fetched."""


class PersistenceError(CollaboratorError):
    """Saving or resetting node positions failed."""


class PreviewError(CollaboratorError):
    """A thumbnail could not be produced for a node."""
