"""Viewport — pan/zoom transform over the infinite canvas.

Screen point = content point * scale + translate. Every mutation clamps the
scale to [MIN_SCALE, MAX_SCALE]. At most one centering animation runs at a
time; starting another one, or any user pan/zoom, cancels it first.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from flowmap.config import Config
from flowmap.frames import FrameScheduler
from flowmap.graph import Position

MIN_SCALE: float = 0.05
MAX_SCALE: float = 4.0

ZOOM_STEP: float = 1.5
WHEEL_SPEED: float = 0.0015
PINCH_SPEED: float = 0.02

# Pointer travel (screen px) below which a pan counts as a click.
CLICK_SLOP: float = 2.0


def clamp_scale(scale: float) -> float:
    return min(max(MIN_SCALE, scale), MAX_SCALE)


def ease_in_out_quad(t: float) -> float:
    """Monotonic easing on [0, 1]; never overshoots."""
    return 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t


@dataclass
class ViewportState:
    """The single transform of one canvas session."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    is_dragging: bool = False
    width: float = 0.0
    height: float = 0.0
    # Transition length requested by the last mutation (for CSS-style hosts).
    transition_ms: float = 0.0


class Animation:
    """Cancellable handle for one eased transform transition."""

    def __init__(
        self,
        state: ViewportState,
        frames: FrameScheduler,
        target: tuple[float, float, float],
        duration_ms: float,
        on_frame: Callable[[], None] | None = None,
    ) -> None:
        self._state = state
        self._frames = frames
        self._origin = (state.translate_x, state.translate_y, state.scale)
        self._target = target
        self._duration = max(duration_ms, 1.0)
        self._on_frame = on_frame
        self._started = frames.now()
        self._handle: int | None = None
        self.cancelled = False
        self.finished = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.finished)

    @property
    def target(self) -> tuple[float, float, float]:
        return self._target

    def start(self) -> Animation:
        self._handle = self._frames.request_frame(self._step)
        return self

    def cancel(self) -> None:
        if not self.active:
            return
        self.cancelled = True
        if self._handle is not None:
            self._frames.cancel_frame(self._handle)
            self._handle = None

    def _step(self, now: float) -> None:
        self._handle = None
        if not self.active:
            return
        progress = min(max((now - self._started) / self._duration, 0.0), 1.0)
        ratio = ease_in_out_quad(progress)
        (tx0, ty0, s0), (tx1, ty1, s1) = self._origin, self._target
        self._state.translate_x = tx0 + (tx1 - tx0) * ratio
        self._state.translate_y = ty0 + (ty1 - ty0) * ratio
        self._state.scale = clamp_scale(s0 + (s1 - s0) * ratio)
        if progress >= 1:
            self.finished = True
        else:
            self._handle = self._frames.request_frame(self._step)
        if self._on_frame is not None:
            self._on_frame()


class ViewportController:
    """Owns the ViewportState and every producer that mutates it.

    ``locate`` maps a node key to its content position; ``node_size``
    returns the current (width, height) of a node card. ``on_change`` runs
    after every mutation (the session hooks lazy previews there).
    """

    def __init__(
        self,
        frames: FrameScheduler,
        locate: Callable[[str], Position | None],
        node_size: Callable[[], tuple[float, float]],
        on_change: Callable[[], None] | None = None,
        state: ViewportState | None = None,
    ) -> None:
        self.state = state or ViewportState()
        self.frames = frames
        self._locate = locate
        self._node_size = node_size
        self._on_change = on_change
        self._animation: Animation | None = None
        self._pan_origin: tuple[float, float] = (0.0, 0.0)
        self._pan_start: tuple[float, float] = (0.0, 0.0)
        self._pan_moved = False

    # ── Transforms ──

    def to_screen(self, x: float, y: float) -> tuple[float, float]:
        s = self.state
        return (x * s.scale + s.translate_x, y * s.scale + s.translate_y)

    def to_content(self, x: float, y: float) -> tuple[float, float]:
        s = self.state
        return ((x - s.translate_x) / s.scale, (y - s.translate_y) / s.scale)

    def screen_rect(self, position: Position, width: float, height: float) -> tuple[float, float, float, float]:
        """(left, top, right, bottom) of a node card in screen pixels."""
        left, top = self.to_screen(position.x, position.y)
        return (left, top, left + width * self.state.scale, top + height * self.state.scale)

    # ── Animations ──

    @property
    def animation(self) -> Animation | None:
        return self._animation if self._animation is not None and self._animation.active else None

    def cancel_animation(self) -> None:
        if self._animation is not None:
            self._animation.cancel()
            self._animation = None

    def _changed(self) -> None:
        self.state.scale = clamp_scale(self.state.scale)
        if self._on_change is not None:
            self._on_change()

    # ── Pan ──

    def pan(self, dx: float, dy: float) -> None:
        self.cancel_animation()
        self.state.translate_x += dx
        self.state.translate_y += dy
        self.state.transition_ms = 0
        self._changed()

    def begin_pan(self, x: float, y: float) -> None:
        self.cancel_animation()
        self.state.is_dragging = True
        self.state.transition_ms = 0
        self._pan_moved = False
        self._pan_origin = (x - self.state.translate_x, y - self.state.translate_y)
        self._pan_start = (x, y)

    def move_pan(self, x: float, y: float) -> None:
        if not self.state.is_dragging:
            return
        ox, oy = self._pan_origin
        sx, sy = self._pan_start
        if abs(x - sx) > CLICK_SLOP or abs(y - sy) > CLICK_SLOP:
            self._pan_moved = True
        self.state.translate_x = x - ox
        self.state.translate_y = y - oy
        self._changed()

    def end_pan(self) -> bool:
        """Finish a pan; True when the pointer actually moved."""
        if not self.state.is_dragging:
            return False
        self.state.is_dragging = False
        return self._pan_moved

    # ── Zoom ──

    def zoom_at(self, new_scale: float, pivot_x: float, pivot_y: float, duration_ms: float = 100) -> None:
        """Zoom keeping the content point under (pivot_x, pivot_y) fixed."""
        new_scale = clamp_scale(new_scale)
        old_scale = self.state.scale
        if new_scale == old_scale:
            return
        self.cancel_animation()
        ratio = new_scale / old_scale
        self.state.translate_x = pivot_x - (pivot_x - self.state.translate_x) * ratio
        self.state.translate_y = pivot_y - (pivot_y - self.state.translate_y) * ratio
        self.state.scale = new_scale
        self.state.transition_ms = duration_ms
        self._changed()

    def zoom_in(self) -> None:
        self.zoom_at(self.state.scale * ZOOM_STEP, self.state.width / 2, self.state.height / 2, 200)

    def zoom_out(self) -> None:
        self.zoom_at(self.state.scale / ZOOM_STEP, self.state.width / 2, self.state.height / 2, 200)

    def wheel(self, delta_y: float, x: float, y: float, ctrl: bool = False) -> None:
        """Mouse wheel or trackpad pinch (``ctrl``) at viewport point (x, y)."""
        speed = PINCH_SPEED if ctrl else WHEEL_SPEED
        self.zoom_at(self.state.scale * (1 - delta_y * speed), x, y, 50)

    # ── Centering ──

    def centering_target(self, position: Position, scale: float | None = None) -> tuple[float, float]:
        """Translate that puts the node card's center at the viewport center."""
        s = self.state.scale if scale is None else scale
        width, height = self._node_size()
        return (
            self.state.width / 2 - position.x * s - width / 2 * s,
            self.state.height / 2 - position.y * s - height / 2 * s,
        )

    def center_on(self, node_key: str, animate: bool = True, reset_scale: bool = False) -> Animation | None:
        """Bring a node to the viewport center at the current scale.

        ``reset_scale`` also returns to 100 %. Returns the running animation,
        or None when the move was applied at once or the key is unknown.
        """
        position = self._locate(node_key)
        if position is None:
            return None
        scale = 1.0 if reset_scale else self.state.scale
        tx, ty = self.centering_target(position, scale)
        self.cancel_animation()
        if not animate:
            self.state.translate_x, self.state.translate_y, self.state.scale = tx, ty, scale
            self.state.transition_ms = 0
            self._changed()
            return None
        self.state.transition_ms = 0
        self._animation = Animation(
            self.state, self.frames, (tx, ty, scale), Config.CENTER_ANIMATION_MS, self._changed
        ).start()
        return self._animation

    # ── Size / reset ──

    def resize(self, width: float, height: float) -> None:
        """New viewport size; the content under the old center stays centered."""
        had_size = bool(self.state.width and self.state.height)
        dx = (width - self.state.width) / 2
        dy = (height - self.state.height) / 2
        self.state.width, self.state.height = width, height
        if had_size and (dx or dy):
            self.cancel_animation()
            self.state.translate_x += dx
            self.state.translate_y += dy
        self._changed()

    def reset(self, preserve_view: bool = False) -> None:
        if preserve_view:
            return
        self.cancel_animation()
        self.state.scale = 1.0
        self.state.translate_x = 0.0
        self.state.translate_y = 0.0
        self.state.is_dragging = False
        self.state.transition_ms = 0
        self._changed()
