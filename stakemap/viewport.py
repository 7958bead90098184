"""Pan/zoom state and the world <-> screen transform.

A :class:`ViewportController` is the single owner of ``scale`` and ``offset``.
Pointer events must be fed to it in arrival order; every mutation reads and
writes the same pair, so there is no concurrent access by design of the API.

Pointer handling is a two-state machine::

    IDLE --pointer_down--> DRAGGING --pointer_move--> DRAGGING
    DRAGGING --pointer_up / pointer_leave--> IDLE

While dragging, the pan follows the cursor exactly
(``offset = pointer - drag_anchor``). A gesture that moved more than
``click_threshold`` pixels suppresses the click that ends it.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from .config import ViewportConfig
from .geometry import marker_bbox
from .logging_utils import apply_debug_logging
from .types import EntityId, InteractionMode, Point, PositionedEntity, Size, ViewportState
from .validate import validate_viewport_config

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = Size(800.0, 600.0)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


class ViewportController:
    def __init__(
        self,
        viewport_size: Size = DEFAULT_VIEWPORT,
        config: Optional[ViewportConfig] = None,
    ) -> None:
        self.config = config or ViewportConfig()
        validate_viewport_config(self.config)
        self._scale = self.config.default_scale
        self._offset = Point(0.0, 0.0)
        self._viewport_size = viewport_size
        self.mode = InteractionMode.IDLE
        self._drag_anchor: Optional[Point] = None
        self._press_point: Optional[Point] = None
        self._moved_beyond_threshold = False
        self.hovered: Optional[EntityId] = None
        self.hover_point: Optional[Point] = None
        self.selected: Optional[EntityId] = None

    # -- state ---------------------------------------------------------------

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def offset(self) -> Point:
        return self._offset

    @property
    def viewport_size(self) -> Size:
        return self._viewport_size

    @property
    def state(self) -> ViewportState:
        return ViewportState(scale=self._scale, offset=self._offset, viewport_size=self._viewport_size)

    @property
    def is_dragging(self) -> bool:
        return self.mode is InteractionMode.DRAGGING

    def as_matrix(self) -> np.ndarray:
        """3x3 affine matrix mapping homogeneous world coordinates to screen."""

        s = self._scale
        return np.array(
            [[s, 0.0, self._offset.x], [0.0, s, self._offset.y], [0.0, 0.0, 1.0]],
            dtype=float,
        )

    # -- transforms ----------------------------------------------------------

    def world_to_screen(self, point: Point) -> Point:
        return Point(point.x * self._scale + self._offset.x, point.y * self._scale + self._offset.y)

    def screen_to_world(self, point: Point) -> Point:
        return Point((point.x - self._offset.x) / self._scale, (point.y - self._offset.y) / self._scale)

    # -- pan / zoom ----------------------------------------------------------

    def pan(self, dx: float, dy: float) -> ViewportState:
        if math.isfinite(dx) and math.isfinite(dy):
            self._offset = Point(self._offset.x + dx, self._offset.y + dy)
        return self.state

    def zoom_at(self, screen_point: Point, factor: float) -> ViewportState:
        """Scale by ``factor`` keeping the world point under ``screen_point`` fixed."""

        if not math.isfinite(factor) or factor <= 0.0:
            logger.debug("Ignoring zoom factor %r", factor)
            return self.state
        anchor = self.screen_to_world(screen_point)
        cfg = self.config
        self._scale = _clamp(self._scale * factor, cfg.min_scale, cfg.max_scale)
        self._offset = Point(
            screen_point.x - anchor.x * self._scale,
            screen_point.y - anchor.y * self._scale,
        )
        return self.state

    def wheel(self, screen_point: Point, delta_y: float) -> ViewportState:
        """Zoom from a wheel event; negative ``delta_y`` (scroll up) zooms in."""

        if not math.isfinite(delta_y):
            return self.state
        return self.zoom_at(screen_point, math.exp(-delta_y * self.config.wheel_sensitivity))

    def viewport_center(self) -> Point:
        return Point(self._viewport_size.width / 2.0, self._viewport_size.height / 2.0)

    def zoom_step(self, direction: int) -> ViewportState:
        """Button zoom: one multiplicative step in or out around the viewport centre."""

        if direction == 0:
            return self.state
        exponent = 1 if direction > 0 else -1
        return self.zoom_at(self.viewport_center(), self.config.zoom_step ** exponent)

    def zoom_in(self) -> ViewportState:
        return self.zoom_step(1)

    def zoom_out(self) -> ViewportState:
        return self.zoom_step(-1)

    def fit_to_bounds(
        self,
        entities: Sequence[PositionedEntity],
        viewport_size: Optional[Size] = None,
        margin_factor: Optional[float] = None,
    ) -> ViewportState:
        """Choose scale and offset so every marker is visible and centred."""

        if viewport_size is not None:
            self._viewport_size = viewport_size
        if not entities:
            logger.info("Fit requested for an empty layout; resetting view")
            return self.reset()

        cfg = self.config
        margin = cfg.fit_margin if margin_factor is None else margin_factor
        positions = np.array([e.position.as_tuple() for e in entities], dtype=float)
        sizes = np.array([e.size for e in entities], dtype=float)
        min_x, min_y, max_x, max_y = marker_bbox(positions, sizes)
        width = max(max_x - min_x, cfg.min_extent)
        height = max(max_y - min_y, cfg.min_extent)
        vw, vh = self._viewport_size.width, self._viewport_size.height
        naive = min(vw / width, vh / height) * margin
        self._scale = _clamp(naive, cfg.min_scale, cfg.max_scale)
        mid_x = (min_x + max_x) / 2.0
        mid_y = (min_y + max_y) / 2.0
        self._offset = Point(vw / 2.0 - mid_x * self._scale, vh / 2.0 - mid_y * self._scale)
        logger.info(
            "Fitted %d markers: bbox=%.1fx%.1f scale=%.4f (naive=%.4f)",
            len(entities),
            width,
            height,
            self._scale,
            naive,
        )
        return self.state

    def reset(self) -> ViewportState:
        self._scale = self.config.default_scale
        self._offset = Point(0.0, 0.0)
        return self.state

    def resize(self, viewport_size: Size) -> ViewportState:
        self._viewport_size = viewport_size
        return self.state

    # -- pointer state machine -------------------------------------------------

    def pointer_down(self, point: Point) -> None:
        self.mode = InteractionMode.DRAGGING
        self._drag_anchor = point - self._offset
        self._press_point = point
        self._moved_beyond_threshold = False
        self.clear_hover()

    def pointer_move(self, point: Point) -> ViewportState:
        if self.mode is not InteractionMode.DRAGGING or self._drag_anchor is None:
            return self.state
        self._offset = point - self._drag_anchor
        if self._press_point is not None and point.distance_to(self._press_point) > self.config.click_threshold:
            self._moved_beyond_threshold = True
        return self.state

    def pointer_up(self, point: Optional[Point] = None) -> bool:
        """End a gesture; return ``True`` when it counts as a click."""

        if self.mode is not InteractionMode.DRAGGING:
            return False
        if point is not None:
            self.pointer_move(point)
        is_click = not self._moved_beyond_threshold
        self._end_drag()
        return is_click

    def pointer_leave(self) -> None:
        if self.mode is InteractionMode.DRAGGING:
            self._end_drag()
            self._moved_beyond_threshold = False
        self.clear_hover()

    def _end_drag(self) -> None:
        self.mode = InteractionMode.IDLE
        self._drag_anchor = None
        self._press_point = None

    def should_suppress_click(self) -> bool:
        if self.mode is InteractionMode.DRAGGING:
            return True
        return self._moved_beyond_threshold

    # -- hover / selection -------------------------------------------------------

    def hover(self, entity_id: Optional[EntityId], screen_point: Optional[Point] = None) -> bool:
        """Track the hovered marker for tooltips; ignored while dragging."""

        if self.is_dragging:
            return False
        self.hovered = entity_id
        self.hover_point = screen_point if entity_id is not None else None
        return entity_id is not None

    def clear_hover(self) -> None:
        self.hovered = None
        self.hover_point = None

    def select(self, entity_id: Optional[EntityId]) -> bool:
        """Select a marker unless the click ends a pan gesture."""

        if self.should_suppress_click():
            # A pan still in progress keeps suppressing its own release.
            if self.mode is InteractionMode.IDLE:
                self._moved_beyond_threshold = False
            return False
        self.selected = entity_id
        return True

    def entity_at(self, screen_point: Point, entities: Sequence[PositionedEntity]) -> Optional[PositionedEntity]:
        """Return the topmost (last drawn) marker under ``screen_point``."""

        world = self.screen_to_world(screen_point)
        for entity in reversed(entities):
            if world.distance_to(entity.position) <= entity.radius:
                return entity
        return None


apply_debug_logging(globals(), logger=logger)
