"""
Coordinate Transform Engine
===========================
Maps pointer positions between viewport space and image-pixel space.

Two transforms are composed:
    viewport = view_offset + view_scale * (placement_offset + placement_scale * image)

The inverse is always obtained by inverting the composed 3x3 matrix, never by
undoing the two stages separately.
"""
from __future__ import annotations

import logging
from typing import Optional

from albedoanalysis import config
from albedoanalysis.model.geometry_primitives import AffineTransform, Point, Rect
from albedoanalysis.model.state import ImagePlacement, ViewState, compute_placement
from albedoanalysis.utils import clamp

logger = logging.getLogger(__name__)


class CoordinateTransform:
    def __init__(
        self,
        view: Optional[ViewState] = None,
        viewport_size: tuple[float, float] = config.DEFAULT_VIEWPORT_SIZE,
    ) -> None:
        self.view: ViewState = view if view is not None else ViewState()
        self.viewport_width: float = float(viewport_size[0])
        self.viewport_height: float = float(viewport_size[1])
        self.image_width: float = 0.0
        self.image_height: float = 0.0
        self.placement: ImagePlacement = ImagePlacement()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_image_size(self, width: float, height: float) -> None:
        self.image_width = float(width)
        self.image_height = float(height)
        self._update_placement()

    def clear_image(self) -> None:
        self.set_image_size(0.0, 0.0)

    def set_viewport_size(self, width: float, height: float) -> None:
        self.viewport_width = float(width)
        self.viewport_height = float(height)
        self._update_placement()

    def _update_placement(self) -> None:
        self.placement = compute_placement(
            self.image_width, self.image_height, self.viewport_width, self.viewport_height
        )
        logger.debug(
            f"Placement: scale={self.placement.scale:.4f}, "
            f"offset=({self.placement.offset.x:.1f}, {self.placement.offset.y:.1f})"
        )

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def image_to_viewport(self) -> AffineTransform:
        """Composed transform: placement first, then view pan/zoom."""
        return self.view.transform().compose(self.placement.transform())

    def viewport_to_image(self) -> AffineTransform:
        return self.image_to_viewport().inverted()

    def to_viewport_space(self, image_point: Point) -> Point:
        return self.image_to_viewport().apply(image_point)

    def to_image_space(self, viewport_point: Point) -> Point:
        return self.viewport_to_image().apply(viewport_point)

    def image_rect_in_viewport(self, rect: Rect) -> Rect:
        return self.image_to_viewport().apply_rect(rect)

    def image_bounds(self) -> Rect:
        """The full image in image space."""
        return Rect(0.0, 0.0, self.image_width, self.image_height)

    def contains_image_point(self, image_point: Point) -> bool:
        if self.image_width <= 0 or self.image_height <= 0:
            return False
        return self.image_bounds().contains(image_point)

    # ------------------------------------------------------------------
    # Zoom / pan
    # ------------------------------------------------------------------

    @property
    def viewport_center(self) -> Point:
        return Point(self.viewport_width / 2.0, self.viewport_height / 2.0)

    def zoom_by(self, factor: float, anchor: Optional[Point] = None) -> bool:
        """
        Multiply the view scale by ``factor`` keeping ``anchor`` (viewport
        coordinates, default: viewport centre) fixed on screen.
        Returns False when the clamp leaves the scale unchanged.
        """
        if anchor is None:
            anchor = self.viewport_center
        old_scale = self.view.scale
        new_scale = clamp(old_scale * factor, config.MIN_VIEW_SCALE, config.MAX_VIEW_SCALE)
        if new_scale == old_scale:
            return False

        # Surface point under the anchor before zooming
        surface = Point(
            (anchor.x - self.view.offset.x) / old_scale,
            (anchor.y - self.view.offset.y) / old_scale,
        )
        self.view.scale = new_scale
        self.view.offset = Point(anchor.x - surface.x * new_scale, anchor.y - surface.y * new_scale)
        logger.debug(f"Zoom {old_scale:.3f} -> {new_scale:.3f} at ({anchor.x:.1f}, {anchor.y:.1f})")
        return True

    def zoom_at(self, pointer: Point, direction: int) -> bool:
        """One wheel tick: positive direction zooms in under the pointer."""
        if direction == 0:
            return False
        step = config.WHEEL_ZOOM_STEP
        return self.zoom_by(step if direction > 0 else 1.0 / step, anchor=pointer)

    def zoom_in(self) -> bool:
        return self.zoom_by(config.BUTTON_ZOOM_STEP)

    def zoom_out(self) -> bool:
        return self.zoom_by(1.0 / config.BUTTON_ZOOM_STEP)

    def reset_zoom(self) -> None:
        self.view.reset()

    def pan_by(self, dx: float, dy: float) -> None:
        self.view.offset = Point(self.view.offset.x + dx, self.view.offset.y + dy)

    def zoom_to_rect(self, image_rect: Rect) -> bool:
        """Fit an image-space rectangle into the viewport and centre it."""
        surface_rect = self.placement.transform().apply_rect(image_rect)
        if surface_rect.width <= 0 or surface_rect.height <= 0:
            return False
        scale = min(
            self.viewport_width / surface_rect.width,
            self.viewport_height / surface_rect.height,
            config.MAX_VIEW_SCALE,
        )
        scale = clamp(scale, config.MIN_VIEW_SCALE, config.MAX_VIEW_SCALE)
        center = surface_rect.center
        self.view.scale = scale
        self.view.offset = Point(
            self.viewport_width / 2.0 - center.x * scale,
            self.viewport_height / 2.0 - center.y * scale,
        )
        return True
