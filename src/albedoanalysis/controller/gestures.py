"""
Drawing gesture state machine.

    IDLE --begin--> DRAGGING --update--> DRAGGING
    DRAGGING --finish--> COMMITTED (rect large enough) | IDLE (too small)

Points handed to the gesture are already in image-pixel space.
"""
from __future__ import annotations

from enum import Enum, auto
import logging
from typing import Optional

from albedoanalysis import config
from albedoanalysis.model.geometry_primitives import Point, Rect

logger = logging.getLogger(__name__)


class GesturePhase(Enum):
    IDLE = auto()
    DRAGGING = auto()
    COMMITTED = auto()


class DrawingGesture:
    def __init__(self, min_size: float = config.MIN_REGION_SIZE) -> None:
        self.min_size = min_size
        self.phase = GesturePhase.IDLE
        self.start: Optional[Point] = None
        self.current: Optional[Rect] = None

    @property
    def is_dragging(self) -> bool:
        return self.phase is GesturePhase.DRAGGING

    def begin(self, point: Point) -> None:
        self.phase = GesturePhase.DRAGGING
        self.start = point
        self.current = Rect(point.x, point.y, 0.0, 0.0)

    def update(self, point: Point) -> Optional[Rect]:
        """Update the preview rectangle; returns None when not dragging."""
        if not self.is_dragging or self.start is None:
            return None
        self.current = Rect.from_corners(self.start, point)
        return self.current

    def finish(self, point: Point) -> Optional[Rect]:
        """End the drag. Returns the committed rectangle, or None if it was too small."""
        if not self.is_dragging or self.start is None:
            return None
        rect = Rect.from_corners(self.start, point)
        self.start = None
        self.current = None
        if rect.exceeds(self.min_size, self.min_size):
            self.phase = GesturePhase.COMMITTED
            return rect
        logger.debug(f"Drag of {rect.width:.1f}x{rect.height:.1f} px discarded (too small).")
        self.phase = GesturePhase.IDLE
        return None

    def cancel(self) -> None:
        self.phase = GesturePhase.IDLE
        self.start = None
        self.current = None
