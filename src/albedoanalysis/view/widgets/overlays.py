"""
Annotation Overlays
===================
Renderable layers drawn on top of the image canvas.

Why is this file needed?
------------------------
1. Rendering: Reference fields and measurements are painted in image space
   through the composed view transform, so they stay glued to the pixels at
   any zoom.
2. Editing: Existing shapes are moved or resized by dragging. The overlay
   tracks the drag locally and hands the final geometry to its drag-end
   handlers; the session then writes it back to the investigation.

Classes:
    Renderable: Protocol every canvas layer implements.
    AnnotationOverlay: Draws and edits reference fields and measurements.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
import logging
from typing import Callable, Optional, Protocol, TYPE_CHECKING

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QPainter, QPen, QTransform

from albedoanalysis import config
from albedoanalysis.model.annotations import LayoutVariant, Measurement, ReferenceField
from albedoanalysis.model.geometry_primitives import Point, Rect

if TYPE_CHECKING:
    from albedoanalysis.controller.workspace import WorkspaceSession

logger = logging.getLogger(__name__)

MEASUREMENT_COLOR = QColor("#2ca02c")
REFERENCE_COLOR = QColor("#ff7f0e")
SELECTED_COLOR = QColor("#1f77b4")
DRAWING_COLOR = QColor("#d62728")

# Resize handle size in viewport pixels
HANDLE_SIZE = 8.0


class Renderable(Protocol):
    """A canvas layer: painted through the view transform, hit-testable in image space."""
    def draw(self, painter: QPainter, transform: QTransform) -> None: ...
    def hit_test(self, image_point: Point, handle_size: float = ...) -> Optional[OverlayHit]: ...
    def on_drag_end(self, handler: DragEndHandler) -> None: ...


class DragKind(Enum):
    MOVE = auto()
    RESIZE = auto()


@dataclass(frozen=True)
class OverlayHit:
    record_id: str
    kind: DragKind
    is_reference: bool


@dataclass
class _Drag:
    hit: OverlayHit
    origin: Point
    start_rect: Rect
    rect: Rect


DragEndHandler = Callable[[OverlayHit, Rect], None]


def qtransform(matrix_tuple: tuple[float, float, float, float, float, float]) -> QTransform:
    return QTransform(*matrix_tuple)


def _cosmetic_pen(color: QColor, width: float = 2.0, style: Qt.PenStyle = Qt.PenStyle.SolidLine) -> QPen:
    pen = QPen(color, width, style)
    pen.setCosmetic(True)
    return pen


def reference_subrects(field: ReferenceField) -> list[Rect]:
    """The sampled sub-rectangles of a field, in image space, for display."""
    match field.layout_variant:
        case LayoutVariant.TWO_RECT:
            rw = field.rect_width or config.FALLBACK_RECT_WIDTH
            sp = field.spacing or config.FALLBACK_TWO_RECT_SPACING
            return [
                Rect(field.x, field.y, rw, field.height),
                Rect(field.x + rw + sp, field.y, rw, field.height),
            ]
        case LayoutVariant.THREE_RECT:
            rw = field.rect_width or config.FALLBACK_RECT_WIDTH
            sp = field.spacing or config.FALLBACK_THREE_RECT_SPACING
            return [Rect(field.x + i * (rw + sp), field.y, rw, field.height) for i in range(3)]
        case _:
            return [field.rect]


class AnnotationOverlay:
    """Paints the investigation's annotations and performs move/resize drags."""

    def __init__(self, session: WorkspaceSession) -> None:
        self.session = session
        self._drag: Optional[_Drag] = None
        self._handlers: list[DragEndHandler] = []

    # ---- Hit testing ----

    def on_drag_end(self, handler: DragEndHandler) -> None:
        self._handlers.append(handler)

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    def hit_test(self, image_point: Point, handle_size: float = HANDLE_SIZE) -> Optional[OverlayHit]:
        """
        Topmost annotation under ``image_point``. ``handle_size`` is in image
        pixels; grabbing within it of the bottom-right corner starts a resize.
        Measurements are painted above reference fields and are tested first.
        """
        candidates: list[tuple[Measurement | ReferenceField, bool]] = [
            (m, False) for m in reversed(self.session.measurements)
        ] + [(f, True) for f in reversed(self.session.reference_fields)]

        for record, is_reference in candidates:
            rect = record.rect
            corner = Point(rect.right, rect.bottom)
            if corner.distance_to(image_point) <= handle_size:
                return OverlayHit(record.id, DragKind.RESIZE, is_reference)
            if rect.contains(image_point):
                return OverlayHit(record.id, DragKind.MOVE, is_reference)
        return None

    # ---- Dragging ----

    def begin_drag(self, hit: OverlayHit, image_point: Point) -> None:
        record = self.session.find_annotation(hit.record_id)
        if record is None:
            return
        self._drag = _Drag(hit=hit, origin=image_point, start_rect=record.rect, rect=record.rect)

    def drag_to(self, image_point: Point) -> Optional[Rect]:
        drag = self._drag
        if drag is None:
            return None
        delta = image_point - drag.origin
        start = drag.start_rect
        if drag.hit.kind is DragKind.MOVE:
            drag.rect = start.translated(delta.x, delta.y)
        else:
            drag.rect = Rect(
                start.x,
                start.y,
                max(config.MIN_RESIZE_SIZE, start.width + delta.x),
                max(config.MIN_RESIZE_SIZE, start.height + delta.y),
            )
        return drag.rect

    def end_drag(self) -> Optional[Rect]:
        drag, self._drag = self._drag, None
        if drag is None or drag.rect == drag.start_rect:
            return None
        for handler in self._handlers:
            handler(drag.hit, drag.rect)
        return drag.rect

    def cancel_drag(self) -> None:
        self._drag = None

    # ---- Painting ----

    def _display_rect(self, record: Measurement | ReferenceField) -> Rect:
        if self._drag is not None and self._drag.hit.record_id == record.id:
            return self._drag.rect
        return record.rect

    def draw(self, painter: QPainter, transform: QTransform) -> None:
        selected = self.session.selected_id

        for field in self.session.reference_fields:
            rect = self._display_rect(field)
            shifted = field.with_geometry(rect)
            color = SELECTED_COLOR if field.id == selected else REFERENCE_COLOR
            painter.save()
            painter.setTransform(transform)
            painter.setPen(_cosmetic_pen(color, 1.0, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(_qrect(rect))
            fill = QColor(color)
            fill.setAlpha(60)
            painter.setPen(_cosmetic_pen(color))
            painter.setBrush(QBrush(fill))
            for sub in reference_subrects(shifted):
                painter.drawRect(_qrect(sub))
            painter.restore()
            self._draw_handle(painter, transform, rect, color)
            self._draw_label(
                painter, transform, rect,
                f"{field.description or 'Reference'} ({field.albedo_value:.2f})", color,
            )

        for measurement in self.session.measurements:
            rect = self._display_rect(measurement)
            color = SELECTED_COLOR if measurement.id == selected else MEASUREMENT_COLOR
            painter.save()
            painter.setTransform(transform)
            painter.setPen(_cosmetic_pen(color))
            fill = QColor(color)
            fill.setAlpha(40)
            painter.setBrush(QBrush(fill))
            painter.drawRect(_qrect(rect))
            painter.restore()
            self._draw_handle(painter, transform, rect, color)
            self._draw_label(
                painter, transform, rect,
                f"{measurement.description}: {measurement.albedo_value:.3f}", color,
            )

        drawing = self.session.current_drawing
        if drawing is not None:
            painter.save()
            painter.setTransform(transform)
            painter.setPen(_cosmetic_pen(DRAWING_COLOR, 1.5, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(_qrect(drawing))
            painter.restore()

    @staticmethod
    def _draw_handle(painter: QPainter, transform: QTransform, rect: Rect, color: QColor) -> None:
        corner = transform.map(QPointF(rect.right, rect.bottom))
        half = HANDLE_SIZE / 2.0
        painter.save()
        painter.setPen(_cosmetic_pen(color, 1.0))
        painter.setBrush(QBrush(Qt.GlobalColor.white))
        painter.drawRect(QRectF(corner.x() - half, corner.y() - half, HANDLE_SIZE, HANDLE_SIZE))
        painter.restore()

    @staticmethod
    def _draw_label(painter: QPainter, transform: QTransform, rect: Rect, text: str, color: QColor) -> None:
        # Text is drawn in viewport space so it does not scale with zoom
        anchor = transform.map(QPointF(rect.x, rect.y))
        painter.save()
        painter.setPen(color)
        painter.drawText(QPointF(anchor.x(), anchor.y() - 4.0), text)
        painter.restore()


def _qrect(rect: Rect) -> QRectF:
    return QRectF(rect.x, rect.y, rect.width, rect.height)
