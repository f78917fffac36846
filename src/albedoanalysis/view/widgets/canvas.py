"""
Image Canvas
============
The drawing surface showing the investigation image and its annotations.

Why is this file needed?
------------------------
1. Input: Mouse and wheel events are converted to viewport coordinates and
   routed either to the annotation overlay (editing existing shapes) or to
   the workspace session (drawing new measurements, placing references).
2. Rendering: The image and every overlay layer are painted through one
   QTransform built from the session's composed image-to-viewport matrix.

Shift+drag or a middle-button drag pans the view.
"""
from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QMouseEvent, QPainter, QWheelEvent
from PySide6.QtWidgets import QWidget

from albedoanalysis.controller.raster import array_to_qimage
from albedoanalysis.controller.workspace import InteractionMode
from albedoanalysis.model.geometry_primitives import Point, Rect
from albedoanalysis.view.widgets.overlays import (
    AnnotationOverlay, DragKind, OverlayHit, Renderable, HANDLE_SIZE, qtransform,
)

if TYPE_CHECKING:
    from albedoanalysis.controller.workspace import WorkspaceSession
    from albedoanalysis.model.state import RasterImage

logger = logging.getLogger(__name__)


def _point(pos: QPointF) -> Point:
    return Point(pos.x(), pos.y())


class ImageCanvas(QWidget):
    # Emitted with the id of a measurement the user double-clicked
    rename_requested = Signal(str)

    def __init__(self, session: WorkspaceSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self.overlay = AnnotationOverlay(session)
        self.overlay.on_drag_end(self._apply_overlay_edit)
        self.layers: list[Renderable] = [self.overlay]

        self._qimage: Optional[QImage] = None
        self._pan_origin: Optional[QPointF] = None

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(320, 240)

        session.image_changed.connect(self._on_image_changed)
        session.view_changed.connect(self.update)
        session.drawing_changed.connect(self.update)
        session.measurements_changed.connect(self.update)
        session.reference_fields_changed.connect(self.update)
        session.selection_changed.connect(self.update)
        session.mode_changed.connect(self._on_mode_changed)

    # ---- Session slots ----

    def _on_image_changed(self, image: Optional[RasterImage]) -> None:
        self._qimage = array_to_qimage(image.pixels) if image is not None else None
        self.overlay.cancel_drag()
        self.update()

    def _on_mode_changed(self, mode: str) -> None:
        if mode == InteractionMode.REFERENCE:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.unsetCursor()

    def _apply_overlay_edit(self, hit: OverlayHit, rect: Rect) -> None:
        if hit.kind is DragKind.MOVE:
            self.session.move_annotation(hit.record_id, rect.x, rect.y)
        else:
            self.session.resize_annotation(hit.record_id, rect)

    # ---- Qt events ----

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self.session.set_viewport_size(self.width(), self.height())

    def _handle_tolerance(self) -> float:
        """Resize-handle grab distance converted to image pixels."""
        scale = self.session.view.scale * self.session.placement.scale
        return HANDLE_SIZE / scale if scale > 0 else HANDLE_SIZE

    def mousePressEvent(self, event: QMouseEvent) -> None:
        pos = _point(event.position())
        pans = event.button() == Qt.MouseButton.MiddleButton or (
            event.button() == Qt.MouseButton.LeftButton
            and event.modifiers() & Qt.KeyboardModifier.ShiftModifier
        )
        if pans:
            self._pan_origin = event.position()
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            return
        if event.button() != Qt.MouseButton.LeftButton or not self.session.is_image_loaded:
            return

        if self.session.mode is InteractionMode.MEASUREMENT:
            image_point = self.session.to_image_space(pos)
            hit = self.overlay.hit_test(image_point, self._handle_tolerance())
            if hit is not None:
                self.session.select(hit.record_id)
                self.overlay.begin_drag(hit, image_point)
                return
        self.session.pointer_down(pos)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._pan_origin is not None:
            delta = event.position() - self._pan_origin
            self._pan_origin = event.position()
            self.session.pan_by(delta.x(), delta.y())
            return
        pos = _point(event.position())
        if self.overlay.is_dragging:
            self.overlay.drag_to(self.session.to_image_space(pos))
            self.update()
            return
        self.session.pointer_move(pos)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if self._pan_origin is not None:
            self._pan_origin = None
            self.unsetCursor()
            return
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = _point(event.position())
        if self.overlay.is_dragging:
            self.overlay.drag_to(self.session.to_image_space(pos))
            self.overlay.end_drag()
            self.update()
            return
        self.session.pointer_up(pos)

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        if not self.session.is_image_loaded:
            return
        image_point = self.session.to_image_space(_point(event.position()))
        hit = self.overlay.hit_test(image_point, self._handle_tolerance())
        if hit is not None and not hit.is_reference:
            self.rename_requested.emit(hit.record_id)

    def wheelEvent(self, event: QWheelEvent) -> None:
        delta = event.angleDelta().y()
        if delta == 0 or not self.session.is_image_loaded:
            return
        self.session.wheel(_point(event.position()), 1 if delta > 0 else -1)
        event.accept()

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self.session.cancel_drawing()
            self.overlay.cancel_drag()
            self.session.set_mode(InteractionMode.MEASUREMENT)
            self.update()
            return
        if event.key() == Qt.Key.Key_Delete and self.session.selected_id:
            self.session.delete_annotation(self.session.selected_id)
            return
        super().keyPressEvent(event)

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(236, 240, 241))

        if self._qimage is None:
            painter.setPen(QColor(127, 140, 141))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "Open an image to begin")
            painter.end()
            return

        transform = qtransform(self.session.transform.image_to_viewport().to_tuple())
        painter.save()
        painter.setTransform(transform)
        painter.drawImage(QPointF(0.0, 0.0), self._qimage)
        painter.restore()

        for layer in self.layers:
            layer.draw(painter, transform)
        painter.end()
