"""
Workspace Session
=================
The controller that owns all session state of one open investigation.

Why is this file needed?
------------------------
1. Ownership: ViewState, ImagePlacement, the sampling buffer, the active
   drawing gesture and the selection live here, not in widgets or module
   globals. Views and panels receive this object by reference.
2. Orchestration: pointer input -> image space -> gesture -> sampling ->
   new Measurement -> written back to the investigation.
3. Signals: Views subscribe to Qt signals to re-render; the session never
   touches a widget.

The investigation is accessed only through the ``InvestigationSource``
protocol, so any record container can be plugged in.
"""
from __future__ import annotations

from dataclasses import replace
from enum import StrEnum
import logging
from typing import Callable, Optional, Protocol, TypeVar, Union

from PySide6.QtCore import QObject, Signal

from albedoanalysis import config
from albedoanalysis.controller.gestures import DrawingGesture
from albedoanalysis.controller.sampling import AlbedoSampler, grayscale_to_albedo
from albedoanalysis.controller.transform import CoordinateTransform
from albedoanalysis.model.annotations import (
    LayoutVariant, Measurement, MeasurementStatistics, ReferenceField,
    measurement_statistics, new_record_id,
)
from albedoanalysis.model.geometry_primitives import Point, Rect
from albedoanalysis.model.state import ImagePlacement, RasterImage, ViewState

logger = logging.getLogger(__name__)

Annotation = Union[Measurement, ReferenceField]
R = TypeVar("R", Measurement, ReferenceField)


class InvestigationSource(Protocol):
    """What the session needs from the surrounding application."""
    def get_image(self) -> Optional[RasterImage]: ...
    def get_reference_fields(self) -> list[ReferenceField]: ...
    def set_reference_fields(self, fields: list[ReferenceField]) -> None: ...
    def get_measurements(self) -> list[Measurement]: ...
    def set_measurements(self, measurements: list[Measurement]) -> None: ...


class InteractionMode(StrEnum):
    MEASUREMENT = "measurement"
    REFERENCE = "reference"


def _replace_by_id(records: list[R], record_id: str, update: Callable[[R], R]) -> Optional[R]:
    """Replace the record with ``record_id`` in place; returns the new record or None."""
    for i, record in enumerate(records):
        if record.id == record_id:
            records[i] = update(record)
            return records[i]
    return None


class WorkspaceSession(QObject):
    """Session-scoped state and operations of the annotation workspace."""
    measurement_created = Signal(object)        # Measurement
    measurements_changed = Signal(object)       # list[Measurement]
    reference_fields_changed = Signal(object)   # list[ReferenceField]
    image_changed = Signal(object)              # RasterImage | None
    view_changed = Signal()
    drawing_changed = Signal(object)            # preview Rect | None
    selection_changed = Signal(object)          # record id | None
    mode_changed = Signal(str)

    def __init__(
        self,
        source: InvestigationSource,
        viewport_size: tuple[float, float] = config.DEFAULT_VIEWPORT_SIZE,
    ) -> None:
        super().__init__()
        self.source: InvestigationSource = source
        self.transform = CoordinateTransform(viewport_size=viewport_size)
        self.sampler = AlbedoSampler()
        self.gesture = DrawingGesture()
        self.selected_id: Optional[str] = None
        self.mode: InteractionMode = InteractionMode.MEASUREMENT
        self._image: Optional[RasterImage] = None

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def view(self) -> ViewState:
        return self.transform.view

    @property
    def placement(self) -> ImagePlacement:
        return self.transform.placement

    @property
    def image(self) -> Optional[RasterImage]:
        return self._image

    @property
    def is_image_loaded(self) -> bool:
        return self._image is not None

    @property
    def reference_fields(self) -> list[ReferenceField]:
        return self.source.get_reference_fields()

    @property
    def measurements(self) -> list[Measurement]:
        return self.source.get_measurements()

    @property
    def current_drawing(self) -> Optional[Rect]:
        return self.gesture.current if self.gesture.is_dragging else None

    def statistics(self) -> MeasurementStatistics:
        return measurement_statistics(self.measurements)

    def find_annotation(self, record_id: str) -> Optional[Annotation]:
        for record in self.measurements:
            if record.id == record_id:
                return record
        for record in self.reference_fields:
            if record.id == record_id:
                return record
        return None

    # ------------------------------------------------------------------
    # Image lifecycle
    # ------------------------------------------------------------------

    def set_source(self, source: InvestigationSource) -> None:
        """Switch to another investigation; its image (if any) is activated."""
        self.source = source
        self.transform.reset_zoom()
        self.on_image_decoded()
        self.measurements_changed.emit(self.measurements)
        self.reference_fields_changed.emit(self.reference_fields)

    def begin_image_load(self) -> None:
        """A new image is being decoded: deactivate drawing and sampling until it arrives."""
        self._image = None
        self.sampler.invalidate()
        self.gesture.cancel()
        self.transform.clear_image()
        self._set_selection(None)
        self.image_changed.emit(None)
        self.drawing_changed.emit(None)

    def on_image_decoded(self) -> None:
        """
        Activate the source's current image. Existing measurements are
        resampled against it; a reference field is auto-seeded if none exist.
        """
        image = self.source.get_image()
        self._image = image
        self.sampler.load(image)
        self.gesture.cancel()
        self._set_selection(None)
        self.transform.reset_zoom()
        if image is None:
            self.transform.clear_image()
            self.image_changed.emit(None)
            self.view_changed.emit()
            return

        self.transform.set_image_size(image.width, image.height)
        logger.info(f"Workspace image active: {image.width}x{image.height}")
        self.image_changed.emit(image)
        self.view_changed.emit()
        self._resample_measurements()

        if not self.source.get_reference_fields():
            seeded = ReferenceField.auto_seed()
            self.source.set_reference_fields([seeded])
            logger.info(f"Auto-added reference field at ({seeded.x:g}, {seeded.y:g}).")
            self.reference_fields_changed.emit(self.reference_fields)

    def _resample_measurements(self) -> None:
        measurements = self.source.get_measurements()
        if not measurements:
            return
        resampled = [replace(m, albedo_value=self.sampler.albedo(m.rect)) for m in measurements]
        if resampled == measurements:
            return
        self.source.set_measurements(resampled)
        logger.info(f"Resampled {len(resampled)} measurement(s) against the new image.")
        self.measurements_changed.emit(self.measurements)

    # ------------------------------------------------------------------
    # View (pan / zoom)
    # ------------------------------------------------------------------

    def set_viewport_size(self, width: float, height: float) -> None:
        self.transform.set_viewport_size(width, height)
        self.view_changed.emit()

    def to_image_space(self, viewport_point: Point) -> Point:
        return self.transform.to_image_space(viewport_point)

    def to_viewport_space(self, image_point: Point) -> Point:
        return self.transform.to_viewport_space(image_point)

    def wheel(self, pointer: Point, direction: int) -> None:
        if self.transform.zoom_at(pointer, direction):
            self.view_changed.emit()

    def zoom_in(self) -> None:
        if self.transform.zoom_in():
            self.view_changed.emit()

    def zoom_out(self) -> None:
        if self.transform.zoom_out():
            self.view_changed.emit()

    def reset_zoom(self) -> None:
        self.transform.reset_zoom()
        self.view_changed.emit()

    def zoom_to_rect(self, image_rect: Rect) -> None:
        if self.transform.zoom_to_rect(image_rect):
            self.view_changed.emit()

    def pan_by(self, dx: float, dy: float) -> None:
        self.transform.pan_by(dx, dy)
        self.view_changed.emit()

    # ------------------------------------------------------------------
    # Interaction mode & selection
    # ------------------------------------------------------------------

    def set_mode(self, mode: InteractionMode) -> None:
        if mode != self.mode:
            self.mode = mode
            self.mode_changed.emit(str(mode))

    def select(self, record_id: Optional[str]) -> None:
        if record_id is not None and self.find_annotation(record_id) is None:
            logger.warning(f"Cannot select unknown record '{record_id}'.")
            record_id = None
        self._set_selection(record_id)

    def _set_selection(self, record_id: Optional[str]) -> None:
        if record_id != self.selected_id:
            self.selected_id = record_id
            self.selection_changed.emit(record_id)

    # ------------------------------------------------------------------
    # Drawing gesture
    # ------------------------------------------------------------------

    def pointer_down(self, viewport_point: Point) -> None:
        if not self.is_image_loaded:
            logger.debug("Pointer down ignored: image not loaded.")
            return
        image_point = self.to_image_space(viewport_point)
        self._set_selection(None)

        if self.mode is InteractionMode.REFERENCE:
            self.add_reference_field_at(image_point)
            return

        self.gesture.begin(image_point)
        self.drawing_changed.emit(self.gesture.current)

    def pointer_move(self, viewport_point: Point) -> None:
        if not self.gesture.is_dragging:
            return
        rect = self.gesture.update(self.to_image_space(viewport_point))
        self.drawing_changed.emit(rect)

    def pointer_up(self, viewport_point: Point) -> Optional[Measurement]:
        """Finish the drag; returns the new Measurement if one was committed."""
        if not self.gesture.is_dragging:
            return None
        rect = self.gesture.finish(self.to_image_space(viewport_point))
        self.drawing_changed.emit(None)
        if rect is None or not self.is_image_loaded:
            return None
        return self.commit_measurement(rect)

    def cancel_drawing(self) -> None:
        if self.gesture.is_dragging:
            self.gesture.cancel()
            self.drawing_changed.emit(None)

    def commit_measurement(self, rect: Rect) -> Measurement:
        """Sample ``rect`` (image space) and append it as a new Measurement."""
        measurements = self.source.get_measurements()
        measurement = Measurement(
            id=new_record_id("meas"),
            x=rect.x,
            y=rect.y,
            width=rect.width,
            height=rect.height,
            albedo_value=self.sampler.albedo(rect),
            description=Measurement.default_label(len(measurements) + 1),
        )
        measurements.append(measurement)
        self.source.set_measurements(measurements)
        logger.info(
            f"Measurement '{measurement.description}' committed: "
            f"{rect.width:.0f}x{rect.height:.0f} px at ({rect.x:.0f}, {rect.y:.0f}), "
            f"albedo={measurement.albedo_value:.3f}"
        )
        self.measurement_created.emit(measurement)
        self.measurements_changed.emit(self.measurements)
        return measurement

    # ------------------------------------------------------------------
    # Reference fields
    # ------------------------------------------------------------------

    def add_reference_field_at(self, image_point: Point) -> Optional[ReferenceField]:
        """Place a square single-layout field centred on ``image_point``."""
        if not self.transform.contains_image_point(image_point):
            logger.debug("Reference placement ignored: click outside the image.")
            return None
        fields = self.source.get_reference_fields()
        size = config.MANUAL_REFERENCE_SIZE
        field = ReferenceField(
            id=new_record_id("ref"),
            x=image_point.x - size / 2.0,
            y=image_point.y - size / 2.0,
            width=size,
            height=size,
            albedo_value=config.MANUAL_REFERENCE_ALBEDO,
            layout_variant=LayoutVariant.SINGLE,
            description=f"Reference Field {len(fields) + 1}",
        )
        fields.append(field)
        self.source.set_reference_fields(fields)
        logger.info(f"Reference field '{field.description}' added.")
        self.reference_fields_changed.emit(self.reference_fields)
        self.set_mode(InteractionMode.MEASUREMENT)
        return field

    def update_reference_field(
        self,
        field_id: str,
        albedo_value: Optional[float] = None,
        layout_variant: Optional[LayoutVariant] = None,
    ) -> bool:
        changes = {}
        if albedo_value is not None:
            changes["albedo_value"] = min(1.0, max(0.0, float(albedo_value)))
        if layout_variant is not None:
            changes["layout_variant"] = LayoutVariant(layout_variant)
        if not changes:
            return False
        fields = self.source.get_reference_fields()
        if _replace_by_id(fields, field_id, lambda f: replace(f, **changes)) is None:
            logger.warning(f"Unknown reference field '{field_id}'.")
            return False
        self.source.set_reference_fields(fields)
        self.reference_fields_changed.emit(self.reference_fields)
        return True

    def reference_grayscale(self, frame_size: Optional[tuple[float, float]] = None) -> Optional[float]:
        """Sampled mean grayscale of the first reference field, or None if unavailable."""
        fields = self.reference_fields
        if not fields or not self.is_image_loaded:
            return None
        return self.sampler.reference_grayscale(fields[0], frame_size)

    def reference_albedo(self) -> Optional[float]:
        gray = self.reference_grayscale()
        return None if gray is None else grayscale_to_albedo(gray)

    # ------------------------------------------------------------------
    # Record edits
    # ------------------------------------------------------------------

    def rename_measurement(self, measurement_id: str, name: str) -> bool:
        """Change only the description. Returns False when nothing changed."""
        measurements = self.source.get_measurements()
        target = next((m for m in measurements if m.id == measurement_id), None)
        if target is None:
            logger.warning(f"Cannot rename unknown measurement '{measurement_id}'.")
            return False
        if target.description == name:
            return False
        _replace_by_id(measurements, measurement_id, lambda m: replace(m, description=name))
        self.source.set_measurements(measurements)
        self.measurements_changed.emit(self.measurements)
        return True

    def move_annotation(self, record_id: str, x: float, y: float) -> bool:
        """Drag-move: updates x, y only."""
        measurements = self.source.get_measurements()
        if _replace_by_id(measurements, record_id, lambda m: m.moved_to(x, y)) is not None:
            self.source.set_measurements(measurements)
            self.measurements_changed.emit(self.measurements)
            return True
        fields = self.source.get_reference_fields()
        if _replace_by_id(fields, record_id, lambda f: f.moved_to(x, y)) is not None:
            self.source.set_reference_fields(fields)
            self.reference_fields_changed.emit(self.reference_fields)
            return True
        logger.warning(f"Cannot move unknown record '{record_id}'.")
        return False

    def resize_annotation(self, record_id: str, rect: Rect) -> bool:
        """
        Resize: updates x, y, width, height (floored to the minimum resize
        size). Measurements get their albedo recomputed; resizing a reference
        field leaves existing measurements untouched.
        """
        rect = Rect(
            rect.x,
            rect.y,
            max(config.MIN_RESIZE_SIZE, rect.width),
            max(config.MIN_RESIZE_SIZE, rect.height),
        )
        measurements = self.source.get_measurements()

        def resized_measurement(m: Measurement) -> Measurement:
            return replace(m.with_geometry(rect), albedo_value=self.sampler.albedo(rect))

        if _replace_by_id(measurements, record_id, resized_measurement) is not None:
            self.source.set_measurements(measurements)
            self.measurements_changed.emit(self.measurements)
            return True
        fields = self.source.get_reference_fields()
        if _replace_by_id(fields, record_id, lambda f: f.with_geometry(rect)) is not None:
            self.source.set_reference_fields(fields)
            self.reference_fields_changed.emit(self.reference_fields)
            return True
        logger.warning(f"Cannot resize unknown record '{record_id}'.")
        return False

    def delete_annotation(self, record_id: str) -> bool:
        measurements = self.source.get_measurements()
        kept = [m for m in measurements if m.id != record_id]
        if len(kept) != len(measurements):
            self.source.set_measurements(kept)
            self.measurements_changed.emit(self.measurements)
        else:
            fields = self.source.get_reference_fields()
            kept_fields = [f for f in fields if f.id != record_id]
            if len(kept_fields) == len(fields):
                return False
            self.source.set_reference_fields(kept_fields)
            self.reference_fields_changed.emit(self.reference_fields)
        if self.selected_id == record_id:
            self._set_selection(None)
        return True

    def clear_all(self) -> None:
        """Empty both collections and reset the selection."""
        self.gesture.cancel()
        self.source.set_reference_fields([])
        self.source.set_measurements([])
        self._set_selection(None)
        logger.info("Cleared all reference fields and measurements.")
        self.reference_fields_changed.emit([])
        self.measurements_changed.emit([])
        self.drawing_changed.emit(None)
