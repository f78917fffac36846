"""
Annotation Records
==================
Defines the reference-field and measurement records drawn on an image.

Why is this file needed?
------------------------
1. Data: These are the records the surrounding application persists; all of
   their geometry is expressed in image-pixel coordinates.
2. Serialization: ``to_dict``/``from_dict`` keep the persisted (camelCase,
   JSON-like) record shape stable across save/load round trips.

Classes:
    LayoutVariant: Geometric layout of a reference patch.
    ReferenceField: Calibration patch with a known reflectance.
    Measurement: Sampled region with its computed albedo.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Dict, Optional
import itertools
import logging
import time

from albedoanalysis import config
from albedoanalysis.model.geometry_primitives import Rect

logger = logging.getLogger(__name__)


class LayoutVariant(StrEnum):
    SINGLE = "single"
    TWO_RECT = "two-rect"
    THREE_RECT = "three-rect"

    @classmethod
    def parse(cls, value: Optional[str]) -> LayoutVariant:
        """Accepts the canonical names plus the spellings used by older files."""
        if value is None:
            return cls.SINGLE
        key = str(value).strip().lower().replace("_", "-")
        aliases = {
            "tworect": cls.TWO_RECT,
            "threerect": cls.THREE_RECT,
            "standard": cls.SINGLE,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown reference layout variant: '{value}'") from None


_ID_COUNTER = itertools.count(1)


def new_record_id(prefix: str) -> str:
    """Timestamp based id, e.g. 'meas_1718000000123_1'."""
    return f"{prefix}_{int(time.time() * 1000)}_{next(_ID_COUNTER)}"


@dataclass
class ReferenceField:
    """
    A calibration patch of known reflectance.

    For two- and three-rectangle layouts ``rect_width`` is the width of one
    sub-rectangle and ``spacing`` the gap between neighbours.
    """
    id: str
    x: float
    y: float
    width: float
    height: float
    albedo_value: float = config.AUTO_REFERENCE_ALBEDO
    layout_variant: LayoutVariant = LayoutVariant.SINGLE
    rect_width: Optional[float] = None
    spacing: Optional[float] = None
    description: Optional[str] = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def with_geometry(self, rect: Rect) -> ReferenceField:
        return replace(self, x=rect.x, y=rect.y, width=rect.width, height=rect.height)

    def moved_to(self, x: float, y: float) -> ReferenceField:
        return replace(self, x=x, y=y)

    @classmethod
    def auto_seed(cls) -> ReferenceField:
        """Default two-rectangle patch placed on a freshly loaded image."""
        rect_width = config.AUTO_REFERENCE_RECT_WIDTH
        spacing = config.AUTO_REFERENCE_SPACING
        return cls(
            id=new_record_id("ref"),
            x=config.AUTO_REFERENCE_X,
            y=config.AUTO_REFERENCE_Y,
            width=rect_width * 2 + spacing,
            height=config.AUTO_REFERENCE_HEIGHT,
            albedo_value=config.AUTO_REFERENCE_ALBEDO,
            layout_variant=LayoutVariant.TWO_RECT,
            rect_width=rect_width,
            spacing=spacing,
            description="Reference",
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "albedoValue": self.albedo_value,
            "layoutVariant": str(self.layout_variant),
        }
        if self.rect_width is not None:
            data["rectWidth"] = self.rect_width
        if self.spacing is not None:
            data["spacing"] = self.spacing
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReferenceField:
        variant = data.get("layoutVariant")
        if variant is None:
            # Older records flag the layout with booleans
            if data.get("hasThreeRectangles"):
                variant = LayoutVariant.THREE_RECT
            elif data.get("hasTwoRectangles"):
                variant = LayoutVariant.TWO_RECT
        rect_width = data.get("rectWidth")
        spacing = data.get("spacing")
        return cls(
            id=str(data["id"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            albedo_value=float(data.get("albedoValue", config.AUTO_REFERENCE_ALBEDO)),
            layout_variant=LayoutVariant.parse(variant),
            rect_width=float(rect_width) if rect_width is not None else None,
            spacing=float(spacing) if spacing is not None else None,
            description=data.get("description", data.get("label")),
        )


@dataclass
class Measurement:
    """A sampled region; ``albedo_value`` is always within [0, 1]."""
    id: str
    x: float
    y: float
    width: float
    height: float
    albedo_value: float = 0.0
    description: str = ""

    RECORD_TYPE = "measurement"

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def with_geometry(self, rect: Rect) -> Measurement:
        return replace(self, x=rect.x, y=rect.y, width=rect.width, height=rect.height)

    def moved_to(self, x: float, y: float) -> Measurement:
        return replace(self, x=x, y=y)

    @staticmethod
    def default_label(position: int) -> str:
        """Provisional label for the measurement at 1-based ``position``."""
        return f"Measurement {position}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "albedoValue": self.albedo_value,
            "description": self.description,
            "type": self.RECORD_TYPE,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Measurement:
        record_type = data.get("type", cls.RECORD_TYPE)
        if record_type != cls.RECORD_TYPE:
            raise ValueError(f"Not a measurement record (type='{record_type}').")
        return cls(
            id=str(data["id"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            albedo_value=float(data.get("albedoValue", 0.0)),
            description=str(data.get("description", "")),
        )


@dataclass
class MeasurementStatistics:
    count: int = 0
    mean: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0


def measurement_statistics(measurements: list[Measurement]) -> MeasurementStatistics:
    """Count, mean, min and max albedo of a set of measurements."""
    if not measurements:
        return MeasurementStatistics()
    values = [m.albedo_value for m in measurements]
    return MeasurementStatistics(
        count=len(values),
        mean=sum(values) / len(values),
        minimum=min(values),
        maximum=max(values),
    )
