"""
Workspace State (Data Model)
============================
This module defines the data structures held by a running workspace.

Why is this file needed?
------------------------
1. State Management: It holds the view pan/zoom, the fit-to-viewport image
   placement and the investigation record being edited.
2. Persistence: ``Investigation`` is the object that gets serialized when
   saving; the decoded raster is attached at runtime and never stored.
3. Decoupling: Views read from these objects; the workspace session writes them.

Classes:
    ViewState: Current user pan/zoom of the drawing surface.
    ImagePlacement: Fit-to-viewport scale/offset of the image.
    RasterImage: Decoded image pixels (RGBA, native resolution).
    Investigation: The record aggregating image, reference fields and measurements.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
import time
from typing import Any, Dict, Optional, TYPE_CHECKING

import numpy as np

from albedoanalysis.model.annotations import Measurement, ReferenceField
from albedoanalysis.model.geometry_primitives import AffineTransform, Point

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


@dataclass
class ViewState:
    """User pan/zoom; ``scale`` is kept within the configured clamp range."""
    scale: float = 1.0
    offset: Point = field(default_factory=lambda: Point(0.0, 0.0))

    def transform(self) -> AffineTransform:
        return AffineTransform.scale_translate(self.scale, self.offset.x, self.offset.y)

    def reset(self) -> None:
        self.scale = 1.0
        self.offset = Point(0.0, 0.0)


@dataclass(frozen=True)
class ImagePlacement:
    """Maps image pixels onto the un-zoomed drawing surface."""
    scale: float = 1.0
    offset: Point = field(default_factory=lambda: Point(0.0, 0.0))

    def transform(self) -> AffineTransform:
        return AffineTransform.scale_translate(self.scale, self.offset.x, self.offset.y)


def compute_placement(
    image_width: float,
    image_height: float,
    viewport_width: float,
    viewport_height: float,
) -> ImagePlacement:
    """
    Letterbox the image inside the viewport, centred, never upscaled past 1:1.
    Degenerate sizes fall back to the identity placement.
    """
    if image_width <= 0 or image_height <= 0 or viewport_width <= 0 or viewport_height <= 0:
        return ImagePlacement()
    scale = min(viewport_width / image_width, viewport_height / image_height, 1.0)
    return ImagePlacement(
        scale=scale,
        offset=Point(
            (viewport_width - image_width * scale) / 2.0,
            (viewport_height - image_height * scale) / 2.0,
        ),
    )


@dataclass
class RasterImage:
    """
    Decoded image at native resolution.
    ``pixels`` has shape (height, width, 4) with RGBA channels as uint8.
    """
    pixels: npt.NDArray[np.uint8]
    name: str = ""
    path: Optional[str] = None

    def __post_init__(self) -> None:
        arr = np.asarray(self.pixels)
        if arr.ndim == 2:
            # Grayscale input: replicate to RGB, opaque alpha
            arr = np.stack([arr, arr, arr, np.full_like(arr, 255)], axis=-1)
        elif arr.ndim == 3 and arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=arr.dtype)
            arr = np.concatenate([arr, alpha], axis=2)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) RGBA array, got shape {arr.shape}.")
        self.pixels = np.ascontiguousarray(arr, dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass
class Location:
    """Inert geographic metadata; never used for reprojection."""
    name: str = ""
    lat: float = 0.0
    lng: float = 0.0


@dataclass
class ImageInfo:
    """Reference to the image file an investigation was made on."""
    path: str
    name: str = ""
    width: int = 0
    height: int = 0


@dataclass
class Investigation:
    """
    Aggregates one image, its reference fields and its measurements.
    Implements the ``InvestigationSource`` protocol used by the workspace.
    """
    id: str
    name: str = "Untitled Investigation"
    year: int = field(default_factory=lambda: datetime.now().year)
    location: Location = field(default_factory=Location)
    image_info: Optional[ImageInfo] = None
    reference_fields: list[ReferenceField] = field(default_factory=list)
    measurements: list[Measurement] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    # Runtime only
    image: Optional[RasterImage] = field(default=None, repr=False, compare=False)

    @classmethod
    def new(cls, name: str = "Untitled Investigation") -> Investigation:
        return cls(id=f"inv_{int(time.time() * 1000)}", name=name)

    # ---- InvestigationSource ----

    def get_image(self) -> Optional[RasterImage]:
        return self.image

    def get_reference_fields(self) -> list[ReferenceField]:
        return list(self.reference_fields)

    def set_reference_fields(self, fields: list[ReferenceField]) -> None:
        self.reference_fields = list(fields)

    def get_measurements(self) -> list[Measurement]:
        return list(self.measurements)

    def set_measurements(self, measurements: list[Measurement]) -> None:
        self.measurements = list(measurements)

    def attach_image(self, image: RasterImage) -> None:
        """Replace the image wholesale and update the stored reference."""
        self.image = image
        self.image_info = ImageInfo(
            path=image.path or "",
            name=image.name,
            width=image.width,
            height=image.height,
        )
        logger.info(f"Investigation '{self.name}': image set to '{image.name}' ({image.width}x{image.height}).")

    # ---- Serialization ----

    def to_dict(self) -> Dict[str, Any]:
        image = None
        if self.image_info is not None:
            image = {
                "path": self.image_info.path,
                "name": self.image_info.name,
                "dimensions": {"width": self.image_info.width, "height": self.image_info.height},
            }
        return {
            "id": self.id,
            "name": self.name,
            "year": self.year,
            "location": {"name": self.location.name, "lat": self.location.lat, "lng": self.location.lng},
            "image": image,
            "referenceFields": [f.to_dict() for f in self.reference_fields],
            "measurements": [m.to_dict() for m in self.measurements],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Investigation:
        loc = data.get("location") or {}
        coords = loc.get("coordinates") or {}
        location = Location(
            name=str(loc.get("name", "")),
            lat=float(loc.get("lat", coords.get("lat", 0.0))),
            lng=float(loc.get("lng", coords.get("lng", 0.0))),
        )

        image_info = None
        img = data.get("image")
        if img:
            dims = img.get("dimensions") or {}
            image_info = ImageInfo(
                path=str(img.get("path", "")),
                name=str(img.get("name", "")),
                width=int(dims.get("width", 0)),
                height=int(dims.get("height", 0)),
            )

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Untitled Investigation")),
            year=int(data.get("year", datetime.now().year)),
            location=location,
            image_info=image_info,
            reference_fields=[ReferenceField.from_dict(f) for f in data.get("referenceFields", [])],
            measurements=[Measurement.from_dict(m) for m in data.get("measurements", [])],
            created_at=str(data.get("createdAt", "")),
        )
