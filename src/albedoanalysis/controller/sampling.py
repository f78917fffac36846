"""
Albedo Sampling Engine
======================
Turns a rectangle in image-pixel space into a single reflectance estimate.

Sampling always happens on a buffer at native resolution (one buffer pixel
per image pixel), independent of the current display zoom:

    grayscale(pixel) = (R + G + B) / 3
    albedo(rect)     = clamp(mean(grayscale over rect) / 256, 0, 1)

The buffer is built once per image and reused until the image changes.
"""
from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

import numpy as np

from albedoanalysis import config
from albedoanalysis.model.annotations import LayoutVariant, ReferenceField
from albedoanalysis.model.geometry_primitives import Rect
from albedoanalysis.utils import clamp, round_half_up

if TYPE_CHECKING:
    import numpy.typing as npt
    from albedoanalysis.model.state import RasterImage

logger = logging.getLogger(__name__)


def mean_grayscale(block: npt.NDArray[np.uint8]) -> float:
    """Mean of the per-pixel (R+G+B)/3 values; 0.0 for an empty block."""
    if block.size == 0 or block.shape[0] == 0 or block.shape[1] == 0:
        return 0.0
    rgb = block[..., :3].astype(np.float64)
    return float((rgb.sum(axis=2) / 3.0).mean())


def grayscale_to_albedo(mean_gray: float) -> float:
    return clamp(mean_gray / config.ALBEDO_DIVISOR, 0.0, 1.0)


class AlbedoSampler:
    """Caches the native-resolution RGB buffer of one image and samples it."""

    def __init__(self) -> None:
        self._buffer: Optional[npt.NDArray[np.uint8]] = None
        self._source: Optional[RasterImage] = None

    # ---- buffer management ----

    def load(self, image: Optional[RasterImage]) -> None:
        """Rasterize ``image`` at 1:1 unless it is already the cached source."""
        if image is None:
            self.invalidate()
            return
        if image is self._source and self._buffer is not None:
            return
        self._buffer = np.array(image.pixels[:, :, :3], dtype=np.uint8, copy=True)
        self._source = image
        logger.debug(f"Sampling buffer rebuilt: {image.width}x{image.height}")

    def invalidate(self) -> None:
        self._buffer = None
        self._source = None

    @property
    def is_ready(self) -> bool:
        return self._buffer is not None

    @property
    def buffer_size(self) -> tuple[int, int]:
        """(width, height) of the buffer, (0, 0) when nothing is loaded."""
        if self._buffer is None:
            return 0, 0
        return int(self._buffer.shape[1]), int(self._buffer.shape[0])

    # ---- pixel blocks ----

    def _block(self, x: int, y: int, width: int, height: int) -> npt.NDArray[np.uint8]:
        """Integer block [x, x+width) x [y, y+height), clipped to the buffer."""
        if self._buffer is None:
            return np.empty((0, 0, 3), dtype=np.uint8)
        buf_w, buf_h = self.buffer_size
        clipped = Rect(x, y, width, height).clipped(buf_w, buf_h)
        if clipped is None:
            return np.empty((0, 0, 3), dtype=np.uint8)
        x0, y0 = int(clipped.x), int(clipped.y)
        x1, y1 = int(clipped.right), int(clipped.bottom)
        return self._buffer[y0:y1, x0:x1]

    def block(self, rect: Rect) -> npt.NDArray[np.uint8]:
        return self._block(
            round_half_up(rect.x),
            round_half_up(rect.y),
            round_half_up(rect.width),
            round_half_up(rect.height),
        )

    # ---- measurements ----

    def mean_grayscale(self, rect: Rect) -> float:
        if not self.is_ready:
            logger.debug("Sampling requested before an image was loaded.")
            return 0.0
        return mean_grayscale(self.block(rect))

    def albedo(self, rect: Rect) -> float:
        """Clamped albedo of a region; 0.0 when no image is loaded or the region is empty."""
        if not self.is_ready:
            logger.debug("Albedo requested before an image was loaded.")
            return 0.0
        block = self.block(rect)
        mean_gray = mean_grayscale(block)
        value = grayscale_to_albedo(mean_gray)
        if logger.isEnabledFor(logging.DEBUG):
            n = block.shape[0] * block.shape[1] if block.ndim == 3 else 0
            if n:
                mean_r, mean_g, mean_b = block[..., :3].reshape(-1, 3).mean(axis=0)
            else:
                mean_r = mean_g = mean_b = 0.0
            logger.debug(
                f"Pixel analysis: pixels={n}, mean R={mean_r:.2f} G={mean_g:.2f} B={mean_b:.2f}, "
                f"grayscale={mean_gray:.2f}, albedo={mean_gray:.2f}/{config.ALBEDO_DIVISOR:g}={value:.3f}"
            )
        return value

    # ---- reference fields ----

    def reference_grayscale(
        self,
        field: ReferenceField,
        frame_size: Optional[tuple[float, float]] = None,
    ) -> float:
        """
        Mean grayscale of a reference patch according to its layout.

        ``frame_size`` is the (width, height) of the coordinate frame the
        field's geometry was captured in; it defaults to the native image
        size, i.e. no scaling.
        """
        if not self.is_ready:
            return 0.0

        buf_w, buf_h = self.buffer_size
        if frame_size is None or frame_size[0] <= 0 or frame_size[1] <= 0:
            sx = sy = 1.0
        else:
            sx = buf_w / frame_size[0]
            sy = buf_h / frame_size[1]

        ref_x = round_half_up(field.x * sx)
        ref_y = round_half_up(field.y * sy)
        rect_height = round_half_up(field.height * sy)

        match field.layout_variant:
            case LayoutVariant.SINGLE:
                return mean_grayscale(self._block(
                    ref_x, ref_y, round_half_up(field.width * sx), rect_height
                ))
            case LayoutVariant.TWO_RECT:
                rect_width = round_half_up((field.rect_width or config.FALLBACK_RECT_WIDTH) * sx)
                spacing = round_half_up((field.spacing or config.FALLBACK_TWO_RECT_SPACING) * sx)
                first = mean_grayscale(self._block(ref_x, ref_y, rect_width, rect_height))
                second = mean_grayscale(self._block(ref_x + rect_width + spacing, ref_y, rect_width, rect_height))
                return (first + second) / 2.0
            case LayoutVariant.THREE_RECT:
                rect_width = round_half_up((field.rect_width or config.FALLBACK_RECT_WIDTH) * sx)
                spacing = round_half_up((field.spacing or config.FALLBACK_THREE_RECT_SPACING) * sx)
                return mean_grayscale(self._block(ref_x + rect_width + spacing, ref_y, rect_width, rect_height))
            case _:
                raise ValueError(f"Unsupported layout variant: {field.layout_variant!r}")

    def reference_albedo(
        self,
        field: ReferenceField,
        frame_size: Optional[tuple[float, float]] = None,
    ) -> float:
        return grayscale_to_albedo(self.reference_grayscale(field, frame_size))
