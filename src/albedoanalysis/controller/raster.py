"""
Image Decoding & Rasterization
==============================
Conversions between Qt images and the numpy RGBA buffers used for sampling.

QImage is safe to use outside the GUI thread, so ``decode_image`` may run on
a worker thread (QPixmap may not).
"""
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import numpy as np
from PySide6.QtGui import QImage, QImageReader

from albedoanalysis import config
from albedoanalysis.model.state import RasterImage

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


def qimage_to_array(image: QImage) -> npt.NDArray[np.uint8]:
    """Copy a QImage into an (H, W, 4) uint8 RGBA array at native resolution."""
    rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
    width, height = rgba.width(), rgba.height()
    if width == 0 or height == 0:
        return np.zeros((height, width, 4), dtype=np.uint8)
    stride = rgba.bytesPerLine()
    raw = np.frombuffer(rgba.constBits(), dtype=np.uint8, count=stride * height)
    # Rows may be padded beyond width * 4 bytes
    return raw.reshape(height, stride)[:, : width * 4].reshape(height, width, 4).copy()


def array_to_qimage(pixels: npt.NDArray[np.uint8]) -> QImage:
    """Deep-copied QImage for display; the array may be released afterwards."""
    arr = np.ascontiguousarray(pixels, dtype=np.uint8)
    height, width = arr.shape[:2]
    image = QImage(arr.tobytes(), width, height, width * 4, QImage.Format.Format_RGBA8888)
    return image.copy()


def decode_image(path: str) -> RasterImage:
    """Decode an image file (EXIF orientation applied) into a RasterImage."""
    # The limit is process-wide in Qt 6
    QImageReader.setAllocationLimit(config.IMAGE_ALLOCATION_LIMIT_MB)
    reader = QImageReader(path)
    reader.setAutoTransform(True)
    image = reader.read()
    if image.isNull():
        raise ValueError(f"Could not decode image '{path}': {reader.errorString()}")
    logger.info(f"Decoded image '{path}' ({image.width()}x{image.height()}).")
    return RasterImage(
        pixels=qimage_to_array(image),
        name=os.path.basename(path),
        path=os.path.abspath(path),
    )
