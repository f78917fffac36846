import os

# Must be set before any Qt module creates the application
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest
from PySide6.QtWidgets import QApplication

from albedoanalysis.model.state import Investigation, RasterImage


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


def solid_image(width: int, height: int, color: tuple) -> RasterImage:
    """RGB image filled with one colour."""
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :] = color
    return RasterImage(pixels=pixels, name="solid.png")


def striped_image(height: int, stripes: list) -> RasterImage:
    """Gray image made of vertical stripes given as (width, value) pairs."""
    columns = np.concatenate([np.full(w, v, dtype=np.uint8) for w, v in stripes])
    pixels = np.tile(columns, (height, 1))
    return RasterImage(pixels=pixels, name="stripes.png")


@pytest.fixture
def gray_investigation() -> Investigation:
    investigation = Investigation.new("Gray")
    investigation.attach_image(solid_image(300, 200, (128, 128, 128)))
    return investigation


@pytest.fixture
def half_dark_investigation() -> Investigation:
    """300x200 image: black for x < 100, white from x = 100."""
    investigation = Investigation.new("Half dark")
    investigation.attach_image(striped_image(200, [(100, 0), (200, 255)]))
    return investigation
