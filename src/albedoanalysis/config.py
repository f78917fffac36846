"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (zoom limits, region thresholds,
   reference presets) from being scattered throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find assets when the app is frozen into an .exe.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    Zoom, sampling and reference-field constants.
"""
import sys
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # Development mode: config.py is in src/albedoanalysis/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Paths
ASSETS_PATH: str = get_resource_path("assets")
APP_ICON_PATH: str = os.path.join(ASSETS_PATH, "icon.svg")

# Application identity (QSettings)
ORG_ID = "albedo-lab"
APP_ID = "albedo-analysis"
VISIBLE_APP_NAME = "Albedo Analysis"
SETTINGS_LAST_DIR = "paths/last_dir"
LOG_LEVEL_ENV = "ALBEDO_LOG_LEVEL"
INVESTIGATION_FILE_FILTER = "Investigation Files (*.json)"
IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.tif *.tiff)"

# Delay before the rename prompt for a new measurement (ms)
RENAME_PROMPT_DELAY_MS: int = 100

# QImageReader allocation limit in MB; 0 disables it (Qt defaults to 256 MB,
# which rejects full-resolution camera photos)
IMAGE_ALLOCATION_LIMIT_MB: int = 0

# View (pan/zoom)
WHEEL_ZOOM_STEP: float = 1.05
BUTTON_ZOOM_STEP: float = 1.2
MIN_VIEW_SCALE: float = 0.2
MAX_VIEW_SCALE: float = 30.0
DEFAULT_VIEWPORT_SIZE: tuple[int, int] = (800, 600)

# Regions (image pixels)
MIN_REGION_SIZE: float = 10.0
MIN_RESIZE_SIZE: float = 5.0

# Sampling
ALBEDO_DIVISOR: float = 256.0

# Auto-seeded two-rectangle reference field
AUTO_REFERENCE_X: float = 50.0
AUTO_REFERENCE_Y: float = 50.0
AUTO_REFERENCE_RECT_WIDTH: float = 40.0
AUTO_REFERENCE_SPACING: float = 2.0
AUTO_REFERENCE_HEIGHT: float = 30.0
AUTO_REFERENCE_ALBEDO: float = 0.85

# Manually placed reference field
MANUAL_REFERENCE_SIZE: float = 50.0
MANUAL_REFERENCE_ALBEDO: float = 0.7

# Fallbacks when a stored reference field lacks layout geometry
FALLBACK_RECT_WIDTH: float = 25.0
FALLBACK_TWO_RECT_SPACING: float = 20.0
FALLBACK_THREE_RECT_SPACING: float = 5.0

if not os.path.exists(ASSETS_PATH):
    logger.debug(f"Assets path not found at {ASSETS_PATH}")
