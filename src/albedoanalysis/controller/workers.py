"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling slow tasks.

Why is this file needed?
------------------------
1. Responsiveness: Decoding a large photo on the main thread freezes the GUI.
   The decode runs on a background thread instead.
2. Signals: They deliver the decoded image (or the error) back to the GUI
   thread using Qt Signals.

Classes:
    ImageLoadWorker: Decodes an image file into a RasterImage.
"""
import logging
from PySide6.QtCore import QThread, Signal

from albedoanalysis.controller.raster import decode_image

logger = logging.getLogger(__name__)


class ImageLoadWorker(QThread):
    # Signals to update the UI from the background
    loaded = Signal(object)  # RasterImage
    error_occurred = Signal(str)

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path

    def run(self) -> None:
        try:
            logger.info(f"Decoding image in background thread: {self.path}")
            image = decode_image(self.path)
            self.loaded.emit(image)
        except Exception as e:
            logger.error(f"Error in ImageLoadWorker: {e}")
            self.error_occurred.emit(str(e))
