"""
Tests for QImage <-> numpy conversion and image decoding
"""
import numpy as np
import pytest
from PySide6.QtGui import QColor, QImage, QImageReader

from albedoanalysis import config
from albedoanalysis.controller.raster import array_to_qimage, decode_image, qimage_to_array
from albedoanalysis.controller.workers import ImageLoadWorker


@pytest.mark.usefixtures("qapp")
class TestConversion:
    def test_qimage_to_array(self):
        image = QImage(7, 3, QImage.Format.Format_RGB32)
        image.fill(QColor(255, 0, 0))
        pixels = qimage_to_array(image)
        assert pixels.shape == (3, 7, 4)
        assert pixels[1, 5].tolist() == [255, 0, 0, 255]

    def test_array_to_qimage(self):
        pixels = np.zeros((4, 5, 4), dtype=np.uint8)
        pixels[..., 1] = 200
        pixels[..., 3] = 255
        image = array_to_qimage(pixels)
        del pixels
        assert (image.width(), image.height()) == (5, 4)
        assert image.pixelColor(2, 3).green() == 200


@pytest.mark.usefixtures("qapp")
class TestDecode:
    def test_decode_png(self, tmp_path):
        path = tmp_path / "gray.png"
        image = QImage(10, 6, QImage.Format.Format_RGB32)
        image.fill(QColor(128, 128, 128))
        assert image.save(str(path))

        raster = decode_image(str(path))
        assert (raster.width, raster.height) == (10, 6)
        assert raster.name == "gray.png"
        assert raster.pixels[0, 0, :3].tolist() == [128, 128, 128]

    def test_decode_invalid_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ValueError):
            decode_image(str(path))

    def test_worker_reports_result(self, tmp_path):
        path = tmp_path / "white.png"
        image = QImage(4, 4, QImage.Format.Format_RGB32)
        image.fill(QColor(255, 255, 255))
        image.save(str(path))

        worker = ImageLoadWorker(str(path))
        loaded, errors = [], []
        worker.loaded.connect(loaded.append)
        worker.error_occurred.connect(errors.append)
        worker.run()  # synchronous

        assert errors == []
        assert loaded[0].width == 4

    def test_worker_reports_error(self, tmp_path):
        worker = ImageLoadWorker(str(tmp_path / "missing.png"))
        errors = []
        worker.error_occurred.connect(errors.append)
        worker.run()
        assert len(errors) == 1

    def test_decode_ignores_default_allocation_limit(self, tmp_path):
        # 1200x1200 RGB32 needs ~5.5 MB, above a 1 MB reader limit
        path = tmp_path / "large.png"
        image = QImage(1200, 1200, QImage.Format.Format_RGB32)
        image.fill(QColor(90, 90, 90))
        assert image.save(str(path))

        previous = QImageReader.allocationLimit()
        QImageReader.setAllocationLimit(1)
        try:
            raster = decode_image(str(path))
            assert QImageReader.allocationLimit() == config.IMAGE_ALLOCATION_LIMIT_MB
        finally:
            QImageReader.setAllocationLimit(previous)

        assert (raster.width, raster.height) == (1200, 1200)
        assert raster.pixels[600, 600, :3].tolist() == [90, 90, 90]
