"""
Tests for the albedo sampling engine
"""
import numpy as np
import pytest

from albedoanalysis.controller.sampling import AlbedoSampler, grayscale_to_albedo, mean_grayscale
from albedoanalysis.model.annotations import LayoutVariant, ReferenceField
from albedoanalysis.model.geometry_primitives import Rect
from albedoanalysis.model.state import RasterImage

from conftest import solid_image, striped_image


def sampler_for(image: RasterImage) -> AlbedoSampler:
    sampler = AlbedoSampler()
    sampler.load(image)
    return sampler


# 34 px wide: 100 | 0 | 200 | 0 | 140
PATCH_STRIPES = [(10, 100), (2, 0), (10, 200), (2, 0), (10, 140)]


class TestAlbedo:
    def test_white_region(self):
        sampler = sampler_for(solid_image(20, 20, (255, 255, 255)))
        assert sampler.albedo(Rect(0, 0, 20, 20)) == pytest.approx(255 / 256)

    def test_black_region(self):
        sampler = sampler_for(solid_image(20, 20, (0, 0, 0)))
        assert sampler.albedo(Rect(2, 2, 10, 10)) == 0.0

    def test_red_region_uses_channel_mean(self):
        sampler = sampler_for(solid_image(20, 20, (255, 0, 0)))
        assert sampler.albedo(Rect(0, 0, 20, 20)) == pytest.approx(85 / 256)

    def test_region_is_clipped_to_image(self):
        sampler = sampler_for(solid_image(10, 10, (128, 128, 128)))
        assert sampler.albedo(Rect(-5, -5, 10, 10)) == pytest.approx(0.5)

    def test_region_outside_image_is_zero(self):
        sampler = sampler_for(solid_image(10, 10, (255, 255, 255)))
        assert sampler.albedo(Rect(50, 50, 20, 20)) == 0.0

    def test_not_loaded_is_zero(self):
        assert AlbedoSampler().albedo(Rect(0, 0, 10, 10)) == 0.0

    def test_result_is_clamped(self):
        assert grayscale_to_albedo(300.0) == 1.0
        assert grayscale_to_albedo(-1.0) == 0.0

    def test_fractional_coordinates_round_half_up(self):
        image = striped_image(4, [(1, 0), (3, 255)])
        sampler = sampler_for(image)
        # x=0.5 rounds to column 1, which is already bright
        assert sampler.albedo(Rect(0.5, 0, 1, 1)) == pytest.approx(255 / 256)

    def test_empty_block_mean_is_zero(self):
        assert mean_grayscale(np.empty((0, 0, 3), dtype=np.uint8)) == 0.0


class TestBuffer:
    def test_buffer_is_cached_per_image(self):
        image = solid_image(8, 6, (1, 2, 3))
        sampler = sampler_for(image)
        buffer = sampler._buffer
        sampler.load(image)
        assert sampler._buffer is buffer
        assert sampler.buffer_size == (8, 6)

    def test_new_image_rebuilds_buffer(self):
        sampler = sampler_for(solid_image(8, 6, (0, 0, 0)))
        sampler.load(solid_image(4, 4, (255, 255, 255)))
        assert sampler.buffer_size == (4, 4)
        assert sampler.albedo(Rect(0, 0, 4, 4)) == pytest.approx(255 / 256)

    def test_invalidate(self):
        sampler = sampler_for(solid_image(8, 6, (0, 0, 0)))
        sampler.invalidate()
        assert not sampler.is_ready
        assert sampler.buffer_size == (0, 0)


class TestReferenceLayouts:
    def field(self, variant: LayoutVariant, **kwargs) -> ReferenceField:
        defaults = dict(id="ref", x=0, y=0, width=34, height=10, layout_variant=variant)
        defaults.update(kwargs)
        return ReferenceField(**defaults)

    def test_single_uses_whole_rect(self):
        sampler = sampler_for(striped_image(10, PATCH_STRIPES))
        field = self.field(LayoutVariant.SINGLE, x=12, width=10)
        assert sampler.reference_grayscale(field) == pytest.approx(200.0)

    def test_two_rect_is_mean_of_both(self):
        sampler = sampler_for(striped_image(10, PATCH_STRIPES))
        field = self.field(LayoutVariant.TWO_RECT, rect_width=10, spacing=14)
        assert sampler.reference_grayscale(field) == pytest.approx(120.0)

    def test_three_rect_uses_middle_only(self):
        sampler = sampler_for(striped_image(10, PATCH_STRIPES))
        field = self.field(LayoutVariant.THREE_RECT, rect_width=10, spacing=2)
        assert sampler.reference_grayscale(field) == pytest.approx(200.0)

    def test_geometry_is_scaled_from_frame(self):
        sampler = sampler_for(striped_image(10, PATCH_STRIPES))
        # Captured in a half-size frame: x=6, w=5 maps to x=12, w=10
        field = self.field(LayoutVariant.SINGLE, x=6, width=5, height=5)
        assert sampler.reference_grayscale(field, frame_size=(17, 5)) == pytest.approx(200.0)

    def test_reference_albedo(self):
        sampler = sampler_for(solid_image(20, 20, (128, 128, 128)))
        field = self.field(LayoutVariant.SINGLE, width=10, height=10)
        assert sampler.reference_albedo(field) == pytest.approx(0.5)

    def test_not_loaded_is_zero(self):
        assert AlbedoSampler().reference_grayscale(self.field(LayoutVariant.SINGLE)) == 0.0
