"""
Tests for the coordinate transform engine
"""
import pytest

from albedoanalysis import config
from albedoanalysis.controller.transform import CoordinateTransform
from albedoanalysis.model.geometry_primitives import Point, Rect
from albedoanalysis.model.state import compute_placement


def make_transform(image=(1600, 1200), viewport=(800, 600)) -> CoordinateTransform:
    transform = CoordinateTransform(viewport_size=viewport)
    transform.set_image_size(*image)
    return transform


class TestPlacement:
    def test_large_image_is_scaled_down(self):
        placement = compute_placement(1600, 1200, 800, 600)
        assert placement.scale == pytest.approx(0.5)
        assert placement.offset.is_close(Point(0.0, 0.0))

    def test_small_image_is_not_upscaled(self):
        placement = compute_placement(400, 300, 800, 600)
        assert placement.scale == 1.0
        assert placement.offset.is_close(Point(200.0, 150.0))

    def test_letterboxing_centres_image(self):
        placement = compute_placement(1000, 500, 800, 600)
        assert placement.scale == pytest.approx(0.8)
        assert placement.offset.is_close(Point(0.0, 100.0))

    def test_degenerate_sizes_give_identity(self):
        placement = compute_placement(0, 0, 800, 600)
        assert placement.scale == 1.0


class TestMapping:
    def test_viewport_to_image(self):
        transform = make_transform()
        assert transform.to_image_space(Point(400, 300)).is_close(Point(800, 600))

    def test_round_trip_after_pan_and_zoom(self):
        transform = make_transform()
        transform.pan_by(37.0, -12.0)
        for _ in range(7):
            transform.zoom_at(Point(123.0, 456.0), +1)
        p = Point(321.5, 77.25)
        back = transform.to_image_space(transform.to_viewport_space(p))
        assert back.is_close(p, tol=1e-6)

    def test_image_rect_in_viewport(self):
        transform = make_transform()
        assert transform.image_rect_in_viewport(Rect(0, 0, 100, 50)) == Rect(0, 0, 50, 25)


class TestZoom:
    def test_zoom_keeps_point_under_cursor(self):
        transform = make_transform()
        pointer = Point(200.0, 150.0)
        before = transform.to_image_space(pointer)
        assert transform.zoom_at(pointer, +1)
        assert transform.view.scale == pytest.approx(config.WHEEL_ZOOM_STEP)
        assert transform.to_image_space(pointer).is_close(before)

    def test_zoom_out_divides_by_step(self):
        transform = make_transform()
        transform.zoom_at(Point(10.0, 10.0), -1)
        assert transform.view.scale == pytest.approx(1.0 / config.WHEEL_ZOOM_STEP)

    def test_scale_is_clamped_high(self):
        transform = make_transform()
        for _ in range(200):
            transform.zoom_at(Point(400, 300), +1)
        assert transform.view.scale == config.MAX_VIEW_SCALE
        assert not transform.zoom_at(Point(400, 300), +1)

    def test_scale_is_clamped_low(self):
        transform = make_transform()
        for _ in range(200):
            transform.zoom_at(Point(400, 300), -1)
        assert transform.view.scale == config.MIN_VIEW_SCALE

    def test_zero_direction_is_ignored(self):
        transform = make_transform()
        assert not transform.zoom_at(Point(0, 0), 0)
        assert transform.view.scale == 1.0

    def test_reset_zoom(self):
        transform = make_transform()
        transform.zoom_in()
        transform.pan_by(10, 10)
        transform.reset_zoom()
        assert transform.view.scale == 1.0
        assert transform.view.offset.is_close(Point(0, 0))

    def test_zoom_to_rect_centres_region(self):
        transform = make_transform()
        region = Rect(100, 100, 200, 150)
        assert transform.zoom_to_rect(region)
        center = transform.to_viewport_space(region.center)
        assert center.is_close(Point(400, 300))
        assert transform.view.scale == pytest.approx(8.0)

    def test_zoom_to_tiny_rect_is_capped(self):
        transform = make_transform()
        transform.zoom_to_rect(Rect(10, 10, 0.5, 0.5))
        assert transform.view.scale == config.MAX_VIEW_SCALE

    def test_zoom_to_empty_rect_is_rejected(self):
        transform = make_transform()
        assert not transform.zoom_to_rect(Rect(10, 10, 0, 0))
