"""
Tests for points, rectangles and affine transforms
"""
import numpy as np
import pytest

from albedoanalysis.model.geometry_primitives import (
    AffineTransform, NonInvertibleTransformError, Point, Rect,
)


class TestRect:
    def test_from_corners_normalizes_drag_direction(self):
        rect = Rect.from_corners(Point(40, 30), Point(10, 5))
        assert rect == Rect(10, 5, 30, 25)

    def test_exceeds_is_strict(self):
        assert not Rect(0, 0, 10, 10).exceeds(10, 10)
        assert not Rect(0, 0, 11, 10).exceeds(10, 10)
        assert Rect(0, 0, 11, 11).exceeds(10, 10)

    def test_clipped_partially_outside(self):
        assert Rect(-5, -5, 10, 10).clipped(100, 100) == Rect(0, 0, 5, 5)

    def test_clipped_fully_outside(self):
        assert Rect(200, 200, 10, 10).clipped(100, 100) is None

    def test_contains_edges(self):
        rect = Rect(10, 10, 20, 20)
        assert rect.contains(Point(10, 10))
        assert rect.contains(Point(30, 30))
        assert not rect.contains(Point(31, 30))
        assert rect.contains(Point(31, 30), margin=2)


class TestAffineTransform:
    def test_compose_applies_inner_first(self):
        inner = AffineTransform.scale_translate(2.0, 10.0, 0.0)
        outer = AffineTransform.scale_translate(3.0, 0.0, 5.0)
        p = outer.compose(inner).apply(Point(1.0, 1.0))
        # inner: (12, 2); outer: (36, 11)
        assert p.is_close(Point(36.0, 11.0))

    def test_inverse_round_trip(self):
        t = AffineTransform.scale_translate(1.7, -12.5, 33.0)
        p = Point(123.4, -56.7)
        assert t.inverted().apply(t.apply(p)).is_close(p, tol=1e-9)

    def test_singular_matrix_raises(self):
        t = AffineTransform(np.array([[0.0, 0.0, 1.0], [0.0, 0.0, 1.0], [0.0, 0.0, 1.0]]))
        with pytest.raises(NonInvertibleTransformError):
            t.inverted()

    def test_to_tuple_matches_qtransform_order(self):
        t = AffineTransform(np.array([[1.0, 2.0, 5.0], [3.0, 4.0, 6.0], [0.0, 0.0, 1.0]]))
        assert t.to_tuple() == (1.0, 3.0, 2.0, 4.0, 5.0, 6.0)
