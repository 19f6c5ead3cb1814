"""
Unit tests for sub-pixel edge refinement.
"""

import cv2
import numpy as np
import pytest

from photosplit.edge_refinement import find_crossing, refine_rect, side_frames
from photosplit.types import OrientedRect


def make_rect(center, width, height, angle=0.0):
    """OrientedRect centered on ``center`` with its top edge at ``angle``."""
    t = np.radians(angle)
    u = np.array([np.cos(t), np.sin(t)])
    v = np.array([-np.sin(t), np.cos(t)])
    c = np.asarray(center, dtype=np.float64)
    corners = np.array(
        [
            c - u * width / 2 - v * height / 2,
            c + u * width / 2 - v * height / 2,
            c + u * width / 2 + v * height / 2,
            c - u * width / 2 + v * height / 2,
        ]
    )
    return OrientedRect(corners=corners, width=width, height=height, angle=angle)


@pytest.fixture
def dark_block():
    """Gray image, white with a dark block covering x in [59.5, 239.5], y in [49.5, 149.5]."""
    gray = np.full((200, 300), 255, dtype=np.uint8)
    gray[50:150, 60:240] = 40
    return gray


class TestSideFrames:
    """Tests for side_frames function."""

    def test_outward_normals_of_upright_rect(self):
        """Test that each side's outward vector points away from the center."""
        frames = side_frames(make_rect((50, 50), 40, 20))
        outward = [f[2] for f in frames]

        np.testing.assert_allclose(outward, [[0, -1], [1, 0], [0, 1], [-1, 0]], atol=1e-12)
        assert [f[3] for f in frames] == [40, 20, 40, 20]


class TestFindCrossing:
    """Tests for find_crossing function."""

    def test_interpolates_between_samples(self):
        """Test that a step between two samples is located by linear interpolation."""
        t = np.arange(-4, 4.25, 0.25)
        profile = np.where(t < 0.3, 40.0, 255.0)

        assert find_crossing(t, profile, 20.0) == pytest.approx(0.375)

    def test_flat_profile(self):
        """Test that a profile without enough contrast gives no crossing."""
        t = np.arange(-4, 4.25, 0.25)
        profile = np.where(t < 0, 250.0, 255.0)

        assert find_crossing(t, profile, 20.0) is None

    def test_nearest_crossing_wins(self):
        """Test that of several crossings the one closest to zero is returned."""
        t = np.arange(-4, 4.25, 0.25)
        profile = np.full_like(t, 40.0)
        profile[(t > -2.6) & (t < -1.9)] = 255.0
        profile[t > 1.1] = 255.0

        assert find_crossing(t, profile, 20.0) == pytest.approx(1.125)


class TestRefineRect:
    """Tests for refine_rect function."""

    def test_sides_move_onto_block_edges(self, dark_block):
        """Test that a loose rectangle snaps to the pixel edges of the block."""
        loose = make_rect((149.5, 99.5), 183.0, 103.0)

        rect = refine_rect(dark_block, loose)

        assert rect.width == pytest.approx(180.0, abs=0.05)
        assert rect.height == pytest.approx(100.0, abs=0.05)
        np.testing.assert_allclose(rect.corners[0], [59.5, 49.5], atol=0.05)
        np.testing.assert_allclose(rect.corners[2], [239.5, 149.5], atol=0.05)

    def test_tight_rectangle_shrinks(self, dark_block):
        """Test that sides can also move outwards from inside the block."""
        tight = make_rect((149.5, 99.5), 178.0, 98.0)

        rect = refine_rect(dark_block, tight)

        assert rect.width == pytest.approx(180.0, abs=0.05)
        assert rect.height == pytest.approx(100.0, abs=0.05)

    def test_low_contrast_keeps_position(self):
        """Test that sides over a faint photo are left where they were."""
        gray = np.full((200, 300), 255, dtype=np.uint8)
        gray[50:150, 60:240] = 245
        loose = make_rect((149.5, 99.5), 183.0, 103.0)

        rect = refine_rect(gray, loose)

        np.testing.assert_allclose(rect.corners, loose.corners)

    def test_short_sides_are_skipped(self, dark_block):
        """Test that sides too short to average keep their position."""
        thin = make_rect((149.5, 99.5), 183.0, 8.0)

        rect = refine_rect(dark_block, thin)

        assert rect.width == pytest.approx(183.0)
        assert rect.height == pytest.approx(8.0)

    @pytest.mark.parametrize("angle", [-30, 12, 25, 44])
    def test_tilted_photo(self, make_canvas, draw, angle):
        """Test that a tilted anti-aliased photo is measured to a fraction of a pixel."""
        sheet = draw(make_canvas(), (400, 300), (300, 200), angle, two_tone=False)
        gray = cv2.cvtColor(sheet, cv2.COLOR_BGR2GRAY)

        rect = refine_rect(gray, make_rect((400, 300), 303.0, 202.5, angle))

        assert rect.width == pytest.approx(300.0, abs=0.25)
        assert rect.height == pytest.approx(200.0, abs=0.25)
        np.testing.assert_allclose(rect.center, [400, 300], atol=0.25)
