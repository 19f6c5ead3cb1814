"""
Unit tests for image_rectification module.
"""

import cv2
import numpy as np
import pytest

from photosplit.image_rectification import compute_homography, rectify, target_size
from photosplit.types import DegenerateGeometryError, OrientedRect


def axis_rect(x0, y0, x1, y1):
    corners = np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], dtype=np.float64)
    return OrientedRect(corners=corners, width=x1 - x0, height=y1 - y0, angle=0.0)


@pytest.fixture
def noise_image():
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(100, 120, 3), dtype=np.uint8)


def apply_homography(H, point):
    p = H @ np.array([point[0], point[1], 1.0])
    return p[:2] / p[2]


class TestComputeHomography:
    """Tests for compute_homography function."""

    def test_identity(self):
        """Test that identical point sets give the identity matrix."""
        src = [[0, 0], [10, 0], [10, 10], [0, 10]]
        np.testing.assert_allclose(compute_homography(src, src), np.eye(3), atol=1e-12)

    def test_matches_opencv(self):
        """Test that the solved matrix agrees with cv2.getPerspectiveTransform."""
        src = np.array([[12, 30], [210, 48], [195, 170], [5, 150]], dtype=np.float32)
        dst = np.array([[0, 0], [199, 0], [199, 129], [0, 129]], dtype=np.float32)

        H = compute_homography(src, dst)
        expected = cv2.getPerspectiveTransform(src, dst)

        np.testing.assert_allclose(H, expected, rtol=1e-5, atol=1e-8)

    def test_corners_map_exactly(self):
        """Test that every source corner maps onto its destination."""
        src = np.array([[12.5, 30.2], [210.1, 48.0], [195.7, 170.3], [5.0, 150.9]])
        dst = np.array([[0, 0], [199, 0], [199, 129], [0, 129]], dtype=np.float64)

        H = compute_homography(src, dst)

        for s, d in zip(src, dst):
            np.testing.assert_allclose(apply_homography(H, s), d, atol=1e-9)

    def test_collinear_points(self):
        """Test that collinear points raise DegenerateGeometryError."""
        src = [[0, 0], [1, 1], [2, 2], [3, 3]]
        dst = [[0, 0], [10, 0], [10, 10], [0, 10]]

        with pytest.raises(DegenerateGeometryError):
            compute_homography(src, dst)

    def test_wrong_shape(self):
        """Test that anything but four correspondences is rejected."""
        with pytest.raises(ValueError, match="4 point correspondences"):
            compute_homography([[0, 0], [1, 0], [1, 1]], [[0, 0], [1, 0], [1, 1]])


class TestTargetSize:
    """Tests for target_size function."""

    def test_rounds_to_nearest(self):
        """Test that the output size is the rounded rectangle size."""
        rect = OrientedRect(np.zeros((4, 2)), width=299.6, height=200.4, angle=0.0)
        assert target_size(rect) == (300, 200)

    def test_sub_pixel_rectangle(self):
        """Test that a side rounding to zero raises."""
        rect = OrientedRect(np.zeros((4, 2)), width=0.4, height=50.0, angle=0.0)
        with pytest.raises(DegenerateGeometryError, match="degenerate rectangle"):
            target_size(rect)


class TestRectify:
    """Tests for rectify function."""

    def test_axis_aligned_crop(self, noise_image):
        """Test that an upright rectangle is an exact crop."""
        result = rectify(noise_image, axis_rect(10, 20, 60, 50), source_index=3)

        assert result.image.shape == (30, 50, 3)
        assert result.source_index == 3
        np.testing.assert_array_equal(result.image[0, 0], noise_image[20, 10])
        np.testing.assert_array_equal(result.image[-1, -1], noise_image[50, 60])

    def test_offset_removed_before_sampling(self, noise_image):
        """Test that padded coordinates sample the unpadded image."""
        direct = rectify(noise_image, axis_rect(10, 20, 60, 50))
        padded = rectify(noise_image, axis_rect(22, 32, 72, 62), offset=12)

        np.testing.assert_array_equal(padded.image, direct.image)
        np.testing.assert_allclose(padded.rect.corners, direct.rect.corners)

    def test_samples_outside_image_are_black(self, noise_image):
        """Test that samples outside the image are black."""
        result = rectify(noise_image, axis_rect(-40, -40, 40, 40))

        np.testing.assert_array_equal(result.image[0, 0], [0, 0, 0])
        np.testing.assert_array_equal(result.image[-1, -1], noise_image[40, 40])

    def test_rotated_rect_size(self, noise_image):
        """Test that a rotated rectangle gives the expected output size."""
        t = np.radians(30.0)
        u = np.array([np.cos(t), np.sin(t)])
        v = np.array([-np.sin(t), np.cos(t)])
        tl = np.array([40.0, 10.0])
        corners = np.array([tl, tl + 60 * u, tl + 60 * u + 30 * v, tl + 30 * v])
        rect = OrientedRect(corners=corners, width=60.0, height=30.0, angle=30.0)

        result = rectify(noise_image, rect)

        assert (result.height, result.width) == (30, 60)

    def test_sub_pixel_rect_raises(self, noise_image):
        """Test that a sub-pixel rectangle raises DegenerateGeometryError."""
        with pytest.raises(DegenerateGeometryError):
            rectify(noise_image, axis_rect(10, 10, 10.3, 40))

    def test_none_image(self):
        """Test that a missing image raises ValueError."""
        with pytest.raises(ValueError, match="None or empty"):
            rectify(None, axis_rect(0, 0, 10, 10))
