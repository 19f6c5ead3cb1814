"""
Image Rectification Utilities

Provides the homography solve and the perspective resampling that turn an
oriented rectangle on the scan into an upright photo.
"""

import logging
from typing import Tuple, Union

import cv2
import numpy as np

from photosplit.types import DegenerateGeometryError, OrientedRect, RectifiedImage

logger = logging.getLogger(__name__)


def compute_homography(
    src: Union[np.ndarray, list], dst: Union[np.ndarray, list]
) -> np.ndarray:
    """
    Projective transform mapping 4 source points onto 4 destination points.

    Builds the standard 8x8 linear system from the point correspondences
    (with h33 fixed to 1) and solves it directly.

    Args:
        src: Source points, shape (4, 2).
        dst: Destination points, shape (4, 2).

    Returns:
        3x3 float64 homography matrix.

    Raises:
        ValueError: If either input is not 4 points.
        DegenerateGeometryError: If the system is singular (collinear points).

    Example:
        >>> src = [[0, 0], [10, 0], [10, 10], [0, 10]]
        >>> H = compute_homography(src, src)
        >>> np.allclose(H, np.eye(3))
        True
    """
    src = np.asarray(src, dtype=np.float64)
    dst = np.asarray(dst, dtype=np.float64)
    if src.shape != (4, 2) or dst.shape != (4, 2):
        raise ValueError(
            f"Expected 4 point correspondences, got {src.shape} and {dst.shape}"
        )

    A = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i, ((x, y), (u, v)) in enumerate(zip(src, dst)):
        A[2 * i] = [x, y, 1, 0, 0, 0, -x * u, -y * u]
        A[2 * i + 1] = [0, 0, 0, x, y, 1, -x * v, -y * v]
        b[2 * i] = u
        b[2 * i + 1] = v

    if np.linalg.matrix_rank(A) < 8:
        raise DegenerateGeometryError(
            "degenerate rectangle: corner points are collinear or coincident"
        )

    try:
        h = np.linalg.solve(A, b)
    except np.linalg.LinAlgError as e:
        raise DegenerateGeometryError(f"degenerate rectangle: {e}") from e

    if not np.all(np.isfinite(h)):
        raise DegenerateGeometryError("degenerate rectangle: non-finite homography")

    return np.append(h, 1.0).reshape(3, 3)


def target_size(rect: OrientedRect) -> Tuple[int, int]:
    """
    Output (width, height) for a rectangle, rounded to whole pixels.

    Raises:
        DegenerateGeometryError: If either side rounds to zero.
    """
    width = int(round(rect.width))
    height = int(round(rect.height))
    if width < 1 or height < 1:
        raise DegenerateGeometryError(
            f"degenerate rectangle: {rect.width:.2f}x{rect.height:.2f} "
            f"rounds to {width}x{height}"
        )
    return width, height


def rectify(
    image: np.ndarray,
    rect: OrientedRect,
    offset: int = 0,
    source_index: int = 0,
) -> RectifiedImage:
    """
    Warp the region under an oriented rectangle into an upright image.

    Corner correspondence is fixed: TL -> (0, 0), TR -> (W-1, 0),
    BR -> (W-1, H-1), BL -> (0, H-1). Each destination pixel is mapped back
    through the inverse transform and sampled bilinearly; samples outside
    the original image are black.

    Args:
        image: Original (unpadded) BGR image.
        rect: Rectangle in padded-mask coordinates.
        offset: Padding added before detection; removed before sampling.
        source_index: Discovery index of the contour, carried to the result.

    Returns:
        RectifiedImage of size round(width) x round(height).

    Raises:
        ValueError: If the image is None or empty.
        DegenerateGeometryError: If the rectangle has no usable size.
    """
    if image is None or image.size == 0:
        raise ValueError("Invalid input image: image is None or empty")

    if offset:
        rect = rect.translate(-offset, -offset)

    width, height = target_size(rect)

    dst = np.array(
        [
            [0, 0],  # Top-Left
            [max(width - 1, 1), 0],  # Top-Right
            [max(width - 1, 1), max(height - 1, 1)],  # Bottom-Right
            [0, max(height - 1, 1)],  # Bottom-Left
        ],
        dtype=np.float64,
    )

    M = compute_homography(rect.corners, dst)

    # Bilinear sampling, black outside the scan
    warped = cv2.warpPerspective(
        image,
        M,
        (width, height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0),
    )

    logger.debug(
        f"Rectified region #{source_index} at {rect.angle:.2f} deg to {width}x{height}"
    )

    return RectifiedImage(image=warped, source_index=source_index, rect=rect)
