"""
Minimum-area oriented bounding rectangle (rotating calipers).

Pure geometry on point arrays, kept free of any image I/O so it can be
checked against brute force independently of the rest of the pipeline.
"""

import logging
from typing import Union

import numpy as np

from photosplit.types import Candidate, DegenerateGeometryError, OrientedRect

logger = logging.getLogger(__name__)

# Relative tolerance below which two caliper areas count as equal
AREA_TIE_TOLERANCE = 1e-9


def _cross(o: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def signed_area(polygon: np.ndarray) -> float:
    """Shoelace sum / 2. Positive means clockwise on screen (y down)."""
    x = polygon[:, 0]
    y = polygon[:, 1]
    return float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2.0


def convex_hull(points: Union[np.ndarray, list]) -> np.ndarray:
    """
    Convex hull by Andrew's monotone chain.

    Collinear points on hull edges are dropped.

    Args:
        points: Array-like of shape (N, 2).

    Returns:
        Hull vertices with shape (M, 2), M >= 3, float64.

    Raises:
        DegenerateGeometryError: If the points span no area (fewer than
            3 distinct points, or all collinear).
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if not np.all(np.isfinite(pts)):
        raise DegenerateGeometryError("degenerate region: non-finite coordinates")

    # Lexicographic (x, y) order
    pts = np.unique(pts, axis=0)
    if len(pts) < 3:
        raise DegenerateGeometryError(
            f"degenerate region: only {len(pts)} distinct point(s)"
        )

    lower = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper = []
    for p in pts[::-1]:
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    hull = np.array(lower[:-1] + upper[:-1], dtype=np.float64)
    if len(hull) < 3:
        raise DegenerateGeometryError("degenerate region: points are collinear")

    return hull


def order_corners(corners: Union[np.ndarray, list]) -> np.ndarray:
    """
    Order 4 rectangle corners as [TL, TR, BR, BL].

    The corners are first put in clockwise (on-screen) order, then rotated
    so the first edge is the one whose direction lies in (-45, 45] degrees.
    Only the residual tilt modulo 90 degrees is removed, so turning the
    whole scan by 90 degrees turns the output by 90 degrees as well.

    Args:
        corners: 4 corner points of a rectangle, any order around the
            perimeter.

    Returns:
        Ordered float64 array of shape (4, 2).
    """
    c = np.asarray(corners, dtype=np.float64)
    if c.shape != (4, 2):
        raise ValueError(f"Expected exactly 4 corners with shape (4, 2), got {c.shape}")

    if signed_area(c) < 0:
        c = c[::-1].copy()

    edges = np.roll(c, -1, axis=0) - c
    angles = np.degrees(np.arctan2(edges[:, 1], edges[:, 0]))

    # At exactly +-45 degrees prefer +45
    start = min(range(4), key=lambda i: (round(abs(angles[i]), 6), -angles[i]))

    return np.roll(c, -start, axis=0)


def min_area_rect(points: Union[np.ndarray, list]) -> OrientedRect:
    """
    Smallest-area rectangle (any orientation) enclosing the points.

    For every convex hull edge the hull is projected onto the edge
    direction and its perpendicular; the bounding box in that frame is a
    candidate. The smallest candidate wins, ties going to the first edge
    in hull order.

    Args:
        points: Array-like of shape (N, 2).

    Returns:
        OrientedRect with corners ordered [TL, TR, BR, BL].

    Raises:
        DegenerateGeometryError: If the points enclose no area.

    Example:
        >>> rect = min_area_rect([[0, 0], [4, 0], [4, 2], [0, 2], [2, 1]])
        >>> round(rect.width), round(rect.height)
        (4, 2)
    """
    hull = convex_hull(points)

    edges = np.roll(hull, -1, axis=0) - hull
    lengths = np.hypot(edges[:, 0], edges[:, 1])

    best_area = None
    best_box = None
    for i in range(len(hull)):
        if lengths[i] == 0:
            continue
        u = edges[i] / lengths[i]
        v = np.array([-u[1], u[0]])

        a = hull @ u
        b = hull @ v
        a_min, a_max = a.min(), a.max()
        b_min, b_max = b.min(), b.max()
        area = (a_max - a_min) * (b_max - b_min)

        if best_area is None or area < best_area - AREA_TIE_TOLERANCE * max(1.0, best_area):
            best_area = area
            best_box = (u, v, a_min, a_max, b_min, b_max)

    if best_box is None or not np.isfinite(best_area) or best_area <= 0:
        raise DegenerateGeometryError("degenerate region: hull has zero area")

    u, v, a_min, a_max, b_min, b_max = best_box
    corners = np.array(
        [
            a_min * u + b_min * v,
            a_max * u + b_min * v,
            a_max * u + b_max * v,
            a_min * u + b_max * v,
        ],
        dtype=np.float64,
    )

    ordered = order_corners(corners)
    tl, tr, _, bl = ordered
    width = float(np.linalg.norm(tr - tl))
    height = float(np.linalg.norm(bl - tl))
    if width <= 0 or height <= 0:
        raise DegenerateGeometryError(
            f"degenerate region: {width:.3f}x{height:.3f} rectangle"
        )

    angle = float(np.degrees(np.arctan2(tr[1] - tl[1], tr[0] - tl[0])))

    logger.debug(
        f"Min-area rect {width:.1f}x{height:.1f} at {angle:.2f} deg "
        f"from {len(hull)} hull points"
    )

    return OrientedRect(corners=ordered, width=width, height=height, angle=angle)


def fit(candidate: Candidate) -> OrientedRect:
    """Fit the minimum-area oriented rectangle around a candidate's contour."""
    return min_area_rect(candidate.contour.points)
