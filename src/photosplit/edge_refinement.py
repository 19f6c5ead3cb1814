"""
Sub-pixel refinement of fitted rectangle sides.

The dilated outline finds each photo to within a pixel or so, but along a
slanted side the dilation keeps the outermost step of the pixel staircase,
so the fitted rectangle ends up slightly too large. Each side is measured
again on the grayscale scan. A strip straddling the side is resampled and
averaged along the side into one intensity profile, and the side is moved
to where that profile crosses halfway between the photo and background
levels.
"""

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from photosplit.types import OrientedRect

logger = logging.getLogger(__name__)

# Sampling step (px) across a side
PROFILE_STEP = 0.25

# Fewest positions along a side worth averaging
MIN_SIDE_SAMPLES = 4


def side_frames(rect: OrientedRect) -> List[Tuple[np.ndarray, np.ndarray, np.ndarray, float]]:
    """
    Local frame of every side, in top, right, bottom, left order.

    Returns:
        (start, along, outward, length) per side: the corner the side starts
        at, unit vectors along it and away from the rectangle, and its length.
    """
    tl, tr, br, bl = rect.corners
    u = (tr - tl) / rect.width
    v = (bl - tl) / rect.height
    return [
        (tl, u, -v, rect.width),
        (tr, v, u, rect.height),
        (br, -u, v, rect.width),
        (bl, -v, -u, rect.height),
    ]


def edge_profile(
    gray: np.ndarray,
    start: np.ndarray,
    along: np.ndarray,
    outward: np.ndarray,
    length: float,
    depth: float,
    margin: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Mean intensity across a side as a function of outward distance.

    Positions closer than ``margin`` to either end of the side are skipped
    so the neighbouring sides do not leak into the profile.

    Returns:
        (t, profile): outward offsets from -depth to +depth and the mean
        bilinear sample along the side at each offset.
    """
    s = np.arange(margin, length - margin + 1e-9, 1.0)
    t = np.arange(-depth, depth + 1e-9, PROFILE_STEP)

    pts = (
        start[None, None, :]
        + s[None, :, None] * along[None, None, :]
        + t[:, None, None] * outward[None, None, :]
    )
    samples = cv2.remap(
        gray,
        pts[..., 0].astype(np.float32),
        pts[..., 1].astype(np.float32),
        interpolation=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )
    return t, samples.mean(axis=1)


def find_crossing(
    t: np.ndarray, profile: np.ndarray, min_contrast: float
) -> Optional[float]:
    """
    Offset where the profile crosses midway between its two end levels.

    The inner and outer levels are the means over the first and last pixel
    of the profile. Linear interpolation between samples gives a sub-pixel
    position. When several crossings exist the one nearest zero wins.

    Returns:
        The crossing offset, or None if the contrast is below
        ``min_contrast`` or the profile never crosses.
    """
    n = max(1, int(round(1.0 / PROFILE_STEP)))
    inside = float(profile[: n + 1].mean())
    outside = float(profile[-(n + 1) :].mean())
    if abs(outside - inside) < min_contrast:
        return None

    diff = profile - (inside + outside) / 2.0
    above = diff > 0
    idx = np.nonzero(above[:-1] != above[1:])[0]
    if len(idx) == 0:
        return None

    crossings = t[idx] + (t[idx + 1] - t[idx]) * diff[idx] / (diff[idx] - diff[idx + 1])
    return float(crossings[np.argmin(np.abs(crossings))])


def refine_rect(
    gray: np.ndarray,
    rect: OrientedRect,
    depth: float = 4.0,
    min_contrast: float = 20.0,
) -> OrientedRect:
    """
    Move each side of a rectangle onto the photo edge in the scan.

    Sides without enough contrast, or too short to average, keep their
    position.

    Args:
        gray: Single-channel scan in the same coordinates as ``rect``.
        rect: Rectangle within a couple of pixels of the photo.
        depth: How far (px) to search on either side of each edge.
        min_contrast: Smallest photo/background level difference to act on.

    Returns:
        Rectangle at the same angle with its sides on the detected edges.

    Raises:
        DegenerateGeometryError: If the refined rectangle has no area.
    """
    gray = gray.astype(np.float32, copy=False)
    margin = depth + 2.0

    offsets = []
    for start, along, outward, length in side_frames(rect):
        if length - 2.0 * margin < MIN_SIDE_SAMPLES:
            offsets.append(0.0)
            continue
        t, profile = edge_profile(gray, start, along, outward, length, depth, margin)
        crossing = find_crossing(t, profile, min_contrast)
        offsets.append(0.0 if crossing is None else crossing)

    top, right, bottom, left = offsets
    logger.debug(
        f"Edge offsets top={top:+.2f} right={right:+.2f} "
        f"bottom={bottom:+.2f} left={left:+.2f}"
    )
    return rect.adjust(top, right, bottom, left)
