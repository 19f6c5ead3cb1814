"""
Boundary tracing over the binary edge mask.

Only outer boundaries are reported. Texture inside a photo produces nested
contours that are never candidates, so they are not traced at all.
"""

import logging
from typing import Iterator

import cv2
import numpy as np

from photosplit.types import Contour

logger = logging.getLogger(__name__)

MIN_CONTOUR_POINTS = 3


def _scan_order_key(points: np.ndarray):
    """Raster-scan position (row, col) of the topmost-then-leftmost point."""
    top = points[:, 1].min()
    left = points[points[:, 1] == top, 0].min()
    return int(top), int(left)


def extract_contours(mask: np.ndarray) -> Iterator[Contour]:
    """
    Trace the outer boundaries of connected foreground regions.

    Uses Suzuki-Abe border following (``cv2.findContours`` with
    ``RETR_EXTERNAL``), which is iterative and needs no recursion.
    Contours are yielded in raster-scan order of their first boundary pixel,
    so identical masks always give the same sequence.

    Args:
        mask: uint8 binary mask, foreground 255.

    Yields:
        Contour objects with at least 3 points, tagged with their
        discovery index.
    """
    if mask.ndim != 2:
        raise ValueError(f"Expected a single-channel mask, got shape {mask.shape}")

    traced, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    boundaries = [c.reshape(-1, 2).astype(np.int32) for c in traced]
    boundaries.sort(key=_scan_order_key)

    index = 0
    for points in boundaries:
        if len(points) < MIN_CONTOUR_POINTS:
            logger.debug(f"Skipping boundary with {len(points)} point(s)")
            continue
        yield Contour(points=points, index=index)
        index += 1
