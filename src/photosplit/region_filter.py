"""Area filtering of traced contours."""

import logging
from typing import Iterable, Iterator

import numpy as np

from photosplit.types import Candidate, Contour

logger = logging.getLogger(__name__)


def polygon_area(points: np.ndarray) -> float:
    """
    Enclosed area of a closed polygon via the shoelace formula.

    Example:
        >>> polygon_area(np.array([[0, 0], [10, 0], [10, 5], [0, 5]]))
        50.0
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return 0.0
    x = pts[:, 0]
    y = pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2.0)


def filter_regions(contours: Iterable[Contour], min_area: float) -> Iterator[Candidate]:
    """
    Keep contours enclosing at least ``min_area`` px^2.

    There is no upper bound: a page-sized outline passes and is left to the
    geometric checks further down the pipeline.
    """
    rejected = 0
    for contour in contours:
        area = polygon_area(contour.points)
        if area < min_area:
            rejected += 1
            continue
        yield Candidate(contour=contour, area=area)

    if rejected:
        logger.debug(f"Discarded {rejected} contour(s) below {min_area:.0f}px^2")
