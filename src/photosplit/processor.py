"""
Main processor for the photo extraction pipeline.

Orchestrates the complete pipeline for one scanned sheet:
1. Preprocessing (pad, blur, adaptive threshold, Canny, dilation)
2. Contour extraction (outer boundaries, scan order)
3. Region filtering (minimum area)
4. Quadrilateral fitting (rotating calipers, sub-pixel edge refinement)
5. Rectification (homography + bilinear resampling)

Candidates with degenerate geometry are dropped and reported; they never
stop the remaining candidates from being processed.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional

import cv2
import numpy as np

from photosplit.config_loader import ExtractionConfig, load_config
from photosplit.contours import extract_contours
from photosplit.edge_refinement import refine_rect
from photosplit.image_rectification import rectify
from photosplit.min_area_rect import fit
from photosplit.preprocessing import dilation_radius, preprocess
from photosplit.region_filter import filter_regions
from photosplit.types import (
    DegenerateGeometryError,
    DropReason,
    DroppedCandidate,
    ExtractionResult,
    OrientedRect,
    RectifiedImage,
)

logger = logging.getLogger(__name__)


def _as_bgr(image: np.ndarray) -> np.ndarray:
    """Validate an input scan and bring it to 3-channel BGR."""
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise ValueError("Invalid input image: image is None or empty")

    if image.dtype != np.uint8:
        raise ValueError(f"Expected uint8 image, got {image.dtype}")

    # Rotated or sliced views are not valid OpenCV inputs
    image = np.ascontiguousarray(image)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

    if image.ndim == 3 and image.shape[2] == 3:
        return image
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

    raise ValueError(f"Expected grayscale, BGR or BGRA image, got shape {image.shape}")


def compensate_dilation(rect: OrientedRect, radius: float) -> OrientedRect:
    """
    Undo the outward growth caused by square-kernel dilation.

    A square structuring element of half-size ``radius`` moves an edge with
    unit normal n outwards by radius * (|n_x| + |n_y|). Both normals of a
    rectangle give the same value, so one inset suffices.
    """
    if radius <= 0:
        return rect
    theta = np.radians(rect.angle)
    return rect.inset(radius * (abs(np.cos(theta)) + abs(np.sin(theta))))


class PhotoExtractionProcessor:
    """
    Detects and rectifies every photo on a scanned sheet.

    Example:
        >>> processor = PhotoExtractionProcessor()
        >>> scan = cv2.imread("sheet.jpg")
        >>> result = processor.process(scan)
        >>> for i, photo in enumerate(result.photos, start=1):
        ...     cv2.imwrite(f"sheet_{i}.jpg", photo.image)
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        config_path: Optional[Path] = None,
    ):
        """
        Initialize the processor.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses default location.
        """
        if config is not None:
            self.config = config
            logger.debug("Using provided configuration")
        else:
            self.config = load_config(config_path) if config_path else load_config()
            logger.debug("Loaded configuration from file")

    def iter_photos(
        self,
        image: np.ndarray,
        dropped: Optional[List[DroppedCandidate]] = None,
    ) -> Iterator[RectifiedImage]:
        """
        Lazily yield rectified photos in contour discovery order.

        Args:
            image: Scanned sheet (BGR, BGRA or grayscale uint8).
            dropped: Optional list that receives a DroppedCandidate for
                every candidate skipped on degenerate geometry.

        Yields:
            RectifiedImage per detected photo.
        """
        image = _as_bgr(image)
        prep_cfg = self.config.preprocessing
        det_cfg = self.config.detection

        prepared = preprocess(image, prep_cfg)
        radius = dilation_radius(prep_cfg) if det_cfg.compensate_dilation else 0

        candidates = filter_regions(extract_contours(prepared.mask), det_cfg.min_area)

        for candidate in candidates:
            index = candidate.contour.index
            try:
                rect = fit(candidate)
            except DegenerateGeometryError as e:
                self._drop(dropped, index, DropReason.DEGENERATE_REGION, e)
                continue

            try:
                rect = compensate_dilation(rect, radius)
                if det_cfg.refine_edges:
                    rect = refine_rect(
                        prepared.gray,
                        rect,
                        depth=det_cfg.edge_search_depth,
                        min_contrast=det_cfg.edge_min_contrast,
                    )
                photo = rectify(image, rect, offset=prepared.offset, source_index=index)
            except DegenerateGeometryError as e:
                self._drop(dropped, index, DropReason.DEGENERATE_RECTANGLE, e)
                continue

            yield photo

    def process(self, image: np.ndarray) -> ExtractionResult:
        """
        Run the complete pipeline over one scanned sheet.

        Args:
            image: Scanned sheet (BGR, BGRA or grayscale uint8).

        Returns:
            ExtractionResult with the photos in discovery order and the
            diagnostics for any dropped candidates.

        Raises:
            ValueError: If the image is None, empty or of an unsupported type.
        """
        dropped: List[DroppedCandidate] = []
        photos = list(self.iter_photos(image, dropped))

        result = ExtractionResult(
            photos=photos,
            dropped=dropped,
            candidate_count=len(photos) + len(dropped),
        )
        logger.info(
            f"Candidates: {result.candidate_count} kept by area filter, "
            f"{result.count} rectified, {len(dropped)} dropped"
        )
        return result

    @staticmethod
    def _drop(
        dropped: Optional[List[DroppedCandidate]],
        index: int,
        reason: DropReason,
        error: Exception,
    ) -> None:
        logger.warning(f"Dropped candidate #{index} ({reason.value}): {error}")
        if dropped is not None:
            dropped.append(
                DroppedCandidate(contour_index=index, reason=reason, message=str(error))
            )


def extract_photos(
    image: np.ndarray, config: Optional[ExtractionConfig] = None
) -> List[np.ndarray]:
    """
    Convenience function for one-shot extraction.

    Args:
        image: Scanned sheet.
        config: Optional custom configuration. Uses default if None.

    Returns:
        Rectified photo arrays in discovery order.

    Example:
        >>> photos = extract_photos(cv2.imread("sheet.jpg"))
        >>> len(photos)
        3
    """
    processor = PhotoExtractionProcessor(config=config)
    return [photo.image for photo in processor.process(image).photos]
