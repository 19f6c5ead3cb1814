"""
photosplit: Photo extraction from scanned sheets

Finds every photo lying on a scanned sheet, straightens it and returns it
as an independent upright image.

Pipeline stages:
1. Preprocessing (edge mask)
2. Contour extraction (outer boundaries)
3. Region filtering (minimum area)
4. Quadrilateral fitting (minimum-area rectangle, sub-pixel edge refinement)
5. Rectification (perspective warp)
"""

from photosplit.config_loader import apply_overrides, get_default_config, load_config
from photosplit.image_rectification import compute_homography, rectify
from photosplit.min_area_rect import min_area_rect, order_corners
from photosplit.processor import PhotoExtractionProcessor, extract_photos
from photosplit.types import (
    DegenerateGeometryError,
    DropReason,
    ExtractionResult,
    ImageDecodeError,
    OrientedRect,
    OutputWriteError,
    RectifiedImage,
)

__version__ = "0.1.0"

__all__ = [
    "PhotoExtractionProcessor",
    "extract_photos",
    "load_config",
    "get_default_config",
    "apply_overrides",
    "min_area_rect",
    "order_corners",
    "compute_homography",
    "rectify",
    "DegenerateGeometryError",
    "DropReason",
    "ExtractionResult",
    "ImageDecodeError",
    "OrientedRect",
    "OutputWriteError",
    "RectifiedImage",
]
