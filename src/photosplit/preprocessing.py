"""
Edge-mask preparation for photo detection.

Turns a scanned BGR sheet into a dilated binary edge mask whose closed
loops outline the photos lying on it.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from photosplit.config_loader import PreprocessingConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PreprocessedImage:
    """
    Binary edge mask plus the padding that was added to produce it.

    Attributes:
        mask: uint8 mask (0 or 255) in padded coordinates.
        gray: Padded grayscale scan before blurring, same shape as mask.
        offset: Padding in pixels. Subtract it from mask coordinates to get
            coordinates in the original image.
    """

    mask: np.ndarray
    gray: np.ndarray
    offset: int


def resolve_canny_thresholds(low: float, high: float) -> Tuple[float, float]:
    """
    Normalize Canny hysteresis thresholds.

    If ``high`` is not above ``low`` it is replaced by ``3 * low``.

    Example:
        >>> resolve_canny_thresholds(50, 20)
        (50.0, 150.0)
    """
    low = float(low)
    high = float(high)
    if high <= low:
        high = 3.0 * low
        logger.debug(f"canny_high <= canny_low, using canny_high={high:.1f}")
    return low, high


def dilation_radius(config: PreprocessingConfig) -> int:
    """Distance (px) the dilation step pushes an edge outwards along each axis."""
    return config.dilate_iterations * (config.dilate_kernel_size // 2)


def estimate_background_color(image: np.ndarray) -> Tuple[float, ...]:
    """
    Estimate the scan background as the median of the outermost pixel ring.

    Args:
        image: BGR image with shape (H, W, 3).

    Returns:
        Per-channel median as a tuple of floats.
    """
    ring = np.concatenate(
        [image[0, :], image[-1, :], image[1:-1, 0], image[1:-1, -1]], axis=0
    )
    return tuple(float(c) for c in np.median(ring, axis=0))


def pad_image(image: np.ndarray, pad: int) -> np.ndarray:
    """Pad with a uniform border matching the estimated background."""
    if pad <= 0:
        return image
    color = estimate_background_color(image)
    return cv2.copyMakeBorder(
        image, pad, pad, pad, pad, cv2.BORDER_CONSTANT, value=color
    )


def preprocess(image: np.ndarray, config: PreprocessingConfig) -> PreprocessedImage:
    """
    Convert a color scan into a noise-suppressed binary edge mask.

    Steps: pad, grayscale, Gaussian blur, adaptive threshold, inversion,
    Canny, dilation.

    Args:
        image: BGR image with shape (H, W, 3), dtype uint8.
        config: Preprocessing settings.

    Returns:
        PreprocessedImage holding the mask, the padded grayscale scan and
        the padding offset.
    """
    padded = pad_image(image, config.pad)

    gray = cv2.cvtColor(padded, cv2.COLOR_BGR2GRAY)

    k = config.blur_kernel_size
    blurred = cv2.GaussianBlur(gray, (k, k), 0)

    # Threshold against the local Gaussian-weighted mean
    binary = cv2.adaptiveThreshold(
        blurred,
        255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY,
        config.adaptive_block_size,
        config.adaptive_offset,
    )
    inverted = cv2.bitwise_not(binary)

    low, high = resolve_canny_thresholds(config.canny_low, config.canny_high)
    edges = cv2.Canny(inverted, low, high, apertureSize=3, L2gradient=False)

    if config.dilate_iterations > 0:
        kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (config.dilate_kernel_size, config.dilate_kernel_size)
        )
        edges = cv2.dilate(edges, kernel, iterations=config.dilate_iterations)

    logger.debug(
        f"Edge mask {edges.shape[1]}x{edges.shape[0]} (pad={config.pad}), "
        f"{int(np.count_nonzero(edges))} foreground pixels"
    )

    return PreprocessedImage(mask=edges, gray=gray, offset=config.pad)
