"""
I/O Utilities

Image discovery, decoding and encoding for batch runs.
"""

import logging
import os
from pathlib import Path
from typing import List

import cv2
import numpy as np

from photosplit.types import ImageDecodeError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff"})


def is_image_file(path: Path) -> bool:
    """Check the extension (case-insensitive) against supported formats."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def list_image_files(input_dir: Path, recursive: bool = True) -> List[Path]:
    """
    Find image files under a directory, following symlinks.

    Args:
        input_dir: Directory to search.
        recursive: Descend into subdirectories.

    Returns:
        Sorted list of image paths.

    Raises:
        FileNotFoundError: If input_dir does not exist or is not a directory.
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")

    found = []
    if recursive:
        for root, _, files in os.walk(input_dir, followlinks=True):
            found.extend(Path(root) / name for name in files)
    else:
        found = [p for p in input_dir.iterdir() if p.is_file()]

    images = sorted(p for p in found if is_image_file(p))
    logger.debug(f"Found {len(images)} image(s) in {input_dir}")
    return images


def read_image(path: Path) -> np.ndarray:
    """
    Decode an image file into a BGR array.

    Raises:
        ImageDecodeError: If the file is missing, unreadable or corrupt.
    """
    path = Path(path)
    try:
        # Read bytes and decode in memory so non-ASCII paths work
        data = np.fromfile(str(path), dtype=np.uint8)
    except OSError as e:
        raise ImageDecodeError(f"Could not read image {path}: {e}") from e

    image = cv2.imdecode(data, cv2.IMREAD_COLOR) if data.size else None
    if image is None:
        raise ImageDecodeError(f"Could not decode image {path}")
    return image


def write_image(path: Path, image: np.ndarray, jpeg_quality: int = 95) -> None:
    """
    Encode and write an image; the format follows the file extension.

    Raises:
        OSError: If encoding or writing fails.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".jpg", ".jpeg"):
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]
    else:
        params = []

    ok, buffer = cv2.imencode(suffix, image, params)
    if not ok:
        raise OSError(f"Could not encode image as {suffix}")
    buffer.tofile(str(path))
