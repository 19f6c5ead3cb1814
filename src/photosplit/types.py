"""
Data types and structures for the photo extraction pipeline.

Provides type-safe containers for intermediate geometry, results and
the error conditions raised between stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np


class DegenerateGeometryError(ValueError):
    """A region or rectangle has no usable area."""


class ImageDecodeError(ValueError):
    """A source file could not be decoded into an image."""


class OutputWriteError(OSError):
    """A rectified photo could not be written to disk."""

    def __init__(self, path: Path, source: Path, index: int, message: str = ""):
        self.path = Path(path)
        self.source = Path(source)
        self.index = index
        detail = f": {message}" if message else ""
        super().__init__(
            f"Failed to write photo #{index} of {self.source.name} "
            f"to {self.path}{detail}"
        )


class DropReason(Enum):
    """Why a candidate region produced no output."""

    DEGENERATE_REGION = "Degenerate Region"  # Hull has no area
    DEGENERATE_RECTANGLE = "Degenerate Rectangle"  # Rounds to zero width/height


@dataclass(frozen=True, eq=False)
class Contour:
    """
    Closed boundary curve of a connected foreground region.

    Attributes:
        points: Integer boundary points with shape (N, 2), N >= 3,
            in the (padded) coordinate frame of the mask.
        index: Position in the extractor's discovery order.
    """

    points: np.ndarray
    index: int

    def __len__(self) -> int:
        return int(self.points.shape[0])


@dataclass(frozen=True, eq=False)
class Candidate:
    """A contour whose enclosed area passed the minimum-area threshold."""

    contour: Contour
    area: float


@dataclass(frozen=True, eq=False)
class OrientedRect:
    """
    Rotated rectangle enclosing a detected photo.

    Corners are ordered [TL, TR, BR, BL], clockwise on screen (y grows
    downwards). ``angle`` is the direction of the TL->TR edge in degrees
    and always lies in (-45, 45].
    """

    corners: np.ndarray
    width: float
    height: float
    angle: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> np.ndarray:
        return self.corners.mean(axis=0)

    def translate(self, dx: float, dy: float) -> "OrientedRect":
        """Return a copy shifted by (dx, dy)."""
        shifted = self.corners + np.array([dx, dy], dtype=np.float64)
        return OrientedRect(
            corners=shifted, width=self.width, height=self.height, angle=self.angle
        )

    def inset(self, distance: float) -> "OrientedRect":
        """
        Return a copy shrunk by ``distance`` on every side.

        Raises:
            DegenerateGeometryError: If nothing is left after shrinking.
        """
        if self.width <= 2.0 * distance or self.height <= 2.0 * distance:
            raise DegenerateGeometryError(
                f"degenerate rectangle: {self.width:.1f}x{self.height:.1f} "
                f"vanishes under an inset of {distance:.2f}px"
            )
        return self.adjust(-distance, -distance, -distance, -distance)

    def adjust(
        self, top: float, right: float, bottom: float, left: float
    ) -> "OrientedRect":
        """
        Return a copy with each side moved outwards by its own distance.

        Negative distances move a side inwards. Sides stay parallel, so the
        result is still a rectangle at the same angle.

        Raises:
            DegenerateGeometryError: If the width or height drops to zero.
        """
        width = self.width + left + right
        height = self.height + top + bottom
        if width <= 0 or height <= 0:
            raise DegenerateGeometryError(
                f"degenerate rectangle: {self.width:.1f}x{self.height:.1f} "
                f"collapses to {width:.1f}x{height:.1f}"
            )

        tl, tr, _, bl = self.corners
        u = (tr - tl) / self.width
        v = (bl - tl) / self.height
        origin = tl - u * left - v * top
        corners = np.array(
            [
                origin,
                origin + u * width,
                origin + u * width + v * height,
                origin + v * height,
            ],
            dtype=np.float64,
        )
        return OrientedRect(corners=corners, width=width, height=height, angle=self.angle)


@dataclass(frozen=True, eq=False)
class RectifiedImage:
    """
    Upright photo cut out of a scan.

    Attributes:
        image: BGR pixels, shape (H, W, 3) with H, W >= 1.
        source_index: Discovery index of the contour it was cut from.
        rect: The rectangle it was warped from, in original-image coordinates.
    """

    image: np.ndarray
    source_index: int
    rect: OrientedRect

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass
class DroppedCandidate:
    """Diagnostic for a candidate that was skipped."""

    contour_index: int
    reason: DropReason
    message: str


@dataclass
class ExtractionResult:
    """
    Output from one pipeline run over a single scanned sheet.

    Attributes:
        photos: Rectified photos in discovery order.
        dropped: Candidates rejected for degenerate geometry.
        candidate_count: Contours that passed the area filter.
    """

    photos: List[RectifiedImage] = field(default_factory=list)
    dropped: List[DroppedCandidate] = field(default_factory=list)
    candidate_count: int = 0

    @property
    def count(self) -> int:
        return len(self.photos)

    def summary(self) -> str:
        """Get human-readable summary line."""
        if not self.photos and not self.dropped:
            return "No photos found"
        return (
            f"{self.count} photo(s) extracted, "
            f"{len(self.dropped)} candidate(s) dropped"
        )


@dataclass
class FileReport:
    """
    Outcome of processing one source file.

    Attributes:
        source: The scanned sheet.
        outputs: Files written, in numbering order.
        dropped: Candidates skipped on degenerate geometry.
        error: Message if decoding or writing failed, None otherwise.
    """

    source: Path
    outputs: List[Path] = field(default_factory=list)
    dropped: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchSummary:
    """Totals for a directory run."""

    files: int = 0
    photos: int = 0
    dropped: int = 0
    failed: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def record(self, report: FileReport) -> None:
        self.files += 1
        self.photos += len(report.outputs)
        self.dropped += report.dropped
        if report.error is not None:
            self.failed.append((report.source, report.error))
