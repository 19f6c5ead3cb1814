"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import cv2
import numpy as np
import pytest

from photosplit.config_loader import ExtractionConfig

DARK = (40, 40, 40)
GRAY = (120, 120, 120)
WHITE = (255, 255, 255)

# Resolution factor used to anti-alias drawn photos
SUPERSAMPLE = 8


def rotated_box(center, size, angle_deg):
    """
    Corners [TL, TR, BR, BL] of a rectangle rotated clockwise on screen.

    ``size`` is the continuous extent: pixel i covers [i - 0.5, i + 0.5],
    so an upright box of size (w, h) covers exactly w x h pixels.
    """
    w, h = size
    t = np.radians(angle_deg)
    u = np.array([np.cos(t), np.sin(t)])
    v = np.array([-np.sin(t), np.cos(t)])
    c = np.asarray(center, dtype=np.float64)
    return np.array(
        [
            c - u * w / 2 - v * h / 2,
            c + u * w / 2 - v * h / 2,
            c + u * w / 2 + v * h / 2,
            c - u * w / 2 + v * h / 2,
        ]
    )


def draw_photo(canvas, center, size, angle_deg, two_tone=True):
    """
    Draw an anti-aliased synthetic photo: left half dark, right half gray.

    The photo is filled on an 8x supersampled copy of the patch it covers
    and area-averaged back down, so boundary pixels get partial coverage
    like a real scan. Returns the canvas for chaining.
    """
    w, h = size
    corners = rotated_box(center, (w, h), angle_deg)

    rows, cols = canvas.shape[:2]
    x0 = max(int(np.floor(corners[:, 0].min())) - 2, 0)
    y0 = max(int(np.floor(corners[:, 1].min())) - 2, 0)
    x1 = min(int(np.ceil(corners[:, 0].max())) + 3, cols)
    y1 = min(int(np.ceil(corners[:, 1].max())) + 3, rows)

    patch = canvas[y0:y1, x0:x1]
    ph, pw = patch.shape[:2]
    hi = cv2.resize(patch, (pw * SUPERSAMPLE, ph * SUPERSAMPLE), interpolation=cv2.INTER_NEAREST)

    def fill(box, color):
        pts = (box - [x0, y0] + 0.5) * SUPERSAMPLE - 0.5
        cv2.fillPoly(hi, [np.round(pts * 16).astype(np.int32)], color, shift=4)

    fill(corners, DARK)
    if two_tone:
        t = np.radians(angle_deg)
        u = np.array([np.cos(t), np.sin(t)])
        right_center = np.asarray(center, dtype=np.float64) + u * (w / 4)
        fill(rotated_box(right_center, (w / 2, h), angle_deg), GRAY)

    canvas[y0:y1, x0:x1] = cv2.resize(hi, (pw, ph), interpolation=cv2.INTER_AREA)
    return canvas


def blank_canvas(height=600, width=800, color=WHITE):
    canvas = np.empty((height, width, 3), dtype=np.uint8)
    canvas[:] = color
    return canvas


@pytest.fixture
def default_config():
    """Default pipeline configuration (same values as the bundled YAML)."""
    return ExtractionConfig()


@pytest.fixture
def axis_aligned_sheet():
    """White sheet with one upright 300x200 two-tone photo at (150, 200)."""
    canvas = blank_canvas()
    canvas[200:400, 150:300] = DARK
    canvas[200:400, 300:450] = GRAY
    return canvas


@pytest.fixture
def rotated_sheet():
    """White sheet with one 300x200 two-tone photo tilted by 20 degrees."""
    return draw_photo(blank_canvas(), (400, 300), (300, 200), 20)


@pytest.fixture
def two_photo_sheet():
    """Sheet with two separated photos at different tilts."""
    canvas = blank_canvas(height=800, width=1000)
    draw_photo(canvas, (300, 200), (250, 160), 10)
    draw_photo(canvas, (650, 550), (260, 180), -15)
    return canvas


@pytest.fixture
def make_canvas():
    """Factory for plain sheets: make_canvas(height, width, color)."""
    return blank_canvas


@pytest.fixture
def draw():
    """Photo painter: draw(canvas, center, size, angle_deg, two_tone=True)."""
    return draw_photo
