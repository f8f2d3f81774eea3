"""
Pytest fixtures for imagebridge tests.

Images are small synthetic numpy arrays so every expected contour and
Laplacian response can be worked out by hand.
"""

import base64

import cv2
import numpy as np
import pytest

from imagebridge.vision.vision_types import ImageBuffer


def rgba(gray: np.ndarray) -> np.ndarray:
    """Opaque RGBA image whose three colour channels all equal `gray`."""
    alpha = np.full_like(gray, 255)
    return np.dstack([gray, gray, gray, alpha]).astype(np.uint8)


def png_b64(arr: np.ndarray) -> str:
    ok, png = cv2.imencode(".png", arr)
    assert ok
    return base64.b64encode(png.tobytes()).decode("ascii")


@pytest.fixture
def uniform_gray():
    """4x4 RGBA image, every pixel (128, 128, 128, 255)."""
    return ImageBuffer.from_array(rgba(np.full((4, 4), 128, dtype=np.uint8)))


@pytest.fixture
def blank_image():
    """16x16 opaque black RGBA image."""
    return ImageBuffer.from_array(rgba(np.zeros((16, 16), dtype=np.uint8)))


@pytest.fixture
def square_gray():
    """20x20 grey plane with a white 10x10 square at rows/cols 5..14."""
    gray = np.zeros((20, 20), dtype=np.uint8)
    gray[5:15, 5:15] = 255
    return gray


@pytest.fixture
def square_image(square_gray):
    return ImageBuffer.from_array(rgba(square_gray))


@pytest.fixture
def ring_image():
    """30x30 white ring: outer square 5..24 with a 10..19 hole."""
    gray = np.zeros((30, 30), dtype=np.uint8)
    gray[5:25, 5:25] = 255
    gray[10:20, 10:20] = 0
    return ImageBuffer.from_array(rgba(gray))


@pytest.fixture
def two_squares_image():
    gray = np.zeros((20, 40), dtype=np.uint8)
    gray[4:10, 4:10] = 200
    gray[8:16, 25:35] = 200
    return ImageBuffer.from_array(rgba(gray))


@pytest.fixture
def checkerboard_image():
    """Single-pixel 0/255 checkerboard; maximally sharp."""
    yy, xx = np.indices((8, 8))
    gray = (((yy + xx) % 2) * 255).astype(np.uint8)
    return ImageBuffer.from_array(rgba(gray))


@pytest.fixture
def flat_image():
    return ImageBuffer.from_array(rgba(np.full((12, 12), 90, dtype=np.uint8)))


@pytest.fixture
def flat_b64():
    return png_b64(np.full((12, 12), 90, dtype=np.uint8))


@pytest.fixture
def square_b64(square_gray):
    return png_b64(square_gray)


@pytest.fixture
def checkerboard_b64():
    yy, xx = np.indices((8, 8))
    return png_b64((((yy + xx) % 2) * 255).astype(np.uint8))
