"""
Blur detection from the Laplacian (second-derivative) response.

Two scoring methods are available:

  packed    The 8-bit Laplacian response is rendered as an opaque ARGB_8888
            bitmap and each pixel word is read back as a signed 32-bit int.
            The score is the largest word; the image is blurry when
            score <= PACKED_BLUR_THRESHOLD. Since every word shares the
            0xFF alpha byte, this amounts to "max response <= 131".
  variance  Classic variance-of-Laplacian on a float response; blurry when
            the variance falls below VARIANCE_BLUR_THRESHOLD.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import cv2
import numpy as np

from imagebridge.vision.color_conversion import to_grayscale
from imagebridge.vision.errors import InternalError, InvalidFormat
from imagebridge.vision.vision_types import PACKED_PIXEL_FLOOR, BlurMethod, BlurParams, ImageBuffer

logger = logging.getLogger(__name__)

_OPAQUE_ALPHA = np.uint32(0xFF000000)


@dataclass(frozen=True, slots=True)
class BlurScore:
    is_blurry: bool
    score: Union[int, float]
    threshold: Union[int, float]
    method: BlurMethod

    def __iter__(self):
        # Unpacks as (is_blurry, score).
        yield self.is_blurry
        yield self.score


def laplacian_response(gray: ImageBuffer) -> ImageBuffer:
    """8-bit saturated Laplacian (aperture 1) of a single-channel buffer."""
    if gray.channels != 1:
        raise InvalidFormat(f"Expected single-channel image, got {gray.channels} channels.")
    try:
        response = cv2.Laplacian(gray.pixels, cv2.CV_8U)
    except cv2.error as exc:
        raise InternalError(f"Laplacian failed: {exc}") from exc
    return ImageBuffer(response)


def pack_argb(gray: ImageBuffer) -> np.ndarray:
    """
    Pack each grey sample v into the signed ARGB word 0xFFvvvvvv.

    Returns an int32 array with the same (H, W) shape.
    """
    if gray.channels != 1:
        raise InvalidFormat(f"Expected single-channel image, got {gray.channels} channels.")
    v = gray.pixels.astype(np.uint32)
    words = _OPAQUE_ALPHA | (v << 16) | (v << 8) | v
    return words.view(np.int32)


def _packed_score(image: ImageBuffer) -> int:
    # Bitmap-compatible scores convert with BGR ordering even though the
    # decoded buffer is RGBA.
    gray = to_grayscale(image, order="bgra")
    response = laplacian_response(gray)
    packed = pack_argb(response)
    return max(PACKED_PIXEL_FLOOR, int(packed.max()))


def _variance_score(image: ImageBuffer) -> float:
    gray = to_grayscale(image)
    try:
        response = cv2.Laplacian(gray.pixels, cv2.CV_64F)
    except cv2.error as exc:
        raise InternalError(f"Laplacian failed: {exc}") from exc
    return float(response.var())


def score_blur(image: ImageBuffer, params: Optional[BlurParams] = None) -> BlurScore:
    params = params or BlurParams()
    method = BlurMethod(params.method)

    if image.is_empty():
        raise InvalidFormat("Cannot score an empty image.")

    limit = params.threshold
    if method is BlurMethod.VARIANCE:
        score: Union[int, float] = _variance_score(image)
        is_blurry = score < limit
    else:
        score = _packed_score(image)
        is_blurry = score <= limit

    logger.debug("Blur score (%s) = %s, threshold %s -> blurry=%s", method.value, score, limit, is_blurry)
    return BlurScore(is_blurry=bool(is_blurry), score=score, threshold=limit, method=method)


__all__ = ["BlurScore", "laplacian_response", "pack_argb", "score_blur"]
