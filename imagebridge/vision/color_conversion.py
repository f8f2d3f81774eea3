from __future__ import annotations

import logging

import cv2

from imagebridge.vision.errors import InternalError, InvalidFormat
from imagebridge.vision.vision_types import SEGMENTATION_MAX_VALUE, SEGMENTATION_THRESHOLD, ImageBuffer

logger = logging.getLogger(__name__)

# (channels, order) -> OpenCV conversion code
_GRAY_CODES = {
    (4, "rgba"): cv2.COLOR_RGBA2GRAY,
    (4, "bgra"): cv2.COLOR_BGRA2GRAY,
    (3, "rgba"): cv2.COLOR_RGB2GRAY,
    (3, "bgra"): cv2.COLOR_BGR2GRAY,
}


def to_grayscale(buffer: ImageBuffer, order: str = "rgba") -> ImageBuffer:
    """
    Reduce a 3/4-channel buffer to single-channel luminance.

    `order` names the channel ordering of the input ("rgba" or "bgra"); the
    alpha channel, when present, is ignored. A buffer that is already
    single-channel comes back as a byte-identical copy.
    """
    if order not in ("rgba", "bgra"):
        raise InvalidFormat(f"Unknown channel order {order!r}.")

    if buffer.channels == 1:
        return ImageBuffer(buffer.pixels.copy())

    code = _GRAY_CODES[(buffer.channels, order)]

    try:
        gray = cv2.cvtColor(buffer.pixels, code)
    except cv2.error as exc:
        raise InternalError(f"Grayscale conversion failed: {exc}") from exc
    return ImageBuffer(gray)


def threshold(
    buffer: ImageBuffer,
    level: int = SEGMENTATION_THRESHOLD,
    max_value: int = SEGMENTATION_MAX_VALUE,
) -> ImageBuffer:
    """Binary threshold: max_value where sample > level, else 0."""
    if buffer.channels != 1:
        raise InvalidFormat(f"Expected single-channel image, got {buffer.channels} channels.")

    try:
        _, mask_u8 = cv2.threshold(buffer.pixels, float(level), float(max_value), cv2.THRESH_BINARY)
    except cv2.error as exc:
        raise InternalError(f"Threshold failed: {exc}") from exc

    logger.debug("Threshold at %d kept %d/%d pixels", level, int((mask_u8 > 0).sum()), mask_u8.size)
    return ImageBuffer(mask_u8)


__all__ = ["threshold", "to_grayscale"]
