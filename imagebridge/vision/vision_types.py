from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from imagebridge.vision.errors import InvalidFormat

U8 = np.uint8

SUPPORTED_CHANNELS = (1, 3, 4)

# Segmentation defaults (the threshold level was tuned for the host app's image types).
SEGMENTATION_THRESHOLD = 40
SEGMENTATION_MAX_VALUE = 255
CONTOUR_MAX_LEVEL = 100

# Packed ARGB words are compared as signed 32-bit ints; an opaque black pixel is the floor.
PACKED_PIXEL_FLOOR = -16777216
PACKED_BLUR_THRESHOLD = -8118750
VARIANCE_BLUR_THRESHOLD = 100.0


class BlurMethod(str, enum.Enum):
    PACKED = "packed"
    VARIANCE = "variance"


@dataclass(frozen=True, slots=True, eq=False)
class ImageBuffer:
    """
    Owned 8-bit pixel grid of shape (H, W) or (H, W, C).

    Single-channel buffers are stored 2-D, matching what OpenCV returns
    from grayscale conversions and thresholds.
    """
    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise InvalidFormat(f"Expected numpy array, got {type(pixels).__name__}.")
        if pixels.dtype != U8:
            raise InvalidFormat(f"Expected uint8 samples, got {pixels.dtype}.")
        if pixels.ndim not in (2, 3):
            raise InvalidFormat(f"Expected image with shape (H, W) or (H, W, C), got {pixels.shape}.")
        if pixels.ndim == 3 and pixels.shape[2] not in SUPPORTED_CHANNELS:
            raise InvalidFormat(f"Unsupported channel count {pixels.shape[2]}.")

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "ImageBuffer":
        arr = np.asarray(arr)
        if arr.ndim == 3 and arr.shape[2] == 1:
            arr = arr[:, :, 0]
        if arr.ndim not in (2, 3):
            raise InvalidFormat(f"Expected image with shape (H, W) or (H, W, C), got {arr.shape}.")
        if arr.ndim == 3 and arr.shape[2] not in SUPPORTED_CHANNELS:
            raise InvalidFormat(f"Unsupported channel count {arr.shape[2]}.")
        if arr.dtype != U8:
            arr = arr.astype(U8)
        return cls(np.ascontiguousarray(arr))

    @classmethod
    def from_bytes(cls, data: bytes, width: int, height: int, channels: int) -> "ImageBuffer":
        if channels not in SUPPORTED_CHANNELS:
            raise InvalidFormat(f"Unsupported channel count {channels}.")
        expected = int(width) * int(height) * int(channels)
        if len(data) != expected:
            raise InvalidFormat(
                f"Buffer length {len(data)} does not match {width}x{height}x{channels}={expected}."
            )
        flat = np.frombuffer(data, dtype=U8).copy()
        shape = (height, width) if channels == 1 else (height, width, channels)
        return cls(flat.reshape(shape))

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def is_empty(self) -> bool:
        return self.pixels.size == 0

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()


@dataclass(frozen=True, slots=True)
class SegmentationParams:
    """Tunable parameters for threshold + contour segmentation."""
    level: int = SEGMENTATION_THRESHOLD
    max_value: int = SEGMENTATION_MAX_VALUE

    # Nesting depth passed to the contour renderer; RETR_CCOMP only ever yields two levels.
    max_level: int = CONTOUR_MAX_LEVEL


@dataclass(frozen=True, slots=True)
class BlurParams:
    """Tunable parameters for blur scoring."""
    method: BlurMethod = BlurMethod.PACKED
    packed_threshold: int = PACKED_BLUR_THRESHOLD
    variance_threshold: float = VARIANCE_BLUR_THRESHOLD

    @property
    def threshold(self) -> float:
        if BlurMethod(self.method) is BlurMethod.VARIANCE:
            return self.variance_threshold
        return self.packed_threshold


__all__ = [
    "BlurMethod",
    "BlurParams",
    "CONTOUR_MAX_LEVEL",
    "ImageBuffer",
    "PACKED_BLUR_THRESHOLD",
    "PACKED_PIXEL_FLOOR",
    "SEGMENTATION_MAX_VALUE",
    "SEGMENTATION_THRESHOLD",
    "SUPPORTED_CHANNELS",
    "SegmentationParams",
    "U8",
    "VARIANCE_BLUR_THRESHOLD",
]
