from __future__ import annotations

import base64
import binascii
import logging
from typing import Union

import cv2
import numpy as np

from imagebridge.vision.errors import DecodeError, InvalidFormat
from imagebridge.vision.vision_types import U8, ImageBuffer

logger = logging.getLogger(__name__)


def ensure_u8(img: np.ndarray) -> np.ndarray:
    # 16-bit PNG/TIFF inputs are rescaled; every other dtype is cast.
    if img.dtype == U8:
        return img
    if img.dtype == np.uint16:
        return (img // 257).astype(U8)
    return np.clip(img, 0, 255).astype(U8)


def to_rgba(img: np.ndarray) -> np.ndarray:
    """Normalize an OpenCV-decoded image (GRAY, BGR or BGRA) to 4-channel RGBA."""
    img = ensure_u8(img)
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.ndim == 3 and img.shape[2] == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if img.ndim == 3 and img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if img.ndim == 3 and img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise InvalidFormat(f"Unsupported decoded image shape {img.shape}.")


def decode_image(data: bytes) -> ImageBuffer:
    """
    Decode compressed image bytes (PNG, JPEG, ...) into an RGBA ImageBuffer.

    The RGBA layout mirrors what an ARGB_8888 bitmap yields once copied
    into an OpenCV matrix.
    """
    if not data:
        raise DecodeError("Empty image payload.")

    try:
        img = cv2.imdecode(np.frombuffer(data, dtype=U8), cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise DecodeError(f"Failed to decode image: {exc}") from exc
    if img is None:
        raise DecodeError("Invalid image")

    rgba = to_rgba(img)
    logger.debug("Decoded image %dx%d (source shape %s)", rgba.shape[1], rgba.shape[0], img.shape)
    return ImageBuffer.from_array(rgba)


def decode_base64(image_b64: Union[str, bytes]) -> bytes:
    if isinstance(image_b64, bytes):
        try:
            image_b64 = image_b64.decode("ascii")
        except UnicodeDecodeError as exc:
            raise DecodeError("Base64 payload is not ASCII.") from exc

    image_b64 = image_b64.strip()
    if image_b64.startswith("data:image"):
        image_b64 = image_b64.split(",", 1)[-1]

    # Strict first; fall back to the lenient decoder for payloads with line breaks.
    try:
        return base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError):
        try:
            return base64.b64decode(image_b64)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Malformed base64 payload: {exc}") from exc


def decode_base64_image(image_b64: Union[str, bytes]) -> ImageBuffer:
    """Decode base64 (optionally a data URL) into an RGBA ImageBuffer."""
    return decode_image(decode_base64(image_b64))


def encode_png(buffer: ImageBuffer) -> bytes:
    pixels = buffer.pixels
    if buffer.channels == 4:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA)
    elif buffer.channels == 3:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)
    ok, png = cv2.imencode(".png", pixels)
    if not ok:
        raise InvalidFormat("Failed to encode PNG")
    return png.tobytes()


__all__ = ["decode_base64", "decode_base64_image", "decode_image", "encode_png", "ensure_u8", "to_rgba"]
