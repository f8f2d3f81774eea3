"""
Host-facing entry points.

Each call decodes a base64 image, runs one pipeline and reports either a
success value or a failure message, the way a native module answers
through its success/error callbacks. Nothing raised inside a pipeline
escapes these functions; nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from imagebridge.vision.blur_detection import score_blur
from imagebridge.vision.errors import DecodeError, InternalError, InvalidFormat, VisionError
from imagebridge.vision.segmentation import ColorGenerator, segment
from imagebridge.vision.vision_types import BlurParams, SegmentationParams
from imagebridge.vision.vision_utils import decode_base64_image

_log = logging.getLogger(__name__)

_ERRORS = {cls.kind: cls for cls in (DecodeError, InvalidFormat, InternalError)}


@dataclass(frozen=True, slots=True)
class BridgeResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "BridgeResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: BaseException) -> "BridgeResult":
        kind = exc.kind if isinstance(exc, VisionError) else InternalError.kind
        return cls(ok=False, error=str(exc) or type(exc).__name__, error_kind=kind)

    def unwrap(self) -> Any:
        """Return the value, or re-raise the failure as its VisionError subclass."""
        if self.ok:
            return self.value
        raise _ERRORS.get(self.error_kind, InternalError)(self.error)


def segment_image(
    image_b64: Union[str, bytes],
    params: Optional[SegmentationParams] = None,
    colors: Optional[ColorGenerator] = None,
    logger: Optional[logging.Logger] = None,
) -> BridgeResult:
    """Value on success: (source_bytes, labeled_bytes)."""
    log = logger or _log
    log.debug("Starting segmentImage")
    try:
        image = decode_base64_image(image_b64)
        result = segment(image, params=params, colors=colors)
    except Exception as exc:
        log.warning("segmentImage failed: %s", exc)
        return BridgeResult.failure(exc)

    log.debug("segmentImage produced %d contours for %dx%d", len(result.contours), result.width, result.height)
    return BridgeResult.success((result.source_bytes, result.labeled_bytes))


def check_for_blurry_image(
    image_b64: Union[str, bytes],
    params: Optional[BlurParams] = None,
    logger: Optional[logging.Logger] = None,
) -> BridgeResult:
    """Value on success: True when the image is blurry."""
    log = logger or _log
    try:
        image = decode_base64_image(image_b64)
        verdict = score_blur(image, params=params)
    except Exception as exc:
        log.warning("checkForBlurryImage failed: %s", exc)
        return BridgeResult.failure(exc)

    if verdict.is_blurry:
        log.info("is blur image (score=%s)", verdict.score)
    return BridgeResult.success(verdict.is_blurry)


__all__ = ["BridgeResult", "check_for_blurry_image", "segment_image"]
