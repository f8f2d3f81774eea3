from __future__ import annotations


class VisionError(Exception):
    """Base class for failures raised by the vision pipelines."""

    kind = "VisionError"


class DecodeError(VisionError):
    """The encoded image could not be turned into pixels."""

    kind = "DecodeError"


class InvalidFormat(VisionError):
    """Unexpected channel count, dtype, or buffer size."""

    kind = "InvalidFormat"


class InternalError(VisionError):
    """An OpenCV routine failed while filtering a well-formed buffer."""

    kind = "InternalError"


__all__ = ["DecodeError", "InternalError", "InvalidFormat", "VisionError"]
