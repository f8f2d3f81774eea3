"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from imagebridge.vision.vision_types import (
    CONTOUR_MAX_LEVEL,
    PACKED_BLUR_THRESHOLD,
    SEGMENTATION_MAX_VALUE,
    SEGMENTATION_THRESHOLD,
    VARIANCE_BLUR_THRESHOLD,
    BlurMethod,
    BlurParams,
    SegmentationParams,
)


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class Settings:
    """Centralised project settings based on OS environment variables."""

    log_level: str = "INFO"

    segmentation_threshold: int = SEGMENTATION_THRESHOLD
    contour_max_level: int = CONTOUR_MAX_LEVEL

    blur_method: BlurMethod = BlurMethod.PACKED
    blur_packed_threshold: int = PACKED_BLUR_THRESHOLD
    blur_variance_threshold: float = VARIANCE_BLUR_THRESHOLD

    def segmentation_params(self) -> SegmentationParams:
        return SegmentationParams(
            level=self.segmentation_threshold,
            max_value=SEGMENTATION_MAX_VALUE,
            max_level=self.contour_max_level,
        )

    def blur_params(self) -> BlurParams:
        return BlurParams(
            method=self.blur_method,
            packed_threshold=self.blur_packed_threshold,
            variance_threshold=self.blur_variance_threshold,
        )


def _build_settings() -> Settings:
    _load_env_file()

    method = os.getenv("BLUR_METHOD", BlurMethod.PACKED.value).strip().lower()
    try:
        blur_method = BlurMethod(method)
    except ValueError as exc:
        raise ValueError(f"BLUR_METHOD must be 'packed' or 'variance', got {method!r}") from exc

    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        segmentation_threshold=_env_int("SEGMENTATION_THRESHOLD", SEGMENTATION_THRESHOLD),
        contour_max_level=_env_int("CONTOUR_MAX_LEVEL", CONTOUR_MAX_LEVEL),
        blur_method=blur_method,
        blur_packed_threshold=_env_int("BLUR_PACKED_THRESHOLD", PACKED_BLUR_THRESHOLD),
        blur_variance_threshold=_env_float("BLUR_VARIANCE_THRESHOLD", VARIANCE_BLUR_THRESHOLD),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
