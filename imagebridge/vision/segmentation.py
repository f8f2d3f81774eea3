from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from imagebridge.vision.color_conversion import threshold, to_grayscale
from imagebridge.vision.errors import InternalError, InvalidFormat
from imagebridge.vision.vision_types import U8, ImageBuffer, SegmentationParams

logger = logging.getLogger(__name__)

LabelColor = Tuple[int, int, int]
ColorGenerator = Callable[[], LabelColor]

LABEL_CHANNELS = 4

DEFAULT_PALETTE: Tuple[LabelColor, ...] = (
    (230, 25, 75),
    (60, 180, 75),
    (255, 225, 25),
    (0, 130, 200),
    (245, 130, 48),
    (145, 30, 180),
    (70, 240, 240),
    (240, 50, 230),
)


# ---------------------------
# Colour generators
# ---------------------------

def random_colors(seed: Optional[int] = None) -> ColorGenerator:
    """Pseudo-random RGB colours, each component in [0, 255)."""
    rng = np.random.default_rng(seed)

    def _next() -> LabelColor:
        r, g, b = rng.integers(0, 255, size=3)
        return int(r), int(g), int(b)

    return _next


def palette_colors(palette: Optional[Sequence[LabelColor]] = None) -> ColorGenerator:
    """Deterministic colours cycling through `palette` (DEFAULT_PALETTE when empty)."""
    palette = tuple(palette or DEFAULT_PALETTE)
    it: Iterator[LabelColor] = itertools.cycle(palette)
    return lambda: next(it)


# ---------------------------
# Contours
# ---------------------------

@dataclass(frozen=True, slots=True, eq=False)
class Contour:
    """
    Closed boundary polyline with its position in the two-level hierarchy.

    Hierarchy links are contour indices, -1 when absent (same convention
    as OpenCV's [next, previous, first_child, parent] rows).
    """
    index: int
    points: np.ndarray  # (N, 2) int32, x/y
    next: int = -1
    previous: int = -1
    first_child: int = -1
    parent: int = -1

    @property
    def is_hole(self) -> bool:
        return self.parent != -1

    @property
    def area(self) -> float:
        return float(cv2.contourArea(self.points.reshape(-1, 1, 2)))

    @property
    def bounding_box(self) -> Tuple[int, int, int, int]:
        x, y, w, h = cv2.boundingRect(self.points.reshape(-1, 1, 2))
        return int(x), int(y), int(w), int(h)


def find_contours(mask: ImageBuffer) -> List[Contour]:
    """
    Trace outer boundaries and their holes on a binary mask.

    Straight runs are compressed to their end points (CHAIN_APPROX_SIMPLE).
    """
    if mask.channels != 1:
        raise InvalidFormat(f"Expected binary single-channel mask, got {mask.channels} channels.")

    try:
        raw, hierarchy = cv2.findContours(mask.pixels, cv2.RETR_CCOMP, cv2.CHAIN_APPROX_SIMPLE)
    except cv2.error as exc:
        raise InternalError(f"Contour extraction failed: {exc}") from exc

    if not raw:
        return []

    links = hierarchy.reshape(-1, 4)
    contours: List[Contour] = []
    for i, pts in enumerate(raw):
        nxt, prev, child, parent = (int(v) for v in links[i])
        contours.append(
            Contour(
                index=i,
                points=pts.reshape(-1, 2).astype(np.int32, copy=False),
                next=nxt,
                previous=prev,
                first_child=child,
                parent=parent,
            )
        )
    return contours


def _hierarchy_array(contours: Sequence[Contour]) -> np.ndarray:
    rows = [[c.next, c.previous, c.first_child, c.parent] for c in contours]
    return np.asarray([rows], dtype=np.int32)


def render_labels(
    height: int,
    width: int,
    contours: Sequence[Contour],
    colors: ColorGenerator,
    max_level: int,
) -> ImageBuffer:
    """
    Fill every contour into a zeroed (H, W, 4) buffer with its own colour.

    Each contour is drawn together with its nested holes, so the holes of an
    outer region stay unfilled until the hole contour itself is painted.
    Only three components are drawn; alpha stays 0.
    """
    labels = np.zeros((height, width, LABEL_CHANNELS), dtype=U8)
    if not contours:
        return ImageBuffer(labels)

    polys = [c.points.reshape(-1, 1, 2) for c in contours]
    hierarchy = _hierarchy_array(contours)

    for i in range(len(polys)):
        r, g, b = colors()
        try:
            cv2.drawContours(
                labels,
                polys,
                i,
                (int(r), int(g), int(b)),
                thickness=cv2.FILLED,
                lineType=cv2.LINE_8,
                hierarchy=hierarchy,
                maxLevel=int(max_level),
            )
        except cv2.error as exc:
            raise InternalError(f"Failed to draw contour {i}: {exc}") from exc

    return ImageBuffer(labels)


# ---------------------------
# Pipeline
# ---------------------------

@dataclass(frozen=True, slots=True, eq=False)
class SegmentationResult:
    source: ImageBuffer  # binarized grayscale source
    labels: ImageBuffer  # (H, W, 4) false-colour regions
    contours: Tuple[Contour, ...]

    @property
    def source_bytes(self) -> bytes:
        return self.source.tobytes()

    @property
    def labeled_bytes(self) -> bytes:
        return self.labels.tobytes()

    @property
    def width(self) -> int:
        return self.labels.width

    @property
    def height(self) -> int:
        return self.labels.height

    def __iter__(self):
        # Unpacks as (source_bytes, labeled_bytes).
        yield self.source_bytes
        yield self.labeled_bytes


def segment(
    image: ImageBuffer,
    params: Optional[SegmentationParams] = None,
    colors: Optional[ColorGenerator] = None,
) -> SegmentationResult:
    """
    Binarize `image` and paint each traced region in a distinct colour.

    Steps:
      1) RGBA -> GRAY
      2) Binary threshold at params.level
      3) Contours with a two-level hierarchy (regions + holes)
      4) Filled false-colour rendering into a 4-channel buffer
    """
    params = params or SegmentationParams()
    colors = colors or random_colors()

    if image.is_empty():
        raise InvalidFormat("Cannot segment an empty image.")

    gray = to_grayscale(image)
    mask = threshold(gray, params.level, params.max_value)
    contours = find_contours(mask)
    labels = render_labels(mask.height, mask.width, contours, colors, params.max_level)

    logger.debug(
        "Segmented %dx%d image into %d contours (%d holes)",
        mask.width,
        mask.height,
        len(contours),
        sum(1 for c in contours if c.is_hole),
    )
    return SegmentationResult(source=mask, labels=labels, contours=tuple(contours))


__all__ = [
    "ColorGenerator",
    "Contour",
    "DEFAULT_PALETTE",
    "LABEL_CHANNELS",
    "LabelColor",
    "SegmentationResult",
    "find_contours",
    "palette_colors",
    "random_colors",
    "render_labels",
    "segment",
]
