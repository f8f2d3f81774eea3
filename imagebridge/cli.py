#!/usr/bin/env python3
"""
Command line access to the vision pipelines.

Usage:
    imagebridge segment photo.png --out-dir out/
    imagebridge blur photo.jpg --method variance
    imagebridge serve --port 8000
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from imagebridge.core.logging import configure_logging
from imagebridge.core.settings import get_settings
from imagebridge.vision.blur_detection import score_blur
from imagebridge.vision.errors import VisionError
from imagebridge.vision.segmentation import palette_colors, segment
from imagebridge.vision.vision_types import BlurMethod, BlurParams, SegmentationParams
from imagebridge.vision.vision_utils import decode_image, encode_png

logger = logging.getLogger(__name__)


def _read_image(path: Path):
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise VisionError(f"Cannot read {path}: {exc}") from exc
    return decode_image(data)


def cmd_segment(args: argparse.Namespace) -> int:
    settings = get_settings()
    base = settings.segmentation_params()
    params = SegmentationParams(
        level=args.threshold if args.threshold is not None else base.level,
        max_value=base.max_value,
        max_level=args.max_level if args.max_level is not None else base.max_level,
    )
    colors = palette_colors() if args.palette else None

    image = _read_image(args.image)
    result = segment(image, params=params, colors=colors)

    out_dir = args.out_dir or args.image.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    source_path = out_dir / f"{args.image.stem}_source.png"
    labels_path = out_dir / f"{args.image.stem}_labels.png"
    source_path.write_bytes(encode_png(result.source))
    labels_path.write_bytes(encode_png(result.labels))

    print(f"{len(result.contours)} contours -> {source_path}, {labels_path}")
    return 0


def cmd_blur(args: argparse.Namespace) -> int:
    base = get_settings().blur_params()
    params = BlurParams(
        method=BlurMethod(args.method) if args.method else base.method,
        packed_threshold=base.packed_threshold,
        variance_threshold=base.variance_threshold,
    )

    verdict = score_blur(_read_image(args.image), params=params)
    label = "blurry" if verdict.is_blurry else "sharp"
    print(f"{label} (score={verdict.score}, threshold={verdict.threshold}, method={verdict.method.value})")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("imagebridge.main:api", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="imagebridge", description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p_seg = sub.add_parser("segment", help="Threshold + contour segmentation")
    p_seg.add_argument("image", type=Path)
    p_seg.add_argument("--out-dir", type=Path, default=None)
    p_seg.add_argument("--threshold", type=int, default=None)
    p_seg.add_argument("--max-level", type=int, default=None)
    p_seg.add_argument("--palette", action="store_true", help="Use fixed colours instead of random ones")
    p_seg.set_defaults(func=cmd_segment)

    p_blur = sub.add_parser("blur", help="Laplacian blur check")
    p_blur.add_argument("image", type=Path)
    p_blur.add_argument("--method", choices=[m.value for m in BlurMethod], default=None)
    p_blur.set_defaults(func=cmd_blur)

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except VisionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
