import base64
from unittest.mock import MagicMock

import pytest

from imagebridge import bridge
from imagebridge.bridge import BridgeResult, check_for_blurry_image, segment_image
from imagebridge.vision.errors import DecodeError, InternalError
from imagebridge.vision.segmentation import palette_colors
from imagebridge.vision.vision_types import BlurMethod, BlurParams


def test_segment_image_returns_source_then_labels(square_b64):
    result = segment_image(square_b64, colors=palette_colors())

    assert result.ok
    source_bytes, labeled_bytes = result.value
    assert len(source_bytes) == 20 * 20
    assert len(labeled_bytes) == 20 * 20 * 4
    assert set(source_bytes) == {0, 255}


def test_segment_image_reports_decode_error():
    result = segment_image("not an image at all")

    assert not result.ok
    assert result.error_kind == "DecodeError"
    assert result.error
    with pytest.raises(DecodeError):
        result.unwrap()


def test_unexpected_exception_is_reported_as_internal(monkeypatch, square_b64):
    def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(bridge, "segment", boom)

    result = segment_image(square_b64)

    assert result.error_kind == "InternalError"
    assert result.error == "kaboom"
    with pytest.raises(InternalError):
        result.unwrap()


def test_failures_go_to_injected_logger():
    logger = MagicMock()

    check_for_blurry_image(base64.b64encode(b"garbage").decode("ascii"), logger=logger)

    logger.warning.assert_called_once()


def test_flat_image_is_blurry(flat_b64):
    result = check_for_blurry_image(flat_b64)

    assert result.ok
    assert result.unwrap() is True


def test_checkerboard_is_not_blurry(checkerboard_b64):
    assert check_for_blurry_image(checkerboard_b64).value is False


def test_variance_method_through_bridge(checkerboard_b64):
    params = BlurParams(method=BlurMethod.VARIANCE)

    assert check_for_blurry_image(checkerboard_b64, params=params).value is False


def test_bridge_result_constructors():
    ok = BridgeResult.success(42)
    failed = BridgeResult.failure(ValueError())

    assert ok.unwrap() == 42
    assert failed.error_kind == "InternalError"
    assert failed.error == "ValueError"
