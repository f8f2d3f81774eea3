import numpy as np
import pytest

from imagebridge.vision.blur_detection import laplacian_response, pack_argb, score_blur
from imagebridge.vision.errors import InvalidFormat
from imagebridge.vision.vision_types import (
    PACKED_BLUR_THRESHOLD,
    PACKED_PIXEL_FLOOR,
    BlurMethod,
    BlurParams,
    ImageBuffer,
)

from conftest import rgba


def _bright_dot(value: int) -> ImageBuffer:
    # A lone bright pixel on black: the 4-neighbours respond with exactly `value`.
    gray = np.zeros((9, 9), dtype=np.uint8)
    gray[4, 4] = value
    return ImageBuffer.from_array(rgba(gray))


def test_pack_argb_matches_bitmap_words():
    gray = ImageBuffer.from_array(np.array([[0, 131, 255]], dtype=np.uint8))

    assert pack_argb(gray).tolist() == [[-16777216, -8158333, -1]]


def test_laplacian_of_flat_image_is_zero(flat_image):
    gray = ImageBuffer.from_array(flat_image.pixels[:, :, 0])

    assert not laplacian_response(gray).pixels.any()


def test_laplacian_requires_single_channel(flat_image):
    with pytest.raises(InvalidFormat):
        laplacian_response(flat_image)


def test_flat_image_is_blurry(flat_image):
    verdict = score_blur(flat_image)

    assert verdict.is_blurry is True
    assert verdict.score == PACKED_PIXEL_FLOOR
    assert verdict.threshold == PACKED_BLUR_THRESHOLD
    assert verdict.method is BlurMethod.PACKED


def test_checkerboard_is_sharp(checkerboard_image):
    is_blurry, score = score_blur(checkerboard_image)

    assert is_blurry is False
    assert score == -1


@pytest.mark.parametrize("value, blurry", [(131, True), (132, False)])
def test_packed_threshold_boundary(value, blurry):
    verdict = score_blur(_bright_dot(value))

    assert verdict.score == int(pack_argb(ImageBuffer.from_array(np.array([[value]], dtype=np.uint8)))[0, 0])
    assert verdict.is_blurry is blurry


def test_score_is_deterministic(square_image):
    first = score_blur(square_image)
    second = score_blur(square_image)

    assert (first.is_blurry, first.score) == (second.is_blurry, second.score)


def test_grayscale_input_is_accepted(checkerboard_image):
    gray = ImageBuffer.from_array(checkerboard_image.pixels[:, :, 0])

    assert score_blur(gray).score == score_blur(checkerboard_image).score


def test_custom_packed_threshold():
    params = BlurParams(packed_threshold=-1)

    assert score_blur(_bright_dot(200), params=params).is_blurry is True


def test_variance_method(flat_image, checkerboard_image):
    params = BlurParams(method=BlurMethod.VARIANCE)

    flat = score_blur(flat_image, params=params)
    sharp = score_blur(checkerboard_image, params=params)

    assert flat.score == 0.0
    assert flat.is_blurry is True
    assert sharp.score > 100.0
    assert sharp.is_blurry is False
    assert sharp.threshold == 100.0


def test_empty_image_is_rejected():
    with pytest.raises(InvalidFormat):
        score_blur(ImageBuffer(np.zeros((0, 0, 4), dtype=np.uint8)))


def test_threshold_comes_from_params_for_string_method(checkerboard_image):
    params = BlurParams(method="variance", variance_threshold=1e9)

    verdict = score_blur(checkerboard_image, params=params)

    assert verdict.method is BlurMethod.VARIANCE
    assert verdict.threshold == params.threshold == 1e9
    assert verdict.is_blurry is True
