import asyncio
import base64
from typing import Callable, Optional, Union

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel

from imagebridge.core.settings import Settings, get_settings
from imagebridge.vision.blur_detection import score_blur
from imagebridge.vision.errors import DecodeError, InternalError, InvalidFormat, VisionError
from imagebridge.vision.segmentation import segment
from imagebridge.vision.vision_types import BlurMethod, BlurParams, ImageBuffer
from imagebridge.vision.vision_utils import decode_base64_image, decode_image, encode_png

router = APIRouter()

_STATUS_CODES = {
    DecodeError: 400,
    InvalidFormat: 422,
    InternalError: 500,
}


class ImagePayload(BaseModel):
    image: str  # base64, optionally a data URL


class BlurPayload(ImagePayload):
    method: Optional[BlurMethod] = None


def _settings(request: Request) -> Settings:
    # Lifespan stores the resolved settings; fall back for apps built without it.
    return getattr(request.app.state, "settings", None) or get_settings()


def _http_error(exc: VisionError) -> HTTPException:
    return HTTPException(status_code=_STATUS_CODES.get(type(exc), 500), detail=str(exc))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


Decoder = Callable[[Union[str, bytes]], ImageBuffer]


# Payload builders run in a worker thread; decoding happens there too.
def _segment_payload(decode: Decoder, data: Union[str, bytes], settings: Settings, fmt: str) -> dict:
    try:
        image = decode(data)
        result = segment(image, params=settings.segmentation_params())
        if fmt == "png":
            source, labels = encode_png(result.source), encode_png(result.labels)
        else:
            source, labels = result.source_bytes, result.labeled_bytes
    except VisionError as exc:
        raise _http_error(exc) from exc

    return {
        "width": result.width,
        "height": result.height,
        "contours": len(result.contours),
        "format": fmt,
        "source": _b64(source),
        "labels": _b64(labels),
    }


def _blur_payload(
    decode: Decoder,
    data: Union[str, bytes],
    settings: Settings,
    method: Optional[BlurMethod],
) -> dict:
    params = settings.blur_params()
    if method is not None:
        params = BlurParams(
            method=method,
            packed_threshold=params.packed_threshold,
            variance_threshold=params.variance_threshold,
        )
    try:
        image = decode(data)
        verdict = score_blur(image, params=params)
    except VisionError as exc:
        raise _http_error(exc) from exc

    return {
        "is_blurry": verdict.is_blurry,
        "score": verdict.score,
        "threshold": verdict.threshold,
        "method": verdict.method.value,
    }


@router.get("/api/status")
def status(request: Request):
    return {"ready": bool(getattr(request.app.state, "ready", False))}


@router.post("/api/segment")
async def segment_image(
    payload: ImagePayload,
    request: Request,
    format: str = Query("raw", pattern="^(raw|png)$"),
):
    # CPU-bound OpenCV work runs off the event loop.
    return await asyncio.to_thread(
        _segment_payload, decode_base64_image, payload.image, _settings(request), format
    )


@router.post("/api/segment/upload")
async def segment_upload(
    request: Request,
    file: UploadFile = File(...),
    format: str = Query("raw", pattern="^(raw|png)$"),
):
    data = await file.read()
    return await asyncio.to_thread(_segment_payload, decode_image, data, _settings(request), format)


@router.post("/api/blur")
async def check_blur(payload: BlurPayload, request: Request):
    return await asyncio.to_thread(
        _blur_payload, decode_base64_image, payload.image, _settings(request), payload.method
    )


@router.post("/api/blur/upload")
async def check_blur_upload(
    request: Request,
    file: UploadFile = File(...),
    method: Optional[BlurMethod] = None,
):
    data = await file.read()
    return await asyncio.to_thread(_blur_payload, decode_image, data, _settings(request), method)
