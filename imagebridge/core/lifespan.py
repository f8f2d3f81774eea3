import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from imagebridge.core.logging import configure_logging
from imagebridge.core.settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    app.state.ready = False

    # Settings are resolved once here so a bad environment fails at startup,
    # not on the first request.
    settings = get_settings()
    app.state.settings = settings
    logger.info(
        "Application is starting up (threshold=%d, blur=%s)",
        settings.segmentation_threshold,
        settings.blur_method.value,
    )
    app.state.ready = True

    try:
        yield
    finally:
        logger.info("Shutting down...")
        app.state.ready = False
