from fastapi import FastAPI

from imagebridge.api import router
from imagebridge.core.lifespan import lifespan

api = FastAPI(title="imagebridge", lifespan=lifespan)
api.include_router(router)
