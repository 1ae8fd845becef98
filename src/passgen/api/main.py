# Passgen: KV Service - FastAPI application
#
# Serves a local KV backend so remote passgen runs can use it through
# the "http" backend type. Run with `passgen serve`.

import logging

from fastapi import FastAPI

from .. import __version__
from .kv_routes import router as kv_router
from .security import configure_service_token

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Passgen KV Service",
    description="Key/value backend for generated passwords",
    version=__version__,
)

app.include_router(kv_router)


@app.on_event("startup")
async def startup_event():
    token = configure_service_token()
    if not token:
        logger.warning("PASSGEN_API_TOKEN is not set; KV routes are unauthenticated")


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
