# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from core.auth_validation import validate_auth_config
from core.logging_config import setup_logging
from core.providers import init_providers
from core.settings import get_settings

# Routers
from auth.router import router as auth_router
from authz.router import router as authz_router
from health.router import router as health_router
from media.router import router as media_router

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.server.log_level)
    validate_auth_config()
    providers = init_providers(app)
    log.info("Media bucket: %s (%s)", settings.storage.minio_bucket, settings.storage.provider)
    log.info("Registry: %s (process lifetime, not persisted)", type(providers.registry).__name__)
    yield


# ---------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------

app = FastAPI(
    title="Media Upload API",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------

app.include_router(auth_router)
app.include_router(authz_router)
app.include_router(media_router)
app.include_router(health_router)


# ---------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------

@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Media Upload API running"


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

if __name__ == "__main__":
    s = get_settings().server
    uvicorn.run(
        "main:app",
        host=s.host,
        port=s.port,
    )
