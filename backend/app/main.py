from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .core.config import settings

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    app.state.http_client = httpx.AsyncClient(timeout=settings.proxy_timeout)
    if not settings.openrouter_api_key:
        logger.warning("OPENROUTER_API_KEY is not set; /openrouter will answer 500")
    if not settings.google_maps_api_key:
        logger.warning("GOOGLE_MAPS_API_KEY is not set; /places-search will answer 500")
    yield
    await app.state.http_client.aclose()


app = FastAPI(title=f"{settings.project_name} proxy", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)
