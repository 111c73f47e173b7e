from fastapi import APIRouter

from .routes import health, proxy

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(proxy.router, tags=["proxy"])
