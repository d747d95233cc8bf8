"""Aggregate API routers."""

from fastapi import APIRouter
from webp_worker.api.v1.convert import router as convert_router
from webp_worker.api.v1.health import router as health_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])

# Worker endpoints live at the root: /ping and /convert-webp
worker_router = APIRouter()
worker_router.include_router(convert_router, tags=["convert"])
