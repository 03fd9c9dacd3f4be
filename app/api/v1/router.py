"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from app.api.v1.health import router as health_router
from app.api.v1.config_api import router as config_router
from app.api.v1.jobs import router as jobs_router
from app.api.v1.compat import router as compat_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(config_router, tags=["config"])
v1_router.include_router(jobs_router, tags=["jobs"])

# Compatibility shim, mounts /api/start-transcoding, /api/jobs, /api/config,
# /api/test-connection, /api/health
compat_api_router = APIRouter()
compat_api_router.include_router(compat_router, tags=["compat"])
compat_api_router.include_router(config_router, prefix="/api", tags=["compat"])
compat_api_router.include_router(health_router, prefix="/api", tags=["compat"])
