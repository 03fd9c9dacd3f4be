"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter
import platform
import sys

router = APIRouter()

# Set by main.py during lifespan
_monitor = None


def set_monitor(monitor):
    global _monitor
    _monitor = monitor


@router.get("/health")
async def health_check():
    """Service status and how many jobs are being monitored."""
    return {
        "status": "ok",
        "service": "Video Processing API",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "monitored_jobs": _monitor.active_count if _monitor is not None else 0,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
