"""AWS configuration API: check, save and verify the ECS/S3 settings."""

import asyncio

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from app.backend.connection_check import ConnectionCheck
from app.config import AwsConfig

router = APIRouter()

# Set by main.py during lifespan (same pattern as jobs.py)
_config_store = None
_connection_check_factory = ConnectionCheck.from_config


def set_config_store(store):
    global _config_store
    _config_store = store


def set_connection_check_factory(factory):
    global _connection_check_factory
    _connection_check_factory = factory


@router.get("/config")
async def get_config():
    """Whether the system is configured, with the secret key stripped."""
    if _config_store is None:
        raise HTTPException(status_code=503, detail="Config store not initialized")

    config = _config_store.get()
    if not config.is_configured:
        return {
            "configured": False,
            "missing_fields": config.missing_fields(),
            "message": "System not configured. Please configure the system first.",
        }
    return {
        "configured": True,
        "config": config.public_view(),
        "message": "System configured and ready",
    }


@router.post("/config")
def save_config(payload: dict):
    """Validate and persist a new configuration.

    Accepts the upper-case keys the frontend sends (AWS_REGION, ECS_SUBNETS, ...).
    Declared sync so FastAPI runs the file write in its threadpool.
    """
    if _config_store is None:
        raise HTTPException(status_code=503, detail="Config store not initialized")

    try:
        config = AwsConfig.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    missing = config.missing_fields()
    if missing:
        raise HTTPException(
            status_code=400,
            detail={"error": "Missing required configuration fields", "missing_fields": missing},
        )
    try:
        _config_store.save(config)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save configuration: {exc}")

    return {"success": True, "message": "Configuration saved successfully"}


@router.get("/test-connection")
async def check_connection():
    """Try the saved credentials against S3, ECS and EC2 and report each result."""
    if _config_store is None:
        raise HTTPException(status_code=503, detail="Config store not initialized")

    config = _config_store.get()
    if not config.is_configured:
        return {
            "success": False,
            "successes": [],
            "errors": ["Configuration not loaded. Please save configuration first."],
            "details": {},
        }

    factory = _connection_check_factory
    loop = asyncio.get_running_loop()
    report = await loop.run_in_executor(None, lambda: factory(config).run())
    return report.as_dict()
