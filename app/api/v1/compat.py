"""Browser-facing compatibility API.

Provides the same paths and camelCase payloads the existing frontend uses:
  POST /api/start-transcoding   submit {videoKey, performanceLevel}
  GET  /api/jobs                job summaries
  GET  /api/jobs/{jobId}        status, start time, video key and logs

This is a thin layer over the /api/v1/jobs handlers. Errors come back as
{"success": false, "error": ...} (or {"error": ...} for job lookups)
rather than FastAPI's {"detail": ...}.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.v1.jobs import get_job_or_raise, list_jobs_or_raise, submit_or_raise
from app.jobs.models import PerformanceLevel

router = APIRouter()


class StartTranscodingRequest(BaseModel):
    videoKey: Optional[str] = None
    performanceLevel: Optional[str] = None


def _error_body(exc: HTTPException) -> Dict[str, Any]:
    if isinstance(exc.detail, dict):
        body = {"error": exc.detail.get("error", "Request failed")}
        if "missing_fields" in exc.detail:
            body["missingFields"] = exc.detail["missing_fields"]
        return body
    return {"error": str(exc.detail)}


def _submit_failed(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, **body})


@router.post("/api/start-transcoding")
async def start_transcoding(request: StartTranscodingRequest):
    if not request.videoKey or not request.videoKey.strip():
        return _submit_failed(400, {"error": "Video key is required"})
    try:
        level = PerformanceLevel(request.performanceLevel or PerformanceLevel.STANDARD.value)
    except ValueError:
        return _submit_failed(
            400, {"error": f"Unknown performance level: {request.performanceLevel}"}
        )

    try:
        job_id = await submit_or_raise(request.videoKey, level)
    except HTTPException as exc:
        return _submit_failed(exc.status_code, _error_body(exc))
    return {"success": True, "jobId": job_id, "message": "Transcoding job started"}


@router.get("/api/jobs")
async def list_jobs():
    try:
        summaries = list_jobs_or_raise()
    except HTTPException as exc:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc))
    return [
        {
            "jobId": s.job_id,
            "status": s.status.value,
            "startTime": s.start_time.isoformat(),
            "videoKey": s.video_key,
        }
        for s in summaries
    ]


@router.get("/api/jobs/{job_id}")
async def get_job(job_id: str):
    try:
        view = get_job_or_raise(job_id)
    except HTTPException as exc:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc))
    return {
        "jobId": view.job_id,
        "status": view.status.value,
        "startTime": view.start_time.isoformat(),
        "videoKey": view.video_key,
        "logs": [
            {"timestamp": entry.timestamp.isoformat(), "message": entry.message}
            for entry in view.logs
        ],
    }
