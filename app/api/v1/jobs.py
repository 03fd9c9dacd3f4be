"""Job management API: submit transcoding jobs, poll status and logs."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List

from app.errors import ConfigurationError, JobNotFoundError
from app.jobs.models import JobSummary, JobView, PerformanceLevel

router = APIRouter()

# These will be set by main.py during lifespan
_dispatcher = None
_reader = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


def set_reader(reader):
    global _reader
    _reader = reader


class JobSubmitRequest(BaseModel):
    video_key: str = Field(min_length=1)
    performance_level: PerformanceLevel = PerformanceLevel.STANDARD


class JobSubmitResponse(BaseModel):
    job_id: str
    status: str
    message: str


async def submit_or_raise(video_key: str, performance_level: PerformanceLevel) -> str:
    """Submit through the dispatcher, mapping domain errors to HTTP errors."""
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")
    try:
        return await _dispatcher.submit(video_key, performance_level)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"error": str(exc), "missing_fields": exc.missing_fields},
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def get_job_or_raise(job_id: str) -> JobView:
    if _reader is None:
        raise HTTPException(status_code=503, detail="Job reader not initialized")
    try:
        return _reader.get_job(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")


def list_jobs_or_raise() -> List[JobSummary]:
    if _reader is None:
        raise HTTPException(status_code=503, detail="Job reader not initialized")
    return _reader.list_jobs()


@router.post("/jobs", response_model=JobSubmitResponse)
async def submit_job(request: JobSubmitRequest):
    """Submit a video for transcoding. Dispatch to ECS happens after this returns."""
    job_id = await submit_or_raise(request.video_key, request.performance_level)
    return JobSubmitResponse(
        job_id=job_id,
        status="PENDING",
        message="Transcoding job accepted. Poll GET /api/v1/jobs/{id} for status.",
    )


@router.get("/jobs", response_model=List[JobSummary])
async def list_jobs():
    return list_jobs_or_raise()


@router.get("/jobs/{job_id}", response_model=JobView)
async def get_job(job_id: str):
    """Get the current status and logs of a job."""
    return get_job_or_raise(job_id)
