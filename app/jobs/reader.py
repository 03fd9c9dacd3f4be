"""Read-only projections of the job registry for API callers."""

from typing import List

from app.errors import JobNotFoundError
from app.jobs.models import JobSummary, JobView
from app.jobs.registry import JobRegistry


class JobReader:
    def __init__(self, registry: JobRegistry):
        self._registry = registry

    def get_job(self, job_id: str) -> JobView:
        """Status, start time, video key and full log of one job."""
        record = self._registry.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return JobView(
            job_id=record.job_id,
            status=record.status,
            start_time=record.start_time,
            video_key=record.video_key,
            logs=list(record.logs),
        )

    def list_jobs(self) -> List[JobSummary]:
        return [
            JobSummary(
                job_id=r.job_id,
                status=r.status,
                start_time=r.start_time,
                video_key=r.video_key,
            )
            for r in self._registry.list_all()
        ]
