"""In-memory job registry."""

import threading
from typing import Callable, Dict, List, Optional

from app.errors import DuplicateJobError, JobNotFoundError
from app.jobs.models import JobRecord, PerformanceLevel
from app.jobs.transitions import apply_event, new_record


class JobRegistry:
    """Maps job_id to JobRecord for the lifetime of the process.

    Every change goes through mutate(), which swaps the stored record under a
    single lock. Nothing here awaits or does I/O, so the lock is only held
    for the dict operation and the pure transition.
    """

    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def create(
        self,
        job_id: str,
        video_key: str,
        performance_level: PerformanceLevel = PerformanceLevel.STANDARD,
    ) -> JobRecord:
        record = new_record(job_id, video_key, performance_level=performance_level)
        with self._lock:
            if job_id in self._jobs:
                raise DuplicateJobError(job_id)
            self._jobs[job_id] = record
        return record

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_all(self) -> List[JobRecord]:
        """All records in submission order."""
        with self._lock:
            return list(self._jobs.values())

    def mutate(self, job_id: str, fn: Callable[[JobRecord], JobRecord]) -> JobRecord:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                raise JobNotFoundError(job_id)
            updated = fn(record)
            self._jobs[job_id] = updated
            return updated

    def apply(self, job_id: str, event) -> JobRecord:
        """Run one state-machine event against a job and store the result."""
        return self.mutate(job_id, lambda record: apply_event(record, event))

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
