"""Per-job polling of the execution backend.

Each watched job gets one asyncio task that polls, applies the outcome to the
registry, and sleeps for the poll interval until the job is terminal. The
task handle is dropped as soon as the loop returns.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from app.backend.base import ExecutionBackend
from app.jobs.models import (
    JobRecord,
    PollNotFound,
    PollObserved,
    PollTransportError,
)
from app.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class JobMonitor:
    def __init__(
        self,
        registry: JobRegistry,
        poll_interval: float = 15.0,
        initial_delay: float = 0.0,
        primary_unit: Optional[str] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        primary_unit: name of the container whose exit code decides success.
            Falls back to the first container when unset or not present.
        sleep: awaitable used for every delay; tests swap it out.
        """
        self._registry = registry
        self._poll_interval = poll_interval
        self._initial_delay = initial_delay
        self._primary_unit = primary_unit
        self._sleep = sleep
        self._tasks: Dict[str, asyncio.Task] = {}

    def watch(
        self, job_id: str, cluster: str, handle: str, backend: ExecutionBackend
    ) -> asyncio.Task:
        """Start polling a dispatched job. Returns the polling task."""
        task = asyncio.create_task(
            self._poll_loop(job_id, cluster, handle, backend),
            name=f"monitor-{job_id}",
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(job_id, None))
        return task

    def is_watching(self, job_id: str) -> bool:
        return job_id in self._tasks

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every watched job has stopped polling."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def poll_once(
        self, job_id: str, cluster: str, handle: str, backend: ExecutionBackend
    ) -> Optional[JobRecord]:
        """One poll cycle. Returns the updated record, or None to stop polling."""
        try:
            descriptor = await backend.describe_execution(cluster, handle)
        except Exception as exc:
            logger.warning("Error monitoring task %s for job %s: %s", handle, job_id, exc)
            self._registry.apply(job_id, PollTransportError(detail=str(exc)))
            return None

        if descriptor is None:
            logger.info("Task %s for job %s not found", handle, job_id)
            return self._registry.apply(job_id, PollNotFound())

        return self._registry.apply(
            job_id,
            PollObserved(descriptor=descriptor, primary_unit=self._primary_unit),
        )

    async def _poll_loop(
        self, job_id: str, cluster: str, handle: str, backend: ExecutionBackend
    ) -> None:
        logger.info("Monitoring task %s for job %s", handle, job_id)
        if self._initial_delay > 0:
            await self._sleep(self._initial_delay)

        while True:
            record = await self.poll_once(job_id, cluster, handle, backend)
            if record is None:
                return
            if record.status.is_terminal:
                logger.info("Job %s finished with status %s", job_id, record.status.value)
                return
            await self._sleep(self._poll_interval)
