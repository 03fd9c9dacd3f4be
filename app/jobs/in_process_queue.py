"""In-process dispatch queue using asyncio.

submit() records the job and enqueues it; a small pool of worker tasks
makes the actual RunTask call and hands successful jobs to the monitor.
No external dependencies (Redis, Celery) needed.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List

from app.backend.base import (
    PERFORMANCE_PROFILES,
    ExecutionBackend,
    ExecutionRequest,
    NetworkSpec,
)
from app.config import AwsConfig
from app.errors import ConfigurationError
from app.jobs.dispatcher import JobDispatcher
from app.jobs.models import (
    DispatchFailed,
    DispatchStarted,
    DispatchSucceeded,
    JobRecord,
    PerformanceLevel,
)
from app.jobs.monitor import JobMonitor
from app.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)


@dataclass
class _DispatchItem:
    job_id: str
    config: AwsConfig


class InProcessQueue(JobDispatcher):
    """Local async dispatch queue. Each job is sent to the backend exactly once."""

    def __init__(
        self,
        registry: JobRegistry,
        monitor: JobMonitor,
        config_provider: Callable[[], AwsConfig],
        backend_factory: Callable[[AwsConfig], ExecutionBackend],
        workers: int = 4,
        container_name: str = "video-transcoder",
        assign_public_ip: bool = True,
    ):
        """
        config_provider: returns the current AwsConfig snapshot.
        backend_factory: builds an ExecutionBackend for a config snapshot,
            e.g. EcsBackend.from_config.
        """
        self._registry = registry
        self._monitor = monitor
        self._config_provider = config_provider
        self._backend_factory = backend_factory
        self._workers = max(1, workers)
        self._container_name = container_name
        self._assign_public_ip = assign_public_ip
        self._queue: asyncio.Queue[_DispatchItem] = asyncio.Queue()
        self._tasks: List[asyncio.Task] = []
        self._running = False
        self._backends: Dict[str, ExecutionBackend] = {}
        self._backend_lock = asyncio.Lock()

    async def submit(
        self, video_key: str, performance_level: PerformanceLevel = PerformanceLevel.STANDARD
    ) -> str:
        config = self._config_provider()
        missing = config.missing_fields()
        if missing:
            raise ConfigurationError(missing)
        if not video_key or not video_key.strip():
            raise ValueError("Video key is required")
        level = PerformanceLevel(performance_level)

        job_id = str(uuid.uuid4())
        self._registry.create(job_id, video_key, performance_level=level)
        logger.info(
            "Created transcoding job %s for video %s (performance level %s)",
            job_id, video_key, level.value,
        )
        self._queue.put_nowait(_DispatchItem(job_id=job_id, config=config))
        return job_id

    async def start(self) -> None:
        self._running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop(), name=f"dispatch-worker-{i}")
            for i in range(self._workers)
        ]

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def drain(self) -> None:
        """Wait until every queued job has been dispatched (or failed to)."""
        await self._queue.join()

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    async def _worker_loop(self) -> None:
        """Dispatch queued jobs until stopped."""
        while self._running:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self._dispatch(item)
            except Exception:
                logger.exception("Unexpected error dispatching job %s", item.job_id)
            finally:
                self._queue.task_done()

    async def _backend_for(self, config: AwsConfig) -> ExecutionBackend:
        """One backend per distinct config, built in the thread executor."""
        key = config.model_dump_json()
        async with self._backend_lock:
            backend = self._backends.get(key)
            if backend is None:
                loop = asyncio.get_running_loop()
                backend = await loop.run_in_executor(None, self._backend_factory, config)
                self._backends[key] = backend
            return backend

    def _build_request(self, record: JobRecord, config: AwsConfig) -> ExecutionRequest:
        level = record.performance_level
        return ExecutionRequest(
            cluster=config.ecs_cluster,
            task_definition=config.ecs_task_definition,
            network=NetworkSpec(
                subnets=list(config.ecs_subnets),
                security_groups=list(config.ecs_security_groups),
                assign_public_ip=self._assign_public_ip,
            ),
            container_name=self._container_name,
            environment={
                "AWS_REGION": config.aws_region,
                "BUCKET_NAME": config.s3_bucket_name,
                "KEY": record.video_key,
                "PERFORMANCE_LEVEL": level.value,
            },
            profile=PERFORMANCE_PROFILES.get(level),
        )

    async def _dispatch(self, item: _DispatchItem) -> None:
        record = self._registry.apply(item.job_id, DispatchStarted())
        if record.status.is_terminal:
            return
        request = self._build_request(record, item.config)

        try:
            backend = await self._backend_for(item.config)
            result = await backend.run_execution(request)
        except Exception as exc:
            logger.exception("Failed to start task for job %s", item.job_id)
            self._registry.apply(item.job_id, DispatchFailed(detail=str(exc)))
            return

        if not result.handles:
            detail = "backend returned no tasks"
            if result.failures:
                detail += ": " + "; ".join(result.failures)
            logger.error("No task started for job %s: %s", item.job_id, detail)
            self._registry.apply(item.job_id, DispatchFailed(detail=detail))
            return

        handle = result.handles[0]
        self._registry.apply(
            item.job_id, DispatchSucceeded(handle=handle, cluster=request.cluster)
        )
        logger.info("Started task %s for job %s", handle, item.job_id)
        self._monitor.watch(item.job_id, request.cluster, handle, backend)
