"""Video Transcode Orchestrator - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import AwsConfig, ConfigStore, Settings, settings as default_settings
from app.api.v1.router import v1_router, compat_api_router
from app.api.v1 import config_api, health, jobs as jobs_api
from app.backend.base import ExecutionBackend
from app.backend.connection_check import ConnectionCheck
from app.backend.ecs import EcsBackend
from app.jobs.in_process_queue import InProcessQueue
from app.jobs.monitor import JobMonitor
from app.jobs.reader import JobReader
from app.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_app(
    settings: Optional[Settings] = None,
    config_store: Optional[ConfigStore] = None,
    backend_factory: Callable[[AwsConfig], ExecutionBackend] = EcsBackend.from_config,
    connection_check_factory: Callable[[AwsConfig], ConnectionCheck] = ConnectionCheck.from_config,
) -> FastAPI:
    """Create the application. Tests pass fake AWS factories and a config store."""
    settings = settings or default_settings
    if config_store is None:
        config_store = ConfigStore(
            path=settings.config_path, default=AwsConfig.from_settings(settings)
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info("Starting Video Transcode Orchestrator on port %s", settings.port)
        config_store.load()
        if not config_store.get().is_configured:
            logger.warning(
                "System not configured; missing %s", ", ".join(config_store.get().missing_fields())
            )

        registry = JobRegistry()
        job_monitor = JobMonitor(
            registry,
            poll_interval=settings.poll_interval_seconds,
            initial_delay=settings.initial_poll_delay_seconds,
            primary_unit=settings.container_name,
        )
        dispatcher = InProcessQueue(
            registry,
            job_monitor,
            config_provider=config_store.get,
            backend_factory=backend_factory,
            workers=settings.dispatch_workers,
            container_name=settings.container_name,
            assign_public_ip=settings.assign_public_ip,
        )
        await dispatcher.start()
        logger.info("Job dispatcher started with %d worker(s)", settings.dispatch_workers)

        # Wire dispatcher, reader and config store into API endpoints
        jobs_api.set_dispatcher(dispatcher)
        jobs_api.set_reader(JobReader(registry))
        config_api.set_config_store(config_store)
        config_api.set_connection_check_factory(connection_check_factory)
        health.set_monitor(job_monitor)
        app.state.registry = registry
        app.state.dispatcher = dispatcher
        app.state.monitor = job_monitor

        yield

        # Shutdown
        logger.info("Shutting down Video Transcode Orchestrator")
        await dispatcher.stop()
        await job_monitor.stop()

    app = FastAPI(
        title="Video Transcode Orchestrator",
        description="Submits videos to ECS for HLS transcoding and tracks each job to completion",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Mount routers
    app.include_router(v1_router)  # All /api/v1/* endpoints
    app.include_router(compat_api_router)  # /api/start-transcoding, /api/jobs compat layer
    return app


configure_logging(default_settings.log_level)
app = build_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.port)
