"""Job dispatcher interface."""

from abc import ABC, abstractmethod

from app.jobs.models import PerformanceLevel


class JobDispatcher(ABC):
    """Abstract interface for accepting jobs and handing them to a backend."""

    @abstractmethod
    async def submit(
        self, video_key: str, performance_level: PerformanceLevel = PerformanceLevel.STANDARD
    ) -> str:
        """Register a job and queue it for dispatch. Returns job_id immediately."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher (e.g., start worker loop)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...
