"""Execution backend interface and request/response types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.jobs.models import ExecutionDescriptor, PerformanceLevel


@dataclass
class PerformanceProfile:
    """Task-level CPU units and memory (MiB) for a performance level."""
    cpu: str
    memory: str


PERFORMANCE_PROFILES: Dict[PerformanceLevel, PerformanceProfile] = {
    PerformanceLevel.ECONOMY: PerformanceProfile(cpu="1024", memory="2048"),
    PerformanceLevel.STANDARD: PerformanceProfile(cpu="2048", memory="4096"),
    PerformanceLevel.PREMIUM: PerformanceProfile(cpu="4096", memory="8192"),
}


@dataclass
class NetworkSpec:
    subnets: List[str]
    security_groups: List[str]
    assign_public_ip: bool = True


@dataclass
class ExecutionRequest:
    """Everything needed to start one transcoding task."""
    cluster: str
    task_definition: str
    network: NetworkSpec
    container_name: str
    environment: Dict[str, str] = field(default_factory=dict)
    profile: Optional[PerformanceProfile] = None


@dataclass
class RunResult:
    handles: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)


class ExecutionBackend(ABC):
    """Abstract interface to the remote compute service (ECS, or a fake in tests)."""

    @abstractmethod
    async def run_execution(self, request: ExecutionRequest) -> RunResult:
        """Start one execution. Raises BackendError if the request is rejected."""
        ...

    @abstractmethod
    async def describe_execution(
        self, cluster: str, handle: str
    ) -> Optional[ExecutionDescriptor]:
        """Current state of an execution, or None if the backend does not know it.

        Raises BackendError when the backend cannot be reached.
        """
        ...
