"""Exception classes for the transcode orchestrator."""

from typing import List, Optional


class TranscodeServiceError(Exception):
    """Base exception for all application errors."""

    pass


class ConfigurationError(TranscodeServiceError):
    """Required AWS configuration is missing; nothing can be dispatched."""

    def __init__(self, missing_fields: List[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "System not configured. Missing: " + ", ".join(self.missing_fields)
        )


class JobNotFoundError(TranscodeServiceError):
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class DuplicateJobError(TranscodeServiceError):
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job already exists: {job_id}")


class BackendError(TranscodeServiceError):
    """The execution backend rejected a request or could not be reached."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message)
