"""Pure job state machine: (record, event) -> record.

PENDING -> RUNNING -> {COMPLETED, FAILED}. Terminal records absorb every
event unchanged. Each transition returns a new record whose logs are the old
logs plus zero or more new entries, so status and its log lines always land
together.
"""

from functools import singledispatch
from typing import List, Optional

from app.jobs.models import (
    DispatchFailed,
    DispatchStarted,
    DispatchSucceeded,
    ExecutionDescriptor,
    JobRecord,
    JobStatus,
    LogEntry,
    PollNotFound,
    PollObserved,
    PollTransportError,
    SubUnit,
)

STOPPED = "STOPPED"
RUNNING_PHASE = "RUNNING"
ACTIVE_PHASES = frozenset({"PROVISIONING", "PENDING", "ACTIVATING", "RUNNING"})
ESSENTIAL_EXITED = "EssentialContainerExited"

MSG_CREATED = "Job created. Video key: {video_key}"
MSG_RUNNING = "Task status changed to RUNNING"
MSG_STARTED = "Started ECS task: {handle}"
MSG_DISPATCH_FAILED = "Failed to start task: {detail}"
MSG_PHASE = "Task status: {phase}"
MSG_PROCESSING = "Task is now processing video {video_key}"
MSG_COMPLETED = "Task status changed to COMPLETED"
MSG_EXIT_CODE = "Task failed with exit code {exit_code}"
MSG_STOPPED = "Task stopped: {stop_code}"
MSG_STOP_REASON = "Task stopped reason: {reason}"
MSG_UNIT_REASON = "Container {name} reason: {reason}"
MSG_NOT_FOUND = "Task not found. It may have been deleted or failed to start."
MSG_MONITOR_ERROR = "Error monitoring task: {detail}"
MSG_MONITOR_STOPPED = (
    "The task may still be running; monitoring has stopped. "
    "Check task {handle} in the ECS console."
)


def new_record(job_id: str, video_key: str, **fields) -> JobRecord:
    """Fresh PENDING record carrying its creation log entry."""
    return JobRecord(
        job_id=job_id,
        video_key=video_key,
        logs=[LogEntry(message=MSG_CREATED.format(video_key=video_key))],
        **fields,
    )


def _with(record: JobRecord, messages: List[str], **changes) -> JobRecord:
    logs = record.logs + [LogEntry(message=m) for m in messages]
    return record.model_copy(update={"logs": logs, **changes})


def apply_event(record: JobRecord, event) -> JobRecord:
    if record.status.is_terminal:
        return record
    return _apply(event, record)


@singledispatch
def _apply(event, record: JobRecord) -> JobRecord:
    raise TypeError(f"Unknown job event: {type(event).__name__}")


@_apply.register
def _(event: DispatchStarted, record: JobRecord) -> JobRecord:
    return _with(record, [MSG_RUNNING], status=JobStatus.RUNNING)


@_apply.register
def _(event: DispatchSucceeded, record: JobRecord) -> JobRecord:
    if record.execution_handle is not None:
        return record
    return _with(
        record,
        [MSG_STARTED.format(handle=event.handle)],
        status=JobStatus.RUNNING,
        execution_handle=event.handle,
        cluster=event.cluster,
    )


@_apply.register
def _(event: DispatchFailed, record: JobRecord) -> JobRecord:
    return _with(
        record,
        [MSG_DISPATCH_FAILED.format(detail=event.detail)],
        status=JobStatus.FAILED,
    )


@_apply.register
def _(event: PollNotFound, record: JobRecord) -> JobRecord:
    return _with(record, [MSG_NOT_FOUND], status=JobStatus.FAILED)


@_apply.register
def _(event: PollTransportError, record: JobRecord) -> JobRecord:
    # Status is left alone: a failed poll says nothing about the task itself.
    return _with(
        record,
        [
            MSG_MONITOR_ERROR.format(detail=event.detail),
            MSG_MONITOR_STOPPED.format(handle=record.execution_handle),
        ],
    )


@_apply.register
def _(event: PollObserved, record: JobRecord) -> JobRecord:
    descriptor = event.descriptor
    messages: List[str] = []
    changes = {}

    if descriptor.phase != record.last_phase:
        messages.append(MSG_PHASE.format(phase=descriptor.phase))
        changes["last_phase"] = descriptor.phase

    if descriptor.phase == STOPPED:
        status, final = _stopped_outcome(descriptor, event.primary_unit)
        messages.extend(_stop_explanations(descriptor))
        messages.append(final)
        changes["status"] = status
        return _with(record, messages, **changes)

    # Active and unrecognised phases both keep the job RUNNING.
    changes["status"] = JobStatus.RUNNING
    if descriptor.phase == RUNNING_PHASE and not record.running_notified:
        messages.append(MSG_PROCESSING.format(video_key=record.video_key))
        changes["running_notified"] = True
    return _with(record, messages, **changes)


def primary_sub_unit(
    descriptor: ExecutionDescriptor, name: Optional[str] = None
) -> Optional[SubUnit]:
    """The container whose exit code decides the job: by name, else the first."""
    if name:
        for unit in descriptor.sub_units:
            if unit.name == name:
                return unit
    return descriptor.sub_units[0] if descriptor.sub_units else None


def _stopped_outcome(descriptor: ExecutionDescriptor, primary_name: Optional[str]):
    if descriptor.stop_code == ESSENTIAL_EXITED:
        unit = primary_sub_unit(descriptor, primary_name)
        exit_code = unit.exit_code if unit else None
        if exit_code == 0:
            return JobStatus.COMPLETED, MSG_COMPLETED
        return JobStatus.FAILED, MSG_EXIT_CODE.format(
            exit_code=exit_code if exit_code is not None else "unknown"
        )
    return JobStatus.FAILED, MSG_STOPPED.format(
        stop_code=descriptor.stop_code or "unknown"
    )


def _stop_explanations(descriptor: ExecutionDescriptor) -> List[str]:
    messages = []
    if descriptor.stop_reason:
        messages.append(MSG_STOP_REASON.format(reason=descriptor.stop_reason))
    for index, unit in enumerate(descriptor.sub_units):
        if unit.reason:
            messages.append(
                MSG_UNIT_REASON.format(name=unit.name or index, reason=unit.reason)
            )
    return messages
