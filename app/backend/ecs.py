"""AWS ECS (Fargate) execution backend.

boto3 clients are synchronous, so each call runs in the default thread
executor to keep the event loop free while ECS answers.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.backend.base import ExecutionBackend, ExecutionRequest, RunResult
from app.config import AwsConfig
from app.errors import BackendError
from app.jobs.models import ExecutionDescriptor, SubUnit

logger = logging.getLogger(__name__)


def _client_error_message(exc: ClientError) -> str:
    """Turn the common RunTask rejections into something a user can act on."""
    error = exc.response.get("Error", {})
    code = error.get("Code", "")
    message = error.get("Message", str(exc))
    lowered = message.lower()

    if code == "BlockedException":
        return "AWS account is blocked. Please contact AWS support to resolve this issue."
    if code == "InvalidParameterException":
        if "accountids mismatch" in lowered:
            return (
                "Account ID mismatch. Please make sure your task definition uses "
                "the same AWS account ID as your AWS credentials."
            )
        if "subnet" in lowered:
            return "Invalid subnet configuration. Please check your subnet IDs."
        if "security group" in lowered:
            return "Invalid security group configuration. Please check your security group IDs."
    return f"Failed to start ECS task: {message}"


class EcsBackend(ExecutionBackend):
    """Runs transcoding tasks on an ECS cluster with launch type FARGATE."""

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_config(cls, config: AwsConfig) -> "EcsBackend":
        client = boto3.client(
            "ecs",
            region_name=config.aws_region,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
        )
        return cls(client)

    async def _call(self, fn, **kwargs) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, **kwargs))

    def _build_run_task_kwargs(self, request: ExecutionRequest) -> Dict[str, Any]:
        container_override: Dict[str, Any] = {
            "name": request.container_name,
            "environment": [
                {"name": k, "value": v} for k, v in request.environment.items()
            ],
        }
        overrides: Dict[str, Any] = {"containerOverrides": [container_override]}
        if request.profile is not None:
            overrides["cpu"] = request.profile.cpu
            overrides["memory"] = request.profile.memory

        return {
            "cluster": request.cluster,
            "taskDefinition": request.task_definition,
            "launchType": "FARGATE",
            "count": 1,
            "networkConfiguration": {
                "awsvpcConfiguration": {
                    "subnets": request.network.subnets,
                    "securityGroups": request.network.security_groups,
                    "assignPublicIp": "ENABLED" if request.network.assign_public_ip else "DISABLED",
                }
            },
            "overrides": overrides,
        }

    async def run_execution(self, request: ExecutionRequest) -> RunResult:
        kwargs = self._build_run_task_kwargs(request)
        try:
            response = await self._call(self._client.run_task, **kwargs)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            logger.error("ECS RunTask rejected (%s): %s", code, exc)
            raise BackendError(_client_error_message(exc), code=code) from exc
        except BotoCoreError as exc:
            logger.error("ECS RunTask failed: %s", exc)
            raise BackendError(f"Failed to start ECS task: {exc}") from exc

        handles = [t["taskArn"] for t in response.get("tasks", []) if t.get("taskArn")]
        failures = [
            f"{f.get('arn', 'task')}: {f.get('reason', 'unknown')}"
            + (f" ({f['detail']})" if f.get("detail") else "")
            for f in response.get("failures", [])
        ]
        logger.info("ECS RunTask returned %d task(s), %d failure(s)", len(handles), len(failures))
        return RunResult(handles=handles, failures=failures)

    async def describe_execution(
        self, cluster: str, handle: str
    ) -> Optional[ExecutionDescriptor]:
        try:
            response = await self._call(
                self._client.describe_tasks, cluster=cluster, tasks=[handle]
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            raise BackendError(str(exc), code=code) from exc
        except BotoCoreError as exc:
            raise BackendError(str(exc)) from exc

        tasks = response.get("tasks", [])
        if not tasks:
            return None
        task = tasks[0]
        return ExecutionDescriptor(
            phase=task.get("lastStatus", "UNKNOWN"),
            stop_code=task.get("stopCode"),
            stop_reason=task.get("stoppedReason"),
            sub_units=[
                SubUnit(
                    name=c.get("name"),
                    exit_code=c.get("exitCode"),
                    reason=c.get("reason"),
                )
                for c in task.get("containers", [])
            ],
        )
