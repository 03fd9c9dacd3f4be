"""Verify saved AWS credentials against S3, ECS and EC2.

Backs GET /api/v1/test-connection. Every check runs even when an earlier one
fails, so the caller sees all problems at once. The boto3 calls are
synchronous; the API runs ConnectionCheck.run in the thread executor.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import AwsConfig

logger = logging.getLogger(__name__)

_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}
_MISSING_TASK_DEFINITION_CODES = {"ClientException", "InvalidParameterException"}


def _error_info(exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        return {"code": error.get("Code"), "message": error.get("Message") or str(exc)}
    return {"code": type(exc).__name__, "message": str(exc)}


@dataclass
class ConnectionReport:
    successes: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "successes": list(self.successes),
            "errors": list(self.errors),
            "details": self.details,
        }


class ConnectionCheck:
    def __init__(self, config: AwsConfig, s3_client: Any, ecs_client: Any, ec2_client: Any):
        self._config = config
        self._s3 = s3_client
        self._ecs = ecs_client
        self._ec2 = ec2_client

    @classmethod
    def from_config(cls, config: AwsConfig) -> "ConnectionCheck":
        session = boto3.Session(
            region_name=config.aws_region,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
        )
        return cls(
            config,
            session.client("s3"),
            session.client("ecs"),
            session.client("ec2"),
        )

    def run(self) -> ConnectionReport:
        report = ConnectionReport()
        self._check_s3(report)
        self._check_ecs(report)
        self._check_ec2(report)
        logger.info(
            "Connection test finished: %d ok, %d error(s)",
            len(report.successes), len(report.errors),
        )
        return report

    def _check_s3(self, report: ConnectionReport) -> None:
        bucket = self._config.s3_bucket_name
        details = report.details.setdefault("s3", {})
        try:
            self._s3.list_buckets()
        except (ClientError, BotoCoreError) as exc:
            info = _error_info(exc)
            details.update(status="error", error=info)
            report.errors.append(f"Failed to connect to AWS S3: {info['message']}")
            return
        details["status"] = "success"

        try:
            self._s3.head_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as exc:
            info = _error_info(exc)
            details["bucketError"] = info
            if info["code"] in _MISSING_BUCKET_CODES:
                report.errors.append(f"S3 bucket '{bucket}' does not exist")
            else:
                report.successes.append("Successfully connected to AWS S3")
                report.errors.append(f"Cannot access S3 bucket '{bucket}': {info['message']}")
            return
        report.successes.append("Successfully connected to AWS S3 and bucket is accessible")

    def _check_ecs(self, report: ConnectionReport) -> None:
        cluster = self._config.ecs_cluster
        task_definition = self._config.ecs_task_definition
        details = report.details.setdefault("ecs", {})
        try:
            response = self._ecs.describe_clusters(clusters=[cluster])
        except (ClientError, BotoCoreError) as exc:
            info = _error_info(exc)
            details.update(status="error", error=info)
            report.errors.append(f"Failed to connect to AWS ECS: {info['message']}")
            return
        details["status"] = "success"

        if not response.get("clusters"):
            details["clusterStatus"] = "not found"
            report.errors.append(f"ECS Cluster '{cluster}' not found")
            return
        details["clusterStatus"] = "found"
        report.successes.append("Successfully connected to AWS ECS and cluster is accessible")

        try:
            described = self._ecs.describe_task_definition(taskDefinition=task_definition)
        except (ClientError, BotoCoreError) as exc:
            info = _error_info(exc)
            details["taskDefinition"] = {"status": "error", "error": info}
            if info["code"] in _MISSING_TASK_DEFINITION_CODES:
                report.errors.append(
                    f"Task definition '{task_definition}' was not found. "
                    "Please register it in AWS ECS."
                )
            else:
                report.errors.append(
                    f"Error accessing task definition '{task_definition}': {info['message']}"
                )
            return
        definition = described.get("taskDefinition", {})
        details["taskDefinition"] = {
            "status": "found",
            "family": definition.get("family"),
            "revision": definition.get("revision"),
            "taskStatus": definition.get("status"),
        }
        report.successes.append(
            f"Task definition '{task_definition}' exists and is accessible"
        )

    def _check_ec2(self, report: ConnectionReport) -> None:
        subnets = list(self._config.ecs_subnets)
        groups = list(self._config.ecs_security_groups)
        details = report.details.setdefault("ec2", {})
        try:
            found_subnets = self._ec2.describe_subnets(SubnetIds=subnets).get("Subnets", [])
            details["subnets"] = {"status": "success", "count": len(found_subnets)}
            if len(found_subnets) == len(subnets):
                report.successes.append("All specified subnets are valid")
            else:
                report.errors.append(
                    f"Some subnets were not found. Expected {len(subnets)}, "
                    f"found {len(found_subnets)}"
                )

            found_groups = self._ec2.describe_security_groups(GroupIds=groups).get(
                "SecurityGroups", []
            )
            details["securityGroups"] = {"status": "success", "count": len(found_groups)}
            if len(found_groups) == len(groups):
                report.successes.append("All specified security groups are valid")
            else:
                report.errors.append(
                    f"Some security groups were not found. Expected {len(groups)}, "
                    f"found {len(found_groups)}"
                )
        except (ClientError, BotoCoreError) as exc:
            info = _error_info(exc)
            details.update(status="error", error=info)
            report.errors.append(f"Failed to validate EC2 resources: {info['message']}")
