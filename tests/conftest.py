"""Pytest fixtures for transcode orchestrator tests."""

import pytest

from app.config import AwsConfig, ConfigStore
from app.errors import BackendError
from app.jobs.registry import JobRegistry


@pytest.fixture
def aws_config() -> AwsConfig:
    return AwsConfig(
        AWS_REGION="ap-south-1",
        AWS_ACCESS_KEY_ID="AKIAEXAMPLE",
        AWS_SECRET_ACCESS_KEY="secret",
        S3_BUCKET_NAME="videos",
        ECS_CLUSTER="arn:aws:ecs:ap-south-1:123456789012:cluster/transcoder",
        ECS_TASK_DEFINITION="video-transcoder:1",
        ECS_SUBNETS="subnet-aaa,subnet-bbb",
        ECS_SECURITY_GROUPS="sg-123",
    )


@pytest.fixture
def config_store(aws_config: AwsConfig) -> ConfigStore:
    return ConfigStore(path=None, default=aws_config)


@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def transport_error() -> BackendError:
    return BackendError("Could not connect to the endpoint URL")
