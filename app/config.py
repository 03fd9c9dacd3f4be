"""Application configuration via environment variables and the saved AWS config."""

import json
import logging
import os
import re
import tempfile
import threading
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Server
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Saved AWS configuration (written by POST /api/v1/config)
    config_path: str = "config.json"

    # Job processing
    poll_interval_seconds: float = 15.0
    initial_poll_delay_seconds: float = 0.0
    dispatch_workers: int = 4
    container_name: str = "video-transcoder"
    assign_public_ip: bool = True

    # Platform-managed defaults, used until a config file is saved
    aws_region: str = ""
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    s3_bucket_name: str = ""
    ecs_cluster: str = ""
    ecs_task_definition: str = ""
    ecs_subnets: str = ""
    ecs_security_groups: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


REGION_PATTERN = re.compile(r"^[a-z]{2}-[a-z]+-\d$")


def _split_csv(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [item.strip() for item in value if item and item.strip()]


class AwsConfig(BaseModel):
    """Credentials and ECS placement used to dispatch transcoding tasks.

    Keys are accepted in the upper-case form the frontend and the saved
    config.json use (AWS_REGION, ECS_SUBNETS, ...) as well as by field name.
    """

    model_config = ConfigDict(populate_by_name=True)

    aws_region: str = Field("", alias="AWS_REGION")
    aws_access_key_id: str = Field("", alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field("", alias="AWS_SECRET_ACCESS_KEY")
    s3_bucket_name: str = Field("", alias="S3_BUCKET_NAME")
    ecs_cluster: str = Field("", alias="ECS_CLUSTER")
    ecs_task_definition: str = Field("", alias="ECS_TASK_DEFINITION")
    ecs_subnets: List[str] = Field(default_factory=list, alias="ECS_SUBNETS")
    ecs_security_groups: List[str] = Field(default_factory=list, alias="ECS_SECURITY_GROUPS")

    @field_validator("ecs_subnets", "ecs_security_groups", mode="before")
    @classmethod
    def _normalize_list(cls, value: Any) -> List[str]:
        return _split_csv(value)

    @field_validator(
        "aws_region",
        "aws_access_key_id",
        "aws_secret_access_key",
        "s3_bucket_name",
        "ecs_cluster",
        "ecs_task_definition",
        mode="before",
    )
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value or "").strip()

    def missing_fields(self) -> List[str]:
        """Aliases of every required field that is empty."""
        missing = []
        for name, info in type(self).model_fields.items():
            if not getattr(self, name):
                missing.append(info.alias or name)
        return missing

    @property
    def is_configured(self) -> bool:
        return not self.missing_fields()

    def format_errors(self) -> List[str]:
        """Validate field formats. Returns a list of human-readable problems."""
        errors = []
        if self.aws_region and not REGION_PATTERN.match(self.aws_region):
            errors.append("Invalid AWS region format (example: ap-south-1)")
        if any(not s.startswith("subnet-") for s in self.ecs_subnets):
            errors.append("Invalid subnet format (example: subnet-xxx,subnet-yyy)")
        if any(not sg.startswith("sg-") for sg in self.ecs_security_groups):
            errors.append("Invalid security group format (example: sg-xxx,sg-yyy)")
        return errors

    def public_view(self) -> Dict[str, Any]:
        """Config as the frontend sees it, without the secret key."""
        data = self.model_dump(by_alias=True)
        data.pop("AWS_SECRET_ACCESS_KEY", None)
        data["ECS_SUBNETS"] = ",".join(self.ecs_subnets)
        data["ECS_SECURITY_GROUPS"] = ",".join(self.ecs_security_groups)
        return data

    @classmethod
    def from_settings(cls, s: Settings) -> "AwsConfig":
        return cls(
            aws_region=s.aws_region,
            aws_access_key_id=s.aws_access_key_id,
            aws_secret_access_key=s.aws_secret_access_key,
            s3_bucket_name=s.s3_bucket_name,
            ecs_cluster=s.ecs_cluster,
            ecs_task_definition=s.ecs_task_definition,
            ecs_subnets=s.ecs_subnets,
            ecs_security_groups=s.ecs_security_groups,
        )


class ConfigStore:
    """Holds the active AWS config and persists it to a JSON file.

    Reads are synchronous and return an immutable snapshot, so a config
    saved while jobs are in flight only affects later submissions.
    """

    def __init__(self, path: Optional[str] = None, default: Optional[AwsConfig] = None):
        self._path = path
        self._lock = threading.Lock()
        self._config = default or AwsConfig()

    def load(self) -> None:
        """Load config.json if present. A broken file is logged and ignored."""
        if not self._path or not os.path.exists(self._path):
            return
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            config = AwsConfig.model_validate(data)
        except (OSError, ValueError) as exc:
            logger.error("Error loading configuration from %s: %s", self._path, exc)
            return
        with self._lock:
            self._config = config
        logger.info("Loaded configuration from %s", self._path)

    def get(self) -> AwsConfig:
        with self._lock:
            return self._config

    def save(self, config: AwsConfig) -> None:
        """Persist and activate a config. Raises ValueError if it is incomplete or malformed.

        The file is written to a temporary sibling and moved into place; the
        active config only changes once the write has succeeded.
        """
        missing = config.missing_fields()
        if missing:
            raise ValueError("Missing required configuration fields: " + ", ".join(missing))
        errors = config.format_errors()
        if errors:
            raise ValueError("; ".join(errors))

        if self._path:
            self._write(config)
        with self._lock:
            self._config = config
        logger.info("Configuration saved")

    def _write(self, config: AwsConfig) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".config-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(config.model_dump(by_alias=True), fh, indent=2)
            os.replace(tmp_path, self._path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
