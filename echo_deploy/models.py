"""Pydantic models for deploy configuration, probe results and run events."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import constants


class RetrySchedule(BaseModel):
    """Fixed retry schedule; the interval never grows between attempts."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(constants.MAX_ATTEMPTS, gt=0)
    interval: float = Field(constants.RETRY_INTERVAL, ge=0)


class ProbeSettings(BaseModel):
    host: str = "localhost"
    scheme: Literal["http", "https"] = "http"
    path: str = "/"
    settle_delay: float = Field(constants.SETTLE_DELAY, ge=0)
    timeout: float = Field(constants.REQUEST_TIMEOUT, gt=0)
    user_agent: str = constants.USER_AGENT
    expected_status: int = constants.EXPECTED_STATUS
    schedule: RetrySchedule = Field(default_factory=RetrySchedule)

    @field_validator("path")
    @classmethod
    def ensure_leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            return f"/{value}"
        return value

    def url_for(self, host: str, port: int) -> str:
        return f"{self.scheme}://{host}:{port}{self.path}"


class ProbeResult(BaseModel):
    """Terminal outcome of a probe run."""

    model_config = ConfigDict(frozen=True)

    success: bool = Field(..., description="Whether the endpoint answered as expected")
    message: str = Field(..., description="Human-readable summary")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Status/body snapshot on success, error info on failure"
    )


class VerificationTarget(BaseModel):
    """Explicit record handed to a verification strategy."""

    model_config = ConfigDict(frozen=True)

    port: int = Field(..., ge=1, le=65535)
    host: str = "localhost"


class ContainerSettings(BaseModel):
    name: str = constants.CONTAINER_NAME
    image: str = constants.CONTAINER_IMAGE
    internal_port: int = Field(constants.INTERNAL_PORT, ge=1, le=65535)
    external_port: int = Field(constants.EXTERNAL_PORT, ge=1, le=65535)
    env: Dict[str, str] = Field(default_factory=lambda: dict(constants.CONTAINER_ENV))
    command: List[str] = Field(default_factory=list)

    def env_list(self) -> List[str]:
        """Render env vars the way the Docker provider expects them."""
        return [f"{key}={value}" for key, value in self.env.items()]


class VerifierSettings(BaseModel):
    kind: Literal["http", "subprocess"] = "http"
    command: List[str] = Field(
        default_factory=lambda: [sys.executable, "-m", "pytest", "e2e", "-q"]
    )
    port_env_var: str = constants.PORT_ENV_VAR

    @field_validator("command")
    @classmethod
    def ensure_command(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("Verifier command must not be empty")
        return value


class DeployConfig(BaseModel):
    stack_name: str = constants.DEFAULT_STACK_NAME
    work_dir: Path = Path(constants.INFRA_DIRNAME)
    required_output: str = constants.REQUIRED_OUTPUT
    container: ContainerSettings = Field(default_factory=ContainerSettings)
    probe: ProbeSettings = Field(default_factory=ProbeSettings)
    verifier: VerifierSettings = Field(default_factory=VerifierSettings)

    def stack_config(self) -> Dict[str, str]:
        """Flatten container settings into Pulumi stack config values."""
        container = self.container
        return {
            "containerName": container.name,
            "image": container.image,
            "internalPort": str(container.internal_port),
            "externalPort": str(container.external_port),
            "env": json.dumps(container.env),
            "command": json.dumps(container.command),
        }


class ChangeSummary(BaseModel):
    create: int = 0
    update: int = 0
    delete: int = 0
    same: int = 0

    @classmethod
    def from_resource_changes(cls, changes: Optional[Mapping[str, int]]) -> "ChangeSummary":
        changes = changes or {}
        return cls(
            create=changes.get("create", 0) or 0,
            update=changes.get("update", 0) or 0,
            delete=changes.get("delete", 0) or 0,
            same=changes.get("same", 0) or 0,
        )


class StageEvent(BaseModel):
    stage: str
    status: Literal["started", "ok", "failed"]
    detail: Optional[str] = None


class DeployResult(BaseModel):
    ok: bool
    events: List[StageEvent] = Field(default_factory=list)
    outputs: Dict[str, Any] = Field(default_factory=dict)
