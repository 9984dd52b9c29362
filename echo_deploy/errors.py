"""Exceptions raised by the deploy workflow."""
from __future__ import annotations

from typing import Optional


class DeployError(Exception):
    """Base class for failures that abort a deploy run."""


class ConfigurationError(DeployError):
    """Declared resources and workflow expectations disagree.

    Never retried: a missing output or an invalid config file will not fix
    itself on a second attempt.
    """


class EngineError(DeployError):
    """The provisioning engine failed while running a stack operation."""

    def __init__(self, stage: str, message: str, stderr: Optional[str] = None) -> None:
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.stderr = stderr
