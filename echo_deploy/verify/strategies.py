"""Interchangeable ways to verify a deployed echo server."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol

import httpx

from ..models import ProbeSettings, VerificationTarget, VerifierSettings
from .prober import Sleep, probe_endpoint

log = logging.getLogger(__name__)


class Verifier(Protocol):
    """Decides whether the service behind ``target`` works."""

    async def verify(self, target: VerificationTarget) -> bool:
        ...


class HttpProbeVerifier:
    """Probe the endpoint inline over HTTP."""

    def __init__(
        self,
        settings: ProbeSettings,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.client = client
        self.sleep = sleep

    async def verify(self, target: VerificationTarget) -> bool:
        url = self.settings.url_for(target.host, target.port)
        result = await probe_endpoint(url, self.settings, client=self.client, sleep=self.sleep)
        if result.success:
            log.info(result.message)
        else:
            log.error("TEST FAILED: %s", result.message)
            if result.details:
                log.error("Error details: %s", result.details)
        return result.success


class SubprocessVerifier:
    """Delegate verification to an external test runner.

    The resolved port reaches the child through its environment; stdio is
    inherited so the runner's report lands in the operator's terminal.
    """

    def __init__(
        self,
        command: List[str],
        port_env_var: str,
        cwd: Optional[Path] = None,
    ) -> None:
        self.command = list(command)
        self.port_env_var = port_env_var
        self.cwd = cwd

    async def verify(self, target: VerificationTarget) -> bool:
        env = os.environ.copy()
        env[self.port_env_var] = str(target.port)
        log.info("Running %s with %s=%s", " ".join(self.command), self.port_env_var, target.port)
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                env=env,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except OSError as exc:
            log.error("Could not start verifier %s: %s", self.command[0], exc)
            return False

        returncode = await process.wait()
        if returncode != 0:
            log.error("Verifier exited with code %d", returncode)
            return False
        return True


def build_verifier(
    settings: VerifierSettings,
    probe: ProbeSettings,
    cwd: Optional[Path] = None,
) -> Verifier:
    if settings.kind == "subprocess":
        return SubprocessVerifier(settings.command, settings.port_env_var, cwd=cwd)
    return HttpProbeVerifier(probe)
