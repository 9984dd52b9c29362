"""Deploy runner: bring the stack up, read its outputs, verify the service."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..errors import ConfigurationError
from ..models import DeployConfig, DeployResult, StageEvent, VerificationTarget
from ..runtime.engine import OperationStream, ProvisioningEngine
from ..verify.strategies import Verifier

log = logging.getLogger(__name__)

Sink = Callable[[str], None]


def _print_line(line: str) -> None:
    print(line, flush=True)


@dataclass
class DeployRunner:
    config: DeployConfig
    engine: ProvisioningEngine
    verifier: Verifier
    sink: Sink = _print_line
    events: List[StageEvent] = field(default_factory=list)

    async def run(self) -> DeployResult:
        """Run every stage in order; any exception aborts the run and propagates.

        Nothing is rolled back on failure; the engine owns stack state.
        """
        self.events = []
        config = self.config
        stage: Optional[str] = None
        try:
            stage = "stack.select"
            self._record(stage, "started", config.stack_name)
            handle = await self.engine.select_or_create(config.stack_name, config.work_dir)
            self._record(stage, "ok", f"{config.stack_name} in {config.work_dir}")

            stage = "stack.configure"
            self._record(stage, "started")
            values = config.stack_config()
            await self.engine.configure(handle, values)
            self._record(stage, "ok", ", ".join(sorted(values)))

            stage = "stack.refresh"
            self._record(stage, "started")
            await self._drain(self.engine.refresh(handle))
            self._record(stage, "ok")

            stage = "stack.up"
            self._record(stage, "started")
            operation = self.engine.up(handle)
            await self._drain(operation)
            summary = operation.result
            self._record(
                stage,
                "ok",
                f"created={summary.create} updated={summary.update} deleted={summary.delete}",
            )

            stage = "stack.outputs"
            outputs = await self.engine.outputs(handle)
            for key, value in outputs.items():
                log.info("Output %s: %s", key, value)
            port = self._required_port(outputs)
            self._record(stage, "ok", f"{config.required_output}={port}")

            stage = "verify"
            target = VerificationTarget(port=port, host=config.probe.host)
            self._record(stage, "started", f"port={port}")
            ok = await self.verifier.verify(target)
            self._record(stage, "ok" if ok else "failed")
        except Exception as exc:
            if stage is not None:
                self._record(stage, "failed", str(exc))
            raise

        return DeployResult(ok=ok, events=list(self.events), outputs=outputs)

    # ------------------------------------------------------------------ helpers

    async def _drain(self, stream: OperationStream[Any]) -> None:
        async for line in stream:
            self.sink(line)

    def _required_port(self, outputs: Dict[str, Any]) -> int:
        key = self.config.required_output
        value = outputs.get(key)
        if not value:
            raise ConfigurationError(f"Required output '{key}' not found in stack outputs")
        try:
            port = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Output '{key}' is not a port number: {value!r}") from exc
        if not 1 <= port <= 65535:
            raise ConfigurationError(f"Output '{key}' is out of the port range: {port}")
        return port

    def _record(self, stage: str, status: str, detail: str | None = None) -> None:
        event = StageEvent(stage=stage, status=status, detail=detail)
        self.events.append(event)
        if status == "failed":
            log.error("%s %s%s", stage, status, f": {detail}" if detail else "")
        else:
            log.info("%s %s%s", stage, status, f": {detail}" if detail else "")
