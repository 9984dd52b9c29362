"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List, Mapping, Optional, Tuple

import pytest
from fastapi import FastAPI, Request

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from echo_deploy.models import (
    ChangeSummary,
    DeployConfig,
    ProbeSettings,
    RetrySchedule,
    VerificationTarget,
)
from echo_deploy.runtime.engine import OperationStream, StackHandle


class FakeEngine:
    """In-memory provisioning engine recording the order of calls."""

    def __init__(
        self,
        outputs: Optional[Dict[str, Any]] = None,
        calls: Optional[List[str]] = None,
        up_error: Optional[Exception] = None,
    ) -> None:
        self._outputs = {"containerName": "echo-container", "containerPort": 8080} if outputs is None else outputs
        self.calls = calls if calls is not None else []
        self.up_error = up_error
        self.config: Dict[str, str] = {}
        self.handles: Dict[Tuple[str, Path], StackHandle] = {}

    async def select_or_create(self, stack_name: str, work_dir: Path) -> StackHandle:
        self.calls.append("select")
        key = (stack_name, Path(work_dir))
        return self.handles.setdefault(key, StackHandle(stack_name=stack_name, work_dir=Path(work_dir)))

    async def configure(self, handle: StackHandle, values: Mapping[str, str]) -> None:
        self.calls.append("configure")
        self.config.update(values)

    def refresh(self, handle: StackHandle) -> OperationStream[None]:
        def operation(emit):
            self.calls.append("refresh")
            emit("Refreshing (test)\n")
            emit("Resources:\n    2 unchanged\n")

        return OperationStream(operation)

    def up(self, handle: StackHandle) -> OperationStream[ChangeSummary]:
        def operation(emit):
            self.calls.append("up")
            emit("Updating (test)\n")
            if self.up_error is not None:
                raise self.up_error
            emit("+ docker:index:Container echo-container created\n")
            return ChangeSummary(create=2)

        return OperationStream(operation)

    async def outputs(self, handle: StackHandle) -> Dict[str, Any]:
        self.calls.append("outputs")
        return dict(self._outputs)


class RecordingVerifier:
    """Verifier returning a fixed answer and remembering its targets."""

    def __init__(self, ok: bool = True, calls: Optional[List[str]] = None) -> None:
        self.ok = ok
        self.calls = calls if calls is not None else []
        self.targets: List[VerificationTarget] = []

    async def verify(self, target: VerificationTarget) -> bool:
        self.calls.append("verify")
        self.targets.append(target)
        return self.ok


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self, events: Optional[List[Tuple[str, Any]]] = None) -> None:
        self.events = events if events is not None else []

    async def __call__(self, seconds: float) -> None:
        self.events.append(("sleep", seconds))

    @property
    def total(self) -> float:
        return sum(value for kind, value in self.events if kind == "sleep")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def probe_settings() -> ProbeSettings:
    """Probe settings matching the production schedule."""
    return ProbeSettings(
        settle_delay=2.0,
        timeout=5.0,
        schedule=RetrySchedule(max_attempts=10, interval=2.0),
    )


@pytest.fixture
def deploy_config(temp_dir: Path) -> DeployConfig:
    """Deploy config pointing at a scratch work dir."""
    return DeployConfig(stack_name="test", work_dir=temp_dir)


@pytest.fixture
def call_log() -> List[str]:
    return []


@pytest.fixture
def fake_engine(call_log: List[str]) -> FakeEngine:
    return FakeEngine(calls=call_log)


@pytest.fixture
def recording_verifier(call_log: List[str]) -> RecordingVerifier:
    return RecordingVerifier(calls=call_log)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def echo_app():
    """A FastAPI app behaving like the deployed echo server."""
    app = FastAPI()

    @app.api_route("/{path:path}", methods=["GET", "POST"])
    async def echo(request: Request, path: str) -> Dict[str, Any]:
        return {
            "path": f"/{path}",
            "method": request.method,
            "host": request.headers.get("host"),
            "headers": dict(request.headers),
            "query": dict(request.query_params),
        }

    return app


@pytest.fixture
def make_sleeper():
    """Factory for sleep recorders sharing an event list with other fakes."""
    return SleepRecorder


@pytest.fixture
def make_engine(call_log: List[str]):
    """Build a fake engine with custom outputs or an apply failure."""

    def factory(**kwargs: Any) -> FakeEngine:
        return FakeEngine(calls=call_log, **kwargs)

    return factory


@pytest.fixture
def make_verifier(call_log: List[str]):
    def factory(ok: bool = True) -> RecordingVerifier:
        return RecordingVerifier(ok=ok, calls=call_log)

    return factory
