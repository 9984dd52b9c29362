"""Adapter around the Pulumi Automation API.

Pulumi reports progress through an ``on_output`` callback and blocks until the
operation finishes. The workflow instead consumes progress as an async stream
of lines; :class:`OperationStream` runs the blocking call in the default
executor and hands lines over through a queue.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Generic,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
)

from pulumi import automation as auto

from ..errors import EngineError
from ..models import ChangeSummary

log = logging.getLogger(__name__)

T = TypeVar("T")

Emit = Callable[[str], None]

_DONE = object()


class OperationStream(Generic[T]):
    """Finite, single-use stream of progress lines from one engine operation.

    Iterate it to drive the operation; ``result`` is available once the
    stream is exhausted. Failures of the operation are raised from the
    iteration after every line already emitted has been yielded.
    """

    def __init__(self, operation: Callable[[Emit], T]) -> None:
        self._operation = operation
        self._started = False
        self._finished = False
        self._result: Optional[T] = None

    @property
    def result(self) -> T:
        if not self._finished:
            raise RuntimeError("operation stream has not been consumed")
        return self._result  # type: ignore[return-value]

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("operation stream can only be consumed once")
        self._started = True
        return self._lines()

    async def _lines(self) -> AsyncIterator[str]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def emit(text: str) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, text)

        future = loop.run_in_executor(None, self._operation, emit)
        future.add_done_callback(lambda _: queue.put_nowait(_DONE))

        while True:
            item = await queue.get()
            if item is _DONE:
                break
            text = str(item)
            if not text:
                continue
            # One trailing newline ends the chunk; a bare "\n" is a blank line.
            if text.endswith("\n"):
                text = text[:-1]
            for line in text.split("\n"):
                yield line.rstrip("\r")

        self._result = future.result()
        self._finished = True


@dataclass
class StackHandle:
    """Opaque reference to a selected stack."""

    stack_name: str
    work_dir: Path
    stack: Any = field(repr=False, compare=False, default=None)


class ProvisioningEngine(Protocol):
    async def select_or_create(self, stack_name: str, work_dir: Path) -> StackHandle:
        ...

    async def configure(self, handle: StackHandle, values: Mapping[str, str]) -> None:
        ...

    def refresh(self, handle: StackHandle) -> OperationStream[None]:
        ...

    def up(self, handle: StackHandle) -> OperationStream[ChangeSummary]:
        ...

    async def outputs(self, handle: StackHandle) -> Dict[str, Any]:
        ...


class PulumiEngine:
    """Provisioning engine backed by a Pulumi local workspace."""

    def __init__(self) -> None:
        self._handles: Dict[Tuple[str, Path], StackHandle] = {}

    async def select_or_create(self, stack_name: str, work_dir: Path) -> StackHandle:
        key = (stack_name, Path(work_dir).resolve())
        handle = self._handles.get(key)
        if handle is not None:
            return handle

        stack = await asyncio.to_thread(
            _guard,
            "stack.select",
            auto.create_or_select_stack,
            stack_name=stack_name,
            work_dir=str(key[1]),
        )
        handle = StackHandle(stack_name=stack_name, work_dir=key[1], stack=stack)
        self._handles[key] = handle
        return handle

    async def configure(self, handle: StackHandle, values: Mapping[str, str]) -> None:
        config = {key: auto.ConfigValue(value=value) for key, value in values.items()}
        await asyncio.to_thread(_guard, "stack.configure", handle.stack.set_all_config, config)

    def refresh(self, handle: StackHandle) -> OperationStream[None]:
        def operation(emit: Emit) -> None:
            _guard("stack.refresh", handle.stack.refresh, on_output=emit)

        return OperationStream(operation)

    def up(self, handle: StackHandle) -> OperationStream[ChangeSummary]:
        def operation(emit: Emit) -> ChangeSummary:
            result = _guard("stack.up", handle.stack.up, on_output=emit)
            return ChangeSummary.from_resource_changes(result.summary.resource_changes)

        return OperationStream(operation)

    async def outputs(self, handle: StackHandle) -> Dict[str, Any]:
        outputs = await asyncio.to_thread(_guard, "stack.outputs", handle.stack.outputs)
        return {key: output.value for key, output in outputs.items()}


def _guard(stage: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run an Automation API call, converting its failures to EngineError."""
    try:
        return func(*args, **kwargs)
    except auto.CommandError as exc:
        log.debug("%s failed", stage, exc_info=True)
        raise EngineError(stage, str(exc), stderr=getattr(exc, "stderr", None)) from exc
