"""Sandboxed subprocess executor for the terraform CLI.

Every call follows the same fixed sequence: path guard validation, working
directory check, spawn. The executor never raises for subprocess-level
conditions; timeouts, spawn failures and non-zero exits all come back as an
:class:`ExecutionResult`. Only :class:`~.sandbox.SandboxViolation` is raised,
and always before anything is spawned.

All state (buffers, timer, escalation flag) is local to one call, so
concurrent calls in distinct working directories do not interact.
"""

from __future__ import annotations

import asyncio
import codecs
import os
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeAlias

import structlog
from pydantic import BaseModel, ConfigDict, Field

from infracanvas.infrastructure.sandbox import PathGuard, default_sandbox_root

log = structlog.get_logger(__name__)

TRUNCATION_MARKER = "\n... [output truncated]"
TIMEOUT_EXIT_CODE = 124
KILL_GRACE_SECONDS = 5.0
DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
NOT_INSTALLED_MARKERS = ("No such file or directory", "not found", "ENOENT", "cannot find")

_READ_CHUNK = 64 * 1024

OutputCallback: TypeAlias = Callable[[str], None]
Spawn: TypeAlias = Callable[..., Awaitable[asyncio.subprocess.Process]]


class ExecutionRequest(BaseModel):
    """One ``<binary> <command> [args...]`` invocation."""

    model_config = ConfigDict(frozen=True)

    command: str
    args: list[str] = Field(default_factory=list)
    working_directory: Path
    env: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)


class ExecutionResult(BaseModel):
    """Outcome of one invocation, successful or not."""

    model_config = ConfigDict(frozen=True)

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    timed_out: bool = False
    command: str = ""
    duration_ms: int = 0
    # set only when the binary could not be spawned at all
    not_installed: bool = False


class EscalationState(StrEnum):
    RUNNING = "running"
    SIGNALED = "signaled"
    KILLED = "killed"
    EXITED = "exited"


class _Escalation:
    """Timeout FSM: RUNNING → SIGNALED → KILLED → EXITED.

    A single timer handle is live at any time. ``escalated`` flips once, on
    the first timeout, and guards against signalling twice.
    """

    def __init__(self, process: asyncio.subprocess.Process, grace: float) -> None:
        self._process = process
        self._grace = grace
        self._loop = asyncio.get_running_loop()
        self._handle: asyncio.TimerHandle | None = None
        self.state = EscalationState.RUNNING
        self.escalated = False

    def arm(self, timeout: float) -> None:
        self._handle = self._loop.call_later(timeout, self._on_timeout)

    def _on_timeout(self) -> None:
        if self.escalated or self.state is not EscalationState.RUNNING:
            return
        self.escalated = True
        self.state = EscalationState.SIGNALED
        log.warning("executor.timeout", pid=self._process.pid, action="terminate")
        self._signal(self._process.terminate)
        self._handle = self._loop.call_later(self._grace, self._on_grace_expired)

    def _on_grace_expired(self) -> None:
        if self.state is not EscalationState.SIGNALED:
            return
        self.state = EscalationState.KILLED
        log.warning("executor.timeout", pid=self._process.pid, action="kill")
        self._signal(self._process.kill)

    def _signal(self, send: Callable[[], None]) -> None:
        try:
            send()
        except ProcessLookupError:
            log.debug("executor.signal_skipped", pid=self._process.pid, reason="already exited")

    def exited(self) -> None:
        self.state = EscalationState.EXITED
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class _StreamCapture:
    """Per-stream buffer capped at *limit* bytes; the marker is appended once."""

    def __init__(self, limit: int, callback: OutputCallback | None = None) -> None:
        self.limit = limit
        self.size = 0
        self.truncated = False
        self._chunks: list[bytes] = []
        self._callback = callback
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> None:
        if self.truncated:
            return
        remaining = self.limit - self.size
        if len(chunk) > remaining:
            chunk = chunk[:remaining]
            self.truncated = True
        if chunk:
            self._chunks.append(chunk)
            self.size += len(chunk)
            if self._callback is not None:
                self._callback(self._decoder.decode(chunk))

    def text(self) -> str:
        captured = b"".join(self._chunks).decode("utf-8", errors="replace")
        return captured + TRUNCATION_MARKER if self.truncated else captured


class ProcessExecutor:
    """Runs the configured binary inside a :class:`PathGuard` sandbox.

    Args:
        binary: Executable name or path (looked up on ``PATH``).
        guard: Sandbox the working directory must resolve into.
        kill_grace: Seconds between SIGTERM and SIGKILL after a timeout.
        spawn: Process factory; defaults to ``asyncio.create_subprocess_exec``.
    """

    def __init__(
        self,
        binary: str = "terraform",
        guard: PathGuard | None = None,
        *,
        kill_grace: float = KILL_GRACE_SECONDS,
        spawn: Spawn | None = None,
    ) -> None:
        self.binary = binary
        self.guard = guard or PathGuard(default_sandbox_root())
        self.kill_grace = kill_grace
        self._spawn = spawn or asyncio.create_subprocess_exec

    async def execute(
        self,
        request: ExecutionRequest,
        *,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> ExecutionResult:
        """Run *request* to completion, timeout, or spawn failure.

        Raises:
            SandboxViolation: The working directory is outside the sandbox.
        """
        workdir = self.guard.validate(request.working_directory)
        command = " ".join([self.binary, request.command, *request.args])
        started = time.monotonic()

        if not workdir.is_dir():
            return self._failed(command, f"Working directory does not exist: {workdir}", started)

        log.info("executor.spawn", command=command, cwd=str(workdir))
        try:
            process = await self._spawn(
                self.binary,
                request.command,
                *request.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(workdir),
                env={**os.environ, **request.env},
            )
        except OSError as exc:
            message = str(exc)
            missing = isinstance(exc, FileNotFoundError) or any(m in message for m in NOT_INSTALLED_MARKERS)
            log.warning("executor.spawn_failed", command=command, error=message, not_installed=missing)
            return self._failed(command, message, started, not_installed=missing)

        if process.stdin is not None:
            process.stdin.close()

        stdout = _StreamCapture(request.max_output_bytes, on_stdout)
        stderr = _StreamCapture(request.max_output_bytes, on_stderr)
        escalation = _Escalation(process, self.kill_grace)
        escalation.arm(request.timeout)
        try:
            pumps = asyncio.gather(
                _pump(process.stdout, stdout),
                _pump(process.stderr, stderr),
            )
            returncode = await process.wait()
            # the child is gone; a grandchild holding the pipes open must not
            # trip the timer while the streams drain
            escalation.exited()
            try:
                await asyncio.wait_for(pumps, timeout=self.kill_grace)
            except TimeoutError:
                log.warning("executor.drain_timeout", command=command)
        finally:
            escalation.exited()

        duration_ms = _elapsed_ms(started)
        for name, capture in (("stdout", stdout), ("stderr", stderr)):
            if capture.truncated:
                log.warning("executor.truncated", stream=name, limit=request.max_output_bytes)

        timed_out = escalation.escalated
        if timed_out:
            exit_code = TIMEOUT_EXIT_CODE
            timeout_ms = int(request.timeout * 1000)
            err_text = f"Command timed out after {timeout_ms} ms. {stderr.text()}"
        else:
            # negative return codes mean the child died from a signal
            exit_code = returncode if returncode is not None and returncode >= 0 else 1
            err_text = stderr.text()

        log.info("executor.exit", command=command, exit_code=exit_code, duration_ms=duration_ms)
        return ExecutionResult(
            success=exit_code == 0 and not timed_out,
            stdout=stdout.text(),
            stderr=err_text,
            exit_code=exit_code,
            stdout_truncated=stdout.truncated,
            stderr_truncated=stderr.truncated,
            timed_out=timed_out,
            command=command,
            duration_ms=duration_ms,
        )

    @staticmethod
    def _failed(command: str, message: str, started: float, *, not_installed: bool = False) -> ExecutionResult:
        return ExecutionResult(
            success=False,
            stderr=message,
            exit_code=1,
            command=command,
            duration_ms=_elapsed_ms(started),
            not_installed=not_installed,
        )


async def _pump(stream: asyncio.StreamReader | None, capture: _StreamCapture) -> None:
    # keep draining after truncation so the child never blocks on a full pipe
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK):
        capture.feed(chunk)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


async def execute(
    request: ExecutionRequest,
    *,
    binary: str = "terraform",
    guard: PathGuard | None = None,
    **kwargs: Any,
) -> ExecutionResult:
    """Module-level convenience wrapper around :meth:`ProcessExecutor.execute`."""
    return await ProcessExecutor(binary, guard).execute(request, **kwargs)
