"""TerraformService: init, validate, plan and apply inside the sandbox.

Each operation runs either in an existing working directory (which must
resolve under the sandbox root) or, given raw artifact text, in a fresh
``terraform-<uuid>`` workspace that is removed afterwards. Workspace runs
always ``init`` first.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from infracanvas.domain.credentials import credential_env, credentials_for, validate_credentials
from infracanvas.domain.plan import interpret_plan
from infracanvas.infrastructure.executor import ExecutionRequest, ExecutionResult, ProcessExecutor
from infracanvas.infrastructure.sandbox import PathGuard, SandboxViolation
from infracanvas.services.base import BaseService
from infracanvas.services.deployments import DeploymentRecord, DeploymentStore
from infracanvas.services.result import ErrorCode, ServiceResult
from infracanvas.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

INIT_ARGS = ("-upgrade=false", "-backend=false", "-input=false")
DEFAULT_PLAN_FILE = "tfplan"

_PLAN_FILE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class TerraformService(BaseService):
    """Async terraform operations returning :class:`ServiceResult`.

    Args:
        settings: Resolved settings (sandbox root, binary, limits).
        executor: Pre-built executor; its guard becomes the service's guard.
        store: Optional deployment store; every execution is recorded.
        on_stdout / on_stderr: Streaming callbacks forwarded to the executor.
    """

    def __init__(
        self,
        settings: Any = None,
        *,
        executor: ProcessExecutor | None = None,
        store: DeploymentStore | None = None,
        on_stdout: Callable[[str], None] | None = None,
        on_stderr: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__(settings)
        if executor is None:
            executor = ProcessExecutor(
                self._settings.executor.binary,
                PathGuard(self._settings.sandbox.root),
                kill_grace=self._settings.executor.kill_grace_seconds,
            )
        self._executor = executor
        self._guard = executor.guard
        self._store = store
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr

    @property
    def guard(self) -> PathGuard:
        return self._guard

    # ── Operations ───────────────────────────────────────────────────

    @traced
    async def init(
        self,
        *,
        workdir: Path | str | None = None,
        artifact_text: str | None = None,
        provider: str = "aws",
        credentials: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ServiceResult:
        return await self._run(
            "init",
            list(INIT_ARGS),
            workdir=workdir,
            artifact_text=artifact_text,
            provider=provider,
            credentials=credentials,
            timeout=timeout,
        )

    @traced
    async def validate(
        self,
        *,
        workdir: Path | str | None = None,
        artifact_text: str | None = None,
        provider: str = "aws",
        credentials: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ServiceResult:
        return await self._run(
            "validate",
            ["-no-color"],
            workdir=workdir,
            artifact_text=artifact_text,
            provider=provider,
            credentials=credentials,
            timeout=timeout,
        )

    @traced
    async def plan(
        self,
        *,
        workdir: Path | str | None = None,
        artifact_text: str | None = None,
        provider: str = "aws",
        credentials: Mapping[str, Any] | None = None,
        plan_file: str | None = None,
        timeout: float | None = None,
    ) -> ServiceResult:
        """Run ``terraform plan``; data carries the parsed summary.

        With *plan_file*, the binary plan is read back and returned
        base64-encoded as ``data["plan_file"] = {name, data, size}``.
        """
        args = ["-input=false"]
        if plan_file:
            args += ["-out", plan_file]
        return await self._run(
            "plan",
            args,
            workdir=workdir,
            artifact_text=artifact_text,
            provider=provider,
            credentials=credentials,
            timeout=timeout,
            plan_file=plan_file,
        )

    @traced
    async def apply(
        self,
        *,
        workdir: Path | str | None = None,
        artifact_text: str | None = None,
        provider: str = "aws",
        credentials: Mapping[str, Any] | None = None,
        plan_file: str | None = None,
        plan_file_data: str | None = None,
        auto_approve: bool = False,
        timeout: float | None = None,
    ) -> ServiceResult:
        """Apply a saved plan (*plan_file*, optionally shipped as base64
        *plan_file_data*) or, with *auto_approve*, the current configuration.
        """
        if plan_file_data and not plan_file:
            plan_file = DEFAULT_PLAN_FILE
        if not plan_file and not auto_approve:
            return ServiceResult.failure(
                "terraform_apply",
                ErrorCode.INVALID_INPUT,
                "apply needs a plan file or auto-approve",
            )
        args = ["-input=false", plan_file] if plan_file else ["-input=false", "-auto-approve"]
        return await self._run(
            "apply",
            args,
            workdir=workdir,
            artifact_text=artifact_text,
            provider=provider,
            credentials=credentials,
            timeout=timeout,
            plan_file=plan_file,
            plan_file_data=plan_file_data,
        )

    # ── Shared flow ──────────────────────────────────────────────────

    async def _run(
        self,
        name: str,
        args: list[str],
        *,
        workdir: Path | str | None,
        artifact_text: str | None,
        provider: str,
        credentials: Mapping[str, Any] | None,
        timeout: float | None,
        plan_file: str | None = None,
        plan_file_data: str | None = None,
    ) -> ServiceResult:
        op = f"terraform_{name}"
        if (workdir is None) == (artifact_text is None):
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, "Provide exactly one of a working directory or Terraform code"
            )
        if plan_file is not None and not _PLAN_FILE_NAME.match(plan_file):
            return ServiceResult.failure(
                op, ErrorCode.INVALID_INPUT, f"Plan file must be a bare file name: {plan_file!r}"
            )

        warnings: list[str] = []
        try:
            env = self._environment(provider, credentials, warnings)
        except ValueError as exc:
            return ServiceResult.failure(op, ErrorCode.INVALID_CREDENTIALS, str(exc))

        run = _Run(
            op=op,
            name=name,
            args=args,
            env=env,
            timeout=timeout or self._settings.executor.timeout_seconds,
            plan_file=plan_file,
            plan_file_data=plan_file_data,
            warnings=warnings,
        )
        try:
            if artifact_text is not None:
                with self._guard.workspace() as workspace:
                    (workspace / self._settings.generate.artifact_name).write_text(
                        artifact_text, encoding="utf-8"
                    )
                    return await self._execute(run, workspace, ephemeral=True)
            return await self._execute(run, self._guard.validate(workdir), ephemeral=False)  # type: ignore[arg-type]
        except SandboxViolation as exc:
            return ServiceResult.failure(
                op,
                ErrorCode.SANDBOX_VIOLATION,
                str(exc),
                detail={"path": exc.path, "root": str(exc.root)},
                warnings=warnings,
            )
        except OSError as exc:
            return ServiceResult.failure(
                op,
                ErrorCode.INVALID_INPUT,
                f"Cannot prepare working directory: {exc}",
                warnings=warnings,
            )

    def _environment(
        self,
        provider: str,
        credentials: Mapping[str, Any] | None,
        warnings: list[str],
    ) -> dict[str, str]:
        """Credential + plugin-cache overlay. Raises ValueError on bad credentials."""
        env: dict[str, str] = {}
        sandbox = self._settings.sandbox
        if sandbox.use_plugin_cache:
            try:
                sandbox.plugin_cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                warnings.append(f"Plugin cache disabled: {exc}")
            else:
                env["TF_PLUGIN_CACHE_DIR"] = str(sandbox.plugin_cache_dir)

        if not credentials:
            warnings.append(f"No {provider} credentials provided; using the ambient environment")
            return env

        section = credentials_for(provider, credentials)
        try:
            problems = validate_credentials(provider, section)
        except ValidationError as exc:
            problems = [f"malformed credentials ({exc.error_count()} errors)"]
        if problems:
            msg = f"Invalid {provider} credentials: {', '.join(problems)}"
            raise ValueError(msg)
        env.update(credential_env(provider, section))
        return env

    async def _execute(self, run: _Run, directory: Path, *, ephemeral: bool) -> ServiceResult:
        if run.plan_file_data:
            try:
                (directory / run.plan_file).write_bytes(  # type: ignore[operator]
                    base64.b64decode(run.plan_file_data, validate=True)
                )
            except (binascii.Error, ValueError) as exc:
                return ServiceResult.failure(
                    run.op, ErrorCode.INVALID_INPUT, f"Plan file data is not valid base64: {exc}"
                )

        if ephemeral and run.name != "init":
            prepared = await self._step(run, "init", list(INIT_ARGS), directory, ephemeral=ephemeral)
            if not prepared.success:
                return _failure(run, prepared, directory, ephemeral=ephemeral, step="init")

        result = await self._step(run, run.name, run.args, directory, ephemeral=ephemeral)
        if not result.success:
            return _failure(run, result, directory, ephemeral=ephemeral, step=run.name)

        data = _payload(result, directory, ephemeral=ephemeral)
        if run.name == "plan":
            data["plan"] = interpret_plan(result.stdout).model_dump()
            if run.plan_file:
                plan_path = directory / run.plan_file
                if not plan_path.is_file():
                    return ServiceResult.failure(
                        run.op,
                        ErrorCode.PROCESS_FAILURE,
                        f"Plan succeeded but plan file was not created: {run.plan_file}",
                        data=data,
                        warnings=run.warnings,
                    )
                raw = plan_path.read_bytes()
                data["plan_file"] = {
                    "name": run.plan_file,
                    "data": base64.b64encode(raw).decode("ascii"),
                    "size": len(raw),
                }
        return ServiceResult(ok=True, op=run.op, data=data, warnings=run.warnings)

    async def _step(
        self, run: _Run, command: str, args: list[str], directory: Path, *, ephemeral: bool
    ) -> ExecutionResult:
        request = ExecutionRequest(
            command=command,
            args=args,
            working_directory=directory,
            env=run.env,
            timeout=run.timeout,
            max_output_bytes=self._settings.executor.max_output_bytes,
        )
        logger.info("Running terraform %s in %s", command, directory)
        with trace_span(f"terraform.{command}") as span:
            result = await self._executor.execute(request, on_stdout=self._on_stdout, on_stderr=self._on_stderr)
            if span:
                span.annotate("exit_code", result.exit_code)
        self._record(run.op, result, None if ephemeral else directory)
        run.warnings.extend(_truncation_warnings(result))
        return result

    def _record(self, op: str, result: ExecutionResult, directory: Path | None) -> None:
        if self._store is None:
            return
        plan = interpret_plan(result.stdout).model_dump() if op == "terraform_plan" else None
        self._store.record(
            DeploymentRecord(
                op=op,
                command=result.command,
                working_directory=str(directory) if directory else None,
                success=result.success,
                exit_code=result.exit_code,
                timed_out=result.timed_out,
                duration_ms=result.duration_ms,
                plan=plan,
            )
        )


@dataclass
class _Run:
    """Per-call parameters threaded through the shared flow."""

    op: str
    name: str
    args: list[str]
    env: dict[str, str]
    timeout: float
    plan_file: str | None = None
    plan_file_data: str | None = None
    warnings: list[str] = field(default_factory=list)


def _payload(result: ExecutionResult, directory: Path, *, ephemeral: bool) -> dict[str, Any]:
    return {
        "command": result.command,
        "success": result.success,
        "exit_code": result.exit_code,
        "stdout": result.stdout,
        "stderr": result.stderr,
        "duration_ms": result.duration_ms,
        "timed_out": result.timed_out,
        "stdout_truncated": result.stdout_truncated,
        "stderr_truncated": result.stderr_truncated,
        "working_directory": None if ephemeral else str(directory),
    }


def _truncation_warnings(result: ExecutionResult) -> list[str]:
    warnings = []
    if result.stdout_truncated:
        warnings.append(f"stdout of '{result.command}' was truncated")
    if result.stderr_truncated:
        warnings.append(f"stderr of '{result.command}' was truncated")
    return warnings


def _failure(
    run: _Run,
    result: ExecutionResult,
    directory: Path,
    *,
    ephemeral: bool,
    step: str,
) -> ServiceResult:
    data = _payload(result, directory, ephemeral=ephemeral)
    detail = {
        "step": step,
        "command": result.command,
        "exit_code": result.exit_code,
        "stdout": result.stdout,
        "stderr": result.stderr,
    }
    if result.timed_out:
        code, message = ErrorCode.PROCESS_TIMEOUT, f"terraform {step} timed out after {run.timeout:g}s"
    elif result.not_installed:
        code, message = ErrorCode.TOOL_NOT_INSTALLED, "terraform is not installed or not on PATH"
    else:
        code, message = ErrorCode.PROCESS_FAILURE, f"terraform {step} exited with code {result.exit_code}"
    logger.warning("%s failed: %s", run.op, message)
    return ServiceResult.failure(run.op, code, message, detail=detail, data=data, warnings=run.warnings)


def summarize_plan(stdout: str) -> ServiceResult:
    """Interpret captured ``terraform plan`` output without running anything."""
    summary = interpret_plan(stdout)
    return ServiceResult(
        ok=True,
        op="plan_summary",
        data=summary.model_dump(exclude={"raw_output"}),
    )
