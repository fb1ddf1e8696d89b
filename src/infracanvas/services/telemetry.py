"""Telemetry primitives: Span, @traced, trace_span.

Off unless the CLI runs with ``--verbose``. When on, each traced service
call becomes the root of a span tree; nested ``trace_span`` blocks (one per
terraform step, one per generation build) hang under it, and the finished
tree lands in ``ServiceResult.meta["telemetry"]``.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from infracanvas.services.result import ServiceResult

log = structlog.get_logger("infracanvas.telemetry")

_enabled: ContextVar[bool] = ContextVar("infracanvas_telemetry", default=False)
_active: ContextVar[Span | None] = ContextVar("infracanvas_span", default=None)


@dataclass(slots=True)
class Span:
    """One timed region; ``children`` are the regions opened inside it."""

    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    started_ns: int = field(default_factory=time.perf_counter_ns)
    ended_ns: int | None = None

    @property
    def duration_ms(self) -> float:
        if self.ended_ns is None:
            return 0.0
        return (self.ended_ns - self.started_ns) / 1_000_000

    def end(self) -> None:
        if self.ended_ns is None:
            self.ended_ns = time.perf_counter_ns()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.children:
            out["children"] = [child.to_dict() for child in self.children]
        return out


@contextmanager
def _activate(span: Span) -> Iterator[Span]:
    token = _active.set(span)
    try:
        yield span
    finally:
        span.end()
        _active.reset(token)


@contextmanager
def trace_span(name: str) -> Iterator[Span | None]:
    """Time a block under the active span. Yields None when nothing is traced."""
    parent = _active.get() if _enabled.get() else None
    if parent is None:
        yield None
        return
    child = Span(name=name)
    parent.children.append(child)
    with _activate(child):
        yield child


def _attach(span: Span, result: Any) -> Any:
    log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        children=len(span.children),
    )
    if not isinstance(result, ServiceResult):
        return result
    meta = dict(result.meta or {})
    meta["telemetry"] = span.to_dict()
    return result.model_copy(update={"meta": meta})


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Make *func* the root span of its call when telemetry is on.

    Coroutine functions get an async wrapper so the span covers the awaited
    body, not just coroutine creation.
    """
    name = func.__qualname__

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def run_async(*args: _P.args, **kwargs: _P.kwargs) -> Any:
            if not _enabled.get():
                return await func(*args, **kwargs)  # type: ignore[misc]
            with _activate(Span(name=name)) as root:
                result = await func(*args, **kwargs)  # type: ignore[misc]
            return _attach(root, result)

        return run_async  # type: ignore[return-value]

    @functools.wraps(func)
    def run(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)
        with _activate(Span(name=name)) as root:
            result = func(*args, **kwargs)
        return _attach(root, result)

    return run


def enable_telemetry() -> None:
    """Turn span collection on for the current context."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    if not _enabled.get():
        return None
    return _active.get()
