"""Tests for spans, @traced and trace_span."""

from __future__ import annotations

import asyncio

import pytest

from infracanvas.services.result import ServiceResult
from infracanvas.services.telemetry import (
    Span,
    enable_telemetry,
    get_current_span,
    trace_span,
    traced,
)


class _Service:
    @traced
    def work(self) -> ServiceResult:
        with trace_span("step") as span:
            if span:
                span.annotate("items", 3)
            with trace_span("inner"):
                pass
        return ServiceResult(ok=True, op="work")

    @traced
    async def async_work(self) -> ServiceResult:
        with trace_span("await"):
            await asyncio.sleep(0)
        return ServiceResult(ok=True, op="async_work", meta={"kept": True})

    @traced
    def plain(self) -> int:
        return 7

    @traced
    def broken(self) -> ServiceResult:
        raise RuntimeError("boom")


class TestDisabled:
    def test_no_meta(self) -> None:
        assert _Service().work().meta is None

    def test_trace_span_yields_none(self) -> None:
        with trace_span("x") as span:
            assert span is None
        assert get_current_span() is None


class TestEnabled:
    def test_span_tree(self) -> None:
        enable_telemetry()
        result = _Service().work()
        assert result.meta is not None
        tree = result.meta["telemetry"]
        assert tree["name"] == "_Service.work"
        (step,) = tree["children"]
        assert step["name"] == "step"
        assert step["annotations"] == {"items": 3}
        assert step["children"][0]["name"] == "inner"
        assert tree["duration_ms"] >= step["duration_ms"]

    def test_async_method(self) -> None:
        enable_telemetry()
        result = asyncio.run(_Service().async_work())
        assert result.meta is not None
        assert result.meta["kept"] is True
        assert result.meta["telemetry"]["children"][0]["name"] == "await"

    def test_non_result_passthrough(self) -> None:
        enable_telemetry()
        assert _Service().plain() == 7

    def test_exception_resets_current_span(self) -> None:
        enable_telemetry()
        with pytest.raises(RuntimeError):
            _Service().broken()
        assert get_current_span() is None


class TestSpan:
    def test_duration_zero_until_ended(self) -> None:
        span = Span(name="s")
        assert span.duration_ms == 0.0
        span.end()
        assert span.duration_ms >= 0.0

    def test_to_dict_omits_empty(self) -> None:
        span = Span(name="s")
        span.end()
        assert set(span.to_dict()) == {"name", "duration_ms"}
