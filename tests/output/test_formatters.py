"""Tests for output-mode dispatch."""

from __future__ import annotations

import json

from infracanvas.output.formatters import OutputSettings, format_result
from infracanvas.services.result import ErrorCode, ServiceResult

RESULT = ServiceResult(ok=True, op="plan_summary", data={"to_add": 1, "to_change": 0, "to_destroy": 0})


class TestFormatResult:
    def test_json(self) -> None:
        payload = json.loads(format_result(RESULT, settings=OutputSettings(json_output=True)))
        assert payload["ok"] is True
        assert payload["data"]["to_add"] == 1

    def test_json_beats_quiet(self) -> None:
        output = format_result(RESULT, settings=OutputSettings(json_output=True, quiet=True))
        assert output.startswith("{")

    def test_quiet(self) -> None:
        assert format_result(RESULT, settings=OutputSettings(quiet=True)) == "+1 ~0 -0"

    def test_rich_default(self) -> None:
        assert format_result(RESULT).startswith("OK  plan_summary")

    def test_json_failure(self) -> None:
        failure = ServiceResult.failure("rules", ErrorCode.INVALID_INPUT, "bad")
        payload = json.loads(format_result(failure, settings=OutputSettings(json_output=True)))
        assert payload["error"]["code"] == "INVALID_INPUT"
