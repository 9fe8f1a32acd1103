"""Tests for ServiceResult and ServiceError."""

import json

import pytest
from pydantic import ValidationError

from calmguard.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="get_state", data={"calm_active": True})
        assert result.ok is True
        assert result.op == "get_state"
        assert result.data == {"calm_active": True}
        assert result.warnings == []
        assert result.error is None

    def test_error_construction(self) -> None:
        error = ServiceError(code="INVALID_INPUT", message="expected HH:mm")
        result = ServiceResult(ok=False, op="update_schedule", error=error)
        assert result.error is not None
        assert result.error.code == "INVALID_INPUT"
        assert result.error.detail == {}

    def test_json_serialization(self) -> None:
        result = ServiceResult(
            ok=True,
            op="set_enabled_rules",
            data={"enabled_rule_ids": ["autoplay-block"]},
            warnings=["not a built-in rule: x"],
        )
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["data"]["enabled_rule_ids"] == ["autoplay-block"]
        assert parsed["warnings"] == ["not a built-in rule: x"]
        assert parsed["error"] is None

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="test")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]


class TestConstructors:
    def test_success(self) -> None:
        result = ServiceResult.success("watch", {"transitions": 2})
        assert result.ok is True
        assert result.data == {"transitions": 2}
        assert result.error is None

    def test_failure_carries_detail(self) -> None:
        result = ServiceResult.failure(
            "update_schedule", "INVALID_INPUT", "expected HH:mm", field="sleep_start"
        )
        assert result.ok is False
        assert result.error == ServiceError(
            code="INVALID_INPUT", message="expected HH:mm", detail={"field": "sleep_start"}
        )
