"""Tests for host message models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from calmguard.domain.preferences import DomainOverride
from calmguard.domain.schedule import AstronomicalSchedule
from calmguard.messaging.protocol import (
    REQUEST_ADAPTER,
    RESPONSE_ADAPTER,
    Ack,
    CalmStateChanged,
    CalmStateResponse,
    GetCalmState,
    SetDomainOverride,
    UpdateSchedule,
)
from tests.conftest import at


class TestRequests:
    def test_dispatch_on_type(self) -> None:
        parsed = REQUEST_ADAPTER.validate_python({"type": "get_calm_state", "domain": "a.com"})
        assert parsed == GetCalmState(domain="a.com")

    def test_update_schedule_validates_schedule(self) -> None:
        with pytest.raises(ValidationError):
            REQUEST_ADAPTER.validate_python(
                {"type": "update_schedule", "schedule": {"kind": "fixed", "sleep_start": "x"}}
            )

    def test_update_schedule_json(self) -> None:
        message = UpdateSchedule(schedule=AstronomicalSchedule(latitude=1, longitude=2))
        parsed = REQUEST_ADAPTER.validate_json(REQUEST_ADAPTER.dump_json(message))
        assert parsed == message

    def test_remove_override_has_no_override(self) -> None:
        message = SetDomainOverride(domain="a.com")
        assert message.override is None

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            REQUEST_ADAPTER.validate_python({"type": "reboot"})


class TestResponses:
    def test_state_response(self) -> None:
        response = CalmStateResponse(
            calm_active=True,
            current_time=at("23:00"),
            override=DomainOverride(allowed_rule_ids=frozenset({"autoplay-block"})),
        )
        parsed = RESPONSE_ADAPTER.validate_json(RESPONSE_ADAPTER.dump_json(response))
        assert parsed == response

    def test_ack_defaults(self) -> None:
        ack = Ack(ok=True)
        assert ack.error is None
        assert ack.data == {}

    def test_state_changed_defaults(self) -> None:
        message = CalmStateChanged(calm_active=False)
        assert message.overrides_by_domain == {}
        assert message.enabled_rule_ids == []
