"""Outcome of a calmguard command, ready for rendering.

Commands translate clock-host replies (:class:`~calmguard.messaging.protocol.Ack`,
:class:`~calmguard.messaging.protocol.CalmStateResponse`) or rejected input
into a :class:`ServiceResult`; the output layer turns it into rich text or
JSON.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Why an operation failed: a stable ``code`` plus a readable message."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Result of one operation (``get_state``, ``update_schedule``, ...).

    ``data`` is only meaningful when ``ok``; ``error`` only when not.
    ``warnings`` are shown on stderr and never fail the command.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def success(cls, op: str, data: dict[str, Any] | None = None) -> ServiceResult:
        return cls(ok=True, op=op, data=data or {})

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )
