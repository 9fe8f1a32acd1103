"""Command group: replace the calm schedule."""

from __future__ import annotations

from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click
from pydantic import ValidationError

from calmguard.commands._base import CalmGroup
from calmguard.commands._context import ack_result, invalid_result

if TYPE_CHECKING:
    from calmguard.commands._context import AppContext
    from calmguard.domain.schedule import AstronomicalSchedule, FixedSchedule


@click.group(
    cls=CalmGroup,
    examples="""\
  calmguard schedule fixed 22:00 07:00
  calmguard schedule fixed 23:30 06:45 --timezone Europe/Berlin
  calmguard schedule sun 52.52 13.40 --before 30 --after 60""",
)
def schedule() -> None:
    """Set when calm mode is active."""


def _send(app: AppContext, new_schedule: FixedSchedule | AstronomicalSchedule) -> None:
    from calmguard.messaging.protocol import UpdateSchedule

    ack = app.exchange(UpdateSchedule(schedule=new_schedule))
    app.emit(
        ack_result(
            "update_schedule",
            ack,
            {"schedule": new_schedule.model_dump(mode="json")},
        )
    )


@schedule.command()
@click.argument("start")
@click.argument("end")
@click.option("--timezone", "tz_name", default=None, help="IANA zone (default: local time).")
@click.pass_obj
def fixed(app: AppContext, start: str, end: str, tz_name: str | None) -> None:
    """Calm from START to END (HH:mm), crossing midnight if START > END."""
    from calmguard.domain.schedule import FixedSchedule

    try:
        if tz_name is not None:
            ZoneInfo(tz_name)
        new_schedule = FixedSchedule(sleep_start=start, sleep_end=end, timezone=tz_name)
    except (ValidationError, ZoneInfoNotFoundError, ValueError) as exc:
        app.emit(invalid_result("update_schedule", exc))
        return
    _send(app, new_schedule)


@schedule.command()
@click.argument("latitude", type=float)
@click.argument("longitude", type=float)
@click.option("--before", default=0, type=int, help="Minutes before sunset to start.")
@click.option("--after", default=0, type=int, help="Minutes after sunrise to end.")
@click.pass_obj
def sun(app: AppContext, latitude: float, longitude: float, before: int, after: int) -> None:
    """Calm from sunset to sunrise at LATITUDE LONGITUDE."""
    from calmguard.domain.schedule import AstronomicalSchedule

    try:
        new_schedule = AstronomicalSchedule(
            latitude=latitude,
            longitude=longitude,
            offset_before_sunset_minutes=before,
            offset_after_sunrise_minutes=after,
        )
    except ValidationError as exc:
        app.emit(invalid_result("update_schedule", exc))
        return
    _send(app, new_schedule)
