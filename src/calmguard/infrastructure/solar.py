"""Sunrise/sunset provider backed by the ``astral`` library."""

from __future__ import annotations

from datetime import date, tzinfo

from astral import Observer
from astral.sun import sunrise, sunset

from calmguard.domain.windows import SolarTimes, SolarUnavailableError


class AstralCalculator:
    """Compute local sunrise and sunset with :mod:`astral.sun`.

    astral raises ``ValueError`` when the sun stays above or below the
    horizon all day (polar day/night); that is reported as
    :class:`SolarUnavailableError`.
    """

    def times(self, day: date, latitude: float, longitude: float, tz: tzinfo) -> SolarTimes:
        observer = Observer(latitude=latitude, longitude=longitude)
        try:
            return SolarTimes(
                sunrise=sunrise(observer, date=day, tzinfo=tz),
                sunset=sunset(observer, date=day, tzinfo=tz),
            )
        except ValueError as exc:
            msg = f"no sunrise/sunset at ({latitude}, {longitude}) on {day}: {exc}"
            raise SolarUnavailableError(msg) from exc
