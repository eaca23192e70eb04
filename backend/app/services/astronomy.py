"""Approximate lunar phases and solar seasons as local calendar dates.

The lunar series starts from the mean new moon of 2000-01-06 (JDE
2451550.09766) and steps by the mean synodic month, refined with the
principal periodic terms from Meeus, *Astronomical Algorithms* ch. 49.
Solstices and equinoxes use the Meeus ch. 27 mean polynomials for
1000-3000 plus the 24 periodic terms.

This is an approximation: the instant is good to a few minutes, and the
documented contract for the returned local date is +/- 1 day. Results are
deterministic and monotonic in ``after_date``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum

from app.services.day_boundary import DEFAULT_TIMEZONE, ResolveTimezone

SYNODIC_MONTH_DAYS = 29.530588853
REFERENCE_NEW_MOON_JDE = 2451550.09766
J2000_JD = 2451545.0
J2000_UTC = datetime(2000, 1, 1, 12, 0, tzinfo=timezone.utc)
# TT - UT, close enough across the supported range for day-level output.
DELTA_T_DAYS = 69.0 / 86400.0

MIN_SUPPORTED_DATE = date(1900, 1, 1)
MAX_SUPPORTED_DATE = date(2200, 12, 31)


class DateOutOfRangeError(ValueError):
    pass


class AstronomicalEventKind(str, Enum):
    NewMoon = "new_moon"
    FullMoon = "full_moon"
    SolsticeWinter = "solstice_winter"
    EquinoxSpring = "equinox_spring"
    SolsticeSummer = "solstice_summer"
    EquinoxAutumn = "equinox_autumn"


LUNAR_EVENT_KINDS = (AstronomicalEventKind.NewMoon, AstronomicalEventKind.FullMoon)
SOLAR_EVENT_KINDS = (
    AstronomicalEventKind.EquinoxSpring,
    AstronomicalEventKind.SolsticeSummer,
    AstronomicalEventKind.EquinoxAutumn,
    AstronomicalEventKind.SolsticeWinter,
)


@dataclass(frozen=True)
class AstronomicalEvent:
    Kind: AstronomicalEventKind
    Date: date


# (new moon coeff, full moon coeff, power of E, multipliers of M', M, F, Omega)
_LUNAR_PHASE_TERMS = (
    (-0.40720, -0.40614, 0, (1, 0, 0, 0)),
    (0.17241, 0.17302, 1, (0, 1, 0, 0)),
    (0.01608, 0.01614, 0, (2, 0, 0, 0)),
    (0.01039, 0.01043, 0, (0, 0, 2, 0)),
    (0.00739, 0.00734, 1, (1, -1, 0, 0)),
    (-0.00514, -0.00515, 1, (1, 1, 0, 0)),
    (0.00208, 0.00209, 2, (0, 2, 0, 0)),
    (-0.00111, -0.00111, 0, (1, 0, -2, 0)),
    (-0.00057, -0.00057, 0, (1, 0, 2, 0)),
    (0.00056, 0.00056, 1, (2, 1, 0, 0)),
    (-0.00042, -0.00042, 0, (3, 0, 0, 0)),
    (0.00042, 0.00042, 1, (0, 1, 2, 0)),
    (0.00038, 0.00038, 1, (0, 1, -2, 0)),
    (-0.00024, -0.00024, 1, (2, -1, 0, 0)),
    (-0.00017, -0.00017, 0, (0, 0, 0, 1)),
    (-0.00007, -0.00007, 0, (1, 2, 0, 0)),
    (0.00004, 0.00004, 0, (2, 0, -2, 0)),
    (0.00004, 0.00004, 0, (0, 3, 0, 0)),
    (0.00003, 0.00003, 0, (1, 1, -2, 0)),
    (0.00003, 0.00003, 0, (2, 0, 2, 0)),
    (-0.00003, -0.00003, 0, (1, 1, 2, 0)),
    (0.00003, 0.00003, 0, (1, -1, 2, 0)),
    (-0.00002, -0.00002, 0, (1, -1, -2, 0)),
    (-0.00002, -0.00002, 0, (3, 1, 0, 0)),
    (0.00002, 0.00002, 0, (4, 0, 0, 0)),
)

_SOLAR_MEAN_TERMS = {
    AstronomicalEventKind.EquinoxSpring: (2451623.80984, 365242.37404, 0.05169, -0.00411, -0.00057),
    AstronomicalEventKind.SolsticeSummer: (2451716.56767, 365241.62603, 0.00325, 0.00888, -0.00030),
    AstronomicalEventKind.EquinoxAutumn: (2451810.21715, 365242.01767, -0.11575, 0.00337, 0.00078),
    AstronomicalEventKind.SolsticeWinter: (2451900.05952, 365242.74049, -0.06223, -0.00823, 0.00032),
}

_SOLAR_PERIODIC_TERMS = (
    (485, 324.96, 1934.136),
    (203, 337.23, 32964.467),
    (199, 342.08, 20.186),
    (182, 27.85, 445267.112),
    (156, 73.14, 45036.886),
    (136, 171.52, 22518.443),
    (77, 222.54, 65928.934),
    (74, 296.72, 3034.906),
    (70, 243.58, 9037.513),
    (58, 119.81, 33718.147),
    (52, 297.17, 150.678),
    (50, 21.02, 2281.226),
    (45, 247.54, 29929.562),
    (44, 325.15, 31555.956),
    (29, 60.93, 4443.417),
    (18, 155.12, 67555.328),
    (17, 288.79, 4562.452),
    (16, 198.04, 62894.029),
    (14, 199.76, 31436.921),
    (12, 95.39, 14577.848),
    (12, 287.11, 31931.756),
    (12, 320.81, 34777.259),
    (9, 227.73, 1222.114),
    (8, 15.45, 16859.074),
)


def _EnsureSupported(value: date) -> None:
    if value < MIN_SUPPORTED_DATE or value > MAX_SUPPORTED_DATE:
        raise DateOutOfRangeError(
            f"Date {value.isoformat()} is outside the supported range "
            f"{MIN_SUPPORTED_DATE.isoformat()}..{MAX_SUPPORTED_DATE.isoformat()}."
        )


def _JulianDayAtMidnight(value: date) -> float:
    return (value - date(2000, 1, 1)).days + 2451544.5


def _JdeToUtc(jde: float) -> datetime:
    return J2000_UTC + timedelta(days=jde - DELTA_T_DAYS - J2000_JD)


def _LunarPhaseJde(k: float, full: bool) -> float:
    t = k / 1236.85
    jde = (
        REFERENCE_NEW_MOON_JDE
        + SYNODIC_MONTH_DAYS * k
        + 0.00015437 * t**2
        - 0.000000150 * t**3
        + 0.00000000073 * t**4
    )
    e = 1 - 0.002516 * t - 0.0000074 * t**2
    sun_anomaly = math.radians(2.5534 + 29.10535670 * k - 0.0000014 * t**2 - 0.00000011 * t**3)
    moon_anomaly = math.radians(
        201.5643 + 385.81693528 * k + 0.0107582 * t**2 + 0.00001238 * t**3 - 0.000000058 * t**4
    )
    latitude = math.radians(
        160.7108 + 390.67050284 * k - 0.0016118 * t**2 - 0.00000227 * t**3 + 0.000000011 * t**4
    )
    node = math.radians(124.7746 - 1.56375588 * k + 0.0020672 * t**2 + 0.00000215 * t**3)

    correction = 0.0
    for new_coeff, full_coeff, e_power, (c_moon, c_sun, c_lat, c_node) in _LUNAR_PHASE_TERMS:
        argument = c_moon * moon_anomaly + c_sun * sun_anomaly + c_lat * latitude + c_node * node
        coeff = full_coeff if full else new_coeff
        correction += coeff * (e**e_power) * math.sin(argument)
    return jde + correction


def _SolarEventJde(year: int, kind: AstronomicalEventKind) -> float:
    a0, a1, a2, a3, a4 = _SOLAR_MEAN_TERMS[kind]
    y = (year - 2000) / 1000
    jde0 = a0 + a1 * y + a2 * y**2 + a3 * y**3 + a4 * y**4
    t = (jde0 - J2000_JD) / 36525
    w = math.radians(35999.373 * t - 2.47)
    delta_lambda = 1 + 0.0334 * math.cos(w) + 0.0007 * math.cos(2 * w)
    s = sum(a * math.cos(math.radians(b + c * t)) for a, b, c in _SOLAR_PERIODIC_TERMS)
    return jde0 + 0.00001 * s / delta_lambda


def _Qualifies(candidate: date, after_date: date, inclusive: bool) -> bool:
    return candidate > after_date or (inclusive and candidate == after_date)


def _NextLunarDate(after_date: date, full: bool, inclusive: bool, timezone_name: str | None) -> date:
    tz = ResolveTimezone(timezone_name)
    lunation = math.floor((_JulianDayAtMidnight(after_date) - REFERENCE_NEW_MOON_JDE) / SYNODIC_MONTH_DAYS) - 1
    while True:
        k = lunation + 0.5 if full else float(lunation)
        candidate = _JdeToUtc(_LunarPhaseJde(k, full)).astimezone(tz).date()
        if _Qualifies(candidate, after_date, inclusive):
            return candidate
        lunation += 1


def SolarEventDate(year: int, kind: AstronomicalEventKind, timezone_name: str | None = DEFAULT_TIMEZONE) -> date:
    tz = ResolveTimezone(timezone_name)
    return _JdeToUtc(_SolarEventJde(year, kind)).astimezone(tz).date()


def _NextSolarDate(
    after_date: date,
    kind: AstronomicalEventKind,
    inclusive: bool,
    timezone_name: str | None,
) -> date:
    candidate = SolarEventDate(after_date.year, kind, timezone_name)
    if _Qualifies(candidate, after_date, inclusive):
        return candidate
    return SolarEventDate(after_date.year + 1, kind, timezone_name)


def NextEvent(
    after_date: date,
    kind: AstronomicalEventKind | str,
    inclusive: bool = False,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> date:
    """Return the first local date of ``kind`` strictly after ``after_date``.

    ``inclusive=True`` also accepts an event falling on ``after_date``.
    Raises ``DateOutOfRangeError`` outside 1900-01-01..2200-12-31.
    """
    _EnsureSupported(after_date)
    event_kind = AstronomicalEventKind(kind)
    if event_kind in LUNAR_EVENT_KINDS:
        return _NextLunarDate(
            after_date,
            event_kind == AstronomicalEventKind.FullMoon,
            inclusive,
            timezone_name,
        )
    return _NextSolarDate(after_date, event_kind, inclusive, timezone_name)


def NextAstronomicalEvent(
    after_date: date,
    kind: AstronomicalEventKind | str,
    inclusive: bool = False,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> AstronomicalEvent:
    event_kind = AstronomicalEventKind(kind)
    return AstronomicalEvent(
        Kind=event_kind,
        Date=NextEvent(after_date, event_kind, inclusive=inclusive, timezone_name=timezone_name),
    )
