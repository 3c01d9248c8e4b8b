"""
Calendar and simulation-time conversions.

Simulation time ``pos`` counts years of ``YEAR_LENGTH`` days from
2000-06-21 12:00 UT (Julian day 2451717.0). Dates are ISO-like strings
``YYYY-MM-DD``; years before 1 AD use astronomical numbering with a leading
minus sign (``-0500-03-01`` is 501 BC). Dates before 1582-10-15 are in the
Julian calendar, later dates in the Gregorian calendar.
"""

import math
from typing import Tuple

from .defaults import S_DAY, S_HOUR, S_MINUTE, S_SECOND, EPOCH_JULIAN_DAY

GREGORIAN_REFERENCE_DAY = 730597  # Gregorian day count from year 0 to 2000-06-21
GREGORIAN_START = (1582, 10, 15)
FIRST_GREGORIAN_DAY = -152556     # 1582-10-15 in days from the epoch
J2000_JULIAN_DAY = 2451545.0
SECONDS_PER_DAY = 86400


# ========== SIMULATION TIME <-> DAYS ==========
def pos_to_days(pos: float) -> int:
    """Whole days since 2000-06-21, with the day boundary at midnight."""
    pos += S_HOUR * 12
    return math.floor(pos / S_DAY)


def _day_and_second(pos: float) -> Tuple[int, int]:
    """Whole days since the epoch date and UT seconds into that day, rounded together."""
    total = round((pos + S_HOUR * 12) / S_DAY * SECONDS_PER_DAY)
    return divmod(total, SECONDS_PER_DAY)


def pos_to_time(pos: float) -> str:
    """
    Time of day at ``pos`` as ``HH:MM:SS`` (UT), to the nearest second.

    A time within half a second of midnight reads ``00:00:00``; use
    :func:`pos_to_date_time` to get the matching (next) date.
    """
    seconds = _day_and_second(pos)[1]
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def time_to_pos(value: str) -> float:
    """Offset in simulation years of a ``HH:MM:SS`` time from noon."""
    hh, mm, ss = _split_time(value)
    pos = hh * S_HOUR + mm * S_MINUTE + ss * S_SECOND
    return pos - S_HOUR * 12


def _split_time(value: str) -> Tuple[float, float, float]:
    parts = value.split(":")
    if not 1 <= len(parts) <= 3:
        raise ValueError(f"Time must be HH:MM:SS, got '{value}'")
    parts = parts + ["0"] * (3 - len(parts))
    hh, mm, ss = (float(p) for p in parts)
    if not (0 <= hh < 24 and 0 <= mm < 60 and 0 <= ss < 60):
        raise ValueError(f"Time out of range: '{value}'")
    return hh, mm, ss


# ========== CALENDAR DATES ==========
def _split_date(value: str) -> Tuple[int, int, int]:
    negative = value.startswith("-")
    parts = value[1:].split("-") if negative else value.split("-")
    if len(parts) != 3:
        raise ValueError(f"Date must be YYYY-MM-DD, got '{value}'")
    y, m, d = (int(p) for p in parts)
    if not (1 <= m <= 12 and 1 <= d <= 31):
        raise ValueError(f"Date out of range: '{value}'")
    return (-y if negative else y), m, d


def date_to_days(value: str) -> int:
    """
    Days from 2000-06-21 to the given calendar date.

    Uses the Julian calendar before 1582-10-15 and the Gregorian calendar
    from then on, matching the historical switch.

    Examples
    --------
    >>> date_to_days("2000-06-21")
    0
    >>> date_to_days("1582-10-15") - date_to_days("1582-10-04")
    1
    """
    y, m, d = _split_date(value)

    if (y, m, d) < GREGORIAN_START:
        if m < 3:
            m += 12
            y -= 1
        jd = (math.trunc(365.25 * (y + 4716))
              + math.trunc(30.6001 * (m + 1))
              + d - 1524)
        return jd - EPOCH_JULIAN_DAY

    m = (m + 9) % 12
    y = y - m // 10
    days = (365 * y + y // 4 - y // 100 + y // 400
            + (m * 306 + 5) // 10 + (d - 1))
    return days - GREGORIAN_REFERENCE_DAY


def days_to_date(g: int) -> str:
    """Calendar date of a day count from 2000-06-21 (inverse of date_to_days)."""
    if g < FIRST_GREGORIAN_DAY:
        return julian_cal_day_to_date(g)
    g += GREGORIAN_REFERENCE_DAY
    y = (10000 * g + 14780) // 3652425
    ddd = g - (365 * y + y // 4 - y // 100 + y // 400)
    if ddd < 0:
        y = y - 1
        ddd = g - (365 * y + y // 4 - y // 100 + y // 400)
    mi = (100 * ddd + 52) // 3060
    mm = (mi + 2) % 12 + 1
    y = y + (mi + 2) // 12
    dd = ddd - (mi * 306 + 5) // 10 + 1
    return _format_date(y, mm, dd)


def julian_cal_day_to_date(g: int) -> str:
    """Julian-calendar date of a day count from 2000-06-21."""
    j_day = g + EPOCH_JULIAN_DAY
    z = math.floor(j_day - 1721116.5)
    r = j_day - 1721116.5 - z
    year = math.floor((z - 0.25) / 365.25)
    c = z - math.floor(365.25 * year)
    month = math.trunc((5 * c + 456) / 153)
    day = int(round(c - math.trunc((153 * month - 457) / 5) + r - 0.5))
    if month > 12:
        year = year + 1
        month = month - 12
    return _format_date(year, month, day)


def _format_date(y: int, m: int, d: int) -> str:
    sign = "-" if y < 0 else ""
    return f"{sign}{abs(y):04d}-{m:02d}-{d:02d}"


# ========== COMBINED ==========
def date_time_to_pos(date: str, time: str = "12:00:00") -> float:
    """Simulation time of a calendar date and UT time of day."""
    return date_to_days(date) * S_DAY + time_to_pos(time)


def pos_to_date_time(pos: float) -> Tuple[str, str]:
    """Calendar date and time of day at ``pos``; rounding up to midnight moves to the next date."""
    days, _ = _day_and_second(pos)
    return days_to_date(days), pos_to_time(pos)


def pos_to_julian_day(pos: float) -> float:
    """Julian day of a simulation time (noon-based, so pos=0 gives 2451717.0)."""
    return EPOCH_JULIAN_DAY + pos / S_DAY


def julian_day_to_pos(jd: float) -> float:
    if not math.isfinite(jd):
        raise ValueError(f"Julian day must be finite, got {jd}")
    return (jd - EPOCH_JULIAN_DAY) * S_DAY


def decimal_year(pos: float) -> float:
    """Decimal Julian-epoch year, 2000.0 at J2000."""
    return 2000.0 + (pos_to_julian_day(pos) - J2000_JULIAN_DAY) / 365.25


def decimal_year_to_pos(year: float) -> float:
    return julian_day_to_pos(J2000_JULIAN_DAY + (year - 2000.0) * 365.25)
