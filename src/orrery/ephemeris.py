'''Clockwork solar-system model
Ephemeris calculator

Closed-form secondary quantities of Earth's orbit as pure functions of the
simulation time ``t`` and a static ``Calibration``: day and year lengths,
the five precession periods, eccentricity, obliquity, inclination to the
invariable plane and longitude of perihelion. Also a bounded Newton solver
that finds when the Sun reaches a given ecliptic longitude.

All precession periods are derived from one axial-precession value and
fixed ratios of it; they are never computed independently.'''

import math
import logging
from dataclasses import dataclass, asdict, astuple
from typing import Callable, NamedTuple, Optional

import numpy as np

from . import timescale
from .config import config
from .utils import all_finite

logger = logging.getLogger(__name__)

TWO_PI = 2 * math.pi

# Precession periods as fractions of the axial precession period
PERIHELION_RATIO = 13 / 16
INCLINATION_RATIO = 13 / 3
OBLIQUITY_RATIO = 13 / 8
ECLIPTIC_RATIO = 13 / 5


@dataclass(frozen=True)
class Calibration:
    """
    Static calibration constants of the ephemeris formulas.

    Attributes
    ----------
    holistic_year : float
        Master cycle length H [years]; mean axial precession is H/13
    year_length_days : float
        Days per simulation year (the mean solar year)
    epoch_jd : float
        Julian day at simulation time 0 (2000-06-21 12:00 UT)
    perihelion_alignment_jd : float
        Julian day when perihelion and the June solstice last aligned
        (1245-12-14); the year and day lengths are at their mean there
    j2000_jd : float
        Julian day of J2000.0
    solar_year_amplitude_days : float
        Amplitude of the solar year around its mean [days]
    mean_sidereal_year_seconds : float
        Mean sidereal year [SI seconds]
    sidereal_year_amplitude_seconds : float
        Amplitude of the sidereal year around its mean [s]
    mean_length_of_day : float
        Mean solar day [SI seconds]
    length_of_day_amplitude : float
        Amplitude of the solar day around its mean [s]
    eccentricity_mean_radius : float
        Radius of the mid-eccentricity orbit [scene units]
    eccentricity_wobble_radius : float
        Radius of Earth's wobble around its centre [scene units]
    inclination_mean, inclination_amplitude : float
        Inclination to the invariable plane, mean and amplitude [deg]
    ascending_node_j2000 : float
        Ascending node on the invariable plane at J2000 [deg]
    inclination_phase : float
        Phase of the inclination cycle [deg]
    obliquity_mean : float
        Mean obliquity of the ecliptic [deg]
    obliquity_amplitude : float
        Amplitude of the obliquity cycle [deg]
    obliquity_start_phase : float
        Phase of the obliquity cycle at t=0 [deg]
    perihelion_longitude_at_alignment : float
        Longitude of perihelion at the alignment date [deg]
    perihelion_longitude_amplitude : float
        Periodic correction to the longitude of perihelion [deg]
    earth_longitude_epoch_deg : float
        Earth's heliocentric ecliptic longitude at t=0 [deg]
    earth_mean_anomaly_epoch_deg : float
        Earth's mean anomaly at t=0 [deg]
    scene_units_per_au : float
        Scene units per astronomical unit
    """
    holistic_year: float = 305952.0
    year_length_days: float = 365.242234075933
    epoch_jd: float = 2451717.0
    perihelion_alignment_jd: float = 2176142.0
    j2000_jd: float = 2451545.0

    solar_year_amplitude_days: float = -0.000181
    mean_sidereal_year_seconds: float = 31558149.6847
    sidereal_year_amplitude_seconds: float = 0.3216
    mean_length_of_day: float = 86400.0
    length_of_day_amplitude: float = 0.0073

    eccentricity_mean_radius: float = 1.404974
    eccentricity_wobble_radius: float = 0.27304333159777

    inclination_mean: float = 1.481592
    inclination_amplitude: float = 0.633849
    ascending_node_j2000: float = 284.51
    inclination_phase: float = 203.3195

    obliquity_mean: float = 23.413948
    obliquity_amplitude: float = 0.58
    obliquity_start_phase: float = 97.1023610277075

    perihelion_longitude_at_alignment: float = 90.0
    perihelion_longitude_amplitude: float = -5.13

    earth_longitude_epoch_deg: float = 270.4051
    earth_mean_anomaly_epoch_deg: float = 167.68

    scene_units_per_au: float = 100.0

    def __post_init__(self):
        for key, value in asdict(self).items():
            if not math.isfinite(value):
                raise ValueError(f"Calibration constant {key} must be finite, got {value}")
        if self.holistic_year <= 0:
            raise ValueError(f"Holistic year must be positive, got {self.holistic_year}")
        if self.year_length_days <= 0:
            raise ValueError(f"Year length must be positive, got {self.year_length_days}")

    # ========== MEAN CYCLES ==========
    @property
    def mean_axial_precession(self) -> float:
        return self.holistic_year / 13

    @property
    def mean_perihelion_precession(self) -> float:
        return self.mean_axial_precession * PERIHELION_RATIO

    @property
    def mean_inclination_precession(self) -> float:
        return self.mean_axial_precession * INCLINATION_RATIO

    @property
    def mean_obliquity_cycle(self) -> float:
        return self.mean_axial_precession * OBLIQUITY_RATIO

    @property
    def mean_ecliptic_precession(self) -> float:
        return self.mean_axial_precession * ECLIPTIC_RATIO

    @property
    def alignment_offset_years(self) -> float:
        """Simulation years from the perihelion alignment to t=0."""
        return (self.epoch_jd - self.perihelion_alignment_jd) / self.year_length_days

    @property
    def j2000_offset_years(self) -> float:
        """Simulation years from J2000 to t=0."""
        return (self.epoch_jd - self.j2000_jd) / self.year_length_days


DEFAULT_CALIBRATION = Calibration()


class PrecessionPeriods(NamedTuple):
    """Experienced precession periods [years], all from one axial value."""
    axial: float
    perihelion: float
    inclination: float
    obliquity: float
    ecliptic: float


@dataclass(frozen=True, eq=False)
class EphemerisSnapshot:
    """
    Secondary orbital quantities at one simulation time.

    Lengths are in SI seconds or days as named, periods in years, angles
    in degrees.
    """
    t: float
    year: float
    length_of_day: float
    length_of_solar_year_days: float
    length_of_solar_year_seconds: float
    length_of_sidereal_year_seconds: float
    length_of_sidereal_year_days: float
    length_of_anomalistic_year_days: float
    axial_precession: float
    perihelion_precession: float
    inclination_precession: float
    obliquity_cycle: float
    ecliptic_precession: float
    eccentricity: float
    obliquity: float
    inclination: float
    longitude_of_perihelion: float
    earth_longitude: float
    solar_longitude: float

    def as_dict(self) -> dict:
        return asdict(self)

    def __eq__(self, other):
        #Check equality with tolerance
        if not isinstance(other, EphemerisSnapshot):
            return False
        return np.allclose(astuple(self), astuple(other),
                           rtol=config.EQUALITY_RTOL, atol=config.EQUALITY_ATOL)

    def __hash__(self):
        #Hash with rounding to match equality
        return hash(tuple(round(x, config.HASH_DECIMALS) for x in astuple(self)))


# ========== CYCLE TIME ==========
def elapsed_cycle_years(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Years since the perihelion alignment."""
    return t + cal.alignment_offset_years


def perihelion_phase(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Phase of the mean perihelion cycle [rad], zero at the alignment."""
    return TWO_PI * elapsed_cycle_years(t, cal) / cal.mean_perihelion_precession


# ========== DAY AND YEAR LENGTHS ==========
def length_of_solar_year(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Solar (tropical) year [days]."""
    return cal.year_length_days + cal.solar_year_amplitude_days * math.sin(perihelion_phase(t, cal))


def length_of_sidereal_year(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Sidereal year [SI seconds]."""
    return (cal.mean_sidereal_year_seconds
            + cal.sidereal_year_amplitude_seconds * math.sin(perihelion_phase(t, cal)))


def length_of_day(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Mean solar day [SI seconds]."""
    return cal.mean_length_of_day + cal.length_of_day_amplitude * math.sin(perihelion_phase(t, cal))


def sidereal_year_days(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    return length_of_sidereal_year(t, cal) / length_of_day(t, cal)


def anomalistic_year_days(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """
    Anomalistic year [days].

    Perihelion moves against the stars once per mean inclination-precession
    period P, so the anomalistic year is the sidereal year stretched by
    P / (P - 1).
    """
    p = cal.mean_inclination_precession
    return sidereal_year_days(t, cal) * p / (p - 1)


# ========== PRECESSION ==========
def axial_precession(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """
    Experienced axial precession period [years].

    The equinox drifts one full turn in the time it takes the sidereal
    year to gain one whole solar year on the tropical year.
    """
    solar = length_of_solar_year(t, cal)
    return solar / (sidereal_year_days(t, cal) - solar)


def precession_periods(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> PrecessionPeriods:
    axial = axial_precession(t, cal)
    return PrecessionPeriods(
        axial=axial,
        perihelion=axial * PERIHELION_RATIO,
        inclination=axial * INCLINATION_RATIO,
        obliquity=axial * OBLIQUITY_RATIO,
        ecliptic=axial * ECLIPTIC_RATIO,
    )


# ========== ORBITAL ELEMENTS ==========
def eccentricity(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """
    Eccentricity of Earth's orbit.

    Distance between the mid-eccentricity point and Earth's wobble centre,
    in AU. The two circle each other once per perihelion cycle, so the
    eccentricity peaks at the alignment and bottoms out half a cycle later.
    """
    big = cal.eccentricity_mean_radius
    small = cal.eccentricity_wobble_radius
    separation = math.sqrt(big ** 2 + small ** 2 + 2 * big * small * math.cos(perihelion_phase(t, cal)))
    return separation / cal.scene_units_per_au


def _inclination_angle(t: float, cal: Calibration) -> float:
    years_since_j2000 = t + cal.j2000_offset_years
    return (cal.ascending_node_j2000 - cal.inclination_phase
            + 360.0 * years_since_j2000 / cal.mean_inclination_precession)


def inclination(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Inclination of Earth's orbit to the invariable plane [deg]."""
    return (cal.inclination_mean
            + cal.inclination_amplitude * math.cos(math.radians(_inclination_angle(t, cal))))


def obliquity(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Obliquity of the ecliptic [deg]."""
    incl = cal.inclination_amplitude * math.cos(math.radians(_inclination_angle(t, cal)))
    angle = cal.obliquity_start_phase + 360.0 * t / cal.mean_obliquity_cycle
    return cal.obliquity_mean + incl + cal.obliquity_amplitude * math.cos(math.radians(angle))


def _perihelion_longitude_unwrapped(t: float, cal: Calibration) -> float:
    phase = perihelion_phase(t, cal)
    return (cal.perihelion_longitude_at_alignment
            + math.degrees(phase)
            + cal.perihelion_longitude_amplitude * math.sin(phase))


def longitude_of_perihelion(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Longitude of perihelion [deg], in [0, 360)."""
    return _perihelion_longitude_unwrapped(t, cal) % 360.0


# ========== LONGITUDES ==========
def _mean_anomaly(t: float, cal: Calibration) -> float:
    drift = _perihelion_longitude_unwrapped(t, cal) - _perihelion_longitude_unwrapped(0.0, cal)
    return cal.earth_mean_anomaly_epoch_deg + 360.0 * t - drift


def _equation_of_centre(t: float, cal: Calibration) -> float:
    e = eccentricity(t, cal)
    m = math.radians(_mean_anomaly(t, cal))
    c = ((2 * e - e ** 3 / 4) * math.sin(m)
         + 1.25 * e ** 2 * math.sin(2 * m)
         + 13 / 12 * e ** 3 * math.sin(3 * m))
    return math.degrees(c)


def earth_heliocentric_longitude(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """
    Earth's true heliocentric ecliptic longitude [deg], in [0, 360).

    Mean motion of one turn per simulation year plus the change in the
    equation of centre since t=0, so at t=0 this is exactly
    ``cal.earth_longitude_epoch_deg``.
    """
    centre = _equation_of_centre(t, cal) - _equation_of_centre(0.0, cal)
    return (cal.earth_longitude_epoch_deg + 360.0 * t + centre) % 360.0


def solar_longitude(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> float:
    """Apparent geocentric ecliptic longitude of the Sun [deg]."""
    return (earth_heliocentric_longitude(t, cal) + 180.0) % 360.0


def _solar_longitude_rate(t: float, cal: Calibration) -> float:
    """d(solar longitude)/dt [deg / year], ignoring the slow element drift."""
    e = eccentricity(t, cal)
    m = math.radians(_mean_anomaly(t, cal))
    dc_dm = ((2 * e - e ** 3 / 4) * math.cos(m)
             + 2.5 * e ** 2 * math.cos(2 * m)
             + 3.25 * e ** 3 * math.cos(3 * m))
    return 360.0 * (1.0 + dc_dm)


def snapshot(t: float, cal: Calibration = DEFAULT_CALIBRATION) -> EphemerisSnapshot:
    """Evaluate every ephemeris quantity at simulation time ``t``."""
    periods = precession_periods(t, cal)
    solar_days = length_of_solar_year(t, cal)
    day = length_of_day(t, cal)
    return EphemerisSnapshot(
        t=t,
        year=timescale.decimal_year(t),
        length_of_day=day,
        length_of_solar_year_days=solar_days,
        length_of_solar_year_seconds=solar_days * day,
        length_of_sidereal_year_seconds=length_of_sidereal_year(t, cal),
        length_of_sidereal_year_days=sidereal_year_days(t, cal),
        length_of_anomalistic_year_days=anomalistic_year_days(t, cal),
        axial_precession=periods.axial,
        perihelion_precession=periods.perihelion,
        inclination_precession=periods.inclination,
        obliquity_cycle=periods.obliquity,
        ecliptic_precession=periods.ecliptic,
        eccentricity=eccentricity(t, cal),
        obliquity=obliquity(t, cal),
        inclination=inclination(t, cal),
        longitude_of_perihelion=longitude_of_perihelion(t, cal),
        earth_longitude=earth_heliocentric_longitude(t, cal),
        solar_longitude=solar_longitude(t, cal),
    )


# ========== SOLVER ==========
def newton_raphson(f: Callable[[float], float], fprime: Callable[[float], float],
                   x0: float, max_iterations: Optional[int] = None,
                   tolerance: Optional[float] = None) -> Optional[float]:
    """
    Bounded Newton-Raphson root finder.

    Parameters
    ----------
    f, fprime : callable
        Function and its derivative
    x0 : float
        Starting point
    max_iterations : int, optional
        Iteration cap (default: config.NEWTON_MAX_ITERATIONS)
    tolerance : float, optional
        Accept x when |f(x)| <= tolerance (default: config.NEWTON_TOLERANCE_DEG)

    Returns
    -------
    float or None
        The root, or None when the cap is reached, the derivative vanishes,
        or an iterate stops being finite.
    """
    if max_iterations is None:
        max_iterations = config.NEWTON_MAX_ITERATIONS
    if tolerance is None:
        tolerance = config.NEWTON_TOLERANCE_DEG
    if not math.isfinite(x0):
        return None

    x = x0
    for iteration in range(max_iterations + 1):
        fx = f(x)
        if not math.isfinite(fx):
            return None
        if abs(fx) <= tolerance:
            logger.debug("Newton converged after %d iterations", iteration)
            return x
        if iteration == max_iterations:
            break
        slope = fprime(x)
        if not math.isfinite(slope) or slope == 0:
            return None
        x = x - fx / slope
        if not math.isfinite(x):
            return None
    logger.debug("Newton did not converge in %d iterations", max_iterations)
    return None


class SolarEvent(NamedTuple):
    """When the Sun reaches a longitude."""
    t: float
    julian_day: float
    date: str
    time: str


def _wrap180(angle: float) -> float:
    return (angle + 180.0) % 360.0 - 180.0


# Half-width of the central difference for supplied longitude functions [years]
RATE_STEP = 1e-6


def _central_rate(longitude: Callable[[float], float]) -> Callable[[float], float]:
    def rate(t: float) -> float:
        return _wrap180(longitude(t + RATE_STEP) - longitude(t - RATE_STEP)) / (2 * RATE_STEP)
    return rate


def longitude_to_datetime(lon_deg: float, year: float,
                          cal: Calibration = DEFAULT_CALIBRATION,
                          longitude: Optional[Callable[[float], float]] = None
                          ) -> Optional[SolarEvent]:
    """
    Find when the Sun's ecliptic longitude equals ``lon_deg`` in ``year``.

    Parameters
    ----------
    lon_deg : float
        Target solar longitude [deg], e.g. 0 for the March equinox
    year : float
        Calendar year to search in
    cal : Calibration, optional
    longitude : callable, optional
        Solar longitude [deg] as a function of simulation time. Defaults to
        the closed-form :func:`solar_longitude`; pass the kinematic
        longitude of an engine to solve against the node tree. Its rate is
        then taken by central differences.

    Returns
    -------
    SolarEvent or None
        None for non-finite input or when the solver does not converge.

    Examples
    --------
    >>> event = longitude_to_datetime(90.0, 2000)
    >>> event.date
    '2000-06-21'
    """
    if not all_finite((lon_deg, year)):
        return None
    if longitude is None:
        def longitude(x):
            return solar_longitude(x, cal)

        def rate(x):
            return _solar_longitude_rate(x, cal)
    else:
        rate = _central_rate(longitude)

    target = lon_deg % 360.0
    t_start = timescale.decimal_year_to_pos(year)
    ahead = (target - longitude(t_start)) % 360.0
    t0 = t_start + ahead / 360.0

    t = newton_raphson(lambda x: _wrap180(longitude(x) - target), rate, t0)
    if t is None:
        logger.debug("No solution for longitude %.6f in year %s", lon_deg, year)
        return None
    date, time = timescale.pos_to_date_time(t)
    return SolarEvent(t=t, julian_day=timescale.pos_to_julian_day(t), date=date, time=time)
