'''Clockwork solar-system model
Coordinate projector

Re-expresses world positions in the Earth-equatorial frame (and in the
Sun-centred frame) to give right ascension, declination and distance.
Read-only with respect to kinematic state.'''

import math
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .config import config
from .composer import WorldTransforms
from .transforms import invert_rigid, apply
from .utils import validation_error

logger = logging.getLogger(__name__)

TWO_PI = 2 * math.pi


# ========== SPHERICAL CONVERSION ==========
def cartesian_to_spherical(v) -> Tuple[float, float, float]:
    """
    Convert a y-up Cartesian vector to spherical coordinates.

    Parameters
    ----------
    v : array_like, shape (3,)
        Vector (x, y, z)

    Returns
    -------
    r : float
        Length of the vector
    theta : float
        Azimuth from +z towards +x [rad], in (-pi, pi]
    phi : float
        Polar angle from +y [rad], in [0, pi]

    Notes
    -----
    A vector shorter than ``config.DEGENERATE_DISTANCE`` returns (0, 0, 0)
    rather than NaN angles.
    """
    x, y, z = (float(c) for c in v)
    r = math.sqrt(x * x + y * y + z * z)
    if r < config.DEGENERATE_DISTANCE:
        return 0.0, 0.0, 0.0
    theta = math.atan2(x, z)
    phi = math.acos(min(max(y / r, -1.0), 1.0))
    return r, theta, phi


def spherical_to_cartesian(r: float, theta: float, phi: float) -> np.ndarray:
    """Inverse of :func:`cartesian_to_spherical`."""
    sin_phi = math.sin(phi)
    return np.array([
        r * sin_phi * math.sin(theta),
        r * math.cos(phi),
        r * sin_phi * math.cos(theta),
    ])


def to_ra_dec(v) -> Tuple[float, float, float]:
    """
    Right ascension, declination and distance of a frame-local vector.

    RA is wrapped into [0, 2*pi); Dec is in [-pi/2, pi/2]. The zero vector
    gives (0, 0, 0).
    """
    r, theta, phi = cartesian_to_spherical(v)
    if r == 0.0:
        return 0.0, 0.0, 0.0
    ra = theta % TWO_PI
    dec = math.pi / 2 - phi
    return ra, dec, r


def from_ra_dec(ra: float, dec: float, r: float = 1.0) -> np.ndarray:
    return spherical_to_cartesian(r, ra, math.pi / 2 - dec)


# ========== STRING FORMATTING ==========
def format_ra(rad: float) -> str:
    """
    Format a right ascension as ``HHhMMmSSs``.

    Examples
    --------
    >>> format_ra(math.pi)
    '12h00m00s'
    """
    rad = rad % TWO_PI
    total = round(rad * 12 / math.pi * 3600)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours % 24:02d}h{minutes:02d}m{seconds:02d}s"


def format_dec(rad: float) -> str:
    """
    Format a declination as ``+DD°MM'SS"``.

    Examples
    --------
    >>> format_dec(-math.pi / 4)
    '-45°00\\'00"'
    """
    sign = "-" if rad < 0 else "+"
    total = round(abs(math.degrees(rad)) * 3600)
    degrees, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{sign}{degrees:02d}°{minutes:02d}'{seconds:02d}\""


def parse_ra(value: str) -> float:
    """Parse ``HH:MM:SS`` right ascension to radians."""
    hh, mm, ss = (float(p) for p in value.split(":"))
    return math.radians((hh + mm / 60 + ss / 3600) * 15)


def parse_dec(value: str) -> float:
    """Parse ``±DD:MM:SS`` declination to radians."""
    text = value.strip()
    negative = text.startswith("-")
    dd, mm, ss = (abs(float(p)) for p in text.lstrip("+-").split(":"))
    deg = dd + mm / 60 + ss / 3600
    return math.radians(-deg if negative else deg)


# ========== READINGS ==========
@dataclass(frozen=True)
class BodyReading:
    """
    Position of one body as seen from Earth and from the Sun.

    Attributes
    ----------
    name : str
        Body name
    ra, dec : float
        Geocentric right ascension and declination [rad]
    distance_au, distance_km, distance_mi : float
        Distance to Earth
    sun_ra, sun_dec : float
        Direction from the Sun in the Sun's equatorial frame [rad]
    sun_distance_au : float
        Distance to the Sun [AU]
    elongation_deg : float
        Sun-Earth-body angle [deg]
    """
    name: str
    ra: float
    dec: float
    distance_au: float
    distance_km: float
    distance_mi: float
    sun_ra: float
    sun_dec: float
    sun_distance_au: float
    elongation_deg: float

    @property
    def ra_string(self) -> str:
        return format_ra(self.ra)

    @property
    def dec_string(self) -> str:
        return format_dec(self.dec)

    def as_dict(self) -> dict:
        return {
            'name': self.name,
            'ra': self.ra,
            'dec': self.dec,
            'ra_hms': self.ra_string,
            'dec_dms': self.dec_string,
            'distance_au': self.distance_au,
            'distance_km': self.distance_km,
            'distance_mi': self.distance_mi,
            'sun_ra': self.sun_ra,
            'sun_dec': self.sun_dec,
            'sun_distance_au': self.sun_distance_au,
            'elongation_deg': self.elongation_deg,
        }


def scene_to_au(distance: float) -> float:
    return distance / config.SCENE_UNITS_PER_AU


def elongation(world: WorldTransforms, body: str,
               earth_frame: str = "Earth", sun_frame: str = "Sun") -> float:
    """
    Angle between the Sun and a body as seen from Earth [deg].

    Uses the cosine rule on the three world positions. Degenerate
    triangles (a body on top of Earth or the Sun) give 0.
    """
    earth = world.position(earth_frame)
    sun = world.position(sun_frame)
    target = world.position(body)
    es = np.linalg.norm(earth - sun)
    et = np.linalg.norm(earth - target)
    st = np.linalg.norm(sun - target)
    denominator = 2.0 * es * et
    if denominator < config.DEGENERATE_DISTANCE:
        return 0.0
    cos_angle = (es ** 2 + et ** 2 - st ** 2) / denominator
    return math.degrees(math.acos(min(max(cos_angle, -1.0), 1.0)))


def ecliptic_longitude(world: WorldTransforms, body: str, observer: str = "Earth",
                       ecliptic_frame: str = "Barycenter Sun",
                       pole_frame: str = "Earth") -> float:
    """
    Ecliptic longitude of a body seen from an observer [deg], in [0, 360).

    Both the ecliptic and the equinox are read off the composed frames:

    * the ecliptic pole is the vertical axis of ``ecliptic_frame``, the
      frame the Sun circles in
    * the March equinox is the ascending node of that plane on the equator
      of ``pole_frame`` (its tilted body frame)

    Longitude is counted from the equinox in the sense of the Sun's motion.
    A body on top of the observer gives 0.
    """
    normal = world.pivot_matrix(ecliptic_frame)[:3, 1]
    pole = world.body_matrix(pole_frame)[:3, 1]
    node = np.cross(pole, normal)
    length = np.linalg.norm(node)
    if length < config.DEGENERATE_DISTANCE:
        # equator and ecliptic coincide; fall back to the frame's own +z
        node = world.pivot_matrix(ecliptic_frame)[:3, 2]
        length = np.linalg.norm(node)
    equinox = node / length
    solstice = np.cross(normal, equinox)

    v = world.position(body) - world.position(observer)
    x, y = float(v @ equinox), float(v @ solstice)
    if math.hypot(x, y) < config.DEGENERATE_DISTANCE:
        return 0.0
    return math.degrees(math.atan2(y, x)) % 360.0


def project_body(world: WorldTransforms, body: str,
                 earth_frame: str = "Earth", sun_frame: str = "Sun") -> BodyReading:
    """Reading of a single body; see :func:`project`."""
    position = world.position(body)
    to_earth = invert_rigid(world.body_matrix(earth_frame))
    to_sun = invert_rigid(world.body_matrix(sun_frame))

    ra, dec, r = to_ra_dec(apply(to_earth, position))
    sun_ra, sun_dec, sun_r = to_ra_dec(apply(to_sun, position))
    distance_au = scene_to_au(r)
    distance_km = distance_au * config.KM_PER_AU
    return BodyReading(
        name=body,
        ra=ra,
        dec=dec,
        distance_au=distance_au,
        distance_km=distance_km,
        distance_mi=distance_km / config.KM_PER_MILE,
        sun_ra=sun_ra,
        sun_dec=sun_dec,
        sun_distance_au=scene_to_au(sun_r),
        elongation_deg=elongation(world, body, earth_frame, sun_frame),
    )


def project(world: WorldTransforms, bodies: Iterable[str],
            earth_frame: str = "Earth", sun_frame: str = "Sun") -> List[BodyReading]:
    """
    Project tracked bodies into Earth-equatorial and Sun-centred frames.

    The Earth frame is Earth's axially tilted body frame without the daily
    spin, so RA/Dec are equatorial coordinates. Nothing in ``world`` is
    modified.

    Parameters
    ----------
    world : WorldTransforms
        Composed transforms at the instant of interest
    bodies : iterable of str
        Names of the bodies to project. Unknown names are reported through
        ``validation_error`` and skipped when validation is not strict.
    earth_frame, sun_frame : str, optional
        Names of the observer frames (default: "Earth" and "Sun")

    Returns
    -------
    list of BodyReading
    """
    readings = []
    for body in bodies:
        if body not in world:
            validation_error(f"Cannot project unknown body '{body}'", KeyError)
            continue
        readings.append(project_body(world, body, earth_frame, sun_frame))
    return readings


def readings_to_dataframe(readings: Iterable[BodyReading]) -> pd.DataFrame:
    """Tabulate readings, one row per body."""
    return pd.DataFrame([r.as_dict() for r in readings])
