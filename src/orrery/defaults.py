"""
Default Body Table and Time Constants
=====================================

The calibrated clockwork model of the solar system: every orbit node with its
angular speed, start phase, tilts, radii and parent, plus the simulation-time
unit constants.

Simulation time is measured in years of ``YEAR_LENGTH`` days since
2000-06-21 12:00 UT. Angular speeds are in radians per simulation year, so a
speed of ``2*pi`` completes one turn per year.

The numbers below are fitted constants. They are kept exactly as calibrated,
including shared start phases across unrelated nodes and the tiny placeholder
radii on point-like frames.

Factory functions build registries on demand.

Examples
--------
>>> from orrery import default_registry
>>> reg = default_registry()
>>> reg.ancestors("Moon")[-3:]
('Moon Royer Cycle', 'Moon Nodal Precession', 'Moon')
"""
import math
from .bodies import OrbitNode, TraceSettings, NodeCategory
from .registry import BodyRegistry

# ========== TIME CONSTANTS ==========
YEAR_LENGTH = 365.242234075933      # days per simulation year

S_DAY = 1 / YEAR_LENGTH
S_YEAR = S_DAY * 365
S_MONTH = S_DAY * 30
S_WEEK = S_DAY * 7
S_HOUR = S_DAY / 24
S_MINUTE = S_HOUR / 60
S_SECOND = S_MINUTE / 60

EPOCH_JULIAN_DAY = 2451717  # 2000-06-21

# ========== TRACE DEFAULTS ==========
DEFAULT_TRACE = TraceSettings(length=S_YEAR * 18, step=S_DAY)
_MILLION_YEARS = TraceSettings(length=S_YEAR * 1000000, step=S_YEAR)
_SUN_BARYCENTER = TraceSettings(length=S_YEAR * 90, step=S_MONTH)

BODY = NodeCategory.PHYSICAL_BODY
FRAME = NodeCategory.REFERENCE_FRAME

# Radius of point-like frames
_POINT = 0.0000000000000000000000000001


def _tilt_a(node_deg, inclination):
    return math.cos(math.radians(-90 - node_deg)) * -inclination


def _tilt_b(node_deg, inclination):
    return math.sin(math.radians(-90 - node_deg)) * -inclination


def _display(size, color):
    return {'size': size, 'color': color}


_node = OrbitNode.from_table


# ========== EARTH AND SUN ==========
EARTH_SYSTEM = (
    _node("Start Earth", None, category=FRAME, display=_display(0.1, '#578B7C')),
    _node("EARTH-WOBBLE-CENTER", "Start Earth", category=FRAME,
          start_phase_deg=-112.791336670025, angular_speed=0,
          spin_speed=-0.00026697458749521, orbit_radius=_POINT,
          trace=DEFAULT_TRACE, display=_display(0.011, '#333333')),
    _node("Helion Point (Alternative)", "Start Earth", category=FRAME,
          start_phase_deg=-104.204722055415, angular_speed=0.0000616095201912024,
          orbit_radius=1.404974, trace=_MILLION_YEARS,
          display=_display(0.011, '#333333')),
    _node("Earth", "Start Earth", category=BODY,
          start_phase_deg=0, angular_speed=-0.00026697458749521,
          spin_speed=2301.16782401453, axis_tilt_a=-23.4243449577,
          orbit_radius=-0.27304333159777, container_yaw_deg=90.0,
          trace=_MILLION_YEARS, display=_display(0.0852703981708473, '#333333')),
    _node("Earth Inclination Precession1", "Earth", category=FRAME,
          start_phase_deg=98.5866146146096, angular_speed=0.0000616095201912024,
          orbit_radius=0, display=_display(0.1, '#FEAA0D')),
    _node("MID-ECCENTRICITY-ORBIT", "Earth Inclination Precession1", category=FRAME,
          start_phase_deg=-112.791336670025, angular_speed=0.00026697458749521,
          orbit_radius=1.404974,
          trace=TraceSettings(length=S_YEAR * 1000000, step=S_YEAR, enabled=True),
          display=_display(0.011, '#0096FF')),
    _node("Earth Ecliptic Precession", "Earth Inclination Precession1", category=FRAME,
          start_phase_deg=164.311024357683, angular_speed=0.000102682533652004,
          orbit_radius=0, orbit_tilt_b=-0.58, display=_display(0.1, '#FEAA0D')),
    _node("Earth Obliquity Precession", "Earth Ecliptic Precession", category=FRAME,
          start_phase_deg=97.1023610277075, angular_speed=-0.000164292053843206,
          orbit_radius=0, orbit_tilt_b=0.58, display=_display(0.1, '#FEAA0D')),
    _node("Earth Perihelion Precession", "Earth Obliquity Precession", category=FRAME,
          start_phase_deg=-194.204722055415, angular_speed=0.000328584107686413,
          orbit_radius=0, orbit_tilt_a=-1.11, display=_display(0.1, '#FEAA0D')),
    _node("Earth Inclination Precession2", "Earth Perihelion Precession", category=FRAME,
          start_phase_deg=-98.5866146146096, angular_speed=-0.0000616095201912024,
          orbit_radius=0, orbit_center_a=-1.404974, display=_display(0.1, '#FEAA0D')),
    _node("Barycenter Sun", "Earth Inclination Precession2", category=FRAME,
          start_phase_deg=-67.2086633299753, angular_speed=-0.00026697458749521,
          orbit_radius=0.27304333159777, display=_display(0.01, '#FFFF00')),
    _node("HELION-POINT", "Barycenter Sun", category=FRAME,
          start_phase_deg=0, angular_speed=0, orbit_radius=_POINT,
          trace=TraceSettings(length=S_YEAR * 1000000, step=S_YEAR, enabled=True),
          display=_display(0.011, '#BF40BF')),
    _node("Sun", "Barycenter Sun", category=BODY,
          start_phase_deg=0, angular_speed=math.pi * 2,
          spin_speed=83.9952982796623, axis_tilt_a=-7.155, orbit_radius=100,
          trace=TraceSettings(length=S_YEAR * 1000000, step=S_YEAR * 10),
          display=_display(7, '#333333')),
)

# ========== MOON ==========
MOON_SYSTEM = (
    _node("Moon Apsidal Precession", "Earth", category=FRAME,
          start_phase_deg=340, angular_speed=0.709885428149756,
          orbit_radius=-0.0141069500625657, display=_display(0.001, '#8B8B8B')),
    _node("Moon Apsidal Nodal Precession1", "Moon Apsidal Precession", category=FRAME,
          start_phase_deg=-90, angular_speed=-1.04769042735813,
          orbit_radius=0, display=_display(0.001, '#8B8B8B')),
    _node("Moon Apsidal Nodal Precession2", "Moon Apsidal Nodal Precession1", category=FRAME,
          start_phase_deg=90, angular_speed=1.04769042735813,
          orbit_radius=0, display=_display(0.001, '#8B8B8B')),
    _node("Moon Royer Cycle", "Moon Apsidal Nodal Precession2", category=FRAME,
          start_phase_deg=-44.1, angular_speed=-0.372080428941402,
          orbit_radius=0, display=_display(0.001, '#FFFF00')),
    _node("Moon Nodal Precession", "Moon Royer Cycle", category=FRAME,
          start_phase_deg=64.1, angular_speed=-0.337804999208372, orbit_radius=0,
          orbit_tilt_a=math.cos(math.radians(-90 + 180)) * -5.1453964,
          orbit_tilt_b=math.sin(math.radians(-90 + 180)) * -5.1453964,
          display=_display(0.001, '#8B8B8B')),
    _node("Moon", "Moon Nodal Precession", category=BODY,
          start_phase_deg=126.22, angular_speed=83.9952982796623,
          axis_tilt_a=-6.687, orbit_radius=0.25695490731541,
          trace=TraceSettings(length=S_YEAR * 18, step=S_DAY),
          display=_display(0.0232276033326404, '#8B8B8B')),
)


# ========== PLANET GROUPS ==========
def _planet_group(planet, color, center, barycenter_radius, ellipse_phase,
                  ellipse_speed, ellipse_radius, node_deg, inclination, body, trace):
    """
    Five nodes that place one planet: its Sun-barycenter frame, the
    barycenter-to-Sun frame, the barycenter location, the ellipse factor
    and the planet itself. ``center`` is the (a, b, c) table offset.
    """
    a, b, c = center
    barycenter = f"BARYCENTER {planet.upper()}"
    location = f"{planet} Barycenter Location"
    ellipse = f"{planet} Ellipse Factor"
    size = body.pop("size")
    return (
        _node(barycenter, "Barycenter Sun", category=FRAME,
              start_phase_deg=0, angular_speed=math.pi * 2,
              orbit_radius=barycenter_radius,
              orbit_center_a=a, orbit_center_b=b, orbit_center_c=c,
              trace=_MILLION_YEARS, display=_display(0.011, '#333333')),
        _node(f"Barycenter {planet}-Sun", barycenter, category=FRAME,
              start_phase_deg=0, angular_speed=0, orbit_radius=0,
              orbit_center_a=100, trace=_SUN_BARYCENTER,
              display=_display(0.01, '#333333')),
        _node(location, "Barycenter Sun", category=FRAME,
              start_phase_deg=0, angular_speed=math.pi * 2, orbit_radius=0,
              orbit_center_a=a, orbit_center_b=b, orbit_center_c=c,
              display=_display(0.1, color)),
        _node(ellipse, location, category=FRAME,
              start_phase_deg=ellipse_phase, angular_speed=ellipse_speed,
              orbit_radius=ellipse_radius, orbit_center_a=100,
              orbit_tilt_a=_tilt_a(node_deg, inclination),
              orbit_tilt_b=_tilt_b(node_deg, inclination),
              display=_display(0.1, color)),
        _node(planet, ellipse, category=BODY, trace=trace,
              display=_display(size, color), **body),
    )


MERCURY_GROUP = (
    _node("BARYCENTER MERCURY", "Barycenter Sun", category=FRAME,
          start_phase_deg=0, angular_speed=math.pi * 2, orbit_radius=_POINT,
          orbit_center_a=-11.2169591606661, orbit_center_b=0, orbit_center_c=-0.6,
          trace=_MILLION_YEARS, display=_display(0.011, '#333333')),
    _node("Barycenter Mercury-Sun", "BARYCENTER MERCURY", category=FRAME,
          start_phase_deg=0, angular_speed=0, orbit_radius=0, orbit_center_a=100,
          trace=_SUN_BARYCENTER, display=_display(0.01, '#333333')),
    _node("Mercury Barycenter Location", "Barycenter Sun", category=FRAME,
          start_phase_deg=0, angular_speed=math.pi * 2, orbit_radius=0,
          orbit_center_a=-11.2169591606661, orbit_center_b=0, orbit_center_c=-0.6,
          display=_display(0.1, '#868485')),
    # inverse yearly turn cancels the location frame's rotation
    _node("Mercury Ellipse Factor", "Mercury Barycenter Location", category=FRAME,
          start_phase_deg=0, angular_speed=-math.pi * 2, orbit_radius=0,
          orbit_center_a=100, display=_display(0.1, '#868485')),
    _node("Mercury", "Mercury Ellipse Factor", category=BODY,
          start_phase_deg=211.54, angular_speed=26.0875244996281,
          spin_speed=39.1312867494422, axis_tilt_a=-0.03,
          orbit_radius=38.7107274186104,
          orbit_tilt_a=_tilt_a(48.33167, 7.00487),
          orbit_tilt_b=_tilt_b(48.33167, 7.00487),
          trace=TraceSettings(length=S_YEAR * 14, step=S_DAY),
          display=_display(1, '#868485')),
)

VENUS_GROUP = (
    _node("BARYCENTER VENUS", "Barycenter Sun", category=FRAME,
          start_phase_deg=0, angular_speed=math.pi * 2, orbit_radius=_POINT,
          orbit_center_a=-0.489934935944517, orbit_center_b=0, orbit_center_c=-0.05,
          trace=_MILLION_YEARS, display=_display(0.011, '#333333')),
    _node("Barycenter Venus-Sun", "BARYCENTER VENUS", category=FRAME,
          start_phase_deg=0, angular_speed=0, orbit_radius=0, orbit_center_a=100,
          trace=_SUN_BARYCENTER, display=_display(0.01, '#333333')),
    _node("Venus Barycenter Location", "Barycenter Sun", category=FRAME,
          start_phase_deg=0, angular_speed=math.pi * 2, orbit_radius=0,
          orbit_center_a=-0.489934935944517, orbit_center_b=0, orbit_center_c=-0.05,
          display=_display(0.1, '#A57C1B')),
    _node("Venus Ellipse Factor", "Venus Barycenter Location", category=FRAME,
          start_phase_deg=0, angular_speed=-math.pi * 2, orbit_radius=0,
          orbit_center_a=100, display=_display(0.1, '#A57C1B')),
    _node("Venus", "Venus Ellipse Factor", category=BODY,
          start_phase_deg=352.635, angular_speed=10.2132976731898,
          spin_speed=-9.4430965247729, axis_tilt_a=-2.6392,
          orbit_radius=72.3340172922693,
          orbit_tilt_a=_tilt_a(76.68069, 3.39471),
          orbit_tilt_b=_tilt_b(76.68069, 3.39471),
          trace=TraceSettings(length=S_YEAR * 16, step=S_WEEK),
          display=_display(1, '#A57C1B')),
)

MARS_GROUP = _planet_group(
    "Mars", '#FF0000',
    center=(8.83305630702754, -20.1708748079022, 0.7),
    barycenter_radius=7.78722181048582,
    ellipse_phase=243.094, ellipse_speed=0.398326084542855,
    ellipse_radius=7.78722181048582, node_deg=49.57854, inclination=1.85061,
    body=dict(size=1, start_phase_deg=121.547, angular_speed=-3.34075569586122,
              spin_speed=2236.82429921882, axis_tilt_a=-25.19,
              orbit_radius=152.366713671252),
    trace=TraceSettings(length=S_YEAR * 44, step=S_WEEK),
)

MARS_MOONS = (
    _node("Phobos", "Mars", category=BODY,
          start_phase_deg=122, angular_speed=6986.5, orbit_radius=5,
          display=_display(0.027272727, '#8B8B8B')),
    _node("Deimos", "Mars", category=BODY,
          start_phase_deg=0, angular_speed=1802, orbit_radius=10,
          display=_display(0.027272727, '#8B8B8B')),
)

JUPITER_GROUP = _planet_group(
    "Jupiter", '#CDC2B2',
    center=(-14.8529260159503, -44.5901620064302, 0.7),
    barycenter_radius=_POINT,
    ellipse_phase=41.205, ellipse_speed=-5.75326128750832,
    ellipse_radius=0, node_deg=100.55615, inclination=1.3053,
    body=dict(size=6, start_phase_deg=0, angular_speed=0,
              spin_speed=5549.34320193203, axis_tilt_a=-3.13,
              orbit_radius=519.969067802053),
    trace=TraceSettings(length=S_YEAR * 24, step=S_WEEK),
)

SATURN_GROUP = _planet_group(
    "Saturn", '#A79662',
    center=(-99.8674039040765, 3.4559296989952, 1.8),
    barycenter_radius=_POINT,
    ellipse_phase=34.355, ellipse_speed=-6.06960563718342,
    ellipse_radius=0, node_deg=113.71504, inclination=2.48446,
    body=dict(size=5, start_phase_deg=0, angular_speed=0,
              spin_speed=5215.37251228578, axis_tilt_a=-26.73,
              orbit_radius=952.971629139966),
    trace=TraceSettings(length=S_YEAR * 60, step=S_WEEK),
)

URANUS_GROUP = _planet_group(
    "Uranus", '#D2F9FA',
    center=(-27.8688886566711, 175.24925683614, -1.9),
    barycenter_radius=_POINT,
    ellipse_phase=134.51, ellipse_speed=-6.2081449115867,
    ellipse_radius=0, node_deg=74.22988, inclination=0.76986,
    body=dict(size=5, start_phase_deg=0, angular_speed=0,
              spin_speed=-3194.74981995042, axis_tilt_a=-82.23,
              orbit_radius=1913.91730411169),
    trace=TraceSettings(length=S_YEAR * 18, step=S_WEEK),
)

NEPTUNE_GROUP = _planet_group(
    "Neptune", '#5E93F1',
    center=(-34.3277111737215, -34.3620585913588, 1.7),
    barycenter_radius=_POINT,
    ellipse_phase=144.16, ellipse_speed=-6.2448231126072,
    ellipse_radius=0, node_deg=131.72169, inclination=1.76917,
    body=dict(size=5, start_phase_deg=0, angular_speed=0,
              spin_speed=3418.56790376751, axis_tilt_a=-28.32,
              orbit_radius=2993.53460611855),
    trace=TraceSettings(length=S_YEAR * 18, step=S_WEEK),
)

PLUTO_GROUP = _planet_group(
    "Pluto", '#5E93F1',
    center=(1355.8371267405, 1400.74054002809, 0),
    barycenter_radius=_POINT,
    ellipse_phase=215, ellipse_speed=-6.25761735630024,
    ellipse_radius=0, node_deg=110.30347, inclination=17.14175,
    body=dict(size=5, start_phase_deg=0, angular_speed=0,
              spin_speed=359.294297168521, axis_tilt_a=-57.47,
              orbit_radius=3923.3401562492),
    trace=TraceSettings(length=S_YEAR * 18, step=S_WEEK),
)

HALLEYS_GROUP = _planet_group(
    "Halleys", '#00FF00',
    center=(0, 3425.26406009445, -479.375616078497),
    barycenter_radius=_POINT,
    ellipse_phase=200, ellipse_speed=-6.20009460094839,
    ellipse_radius=0, node_deg=59.56078348,
    inclination=-(180 - 162.192203847561),
    body=dict(size=6, start_phase_deg=0, angular_speed=0,
              spin_speed=1043.12937189584, orbit_radius=1788.20900979424),
    trace=TraceSettings(length=S_YEAR * 90, step=S_WEEK),
)

EROS_GROUP = _planet_group(
    "Eros", '#A57C1B',
    center=(-41.5066637049184, 27.010766876461, 0),
    barycenter_radius=17.0301972356361,
    ellipse_phase=114.6, ellipse_speed=0.852798978486624,
    ellipse_radius=17.0301972356361, node_deg=304.4115786, inclination=10.82903287,
    body=dict(size=1, start_phase_deg=57.3, angular_speed=-3.56799275538197,
              spin_speed=10451.0875434594, orbit_radius=145.826791115055),
    trace=TraceSettings(length=S_YEAR * 16, step=S_WEEK),
)

DEFAULT_NODES = (
    EARTH_SYSTEM + MOON_SYSTEM
    + MERCURY_GROUP + VENUS_GROUP + MARS_GROUP + MARS_MOONS
    + JUPITER_GROUP + SATURN_GROUP + URANUS_GROUP + NEPTUNE_GROUP
    + PLUTO_GROUP + HALLEYS_GROUP + EROS_GROUP
)

# Bodies whose positions are traced and projected to RA/Dec by default
TRACKED_BODIES = (
    "EARTH-WOBBLE-CENTER", "HELION-POINT", "MID-ECCENTRICITY-ORBIT",
    "Sun", "Moon",
    "BARYCENTER MERCURY", "Mercury",
    "BARYCENTER VENUS", "Venus",
    "BARYCENTER MARS", "Mars",
    "BARYCENTER JUPITER", "Jupiter",
    "BARYCENTER SATURN", "Saturn",
    "BARYCENTER URANUS", "Uranus",
    "BARYCENTER NEPTUNE", "Neptune",
)


def default_registry() -> BodyRegistry:
    """
    Create the calibrated registry of the full model.

    Returns
    -------
    BodyRegistry
        Validated tree rooted at "Start Earth"

    Examples
    --------
    >>> reg = default_registry()
    >>> reg.node("Earth").container_yaw_deg
    90.0
    """
    return BodyRegistry(DEFAULT_NODES)
