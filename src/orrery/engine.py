'''Clockwork solar-system model
OrbitEngine class definition

The engine owns the single simulation-time cursor and drives every consumer
from it: kinematic update, transform composition, projection, ephemeris and
trace sampling. Derived views are cached per time value and dropped
whenever the time changes.'''

import math
import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

import numpy as np
import plotly.graph_objects as go

from .registry import BodyRegistry
from .defaults import default_registry, TRACKED_BODIES, S_WEEK
from .kinematics import SimulationClock, KinematicState, kinematic_update
from .composer import WorldTransforms, compose_world, world_at
from .projection import BodyReading, project, elongation as _elongation, scene_to_au
from .projection import ecliptic_longitude
from .transforms import invert_rigid, apply
from .trace import TraceRecorder
from .ephemeris import Calibration, EphemerisSnapshot, DEFAULT_CALIBRATION, snapshot
from .ephemeris import SolarEvent, longitude_to_datetime
from .config import config

logger = logging.getLogger(__name__)

# Frames that define the ecliptic and the observer
EARTH_FRAME = "Earth"
SUN_FRAME = "Sun"
ECLIPTIC_FRAME = "Barycenter Sun"


def fit_epoch_longitude(registry: BodyRegistry,
                        calibration: Calibration = DEFAULT_CALIBRATION,
                        zodiac_anchor: str = "Earth") -> Calibration:
    """
    Copy of ``calibration`` with Earth's epoch longitude read from the model.

    The closed-form longitude formulas are anchored on
    ``earth_longitude_epoch_deg``. Taking it from the composed node tree at
    t=0 makes the ephemeris agree with where the tree places the Sun at the
    epoch.

    Returns ``calibration`` unchanged when the registry lacks the Earth,
    Sun or ecliptic frames.
    """
    if not all(name in registry for name in (EARTH_FRAME, SUN_FRAME, ECLIPTIC_FRAME)):
        return calibration
    world = world_at(registry, 0.0, zodiac_anchor)
    longitude = ecliptic_longitude(world, EARTH_FRAME, observer=SUN_FRAME,
                                   ecliptic_frame=ECLIPTIC_FRAME, pole_frame=EARTH_FRAME)
    logger.debug("Earth epoch longitude from the node tree: %.9f deg", longitude)
    return replace(calibration, earth_longitude_epoch_deg=longitude)


class OrbitEngine:
    """
    Time-driven view of a node tree.

    Parameters
    ----------
    registry : BodyRegistry, optional
        Node tree (default: the calibrated solar-system table)
    calibration : Calibration, optional
        Ephemeris constants (default: DEFAULT_CALIBRATION with Earth's
        epoch longitude fitted to the registry, see
        :func:`fit_epoch_longitude`)
    clock : SimulationClock, optional
        Initial simulation time (default: t=0, 2000-06-21 12:00 UT)
    zodiac_anchor : str, optional
        Node whose orbital angle drives the zodiac band

    Examples
    --------
    >>> engine = OrbitEngine()
    >>> engine.jump_to_date("2024-01-01")
    >>> mars = engine.project(["Mars"])[0]
    >>> print(mars.ra_string, mars.dec_string, f"{mars.distance_au:.3f} AU")
    """

    def __init__(self, registry: Optional[BodyRegistry] = None,
                 calibration: Optional[Calibration] = None,
                 clock: Optional[SimulationClock] = None,
                 zodiac_anchor: str = "Earth"):
        self._registry = registry if registry is not None else default_registry()
        self._zodiac_anchor = zodiac_anchor
        if calibration is None:
            calibration = fit_epoch_longitude(self._registry, zodiac_anchor=zodiac_anchor)
        self._calibration = calibration
        self._clock = clock if clock is not None else SimulationClock()
        self._recorder = TraceRecorder(self._registry)

        self._state: Optional[KinematicState] = None
        self._world: Optional[WorldTransforms] = None
        self._ephemeris: Optional[EphemerisSnapshot] = None

    # ========== PROPERTY ACCESS ==========
    @property
    def registry(self) -> BodyRegistry:
        return self._registry

    @property
    def calibration(self) -> Calibration:
        return self._calibration

    @property
    def clock(self) -> SimulationClock:
        return self._clock

    @property
    def t(self) -> float:
        return self._clock.t

    @property
    def recorder(self) -> TraceRecorder:
        return self._recorder

    @property
    def state(self) -> KinematicState:
        """Local transforms at the current time (cached)."""
        if self._state is None:
            self._state = kinematic_update(self._registry, self.t, self._zodiac_anchor)
        return self._state

    @property
    def world(self) -> WorldTransforms:
        """World transforms at the current time (cached)."""
        if self._world is None:
            self._world = compose_world(self._registry, self.state, self._zodiac_anchor)
        return self._world

    # ========== TIME CONTROL ==========
    def _set_clock(self, clock: SimulationClock) -> None:
        if clock.t == self._clock.t:
            return
        self._clock = clock
        self._state = None
        self._world = None
        self._ephemeris = None
        if self._recorder.enabled:
            self._recorder.sample_all(clock.t)
        logger.debug("Engine time set to t=%.9f", clock.t)

    def jump_to_time(self, t: float) -> None:
        """
        Move the simulation time to ``t``, forward or backward.

        Raises
        ------
        ValueError
            If ``t`` is not finite
        """
        if not math.isfinite(t):
            raise ValueError(f"Simulation time must be finite, got {t}")
        self._set_clock(SimulationClock(t))

    def jump_to_julian_day(self, jd: float) -> None:
        self._set_clock(SimulationClock.from_julian_day(jd))

    def jump_to_date(self, date: str, time: str = "12:00:00") -> None:
        self._set_clock(SimulationClock.from_date(date, time))

    def advance(self, dt: float) -> None:
        """Move the simulation time by ``dt`` years."""
        if not math.isfinite(dt):
            raise ValueError(f"Time step must be finite, got {dt}")
        self._set_clock(self._clock.advanced(dt))

    def tick(self, real_seconds: float, rate: float = S_WEEK) -> float:
        """
        Advance by wall-clock time at ``rate`` simulation years per second.

        Returns the new simulation time.
        """
        self.advance(real_seconds * rate)
        return self.t

    # ========== TRACING ==========
    def enable_trace(self, body: str, settings=None) -> bool:
        return self._recorder.enable(body, self.t, settings)

    def disable_trace(self, body: str) -> None:
        self._recorder.disable(body)

    # ========== QUERIES ==========
    def position(self, name: str) -> np.ndarray:
        """World position of a node [scene units]."""
        return self.world.position(name)

    def world_transform(self, name: str) -> np.ndarray:
        """World pivot matrix of a node (read-only 4x4)."""
        return self.world.pivot_matrix(name)

    def distance(self, a: str, b: str) -> float:
        """Distance between two nodes [AU]."""
        return scene_to_au(float(np.linalg.norm(self.position(a) - self.position(b))))

    def local_longitude(self, name: str, origin: str = "Sun") -> float:
        """
        Longitude of a node seen from ``origin`` [deg], in [0, 360).

        Measured in the origin's untilted pivot frame, from +z towards +x
        about the vertical axis.
        """
        local = apply(invert_rigid(self.world.pivot_matrix(origin)), self.position(name))
        if math.hypot(local[0], local[2]) < config.DEGENERATE_DISTANCE:
            return 0.0
        return math.degrees(math.atan2(local[0], local[2])) % 360.0

    def project(self, bodies: Optional[Iterable[str]] = None) -> List[BodyReading]:
        """
        RA/Dec/distance readings at the current time.

        Without ``bodies`` every tracked body present in the registry is
        projected.
        """
        if bodies is None:
            bodies = [b for b in TRACKED_BODIES if b in self._registry]
        return project(self.world, bodies)

    def ephemeris(self) -> EphemerisSnapshot:
        """Ephemeris snapshot at the current time (cached)."""
        if self._ephemeris is None:
            self._ephemeris = snapshot(self.t, self._calibration)
        return self._ephemeris

    def elongation(self, name: str) -> float:
        """Sun-Earth-body angle [deg]."""
        return _elongation(self.world, name)

    # ========== QUERIES AT OTHER TIMES ==========
    def world_at(self, t: float) -> WorldTransforms:
        """
        World transforms at time ``t`` without moving the clock.

        Nothing on the engine changes: the cached views, the clock and the
        traces all stay as they are.
        """
        if not math.isfinite(t):
            raise ValueError(f"Simulation time must be finite, got {t}")
        if t == self.t:
            return self.world
        return world_at(self._registry, t, self._zodiac_anchor)

    def project_at(self, t: float, bodies: Optional[Iterable[str]] = None) -> List[BodyReading]:
        """Readings as :meth:`project` would give them at time ``t``."""
        if bodies is None:
            bodies = [b for b in TRACKED_BODIES if b in self._registry]
        return project(self.world_at(t), bodies)

    # ========== KINEMATIC LONGITUDES ==========
    def heliocentric_longitude(self, name: str = EARTH_FRAME) -> float:
        """Ecliptic longitude of a node seen from the Sun [deg]."""
        return ecliptic_longitude(self.world, name, observer=SUN_FRAME,
                                  ecliptic_frame=ECLIPTIC_FRAME, pole_frame=EARTH_FRAME)

    def solar_longitude(self) -> float:
        """Ecliptic longitude of the Sun as drawn by the node tree [deg]."""
        return self.solar_longitude_at(self.t)

    def solar_longitude_at(self, t: float) -> float:
        return ecliptic_longitude(self.world_at(t), SUN_FRAME, observer=EARTH_FRAME,
                                  ecliptic_frame=ECLIPTIC_FRAME, pole_frame=EARTH_FRAME)

    def longitude_to_datetime(self, lon_deg: float, year: float) -> Optional[SolarEvent]:
        """
        When the node tree puts the Sun at ecliptic longitude ``lon_deg``.

        Same bounded solver as :func:`orrery.ephemeris.longitude_to_datetime`,
        run against :meth:`solar_longitude_at`. The clock does not move.
        """
        return longitude_to_datetime(lon_deg, year, self._calibration,
                                     longitude=self.solar_longitude_at)

    # ========== PLOTTING ==========
    def plot_system(self, names: Optional[Sequence[str]] = None,
                    fig: Optional[go.Figure] = None) -> go.Figure:
        """Plot current body positions; see :func:`plot_system`."""
        return plot_system(self, names, fig)

    def __repr__(self):
        return (f"OrbitEngine(t={self.t:.9f}, date='{self._clock.date}', "
                f"nodes={len(self._registry)}, traced={list(self._recorder.enabled)})")


def plot_system(engine: OrbitEngine, names: Optional[Sequence[str]] = None,
                fig: Optional[go.Figure] = None) -> go.Figure:
    """
    Draw the current world positions of bodies as 3D markers.

    Parameters:
        engine: Engine whose current time is plotted
        names: Nodes to draw (default: every physical body in the registry)
        fig: Existing figure to add to (default: a new one)

    Returns:
        Plotly Figure object
    """
    if names is None:
        names = engine.registry.physical_bodies()
    if fig is None:
        fig = go.Figure()

    for name in names:
        x, y, z = engine.position(name)
        display = engine.registry.node(name).display
        fig.add_trace(go.Scatter3d(
            x=[x], y=[y], z=[z],
            mode='markers+text',
            marker=dict(size=config.DEFAULT_MARKER_SIZE,
                        color=display.get('color', config.DEFAULT_BODY_COLOR)),
            text=[name],
            name=name,
            hovertemplate=f'{name}<br>x: %{{x:.4f}}<br>y: %{{y:.4f}}<br>z: %{{z:.4f}}<extra></extra>',
        ))

    fig.update_layout(
        scene=dict(
            xaxis_title='X [scene units]',
            yaxis_title='Y [scene units]',
            zaxis_title='Z [scene units]',
            aspectmode='data'
        ),
        title=f'Orrery at {engine.clock.date} {engine.clock.time} UT',
        showlegend=True
    )
    return fig
