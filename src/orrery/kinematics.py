'''Clockwork solar-system model
Simulation clock and kinematic update

Every node's local transform is a pure function of the simulation time and
the node's own static parameters. Nothing here keeps state between calls.'''

import math
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import numpy as np

from .bodies import OrbitNode, Circular, Elliptical
from .registry import BodyRegistry
from . import timescale
from .transforms import rotation_x, rotation_y, rotation_z, translation, euler_xyz, frozen

logger = logging.getLogger(__name__)

# Zodiac band sits a third of a turn back from Earth's orbital angle
ZODIAC_OFFSET = -math.pi / 3


# ========== SIMULATION CLOCK ==========
@dataclass(frozen=True)
class SimulationClock:
    """
    Immutable simulation-time cursor.

    Attributes
    ----------
    t : float
        Simulation time [years of ``YEAR_LENGTH`` days since 2000-06-21 12:00 UT]

    Examples
    --------
    >>> clock = SimulationClock.from_date("2024-03-20", "03:06:00")
    >>> later = clock.advanced(1.0)
    >>> later.t - clock.t
    1.0
    """
    t: float = 0.0

    def __post_init__(self):
        if not math.isfinite(self.t):
            raise ValueError(f"Simulation time must be finite, got {self.t}")
        object.__setattr__(self, 't', float(self.t))

    @classmethod
    def from_julian_day(cls, jd: float) -> 'SimulationClock':
        return cls(timescale.julian_day_to_pos(jd))

    @classmethod
    def from_date(cls, date: str, time: str = "12:00:00") -> 'SimulationClock':
        return cls(timescale.date_time_to_pos(date, time))

    def advanced(self, dt: float) -> 'SimulationClock':
        """Return a new clock moved by ``dt`` simulation years."""
        return SimulationClock(self.t + dt)

    @property
    def julian_day(self) -> float:
        return timescale.pos_to_julian_day(self.t)

    @property
    def date(self) -> str:
        return timescale.pos_to_date_time(self.t)[0]

    @property
    def time(self) -> str:
        return timescale.pos_to_time(self.t)

    def __repr__(self):
        return f"SimulationClock(t={self.t!r}, date='{self.date}', time='{self.time}')"


# ========== PER-NODE STATE ==========
@dataclass(frozen=True)
class NodeState:
    """
    Local kinematic state of one node at one instant.

    Attributes
    ----------
    anomaly : float
        Orbital angle theta [rad]
    spin : float
        Axial rotation angle [rad], 0 when the node has no spin
    pivot_local : np.ndarray
        4x4 transform from the parent pivot frame to this node's pivot frame
    axis_local : np.ndarray
        4x4 transform from this node's pivot frame to its tilted body frame
    """
    anomaly: float
    spin: float
    pivot_local: np.ndarray
    axis_local: np.ndarray


def anomaly_angle(node: OrbitNode, t: float) -> float:
    """theta = angular_speed * t - start_phase, in radians."""
    return node.angular_speed * t - math.radians(node.start_phase_deg)


def spin_angle(node: OrbitNode, t: float) -> float:
    if not node.spin_speed:
        return 0.0
    return node.spin_speed * t


def container_matrix(node: OrbitNode) -> np.ndarray:
    """Time-independent part of a node: centre offset, then orbit tilt."""
    x, y, z = node.center
    tilt = euler_xyz(math.radians(node.orbit_tilt_a),
                     math.radians(node.container_yaw_deg),
                     math.radians(node.orbit_tilt_b))
    return translation(x, y, z) @ tilt


def axis_matrix(node: OrbitNode) -> np.ndarray:
    """Axial tilt of the body frame relative to its pivot."""
    return rotation_x(math.radians(node.axis_tilt_b)) @ rotation_z(math.radians(node.axis_tilt_a))


def pivot_matrix(node: OrbitNode, theta: float) -> np.ndarray:
    """
    Local transform from the parent pivot to this node's pivot.

    Order is fixed: translate by centre, tilt, orbit motion. Circular
    orbits rotate the orbit sub-frame and step out along x by the radius.
    Elliptical orbits translate to the point on the ellipse without
    rotating.
    """
    container = container_matrix(node)
    shape = node.shape
    if isinstance(shape, Circular):
        return container @ rotation_y(theta) @ translation(shape.radius, 0.0, 0.0)
    elif isinstance(shape, Elliptical):
        return container @ translation(math.cos(theta) * shape.semi_major,
                                       0.0,
                                       math.sin(theta) * shape.semi_minor)
    else:
        raise TypeError(f"Unsupported orbit shape {type(shape).__name__}")


def node_state(node: OrbitNode, t: float) -> NodeState:
    theta = anomaly_angle(node, t)
    return NodeState(
        anomaly=theta,
        spin=spin_angle(node, t),
        pivot_local=frozen(pivot_matrix(node, theta)),
        axis_local=frozen(axis_matrix(node)),
    )


# ========== KINEMATIC STATE ==========
class KinematicState:
    """
    Local transforms of every node at a single simulation time.

    Produced by :func:`kinematic_update`; never mutated afterwards.
    """

    def __init__(self, t: float, nodes: Mapping[str, NodeState],
                 zodiac_rotation: Optional[float]):
        self._t = t
        self._nodes = dict(nodes)
        self._zodiac_rotation = zodiac_rotation

    @property
    def t(self) -> float:
        return self._t

    @property
    def zodiac_rotation(self) -> Optional[float]:
        """Zodiac band rotation about y [rad], derived from Earth's anomaly."""
        return self._zodiac_rotation

    def __getitem__(self, name: str) -> NodeState:
        return self._nodes[name]

    def __contains__(self, name) -> bool:
        return name in self._nodes

    def __len__(self):
        return len(self._nodes)

    def anomaly(self, name: str) -> float:
        return self._nodes[name].anomaly

    def __repr__(self):
        return f"KinematicState(t={self._t!r}, nodes={len(self._nodes)})"


def kinematic_update(registry: BodyRegistry, t: float,
                     zodiac_anchor: str = "Earth") -> KinematicState:
    """
    Compute every node's local transform at simulation time ``t``.

    Pure: the same ``t`` always gives the same result, independent of any
    earlier call. Each node is computed from its own parameters only.

    Parameters
    ----------
    registry : BodyRegistry
        Node tree to evaluate
    t : float
        Simulation time [years]
    zodiac_anchor : str, optional
        Node whose anomaly drives the zodiac band (default: "Earth").
        If the node is absent the zodiac rotation is None.

    Returns
    -------
    KinematicState
    """
    t = float(t)
    states: Dict[str, NodeState] = {node.name: node_state(node, t) for node in registry}
    zodiac = None
    if zodiac_anchor in states:
        zodiac = ZODIAC_OFFSET - states[zodiac_anchor].anomaly
    return KinematicState(t, states, zodiac)
