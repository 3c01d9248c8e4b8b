'''Clockwork solar-system model
Orbit node definitions

An orbit node is one reference frame in the kinematic hierarchy. It may be a
physical body (Earth, Mars, Phobos) or a pure reference frame (a precession
cycle, a barycenter, an ellipse factor). All node types here are immutable.'''

import math
from dataclasses import astuple, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from .config import config


class ConfigurationError(ValueError):
    """Raised when the body table cannot form a valid, finite node tree."""


# define an enumerated list of node categories
class NodeCategory(Enum):
    PHYSICAL_BODY = 'body'
    REFERENCE_FRAME = 'frame'


def _parse_category(category) -> NodeCategory:
    """Convert string or enum to NodeCategory enum"""
    if isinstance(category, NodeCategory):
        return category
    elif isinstance(category, str):
        type_map = {
            'body': NodeCategory.PHYSICAL_BODY,
            'physical': NodeCategory.PHYSICAL_BODY,
            'physical_body': NodeCategory.PHYSICAL_BODY,
            'frame': NodeCategory.REFERENCE_FRAME,
            'reference': NodeCategory.REFERENCE_FRAME,
            'reference_frame': NodeCategory.REFERENCE_FRAME,
        }
        key = category.lower()
        if key not in type_map:
            raise ValueError(
                f"Unknown node category '{category}'. "
                f"Valid options: {list(type_map.keys())}"
            )
        return type_map[key]
    else:
        raise TypeError(f"category must be str or NodeCategory, got {type(category)}")


def _check_finite(owner: str, **values):
    for key, value in values.items():
        if value is None:
            continue
        if not math.isfinite(value):
            raise ConfigurationError(f"{owner}: {key} must be finite, got {value}")


# ========== ORBIT SHAPES ==========
@dataclass(frozen=True)
class Circular:
    """
    Uniform circular motion: the orbit sub-frame is rotated by the anomaly
    angle and the pivot sits at ``(radius, 0, 0)`` inside it.

    The radius is signed. A negative radius places the pivot on the
    opposite side of the centre, which the calibrated table relies on.
    """
    radius: float

    def __post_init__(self):
        _check_finite("Circular", radius=self.radius)


@dataclass(frozen=True)
class Elliptical:
    """
    Elliptical motion: the pivot is placed directly at
    ``(cos(theta) * semi_major, 0, sin(theta) * semi_minor)``.
    """
    semi_major: float
    semi_minor: float

    def __post_init__(self):
        _check_finite("Elliptical", semi_major=self.semi_major,
                      semi_minor=self.semi_minor)
        if self.semi_major == self.semi_minor:
            raise ConfigurationError(
                f"Elliptical orbit needs distinct axes, got {self.semi_major} for both; "
                f"use Circular instead"
            )


OrbitShape = Union[Circular, Elliptical]


# ========== TRACE SETTINGS ==========
@dataclass(frozen=True)
class TraceSettings:
    """
    Immutable trace parameters for one body.

    Attributes
    ----------
    length : float
        Span of simulation time covered by a full buffer [years]
    step : float
        Simulation time between consecutive samples [years]
    enabled : bool
        Whether tracing is switched on by default
    """
    length: float
    step: float
    enabled: bool = False

    def __post_init__(self):
        _check_finite("TraceSettings", length=self.length, step=self.step)

    @property
    def capacity(self) -> int:
        """Number of samples the ring buffer holds."""
        if self.step <= 0:
            raise ValueError(f"Trace step must be positive, got {self.step}")
        return max(int(round(self.length / self.step)), 1)

    @property
    def is_valid(self) -> bool:
        return self.step > 0 and self.length > 0


# ========== ORBIT NODE ==========
@dataclass(frozen=True, eq=False)
class OrbitNode:
    """
    Immutable static parameters of one reference frame.

    Attributes
    ----------
    name : str
        Unique node name
    parent : str or None
        Name of the parent node, None only for the root
    category : NodeCategory
        Physical body or pure reference frame
    angular_speed : float
        Orbital angular speed [rad / simulation year]
    start_phase_deg : float
        Phase subtracted from the orbital angle [deg]
    spin_speed : float, optional
        Axial rotation speed [rad / simulation year], None for no spin
    axis_tilt_a, axis_tilt_b : float
        Axial tilt of the body frame about z and x [deg]
    orbit_tilt_a, orbit_tilt_b : float
        Tilt of the orbit container about x and z [deg]
    container_yaw_deg : float
        Fixed extra yaw of the orbit container about y [deg]
    center : tuple of float
        Offset (x, y, z) of the orbit centre in the parent pivot frame
    shape : Circular or Elliptical
        Orbit shape variant
    trace : TraceSettings, optional
        Trace defaults for this node
    display : dict
        Rendering attributes (size, color, ...) carried through untouched
    """
    name: str
    parent: Optional[str] = None
    category: NodeCategory = NodeCategory.REFERENCE_FRAME
    angular_speed: float = 0.0
    start_phase_deg: float = 0.0
    spin_speed: Optional[float] = None
    axis_tilt_a: float = 0.0
    axis_tilt_b: float = 0.0
    orbit_tilt_a: float = 0.0
    orbit_tilt_b: float = 0.0
    container_yaw_deg: float = 0.0
    center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    shape: OrbitShape = Circular(0.0)
    trace: Optional[TraceSettings] = None
    display: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError(f"Node name must be a non-empty string, got {self.name!r}")
        if self.parent == self.name:
            raise ConfigurationError(f"Node '{self.name}' cannot be its own parent")
        object.__setattr__(self, 'category', _parse_category(self.category))
        if not isinstance(self.shape, (Circular, Elliptical)):
            raise ConfigurationError(
                f"Node '{self.name}': shape must be Circular or Elliptical, "
                f"got {type(self.shape).__name__}"
            )
        center = tuple(float(c) for c in self.center)
        if len(center) != 3:
            raise ConfigurationError(
                f"Node '{self.name}': center must have 3 components, got {len(center)}"
            )
        object.__setattr__(self, 'center', center)
        _check_finite(
            f"Node '{self.name}'",
            angular_speed=self.angular_speed,
            start_phase_deg=self.start_phase_deg,
            spin_speed=self.spin_speed,
            axis_tilt_a=self.axis_tilt_a,
            axis_tilt_b=self.axis_tilt_b,
            orbit_tilt_a=self.orbit_tilt_a,
            orbit_tilt_b=self.orbit_tilt_b,
            container_yaw_deg=self.container_yaw_deg,
            center_x=center[0], center_y=center[1], center_z=center[2],
        )

    # ========== CONSTRUCTION ==========
    @classmethod
    def from_table(cls, name: str, parent: Optional[str] = None, *,
                   orbit_radius: Optional[float] = None,
                   semi_major: Optional[float] = None,
                   semi_minor: Optional[float] = None,
                   orbit_center_a: float = 0.0,
                   orbit_center_b: float = 0.0,
                   orbit_center_c: float = 0.0,
                   **kwargs) -> 'OrbitNode':
        """
        Build a node from calibration-table style columns.

        The table lists the orbit centre as (a, b, c) where ``a`` is x,
        ``b`` is z and ``c`` is the vertical y axis. Exactly one of
        ``orbit_radius`` or the ``(semi_major, semi_minor)`` pair selects
        the orbit shape. When neither is given the orbit is circular with
        zero radius.
        """
        has_axes = semi_major is not None or semi_minor is not None
        if orbit_radius is not None and has_axes:
            raise ConfigurationError(
                f"Node '{name}': give either orbit_radius or semi_major/semi_minor, not both"
            )
        if has_axes:
            if semi_major is None or semi_minor is None:
                raise ConfigurationError(
                    f"Node '{name}': elliptical orbit needs both semi_major and semi_minor"
                )
            shape = Elliptical(semi_major, semi_minor)
        else:
            shape = Circular(0.0 if orbit_radius is None else orbit_radius)
        center = (orbit_center_a, orbit_center_c, orbit_center_b)
        return cls(name=name, parent=parent, shape=shape, center=center, **kwargs)

    # ========== PROPERTY ACCESS ==========
    @property
    def is_physical(self) -> bool:
        return self.category == NodeCategory.PHYSICAL_BODY

    @property
    def is_elliptical(self) -> bool:
        return isinstance(self.shape, Elliptical)

    @property
    def period(self) -> float:
        """Orbital period [simulation years]; inf for a stationary node."""
        if self.angular_speed == 0:
            return math.inf
        return 2 * math.pi / abs(self.angular_speed)

    # ========== COMPARISON ==========
    def _key(self) -> tuple:
        return (self.name, self.parent, self.category, type(self.shape).__name__,
                self.spin_speed is None, self.trace)

    def _values(self) -> np.ndarray:
        return np.array([
            self.angular_speed, self.start_phase_deg,
            0.0 if self.spin_speed is None else self.spin_speed,
            self.axis_tilt_a, self.axis_tilt_b,
            self.orbit_tilt_a, self.orbit_tilt_b, self.container_yaw_deg,
            *self.center, *astuple(self.shape),
        ], dtype=float)

    def __eq__(self, other):
        #Check equality with tolerance; display attributes are ignored
        if not isinstance(other, OrbitNode):
            return False
        if self._key() != other._key():
            return False
        return bool(np.allclose(self._values(), other._values(),
                                rtol=config.EQUALITY_RTOL, atol=config.EQUALITY_ATOL))

    def __hash__(self):
        #Hash with rounding to match equality
        return hash((self._key(), tuple(np.round(self._values(), config.HASH_DECIMALS))))

    def __repr__(self):
        parent = self.parent if self.parent is not None else '<root>'
        return (f"OrbitNode('{self.name}', parent='{parent}', "
                f"category={self.category.name}, shape={self.shape})")
