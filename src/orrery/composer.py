'''Clockwork solar-system model
Transform composition

World transform of a node = product of the local transforms from the root
down to that node.'''

from typing import Dict, Optional, Tuple

import numpy as np

from .registry import BodyRegistry
from .kinematics import KinematicState, kinematic_update, node_state
from .transforms import rotation_y, frozen


class WorldTransforms:
    """
    World-space frames of every node at one simulation time.

    For each node three frames are available:

    * pivot - the frame children attach to; its origin is the node position
    * body  - the pivot frame with the node's axial tilt applied
    * spin  - the body frame turned by the node's axial rotation

    All returned arrays are read-only.
    """

    def __init__(self, t: float, pivots: Dict[str, np.ndarray],
                 bodies: Dict[str, np.ndarray], spins: Dict[str, np.ndarray],
                 zodiac: Optional[np.ndarray] = None):
        self._t = t
        self._pivots = pivots
        self._bodies = bodies
        self._spins = spins
        self._zodiac = zodiac

    @property
    def t(self) -> float:
        return self._t

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._pivots)

    def pivot_matrix(self, name: str) -> np.ndarray:
        return self._pivots[name]

    def body_matrix(self, name: str) -> np.ndarray:
        return self._bodies[name]

    def spin_matrix(self, name: str) -> np.ndarray:
        return self._spins[name]

    @property
    def zodiac_matrix(self) -> Optional[np.ndarray]:
        return self._zodiac

    def position(self, name: str) -> np.ndarray:
        """World position of a node [scene units]."""
        return self._pivots[name][:3, 3].copy()

    def positions(self, names=None) -> np.ndarray:
        """Stacked world positions, shape (n, 3)."""
        names = self.names if names is None else names
        return np.array([self._pivots[n][:3, 3] for n in names])

    def __contains__(self, name) -> bool:
        return name in self._pivots

    def __repr__(self):
        return f"WorldTransforms(t={self._t!r}, nodes={len(self._pivots)})"


def compose_world(registry: BodyRegistry, state: KinematicState,
                  zodiac_anchor: str = "Earth") -> WorldTransforms:
    """
    Compose local transforms into world transforms.

    Parents are always visited before children, so each world pivot is a
    single product with the parent's already-composed pivot.
    """
    pivots: Dict[str, np.ndarray] = {}
    bodies: Dict[str, np.ndarray] = {}
    spins: Dict[str, np.ndarray] = {}
    for name in registry.order:
        node = registry.node(name)
        local = state[name]
        if node.parent is None:
            world = local.pivot_local.copy()
        else:
            world = pivots[node.parent] @ local.pivot_local
        body = world @ local.axis_local
        pivots[name] = frozen(world)
        bodies[name] = frozen(body)
        spins[name] = frozen(body @ rotation_y(local.spin))

    zodiac = None
    if state.zodiac_rotation is not None and zodiac_anchor in pivots:
        zodiac = frozen(pivots[zodiac_anchor] @ rotation_y(state.zodiac_rotation))
    return WorldTransforms(state.t, pivots, bodies, spins, zodiac)


def world_at(registry: BodyRegistry, t: float, zodiac_anchor: str = "Earth") -> WorldTransforms:
    """Kinematic update followed by composition, in one call."""
    return compose_world(registry, kinematic_update(registry, t, zodiac_anchor), zodiac_anchor)


def world_pivot_at(registry: BodyRegistry, name: str, t: float) -> np.ndarray:
    """
    World pivot matrix of a single node at time ``t``.

    Only the ancestor chain is evaluated, so this is O(depth) rather than
    O(nodes). Used for sampling historical positions without touching any
    cached full-tree state.
    """
    m = np.eye(4)
    for ancestor in registry.ancestors(name):
        m = m @ node_state(registry.node(ancestor), t).pivot_local
    return m


def world_position_at(registry: BodyRegistry, name: str, t: float) -> np.ndarray:
    """World position of a single node at time ``t`` [scene units]."""
    return world_pivot_at(registry, name, t)[:3, 3].copy()
