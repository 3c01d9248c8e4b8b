"""
Test suite for the simulation clock, kinematic update and composition.

Tests cover:
- SimulationClock conversions
- Local transform order for circular and elliptical orbits
- Determinism and periodicity of world positions
- Composition through nested frames
- Zodiac rotation and read-only results
"""

import math

import numpy as np
import pytest
from orrery import (
    OrbitNode, BodyRegistry, Circular, Elliptical, SimulationClock,
    default_registry, kinematic_update, compose_world, world_at, world_position_at
)
from orrery.kinematics import ZODIAC_OFFSET, anomaly_angle, spin_angle


def _planet_registry(**planet):
    nodes = [
        OrbitNode("Root"),
        OrbitNode("Planet", parent="Root", category="body", **planet),
    ]
    return BodyRegistry(nodes)


class TestSimulationClock:
    """Test SimulationClock."""

    def test_epoch(self):
        """t=0 is 2000-06-21 12:00 UT, JD 2451717."""
        clock = SimulationClock()
        assert clock.julian_day == 2451717.0
        assert clock.date == "2000-06-21"
        assert clock.time == "12:00:00"

    def test_from_date(self):
        """from_date at the epoch gives t=0."""
        assert SimulationClock.from_date("2000-06-21", "12:00:00").t == 0.0

    def test_from_julian_day(self):
        """from_julian_day inverts julian_day."""
        clock = SimulationClock.from_julian_day(2460000.5)
        assert clock.julian_day == pytest.approx(2460000.5)

    def test_advanced_returns_new(self):
        """advanced() leaves the original clock alone."""
        clock = SimulationClock(1.0)
        later = clock.advanced(0.5)
        assert later.t == 1.5
        assert clock.t == 1.0

    def test_non_finite(self):
        """Non-finite times are rejected."""
        with pytest.raises(ValueError, match="finite"):
            SimulationClock(float('nan'))
        with pytest.raises(ValueError):
            SimulationClock(0.0).advanced(float('inf'))


class TestLocalTransforms:
    """Test per-node angles and matrices."""

    def test_anomaly(self):
        """theta = speed * t - radians(start phase)."""
        node = OrbitNode("X", angular_speed=2.0, start_phase_deg=90.0)
        assert anomaly_angle(node, 3.0) == pytest.approx(6.0 - math.pi / 2)

    def test_no_spin(self):
        """Nodes without spin speed do not spin."""
        assert spin_angle(OrbitNode("X"), 10.0) == 0.0
        assert spin_angle(OrbitNode("X", spin_speed=3.0), 2.0) == 6.0

    def test_circular_start(self):
        """At theta=0 the pivot sits at (radius, 0, 0)."""
        reg = _planet_registry(angular_speed=2 * math.pi, shape=Circular(10.0))
        assert np.allclose(world_at(reg, 0.0).position("Planet"), [10, 0, 0])

    def test_circular_quarter_turn(self):
        """A quarter turn about y carries +x to -z."""
        reg = _planet_registry(angular_speed=2 * math.pi, shape=Circular(10.0))
        assert np.allclose(world_at(reg, 0.25).position("Planet"), [0, 0, -10], atol=1e-12)

    def test_container_yaw(self):
        """Container yaw turns the whole orbit."""
        reg = _planet_registry(shape=Circular(10.0), container_yaw_deg=90.0)
        assert np.allclose(world_at(reg, 0.0).position("Planet"), [0, 0, -10], atol=1e-12)

    def test_orbit_tilt(self):
        """Tilt about x lifts the orbit out of the plane."""
        reg = _planet_registry(angular_speed=2 * math.pi, shape=Circular(10.0),
                               orbit_tilt_a=90.0)
        # quarter turn: (0, 0, -10) in the orbit frame, then Rx(90) sends -z to +y
        assert np.allclose(world_at(reg, 0.25).position("Planet"), [0, 10, 0], atol=1e-12)

    def test_center_offset(self):
        """The orbit centre translates the pivot."""
        reg = _planet_registry(shape=Circular(1.0), center=(5.0, 6.0, 7.0))
        assert np.allclose(world_at(reg, 0.0).position("Planet"), [6, 6, 7])

    def test_elliptical(self):
        """Elliptical orbits sit at (cos*a, 0, sin*b) without rotating."""
        reg = _planet_registry(angular_speed=2 * math.pi, shape=Elliptical(10.0, 5.0))
        world0 = world_at(reg, 0.0)
        assert np.allclose(world0.position("Planet"), [10, 0, 0])
        assert np.allclose(world_at(reg, 0.25).position("Planet"), [0, 0, 5], atol=1e-12)
        # no orbit rotation, so the pivot axes stay aligned with the parent
        assert np.allclose(world_at(reg, 0.25).pivot_matrix("Planet")[:3, :3], np.eye(3))

    def test_axis_tilt_only_affects_body_frame(self):
        """Axial tilt changes the body frame but not the pivot."""
        reg = _planet_registry(shape=Circular(10.0), axis_tilt_a=30.0)
        world = world_at(reg, 0.0)
        assert np.allclose(world.pivot_matrix("Planet")[:3, :3], np.eye(3))
        assert not np.allclose(world.body_matrix("Planet")[:3, :3], np.eye(3))
        assert np.allclose(world.body_matrix("Planet")[:3, 3], [10, 0, 0])


class TestComposition:
    """Test world composition through the tree."""

    def test_nested_frames(self):
        """Child pivots compose with their parent's."""
        reg = BodyRegistry([
            OrbitNode("Root"),
            OrbitNode("A", parent="Root", shape=Circular(10.0)),
            OrbitNode("B", parent="A", shape=Circular(1.0)),
        ])
        assert np.allclose(world_at(reg, 0.0).position("B"), [11, 0, 0])

    def test_child_follows_parent_rotation(self):
        """A child's offset turns with its parent's orbit."""
        reg = BodyRegistry([
            OrbitNode("Root"),
            OrbitNode("A", parent="Root", angular_speed=2 * math.pi, shape=Circular(10.0)),
            OrbitNode("B", parent="A", shape=Circular(1.0)),
        ])
        assert np.allclose(world_at(reg, 0.25).position("B"), [0, 0, -11], atol=1e-12)

    def test_determinism(self):
        """The same t always gives the same positions."""
        reg = default_registry()
        first = world_at(reg, 12.345).positions()
        world_at(reg, -300.0)
        second = world_at(reg, 12.345).positions()
        assert np.allclose(first, second, rtol=0, atol=1e-9)

    def test_periodicity(self):
        """One full period returns a circular node to its start."""
        period = 3.7
        reg = _planet_registry(angular_speed=2 * math.pi / period, start_phase_deg=25.0,
                               shape=Circular(10.0), center=(1.0, 2.0, 3.0),
                               orbit_tilt_a=5.0, orbit_tilt_b=-3.0)
        start = world_at(reg, 0.0).position("Planet")
        end = world_at(reg, period).position("Planet")
        assert np.allclose(start, end, rtol=0, atol=1e-9)

    def test_chain_matches_full_composition(self):
        """Ancestor-chain evaluation matches the full tree."""
        reg = default_registry()
        world = world_at(reg, 3.3)
        for name in ("Moon", "Mars", "Phobos", "Sun"):
            assert np.allclose(world_position_at(reg, name, 3.3), world.position(name),
                               rtol=0, atol=1e-9)

    def test_zodiac_rotation(self):
        """The zodiac angle tracks Earth's anomaly."""
        reg = default_registry()
        state = kinematic_update(reg, 1.5)
        assert state.zodiac_rotation == pytest.approx(ZODIAC_OFFSET - state.anomaly("Earth"))
        assert compose_world(reg, state).zodiac_matrix is not None

    def test_no_zodiac_without_anchor(self):
        """Trees without the anchor node have no zodiac."""
        reg = _planet_registry(shape=Circular(1.0))
        state = kinematic_update(reg, 0.0)
        assert state.zodiac_rotation is None
        assert compose_world(reg, state).zodiac_matrix is None

    def test_matrices_read_only(self):
        """Returned matrices cannot be modified."""
        world = world_at(default_registry(), 0.0)
        with pytest.raises(ValueError):
            world.pivot_matrix("Earth")[0, 0] = 2.0

    def test_position_is_copy(self):
        """position() returns a writable copy."""
        world = world_at(default_registry(), 0.0)
        pos = world.position("Earth")
        pos[0] = 1e9
        assert world.position("Earth")[0] != 1e9

    def test_state_len(self):
        """The state covers every node."""
        reg = default_registry()
        state = kinematic_update(reg, 0.0)
        assert len(state) == len(reg)
        assert "Moon" in state
