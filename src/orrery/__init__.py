"""
Orrery: Clockwork Model of the Solar System

A Python package that drives a tree of nested periodic motions from a single
simulation time, and derives sky positions, traces and orbital ephemeris
values from it.
"""

# Core classes
from .bodies import OrbitNode, NodeCategory, Circular, Elliptical, TraceSettings
from .bodies import ConfigurationError
from .registry import BodyRegistry, BodyRegistry as Registry
from .kinematics import SimulationClock, SimulationClock as Clock, kinematic_update
from .composer import WorldTransforms, compose_world, world_at, world_position_at
from .projection import BodyReading, project, ecliptic_longitude, format_ra, format_dec
from .trace import TraceBuffer, TraceRecorder, TraceRecorder as Recorder, plot_traces
from .ephemeris import Calibration, EphemerisSnapshot, SolarEvent
from .ephemeris import snapshot, newton_raphson, longitude_to_datetime
from .engine import OrbitEngine, OrbitEngine as Engine, plot_system, fit_epoch_longitude
from .export import export_ephemeris, export_positions

# Calibrated model and time units
from .defaults import default_registry, TRACKED_BODIES
from .defaults import S_YEAR, S_MONTH, S_WEEK, S_DAY, S_HOUR, S_MINUTE, S_SECOND

# Configuration
from .config import config, temp_config

# Package metadata
__version__ = "0.1.0"
__author__ = "Shane Billingsley"

# Define what gets imported with "from orrery import *"
__all__ = [
    # Classes
    "OrbitNode",
    "NodeCategory",
    "Circular",
    "Elliptical",
    "TraceSettings",
    "BodyRegistry",
    "SimulationClock",
    "WorldTransforms",
    "BodyReading",
    "TraceBuffer",
    "TraceRecorder",
    "Calibration",
    "EphemerisSnapshot",
    "SolarEvent",
    "OrbitEngine",
    "ConfigurationError",
    # Abbreviations
    "Registry",
    "Clock",
    "Recorder",
    "Engine",
    # Functions
    "kinematic_update",
    "compose_world",
    "world_at",
    "world_position_at",
    "project",
    "ecliptic_longitude",
    "format_ra",
    "format_dec",
    "snapshot",
    "newton_raphson",
    "longitude_to_datetime",
    "export_ephemeris",
    "export_positions",
    "plot_traces",
    "plot_system",
    "fit_epoch_longitude",
    "default_registry",
    # Constants
    "TRACKED_BODIES",
    "S_YEAR",
    "S_MONTH",
    "S_WEEK",
    "S_DAY",
    "S_HOUR",
    "S_MINUTE",
    "S_SECOND",
    # Configuration
    "config",
    "temp_config",
]
