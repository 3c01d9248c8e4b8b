"""
Global Configuration for Orrery Package
=======================================

This module provides package-wide configuration settings that users can modify
to control numerical tolerances, trace and solver limits, validation behavior,
and default plotting options.

The body table and the ephemeris calibration are NOT held here. They are
explicit objects (``BodyRegistry`` and ``Calibration``) that are built once
and passed to the engine.

Examples
--------
View current configuration:

>>> import orrery
>>> print(orrery.config)

Modify settings:

>>> orrery.config.TRACE_MAX_CATCHUP = 1000  # Allow longer catch-up per tick
>>> orrery.config.EXPORT_CHUNK_SIZE = 500  # Smaller cooperative chunks

Reset to defaults:

>>> orrery.config.reset()

Temporarily modify settings:

>>> with orrery.temp_config(STRICT_VALIDATION=False):
...     # Bad trace settings only warn inside this block
...     recorder.enable("Moon", 0.0, settings=bad_settings)

Notes
-----
These settings affect package-wide behavior. Modifying them will impact
all subsequent operations until changed again or reset.
"""

from dataclasses import dataclass
from contextlib import contextmanager
import math


@dataclass
class OrreryConfig:
    """
    Global configuration for Orrery package.

    Attributes
    ----------
    EQUALITY_RTOL : float
        Relative tolerance for floating-point equality comparisons.
        Default: 1e-12
    EQUALITY_ATOL : float
        Absolute tolerance for floating-point equality comparisons.
        Default: 1e-14
    DEGENERATE_DISTANCE : float
        Vectors shorter than this (scene units) are treated as zero-length
        by the projector. Default: 1e-12
    SCENE_UNITS_PER_AU : float
        Scene units per astronomical unit. Default: 100.0
    KM_PER_AU : float
        Kilometres per astronomical unit. Default: 149597870.698828
    KM_PER_MILE : float
        Kilometres per statute mile. Default: 1.609344
    TRACE_MAX_CATCHUP : int
        Largest number of catch-up samples written per tick, summed over
        all traced bodies. Traces that do not fit are reset. Default: 250
    TRACE_STEP_RTOL : float
        Fraction of a trace step by which a sample time may exceed the
        requested time and still count as due. Default: 1e-9
    NEWTON_MAX_ITERATIONS : int
        Iteration cap for the longitude solver. Default: 8
    NEWTON_TOLERANCE_DEG : float
        Convergence tolerance of the longitude solver [deg]. Default: 1e-8
    EXPORT_CHUNK_SIZE : int
        Rows per cooperative chunk in batch export. Default: 1000
    STRICT_VALIDATION : bool
        If True, soft validation failures raise exceptions.
        If False, they issue warnings.
        Default: True
    DEFAULT_TRACE_COLOR : str
        Default color for trace polylines in plots.
        Default: 'red'
    DEFAULT_BODY_COLOR : str
        Default color for body markers in plots.
        Default: 'lightblue'
    DEFAULT_MARKER_SIZE : float
        Default marker size for body markers in plots.
        Default: 4.0
    """

    # Numerical tolerance for equality comparisons
    EQUALITY_RTOL: float = 1e-12
    EQUALITY_ATOL: float = 1e-14

    # Geometry
    DEGENERATE_DISTANCE: float = 1e-12
    SCENE_UNITS_PER_AU: float = 100.0
    KM_PER_AU: float = 149597870.698828
    KM_PER_MILE: float = 1.609344

    # Work bounds
    TRACE_MAX_CATCHUP: int = 250
    TRACE_STEP_RTOL: float = 1e-9
    NEWTON_MAX_ITERATIONS: int = 8
    NEWTON_TOLERANCE_DEG: float = 1e-8
    EXPORT_CHUNK_SIZE: int = 1000

    # Validation behavior
    STRICT_VALIDATION: bool = True

    # Plotting defaults
    DEFAULT_TRACE_COLOR: str = 'red'
    DEFAULT_BODY_COLOR: str = 'lightblue'
    DEFAULT_MARKER_SIZE: float = 4.0

    @property
    def HASH_DECIMALS(self) -> int:
        """
        Compute hash rounding decimals from equality tolerance.

        Formula: HASH_DECIMALS = -floor(log10(ATOL)) - 2

        Returns
        -------
        int
            Number of decimal places for hash rounding
        """
        magnitude = -math.floor(math.log10(self.EQUALITY_ATOL))
        return max(magnitude - 2, 0)

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import orrery
        >>> orrery.config.TRACE_MAX_CATCHUP = 5  # Modify
        >>> orrery.config.reset()  # Back to defaults
        >>> orrery.config.TRACE_MAX_CATCHUP
        250
        """
        defaults = OrreryConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["OrreryConfig:"]
        lines.append("  Numerical Tolerances:")
        lines.append(f"    EQUALITY_RTOL = {self.EQUALITY_RTOL}")
        lines.append(f"    EQUALITY_ATOL = {self.EQUALITY_ATOL}")
        lines.append(f"    HASH_DECIMALS = {self.HASH_DECIMALS}")
        lines.append("  Geometry:")
        lines.append(f"    DEGENERATE_DISTANCE = {self.DEGENERATE_DISTANCE}")
        lines.append(f"    SCENE_UNITS_PER_AU = {self.SCENE_UNITS_PER_AU}")
        lines.append(f"    KM_PER_AU = {self.KM_PER_AU}")
        lines.append(f"    KM_PER_MILE = {self.KM_PER_MILE}")
        lines.append("  Work Bounds:")
        lines.append(f"    TRACE_MAX_CATCHUP = {self.TRACE_MAX_CATCHUP}")
        lines.append(f"    TRACE_STEP_RTOL = {self.TRACE_STEP_RTOL}")
        lines.append(f"    NEWTON_MAX_ITERATIONS = {self.NEWTON_MAX_ITERATIONS}")
        lines.append(f"    NEWTON_TOLERANCE_DEG = {self.NEWTON_TOLERANCE_DEG}")
        lines.append(f"    EXPORT_CHUNK_SIZE = {self.EXPORT_CHUNK_SIZE}")
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        lines.append("  Plotting:")
        lines.append(f"    DEFAULT_TRACE_COLOR = '{self.DEFAULT_TRACE_COLOR}'")
        lines.append(f"    DEFAULT_BODY_COLOR = '{self.DEFAULT_BODY_COLOR}'")
        lines.append(f"    DEFAULT_MARKER_SIZE = {self.DEFAULT_MARKER_SIZE}")
        return "\n".join(lines)


# Global configuration instance
config = OrreryConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import orrery
    >>> with orrery.temp_config(TRACE_MAX_CATCHUP=10):
    ...     recorder.sample("Moon", 100.0)  # resets instead of catching up
    >>> orrery.config.TRACE_MAX_CATCHUP
    250

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    old_values = {}
    for key, value in kwargs.items():
        if key not in config.__dataclass_fields__:
            raise AttributeError(
                f"OrreryConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )
        old_values[key] = getattr(config, key)
        setattr(config, key, value)

    try:
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
