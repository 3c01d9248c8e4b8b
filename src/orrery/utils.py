"""
Utility functions and classes for the Orrery package.
"""

from time import perf_counter
import logging
import math
import warnings
from typing import Iterable, Type
from .config import config

logger = logging.getLogger(__name__)


class Timer:
    """
    Context manager for timing code execution.

    Examples
    --------
    >>> from orrery.utils import Timer
    >>> with Timer("Export"):
    ...     table = export_ephemeris(times)
    Export: 0.123456 s

    >>> with Timer(verbose=False) as t:
    ...     # ... code ...
    >>> print(f"Took {t.elapsed:.6f} seconds")
    """
    def __init__(self, name="Operation", verbose=True):
        """
        Parameters
        ----------
        name : str, optional
            Name to display when timing completes (default: "Operation")
        verbose : bool, optional
            Whether to print timing automatically (default: True).
            When False the timing is only logged at DEBUG level.
        """
        self.name = name
        self.verbose = verbose
        self.elapsed = None

    def __enter__(self):
        self.start = perf_counter()
        return self

    def __exit__(self, *args):
        self.end = perf_counter()
        self.elapsed = self.end - self.start
        if self.verbose:
            print(f"{self.name}: {self.elapsed:.6f} s")
        else:
            logger.debug("%s: %.6f s", self.name, self.elapsed)


def validation_error(message: str, error_class: Type[Exception] = ValueError):
    """
    Raise error or warn based on config.STRICT_VALIDATION.

    This function provides consistent validation behavior across the package.
    When STRICT_VALIDATION is True (default), raises the specified exception.
    When False, issues a UserWarning instead.

    Parameters
    ----------
    message : str
        Validation error message
    error_class : Type[Exception], optional
        Exception class to raise if STRICT_VALIDATION is True.
        Default: ValueError

    Raises
    ------
    Exception (of type error_class)
        If config.STRICT_VALIDATION is True

    Warns
    -----
    UserWarning
        If config.STRICT_VALIDATION is False
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    else:
        warnings.warn(message, UserWarning, stacklevel=2)


def all_finite(values: Iterable[float]) -> bool:
    """True if every value is a finite real number."""
    return all(math.isfinite(v) for v in values)
