'''Clockwork solar-system model
Batch export

Evaluate the ephemeris or body readings over many simulation times. Rows
are produced in chunks so a host can interleave other work between them,
and a bad time marks its own row invalid without stopping the batch.'''

import math
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import config
from .ephemeris import Calibration, DEFAULT_CALIBRATION, EphemerisSnapshot, snapshot
from .engine import OrbitEngine
from .defaults import TRACKED_BODIES
from .projection import BodyReading
from . import timescale
from .utils import Timer, validation_error

logger = logging.getLogger(__name__)

EPHEMERIS_COLUMNS = tuple(EphemerisSnapshot.__dataclass_fields__)
POSITION_COLUMNS = ('ra', 'dec', 'ra_hms', 'dec_dms', 'distance_au', 'distance_km',
                    'distance_mi', 'sun_ra', 'sun_dec', 'sun_distance_au', 'elongation_deg')


def _chunks(items: Sequence, size: int) -> Iterator[Sequence]:
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _stamp(t: float) -> Dict:
    """Julian day and calendar date of a row, NaN/None for a bad time."""
    if not math.isfinite(t):
        return {'julian_day': np.nan, 'date': None, 'time': None}
    date, time = timescale.pos_to_date_time(t)
    return {'julian_day': timescale.pos_to_julian_day(t), 'date': date, 'time': time}


# ========== EPHEMERIS ==========
def sample_ephemeris_at(t: float, calibration: Calibration = DEFAULT_CALIBRATION) -> Dict:
    """
    One export row of ephemeris values at ``t``.

    A non-finite time (or one the formulas cannot evaluate) gives a row with
    ``valid=False`` and NaN values.
    """
    row = {'t': t}
    row.update(_stamp(t))
    try:
        if not math.isfinite(t):
            raise ValueError(f"Simulation time must be finite, got {t}")
        values = snapshot(t, calibration).as_dict()
    except (ValueError, ArithmeticError) as err:
        logger.warning("Skipping ephemeris row at t=%r: %s", t, err)
        values = {key: np.nan for key in EPHEMERIS_COLUMNS}
        values['t'] = t
        values['valid'] = False
    else:
        values['valid'] = True
    row.update(values)
    return row


def iter_ephemeris(times: Iterable[float], calibration: Calibration = DEFAULT_CALIBRATION,
                   chunk_size: Optional[int] = None) -> Iterator[List[Dict]]:
    """
    Yield ephemeris rows in chunks of ``chunk_size``.

    Parameters
    ----------
    times : iterable of float
        Simulation times [years]
    calibration : Calibration, optional
    chunk_size : int, optional
        Rows per chunk (default: config.EXPORT_CHUNK_SIZE)

    Yields
    ------
    list of dict
    """
    times = [float(t) for t in times]
    size = config.EXPORT_CHUNK_SIZE if chunk_size is None else chunk_size
    for chunk in _chunks(times, size):
        yield [sample_ephemeris_at(t, calibration) for t in chunk]


def export_ephemeris(times: Iterable[float], calibration: Calibration = DEFAULT_CALIBRATION,
                     chunk_size: Optional[int] = None) -> pd.DataFrame:
    """
    Tabulate the ephemeris over ``times``.

    Returns
    -------
    DataFrame
        One row per time, with ``t``, ``julian_day``, ``date``, ``time``,
        every ephemeris quantity and a boolean ``valid`` column
    """
    rows: List[Dict] = []
    with Timer("Ephemeris export", verbose=False) as timer:
        for chunk in iter_ephemeris(times, calibration, chunk_size):
            rows.extend(chunk)
    df = pd.DataFrame(rows)
    invalid = 0 if df.empty else int((~df['valid']).sum())
    logger.info("Exported %d ephemeris rows (%d invalid) in %.3f s",
                len(rows), invalid, timer.elapsed)
    return df


# ========== POSITIONS ==========
def _position_row(t: float, reading: Optional[BodyReading], body: str) -> Dict:
    row = {'t': t}
    row.update(_stamp(t))
    row['body'] = body
    if reading is None:
        row.update({key: np.nan for key in POSITION_COLUMNS})
        row['ra_hms'] = None
        row['dec_dms'] = None
        row['valid'] = False
        return row
    values = reading.as_dict()
    del values['name']
    row.update(values)
    row['valid'] = True
    return row


def iter_positions(engine: OrbitEngine, times: Iterable[float],
                   bodies: Optional[Sequence[str]] = None,
                   chunk_size: Optional[int] = None) -> Iterator[List[Dict]]:
    """
    Yield body readings over ``times`` in chunks, one row per (t, body).

    Each time is evaluated with :meth:`OrbitEngine.project_at`, so the
    engine's clock, cached views and trace history are left untouched.

    Bodies missing from the registry go through ``validation_error`` once,
    before any row is produced: strict validation raises ``KeyError``,
    otherwise their rows are marked invalid. Rows keep the requested body
    order.
    """
    times = [float(t) for t in times]
    size = config.EXPORT_CHUNK_SIZE if chunk_size is None else chunk_size
    if bodies is None:
        bodies = [b for b in TRACKED_BODIES if b in engine.registry]
    bodies = list(bodies)
    unknown = [b for b in bodies if b not in engine.registry]
    if unknown:
        validation_error(f"Cannot export unknown bodies {unknown}", KeyError)
    known = [b for b in bodies if b in engine.registry]

    for chunk in _chunks(times, size):
        rows = []
        for t in chunk:
            try:
                readings = {r.name: r for r in engine.project_at(t, known)}
            except (ValueError, ArithmeticError) as err:
                logger.warning("Skipping position rows at t=%r: %s", t, err)
                readings = {}
            rows.extend(_position_row(t, readings.get(body), body) for body in bodies)
        yield rows


def export_positions(engine: OrbitEngine, times: Iterable[float],
                     bodies: Optional[Sequence[str]] = None,
                     chunk_size: Optional[int] = None) -> pd.DataFrame:
    """
    Tabulate RA/Dec/distance of ``bodies`` over ``times``.

    Parameters
    ----------
    engine : OrbitEngine
        Engine to evaluate; its clock and traces are not touched
    times : iterable of float
        Simulation times [years]
    bodies : sequence of str, optional
        Bodies to export (default: the engine's tracked bodies)
    chunk_size : int, optional
        Rows of times per chunk (default: config.EXPORT_CHUNK_SIZE)

    Returns
    -------
    DataFrame
        One row per (t, body) with a boolean ``valid`` column
    """
    rows: List[Dict] = []
    with Timer("Position export", verbose=False) as timer:
        for chunk in iter_positions(engine, times, bodies, chunk_size):
            rows.extend(chunk)
    df = pd.DataFrame(rows)
    invalid = 0 if df.empty else int((~df['valid']).sum())
    logger.info("Exported %d position rows (%d invalid) in %.3f s",
                len(rows), invalid, timer.elapsed)
    return df
