"""
Test suite for batch export.

Tests cover:
- Ephemeris rows and chunking
- Invalid rows for bad times
- Position export leaves the engine clock and traces alone
"""

import logging
import math

import numpy as np
import pandas as pd
import pytest
from orrery import OrbitEngine, default_registry, temp_config, export_ephemeris, export_positions
from orrery import TraceSettings, S_DAY
from orrery import ephemeris as eph
from orrery.export import sample_ephemeris_at, iter_ephemeris, iter_positions


@pytest.fixture(scope="module")
def registry():
    return default_registry()


class TestEphemerisExport:
    """Test ephemeris export."""

    def test_sample_row(self):
        """A row carries time stamps and every quantity."""
        row = sample_ephemeris_at(0.0)
        assert row['valid'] is True
        assert row['date'] == "2000-06-21"
        assert row['julian_day'] == 2451717.0
        assert row['eccentricity'] == eph.eccentricity(0.0)
        assert row['solar_longitude'] == eph.solar_longitude(0.0)

    def test_invalid_row(self, caplog):
        """A bad time gives an invalid NaN row and a warning."""
        with caplog.at_level(logging.WARNING, logger="orrery.export"):
            row = sample_ephemeris_at(float('nan'))
        assert row['valid'] is False
        assert math.isnan(row['eccentricity'])
        assert row['date'] is None
        assert caplog.records

    def test_chunks(self):
        """Rows come in chunks of the requested size."""
        chunks = list(iter_ephemeris(np.linspace(0.0, 1.0, 5), chunk_size=2))
        assert [len(c) for c in chunks] == [2, 2, 1]

    def test_default_chunk_size(self):
        """The chunk size defaults to the config value."""
        with temp_config(EXPORT_CHUNK_SIZE=3):
            chunks = list(iter_ephemeris(range(7)))
        assert [len(c) for c in chunks] == [3, 3, 1]

    def test_bad_chunk_size(self):
        """Chunk sizes must be positive."""
        with pytest.raises(ValueError, match="positive"):
            list(iter_ephemeris([0.0], chunk_size=0))

    def test_dataframe(self):
        """export_ephemeris returns one row per time with a valid column."""
        df = export_ephemeris([0.0, 1.0, float('nan'), 2.0])
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 4
        assert list(df['valid']) == [True, True, False, True]
        assert df['eccentricity'].iloc[0] == pytest.approx(0.01671, abs=1e-4)
        assert np.isnan(df['obliquity'].iloc[2])
        assert {'t', 'julian_day', 'date', 'time', 'axial_precession'} <= set(df.columns)

    def test_empty(self):
        """No times gives an empty frame."""
        assert export_ephemeris([]).empty


class TestPositionExport:
    """Test position export."""

    def test_rows_per_body(self, registry):
        """One row per time and body."""
        engine = OrbitEngine(registry)
        df = export_positions(engine, [0.0, 0.5], bodies=["Sun", "Mars"])
        assert len(df) == 4
        assert list(df['body']) == ["Sun", "Mars", "Sun", "Mars"]
        assert df['valid'].all()
        assert ((df['ra'] >= 0) & (df['ra'] < 2 * math.pi)).all()

    def test_matches_engine(self, registry):
        """Exported readings equal direct projection."""
        engine = OrbitEngine(registry)
        df = export_positions(engine, [1.25], bodies=["Venus"])
        engine.jump_to_time(1.25)
        reading = engine.project(["Venus"])[0]
        assert df['ra'].iloc[0] == pytest.approx(reading.ra)
        assert df['distance_au'].iloc[0] == pytest.approx(reading.distance_au)

    def test_bad_time_continues(self, registry, caplog):
        """A bad time marks its rows invalid and the batch continues."""
        engine = OrbitEngine(registry)
        with caplog.at_level(logging.WARNING, logger="orrery.export"):
            df = export_positions(engine, [0.0, float('inf'), 1.0], bodies=["Sun", "Moon"])
        assert len(df) == 6
        assert list(df['valid']) == [True, True, False, False, True, True]
        assert df['ra'].iloc[2:4].isna().all()
        assert caplog.records

    def test_clock_untouched(self, registry):
        """Exporting other times never moves the engine clock."""
        engine = OrbitEngine(registry)
        engine.jump_to_time(0.25)
        export_positions(engine, [3.0, 4.0], bodies=["Sun"])
        assert engine.t == 0.25

    def test_clock_untouched_while_open(self, registry):
        """The clock stays put while the generator is open and after closing."""
        engine = OrbitEngine(registry)
        gen = iter_positions(engine, [1.0, 2.0, 3.0], bodies=["Sun"], chunk_size=1)
        next(gen)
        assert engine.t == 0.0
        gen.close()
        assert engine.t == 0.0

    def test_trace_history_kept(self, registry):
        """An export far from the current time leaves trace history intact."""
        engine = OrbitEngine(registry)
        engine.enable_trace("Moon", TraceSettings(length=100 * S_DAY, step=S_DAY, enabled=True))
        engine.advance(20 * S_DAY)
        buf = engine.recorder.buffer("Moon")
        count, start = buf.count, buf.start_time
        assert count == 21

        export_positions(engine, [engine.t + 50 * S_DAY], bodies=["Mars"])

        assert buf.count == count
        assert buf.start_time == start
        assert engine.t == pytest.approx(20 * S_DAY)

    def test_unknown_body_strict(self, registry):
        """Strict validation rejects an unknown body before producing rows."""
        engine = OrbitEngine(registry)
        gen = iter_positions(engine, [0.0, 1.0], bodies=["Sun", "Vulcan"])
        with temp_config(STRICT_VALIDATION=True):
            with pytest.raises(KeyError, match="Vulcan"):
                next(gen)

    def test_unknown_body_lenient(self, registry):
        """Lenient validation warns once and marks the unknown body's rows invalid."""
        engine = OrbitEngine(registry)
        with temp_config(STRICT_VALIDATION=False):
            with pytest.warns(UserWarning, match="Vulcan"):
                df = export_positions(engine, [0.0, 1.0], bodies=["Vulcan", "Sun"])
        assert list(df['body']) == ["Vulcan", "Sun", "Vulcan", "Sun"]
        assert list(df['valid']) == [False, True, False, True]
        assert df['ra'].iloc[[0, 2]].isna().all()

    def test_default_bodies(self, registry):
        """Without bodies the tracked set is exported."""
        engine = OrbitEngine(registry)
        df = export_positions(engine, [0.0])
        assert len(df) == len(engine.project())
