"""
Test suite for trace buffers and the trace recorder.

Tests cover:
- Index-based sampling and even spacing
- Rewind and capped catch-up routing to reset
- Ring-buffer bound
- Rejection of non-positive steps
- DataFrame export and plotting (smoke tests)
"""

import logging
import math

import numpy as np
import pandas as pd
import plotly.graph_objects as go
import pytest
from orrery import (
    OrbitNode, BodyRegistry, Circular, TraceSettings, TraceRecorder,
    TraceBuffer, default_registry, temp_config, world_position_at, plot_traces, S_DAY
)

STEP = 0.125


def _registry():
    return BodyRegistry([
        OrbitNode("Root"),
        OrbitNode("Planet", parent="Root", category="body",
                  angular_speed=2 * math.pi, shape=Circular(10.0)),
        OrbitNode("Moon", parent="Planet", category="body",
                  angular_speed=12 * math.pi, shape=Circular(1.0),
                  trace=TraceSettings(length=1.0, step=STEP)),
    ])


def _recorder(body="Planet", length=2.0, t=0.0):
    rec = TraceRecorder(_registry())
    rec.enable(body, t, TraceSettings(length=length, step=STEP))
    return rec


class TestTraceBuffer:
    """Test the ring buffer on its own."""

    def test_invalid_settings(self):
        """Buffers need a positive step and length."""
        with pytest.raises(ValueError, match="positive"):
            TraceBuffer("X", TraceSettings(length=1.0, step=-0.1), 0.0)

    def test_non_finite_start(self):
        """Start time must be finite."""
        with pytest.raises(ValueError, match="finite"):
            TraceBuffer("X", TraceSettings(length=1.0, step=0.1), float('inf'))

    def test_empty(self):
        """A new buffer holds nothing and preallocates its arrays."""
        buf = TraceBuffer("X", TraceSettings(length=1.0, step=STEP), 2.0)
        assert buf.capacity == 8
        assert buf.count == 0
        assert buf.current_time == 2.0
        assert buf.next_time == 2.0
        assert buf.positions.shape == (0, 3)

    def test_sample_times_are_index_based(self):
        """Sample k is at start + k * step."""
        buf = TraceBuffer("X", TraceSettings(length=1.0, step=0.1), 1.0)
        assert buf.sample_time(7) == 1.0 + 7 * 0.1

    def test_pending(self):
        """pending() counts samples due up to and including t."""
        buf = TraceBuffer("X", TraceSettings(length=1.0, step=STEP), 0.0)
        assert buf.pending(-1.0) == 0
        assert buf.pending(0.0) == 1
        assert buf.pending(0.3) == 3
        buf.record([0, 0, 0])
        assert buf.pending(0.25) == 2


class TestSampling:
    """Test catch-up sampling."""

    def test_enable_records_first_sample(self):
        """Enabling records a sample at the current time."""
        rec = _recorder()
        buf = rec.buffer("Planet")
        assert buf.count == 1
        assert buf.start_time == 0.0
        assert np.allclose(buf.positions[0], [10, 0, 0])

    def test_five_steps(self):
        """Advancing by 5 steps adds exactly 5 evenly spaced samples."""
        rec = _recorder()
        added = rec.sample("Planet", 5 * STEP)
        buf = rec.buffer("Planet")
        assert added == 5
        assert buf.count == 6
        assert np.allclose(np.diff(buf.times), STEP)
        assert buf.times[-1] == 5 * STEP

    def test_samples_are_historical_positions(self):
        """Each sample is the position at its own sample time."""
        reg = _registry()
        rec = TraceRecorder(reg)
        rec.enable("Moon", 0.0)
        rec.sample("Moon", 0.6)
        times, positions = rec.buffer("Moon").ordered()
        for t, p in zip(times, positions):
            assert np.allclose(p, world_position_at(reg, "Moon", t))

    def test_partial_step(self):
        """Nothing is added until a full step has passed."""
        rec = _recorder()
        assert rec.sample("Planet", 0.5 * STEP) == 0
        assert rec.sample("Planet", STEP) == 1

    def test_same_time(self):
        """Sampling at the last sample time adds nothing."""
        rec = _recorder()
        rec.sample("Planet", 2 * STEP)
        assert rec.sample("Planet", 2 * STEP) == 0

    def test_rewind_resets(self):
        """Going back before the last sample restarts the buffer."""
        rec = _recorder(t=1.0)
        rec.sample("Planet", 2.0)
        assert rec.sample("Planet", 0.5) == 1
        buf = rec.buffer("Planet")
        assert buf.start_time == 0.5
        assert buf.count == 1
        assert list(buf.times) == [0.5]
        # sampling resumes from the new start
        assert rec.sample("Planet", 0.5 + 2 * STEP) == 2

    def test_ring_bound(self):
        """Old samples are overwritten once the buffer is full."""
        rec = _recorder(length=0.5)
        buf = rec.buffer("Planet")
        for k in range(1, 11):
            rec.sample("Planet", k * STEP)
        assert buf.capacity == 4
        assert buf.count == 4
        assert buf.cursor == 11
        assert np.allclose(buf.times, [7 * STEP, 8 * STEP, 9 * STEP, 10 * STEP])
        assert len(buf) == 4

    def test_jump_beyond_capacity_resets(self):
        """More pending samples than the capacity routes to reset."""
        rec = _recorder(length=0.5)
        assert rec.sample("Planet", 100.0) == 1
        assert rec.buffer("Planet").start_time == 100.0

    def test_catch_up_cap(self, caplog):
        """The catch-up cap routes large jumps to reset with a warning."""
        rec = _recorder(length=2.0)
        with temp_config(TRACE_MAX_CATCHUP=3):
            with caplog.at_level(logging.WARNING, logger="orrery.trace"):
                assert rec.sample("Planet", 1.0) == 1
        assert rec.buffer("Planet").start_time == 1.0
        assert any("restarting" in r.getMessage() for r in caplog.records)

    def test_within_cap(self):
        """Jumps under the cap are caught up sample by sample."""
        rec = _recorder(length=2.0)
        with temp_config(TRACE_MAX_CATCHUP=8):
            assert rec.sample("Planet", 1.0) == 8

    def test_non_finite_time(self):
        """Non-finite sample times raise."""
        rec = _recorder()
        with pytest.raises(ValueError, match="finite"):
            rec.sample("Planet", float('nan'))

    @pytest.mark.parametrize("t0", [0.0, 0.1, 7.3])
    @pytest.mark.parametrize("step", [0.1, S_DAY, 1 / 3])
    def test_tick_by_tick(self, t0, step):
        """Advancing one step per call adds exactly one sample per call."""
        rec = TraceRecorder(_registry())
        rec.enable("Planet", t0, TraceSettings(length=10 * step, step=step))
        t = t0
        for _ in range(5):
            t += step
            assert rec.sample("Planet", t) == 1
        buf = rec.buffer("Planet")
        assert buf.count == 6
        assert buf.start_time == t0
        assert np.allclose(np.diff(buf.times), step)

    def test_sample_all(self):
        """sample_all advances every enabled trace."""
        rec = _recorder()
        rec.enable("Moon", 0.0)
        assert rec.sample_all(3 * STEP) == {"Planet": 3, "Moon": 3}

    def test_shared_budget(self):
        """sample_all serves the smallest catch-up first and resets what does not fit."""
        rec = TraceRecorder(_registry())
        rec.enable("Moon", 0.0, TraceSettings(length=4.0, step=STEP / 2))
        rec.enable("Planet", 0.0, TraceSettings(length=4.0, step=STEP))
        with temp_config(TRACE_MAX_CATCHUP=12):
            written = rec.sample_all(1.0)
        assert written == {"Moon": 1, "Planet": 8}
        assert rec.buffer("Planet").count == 9
        assert rec.buffer("Moon").start_time == 1.0
        assert rec.buffer("Moon").count == 1

    @pytest.mark.parametrize("jump", [0.5, 1.0, 3.0, 50.0])
    def test_budget_bounds_each_tick(self, jump):
        """One tick writes at most the budget plus one restart sample per trace."""
        rec = TraceRecorder(_registry())
        rec.enable("Moon", 0.0, TraceSettings(length=8.0, step=STEP / 4))
        rec.enable("Planet", 0.0, TraceSettings(length=8.0, step=STEP))
        with temp_config(TRACE_MAX_CATCHUP=20):
            written = rec.sample_all(jump)
        assert sum(written.values()) <= 20 + len(rec.enabled)


class TestLifecycle:
    """Test enable, disable and reset."""

    def test_zero_step_rejected(self):
        """A zero step raises in strict mode."""
        rec = TraceRecorder(_registry())
        with pytest.raises(ValueError, match="step and length must be positive"):
            rec.enable("Planet", 0.0, TraceSettings(length=1.0, step=0.0))
        assert not rec.is_enabled("Planet")

    def test_zero_step_lenient(self):
        """A zero step leaves the body disabled in lenient mode."""
        rec = TraceRecorder(_registry())
        with temp_config(STRICT_VALIDATION=False):
            with pytest.warns(UserWarning):
                assert rec.enable("Planet", 0.0, TraceSettings(length=1.0, step=0.0)) is False
        assert rec.enabled == ()

    def test_node_settings_used(self):
        """Without explicit settings the node's own are used."""
        rec = TraceRecorder(_registry())
        rec.enable("Moon", 0.0)
        assert rec.buffer("Moon").capacity == 8

    def test_default_settings_fallback(self):
        """Nodes without settings get the package default."""
        rec = TraceRecorder(_registry())
        assert rec.enable("Planet", 0.0)
        assert rec.buffer("Planet").step == pytest.approx(1 / 365.242234075933)

    def test_unknown_body(self):
        """Unknown bodies raise KeyError."""
        rec = TraceRecorder(_registry())
        with pytest.raises(KeyError):
            rec.enable("Comet", 0.0)
        with pytest.raises(KeyError, match="not enabled"):
            rec.buffer("Planet")

    def test_disable(self):
        """disable drops the buffer."""
        rec = _recorder()
        rec.disable("Planet")
        assert not rec.is_enabled("Planet")
        rec.disable("Planet")

    def test_reset(self, caplog):
        """reset restarts the buffer at t and logs it."""
        rec = _recorder()
        rec.sample("Planet", 1.0)
        with caplog.at_level(logging.INFO, logger="orrery.trace"):
            buf = rec.reset("Planet", 0.25)
        assert buf.count == 1
        assert buf.start_time == 0.25
        assert any("reset" in r.getMessage() for r in caplog.records)

    def test_enable_defaults(self):
        """Default-on traces of the calibrated table are enabled."""
        rec = TraceRecorder(default_registry())
        enabled = rec.enable_defaults(0.0)
        assert "MID-ECCENTRICITY-ORBIT" in enabled
        assert "HELION-POINT" in enabled


class TestOutput:
    """Test DataFrame export and plotting."""

    def test_buffer_dataframe(self):
        """Buffers export time and coordinates."""
        rec = _recorder()
        rec.sample("Planet", 3 * STEP)
        df = rec.buffer("Planet").to_dataframe()
        assert list(df.columns) == ['time', 'x', 'y', 'z']
        assert len(df) == 4

    def test_recorder_dataframe(self):
        """The recorder stacks all buffers with a body column."""
        rec = _recorder()
        rec.enable("Moon", 0.0)
        df = rec.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert set(df['body']) == {"Planet", "Moon"}

    def test_empty_recorder_dataframe(self):
        """No traces gives an empty frame with the right columns."""
        df = TraceRecorder(_registry()).to_dataframe()
        assert df.empty
        assert list(df.columns) == ['body', 'time', 'x', 'y', 'z']

    def test_plot_3d(self):
        """plot_3d() returns a figure with one line per trace."""
        rec = _recorder()
        rec.enable("Moon", 0.0)
        rec.sample_all(1.0)
        fig = rec.plot_3d()
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 2

    def test_plot_traces(self):
        """plot_traces() draws the selected bodies."""
        rec = _recorder()
        rec.enable("Moon", 0.0)
        fig = plot_traces(rec, ["Moon"])
        assert len(fig.data) == 1
        assert fig.data[0].name == "Moon"

    def test_add_to_plot(self):
        """add_to_plot() adds to an existing figure."""
        rec = _recorder()
        rec.sample("Planet", 1.0)
        fig = go.Figure()
        result = rec.buffer("Planet").add_to_plot(fig, color='blue', name='Path')
        assert result is fig
        assert len(fig.data) == 1
        assert fig.data[0].name == 'Path'
