'''Clockwork solar-system model
Trace buffers and recorder

A trace is a fixed-capacity ring of a body's past world positions, sampled
at a fixed simulation-time step regardless of how often the host ticks.'''

import math
import logging
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from .bodies import TraceSettings
from .registry import BodyRegistry
from .composer import world_position_at
from .config import config
from .defaults import DEFAULT_TRACE
from .utils import validation_error

logger = logging.getLogger(__name__)


class TraceBuffer:
    """
    Fixed-capacity ring buffer of sampled positions.

    Parameters
    ----------
    name : str
        Body the buffer belongs to
    settings : TraceSettings
        Length and step of the trace; capacity = round(length / step)
    start_time : float
        Simulation time of the first sample

    Notes
    -----
    Sample ``k`` (counting from the start) is taken at exactly
    ``start_time + k * step``, so spacing never drifts through accumulated
    rounding. Once more than ``capacity`` samples are written the oldest
    ones are overwritten; the arrays never grow.
    """

    def __init__(self, name: str, settings: TraceSettings, start_time: float):
        if not settings.is_valid:
            raise ValueError(
                f"Trace for '{name}' needs positive length and step, "
                f"got length={settings.length}, step={settings.step}"
            )
        if not math.isfinite(start_time):
            raise ValueError(f"Trace start time must be finite, got {start_time}")
        self._name = name
        self._settings = settings
        self._capacity = settings.capacity
        self._positions = np.full((self._capacity, 3), np.nan)
        self._times = np.full(self._capacity, np.nan)
        self._start_time = float(start_time)
        self._cursor = 0

    # ========== PROPERTY ACCESS ==========
    @property
    def name(self) -> str:
        return self._name

    @property
    def settings(self) -> TraceSettings:
        return self._settings

    @property
    def step(self) -> float:
        return self._settings.step

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def cursor(self) -> int:
        """Total number of samples written since the last reset."""
        return self._cursor

    @property
    def count(self) -> int:
        """Number of samples currently held."""
        return min(self._cursor, self._capacity)

    @property
    def current_time(self) -> float:
        """Simulation time of the last recorded sample."""
        if self._cursor == 0:
            return self._start_time
        return self.sample_time(self._cursor - 1)

    def sample_time(self, k: int) -> float:
        return self._start_time + k * self._settings.step

    @property
    def next_time(self) -> float:
        return self.sample_time(self._cursor)

    # ========== RECORDING ==========
    def record(self, position) -> None:
        """Write the next sample at ``cursor % capacity``."""
        slot = self._cursor % self._capacity
        self._positions[slot] = np.asarray(position, dtype=float)
        self._times[slot] = self.next_time
        self._cursor += 1

    @property
    def slack(self) -> float:
        """Rounding allowance on sample times [years]."""
        return config.TRACE_STEP_RTOL * self._settings.step

    def pending(self, t: float) -> int:
        """
        Number of samples due up to and including time ``t``.

        A sample counts as due when its time is within ``slack`` of ``t``,
        so clocks advanced by repeated float additions of ``step`` do not
        fall one sample behind.
        """
        limit = t + self.slack
        elapsed = limit - self._start_time
        if elapsed < 0:
            return 0
        # last due index k satisfies start + k*step <= t + slack
        k = math.floor(elapsed / self._settings.step)
        while self.sample_time(k + 1) <= limit:
            k += 1
        while k >= 0 and self.sample_time(k) > limit:
            k -= 1
        return max(k + 1 - self._cursor, 0)

    # ========== READ ACCESS ==========
    def ordered(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Held samples oldest-first.

        Returns
        -------
        times : np.ndarray, shape (count,)
        positions : np.ndarray, shape (count, 3)
        """
        if self._cursor <= self._capacity:
            idx = np.arange(self._cursor)
        else:
            head = self._cursor % self._capacity
            idx = np.concatenate([np.arange(head, self._capacity), np.arange(head)])
        return self._times[idx].copy(), self._positions[idx].copy()

    @property
    def positions(self) -> np.ndarray:
        return self.ordered()[1]

    @property
    def times(self) -> np.ndarray:
        return self.ordered()[0]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Export held samples to a pandas DataFrame.

        Returns
        -------
        DataFrame with columns time, x, y, z
        """
        times, positions = self.ordered()
        return pd.DataFrame({
            'time': times,
            'x': positions[:, 0],
            'y': positions[:, 1],
            'z': positions[:, 2],
        })

    def add_to_plot(self, fig: go.Figure, color: Optional[str] = None,
                    name: Optional[str] = None, **kwargs) -> go.Figure:
        """
        Add this trace as a polyline to an existing Plotly figure.

        Parameters:
            fig: Existing Plotly Figure object
            color: Line color (default: config.DEFAULT_TRACE_COLOR)
            name: Legend name (default: body name)
            **kwargs: Additional arguments passed to Scatter3d

        Returns:
            Updated Plotly Figure object (same object, modified in place)
        """
        _, positions = self.ordered()
        fig.add_trace(go.Scatter3d(
            x=positions[:, 0],
            y=positions[:, 1],
            z=positions[:, 2],
            mode='lines',
            line=dict(color=color or config.DEFAULT_TRACE_COLOR, width=2),
            name=name or self._name,
            hovertemplate='x: %{x:.4f}<br>y: %{y:.4f}<br>z: %{z:.4f}<extra></extra>',
            **kwargs
        ))
        return fig

    def __len__(self):
        return self.count

    def __repr__(self):
        return (f"TraceBuffer('{self._name}', count={self.count}/{self._capacity}, "
                f"step={self.step:.6g}, start={self._start_time:.6g})")


class TraceRecorder:
    """
    Per-body trace buffers driven by simulation time.

    Parameters
    ----------
    registry : BodyRegistry
        Node tree used to evaluate historical positions

    Examples
    --------
    >>> rec = TraceRecorder(default_registry())
    >>> rec.enable("Moon", t=0.0)
    True
    >>> rec.sample("Moon", 5 * S_DAY)
    5
    """

    def __init__(self, registry: BodyRegistry):
        self._registry = registry
        self._buffers: Dict[str, TraceBuffer] = {}

    @property
    def enabled(self) -> Tuple[str, ...]:
        return tuple(self._buffers)

    def is_enabled(self, body: str) -> bool:
        return body in self._buffers

    def buffer(self, body: str) -> TraceBuffer:
        try:
            return self._buffers[body]
        except KeyError:
            raise KeyError(f"Tracing is not enabled for '{body}'") from None

    def _position(self, body: str, t: float) -> np.ndarray:
        return world_position_at(self._registry, body, t)

    def _settings_for(self, body: str, settings: Optional[TraceSettings]) -> TraceSettings:
        if settings is not None:
            return settings
        node = self._registry.node(body)
        if node.trace is not None:
            return node.trace
        return DEFAULT_TRACE

    # ========== LIFECYCLE ==========
    def enable(self, body: str, t: float, settings: Optional[TraceSettings] = None) -> bool:
        """
        Start tracing ``body`` with its first sample at ``t``.

        Returns True if tracing was enabled. Invalid settings (non-positive
        step or length) are reported via ``validation_error``; with
        non-strict validation the body simply stays disabled.
        """
        settings = self._settings_for(body, settings)
        if not settings.is_valid:
            validation_error(
                f"Cannot trace '{body}': step and length must be positive, "
                f"got step={settings.step}, length={settings.length}"
            )
            return False
        buf = TraceBuffer(body, settings, t)
        buf.record(self._position(body, t))
        self._buffers[body] = buf
        logger.debug("Tracing enabled for '%s' (capacity %d)", body, buf.capacity)
        return True

    def enable_defaults(self, t: float) -> Tuple[str, ...]:
        """Enable every node whose trace settings are switched on by default."""
        for node in self._registry:
            if node.trace is not None and node.trace.enabled:
                self.enable(node.name, t)
        return self.enabled

    def disable(self, body: str) -> None:
        if self._buffers.pop(body, None) is not None:
            logger.debug("Tracing disabled for '%s'", body)

    def reset(self, body: str, t: float) -> TraceBuffer:
        """Discard the buffer of ``body`` and restart it at ``t``."""
        settings = self.buffer(body).settings
        buf = TraceBuffer(body, settings, t)
        buf.record(self._position(body, t))
        self._buffers[body] = buf
        logger.info("Trace for '%s' reset at t=%.6f", body, t)
        return buf

    # ========== SAMPLING ==========
    def sample(self, body: str, t: float, budget: Optional[int] = None) -> int:
        """
        Bring the trace of ``body`` up to time ``t``.

        Samples are taken at every due ``start + k * step`` not yet
        recorded. Moving back before the last sample, or a jump needing more
        than ``min(capacity, budget)`` samples, discards the buffer and
        restarts it at ``t``.

        Parameters
        ----------
        body : str
            Traced body
        t : float
            Simulation time to catch up to [years]
        budget : int, optional
            Most catch-up samples this call may write
            (default: config.TRACE_MAX_CATCHUP)

        Returns
        -------
        int
            Number of new samples written (1 after a reset)
        """
        buf = self.buffer(body)
        if not math.isfinite(t):
            raise ValueError(f"Sample time must be finite, got {t}")
        if t < buf.current_time - buf.slack:
            self.reset(body, t)
            return 1

        due = buf.pending(t)
        if due == 0:
            return 0
        if budget is None:
            budget = config.TRACE_MAX_CATCHUP
        limit = min(buf.capacity, budget)
        if due > limit:
            logger.warning(
                "Trace for '%s' needs %d samples (limit %d); restarting at t=%.6f",
                body, due, limit, t,
            )
            self.reset(body, t)
            return 1

        for _ in range(due):
            buf.record(self._position(body, buf.next_time))
        return due

    def sample_all(self, t: float) -> Dict[str, int]:
        """
        Bring every enabled trace up to time ``t`` within one shared budget.

        At most ``config.TRACE_MAX_CATCHUP`` catch-up samples are written in
        total. Traces with the fewest pending samples are served first; a
        trace that no longer fits in what is left is reset at ``t``, which
        costs a single sample.

        Returns
        -------
        dict
            Samples written per body
        """
        if not math.isfinite(t):
            raise ValueError(f"Sample time must be finite, got {t}")
        remaining = config.TRACE_MAX_CATCHUP
        written: Dict[str, int] = {}
        for body in sorted(self._buffers, key=lambda b: self._buffers[b].pending(t)):
            written[body] = self.sample(body, t, budget=remaining)
            remaining = max(remaining - written[body], 0)
        return {body: written[body] for body in self._buffers}

    # ========== OUTPUT ==========
    def to_dataframe(self) -> pd.DataFrame:
        """All held samples, with a ``body`` column."""
        frames = []
        for body, buf in self._buffers.items():
            df = buf.to_dataframe()
            df.insert(0, 'body', body)
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=['body', 'time', 'x', 'y', 'z'])
        return pd.concat(frames, ignore_index=True)

    def plot_3d(self, bodies: Optional[Iterable[str]] = None) -> go.Figure:
        """
        Create a 3D figure with one polyline per traced body.

        Parameters:
            bodies: Bodies to draw (default: every enabled body)

        Returns:
            Plotly Figure object
        """
        fig = go.Figure()
        for body in (self.enabled if bodies is None else bodies):
            color = self._registry.node(body).display.get('color')
            self.buffer(body).add_to_plot(fig, color=color)
        fig.update_layout(
            scene=dict(
                xaxis_title='X [scene units]',
                yaxis_title='Y [scene units]',
                zaxis_title='Z [scene units]',
                aspectmode='data'
            ),
            title='Traces',
            showlegend=True
        )
        return fig

    def __repr__(self):
        return f"TraceRecorder(enabled={list(self._buffers)})"


def plot_traces(recorder: TraceRecorder, bodies: Optional[Iterable[str]] = None) -> go.Figure:
    """Figure of the recorder's traces; see :meth:`TraceRecorder.plot_3d`."""
    return recorder.plot_3d(bodies)
