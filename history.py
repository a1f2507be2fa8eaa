"""Run history sampling and per-surface run statistics."""
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

import numpy as np

from practice_track import SAMPLE_INTERVAL, SLOWDOWN_THRESHOLD


class HistorySample(NamedTuple):
    t: float
    x: float
    v: float
    mu: float = 0.0
    slope: float = 0.0


@dataclass
class RunResults:
    """Summary of a finished run."""

    final_distance: float
    final_time: float
    average_speed: float
    max_speed: float
    worst_surface: Optional[str]
    worst_value: float
    history: Tuple[HistorySample, ...]


class RunHistory:
    """Throttled list of telemetry samples for post-run graphs."""

    def __init__(self, sample_interval=SAMPLE_INTERVAL):
        self.sample_interval = sample_interval
        self.samples = []

    def __len__(self):
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    @property
    def last(self):
        return self.samples[-1] if self.samples else None

    def clear(self):
        self.samples.clear()

    def record(self, t, x, v, mu=0.0, slope=0.0, force=False):
        """Append a sample unless the previous one is too recent. Returns True if stored."""
        if not force and self.samples and t - self.samples[-1].t <= self.sample_interval:
            return False
        self.samples.append(HistorySample(t, x, v, mu, slope))
        return True

    def snapshot(self):
        return tuple(self.samples)

    def as_arrays(self):
        """Column arrays keyed by field name, ready for plotting."""
        if not self.samples:
            return {name: np.array([]) for name in HistorySample._fields}
        data = np.array(self.samples, dtype=float)
        return {name: data[:, i] for i, name in enumerate(HistorySample._fields)}


class RunStatistics:
    """
    Per-surface aggregates built up step by step during a run.

    ``time_on_surface`` counts seconds spent on each surface, ``slowdown``
    counts speed (m/s) lost while decelerating harder than
    ``slowdown_threshold``. The worst surface is picked by ``worst_metric``.
    """

    def __init__(self, surface_names, slowdown_threshold=SLOWDOWN_THRESHOLD, worst_metric='time'):
        self.surface_names = list(surface_names)
        self.slowdown_threshold = slowdown_threshold
        self.worst_metric = worst_metric
        self.reset()

    def reset(self):
        self.max_velocity = 0.0
        self.time_on_surface = {name: 0.0 for name in self.surface_names}
        self.slowdown = {name: 0.0 for name in self.surface_names}
        self.results = None

    def accumulate(self, surface_name, dt, acceleration, velocity=None, previous_velocity=None):
        """
        Add one step. With both velocities given, slowdown counts the speed
        actually lost, so a car held at zero by the clamp loses nothing.
        """
        self.time_on_surface[surface_name] = self.time_on_surface.get(surface_name, 0.0) + dt
        if acceleration < -self.slowdown_threshold:
            if velocity is not None and previous_velocity is not None:
                lost = max(0.0, previous_velocity - velocity)
            else:
                lost = -acceleration * dt
            self.slowdown[surface_name] = self.slowdown.get(surface_name, 0.0) + lost
        if velocity is not None and velocity > self.max_velocity:
            self.max_velocity = velocity

    def worst_surface(self):
        metric = self.time_on_surface if self.worst_metric == 'time' else self.slowdown
        worst_name, worst_value = None, 0.0
        for name, value in metric.items():
            # Strictly greater keeps the first surface on ties
            if worst_name is None or value > worst_value:
                worst_name, worst_value = name, value
        return worst_name, worst_value

    def finalize(self, track_length, position, elapsed_time, history):
        worst_name, worst_value = self.worst_surface()
        average_speed = track_length / elapsed_time if elapsed_time > 0 else 0.0

        self.results = RunResults(
            final_distance=min(position, track_length),
            final_time=elapsed_time,
            average_speed=average_speed,
            max_speed=self.max_velocity,
            worst_surface=worst_name,
            worst_value=worst_value,
            history=history.snapshot(),
        )
        return self.results
