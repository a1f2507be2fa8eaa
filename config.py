"""Run configuration and presets.

A ``SimulationConfig`` is validated once at the boundary, before a terrain is
built or a run starts. The physics code assumes the values it receives are
already sane.
"""
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import practice_track as track

GRAVITY_PRESETS = {
    'earth': 9.8,
    'moon': 1.62,
    'mars': 3.71,
    'jupiter': 24.79,
}

VEHICLE_PRESETS = {
    'hatchback': {'engine_accel': 5.0, 'brake_accel': -8.0, 'mass': 1200.0, 'max_velocity': 40.0},
    'sports': {'engine_accel': 12.0, 'brake_accel': -12.0, 'mass': 1400.0, 'max_velocity': 75.0},
    'truck': {'engine_accel': 2.5, 'brake_accel': -5.0, 'mass': 9000.0, 'max_velocity': 25.0},
}

WORST_METRICS = ('time', 'slowdown')
BRAKE_MODES = ('fixed', 'direction_aware')


class ConfigError(ValueError):
    """Raised when a configuration cannot be used to build a run."""


def _default_surfaces():
    return [dict(surface) for surface in track.PRACTICE_SURFACES]


def _require_positive(name, value):
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} must be a positive number, got {value!r}")


@dataclass
class SimulationConfig:
    """Physical constants, track layout and run tuning for one simulation."""

    gravity: float = track.GRAVITY
    engine_accel: float = track.ENGINE_ACC
    brake_accel: float = track.BRAKE_ACC
    mass: float = track.MASS
    max_velocity: float = track.MAX_VELOCITY

    surfaces: List[dict] = field(default_factory=_default_surfaces)
    surface_lengths: Optional[Dict[str, float]] = None
    total_length: float = track.DEFAULT_TRACK_LENGTH
    min_segment_length: float = track.MIN_SEGMENT_LENGTH

    max_dt: float = track.MAX_DT
    sample_interval: float = track.SAMPLE_INTERVAL
    slowdown_threshold: float = track.SLOWDOWN_THRESHOLD
    worst_metric: str = 'time'
    brake_mode: str = 'fixed'

    @classmethod
    def from_presets(cls, vehicle='hatchback', gravity='earth', track_preset='hills', **overrides):
        """Build a config from named presets, then apply keyword overrides."""
        if vehicle not in VEHICLE_PRESETS:
            raise ConfigError(f"Unknown vehicle preset: {vehicle!r}")
        if gravity not in GRAVITY_PRESETS:
            raise ConfigError(f"Unknown gravity preset: {gravity!r}")
        if track_preset not in track.TRACK_PRESETS:
            raise ConfigError(f"Unknown track preset: {track_preset!r}")

        values = dict(VEHICLE_PRESETS[vehicle])
        values['gravity'] = GRAVITY_PRESETS[gravity]
        values['surfaces'] = [dict(s) for s in track.TRACK_PRESETS[track_preset]]
        values.update(overrides)
        return cls(**values)

    def validated(self):
        """Return a copy with lengths clamped to the floor, or raise ConfigError."""
        _require_positive('gravity', self.gravity)
        _require_positive('engine_accel', self.engine_accel)
        _require_positive('mass', self.mass)
        _require_positive('max_velocity', self.max_velocity)
        _require_positive('max_dt', self.max_dt)
        _require_positive('sample_interval', self.sample_interval)
        _require_positive('min_segment_length', self.min_segment_length)
        _require_positive('total_length', self.total_length)

        if not isinstance(self.brake_accel, (int, float)) or not math.isfinite(self.brake_accel) \
                or self.brake_accel >= 0:
            raise ConfigError(f"brake_accel must be negative, got {self.brake_accel!r}")
        if self.slowdown_threshold < 0:
            raise ConfigError("slowdown_threshold cannot be negative")
        if self.worst_metric not in WORST_METRICS:
            raise ConfigError(f"worst_metric must be one of {WORST_METRICS}")
        if self.brake_mode not in BRAKE_MODES:
            raise ConfigError(f"brake_mode must be one of {BRAKE_MODES}")

        self._check_surfaces()

        lengths = None
        if self.surface_lengths is not None:
            names = {s['name'] for s in self.surfaces}
            lengths = {}
            for name, length in self.surface_lengths.items():
                if name not in names:
                    raise ConfigError(f"Length given for unknown surface {name!r}")
                if not isinstance(length, (int, float)) or not math.isfinite(length):
                    raise ConfigError(f"Length for {name!r} must be a number, got {length!r}")
                lengths[name] = max(float(length), self.min_segment_length)

        return replace(self, surface_lengths=lengths)

    def _check_surfaces(self):
        if not self.surfaces:
            raise ConfigError("At least one surface is required")

        seen = set()
        for surface in self.surfaces:
            name = surface.get('name')
            if not name:
                raise ConfigError("Every surface needs a name")
            if name in seen:
                raise ConfigError(f"Duplicate surface name {name!r}")
            seen.add(name)

            friction = surface.get('friction')
            if not isinstance(friction, (int, float)) or not math.isfinite(friction) or friction < 0:
                raise ConfigError(f"Friction for {name!r} must be non-negative")

            profile = surface.get('profile') or track.FLAT
            for angle, base_length in profile:
                if not -90.0 < angle < 90.0:
                    raise ConfigError(f"Slope angle {angle} on {name!r} is out of range")
                if base_length <= 0:
                    raise ConfigError(f"Slope lengths on {name!r} must be positive")
