"""Terrain model: surface segments, slope sub-segments and elevation.

A track is an ordered list of ``SurfaceSegment`` objects covering
``[0, track_length)``. Every surface carries its own friction coefficient and
a contiguous run of ``SlopeSegment`` objects. Intervals are half-open, so a
position sitting exactly on a boundary belongs to the following segment.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from practice_track import DEFAULT_TRACK_LENGTH, FLAT, MIN_SEGMENT_LENGTH


@dataclass(frozen=True)
class SlopeSegment:
    start: float
    end: float
    angle: float = 0.0  # degrees, positive is uphill

    @property
    def length(self):
        return self.end - self.start

    @property
    def grade(self):
        """Rise per metre travelled along the track."""
        return float(np.tan(np.radians(self.angle)))

    @property
    def rise(self):
        return self.length * self.grade


@dataclass(frozen=True)
class SurfaceSegment:
    name: str
    friction: float
    start: float
    end: float
    slopes: Tuple[SlopeSegment, ...]
    color: Tuple[int, int, int] = (128, 128, 128)

    @property
    def length(self):
        return self.end - self.start

    def contains(self, x):
        return self.start <= x < self.end


def scale_profile(profile, start, length):
    """Stretch a base (angle, length) profile so it spans ``length`` metres from ``start``."""
    reference = sum(base for _, base in profile)
    scale = length / reference
    end = start + length

    slopes = []
    cursor = start
    for i, (angle, base) in enumerate(profile):
        # Last piece ends exactly on the surface end, no drift gap
        seg_end = end if i == len(profile) - 1 else cursor + base * scale
        slopes.append(SlopeSegment(cursor, seg_end, float(angle)))
        cursor = seg_end
    return tuple(slopes)


def build_segments(surfaces, lengths=None, total_length=None, min_length=MIN_SEGMENT_LENGTH):
    """Lay surfaces end to end starting at 0.

    With ``lengths`` each surface gets its own length (missing names fall back
    to an even share of ``total_length``); otherwise ``total_length`` is split
    evenly. Every length is floored at ``min_length``.
    """
    surfaces = list(surfaces)
    if not surfaces:
        raise ValueError("Cannot build a track without surfaces")

    if total_length is None:
        total_length = DEFAULT_TRACK_LENGTH
    even_share = max(total_length / len(surfaces), min_length)

    segments = []
    cursor = 0.0
    for surface in surfaces:
        length = even_share
        if lengths is not None:
            length = max(lengths.get(surface['name'], even_share), min_length)

        profile = surface.get('profile') or FLAT
        segment = SurfaceSegment(
            name=surface['name'],
            friction=float(surface['friction']),
            start=cursor,
            end=cursor + length,
            slopes=scale_profile(profile, cursor, length),
            color=tuple(surface.get('color', (128, 128, 128))),
        )
        segments.append(segment)
        cursor = segment.end

    return segments


class Terrain:
    """Position lookups over a fixed list of surface segments."""

    def __init__(self, segments):
        if not segments:
            raise ValueError("Terrain needs at least one segment")
        self.segments = tuple(segments)
        self.track_length = self.segments[-1].end

        self._slopes = tuple(slope for seg in self.segments for slope in seg.slopes)
        self._slope_starts = np.array([slope.start for slope in self._slopes])
        rises = np.array([slope.rise for slope in self._slopes])
        # _heights[i] is the elevation at the start of slope i; last entry is the finish
        self._heights = np.concatenate(([0.0], np.cumsum(rises)))
        self._boundaries = np.append(self._slope_starts, self.track_length)

    @classmethod
    def from_config(cls, config):
        return cls(build_segments(
            config.surfaces,
            lengths=config.surface_lengths,
            total_length=config.total_length,
            min_length=config.min_segment_length,
        ))

    @property
    def surface_names(self):
        return [seg.name for seg in self.segments]

    def get_current_segment(self, x):
        """Find segment containing position x"""
        for i, segment in enumerate(self.segments):
            if segment.contains(x):
                return i, segment
        if x < 0:
            return 0, self.segments[0]
        return len(self.segments) - 1, self.segments[-1]

    def get_next_segment(self, x):
        """Get next segment info if available"""
        idx, _ = self.get_current_segment(x)
        if idx < len(self.segments) - 1:
            return self.segments[idx + 1]
        return None

    def get_slope(self, segment, x):
        for slope in segment.slopes:
            if slope.start <= x < slope.end:
                return slope
        return SlopeSegment(segment.start, segment.end, 0.0)

    def slope_angle(self, x):
        _, segment = self.get_current_segment(x)
        return self.get_slope(segment, x).angle

    def elevation(self, x):
        """Signed height gained between the start line and position x."""
        x = min(max(x, 0.0), self.track_length)
        i = int(np.searchsorted(self._slope_starts, x, side='right')) - 1
        i = max(i, 0)
        slope = self._slopes[i]
        return float(self._heights[i] + (x - slope.start) * slope.grade)

    def elevation_profile(self, points_per_meter=2.0):
        """Precompute elevation points for rendering"""
        n_points = int(self.track_length * points_per_meter) + 1
        xs = np.linspace(0.0, self.track_length, max(n_points, 2))
        return xs, np.interp(xs, self._boundaries, self._heights)
