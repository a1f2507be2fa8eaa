"""Shared fixtures for building small tracks and cars."""
import pytest

from config import SimulationConfig
from physics import VehiclePhysics
from practice_track import CLASSIC_SURFACES
from terrain import Terrain, build_segments


@pytest.fixture
def make_config():
    """Config with a single surface, long enough that nothing finishes by accident."""
    def _make(friction=0.1, profile=None, length=1000.0, **overrides):
        surfaces = [{'name': 'test', 'friction': friction, 'profile': profile or [(0.0, 100.0)]}]
        return SimulationConfig(surfaces=surfaces, total_length=length, **overrides).validated()
    return _make


@pytest.fixture
def make_car(make_config):
    def _make(**kwargs):
        config = make_config(**kwargs)
        return VehiclePhysics(Terrain.from_config(config), config)
    return _make


@pytest.fixture
def classic_terrain():
    """ICE/SAND/WOOD, flat, 100 m each."""
    return Terrain(build_segments(CLASSIC_SURFACES, total_length=300.0))
