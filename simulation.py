"""Simulation lifecycle.

``Simulation`` bundles the terrain, the vehicle physics, the run history and
the run statistics for a single run. The front-end drives it one frame at a
time through ``tick`` and reads everything it draws from ``get_telemetry``.
"""
from enum import Enum

import controller_template
from config import SimulationConfig
from history import RunHistory, RunStatistics
from physics import ControlInputs, VehiclePhysics
from terrain import Terrain


class SimState(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    PAUSED = 'paused'
    FINISHED = 'finished'


class Simulation:
    def __init__(self, config=None):
        self._build(config or SimulationConfig())

    def _build(self, config):
        self.config = config.validated()
        self.terrain = Terrain.from_config(self.config)
        self.car = VehiclePhysics(self.terrain, self.config)
        self.history = RunHistory(self.config.sample_interval)
        self.stats = RunStatistics(
            self.terrain.surface_names,
            slowdown_threshold=self.config.slowdown_threshold,
            worst_metric=self.config.worst_metric,
        )
        self.state = SimState.IDLE
        self.results = None

    @property
    def paused(self):
        return self.state is SimState.PAUSED

    @property
    def finished(self):
        return self.state is SimState.FINISHED

    def start(self):
        if self.state is not SimState.IDLE:
            return False
        self.state = SimState.RUNNING
        return True

    def pause(self):
        if self.state is not SimState.RUNNING:
            return False
        self.state = SimState.PAUSED
        return True

    def resume(self):
        if self.state is not SimState.PAUSED:
            return False
        self.state = SimState.RUNNING
        return True

    def toggle_pause(self):
        return self.pause() or self.resume()

    def reset(self, start=True):
        """Fresh run on the same terrain, from any state."""
        self.car.reset()
        self.history.clear()
        self.stats.reset()
        self.results = None
        self.state = SimState.RUNNING if start else SimState.IDLE

    def reconfigure(self, config, start=True):
        """Rebuild the terrain for a new configuration and reset."""
        self._build(config)
        if start:
            self.start()

    def tick(self, dt, controls=None):
        """Run one physics step if the run is live, then return telemetry."""
        if self.state is not SimState.RUNNING:
            return self.get_telemetry()

        step = self.car.update(controls or ControlInputs(), dt)
        if step is None:
            return self.get_telemetry()

        self.stats.accumulate(step['surface'], step['dt'], step['a'], step['v_step'], step['v_before'])
        recorded = self.history.record(step['total_time'], step['x'], step['v'], step['mu'], step['slope'])

        if step['completed']:
            if not recorded:
                # Graphs should end on the finish line
                self.history.record(step['total_time'], step['x'], step['v'], step['mu'], step['slope'],
                                    force=True)
            self.state = SimState.FINISHED
            self.results = self.stats.finalize(
                self.terrain.track_length, self.car.x, self.car.total_time, self.history)

        return self.get_telemetry()

    def track_info(self):
        return {
            'segments': self.terrain.segments,
            'next_segment': self.terrain.get_next_segment(self.car.x),
            'finish_line': self.terrain.track_length,
            'max_velocity': self.config.max_velocity,
        }

    def get_telemetry(self):
        car = self.car
        return {
            'position': car.x,
            'velocity': car.v,
            'acceleration': car.a,
            'elapsed_time': car.total_time,
            'surface_name': car.current_surface.name,
            'slope_angle': car.current_slope,
            'friction_coefficient': car.current_mu,
            'gravity_component': car.forces['gravity'],
            'friction_component': car.forces['friction'],
            'elevation': self.terrain.elevation(car.x),
            'progress': car.x / self.terrain.track_length,
            'max_speed': self.stats.max_velocity,
            'finished': self.finished,
            'paused': self.paused,
            'state': self.state.value,
        }


def run_headless(config=None, controller=None, dt=1 / 60, max_time=600.0):
    """Drive a full run without a window. Returns None if max_time runs out first."""
    if dt <= 0:
        raise ValueError("dt must be positive")
    controller = controller or controller_template.get_controls
    sim = Simulation(config)
    sim.start()

    while not sim.finished and sim.car.total_time < max_time:
        telemetry = sim.get_telemetry()
        accelerating, braking = controller(
            telemetry['position'],
            telemetry['velocity'],
            telemetry['slope_angle'],
            telemetry['friction_coefficient'],
            sim.track_info(),
        )
        sim.tick(dt, ControlInputs(bool(accelerating), bool(braking)))

    return sim.results
