"""
Tests for the simulation lifecycle and the headless runner.
"""
from unittest.mock import patch

import pytest

from config import SimulationConfig
from physics import ControlInputs
from simulation import Simulation, SimState, run_headless

ACCEL = ControlInputs(accelerating=True)


def short_classic_config(**overrides):
    """Flat ice/sand/wood at 50 m each with a car that can climb out of sand."""
    return SimulationConfig.from_presets('sports', 'earth', 'classic', total_length=150.0, **overrides)


def drive_to_finish(sim, dt=1 / 60, limit=20000):
    for _ in range(limit):
        if sim.finished:
            return
        sim.tick(dt, ACCEL)
    raise AssertionError("run did not finish")


class TestLifecycle:
    """IDLE -> RUNNING <-> PAUSED -> FINISHED, reset from anywhere."""

    def test_starts_idle_and_does_not_step(self):
        sim = Simulation()

        telemetry = sim.tick(0.05, ACCEL)

        assert sim.state is SimState.IDLE
        assert telemetry['elapsed_time'] == 0.0
        assert telemetry['state'] == 'idle'

    def test_start_runs(self):
        sim = Simulation()

        assert sim.start()
        sim.tick(0.05, ACCEL)

        assert sim.state is SimState.RUNNING
        assert sim.car.total_time == pytest.approx(0.05)
        assert not sim.start()

    def test_pause_gates_step(self):
        sim = Simulation()
        sim.start()
        sim.tick(0.05, ACCEL)

        assert sim.pause()
        before = sim.get_telemetry()
        after = sim.tick(0.05, ACCEL)

        assert sim.paused
        assert after['paused']
        assert after['position'] == before['position']
        assert after['elapsed_time'] == before['elapsed_time']

    def test_resume_and_toggle(self):
        sim = Simulation()
        sim.start()

        assert sim.toggle_pause()
        assert sim.state is SimState.PAUSED
        assert sim.toggle_pause()
        assert sim.state is SimState.RUNNING
        assert not sim.resume()

    def test_pause_is_a_no_op_when_idle(self):
        sim = Simulation()

        assert not sim.pause()
        assert not sim.toggle_pause()
        assert sim.state is SimState.IDLE

    def test_reset_clears_run(self):
        sim = Simulation(short_classic_config())
        sim.start()
        for _ in range(60):
            sim.tick(1 / 60, ACCEL)

        sim.reset()

        telemetry = sim.get_telemetry()
        assert telemetry['position'] == 0.0
        assert telemetry['velocity'] == 0.0
        assert telemetry['elapsed_time'] == 0.0
        assert len(sim.history) == 0
        assert sim.stats.max_velocity == 0.0
        assert sim.results is None
        assert sim.state is SimState.RUNNING

    def test_reset_to_idle(self):
        sim = Simulation()
        sim.start()

        sim.reset(start=False)

        assert sim.state is SimState.IDLE


class TestFinish:
    """The finish transition happens once and freezes the run."""

    def test_finish_produces_results(self):
        sim = Simulation(short_classic_config())
        sim.start()

        drive_to_finish(sim)

        telemetry = sim.get_telemetry()
        assert sim.state is SimState.FINISHED
        assert telemetry['finished']
        assert telemetry['position'] == 150.0
        assert telemetry['velocity'] == 0.0
        results = sim.results
        assert results.final_distance == 150.0
        assert results.average_speed == pytest.approx(150.0 / results.final_time)
        assert results.max_speed > 0.0
        assert results.worst_surface in ('ice', 'sand', 'wood')

    def test_finalize_called_exactly_once(self):
        sim = Simulation(short_classic_config())
        sim.start()

        with patch.object(sim.stats, 'finalize', wraps=sim.stats.finalize) as finalize:
            drive_to_finish(sim)
            results = sim.results
            for _ in range(20):
                sim.tick(1 / 60, ACCEL)

        assert finalize.call_count == 1
        assert sim.results is results
        assert sim.car.x == 150.0

    def test_no_transitions_after_finish_except_reset(self):
        sim = Simulation(short_classic_config())
        sim.start()
        drive_to_finish(sim)

        assert not sim.pause()
        assert not sim.resume()
        assert not sim.start()
        assert sim.finished

        sim.reset()
        assert sim.state is SimState.RUNNING

    def test_history_ends_on_finish_line(self):
        sim = Simulation(short_classic_config())
        sim.start()
        drive_to_finish(sim)

        samples = sim.results.history
        assert samples[-1].x == 150.0
        assert all(b.t > a.t for a, b in zip(samples, samples[1:]))

    def test_worst_by_time_is_longest_stay(self):
        sim = Simulation(short_classic_config())
        sim.start()
        drive_to_finish(sim)

        times = sim.stats.time_on_surface
        assert sim.results.worst_surface == max(times, key=times.get)
        assert sim.results.worst_value == pytest.approx(max(times.values()))
        assert sum(times.values()) == pytest.approx(sim.results.final_time)

    def test_coasting_through_sand_is_worst_slowdown(self):
        """Lifting off on sand loses the most speed."""
        sim = Simulation(short_classic_config(worst_metric='slowdown'))
        sim.start()

        for _ in range(20000):
            if sim.finished:
                break
            on_sand = sim.get_telemetry()['surface_name'] == 'sand'
            sim.tick(1 / 60, ControlInputs(accelerating=not on_sand))

        assert sim.finished
        assert sim.results.worst_surface == 'sand'
        assert sim.stats.slowdown['sand'] > 10.0


class TestTelemetry:
    """A single read call exposes everything the display needs."""

    def test_keys(self):
        sim = Simulation()

        telemetry = sim.get_telemetry()

        for key in ('position', 'velocity', 'acceleration', 'elapsed_time', 'surface_name',
                    'slope_angle', 'friction_coefficient', 'gravity_component',
                    'friction_component', 'elevation', 'progress', 'max_speed',
                    'finished', 'paused', 'state'):
            assert key in telemetry

    def test_reports_current_surface(self):
        sim = Simulation(short_classic_config())
        sim.start()

        telemetry = sim.tick(1 / 60, ACCEL)

        assert telemetry['surface_name'] == 'ice'
        assert telemetry['friction_coefficient'] == 0.1
        assert telemetry['slope_angle'] == 0.0

    def test_gravity_component_on_slope(self):
        config = SimulationConfig(
            surfaces=[{'name': 'ramp', 'friction': 0.0, 'profile': [(5.0, 100.0)]}],
            total_length=500.0,
        )
        sim = Simulation(config)
        sim.start()

        telemetry = sim.tick(0.05, ACCEL)

        assert telemetry['gravity_component'] < 0.0
        assert telemetry['elevation'] > 0.0

    def test_track_info(self):
        sim = Simulation(short_classic_config())

        info = sim.track_info()

        assert info['finish_line'] == 150.0
        assert info['next_segment'].name == 'sand'
        assert len(info['segments']) == 3


class TestReconfigure:
    def test_rebuilds_terrain(self):
        sim = Simulation()
        sim.start()
        sim.tick(0.1, ACCEL)

        sim.reconfigure(SimulationConfig(surface_lengths={'ice': 200.0, 'sand': 60.0, 'wood': 90.0}))

        assert sim.terrain.track_length == pytest.approx(350.0)
        assert sim.car.x == 0.0
        assert sim.state is SimState.RUNNING

    def test_invalid_config_is_rejected(self):
        with pytest.raises(ValueError):
            Simulation(SimulationConfig(gravity=0.0))


class TestHeadless:
    """Full runs without a window."""

    def test_autopilot_finishes(self):
        results = run_headless(SimulationConfig.from_presets('sports', 'earth', 'classic'))

        assert results is not None
        assert results.final_distance == 300.0
        assert results.final_time > 0.0

    def test_autopilot_finishes_hills(self):
        results = run_headless(SimulationConfig.from_presets('sports', 'earth', 'hills'))

        assert results is not None
        assert results.final_distance == 300.0

    def test_custom_controller_timeout(self):
        results = run_headless(short_classic_config(), controller=lambda *args: (False, False),
                               dt=0.1, max_time=2.0)

        assert results is None

    def test_rejects_non_positive_dt(self):
        with pytest.raises(ValueError):
            run_headless(dt=0.0)


class TestSlowdownAtRest:
    def test_braking_at_rest_loses_no_speed(self):
        """The velocity clamp holds the car at zero, so nothing counts as lost."""
        sim = Simulation(short_classic_config(worst_metric='slowdown'))
        sim.start()

        for _ in range(120):
            sim.tick(1 / 60, ControlInputs(braking=True))

        assert sim.car.v == 0.0
        assert sim.stats.slowdown['ice'] == 0.0
