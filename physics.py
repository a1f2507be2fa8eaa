from typing import NamedTuple

import numpy as np

VELOCITY_EPSILON = 0.01  # m/s, below this the car counts as stopped


class ControlInputs(NamedTuple):
    accelerating: bool = False
    braking: bool = False


class VehiclePhysics:
    def __init__(self, terrain, config):
        # Constants
        self.g = config.gravity
        self.engine_accel = config.engine_accel
        self.brake_accel = config.brake_accel
        self.m = config.mass            # kg, carried for a force-based model
        self.max_velocity = config.max_velocity
        self.max_dt = config.max_dt
        self.brake_mode = config.brake_mode

        # Track setup
        self.terrain = terrain
        self.total_length = terrain.track_length

        # State variables
        self.reset()

    def reset(self):
        self.x = 0.0          # Position (m)
        self.v = 0.0          # Velocity (m/s)
        self.a = 0.0          # Last net acceleration (m/s^2)
        self.total_time = 0.0
        self.completed = False
        self.segment_idx, self.current_surface = self.terrain.get_current_segment(0.0)
        self.current_mu = self.current_surface.friction
        self.current_slope = self.terrain.get_slope(self.current_surface, 0.0).angle
        self.forces = {
            'engine': 0.0,
            'brake': 0.0,
            'friction': 0.0,
            'gravity': 0.0,
        }

    def update_surface(self):
        """Resolve surface, friction and slope angle at the current position"""
        self.segment_idx, self.current_surface = self.terrain.get_current_segment(self.x)
        self.current_mu = self.current_surface.friction
        self.current_slope = self.terrain.get_slope(self.current_surface, self.x).angle

    def calculate_forces(self, controls):
        """
        Net acceleration along the track from engine, brake, kinetic friction
        and the gravity component of the slope. Each term is stored signed in
        ``self.forces`` (per unit mass, m/s^2).
        """
        theta = np.radians(self.current_slope)

        engine = self.engine_accel if controls.accelerating else 0.0

        brake = 0.0
        if controls.braking:
            if self.brake_mode == 'fixed' or self.v > VELOCITY_EPSILON:
                brake = self.brake_accel

        # Kinetic friction opposes motion; a stopped car feels none.
        # Not clamped at zero velocity, the floor in update() handles overshoot.
        friction = 0.0
        if abs(self.v) > VELOCITY_EPSILON:
            friction = -self.current_mu * self.g * np.cos(theta) * np.sign(self.v)

        # Positive angle is uphill, so gravity pulls back
        gravity = -self.g * np.sin(theta)

        self.forces = {
            'engine': float(engine),
            'brake': float(brake),
            'friction': float(friction),
            'gravity': float(gravity),
        }
        return sum(self.forces.values())

    def update(self, controls, dt):
        """Advance one step; returns the new state or None when nothing moved"""
        if self.completed or dt <= 0:
            return None

        # Frame spikes (window dragged, tab hidden) must not blow up the integration
        dt = min(dt, self.max_dt)

        v_before = self.v
        self.update_surface()
        self.a = self.calculate_forces(controls)

        # Update velocity and position
        self.v += self.a * dt

        # No reverse gear: braking past zero just stops the car
        if self.v < 0:
            self.v = 0.0
        elif self.v > self.max_velocity:
            self.v = self.max_velocity

        self.x += self.v * dt
        self.total_time += dt
        step_v = self.v

        # Check completion
        if self.x >= self.total_length:
            self.completed = True
            self.x = self.total_length
            self.v = 0.0

        state = self.get_state()
        state['dt'] = dt
        state['v_before'] = v_before
        state['v_step'] = step_v  # speed reached this step, before the finish stop
        return state

    def get_state(self):
        """Get current state for logging"""
        return {
            'x': self.x,
            'v': self.v,
            'a': self.a,
            'total_time': self.total_time,
            'completed': self.completed,
            'segment_idx': self.segment_idx,
            'surface': self.current_surface.name,
            'mu': self.current_mu,
            'slope': self.current_slope,
            'elevation': self.terrain.elevation(self.x),
            'a_engine': self.forces['engine'],
            'a_brake': self.forces['brake'],
            'a_friction': self.forces['friction'],
            'a_gravity': self.forces['gravity'],
        }
