# Practice track configuration
# Each surface: name, friction coefficient, display colour and a base slope
# profile of (angle_deg, base_length_m) pairs. Profiles are stretched to the
# configured segment length when the track is built.

GRAVITY = 9.8            # m/s^2
ENGINE_ACC = 5.0         # m/s^2 while accelerating
BRAKE_ACC = -8.0         # m/s^2 while braking
MASS = 1200.0            # kg (not used by the acceleration model)
MAX_VELOCITY = 40.0      # m/s

MAX_DT = 0.1             # largest physics step accepted per frame (s)
SAMPLE_INTERVAL = 0.1    # minimum gap between history samples (s)
MIN_SEGMENT_LENGTH = 50.0
DEFAULT_TRACK_LENGTH = 300.0
SLOWDOWN_THRESHOLD = 0.5  # m/s^2 of deceleration before it counts as slowdown

FLAT = [(0.0, 100.0)]

PRACTICE_SURFACES = [
    {'name': 'ice',  'friction': 0.1, 'color': (165, 243, 252),
     'profile': [(0.0, 30.0), (4.0, 40.0), (-2.0, 30.0)]},
    {'name': 'sand', 'friction': 0.8, 'color': (253, 224, 71),
     'profile': [(-6.0, 25.0), (0.0, 25.0), (8.0, 50.0)]},
    {'name': 'wood', 'friction': 0.4, 'color': (217, 119, 6),
     'profile': [(3.0, 50.0), (-5.0, 50.0)]},
]

# Original toy: three flat 100 m surfaces
CLASSIC_SURFACES = [dict(surface, profile=FLAT) for surface in PRACTICE_SURFACES]

TRACK_PRESETS = {
    'classic': CLASSIC_SURFACES,
    'hills': PRACTICE_SURFACES,
}
