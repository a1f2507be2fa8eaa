def get_controls(x, v, slope, mu, track_info):
    """
    Autopilot strategy for the surface drive track

    Args:
        x (float): Current position in meters
        v (float): Current velocity in m/s
        slope (float): Current slope angle in degrees (positive = uphill)
        mu (float): Current friction coefficient
        track_info (dict): Dictionary containing track information with keys:
            - 'segments': All surface segments, in track order
            - 'next_segment': Next surface segment or None
            - 'finish_line': Position of finish line in meters
            - 'max_velocity': Top speed of the car in m/s

    Returns:
        tuple: (accelerating, braking) booleans
    """
    cruise = 0.6 * track_info['max_velocity']

    # Slippery surfaces: hold a lower speed
    if mu < 0.2:
        cruise *= 0.7

    # Ease off before a downhill start on the next surface
    next_seg = track_info.get('next_segment')
    if next_seg is not None and next_seg.slopes and next_seg.slopes[0].angle < -4.0:
        if x > next_seg.start - 15:
            cruise *= 0.8

    if v > cruise * 1.2:
        return False, True   # Too fast, brake
    if v < cruise:
        return True, False   # Build speed
    return False, False      # Coast
