import csv
import os
import time

TELEMETRY_COLUMNS = [
    'timestamp', 'elapsed_time', 'position', 'velocity', 'acceleration',
    'surface_name', 'friction_coefficient', 'slope_angle',
    'friction_component', 'gravity_component', 'elevation',
]


class TelemetryLogger:
    """Append one CSV row per physics step while enabled"""

    def __init__(self, log_file=None, enabled=True):
        self.log_file = log_file or f"drive_log_{int(time.time())}.csv"
        self.enabled = enabled
        self.rows_written = 0
        self.setup_logger()

    def setup_logger(self):
        """Initialize CSV logger"""
        with open(self.log_file, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(TELEMETRY_COLUMNS)
        self.rows_written = 0

    def toggle(self):
        self.enabled = not self.enabled
        return self.enabled

    def log_step(self, telemetry):
        """Log current state to CSV"""
        if not self.enabled:
            return False

        with open(self.log_file, 'a', newline='') as f:
            writer = csv.writer(f)
            writer.writerow([time.time()] + [telemetry[col] for col in TELEMETRY_COLUMNS[1:]])
        self.rows_written += 1
        return True


def export_history_csv(samples, out_file="results/history.csv"):
    """
    Save throttled history samples to CSV:
    time, position, speed (m/s and km/h), friction, slope
    """
    os.makedirs(os.path.dirname(out_file) or ".", exist_ok=True)
    with open(out_file, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["time_s", "position_m", "speed_mps", "speed_kph", "friction", "slope_deg"])
        for sample in samples:
            writer.writerow([sample.t, sample.x, sample.v, sample.v * 3.6, sample.mu, sample.slope])

    print(f"History saved to {out_file}")
