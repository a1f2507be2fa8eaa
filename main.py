import importlib
import importlib.util
import math
import sys

import numpy as np
import pygame

from config import GRAVITY_PRESETS, VEHICLE_PRESETS, ConfigError, SimulationConfig
from physics import ControlInputs
from practice_track import TRACK_PRESETS
from simulation import Simulation
from telemetry_log import TelemetryLogger, export_history_csv

# Screen dimensions
SCREEN_WIDTH, SCREEN_HEIGHT = 1200, 700
FPS = 60
BG_COLOR = (30, 41, 59)
SKY_COLOR = (186, 230, 253)
GROUND_COLOR = (71, 85, 105)
CAR_COLOR = (239, 68, 68)
WINDOW_COLOR = (59, 130, 246)
TEXT_COLOR = (0, 0, 0)
LIGHT_TEXT = (255, 255, 255)
ALERT_COLOR = (200, 0, 0)
WARNING_COLOR = (255, 165, 0)
SUCCESS_COLOR = (0, 150, 0)
SPEED_LINE_COLOR = (74, 222, 128)
POSITION_LINE_COLOR = (96, 165, 250)
GRID_COLOR = (55, 65, 81)
DASHBOARD_BG = (255, 255, 255, 220)
DASHBOARD_BORDER = (100, 100, 100, 255)

PIXELS_PER_METER = 6.0
VERTICAL_SCALE = 6.0
GROUND_Y = 520


class DrivingSimulator:
    def __init__(self):
        pygame.init()
        self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
        pygame.display.set_caption("Surface Drive")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont('Arial', 24, bold=True)
        self.small_font = pygame.font.SysFont('Arial', 18)
        self.monospace_font = pygame.font.SysFont('Courier New', 20, bold=True)

        # Presets cycled from the keyboard
        self.vehicle_names = list(VEHICLE_PRESETS)
        self.gravity_names = list(GRAVITY_PRESETS)
        self.track_names = list(TRACK_PRESETS)
        self.vehicle = 'hatchback'
        self.gravity = 'earth'
        self.track = 'hills'

        # Autopilot controller
        self.controller_path = "controller_template.py"
        self.controller = None
        self.autopilot = False
        self.load_controller()

        # Core simulation
        self.sim = Simulation(self.build_config())
        self.sim.start()
        self.track_profile = self.sim.terrain.elevation_profile()

        # Logging
        self.logger = TelemetryLogger()
        print(f"Telemetry log: {self.logger.log_file}")

        # UI state
        self.keys = {'up': False, 'down': False}
        self.show_help = False
        self.reported_finish = False

    def build_config(self):
        return SimulationConfig.from_presets(self.vehicle, self.gravity, self.track)

    def load_controller(self):
        """Dynamically load the autopilot controller"""
        try:
            spec = importlib.util.spec_from_file_location("controller", self.controller_path)
            controller = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(controller)
            self.controller = controller
            print(f"Loaded controller: {self.controller_path}")
        except Exception as e:
            print(f"Error loading controller: {e}")
            print("Using installed controller template")
            self.controller = importlib.import_module("controller_template")

    def apply_presets(self):
        try:
            config = self.build_config()
            self.sim.reconfigure(config)
        except ConfigError as e:
            print(f"Invalid configuration: {e}")
            return
        self.track_profile = self.sim.terrain.elevation_profile()
        self.reset()
        print(f"Vehicle={self.vehicle} gravity={self.gravity} track={self.track}")

    def cycle(self, names, current):
        return names[(names.index(current) + 1) % len(names)]

    def reset(self):
        self.sim.reset()
        self.keys = {'up': False, 'down': False}
        self.reported_finish = False

    def current_controls(self, telemetry):
        if not (self.autopilot and self.controller):
            return ControlInputs(self.keys['up'], self.keys['down'])

        try:
            accelerating, braking = self.controller.get_controls(
                telemetry['position'],
                telemetry['velocity'],
                telemetry['slope_angle'],
                telemetry['friction_coefficient'],
                self.sim.track_info(),
            )
            return ControlInputs(bool(accelerating), bool(braking))
        except Exception as e:
            print(f"Controller error: {e}")
            self.autopilot = False
            return ControlInputs(self.keys['up'], self.keys['down'])

    def world_to_screen(self, x, height, camera_x):
        screen_x = SCREEN_WIDTH // 2 + (x - camera_x) * PIXELS_PER_METER
        screen_y = GROUND_Y - height * VERTICAL_SCALE
        return screen_x, screen_y

    def draw_track(self, telemetry):
        """Render elevation profile coloured by surface"""
        camera_x = telemetry['position']
        camera_h = telemetry['elevation']
        xs, heights = self.track_profile

        self.screen.fill(SKY_COLOR)

        for i in range(1, len(xs)):
            sx1, sy1 = self.world_to_screen(xs[i - 1], heights[i - 1] - camera_h, camera_x)
            sx2, sy2 = self.world_to_screen(xs[i], heights[i] - camera_h, camera_x)

            # Only draw if visible
            if sx2 < 0 or sx1 > SCREEN_WIDTH:
                continue

            _, segment = self.sim.terrain.get_current_segment(xs[i - 1])
            polygon = [(sx1, sy1), (sx2, sy2), (sx2, SCREEN_HEIGHT), (sx1, SCREEN_HEIGHT)]
            pygame.draw.polygon(self.screen, GROUND_COLOR, polygon)
            pygame.draw.line(self.screen, segment.color, (sx1, sy1), (sx2, sy2), 6)

        # Segment boundaries with labels
        for segment in self.sim.terrain.segments:
            h = self.sim.terrain.elevation(segment.start) - camera_h
            screen_x, screen_y = self.world_to_screen(segment.start, h, camera_x)
            if 0 <= screen_x <= SCREEN_WIDTH:
                pygame.draw.line(self.screen, TEXT_COLOR, (screen_x, screen_y - 30), (screen_x, screen_y + 10), 2)
                label = self.small_font.render(f"{segment.name.upper()} μ={segment.friction:.2f}", True, TEXT_COLOR)
                self.screen.blit(label, (screen_x + 5, screen_y - 60))

        # Finish line
        length = self.sim.terrain.track_length
        h = self.sim.terrain.elevation(length) - camera_h
        finish_x, finish_y = self.world_to_screen(length, h, camera_x)
        if 0 <= finish_x <= SCREEN_WIDTH:
            pygame.draw.line(self.screen, TEXT_COLOR, (finish_x, finish_y - 60), (finish_x, finish_y + 10), 4)

    def draw_car(self, telemetry):
        """Draw car sprite at the screen centre rotated by the local slope"""
        car_surface = pygame.Surface((48, 36), pygame.SRCALPHA)
        pygame.draw.rect(car_surface, CAR_COLOR, (4, 8, 40, 18), border_radius=4)
        pygame.draw.rect(car_surface, WINDOW_COLOR, (12, 11, 10, 7))
        pygame.draw.rect(car_surface, WINDOW_COLOR, (26, 11, 10, 7))
        pygame.draw.circle(car_surface, (20, 20, 20), (14, 28), 6)
        pygame.draw.circle(car_surface, (20, 20, 20), (34, 28), 6)

        # Visual angle is exaggerated by the axis scales; keep it readable
        visual = math.degrees(math.atan(math.tan(math.radians(telemetry['slope_angle']))
                                        * VERTICAL_SCALE / PIXELS_PER_METER))
        angle = max(-60, min(60, visual))

        rotated = pygame.transform.rotate(car_surface, angle)
        rect = rotated.get_rect()
        rect.midbottom = (SCREEN_WIDTH // 2, GROUND_Y)
        self.screen.blit(rotated, rect)

        # Speed streaks
        if telemetry['velocity'] > 0:
            for i in range(3):
                shade = 255 - i * 60
                x = SCREEN_WIDTH // 2 - 35 - i * 10
                pygame.draw.line(self.screen, (shade, shade, shade), (x, GROUND_Y - 20), (x + 6, GROUND_Y - 20), 2)

    def draw_dashboard(self, telemetry):
        """Render real-time telemetry"""
        panel = pygame.Surface((330, 330), pygame.SRCALPHA)
        pygame.draw.rect(panel, DASHBOARD_BG, panel.get_rect(), border_radius=15)
        pygame.draw.rect(panel, DASHBOARD_BORDER, panel.get_rect(), 2, border_radius=15)
        self.screen.blit(panel, (10, 10))

        surface = telemetry['surface_name'].upper()
        lines = [
            (f"SURFACE: {surface}", TEXT_COLOR),
            (f"SPEED: {telemetry['velocity']:.2f} m/s", TEXT_COLOR),
            (f"POSITION: {telemetry['position']:.1f} m", TEXT_COLOR),
            (f"ACCEL: {telemetry['acceleration']:+.2f} m/s²", TEXT_COLOR),
            (f"FRICTION μ: {telemetry['friction_coefficient']:.2f}", TEXT_COLOR),
            (f"SLOPE: {telemetry['slope_angle']:+.1f}°", TEXT_COLOR),
            (f"GRAVITY: {telemetry['gravity_component']:+.2f} m/s²", TEXT_COLOR),
            (f"TIME: {telemetry['elapsed_time']:.1f} s", TEXT_COLOR),
        ]
        y = 22
        for text, color in lines:
            self.screen.blit(self.monospace_font.render(text, True, color), (22, y))
            y += 26

        # Track progress bar
        progress = min(1.0, telemetry['progress'])
        bar = pygame.Rect(22, y + 6, 290, 18)
        pygame.draw.rect(self.screen, (200, 200, 200), bar)
        pygame.draw.rect(self.screen, SUCCESS_COLOR, (bar.x, bar.y, bar.width * progress, bar.height))
        pygame.draw.rect(self.screen, TEXT_COLOR, bar, 1)

        next_seg = self.sim.terrain.get_next_segment(telemetry['position'])
        if next_seg is not None:
            text = f"NEXT: {next_seg.name.upper()} at {next_seg.start:.0f} m (μ={next_seg.friction:.2f})"
            color = WARNING_COLOR
        else:
            text = "FINISH LINE AHEAD!"
            color = SUCCESS_COLOR
        self.screen.blit(self.small_font.render(text, True, color), (22, y + 30))

        if telemetry['paused']:
            status = "PAUSED"
        elif self.autopilot:
            status = "AUTOPILOT"
        else:
            status = "H: Help"
        self.screen.blit(self.font.render(status, True, ALERT_COLOR if telemetry['paused'] else TEXT_COLOR),
                         (22, y + 56))

    def draw_speedometer(self, telemetry):
        """Analogue gauge, needle sweeps 225° over the car's top speed"""
        cx, cy, radius = SCREEN_WIDTH - 130, 130, 100
        pygame.draw.circle(self.screen, (17, 24, 39), (cx, cy), radius)
        pygame.draw.circle(self.screen, (148, 163, 184), (cx, cy), radius, 3)

        max_velocity = self.sim.config.max_velocity
        start_angle, sweep = 225.0, 270.0
        for i in range(11):
            a = math.radians(start_angle - sweep * i / 10)
            outer = (cx + math.cos(a) * (radius - 6), cy - math.sin(a) * (radius - 6))
            inner = (cx + math.cos(a) * (radius - 18), cy - math.sin(a) * (radius - 18))
            pygame.draw.line(self.screen, LIGHT_TEXT, inner, outer, 2)

        fraction = min(1.0, telemetry['velocity'] / max_velocity)
        a = math.radians(start_angle - sweep * fraction)
        tip = (cx + math.cos(a) * (radius - 22), cy - math.sin(a) * (radius - 22))
        pygame.draw.line(self.screen, CAR_COLOR, (cx, cy), tip, 4)
        pygame.draw.circle(self.screen, LIGHT_TEXT, (cx, cy), 6)

        kph = telemetry['velocity'] * 3.6
        label = self.small_font.render(f"{kph:.0f} km/h", True, LIGHT_TEXT)
        self.screen.blit(label, (cx - label.get_width() // 2, cy + 40))

    def draw_graph(self, rect, ts, values, color, title):
        pygame.draw.rect(self.screen, BG_COLOR, rect)
        for i in range(6):
            y = rect.bottom - i * rect.height / 5
            pygame.draw.line(self.screen, GRID_COLOR, (rect.left, y), (rect.right, y), 1)

        if len(ts) >= 2:
            max_t = ts[-1] if ts[-1] > 0 else 1.0
            max_v = values.max() if values.max() > 0 else 1.0
            xs = rect.left + ts / max_t * rect.width
            ys = rect.bottom - values / max_v * rect.height
            pygame.draw.lines(self.screen, color, False, np.column_stack((xs, ys)).tolist(), 3)
            self.screen.blit(self.small_font.render(f"max {max_v:.1f}", True, LIGHT_TEXT),
                             (rect.left + 8, rect.top + 26))

        self.screen.blit(self.small_font.render(title, True, LIGHT_TEXT), (rect.left + 8, rect.top + 4))

    def draw_results(self):
        results = self.sim.results
        if results is None:
            return

        overlay = pygame.Surface((SCREEN_WIDTH, SCREEN_HEIGHT), pygame.SRCALPHA)
        overlay.fill((15, 23, 42, 230))
        self.screen.blit(overlay, (0, 0))

        worst = results.worst_surface.upper() if results.worst_surface else "-"
        unit = "s" if self.sim.config.worst_metric == 'time' else "m/s lost"
        lines = [
            "FINISHED!",
            f"Distance: {results.final_distance:.2f} m",
            f"Time: {results.final_time:.2f} s",
            f"Average speed: {results.average_speed:.2f} m/s",
            f"Max speed: {results.max_speed:.2f} m/s",
            f"Worst surface: {worst} ({results.worst_value:.1f} {unit})",
            "R: restart   E: export history   ESC: quit",
        ]
        y = 40
        for line in lines:
            self.screen.blit(self.font.render(line, True, LIGHT_TEXT), (60, y))
            y += 34

        arrays = self.sim.history.as_arrays()
        self.draw_graph(pygame.Rect(60, 300, 520, 330), arrays['t'], arrays['v'],
                        SPEED_LINE_COLOR, "Speed vs Time")
        self.draw_graph(pygame.Rect(620, 300, 520, 330), arrays['t'], arrays['x'],
                        POSITION_LINE_COLOR, "Position vs Time")

    def draw_help(self):
        """Draw help overlay"""
        if not self.show_help:
            return

        overlay = pygame.Surface((SCREEN_WIDTH, SCREEN_HEIGHT), pygame.SRCALPHA)
        overlay.fill((200, 200, 200, 220))
        self.screen.blit(overlay, (0, 0))

        help_lines = [
            "SURFACE DRIVE HELP",
            "",
            "  UP    - Accelerate          DOWN - Brake",
            "  SPACE - Pause/resume        R    - Restart",
            "  A     - Toggle autopilot    L    - Toggle telemetry logging",
            f"  V     - Vehicle ({self.vehicle})",
            f"  G     - Gravity ({self.gravity})",
            f"  T     - Track ({self.track})",
            "  E     - Export history after a run",
            "  H     - Show/hide this help screen",
            "",
            "Ice is slippery, sand drags, wood is in between.",
            "Uphill slopes pull you back, downhills push you on.",
        ]
        y = 100
        for line in help_lines:
            self.screen.blit(self.font.render(line, True, TEXT_COLOR), (100, y))
            y += 35

    def handle_events(self):
        """Process user input"""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False

            if event.type == pygame.KEYUP:
                if event.key == pygame.K_UP:
                    self.keys['up'] = False
                elif event.key == pygame.K_DOWN:
                    self.keys['down'] = False

            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return False
                elif event.key == pygame.K_UP:
                    self.keys['up'] = True
                elif event.key == pygame.K_DOWN:
                    self.keys['down'] = True
                elif event.key == pygame.K_SPACE:
                    self.sim.toggle_pause()
                elif event.key == pygame.K_r:
                    self.reset()
                elif event.key == pygame.K_l:
                    enabled = self.logger.toggle()
                    print(f"Telemetry logging {'on' if enabled else 'off'}")
                elif event.key == pygame.K_a:
                    self.autopilot = not self.autopilot
                elif event.key == pygame.K_h:
                    self.show_help = not self.show_help
                elif event.key == pygame.K_v:
                    self.vehicle = self.cycle(self.vehicle_names, self.vehicle)
                    self.apply_presets()
                elif event.key == pygame.K_g:
                    self.gravity = self.cycle(self.gravity_names, self.gravity)
                    self.apply_presets()
                elif event.key == pygame.K_t:
                    self.track = self.cycle(self.track_names, self.track)
                    self.apply_presets()
                elif event.key == pygame.K_e and self.sim.results is not None:
                    export_history_csv(self.sim.results.history, "drive_history.csv")

        return True

    def report_finish(self):
        results = self.sim.results
        print(f"Finished {results.final_distance:.1f} m in {results.final_time:.2f} s "
              f"(avg {results.average_speed:.2f} m/s, max {results.max_speed:.2f} m/s, "
              f"worst surface: {results.worst_surface})")
        self.reported_finish = True

    def run(self):
        """Main simulation loop"""
        running = True

        while running:
            dt = self.clock.tick(FPS) / 1000.0

            running = self.handle_events()
            if not running:
                break

            # Physics update
            before = self.sim.car.total_time
            controls = self.current_controls(self.sim.get_telemetry())
            telemetry = self.sim.tick(dt, controls)
            if telemetry['elapsed_time'] > before:
                self.logger.log_step(telemetry)
            if self.sim.finished and not self.reported_finish:
                self.report_finish()

            # Rendering
            self.draw_track(telemetry)
            self.draw_car(telemetry)
            self.draw_dashboard(telemetry)
            self.draw_speedometer(telemetry)
            self.draw_results()
            self.draw_help()

            pygame.display.flip()

        pygame.quit()
        sys.exit()


def main():
    simulator = DrivingSimulator()
    simulator.run()


if __name__ == "__main__":
    main()
