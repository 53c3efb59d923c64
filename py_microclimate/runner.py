"""
Frame-driven runner and command line entry point.

The runner converts elapsed wall-clock time into simulated minutes using
the configured rate and the speed control, advances the clock and then
ticks the simulation.
"""

import argparse
import time
from typing import Callable, List, Optional

import structlog

from .config import Settings, SimulationControls, settings as default_settings
from .core.landscape import build_default_landscape
from .core.metrics import SimulationMetrics
from .core.simulation import MicroclimateSimulation
from .log_config import configure_logging
from .utils.random import create_rng

logger = structlog.get_logger()


class SimulationRunner:
    """Drives a simulation from real elapsed time."""

    def __init__(
        self,
        simulation: MicroclimateSimulation,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.simulation = simulation
        self.settings = settings or default_settings
        self.clock = clock
        self.running = False
        self._last_frame: Optional[float] = None

    def simulated_minutes(self, elapsed_seconds: float) -> float:
        """Simulated minutes covered by a frame of the given real duration."""
        speed = self.simulation.controls.simulation_speed
        return max(0.0, elapsed_seconds) * self.settings.sim_minutes_per_real_second * speed

    def start(self) -> None:
        self.running = True
        self._last_frame = self.clock()

    def stop(self) -> None:
        self.running = False
        self._last_frame = None

    def reset(self) -> None:
        """Rewind the clock to the configured start time and refresh derived fields."""
        self.simulation.state.simulation_time = self.settings.start_minutes
        self.simulation.tick(0.0)

    def frame(self, elapsed_seconds: Optional[float] = None) -> SimulationMetrics:
        """
        Run one frame.

        Args:
            elapsed_seconds: Real time since the previous frame; measured from
                the clock when omitted. A paused runner ticks with zero time.

        Returns:
            SimulationMetrics after the frame
        """
        now = self.clock()
        if elapsed_seconds is None:
            elapsed_seconds = now - self._last_frame if self._last_frame is not None else 0.0
        self._last_frame = now

        if not self.running:
            return self.simulation.tick(0.0)
        return self.simulation.advance(self.simulated_minutes(elapsed_seconds))

    def run_frames(self, frames: int, frame_seconds: float) -> List[SimulationMetrics]:
        """Run a fixed number of frames of equal real duration."""
        if not self.running:
            self.start()
        return [self.frame(frame_seconds) for _ in range(frames)]


def build_simulation(
    size: Optional[int] = None,
    seed=None,
    controls: Optional[SimulationControls] = None,
    settings: Optional[Settings] = None,
) -> MicroclimateSimulation:
    """Default landscape wrapped in a simulation sharing one seeded generator."""
    settings = settings or default_settings
    rng = create_rng(seed if seed is not None else settings.default_seed)
    state = build_default_landscape(size or settings.grid_size, rng, settings.cell_size)
    state.simulation_time = settings.start_minutes
    simulation = MicroclimateSimulation(state, controls=controls, rng=rng, cell_size=settings.cell_size)
    simulation.tick(0.0)
    return simulation


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the microclimate simulator headless")
    parser.add_argument("--size", type=int, default=None, help="Cells per grid side")
    parser.add_argument("--seed", default=None, help="Random seed")
    parser.add_argument("--frames", type=int, default=24, help="Number of frames to run")
    parser.add_argument("--frame-seconds", type=float, default=0.4, help="Real seconds per frame")
    parser.add_argument("--month", type=int, default=6, help="Calendar month (1-12)")
    parser.add_argument("--speed", type=float, default=1.0, help="Simulation speed multiplier")
    parser.add_argument("--wind-speed", type=float, default=5.0, help="Base wind speed (km/h)")
    parser.add_argument("--wind-direction", type=float, default=270.0, help="Base wind direction (degrees)")
    parser.add_argument("--no-clouds", action="store_true", help="Disable clouds and precipitation")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging()

    controls = SimulationControls(
        month=args.month,
        simulation_speed=args.speed,
        wind_speed=args.wind_speed,
        wind_direction=args.wind_direction,
        enable_clouds=not args.no_clouds,
    )
    simulation = build_simulation(size=args.size, seed=args.seed, controls=controls)
    runner = SimulationRunner(simulation)

    logger.info("Starting simulation", size=simulation.state.size, frames=args.frames, month=args.month)
    for index, metrics in enumerate(runner.run_frames(args.frames, args.frame_seconds)):
        state = simulation.state
        logger.info(
            "Frame",
            frame=index + 1,
            clock=f"{state.hour:02d}:{state.minute:02d}",
            **{key: round(value, 2) for key, value in metrics.to_dict().items()},
        )
    return 0
