"""Tests for the frame runner and command line entry point."""

import numpy as np
import pytest

from py_microclimate.config import Settings, SimulationControls
from py_microclimate.core.spatial import SpatialAnalysis
from py_microclimate.runner import SimulationRunner, build_simulation, main, parse_args


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestSimulationRunner:
    """Test real-time to simulated-time conversion."""

    @pytest.fixture
    def settings(self):
        return Settings(sim_minutes_per_real_second=15.0, start_minutes=360.0, grid_size=12)

    @pytest.fixture
    def simulation(self, settings):
        controls = SimulationControls(simulation_speed=2.0)
        return build_simulation(size=12, seed=1, controls=controls, settings=settings)

    def test_build_simulation(self, simulation):
        """Test building the default simulation."""
        assert simulation.state.size == 12
        assert simulation.state.simulation_time == 360.0
        assert np.isfinite(simulation.metrics.avg_temperature)

    def test_build_simulation_uses_configured_cell_size(self):
        """Test that the landscape and the engines share the configured spacing."""
        settings = Settings(cell_size=25.0, grid_size=12)
        simulation = build_simulation(seed=1, settings=settings)
        expected = simulation.state.hillshade.copy()
        SpatialAnalysis(simulation.state, cell_size=25.0).calculate_hillshade()

        assert simulation.cell_size == 25.0
        np.testing.assert_allclose(simulation.state.hillshade, expected)

    def test_simulated_minutes(self, simulation, settings):
        """Test conversion of real seconds to simulated minutes."""
        runner = SimulationRunner(simulation, settings)
        assert runner.simulated_minutes(1.0) == pytest.approx(30.0)
        assert runner.simulated_minutes(-1.0) == 0.0

    def test_paused_frame_does_not_advance(self, simulation, settings):
        """Test that a paused frame refreshes without advancing."""
        runner = SimulationRunner(simulation, settings)
        runner.frame(5.0)
        assert simulation.state.simulation_time == 360.0

    def test_run_frames(self, simulation, settings):
        """Test running a fixed number of frames."""
        runner = SimulationRunner(simulation, settings)
        metrics = runner.run_frames(3, 0.2)
        assert len(metrics) == 3
        assert simulation.state.simulation_time == pytest.approx(360.0 + 3 * 6.0)

    def test_measured_frame_time(self, simulation, settings):
        """Test frames timed from the clock."""
        clock = FakeClock()
        runner = SimulationRunner(simulation, settings, clock=clock)
        runner.start()
        clock.now = 0.5
        runner.frame()
        assert simulation.state.simulation_time == pytest.approx(360.0 + 15.0)

    def test_reset(self, simulation, settings):
        """Test resetting the clock to the start time."""
        runner = SimulationRunner(simulation, settings)
        runner.run_frames(2, 1.0)
        runner.stop()
        runner.reset()
        assert simulation.state.simulation_time == 360.0
        assert not runner.running


class TestCommandLine:
    """Test the headless entry point."""

    def test_parse_args(self):
        """Test command line parsing."""
        args = parse_args(["--size", "16", "--frames", "3", "--no-clouds"])
        assert args.size == 16
        assert args.frames == 3
        assert args.no_clouds

    def test_main_runs(self):
        """Test the command line entry point end to end."""
        assert main(["--size", "12", "--frames", "2", "--seed", "7"]) == 0
