"""
Example running the microclimate simulator through one summer day.
"""

import numpy as np
import matplotlib.pyplot as plt
from py_microclimate import MicroclimateSimulation, SimulationControls, build_default_landscape
from py_microclimate.utils.random import create_rng


def main():
    # Configuration
    seed = "microclimate_demo"
    rng = create_rng(seed)

    # Build the default valley
    state = build_default_landscape(size=80, rng=rng)
    state.simulation_time = 0.0

    controls = SimulationControls(
        month=7,
        wind_speed=6,
        wind_direction=300,
        wind_gustiness=25,
    )
    simulation = MicroclimateSimulation(state, controls=controls, rng=rng)

    # Run a full day in half-hour steps
    print("Simulating 24 hours...")
    history = []
    for step in range(48):
        metrics = simulation.advance(30)
        history.append(metrics)
        if step % 6 == 5:
            print(
                f"{state.hour:02d}:{state.minute:02d}  "
                f"avg {metrics.avg_temperature:.1f}°C  "
                f"min {metrics.min_temperature:.1f}°C  max {metrics.max_temperature:.1f}°C  "
                f"fog {state.fog_density.mean():.2f}  clouds {state.cloud_coverage.mean():.2f}"
            )

    # Visualize results
    fig, axes = plt.subplots(2, 3, figsize=(15, 9))

    panels = [
        ("Elevation", state.elevation, "terrain", "m"),
        ("Air temperature", state.temperature, "RdBu_r", "°C"),
        ("Soil temperature", state.soil_temperature, "RdBu_r", "°C"),
        ("Humidity", state.humidity, "YlGnBu", "fraction"),
        ("Cloud coverage", state.cloud_coverage, "Greys", "fraction"),
    ]
    for ax, (title, grid, cmap, label) in zip(axes.flat, panels):
        image = ax.imshow(grid, cmap=cmap, origin="upper")
        ax.set_title(title)
        plt.colorbar(image, ax=ax, label=label)

    # Diurnal temperature curve
    ax = axes[1, 2]
    hours = np.arange(1, len(history) + 1) / 2
    ax.plot(hours, [m.avg_temperature for m in history], label="mean")
    ax.fill_between(
        hours,
        [m.min_temperature for m in history],
        [m.max_temperature for m in history],
        alpha=0.3,
        label="range",
    )
    ax.set_xlabel("Hour")
    ax.set_ylabel("°C")
    ax.set_title("Diurnal cycle")
    ax.legend()

    plt.tight_layout()
    plt.savefig("microclimate_demo.png", dpi=150)
    print("Saved visualization to microclimate_demo.png")


if __name__ == "__main__":
    main()
