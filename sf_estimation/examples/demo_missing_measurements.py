"""
Demo: Kalman Filter with Missing Measurements

This script tracks a constant-velocity target from a noisy velocity sensor
that drops out periodically, and shows how the estimate and its variance
behave across the gaps.
"""

import numpy as np
import matplotlib.pyplot as plt
from sf_estimation.core.config.filter_config import KalmanFilterConfig, build_kalman_filter
from sf_estimation.core.simulation.estimation_runner import EstimationRunner
from sf_estimation.core.visualization.estimate_plots import EstimatePlotter


def simulate_measurements(n_steps: int = 200, dt: float = 0.1, seed: int = 42):
    """Generate true states and velocity measurements with dropouts."""
    rng = np.random.default_rng(seed)

    position = 0.0
    velocity = 1.0
    truth = np.zeros((n_steps, 2))
    z = np.zeros(n_steps)

    for k in range(n_steps):
        velocity += rng.normal(0.0, 0.05)
        position += velocity * dt
        truth[k] = [position, velocity]
        z[k] = velocity + rng.normal(0.0, 0.5)

    # Sensor dropouts: every 40 steps lose 10 samples
    for start in range(30, n_steps, 40):
        z[start:start + 10] = np.nan

    return truth, z


def demo_missing_measurements():
    """Run the filter over a velocity record with gaps."""
    print("=" * 70)
    print("DEMO: Constant-velocity tracking with sensor dropouts")
    print("=" * 70)

    dt = 0.1
    config = KalmanFilterConfig(
        state_transition=np.array([[1.0, dt], [0.0, 1.0]]),
        observation=np.array([[0.0, 1.0]]),
        process_noise=np.diag([1e-4, 2.5e-3]),
        measurement_noise=np.array([[0.25]]),
        initial_covariance=np.eye(2),
        name='constant_velocity_demo',
        state_names=['position', 'velocity'],
        measurement_names=['velocity_sensor'],
    )

    truth, z = simulate_measurements(dt=dt)
    kf = build_kalman_filter(config)
    runner = EstimationRunner(kf, config.state_names, config.measurement_names)
    results = runner.run(z)

    velocity_error = results.estimates[:, 1] - truth[:, 1]
    print(f"\nSteps:                {results.n_steps}")
    print(f"Missing measurements: {results.summary()['n_missing']}")
    print(f"RMS velocity error:   {np.sqrt(np.mean(velocity_error**2)):.4f}")
    print(f"Final variances:      {results.variances[-1]}")

    plotter = EstimatePlotter(sigma=2.0)
    fig, axes = plotter.plot_estimates(
        results, measurement_map={1: 0}, title='Constant-velocity tracking'
    )
    axes[0].plot(truth[:, 0], 'k--', linewidth=0.8, label='truth')
    axes[1].plot(truth[:, 1], 'k--', linewidth=0.8, label='truth')
    plt.show()


if __name__ == '__main__':
    demo_missing_measurements()
