"""
Smoke Tests for Estimate Plots
"""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as np
import pytest

from sf_estimation.core.config.filter_config import build_kalman_filter
from sf_estimation.core.simulation.estimation_runner import EstimationRunner
from sf_estimation.core.visualization.estimate_plots import EstimatePlotter, save_estimate_plots


@pytest.fixture
def results():
    kf = build_kalman_filter({
        'state_transition': [[1.0, 0.1], [0.0, 1.0]],
        'observation': [[0.0, 1.0]],
        'process_noise': [[0.1, 0.0], [0.0, 0.1]],
        'measurement_noise': [[10.0]],
    })
    z = np.array([1.0, 5.0, np.nan, np.nan, 2.0])
    return EstimationRunner(kf, ['position', 'velocity'], ['velocity_sensor']).run(z)


class TestEstimatePlotter:

    def test_one_axis_per_state(self, results):
        plotter = EstimatePlotter(sigma=3.0)
        fig, axes = plotter.plot_estimates(results, measurement_map={1: 0}, title='cv')

        assert len(axes) == 2
        assert axes[0].get_ylabel() == 'position'
        assert fig._suptitle.get_text() == 'cv'
        plt.close(fig)

    def test_variance_trace_on_given_axes(self, results):
        fig, ax = plt.subplots()
        fig_out, ax_out = EstimatePlotter().plot_variance_trace(results, ax=ax)
        assert fig_out is fig
        assert ax_out is ax
        assert len(ax.get_lines()) == 2
        plt.close(fig)


def test_save_estimate_plots(results, tmp_path):
    paths = save_estimate_plots(results, tmp_path / 'plots', base_filename='cv')

    assert [p.name for p in paths] == ['cv_estimates.png', 'cv_variance.png']
    assert all(p.exists() and p.stat().st_size > 0 for p in paths)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
