"""
Time-Series Plots for Estimator Validation

Visualizes an estimation run: each state estimate with its ±kσ uncertainty
band, the measurements feeding it, and markers at steps where measurements
were missing.

Every plot answers one debugging question:
- Does the estimate follow the measurements?
- Does the uncertainty band grow over gaps and shrink on updates?
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..simulation.estimation_runner import EstimationResults


class EstimatePlotter:
    """
    Time-series plotter for estimation runs.

    Usage:
    ------
    >>> plotter = EstimatePlotter(sigma=2.0)
    >>> fig, axes = plotter.plot_estimates(results)
    >>> fig.savefig('estimates.png', dpi=150)
    """

    def __init__(
        self,
        figure_size: Tuple[int, int] = (12, 8),
        sigma: float = 2.0
    ):
        """
        Initialize estimate plotter.

        Parameters
        ----------
        figure_size : tuple
            Figure size (width, height) in inches
        sigma : float
            Width of the uncertainty band in standard deviations
        """
        self.figure_size = figure_size
        self.sigma = sigma

    def plot_estimates(
        self,
        results: EstimationResults,
        measurement_map: Optional[Dict[int, int]] = None,
        title: Optional[str] = None
    ) -> Tuple[plt.Figure, np.ndarray]:
        """
        Plot every state estimate with its uncertainty band.

        Parameters
        ----------
        results : EstimationResults
            Telemetry from EstimationRunner.run()
        measurement_map : dict, optional
            State index -> measurement column drawn on that state's axis
            (e.g. {1: 0} overlays channel 0 on state 1)
        title : str, optional
            Figure title

        Returns
        -------
        fig : plt.Figure
        axes : np.ndarray of plt.Axes (one per state)
        """
        n = results.estimates.shape[1]
        fig, axes = plt.subplots(max(n, 1), 1, figsize=self.figure_size, sharex=True, squeeze=False)
        axes = axes[:, 0]
        steps = np.arange(results.n_steps)
        all_missing = ~results.presence.any(axis=1) if results.presence.size else np.zeros(results.n_steps, dtype=bool)
        measurement_map = measurement_map or {}

        for i in range(n):
            ax = axes[i]
            mean = results.estimates[:, i]
            band = self.sigma * np.sqrt(np.clip(results.variances[:, i], 0.0, None))

            ax.plot(steps, mean, color='tab:blue', linewidth=1.5, label='estimate')
            ax.fill_between(
                steps, mean - band, mean + band,
                color='tab:blue', alpha=0.2, label=f'±{self.sigma:g}σ'
            )

            j = measurement_map.get(i)
            if j is not None:
                ax.plot(
                    steps, results.measurements[:, j], '.', color='tab:orange',
                    markersize=4, label=results.measurement_names[j]
                )

            for k in steps[all_missing]:
                ax.axvline(k, color='tab:gray', alpha=0.3, linewidth=0.8)

            ax.set_ylabel(results.state_names[i])
            ax.grid(True, alpha=0.3)
            ax.legend(loc='upper right', fontsize=8)

        axes[-1].set_xlabel('Step')
        if title:
            fig.suptitle(title)
        fig.tight_layout()
        return fig, axes

    def plot_variance_trace(
        self,
        results: EstimationResults,
        ax: Optional[plt.Axes] = None
    ) -> Tuple[plt.Figure, plt.Axes]:
        """
        Plot the per-state variances on a log scale.

        Returns
        -------
        fig : plt.Figure
        ax : plt.Axes
        """
        if ax is None:
            fig, ax = plt.subplots(figsize=(self.figure_size[0], self.figure_size[1] / 2))
        else:
            fig = ax.figure

        steps = np.arange(results.n_steps)
        for i, name in enumerate(results.state_names):
            # log scale needs strictly positive values
            ax.semilogy(steps, np.clip(results.variances[:, i], 1e-300, None), label=name)

        ax.set_xlabel('Step')
        ax.set_ylabel('Variance')
        ax.grid(True, which='both', alpha=0.3)
        ax.legend(loc='upper right', fontsize=8)
        return fig, ax


def save_estimate_plots(
    results: EstimationResults,
    output_dir: Union[str, Path],
    base_filename: str = 'estimation',
    sigma: float = 2.0
) -> List[Path]:
    """
    Render estimate and variance plots to PNG files.

    Returns
    -------
    List[Path]
        Paths of the written images
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    plotter = EstimatePlotter(sigma=sigma)

    paths = []
    fig, _ = plotter.plot_estimates(results, title=base_filename)
    path = output_dir / f"{base_filename}_estimates.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    paths.append(path)

    fig, _ = plotter.plot_variance_trace(results)
    path = output_dir / f"{base_filename}_variance.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    paths.append(path)
    return paths
