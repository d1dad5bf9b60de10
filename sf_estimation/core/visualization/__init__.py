"""
Visualization Module for Estimation Runs

Modules:
--------
- estimate_plots: state estimates with uncertainty bands, variance traces
"""

from .estimate_plots import EstimatePlotter, save_estimate_plots

__all__ = [
    'EstimatePlotter',
    'save_estimate_plots',
]
