"""
SF Estimation - Linear State Estimation for Sensor Fusion
==========================================================
Discrete-time linear Kalman filter behind a generic estimator interface,
with tolerance for missing measurements.

Subpackages:
------------
- core.signals: Input/Output value containers
- core.estimators: Estimator interface, KalmanFilter, validation, errors
- core.config: JSON/dict filter configuration
- core.simulation: batch runner and telemetry logger
- core.visualization: estimate plots
"""

from .core.signals.values import InputValue, Input, OutputValue, Output
from .core.estimators import (
    Estimator,
    KalmanFilter,
    EstimatorError,
    ConfigurationError,
    DimensionError,
    NotValidatedError,
    ValidationState
)
from .core.config import KalmanFilterConfig, build_kalman_filter

__all__ = [
    'InputValue',
    'Input',
    'OutputValue',
    'Output',
    'Estimator',
    'KalmanFilter',
    'EstimatorError',
    'ConfigurationError',
    'DimensionError',
    'NotValidatedError',
    'ValidationState',
    'KalmanFilterConfig',
    'build_kalman_filter',
]
__version__ = '1.0.0'
