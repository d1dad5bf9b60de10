"""
Estimators - Linear State Estimation
====================================

Modules:
--------
- base_estimator: generic Estimator interface
- model_registry: model storage and VALID/DIRTY validation state machine
- estimation_engine: Kalman predict/update recursion
- kalman_filter: KalmanFilter estimator
- errors: estimator error taxonomy
"""

from .base_estimator import Estimator
from .errors import (
    EstimatorError,
    ConfigurationError,
    DimensionError,
    NotValidatedError
)
from .model_registry import (
    ModelRegistry,
    ModelItem,
    ModelDimensions,
    ValidationState,
    check_models
)
from .estimation_engine import (
    EstimationEngine,
    RunningState,
    StepDiagnostics,
    predict,
    update,
    zero_missing_innovation
)
from .kalman_filter import KalmanFilter

__all__ = [
    # Interface
    'Estimator',
    'KalmanFilter',
    # Errors
    'EstimatorError',
    'ConfigurationError',
    'DimensionError',
    'NotValidatedError',
    # Registry
    'ModelRegistry',
    'ModelItem',
    'ModelDimensions',
    'ValidationState',
    'check_models',
    # Engine
    'EstimationEngine',
    'RunningState',
    'StepDiagnostics',
    'predict',
    'update',
    'zero_missing_innovation',
]
