"""
Simulation - Batch Estimation and Telemetry
===========================================

Modules:
--------
- estimation_runner: drives an estimator over a measurement sequence
- data_logger: JSON/CSV persistence of estimation telemetry
"""

from .estimation_runner import (
    EstimationRunner,
    EstimationResults,
    load_measurements_csv
)
from .data_logger import (
    EstimationLogger,
    LoggerConfig,
    NumpyEncoder
)

__all__ = [
    'EstimationRunner',
    'EstimationResults',
    'load_measurements_csv',
    'EstimationLogger',
    'LoggerConfig',
    'NumpyEncoder',
]
