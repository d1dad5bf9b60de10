"""
Signals - Estimator Input/Output Value Containers
=================================================
Measurement (Input) and estimate (Output) containers shared by all estimators.
"""

from .values import (
    InputValue,
    Input,
    OutputValue,
    Output,
    DEFAULT_OUTPUT_VALUE,
    DEFAULT_OUTPUT_VARIANCE
)

__all__ = [
    'InputValue',
    'Input',
    'OutputValue',
    'Output',
    'DEFAULT_OUTPUT_VALUE',
    'DEFAULT_OUTPUT_VARIANCE',
]
