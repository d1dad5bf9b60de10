"""
Generic Estimator Interface

Defines the capability set every estimator exposes to a host pipeline, so
that alternative estimators can be substituted without changing call sites:

    configure -> validate -> estimate (per step) -> get_last_estimate / get_state
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Any, Dict

from ..signals.values import Input, Output


class Estimator(ABC):
    """
    Abstract base class for all estimators.

    Defines the standard interface for state estimation including:
    - Parameter configuration from a dictionary
    - Deferred validation of the configured model
    - Step-wise estimation from a measurement vector
    - Access to the most recent estimate and the raw internal state
    """

    @abstractmethod
    def configure(self, params: Dict[str, Any]) -> None:
        """
        Set estimator parameters.

        Parameters
        ----------
        params : dict
            Estimator-specific parameter mapping
        """
        pass

    @abstractmethod
    def validate(self) -> None:
        """
        Check the configured parameters.

        Must succeed before estimate() may be called.
        """
        pass

    @abstractmethod
    def estimate(self, measurement: Input) -> Output:
        """
        Advance the estimator by one step.

        Parameters
        ----------
        measurement : Input
            Measurement vector for this step (entries may be missing)

        Returns
        -------
        Output
            New estimate
        """
        pass

    @abstractmethod
    def get_last_estimate(self) -> Output:
        """
        Return the most recent estimate without advancing the estimator.
        """
        pass

    @abstractmethod
    def get_state(self) -> np.ndarray:
        """
        Return the raw internal state vector.
        """
        pass
