"""
Filter Configuration

Dataclass configuration for a linear Kalman filter, loadable from a plain
dictionary or a JSON file, plus a factory that builds and validates a
KalmanFilter from it.

JSON Layout:
-----------
{
    "name": "constant_velocity",
    "state_transition": [[1.0, 0.1], [0.0, 1.0]],
    "observation": [[0.0, 1.0]],
    "process_noise": [[0.1, 0.0], [0.0, 0.1]],
    "measurement_noise": [[10.0]],
    "control_input_model": null,
    "initial_state": null,
    "initial_covariance": null,
    "state_names": ["position", "velocity"],
    "measurement_names": ["velocity_sensor"]
}
"""

import json
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..estimators.errors import ConfigurationError
from ..estimators.kalman_filter import KalmanFilter


_MATRIX_FIELDS = (
    'state_transition',
    'observation',
    'process_noise',
    'measurement_noise',
    'control_input_model',
    'initial_covariance',
)

_REQUIRED_FIELDS = (
    'state_transition',
    'observation',
    'process_noise',
    'measurement_noise',
)


def _to_array(value: Any) -> Optional[np.ndarray]:
    if value is None:
        return None
    return np.asarray(value, dtype=float)


@dataclass
class KalmanFilterConfig:
    """
    Configuration for a linear Kalman filter.

    Attributes
    ----------
    state_transition : np.ndarray
        A (n x n)
    observation : np.ndarray
        H (m x n)
    process_noise : np.ndarray
        Q (n x n)
    measurement_noise : np.ndarray
        R (m x m)
    control_input_model : np.ndarray, optional
        B (n x p)
    initial_state : np.ndarray, optional
        x0 (n,), zeros when omitted
    initial_covariance : np.ndarray, optional
        P0 (n x n), zero matrix when omitted
    control_input : np.ndarray, optional
        Constant control input u (p,)
    name : str
        Label used in telemetry and reports
    state_names : List[str]
        Optional labels for the state dimensions
    measurement_names : List[str]
        Optional labels for the measurement channels
    """
    state_transition: np.ndarray
    observation: np.ndarray
    process_noise: np.ndarray
    measurement_noise: np.ndarray
    control_input_model: Optional[np.ndarray] = None
    initial_state: Optional[np.ndarray] = None
    initial_covariance: Optional[np.ndarray] = None
    control_input: Optional[np.ndarray] = None
    name: str = 'kalman_filter'
    state_names: List[str] = field(default_factory=list)
    measurement_names: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KalmanFilterConfig':
        """
        Build a configuration from a dictionary (e.g. parsed JSON).

        Raises
        ------
        ConfigurationError
            If a required model is absent or an unknown key is present
        """
        known = set(cls.__dataclass_fields__)
        for key in data:
            if key not in known:
                raise ConfigurationError(str(key), ConfigurationError.UNKNOWN)
        for key in _REQUIRED_FIELDS:
            if data.get(key) is None:
                raise ConfigurationError(key.replace('_', ' '), ConfigurationError.MISSING)

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in _MATRIX_FIELDS or key in ('initial_state', 'control_input'):
                kwargs[key] = _to_array(value)
            elif key in ('state_names', 'measurement_names'):
                kwargs[key] = list(value or [])
            else:
                kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_json(cls, filepath: Union[str, Path]) -> 'KalmanFilterConfig':
        """Load a configuration from a JSON file."""
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable dictionary (arrays become nested lists)."""
        data: Dict[str, Any] = {}
        for key in self.__dataclass_fields__:
            value = getattr(self, key)
            if isinstance(value, np.ndarray):
                value = value.tolist()
            data[key] = value
        return data

    def to_json(self, filepath: Union[str, Path], pretty_print: bool = True) -> Path:
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2 if pretty_print else None)
        return filepath

    def estimator_params(self) -> Dict[str, Any]:
        """Parameter mapping accepted by KalmanFilter.configure()."""
        params = {
            'A': self.state_transition,
            'H': self.observation,
            'Q': self.process_noise,
            'R': self.measurement_noise,
        }
        if self.control_input_model is not None:
            params['B'] = self.control_input_model
        if self.initial_state is not None:
            params['x0'] = self.initial_state
        if self.initial_covariance is not None:
            params['P0'] = self.initial_covariance
        if self.control_input is not None:
            params['u'] = self.control_input
        return params


def build_kalman_filter(
    config: Union[KalmanFilterConfig, Dict[str, Any]],
    validate: bool = True
) -> KalmanFilter:
    """
    Create a KalmanFilter from a configuration.

    Parameters
    ----------
    config : KalmanFilterConfig or dict
        Filter configuration
    validate : bool
        Validate the filter before returning it

    Returns
    -------
    KalmanFilter
        Configured (and, by default, validated) filter

    Raises
    ------
    ConfigurationError
        If the configuration is incomplete or inconsistent
    DimensionError
        If the control input does not match the control input model
    """
    if isinstance(config, dict):
        config = KalmanFilterConfig.from_dict(config)

    kf = KalmanFilter()
    kf.configure(config.estimator_params())
    if validate:
        kf.validate()
    return kf
