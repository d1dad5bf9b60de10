"""
Linear Kalman Filter Estimator

Implements the generic Estimator interface on top of the ModelRegistry
(configuration + validation state machine) and the EstimationEngine
(predict/update recursion).

Usage:
-----
>>> kf = KalmanFilter()
>>> kf.set_state_transition_model([[1.0]])
>>> kf.set_observation_model([[1.0]])
>>> kf.set_process_noise_covariance([[0.1]])
>>> kf.set_measurement_noise_covariance([[10.0]])
>>> kf.validate()
>>> out = kf.estimate(Input(InputValue(1.0)))
>>> round(out[0].get_value(), 4), round(out[0].get_variance(), 4)
(0.0099, 0.099)

Validation Rules:
----------------
- Model setters only store and mark the filter dirty; shape checks are
  deferred to validate().
- set_control_input() is checked immediately against the configured control
  input model and never changes validity.
- estimate() refuses to run while the filter is dirty.
"""

import logging
import warnings
import numpy as np
from typing import Any, Dict, Optional, Union

from .base_estimator import Estimator
from .errors import ConfigurationError, DimensionError, NotValidatedError
from .estimation_engine import EstimationEngine, RunningState
from .model_registry import (
    ModelDimensions,
    ModelItem,
    ModelRegistry,
    ValidationState,
    as_vector
)
from ..signals.values import Input, InputValue, Output

logger = logging.getLogger(__name__)


# configure() keys: short symbol and descriptive name for every item
PARAMETER_KEYS: Dict[str, str] = {
    'A': 'state_transition',
    'H': 'observation',
    'Q': 'process_noise',
    'R': 'measurement_noise',
    'B': 'control_input_model',
    'x0': 'initial_state',
    'P0': 'initial_covariance',
    'u': 'control_input',
}

MeasurementLike = Union[Input, InputValue, np.ndarray, list, tuple]


class KalmanFilter(Estimator):
    """
    Discrete-time linear Kalman filter.

    Model:
        x_k = A x_{k-1} + B u_k + w,   w ~ N(0, Q)
        z_k = H x_k + v,               v ~ N(0, R)

    The running state starts at (x0, P0), where x0 defaults to zeros and P0
    defaults to the zero matrix. It is created at the first successful
    validation and then advanced once per estimate() call; later
    re-validations keep it unless the state dimension changes.

    Not thread-safe: one filter instance per estimation pipeline.
    """

    def __init__(self):
        self._registry = ModelRegistry()
        self._engine = EstimationEngine()
        self._control_input: Optional[np.ndarray] = None
        self._last_estimate: Optional[Output] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_state_transition_model(self, A) -> None:
        """Set A (n x n)."""
        self._registry.set(ModelItem.STATE_TRANSITION, A)

    def set_observation_model(self, H) -> None:
        """Set H (m x n)."""
        self._registry.set(ModelItem.OBSERVATION, H)

    def set_process_noise_covariance(self, Q) -> None:
        """Set Q (n x n)."""
        self._registry.set(ModelItem.PROCESS_NOISE, Q)

    def set_measurement_noise_covariance(self, R) -> None:
        """Set R (m x m)."""
        self._registry.set(ModelItem.MEASUREMENT_NOISE, R)

    def set_control_input_model(self, B) -> None:
        """Set B (n x p); None removes the control term."""
        self._registry.set(ModelItem.CONTROL_INPUT, B)

    def set_initial_state(self, x0) -> None:
        """Set x0 (length n)."""
        self._registry.set(ModelItem.INITIAL_STATE, x0)

    def set_initial_covariance(self, P0) -> None:
        """Set P0 (n x n)."""
        self._registry.set(ModelItem.INITIAL_COVARIANCE, P0)

    def set_control_input(self, u: Union[Input, np.ndarray, list, tuple, float, None]) -> None:
        """
        Set the control input used by subsequent predict steps.

        Parameters
        ----------
        u : Input, array-like or None
            Control vector of length p. Missing entries of an Input count
            as zero. None clears the control input (treated as zeros).

        Raises
        ------
        DimensionError
            If a control input model is configured and len(u) differs from
            its column count
        ValueError
            If the control vector contains NaN or infinite values
        """
        if u is None:
            self._control_input = None
            return

        if isinstance(u, Input):
            vector = np.where(u.presence_mask(), u.values(), 0.0)
        else:
            vector = as_vector(u)
        if not np.all(np.isfinite(vector)):
            raise ValueError(f"control input must be finite, got {vector}")

        B = self._registry.get(ModelItem.CONTROL_INPUT)
        if B is not None and vector.shape[0] != B.shape[1]:
            raise DimensionError('control input', B.shape[1], vector.shape[0])

        self._control_input = vector

    def configure(self, params: Dict[str, Any]) -> None:
        """
        Set several parameters from a mapping.

        Keys may be the short symbol ('A', 'H', 'Q', 'R', 'B', 'x0', 'P0',
        'u') or the descriptive name ('state_transition', 'observation',
        'process_noise', 'measurement_noise', 'control_input_model',
        'initial_state', 'initial_covariance', 'control_input').

        The control input, if given, is applied after the models so it is
        checked against the new control input model.

        Raises
        ------
        ConfigurationError
            For unknown keys
        """
        names = {v: v for v in PARAMETER_KEYS.values()}
        names.update(PARAMETER_KEYS)

        resolved: Dict[str, Any] = {}
        for key, value in params.items():
            if key not in names:
                raise ConfigurationError(str(key), ConfigurationError.UNKNOWN)
            resolved[names[key]] = value

        setters = {
            'state_transition': self.set_state_transition_model,
            'observation': self.set_observation_model,
            'process_noise': self.set_process_noise_covariance,
            'measurement_noise': self.set_measurement_noise_covariance,
            'control_input_model': self.set_control_input_model,
            'initial_state': self.set_initial_state,
            'initial_covariance': self.set_initial_covariance,
        }
        for name, setter in setters.items():
            if name in resolved:
                setter(resolved[name])

        if resolved.get('control_input') is not None:
            self.set_control_input(resolved['control_input'])

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @property
    def validation_state(self) -> ValidationState:
        return self._registry.state

    @property
    def is_valid(self) -> bool:
        return self._registry.is_valid

    @property
    def dimensions(self) -> Optional[ModelDimensions]:
        return self._registry.dimensions

    def validate(self) -> None:
        """
        Validate the configured model and prepare the running state.

        Raises
        ------
        ConfigurationError
            Naming the first missing or malformed model item
        """
        dims = self._registry.validate()
        self._reconcile_control_input(dims)

        state = self._engine.state
        if state is None or not state.advanced or state.dimension != dims.n_states:
            if state is not None and state.advanced:
                logger.warning(
                    "state dimension changed from %d to %d, running state re-initialized",
                    state.dimension, dims.n_states
                )
            x0, P0 = self._initial_conditions(dims.n_states)
            self._engine.initialize(x0, P0)
            self._last_estimate = None

    def _reconcile_control_input(self, dims: ModelDimensions) -> None:
        if self._control_input is None or not self._registry.has(ModelItem.CONTROL_INPUT):
            return
        if self._control_input.shape[0] != dims.n_controls:
            warnings.warn(
                f"control input of length {self._control_input.shape[0]} does not "
                f"match control input model ({dims.n_controls} columns); "
                f"reset to zero"
            )
            self._control_input = np.zeros(dims.n_controls)

    def _initial_conditions(self, n: int):
        x0 = self._registry.get(ModelItem.INITIAL_STATE)
        P0 = self._registry.get(ModelItem.INITIAL_COVARIANCE)
        x0 = np.zeros(n) if x0 is None else x0.copy()
        P0 = np.zeros((n, n)) if P0 is None else P0.copy()
        return x0, P0

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def estimate(self, measurement: MeasurementLike) -> Output:
        """
        Run one predict-update cycle.

        Parameters
        ----------
        measurement : Input, InputValue or array-like
            Measurement vector of length m. Array-likes use NaN for missing
            entries.

        Returns
        -------
        Output
            value = x_i and variance = P_ii for each state dimension

        Raises
        ------
        NotValidatedError
            If the filter was never validated or was reconfigured since
        DimensionError
            If the measurement length differs from m
        """
        if not self._registry.is_valid:
            raise NotValidatedError()
        dims = self._registry.dimensions

        if isinstance(measurement, InputValue):
            measurement = Input(measurement)
        elif not isinstance(measurement, Input):
            measurement = Input.from_array(measurement)

        if measurement.size() != dims.n_measurements:
            raise DimensionError('measurement', dims.n_measurements, measurement.size())

        B = self._registry.get(ModelItem.CONTROL_INPUT)
        u = None
        if B is not None:
            u = self._control_input if self._control_input is not None else np.zeros(dims.n_controls)

        state = self._engine.step(
            A=self._registry.get(ModelItem.STATE_TRANSITION),
            H=self._registry.get(ModelItem.OBSERVATION),
            Q=self._registry.get(ModelItem.PROCESS_NOISE),
            R=self._registry.get(ModelItem.MEASUREMENT_NOISE),
            z=measurement.values(),
            presence=measurement.presence_mask(),
            B=B,
            u=u
        )

        self._last_estimate = Output.from_state(state.x, state.P)
        return self._last_estimate

    def get_last_estimate(self) -> Output:
        """
        Most recent estimate.

        Before the first estimate() this is an Output of default values whose
        size is the state dimension (empty while n is unknown).
        """
        if self._last_estimate is not None:
            return self._last_estimate
        return Output.default(self._state_dimension() or 0)

    def get_state(self) -> np.ndarray:
        """Copy of the running state mean (length n)."""
        state = self._engine.state
        if state is not None:
            return state.x.copy()
        return np.zeros(self._state_dimension() or 0)

    def get_covariance(self) -> np.ndarray:
        """Copy of the running state covariance (n x n)."""
        state = self._engine.state
        if state is not None:
            return state.P.copy()
        n = self._state_dimension() or 0
        return np.zeros((n, n))

    def get_running_state(self) -> Optional[RunningState]:
        return self._engine.state

    def get_diagnostics(self) -> Dict[str, Any]:
        """
        Diagnostics of the last step.

        Returns
        -------
        Dict
            Validation state, step count, trace of P, and (after the first
            step) innovation, innovation covariance, gain and presence mask
        """
        state = self._engine.state
        diag: Dict[str, Any] = {
            'validation_state': self._registry.state.value,
            'iteration': state.steps if state is not None else 0,
            'trace_P': float(np.trace(state.P)) if state is not None else 0.0,
        }
        last = self._engine.last_diagnostics
        if last is not None:
            diag.update({
                'innovation': last.innovation.copy(),
                'innovation_covariance': last.innovation_cov.copy(),
                'kalman_gain': last.gain.copy(),
                'kalman_gain_norm': float(np.linalg.norm(last.gain)),
                'presence': last.presence.copy(),
            })
        return diag

    def reset(self) -> None:
        """
        Return the running state to the initial conditions.

        Validity is unchanged. Has no effect on the running state before the
        first successful validation.
        """
        self._last_estimate = None
        dims = self._registry.dimensions
        if dims is None:
            state = self._engine.state
            if state is None:
                return
            n = state.dimension
        else:
            n = dims.n_states
        x0, P0 = self._initial_conditions(n)
        if x0.shape != (n,) or P0.shape != (n, n):
            raise ConfigurationError(
                ModelItem.INITIAL_STATE.value, ConfigurationError.SHAPE,
                "initial conditions do not match state dimension; validate first"
            )
        self._engine.initialize(x0, P0)

    def _state_dimension(self) -> Optional[int]:
        dims = self._registry.dimensions
        if dims is not None:
            return dims.n_states
        return self._registry.known_state_dimension()
