"""
Model Registry and Validator for Linear State Estimators

The registry owns the configured matrices/vectors of a linear state-space
model and the VALID/DIRTY state machine that gates estimation:

    x_k = A x_{k-1} + B u_k + w,   w ~ N(0, Q)
    z_k = H x_k + v,               v ~ N(0, R)

State Machine:
-------------
            set(item, value)              validate() succeeds
    VALID  ------------------>  DIRTY  ----------------------->  VALID
                                  ^   |
                                  |   | validate() fails
                                  +---+  (ConfigurationError)

Every mutation goes through ModelRegistry._store(), which is the only place
that clears validity. Re-setting an identical value still marks the registry
dirty.

Validation Order:
----------------
1. State transition model A present and square (n x n)
2. Observation model H present with n columns (m x n)
3. Process noise covariance Q present, n x n
4. Measurement noise covariance R present, square, m x m
5. Control input model B (optional) has n rows (n x p)
6. Initial state x0 (optional) has length n
7. Initial covariance P0 (optional) is n x n
"""

import logging
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .errors import ConfigurationError, shape_str

logger = logging.getLogger(__name__)


class ValidationState(Enum):
    """Validity of the registry contents."""
    DIRTY = "dirty"    # Never validated, or mutated since last validation
    VALID = "valid"    # Validated, no mutation since


class ModelItem(Enum):
    """Configurable items of the linear state-space model."""
    STATE_TRANSITION = "state transition model"
    OBSERVATION = "observation model"
    PROCESS_NOISE = "process noise covariance"
    MEASUREMENT_NOISE = "measurement noise covariance"
    CONTROL_INPUT = "control input model"
    INITIAL_STATE = "initial state"
    INITIAL_COVARIANCE = "initial covariance"


REQUIRED_ITEMS = (
    ModelItem.STATE_TRANSITION,
    ModelItem.OBSERVATION,
    ModelItem.PROCESS_NOISE,
    ModelItem.MEASUREMENT_NOISE,
)

VECTOR_ITEMS = (ModelItem.INITIAL_STATE,)


@dataclass(frozen=True)
class ModelDimensions:
    """Dimensions fixed by a successful validation."""
    n_states: int        # n
    n_measurements: int  # m
    n_controls: int      # p (0 when no control input model)


def as_matrix(value) -> np.ndarray:
    """Convert array-like to a 2-D float array (scalars become 1 x 1)."""
    return np.array(np.atleast_2d(np.asarray(value, dtype=float)))


def as_vector(value) -> np.ndarray:
    """Convert array-like to a 1-D float array; column/row vectors are flattened."""
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 2 and 1 in arr.shape:
        arr = arr.reshape(-1)
    return np.array(np.atleast_1d(arr))


class ModelRegistry:
    """
    Storage for the model matrices plus the VALID/DIRTY state machine.

    Setters never check shapes; all consistency checks are deferred to
    validate().
    """

    def __init__(self):
        self._models: Dict[ModelItem, Optional[np.ndarray]] = {
            item: None for item in ModelItem
        }
        self._state: ValidationState = ValidationState.DIRTY
        self._dimensions: Optional[ModelDimensions] = None

    @property
    def state(self) -> ValidationState:
        return self._state

    @property
    def is_valid(self) -> bool:
        return self._state is ValidationState.VALID

    @property
    def dimensions(self) -> Optional[ModelDimensions]:
        """Dimensions from the last successful validation (None while dirty)."""
        return self._dimensions

    def set(self, item: ModelItem, value) -> None:
        """
        Store a model item and mark the registry dirty.

        Parameters
        ----------
        item : ModelItem
            Item to set
        value : array-like or None
            New value; None removes an optional item
        """
        if value is None:
            stored = None
        elif item in VECTOR_ITEMS:
            stored = as_vector(value)
        else:
            stored = as_matrix(value)
        self._store(item, stored)

    def get(self, item: ModelItem) -> Optional[np.ndarray]:
        return self._models[item]

    def has(self, item: ModelItem) -> bool:
        return self._models[item] is not None

    def _store(self, item: ModelItem, value: Optional[np.ndarray]) -> None:
        self._models[item] = value
        if self._state is ValidationState.VALID:
            logger.debug("%s changed, estimator marked dirty", item.value)
        self._state = ValidationState.DIRTY
        self._dimensions = None

    def known_state_dimension(self) -> Optional[int]:
        """
        State dimension n as far as it is known.

        n is known once a square state transition model is stored, even
        before validation.
        """
        A = self._models[ModelItem.STATE_TRANSITION]
        if A is None or A.shape[0] != A.shape[1]:
            return None
        return A.shape[0]

    def validate(self) -> ModelDimensions:
        """
        Run all consistency checks and mark the registry valid.

        Returns
        -------
        ModelDimensions
            Dimensions (n, m, p) fixed for subsequent estimation

        Raises
        ------
        ConfigurationError
            For the first missing or malformed item
        """
        if self._state is ValidationState.VALID:
            return self._dimensions

        dims = check_models(self._models)
        self._dimensions = dims
        self._state = ValidationState.VALID
        logger.debug(
            "model validated: n=%d, m=%d, p=%d",
            dims.n_states, dims.n_measurements, dims.n_controls
        )
        return dims


def _require(models: Dict[ModelItem, Optional[np.ndarray]], item: ModelItem) -> np.ndarray:
    value = models[item]
    if value is None:
        raise ConfigurationError(item.value, ConfigurationError.MISSING)
    return value


def check_models(models: Dict[ModelItem, Optional[np.ndarray]]) -> ModelDimensions:
    """
    Check presence and dimensional consistency of a model set.

    Checks run in a fixed order and stop at the first failure.

    Parameters
    ----------
    models : dict
        Mapping of ModelItem to stored array (None when not set)

    Returns
    -------
    ModelDimensions
        Consistent dimensions (n, m, p)

    Raises
    ------
    ConfigurationError
        Identifying exactly one missing or malformed item
    """
    A = _require(models, ModelItem.STATE_TRANSITION)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ConfigurationError(
            ModelItem.STATE_TRANSITION.value, ConfigurationError.SHAPE,
            f"expected square matrix, got {shape_str(A.shape)}"
        )
    n = A.shape[0]

    H = _require(models, ModelItem.OBSERVATION)
    if H.ndim != 2 or H.shape[1] != n:
        raise ConfigurationError(
            ModelItem.OBSERVATION.value, ConfigurationError.SHAPE,
            f"expected m x {n}, got {shape_str(H.shape)}"
        )
    m = H.shape[0]

    Q = _require(models, ModelItem.PROCESS_NOISE)
    if Q.shape != (n, n):
        raise ConfigurationError(
            ModelItem.PROCESS_NOISE.value, ConfigurationError.SHAPE,
            f"expected {n} x {n}, got {shape_str(Q.shape)}"
        )

    R = _require(models, ModelItem.MEASUREMENT_NOISE)
    if R.shape != (m, m):
        raise ConfigurationError(
            ModelItem.MEASUREMENT_NOISE.value, ConfigurationError.SHAPE,
            f"expected {m} x {m}, got {shape_str(R.shape)}"
        )

    p = 0
    B = models[ModelItem.CONTROL_INPUT]
    if B is not None:
        if B.ndim != 2 or B.shape[0] != n:
            raise ConfigurationError(
                ModelItem.CONTROL_INPUT.value, ConfigurationError.SHAPE,
                f"expected {n} x p, got {shape_str(B.shape)}"
            )
        p = B.shape[1]

    x0 = models[ModelItem.INITIAL_STATE]
    if x0 is not None and x0.shape != (n,):
        raise ConfigurationError(
            ModelItem.INITIAL_STATE.value, ConfigurationError.SHAPE,
            f"expected length {n}, got {shape_str(x0.shape)}"
        )

    P0 = models[ModelItem.INITIAL_COVARIANCE]
    if P0 is not None and P0.shape != (n, n):
        raise ConfigurationError(
            ModelItem.INITIAL_COVARIANCE.value, ConfigurationError.SHAPE,
            f"expected {n} x {n}, got {shape_str(P0.shape)}"
        )

    return ModelDimensions(n_states=n, n_measurements=m, n_controls=p)
