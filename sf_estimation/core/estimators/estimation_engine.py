"""
Linear Kalman Filter Estimation Engine

This module implements the predict/update recursion of a discrete-time linear
Kalman filter and owns the running state (x, P).

Prediction:
----------
    x̂_k⁻ = A x̂_k-1 + B u_k          (B u_k omitted without control model)
    P_k⁻ = A P_k-1 A^T + Q

Correction:
----------
    S_k  = H P_k⁻ H^T + R
    K_k  = P_k⁻ H^T S_k^-1
    ỹ_k  = mask ⊙ (z_k - H x̂_k⁻)
    x̂_k  = x̂_k⁻ + K_k ỹ_k
    P_k  = (I - K_k H) P_k⁻

Missing Measurements:
--------------------
Rows of z flagged missing contribute zero innovation, i.e. the predicted
measurement stands in for the missing value in the mean correction. The
covariance update does not depend on the measurement values and is always
applied in full, so P is reduced even when every row is missing. The masking
rule lives in zero_missing_innovation().
"""

import logging
import numpy as np
import scipy.linalg
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class RunningState:
    """Filter state carried between steps."""
    x: np.ndarray   # State mean (n,)
    P: np.ndarray   # State covariance (n x n)
    steps: int = 0  # Number of completed estimate steps

    @property
    def dimension(self) -> int:
        return self.x.shape[0]

    @property
    def advanced(self) -> bool:
        """True once at least one estimate step has run."""
        return self.steps > 0


@dataclass
class StepDiagnostics:
    """Intermediate quantities of the last update step."""
    innovation: np.ndarray     # Masked innovation ỹ (m,)
    innovation_cov: np.ndarray  # S (m x m)
    gain: np.ndarray           # K (n x m)
    presence: np.ndarray       # Presence mask (m,)
    x_pred: np.ndarray = field(default_factory=lambda: np.zeros(0))
    P_pred: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))


def zero_missing_innovation(innovation: np.ndarray, presence: np.ndarray) -> np.ndarray:
    """
    Apply the missing-measurement policy to an innovation vector.

    Missing rows get exactly zero innovation, so they do not move the mean.

    Parameters
    ----------
    innovation : np.ndarray
        Raw innovation z - H x̂⁻ (m,)
    presence : np.ndarray
        Boolean mask, True where the measurement is present (m,)

    Returns
    -------
    np.ndarray
        Innovation with missing rows zeroed
    """
    return np.where(presence, innovation, 0.0)


def predict(
    x: np.ndarray,
    P: np.ndarray,
    A: np.ndarray,
    Q: np.ndarray,
    B: Optional[np.ndarray] = None,
    u: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Time update: propagate mean and covariance one step.

    Parameters
    ----------
    x, P : np.ndarray
        Current mean (n,) and covariance (n x n)
    A, Q : np.ndarray
        State transition model and process noise covariance (n x n)
    B : np.ndarray, optional
        Control input model (n x p); no control term when None
    u : np.ndarray, optional
        Control input (p,); zero vector when None

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Predicted mean and covariance
    """
    x_pred = A @ x
    if B is not None and u is not None:
        x_pred = x_pred + B @ u
    P_pred = A @ P @ A.T + Q
    return x_pred, P_pred


def kalman_gain(P_pred: np.ndarray, H: np.ndarray, R: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute innovation covariance S and gain K = P⁻ H^T S^-1.

    Raises
    ------
    numpy.linalg.LinAlgError
        If S is singular
    """
    S = H @ P_pred @ H.T + R
    PHt = P_pred @ H.T
    # K S = P H^T  <=>  S^T K^T = (P H^T)^T
    K = scipy.linalg.solve(S.T, PHt.T).T
    return S, K


def update(
    x_pred: np.ndarray,
    P_pred: np.ndarray,
    H: np.ndarray,
    R: np.ndarray,
    z: np.ndarray,
    presence: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, StepDiagnostics]:
    """
    Measurement update with per-row presence flags.

    Parameters
    ----------
    x_pred, P_pred : np.ndarray
        Predicted mean (n,) and covariance (n x n)
    H, R : np.ndarray
        Observation model (m x n) and measurement noise covariance (m x m)
    z : np.ndarray
        Measurement values (m,); values of missing rows are ignored
    presence : np.ndarray
        Boolean mask (m,), True where z is present

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, StepDiagnostics]
        Corrected mean, corrected covariance, and diagnostics
    """
    S, K = kalman_gain(P_pred, H, R)

    innovation = zero_missing_innovation(z - H @ x_pred, presence)
    x_new = x_pred + K @ innovation

    I = np.eye(P_pred.shape[0])
    P_new = (I - K @ H) @ P_pred

    diagnostics = StepDiagnostics(
        innovation=innovation,
        innovation_cov=S,
        gain=K,
        presence=presence.copy(),
        x_pred=x_pred,
        P_pred=P_pred
    )
    return x_new, P_new, diagnostics


class EstimationEngine:
    """
    Stateful predict/update runner for a linear Kalman filter.

    The engine holds the RunningState and advances it by exactly one
    predict + update cycle per step() call. Model matrices are passed in per
    call; the engine performs no validation of its own.
    """

    def __init__(self):
        self._state: Optional[RunningState] = None
        self.last_diagnostics: Optional[StepDiagnostics] = None

    @property
    def state(self) -> Optional[RunningState]:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state is not None

    def initialize(self, x0: np.ndarray, P0: np.ndarray) -> None:
        """
        (Re)create the running state from an initial mean and covariance.

        Parameters
        ----------
        x0 : np.ndarray
            Initial mean (n,)
        P0 : np.ndarray
            Initial covariance (n x n)
        """
        self._state = RunningState(
            x=np.array(x0, dtype=float),
            P=np.array(P0, dtype=float)
        )
        self.last_diagnostics = None
        logger.debug("running state initialized, n=%d", self._state.dimension)

    def step(
        self,
        A: np.ndarray,
        H: np.ndarray,
        Q: np.ndarray,
        R: np.ndarray,
        z: np.ndarray,
        presence: np.ndarray,
        B: Optional[np.ndarray] = None,
        u: Optional[np.ndarray] = None
    ) -> RunningState:
        """
        Execute one predict-update cycle and overwrite the running state.

        Returns
        -------
        RunningState
            The updated running state
        """
        if self._state is None:
            raise RuntimeError("estimation engine not initialized")

        x_pred, P_pred = predict(self._state.x, self._state.P, A, Q, B, u)
        x_new, P_new, diagnostics = update(x_pred, P_pred, H, R, z, presence)

        self._state = RunningState(x=x_new, P=P_new, steps=self._state.steps + 1)
        self.last_diagnostics = diagnostics

        logger.debug(
            "step %d: %d/%d measurements present, trace(P)=%.6g",
            self._state.steps, int(np.count_nonzero(presence)),
            presence.shape[0], float(np.trace(P_new))
        )
        return self._state
