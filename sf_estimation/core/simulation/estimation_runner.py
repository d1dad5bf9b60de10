"""
Estimation Runner

Drives an Estimator over a recorded sequence of measurements (and optional
control inputs) and collects the resulting telemetry:

    for k in 0..T-1:
        estimator.set_control_input(u_k)      (if controls given)
        out_k = estimator.estimate(z_k)
        record z_k, presence_k, x̂_k, diag(P_k)

Measurement Sources:
-------------------
- numpy array (T x m), NaN = missing
- pandas DataFrame (T rows, one column per channel), NaN = missing
- sequence of Input objects
- CSV file via load_measurements_csv(): empty cell or NaN = missing,
  columns 'u', 'u0', 'u_1', ... are control inputs, an optional 'step' or
  'time' column is used as the index
"""

import logging
import re
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..estimators.base_estimator import Estimator
from ..signals.values import Input

logger = logging.getLogger(__name__)

CONTROL_COLUMN_PATTERN = re.compile(r'^u(_?\d+)?$')
INDEX_COLUMNS = ('step', 'time')

MeasurementSource = Union[np.ndarray, pd.DataFrame, Sequence[Input]]


@dataclass
class EstimationResults:
    """Telemetry of one estimation run."""
    estimates: np.ndarray     # (T x n) state means
    variances: np.ndarray     # (T x n) diagonal of P
    measurements: np.ndarray  # (T x m) measurement values (NaN where missing)
    presence: np.ndarray      # (T x m) presence mask
    index: np.ndarray         # (T,) step index or time stamps
    state_names: List[str] = field(default_factory=list)
    measurement_names: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_steps(self) -> int:
        return self.estimates.shape[0]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Flatten telemetry into a DataFrame.

        Columns: z_<channel>, present_<channel>, x_<state>, var_<state>.
        """
        columns: Dict[str, np.ndarray] = {}
        for j, name in enumerate(self.measurement_names):
            columns[f'z_{name}'] = self.measurements[:, j]
            columns[f'present_{name}'] = self.presence[:, j]
        for i, name in enumerate(self.state_names):
            columns[f'x_{name}'] = self.estimates[:, i]
            columns[f'var_{name}'] = self.variances[:, i]
        df = pd.DataFrame(columns, index=pd.Index(self.index, name='step'))
        return df

    def summary(self) -> Dict[str, Any]:
        """Key figures of the run."""
        if self.n_steps == 0:
            return {'n_steps': 0, 'n_missing': 0}
        return {
            'n_steps': self.n_steps,
            'n_missing': int(np.count_nonzero(~self.presence)),
            'final_state': dict(zip(self.state_names, self.estimates[-1].tolist())),
            'final_variance': dict(zip(self.state_names, self.variances[-1].tolist())),
            'mean_variance': dict(zip(self.state_names, self.variances.mean(axis=0).tolist())),
        }


def load_measurements_csv(
    filepath: Union[str, Path]
) -> Tuple[pd.DataFrame, Optional[pd.DataFrame]]:
    """
    Read measurements (and optional control inputs) from a CSV file.

    Parameters
    ----------
    filepath : str or Path
        CSV file with a header row

    Returns
    -------
    Tuple[pd.DataFrame, Optional[pd.DataFrame]]
        Measurement frame and control frame (None without control columns)
    """
    df = pd.read_csv(filepath)
    for col in INDEX_COLUMNS:
        if col in df.columns:
            df = df.set_index(col)
            break

    control_cols = [c for c in df.columns if CONTROL_COLUMN_PATTERN.match(str(c))]
    measurement_cols = [c for c in df.columns if c not in control_cols]
    if not measurement_cols:
        raise ValueError(f"No measurement columns found in {filepath}")

    measurements = df[measurement_cols].astype(float)
    controls = df[control_cols].astype(float) if control_cols else None
    return measurements, controls


def _as_inputs(source: MeasurementSource) -> Tuple[List[Input], Optional[List[str]], Optional[np.ndarray]]:
    """Convert a measurement source to Inputs, channel names, and index."""
    if isinstance(source, pd.DataFrame):
        inputs = [Input.from_array(row) for row in source.to_numpy(dtype=float)]
        return inputs, [str(c) for c in source.columns], source.index.to_numpy()
    if isinstance(source, np.ndarray):
        arr = source.reshape(-1, 1) if source.ndim == 1 else source
        return [Input.from_array(row) for row in arr], None, None
    inputs = [z if isinstance(z, Input) else Input.from_array(z) for z in source]
    return inputs, None, None


class EstimationRunner:
    """
    Batch driver for an Estimator.

    Parameters
    ----------
    estimator : Estimator
        Configured estimator; validated by run() if it is not yet valid
    state_names : List[str], optional
        Labels for the state dimensions (default x0, x1, ...)
    measurement_names : List[str], optional
        Labels for the measurement channels (default from DataFrame columns
        or z0, z1, ...)
    """

    def __init__(
        self,
        estimator: Estimator,
        state_names: Optional[List[str]] = None,
        measurement_names: Optional[List[str]] = None
    ):
        self.estimator = estimator
        self.state_names = list(state_names) if state_names else []
        self.measurement_names = list(measurement_names) if measurement_names else []

    def run(
        self,
        measurements: MeasurementSource,
        controls: Optional[Union[np.ndarray, pd.DataFrame]] = None
    ) -> EstimationResults:
        """
        Feed every measurement step to the estimator.

        Parameters
        ----------
        measurements : array, DataFrame or sequence of Input
            One entry per step
        controls : array or DataFrame, optional
            Control input per step (T x p); requires an estimator with
            set_control_input()

        Returns
        -------
        EstimationResults
            Collected telemetry
        """
        inputs, columns, index = _as_inputs(measurements)
        n_steps = len(inputs)

        control_rows = None
        if controls is not None:
            control_rows = np.asarray(controls, dtype=float)
            if control_rows.ndim == 1:
                control_rows = control_rows.reshape(-1, 1)
            if control_rows.shape[0] != n_steps:
                raise ValueError(
                    f"controls have {control_rows.shape[0]} rows, measurements have {n_steps}"
                )
            if not hasattr(self.estimator, 'set_control_input'):
                raise TypeError(f"{type(self.estimator).__name__} does not accept control inputs")

        if not getattr(self.estimator, 'is_valid', True):
            self.estimator.validate()

        estimates: List[np.ndarray] = []
        variances: List[np.ndarray] = []
        for k, z in enumerate(inputs):
            if control_rows is not None:
                self.estimator.set_control_input(control_rows[k])
            out = self.estimator.estimate(z)
            estimates.append(out.values())
            variances.append(out.variances())

        n = len(estimates[0]) if estimates else len(self.estimator.get_state())
        m = inputs[0].size() if inputs else 0
        values = np.array([z.values() for z in inputs], dtype=float).reshape(n_steps, m)
        presence = np.array([z.presence_mask() for z in inputs], dtype=bool).reshape(n_steps, m)

        logger.info(
            "estimation run complete: %d steps, %d missing measurements",
            n_steps, int(np.count_nonzero(~presence))
        )

        return EstimationResults(
            estimates=np.array(estimates, dtype=float).reshape(n_steps, n),
            variances=np.array(variances, dtype=float).reshape(n_steps, n),
            measurements=np.where(presence, values, np.nan),
            presence=presence,
            index=index if index is not None else np.arange(n_steps),
            state_names=self._names(self.state_names, n, 'x'),
            measurement_names=self._names(self.measurement_names or columns, m, 'z'),
            metadata={'estimator': type(self.estimator).__name__},
        )

    @staticmethod
    def _names(names: Optional[List[str]], count: int, prefix: str) -> List[str]:
        if names and len(names) == count:
            return list(names)
        return [f'{prefix}{i}' for i in range(count)]
