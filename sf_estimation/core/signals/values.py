"""
Value Containers for Estimator Inputs and Outputs

This module defines the data contracts exchanged between a host pipeline and
an estimator:

- InputValue: one scalar measurement with a presence flag
- Input: ordered sequence of InputValue (measurement vector)
- OutputValue: one estimated scalar with its variance
- Output: ordered sequence of OutputValue (state estimate)

A default-constructed InputValue is *missing*. A default-constructed
OutputValue holds the "no estimate" sentinel (value = variance = 0.0).
"""

import numpy as np
from typing import Iterable, Iterator, List, Optional, Union


# "No estimate" sentinel of a default OutputValue
DEFAULT_OUTPUT_VALUE: float = 0.0
DEFAULT_OUTPUT_VARIANCE: float = 0.0


class InputValue:
    """
    Single scalar measurement that may be missing.

    Parameters
    ----------
    value : float, optional
        Measured value. If omitted (None) or not finite the value is marked
        missing.
    """

    __slots__ = ('_value', '_present')

    def __init__(self, value: Optional[float] = None):
        self._value: float = 0.0
        self._present: bool = False
        if value is not None:
            self.set_value(value)

    @property
    def present(self) -> bool:
        """True if a measurement is available."""
        return self._present

    @property
    def value(self) -> float:
        return self._value

    def get_value(self) -> float:
        """Return the stored value (0.0 when missing)."""
        return self._value

    def set_value(self, value: float) -> None:
        """Store a measurement and mark it present (NaN/inf mark it missing)."""
        value = float(value)
        if not np.isfinite(value):
            self.clear()
            return
        self._value = value
        self._present = True

    def clear(self) -> None:
        """Mark the measurement as missing."""
        self._value = 0.0
        self._present = False

    def copy(self) -> 'InputValue':
        return InputValue(self._value) if self._present else InputValue()

    def __eq__(self, other) -> bool:
        if not isinstance(other, InputValue):
            return NotImplemented
        return self._present == other._present and self._value == other._value

    def __repr__(self) -> str:
        if not self._present:
            return "InputValue(missing)"
        return f"InputValue({self._value!r})"


class Input:
    """
    Ordered measurement vector of InputValue entries.

    Index-aligned with the rows of the observation model.

    Example
    -------
    >>> z = Input(InputValue(1.0), InputValue())   # second channel missing
    >>> z.values()
    array([1., 0.])
    >>> z.presence_mask()
    array([ True, False])
    """

    def __init__(self, *values: InputValue):
        self._values: List[InputValue] = []
        for value in values:
            self.add(value)

    @classmethod
    def from_array(
        cls,
        values: Iterable[float],
        mask: Optional[Iterable[bool]] = None
    ) -> 'Input':
        """
        Build an Input from raw numbers.

        Parameters
        ----------
        values : iterable of float
            Measurement values. NaN and infinite entries are treated as
            missing.
        mask : iterable of bool, optional
            Explicit presence mask; overrides NaN detection where given.

        Returns
        -------
        Input
            New measurement vector
        """
        arr = np.atleast_1d(np.asarray(values, dtype=float))
        if mask is None:
            present = np.isfinite(arr)
        else:
            present = np.atleast_1d(np.asarray(mask, dtype=bool))
            if present.shape != arr.shape:
                raise ValueError(
                    f"mask shape {present.shape} does not match values shape {arr.shape}"
                )

        inp = cls()
        for v, p in zip(arr, present):
            inp.add(InputValue(float(v)) if p else InputValue())
        return inp

    def add(self, value: Union[InputValue, float]) -> None:
        """Append a measurement; plain numbers are wrapped as present values."""
        if not isinstance(value, InputValue):
            value = InputValue(value)
        self._values.append(value)

    def size(self) -> int:
        return len(self._values)

    def values(self) -> np.ndarray:
        """Measurement values as a float array (missing entries read 0.0)."""
        return np.array([v.get_value() for v in self._values], dtype=float)

    def presence_mask(self) -> np.ndarray:
        """Boolean array, True where a measurement is present."""
        return np.array([v.present for v in self._values], dtype=bool)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> InputValue:
        return self._values[index]

    def __iter__(self) -> Iterator[InputValue]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"Input({', '.join(repr(v) for v in self._values)})"


class OutputValue:
    """
    Single estimated scalar with its variance.

    Parameters
    ----------
    value : float
        Estimated value
    variance : float
        Estimation variance (diagonal entry of the covariance)
    """

    __slots__ = ('_value', '_variance')

    def __init__(
        self,
        value: float = DEFAULT_OUTPUT_VALUE,
        variance: float = DEFAULT_OUTPUT_VARIANCE
    ):
        self._value = float(value)
        self._variance = float(variance)

    @property
    def value(self) -> float:
        return self._value

    @property
    def variance(self) -> float:
        return self._variance

    def get_value(self) -> float:
        return self._value

    def get_variance(self) -> float:
        return self._variance

    def std(self) -> float:
        """Standard deviation, sqrt(max(variance, 0))."""
        return float(np.sqrt(max(self._variance, 0.0)))

    def __eq__(self, other) -> bool:
        if not isinstance(other, OutputValue):
            return NotImplemented
        return self._value == other._value and self._variance == other._variance

    def __repr__(self) -> str:
        return f"OutputValue(value={self._value!r}, variance={self._variance!r})"


class Output:
    """
    Ordered state estimate of OutputValue entries.

    Index-aligned with the state vector.
    """

    def __init__(self, *values: OutputValue):
        self._values: List[OutputValue] = list(values)

    @classmethod
    def default(cls, size: int) -> 'Output':
        """Output of ``size`` default-constructed (sentinel) values."""
        return cls(*[OutputValue() for _ in range(size)])

    @classmethod
    def from_state(cls, x: np.ndarray, P: np.ndarray) -> 'Output':
        """Build an Output with value x[i] and variance P[i, i]."""
        variances = np.diag(P)
        return cls(*[OutputValue(xi, pii) for xi, pii in zip(x, variances)])

    def add(self, value: OutputValue) -> None:
        self._values.append(value)

    def size(self) -> int:
        return len(self._values)

    def get_value(self, index: int = 0) -> float:
        """Value of entry ``index`` (first entry by default)."""
        return self._values[index].get_value()

    def get_variance(self, index: int = 0) -> float:
        return self._values[index].get_variance()

    def values(self) -> np.ndarray:
        return np.array([v.get_value() for v in self._values], dtype=float)

    def variances(self) -> np.ndarray:
        return np.array([v.get_variance() for v in self._values], dtype=float)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> OutputValue:
        return self._values[index]

    def __iter__(self) -> Iterator[OutputValue]:
        return iter(self._values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Output):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Output({', '.join(repr(v) for v in self._values)})"
