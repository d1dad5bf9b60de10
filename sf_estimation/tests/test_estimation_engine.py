"""
Unit Tests for the Kalman Predict/Update Recursion
"""

import numpy as np
import pytest

from sf_estimation.core.estimators.estimation_engine import (
    EstimationEngine,
    kalman_gain,
    predict,
    update,
    zero_missing_innovation
)


class TestPredict:
    """Test the time update."""

    def test_without_control(self):
        A = np.array([[1.0, 0.1], [0.0, 1.0]])
        Q = np.eye(2) * 0.1
        x_pred, P_pred = predict(np.array([1.0, 2.0]), np.eye(2), A, Q)

        np.testing.assert_allclose(x_pred, [1.2, 2.0])
        np.testing.assert_allclose(P_pred, A @ A.T + Q)

    def test_with_control(self):
        A = np.eye(2)
        B = np.array([[0.0], [1.0]])
        x_pred, _ = predict(np.zeros(2), np.zeros((2, 2)), A, np.zeros((2, 2)), B, np.array([0.5]))
        np.testing.assert_allclose(x_pred, [0.0, 0.5])


class TestUpdate:
    """Test the measurement update."""

    def test_gain(self):
        S, K = kalman_gain(np.array([[0.1]]), np.array([[1.0]]), np.array([[10.0]]))
        assert S[0, 0] == pytest.approx(10.1)
        assert K[0, 0] == pytest.approx(0.1 / 10.1)

    def test_singular_innovation_covariance(self):
        with pytest.raises(np.linalg.LinAlgError):
            kalman_gain(np.zeros((1, 1)), np.array([[1.0]]), np.zeros((1, 1)))

    def test_zero_missing_innovation(self):
        result = zero_missing_innovation(np.array([1.0, 2.0, 3.0]), np.array([True, False, True]))
        np.testing.assert_array_equal(result, [1.0, 0.0, 3.0])

    def test_all_missing_keeps_mean(self):
        """No present rows: mean unchanged, covariance still reduced."""
        x_pred = np.array([0.3])
        P_pred = np.array([[0.2]])
        x_new, P_new, diag = update(
            x_pred, P_pred, np.eye(1), np.array([[1.0]]),
            z=np.array([99.0]), presence=np.array([False])
        )

        np.testing.assert_array_equal(x_new, x_pred)
        K = 0.2 / 1.2
        assert P_new[0, 0] == pytest.approx((1 - K) * 0.2)
        np.testing.assert_array_equal(diag.innovation, [0.0])

    def test_missing_value_is_ignored(self):
        """The stored value of a missing row has no effect."""
        args = (np.zeros(2), np.eye(2), np.eye(2), np.eye(2))
        presence = np.array([True, False])
        x_a, P_a, _ = update(*args, z=np.array([1.0, 0.0]), presence=presence)
        x_b, P_b, _ = update(*args, z=np.array([1.0, 1e6]), presence=presence)

        np.testing.assert_array_equal(x_a, x_b)
        np.testing.assert_array_equal(P_a, P_b)


class TestEngine:
    """Test the stateful runner."""

    def test_step_requires_initialize(self):
        engine = EstimationEngine()
        with pytest.raises(RuntimeError):
            engine.step(np.eye(1), np.eye(1), np.eye(1), np.eye(1),
                        np.zeros(1), np.array([True]))

    def test_step_advances_state(self):
        engine = EstimationEngine()
        engine.initialize(np.zeros(1), np.zeros((1, 1)))
        assert engine.initialized
        assert not engine.state.advanced

        state = engine.step(
            np.eye(1), np.eye(1), np.array([[0.1]]), np.array([[10.0]]),
            np.array([1.0]), np.array([True])
        )

        assert state.steps == 1
        assert state.advanced
        assert state.x[0] == pytest.approx(0.0099, abs=1e-4)
        assert engine.last_diagnostics is not None

    def test_initialize_copies_inputs(self):
        x0 = np.array([1.0])
        engine = EstimationEngine()
        engine.initialize(x0, np.eye(1))
        x0[0] = 5.0
        assert engine.state.x[0] == 1.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
