"""
Unit Tests for Filter Configuration Loading
"""

import json
from pathlib import Path

import numpy as np
import pytest

from sf_estimation.core.config.filter_config import KalmanFilterConfig, build_kalman_filter
from sf_estimation.core.estimators.errors import ConfigurationError, DimensionError
from sf_estimation.core.estimators.kalman_filter import KalmanFilter
from sf_estimation.core.signals.values import Input, InputValue

CONFIG_DIR = Path(__file__).resolve().parents[2] / 'config'


@pytest.fixture
def scalar_dict():
    return {
        'name': 'scalar',
        'state_transition': [[1.0]],
        'observation': [[1.0]],
        'process_noise': [[0.1]],
        'measurement_noise': [[10.0]],
    }


class TestKalmanFilterConfig:
    """Test dict/JSON configuration."""

    def test_from_dict(self, scalar_dict):
        config = KalmanFilterConfig.from_dict(scalar_dict)
        assert config.name == 'scalar'
        assert isinstance(config.state_transition, np.ndarray)
        assert config.control_input_model is None
        assert config.state_names == []

    def test_missing_required(self, scalar_dict):
        del scalar_dict['observation']
        with pytest.raises(ConfigurationError) as excinfo:
            KalmanFilterConfig.from_dict(scalar_dict)
        assert excinfo.value.reason == ConfigurationError.MISSING

    def test_unknown_key(self, scalar_dict):
        scalar_dict['transition'] = [[1.0]]
        with pytest.raises(ConfigurationError) as excinfo:
            KalmanFilterConfig.from_dict(scalar_dict)
        assert excinfo.value.reason == ConfigurationError.UNKNOWN

    def test_json_round_trip(self, scalar_dict, tmp_path):
        config = KalmanFilterConfig.from_dict(scalar_dict)
        path = config.to_json(tmp_path / 'scalar.json')

        loaded = KalmanFilterConfig.from_json(path)
        assert loaded.name == config.name
        np.testing.assert_array_equal(loaded.measurement_noise, config.measurement_noise)
        assert loaded.initial_state is None

    def test_to_dict_is_json_serializable(self, scalar_dict):
        config = KalmanFilterConfig.from_dict(scalar_dict)
        text = json.dumps(config.to_dict())
        assert '"process_noise": [[0.1]]' in text

    def test_estimator_params_skips_unset(self, scalar_dict):
        params = KalmanFilterConfig.from_dict(scalar_dict).estimator_params()
        assert set(params) == {'A', 'H', 'Q', 'R'}

    @pytest.mark.parametrize("filename", ['scalar.json', 'constant_velocity.json'])
    def test_shipped_configs_validate(self, filename):
        config = KalmanFilterConfig.from_json(CONFIG_DIR / filename)
        kf = build_kalman_filter(config)
        assert kf.is_valid
        assert len(config.state_names) == kf.dimensions.n_states


class TestBuildKalmanFilter:
    """Test the filter factory."""

    def test_builds_validated_filter(self, scalar_dict):
        kf = build_kalman_filter(scalar_dict)
        assert isinstance(kf, KalmanFilter)
        out = kf.estimate(Input(InputValue(1.0)))
        assert out[0].get_value() == pytest.approx(0.0099, abs=1e-4)

    def test_without_validation(self, scalar_dict):
        kf = build_kalman_filter(scalar_dict, validate=False)
        assert not kf.is_valid

    def test_inconsistent_model(self, scalar_dict):
        scalar_dict['measurement_noise'] = [[1.0, 0.0], [0.0, 1.0]]
        with pytest.raises(ConfigurationError) as excinfo:
            build_kalman_filter(scalar_dict)
        assert excinfo.value.item == 'measurement noise covariance'

    def test_control_input_mismatch(self, scalar_dict):
        scalar_dict['control_input_model'] = [[1.0]]
        scalar_dict['control_input'] = [1.0, 2.0]
        with pytest.raises(DimensionError):
            build_kalman_filter(scalar_dict)

    def test_initial_state_applied(self, scalar_dict):
        scalar_dict['initial_state'] = [3.0]
        scalar_dict['initial_covariance'] = [[1.0]]
        kf = build_kalman_filter(scalar_dict)
        np.testing.assert_array_equal(kf.get_state(), [3.0])
        np.testing.assert_array_equal(kf.get_covariance(), [[1.0]])


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
