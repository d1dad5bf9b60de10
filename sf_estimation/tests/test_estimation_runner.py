"""
Integration Tests for the Batch Runner and Telemetry Logger
"""

import json

import numpy as np
import pandas as pd
import pytest

from sf_estimation.core.config.filter_config import build_kalman_filter
from sf_estimation.core.simulation.data_logger import EstimationLogger, LoggerConfig
from sf_estimation.core.simulation.estimation_runner import (
    EstimationResults,
    EstimationRunner,
    load_measurements_csv
)
from sf_estimation.core.signals.values import Input, InputValue

SCALAR_CONFIG = {
    'name': 'scalar',
    'state_transition': [[1.0]],
    'observation': [[1.0]],
    'process_noise': [[0.1]],
    'measurement_noise': [[10.0]],
}

VELOCITY_CONFIG = {
    'name': 'constant_velocity',
    'state_transition': [[1.0, 0.1], [0.0, 1.0]],
    'observation': [[0.0, 1.0]],
    'process_noise': [[0.1, 0.0], [0.0, 0.1]],
    'measurement_noise': [[10.0]],
    'control_input_model': [[0.0], [1.0]],
}


@pytest.fixture
def scalar_results():
    runner = EstimationRunner(build_kalman_filter(SCALAR_CONFIG), ['level'], ['sensor'])
    return runner.run(np.array([1.0, 5.0, np.nan]))


class TestEstimationRunner:
    """Test driving an estimator over a measurement sequence."""

    def test_numpy_sequence(self, scalar_results):
        results = scalar_results
        assert results.n_steps == 3
        np.testing.assert_allclose(results.estimates[:, 0], [0.0099, 0.1073, 0.1073], atol=1e-4)
        np.testing.assert_allclose(results.variances[:, 0], [0.0990, 0.1951, 0.2866], atol=1e-4)
        np.testing.assert_array_equal(results.presence[:, 0], [True, True, False])
        assert np.isnan(results.measurements[2, 0])

    def test_input_sequence(self):
        runner = EstimationRunner(build_kalman_filter(SCALAR_CONFIG))
        results = runner.run([Input(InputValue(1.0)), Input(InputValue())])
        assert results.state_names == ['x0']
        assert results.measurement_names == ['z0']
        assert results.presence.shape == (2, 1)

    def test_dataframe_names_and_index(self):
        df = pd.DataFrame({'sensor_a': [1.0, np.nan]}, index=[10, 20])
        runner = EstimationRunner(build_kalman_filter(SCALAR_CONFIG))
        results = runner.run(df)
        assert results.measurement_names == ['sensor_a']
        np.testing.assert_array_equal(results.index, [10, 20])

    def test_validates_dirty_estimator(self):
        kf = build_kalman_filter(SCALAR_CONFIG, validate=False)
        EstimationRunner(kf).run(np.array([1.0]))
        assert kf.is_valid

    def test_controls(self):
        kf = build_kalman_filter(VELOCITY_CONFIG)
        results = EstimationRunner(kf).run(
            np.array([np.nan, np.nan]), controls=np.array([[1.0], [0.0]])
        )
        # u drives velocity directly; no measurement corrections
        np.testing.assert_allclose(results.estimates[:, 1], [1.0, 1.0])
        np.testing.assert_allclose(results.estimates[:, 0], [0.0, 0.1])

    def test_control_row_mismatch(self):
        kf = build_kalman_filter(VELOCITY_CONFIG)
        with pytest.raises(ValueError):
            EstimationRunner(kf).run(np.array([1.0, 2.0]), controls=np.zeros((3, 1)))

    def test_dataframe_and_summary(self, scalar_results):
        df = scalar_results.to_dataframe()
        assert list(df.columns) == ['z_sensor', 'present_sensor', 'x_level', 'var_level']
        assert df.index.name == 'step'

        summary = scalar_results.summary()
        assert summary['n_steps'] == 3
        assert summary['n_missing'] == 1
        assert summary['final_state']['level'] == pytest.approx(0.1073, abs=1e-4)


class TestLoadMeasurementsCsv:
    """Test CSV measurement loading."""

    def test_measurements_only(self, tmp_path):
        path = tmp_path / 'z.csv'
        path.write_text("step,a,b\n0,1.0,\n1,NaN,2.0\n")

        measurements, controls = load_measurements_csv(path)
        assert controls is None
        assert list(measurements.columns) == ['a', 'b']
        assert measurements.index.name == 'step'
        assert measurements.isna().to_numpy().tolist() == [[False, True], [True, False]]

    def test_control_columns(self, tmp_path):
        path = tmp_path / 'zu.csv'
        path.write_text("time,z,u_0,u1\n0.0,1.0,0.5,0.0\n0.1,2.0,0.0,1.0\n")

        measurements, controls = load_measurements_csv(path)
        assert list(measurements.columns) == ['z']
        assert list(controls.columns) == ['u_0', 'u1']

    def test_no_measurement_columns(self, tmp_path):
        path = tmp_path / 'u.csv'
        path.write_text("u\n1.0\n")
        with pytest.raises(ValueError):
            load_measurements_csv(path)


class TestEstimationLogger:
    """Test telemetry persistence."""

    def _logger(self, tmp_path, **kwargs):
        return EstimationLogger(LoggerConfig(
            output_dir=tmp_path, base_filename='test', timestamp_filenames=False, **kwargs
        ))

    def test_save_json_and_csv(self, tmp_path, scalar_results):
        data_logger = self._logger(tmp_path)
        data_logger.add_result('run', scalar_results)
        data_logger.set_filter_config(SCALAR_CONFIG)
        data_logger.add_metadata('source', 'unit-test')

        saved = data_logger.save()

        assert saved['json'] == tmp_path / 'test.json'
        assert saved['csv'] == [tmp_path / 'test_run.csv']
        data = EstimationLogger.load_json(saved['json'])
        assert data['metadata']['custom'] == {'source': 'unit-test'}
        assert data['metadata']['filter_config']['name'] == 'scalar'
        assert data['runs']['run']['measurements'][2] == [None]
        assert data['runs']['run']['presence'] == [[True], [True], [False]]

        frame = pd.read_csv(saved['csv'][0], index_col='step')
        assert len(frame) == 3

    def test_checksum(self, tmp_path, scalar_results):
        data_logger = self._logger(tmp_path, save_csv=False)
        data_logger.add_result('run', scalar_results)
        path = data_logger.save()['json']

        assert EstimationLogger.verify_checksum(path)

        data = json.loads(path.read_text())
        data['runs']['run']['estimates'][0][0] += 1.0
        path.write_text(json.dumps(data))
        assert not EstimationLogger.verify_checksum(path)

    def test_suffix(self, tmp_path, scalar_results):
        data_logger = self._logger(tmp_path, save_csv=False)
        data_logger.add_result('run', scalar_results)
        assert data_logger.save(suffix='v2')['json'].name == 'test_v2.json'


def test_results_defaults():
    results = EstimationResults(
        estimates=np.zeros((0, 1)), variances=np.zeros((0, 1)),
        measurements=np.zeros((0, 1)), presence=np.zeros((0, 1), dtype=bool),
        index=np.arange(0)
    )
    assert results.summary() == {'n_steps': 0, 'n_missing': 0}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
