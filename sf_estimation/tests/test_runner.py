"""
End-to-End Tests for the Command-Line Runner
"""

import json
from pathlib import Path

import pytest

from sf_estimation.runner import build_parser, main
from sf_estimation.core.simulation.data_logger import EstimationLogger

ROOT = Path(__file__).resolve().parents[2]
CONFIG_DIR = ROOT / 'config'
DATA_DIR = ROOT / 'data'


class TestRunnerCli:
    """Test the runner entry point on the shipped examples."""

    def test_parser_defaults(self):
        args = build_parser().parse_args(['--config', 'a.json', '--measurements', 'b.csv'])
        assert args.log_level == 'INFO'
        assert args.sigma == 2.0
        assert not args.plot

    def test_scalar_run(self, tmp_path, capsys):
        exit_code = main([
            '--config', str(CONFIG_DIR / 'scalar.json'),
            '--measurements', str(DATA_DIR / 'scalar_measurements.csv'),
            '--output-dir', str(tmp_path),
            '--log-level', 'WARNING',
        ])

        assert exit_code == 0
        assert 'ESTIMATION SUMMARY (scalar)' in capsys.readouterr().out

        json_files = list(tmp_path.glob('scalar_*.json'))
        assert len(json_files) == 1
        assert EstimationLogger.verify_checksum(json_files[0])

        data = EstimationLogger.load_json(json_files[0])
        run = data['runs']['run']
        assert run['summary']['n_steps'] == 6
        assert run['summary']['n_missing'] == 2
        assert run['estimates'][0][0] == pytest.approx(0.0099, abs=1e-4)
        assert run['estimates'][2][0] == pytest.approx(0.1073, abs=1e-4)
        assert data['metadata']['filter_config']['name'] == 'scalar'

    def test_control_run_with_plots(self, tmp_path):
        exit_code = main([
            '--config', str(CONFIG_DIR / 'constant_velocity.json'),
            '--measurements', str(DATA_DIR / 'velocity_measurements.csv'),
            '--output-dir', str(tmp_path),
            '--plot',
            '--log-level', 'WARNING',
        ])

        assert exit_code == 0
        assert (tmp_path / 'constant_velocity_estimates.png').exists()
        assert (tmp_path / 'constant_velocity_variance.png').exists()

    def test_no_save(self, tmp_path):
        exit_code = main([
            '--config', str(CONFIG_DIR / 'scalar.json'),
            '--measurements', str(DATA_DIR / 'scalar_measurements.csv'),
            '--output-dir', str(tmp_path / 'out'),
            '--no-save',
            '--log-level', 'WARNING',
        ])
        assert exit_code == 0
        assert not (tmp_path / 'out').exists()

    def test_invalid_config(self, tmp_path):
        config = tmp_path / 'broken.json'
        config.write_text(json.dumps({
            'state_transition': [[1.0]],
            'observation': [[1.0, 0.0]],
            'process_noise': [[0.1]],
            'measurement_noise': [[10.0]],
        }))

        exit_code = main([
            '--config', str(config),
            '--measurements', str(DATA_DIR / 'scalar_measurements.csv'),
            '--no-save',
            '--log-level', 'ERROR',
        ])
        assert exit_code == 1

    def test_missing_file(self, tmp_path):
        exit_code = main([
            '--config', str(tmp_path / 'absent.json'),
            '--measurements', str(DATA_DIR / 'scalar_measurements.csv'),
            '--no-save',
            '--log-level', 'ERROR',
        ])
        assert exit_code == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
