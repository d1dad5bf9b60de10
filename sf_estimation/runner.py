#!/usr/bin/env python3
"""
Command-line runner for SF Estimation.

Loads a Kalman filter configuration (JSON) and a measurement sequence (CSV),
runs the filter over every step, prints a summary and saves the telemetry.

Usage:
    python -m sf_estimation.runner --config config/constant_velocity.json \
        --measurements data/velocity.csv --output-dir results --plot
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sf_estimation.core.config.filter_config import KalmanFilterConfig, build_kalman_filter
from sf_estimation.core.estimators.errors import EstimatorError
from sf_estimation.core.simulation.data_logger import EstimationLogger, LoggerConfig
from sf_estimation.core.simulation.estimation_runner import EstimationRunner, load_measurements_csv
from sf_estimation.core.utils.logger import setup_logger

logger = logging.getLogger('sf_estimation.runner')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SF Estimation - Linear Kalman filter over recorded measurements",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Filter configuration JSON file"
    )
    parser.add_argument(
        "--measurements",
        type=Path,
        required=True,
        help="Measurement CSV file (empty cell or NaN = missing)"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("estimation_data"),
        help="Directory for telemetry files"
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write telemetry files"
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save estimate and variance plots (PNG) to the output directory"
    )
    parser.add_argument(
        "--sigma",
        type=float,
        default=2.0,
        help="Uncertainty band width for plots, in standard deviations"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger('sf_estimation', args.log_level)

    try:
        # 1. Load configuration and data
        filter_config = KalmanFilterConfig.from_json(args.config)
        measurements, controls = load_measurements_csv(args.measurements)

        # 2. Build filter and run
        kf = build_kalman_filter(filter_config)
        runner = EstimationRunner(
            kf,
            state_names=filter_config.state_names,
            measurement_names=filter_config.measurement_names
        )
        results = runner.run(measurements, controls)
    except (EstimatorError, OSError, ValueError) as e:
        logger.error("estimation failed: %s", e)
        return 1

    # 3. Output results
    summary = results.summary()
    print("\n" + "=" * 40)
    print(f" ESTIMATION SUMMARY ({filter_config.name})")
    print("=" * 40)
    print(f"Steps:                {summary['n_steps']}")
    print(f"Missing measurements: {summary['n_missing']}")
    for name, value in summary.get('final_state', {}).items():
        variance = summary['final_variance'][name]
        print(f"  {name:<18} {value: .6g}  (var {variance:.6g})")
    print("=" * 40 + "\n")

    if not args.no_save:
        data_logger = EstimationLogger(LoggerConfig(
            output_dir=args.output_dir,
            base_filename=filter_config.name
        ))
        data_logger.add_result('run', results)
        data_logger.set_filter_config(filter_config)
        data_logger.add_metadata('measurements_file', str(args.measurements))
        data_logger.save()

    if args.plot:
        import matplotlib
        matplotlib.use('Agg')
        from sf_estimation.core.visualization.estimate_plots import save_estimate_plots

        paths = save_estimate_plots(
            results, args.output_dir, base_filename=filter_config.name, sigma=args.sigma
        )
        for path in paths:
            logger.info("saved plot: %s", path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
