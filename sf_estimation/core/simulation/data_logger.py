"""
Estimation Data Logger

Persists estimation telemetry with the metadata needed to reproduce a run:

- JSON: filter configuration, per-run summary and per-step estimates, with
  MD5 checksums over the estimate arrays
- CSV: one flat table per run (see EstimationResults.to_dataframe)

Output Structure (JSON):
-----------------------
{
    "metadata": {
        "timestamp": "...",
        "version": "1.0.0",
        "filter_config": {...},
        "custom": {...},
        "checksums": {"<run>": "<md5>"}
    },
    "runs": {
        "<run>": {
            "summary": {...},
            "state_names": [...],
            "measurement_names": [...],
            "index": [...],
            "estimates": [[...]],
            "variances": [[...]],
            "measurements": [[...]],
            "presence": [[...]]
        }
    }
}
"""

import hashlib
import json
import logging
import numpy as np
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .estimation_runner import EstimationResults

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy arrays."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, (np.bool_,)):
            return bool(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


@dataclass
class LoggerConfig:
    """
    Configuration for the estimation data logger.

    Attributes
    ----------
    output_dir : Path
        Directory for saved data files
    base_filename : str
        Base name for output files
    save_json : bool
        Save JSON format
    save_csv : bool
        Save CSV format for each run
    include_checksums : bool
        Add integrity checksums to metadata
    pretty_print : bool
        Format JSON with indentation
    timestamp_filenames : bool
        Append the start timestamp to file names
    version : str
        Data format version string
    """
    output_dir: Path = field(default_factory=lambda: Path('estimation_data'))
    base_filename: str = 'estimation'
    save_json: bool = True
    save_csv: bool = True
    include_checksums: bool = True
    pretty_print: bool = True
    timestamp_filenames: bool = True
    version: str = '1.0.0'


def _checksum(estimates: np.ndarray, variances: np.ndarray) -> str:
    combined = np.concatenate([
        np.asarray(estimates, dtype=float).ravel(),
        np.asarray(variances, dtype=float).ravel()
    ])
    combined = np.nan_to_num(combined, nan=0.0)
    return hashlib.md5(combined.tobytes()).hexdigest()


class EstimationLogger:
    """
    Data logger for estimation runs.

    Example Usage
    -------------
    >>> logger = EstimationLogger(LoggerConfig(output_dir=Path('data')))
    >>> logger.add_result('track_1', results)
    >>> logger.set_filter_config(filter_config)
    >>> logger.save()

    Parameters
    ----------
    config : LoggerConfig
        Logger configuration
    """

    def __init__(self, config: Optional[LoggerConfig] = None):
        self.config = config or LoggerConfig()
        self._results: Dict[str, EstimationResults] = {}
        self._filter_config: Optional[Dict] = None
        self._custom_metadata: Dict[str, Any] = {}
        self._start_time = datetime.now()

    def add_result(self, name: str, results: EstimationResults) -> None:
        """
        Add telemetry of one run.

        Parameters
        ----------
        name : str
            Run identifier (used in file names)
        results : EstimationResults
            Run telemetry
        """
        self._results[name] = results

    def set_filter_config(self, config: Any) -> None:
        """
        Set filter configuration for reproducibility tracking.

        Parameters
        ----------
        config : Any
            KalmanFilterConfig, other dataclass, or dict
        """
        if hasattr(config, 'to_dict'):
            self._filter_config = config.to_dict()
        elif hasattr(config, '__dataclass_fields__'):
            self._filter_config = asdict(config)
        elif isinstance(config, dict):
            self._filter_config = config
        else:
            self._filter_config = {'raw': str(config)}

    def add_metadata(self, key: str, value: Any) -> None:
        """Add custom metadata (must be JSON-serializable)."""
        self._custom_metadata[key] = value

    def save(self, suffix: Optional[str] = None) -> Dict[str, Any]:
        """
        Save all data to disk.

        Parameters
        ----------
        suffix : str, optional
            Optional suffix for filename

        Returns
        -------
        Dict[str, Any]
            'json' -> Path and 'csv' -> List[Path] for the saved files
        """
        saved_files: Dict[str, Any] = {}
        self.config.output_dir.mkdir(parents=True, exist_ok=True)

        base = self.config.base_filename
        if self.config.timestamp_filenames:
            base = f"{base}_{self._start_time.strftime('%Y%m%d_%H%M%S')}"
        if suffix:
            base = f"{base}_{suffix}"

        if self.config.save_json:
            json_path = self.config.output_dir / f"{base}.json"
            self._save_json(self._build_data_structure(), json_path)
            saved_files['json'] = json_path

        if self.config.save_csv:
            saved_files['csv'] = self._save_csv(base)

        return saved_files

    def _build_data_structure(self) -> Dict[str, Any]:
        data = {
            'metadata': self._build_metadata(),
            'runs': {}
        }
        for name, results in self._results.items():
            data['runs'][name] = self._serialize_results(results)
        return data

    def _build_metadata(self) -> Dict[str, Any]:
        metadata = {
            'timestamp': self._start_time.isoformat(),
            'version': self.config.version,
        }
        if self._filter_config:
            metadata['filter_config'] = self._filter_config
        if self._custom_metadata:
            metadata['custom'] = self._custom_metadata
        if self.config.include_checksums:
            metadata['checksums'] = {
                name: _checksum(r.estimates, r.variances)
                for name, r in self._results.items()
            }
        return metadata

    @staticmethod
    def _serialize_results(results: EstimationResults) -> Dict[str, Any]:
        return {
            'summary': results.summary(),
            'state_names': results.state_names,
            'measurement_names': results.measurement_names,
            'index': results.index,
            'estimates': results.estimates,
            'variances': results.variances,
            # NaN is not valid JSON; missing entries are written as null
            'measurements': [
                [None if np.isnan(v) else float(v) for v in row]
                for row in results.measurements
            ],
            'presence': results.presence,
            'metadata': results.metadata,
        }

    def _save_json(self, data: Dict, filepath: Path) -> None:
        indent = 2 if self.config.pretty_print else None
        with open(filepath, 'w') as f:
            json.dump(data, f, cls=NumpyEncoder, indent=indent)
        logger.info("saved JSON telemetry: %s", filepath)

    def _save_csv(self, base: str) -> List[Path]:
        csv_paths = []
        for name, results in self._results.items():
            filepath = self.config.output_dir / f"{base}_{name}.csv"
            results.to_dataframe().to_csv(filepath)
            csv_paths.append(filepath)
            logger.info("saved CSV telemetry: %s", filepath)
        return csv_paths

    @staticmethod
    def load_json(filepath: Union[str, Path]) -> Dict[str, Any]:
        """Load estimation data from a JSON file."""
        with open(filepath, 'r') as f:
            return json.load(f)

    @staticmethod
    def verify_checksum(filepath: Union[str, Path]) -> bool:
        """
        Verify data integrity using stored checksums.

        Returns
        -------
        bool
            True if all checksums match (or none are stored)
        """
        data = EstimationLogger.load_json(filepath)

        if 'checksums' not in data.get('metadata', {}):
            logger.info("no checksums found in %s", filepath)
            return True

        stored_checksums = data['metadata']['checksums']
        for name, run in data['runs'].items():
            computed = _checksum(np.array(run['estimates']), np.array(run['variances']))
            stored = stored_checksums.get(name, '')
            if computed != stored:
                logger.warning("checksum mismatch for %s: %s != %s", name, computed, stored)
                return False
        return True
