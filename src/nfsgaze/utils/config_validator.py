"""
Configuration validation for monitoring sessions.

This module validates:
- Monitor settings (source file, interval, mount and operation selection)
- Metrics settings (percentiles, output paths and Prometheus export)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..metrics.prometheus import DEFAULT_PROMETHEUS_PORT
from ..mountstats.parser import DEFAULT_MOUNTSTATS_PATH

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""
    pass


DEFAULT_MONITOR_CONFIG: Dict[str, Any] = {
    "mountstats_path": DEFAULT_MOUNTSTATS_PATH,
    "interval_s": 1.0,
    "count": 0,
    "mount_point": None,
    "operations": [],
    "show_attr": False,
    "show_bandwidth": False,
    "iostat_format": False,
}

DEFAULT_METRICS_CONFIG: Dict[str, Any] = {
    "percentiles_to_calculate": [0.5, 0.9, 0.99],
    "enable_prometheus": False,
    "prometheus_port": DEFAULT_PROMETHEUS_PORT,
}


class MonitorConfigValidator:
    """Validates a monitoring session configuration."""

    REQUIRED_SECTIONS = {'monitor'}

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """Validate a complete configuration."""
        if not isinstance(config, dict):
            return False, ["Configuration must be a mapping"]

        all_errors = []

        missing = cls.REQUIRED_SECTIONS - set(config.keys())
        if missing:
            all_errors.append(f"Missing top-level fields: {missing}")
            return False, all_errors

        monitor = config['monitor'] or {}
        if not isinstance(monitor, dict):
            return False, ["monitor section must be a mapping"]

        all_errors.extend(cls._validate_monitor(monitor))
        all_errors.extend(cls._validate_metrics(config.get('metrics_config') or {}))

        return len(all_errors) == 0, all_errors

    @classmethod
    def _validate_monitor(cls, monitor: Dict[str, Any]) -> List[str]:
        """Validate the monitor section."""
        errors = []

        interval = monitor.get('interval_s', DEFAULT_MONITOR_CONFIG['interval_s'])
        if not isinstance(interval, (int, float)) or isinstance(interval, bool):
            errors.append(f"Invalid interval_s: {interval!r}")
        elif interval <= 0:
            errors.append(f"Invalid interval_s: {interval} (must be positive)")

        count = monitor.get('count', 0)
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            errors.append(f"Invalid count: {count!r} (must be a non-negative integer)")

        path = monitor.get('mountstats_path', DEFAULT_MONITOR_CONFIG['mountstats_path'])
        if not isinstance(path, str) or not path:
            errors.append(f"Invalid mountstats_path: {path!r}")

        mount_point = monitor.get('mount_point')
        if mount_point is not None and not isinstance(mount_point, str):
            errors.append(f"Invalid mount_point: {mount_point!r}")

        operations = monitor.get('operations', [])
        if isinstance(operations, str):
            pass  # comma separated form, split later
        elif not isinstance(operations, list):
            errors.append(f"operations should be a list of names, got {type(operations).__name__}")
        else:
            for op in operations:
                if not isinstance(op, str) or not op.strip():
                    errors.append(f"Invalid operation name: {op!r}")

        return errors

    @classmethod
    def _validate_metrics(cls, metrics: Dict[str, Any]) -> List[str]:
        """Validate the metrics section."""
        errors = []

        percentiles = metrics.get('percentiles_to_calculate', [])
        if not isinstance(percentiles, list):
            errors.append("percentiles_to_calculate should be a list")
        else:
            for p in percentiles:
                if not isinstance(p, (int, float)) or not 0 < p <= 1:
                    errors.append(f"Invalid percentile: {p!r} (must be in (0, 1])")

        for key in ('output_summary_json_path', 'output_deltas_csv_path'):
            value = metrics.get(key)
            if value is not None and not isinstance(value, str):
                errors.append(f"Invalid {key}: {value!r}")

        enable = metrics.get('enable_prometheus', False)
        if not isinstance(enable, bool):
            errors.append(f"enable_prometheus should be a boolean, got {enable!r}")

        port = metrics.get('prometheus_port', DEFAULT_PROMETHEUS_PORT)
        if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            errors.append(f"Invalid prometheus_port: {port!r} (must be 1-65535)")

        return errors


def apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in optional settings that the configuration leaves out."""
    monitor = dict(DEFAULT_MONITOR_CONFIG)
    monitor.update(config.get('monitor') or {})
    metrics = dict(DEFAULT_METRICS_CONFIG)
    metrics.update(config.get('metrics_config') or {})

    fixed = dict(config)
    fixed['monitor'] = monitor
    fixed['metrics_config'] = metrics
    return fixed


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load a YAML or JSON configuration file, chosen by suffix."""
    config_file = Path(config_path)

    with open(config_file) as f:
        if config_file.suffix in ['.yaml', '.yml']:
            config = yaml.safe_load(f)
        else:
            config = json.load(f)

    return config if config is not None else {}


def validate_and_fix_config(config_path: str) -> Tuple[bool, List[str], Optional[Dict[str, Any]]]:
    """
    Load, validate, and fill defaults into a configuration file.

    Returns:
        (is_valid, errors, fixed_config)
    """
    config = load_config_file(config_path)

    is_valid, errors = MonitorConfigValidator.validate(config)

    if not is_valid:
        logger.warning(f"Configuration has {len(errors)} validation errors")
        for error in errors[:10]:
            logger.warning(f"  - {error}")
        if len(errors) > 10:
            logger.warning(f"  ... and {len(errors) - 10} more errors")
        return is_valid, errors, config

    return is_valid, errors, apply_defaults(config)
