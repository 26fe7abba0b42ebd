"""Polling loop that samples mountstats and computes interval statistics."""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from ..metrics import (
    AttrCacheDelta,
    DeltaRecord,
    MetricsCollector,
    PrometheusExporter,
    compute_attr_cache_delta,
    compute_cumulative_stats,
    compute_mount_deltas,
    parse_operations_filter,
)
from ..mountstats import MountRecord, MountstatsParseError, parse_file
from ..utils.config_validator import ConfigurationError, MonitorConfigValidator, apply_defaults

logger = logging.getLogger(__name__)


class MonitorError(RuntimeError):
    """Raised when monitoring cannot start."""
    pass


class MountNotFoundError(KeyError):
    """Raised when the requested mount point is not an NFS mount."""

    def __init__(self, mount_point: str):
        self.mount_point = mount_point
        super().__init__(mount_point)

    def __str__(self) -> str:
        return f"Mount point {self.mount_point} not found"


@dataclass
class IntervalReport:
    """Statistics for one monitored mount over one tick."""

    mount: MountRecord
    duration_s: float
    deltas: List[DeltaRecord] = field(default_factory=list)
    attr_cache: Optional[AttrCacheDelta] = None


def select_mounts(
    mounts: Dict[str, MountRecord], mount_point: Optional[str] = None
) -> List[str]:
    """Mount points to monitor: the requested one, or every NFS mount."""
    if mount_point:
        if mount_point not in mounts:
            raise MountNotFoundError(mount_point)
        return [mount_point]
    return sorted(mounts)


class MountMonitor:
    """Samples the mountstats file periodically and reports per-mount deltas."""

    def __init__(
        self,
        config_data: Dict[str, Any],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        wall_clock: Callable[[], float] = time.time,
        parser: Callable[[str], Dict[str, MountRecord]] = parse_file,
        exporter: Optional[PrometheusExporter] = None,
    ):
        """Initialize the monitor with a session configuration.

        Args:
            config_data: Configuration with a ``monitor`` section and an
                optional ``metrics_config`` section
            clock: Monotonic clock used to measure intervals
            sleep: Called with the interval between ticks
            wall_clock: Source of the timestamps recorded with each tick
            parser: Reads the mountstats file at a path
            exporter: Prometheus exporter fed on every tick. One is created
                when ``metrics_config.enable_prometheus`` is set; its HTTP
                endpoint is only served in that case.
        """
        is_valid, errors = MonitorConfigValidator.validate(config_data)
        if not is_valid:
            raise ConfigurationError("; ".join(errors))

        self.config = apply_defaults(config_data)
        monitor = self.config["monitor"]
        self.mountstats_path: str = monitor["mountstats_path"]
        self.interval_s: float = float(monitor["interval_s"])
        self.count: int = monitor["count"]
        self.mount_point: Optional[str] = monitor["mount_point"]
        self.show_attr: bool = monitor["show_attr"]

        operations = monitor["operations"]
        if isinstance(operations, str):
            self.operations = parse_operations_filter(operations)
        else:
            self.operations = {op.strip() for op in operations}

        self.metrics_collector = MetricsCollector(self.config["metrics_config"])

        metrics_config = self.config["metrics_config"]
        self.serve_prometheus: bool = metrics_config["enable_prometheus"]
        self.prometheus_port: int = metrics_config["prometheus_port"]
        if exporter is None and self.serve_prometheus:
            exporter = PrometheusExporter()
        self.prometheus_exporter = exporter
        self._prometheus_serving = False

        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock
        self._parser = parser

        self.monitored_mounts: List[str] = []
        self._previous: Optional[Dict[str, MountRecord]] = None
        self._last_sample: float = 0.0
        self._start_time: float = 0.0
        self._iteration = 0
        self._stop_requested = False

    @property
    def started(self) -> bool:
        return self._previous is not None

    def start(self) -> Dict[str, MountRecord]:
        """Take the initial snapshot and resolve the mounts to monitor.

        Raises:
            MonitorError: if the mountstats file cannot be read or parsed,
                or contains no NFS mounts.
            MonitorError: also if the Prometheus endpoint cannot be bound.
            MountNotFoundError: if the configured mount point is absent.
        """
        try:
            snapshot = self._parser(self.mountstats_path)
        except (OSError, MountstatsParseError) as e:
            raise MonitorError(f"Error reading mountstats: {e}") from e

        self.monitored_mounts = select_mounts(snapshot, self.mount_point)
        if not self.monitored_mounts:
            raise MonitorError("No NFS mounts found")

        self._previous = snapshot
        self._start_time = self._last_sample = self._clock()
        self._iteration = 0
        logger.info(f"Monitoring {len(self.monitored_mounts)} NFS mount(s) "
                    f"from {self.mountstats_path} every {self.interval_s}s")

        if self.prometheus_exporter is not None:
            for mp in self.monitored_mounts:
                self.prometheus_exporter.export_mount_metrics(snapshot[mp])
            self._start_prometheus_server()

        return {mp: snapshot[mp] for mp in self.monitored_mounts}

    def initial_report(self) -> Dict[str, IntervalReport]:
        """Since-mount averages for each monitored mount."""
        if self._previous is None:
            raise MonitorError("Monitor has not been started")

        reports = {}
        for mp in self.monitored_mounts:
            mount = self._previous[mp]
            reports[mp] = IntervalReport(
                mount=mount,
                duration_s=float(mount.age),
                deltas=compute_cumulative_stats(mount, self.operations),
            )
        return reports

    def tick(self) -> Optional[Dict[str, IntervalReport]]:
        """Take one sample and compute deltas against the previous one.

        Returns:
            Reports keyed by mount point, or None if the sample could not
            be taken. A failed sample keeps the previous snapshot so the
            next tick measures from it.
        """
        if self._previous is None:
            raise MonitorError("Monitor has not been started")

        self._iteration += 1

        try:
            current = self._parser(self.mountstats_path)
        except (OSError, MountstatsParseError) as e:
            logger.warning(f"Error reading mountstats: {e}")
            self.metrics_collector.log_skipped_tick(self._iteration)
            return None

        now = self._clock()
        duration = now - self._last_sample
        if duration <= 0:
            logger.warning(f"Non-positive interval ({duration:.6f}s), skipping tick")
            self.metrics_collector.log_skipped_tick(self._iteration)
            return None
        self._last_sample = now
        timestamp = self._wall_clock()

        reports = {}
        for mp in self.monitored_mounts:
            current_mount = current.get(mp)
            previous_mount = self._previous.get(mp)
            if current_mount is None or previous_mount is None:
                logger.debug(f"Mount {mp} missing from sample, skipping")
                continue

            deltas = compute_mount_deltas(previous_mount, current_mount, duration, self.operations)
            attr_cache = None
            if self.show_attr:
                attr_cache = compute_attr_cache_delta(previous_mount, current_mount)

            reports[mp] = IntervalReport(
                mount=current_mount,
                duration_s=duration,
                deltas=deltas,
                attr_cache=attr_cache,
            )
            self.metrics_collector.log_interval(
                self._iteration, timestamp, mp, duration, deltas, attr_cache
            )
            if self.prometheus_exporter is not None:
                self.prometheus_exporter.export_operation_metrics(current_mount, deltas)
                self.prometheus_exporter.export_event_metrics(current_mount, previous_mount.events)
                self.prometheus_exporter.export_mount_metrics(current_mount)

        self._previous = current
        return reports

    def _start_prometheus_server(self) -> None:
        if not self.serve_prometheus or self._prometheus_serving:
            return
        try:
            self.prometheus_exporter.start_server(self.prometheus_port)
        except OSError as e:
            raise MonitorError(
                f"Cannot serve Prometheus metrics on port {self.prometheus_port}: {e}"
            ) from e
        self._prometheus_serving = True

    def stop(self) -> None:
        """Ask ``run`` to return after the current tick.

        The request is latched: calling this before ``run`` starts makes
        ``run`` return without ticking.
        """
        self._stop_requested = True

    def run(
        self, on_interval: Optional[Callable[[Dict[str, IntervalReport]], None]] = None
    ) -> Dict[str, Any]:
        """Run the monitoring loop until ``count`` ticks or ``stop()``.

        Returns:
            Summary report dictionary
        """
        if not self.started:
            self.start()

        ticks = 0
        while not self._stop_requested:
            if self.count > 0 and ticks >= self.count:
                break

            self._sleep(self.interval_s)
            if self._stop_requested:
                break

            reports = self.tick()
            ticks += 1
            if reports is not None and on_interval is not None:
                on_interval(reports)

        self._stop_requested = False
        session_duration = self._clock() - self._start_time
        summary_report = self.metrics_collector.generate_summary_report(session_duration)
        self._save_outputs(summary_report)

        logger.info("Monitoring stopped")
        return summary_report

    def _save_outputs(self, summary_report: Dict[str, Any]) -> None:
        metrics_config = self.config["metrics_config"]

        summary_path = metrics_config.get("output_summary_json_path")
        if summary_path:
            summary_file = Path(summary_path)
            summary_file.parent.mkdir(parents=True, exist_ok=True)
            with open(summary_file, "w") as f:
                json.dump(summary_report, f, indent=2)
            logger.info(f"Saved summary report to {summary_file}")

        csv_path = metrics_config.get("output_deltas_csv_path")
        if csv_path:
            csv_file = Path(csv_path)
            csv_file.parent.mkdir(parents=True, exist_ok=True)
            df = self.metrics_collector.get_deltas_df()
            df.to_csv(csv_file, index=False)
            logger.info(f"Saved interval deltas to {csv_file}")

    @classmethod
    def from_yaml_file(cls, config_path: str, **kwargs) -> "MountMonitor":
        """Create a monitor from a YAML configuration file."""
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f)

        return cls(config_data, **kwargs)

    @classmethod
    def from_json_file(cls, config_path: str, **kwargs) -> "MountMonitor":
        """Create a monitor from a JSON configuration file."""
        with open(config_path, "r") as f:
            config_data = json.load(f)

        return cls(config_data, **kwargs)
