"""
Prometheus export of NFS client statistics.

Interval deltas feed counters (operations, bytes, errors, retransmissions,
VFS events) and a latency histogram; each snapshot sets the per-mount
gauges (age and cumulative bytes read/written). Metrics can be scraped
from an HTTP ``/metrics`` endpoint or rendered as exposition text.
"""

import logging
from typing import Dict, List, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

from ..mountstats.models import EventCounters, MountRecord
from .models import DeltaRecord

logger = logging.getLogger(__name__)

DEFAULT_PROMETHEUS_PORT = 9090

# RTT buckets in seconds
LATENCY_BUCKETS = [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]

# VFS event counters exported under nfs_vfs_events_total{event=...}
EXPORTED_EVENTS = ["vfs_open", "vfs_lookup", "vfs_read_page", "vfs_write_page"]


class PrometheusExporter:
    """Publishes per-mount, per-operation NFS statistics to a Prometheus registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the exporter.

        Args:
            registry: Registry to register the metrics in. A private one is
                created when omitted, so several exporters never collide.
        """
        self.registry = registry or CollectorRegistry()
        op_labels = ["mount_point", "operation"]

        self.operations_total = Counter(
            "nfs_operations_total",
            "Total number of NFS operations performed",
            op_labels,
            registry=self.registry,
        )
        self.operation_bytes_total = Counter(
            "nfs_operation_bytes_total",
            "Total bytes transferred in NFS operations",
            op_labels,
            registry=self.registry,
        )
        self.operation_errors_total = Counter(
            "nfs_operation_errors_total",
            "Total number of NFS operation errors",
            op_labels,
            registry=self.registry,
        )
        self.operation_timeouts_total = Counter(
            "nfs_operation_timeouts_total",
            "Total number of NFS operation timeouts",
            op_labels,
            registry=self.registry,
        )
        self.operation_duration_seconds = Histogram(
            "nfs_operation_duration_seconds",
            "Average round-trip time of NFS operations per interval, in seconds",
            op_labels,
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.vfs_events_total = Counter(
            "nfs_vfs_events_total",
            "Total number of NFS VFS events",
            ["mount_point", "event"],
            registry=self.registry,
        )
        self.mount_age_seconds = Gauge(
            "nfs_mount_age_seconds",
            "Age of the NFS mount in seconds",
            ["mount_point"],
            registry=self.registry,
        )
        self.mount_read_bytes = Gauge(
            "nfs_mount_read_bytes",
            "Bytes read from the NFS mount since it was mounted",
            ["mount_point"],
            registry=self.registry,
        )
        self.mount_written_bytes = Gauge(
            "nfs_mount_written_bytes",
            "Bytes written to the NFS mount since it was mounted",
            ["mount_point"],
            registry=self.registry,
        )

        logger.debug("Prometheus exporter initialized")

    def export_operation_metrics(self, mount: MountRecord, deltas: List[DeltaRecord]) -> None:
        """Add one interval's operation deltas to the counters."""
        for delta in deltas:
            if delta.delta_ops <= 0:
                continue
            labels = {"mount_point": mount.mount_point, "operation": delta.operation}
            self.operations_total.labels(**labels).inc(delta.delta_ops)
            # Counters only move forward; a shrinking byte count is a reset
            self.operation_bytes_total.labels(**labels).inc(max(delta.delta_bytes, 0))
            self.operation_errors_total.labels(**labels).inc(max(delta.delta_errors, 0))
            self.operation_timeouts_total.labels(**labels).inc(max(delta.delta_retrans, 0))
            if delta.avg_rtt > 0:
                self.operation_duration_seconds.labels(**labels).observe(delta.avg_rtt / 1000.0)

    def export_event_metrics(
        self, mount: MountRecord, previous_events: EventCounters
    ) -> Dict[str, int]:
        """Add the VFS event growth since ``previous_events`` to the counters.

        Returns:
            The increment applied per event name
        """
        increments = {}
        for name in EXPORTED_EVENTS:
            increment = max(getattr(mount.events, name) - getattr(previous_events, name), 0)
            self.vfs_events_total.labels(mount_point=mount.mount_point, event=name).inc(increment)
            increments[name] = increment
        return increments

    def export_mount_metrics(self, mount: MountRecord) -> None:
        """Set the per-mount gauges from a snapshot."""
        self.mount_age_seconds.labels(mount_point=mount.mount_point).set(mount.age)
        self.mount_read_bytes.labels(mount_point=mount.mount_point).set(mount.bytes_read)
        self.mount_written_bytes.labels(mount_point=mount.mount_point).set(mount.bytes_write)

    def get_metrics_text(self) -> str:
        """Metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry).decode("utf-8")

    def start_server(self, port: int = DEFAULT_PROMETHEUS_PORT, addr: str = "0.0.0.0") -> None:
        """Serve ``/metrics`` over HTTP from a background thread."""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info(f"Prometheus metrics server started on port {port}")
