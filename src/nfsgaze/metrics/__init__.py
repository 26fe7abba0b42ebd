"""Interval statistics and session metrics module."""

from .collector import MetricsCollector
from .delta import (
    compute_attr_cache_delta,
    compute_cumulative_stats,
    compute_delta,
    compute_mount_deltas,
    filter_operations,
    parse_operations_filter,
)
from .models import AttrCacheDelta, DeltaRecord
from .prometheus import DEFAULT_PROMETHEUS_PORT, PrometheusExporter

__all__ = [
    "DEFAULT_PROMETHEUS_PORT",
    "AttrCacheDelta",
    "DeltaRecord",
    "MetricsCollector",
    "PrometheusExporter",
    "compute_attr_cache_delta",
    "compute_cumulative_stats",
    "compute_delta",
    "compute_mount_deltas",
    "filter_operations",
    "parse_operations_filter",
]
