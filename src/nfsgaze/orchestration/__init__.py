"""Monitoring loop module."""

from .monitor import (
    IntervalReport,
    MonitorError,
    MountMonitor,
    MountNotFoundError,
    select_mounts,
)

__all__ = [
    "IntervalReport",
    "MonitorError",
    "MountMonitor",
    "MountNotFoundError",
    "select_mounts",
]
