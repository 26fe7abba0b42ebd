"""Session-level aggregation of interval statistics."""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .models import AttrCacheDelta, DeltaRecord

logger = logging.getLogger(__name__)


def percentile_key(p: float) -> str:
    """Summary key for a percentile fraction: 0.5 -> "p50", 0.995 -> "p99.5"."""
    return f"p{p * 100:g}"


class MetricsCollector:
    """Central aggregator for the deltas produced during a monitoring session."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize the metrics collector.

        Args:
            config: Metrics configuration containing:
                - percentiles_to_calculate: List of percentiles (e.g., [0.5, 0.9, 0.99])
                - output_summary_json_path: Path to save the summary report
                - output_deltas_csv_path: Path to save every recorded delta
        """
        self.config = config or {}

        # One entry per recorded delta, in arrival order
        self.delta_log: List[Dict[str, Any]] = []
        self.attr_cache_log: Dict[str, List[AttrCacheDelta]] = {}
        self.skipped_ticks = 0
        self.ticks = 0

        logger.debug("MetricsCollector initialized")

    def log_interval(
        self,
        tick: int,
        timestamp: float,
        mount_point: str,
        duration_s: float,
        deltas: List[DeltaRecord],
        attr_cache: Optional[AttrCacheDelta] = None,
    ) -> None:
        """Record the deltas computed for one mount in one tick."""
        self.ticks = max(self.ticks, tick)
        for delta in deltas:
            self.delta_log.append({
                "tick": tick,
                "timestamp": timestamp,
                "mount_point": mount_point,
                "duration_s": duration_s,
                "delta": delta,
            })

        if attr_cache is not None:
            self.attr_cache_log.setdefault(mount_point, []).append(attr_cache)

    def log_skipped_tick(self, tick: int) -> None:
        """Record a tick whose sample could not be parsed."""
        self.ticks = max(self.ticks, tick)
        self.skipped_ticks += 1

    def generate_summary_report(self, session_duration_s: float) -> Dict[str, Any]:
        """Generate summary statistics for the whole session.

        Args:
            session_duration_s: Wall-clock duration of the session in seconds

        Returns:
            Dictionary containing per-mount, per-operation summaries
        """
        percentiles = self.config.get("percentiles_to_calculate", [0.5, 0.9, 0.99])

        grouped: Dict[str, Dict[str, List[DeltaRecord]]] = {}
        for entry in self.delta_log:
            ops = grouped.setdefault(entry["mount_point"], {})
            ops.setdefault(entry["delta"].operation, []).append(entry["delta"])

        mounts = {}
        for mount_point, ops in sorted(grouped.items()):
            operations = {}
            for name, deltas in sorted(ops.items()):
                total_ops = sum(d.delta_ops for d in deltas)
                total_bytes = sum(d.delta_bytes for d in deltas)
                operations[name] = {
                    "intervals": len(deltas),
                    "total_ops": total_ops,
                    "total_bytes": total_bytes,
                    "total_errors": sum(d.delta_errors for d in deltas),
                    "total_retrans": sum(d.delta_retrans for d in deltas),
                    "avg_iops": total_ops / session_duration_s if session_duration_s > 0 else 0,
                    "kb_per_sec": total_bytes / session_duration_s / 1024 if session_duration_s > 0 else 0,
                    "iops": self._calculate_stats([d.iops for d in deltas], percentiles),
                    "avg_rtt_ms": self._calculate_stats([d.avg_rtt for d in deltas], percentiles),
                    "avg_exec_ms": self._calculate_stats([d.avg_exec for d in deltas], percentiles),
                }
            mounts[mount_point] = {"operations": operations}

        for mount_point, attr_deltas in self.attr_cache_log.items():
            mounts.setdefault(mount_point, {"operations": {}})["attr_cache"] = {
                "vfs_opens": sum(a.vfs_opens for a in attr_deltas),
                "inode_revalidates": sum(a.inode_revalidates for a in attr_deltas),
                "page_invalidates": sum(a.page_invalidates for a in attr_deltas),
                "attr_invalidates": sum(a.attr_invalidates for a in attr_deltas),
            }

        summary = {
            "session": {
                "duration_s": session_duration_s,
                "ticks": self.ticks,
                "skipped_ticks": self.skipped_ticks,
            },
            "mounts": mounts,
        }

        logger.info("=" * 60)
        logger.info("SESSION SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Duration: {session_duration_s:.1f}s, {self.ticks} ticks "
                    f"({self.skipped_ticks} skipped)")
        for mount_point, mount_summary in mounts.items():
            for name, op in mount_summary["operations"].items():
                logger.info(f"{mount_point} {name}: {op['total_ops']} ops, "
                            f"{op['avg_iops']:.2f} ops/s, "
                            f"RTT mean={op['avg_rtt_ms'].get('mean', 0):.2f}ms")
        logger.info("=" * 60)

        return summary

    def _calculate_stats(self, values: List[float], percentiles: List[float]) -> Dict[str, float]:
        """Calculate statistics for a list of values."""
        if not values:
            return {"count": 0}

        stats = {
            "count": len(values),
            "mean": float(np.mean(values)),
            "std": float(np.std(values)),
            "min": float(np.min(values)),
            "max": float(np.max(values)),
        }

        for p in percentiles:
            stats[percentile_key(p)] = float(np.percentile(values, p * 100))

        return stats

    def get_deltas_df(self) -> pd.DataFrame:
        """Get every recorded delta as a pandas DataFrame."""
        if not self.delta_log:
            return pd.DataFrame()

        rows = []
        for entry in self.delta_log:
            delta = entry["delta"]
            rows.append({
                "tick": entry["tick"],
                "timestamp": entry["timestamp"],
                "mount_point": entry["mount_point"],
                "duration_s": entry["duration_s"],
                "operation": delta.operation,
                "delta_ops": delta.delta_ops,
                "delta_bytes": delta.delta_bytes,
                "delta_errors": delta.delta_errors,
                "delta_retrans": delta.delta_retrans,
                "iops": delta.iops,
                "kb_per_sec": delta.kb_per_sec,
                "kb_per_op": delta.kb_per_op,
                "avg_rtt_ms": delta.avg_rtt,
                "avg_exec_ms": delta.avg_exec,
                "avg_queue_ms": delta.avg_queue,
            })

        return pd.DataFrame(rows)
