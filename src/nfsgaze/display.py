"""Plain-text rendering of interval statistics."""

from datetime import datetime
from typing import List, Optional

from .metrics.models import AttrCacheDelta, DeltaRecord
from .mountstats.models import MountRecord


def format_rate(rate: float) -> str:
    return f"{rate:.1f}"


def format_latency(ms: float) -> str:
    """Format an average latency already expressed in milliseconds."""
    return f"{ms:.1f}ms"


def format_bandwidth(kb_per_sec: float) -> str:
    """Format KB/s as MB/s."""
    return f"{kb_per_sec / 1024:.1f}"


def format_simple(
    mount: MountRecord,
    deltas: List[DeltaRecord],
    show_bandwidth: bool = False,
    timestamp: Optional[datetime] = None,
) -> str:
    """One table per mount; empty string when nothing was active."""
    if not deltas:
        return ""

    timestamp = timestamp or datetime.now()
    lines = [
        f"{mount.device} mounted on {mount.mount_point}",
        f"Timestamp: {timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]

    if show_bandwidth:
        lines.append(f"{'OP':<12} {'IOPS':>8} {'RTT(ms)':>8} {'EXE(ms)':>8} "
                     f"{'MB/s':>8} {'KB/op':>8} {'ERRORS':>8}")
        lines.append("-" * 72)
    else:
        lines.append(f"{'OP':<12} {'IOPS':>8} {'RTT(ms)':>8} {'EXE(ms)':>8} {'ERRORS':>8}")
        lines.append("-" * 48)

    for d in deltas:
        row = (f"{d.operation:<12} {format_rate(d.iops):>8} "
               f"{format_latency(d.avg_rtt):>8} {format_latency(d.avg_exec):>8}")
        if show_bandwidth:
            row += f" {format_bandwidth(d.kb_per_sec):>8} {format_rate(d.kb_per_op):>8}"
        lines.append(f"{row} {d.delta_errors:>8}")

    lines.append("")
    return "\n".join(lines)


def format_iostat(
    mount: MountRecord,
    deltas: List[DeltaRecord],
    attr_cache: Optional[AttrCacheDelta] = None,
) -> str:
    """nfsiostat-style block: mount summary, then one section per operation."""
    total_ops = sum(d.iops for d in deltas)
    lines = [
        "",
        f"{mount.device} mounted on {mount.mount_point}:",
        "",
        f"{'ops/s':>16}",
        f"{total_ops:>16.3f}",
        "",
    ]

    for d in deltas:
        if d.delta_ops <= 0:
            continue
        lines.append(f"{d.operation.lower()}:")
        lines.append(f"{'ops/s':>16} {'kB/s':>16} {'kB/op':>16} {'retrans':>16} "
                     f"{'avg RTT (ms)':>16} {'avg exe (ms)':>16} {'avg queue (ms)':>16} "
                     f"{'errors':>16}")
        lines.append(f"{d.iops:>16.3f} {d.kb_per_sec:>16.3f} {d.kb_per_op:>16.3f} "
                     f"{d.delta_retrans:>8} ({d.retrans_pct:.1f}%) "
                     f"{d.avg_rtt:>16.3f} {d.avg_exec:>16.3f} {d.avg_queue:>16.3f} "
                     f"{d.delta_errors:>8} ({d.error_pct:.1f}%)")

    if attr_cache is not None:
        lines.append("")
        lines.append(f"{attr_cache.vfs_opens} VFS opens")
        lines.append(f"{attr_cache.inode_revalidates} inoderevalidates "
                     f"(forced GETATTRs) ({attr_cache.inode_revalidate_pct:.1f}%)")
        lines.append(f"{attr_cache.page_invalidates} page cache invalidations")
        lines.append(f"{attr_cache.attr_invalidates} attribute cache invalidations")

    return "\n".join(lines)
