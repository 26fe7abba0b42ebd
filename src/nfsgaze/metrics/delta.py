"""Interval statistics computed from two mountstats snapshots."""

import logging
from typing import Iterable, List, Optional, Set

from ..mountstats.models import MountRecord, OperationRecord
from .models import AttrCacheDelta, DeltaRecord

logger = logging.getLogger(__name__)

KB = 1024


def compute_delta(
    previous: Optional[OperationRecord],
    current: Optional[OperationRecord],
    duration_seconds: float,
) -> Optional[DeltaRecord]:
    """Compute interval statistics for one operation.

    Args:
        previous: The operation from the older snapshot
        current: The same operation from the newer snapshot
        duration_seconds: Wall-clock time between the two snapshots

    Returns:
        None if either record is missing. A zero-activity record (only
        ``operation`` set) if the operation count did not increase, which
        covers both idle intervals and counters reset by a remount.

    Raises:
        ValueError: if ``duration_seconds`` is not strictly positive.
    """
    if previous is None or current is None:
        return None

    if duration_seconds <= 0:
        raise ValueError(f"duration_seconds must be positive, got {duration_seconds}")

    delta_ops = current.ops - previous.ops
    if delta_ops <= 0:
        return DeltaRecord(operation=current.name)

    delta_sent = current.bytes_sent - previous.bytes_sent
    delta_recv = current.bytes_recv - previous.bytes_recv
    delta = DeltaRecord(
        operation=current.name,
        delta_ops=delta_ops,
        delta_sent=delta_sent,
        delta_recv=delta_recv,
        delta_bytes=delta_sent + delta_recv,
        delta_rtt=current.rtt - previous.rtt,
        delta_exec=current.execute_time - previous.execute_time,
        delta_queue=current.queue_time - previous.queue_time,
        delta_errors=current.errors - previous.errors,
        delta_retrans=current.timeouts - previous.timeouts,
        iops=delta_ops / duration_seconds,
    )

    delta.avg_rtt = delta.delta_rtt / delta_ops
    delta.avg_exec = delta.delta_exec / delta_ops
    delta.avg_queue = delta.delta_queue / delta_ops
    delta.kb_per_op = delta.delta_bytes / delta_ops / KB
    delta.kb_per_sec = delta.delta_bytes / duration_seconds / KB

    return delta


def parse_operations_filter(operations: Optional[str]) -> Set[str]:
    """Turn ``"READ, WRITE"`` into ``{"READ", "WRITE"}``; empty means no filter."""
    if not operations or not operations.strip():
        return set()
    return {op.strip() for op in operations.split(",") if op.strip()}


def filter_operations(
    deltas: List[DeltaRecord], operations: Optional[Iterable[str]]
) -> List[DeltaRecord]:
    """Keep only deltas for the named operations. No filter keeps everything."""
    if not operations:
        return deltas
    allowed = set(operations)
    return [d for d in deltas if d.operation in allowed]


def compute_mount_deltas(
    previous: MountRecord,
    current: MountRecord,
    duration_seconds: float,
    operations: Optional[Iterable[str]] = None,
) -> List[DeltaRecord]:
    """Compute deltas for every operation that was active in the interval.

    Operations that only appear in ``current`` produce nothing. The result
    is sorted by operation name.
    """
    allowed = set(operations) if operations else None
    deltas = []

    for name, current_op in current.operations.items():
        if allowed is not None and name not in allowed:
            continue
        delta = compute_delta(previous.operations.get(name), current_op, duration_seconds)
        if delta is not None and delta.delta_ops > 0:
            deltas.append(delta)

    deltas.sort(key=lambda d: d.operation)
    logger.debug(
        f"{current.mount_point}: {len(deltas)} active operations "
        f"over {duration_seconds:.3f}s"
    )
    return deltas


def compute_cumulative_stats(
    mount: MountRecord, operations: Optional[Iterable[str]] = None
) -> List[DeltaRecord]:
    """Statistics averaged over the whole life of the mount.

    Used for the first report, before a second sample exists. Each
    operation is compared against an all-zero baseline over ``mount.age``
    seconds.
    """
    if mount.age <= 0:
        return []

    baseline = MountRecord(
        device=mount.device,
        mount_point=mount.mount_point,
        server=mount.server,
        export=mount.export,
        operations={name: OperationRecord(name=name) for name in mount.operations},
    )
    return compute_mount_deltas(baseline, mount, float(mount.age), operations)


def compute_attr_cache_delta(previous: MountRecord, current: MountRecord) -> AttrCacheDelta:
    """Attribute cache activity between two samples of the same mount."""
    old, new = previous.events, current.events
    return AttrCacheDelta(
        vfs_opens=new.vfs_open - old.vfs_open,
        inode_revalidates=new.inode_revalidate - old.inode_revalidate,
        page_invalidates=new.data_invalidate - old.data_invalidate,
        attr_invalidates=new.attr_invalidate - old.attr_invalidate,
    )
