"""Data models for interval statistics."""

from dataclasses import dataclass


@dataclass
class DeltaRecord:
    """Per-operation statistics over one sampling interval.

    Derived fields are only filled in when ``delta_ops > 0``; a record with
    ``delta_ops == 0`` means no activity or a counter reset.
    """

    operation: str
    delta_ops: int = 0
    delta_bytes: int = 0
    delta_sent: int = 0
    delta_recv: int = 0
    delta_rtt: int = 0
    delta_exec: int = 0
    delta_queue: int = 0
    delta_errors: int = 0
    delta_retrans: int = 0

    # Calculated rates
    iops: float = 0.0
    avg_rtt: float = 0.0  # ms per operation
    avg_exec: float = 0.0  # ms per operation
    avg_queue: float = 0.0  # ms per operation
    kb_per_op: float = 0.0
    kb_per_sec: float = 0.0

    @property
    def error_pct(self) -> float:
        return self.delta_errors / self.delta_ops * 100 if self.delta_ops > 0 else 0.0

    @property
    def retrans_pct(self) -> float:
        return self.delta_retrans / self.delta_ops * 100 if self.delta_ops > 0 else 0.0


@dataclass
class AttrCacheDelta:
    """Attribute cache activity between two samples of the same mount."""

    vfs_opens: int = 0
    inode_revalidates: int = 0
    page_invalidates: int = 0
    attr_invalidates: int = 0

    @property
    def inode_revalidate_pct(self) -> float:
        """Inode revalidations as a percentage of opens."""
        return self.inode_revalidates / self.vfs_opens * 100 if self.vfs_opens > 0 else 0.0
