"""Data models for parsed mountstats snapshots."""

from dataclasses import dataclass, field, fields
from typing import Dict, List


@dataclass
class OperationRecord:
    """Cumulative per-operation RPC accounting for one mount."""

    name: str
    ops: int = 0
    ntrans: int = 0
    timeouts: int = 0
    bytes_sent: int = 0
    bytes_recv: int = 0
    queue_time: int = 0  # milliseconds
    rtt: int = 0  # milliseconds
    execute_time: int = 0  # milliseconds
    errors: int = 0


# Positional order of the numeric fields on a per-op line
OPERATION_FIELDS: List[str] = [
    "ops",
    "ntrans",
    "timeouts",
    "bytes_sent",
    "bytes_recv",
    "queue_time",
    "rtt",
    "execute_time",
    "errors",
]


@dataclass
class EventCounters:
    """VFS-level cache and revalidation counters from the ``events:`` line."""

    inode_revalidate: int = 0  # index 0
    dentry_revalidate: int = 0  # index 1
    data_invalidate: int = 0  # index 2
    attr_invalidate: int = 0  # index 3
    vfs_open: int = 0  # index 4
    vfs_lookup: int = 0  # index 5
    vfs_access: int = 0  # index 6
    vfs_update_page: int = 0  # index 7
    vfs_read_page: int = 0  # index 8
    vfs_read_pages: int = 0  # index 9
    vfs_write_page: int = 0  # index 10
    vfs_write_pages: int = 0  # index 11
    vfs_getdents: int = 0  # index 12
    vfs_setattr: int = 0  # index 13
    vfs_flush: int = 0  # index 14
    vfs_fsync: int = 0  # index 15
    vfs_lock: int = 0  # index 16
    vfs_release: int = 0  # index 17
    congestion_wait: int = 0  # index 18
    setattr_trunc: int = 0  # index 19
    extend_write: int = 0  # index 20
    silly_rename: int = 0  # index 21
    short_read: int = 0  # index 22
    short_write: int = 0  # index 23
    delay: int = 0  # index 24
    pnfs_read: int = 0  # index 25, optional
    pnfs_write: int = 0  # index 26, optional

    @classmethod
    def field_names(cls) -> List[str]:
        """Counter names in kernel order."""
        return [f.name for f in fields(cls)]


EVENT_FIELDS: List[str] = EventCounters.field_names()

# pNFS counters are missing from older kernels
REQUIRED_EVENT_FIELDS = len(EVENT_FIELDS) - 2


@dataclass
class MountRecord:
    """A single NFS mount as seen in one snapshot."""

    device: str
    mount_point: str
    server: str
    export: str
    age: int = 0  # seconds since mount
    operations: Dict[str, OperationRecord] = field(default_factory=dict)
    events: EventCounters = field(default_factory=EventCounters)
    bytes_read: int = 0
    bytes_write: int = 0
