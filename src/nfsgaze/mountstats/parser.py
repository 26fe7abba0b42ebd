"""Parser for the kernel's per-process NFS mount statistics file.

The file (usually ``/proc/self/mountstats``) lists every mount of the
process namespace. NFS mounts are followed by an indented block of
statistics lines:

    device server:/export mounted on /mnt/nfs with fstype nfs4 statvers=1.1
        opts:   rw,vers=4.1,rsize=1048576,...
        age:    12345
        events: 1 2 3 ... 27
        bytes:  1048576 0 0 0 2097152 0 256 512
        RPC iostats version: 1.1  p/v: 100003/4 (nfs)
        xprt:   tcp 0 1 2 0 ...
        per-op statistics
                READ: 100 95 5 1024 2048 10 20 30 2

Parsing is a single forward pass over the lines. Any structural problem
aborts the whole pass, since a partially parsed snapshot cannot be safely
compared against another one.
"""

import io
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .models import (
    EVENT_FIELDS,
    OPERATION_FIELDS,
    REQUIRED_EVENT_FIELDS,
    EventCounters,
    MountRecord,
    OperationRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_MOUNTSTATS_PATH = "/proc/self/mountstats"

# Colon-bearing lines inside a mount block that are not per-op counters
EXCLUDED_PREFIXES: Tuple[str, ...] = (
    "RPC",
    "xprt",
    "per-op",
    "opts",
    "caps",
    "sec",
    "nfsv3",
    "nfsv4",
    "impl_id",
    "fsc",
)

# Older kernels print 8 counters per operation, newer ones add errors
MIN_OPERATION_FIELDS = len(OPERATION_FIELDS) - 1

# Fixed-column layout: "device <server:export> mounted on <path> with fstype nfs ..."
LEGACY_MIN_FIELDS = 8
LEGACY_DEVICE_COLUMN = 1
LEGACY_MOUNT_POINT_COLUMN = 4

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")


class MountstatsParseError(ValueError):
    """Raised when the mountstats text does not match any supported layout."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.line_number = line_number
        self.line = line
        self.field = field
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


def parse_int(token: str, field: str) -> int:
    """Parse a base-10 signed 64-bit integer, naming ``field`` on failure."""
    if not _INTEGER_RE.match(token):
        raise MountstatsParseError(f"invalid integer {token!r} for {field}", field=field)
    value = int(token)
    if value < INT64_MIN or value > INT64_MAX:
        raise MountstatsParseError(f"value {token} for {field} is out of range", field=field)
    return value


def _split_on_keyword(line: str) -> Optional[Tuple[str, str]]:
    """``device <server:export> [mounted] on <path> ...``"""
    if " on " not in line:
        return None
    device_part, mount_part = line.split(" on ", 1)
    device_fields = device_part.split()
    mount_fields = mount_part.split()
    if len(device_fields) < 2 or not mount_fields:
        return None
    return device_fields[1], mount_fields[0]


def _fixed_columns(line: str) -> Optional[Tuple[str, str]]:
    parts = line.split()
    if len(parts) < LEGACY_MIN_FIELDS:
        return None
    return parts[LEGACY_DEVICE_COLUMN], parts[LEGACY_MOUNT_POINT_COLUMN]


# Tried in order; the first strategy that finds both tokens wins
DEVICE_LINE_STRATEGIES: List[Callable[[str], Optional[Tuple[str, str]]]] = [
    _split_on_keyword,
    _fixed_columns,
]


def parse_device_line(line: str) -> MountRecord:
    """Build an empty mount record from a ``device`` line.

    Raises:
        MountstatsParseError: if no supported layout yields both the
            ``server:export`` token and the mount point.
    """
    for strategy in DEVICE_LINE_STRATEGIES:
        tokens = strategy(line)
        if tokens is not None:
            break
    else:
        raise MountstatsParseError("invalid device line", line=line, field="device")

    server_export, mount_point = tokens
    if ":" in server_export:
        server, export = server_export.split(":", 1)
    else:
        server, export = server_export, "/"

    return MountRecord(
        device=server_export,
        mount_point=mount_point,
        server=server,
        export=export,
    )


def parse_events(parts: List[str]) -> EventCounters:
    """Parse the counters following the ``events:`` label."""
    if len(parts) < REQUIRED_EVENT_FIELDS:
        raise MountstatsParseError(
            f"events line has {len(parts)} counters, need at least {REQUIRED_EVENT_FIELDS}",
            field="events",
        )

    values = {
        name: parse_int(token, f"events.{name}")
        for name, token in zip(EVENT_FIELDS, parts)
    }
    return EventCounters(**values)


def parse_operation(name: str, stats: List[str]) -> OperationRecord:
    """Parse the counters of one per-op statistics line.

    Args:
        name: Operation name, e.g. ``READ``
        stats: Whitespace-separated counters following the colon

    Returns:
        OperationRecord; ``errors`` is 0 when the kernel omits it
    """
    if not name:
        raise MountstatsParseError("operation line without a name", field="operation")
    if len(stats) < MIN_OPERATION_FIELDS:
        raise MountstatsParseError(
            f"insufficient stats for operation {name}: got {len(stats)}, "
            f"need {MIN_OPERATION_FIELDS}",
            field=name,
        )

    values = {
        field: parse_int(token, f"{name}.{field}")
        for field, token in zip(OPERATION_FIELDS, stats)
    }
    return OperationRecord(name=name, **values)


def is_device_line(line: str) -> bool:
    """True when the first token of ``line`` is exactly ``device``."""
    tokens = line.split(maxsplit=1)
    return bool(tokens) and tokens[0] == "device"


class _ParseState:
    """Mounts collected by one ``parse`` call and the mount being filled."""

    def __init__(self):
        self.mounts: Dict[str, MountRecord] = {}
        self.current: Optional[MountRecord] = None


class MountstatsParser:
    """Line-oriented state machine over a mountstats stream.

    Only configuration lives on the instance. Every call to ``parse`` works
    on its own state, so one parser can be shared between threads as long
    as each thread passes its own stream.
    """

    def __init__(self, excluded_prefixes: Iterable[str] = EXCLUDED_PREFIXES):
        self.excluded_prefixes = tuple(excluded_prefixes)

    def parse(self, stream: Iterable[Union[str, bytes]]) -> Dict[str, MountRecord]:
        """Parse ``stream`` into a mapping of mount point to mount record.

        Byte lines are decoded as UTF-8, with undecodable bytes replaced.

        Raises:
            MountstatsParseError: on the first structural error; nothing
                parsed so far is returned.
        """
        state = _ParseState()

        for line_number, raw_line in enumerate(stream, start=1):
            if isinstance(raw_line, bytes):
                raw_line = raw_line.decode("utf-8", errors="replace")
            line = raw_line.strip()
            try:
                self._parse_line(state, line)
            except MountstatsParseError as e:
                raise MountstatsParseError(
                    e.message, line_number=line_number, line=line, field=e.field
                ) from e

        logger.debug(f"Parsed {len(state.mounts)} NFS mounts")
        return state.mounts

    def _parse_line(self, state: _ParseState, line: str) -> None:
        if is_device_line(line):
            if "nfs" in line:
                mount = parse_device_line(line)
                state.mounts[mount.mount_point] = mount
                state.current = mount
            else:
                # Statistics of other filesystems never belong to the previous NFS mount
                state.current = None
        elif state.current is not None:
            self._parse_stats_line(state.current, line)

    def _parse_stats_line(self, mount: MountRecord, line: str) -> None:
        if line.startswith("age:"):
            self._parse_age(mount, line)
        elif line.startswith("events:"):
            mount.events = parse_events(line.split()[1:])
        elif line.startswith("bytes:"):
            self._parse_bytes(mount, line)
        elif ":" in line and not line.startswith(self.excluded_prefixes):
            name, _, rest = line.partition(":")
            operation = parse_operation(name.strip(), rest.split())
            mount.operations[operation.name] = operation

    def _parse_age(self, mount: MountRecord, line: str) -> None:
        parts = line.split()
        if len(parts) < 2:
            raise MountstatsParseError("age line without a value", field="age")
        mount.age = parse_int(parts[1], "age")

    def _parse_bytes(self, mount: MountRecord, line: str) -> None:
        parts = line.split()
        if len(parts) < 6:
            raise MountstatsParseError(
                f"bytes line has {len(parts) - 1} counters, need at least 5",
                field="bytes",
            )
        mount.bytes_read = parse_int(parts[1], "bytes_read")
        mount.bytes_write = parse_int(parts[5], "bytes_write")


def parse(stream: Iterable[Union[str, bytes]]) -> Dict[str, MountRecord]:
    """Parse a mountstats stream (any iterable of lines)."""
    return MountstatsParser().parse(stream)


def parse_text(text: str) -> Dict[str, MountRecord]:
    """Parse mountstats content held in memory."""
    return parse(io.StringIO(text))


def parse_file(path: str = DEFAULT_MOUNTSTATS_PATH) -> Dict[str, MountRecord]:
    """Open ``path`` and parse it. I/O errors propagate as ``OSError``.

    The file is read as bytes: mount paths may hold bytes that are not
    valid UTF-8, and those must not stop the parse.
    """
    with open(path, "rb") as f:
        return parse(f)
