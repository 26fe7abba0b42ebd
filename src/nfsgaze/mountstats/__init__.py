"""Mountstats parsing module."""

from .models import EventCounters, MountRecord, OperationRecord
from .parser import (
    DEFAULT_MOUNTSTATS_PATH,
    MountstatsParseError,
    MountstatsParser,
    parse,
    parse_file,
    parse_text,
)

__all__ = [
    "DEFAULT_MOUNTSTATS_PATH",
    "EventCounters",
    "MountRecord",
    "MountstatsParseError",
    "MountstatsParser",
    "OperationRecord",
    "parse",
    "parse_file",
    "parse_text",
]
