"""nfsgaze: NFS client statistics from the kernel's mountstats file."""

__version__ = "0.1.0"
