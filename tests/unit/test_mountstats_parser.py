"""
Unit tests for the mountstats parser.
"""

import io
import threading

import pytest

from nfsgaze.mountstats import MountstatsParseError, parse, parse_file, parse_text
from nfsgaze.mountstats.models import EventCounters, OperationRecord
from nfsgaze.mountstats.parser import (
    MountstatsParser,
    parse_device_line,
    parse_events,
    parse_int,
    parse_operation,
)

EVENTS = " ".join(str(i) for i in range(1, 28))


class TestDeviceLine:
    """Test mount boundary extraction."""

    def test_mounted_on_layout(self):
        """Test the layout the kernel prints today."""
        mount = parse_device_line(
            "device server:/export mounted on /mnt/nfs with fstype nfs4 statvers=1.1"
        )
        assert mount.device == "server:/export"
        assert mount.mount_point == "/mnt/nfs"
        assert mount.server == "server"
        assert mount.export == "/export"

    def test_bare_on_layout(self):
        """Test a device line with ``on`` directly after the device token."""
        mount = parse_device_line("device 10.0.0.1:/mnt/nfs on /mnt/nfs type nfs4 (rw)")
        assert mount.device == "10.0.0.1:/mnt/nfs"
        assert mount.mount_point == "/mnt/nfs"
        assert mount.server == "10.0.0.1"

    def test_fixed_column_fallback(self):
        """Test the legacy fixed-column layout without an ``on`` separator."""
        mount = parse_device_line("device srv:/vol mounted\ton /data with fstype nfs")
        assert mount.device == "srv:/vol"
        assert mount.mount_point == "/data"

    def test_export_defaults_to_root(self):
        """Test a device token without a colon."""
        mount = parse_device_line("device nfsserver mounted on /mnt/x with fstype nfs")
        assert mount.server == "nfsserver"
        assert mount.export == "/"

    def test_export_split_on_first_colon(self):
        """Test that only the first colon separates server from export."""
        mount = parse_device_line("device server:/vol:with:colons mounted on /m with fstype nfs")
        assert mount.server == "server"
        assert mount.export == "/vol:with:colons"

    def test_missing_mount_point(self):
        """Test that an unrecognised layout is rejected."""
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_device_line("device 10.0.0.1:/mnt/nfs type nfs4")
        assert exc_info.value.field == "device"

    def test_new_record_is_empty(self):
        """Test the defaults of a freshly opened mount."""
        mount = parse_device_line("device s:/e mounted on /m with fstype nfs")
        assert mount.age == 0
        assert mount.operations == {}
        assert mount.events == EventCounters()


class TestParseInt:
    """Test numeric field parsing."""

    def test_valid(self):
        assert parse_int("12345", "age") == 12345
        assert parse_int("-5", "age") == -5

    @pytest.mark.parametrize("token", ["abc", "1.5", "1_000", "", "0x10"])
    def test_invalid(self, token):
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_int(token, "READ.rtt")
        assert exc_info.value.field == "READ.rtt"

    def test_int64_bounds(self):
        assert parse_int(str(2 ** 63 - 1), "x") == 2 ** 63 - 1
        with pytest.raises(MountstatsParseError):
            parse_int(str(2 ** 63), "x")


class TestParseEvents:
    """Test the events vector."""

    def test_all_counters(self):
        events = parse_events(EVENTS.split())
        assert events.inode_revalidate == 1
        assert events.dentry_revalidate == 2
        assert events.vfs_open == 5
        assert events.delay == 25
        assert events.pnfs_read == 26
        assert events.pnfs_write == 27

    def test_pnfs_counters_optional(self):
        """Test that older kernels without pNFS counters are accepted."""
        events = parse_events(EVENTS.split()[:25])
        assert events.delay == 25
        assert events.pnfs_read == 0
        assert events.pnfs_write == 0

    def test_short_vector(self):
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_events(["1", "2", "3"])
        assert exc_info.value.field == "events"

    def test_invalid_counter_named(self):
        parts = EVENTS.split()
        parts[4] = "bogus"
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_events(parts)
        assert exc_info.value.field == "events.vfs_open"


class TestParseOperation:
    """Test per-op statistics lines."""

    def test_nine_fields(self):
        op = parse_operation("READ", "100 95 5 1024 2048 10 20 30 2".split())
        assert op == OperationRecord(
            name="READ", ops=100, ntrans=95, timeouts=5, bytes_sent=1024,
            bytes_recv=2048, queue_time=10, rtt=20, execute_time=30, errors=2,
        )

    def test_eight_fields_means_no_errors(self):
        op = parse_operation("WRITE", "50 50 0 512 0 5 15 25".split())
        assert op.ops == 50
        assert op.execute_time == 25
        assert op.errors == 0

    def test_too_few_fields(self):
        with pytest.raises(MountstatsParseError):
            parse_operation("READ", "1 2 3 4 5 6 7".split())

    def test_invalid_field_named(self):
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_operation("READ", "100 95 5 1024 2048 10 x 30 2".split())
        assert exc_info.value.field == "READ.rtt"

    def test_empty_name(self):
        with pytest.raises(MountstatsParseError):
            parse_operation("", "1 1 0 0 0 0 0 0 0".split())


class TestParse:
    """Test whole-stream parsing."""

    def test_single_mount_scenario(self):
        """Test the canonical one-mount example."""
        text = (
            "device 10.0.0.1:/mnt/nfs on /mnt/nfs type nfs4 (rw)\n"
            "age: 12345\n"
            f"events: {EVENTS}\n"
            "bytes: 100 0 0 0 200 0 0 0\n"
            "READ: 10 1 1 100 200 500 300 400 700\n"
        )
        mounts = parse(io.StringIO(text))

        assert list(mounts) == ["/mnt/nfs"]
        mount = mounts["/mnt/nfs"]
        assert mount.device == "10.0.0.1:/mnt/nfs"
        assert mount.age == 12345
        assert mount.bytes_read == 100
        assert mount.bytes_write == 200
        assert list(mount.operations) == ["READ"]
        assert mount.operations["READ"] == OperationRecord(
            name="READ", ops=10, ntrans=1, timeouts=1, bytes_sent=100,
            bytes_recv=200, queue_time=500, rtt=300, execute_time=400, errors=700,
        )

    def test_malformed_device_line_fails(self):
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_text("device 10.0.0.1:/mnt/nfs type nfs4\nage: 1\n")
        assert exc_info.value.line_number == 1

    def test_kernel_sample(self, mountstats_sample):
        """Test a realistic file with several filesystems."""
        mounts = parse_text(mountstats_sample)

        assert set(mounts) == {"/mnt/nfs", "/mnt/backup"}
        nfs = mounts["/mnt/nfs"]
        assert nfs.server == "server"
        assert nfs.age == 12345
        assert nfs.bytes_read == 1048576
        assert nfs.bytes_write == 2097152
        assert nfs.events.pnfs_write == 27
        assert set(nfs.operations) == {"NULL", "READ", "WRITE", "GETATTR", "COMMIT"}
        assert nfs.operations["WRITE"].errors == 1

        backup = mounts["/mnt/backup"]
        assert backup.age == 500
        assert backup.events == EventCounters()
        assert backup.operations["READ"].errors == 0

    def test_excluded_sections_ignored(self, mountstats_sample):
        """Test that opts/caps/xprt style lines never become operations."""
        nfs = parse_text(mountstats_sample)["/mnt/nfs"]
        for name in nfs.operations:
            assert not name.startswith(("opts", "caps", "xprt", "sec", "nfsv4", "impl_id", "RPC"))

    def test_preamble_ignored(self):
        text = (
            "READ: not a number\n"
            "device s:/e mounted on /m with fstype nfs\n"
            "READ: 1 1 0 0 0 0 0 0 0\n"
        )
        mounts = parse_text(text)
        assert mounts["/m"].operations["READ"].ops == 1

    def test_non_nfs_device_closes_mount(self):
        """Test that lines after a non-NFS device do not leak into the NFS mount."""
        text = (
            "device s:/e mounted on /m with fstype nfs\n"
            "age: 10\n"
            "device tmpfs mounted on /tmp with fstype tmpfs\n"
            "age: 99\n"
        )
        assert parse_text(text)["/m"].age == 10

    def test_last_operation_line_wins(self):
        text = (
            "device s:/e mounted on /m with fstype nfs\n"
            "READ: 1 1 0 0 0 0 0 0 0\n"
            "READ: 7 7 0 0 0 0 0 0 0\n"
        )
        assert parse_text(text)["/m"].operations["READ"].ops == 7

    def test_structural_error_aborts_whole_parse(self, mountstats_sample):
        """Test that no partial snapshot is returned."""
        broken = mountstats_sample + "\tGETATTR: 1 2 3\n"
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_text(broken)
        assert exc_info.value.line_number == len(broken.splitlines())
        assert exc_info.value.line == "GETATTR: 1 2 3"

    def test_short_bytes_line(self):
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_text("device s:/e mounted on /m with fstype nfs\nbytes: 1 2 3 4\n")
        assert exc_info.value.field == "bytes"

    def test_bad_age(self):
        with pytest.raises(MountstatsParseError) as exc_info:
            parse_text("device s:/e mounted on /m with fstype nfs\nage: soon\n")
        assert exc_info.value.field == "age"
        assert "line 2" in str(exc_info.value)

    def test_byte_lines(self):
        """Test that a binary stream is accepted."""
        data = b"device s:/e mounted on /m with fstype nfs\nage: 3\n"
        mounts = parse(io.BytesIO(data))
        assert mounts["/m"].age == 3

    def test_empty_stream(self):
        assert parse_text("") == {}

    def test_idempotent(self, mountstats_sample):
        assert parse_text(mountstats_sample) == parse_text(mountstats_sample)

    def test_parser_reuse_is_independent(self, mountstats_sample):
        """Test that one parser instance keeps nothing between calls."""
        parser = MountstatsParser()
        first = parser.parse(io.StringIO(mountstats_sample))
        second = parser.parse(io.StringIO("device s:/e mounted on /m with fstype nfs\n"))
        assert set(second) == {"/m"}
        assert "/mnt/nfs" in first
        assert "/mnt/nfs" not in second

    def test_parser_state_cleared_after_error(self):
        parser = MountstatsParser()
        with pytest.raises(MountstatsParseError):
            parser.parse(io.StringIO("device s:/e mounted on /m with fstype nfs\nage: x\n"))
        assert parser.parse(io.StringIO("age: 5\n")) == {}

    def test_device_token_must_be_exact(self):
        """Test that a line merely starting with ``device`` does not open a mount."""
        text = (
            "devices nfs mounted on /x with fstype nfs\n"
            "device s:/e mounted on /m with fstype nfs\n"
            "devicenfs: 1 1 0 0 0 0 0 0 0\n"
        )
        mounts = parse_text(text)
        assert list(mounts) == ["/m"]
        assert mounts["/m"].operations["devicenfs"].ops == 1

    def test_undecodable_bytes_replaced(self):
        data = (
            b"device /dev/x mounted on /caf\xe9 with fstype ext4\n"
            b"device s:/e mounted on /m\xff with fstype nfs\n"
            b"age: 9\n"
        )
        mounts = parse(io.BytesIO(data))
        assert list(mounts) == ["/m\ufffd"]
        assert mounts["/m\ufffd"].age == 9

    def test_shared_parser_across_threads(self):
        """Test that a parse paused mid-stream is unaffected by another parse on the same parser."""
        parser = MountstatsParser()
        first_line_done = threading.Event()
        other_parse_done = threading.Event()
        results = {}

        def paused_stream():
            yield "device a:/x mounted on /a with fstype nfs\n"
            first_line_done.set()
            other_parse_done.wait(timeout=5)
            yield "age: 42\n"

        def run_paused():
            results["a"] = parser.parse(paused_stream())

        worker = threading.Thread(target=run_paused)
        worker.start()
        assert first_line_done.wait(timeout=5)

        results["b"] = parser.parse(io.StringIO("device b:/y mounted on /b with fstype nfs\nage: 7\n"))
        other_parse_done.set()
        worker.join(timeout=5)

        assert set(results["a"]) == {"/a"}
        assert results["a"]["/a"].age == 42
        assert set(results["b"]) == {"/b"}
        assert results["b"]["/b"].age == 7


class TestParseFile:
    """Test the path wrapper."""

    def test_reads_file(self, mountstats_file):
        mounts = parse_file(str(mountstats_file))
        assert "/mnt/nfs" in mounts

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_file(str(tmp_path / "nope"))

    def test_non_utf8_mount_path(self, tmp_path, mountstats_sample):
        """Test that a non-UTF-8 byte on an unrelated mount does not stop the parse."""
        path = tmp_path / "mountstats"
        path.write_bytes(b"device /dev/x mounted on /caf\xe9 with fstype ext4\n"
                         + mountstats_sample.encode())

        mounts = parse_file(str(path))

        assert set(mounts) == {"/mnt/nfs", "/mnt/backup"}
        assert mounts["/mnt/nfs"].operations["READ"].ops == 100
