"""
Tests for interface table acquisition. The sysctl path runs against a
fake libc.
"""

import ctypes
import errno
from types import SimpleNamespace

import pytest

from netrate import iflist
from netrate.cycle import run_cycle
from netrate.iflist import PREALLOC_BUFFER_BYTES, AcquisitionError, StubTable, SysctlReader, open_table
from netrate.records import RecordLayout, iter_observations


class TestStubTable:

    def test_buffer_decodes_to_configured_interfaces(self):
        table = StubTable(["en0", "en1"], seed=1)

        buffer, _ = table.read()

        assert [o.name for o in iter_observations(buffer)] == ["en0", "en1"]

    def test_capture_time_is_monotonic(self):
        table = StubTable(["en0"], seed=1)
        _, t1 = table.read()
        _, t2 = table.read()
        assert t2 >= t1

    def test_counters_wrap_and_totals_keep_growing(self, store, normalizer):
        table = StubTable(["en0"], seed=7)
        wrapped = False
        previous_raw = None
        totals = []

        for step in range(400):
            buffer, _ = table.read()
            (observation,) = iter_observations(buffer)
            if previous_raw is not None and observation.raw_in < previous_raw:
                wrapped = True
            previous_raw = observation.raw_in
            run_cycle(store, normalizer, buffer, float(step))
            totals.append(store.get("en0").total_in)

        assert wrapped
        assert totals == sorted(totals)

    def test_narrow_layout(self):
        layout = RecordLayout(counter_bits=16)
        table = StubTable(["en0"], layout=layout, seed=3)

        for _ in range(5):
            buffer, _ = table.read()
            (observation,) = iter_observations(buffer, layout)
            assert observation.raw_in < 1 << 16


class FakeLibc:
    """Stands in for libc; `sysctl` reports and copies out `data`."""

    def __init__(self, data: bytes, rc: int = 0):
        self.data = data
        self.rc = rc
        self.calls = []

    def sysctl(self, mib, namelen, buf, size_p, newp, newlen):
        self.calls.append(buf is None)
        if self.rc:
            ctypes.set_errno(errno.EPERM)
            return self.rc
        size = size_p._obj
        if buf is not None:
            ctypes.memmove(buf, self.data, len(self.data))
        size.value = len(self.data)
        return 0


@pytest.fixture
def fake_libc(monkeypatch):
    def install(libc):
        monkeypatch.setattr(iflist.ctypes.util, "find_library", lambda name: "libc.fake")
        monkeypatch.setattr(iflist.ctypes, "CDLL", lambda name, use_errno=False: libc)
        return libc
    return install


class TestSysctlReader:

    def test_table_larger_than_prealloc_comes_back_whole(self, fake_libc):
        data = bytes(range(256)) * 100
        assert len(data) > PREALLOC_BUFFER_BYTES
        libc = fake_libc(FakeLibc(data))

        buffer, _ = SysctlReader().read()

        assert buffer == data
        # sizing call first, then the read
        assert libc.calls == [True, False]

    def test_small_table_is_sliced_to_reported_size(self, fake_libc):
        fake_libc(FakeLibc(b"\x01" * 100))

        buffer, _ = SysctlReader().read()

        assert buffer == b"\x01" * 100

    def test_failed_sysctl_raises(self, fake_libc):
        fake_libc(FakeLibc(b"", rc=-1))

        with pytest.raises(AcquisitionError, match="NET_RT_IFLIST"):
            SysctlReader().read()

    def test_libc_without_sysctl(self, fake_libc):
        fake_libc(SimpleNamespace())

        with pytest.raises(AcquisitionError):
            SysctlReader()

    def test_libc_not_found(self, monkeypatch):
        monkeypatch.setattr(iflist.ctypes.util, "find_library", lambda name: None)

        with pytest.raises(AcquisitionError):
            SysctlReader()


class TestOpenTable:

    def test_stub_by_env(self, monkeypatch):
        monkeypatch.setenv("USE_IFLIST_STUB", "1")
        assert isinstance(open_table(), StubTable)

    def test_falls_back_to_stub_without_sysctl(self, monkeypatch):
        monkeypatch.setenv("USE_IFLIST_STUB", "0")
        monkeypatch.setattr(iflist.sys, "platform", "linux")
        assert isinstance(open_table(), StubTable)

    def test_freebsd_uses_stub(self, monkeypatch, caplog):
        monkeypatch.setenv("USE_IFLIST_STUB", "0")
        monkeypatch.setattr(iflist.sys, "platform", "freebsd13")

        with caplog.at_level("WARNING"):
            table = open_table()

        assert isinstance(table, StubTable)
        assert "freebsd13" in caplog.text

    def test_darwin_reads_kernel(self, monkeypatch, fake_libc):
        monkeypatch.setenv("USE_IFLIST_STUB", "0")
        monkeypatch.setattr(iflist.sys, "platform", "darwin")
        fake_libc(FakeLibc(b""))

        assert isinstance(open_table(), SysctlReader)
