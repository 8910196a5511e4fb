"""
Interface table acquisition.

We support two modes:

1. Real: read the kernel interface list with `sysctl(NET_RT_IFLIST)`
   through libc, on macOS (whose record layout `DARWIN_LAYOUT` describes).
2. Stub: generate a realistic buffer in-memory, with counters that
   advance and wrap at the configured width.

This lets you:
- run the collector on any machine
- flip USE_IFLIST_STUB=0 on a Mac and read real interfaces
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import random
import sys
import time
from typing import Dict, List, Optional, Tuple

from netrate.config import settings
from netrate.records import (
    DARWIN_LAYOUT,
    RTM_NEWADDR,
    RTM_NEWMADDR,
    RecordLayout,
    encode_ifinfo,
    encode_record,
)

logger = logging.getLogger(__name__)


class AcquisitionError(Exception):
    """Raised when the interface table cannot be read."""


# sysctl MIB for the routing-socket interface list
CTL_NET = 4
PF_ROUTE = 17
NET_RT_IFLIST = 3

PREALLOC_BUFFER_BYTES = 20 * 1024


# ---------------------------------------------------------------------------
# Real implementation: sysctl through libc
# ---------------------------------------------------------------------------


class SysctlReader:
    """
    Reads NET_RT_IFLIST, reusing one buffer that grows when the kernel asks
    for more room.
    """

    def __init__(self, prealloc: int = PREALLOC_BUFFER_BYTES):
        libc_name = ctypes.util.find_library("c")
        if libc_name is None:
            raise AcquisitionError("libc not found")
        self._libc = ctypes.CDLL(libc_name, use_errno=True)
        if not hasattr(self._libc, "sysctl"):
            raise AcquisitionError("libc has no sysctl")
        self._mib = (ctypes.c_int * 6)(CTL_NET, PF_ROUTE, 0, 0, NET_RT_IFLIST, 0)
        self._buffer = ctypes.create_string_buffer(prealloc)

    def _sysctl(self, buf, size: ctypes.c_size_t) -> None:
        rc = self._libc.sysctl(self._mib, 6, buf, ctypes.byref(size), None, ctypes.c_size_t(0))
        if rc != 0:
            errno = ctypes.get_errno()
            raise AcquisitionError(f"sysctl NET_RT_IFLIST failed: {os.strerror(errno)}")

    def read(self) -> Tuple[bytes, float]:
        size = ctypes.c_size_t(0)
        self._sysctl(None, size)
        if len(self._buffer) < size.value:
            logger.debug("Growing interface table buffer to %d bytes", size.value)
            self._buffer = ctypes.create_string_buffer(size.value)

        size = ctypes.c_size_t(len(self._buffer))
        self._sysctl(self._buffer, size)
        captured_at = time.monotonic()
        return self._buffer.raw[:size.value], captured_at


# ---------------------------------------------------------------------------
# Stub implementation: synthetic interfaces for demo purposes
# ---------------------------------------------------------------------------


class StubTable:
    """
    Fake interface table.

    Each read advances every interface's counters by a random amount,
    truncated to the layout's counter width so they wrap like the kernel's.
    Loopback, address and multicast records are included so the decoder's
    filters see the same mix as on a real host.
    """

    def __init__(self, names: List[str], layout: RecordLayout = DARWIN_LAYOUT, seed: Optional[int] = None):
        self.layout = layout
        self._rng = random.Random(seed)
        self._mask = (1 << layout.counter_bits) - 1
        self._counters: Dict[str, List[int]] = {}
        for name in names:
            # start near the top so a wrap shows up within a few minutes
            self._counters[name] = [
                (self._mask - self._rng.randint(10_000_000, 500_000_000)) & self._mask,
                self._rng.randint(1_000_000, 10_000_000),
            ]
        self._loopback = [0, 0]

    def read(self) -> Tuple[bytes, float]:
        records = []

        self._loopback[0] = (self._loopback[0] + self._rng.randint(100, 1_000)) & self._mask
        self._loopback[1] = self._loopback[0]
        records.append(encode_ifinfo("lo0", *self._loopback, loopback=True, index=1, layout=self.layout))

        for index, (name, counters) in enumerate(self._counters.items(), start=2):
            counters[0] = (counters[0] + self._rng.randint(100_000, 5_000_000)) & self._mask
            counters[1] = (counters[1] + self._rng.randint(10_000, 1_000_000)) & self._mask
            records.append(encode_ifinfo(name, counters[0], counters[1], index=index, layout=self.layout))
            records.append(encode_record(RTM_NEWADDR, bytes(16)))
            records.append(encode_record(RTM_NEWMADDR, bytes(8)))

        return b"".join(records), time.monotonic()


# ---------------------------------------------------------------------------
# Public API used by the collector
# ---------------------------------------------------------------------------


def open_table(layout: RecordLayout = DARWIN_LAYOUT):
    """
    Return an object whose `read()` yields `(buffer, captured_at)`.

    Decision logic:
    - If USE_IFLIST_STUB env var or settings.use_iflist_stub is true, use stub.
    - Else, on macOS, read the kernel.
    - Else, fall back to stub with a warning.
    """
    use_stub_env = os.getenv("USE_IFLIST_STUB")
    if use_stub_env is not None:
        use_stub = use_stub_env not in ("0", "false", "False")
    else:
        use_stub = settings.use_iflist_stub

    if use_stub:
        return StubTable(settings.stub_interfaces, layout)

    if sys.platform != "darwin":
        logger.warning("No interface record layout for %s, falling back to stub mode", sys.platform)
        return StubTable(settings.stub_interfaces, layout)

    return SysctlReader()
