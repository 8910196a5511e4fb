"""
Interface-table record decoder.

The kernel hands us one flat buffer holding a concatenation of
variable-length routing-socket messages (`sysctl NET_RT_IFLIST`). Each
message starts with its own length and kind; interface-info messages
(`RTM_IFINFO`) carry the interface flags and byte counters, followed by a
link-layer address (`sockaddr_dl`) whose data area begins with the
interface name.

This module:
- describes where those fields live (`RecordLayout`)
- walks a buffer lazily and yields one `RawObservation` per usable record
- builds records back from values (`encode_ifinfo`), which the stub table
  and the tests use to produce realistic buffers

Every field is read through `struct` with an explicit bounds check, so a
truncated or lying buffer raises `MalformedBufferError` instead of reading
past the end.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator, Optional


# Message kinds (net/route.h)
RTM_NEWADDR = 0x0C
RTM_IFINFO = 0x0E
RTM_NEWMADDR = 0x0F

# Address family of a data-link sockaddr (sys/socket.h)
AF_LINK = 18

# Interface flags (net/if.h)
IFF_UP = 0x1
IFF_LOOPBACK = 0x8

# Every message begins with: u16 msglen, u8 version, u8 type
_PREFIX = struct.Struct("<HBB")

# sockaddr_dl: len, family, index, type, nlen, alen, slen
_SDL = struct.Struct("<BBHBBBB")


class MalformedBufferError(ValueError):
    """Raised when a record's declared length or fields run past the buffer."""


@dataclass(frozen=True)
class RecordLayout:
    """
    Byte offsets of the fields we need inside one interface-info message.

    The defaults match the 64-bit Darwin `struct if_msghdr` (112 bytes) with
    32-bit `if_data` counters.
    """

    header_size: int = 112
    flags_offset: int = 8
    index_offset: int = 12
    ibytes_offset: int = 56
    obytes_offset: int = 60
    counter_size: int = 4
    counter_bits: int = 32
    byte_order: str = "<"

    @property
    def counter_format(self) -> str:
        if self.counter_size == 4:
            return self.byte_order + "I"
        return self.byte_order + "Q"

    @property
    def min_ifinfo_size(self) -> int:
        # header plus the fixed part of the sockaddr_dl that follows it
        return self.header_size + _SDL.size


DARWIN_LAYOUT = RecordLayout()


@dataclass(frozen=True)
class RawObservation:
    """One interface as seen in a single read of the interface table."""

    name: str
    raw_in: int
    raw_out: int
    is_up: bool
    is_loopback: bool
    index: int = 0


# ---------------------------------------------------------------------------
# Bounds-checked field access
# ---------------------------------------------------------------------------


def _unpack(fmt: str, view: memoryview, offset: int, limit: int) -> tuple:
    size = struct.calcsize(fmt)
    if offset < 0 or offset + size > limit:
        raise MalformedBufferError(
            f"field of {size} bytes at offset {offset} exceeds limit {limit}"
        )
    return struct.unpack_from(fmt, view, offset)


def _decode_ifinfo(
    view: memoryview, start: int, end: int, layout: RecordLayout
) -> Optional[RawObservation]:
    """
    Decode the interface-info message occupying `view[start:end]`.

    Returns None when the record does not qualify (loopback, not a
    link-layer address, empty name).
    """
    if end - start < layout.min_ifinfo_size:
        raise MalformedBufferError(
            f"interface record at offset {start} is {end - start} bytes, "
            f"need at least {layout.min_ifinfo_size}"
        )

    order = layout.byte_order
    (flags,) = _unpack(order + "i", view, start + layout.flags_offset, end)
    if flags & IFF_LOOPBACK:
        return None

    sdl_start = start + layout.header_size
    _, family, sdl_index, _, nlen, _, _ = _unpack(
        order + "BBHBBBB", view, sdl_start, end
    )
    if family != AF_LINK:
        return None

    name_start = sdl_start + _SDL.size
    if name_start + nlen > end:
        raise MalformedBufferError(
            f"interface name of {nlen} bytes at offset {name_start} "
            f"overruns record ending at {end}"
        )
    name = bytes(view[name_start:name_start + nlen]).decode("utf-8", "surrogateescape")
    if not name:
        return None

    (index,) = _unpack(order + "H", view, start + layout.index_offset, end)
    (raw_in,) = _unpack(layout.counter_format, view, start + layout.ibytes_offset, end)
    (raw_out,) = _unpack(layout.counter_format, view, start + layout.obytes_offset, end)

    return RawObservation(
        name=name,
        raw_in=raw_in,
        raw_out=raw_out,
        is_up=bool(flags & IFF_UP),
        is_loopback=False,
        index=index or sdl_index,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def iter_observations(
    buffer: bytes, layout: RecordLayout = DARWIN_LAYOUT
) -> Iterator[RawObservation]:
    """
    Walk `buffer` record by record and yield qualifying interfaces.

    Records are skipped, in this order, when:
    1. their kind is not `RTM_IFINFO` (payload is not inspected)
    2. the interface is flagged loopback
    3. the trailing address is not a link-layer (`AF_LINK`) address
    4. the embedded interface name is empty

    The generator is lazy: observations before a malformed record are
    yielded before `MalformedBufferError` is raised.
    """
    view = memoryview(buffer)
    total = len(view)
    cursor = 0

    while cursor < total:
        if total - cursor < _PREFIX.size:
            raise MalformedBufferError(
                f"{total - cursor} trailing bytes at offset {cursor} "
                f"cannot hold a record header"
            )
        msglen, _, kind = struct.unpack_from(layout.byte_order + "HBB", view, cursor)
        if msglen < _PREFIX.size:
            raise MalformedBufferError(
                f"record at offset {cursor} declares length {msglen}"
            )
        end = cursor + msglen
        if end > total:
            raise MalformedBufferError(
                f"record at offset {cursor} declares length {msglen}, "
                f"only {total - cursor} bytes remain"
            )

        if kind == RTM_IFINFO:
            observation = _decode_ifinfo(view, cursor, end, layout)
            if observation is not None:
                yield observation

        cursor = end


# ---------------------------------------------------------------------------
# Encoding (stub table and tests)
# ---------------------------------------------------------------------------


def encode_record(kind: int, payload: bytes = b"", version: int = 5) -> bytes:
    """Build a non-interface message of the given kind around `payload`."""
    return _PREFIX.pack(_PREFIX.size + len(payload), version, kind) + payload


def encode_ifinfo(
    name: str,
    raw_in: int,
    raw_out: int,
    up: bool = True,
    loopback: bool = False,
    index: int = 1,
    family: int = AF_LINK,
    layout: RecordLayout = DARWIN_LAYOUT,
) -> bytes:
    """
    Build one `RTM_IFINFO` message as the kernel would lay it out.

    Counters are truncated to the layout's width, like the kernel's.
    """
    mask = (1 << layout.counter_bits) - 1
    name_bytes = name.encode("utf-8", "surrogateescape")

    flags = 0
    if up:
        flags |= IFF_UP
    if loopback:
        flags |= IFF_LOOPBACK

    # sockaddr_dl data area is at least 12 bytes; sdl_len covers it all
    data = name_bytes.ljust(12, b"\x00")
    sdl_len = _SDL.size + len(data)
    sdl = _SDL.pack(sdl_len, family, index, 6, len(name_bytes), 0, 0) + data

    header = bytearray(layout.header_size)
    msglen = layout.header_size + len(sdl)
    # round up to a 4-byte boundary the way the kernel pads messages
    msglen += -msglen % 4
    order = layout.byte_order
    struct.pack_into(order + "HBB", header, 0, msglen, 5, RTM_IFINFO)
    struct.pack_into(order + "i", header, layout.flags_offset, flags)
    struct.pack_into(order + "H", header, layout.index_offset, index)
    struct.pack_into(layout.counter_format, header, layout.ibytes_offset, raw_in & mask)
    struct.pack_into(layout.counter_format, header, layout.obytes_offset, raw_out & mask)

    record = bytes(header) + sdl
    return record.ljust(msglen, b"\x00")
