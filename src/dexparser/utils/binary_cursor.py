"""
Bounds-checked little-endian reader for instruction and event payloads.

Reads never raise. A read past the end of the buffer sets the sticky
``has_error`` flag and returns a zero value, so decoders can perform a run
of positional reads and check the flag once at the end.
"""

import struct
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

import base58

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")

ZERO_PUBKEY = "11111111111111111111111111111111"


class BinaryCursor:
    """Sequential reader over a byte buffer."""

    __slots__ = ("_buffer", "_offset", "has_error")

    def __init__(self, data: bytes = b""):
        self._buffer: Optional[bytes] = bytes(data)
        self._offset = 0
        self.has_error = False

    def reset(self, data: bytes) -> None:
        self._buffer = bytes(data)
        self._offset = 0
        self.has_error = False

    def release(self) -> None:
        """Drop the buffer reference so nothing leaks into the next checkout."""
        self._buffer = None
        self._offset = 0
        self.has_error = False

    @property
    def buffer(self) -> bytes:
        return self._buffer or b""

    @property
    def offset(self) -> int:
        return self._offset

    def remaining(self) -> int:
        return len(self.buffer) - self._offset

    def _take(self, length: int) -> Optional[bytes]:
        if self.has_error or length < 0 or self._offset + length > len(self.buffer):
            self.has_error = True
            return None
        chunk = self.buffer[self._offset:self._offset + length]
        self._offset += length
        return chunk

    def skip(self, length: int) -> None:
        self._take(length)

    def slice(self, length: int) -> bytes:
        """Peek ``length`` bytes without advancing."""
        if self._offset + length > len(self.buffer):
            self.has_error = True
            return b""
        return self.buffer[self._offset:self._offset + length]

    def read_fixed_array(self, length: int) -> bytes:
        chunk = self._take(length)
        return chunk if chunk is not None else bytes(max(length, 0))

    def read_u8(self) -> int:
        chunk = self._take(1)
        return chunk[0] if chunk is not None else 0

    def read_bool(self) -> bool:
        return self.read_u8() != 0

    def read_u16(self) -> int:
        chunk = self._take(2)
        return _U16.unpack(chunk)[0] if chunk is not None else 0

    def read_u32(self) -> int:
        chunk = self._take(4)
        return _U32.unpack(chunk)[0] if chunk is not None else 0

    def read_u64(self) -> int:
        chunk = self._take(8)
        return _U64.unpack(chunk)[0] if chunk is not None else 0

    def read_i64(self) -> int:
        chunk = self._take(8)
        return _I64.unpack(chunk)[0] if chunk is not None else 0

    def read_u128(self) -> Tuple[int, int]:
        """Return ``(hi, lo)`` 64-bit halves."""
        chunk = self._take(16)
        if chunk is None:
            return 0, 0
        lo, hi = struct.unpack("<QQ", chunk)
        return hi, lo

    # Convenience readers for arbitrary-precision amounts
    def read_u128_int(self) -> int:
        hi, lo = self.read_u128()
        return (hi << 64) | lo

    def read_string(self) -> str:
        length = self.read_u32()
        chunk = self._take(length)
        if chunk is None:
            return ""
        return chunk.decode("utf-8", errors="replace")

    def read_pubkey(self) -> str:
        chunk = self._take(32)
        if chunk is None:
            return ""
        return base58.b58encode(chunk).decode()


class CursorPool:
    """Thread-safe pool of reusable cursors."""

    def __init__(self, max_size: int = 64):
        self._free: List[BinaryCursor] = []
        self._lock = threading.Lock()
        self._max_size = max_size

    def checkout(self, data: bytes) -> BinaryCursor:
        with self._lock:
            cursor = self._free.pop() if self._free else None
        if cursor is None:
            cursor = BinaryCursor()
        cursor.reset(data)
        return cursor

    def checkin(self, cursor: BinaryCursor) -> None:
        cursor.release()
        with self._lock:
            if len(self._free) < self._max_size:
                self._free.append(cursor)

    def __len__(self) -> int:
        with self._lock:
            return len(self._free)


_pool = CursorPool()


@contextmanager
def cursor(data: bytes, pool: Optional[CursorPool] = None) -> Iterator[BinaryCursor]:
    """Check a cursor out of the pool and always hand it back."""
    pool = pool if pool is not None else _pool
    reader = pool.checkout(data)
    try:
        yield reader
    finally:
        pool.checkin(reader)
