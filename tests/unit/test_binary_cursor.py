"""Unit tests for BinaryCursor and CursorPool"""
import struct

import base58

from dexparser.utils.binary_cursor import BinaryCursor, CursorPool, cursor


class TestBinaryCursorReads:
    def test_little_endian_integers(self):
        data = bytes([7]) + struct.pack("<HIQq", 513, 70_000, 2**40 + 5, -42)
        reader = BinaryCursor(data)
        assert reader.read_u8() == 7
        assert reader.read_u16() == 513
        assert reader.read_u32() == 70_000
        assert reader.read_u64() == 2**40 + 5
        assert reader.read_i64() == -42
        assert reader.remaining() == 0
        assert not reader.has_error

    def test_u128_halves(self):
        reader = BinaryCursor(struct.pack("<QQ", 5, 3))
        hi, lo = reader.read_u128()
        assert (hi, lo) == (3, 5)

    def test_u128_int(self):
        reader = BinaryCursor(struct.pack("<QQ", 1, 1))
        assert reader.read_u128_int() == (1 << 64) | 1

    def test_string_and_pubkey(self):
        raw_key = bytes(range(32))
        data = struct.pack("<I", 5) + b"hello" + raw_key
        reader = BinaryCursor(data)
        assert reader.read_string() == "hello"
        assert reader.read_pubkey() == base58.b58encode(raw_key).decode()

    def test_bool(self):
        reader = BinaryCursor(bytes([0, 1, 2]))
        assert reader.read_bool() is False
        assert reader.read_bool() is True
        assert reader.read_bool() is True

    def test_slice_does_not_advance(self):
        reader = BinaryCursor(b"abcdef")
        assert reader.slice(3) == b"abc"
        assert reader.offset == 0
        reader.skip(2)
        assert reader.slice(2) == b"cd"


class TestBinaryCursorErrors:
    def test_read_past_end_sets_error_and_returns_zero(self):
        reader = BinaryCursor(b"\x01\x02")
        assert reader.read_u32() == 0
        assert reader.has_error

    def test_error_is_sticky(self):
        reader = BinaryCursor(b"\x01\x02\x03")
        reader.read_u32()
        # enough bytes for a u8, but the failed read poisons the cursor
        assert reader.read_u8() == 0
        assert reader.has_error

    def test_truncated_string(self):
        reader = BinaryCursor(struct.pack("<I", 10) + b"abc")
        assert reader.read_string() == ""
        assert reader.has_error

    def test_truncated_pubkey(self):
        reader = BinaryCursor(bytes(31))
        assert reader.read_pubkey() == ""
        assert reader.has_error

    def test_fixed_array_pads_on_error(self):
        reader = BinaryCursor(b"\x01")
        assert reader.read_fixed_array(4) == bytes(4)
        assert reader.has_error


class TestCursorPool:
    def test_context_returns_cursor_to_pool(self):
        pool = CursorPool()
        with cursor(b"\x01\x02", pool) as reader:
            assert reader.read_u8() == 1
        assert len(pool) == 1
        assert reader.buffer == b""
        assert reader.offset == 0

    def test_cursor_is_reused_and_reset(self):
        pool = CursorPool()
        with cursor(b"\xff", pool) as first:
            first.read_u32()
            assert first.has_error
        with cursor(b"\x05", pool) as second:
            assert second is first
            assert not second.has_error
            assert second.read_u8() == 5

    def test_released_on_exception(self):
        pool = CursorPool()
        try:
            with cursor(b"\x00", pool):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert len(pool) == 1

    def test_pool_size_is_capped(self):
        pool = CursorPool(max_size=1)
        a = pool.checkout(b"")
        b = pool.checkout(b"")
        pool.checkin(a)
        pool.checkin(b)
        assert len(pool) == 1
