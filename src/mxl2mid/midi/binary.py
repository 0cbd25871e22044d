from __future__ import annotations

import struct

from mxl2mid.common.errors import MidiEncodingError

VLQ_MAX = 0x0FFFFFFF


def vlq_size(value: int) -> int:
    """Number of bytes encode_vlq() produces for value."""
    if value < 0 or value > VLQ_MAX:
        raise MidiEncodingError(f"Delta time out of range: {value}")
    n = 1
    while value >= 0x80:
        value >>= 7
        n += 1
    return n


def encode_vlq(value: int) -> bytes:
    """
    Encode value as a MIDI variable-length quantity.

    Big-endian groups of 7 bits; every byte but the last has its high bit set.
    Zero encodes as a single 0x00 byte.
    """
    if value < 0 or value > VLQ_MAX:
        raise MidiEncodingError(f"Delta time out of range: {value}")
    out = bytearray([value & 0x7F])
    value >>= 7
    while value:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.reverse()
    return bytes(out)


def decode_vlq(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a variable-length quantity at offset. Returns (value, next_offset)."""
    value = 0
    for i in range(4):
        pos = offset + i
        if pos >= len(data):
            raise MidiEncodingError("Truncated variable-length quantity.")
        byte = data[pos]
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, pos + 1
    raise MidiEncodingError("Variable-length quantity longer than 4 bytes.")


def u16be(value: int) -> bytes:
    try:
        return struct.pack(">H", value)
    except struct.error as err:
        raise MidiEncodingError(f"Value does not fit 16 bits: {value}") from err


def u32be(value: int) -> bytes:
    try:
        return struct.pack(">I", value)
    except struct.error as err:
        raise MidiEncodingError(f"Value does not fit 32 bits: {value}") from err
