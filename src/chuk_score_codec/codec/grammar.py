"""
Token grammar - opcodes, flag bits and primitive operand codecs.

Shared verbatim by the Encoder and Decoder; any change here is a
format version change.

Layout (format version 1):
    HEADER        : version:u8, grid_id:u8, part_count:u8, ts_num:u8, ts_den:u8,
                    key:i8, title:str, meta_count:u8, (key:str, value:str)*
    PART_BEGIN    : clef:u8
    MEASURE_BEGIN : flags:u8 [ts_num:u8, ts_den:u8] [key:i8] [tempo:u16]
    VOICE_BEGIN   : -
    NOTE          : pitch_delta:varint, dur_idx:u8, flags:u8 [dynamics:u8] [artic:u8]
    CHORD_BEGIN   : root_pitch:u8, count:u8, dur_idx:u8, flags:u8 [dynamics:u8] [artic:u8]
    CHORD_NOTE    : pitch_delta_from_root:varint
    CHORD_END     : -
    REST          : dur_idx:u8
    VOICE_END / MEASURE_END / PART_END / END : -
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag

from chuk_score_codec.constants import INITIAL_PITCH, Articulation, Dynamics


class Opcode(IntEnum):
    """Tag byte of every token."""

    HEADER = 0x01
    PART_BEGIN = 0x02
    MEASURE_BEGIN = 0x03
    VOICE_BEGIN = 0x04
    NOTE = 0x05
    CHORD_BEGIN = 0x06
    CHORD_NOTE = 0x07
    CHORD_END = 0x08
    REST = 0x09
    VOICE_END = 0x0A
    MEASURE_END = 0x0B
    PART_END = 0x0C
    END = 0x0D


class MeasureFlag(IntFlag):
    """MEASURE_BEGIN delta bits; a set bit means the value follows."""

    TIME_SIGNATURE = 0x01
    KEY_SIGNATURE = 0x02
    TEMPO = 0x04


class EventFlag(IntFlag):
    """NOTE / CHORD_BEGIN attribute bits."""

    TIE = 0x01
    DYNAMICS = 0x02
    ARTICULATION = 0x04


MEASURE_FLAG_MASK = int(MeasureFlag.TIME_SIGNATURE | MeasureFlag.KEY_SIGNATURE | MeasureFlag.TEMPO)
EVENT_FLAG_MASK = int(EventFlag.TIE | EventFlag.DYNAMICS | EventFlag.ARTICULATION)

# Pitch deltas within this magnitude take one byte
SHORT_DELTA_LIMIT = 63
LONG_DELTA_MIN = -0x4000
LONG_DELTA_MAX = 0x3FFF


class StreamUnderflow(Exception):
    """Raised by TokenReader when an operand runs past the end of the buffer."""

    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__(f"Buffer ended at offset {offset}")


class TokenWriter:
    """Append-only operand writer over a bytearray."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def opcode(self, op: Opcode) -> None:
        self._buf.append(int(op))

    def u8(self, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"u8 operand out of range: {value}")
        self._buf.append(value)

    def i8(self, value: int) -> None:
        if not -0x80 <= value <= 0x7F:
            raise ValueError(f"i8 operand out of range: {value}")
        self._buf.append(value & 0xFF)

    def u16(self, value: int) -> None:
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"u16 operand out of range: {value}")
        self._buf += value.to_bytes(2, "big")

    def uvarint(self, value: int) -> None:
        """LEB128 unsigned varint."""
        if value < 0:
            raise ValueError(f"uvarint operand must be non-negative: {value}")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._buf.append(byte | 0x80)
            else:
                self._buf.append(byte)
                return

    def pitch_delta(self, delta: int) -> None:
        """One byte for |delta| <= 63, otherwise two bytes (15-bit two's complement)."""
        if -SHORT_DELTA_LIMIT <= delta <= SHORT_DELTA_LIMIT:
            self._buf.append(delta & 0x7F)
            return
        if not LONG_DELTA_MIN <= delta <= LONG_DELTA_MAX:
            raise ValueError(f"Pitch delta out of range: {delta}")
        raw = delta & 0x7FFF
        self._buf.append(0x80 | (raw >> 8))
        self._buf.append(raw & 0xFF)

    def string(self, text: str) -> None:
        data = text.encode("utf-8")
        self.uvarint(len(data))
        self._buf += data


class TokenReader:
    """Cursor over an immutable token buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.offset = 0

    def at_end(self) -> bool:
        return self.offset >= len(self._data)

    def remaining(self) -> int:
        return len(self._data) - self.offset

    def _take(self, count: int) -> bytes:
        if self.offset + count > len(self._data):
            raise StreamUnderflow(len(self._data))
        chunk = self._data[self.offset : self.offset + count]
        self.offset += count
        return chunk

    def u8(self) -> int:
        return self._take(1)[0]

    def i8(self) -> int:
        value = self.u8()
        return value - 0x100 if value & 0x80 else value

    def u16(self) -> int:
        return int.from_bytes(self._take(2), "big")

    def uvarint(self) -> int:
        result = 0
        shift = 0
        while True:
            byte = self.u8()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7
            if shift > 28:
                raise ValueError("uvarint longer than 5 bytes")

    def pitch_delta(self) -> int:
        first = self.u8()
        if not first & 0x80:
            return first - 0x80 if first & 0x40 else first
        raw = ((first & 0x7F) << 8) | self.u8()
        return raw - 0x8000 if raw & 0x4000 else raw

    def string(self) -> str:
        length = self.uvarint()
        return self._take(length).decode("utf-8")


@dataclass
class VoiceState:
    """
    Running values for one (part, voice index).

    Both passes start every voice of a part from these defaults and
    update them identically, so the stream needs no lookup table.
    """

    pitch: int = INITIAL_PITCH
    dynamics: Dynamics = Dynamics.NONE
    articulation: Articulation = Articulation.NONE
