"""
Score decoder - token stream → Score.

An explicit state machine over the token grammar. Every BEGIN opcode
pushes a frame recording the state to resume when its END arrives, so
the byte offset and current state are available at every failure
point. Running pitch, dynamics and articulation are re-accumulated per
(part, voice index) exactly as the encoder threads them.

The rebuilt Score is validated before it is returned; there is no
partial output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NoReturn

from chuk_score_codec.codec.grammar import (
    EVENT_FLAG_MASK,
    MEASURE_FLAG_MASK,
    EventFlag,
    MeasureFlag,
    Opcode,
    StreamUnderflow,
    TokenReader,
    VoiceState,
)
from chuk_score_codec.constants import (
    FORMAT_VERSION,
    MIDI_PITCH_MAX,
    MIDI_PITCH_MIN,
    Articulation,
    Clef,
    Dynamics,
)
from chuk_score_codec.core.rhythm import GRIDS_BY_ID, Duration, DurationGrid, KeySignature, TimeSignature
from chuk_score_codec.errors import ConsistencyCheckFailed, GrammarViolation, TruncatedStream
from chuk_score_codec.models.score import Chord, Event, Measure, Note, Part, Rest, Score, Voice
from chuk_score_codec.validation.validator import validate_score

logger = logging.getLogger(__name__)


class DecoderState(str, Enum):
    """Where the decoder is in the grammar."""

    EXPECT_HEADER = "ExpectHeader"
    EXPECT_PART = "ExpectPart"
    EXPECT_MEASURE = "ExpectMeasure"
    EXPECT_VOICE = "ExpectVoice"
    EXPECT_EVENT = "ExpectEvent"
    EXPECT_CHORD_NOTE = "ExpectChordNote"
    EXPECT_CHORD_END = "ExpectChordEnd"
    DONE = "Done"


LEGAL_OPCODES: dict[DecoderState, frozenset[Opcode]] = {
    DecoderState.EXPECT_HEADER: frozenset({Opcode.HEADER}),
    DecoderState.EXPECT_PART: frozenset({Opcode.PART_BEGIN, Opcode.END}),
    DecoderState.EXPECT_MEASURE: frozenset({Opcode.MEASURE_BEGIN, Opcode.PART_END}),
    DecoderState.EXPECT_VOICE: frozenset({Opcode.VOICE_BEGIN, Opcode.MEASURE_END}),
    DecoderState.EXPECT_EVENT: frozenset(
        {Opcode.NOTE, Opcode.CHORD_BEGIN, Opcode.REST, Opcode.VOICE_END}
    ),
    DecoderState.EXPECT_CHORD_NOTE: frozenset({Opcode.CHORD_NOTE}),
    DecoderState.EXPECT_CHORD_END: frozenset({Opcode.CHORD_END}),
    DecoderState.DONE: frozenset(),
}


@dataclass
class _Frame:
    """One open container: what it is, what it holds, where to resume."""

    kind: Opcode
    resume: DecoderState
    children: list[Any] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)


class _DecodeSession:
    """State for decoding a single buffer."""

    def __init__(self, data: bytes) -> None:
        self.reader = TokenReader(data)
        self.state = DecoderState.EXPECT_HEADER
        self.stack: list[_Frame] = []
        self.op_offset = 0
        self.grid: DurationGrid | None = None
        self.score: Score | None = None
        self.handlers = {
            Opcode.HEADER: self._on_header,
            Opcode.PART_BEGIN: self._on_part_begin,
            Opcode.MEASURE_BEGIN: self._on_measure_begin,
            Opcode.VOICE_BEGIN: self._on_voice_begin,
            Opcode.NOTE: self._on_note,
            Opcode.CHORD_BEGIN: self._on_chord_begin,
            Opcode.CHORD_NOTE: self._on_chord_note,
            Opcode.CHORD_END: self._on_chord_end,
            Opcode.REST: self._on_rest,
            Opcode.VOICE_END: self._on_voice_end,
            Opcode.MEASURE_END: self._on_measure_end,
            Opcode.PART_END: self._on_part_end,
            Opcode.END: self._on_end,
        }

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> Score:
        try:
            while self.state is not DecoderState.DONE:
                if self.reader.at_end():
                    raise TruncatedStream(
                        "Stream ended before END", self.reader.offset, self.state.value
                    )
                self.op_offset = self.reader.offset
                opcode = self._read_opcode()
                if opcode not in LEGAL_OPCODES[self.state]:
                    self._fail(f"{opcode.name} is not legal in state {self.state.value}")
                self.handlers[opcode]()
        except StreamUnderflow as exc:
            raise TruncatedStream(
                "Stream ended inside an operand", exc.offset, self.state.value
            ) from None

        if not self.reader.at_end():
            raise GrammarViolation(
                f"{self.reader.remaining()} trailing bytes after END",
                self.reader.offset,
                self.state.value,
            )
        assert self.score is not None
        return self.score

    def _read_opcode(self) -> Opcode:
        byte = self.reader.u8()
        try:
            return Opcode(byte)
        except ValueError:
            self._fail(f"Unknown opcode 0x{byte:02x}")

    def _fail(self, message: str) -> NoReturn:
        raise GrammarViolation(message, self.op_offset, self.state.value)

    def _push(self, kind: Opcode, resume: DecoderState, **attrs: Any) -> _Frame:
        frame = _Frame(kind=kind, resume=resume, attrs=attrs)
        self.stack.append(frame)
        return frame

    def _pop(self) -> _Frame:
        frame = self.stack.pop()
        self.state = frame.resume
        return frame

    @property
    def top(self) -> _Frame:
        return self.stack[-1]

    def _enclosing(self, kind: Opcode) -> _Frame:
        for frame in reversed(self.stack):
            if frame.kind is kind:
                return frame
        raise AssertionError(f"No open {kind.name} frame")

    # ------------------------------------------------------------------
    # Operand helpers
    # ------------------------------------------------------------------

    def _enum(self, enum_type: Any, value: int, label: str) -> Any:
        try:
            return enum_type(value)
        except ValueError:
            self._fail(f"Unknown {label} value {value}")

    def _time_signature(self) -> TimeSignature:
        ts = TimeSignature(self.reader.u8(), self.reader.u8())
        if not ts.is_supported:
            self._fail(f"Unsupported time signature {ts}")
        return ts

    def _string(self) -> str:
        try:
            return self.reader.string()
        except ValueError as exc:
            self._fail(f"Malformed string operand: {exc}")

    def _duration(self) -> Duration:
        assert self.grid is not None
        index = self.reader.u8()
        try:
            return self.grid.duration_at(index)
        except IndexError:
            self._fail(f"Duration index {index} outside grid '{self.grid.name}'")

    def _pitch(self, value: int) -> int:
        if not MIDI_PITCH_MIN <= value <= MIDI_PITCH_MAX:
            self._fail(f"Pitch {value} outside {MIDI_PITCH_MIN}-{MIDI_PITCH_MAX}")
        return value

    def _attributes(self, state: VoiceState) -> tuple[bool, Dynamics, Articulation]:
        """Read the flags byte and re-expand run-length markings."""
        flags = self.reader.u8()
        if flags & ~EVENT_FLAG_MASK:
            self._fail(f"Undefined event flag bits 0x{flags:02x}")
        if flags & EventFlag.DYNAMICS:
            state.dynamics = self._enum(Dynamics, self.reader.u8(), "dynamics")
        if flags & EventFlag.ARTICULATION:
            state.articulation = self._enum(Articulation, self.reader.u8(), "articulation")
        return bool(flags & EventFlag.TIE), state.dynamics, state.articulation

    def _voice_state(self) -> VoiceState:
        return self._enclosing(Opcode.VOICE_BEGIN).attrs["state"]

    def _append_event(self, event: Event) -> None:
        self._enclosing(Opcode.VOICE_BEGIN).children.append(event)

    # ------------------------------------------------------------------
    # Opcode handlers
    # ------------------------------------------------------------------

    def _on_header(self) -> None:
        version = self.reader.u8()
        if version != FORMAT_VERSION:
            self._fail(f"Unsupported format version {version}")
        grid_id = self.reader.u8()
        if grid_id not in GRIDS_BY_ID:
            self._fail(f"Unknown duration grid id {grid_id}")
        self.grid = GRIDS_BY_ID[grid_id]

        part_count = self.reader.u8()
        ts = self._time_signature()
        key = KeySignature(self.reader.i8())
        title = self._string()
        metadata = []
        for _ in range(self.reader.u8()):
            metadata.append((self._string(), self._string()))

        self._push(
            Opcode.HEADER,
            DecoderState.DONE,
            part_count=part_count,
            time_signature=ts,
            key_signature=key,
            title=title,
            metadata=tuple(metadata),
        )
        self.state = DecoderState.EXPECT_PART

    def _on_part_begin(self) -> None:
        root = self.top
        if len(root.children) >= root.attrs["part_count"]:
            self._fail(f"More parts than the {root.attrs['part_count']} declared in HEADER")
        clef = self._enum(Clef, self.reader.u8(), "clef")
        self._push(
            Opcode.PART_BEGIN,
            DecoderState.EXPECT_PART,
            clef=clef,
            voices={},
            time_signature=root.attrs["time_signature"],
            key_signature=root.attrs["key_signature"],
        )
        self.state = DecoderState.EXPECT_MEASURE

    def _on_measure_begin(self) -> None:
        part = self.top
        flags = self.reader.u8()
        if flags & ~MEASURE_FLAG_MASK:
            self._fail(f"Undefined measure flag bits 0x{flags:02x}")
        if flags & MeasureFlag.TIME_SIGNATURE:
            part.attrs["time_signature"] = self._time_signature()
        if flags & MeasureFlag.KEY_SIGNATURE:
            part.attrs["key_signature"] = KeySignature(self.reader.i8())
        tempo = self.reader.u16() if flags & MeasureFlag.TEMPO else None

        self._push(
            Opcode.MEASURE_BEGIN,
            DecoderState.EXPECT_MEASURE,
            time_signature=part.attrs["time_signature"],
            key_signature=part.attrs["key_signature"],
            tempo=tempo,
        )
        self.state = DecoderState.EXPECT_VOICE

    def _on_voice_begin(self) -> None:
        v_idx = len(self.top.children)
        voices = self._enclosing(Opcode.PART_BEGIN).attrs["voices"]
        state = voices.setdefault(v_idx, VoiceState())
        self._push(Opcode.VOICE_BEGIN, DecoderState.EXPECT_VOICE, state=state)
        self.state = DecoderState.EXPECT_EVENT

    def _on_note(self) -> None:
        state = self._voice_state()
        pitch = self._pitch(state.pitch + self.reader.pitch_delta())
        duration = self._duration()
        tie, dynamics, articulation = self._attributes(state)
        state.pitch = pitch
        self._append_event(Note(pitch, duration, tie, dynamics, articulation))

    def _on_chord_begin(self) -> None:
        state = self._voice_state()
        root = self._pitch(self.reader.u8())
        count = self.reader.u8()
        if count == 0:
            self._fail("Chord declares no pitches")
        duration = self._duration()
        tie, dynamics, articulation = self._attributes(state)
        state.pitch = root

        frame = self._push(
            Opcode.CHORD_BEGIN,
            DecoderState.EXPECT_EVENT,
            count=count,
            duration=duration,
            tie=tie,
            dynamics=dynamics,
            articulation=articulation,
        )
        frame.children.append(root)
        self.state = (
            DecoderState.EXPECT_CHORD_NOTE if count > 1 else DecoderState.EXPECT_CHORD_END
        )

    def _on_chord_note(self) -> None:
        chord = self.top
        delta = self.reader.pitch_delta()
        pitch = self._pitch(chord.children[0] + delta)
        if pitch <= chord.children[-1]:
            self._fail(f"Chord member {pitch} does not ascend from {chord.children[-1]}")
        chord.children.append(pitch)
        if len(chord.children) == chord.attrs["count"]:
            self.state = DecoderState.EXPECT_CHORD_END

    def _on_chord_end(self) -> None:
        frame = self._pop()
        self._append_event(
            Chord(
                pitches=tuple(frame.children),
                duration=frame.attrs["duration"],
                tie=frame.attrs["tie"],
                dynamics=frame.attrs["dynamics"],
                articulation=frame.attrs["articulation"],
            )
        )

    def _on_rest(self) -> None:
        self._append_event(Rest(self._duration()))

    def _on_voice_end(self) -> None:
        if not self.top.children:
            self._fail("VOICE_END closes a voice with no events")
        frame = self._pop()
        self.top.children.append(Voice(tuple(frame.children)))

    def _on_measure_end(self) -> None:
        if not self.top.children:
            self._fail("MEASURE_END closes a measure with no voices")
        frame = self._pop()
        part = self.top
        part.children.append(
            Measure(
                index=len(part.children),
                voices=tuple(frame.children),
                time_signature=frame.attrs["time_signature"],
                key_signature=frame.attrs["key_signature"],
                tempo=frame.attrs["tempo"],
            )
        )

    def _on_part_end(self) -> None:
        frame = self._pop()
        root = self.top
        root.children.append(
            Part(index=len(root.children), measures=tuple(frame.children), clef=frame.attrs["clef"])
        )

    def _on_end(self) -> None:
        root = self.top
        declared = root.attrs["part_count"]
        if len(root.children) != declared:
            self._fail(f"HEADER declares {declared} parts but {len(root.children)} were sent")
        frame = self._pop()
        self.score = Score(
            parts=tuple(frame.children),
            time_signature=frame.attrs["time_signature"],
            key_signature=frame.attrs["key_signature"],
            title=frame.attrs["title"],
            metadata=frame.attrs["metadata"],
        )


class ScoreDecoder:
    """
    Decodes token streams back into validated Scores.

    Stateless between calls; each decode builds its own session, so one
    decoder may be shared across threads.
    """

    def decode(self, data: bytes) -> Score:
        """
        Decode a token stream.

        Args:
            data: A complete stream, HEADER through END

        Returns:
            The reconstructed Score

        Raises:
            TruncatedStream: if the buffer ends before END
            GrammarViolation: if an opcode or operand is illegal where it appears
            ConsistencyCheckFailed: if the rebuilt Score fails validation
        """
        session = _DecodeSession(data)
        score = session.run()
        assert session.grid is not None

        result = validate_score(score, session.grid)
        if not result.is_valid:
            raise ConsistencyCheckFailed(result.errors, len(data), session.state.value)

        logger.debug(
            f"Decoded {len(data)} bytes into {len(score.parts)} parts "
            f"({score.event_count()} events) on {session.grid.name}"
        )
        return score


def decode_score(data: bytes) -> Score:
    """Convenience wrapper around ScoreDecoder().decode()."""
    return ScoreDecoder().decode(data)


def stream_grid(data: bytes) -> DurationGrid:
    """
    Read the duration grid a stream was encoded on, from its HEADER alone.

    Raises:
        TruncatedStream: if the buffer is too short to hold the grid id
        GrammarViolation: if the stream does not start with a valid HEADER
    """
    reader = TokenReader(data)
    state = DecoderState.EXPECT_HEADER.value
    try:
        if reader.u8() != Opcode.HEADER:
            raise GrammarViolation("Stream does not start with HEADER", 0, state)
        reader.u8()
        grid_id = reader.u8()
    except StreamUnderflow as exc:
        raise TruncatedStream("Stream ended inside HEADER", exc.offset, state) from None
    if grid_id not in GRIDS_BY_ID:
        raise GrammarViolation(f"Unknown duration grid id {grid_id}", 2, state)
    return GRIDS_BY_ID[grid_id]
