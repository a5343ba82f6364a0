"""
Tests for the score encoder.

Tests cover:
- Exact byte layout for a small score
- MEASURE_BEGIN delta flags
- Run-length suppression of dynamics and articulation
- Pitch delta threading and chord encoding
- Determinism, input validation and plan-driven encoding
"""

import pytest

from chuk_score_codec.codec import (
    EventFlag,
    MeasureFlag,
    Opcode,
    ReductionPlan,
    ReductionStep,
    ScoreEncoder,
    TokenWriter,
    encode_score,
    stream_grid,
)
from chuk_score_codec.constants import Articulation, Clef, Dynamics
from chuk_score_codec.core import GRID_16, GRID_64, Duration, KeySignature, TimeSignature
from chuk_score_codec.errors import InvalidScore
from chuk_score_codec.models import Chord, Measure, Note, Part, Rest, Score, Voice

Q = Duration.QUARTER
W = Duration.WHOLE
QI = GRID_64.index_of(Q)
WI = GRID_64.index_of(W)


def _header(writer: TokenWriter, parts: int = 1, num: int = 4, den: int = 4, key: int = 0) -> None:
    writer.opcode(Opcode.HEADER)
    for value in (1, 1, parts, num, den):
        writer.u8(value)
    writer.i8(key)
    writer.string("")
    writer.u8(0)


def _one_note_score(*notes: Note) -> Score:
    return Score(parts=(Part(0, (Measure(0, (Voice(notes),)),)),))


class TestTwinkleLayout:
    """Byte-exact layout of a two-measure melody."""

    def test_exact_bytes(self, twinkle_score: Score) -> None:
        expected = TokenWriter()
        _header(expected)
        expected.opcode(Opcode.PART_BEGIN)
        expected.u8(Clef.TREBLE)
        for deltas, last_is_rest in (([0, 0, 7, 0], False), ([2, 0, -2], True)):
            expected.opcode(Opcode.MEASURE_BEGIN)
            expected.u8(0)
            expected.opcode(Opcode.VOICE_BEGIN)
            for delta in deltas:
                expected.opcode(Opcode.NOTE)
                expected.pitch_delta(delta)
                expected.u8(QI)
                expected.u8(0)
            if last_is_rest:
                expected.opcode(Opcode.REST)
                expected.u8(QI)
            expected.opcode(Opcode.VOICE_END)
            expected.opcode(Opcode.MEASURE_END)
        expected.opcode(Opcode.PART_END)
        expected.opcode(Opcode.END)

        data = ScoreEncoder().encode(twinkle_score)
        assert data == expected.getvalue()
        assert len(data) == 53

    def test_second_measure_has_no_deltas(self, twinkle_score: Score) -> None:
        """Measure 2 repeats the signature, so its flags byte is zero."""
        data = ScoreEncoder().encode(twinkle_score)
        second = data.index(bytes([Opcode.MEASURE_END, Opcode.MEASURE_BEGIN])) + 1
        assert data[second + 1] == 0

    def test_ends_with_end(self, twinkle_score: Score) -> None:
        assert ScoreEncoder().encode(twinkle_score)[-1] == Opcode.END


class TestMeasureFlags:
    """Signature and tempo deltas."""

    def _bytes_after_first_measure_begin(self, score: Score) -> bytes:
        data = ScoreEncoder().encode(score)
        start = data.index(bytes([Opcode.PART_BEGIN, Clef.TREBLE, Opcode.MEASURE_BEGIN])) + 3
        return data[start:]

    def test_time_signature_change(self) -> None:
        ts = TimeSignature(3, 4)
        score = Score(
            parts=(
                Part(
                    0,
                    (
                        Measure(0, (Voice((Note(60, W),)),)),
                        Measure(1, (Voice((Rest(Duration.DOTTED_HALF),)),), time_signature=ts),
                    ),
                ),
            ),
        )
        data = ScoreEncoder().encode(score)
        tail = data[data.index(bytes([Opcode.MEASURE_END, Opcode.MEASURE_BEGIN])) + 2 :]
        assert tail[:3] == bytes([MeasureFlag.TIME_SIGNATURE, 3, 4])

    def test_first_measure_compares_against_header(self) -> None:
        """A measure-0 key that differs from the header is a delta."""
        score = Score(
            parts=(Part(0, (Measure(0, (Voice((Note(60, W),)),), key_signature=KeySignature(-3)),)),),
        )
        tail = self._bytes_after_first_measure_begin(score)
        assert tail[:2] == bytes([MeasureFlag.KEY_SIGNATURE, 0xFD])

    def test_tempo(self) -> None:
        score = Score(parts=(Part(0, (Measure(0, (Voice((Note(60, W),)),), tempo=120),)),))
        tail = self._bytes_after_first_measure_begin(score)
        assert tail[:3] == bytes([MeasureFlag.TEMPO, 0x00, 120])


class TestRunLengthMarkings:
    """Markings cost bytes only when they change."""

    def test_unchanged_dynamics_are_free(self) -> None:
        plain = _one_note_score(*(Note(60, Q) for _ in range(4)))
        marked = _one_note_score(*(Note(60, Q, dynamics=Dynamics.MF) for _ in range(4)))
        encoder = ScoreEncoder()
        assert len(encoder.encode(marked)) == len(encoder.encode(plain)) + 1

    def test_each_change_costs_one_byte(self) -> None:
        plain = _one_note_score(*(Note(60, Q) for _ in range(4)))
        marked = _one_note_score(
            Note(60, Q, articulation=Articulation.STACCATO),
            Note(60, Q),
            Note(60, Q, articulation=Articulation.STACCATO),
            Note(60, Q, articulation=Articulation.STACCATO),
        )
        encoder = ScoreEncoder()
        assert len(encoder.encode(marked)) == len(encoder.encode(plain)) + 3

    def test_flags_byte(self) -> None:
        score = _one_note_score(Note(60, W, dynamics=Dynamics.PP, articulation=Articulation.TENUTO))
        data = ScoreEncoder().encode(score)
        note = data.index(bytes([Opcode.VOICE_BEGIN, Opcode.NOTE])) + 1
        flags = EventFlag.DYNAMICS | EventFlag.ARTICULATION
        assert data[note : note + 6] == bytes(
            [Opcode.NOTE, 0, WI, flags, Dynamics.PP, Articulation.TENUTO]
        )

    def test_state_is_per_voice(self) -> None:
        """Each voice index threads its own running dynamics."""
        v0 = Voice((Note(60, W, dynamics=Dynamics.F),))
        v1 = Voice((Note(48, W, dynamics=Dynamics.F),))
        one = Score(parts=(Part(0, (Measure(0, (v0,)),)),))
        two = Score(parts=(Part(0, (Measure(0, (v0, v1)),)),))
        encoder = ScoreEncoder()
        # VOICE_BEGIN, NOTE(4), dynamics byte, VOICE_END
        assert len(encoder.encode(two)) == len(encoder.encode(one)) + 7


class TestPitches:
    """Pitch delta threading."""

    def test_large_leap_takes_two_bytes(self) -> None:
        encoder = ScoreEncoder()
        near = encoder.encode(_one_note_score(Note(61, W)))
        far = encoder.encode(_one_note_score(Note(127, W)))
        assert len(far) == len(near) + 1

    def test_chord_layout(self) -> None:
        score = _one_note_score(Chord((67, 60, 64), W))
        data = ScoreEncoder().encode(score)
        start = data.index(bytes([Opcode.VOICE_BEGIN, Opcode.CHORD_BEGIN])) + 1
        assert data[start : start + 10] == bytes(
            [
                Opcode.CHORD_BEGIN, 60, 3, WI, 0,
                Opcode.CHORD_NOTE, 4,
                Opcode.CHORD_NOTE, 7,
                Opcode.CHORD_END,
            ]
        )  # fmt: skip

    def test_chord_root_becomes_running_pitch(self) -> None:
        score = _one_note_score(Chord((50, 55), Duration.HALF), Note(52, Duration.HALF))
        data = ScoreEncoder().encode(score)
        note = data.index(bytes([Opcode.CHORD_END, Opcode.NOTE])) + 1
        assert data[note + 1] == 2


class TestEncoderContract:
    """Validation, determinism and plans."""

    def test_deterministic(self, rich_score: Score) -> None:
        encoder = ScoreEncoder()
        assert encoder.encode(rich_score) == encoder.encode(rich_score)

    def test_rejects_invalid_score(self) -> None:
        measures = (
            Measure(0, (Voice((Note(60, W),)),)),
            Measure(1, (Voice((Note(60, Q),)),)),
        )
        score = Score(parts=(Part(0, measures),))
        with pytest.raises(InvalidScore) as exc_info:
            ScoreEncoder().encode(score)
        assert exc_info.value.issues[0].code == "VOICE_LENGTH"

    def test_rejects_off_grid_for_grid(self, triplet_score: Score) -> None:
        with pytest.raises(InvalidScore):
            ScoreEncoder(GRID_16).encode(triplet_score)

    def test_encode_score_lossless(self, rich_score: Score) -> None:
        result = encode_score(rich_score)
        assert result.tier == 0
        assert result.plan.is_lossless
        assert result.size == len(result.data)
        assert result.data == ScoreEncoder().encode(rich_score)

    def test_encode_score_with_plan(self, triplet_score: Score) -> None:
        result = encode_score(triplet_score, ReductionPlan((ReductionStep.COARSEN_GRID,)))
        assert result.tier == 3
        assert stream_grid(result.data) is GRID_16

    def test_encode_score_validates_input(self) -> None:
        """Invalid input fails before any reduction could mask it."""
        score = _one_note_score(Note(60, Duration.HALF, tie=True), Note(62, Duration.HALF))
        with pytest.raises(InvalidScore):
            encode_score(score, ReductionPlan((ReductionStep.COARSEN_GRID,)))

    def test_header_carries_title_and_metadata(self, rich_score: Score) -> None:
        data = ScoreEncoder().encode(rich_score)
        assert b"Study in D" in data[:20]
        assert b"composer" in data
        assert data[3] == 2  # part_count
