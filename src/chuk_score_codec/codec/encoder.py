"""
Score encoder - Score → token stream.

Walks a validated (and possibly reduced) Score in stream order and
emits the token grammar. Compactness comes from three running-value
conventions, all threaded explicitly per (part, voice index):
- MEASURE_BEGIN carries only signature/tempo deltas
- NOTE pitches are deltas from the voice's previous sounding pitch
- dynamics/articulation bytes appear only when the value changes

Deterministic: same Score + same plan → byte-identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import assert_never

from chuk_score_codec.codec.grammar import (
    EventFlag,
    MeasureFlag,
    Opcode,
    TokenWriter,
    VoiceState,
)
from chuk_score_codec.codec.reductions import ReductionPlan, apply_plan
from chuk_score_codec.constants import FORMAT_VERSION
from chuk_score_codec.core.rhythm import GRID_64, Duration, DurationGrid, KeySignature, TimeSignature
from chuk_score_codec.errors import InvalidScore
from chuk_score_codec.models.config import CodecConfig
from chuk_score_codec.models.score import Chord, Event, Measure, Note, Part, Rest, Score
from chuk_score_codec.validation.validator import validate_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodeResult:
    """Token stream plus the reduction plan that produced it."""

    data: bytes
    plan: ReductionPlan

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def tier(self) -> int:
        return self.plan.tier


class ScoreEncoder:
    """
    Encodes scores onto one duration grid.

    The grid's id goes into HEADER; every dur_idx indexes that grid.
    """

    def __init__(self, grid: DurationGrid = GRID_64) -> None:
        self.grid = grid

    def encode(self, score: Score) -> bytes:
        """
        Encode a score.

        Args:
            score: Score whose durations lie on this encoder's grid

        Returns:
            The token stream

        Raises:
            InvalidScore: if the score violates the model invariants
        """
        result = validate_score(score, self.grid)
        if not result.is_valid:
            raise InvalidScore(result.errors)

        writer = TokenWriter()
        self._write_header(writer, score)
        for part in score.parts:
            self._write_part(writer, part, score)
        writer.opcode(Opcode.END)

        logger.debug(f"Encoded {len(score.parts)} parts into {len(writer)} bytes on {self.grid.name}")
        return writer.getvalue()

    def _write_header(self, writer: TokenWriter, score: Score) -> None:
        writer.opcode(Opcode.HEADER)
        writer.u8(FORMAT_VERSION)
        writer.u8(self.grid.grid_id)
        writer.u8(len(score.parts))
        writer.u8(score.time_signature.numerator)
        writer.u8(score.time_signature.denominator)
        writer.i8(score.key_signature.fifths)
        writer.string(score.title)
        writer.u8(len(score.metadata))
        for key, value in score.metadata:
            writer.string(key)
            writer.string(value)

    def _write_part(self, writer: TokenWriter, part: Part, score: Score) -> None:
        writer.opcode(Opcode.PART_BEGIN)
        writer.u8(int(part.clef))

        states: dict[int, VoiceState] = {}
        prev_ts = score.time_signature
        prev_key = score.key_signature
        for measure in part.measures:
            self._write_measure_begin(writer, measure, prev_ts, prev_key)
            prev_ts = measure.time_signature
            prev_key = measure.key_signature

            for v_idx, voice in enumerate(measure.voices):
                state = states.setdefault(v_idx, VoiceState())
                writer.opcode(Opcode.VOICE_BEGIN)
                for event in voice.events:
                    self._write_event(writer, event, state)
                writer.opcode(Opcode.VOICE_END)

            writer.opcode(Opcode.MEASURE_END)
        writer.opcode(Opcode.PART_END)

    def _write_measure_begin(
        self,
        writer: TokenWriter,
        measure: Measure,
        prev_ts: TimeSignature,
        prev_key: KeySignature,
    ) -> None:
        flags = MeasureFlag(0)
        if measure.time_signature != prev_ts:
            flags |= MeasureFlag.TIME_SIGNATURE
        if measure.key_signature != prev_key:
            flags |= MeasureFlag.KEY_SIGNATURE
        if measure.tempo is not None:
            flags |= MeasureFlag.TEMPO

        writer.opcode(Opcode.MEASURE_BEGIN)
        writer.u8(int(flags))
        if flags & MeasureFlag.TIME_SIGNATURE:
            writer.u8(measure.time_signature.numerator)
            writer.u8(measure.time_signature.denominator)
        if flags & MeasureFlag.KEY_SIGNATURE:
            writer.i8(measure.key_signature.fifths)
        if flags & MeasureFlag.TEMPO:
            writer.u16(measure.tempo)

    def _write_event(self, writer: TokenWriter, event: Event, state: VoiceState) -> None:
        if isinstance(event, Note):
            writer.opcode(Opcode.NOTE)
            writer.pitch_delta(event.pitch - state.pitch)
            writer.u8(self._duration_index(event.duration))
            self._write_attributes(writer, event, state)
            state.pitch = event.pitch
        elif isinstance(event, Chord):
            root = event.root
            writer.opcode(Opcode.CHORD_BEGIN)
            writer.u8(root)
            writer.u8(len(event.pitches))
            writer.u8(self._duration_index(event.duration))
            self._write_attributes(writer, event, state)
            for pitch in event.pitches[1:]:
                writer.opcode(Opcode.CHORD_NOTE)
                writer.pitch_delta(pitch - root)
            writer.opcode(Opcode.CHORD_END)
            state.pitch = root
        elif isinstance(event, Rest):
            writer.opcode(Opcode.REST)
            writer.u8(self._duration_index(event.duration))
        else:
            assert_never(event)

    def _write_attributes(self, writer: TokenWriter, event: Note | Chord, state: VoiceState) -> None:
        """Flags byte plus whichever markings changed since the voice's last event."""
        flags = EventFlag(0)
        if event.tie:
            flags |= EventFlag.TIE
        if event.dynamics != state.dynamics:
            flags |= EventFlag.DYNAMICS
        if event.articulation != state.articulation:
            flags |= EventFlag.ARTICULATION

        writer.u8(int(flags))
        if flags & EventFlag.DYNAMICS:
            writer.u8(int(event.dynamics))
            state.dynamics = event.dynamics
        if flags & EventFlag.ARTICULATION:
            writer.u8(int(event.articulation))
            state.articulation = event.articulation

    def _duration_index(self, duration: Duration) -> int:
        index = self.grid.index_of(duration)
        if index is None:
            raise ValueError(f"Duration {duration.value} is not on grid '{self.grid.name}'")
        return index


def encode_score(
    score: Score,
    plan: ReductionPlan | None = None,
    config: CodecConfig | None = None,
) -> EncodeResult:
    """
    Encode a score under an explicit reduction plan.

    The input is validated on the fine grid before anything else, then
    reduced by the plan and encoded on the plan's grid. The input score
    is not modified.

    Args:
        score: Score to encode
        plan: Reductions to apply (default: none, lossless)
        config: Grid and policy settings

    Returns:
        EncodeResult with the stream and the plan actually used

    Raises:
        InvalidScore: if the input violates the model invariants
    """
    config = config or CodecConfig()
    plan = plan or ReductionPlan()

    result = validate_score(score, config.fine)
    if not result.is_valid:
        raise InvalidScore(result.errors)

    reduced = apply_plan(score, plan, config)
    data = ScoreEncoder(plan.grid(config)).encode(reduced)
    return EncodeResult(
        data=data,
        plan=ReductionPlan(steps=plan.steps, estimated_size=len(data), budget=plan.budget),
    )
