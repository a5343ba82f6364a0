"""
Score Validator - checks the score model invariants.

Validates:
- Part and measure indices are contiguous from 0
- Signatures, tempo and pitches lie in their encodable ranges
- Every voice fills its measure exactly (the first measure may be a pickup)
- Every duration lies on the active duration grid
- Chords are non-empty with no duplicate pitches
- Every tie lands on a same-pitch successor in the same voice

The same validator is the Encoder's precondition and the Decoder's
postcondition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chuk_score_codec.constants import (
    KEY_FIFTHS_MAX,
    KEY_FIFTHS_MIN,
    MAX_CHORD_SIZE,
    MAX_METADATA_ENTRIES,
    MAX_PARTS,
    MIDI_PITCH_MAX,
    MIDI_PITCH_MIN,
    TEMPO_MAX,
    TEMPO_MIN,
    Articulation,
    Clef,
    Dynamics,
)
from chuk_score_codec.core.rhythm import (
    GRID_64,
    Duration,
    DurationGrid,
    KeySignature,
    TimeSignature,
)
from chuk_score_codec.models.score import Chord, Event, Measure, Note, Part, Rest, Score


class ValidationSeverity(str, Enum):
    """Severity level for validation issues."""

    ERROR = "error"  # Prevents encoding
    WARNING = "warning"  # Encodable but suspicious


@dataclass(frozen=True)
class ScoreLocation:
    """Where in the score an issue was found."""

    part: int | None = None
    measure: int | None = None
    voice: int | None = None
    event: int | None = None

    def __str__(self) -> str:
        fields = [
            ("part", self.part),
            ("measure", self.measure),
            ("voice", self.voice),
            ("event", self.event),
        ]
        return "/".join(f"{name} {value}" for name, value in fields if value is not None) or "score"


@dataclass
class ValidationIssue:
    """A single validation issue."""

    severity: ValidationSeverity
    code: str
    message: str
    location: ScoreLocation

    def __str__(self) -> str:
        prefix = f"[{self.severity.value.upper()}]"
        return f"{prefix} {self.code}: {self.message} at {self.location}"


class ValidationResult:
    """Result of validating a score."""

    def __init__(self) -> None:
        self.issues: list[ValidationIssue] = []

    def add_error(self, code: str, message: str, location: ScoreLocation) -> None:
        """Add an error issue."""
        self.issues.append(ValidationIssue(ValidationSeverity.ERROR, code, message, location))

    def add_warning(self, code: str, message: str, location: ScoreLocation) -> None:
        """Add a warning issue."""
        self.issues.append(ValidationIssue(ValidationSeverity.WARNING, code, message, location))

    @property
    def is_valid(self) -> bool:
        """Return True if no errors (warnings are OK)."""
        return not any(i.severity == ValidationSeverity.ERROR for i in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        """Get all error issues."""
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        """Get all warning issues."""
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    def codes(self) -> set[str]:
        return {i.code for i in self.issues}

    def __bool__(self) -> bool:
        """Boolean conversion returns is_valid."""
        return self.is_valid

    def __str__(self) -> str:
        if not self.issues:
            return "Validation passed: no issues found"
        return "\n".join(str(issue) for issue in self.issues)


class ScoreValidator:
    """Validates a score against the model invariants for one duration grid."""

    def __init__(self, grid: DurationGrid = GRID_64) -> None:
        self.grid = grid

    def validate(self, score: Score) -> ValidationResult:
        """
        Validate a score.

        Args:
            score: The score to validate

        Returns:
            ValidationResult with any issues found
        """
        result = ValidationResult()

        self._validate_header(score, result)
        for position, part in enumerate(score.parts):
            self._validate_part(part, position, result)

        return result

    def _validate_header(self, score: Score, result: ValidationResult) -> None:
        """Validate composition-level fields."""
        where = ScoreLocation()
        self._check_time_signature(score.time_signature, where, result)
        self._check_key_signature(score.key_signature, where, result)

        if len(score.parts) > MAX_PARTS:
            result.add_error("TOO_MANY_PARTS", f"{len(score.parts)} parts exceed {MAX_PARTS}", where)
        if not score.parts:
            result.add_warning("NO_PARTS", "Score has no parts", where)
        if len(score.metadata) > MAX_METADATA_ENTRIES:
            result.add_error(
                "TOO_MUCH_METADATA",
                f"{len(score.metadata)} metadata entries exceed {MAX_METADATA_ENTRIES}",
                where,
            )

    def _validate_part(self, part: Part, position: int, result: ValidationResult) -> None:
        """Validate one part and everything below it."""
        where = ScoreLocation(part=position)
        if part.index != position:
            result.add_error(
                "PART_INDEX", f"Part at position {position} has index {part.index}", where
            )
        if not isinstance(part.clef, Clef):
            result.add_error("INVALID_CLEF", f"Unknown clef: {part.clef!r}", where)

        for m_pos, measure in enumerate(part.measures):
            if measure.index != m_pos:
                result.add_error(
                    "MEASURE_INDEX",
                    f"Measure at position {m_pos} has index {measure.index}",
                    ScoreLocation(part=position, measure=m_pos),
                )
            self._validate_measure(measure, position, m_pos, result)

        self._validate_ties(part, position, result)

    def _validate_measure(
        self, measure: Measure, part_pos: int, m_pos: int, result: ValidationResult
    ) -> None:
        """Validate measure attributes and voice lengths."""
        where = ScoreLocation(part=part_pos, measure=m_pos)
        ts_ok = self._check_time_signature(measure.time_signature, where, result)
        self._check_key_signature(measure.key_signature, where, result)

        if measure.tempo is not None and not TEMPO_MIN <= measure.tempo <= TEMPO_MAX:
            result.add_error(
                "INVALID_TEMPO", f"Tempo {measure.tempo} outside {TEMPO_MIN}-{TEMPO_MAX}", where
            )

        if not measure.voices:
            result.add_error("NO_VOICES", "Measure has no voices", where)
            return

        measurable = []
        for v_idx, voice in enumerate(measure.voices):
            v_where = ScoreLocation(part=part_pos, measure=m_pos, voice=v_idx)
            if not voice.events:
                result.add_error("EMPTY_VOICE", "Voice has no events", v_where)
                continue
            well_formed = [
                self._validate_event(
                    event,
                    ScoreLocation(part=part_pos, measure=m_pos, voice=v_idx, event=e_idx),
                    result,
                )
                for e_idx, event in enumerate(voice.events)
            ]
            if all(well_formed):
                measurable.append((v_idx, voice))

        if not ts_ok:
            return

        nominal = measure.nominal_length
        lengths = [voice.length for _, voice in measurable]
        if m_pos == 0:
            # Pickup: voices agree with each other and do not exceed nominal
            if len(set(lengths)) > 1:
                result.add_error(
                    "VOICE_LENGTH",
                    f"Pickup voices disagree on length: {sorted(set(lengths))}",
                    where,
                )
            for v_idx, voice in measurable:
                if voice.length > nominal:
                    result.add_error(
                        "VOICE_LENGTH",
                        f"Voice lasts {voice.length} but measure holds {nominal}",
                        ScoreLocation(part=part_pos, measure=m_pos, voice=v_idx),
                    )
            return

        for v_idx, voice in measurable:
            if voice.length != nominal:
                result.add_error(
                    "VOICE_LENGTH",
                    f"Voice lasts {voice.length} but measure holds {nominal}",
                    ScoreLocation(part=part_pos, measure=m_pos, voice=v_idx),
                )

    def _validate_event(self, event: Event, where: ScoreLocation, result: ValidationResult) -> bool:
        """
        Validate a single event.

        Returns False when the event has no usable duration, so the voice
        it belongs to cannot be measured.
        """
        if not isinstance(event, (Note, Chord, Rest)):
            result.add_error("UNKNOWN_EVENT", f"Unknown event type {type(event).__name__}", where)
            return False

        if not isinstance(event.duration, Duration):
            result.add_error(
                "INVALID_DURATION", f"Duration must be a Duration: {event.duration!r}", where
            )
            return False

        if event.duration not in self.grid:
            result.add_error(
                "OFF_GRID_DURATION",
                f"Duration {event.duration.value} is not on grid '{self.grid.name}'",
                where,
            )

        if isinstance(event, Rest):
            return True

        if isinstance(event, Chord):
            if not event.pitches:
                result.add_error("EMPTY_CHORD", "Chord has no pitches", where)
            if len(set(event.pitches)) != len(event.pitches):
                result.add_error("DUPLICATE_PITCH", f"Chord repeats a pitch: {event.pitches}", where)
            if len(event.pitches) > MAX_CHORD_SIZE:
                result.add_error(
                    "CHORD_TOO_LARGE", f"Chord has {len(event.pitches)} pitches", where
                )

        for pitch in event.pitches:
            if not MIDI_PITCH_MIN <= pitch <= MIDI_PITCH_MAX:
                result.add_error("PITCH_RANGE", f"Pitch {pitch} outside 0-127", where)

        if not isinstance(event.dynamics, Dynamics):
            result.add_error("INVALID_DYNAMICS", f"Unknown dynamics: {event.dynamics!r}", where)
        if not isinstance(event.articulation, Articulation):
            result.add_error(
                "INVALID_ARTICULATION", f"Unknown articulation: {event.articulation!r}", where
            )
        return True

    def _validate_ties(self, part: Part, part_pos: int, result: ValidationResult) -> None:
        """Every tie must reach a successor sounding the same pitches."""
        for m_pos, measure in enumerate(part.measures):
            for v_idx, voice in enumerate(measure.voices):
                for e_idx, event in enumerate(voice.events):
                    if not isinstance(event, (Note, Chord)) or not event.tie:
                        continue
                    where = ScoreLocation(part=part_pos, measure=m_pos, voice=v_idx, event=e_idx)
                    successor = part.successor(m_pos, v_idx, e_idx)
                    if not isinstance(successor, (Note, Chord)):
                        result.add_error("BROKEN_TIE", "Tie has no sounding successor", where)
                    elif successor.pitches != event.pitches:
                        result.add_error(
                            "BROKEN_TIE",
                            f"Tie from {event.pitches} lands on {successor.pitches}",
                            where,
                        )

    def _check_time_signature(
        self, ts: TimeSignature, where: ScoreLocation, result: ValidationResult
    ) -> bool:
        if not ts.is_supported:
            result.add_error("INVALID_TIME_SIGNATURE", f"Unsupported time signature {ts}", where)
            return False
        if ts.measure_length > self.grid.max_duration:
            result.add_error(
                "MEASURE_TOO_LONG",
                f"{ts} exceeds the longest duration on grid '{self.grid.name}'",
                where,
            )
            return False
        return True

    def _check_key_signature(
        self, key: KeySignature, where: ScoreLocation, result: ValidationResult
    ) -> None:
        if not KEY_FIFTHS_MIN <= key.fifths <= KEY_FIFTHS_MAX:
            result.add_error(
                "INVALID_KEY_SIGNATURE", f"Key signature {key.fifths} outside -7..7", where
            )


def validate_score(score: Score, grid: DurationGrid = GRID_64) -> ValidationResult:
    """
    Convenience function to validate a score.

    Args:
        score: The score to validate
        grid: Duration grid the score's durations must lie on

    Returns:
        ValidationResult with any issues found
    """
    validator = ScoreValidator(grid)
    return validator.validate(score)
