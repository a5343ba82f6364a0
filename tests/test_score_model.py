"""
Tests for the score model.

Tests cover:
- Event construction and the Note | Chord | Rest union
- Voice lengths and measure nominal lengths
- Tie successors across measure boundaries
- Score iteration and summaries
"""

from dataclasses import FrozenInstanceError
from fractions import Fraction

import pytest

from chuk_score_codec.constants import Dynamics
from chuk_score_codec.core import Duration, TimeSignature
from chuk_score_codec.models import Chord, Measure, Note, Part, Rest, Score, Voice, sounding_pitches

Q = Duration.QUARTER


class TestEvents:
    """Tests for Note, Chord and Rest."""

    def test_note_defaults(self) -> None:
        """Notes default to no tie and unspecified markings."""
        note = Note(60, Q)
        assert not note.tie
        assert note.dynamics is Dynamics.NONE
        assert note.pitches == (60,)

    def test_chord_sorts_pitches(self) -> None:
        """Chord pitches are kept ascending; the lowest is the root."""
        chord = Chord((67, 60, 64), Q)
        assert chord.pitches == (60, 64, 67)
        assert chord.root == 60

    def test_chord_equality_ignores_input_order(self) -> None:
        assert Chord((64, 60), Q) == Chord((60, 64), Q)

    def test_frozen(self) -> None:
        """Events are immutable."""
        note = Note(60, Q)
        with pytest.raises(FrozenInstanceError):
            note.pitch = 61  # type: ignore[misc]

    def test_sounding_pitches(self) -> None:
        assert sounding_pitches(Rest(Q)) == ()
        assert sounding_pitches(Note(62, Q)) == (62,)
        assert sounding_pitches(Chord((60, 64), Q)) == (60, 64)


class TestVoiceAndMeasure:
    """Tests for lengths."""

    def test_voice_length(self) -> None:
        voice = Voice((Note(60, Q), Rest(Duration.EIGHTH), Note(62, Duration.EIGHTH)))
        assert voice.length == Fraction(1, 2)

    def test_empty_voice_length(self) -> None:
        assert Voice().length == 0

    def test_voice_accepts_list(self) -> None:
        """Sequences are normalized to tuples so voices stay hashable."""
        voice = Voice([Note(60, Q)])  # type: ignore[arg-type]
        assert isinstance(voice.events, tuple)
        hash(voice)

    def test_nominal_length(self) -> None:
        measure = Measure(0, (Voice((Rest(Duration.DOTTED_HALF),)),), TimeSignature(6, 8))
        assert measure.nominal_length == Fraction(3, 4)


class TestSuccessor:
    """Tests for Part.successor, the tie target lookup."""

    def _part(self) -> Part:
        return Part(
            index=0,
            measures=(
                Measure(0, (Voice((Note(60, Duration.HALF), Note(62, Duration.HALF, tie=True))),)),
                Measure(
                    1,
                    (
                        Voice((Note(62, Duration.WHOLE),)),
                        Voice((Rest(Duration.WHOLE),)),
                    ),
                ),
            ),
        )

    def test_within_measure(self) -> None:
        assert self._part().successor(0, 0, 0) == Note(62, Duration.HALF, tie=True)

    def test_across_measure(self) -> None:
        assert self._part().successor(0, 0, 1) == Note(62, Duration.WHOLE)

    def test_end_of_part(self) -> None:
        assert self._part().successor(1, 0, 0) is None

    def test_missing_voice_in_next_measure(self) -> None:
        part = self._part()
        two_voices = Part(0, (part.measures[1], Measure(1, (Voice((Rest(Duration.WHOLE),)),))))
        assert two_voices.successor(0, 1, 0) is None


class TestScore:
    """Tests for Score helpers."""

    def test_metadata_from_mapping(self) -> None:
        """Mappings are accepted and stored as ordered pairs."""
        score = Score(metadata={"composer": "Anon", "year": 1900})
        assert score.metadata == (("composer", "Anon"), ("year", "1900"))

    def test_iter_events_in_stream_order(self, twinkle_score: Score) -> None:
        positions = [(p, m, v, e) for p, m, v, e, _ in twinkle_score.iter_events()]
        assert positions[0] == (0, 0, 0, 0)
        assert positions[4] == (0, 1, 0, 0)
        assert len(positions) == 8

    def test_counts(self, rich_score: Score) -> None:
        """Chord members count as individual notes."""
        assert rich_score.event_count() == 16
        assert rich_score.note_count() == 17

    def test_summary(self, rich_score: Score) -> None:
        summary = rich_score.summary()
        assert summary["title"] == "Study in D"
        assert summary["parts"] == 2
        assert summary["measures"] == 3
        assert summary["max_voices"] == 2
        assert summary["pitch_range"] == (38, 86)

    def test_empty_summary(self) -> None:
        summary = Score().summary()
        assert summary["events"] == 0
        assert summary["pitch_range"] == (0, 0)
