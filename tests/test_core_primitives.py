"""
Tests for core music primitives.

Tests cover:
- PitchClass and MIDI spelling (pitch.py)
- Duration, TimeSignature, KeySignature (rhythm.py)
- DurationGrid tables, snapping and the grid registry (rhythm.py)
"""

from fractions import Fraction

import pytest

from chuk_score_codec.core import (
    GRID_16,
    GRID_32,
    GRID_64,
    GRIDS,
    GRIDS_BY_ID,
    Duration,
    KeySignature,
    PitchClass,
    TimeSignature,
    get_grid,
    midi_from_step,
    spell_midi,
)


class TestPitchClass:
    """Tests for PitchClass enum."""

    def test_pitch_values(self) -> None:
        """Pitch classes have correct values."""
        assert PitchClass.C == 0
        assert PitchClass.E == 4
        assert PitchClass.G == 7
        assert PitchClass.B == 11

    def test_from_midi(self) -> None:
        """Extract pitch class from MIDI note."""
        assert PitchClass.from_midi(60) == PitchClass.C
        assert PitchClass.from_midi(70) == PitchClass.As


class TestMidiSpelling:
    """Tests for MusicXML step/alter/octave conversion."""

    def test_midi_from_step(self) -> None:
        """Steps, alterations and octaves combine into MIDI numbers."""
        assert midi_from_step("C", 0, 4) == 60
        assert midi_from_step("A", 0, 4) == 69
        assert midi_from_step("F", 1, 4) == 66
        assert midi_from_step("B", -1, 3) == 58
        assert midi_from_step("C", -1, 4) == 59  # Cb4

    def test_unknown_step(self) -> None:
        """Unknown step letters are rejected."""
        with pytest.raises(ValueError):
            midi_from_step("X", 0, 4)

    def test_spell_naturals(self) -> None:
        """White keys spell without alteration."""
        assert spell_midi(60) == ("C", 0, 4)
        assert spell_midi(59) == ("B", 0, 3)
        assert spell_midi(0) == ("C", 0, -1)

    def test_spell_sharps_and_flats(self) -> None:
        """Black keys spell as sharps unless flats are preferred."""
        assert spell_midi(61) == ("C", 1, 4)
        assert spell_midi(61, prefer_flats=True) == ("D", -1, 4)

    def test_spelling_round_trips(self) -> None:
        """Every MIDI number survives spelling and re-reading."""
        for midi in range(128):
            for flats in (False, True):
                step, alter, octave = spell_midi(midi, flats)
                assert midi_from_step(step, alter, octave) == midi


class TestDuration:
    """Tests for Duration."""

    def test_named_values(self) -> None:
        """Named durations are fractions of a whole note."""
        assert Duration.QUARTER.value == Fraction(1, 4)
        assert Duration.DOTTED_QUARTER.value == Fraction(3, 8)
        assert Duration.EIGHTH_TRIPLET.value == Fraction(1, 12)

    def test_must_be_positive(self) -> None:
        """Zero and negative durations are rejected."""
        with pytest.raises(ValueError):
            Duration(Fraction(0))
        with pytest.raises(ValueError):
            Duration(Fraction(-1, 4))

    def test_coerces_to_fraction(self) -> None:
        """Integer input is stored as a Fraction."""
        assert Duration(1) == Duration.WHOLE

    def test_addition(self) -> None:
        """Durations add exactly."""
        assert Duration.EIGHTH + Duration.EIGHTH == Duration.QUARTER

    def test_str(self) -> None:
        """String names for common values."""
        assert str(Duration.QUARTER) == "quarter"
        assert str(Duration(Fraction(5, 64))) == "5/64 whole"


class TestTimeSignature:
    """Tests for TimeSignature."""

    def test_measure_length(self) -> None:
        """Measure length in whole notes."""
        assert TimeSignature(4, 4).measure_length == 1
        assert TimeSignature(6, 8).measure_length == Fraction(3, 4)
        assert TimeSignature(3, 4).measure_length == Fraction(3, 4)

    def test_supported(self) -> None:
        """Only power-of-two denominators up to 16 are supported."""
        assert TimeSignature(7, 8).is_supported
        assert TimeSignature(3, 16).is_supported
        assert not TimeSignature(3, 3).is_supported
        assert not TimeSignature(4, 32).is_supported
        assert not TimeSignature(0, 4).is_supported


class TestKeySignature:
    """Tests for KeySignature."""

    def test_prefers_flats(self) -> None:
        assert KeySignature(-3).prefers_flats
        assert not KeySignature(2).prefers_flats

    def test_str(self) -> None:
        assert str(KeySignature(0)) == "no accidentals"
        assert str(KeySignature(1)) == "1 sharp"
        assert str(KeySignature(-2)) == "2 flats"


class TestDurationGrid:
    """Tests for the versioned duration grids."""

    def test_table_sizes(self) -> None:
        """Tables hold every unit multiple plus the tuplet values."""
        assert len(GRID_64) == 192 + 7
        assert len(GRID_32) == 96 + 5
        assert len(GRID_16) == 48

    def test_table_is_sorted(self) -> None:
        """dur_idx order is ascending duration."""
        values = [GRID_64.duration_at(i).value for i in range(len(GRID_64))]
        assert values == sorted(values)

    def test_max_duration(self) -> None:
        """Every grid reaches three whole notes."""
        for grid in GRIDS.values():
            assert grid.max_duration == 3

    def test_membership(self) -> None:
        """Tuplets are on the fine grids only."""
        assert Duration.EIGHTH_TRIPLET in GRID_64
        assert Duration.EIGHTH_TRIPLET in GRID_32
        assert Duration.EIGHTH_TRIPLET not in GRID_16
        assert Duration.SIXTY_FOURTH not in GRID_32
        assert Duration.DOTTED_HALF in GRID_16
        assert Duration(4) not in GRID_64

    def test_index_round_trip(self) -> None:
        """index_of and duration_at are inverses."""
        for grid in GRIDS.values():
            for i in range(len(grid)):
                assert grid.index_of(grid.duration_at(i)) == i

    def test_index_of_off_grid(self) -> None:
        """Off-grid durations have no index."""
        assert GRID_16.index_of(Duration(Fraction(1, 5))) is None

    def test_duration_at_out_of_range(self) -> None:
        """Indices past the table raise."""
        with pytest.raises(IndexError):
            GRID_16.duration_at(48)

    def test_snap_rounds_half_up(self) -> None:
        """Positions round to the nearest unit; halves round up."""
        assert GRID_16.snap(Fraction(1, 32)) == Fraction(1, 16)
        assert GRID_16.snap(Fraction(1, 64)) == 0
        assert GRID_16.snap(Fraction(3, 64)) == Fraction(1, 16)
        assert GRID_16.snap(Fraction(1, 12)) == Fraction(1, 16)
        assert GRID_16.snap(Fraction(1, 6)) == Fraction(3, 16)

    def test_coarser(self) -> None:
        assert GRID_16.is_coarser_than(GRID_64)
        assert GRID_32.is_coarser_than(GRID_64)
        assert not GRID_64.is_coarser_than(GRID_16)

    def test_registry(self) -> None:
        """Grids are found by name and by wire id."""
        assert get_grid("grid64") is GRID_64
        assert GRIDS_BY_ID[1] is GRID_64
        assert GRIDS_BY_ID[2] is GRID_16
        assert GRIDS_BY_ID[3] is GRID_32
        with pytest.raises(ValueError, match="Unknown duration grid"):
            get_grid("grid7")
