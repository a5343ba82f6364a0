"""
Core music primitives.

These are the exact-arithmetic building blocks the score model composes on:
- PitchClass: The 12 chromatic pitch classes (0-11)
- Duration: Note lengths as fractions of a whole note
- TimeSignature: Numerator over denominator
- KeySignature: Signed count of sharps/flats
- DurationGrid: Versioned table of legal quantized durations
"""

from chuk_score_codec.core.pitch import PitchClass, midi_from_step, spell_midi
from chuk_score_codec.core.rhythm import (
    GRID_16,
    GRID_32,
    GRID_64,
    GRIDS,
    GRIDS_BY_ID,
    Duration,
    DurationGrid,
    KeySignature,
    TimeSignature,
    get_grid,
)

__all__ = [
    # Pitch
    "PitchClass",
    "midi_from_step",
    "spell_midi",
    # Rhythm
    "Duration",
    "TimeSignature",
    "KeySignature",
    # Grids
    "DurationGrid",
    "GRID_16",
    "GRID_32",
    "GRID_64",
    "GRIDS",
    "GRIDS_BY_ID",
    "get_grid",
]
