"""
Pitch primitives - PitchClass and MIDI spelling helpers.

PitchClass represents the 12 chromatic pitches (octave-independent).
The codec stores only MIDI numbers; spelling is a MusicXML concern.
"""

from __future__ import annotations

from enum import IntEnum

# Display name mappings (module level to avoid IntEnum member issues)
_SHARP_NAMES: list[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
_FLAT_NAMES: list[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

# Semitone offset of each natural step above C
_STEP_SEMITONES: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}


class PitchClass(IntEnum):
    """
    The 12 chromatic pitch classes (0-11).

    Octave-independent - C4 and C5 are both PitchClass.C.
    Enharmonic equivalents share the same value (C# == Db == 1).
    """

    C = 0
    Cs = 1  # C# / Db
    D = 2
    Ds = 3  # D# / Eb
    E = 4
    F = 5
    Fs = 6  # F# / Gb
    G = 7
    Gs = 8  # G# / Ab
    A = 9
    As = 10  # A# / Bb
    B = 11

    def spell(self, prefer_flats: bool = False) -> str:
        """Get human-readable name."""
        names = _FLAT_NAMES if prefer_flats else _SHARP_NAMES
        return names[self.value]

    @classmethod
    def from_midi(cls, midi_note: int) -> PitchClass:
        """Extract pitch class from MIDI note number."""
        return cls(midi_note % 12)


def midi_from_step(step: str, alter: int, octave: int) -> int:
    """
    MIDI number for a MusicXML (step, alter, octave) triple.

    Args:
        step: Natural step letter, 'A'-'G'
        alter: Chromatic alteration in semitones
        octave: Scientific octave (C4 = middle C)

    Returns:
        MIDI note number (not range-checked)
    """
    try:
        base = _STEP_SEMITONES[step.upper()]
    except KeyError:
        raise ValueError(f"Unknown step: {step}") from None
    return (octave + 1) * 12 + base + alter


def spell_midi(midi_note: int, prefer_flats: bool = False) -> tuple[str, int, int]:
    """
    Spell a MIDI number as a (step, alter, octave) triple.

    Black keys are spelled as sharps unless prefer_flats is set.
    The octave follows the step, so B#/Cb never occur.
    """
    name = PitchClass.from_midi(midi_note).spell(prefer_flats)
    step = name[0]
    alter = 0
    if len(name) > 1:
        alter = 1 if name[1] == "#" else -1
    octave = (midi_note - _STEP_SEMITONES[step] - alter) // 12 - 1
    return step, alter, octave
