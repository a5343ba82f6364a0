"""
Constants and enums for the score codec.

No magic numbers - use enums for every closed set that reaches the wire.
"""

from enum import IntEnum

# Binary format version written into HEADER. Any change to an opcode,
# operand layout or duration grid table bumps this.
FORMAT_VERSION = 1

# Reference pitch for the first NOTE delta of every voice (C4)
INITIAL_PITCH = 60

MIDI_PITCH_MIN = 0
MIDI_PITCH_MAX = 127

KEY_FIFTHS_MIN = -7
KEY_FIFTHS_MAX = 7

TEMPO_MIN = 1
TEMPO_MAX = 0xFFFF

# Time signature denominators the grids can express
SUPPORTED_DENOMINATORS = (1, 2, 4, 8, 16)

# Structural limits imposed by u8 operands
MAX_PARTS = 255
MAX_CHORD_SIZE = 255
MAX_METADATA_ENTRIES = 255


class Clef(IntEnum):
    """Clef carried by PART_BEGIN."""

    TREBLE = 0
    BASS = 1
    ALTO = 2
    TENOR = 3


class Dynamics(IntEnum):
    """
    Dynamics levels, softest to loudest.

    NONE means unspecified: no marking has been seen yet in the voice,
    or markings were dropped by a fidelity reduction.
    """

    NONE = 0
    PPP = 1
    PP = 2
    P = 3
    MP = 4
    MF = 5
    F = 6
    FF = 7
    FFF = 8

    @property
    def mark(self) -> str:
        """MusicXML element name (e.g. 'mf')."""
        return "" if self is Dynamics.NONE else self.name.lower()

    @classmethod
    def from_mark(cls, mark: str) -> "Dynamics":
        """Parse a marking like 'pp' or 'mf'."""
        try:
            return cls[mark.upper()]
        except KeyError:
            raise ValueError(f"Unknown dynamics marking: {mark}") from None


class Articulation(IntEnum):
    """Articulation markings."""

    NONE = 0
    ACCENT = 1
    STRONG_ACCENT = 2
    STACCATO = 3
    STACCATISSIMO = 4
    TENUTO = 5
    DETACHED_LEGATO = 6
    STRESS = 7

    @property
    def mark(self) -> str:
        """MusicXML element name (e.g. 'strong-accent')."""
        return "" if self is Articulation.NONE else self.name.lower().replace("_", "-")

    @classmethod
    def from_mark(cls, mark: str) -> "Articulation":
        """Parse a MusicXML articulation element name."""
        if mark == "spiccato":
            return cls.STACCATISSIMO
        try:
            return cls[mark.upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown articulation: {mark}") from None


# Tier-1 collapse onto a four-level scale
DEFAULT_COARSE_DYNAMICS: dict[Dynamics, Dynamics] = {
    Dynamics.NONE: Dynamics.NONE,
    Dynamics.PPP: Dynamics.PP,
    Dynamics.PP: Dynamics.PP,
    Dynamics.P: Dynamics.P,
    Dynamics.MP: Dynamics.P,
    Dynamics.MF: Dynamics.F,
    Dynamics.F: Dynamics.F,
    Dynamics.FF: Dynamics.FF,
    Dynamics.FFF: Dynamics.FF,
}


class ErrorMessages:
    """Standardized error messages."""

    UNKNOWN_GRID = "Unknown duration grid: '{grid}'."
    GRID_NOT_COARSER = "Coarse grid '{coarse}' must be coarser than fine grid '{fine}'."
    BUDGET_EXCEEDED = "Budget of {budget} bytes cannot be met; full reduction needs {required} bytes."
    INVALID_SCORE = "Score failed validation with {count} error(s): {first}"
