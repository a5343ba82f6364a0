"""
Rhythm primitives - Duration, TimeSignature, KeySignature, DurationGrid.

Time primitives for representing rhythmic values.
Uses Fraction of a whole note for exact subdivision representation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import ClassVar

from chuk_score_codec.constants import SUPPORTED_DENOMINATORS


@dataclass(frozen=True, order=True)
class Duration:
    """
    A rhythmic duration expressed as a fraction of a whole note.

    A quarter note is Fraction(1, 4) regardless of time signature.

    Immutable and hashable.
    """

    value: Fraction

    # Common durations (defined after class)
    WHOLE: ClassVar[Duration]
    HALF: ClassVar[Duration]
    QUARTER: ClassVar[Duration]
    EIGHTH: ClassVar[Duration]
    SIXTEENTH: ClassVar[Duration]
    THIRTY_SECOND: ClassVar[Duration]
    SIXTY_FOURTH: ClassVar[Duration]

    # Dotted versions
    DOTTED_HALF: ClassVar[Duration]
    DOTTED_QUARTER: ClassVar[Duration]
    DOTTED_EIGHTH: ClassVar[Duration]

    # Triplets
    QUARTER_TRIPLET: ClassVar[Duration]
    EIGHTH_TRIPLET: ClassVar[Duration]

    def __post_init__(self) -> None:
        if not isinstance(self.value, Fraction):
            object.__setattr__(self, "value", Fraction(self.value))
        if self.value <= 0:
            raise ValueError(f"Duration must be positive, got {self.value}")

    def __add__(self, other: Duration) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.value + other.value)

    def __str__(self) -> str:
        name_map = {
            Fraction(1): "whole",
            Fraction(1, 2): "half",
            Fraction(1, 4): "quarter",
            Fraction(1, 8): "eighth",
            Fraction(1, 16): "sixteenth",
            Fraction(1, 32): "32nd",
            Fraction(1, 64): "64th",
            Fraction(3, 4): "dotted half",
            Fraction(3, 8): "dotted quarter",
            Fraction(3, 16): "dotted eighth",
            Fraction(1, 6): "quarter triplet",
            Fraction(1, 12): "eighth triplet",
        }
        if self.value in name_map:
            return name_map[self.value]
        return f"{self.value} whole"

    def __repr__(self) -> str:
        for name in ["WHOLE", "HALF", "QUARTER", "EIGHTH", "SIXTEENTH", "THIRTY_SECOND"]:
            named = getattr(Duration, name, None)
            if isinstance(named, Duration) and named.value == self.value:
                return f"Duration.{name}"
        return f"Duration(Fraction({self.value.numerator}, {self.value.denominator}))"


# Define common durations
Duration.WHOLE = Duration(Fraction(1))
Duration.HALF = Duration(Fraction(1, 2))
Duration.QUARTER = Duration(Fraction(1, 4))
Duration.EIGHTH = Duration(Fraction(1, 8))
Duration.SIXTEENTH = Duration(Fraction(1, 16))
Duration.THIRTY_SECOND = Duration(Fraction(1, 32))
Duration.SIXTY_FOURTH = Duration(Fraction(1, 64))

# Dotted versions
Duration.DOTTED_HALF = Duration(Fraction(3, 4))
Duration.DOTTED_QUARTER = Duration(Fraction(3, 8))
Duration.DOTTED_EIGHTH = Duration(Fraction(3, 16))

# Triplets
Duration.QUARTER_TRIPLET = Duration(Fraction(1, 6))
Duration.EIGHTH_TRIPLET = Duration(Fraction(1, 12))


@dataclass(frozen=True)
class TimeSignature:
    """
    A time signature as numerator over denominator.

    Examples:
        TimeSignature(4, 4) = common time, one whole note per measure
        TimeSignature(6, 8) = three quarters per measure
    """

    numerator: int
    denominator: int

    # Common time signatures (defined after class)
    COMMON_TIME: ClassVar[TimeSignature]
    CUT_TIME: ClassVar[TimeSignature]
    WALTZ: ClassVar[TimeSignature]
    SIX_EIGHT: ClassVar[TimeSignature]

    @property
    def measure_length(self) -> Fraction:
        """Nominal length of one measure in whole notes."""
        return Fraction(self.numerator, self.denominator)

    @property
    def is_supported(self) -> bool:
        """Whether the signature fits the u8 operands and the duration grids."""
        return 0 < self.numerator <= 255 and self.denominator in SUPPORTED_DENOMINATORS

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


TimeSignature.COMMON_TIME = TimeSignature(4, 4)
TimeSignature.CUT_TIME = TimeSignature(2, 2)
TimeSignature.WALTZ = TimeSignature(3, 4)
TimeSignature.SIX_EIGHT = TimeSignature(6, 8)


@dataclass(frozen=True)
class KeySignature:
    """Signed count of sharps (positive) or flats (negative)."""

    fifths: int = 0

    @property
    def prefers_flats(self) -> bool:
        """Whether black keys are spelled as flats in this key."""
        return self.fifths < 0

    def __str__(self) -> str:
        if self.fifths == 0:
            return "no accidentals"
        kind = "sharp" if self.fifths > 0 else "flat"
        count = abs(self.fifths)
        return f"{count} {kind}{'s' if count > 1 else ''}"


@dataclass(frozen=True)
class DurationGrid:
    """
    A fixed, versioned table of legal quantized durations.

    The table holds every multiple of 1/resolution up to max_units, plus
    any tuplet values, sorted ascending. A duration's wire operand
    (dur_idx) is its position in this table, so changing any grid
    is a breaking format change.
    """

    name: str
    grid_id: int
    resolution: int
    max_units: int
    tuplet_values: tuple[Fraction, ...] = ()
    _table: tuple[Fraction, ...] = field(default=(), init=False, repr=False, compare=False)
    _index: dict[Fraction, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        values = {Fraction(k, self.resolution) for k in range(1, self.max_units + 1)}
        values.update(self.tuplet_values)
        table = tuple(sorted(values))
        if len(table) > 256:
            raise ValueError(f"Grid '{self.name}' has {len(table)} entries; u8 allows 256")
        object.__setattr__(self, "_table", table)
        object.__setattr__(self, "_index", {v: i for i, v in enumerate(table)})

    @property
    def max_duration(self) -> Fraction:
        return self._table[-1]

    @property
    def unit(self) -> Fraction:
        """Smallest non-tuplet step of the grid."""
        return Fraction(1, self.resolution)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, duration: object) -> bool:
        if isinstance(duration, Duration):
            return duration.value in self._index
        return False

    def index_of(self, duration: Duration) -> int | None:
        """Table index for a duration, or None when it is off-grid."""
        return self._index.get(duration.value)

    def duration_at(self, index: int) -> Duration:
        """Duration stored at a table index."""
        if not 0 <= index < len(self._table):
            raise IndexError(f"Duration index {index} outside grid '{self.name}'")
        return Duration(self._table[index])

    def snap(self, position: Fraction) -> Fraction:
        """Round a position to the nearest grid unit, halves rounding up."""
        units = math.floor(position * self.resolution + Fraction(1, 2))
        return Fraction(units, self.resolution)

    def is_coarser_than(self, other: DurationGrid) -> bool:
        return self.resolution < other.resolution


GRID_64 = DurationGrid(
    name="grid64",
    grid_id=1,
    resolution=64,
    max_units=192,
    tuplet_values=(
        Fraction(2, 3),
        Fraction(1, 3),
        Fraction(1, 6),
        Fraction(1, 12),
        Fraction(1, 24),
        Fraction(1, 48),
        Fraction(1, 96),
    ),
)
GRID_16 = DurationGrid(name="grid16", grid_id=2, resolution=16, max_units=48)
GRID_32 = DurationGrid(
    name="grid32",
    grid_id=3,
    resolution=32,
    max_units=96,
    tuplet_values=(
        Fraction(2, 3),
        Fraction(1, 3),
        Fraction(1, 6),
        Fraction(1, 12),
        Fraction(1, 24),
    ),
)

GRIDS: dict[str, DurationGrid] = {grid.name: grid for grid in (GRID_64, GRID_32, GRID_16)}
GRIDS_BY_ID: dict[int, DurationGrid] = {grid.grid_id: grid for grid in GRIDS.values()}


def get_grid(name: str) -> DurationGrid:
    """Look up a registered grid by name."""
    try:
        return GRIDS[name]
    except KeyError:
        raise ValueError(f"Unknown duration grid: '{name}'") from None
