"""
Pytest configuration and shared fixtures.
"""

import tempfile
from fractions import Fraction
from pathlib import Path

import pytest

from chuk_score_codec.constants import Articulation, Clef, Dynamics
from chuk_score_codec.core import Duration, KeySignature, TimeSignature
from chuk_score_codec.models import Chord, Measure, Note, Part, Rest, Score, Voice

Q = Duration.QUARTER
H = Duration.HALF
W = Duration.WHOLE
E = Duration.EIGHTH
DH = Duration.DOTTED_HALF
THREE_FOUR = TimeSignature(3, 4)
D_MAJOR = KeySignature(2)


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def twinkle_score() -> Score:
    """One part, one voice, 4/4: C4 C4 G4 G4 | A4 A4 G4 rest."""
    return Score(
        parts=(
            Part(
                index=0,
                measures=(
                    Measure(0, (Voice((Note(60, Q), Note(60, Q), Note(67, Q), Note(67, Q))),)),
                    Measure(1, (Voice((Note(69, Q), Note(69, Q), Note(67, Q), Rest(Q))),)),
                ),
            ),
        ),
    )


@pytest.fixture
def rich_score() -> Score:
    """
    Two parts exercising every stream feature.

    Polyphony, chords, dynamics, articulations, a cross-measure tie,
    tempo, and a time/key change at measure 2.
    """
    treble = Part(
        index=0,
        clef=Clef.TREBLE,
        measures=(
            Measure(
                0,
                (
                    Voice(
                        (
                            Note(72, Q, dynamics=Dynamics.MF, articulation=Articulation.ACCENT),
                            Note(74, Q, dynamics=Dynamics.MF),
                            Note(76, Q, tie=True, dynamics=Dynamics.MF),
                            Note(76, Q, dynamics=Dynamics.MF),
                        )
                    ),
                    Voice((Chord((60, 64, 67), H, dynamics=Dynamics.P), Rest(H))),
                ),
                tempo=96,
            ),
            Measure(
                1,
                (
                    Voice((Note(79, DH, tie=True, dynamics=Dynamics.F),)),
                    Voice((Rest(DH),)),
                ),
                time_signature=THREE_FOUR,
                key_signature=D_MAJOR,
            ),
            Measure(
                2,
                (
                    Voice(
                        (
                            Note(79, Q, dynamics=Dynamics.F),
                            Note(81, E, dynamics=Dynamics.F, articulation=Articulation.STACCATO),
                            Note(83, E, dynamics=Dynamics.F, articulation=Articulation.STACCATO),
                            Note(86, Q, dynamics=Dynamics.FF),
                        )
                    ),
                ),
                time_signature=THREE_FOUR,
                key_signature=D_MAJOR,
            ),
        ),
    )
    bass = Part(
        index=1,
        clef=Clef.BASS,
        measures=(
            Measure(0, (Voice((Note(48, W, dynamics=Dynamics.P),)),)),
            Measure(
                1,
                (Voice((Chord((43, 50), DH, dynamics=Dynamics.P),)),),
                time_signature=THREE_FOUR,
                key_signature=D_MAJOR,
            ),
            Measure(
                2,
                (Voice((Note(43, Q, dynamics=Dynamics.P), Note(38, H, dynamics=Dynamics.P))),),
                time_signature=THREE_FOUR,
                key_signature=D_MAJOR,
            ),
        ),
    )
    return Score(
        parts=(treble, bass),
        title="Study in D",
        metadata=(("composer", "Anon"), ("rights", "CC0")),
    )


@pytest.fixture
def pickup_score() -> Score:
    """3/4 with a one-quarter anacrusis."""
    return Score(
        parts=(
            Part(
                index=0,
                measures=(
                    Measure(0, (Voice((Note(67, Q),)),), time_signature=THREE_FOUR),
                    Measure(1, (Voice((Note(72, H), Note(71, Q))),), time_signature=THREE_FOUR),
                    Measure(2, (Voice((Chord((60, 64, 67), DH),)),), time_signature=THREE_FOUR),
                ),
            ),
        ),
        time_signature=THREE_FOUR,
    )


@pytest.fixture
def triplet_score() -> Score:
    """2/4: three eighth-note triplets then a quarter."""
    third = Duration(Fraction(1, 12))
    ts = TimeSignature(2, 4)
    return Score(
        parts=(
            Part(
                index=0,
                measures=(
                    Measure(
                        0,
                        (Voice((Note(60, third), Note(62, third), Note(64, third), Note(65, Q))),),
                        time_signature=ts,
                    ),
                ),
            ),
        ),
        time_signature=ts,
    )
