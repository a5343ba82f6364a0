"""
Score model - the canonical representation every codec stage reads and writes.

Score → Part → Measure → Voice → Event, where Event is the closed union
Note | Chord | Rest. All entities are frozen: a Score is built once,
read by the opposing pass, and discarded. Reductions build new Scores
with dataclasses.replace.

Durations are fractions of a whole note. Dynamics and articulation
hold the effective (carried-forward) value at each event.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, TypeAlias

from chuk_score_codec.constants import Articulation, Clef, Dynamics
from chuk_score_codec.core.rhythm import Duration, KeySignature, TimeSignature


@dataclass(frozen=True)
class Note:
    """A single pitched event."""

    pitch: int  # MIDI note number (0-127)
    duration: Duration
    tie: bool = False  # Tied to the next event of the same voice
    dynamics: Dynamics = Dynamics.NONE
    articulation: Articulation = Articulation.NONE

    @property
    def pitches(self) -> tuple[int, ...]:
        return (self.pitch,)


@dataclass(frozen=True)
class Chord:
    """
    Simultaneous pitches sharing one onset and one duration.

    Pitches are kept in ascending order; the lowest is the root that
    chord members are delta-encoded against.
    """

    pitches: tuple[int, ...]
    duration: Duration
    tie: bool = False
    dynamics: Dynamics = Dynamics.NONE
    articulation: Articulation = Articulation.NONE

    def __post_init__(self) -> None:
        object.__setattr__(self, "pitches", tuple(sorted(self.pitches)))

    @property
    def root(self) -> int:
        return self.pitches[0]


@dataclass(frozen=True)
class Rest:
    """Silence for a duration."""

    duration: Duration


Event: TypeAlias = Note | Chord | Rest


def sounding_pitches(event: Event) -> tuple[int, ...]:
    """Pitches an event sounds; empty for rests."""
    if isinstance(event, Rest):
        return ()
    return event.pitches


@dataclass(frozen=True)
class Voice:
    """An independent time-ordered line of events within one measure."""

    events: tuple[Event, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "events", tuple(self.events))

    @property
    def length(self) -> Fraction:
        """Summed duration of all events."""
        return sum((e.duration.value for e in self.events), Fraction(0))


@dataclass(frozen=True)
class Measure:
    """
    A time-bounded container of one or more voices.

    time_signature and key_signature are the effective values (inherited
    unless changed here); tempo is set only where a tempo change occurs.
    """

    index: int
    voices: tuple[Voice, ...]
    time_signature: TimeSignature = TimeSignature.COMMON_TIME
    key_signature: KeySignature = KeySignature(0)
    tempo: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "voices", tuple(self.voices))

    @property
    def nominal_length(self) -> Fraction:
        return self.time_signature.measure_length


@dataclass(frozen=True)
class Part:
    """One staff or instrument line."""

    index: int
    measures: tuple[Measure, ...]
    clef: Clef = Clef.TREBLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "measures", tuple(self.measures))

    def successor(self, measure_pos: int, voice_idx: int, event_idx: int) -> Event | None:
        """
        The event following a given event in the same voice.

        Crosses into the first event of the same voice index in the next
        measure. Returns None when no such event exists.
        """
        events = self.measures[measure_pos].voices[voice_idx].events
        if event_idx + 1 < len(events):
            return events[event_idx + 1]
        if measure_pos + 1 >= len(self.measures):
            return None
        next_voices = self.measures[measure_pos + 1].voices
        if voice_idx >= len(next_voices) or not next_voices[voice_idx].events:
            return None
        return next_voices[voice_idx].events[0]


@dataclass(frozen=True)
class Score:
    """
    The root entity: ordered parts plus global signatures and metadata.

    title and metadata are opaque strings carried through unchanged.
    """

    parts: tuple[Part, ...] = ()
    time_signature: TimeSignature = TimeSignature.COMMON_TIME
    key_signature: KeySignature = KeySignature(0)
    title: str = ""
    metadata: tuple[tuple[str, str], ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(self.parts))
        metadata: Any = self.metadata
        if isinstance(metadata, Mapping):
            metadata = metadata.items()
        object.__setattr__(self, "metadata", tuple((str(k), str(v)) for k, v in metadata))

    def iter_events(self) -> Iterator[tuple[int, int, int, int, Event]]:
        """Yield (part, measure, voice, event index, event) in stream order."""
        for part in self.parts:
            for measure in part.measures:
                for v_idx, voice in enumerate(measure.voices):
                    for e_idx, event in enumerate(voice.events):
                        yield part.index, measure.index, v_idx, e_idx, event

    def event_count(self) -> int:
        return sum(1 for _ in self.iter_events())

    def note_count(self) -> int:
        """Total number of sounding pitches (chord members counted individually)."""
        return sum(len(sounding_pitches(e)) for *_, e in self.iter_events())

    def summary(self) -> dict[str, Any]:
        """Generate a summary for quick inspection."""
        pitches = [p for *_, e in self.iter_events() for p in sounding_pitches(e)]
        return {
            "title": self.title,
            "time_signature": str(self.time_signature),
            "key_signature": self.key_signature.fifths,
            "parts": len(self.parts),
            "measures": max((len(p.measures) for p in self.parts), default=0),
            "max_voices": max(
                (len(m.voices) for p in self.parts for m in p.measures),
                default=0,
            ),
            "events": self.event_count(),
            "notes": len(pitches),
            "pitch_range": (min(pitches), max(pitches)) if pitches else (0, 0),
        }
