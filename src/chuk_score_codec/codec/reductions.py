"""
Fidelity reductions - the lossy Score → Score transforms, one per step.

Steps apply cumulatively in a fixed order:
    Tier 1  coarsen_dynamics, then drop_dynamics
    Tier 2  drop_articulations
    Tier 3  coarsen_grid (re-quantize, repair ties, merge tied notes)
    Tier 4  drop_extra_voices

Pitch, Duration, structure, rest placement and ties are never touched
before Tier 3. Every transform is pure and builds a new Score.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from fractions import Fraction
from typing import Any

from chuk_score_codec.constants import Articulation, Dynamics
from chuk_score_codec.core.rhythm import Duration, DurationGrid
from chuk_score_codec.models.config import CodecConfig
from chuk_score_codec.models.score import (
    Event,
    Measure,
    Part,
    Rest,
    Score,
    Voice,
    sounding_pitches,
)

logger = logging.getLogger(__name__)


class ReductionStep(str, Enum):
    """One lossy reduction, in application order."""

    COARSEN_DYNAMICS = "coarsen_dynamics"
    DROP_DYNAMICS = "drop_dynamics"
    DROP_ARTICULATIONS = "drop_articulations"
    COARSEN_GRID = "coarsen_grid"
    DROP_EXTRA_VOICES = "drop_extra_voices"

    @property
    def tier(self) -> int:
        return _STEP_TIERS[self]


_STEP_TIERS: dict[ReductionStep, int] = {
    ReductionStep.COARSEN_DYNAMICS: 1,
    ReductionStep.DROP_DYNAMICS: 1,
    ReductionStep.DROP_ARTICULATIONS: 2,
    ReductionStep.COARSEN_GRID: 3,
    ReductionStep.DROP_EXTRA_VOICES: 4,
}

REDUCTION_ORDER: tuple[ReductionStep, ...] = tuple(ReductionStep)


@dataclass(frozen=True)
class ReductionPlan:
    """
    The reductions chosen for one encode, plus the size they produce.

    The same plan drives the encoder and the human-readable report, so
    the two always agree.
    """

    steps: tuple[ReductionStep, ...] = ()
    estimated_size: int | None = None
    budget: int | None = None

    def __post_init__(self) -> None:
        ordered = tuple(step for step in REDUCTION_ORDER if step in self.steps)
        object.__setattr__(self, "steps", ordered)

    @property
    def tier(self) -> int:
        """Highest tier applied (0 means lossless)."""
        return max((step.tier for step in self.steps), default=0)

    @property
    def is_lossless(self) -> bool:
        return not self.steps

    def grid(self, config: CodecConfig) -> DurationGrid:
        """Duration grid the encoder writes under this plan."""
        return config.coarse if ReductionStep.COARSEN_GRID in self.steps else config.fine

    def summary(self) -> dict[str, Any]:
        """Generate a summary for reporting."""
        return {
            "tier": self.tier,
            "lossless": self.is_lossless,
            "steps": [step.value for step in self.steps],
            "estimated_size": self.estimated_size,
            "budget": self.budget,
        }

    def __str__(self) -> str:
        if self.is_lossless:
            return f"tier 0 (lossless), {self.estimated_size} bytes"
        steps = ", ".join(step.value for step in self.steps)
        return f"tier {self.tier} ({steps}), {self.estimated_size} bytes"


def _map_sounding(score: Score, fn: Callable[[Event], Event]) -> Score:
    """Apply fn to every non-rest event."""
    parts = []
    for part in score.parts:
        measures = []
        for measure in part.measures:
            voices = tuple(
                Voice(tuple(e if isinstance(e, Rest) else fn(e) for e in voice.events))
                for voice in measure.voices
            )
            measures.append(replace(measure, voices=voices))
        parts.append(replace(part, measures=tuple(measures)))
    return replace(score, parts=tuple(parts))


def coarsen_dynamics(score: Score, config: CodecConfig) -> Score:
    """Tier 1a: collapse every dynamics level onto the coarse scale."""
    return _map_sounding(
        score, lambda e: replace(e, dynamics=config.collapse_dynamics(e.dynamics))
    )


def drop_dynamics(score: Score) -> Score:
    """Tier 1b: every event reverts to unspecified dynamics."""
    return _map_sounding(score, lambda e: replace(e, dynamics=Dynamics.NONE))


def drop_articulations(score: Score) -> Score:
    """Tier 2: remove every articulation."""
    return _map_sounding(score, lambda e: replace(e, articulation=Articulation.NONE))


def drop_extra_voices(score: Score) -> Score:
    """Tier 4: keep only the first voice of each measure."""
    parts = []
    for part in score.parts:
        measures = tuple(replace(m, voices=m.voices[:1]) for m in part.measures)
        parts.append(replace(part, measures=measures))
    return replace(score, parts=tuple(parts))


def coarsen_grid(score: Score, grid: DurationGrid, merge_tied_notes: bool = True) -> Score:
    """
    Tier 3: re-quantize every duration onto a coarser grid.

    Event boundaries snap to the nearest grid unit (halves round up) and
    the measure end stays fixed, so every voice still fills its measure.
    A pickup measure's length snaps too, but never below one unit.
    Events that collapse to zero length are dropped, ties whose
    successor changed are cleared, and, when merge_tied_notes is set,
    tied same-pitch neighbours fuse into one longer event.
    """
    parts = []
    dropped = cleared = merged = 0
    for part in score.parts:
        measures = []
        for m_pos, measure in enumerate(part.measures):
            target = _target_length(measure, m_pos, grid)
            voices = []
            for voice in measure.voices:
                events, lost = _requantize(voice.events, target, grid)
                dropped += lost
                voices.append(Voice(events))
            measures.append(replace(measure, voices=tuple(voices)))
        new_part, repaired = _repair_ties(replace(part, measures=tuple(measures)))
        cleared += repaired
        if merge_tied_notes:
            new_part, fused = _merge_tied(new_part, grid)
            merged += fused
        parts.append(new_part)

    logger.debug(
        f"Re-quantized onto {grid.name}: dropped {dropped} events, "
        f"cleared {cleared} ties, merged {merged} notes"
    )
    return replace(score, parts=tuple(parts))


def _target_length(measure: Measure, m_pos: int, grid: DurationGrid) -> Fraction:
    nominal = measure.nominal_length
    if m_pos != 0 or not measure.voices:
        return nominal
    length = measure.voices[0].length
    if length == nominal:
        return nominal
    return max(grid.unit, grid.snap(length))


def _requantize(
    events: tuple[Event, ...], target: Fraction, grid: DurationGrid
) -> tuple[tuple[Event, ...], int]:
    boundaries = [Fraction(0)]
    for event in events:
        boundaries.append(boundaries[-1] + event.duration.value)
    snapped = [Fraction(0)] + [min(grid.snap(b), target) for b in boundaries[1:-1]] + [target]

    result: list[Event] = []
    for event, start, end in zip(events, snapped, snapped[1:]):
        if end > start:
            result.append(replace(event, duration=Duration(end - start)))
    return tuple(result), len(events) - len(result)


def _repair_ties(part: Part) -> tuple[Part, int]:
    """Clear ties whose successor no longer sounds the same pitches."""
    repaired = 0
    measures = []
    for m_pos, measure in enumerate(part.measures):
        voices = []
        for v_idx, voice in enumerate(measure.voices):
            events = list(voice.events)
            for e_idx, event in enumerate(events):
                if isinstance(event, Rest) or not event.tie:
                    continue
                successor = part.successor(m_pos, v_idx, e_idx)
                if successor is None or sounding_pitches(successor) != event.pitches:
                    events[e_idx] = replace(event, tie=False)
                    repaired += 1
            voices.append(Voice(tuple(events)))
        measures.append(replace(measure, voices=tuple(voices)))
    return replace(part, measures=tuple(measures)), repaired


def _merge_tied(part: Part, grid: DurationGrid) -> tuple[Part, int]:
    """Fuse tied same-pitch neighbours within a measure."""
    fused = 0
    measures = []
    for measure in part.measures:
        voices = []
        for voice in measure.voices:
            events: list[Event] = []
            for event in voice.events:
                if events and _can_merge(events[-1], event, grid):
                    prev = events[-1]
                    events[-1] = replace(prev, duration=prev.duration + event.duration, tie=event.tie)
                    fused += 1
                else:
                    events.append(event)
            voices.append(Voice(tuple(events)))
        measures.append(replace(measure, voices=tuple(voices)))
    return replace(part, measures=tuple(measures)), fused


def _can_merge(prev: Event, event: Event, grid: DurationGrid) -> bool:
    if isinstance(prev, Rest) or isinstance(event, Rest) or type(prev) is not type(event):
        return False
    return (
        prev.tie
        and prev.pitches == event.pitches
        and prev.dynamics == event.dynamics
        and prev.articulation == event.articulation
        and (prev.duration + event.duration) in grid
    )


def apply_plan(score: Score, plan: ReductionPlan, config: CodecConfig) -> Score:
    """
    Apply every step of a plan, in order.

    Args:
        score: Validated input score (not modified)
        plan: Steps to apply
        config: Grid and collapse settings

    Returns:
        The reduced score
    """
    for step in plan.steps:
        if step is ReductionStep.COARSEN_DYNAMICS:
            score = coarsen_dynamics(score, config)
        elif step is ReductionStep.DROP_DYNAMICS:
            score = drop_dynamics(score)
        elif step is ReductionStep.DROP_ARTICULATIONS:
            score = drop_articulations(score)
        elif step is ReductionStep.COARSEN_GRID:
            score = coarsen_grid(score, config.coarse, config.merge_tied_notes)
        elif step is ReductionStep.DROP_EXTRA_VOICES:
            score = drop_extra_voices(score)
    return score
