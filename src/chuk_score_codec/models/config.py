"""
Codec configuration - grid choices and fidelity policy knobs.

The grid names select entries of the versioned grid registry; the
chosen grid's id is written into every stream's HEADER, so decoding
never needs this config.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from chuk_score_codec.constants import DEFAULT_COARSE_DYNAMICS, Dynamics, ErrorMessages
from chuk_score_codec.core.rhythm import GRIDS, DurationGrid, get_grid


class CodecConfig(BaseModel):
    """
    Encoder and fidelity policy configuration.

    Defaults reproduce format version 1's reference behaviour:
    1/64-note grid at Tier 0, 1/16-note grid at Tier 3.
    """

    fine_grid: str = Field("grid64", description="Duration grid used without reduction")
    coarse_grid: str = Field("grid16", description="Duration grid Tier 3 re-quantizes onto")
    merge_tied_notes: bool = Field(
        True, description="Merge tied same-pitch neighbours after Tier-3 re-quantization"
    )
    coarse_dynamics: dict[Dynamics, Dynamics] = Field(
        default_factory=lambda: dict(DEFAULT_COARSE_DYNAMICS),
        description="Tier-1 collapse table onto coarser dynamics levels",
    )

    model_config = {"frozen": True}

    @field_validator("fine_grid", "coarse_grid")
    @classmethod
    def _known_grid(cls, value: str) -> str:
        if value not in GRIDS:
            raise ValueError(ErrorMessages.UNKNOWN_GRID.format(grid=value))
        return value

    @field_validator("coarse_dynamics", mode="before")
    @classmethod
    def _parse_dynamics(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        parsed: dict[Dynamics, Dynamics] = dict(DEFAULT_COARSE_DYNAMICS)
        for src, dst in value.items():
            parsed[_as_dynamics(src)] = _as_dynamics(dst)
        return parsed

    @model_validator(mode="after")
    def _coarse_is_coarser(self) -> CodecConfig:
        if not get_grid(self.coarse_grid).is_coarser_than(get_grid(self.fine_grid)):
            raise ValueError(
                ErrorMessages.GRID_NOT_COARSER.format(coarse=self.coarse_grid, fine=self.fine_grid)
            )
        return self

    @property
    def fine(self) -> DurationGrid:
        return get_grid(self.fine_grid)

    @property
    def coarse(self) -> DurationGrid:
        return get_grid(self.coarse_grid)

    def collapse_dynamics(self, dynamics: Dynamics) -> Dynamics:
        return self.coarse_dynamics.get(dynamics, dynamics)


def _as_dynamics(value: Any) -> Dynamics:
    if isinstance(value, Dynamics):
        return value
    if isinstance(value, int):
        return Dynamics(value)
    if str(value).lower() in ("none", ""):
        return Dynamics.NONE
    return Dynamics.from_mark(str(value))


def load_config(path: Path | str) -> CodecConfig:
    """
    Load a CodecConfig from a YAML file.

    Missing keys take their defaults; an empty file yields the default config.

    Args:
        path: Path to a YAML mapping

    Returns:
        Validated CodecConfig
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Codec config must be a mapping, got {type(data).__name__}")
    return CodecConfig(**data)
