"""
Data models.

The score model is plain frozen dataclasses (exact, hashable, diffable);
configuration is a pydantic model loaded from YAML.
"""

from chuk_score_codec.models.config import CodecConfig, load_config
from chuk_score_codec.models.score import (
    Chord,
    Event,
    Measure,
    Note,
    Part,
    Rest,
    Score,
    Voice,
    sounding_pitches,
)

__all__ = [
    # Score model
    "Score",
    "Part",
    "Measure",
    "Voice",
    "Event",
    "Note",
    "Chord",
    "Rest",
    "sounding_pitches",
    # Config
    "CodecConfig",
    "load_config",
]
