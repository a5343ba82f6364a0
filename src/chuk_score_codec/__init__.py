"""
chuk_score_codec - MusicXML ⇄ compact token-stream score codec.

Encodes scores into a byte stream sized for fixed-length model context
windows, shedding information in fixed fidelity tiers only when a
budget demands it, and decodes streams back into validated scores.
"""

from chuk_score_codec.codec import (
    EncodeResult,
    FidelityPolicy,
    ReductionPlan,
    ReductionStep,
    ScoreDecoder,
    ScoreEncoder,
    decode_score,
    encode_score,
    encode_with_budget,
)
from chuk_score_codec.errors import (
    BudgetExceeded,
    CodecError,
    ConsistencyCheckFailed,
    DecodeError,
    GrammarViolation,
    InvalidScore,
    ParseError,
    TruncatedStream,
)
from chuk_score_codec.models import CodecConfig, load_config
from chuk_score_codec.pipeline import musicxml_to_tokens, tokens_to_musicxml
from chuk_score_codec.validation import validate_score

__version__ = "0.1.0"

__all__ = [
    # Codec
    "ScoreEncoder",
    "ScoreDecoder",
    "EncodeResult",
    "FidelityPolicy",
    "ReductionPlan",
    "ReductionStep",
    "encode_score",
    "encode_with_budget",
    "decode_score",
    "validate_score",
    # Pipeline
    "musicxml_to_tokens",
    "tokens_to_musicxml",
    # Config
    "CodecConfig",
    "load_config",
    # Errors
    "CodecError",
    "InvalidScore",
    "BudgetExceeded",
    "DecodeError",
    "GrammarViolation",
    "TruncatedStream",
    "ConsistencyCheckFailed",
    "ParseError",
]
