"""
Token codec - grammar, reductions, fidelity policy, encoder and decoder.
"""

from chuk_score_codec.codec.decoder import (
    LEGAL_OPCODES,
    DecoderState,
    ScoreDecoder,
    decode_score,
    stream_grid,
)
from chuk_score_codec.codec.encoder import EncodeResult, ScoreEncoder, encode_score
from chuk_score_codec.codec.fidelity import FidelityPolicy, encode_with_budget
from chuk_score_codec.codec.grammar import (
    EventFlag,
    MeasureFlag,
    Opcode,
    TokenReader,
    TokenWriter,
    VoiceState,
)
from chuk_score_codec.codec.reductions import (
    REDUCTION_ORDER,
    ReductionPlan,
    ReductionStep,
    apply_plan,
    coarsen_dynamics,
    coarsen_grid,
    drop_articulations,
    drop_dynamics,
    drop_extra_voices,
)

__all__ = [
    # Grammar
    "Opcode",
    "MeasureFlag",
    "EventFlag",
    "TokenReader",
    "TokenWriter",
    "VoiceState",
    # Reductions
    "ReductionStep",
    "ReductionPlan",
    "REDUCTION_ORDER",
    "apply_plan",
    "coarsen_dynamics",
    "drop_dynamics",
    "drop_articulations",
    "coarsen_grid",
    "drop_extra_voices",
    # Policy
    "FidelityPolicy",
    "encode_with_budget",
    # Encoder / decoder
    "ScoreEncoder",
    "EncodeResult",
    "encode_score",
    "ScoreDecoder",
    "DecoderState",
    "LEGAL_OPCODES",
    "decode_score",
    "stream_grid",
]
