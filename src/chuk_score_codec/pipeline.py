"""
End-to-end helpers: MusicXML text ⇄ token stream.

    XML text → parse_xml_tree → score_from_tree → FidelityPolicy → ScoreEncoder
    token stream → ScoreDecoder → score_to_tree → serialize_xml_tree
"""

from __future__ import annotations

import logging

from chuk_score_codec.codec.decoder import ScoreDecoder
from chuk_score_codec.codec.encoder import EncodeResult
from chuk_score_codec.codec.fidelity import encode_with_budget
from chuk_score_codec.models.config import CodecConfig
from chuk_score_codec.musicxml.adapter import (
    parse_xml_tree,
    score_from_tree,
    score_to_tree,
    serialize_xml_tree,
)

logger = logging.getLogger(__name__)


def musicxml_to_tokens(
    text: str | bytes,
    budget: int | None = None,
    config: CodecConfig | None = None,
) -> EncodeResult:
    """
    Import MusicXML text and encode it, reducing fidelity only if the budget needs it.

    Args:
        text: MusicXML score-partwise document
        budget: Byte budget, or None for a lossless encode
        config: Grid and policy settings

    Returns:
        EncodeResult with the stream and the plan applied

    Raises:
        ParseError: if the text is malformed or unsupported
        InvalidScore: if the imported score violates the model invariants
        BudgetExceeded: if no plan fits the budget
    """
    config = config or CodecConfig()
    score = score_from_tree(parse_xml_tree(text), config.fine)
    result = encode_with_budget(score, budget, config)
    logger.info(f"Encoded '{score.title}' into {result.size} bytes at tier {result.tier}")
    return result


def tokens_to_musicxml(data: bytes) -> str:
    """
    Decode a token stream and render it as MusicXML text.

    Raises:
        DecodeError: if the stream is truncated, malformed or inconsistent
    """
    score = ScoreDecoder().decode(data)
    return serialize_xml_tree(score_to_tree(score))
