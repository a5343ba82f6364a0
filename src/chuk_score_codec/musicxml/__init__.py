"""
MusicXML adapter - the boundary between MusicXML text and the Score model.
"""

from chuk_score_codec.musicxml.adapter import (
    DOCTYPE,
    fill_rests,
    note_type,
    parse_xml_tree,
    score_from_tree,
    score_to_tree,
    serialize_xml_tree,
)

__all__ = [
    "DOCTYPE",
    "parse_xml_tree",
    "serialize_xml_tree",
    "score_from_tree",
    "score_to_tree",
    "fill_rests",
    "note_type",
]
