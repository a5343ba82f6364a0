#!/usr/bin/env python3
"""
Example: MusicXML ⇄ Token Stream Round-Trip.

This demonstrates the codec end to end: import a MusicXML score, encode
it into a compact token stream, squeeze it into smaller and smaller
byte budgets, and decode each stream back into MusicXML.

Usage:
    python examples/token_roundtrip.py [score.musicxml]

Without an argument a short two-part study is built in code.

This example shows:
1. Importing MusicXML into the Score model
2. Lossless encoding and exact decoding
3. The size after each fidelity tier
4. Encoding under a byte budget, and what happens when it cannot fit
5. Writing decoded streams back out as MusicXML
"""

import logging
import sys
from pathlib import Path

from chuk_score_codec import (
    BudgetExceeded,
    FidelityPolicy,
    ScoreDecoder,
    encode_with_budget,
    tokens_to_musicxml,
)
from chuk_score_codec.constants import Articulation, Clef, Dynamics
from chuk_score_codec.core import Duration
from chuk_score_codec.models import Chord, Measure, Note, Part, Rest, Score, Voice
from chuk_score_codec.musicxml import (
    parse_xml_tree,
    score_from_tree,
    score_to_tree,
    serialize_xml_tree,
)

Q = Duration.QUARTER
H = Duration.HALF
E = Duration.EIGHTH


def build_study() -> Score:
    """A small two-part score with dynamics, articulations and a tie."""
    melody = Part(
        index=0,
        measures=(
            Measure(
                0,
                (
                    Voice(
                        (
                            Note(67, Q, dynamics=Dynamics.MP, articulation=Articulation.ACCENT),
                            Note(69, E, dynamics=Dynamics.MP),
                            Note(71, E, dynamics=Dynamics.MP),
                            Note(72, H, tie=True, dynamics=Dynamics.MP),
                        )
                    ),
                ),
                tempo=88,
            ),
            Measure(
                1,
                (
                    Voice(
                        (
                            Note(72, Q, dynamics=Dynamics.MP),
                            Note(74, Q, dynamics=Dynamics.MF, articulation=Articulation.STACCATO),
                            Note(76, Q, dynamics=Dynamics.MF, articulation=Articulation.STACCATO),
                            Rest(Q),
                        )
                    ),
                ),
            ),
        ),
    )
    accompaniment = Part(
        index=1,
        clef=Clef.BASS,
        measures=(
            Measure(0, (Voice((Chord((48, 55, 64), H, dynamics=Dynamics.P), Rest(H))),)),
            Measure(1, (Voice((Chord((43, 50, 59), H, dynamics=Dynamics.P), Note(48, H))),)),
        ),
    )
    return Score(
        parts=(melody, accompaniment),
        title="Codec Study",
        metadata=(("composer", "chuk"),),
    )


def main() -> None:
    """Demonstrate the token stream round trip."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    print("CHUK Score Codec Round-Trip Demo")
    print("=" * 50)
    print()

    # Step 1: Load the score
    print("1. Loading score...")
    if len(sys.argv) > 1:
        score = score_from_tree(parse_xml_tree(Path(sys.argv[1]).read_bytes()))
    else:
        score = build_study()
    summary = score.summary()
    print(f"   Title: {summary['title'] or '(untitled)'}")
    print(f"   Parts: {summary['parts']}, measures: {summary['measures']}")
    print(f"   Events: {summary['events']}, pitch range: {summary['pitch_range']}")
    print()

    # Step 2: Lossless round trip
    print("2. Encoding losslessly...")
    result = encode_with_budget(score)
    decoded = ScoreDecoder().decode(result.data)
    print(f"   Stream: {result.size} bytes")
    print(f"   Exact round trip: {decoded == score}")
    print()

    # Step 3: Size after each tier
    print("3. Size after each reduction step...")
    policy = FidelityPolicy()
    sizes = policy.sizes(score)
    for plan, size in sizes:
        print(f"   {plan.tier}  {size:5d} bytes  {', '.join(s.value for s in plan.steps) or '-'}")
    print()

    # Step 4: Encode under budgets
    print("4. Encoding under budgets...")
    minimum = sizes[-1][1]
    for budget in (result.size, (result.size + minimum) // 2, minimum, minimum - 1):
        try:
            reduced = encode_with_budget(score, budget)
        except BudgetExceeded as exc:
            print(f"   budget {budget:5d}: does not fit, needs {exc.required} bytes")
            continue
        print(f"   budget {budget:5d}: {reduced.plan}")
        xml_path = output_dir / f"budget_{budget}.musicxml"
        xml_path.write_text(tokens_to_musicxml(reduced.data), encoding="utf-8")
        print(f"                 saved {xml_path.name}")
    print()

    # Step 5: Lossless export
    print("5. Writing lossless MusicXML...")
    xml_path = output_dir / "lossless.musicxml"
    xml_path.write_text(serialize_xml_tree(score_to_tree(decoded)), encoding="utf-8")
    print(f"   Saved to: {xml_path}")
    print()

    print("Done.")


if __name__ == "__main__":
    main()
