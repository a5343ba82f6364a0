"""
MusicXML adapter - element tree ⇄ Score.

Import reads score-partwise documents:
- grand-staff parts (<staves>2</staves>) become one Part per staff
- voices come from <voice>, <backup>/<forward> gaps become rests and
  short voices are padded to the measure length
- dynamics directions are carried forward per voice
- unpitched parts, grace notes and cue notes are dropped with a warning

Export writes one single-staff part per Part. Layout attributes the
schema needs (divisions, note types, part names) are synthesized;
pitches, durations and ties are written exactly as stored. Black keys are
spelled as flats in flat keys and as sharps otherwise.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from fractions import Fraction

from lxml import etree

from chuk_score_codec.constants import TEMPO_MAX, TEMPO_MIN, Articulation, Clef, Dynamics
from chuk_score_codec.core.pitch import midi_from_step, spell_midi
from chuk_score_codec.core.rhythm import GRID_64, Duration, DurationGrid, KeySignature, TimeSignature
from chuk_score_codec.errors import InvalidScore, ParseError
from chuk_score_codec.models.score import Chord, Event, Measure, Note, Part, Rest, Score, Voice
from chuk_score_codec.validation.validator import validate_score

logger = logging.getLogger(__name__)

DOCTYPE = (
    '<!DOCTYPE score-partwise PUBLIC\n'
    '  "-//Recordare//DTD MusicXML 3.1 Partwise//EN"\n'
    '  "http://www.musicxml.org/dtds/partwise.dtd">'
)

# (sign, line) for each clef
CLEF_SIGNS: dict[Clef, tuple[str, int]] = {
    Clef.TREBLE: ("G", 2),
    Clef.BASS: ("F", 4),
    Clef.ALTO: ("C", 3),
    Clef.TENOR: ("C", 4),
}
_CLEFS_BY_SIGN = {sign: clef for clef, sign in CLEF_SIGNS.items()}

NOTE_TYPES: tuple[tuple[Fraction, str], ...] = (
    (Fraction(4), "long"),
    (Fraction(2), "breve"),
    (Fraction(1), "whole"),
    (Fraction(1, 2), "half"),
    (Fraction(1, 4), "quarter"),
    (Fraction(1, 8), "eighth"),
    (Fraction(1, 16), "16th"),
    (Fraction(1, 32), "32nd"),
    (Fraction(1, 64), "64th"),
    (Fraction(1, 128), "128th"),
)


# ----------------------------------------------------------------------
# Text boundary
# ----------------------------------------------------------------------


def parse_xml_tree(text: str | bytes) -> etree._Element:
    """
    Parse MusicXML text into an element tree.

    Entities are not resolved and nothing is fetched over the network.

    Raises:
        ParseError: if the text is not well-formed XML
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_blank_text=True,
    )
    try:
        return etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        raise ParseError(f"Malformed XML: {exc.msg}", line=exc.lineno) from exc


def serialize_xml_tree(root: etree._Element) -> str:
    """Serialize an element tree as a MusicXML 3.1 partwise document."""
    return etree.tostring(
        root.getroottree(),
        encoding="UTF-8",
        xml_declaration=True,
        pretty_print=True,
        doctype=DOCTYPE,
    ).decode("utf-8")


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------


class _UnpitchedPart(Exception):
    """Signals that a part holds percussion and is skipped."""


@dataclass
class _Entry:
    """One note, chord or rest as read, before voices are assembled."""

    onset: Fraction
    duration: Fraction
    pitches: list[int] = field(default_factory=list)
    tie: bool = False
    dynamics: Dynamics = Dynamics.NONE
    articulation: Articulation = Articulation.NONE

    @property
    def end(self) -> Fraction:
        return self.onset + self.duration

    def to_event(self) -> Event:
        duration = Duration(self.duration)
        if not self.pitches:
            return Rest(duration)
        if len(self.pitches) == 1:
            return Note(self.pitches[0], duration, self.tie, self.dynamics, self.articulation)
        return Chord(tuple(self.pitches), duration, self.tie, self.dynamics, self.articulation)


def _text(element: etree._Element, path: str) -> str:
    value = element.findtext(path)
    if value is None:
        raise ParseError(f"<{element.tag}> is missing <{path}>", line=element.sourceline)
    return value.strip()


def _int(element: etree._Element, path: str) -> int:
    value = _text(element, path)
    try:
        return int(value)
    except ValueError:
        raise ParseError(f"<{path}> is not an integer: {value!r}", line=element.sourceline) from None


def _voice_sort_key(voice_id: str) -> tuple[int, str]:
    return (int(voice_id), "") if voice_id.isdigit() else (1 << 30, voice_id)


def fill_rests(length: Fraction, grid: DurationGrid = GRID_64) -> list[Rest]:
    """
    Rests covering a gap, using at most two grid durations.

    Falls back to one rest of the exact length; validation then reports
    the off-grid duration.
    """
    if Duration(length) in grid:
        return [Rest(Duration(length))]
    for index in reversed(range(len(grid))):
        first = grid.duration_at(index)
        if first.value < length and Duration(length - first.value) in grid:
            return [Rest(first), Rest(Duration(length - first.value))]
    return [Rest(Duration(length))]


class _PartReader:
    """Reads one <part> element into one Part per staff."""

    def __init__(self, element: etree._Element, grid: DurationGrid) -> None:
        self.element = element
        self.grid = grid
        self.divisions: int | None = None
        self.staves = 1
        self.clefs: dict[int, Clef] = {}
        self.time_signature = TimeSignature.COMMON_TIME
        self.key_signature = KeySignature(0)
        self.dynamics: dict[tuple[int, str], Dynamics] = {}
        self.staff_dynamics: dict[int, Dynamics] = {}
        self.skipped_graces = 0
        self.voice_slots: dict[int, list[str]] = defaultdict(list)

    def read(self) -> list[tuple[Clef, list[Measure]]]:
        staff_measures: dict[int, list[Measure]] = defaultdict(list)
        for m_pos, measure_el in enumerate(self.element.iterfind("measure")):
            for staff, measure in self._read_measure(measure_el, m_pos).items():
                staff_measures[staff].append(measure)

        if self.skipped_graces:
            logger.warning(
                f"Part '{self.element.get('id')}': skipped {self.skipped_graces} grace/cue notes"
            )
        return [
            (self.clefs.get(staff, Clef.TREBLE), staff_measures[staff])
            for staff in range(1, self.staves + 1)
        ]

    def _read_measure(self, measure_el: etree._Element, m_pos: int) -> dict[int, Measure]:
        cursor = Fraction(0)
        entries: dict[int, dict[str, list[_Entry]]] = defaultdict(lambda: defaultdict(list))
        last: _Entry | None = None
        tempo: int | None = None

        for child in measure_el:
            if not isinstance(child.tag, str):
                continue
            if child.tag == "attributes":
                self._read_attributes(child, m_pos)
            elif child.tag == "direction":
                self._read_direction(child)
                tempo = tempo if tempo is not None else self._tempo(child.find("sound"))
            elif child.tag == "sound":
                tempo = tempo if tempo is not None else self._tempo(child)
            elif child.tag == "backup":
                cursor -= self._duration(child)
                if cursor < 0:
                    raise ParseError("<backup> moves before the measure start", line=child.sourceline)
            elif child.tag == "forward":
                cursor += self._duration(child)
            elif child.tag == "note":
                if child.find("grace") is not None or child.find("cue") is not None:
                    self.skipped_graces += 1
                    continue
                if child.find("unpitched") is not None:
                    raise _UnpitchedPart()
                if child.find("chord") is not None:
                    if last is None or not last.pitches:
                        raise ParseError("<chord/> without a preceding note", line=child.sourceline)
                    self._add_chord_member(last, child)
                    continue
                last = self._read_note(child, cursor)
                staff = int(child.findtext("staff", "1"))
                entries[staff][child.findtext("voice", "1").strip()].append(last)
                cursor = last.end

        return self._assemble(measure_el, m_pos, entries, tempo)

    def _read_attributes(self, element: etree._Element, m_pos: int) -> None:
        if element.find("divisions") is not None:
            self.divisions = _int(element, "divisions")
            if self.divisions <= 0:
                raise ParseError("<divisions> must be positive", line=element.sourceline)
        key_el = element.find("key")
        if key_el is not None and key_el.find("fifths") is not None:
            self.key_signature = KeySignature(_int(key_el, "fifths"))
        time_el = element.find("time")
        if time_el is not None and time_el.find("beats") is not None:
            self.time_signature = TimeSignature(_int(time_el, "beats"), _int(time_el, "beat-type"))
        if element.find("staves") is not None:
            self.staves = _int(element, "staves")
        for clef_el in element.iterfind("clef"):
            staff = int(clef_el.get("number", "1"))
            if m_pos > 0 and staff in self.clefs:
                logger.warning(f"Ignoring clef change in measure {m_pos + 1}")
                continue
            sign = (clef_el.findtext("sign", "G").strip(), int(clef_el.findtext("line", "2")))
            self.clefs[staff] = _CLEFS_BY_SIGN.get(sign, Clef.TREBLE)

    def _read_direction(self, element: etree._Element) -> None:
        staff = int(element.findtext("staff", "1"))
        voice = element.findtext("voice")
        for dyn_el in element.iterfind("direction-type/dynamics"):
            level = self._dynamics(dyn_el)
            if level is None:
                continue
            if voice is not None:
                self.dynamics[(staff, voice.strip())] = level
            else:
                self.staff_dynamics[staff] = level
                for key in self.dynamics:
                    if key[0] == staff:
                        self.dynamics[key] = level

    @staticmethod
    def _dynamics(dyn_el: etree._Element) -> Dynamics | None:
        for mark in dyn_el:
            if not isinstance(mark.tag, str):
                continue
            try:
                return Dynamics.from_mark(mark.tag)
            except ValueError:
                logger.debug(f"Ignoring unsupported dynamics <{mark.tag}>")
        return None

    @staticmethod
    def _tempo(sound_el: etree._Element | None) -> int | None:
        if sound_el is None or sound_el.get("tempo") is None:
            return None
        try:
            tempo = round(float(sound_el.get("tempo")))
        except (ValueError, OverflowError):
            raise ParseError(
                f"Bad tempo {sound_el.get('tempo')!r}", line=sound_el.sourceline
            ) from None
        if not TEMPO_MIN <= tempo <= TEMPO_MAX:
            raise ParseError(
                f"Tempo {sound_el.get('tempo')!r} outside {TEMPO_MIN}-{TEMPO_MAX}",
                line=sound_el.sourceline,
            )
        return tempo

    def _duration(self, element: etree._Element) -> Fraction:
        if self.divisions is None:
            raise ParseError("Duration before <divisions>", line=element.sourceline)
        return Fraction(_int(element, "duration"), 4 * self.divisions)

    def _pitch(self, note_el: etree._Element) -> int:
        pitch_el = note_el.find("pitch")
        if pitch_el is None:
            raise ParseError("<note> has neither <pitch> nor <rest>", line=note_el.sourceline)
        try:
            alter = round(float(pitch_el.findtext("alter", "0")))
            return midi_from_step(_text(pitch_el, "step"), alter, _int(pitch_el, "octave"))
        except ValueError as exc:
            raise ParseError(str(exc), line=pitch_el.sourceline) from None

    @staticmethod
    def _articulation(note_el: etree._Element) -> Articulation:
        for mark in note_el.iterfind("notations/articulations/*"):
            try:
                return Articulation.from_mark(mark.tag)
            except ValueError:
                logger.debug(f"Ignoring unsupported articulation <{mark.tag}>")
        return Articulation.NONE

    def _read_note(self, note_el: etree._Element, onset: Fraction) -> _Entry:
        duration = self._duration(note_el)
        if duration <= 0:
            raise ParseError("<note> has no duration", line=note_el.sourceline)
        if note_el.find("rest") is not None:
            return _Entry(onset=onset, duration=duration)

        staff = int(note_el.findtext("staff", "1"))
        key = (staff, note_el.findtext("voice", "1").strip())
        for dyn_el in note_el.iterfind("notations/dynamics"):
            level = self._dynamics(dyn_el)
            if level is not None:
                self.dynamics[key] = level
        dynamics = self.dynamics.setdefault(key, self.staff_dynamics.get(staff, Dynamics.NONE))

        return _Entry(
            onset=onset,
            duration=duration,
            pitches=[self._pitch(note_el)],
            tie=any(t.get("type") == "start" for t in note_el.iterfind("tie")),
            dynamics=dynamics,
            articulation=self._articulation(note_el),
        )

    def _add_chord_member(self, entry: _Entry, note_el: etree._Element) -> None:
        pitch = self._pitch(note_el)
        if pitch in entry.pitches:
            logger.warning(f"Dropping unison chord member {pitch} (line {note_el.sourceline})")
            return
        entry.pitches.append(pitch)
        entry.tie = entry.tie and any(t.get("type") == "start" for t in note_el.iterfind("tie"))
        if entry.articulation is Articulation.NONE:
            entry.articulation = self._articulation(note_el)

    def _assemble(
        self,
        measure_el: etree._Element,
        m_pos: int,
        entries: dict[int, dict[str, list[_Entry]]],
        tempo: int | None,
    ) -> dict[int, Measure]:
        nominal = self.time_signature.measure_length
        content_end = max(
            (e.end for voices in entries.values() for es in voices.values() for e in es),
            default=Fraction(0),
        )
        length = nominal
        if m_pos == 0 and 0 < content_end < nominal:
            length = content_end

        measures = {}
        for staff in range(1, self.staves + 1):
            voices = []
            by_voice = entries.get(staff, {})
            # A voice id keeps its slot for the whole part; absent trailing slots are omitted
            slots = self.voice_slots[staff]
            slots.extend(v for v in sorted(by_voice, key=_voice_sort_key) if v not in slots)
            used = max((slots.index(v) + 1 for v in by_voice), default=0)
            for voice_id in slots[:used]:
                if voice_id in by_voice:
                    voices.append(self._build_voice(by_voice[voice_id], length, measure_el))
                else:
                    voices.append(Voice(tuple(fill_rests(length, self.grid))))
            if not voices:
                voices.append(Voice(tuple(fill_rests(length, self.grid))))
            measures[staff] = Measure(
                index=m_pos,
                voices=tuple(voices),
                time_signature=self.time_signature,
                key_signature=self.key_signature,
                tempo=tempo,
            )
        return measures

    def _build_voice(
        self, entries: list[_Entry], length: Fraction, measure_el: etree._Element
    ) -> Voice:
        events: list[Event] = []
        cursor = Fraction(0)
        for entry in sorted(entries, key=lambda e: e.onset):
            if entry.onset < cursor:
                raise ParseError("Overlapping notes in one voice", line=measure_el.sourceline)
            if entry.onset > cursor:
                events.extend(fill_rests(entry.onset - cursor, self.grid))
            events.append(entry.to_event())
            cursor = entry.end
        if cursor > length:
            raise ParseError(
                f"Voice lasts {cursor} but measure holds {length}", line=measure_el.sourceline
            )
        if cursor < length:
            events.extend(fill_rests(length - cursor, self.grid))
        return Voice(tuple(events))


def score_from_tree(root: etree._Element, grid: DurationGrid = GRID_64) -> Score:
    """
    Build a validated Score from a score-partwise element tree.

    Args:
        root: Document root from parse_xml_tree
        grid: Duration grid the imported durations must lie on

    Returns:
        A Score that passes validate_score

    Raises:
        ParseError: if the document is structurally unsupported
        InvalidScore: if the imported content violates the model invariants
    """
    if root.tag != "score-partwise":
        raise ParseError(f"Only score-partwise documents are supported, got <{root.tag}>")

    title = (root.findtext("work/work-title") or root.findtext("movement-title") or "").strip()
    metadata = []
    for creator in root.iterfind("identification/creator"):
        metadata.append((creator.get("type", "creator"), (creator.text or "").strip()))
    for rights in root.iterfind("identification/rights"):
        metadata.append(("rights", (rights.text or "").strip()))

    staves: list[tuple[Clef, list[Measure]]] = []
    for part_el in root.iterfind("part"):
        try:
            staves.extend(_PartReader(part_el, grid).read())
        except _UnpitchedPart:
            logger.warning(f"Dropping unpitched part '{part_el.get('id')}'")

    parts = tuple(
        Part(index=i, measures=tuple(measures), clef=clef)
        for i, (clef, measures) in enumerate(staves)
    )
    first = parts[0].measures[0] if parts and parts[0].measures else None
    score = Score(
        parts=parts,
        time_signature=first.time_signature if first else TimeSignature.COMMON_TIME,
        key_signature=first.key_signature if first else KeySignature(0),
        title=title,
        metadata=tuple(metadata),
    )

    result = validate_score(score, grid)
    if not result.is_valid:
        raise InvalidScore(result.errors)
    logger.debug(f"Imported {len(parts)} parts, {score.event_count()} events")
    return score


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------


def note_type(value: Fraction) -> tuple[str, int, bool] | None:
    """
    Graphic type for a duration: (type name, dot count, is triplet).

    Returns None when no plain, dotted or triplet value matches; the
    <type> element is then omitted.
    """
    for triplet, scale in ((False, Fraction(1)), (True, Fraction(3, 2))):
        target = value * scale
        for base, name in NOTE_TYPES:
            for dots in range(4):
                if base * (2 - Fraction(1, 2**dots)) == target:
                    return name, dots, triplet
    return None


def _divisions(score: Score) -> int:
    """Smallest divisions-per-quarter that makes every duration integral."""
    denominators = {(e.duration.value * 4).denominator for *_, e in score.iter_events()}
    return math.lcm(1, *denominators)


class _PartWriter:
    """Writes one Part as one single-staff <part>."""

    def __init__(self, part: Part, part_id: str, divisions: int) -> None:
        self.part = part
        self.part_id = part_id
        self.divisions = divisions
        self.dynamics: dict[int, Dynamics] = {}
        self.tied_in: dict[int, bool] = {}
        self.prefer_flats = False

    def _div(self, value: Fraction) -> str:
        return str(int(value * 4 * self.divisions))

    def write(self, root: etree._Element) -> None:
        part_el = etree.SubElement(root, "part", id=self.part_id)
        prev: Measure | None = None
        for m_pos, measure in enumerate(self.part.measures):
            measure_el = etree.SubElement(part_el, "measure", number=str(m_pos + 1))
            self.prefer_flats = measure.key_signature.prefers_flats
            length = measure.voices[0].length
            if m_pos == 0 and length < measure.nominal_length:
                measure_el.set("implicit", "yes")

            self._write_attributes(measure_el, measure, prev)
            if measure.tempo is not None:
                self._write_tempo(measure_el, measure.tempo)

            for v_idx, voice in enumerate(measure.voices):
                if v_idx:
                    backup = etree.SubElement(measure_el, "backup")
                    etree.SubElement(backup, "duration").text = self._div(
                        measure.voices[v_idx - 1].length
                    )
                for event in voice.events:
                    self._write_event(measure_el, event, v_idx)
            prev = measure

    def _write_attributes(
        self, measure_el: etree._Element, measure: Measure, prev: Measure | None
    ) -> None:
        key_changed = prev is None or measure.key_signature != prev.key_signature
        time_changed = prev is None or measure.time_signature != prev.time_signature
        if prev is not None and not key_changed and not time_changed:
            return

        attrs = etree.SubElement(measure_el, "attributes")
        if prev is None:
            etree.SubElement(attrs, "divisions").text = str(self.divisions)
        if key_changed:
            key_el = etree.SubElement(attrs, "key")
            etree.SubElement(key_el, "fifths").text = str(measure.key_signature.fifths)
        if time_changed:
            time_el = etree.SubElement(attrs, "time")
            etree.SubElement(time_el, "beats").text = str(measure.time_signature.numerator)
            etree.SubElement(time_el, "beat-type").text = str(measure.time_signature.denominator)
        if prev is None:
            sign, line = CLEF_SIGNS[self.part.clef]
            clef_el = etree.SubElement(attrs, "clef")
            etree.SubElement(clef_el, "sign").text = sign
            etree.SubElement(clef_el, "line").text = str(line)

    @staticmethod
    def _write_tempo(measure_el: etree._Element, tempo: int) -> None:
        direction = etree.SubElement(measure_el, "direction", placement="above")
        metronome = etree.SubElement(etree.SubElement(direction, "direction-type"), "metronome")
        etree.SubElement(metronome, "beat-unit").text = "quarter"
        etree.SubElement(metronome, "per-minute").text = str(tempo)
        etree.SubElement(direction, "sound", tempo=str(tempo))

    def _write_event(self, measure_el: etree._Element, event: Event, v_idx: int) -> None:
        tied_in = self.tied_in.get(v_idx, False)
        if isinstance(event, Rest):
            self._note(measure_el, None, event.duration, v_idx)
            self.tied_in[v_idx] = False
            return

        if event.dynamics != self.dynamics.get(v_idx, Dynamics.NONE):
            if event.dynamics is not Dynamics.NONE:
                direction = etree.SubElement(measure_el, "direction", placement="below")
                dyn_el = etree.SubElement(etree.SubElement(direction, "direction-type"), "dynamics")
                etree.SubElement(dyn_el, event.dynamics.mark)
                etree.SubElement(direction, "voice").text = str(v_idx + 1)
            self.dynamics[v_idx] = event.dynamics

        for i, pitch in enumerate(event.pitches):
            self._note(
                measure_el,
                pitch,
                event.duration,
                v_idx,
                chord=i > 0,
                tie_start=event.tie,
                tie_stop=tied_in,
                articulation=event.articulation if i == 0 else Articulation.NONE,
            )
        self.tied_in[v_idx] = event.tie

    def _note(
        self,
        measure_el: etree._Element,
        pitch: int | None,
        duration: Duration,
        v_idx: int,
        chord: bool = False,
        tie_start: bool = False,
        tie_stop: bool = False,
        articulation: Articulation = Articulation.NONE,
    ) -> None:
        note_el = etree.SubElement(measure_el, "note")
        if chord:
            etree.SubElement(note_el, "chord")
        if pitch is None:
            etree.SubElement(note_el, "rest")
        else:
            step, alter, octave = spell_midi(pitch, self.prefer_flats)
            pitch_el = etree.SubElement(note_el, "pitch")
            etree.SubElement(pitch_el, "step").text = step
            if alter:
                etree.SubElement(pitch_el, "alter").text = str(alter)
            etree.SubElement(pitch_el, "octave").text = str(octave)
        etree.SubElement(note_el, "duration").text = self._div(duration.value)
        if tie_stop:
            etree.SubElement(note_el, "tie", type="stop")
        if tie_start:
            etree.SubElement(note_el, "tie", type="start")
        etree.SubElement(note_el, "voice").text = str(v_idx + 1)

        graphic = note_type(duration.value)
        if graphic is not None:
            name, dots, triplet = graphic
            etree.SubElement(note_el, "type").text = name
            for _ in range(dots):
                etree.SubElement(note_el, "dot")
            if triplet:
                time_mod = etree.SubElement(note_el, "time-modification")
                etree.SubElement(time_mod, "actual-notes").text = "3"
                etree.SubElement(time_mod, "normal-notes").text = "2"

        notations = []
        if tie_stop:
            notations.append(etree.Element("tied", type="stop"))
        if tie_start:
            notations.append(etree.Element("tied", type="start"))
        if articulation is not Articulation.NONE:
            articulations = etree.Element("articulations")
            etree.SubElement(articulations, articulation.mark)
            notations.append(articulations)
        if notations:
            notations_el = etree.SubElement(note_el, "notations")
            notations_el.extend(notations)


def score_to_tree(score: Score) -> etree._Element:
    """
    Build a score-partwise element tree from a Score.

    Args:
        score: A Score that passes validate_score

    Returns:
        Root <score-partwise> element
    """
    root = etree.Element("score-partwise", version="3.1")
    if score.title:
        work = etree.SubElement(root, "work")
        etree.SubElement(work, "work-title").text = score.title

    if score.metadata:
        identification = etree.SubElement(root, "identification")
        for key, value in score.metadata:
            if key != "rights":
                etree.SubElement(identification, "creator", type=key).text = value
        for key, value in score.metadata:
            if key == "rights":
                etree.SubElement(identification, "rights").text = value

    part_list = etree.SubElement(root, "part-list")
    part_ids = [f"P{part.index + 1}" for part in score.parts]
    for part, part_id in zip(score.parts, part_ids):
        score_part = etree.SubElement(part_list, "score-part", id=part_id)
        etree.SubElement(score_part, "part-name").text = f"Part {part.index + 1}"

    divisions = _divisions(score)
    for part, part_id in zip(score.parts, part_ids):
        _PartWriter(part, part_id, divisions).write(root)
    return root
