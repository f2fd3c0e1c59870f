"""
Sample filename conventions for batch import.

Recognised patterns, most specific first (case-insensitive, extension ignored):

    Piano_C3_v0-20_rr1    note + velocity range + round robin
    Piano_48_v0-20        note + velocity range
    Piano_F#4_rr2         note + round robin
    Piano_Bb2             note only

The note is a name (C3 = 60, '#' or 'b' accidentals) or a MIDI number.
"""

import re
from collections import defaultdict
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, Iterable, List, Optional, Tuple

from multisampler.config import MIDI_MAX, MIDI_MIN, NOTE_SEMITONES, OCTAVE_OFFSET

_NOTE = r"([A-G][#B]?-?\d+|\d{1,3})"

_PATTERNS = [
    re.compile(rf"^(.+?)_{_NOTE}_v(\d+)[_-](\d+)_rr(\d+)$", re.IGNORECASE),
    re.compile(rf"^(.+?)_{_NOTE}_v(\d+)[_-](\d+)$", re.IGNORECASE),
    re.compile(rf"^(.+?)_{_NOTE}_rr(\d+)$", re.IGNORECASE),
    re.compile(rf"^(.+?)_{_NOTE}$", re.IGNORECASE),
]

_NOTE_NAME_RE = re.compile(r"^([A-G])([#B]?)(-?\d+)$")


@dataclass
class ParsedSampleInfo:
    """Components recovered from a sample filename."""
    original_filename: str
    sample_name: str
    midi_note: Optional[int] = None
    velocity_range: Optional[Tuple[int, int]] = None
    round_robin_index: Optional[int] = None

    @property
    def description(self) -> str:
        parts = [self.sample_name]
        if self.midi_note is not None:
            parts.append(f"Note: {self.midi_note}")
        if self.velocity_range is not None:
            parts.append(f"Vel: {self.velocity_range[0]}-{self.velocity_range[1]}")
        if self.round_robin_index is not None:
            parts.append(f"RR: {self.round_robin_index}")
        return ", ".join(parts)


def note_name_to_midi(note: str) -> Optional[int]:
    """'C3' -> 60, 'F#4' -> 78, 'Bb2' -> 58. None if unparsable or out of range."""
    match = _NOTE_NAME_RE.match(note.strip().upper())
    if not match:
        return None
    letter, accidental, octave = match.groups()
    adjust = {'#': 1, 'B': -1}.get(accidental, 0)
    midi = (int(octave) - OCTAVE_OFFSET) * 12 + NOTE_SEMITONES[letter] + adjust
    return midi if MIDI_MIN <= midi <= MIDI_MAX else None


def _parse_note(token: str) -> Optional[int]:
    if token.isdigit():
        value = int(token)
        return value if MIDI_MIN <= value <= MIDI_MAX else None
    return note_name_to_midi(token)


def parse_filename(filename: str) -> ParsedSampleInfo:
    """Parse a filename (or path) against the known naming patterns."""
    filename = PurePath(filename).name
    stem = PurePath(filename).stem

    for index, pattern in enumerate(_PATTERNS):
        match = pattern.match(stem)
        if not match:
            continue
        groups = match.groups()
        info = ParsedSampleInfo(
            original_filename=filename,
            sample_name=groups[0],
            midi_note=_parse_note(groups[1]),
        )
        if index in (0, 1):
            info.velocity_range = (int(groups[2]), int(groups[3]))
        if index == 0:
            info.round_robin_index = int(groups[4])
        elif index == 2:
            info.round_robin_index = int(groups[2])
        return info

    return ParsedSampleInfo(original_filename=filename, sample_name=stem)


def parse_batch(filenames: Iterable[str]) -> List[ParsedSampleInfo]:
    return [parse_filename(name) for name in filenames]


def group_by_note(parsed: Iterable[ParsedSampleInfo]) -> Dict[int, List[ParsedSampleInfo]]:
    """Group parsed samples by MIDI note; samples without a note are dropped."""
    grouped = defaultdict(list)
    for info in parsed:
        if info.midi_note is not None:
            grouped[info.midi_note].append(info)
    return dict(grouped)
