# --- Note model ---
from dataclasses import dataclass
from typing import Tuple

MIN_PITCH = 0
MAX_PITCH = 127

# Lowest and highest MIDI pitch of a standard 88-key piano (A0..C8)
PIANO_88_RANGE: Tuple[int, int] = (21, 108)

NOTE_PITCH_CLASSES = [
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"
]
SHARP_PITCH_CLASSES = frozenset([1, 3, 6, 8, 10])


@dataclass(frozen=True)
class NoteOnEvent:
    pitch: int
    velocity: float
    timestamp: float
    channel: int = 0


@dataclass(frozen=True)
class NoteOffEvent:
    pitch: int
    timestamp: float
    channel: int = 0


def is_valid_pitch(pitch) -> bool:
    # bool is an int subclass but never a pitch
    if isinstance(pitch, bool) or not isinstance(pitch, int):
        return False
    return MIN_PITCH <= pitch <= MAX_PITCH


def is_sharp(pitch: int) -> bool:
    """True for black keys (C#, D#, F#, G#, A#)."""
    return pitch % 12 in SHARP_PITCH_CLASSES


def pitch_class_name(pitch: int) -> str:
    if not is_valid_pitch(pitch):
        return "Invalid"
    return NOTE_PITCH_CLASSES[pitch % 12]


def octave_of(pitch: int) -> int:
    """Scientific pitch notation octave, MIDI 60 is C4."""
    return pitch // 12 - 1


def note_label(pitch: int) -> str:
    return f"{pitch_class_name(pitch)}{octave_of(pitch)}"
