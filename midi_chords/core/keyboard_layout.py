# --- Piano keyboard layout ---
from dataclasses import dataclass
from typing import Collection, List, Tuple

from midi_chords.core.notes import (
    PIANO_88_RANGE,
    is_sharp,
    note_label,
    octave_of,
    pitch_class_name,
)

# Geometry relative to the track height / natural key width
WHITE_KEY_TOP_RATIO = 0.02
WHITE_KEY_HEIGHT_RATIO = 0.98
BLACK_KEY_HEIGHT_RATIO = 0.6
BLACK_KEY_WIDTH_RATIO = 0.9
KEY_BORDER_RADIUS = 5
KEY_STROKE_COLOR = "#888"

# Colors
PRESSED_KEY_COLOR = "steelblue"
PRESSED_TEXT_COLOR = "#111"
WHITE_KEY_COLOR = "#f8f8f8"
WHITE_TEXT_COLOR = "#222"
BLACK_KEY_COLOR = "#222"
BLACK_TEXT_COLOR = "#eee"

# Octave brackets drawn below the keys
OCTAVE_BRACKET_OFFSET = 15
OCTAVE_BRACKET_INSET = 2
OCTAVE_BRACKET_TICK = 10
OCTAVE_LABEL_OFFSET = 12


@dataclass(frozen=True)
class KeyRect:
    pitch: int
    x: float
    y: float
    width: float
    height: float
    fill: str
    text_color: str
    is_black: bool
    pressed: bool
    name: str
    title: str


@dataclass(frozen=True)
class KeyLabel:
    pitch: int
    text: str
    x: float
    y: float
    color: str


@dataclass(frozen=True)
class OctaveBracket:
    octave: int
    left: float
    right: float
    y: float
    label: str

    @property
    def label_x(self) -> float:
        return (self.left + self.right) / 2

    @property
    def label_y(self) -> float:
        return self.y + OCTAVE_LABEL_OFFSET

    def path(self) -> List[Tuple[float, float]]:
        """Polyline of the bracket: up-tick, baseline, up-tick."""
        top = self.y - OCTAVE_BRACKET_TICK
        return [
            (self.left, top),
            (self.left, self.y),
            (self.right, self.y),
            (self.right, top),
        ]


@dataclass(frozen=True)
class KeyboardLayout:
    width: float
    height: float
    white_keys: Tuple[KeyRect, ...]
    black_keys: Tuple[KeyRect, ...]
    labels: Tuple[KeyLabel, ...]
    octave_brackets: Tuple[OctaveBracket, ...]

    @property
    def keys(self) -> Tuple[KeyRect, ...]:
        """All keys in paint order (white keys first so black keys end up on top)."""
        return self.white_keys + self.black_keys

    def key_for_pitch(self, pitch: int) -> KeyRect:
        for key in self.keys:
            if key.pitch == pitch:
                return key
        raise KeyError(pitch)


def natural_key_count(pitch_range: Tuple[int, int] = PIANO_88_RANGE) -> int:
    min_pitch, max_pitch = pitch_range
    return sum(1 for p in range(min_pitch, max_pitch + 1) if not is_sharp(p))


def _key_colors(pressed: bool, black: bool) -> Tuple[str, str]:
    if pressed:
        return PRESSED_KEY_COLOR, PRESSED_TEXT_COLOR
    if black:
        return BLACK_KEY_COLOR, BLACK_TEXT_COLOR
    return WHITE_KEY_COLOR, WHITE_TEXT_COLOR


def compute_keyboard_layout(
    width: float,
    height: float,
    current_notes: Collection[int],
    pitch_range: Tuple[int, int] = PIANO_88_RANGE,
) -> KeyboardLayout:
    """Map every pitch of ``pitch_range`` to a key rectangle.

    ``current_notes`` is anything supporting ``in`` with pitches (the tracker
    snapshot works as is). Natural keys share the width equally; the cursor
    advances only after a natural key, so each sharp key is centered on the
    boundary between its two neighbours. Nothing is cached: the result is
    a pure function of the arguments.
    """
    min_pitch, max_pitch = pitch_range
    if min_pitch > max_pitch:
        raise ValueError(f"Invalid pitch range: {pitch_range}")

    key_width = width / natural_key_count(pitch_range)
    black_key_width = key_width * BLACK_KEY_WIDTH_RATIO

    white_keys: List[KeyRect] = []
    black_keys: List[KeyRect] = []
    labels: List[KeyLabel] = []
    octave_markers: List[Tuple[int, float]] = []

    current_x = 0.0
    for pitch in range(min_pitch, max_pitch + 1):
        black = is_sharp(pitch)
        if black:
            x = current_x - 0.5 * black_key_width
            # Same top edge as the natural keys, so sharps stay inside their neighbours
            y = height * WHITE_KEY_TOP_RATIO
            w = black_key_width
            h = height * BLACK_KEY_HEIGHT_RATIO
        else:
            x = current_x
            y = height * WHITE_KEY_TOP_RATIO
            w = key_width
            h = height * WHITE_KEY_HEIGHT_RATIO

        if pitch % 12 == 0:
            octave_markers.append((octave_of(pitch), x))

        pressed = pitch in current_notes
        fill, text_color = _key_colors(pressed, black)
        name = pitch_class_name(pitch)
        key = KeyRect(
            pitch=pitch,
            x=x,
            y=y,
            width=w,
            height=h,
            fill=fill,
            text_color=text_color,
            is_black=black,
            pressed=pressed,
            name=name,
            title=f"{note_label(pitch)} (MIDI {pitch})",
        )
        labels.append(KeyLabel(
            pitch=pitch,
            text=name,
            x=x + 0.5 * w,
            y=y + h - 18 if black else h - 10,
            color=text_color,
        ))
        if black:
            black_keys.append(key)
        else:
            white_keys.append(key)
            current_x += key_width

    bracket_y = height + OCTAVE_BRACKET_OFFSET
    brackets = []
    for (octave, left_x), (_, right_x) in zip(octave_markers, octave_markers[1:]):
        brackets.append(OctaveBracket(
            octave=octave,
            left=left_x + OCTAVE_BRACKET_INSET,
            right=right_x - OCTAVE_BRACKET_INSET,
            y=bracket_y,
            label=f"Octave {octave}",
        ))

    return KeyboardLayout(
        width=width,
        height=height,
        white_keys=tuple(white_keys),
        black_keys=tuple(black_keys),
        labels=tuple(labels),
        octave_brackets=tuple(brackets),
    )
