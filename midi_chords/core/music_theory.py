# --- ChordTheory: chord names for the currently held notes ---
import json
import logging
import os
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from midi_chords.core.notes import NOTE_PITCH_CLASSES, pitch_class_name
from midi_chords.utils.utils import resource_path

# --- Constants ---
DEFAULT_MIN_NOTES_FOR_CHORD = 2
DEFAULT_MAX_CHORD_NAMES = 3
DEFAULT_CHORD_CONFIG_PATH = resource_path(os.path.join("data", "chord_definitions.json"))
MIN_ACCEPTABLE_CHORD_SCORE = 0.6
NO_CHORD = "N.C."

# Chords that get a bonus under the jazz profile when an altered tone (not the fifth) is played
JAZZ_ALTERED_CHORDS = frozenset(["7#5", "7b9", "7#9"])
DOMINANT_CHORDS = frozenset(["7", "9", "13", "7#5", "7b9", "7#9"])
GENRES = ["jazz"]
MINOR_SEVENTH_CHORDS = frozenset(["min7", "min9"])

logger = logging.getLogger(__name__)

ChordDefinition = Tuple[str, FrozenSet[int], FrozenSet[int]]  # description, core, optional


def _definition(description: str, core: Iterable[int], optional: Iterable[int] = ()) -> ChordDefinition:
    return description, frozenset(core), frozenset(optional)


DEFAULT_CHORD_DEFINITIONS: "OrderedDict[str, ChordDefinition]" = OrderedDict([
    # Major
    ("maj", _definition("Major Triad", [0, 4, 7])),
    ("add4", _definition("Major Add 4", [0, 4, 7], [5])),
    ("6", _definition("Major Sixth", [0, 4, 7], [9])),
    ("6/9", _definition("Major Six Nine", [0, 4, 7], [2, 9])),
    ("maj7", _definition("Major 7th", [0, 4, 7, 11])),
    ("maj9", _definition("Major 9th", [0, 4, 7, 11], [2])),
    ("maj13", _definition("Major 13th", [0, 4, 7, 11], [2, 5, 9])),
    ("maj7#11", _definition("Major 7th Sharp 11th", [0, 4, 7, 11], [6])),
    # Minor
    ("min", _definition("Minor Triad", [0, 3, 7])),
    ("min6", _definition("Minor Sixth", [0, 3, 7], [9])),
    ("madd9", _definition("Minor Add 9", [0, 3, 7], [2])),
    ("min7", _definition("Minor 7th", [0, 3, 7, 10])),
    ("min9", _definition("Minor 9th", [0, 3, 7, 10], [2])),
    ("min11", _definition("Minor 11th", [0, 3, 7, 10], [2, 5])),
    ("minMaj7", _definition("Minor Major 7th", [0, 3, 7, 11])),
    ("min7b5", _definition("Half-Diminished 7th", [0, 3, 6, 10])),
    # Dominant
    ("7", _definition("Dominant 7th", [0, 4, 10], [7])),
    ("9", _definition("Dominant 9th", [0, 4, 10], [2, 7])),
    ("13", _definition("Dominant 13th", [0, 4, 10], [2, 7, 9])),
    ("7#5", _definition("Dominant 7th Sharp 5", [0, 4, 10], [8])),
    ("7b9", _definition("Dominant 7th Flat 9", [0, 4, 10], [1, 7])),
    ("7#9", _definition("Dominant 7th Sharp 9", [0, 4, 10], [3, 7])),
    # Other
    ("sus4", _definition("Suspended 4th", [0, 5, 7])),
    ("sus2", _definition("Suspended 2nd", [0, 2, 7])),
    ("7sus4", _definition("Dominant 7th Suspended 4th", [0, 5, 10], [7])),
    ("dim", _definition("Diminished Triad", [0, 3, 6])),
    ("aug", _definition("Augmented Triad", [0, 4, 8])),
    ("dim7", _definition("Diminished 7th", [0, 3, 6, 9])),
    ("5", _definition("Power Chord", [0, 7])),
])

# Interval weights for scoring; anything unlisted weighs 0.3
INTERVAL_WEIGHTS = {0: 0.8, 3: 1.0, 4: 1.0, 7: 0.5, 10: 1.0, 11: 1.0}
DEFAULT_INTERVAL_WEIGHT = 0.3

INTERVAL_NAMES = {
    0: "R", 1: "b2", 2: "2", 3: "b3", 4: "3", 5: "4", 6: "b5/#4",
    7: "5", 8: "#5/b6", 9: "6", 10: "b7", 11: "M7",
}


@dataclass(frozen=True)
class _Candidate:
    score: float
    root_pc: int
    chord_type: str
    description: str
    core: FrozenSet[int]
    optional: FrozenSet[int]
    matched_core: FrozenSet[int]
    matched_optional: FrozenSet[int]
    extra: FrozenSet[int]

    @property
    def strength(self) -> float:
        return len(self.matched_core) + len(self.core) * 0.1


def _weight(interval: int) -> float:
    return INTERVAL_WEIGHTS.get(interval % 12, DEFAULT_INTERVAL_WEIGHT)


def weighted_score(played_pcs: FrozenSet[int], core: FrozenSet[int], optional: FrozenSet[int]) -> float:
    """Core match strength, nudged up by optional tones, minus a capped penalty for extra tones."""
    # Chords beyond triads need every core tone
    if len(core) > 3 and not core.issubset(played_pcs):
        return 0.0
    total_core_weight = sum(_weight(i) for i in core)
    if not total_core_weight:
        return 0.0
    score = sum(_weight(i) for i in played_pcs & core) / total_core_weight
    if optional:
        score += sum(_weight(i) for i in played_pcs & optional) / (total_core_weight * 2)
    extra = played_pcs - (core | optional)
    penalty = min(len(extra) * 0.05, 0.15)
    return max(score - penalty, 0.0)


def interval_to_name(interval: int) -> str:
    return INTERVAL_NAMES.get(interval % 12, str(interval))


class ChordTheory:
    """Chord-name service: scores every (root, chord type) pair against the played pitch classes."""

    def __init__(
        self,
        chord_config_path: Optional[str] = DEFAULT_CHORD_CONFIG_PATH,
        genre: Optional[str] = None,
        min_notes_for_chord: int = DEFAULT_MIN_NOTES_FOR_CHORD,
    ):
        self.genre = genre
        self.min_notes = min_notes_for_chord
        self.chord_definitions: "OrderedDict[str, ChordDefinition]" = OrderedDict(DEFAULT_CHORD_DEFINITIONS)
        self.recent_chords: List[Dict[str, Any]] = []  # Last 3 chords for context
        if chord_config_path:
            self.load_chord_definitions(chord_config_path)

    def load_chord_definitions(self, config_path: str) -> bool:
        """Replace the chord table from a JSON file; keep the current one on any problem.

        Expected format::

            {"maj": {"name": "Major Triad", "core_intervals": [0, 4, 7],
                     "optional_intervals": []}, ...}
        """
        config_file = Path(config_path)
        if not config_file.exists():
            logger.info(f"Chord definition file not found at '{config_path}'. Using default definitions.")
            return False
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                custom_chords = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error decoding JSON from '{config_path}': {e}. Using default definitions.")
            return False
        except OSError as e:
            logger.error(f"Failed to read chord definitions from '{config_path}': {e}. Using default definitions.")
            return False

        if not isinstance(custom_chords, dict):
            logger.error(f"Chord definitions in '{config_path}' must be a JSON object. Using default definitions.")
            return False

        loaded: "OrderedDict[str, ChordDefinition]" = OrderedDict()
        for chord_type, data in custom_chords.items():
            if not isinstance(data, dict):
                logger.warning(f"Skipping invalid chord definition for '{chord_type}' in '{config_path}'.")
                continue
            core = data.get("core_intervals")
            optional = data.get("optional_intervals", [])
            name = data.get("name")
            if (
                isinstance(core, list) and core
                and all(isinstance(i, int) for i in core)
                and isinstance(optional, list)
                and all(isinstance(i, int) for i in optional)
                and isinstance(name, str)
            ):
                loaded[chord_type] = _definition(name, (i % 12 for i in core), (i % 12 for i in optional))
                logger.debug(f"Loaded custom chord: {chord_type} - {name} {core} {optional}")
            else:
                logger.warning(f"Skipping invalid chord definition for '{chord_type}' in '{config_path}'.")

        if not loaded:
            logger.warning(f"No valid chord definitions found in '{config_path}'. Using default definitions.")
            return False
        self.chord_definitions = loaded
        logger.info(f"Successfully loaded {len(loaded)} chord definitions from '{config_path}'.")
        return True

    def adjust_score_for_context(self, chord_type: str, score: float, matched_optional: FrozenSet[int]) -> float:
        if self.genre == "jazz" and chord_type in JAZZ_ALTERED_CHORDS and matched_optional - {7}:
            score *= 1.2
        if self.recent_chords and self.recent_chords[-1].get("chord_type") in MINOR_SEVENTH_CHORDS:
            # Likely the V7 of a ii-V
            if chord_type in DOMINANT_CHORDS:
                score *= 1.1
        return score

    def _candidates(self, played_pcs: FrozenSet[int]) -> List[_Candidate]:
        candidates = []
        for root_pc in range(12):
            relative = frozenset((pc - root_pc) % 12 for pc in played_pcs)
            for chord_type, (description, core, optional) in self.chord_definitions.items():
                matched_optional = relative & optional
                score = weighted_score(relative, core, optional)
                score = self.adjust_score_for_context(chord_type, score, matched_optional)
                candidates.append(_Candidate(
                    score=score,
                    root_pc=root_pc,
                    chord_type=chord_type,
                    description=description,
                    core=core,
                    optional=optional,
                    matched_core=relative & core,
                    matched_optional=matched_optional,
                    extra=relative - (core | optional),
                ))
        return candidates

    @staticmethod
    def _pick_best(candidates: Iterable[_Candidate]) -> Optional[_Candidate]:
        best: Optional[_Candidate] = None
        for candidate in candidates:
            if best is None or candidate.score > best.score:
                best = candidate
            elif candidate.score == best.score and candidate.score > 0 and candidate.strength > best.strength:
                best = candidate
        return best

    @staticmethod
    def _chord_name(candidate: _Candidate, bass_pc: int) -> str:
        name = f"{NOTE_PITCH_CLASSES[candidate.root_pc]}{candidate.chord_type}"
        if bass_pc != candidate.root_pc:
            name += f"/{NOTE_PITCH_CLASSES[bass_pc]}"
        return name

    @staticmethod
    def _inversion_text(candidate: _Candidate, bass_interval: int) -> str:
        if bass_interval == 0:
            return "Root Position"
        sorted_core = sorted(candidate.core)
        if bass_interval in sorted_core:
            index = sorted_core.index(bass_interval)
            ordinals = {1: "1st Inversion", 2: "2nd Inversion", 3: "3rd Inversion"}
            return ordinals.get(index, f"Inversion (bass is {index + 1}th tone)")
        if bass_interval in candidate.optional:
            return "Slash Chord (bass is extension)"
        return "Slash Chord (bass not a core tone)"

    @staticmethod
    def _voicing_text(note_count: int, octave_span: float) -> str:
        if note_count < 2:
            return "N/A"
        if note_count == 2:
            return "Interval"
        if octave_span < 1.0:
            return "Very Close Voicing"
        if octave_span < 1.5:
            return "Close Voicing"
        if octave_span < 2.5:
            return "Moderately Open Voicing"
        return "Very Open (Spread) Voicing"

    def recognize_chord(self, played_midi_notes: Iterable[int]) -> Optional[Dict[str, Any]]:
        """Best chord for the played pitches, or None below ``min_notes`` or the score threshold."""
        sorted_notes = sorted(set(played_midi_notes))
        if not sorted_notes or len(sorted_notes) < self.min_notes:
            return None

        played_pcs = frozenset(n % 12 for n in sorted_notes)
        best = self._pick_best(self._candidates(played_pcs))
        if best is None or best.score < MIN_ACCEPTABLE_CHORD_SCORE:
            return None

        lowest = sorted_notes[0]
        bass_pc = lowest % 12
        bass_interval = (bass_pc - best.root_pc) % 12
        octave_span = (sorted_notes[-1] - lowest) / 12.0
        relative = sorted((pc - best.root_pc) % 12 for pc in played_pcs)
        result = {
            "full_chord_name": self._chord_name(best, bass_pc),
            "root_note_pc": best.root_pc,
            "root_note_name": NOTE_PITCH_CLASSES[best.root_pc],
            "bass_note_midi": lowest,
            "bass_note_name": pitch_class_name(lowest),
            "chord_type": best.chord_type,
            "chord_description": best.description,
            "inversion_type": self._inversion_text(best, bass_interval),
            "score": round(best.score, 3),
            "played_notes_midi": sorted_notes,
            "played_pitch_classes": sorted(played_pcs),
            "interval_names": [interval_to_name(i) for i in relative],
            "extra_played_intervals_rel_to_root": sorted(best.extra),
            "octave_span_played_notes": round(octave_span, 2),
            "voicing_density_description": self._voicing_text(len(sorted_notes), octave_span),
        }

        self.recent_chords.append(result)
        if len(self.recent_chords) > 3:
            self.recent_chords.pop(0)
        logger.debug(f"Chord: {result['full_chord_name']} ({result['inversion_type']}), Score: {result['score']:.2f}")
        return result

    def analyze(
        self, played_midi_notes: Iterable[int], max_results: int = DEFAULT_MAX_CHORD_NAMES
    ) -> Tuple[Optional[Dict[str, Any]], List[str]]:
        """Recognized chord details and the chord labels for the held notes, best first.

        The first label is the recognized chord. Further labels are readings
        on other roots that contain every core tone of their chord type and
        still score above the acceptance threshold.
        """
        sorted_notes = sorted(set(played_midi_notes))
        played_pcs = frozenset(n % 12 for n in sorted_notes)
        # Scored before recognize_chord() updates the chord history
        candidates = self._candidates(played_pcs)
        primary = self.recognize_chord(sorted_notes)
        if primary is None:
            return None, []

        bass_pc = sorted_notes[0] % 12
        names = [primary["full_chord_name"]]
        alternatives: List[_Candidate] = []
        for root_pc in range(12):
            if root_pc == primary["root_note_pc"]:
                continue
            per_root = [
                c for c in candidates
                if c.root_pc == root_pc
                and c.core.issubset(c.matched_core)
                and c.score >= MIN_ACCEPTABLE_CHORD_SCORE
            ]
            best = self._pick_best(per_root)
            if best is not None:
                alternatives.append(best)
        alternatives.sort(key=lambda c: (-c.score, -c.strength, c.root_pc))
        for candidate in alternatives:
            if len(names) >= max_results:
                break
            names.append(self._chord_name(candidate, bass_pc))
        return primary, names

    def detect_chord_names(
        self, played_midi_notes: Iterable[int], max_results: int = DEFAULT_MAX_CHORD_NAMES
    ) -> List[str]:
        return self.analyze(played_midi_notes, max_results)[1]
