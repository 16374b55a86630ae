"""Headless chord monitor: prints held notes and chord names for every change."""
import argparse
import logging
import sys
import time

from midi_chords.core.midi_input import MidiInputListener, list_input_ports
from midi_chords.core.music_theory import (
    DEFAULT_CHORD_CONFIG_PATH,
    DEFAULT_MIN_NOTES_FOR_CHORD,
    GENRES,
    NO_CHORD,
    ChordTheory,
)
from midi_chords.core.note_tracker import CurrentNotesTracker, NotesSnapshot
from midi_chords.core.notes import note_label
from midi_chords.utils.utils import LOG_LEVELS, setup_logging

logger = logging.getLogger(__name__)


def format_snapshot(snapshot: NotesSnapshot, chord_theory: ChordTheory) -> str:
    pitches = sorted(snapshot)
    chord, names = chord_theory.analyze(pitches)
    notes = " ".join(note_label(p) for p in pitches) or "-"
    if chord is None:
        return f"{notes:<40} {NO_CHORD}"
    return f"{notes:<40} {', '.join(names):<24} [{' '.join(chord['interval_names'])}]"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print live MIDI chords to the terminal.")
    parser.add_argument("--midi-port", type=str, default=None, help="Name of the MIDI input port.")
    parser.add_argument(
        "--min-notes",
        type=int,
        default=DEFAULT_MIN_NOTES_FOR_CHORD,
        help=f"Min notes for chord (default: {DEFAULT_MIN_NOTES_FOR_CHORD}).",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CHORD_CONFIG_PATH,
        help=f"Chord definitions JSON (default: '{DEFAULT_CHORD_CONFIG_PATH}').",
    )
    parser.add_argument("--genre", type=str, default=None, choices=GENRES, help="Style profile for chord scoring.")
    parser.add_argument("--sustain", action="store_true", help="Hold released keys while the sustain pedal is down.")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=LOG_LEVELS,
                        help="Logging level (default: WARNING).")
    parser.add_argument("--list-midi-ports", action="store_true", help="List MIDI input ports and exit.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.list_midi_ports:
        ports = list_input_ports()
        if ports:
            print("Available MIDI input ports:")
            for port in ports:
                print(f'  - "{port}"')
        else:
            print("No MIDI input ports found.")
        return 0

    chord_theory = ChordTheory(args.config, genre=args.genre, min_notes_for_chord=args.min_notes)
    tracker = CurrentNotesTracker()
    tracker.subscribe(lambda snapshot: print(format_snapshot(snapshot, chord_theory), flush=True))

    # The handler thread is the only thread touching the tracker
    listener = MidiInputListener(
        port_name=args.midi_port,
        on_note_on=tracker.apply_note_on,
        on_note_off=tracker.apply_note_off,
        use_sustain=args.sustain,
    )
    if not listener.start():
        logger.error("Failed to start MIDI listener.")
        return 1

    logger.info("Listening. Press Ctrl+C to stop.")
    try:
        while listener.running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received.")
    finally:
        listener.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
