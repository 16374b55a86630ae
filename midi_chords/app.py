import argparse
import sys

from PyQt6.QtWidgets import QApplication

from midi_chords.core.music_theory import DEFAULT_CHORD_CONFIG_PATH, DEFAULT_MIN_NOTES_FOR_CHORD, GENRES
from midi_chords.ui.main_window import ChordAppMainWindow
from midi_chords.utils.utils import LOG_LEVELS, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live MIDI keyboard and chord display.")
    parser.add_argument("--midi-port", type=str, default=None, help="MIDI input port to open on start.")
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
    parser.add_argument("--log-level", type=str, default="INFO", choices=LOG_LEVELS, help="Logging level (default: INFO).")
    return parser


def main(argv=None):
    # Qt consumes its own options from sys.argv
    args, qt_args = build_parser().parse_known_args(argv)
    setup_logging(args.log_level)

    app = QApplication([sys.argv[0]] + qt_args)
    main_window = ChordAppMainWindow(
        chord_config_path=args.config,
        min_notes=args.min_notes,
        genre=args.genre,
        use_sustain=args.sustain,
        initial_port=args.midi_port,
    )
    main_window.show()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
