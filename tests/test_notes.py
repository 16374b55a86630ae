import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from midi_chords.core.notes import is_sharp, is_valid_pitch, note_label, octave_of, pitch_class_name


class TestNotes(unittest.TestCase):
    def test_valid_pitch(self):
        self.assertTrue(is_valid_pitch(0))
        self.assertTrue(is_valid_pitch(127))
        for pitch in (-1, 128, 60.0, "60", None, True):
            self.assertFalse(is_valid_pitch(pitch), pitch)

    def test_sharp_keys(self):
        self.assertEqual([p for p in range(60, 72) if is_sharp(p)], [61, 63, 66, 68, 70])

    def test_names(self):
        self.assertEqual(pitch_class_name(69), "A")
        self.assertEqual(pitch_class_name(200), "Invalid")
        self.assertEqual(octave_of(21), 0)
        self.assertEqual(note_label(60), "C4")
        self.assertEqual(note_label(108), "C8")


if __name__ == "__main__":
    unittest.main()
