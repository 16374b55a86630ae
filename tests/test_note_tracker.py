"""Tests for the live note-state tracker."""

import random
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from midi_chords.core.note_tracker import CurrentNotesTracker
from midi_chords.core.notes import NoteOffEvent, NoteOnEvent

LOGGER = "midi_chords.core.note_tracker"


def on(pitch, velocity=100, t=0.0):
    return NoteOnEvent(pitch=pitch, velocity=velocity, timestamp=t)


def off(pitch, t=0.0):
    return NoteOffEvent(pitch=pitch, timestamp=t)


class TestNoteOnOff(unittest.TestCase):
    def setUp(self):
        self.tracker = CurrentNotesTracker()

    def test_starts_empty(self):
        self.assertEqual(dict(self.tracker.get_current_notes()), {})
        self.assertEqual(len(self.tracker), 0)

    def test_press_press_release_sequence(self):
        self.tracker.apply_note_on(on(60, 100, 0.0))
        self.assertEqual(set(self.tracker.get_current_notes()), {60})
        self.tracker.apply_note_on(on(64, 100, 1.0))
        self.assertEqual(set(self.tracker.get_current_notes()), {60, 64})
        self.tracker.apply_note_off(off(60, 2.0))
        self.assertEqual(set(self.tracker.get_current_notes()), {64})

    def test_repeated_note_on_keeps_latest_event(self):
        self.tracker.apply_note_on(on(60, 40, 0.0))
        self.tracker.apply_note_on(on(60, 90, 1.5))
        held = self.tracker.get_current_notes()[60]
        self.assertEqual(held.velocity, 90)
        self.assertEqual(held.timestamp, 1.5)
        self.assertEqual(len(self.tracker), 1)

    def test_note_off_accepts_plain_pitch(self):
        self.tracker.apply_note_on(on(72))
        self.assertTrue(self.tracker.apply_note_off(72))
        self.assertNotIn(72, self.tracker)

    def test_redundant_note_off_is_noop(self):
        self.tracker.apply_note_on(on(60))
        self.assertTrue(self.tracker.apply_note_off(off(60)))
        after_first = dict(self.tracker.get_current_notes())
        self.assertFalse(self.tracker.apply_note_off(off(60)))
        self.assertEqual(dict(self.tracker.get_current_notes()), after_first)

    def test_note_off_for_unheld_pitch(self):
        self.tracker.apply_note_on(on(60))
        self.assertFalse(self.tracker.apply_note_off(off(61)))
        self.assertEqual(set(self.tracker.current_notes), {60})

    def test_sorted_notes(self):
        for pitch in (67, 60, 64):
            self.tracker.apply_note_on(on(pitch))
        self.assertEqual([n.pitch for n in self.tracker.sorted_notes()], [60, 64, 67])

    def test_callback_aliases(self):
        self.tracker.on_note_on(on(50))
        self.tracker.on_note_off(50)
        self.assertEqual(len(self.tracker), 0)


class TestInvalidEvents(unittest.TestCase):
    def setUp(self):
        self.tracker = CurrentNotesTracker()
        self.tracker.apply_note_on(on(60))

    def test_out_of_range_note_on_is_ignored(self):
        with self.assertLogs(LOGGER, level="WARNING"):
            self.assertFalse(self.tracker.apply_note_on(on(128)))
        with self.assertLogs(LOGGER, level="WARNING"):
            self.assertFalse(self.tracker.apply_note_on(on(-1)))
        self.assertEqual(set(self.tracker.current_notes), {60})

    def test_out_of_range_note_off_is_ignored(self):
        with self.assertLogs(LOGGER, level="WARNING"):
            self.assertFalse(self.tracker.apply_note_off(200))
        self.assertEqual(set(self.tracker.current_notes), {60})

    def test_non_integer_pitch_is_ignored(self):
        with self.assertLogs(LOGGER, level="WARNING"):
            self.assertFalse(self.tracker.apply_note_on(on(60.5)))
        with self.assertLogs(LOGGER, level="WARNING"):
            self.assertFalse(self.tracker.apply_note_on(on(True)))
        self.assertEqual(self.tracker.current_notes[60].pitch, 60)


class TestSnapshots(unittest.TestCase):
    def setUp(self):
        self.tracker = CurrentNotesTracker()

    def test_snapshot_is_read_only(self):
        self.tracker.apply_note_on(on(60))
        snapshot = self.tracker.get_current_notes()
        with self.assertRaises(TypeError):
            snapshot[61] = on(61)

    def test_old_snapshot_is_not_affected_by_later_events(self):
        self.tracker.apply_note_on(on(60))
        before = self.tracker.get_current_notes()
        self.tracker.apply_note_on(on(64))
        self.tracker.apply_note_off(60)
        self.assertEqual(set(before), {60})
        self.assertEqual(set(self.tracker.get_current_notes()), {64})


class TestSubscription(unittest.TestCase):
    def setUp(self):
        self.tracker = CurrentNotesTracker()
        self.received = []
        self.unsubscribe = self.tracker.subscribe(lambda s: self.received.append(set(s)))

    def test_listener_gets_snapshot_after_each_change(self):
        self.tracker.apply_note_on(on(60))
        self.tracker.apply_note_on(on(64))
        self.tracker.apply_note_off(60)
        self.assertEqual(self.received, [{60}, {60, 64}, {64}])

    def test_no_notification_for_ignored_events(self):
        self.tracker.apply_note_off(60)
        with self.assertLogs(LOGGER, level="WARNING"):
            self.tracker.apply_note_on(on(300))
        self.assertEqual(self.received, [])

    def test_listener_snapshot_matches_current_notes(self):
        seen = []
        self.tracker.subscribe(seen.append)
        self.tracker.apply_note_on(on(62))
        self.assertIs(seen[0], self.tracker.get_current_notes())

    def test_unsubscribe(self):
        self.unsubscribe()
        self.tracker.apply_note_on(on(60))
        self.assertEqual(self.received, [])

    def test_failing_listener_does_not_break_others(self):
        def broken(_snapshot):
            raise RuntimeError("boom")

        tracker = CurrentNotesTracker()
        seen = []
        tracker.subscribe(broken)
        tracker.subscribe(seen.append)
        with self.assertLogs(LOGGER, level="ERROR"):
            tracker.apply_note_on(on(60))
        self.assertEqual(len(seen), 1)
        self.assertIn(60, tracker)


class TestReplay(unittest.TestCase):
    def test_state_matches_last_event_per_pitch(self):
        rng = random.Random(1234)
        for _ in range(50):
            tracker = CurrentNotesTracker()
            last_event = {}
            for t in range(200):
                pitch = rng.randint(55, 70)
                if rng.random() < 0.55:
                    event = on(pitch, rng.randint(1, 127), float(t))
                    tracker.apply_note_on(event)
                    last_event[pitch] = event
                else:
                    tracker.apply_note_off(off(pitch, float(t)))
                    last_event[pitch] = None
            expected = {p: e for p, e in last_event.items() if e is not None}
            self.assertEqual(dict(tracker.get_current_notes()), expected)


if __name__ == "__main__":
    unittest.main()
