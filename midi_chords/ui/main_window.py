# --- Main Application Window ---
import logging
from typing import Optional

from PyQt6.QtCore import Qt, QTimer, pyqtSlot
from PyQt6.QtWidgets import (
    QComboBox, QFrame, QLabel, QMainWindow, QSizePolicy, QVBoxLayout, QWidget
)

from midi_chords.core.midi_input import list_input_ports
from midi_chords.core.music_theory import DEFAULT_CHORD_CONFIG_PATH, NO_CHORD, ChordTheory
from midi_chords.core.note_tracker import CurrentNotesTracker, NotesSnapshot
from midi_chords.core.notes import NoteOnEvent, note_label
from midi_chords.ui.piano_keyboard_widget import PianoKeyboardWidget
from midi_chords.ui.velocity_chart_widget import VelocityDistributionWidget
from midi_chords.ui.workers.midi_worker import MIDIWorkerThread

PORT_PLACEHOLDER = "Select MIDI Input Device"
PORT_SCAN_INTERVAL_MS = 5000

logger = logging.getLogger(__name__)

STYLE_SHEET = """
    QMainWindow {
        background-color: #2E2E2E;
    }
    QLabel {
        color: #E0E0E0;
        font-size: 11pt;
    }
    QComboBox {
        font-size: 10pt;
        padding: 5px;
    }
    QFrame#chordDisplayFrame {
        border: 1px solid #555555;
        border-radius: 5px;
        background-color: #3A3A3A;
    }
    QLabel#chordNameLabel {
        font-size: 28pt;
        font-weight: bold;
        color: #4CAF50;
        padding: 10px;
    }
    QLabel#statusLabel {
        font-size: 9pt;
        color: #AAAAAA;
    }
"""


class ChordAppMainWindow(QMainWindow):
    def __init__(
        self,
        chord_config_path: Optional[str] = DEFAULT_CHORD_CONFIG_PATH,
        min_notes: int = 2,
        genre: Optional[str] = None,
        use_sustain: bool = False,
        initial_port: Optional[str] = None,
    ):
        super().__init__()
        self.setWindowTitle("MIDI Chords")
        self.setGeometry(100, 100, 1100, 600)
        self.setStyleSheet(STYLE_SHEET)

        self.tracker = CurrentNotesTracker()
        self.chord_theory = ChordTheory(chord_config_path, genre=genre, min_notes_for_chord=min_notes)
        self.listener_thread: Optional[MIDIWorkerThread] = None
        self._retired_worker: Optional[MIDIWorkerThread] = None
        self._use_sustain = use_sustain

        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        self.layout = QVBoxLayout(self.central_widget)
        self._setup_ui()

        self._unsubscribe = self.tracker.subscribe(self.on_notes_changed)
        self._populate_midi_ports(initial_port)
        if initial_port and self.midi_port_combo.currentText() == initial_port:
            self._start_listener_for_port(initial_port)

        # Pick up devices plugged in later
        self.port_scan_timer = QTimer(self)
        self.port_scan_timer.timeout.connect(self._check_and_repopulate_midi_ports)
        self.port_scan_timer.start(PORT_SCAN_INTERVAL_MS)

    def _setup_ui(self):
        self.midi_port_combo = QComboBox()
        self.midi_port_combo.setPlaceholderText(PORT_PLACEHOLDER)
        self.midi_port_combo.activated.connect(self.on_midi_port_selected)
        self.layout.addWidget(self.midi_port_combo)

        chord_display_frame = QFrame()
        chord_display_frame.setObjectName("chordDisplayFrame")
        chord_display_frame.setFrameShape(QFrame.Shape.StyledPanel)
        chord_display_layout = QVBoxLayout(chord_display_frame)

        self.notes_label = QLabel("")
        self.notes_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        chord_display_layout.addWidget(self.notes_label)

        self.chord_name_label = QLabel(NO_CHORD)
        self.chord_name_label.setObjectName("chordNameLabel")
        self.chord_name_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        chord_display_layout.addWidget(self.chord_name_label)

        self.explanation_label = QLabel("Connect a MIDI device and play some notes to see the chord type.")
        self.explanation_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        chord_display_layout.addWidget(self.explanation_label)
        self.layout.addWidget(chord_display_frame)

        self.piano_keyboard_widget = PianoKeyboardWidget(self)
        self.layout.addWidget(self.piano_keyboard_widget, stretch=1)

        self.velocity_widget = VelocityDistributionWidget(self)
        self.velocity_widget.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self.layout.addWidget(self.velocity_widget)

        self.status_label = QLabel("App Initialized. Select a MIDI port.")
        self.status_label.setObjectName("statusLabel")
        self.layout.addWidget(self.status_label)

    # --- Note state ---

    def _from_current_worker(self) -> bool:
        # Queued events of a replaced worker can still arrive after its notes were released
        sender = self.sender()
        if sender is None:
            return True
        return self.listener_thread is not None and sender is self.listener_thread.signals

    @pyqtSlot(object)
    def on_note_on(self, event: NoteOnEvent):
        if not self._from_current_worker():
            logger.debug(f"Dropping note-on from a replaced MIDI worker: {event.pitch}")
            return
        if self.tracker.apply_note_on(event):
            self.velocity_widget.add_velocity(event.velocity)

    @pyqtSlot(object)
    def on_note_off(self, event):
        if not self._from_current_worker():
            return
        self.tracker.apply_note_off(event)

    def on_notes_changed(self, snapshot: NotesSnapshot):
        pitches = sorted(snapshot)
        self.notes_label.setText(" ".join(note_label(p) for p in pitches))
        chord, chord_names = self.chord_theory.analyze(pitches)
        if chord is not None:
            self.chord_name_label.setText(", ".join(chord_names))
            self.chord_name_label.setStyleSheet("color: #4CAF50;")
            self.explanation_label.setText(
                f"{chord['chord_description']}, {chord['inversion_type']}: {' '.join(chord['interval_names'])}"
            )
        else:
            self.chord_name_label.setText(NO_CHORD)
            self.explanation_label.setText("")
            self.chord_name_label.setStyleSheet("color: #E0E0E0;")
        self.piano_keyboard_widget.update_active_notes(snapshot)

    # --- MIDI ports ---

    def _populate_midi_ports(self, selected_port_name: Optional[str] = None):
        current_selection = selected_port_name or self.midi_port_combo.currentText()
        self.midi_port_combo.blockSignals(True)
        self.midi_port_combo.clear()
        self.midi_port_combo.addItem(PORT_PLACEHOLDER)
        ports = list_input_ports()
        if ports:
            self.midi_port_combo.addItems(ports)
            if current_selection in ports:
                self.midi_port_combo.setCurrentText(current_selection)
        else:
            self.status_label.setText("No MIDI input devices found.")
        self.midi_port_combo.blockSignals(False)

    def _check_and_repopulate_midi_ports(self):
        if self.listener_thread and self.listener_thread.isRunning():
            return
        listed = [self.midi_port_combo.itemText(i) for i in range(1, self.midi_port_combo.count())]
        if set(listed) != set(list_input_ports()):
            self.status_label.setText("MIDI port list changed. Repopulating...")
            self._populate_midi_ports()

    def on_midi_port_selected(self, index: int):
        if index == 0:
            self._stop_listener()
            self.status_label.setText("Please select a MIDI port.")
            return

        port_name = self.midi_port_combo.itemText(index)
        self.status_label.setText(f"Selected MIDI port: {port_name}. Starting listener...")
        if self.listener_thread and self.listener_thread.isRunning():
            self._stop_listener()
            # Give the old port a moment to close
            QTimer.singleShot(200, lambda: self._start_listener_for_port(port_name))
        else:
            self._start_listener_for_port(port_name)

    def _start_listener_for_port(self, port_name: str):
        worker = MIDIWorkerThread(use_sustain=self._use_sustain)
        worker.set_midi_port(port_name)
        self._attach_worker(worker)
        signals = worker.signals
        signals.midi_ports_listed.connect(
            lambda ports: self._populate_midi_ports(port_name if port_name in ports else None)
        )
        signals.listener_status.connect(self.status_label.setText)
        worker.start()

    def _attach_worker(self, worker: MIDIWorkerThread):
        # Note events always come from the MIDI handler thread
        queued = Qt.ConnectionType.QueuedConnection
        worker.signals.note_on.connect(self.on_note_on, queued)
        worker.signals.note_off.connect(self.on_note_off, queued)
        self.listener_thread = worker

    def _detach_worker(self):
        worker = self.listener_thread
        if worker is None:
            return
        worker.signals.note_on.disconnect(self.on_note_on)
        worker.signals.note_off.disconnect(self.on_note_off)
        # Kept alive so its pending events still report it as their sender
        self._retired_worker = worker
        self.listener_thread = None

    def _stop_listener(self):
        if self.listener_thread and self.listener_thread.isRunning():
            self.listener_thread.stop_listener()
        self._detach_worker()
        self._release_all_notes()

    def _release_all_notes(self):
        # Notes still held on a closed port would never get their note-off
        for pitch in list(self.tracker.current_notes):
            self.tracker.apply_note_off(pitch)

    def closeEvent(self, event):
        self.port_scan_timer.stop()
        if self.listener_thread and self.listener_thread.isRunning():
            self.status_label.setText("Closing... Stopping MIDI listener.")
            self.listener_thread.stop_listener()
        self._unsubscribe()
        super().closeEvent(event)
