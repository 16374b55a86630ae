# --- QThread for running the MIDI listener ---
from typing import Optional

from PyQt6.QtCore import QThread

from midi_chords.core.midi_input import MidiInputListener, list_input_ports
from midi_chords.ui.workers.midi_signals import MidiInputSignals


class MIDIWorkerThread(QThread):
    """Owns a MidiInputListener for one port.

    Events are re-emitted as Qt signals. Slots living on the GUI thread get
    them through queued connections, which is what keeps every tracker
    mutation on the GUI thread.
    """

    def __init__(self, use_sustain: bool = False, parent=None):
        super().__init__(parent)
        self.signals = MidiInputSignals()
        self.listener: Optional[MidiInputListener] = None
        self.selected_midi_port: Optional[str] = None
        self._use_sustain = use_sustain
        self._running = False

    def set_midi_port(self, port_name: Optional[str]):
        self.selected_midi_port = port_name

    def run(self):
        self._running = True
        self.signals.listener_status.emit("Worker thread started.")

        if not self.selected_midi_port:
            available_ports = list_input_ports()
            self.signals.midi_ports_listed.emit(available_ports)
            if not available_ports:
                self.signals.listener_status.emit("No MIDI input ports found.")
            else:
                self.signals.listener_status.emit("Please select a MIDI port.")
            self._running = False
            return

        self.listener = MidiInputListener(
            port_name=self.selected_midi_port,
            on_note_on=self.signals.note_on.emit,
            on_note_off=self.signals.note_off.emit,
            use_sustain=self._use_sustain,
        )

        if self.listener.start():
            self.signals.listener_status.emit(f"Listening on {self.listener.port_name}.")
            while self._running and self.listener.running:
                self.msleep(100)  # Stay responsive to _running
            if self.listener.running:
                self.listener.stop()
            self.signals.listener_status.emit("MIDI listener stopped.")
        else:
            self.signals.listener_status.emit("Failed to open MIDI input.")

        self.listener = None

    def stop_listener(self):
        self._running = False
        if self.listener:
            self.listener.stop()
        self.quit()
        self.wait()
        self.signals.listener_status.emit("Worker thread stopped.")
