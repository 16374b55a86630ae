# --- Qt signals carrying note events from the MIDI thread to the GUI thread ---
from PyQt6.QtCore import QObject, pyqtSignal


class MidiInputSignals(QObject):
    note_on = pyqtSignal(object)   # NoteOnEvent
    note_off = pyqtSignal(object)  # NoteOffEvent
    midi_ports_listed = pyqtSignal(list)
    listener_status = pyqtSignal(str)
