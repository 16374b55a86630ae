# --- MidiInputListener: mido input port -> note events ---
import logging
import threading
import time
from typing import Callable, List, Optional, Set, Union

import mido

from midi_chords.core.notes import NoteOffEvent, NoteOnEvent

SUSTAIN_PEDAL_CONTROL = 64
SUSTAIN_PEDAL_THRESHOLD = 64

logger = logging.getLogger(__name__)

NoteEvent = Union[NoteOnEvent, NoteOffEvent]
NoteOnSink = Callable[[NoteOnEvent], None]
NoteOffSink = Callable[[NoteOffEvent], None]


def list_input_ports() -> List[str]:
    try:
        return list(mido.get_input_names())
    except Exception as e:
        logger.error(f"Could not list MIDI ports: {e}")
        return []


def translate_message(msg: mido.Message, timestamp: Optional[float] = None) -> Optional[NoteEvent]:
    """Note event for a mido message, or None for anything that is not a note message.

    A note_on with velocity 0 is a note-off, as sent by most keyboards.
    """
    if timestamp is None:
        timestamp = time.time()
    if msg.type == "note_on" and msg.velocity > 0:
        return NoteOnEvent(pitch=msg.note, velocity=msg.velocity, timestamp=timestamp, channel=msg.channel)
    if msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
        return NoteOffEvent(pitch=msg.note, timestamp=timestamp, channel=msg.channel)
    return None


class MidiInputListener:
    """Reads an input port on a daemon thread and forwards note events to two sinks.

    The sinks are called on the handler thread. Callers that keep state on
    another thread must hand the events over themselves (the Qt worker emits
    signals for that).

    With ``use_sustain`` the sustain pedal (CC 64) defers note-offs: keys
    released while the pedal is down are reported when it comes up, unless
    struck again in the meantime.
    """

    def __init__(
        self,
        port_name: Optional[str] = None,
        on_note_on: Optional[NoteOnSink] = None,
        on_note_off: Optional[NoteOffSink] = None,
        use_sustain: bool = False,
    ):
        self.port_name = port_name
        self.on_note_on = on_note_on
        self.on_note_off = on_note_off
        self.use_sustain = use_sustain
        self.sustain_pedal_on = False
        self.sustained_notes_pending_release: Set[int] = set()
        self.held_notes: Set[int] = set()
        self.running = False
        self.midi_port: Optional[mido.ports.BaseInput] = None
        self.midi_thread: Optional[threading.Thread] = None
        self.lock = threading.Lock()

    def _setup_midi(self) -> bool:
        available_ports = list_input_ports()
        if not available_ports:
            logger.error("No MIDI input ports found.")
            return False
        if self.port_name and self.port_name in available_ports:
            port_to_open = self.port_name
        elif self.port_name:
            port_to_open = available_ports[0]
            logger.warning(
                f"Specified MIDI port '{self.port_name}' not found. "
                f"Available ports: {available_ports}. Using first available: '{port_to_open}'."
            )
        else:
            port_to_open = available_ports[0]
            logger.info(f"No MIDI port specified. Using first available: '{port_to_open}'.")
        try:
            self.midi_port = mido.open_input(port_to_open)
        except Exception as e:
            logger.error(f"Failed to open MIDI port '{port_to_open}': {e}")
            return False
        self.port_name = self.midi_port.name
        logger.info(f"Successfully opened MIDI port: '{self.midi_port.name}'.")
        return True

    # --- Message handling ---

    def process_message(self, msg: mido.Message, timestamp: Optional[float] = None) -> Optional[NoteEvent]:
        """Apply one message. Returns the event that was delivered, if any."""
        if msg.type == "control_change" and msg.control == SUSTAIN_PEDAL_CONTROL:
            if self.use_sustain:
                self._handle_sustain(msg.value, msg.channel, timestamp)
            return None

        event = translate_message(msg, timestamp)
        if isinstance(event, NoteOnEvent):
            self.held_notes.add(event.pitch)
            self.sustained_notes_pending_release.discard(event.pitch)
            self._deliver(event)
        elif isinstance(event, NoteOffEvent):
            if self.use_sustain and self.sustain_pedal_on and event.pitch in self.held_notes:
                self.sustained_notes_pending_release.add(event.pitch)
                logger.debug(
                    f"Note OFF (sustained): {event.pitch} | Pending: {sorted(self.sustained_notes_pending_release)}"
                )
                return None
            self.held_notes.discard(event.pitch)
            self._deliver(event)
        return event

    def _handle_sustain(self, value: int, channel: int, timestamp: Optional[float]):
        if value >= SUSTAIN_PEDAL_THRESHOLD:
            if not self.sustain_pedal_on:
                self.sustain_pedal_on = True
                logger.debug("Sustain Pedal ON")
            return
        if not self.sustain_pedal_on:
            return
        self.sustain_pedal_on = False
        released = sorted(self.sustained_notes_pending_release)
        self.sustained_notes_pending_release.clear()
        logger.debug(f"Sustain Pedal OFF, releasing: {released}")
        when = time.time() if timestamp is None else timestamp
        for pitch in released:
            self.held_notes.discard(pitch)
            self._deliver(NoteOffEvent(pitch=pitch, timestamp=when, channel=channel))

    def _deliver(self, event: NoteEvent):
        sink = self.on_note_on if isinstance(event, NoteOnEvent) else self.on_note_off
        if sink is None:
            return
        try:
            sink(event)
        except Exception as e:
            logger.error(f"Error in note event sink: {e}", exc_info=True)

    def _midi_handler(self):
        logger.info("MIDI handler thread started.")
        while self.running:
            try:
                if not self.midi_port:
                    logger.error("MIDI port is not open in handler loop.")
                    time.sleep(1)
                    continue
                msg = self.midi_port.receive(block=True)
                if not self.running:
                    break
                with self.lock:
                    self.process_message(msg)
            except Exception as e:
                if self.running:
                    logger.error(f"Error in MIDI handler thread: {e}", exc_info=True)
                    time.sleep(0.1)
        logger.info("MIDI handler thread stopped.")

    # --- Lifecycle ---

    def start(self) -> bool:
        with self.lock:
            if self.running:
                logger.info("MIDI listener already running.")
                return True
            logger.info("Starting MIDI listener...")
            if not self._setup_midi():
                logger.error("Setup failed. Cleaning up and aborting start.")
                self._cleanup()
                return False
            self.running = True
            self.midi_thread = threading.Thread(
                target=self._midi_handler, name="MIDIHandlerThread", daemon=True
            )
            self.midi_thread.start()
            logger.info("MIDI listener started successfully.")
            return True

    def stop(self):
        logger.info("Stopping MIDI listener...")
        with self.lock:
            if not self.running:
                logger.info("MIDI listener already stopped.")
                return
            self.running = False
        if self.midi_thread and self.midi_thread.is_alive():
            if self.midi_port:
                try:
                    # Unblocks receive() in the handler thread
                    self.midi_port.close()
                except Exception as e:
                    logger.warning(f"Exception closing MIDI port during stop: {e}")
            self.midi_thread.join(timeout=2.0)
            if self.midi_thread.is_alive():
                logger.warning("MIDI handler thread did not join in time.")
        with self.lock:
            self._cleanup()
        logger.info("MIDI listener stopped.")

    def _cleanup(self):
        if self.midi_port and not self.midi_port.closed:
            try:
                self.midi_port.close()
                logger.debug("MIDI port closed.")
            except Exception as e:
                logger.warning(f"Error closing MIDI port: {e}")
        self.midi_port = None
        self.held_notes.clear()
        self.sustained_notes_pending_release.clear()
        self.sustain_pedal_on = False
