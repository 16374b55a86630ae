# --- CurrentNotesTracker ---
import logging
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Union

from midi_chords.core.notes import NoteOffEvent, NoteOnEvent, is_valid_pitch

# --- Logging Setup ---
logger = logging.getLogger(__name__)

NotesSnapshot = Mapping[int, NoteOnEvent]
NotesListener = Callable[[NotesSnapshot], None]

_EMPTY_SNAPSHOT: NotesSnapshot = MappingProxyType({})


class CurrentNotesTracker:
    """Authoritative set of currently sounding pitches.

    Maps each held pitch to the most recent note-on event received for it.
    A pitch is present if and only if its last event was a note-on with no
    note-off since.

    The tracker is not locked: it must be owned by a single thread, and
    events coming from an I/O thread have to be handed over to that thread
    first (see ``ui.workers.midi_worker``). Readers only ever receive
    read-only snapshots, so a snapshot handed out earlier never changes.
    """

    def __init__(self):
        self._notes: Dict[int, NoteOnEvent] = {}
        self._snapshot: NotesSnapshot = _EMPTY_SNAPSHOT
        self._listeners: List[NotesListener] = []

    # --- Mutation API ---

    def apply_note_on(self, event: NoteOnEvent) -> bool:
        """Insert or overwrite the entry for ``event.pitch``. Returns True if applied."""
        if not is_valid_pitch(getattr(event, "pitch", None)):
            logger.warning(f"Ignoring note-on with invalid pitch: {event!r}")
            return False
        self._notes[event.pitch] = event
        logger.debug(
            f"Note ON: {event.pitch} Vel: {event.velocity} | Active: {sorted(self._notes)}"
        )
        self._publish()
        return True

    def apply_note_off(self, pitch_or_event: Union[int, NoteOffEvent]) -> bool:
        """Remove the entry for the given pitch. Returns True if a held note was released."""
        if isinstance(pitch_or_event, (NoteOffEvent, NoteOnEvent)):
            pitch = pitch_or_event.pitch
        else:
            pitch = pitch_or_event
        if not is_valid_pitch(pitch):
            logger.warning(f"Ignoring note-off with invalid pitch: {pitch_or_event!r}")
            return False
        if pitch not in self._notes:
            # Redundant offs are normal (duplicate messages, pedal releases)
            logger.debug(f"Note OFF for unheld pitch {pitch} ignored.")
            return False
        del self._notes[pitch]
        logger.debug(f"Note OFF: {pitch} | Active: {sorted(self._notes)}")
        self._publish()
        return True

    # Names used by MIDI input callbacks
    on_note_on = apply_note_on
    on_note_off = apply_note_off

    # --- Read API ---

    @property
    def current_notes(self) -> NotesSnapshot:
        return self._snapshot

    def get_current_notes(self) -> NotesSnapshot:
        return self._snapshot

    def sorted_notes(self) -> List[NoteOnEvent]:
        """Held notes ordered by ascending pitch."""
        return [self._snapshot[p] for p in sorted(self._snapshot)]

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, pitch) -> bool:
        return pitch in self._snapshot

    # --- Subscription ---

    def subscribe(self, listener: NotesListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: NotesListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            logger.debug(f"Listener {listener!r} was not subscribed.")

    def _publish(self):
        self._snapshot = MappingProxyType(dict(self._notes))
        snapshot = self._snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Error in notes listener: {e}", exc_info=True)
