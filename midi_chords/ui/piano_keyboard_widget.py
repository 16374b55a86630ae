# --- PianoKeyboardWidget ---
from typing import Collection, Tuple

from PyQt6.QtCore import QMarginsF, QPointF, QRectF
from PyQt6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QPainter, QPainterPath, QPen
from PyQt6.QtWidgets import QSizePolicy, QWidget

from midi_chords.core.keyboard_layout import (
    KEY_BORDER_RADIUS,
    KEY_STROKE_COLOR,
    KeyboardLayout,
    compute_keyboard_layout,
)
from midi_chords.core.notes import PIANO_88_RANGE

KEYBOARD_MARGIN = QMarginsF(20, 20, 20, 40)  # left, top, right, bottom
LABEL_FONT_PX = 10


class PianoKeyboardWidget(QWidget):
    """Paints the keyboard from the current notes snapshot; layout is recomputed on every paint."""

    def __init__(self, parent=None, pitch_range: Tuple[int, int] = PIANO_88_RANGE):
        super().__init__(parent)
        self.setObjectName("PianoKeyboard")
        self.pitch_range = pitch_range
        self._current_notes: Collection[int] = frozenset()
        self.setMinimumSize(520, 180)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self.setMouseTracking(True)

    def update_active_notes(self, current_notes: Collection[int]):
        """Replace the pressed keys; accepts the tracker snapshot or any pitch collection."""
        self._current_notes = current_notes
        self.update()

    def current_layout(self) -> KeyboardLayout:
        width = max(self.width() - KEYBOARD_MARGIN.left() - KEYBOARD_MARGIN.right(), 1)
        height = max(self.height() - KEYBOARD_MARGIN.top() - KEYBOARD_MARGIN.bottom(), 1)
        return compute_keyboard_layout(width, height, self._current_notes, self.pitch_range)

    def paintEvent(self, event):
        layout = self.current_layout()
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.translate(KEYBOARD_MARGIN.left(), KEYBOARD_MARGIN.top())

        border = QPen(QColor(KEY_STROKE_COLOR), 0.5)
        for key in layout.keys:
            painter.setBrush(QBrush(QColor(key.fill)))
            painter.setPen(border)
            painter.drawRoundedRect(
                QRectF(key.x, key.y, key.width, key.height), KEY_BORDER_RADIUS, KEY_BORDER_RADIUS
            )

        font = QFont(painter.font())
        font.setPixelSize(LABEL_FONT_PX)
        painter.setFont(font)
        metrics = QFontMetricsF(font)
        for label in layout.labels:
            painter.setPen(QColor(label.color))
            # Key names are written top to bottom, one character per line
            line_height = metrics.height()
            top = label.y - line_height * (len(label.text) - 1)
            for i, char in enumerate(label.text):
                char_width = metrics.horizontalAdvance(char)
                painter.drawText(QPointF(label.x - char_width / 2, top + i * line_height), char)

        bracket_pen = QPen(QColor(KEY_STROKE_COLOR), 1)
        for bracket in layout.octave_brackets:
            path = QPainterPath()
            points = bracket.path()
            path.moveTo(*points[0])
            for point in points[1:]:
                path.lineTo(*point)
            painter.strokePath(path, bracket_pen)
            painter.setPen(QColor(KEY_STROKE_COLOR))
            text_width = metrics.horizontalAdvance(bracket.label)
            painter.drawText(QPointF(bracket.label_x - text_width / 2, bracket.label_y), bracket.label)
        painter.end()

    def key_at(self, x: float, y: float):
        """Pitch under a widget position, black keys first, or None."""
        local_x = x - KEYBOARD_MARGIN.left()
        local_y = y - KEYBOARD_MARGIN.top()
        layout = self.current_layout()
        for key in layout.black_keys + layout.white_keys:
            if key.x <= local_x <= key.x + key.width and key.y <= local_y <= key.y + key.height:
                return key.pitch
        return None

    def mouseMoveEvent(self, event):
        pitch = self.key_at(event.position().x(), event.position().y())
        self.setToolTip(self.current_layout().key_for_pitch(pitch).title if pitch is not None else "")
        super().mouseMoveEvent(event)
