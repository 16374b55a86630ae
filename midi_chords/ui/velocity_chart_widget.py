# --- VelocityDistributionWidget ---
from collections import deque
from typing import Deque

import pyqtgraph as pg
from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QSizePolicy, QVBoxLayout, QWidget

from midi_chords.ui.charts import add_boxplot, add_row_bands, add_violin

DEFAULT_HISTORY_SIZE = 500
VELOCITY_DOMAIN = (0, 127)
VELOCITY_BANDWIDTH = 6.0
REDRAW_INTERVAL_MS = 100
# Two rows in data units: boxplot below, violin above
ROW_HEIGHT = 1.0


class VelocityDistributionWidget(QWidget):
    """Violin plot and boxplot of the velocities of the most recent note-on events."""

    def __init__(self, parent=None, history_size: int = DEFAULT_HISTORY_SIZE):
        super().__init__(parent)
        self.setObjectName("VelocityDistribution")
        self.velocities: Deque[float] = deque(maxlen=history_size)
        self.setMinimumHeight(110)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self.plot = pg.PlotWidget(background="#2E2E2E")
        self.plot.setMouseEnabled(x=False, y=False)
        self.plot.setMenuEnabled(False)
        self.plot.getPlotItem().hideButtons()
        self.plot.getPlotItem().hideAxis("left")
        self.plot.getPlotItem().setLabel("bottom", "Velocity")
        self.plot.setXRange(*VELOCITY_DOMAIN, padding=0.02)
        self.plot.setYRange(0, 2 * ROW_HEIGHT, padding=0)
        layout.addWidget(self.plot)

        # Note bursts are coalesced into one redraw
        self._redraw_timer = QTimer(self)
        self._redraw_timer.setSingleShot(True)
        self._redraw_timer.setInterval(REDRAW_INTERVAL_MS)
        self._redraw_timer.timeout.connect(self.redraw)
        self.redraw()

    def add_velocity(self, velocity: float):
        self.velocities.append(float(velocity))
        if not self._redraw_timer.isActive():
            self._redraw_timer.start()

    def clear_velocities(self):
        self.velocities.clear()
        self.redraw()

    def redraw(self):
        plot_item = self.plot.getPlotItem()
        plot_item.clear()
        add_row_bands(plot_item, rows=2, row_height=ROW_HEIGHT, x_range=VELOCITY_DOMAIN)
        if not self.velocities:
            return
        data = list(self.velocities)
        add_violin(
            plot_item, data, VELOCITY_DOMAIN,
            center=1.5 * ROW_HEIGHT, half_height=0.45 * ROW_HEIGHT, bandwidth=VELOCITY_BANDWIDTH,
        )
        add_boxplot(plot_item, data, y=0.2 * ROW_HEIGHT, height=0.6 * ROW_HEIGHT, draw_outliers=True)
