"""Chart helpers on top of pyqtgraph.

Each ``add_*`` helper builds graphics items from data coordinates, adds them
to a ``pg.PlotItem`` and returns what it added, so callers can remove or
restyle them later. Axis ticks and the data-to-pixel mapping are left to the
plot's own axes and view box.

A bad argument never aborts a whole chart: unsupported shapes, negative
sizes and empty data are logged and the helper adds nothing.
"""
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pyqtgraph as pg
from pyqtgraph.Qt import QtCore, QtGui

from midi_chords.core.statistics import (
    DensityCurve,
    EmptySampleError,
    compute_boxplot_characteristics,
    density_area_curve,
    epanechnikov_kernel,
    find_outliers,
    kernel_density_estimate,
    smooth_density_curve,
    violin_curves,
)

logger = logging.getLogger(__name__)

DEFAULT_BAND_BRUSH = (128, 128, 128, 25)
DEFAULT_BOX_BRUSH = (70, 130, 180, 204)
DEFAULT_WHISKER_COLOR = "steelblue"
DEFAULT_AREA_BRUSH = (70, 130, 180, 153)
DEFAULT_BANDWIDTH = 0.5
DEFAULT_DENSITY_POINTS = 100
BAR_FILL_RATIO = 0.9
OUTLIER_SIZE = 4


def _ostroke_symbol() -> QtGui.QPainterPath:
    # Filled circle crossed by a diagonal stroke
    path = QtGui.QPainterPath()
    path.addEllipse(QtCore.QRectF(-0.5, -0.5, 1.0, 1.0))
    path.moveTo(-0.5, -0.5)
    path.lineTo(0.5, 0.5)
    return path


def _xstroke_symbol() -> QtGui.QPainterPath:
    # X with a horizontal bar through its center
    path = QtGui.QPainterPath()
    path.moveTo(-0.5, -0.5)
    path.lineTo(0.5, 0.5)
    path.moveTo(-0.5, 0.5)
    path.lineTo(0.5, -0.5)
    path.moveTo(-0.5, 0.0)
    path.lineTo(0.5, 0.0)
    return path


# Drum notation shape -> pyqtgraph scatter symbol
DRUM_SYMBOLS = {
    "triangle": "t1",
    "<>": "d",
    "x": "x",
    "o": "o",
    "ostroke": _ostroke_symbol(),
    "xstroke": _xstroke_symbol(),
}


def _is_negative(what: str, value: float) -> bool:
    if value < 0:
        logger.error(f"Cannot draw {what} with negative size of {value}")
        return True
    return False


# --- Bars ---

def add_row_bands(plot: pg.PlotItem, rows: int, row_height: float, x_range: Tuple[float, float],
                  top: float = 0.0, brush=DEFAULT_BAND_BRUSH) -> Optional[pg.BarGraphItem]:
    """Shaded band on every other row to help tell rows apart."""
    if rows <= 0:
        return None
    if _is_negative("row bands", row_height):
        return None
    y0 = [top + row_height * i for i in range(0, rows, 2)]
    bands = pg.BarGraphItem(
        x0=[x_range[0]] * len(y0), y0=y0, width=[x_range[1] - x_range[0]] * len(y0),
        height=[row_height] * len(y0),
        brush=brush, pen=pg.mkPen(None),
    )
    bands.setZValue(-10)
    plot.addItem(bands)
    return bands


def add_bar_chart(plot: pg.PlotItem, x: float, y: float, width: float, height: float, max_val: float,
                  values: Sequence[float], colors: Sequence) -> Optional[pg.BarGraphItem]:
    """Side-by-side bars in the box (x, y, width, height); ``max_val`` fills the full height."""
    if not values:
        logger.warning("Bar chart without values, nothing drawn.")
        return None
    if max_val <= 0:
        logger.warning(f"Bar chart needs a positive maximum, got {max_val}.")
        return None
    slot = width / len(values)
    bars = pg.BarGraphItem(
        x0=[x + i * slot for i in range(len(values))],
        y0=[y] * len(values),
        width=[slot * BAR_FILL_RATIO] * len(values),
        height=[v / max_val * height for v in values],
        brushes=[pg.mkBrush(c) for c in colors[:len(values)]],
        pen=pg.mkPen(None),
    )
    plot.addItem(bars)
    return bars


def add_stacked_bar_chart(plot: pg.PlotItem, x: float, y: float, width: float, height: float,
                          max_val: float, values: Sequence[float], colors: Sequence) -> Optional[pg.BarGraphItem]:
    """One bar with ``values`` stacked from the baseline up; the first value ends up on top."""
    if not values:
        logger.warning("Stacked bar chart without values, nothing drawn.")
        return None
    if max_val <= 0:
        logger.warning(f"Stacked bar chart needs a positive maximum, got {max_val}.")
        return None
    # Running totals from the last value, drawn tallest first
    totals = np.cumsum(np.asarray(values, dtype=float)[::-1])[::-1]
    bars = pg.BarGraphItem(
        x0=[x] * len(values),
        y0=[y] * len(values),
        width=[width] * len(values),
        height=(totals / max_val * height).tolist(),
        brushes=[pg.mkBrush(c) for c in colors[:len(values)]],
        pen=pg.mkPen(None),
    )
    plot.addItem(bars)
    return bars


# --- Distributions ---

def add_boxplot(
    plot: pg.PlotItem,
    data: Sequence[float],
    y: float,
    height: float,
    draw_outliers: bool = False,
    box_brush=DEFAULT_BOX_BRUSH,
    whisker_color=DEFAULT_WHISKER_COLOR,
) -> List[pg.GraphicsObject]:
    """Horizontal boxplot between ``y`` and ``y + height``; ``data`` is not modified."""
    try:
        stats = compute_boxplot_characteristics(data)
    except EmptySampleError as e:
        logger.warning(f"Skipping boxplot: {e}")
        return []
    y_center = y + height / 2
    whisker_pen = pg.mkPen(whisker_color, width=1)

    box = pg.BarGraphItem(
        x0=[stats.q1, stats.q2], y0=[y, y], width=[stats.q2 - stats.q1, stats.q3 - stats.q2],
        height=[height, height],
        brush=box_brush, pen=pg.mkPen(None),
    )
    median = pg.PlotCurveItem(x=[stats.q2, stats.q2], y=[y, y + height], pen=pg.mkPen("w", width=1))
    # End caps and the two lines back to the box, as separate segments
    whiskers = pg.PlotCurveItem(
        x=[stats.lower_whisker, stats.lower_whisker, stats.lower_whisker, stats.q1,
           stats.upper_whisker, stats.upper_whisker, stats.q3, stats.upper_whisker],
        y=[y, y + height, y_center, y_center, y, y + height, y_center, y_center],
        connect="pairs",
        pen=whisker_pen,
    )
    items: List[pg.GraphicsObject] = [box, median, whiskers]
    if draw_outliers:
        outliers = find_outliers(data, stats)
        if outliers:
            items.append(pg.ScatterPlotItem(
                x=outliers, y=[y_center] * len(outliers), size=OUTLIER_SIZE, symbol="s",
                brush=pg.mkBrush(whisker_color), pen=pg.mkPen(None),
            ))
    for item in items:
        plot.addItem(item)
    return items


def _density(data: Sequence[float], domain: Tuple[float, float], bandwidth: float, points: int,
             smooth: bool) -> Optional[DensityCurve]:
    if points < 2:
        logger.warning(f"Density needs at least two evaluation points, got {points}.")
        return None
    xs = np.linspace(domain[0], domain[1], points).tolist()
    try:
        estimate = kernel_density_estimate(epanechnikov_kernel(bandwidth), xs, data)
    except ValueError as e:
        logger.warning(f"Skipping density chart: {e}")
        return None
    return smooth_density_curve(estimate) if smooth else estimate


def _scaled(curve: DensityCurve, baseline: float, extent: float, peak: float) -> Tuple[List[float], List[float]]:
    factor = extent / peak if peak > 0 else 0.0
    return [x for x, _ in curve], [baseline + d * factor for _, d in curve]


def add_kde_area(
    plot: pg.PlotItem,
    data: Sequence[float],
    domain: Tuple[float, float],
    baseline: float,
    height: float,
    smooth: bool = True,
    brush=DEFAULT_AREA_BRUSH,
    bandwidth: float = DEFAULT_BANDWIDTH,
    points: int = DEFAULT_DENSITY_POINTS,
) -> Optional[pg.PlotCurveItem]:
    """Kernel density estimate of ``data`` as an area rising ``height`` above ``baseline`` at its peak."""
    estimate = _density(data, domain, bandwidth, points, smooth)
    if estimate is None:
        return None
    peak = max(d for _, d in estimate)
    xs, ys = _scaled(density_area_curve(estimate), baseline, height, peak)
    area = pg.PlotCurveItem(x=xs, y=ys, pen=pg.mkPen(None), brush=pg.mkBrush(brush), fillLevel=baseline)
    plot.addItem(area)
    return area


def add_violin(
    plot: pg.PlotItem,
    data: Sequence[float],
    domain: Tuple[float, float],
    center: float,
    half_height: float,
    smooth: bool = True,
    brush=DEFAULT_AREA_BRUSH,
    bandwidth: float = DEFAULT_BANDWIDTH,
    points: int = DEFAULT_DENSITY_POINTS,
) -> Optional[pg.FillBetweenItem]:
    """Density of ``data`` mirrored around ``center``; the widest point spans ``2 * half_height``."""
    estimate = _density(data, domain, bandwidth, points, smooth)
    if estimate is None:
        return None
    peak = max(d for _, d in estimate)
    top, bottom = violin_curves(estimate)
    outline = pg.mkPen(brush, width=1)
    upper = pg.PlotCurveItem(*_scaled(top, center, half_height, peak), pen=outline)
    lower = pg.PlotCurveItem(*_scaled(bottom, center, half_height, peak), pen=outline)
    fill = pg.FillBetweenItem(upper, lower, brush=pg.mkBrush(brush))
    for item in (fill, upper, lower):
        plot.addItem(item)
    return fill


# --- Markers ---

def add_drum_notes(plot: pg.PlotItem, shape: str, xs: Sequence[float], ys: Sequence[float],
                   size: float, color="w") -> Optional[pg.ScatterPlotItem]:
    """Drum notation symbols centered on each (x, y); ``size`` is the symbol size in pixels."""
    if _is_negative(f"drum shape '{shape}'", size):
        return None
    symbol = DRUM_SYMBOLS.get(shape)
    if symbol is None:
        logger.warning(f"Unsupported shape {shape}")
        return None
    notes = pg.ScatterPlotItem(
        x=list(xs), y=list(ys), size=size, symbol=symbol,
        brush=pg.mkBrush(color), pen=pg.mkPen(color, width=2),
    )
    plot.addItem(notes)
    return notes


def add_time_indicator(plot: pg.PlotItem, current_time: Optional[float],
                       color="r") -> Optional[pg.InfiniteLine]:
    if current_time is None:
        return None
    line = pg.InfiniteLine(pos=current_time, angle=90, pen=pg.mkPen(color, width=2))
    plot.addItem(line)
    return line
