"""Distribution summaries and density curves for chart decoration.

All functions are pure: they never mutate the samples they are given and
hold no shared state, so they may be called from any thread.
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import numpy as np
from scipy.interpolate import PchipInterpolator

logger = logging.getLogger(__name__)

Kernel = Callable[[float], float]
DensityCurve = List[Tuple[float, float]]

WHISKER_IQR_FACTOR = 1.5
_INV_SQRT_2PI = 1 / math.sqrt(2 * math.pi)


class EmptySampleError(ValueError):
    """Raised when a statistic is requested for an empty sample array."""


@dataclass(frozen=True)
class BoxplotCharacteristics:
    q1: float
    q2: float
    q3: float
    lower_whisker: float
    upper_whisker: float

    @property
    def median(self) -> float:
        return self.q2

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def is_outlier(self, value: float) -> bool:
        return value < self.lower_whisker or value > self.upper_whisker


def _require_samples(samples: Sequence[float], what: str) -> None:
    if samples is None or len(samples) == 0:
        raise EmptySampleError(f"{what} requires at least one sample.")


def quantile(sorted_values: Sequence[float], p: float) -> float:
    """Quantile of already sorted values, interpolating linearly at p * (n - 1)."""
    _require_samples(sorted_values, "quantile")
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"Quantile must be within [0, 1], got {p}.")
    return float(np.quantile(np.asarray(sorted_values, dtype=float), p, method="linear"))


def compute_boxplot_characteristics(samples: Sequence[float]) -> BoxplotCharacteristics:
    """Quartiles and Tukey whiskers of ``samples``.

    The samples are sorted on a private copy; the caller's sequence is left
    untouched. Whiskers are clamped to the data range:

        lower = max(min, q1 - 1.5 * iqr)
        upper = min(max, q3 + 1.5 * iqr)

    Outliers are not returned, filter against the whiskers instead
    (see :func:`find_outliers`).

    Raises:
        EmptySampleError: if ``samples`` is empty.
    """
    _require_samples(samples, "Boxplot characteristics")
    values = sorted(samples)
    min_val = values[0]
    max_val = values[-1]
    q1 = quantile(values, 0.25)
    q2 = quantile(values, 0.50)
    q3 = quantile(values, 0.75)
    iqr = q3 - q1
    lower = max(min_val, q1 - iqr * WHISKER_IQR_FACTOR)
    upper = min(max_val, q3 + iqr * WHISKER_IQR_FACTOR)
    return BoxplotCharacteristics(
        q1=q1, q2=q2, q3=q3, lower_whisker=float(lower), upper_whisker=float(upper)
    )


def find_outliers(
    samples: Sequence[float], characteristics: BoxplotCharacteristics
) -> List[float]:
    """Values outside the whiskers, in input order."""
    return [v for v in samples if characteristics.is_outlier(v)]


def kernel_density_estimate(
    kernel: Kernel, evaluation_points: Sequence[float], samples: Sequence[float]
) -> DensityCurve:
    """Mean of ``kernel(x - sample)`` over all samples, for each evaluation point.

    Returns (x, density) pairs in the order of ``evaluation_points``.

    Raises:
        EmptySampleError: if ``samples`` is empty (the mean is undefined).
    """
    _require_samples(samples, "Kernel density estimation")
    sample_values = [float(v) for v in samples]
    estimate: DensityCurve = []
    for x in evaluation_points:
        densities = np.fromiter((kernel(x - v) for v in sample_values), dtype=float)
        estimate.append((x, float(np.mean(densities))))
    return estimate


def kernel_density_estimator(
    kernel: Kernel, evaluation_points: Sequence[float]
) -> Callable[[Sequence[float]], DensityCurve]:
    """Curried form of :func:`kernel_density_estimate` with a fixed domain."""
    points = list(evaluation_points)

    def estimator(samples: Sequence[float]) -> DensityCurve:
        return kernel_density_estimate(kernel, points, samples)

    return estimator


def _check_bandwidth(bandwidth: float) -> None:
    if not bandwidth > 0:
        raise ValueError(f"Kernel bandwidth must be positive, got {bandwidth}.")


def epanechnikov_kernel(bandwidth: float) -> Kernel:
    _check_bandwidth(bandwidth)

    def kernel(v: float) -> float:
        v = v / bandwidth
        return 0.75 * (1 - v * v) / bandwidth if abs(v) <= 1 else 0.0

    return kernel


def gaussian_kernel(bandwidth: float) -> Kernel:
    """Standard normal density, truncated to zero outside +-bandwidth.

    The exponent uses the raw offset, not the offset scaled by the
    bandwidth; only the window depends on it.
    """
    _check_bandwidth(bandwidth)

    def kernel(v: float) -> float:
        if abs(v / bandwidth) <= 1:
            return _INV_SQRT_2PI * math.pow(math.e, (-1 / 2) * v * v)
        return 0.0

    return kernel


def density_area_curve(estimate: DensityCurve) -> DensityCurve:
    """Estimate with zero-density endpoints added so the area closes on the baseline."""
    if not estimate:
        return []
    first_x = estimate[0][0]
    last_x = estimate[-1][0]
    return [(first_x, 0.0)] + list(estimate) + [(last_x, 0.0)]


def mirrored_density_curve(estimate: DensityCurve) -> DensityCurve:
    """The curve negated around the zero baseline, on the same x domain."""
    return [(x, -d) for x, d in estimate]


def violin_curves(estimate: DensityCurve) -> Tuple[DensityCurve, DensityCurve]:
    """Upper and lower silhouette of a violin plot, both closed on the baseline."""
    closed = density_area_curve(estimate)
    return closed, mirrored_density_curve(closed)


def smooth_density_curve(estimate: DensityCurve, samples_per_segment: int = 4) -> DensityCurve:
    """Resample a curve with a monotone cubic (PCHIP) interpolant.

    Every input point is kept, ``samples_per_segment - 1`` points are added
    between neighbours, and the curve never overshoots its data, so a
    density stays non-negative. x values must be strictly increasing.
    """
    if len(estimate) < 2 or samples_per_segment <= 1:
        return list(estimate)
    xs = np.array([x for x, _ in estimate], dtype=float)
    ys = np.array([d for _, d in estimate], dtype=float)
    dense_x = np.linspace(xs[0], xs[-1], (len(xs) - 1) * samples_per_segment + 1)
    dense_y = PchipInterpolator(xs, ys)(dense_x)
    return list(zip(dense_x.tolist(), dense_y.tolist()))
