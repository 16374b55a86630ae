"""Tests for boxplot characteristics, kernels and density estimation."""

import math
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from midi_chords.core.statistics import (
    BoxplotCharacteristics,
    EmptySampleError,
    compute_boxplot_characteristics,
    density_area_curve,
    epanechnikov_kernel,
    find_outliers,
    gaussian_kernel,
    kernel_density_estimate,
    kernel_density_estimator,
    mirrored_density_curve,
    quantile,
    smooth_density_curve,
    violin_curves,
)


class TestBoxplotCharacteristics(unittest.TestCase):
    def test_no_outliers(self):
        stats = compute_boxplot_characteristics([1, 2, 3, 4, 5])
        self.assertEqual(stats, BoxplotCharacteristics(q1=2, q2=3, q3=4, lower_whisker=1, upper_whisker=5))
        self.assertEqual(stats.iqr, 2)
        self.assertEqual(stats.median, 3)

    def test_upper_whisker_clipped_by_outlier(self):
        data = [1, 2, 3, 4, 100]
        stats = compute_boxplot_characteristics(data)
        self.assertEqual(stats.upper_whisker, 7)
        self.assertLess(stats.upper_whisker, 100)
        self.assertEqual(stats.lower_whisker, 1)
        self.assertEqual(find_outliers(data, stats), [100])

    def test_low_outlier(self):
        data = [-50, 10, 11, 12, 13]
        stats = compute_boxplot_characteristics(data)
        self.assertEqual(stats.lower_whisker, 7)
        self.assertEqual(find_outliers(data, stats), [-50])

    def test_input_is_not_mutated(self):
        data = [5, 1, 4, 2, 3]
        compute_boxplot_characteristics(data)
        self.assertEqual(data, [5, 1, 4, 2, 3])

    def test_unsorted_input(self):
        self.assertEqual(
            compute_boxplot_characteristics([5, 3, 1, 4, 2]),
            compute_boxplot_characteristics([1, 2, 3, 4, 5]),
        )

    def test_single_sample(self):
        stats = compute_boxplot_characteristics([42.0])
        self.assertEqual((stats.q1, stats.q2, stats.q3), (42.0, 42.0, 42.0))
        self.assertEqual((stats.lower_whisker, stats.upper_whisker), (42.0, 42.0))

    def test_empty_samples(self):
        with self.assertRaises(EmptySampleError):
            compute_boxplot_characteristics([])
        self.assertTrue(issubclass(EmptySampleError, ValueError))


class TestQuantile(unittest.TestCase):
    def test_linear_interpolation(self):
        values = [1, 2, 3, 4]
        self.assertAlmostEqual(quantile(values, 0.25), 1.75)
        self.assertAlmostEqual(quantile(values, 0.5), 2.5)
        self.assertEqual(quantile(values, 0.0), 1)
        self.assertEqual(quantile(values, 1.0), 4)

    def test_invalid_probability(self):
        with self.assertRaises(ValueError):
            quantile([1, 2], 1.5)


class TestKernels(unittest.TestCase):
    def test_epanechnikov(self):
        k = epanechnikov_kernel(1)
        self.assertEqual(k(0), 0.75)
        self.assertEqual(k(2), 0)
        self.assertEqual(k(-2), 0)
        self.assertEqual(k(1), 0)
        self.assertEqual(k(0.5), 0.5625)

    def test_epanechnikov_bandwidth(self):
        k = epanechnikov_kernel(2)
        self.assertEqual(k(0), 0.375)
        self.assertEqual(k(1), 0.75 * (1 - 0.25) / 2)
        self.assertEqual(k(2.5), 0)

    def test_gaussian_inside_window(self):
        k = gaussian_kernel(1)
        self.assertAlmostEqual(k(0), 1 / math.sqrt(2 * math.pi))
        self.assertAlmostEqual(k(0.5), math.exp(-0.125) / math.sqrt(2 * math.pi))

    def test_gaussian_truncated_outside_window(self):
        self.assertEqual(gaussian_kernel(1)(1.5), 0)
        self.assertEqual(gaussian_kernel(1)(-1.01), 0)
        # The exponent ignores the bandwidth
        self.assertAlmostEqual(gaussian_kernel(2)(1.5), math.exp(-1.125) / math.sqrt(2 * math.pi))

    def test_bandwidth_must_be_positive(self):
        for factory in (epanechnikov_kernel, gaussian_kernel):
            with self.assertRaises(ValueError):
                factory(0)
            with self.assertRaises(ValueError):
                factory(-1)


class TestKernelDensityEstimate(unittest.TestCase):
    def test_single_sample(self):
        estimate = kernel_density_estimate(epanechnikov_kernel(1), [0, 0.5, 2], [0])
        self.assertEqual(estimate, [(0, 0.75), (0.5, 0.5625), (2, 0.0)])

    def test_mean_over_samples(self):
        estimate = kernel_density_estimate(epanechnikov_kernel(1), [0], [0, 1])
        self.assertEqual(estimate, [(0, 0.375)])

    def test_length_and_order_follow_evaluation_points(self):
        points = [3, -1, 0.25, 10, 2]
        for samples in ([1], [1, 2, 3], [0.5] * 20):
            estimate = kernel_density_estimate(epanechnikov_kernel(0.5), points, samples)
            self.assertEqual(len(estimate), len(points))
            self.assertEqual([x for x, _ in estimate], points)

    def test_empty_samples(self):
        with self.assertRaises(EmptySampleError):
            kernel_density_estimate(epanechnikov_kernel(1), [0, 1], [])

    def test_samples_not_mutated(self):
        samples = [3, 1, 2]
        kernel_density_estimate(epanechnikov_kernel(1), [0, 1, 2], samples)
        self.assertEqual(samples, [3, 1, 2])

    def test_curried_estimator(self):
        estimator = kernel_density_estimator(epanechnikov_kernel(1), [0, 1])
        self.assertEqual(
            estimator([0.5]),
            kernel_density_estimate(epanechnikov_kernel(1), [0, 1], [0.5]),
        )


class TestDensityCurves(unittest.TestCase):
    def setUp(self):
        self.estimate = [(0.0, 0.2), (1.0, 0.5), (2.0, 0.1)]

    def test_area_curve_closes_on_baseline(self):
        closed = density_area_curve(self.estimate)
        self.assertEqual(closed[0], (0.0, 0.0))
        self.assertEqual(closed[-1], (2.0, 0.0))
        self.assertEqual(closed[1:-1], self.estimate)

    def test_area_curve_of_empty_estimate(self):
        self.assertEqual(density_area_curve([]), [])

    def test_mirrored_curve(self):
        mirrored = mirrored_density_curve(self.estimate)
        self.assertEqual([x for x, _ in mirrored], [0.0, 1.0, 2.0])
        self.assertEqual([d for _, d in mirrored], [-0.2, -0.5, -0.1])

    def test_violin_curves_share_domain(self):
        top, bottom = violin_curves(self.estimate)
        self.assertEqual([x for x, _ in top], [x for x, _ in bottom])
        self.assertEqual(len(top), len(self.estimate) + 2)
        for (_, upper), (_, lower) in zip(top, bottom):
            self.assertEqual(upper, -lower)


class TestSmoothDensityCurve(unittest.TestCase):
    def setUp(self):
        self.estimate = [(0.0, 0.0), (1.0, 0.5), (2.0, 0.5), (3.0, 0.0), (4.0, 0.2)]

    def test_keeps_input_points(self):
        smoothed = smooth_density_curve(self.estimate, samples_per_segment=4)
        self.assertEqual(len(smoothed), 17)
        for (x, d), (sx, sd) in zip(self.estimate, smoothed[::4]):
            self.assertAlmostEqual(x, sx)
            self.assertAlmostEqual(d, sd)

    def test_no_overshoot(self):
        smoothed = smooth_density_curve(self.estimate, samples_per_segment=8)
        for i in range(len(self.estimate) - 1):
            lo = min(self.estimate[i][1], self.estimate[i + 1][1])
            hi = max(self.estimate[i][1], self.estimate[i + 1][1])
            for _, d in smoothed[i * 8:(i + 1) * 8 + 1]:
                self.assertGreaterEqual(d, lo - 1e-12)
                self.assertLessEqual(d, hi + 1e-12)

    def test_short_curves_are_returned_as_is(self):
        self.assertEqual(smooth_density_curve([]), [])
        self.assertEqual(smooth_density_curve([(1.0, 0.3)]), [(1.0, 0.3)])


if __name__ == "__main__":
    unittest.main()
