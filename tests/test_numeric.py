import unittest

import numpy as np

from customvision_kit.numeric import logistic, softmax


class TestLogistic(unittest.TestCase):
    def test_zero_is_half(self) -> None:
        self.assertEqual(logistic(0), 0.5)
        self.assertEqual(logistic(0.0), 0.5)

    def test_monotonic_over_wide_range(self) -> None:
        xs = np.linspace(-100.0, 100.0, 2001)
        ys = logistic(xs)
        self.assertTrue(np.all(np.diff(ys) >= 0))
        self.assertTrue(np.all((ys >= 0.0) & (ys <= 1.0)))

    def test_open_interval_for_moderate_inputs(self) -> None:
        for x in [-30.0, -5.0, -0.1, 0.1, 5.0, 30.0]:
            y = logistic(x)
            self.assertGreater(y, 0.0)
            self.assertLess(y, 1.0)

    def test_no_overflow_for_large_magnitudes(self) -> None:
        with np.errstate(over="raise"):
            ys = logistic(np.array([-100.0, -80.0, 80.0, 100.0]))
        self.assertTrue(np.all(np.isfinite(ys)))
        self.assertAlmostEqual(logistic(100.0), 1.0)
        self.assertAlmostEqual(logistic(-100.0), 0.0)
        self.assertGreater(logistic(-80.0), 0.0)

    def test_scalar_and_array_paths_agree(self) -> None:
        xs = np.array([-3.0, -0.5, 0.0, 0.5, 3.0])
        ys = logistic(xs)
        for x, y in zip(xs, ys):
            self.assertAlmostEqual(logistic(float(x)), float(y), places=12)


class TestSoftmax(unittest.TestCase):
    def test_sums_to_one(self) -> None:
        p = softmax([1.0, 2.0, 3.0])
        self.assertAlmostEqual(float(p.sum()), 1.0, places=6)
        self.assertTrue(np.all(p >= 0))
        self.assertTrue(p[2] > p[1] > p[0])

    def test_large_magnitudes_are_stable(self) -> None:
        p = softmax([1000.0, 1000.0, 1.0])
        self.assertTrue(np.all(np.isfinite(p)))
        self.assertAlmostEqual(float(p.sum()), 1.0, places=6)
        self.assertAlmostEqual(float(p[0]), 0.5, places=6)
        self.assertAlmostEqual(float(p[1]), 0.5, places=6)
        self.assertGreaterEqual(float(p[2]), 0.0)

    def test_single_logit_is_certain(self) -> None:
        self.assertEqual(float(softmax([-42.0])[0]), 1.0)


if __name__ == "__main__":
    unittest.main()
