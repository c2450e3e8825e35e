"""Tests for the synthetic progress estimate."""

import pytest

from deepcompare.progress.estimator import synthetic_progress


class TestSyntheticProgress:
    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_zero_before_onset(self, index):
        delay = 2.0 + 1.2 * index
        assert synthetic_progress(0, index) == 0
        assert synthetic_progress(delay, index) == 0

    def test_first_worker_values(self):
        """Index 0: 2 s delay, 0.35 %/s."""
        assert synthetic_progress(5.0, 0) == 1    # floor(3 * 0.35)
        assert synthetic_progress(12.0, 0) == 3   # floor(10 * 0.35)

    def test_later_workers_start_later(self):
        assert synthetic_progress(5.0, 1) == 0    # floor(1.8 * 0.47)
        assert synthetic_progress(5.0, 2) == 0    # floor(0.6 * 0.59)

    def test_capped(self):
        for index in range(3):
            assert synthetic_progress(10_000, index) == 15

    @pytest.mark.parametrize("index", [0, 1, 2, 5])
    def test_non_decreasing(self, index):
        values = [synthetic_progress(t / 4, index) for t in range(0, 400)]
        assert values == sorted(values)
        assert all(0 <= v <= 15 for v in values)
