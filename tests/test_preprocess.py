"""Tests for smoothing and signal preparation in preprocess.py"""

import numpy as np
import pytest

from jump_debrief.domain import ContractViolation, SegmentationProfile
from jump_debrief.preprocess import (
    accuracy_mask,
    check_recording,
    moving_average,
    preprocess_samples,
    smooth_descent_velocity,
    trailing_slope,
)


class TestMovingAverage:
    """Tests for the moving_average function."""

    def test_returns_same_length(self):
        """Output array should have same length as input."""
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        for win in [1, 2, 3, 5, 9]:
            result = moving_average(x, win)
            assert len(result) == len(x)

    def test_window_one_returns_copy(self):
        """Window of 1 should return a copy of the input."""
        x = np.array([1.0, 2.0, 3.0])
        result = moving_average(x, 1)
        np.testing.assert_array_equal(result, x)
        assert result is not x

    def test_constant_signal_unchanged(self):
        """Constant signal should remain constant after smoothing."""
        x = np.full(7, 5.0)
        np.testing.assert_array_almost_equal(moving_average(x, 5), x)

    def test_known_center_values(self):
        """Interior values are plain window means."""
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        result = moving_average(x, 3)
        assert result[1] == pytest.approx(2.0)
        assert result[2] == pytest.approx(3.0)
        assert result[3] == pytest.approx(4.0)

    def test_window_shrinks_at_edges(self):
        """Edges average only the samples that exist (no edge padding)."""
        x = np.array([0.0, 10.0, 20.0, 30.0, 40.0])
        result = moving_average(x, 5)
        assert result[0] == pytest.approx(10.0)  # (0 + 10 + 20) / 3
        assert result[1] == pytest.approx(15.0)  # (0 + 10 + 20 + 30) / 4
        assert result[4] == pytest.approx(30.0)  # (20 + 30 + 40) / 3

    def test_invalid_samples_left_out(self):
        """Samples flagged invalid do not enter any window."""
        x = np.array([5.0, 5.0, 500.0, 5.0, 5.0])
        valid = np.array([True, True, False, True, True])
        result = moving_average(x, 5, valid)
        np.testing.assert_array_almost_equal(result, np.full(5, 5.0))

    def test_window_without_valid_samples_keeps_raw(self):
        """A position whose whole window is invalid keeps its raw value."""
        x = np.array([1.0, 2.0, 3.0])
        valid = np.zeros(3, dtype=bool)
        np.testing.assert_array_equal(moving_average(x, 3, valid), x)

    def test_smooths_noisy_signal(self):
        """Moving average should reduce variance of a noisy signal."""
        rng = np.random.default_rng(42)
        x = rng.normal(50.0, 3.0, 200)
        assert np.var(moving_average(x, 5)) < np.var(x)


class TestTrailingSlope:
    """Tests for the trailing_slope function."""

    def test_linear_signal(self):
        t = np.arange(6, dtype=float) * 0.2
        x = 3.0 * t
        rate = trailing_slope(x, t, 3)
        assert rate[0] == 0.0
        np.testing.assert_array_almost_equal(rate[1:], np.full(5, 3.0))

    def test_window_spreads_a_step(self):
        """A step shows up over the whole window instead of a single sample."""
        t = np.arange(6, dtype=float)
        x = np.array([0.0, 0.0, 0.0, 3.0, 3.0, 3.0])
        rate = trailing_slope(x, t, 3)
        assert rate[3] == pytest.approx(1.5)
        assert rate[4] == pytest.approx(1.5)
        assert rate[5] == pytest.approx(0.0)

    def test_constant_deceleration_is_exact(self):
        t = np.arange(8, dtype=float)
        x = 18.0 - t
        np.testing.assert_array_equal(trailing_slope(x, t, 3)[1:], np.full(7, -1.0))

    def test_repeated_timestamp_gives_zero(self):
        t = np.array([0.0, 1.0, 1.0, 2.0])
        x = np.array([0.0, 1.0, 5.0, 6.0])
        rate = trailing_slope(x, t, 2)
        assert rate[2] == 0.0
        assert rate[3] == pytest.approx(1.0)


class TestSmoothDescentVelocity:
    """Tests for smooth_descent_velocity."""

    def test_one_value_per_sample(self, track):
        samples = track(np.linspace(0.0, 40.0, 20))
        smoothed = smooth_descent_velocity(samples, SegmentationProfile())
        assert len(smoothed) == len(samples)

    def test_poor_accuracy_fix_excluded(self, track):
        """A single noisy fix must not corrupt its neighbours."""
        vel_d = np.full(9, 50.0)
        vel_d[4] = 0.0
        h_acc = np.full(9, 5.0)
        h_acc[4] = 120.0
        samples = track(vel_d, h_acc=h_acc)
        smoothed = smooth_descent_velocity(samples, SegmentationProfile())
        np.testing.assert_array_almost_equal(smoothed, np.full(9, 50.0))

    def test_raw_samples_untouched(self, track):
        samples = track(np.linspace(0.0, 40.0, 20))
        before = [s.vel_d for s in samples]
        smooth_descent_velocity(samples, SegmentationProfile())
        assert [s.vel_d for s in samples] == before


class TestPreprocessSamples:
    """Tests for preprocess_samples and the input contract."""

    @pytest.fixture
    def profile(self):
        return SegmentationProfile()

    def test_columns_present(self, track, profile):
        df = preprocess_samples(track(np.full(10, 5.0)), profile)
        for col in ["t", "alt_msl_m", "vel_d", "vel_d_s", "vel_d_rate",
                    "horiz_speed", "ground_track", "valid", "peak_alt_m"]:
            assert col in df.columns

    def test_smoothed_column_matches_smoother(self, track, profile):
        h_acc = np.full(12, 5.0)
        h_acc[5] = 90.0
        samples = track(np.linspace(0.0, 44.0, 12), h_acc=h_acc)
        df = preprocess_samples(samples, profile)
        np.testing.assert_array_equal(df["vel_d_s"].to_numpy(), smooth_descent_velocity(samples, profile))
        np.testing.assert_array_equal(df["valid"].to_numpy(), accuracy_mask(samples, profile))
        assert "horiz_speed_s" not in df.columns

    def test_rate_window_follows_confirmation_length(self, track):
        samples = track(np.array([0.0, 0.0, 0.0, 0.0, 0.0, 10.0, 10.0, 10.0, 10.0, 10.0]))
        short = preprocess_samples(samples, SegmentationProfile(smoothing_window=1, min_confirmation_samples=2))
        long = preprocess_samples(samples, SegmentationProfile(smoothing_window=1, min_confirmation_samples=4))
        assert short["vel_d_rate"].iloc[5] == pytest.approx(10.0)
        assert long["vel_d_rate"].iloc[5] == pytest.approx(3.0)

    def test_bad_fix_retained_in_table(self, track, profile):
        h_acc = np.full(10, 5.0)
        h_acc[3] = 99.0
        df = preprocess_samples(track(np.full(10, 5.0), h_acc=h_acc), profile)
        assert len(df) == 10
        assert not df["valid"].iloc[3]

    def test_running_peak_ignores_bad_fix(self, track, profile):
        alt = np.array([1000.0, 1010.0, 5000.0, 1020.0, 1015.0, 1010.0])
        h_acc = np.array([5.0, 5.0, 200.0, 5.0, 5.0, 5.0])
        df = preprocess_samples(track(np.zeros(6), alt=alt, h_acc=h_acc), profile)
        np.testing.assert_array_almost_equal(
            df["peak_alt_m"].to_numpy(), [1000.0, 1010.0, 1010.0, 1020.0, 1020.0, 1020.0]
        )

    def test_empty_recording_rejected(self, profile):
        with pytest.raises(ContractViolation):
            preprocess_samples([], profile)

    def test_too_short_recording_rejected(self, track, profile):
        with pytest.raises(ContractViolation):
            check_recording(track(np.zeros(profile.min_samples - 1)), profile)

    def test_unordered_recording_rejected(self, track, profile):
        samples = track(np.zeros(6))
        samples[2], samples[3] = samples[3], samples[2]
        with pytest.raises(ContractViolation):
            check_recording(samples, profile)
