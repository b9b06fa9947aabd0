"""Tests for posefilter.replay module."""

import pytest
import numpy as np
from posefilter.config import EvaluationConfig, ReplayConfig
from posefilter.data_loader import make_synthetic_sequence
from posefilter.replay import (
    apply_butterworth_filter,
    compute_metrics,
    estimate_lag,
    replay_sequence,
)


def quiet_config():
    config = ReplayConfig()
    config.verbose = False
    return config


class TestReplaySequence:
    """Test running recordings through the filter loop."""

    def test_output_shapes(self):
        """Result arrays should follow the recording length."""
        sequence = make_synthetic_sequence(duration=1.0, poll_rate_hz=100.0)

        result = replay_sequence(sequence, config=quiet_config())

        assert result.filtered.shape == (100, 6)
        assert result.deadzone_size.shape == (100, 6)
        assert result.alpha.shape == (100,)
        assert result.new_measurement.shape == (100,)

    def test_warmup_tick_is_nan(self):
        """Only the first tick should lack output."""
        sequence = make_synthetic_sequence(duration=1.0, poll_rate_hz=100.0)

        result = replay_sequence(sequence, config=quiet_config())

        assert np.all(np.isnan(result.filtered[0]))
        assert np.all(np.isfinite(result.filtered[1:]))

    def test_uses_recorded_flags(self):
        """New measurements should follow the recording's flags."""
        sequence = make_synthetic_sequence(duration=1.0, poll_rate_hz=200.0, camera_rate_hz=50.0)

        result = replay_sequence(sequence, config=quiet_config())

        np.testing.assert_array_equal(result.new_measurement[1:], sequence.new_sample[1:])
        assert not result.new_measurement[0]

    def test_change_detection_without_flags(self):
        """Without flags, held frames should be detected from repeated poses."""
        sequence = make_synthetic_sequence(duration=1.0, poll_rate_hz=200.0, camera_rate_hz=50.0)

        result = replay_sequence(sequence, config=quiet_config(), use_sample_flags=False)

        # Noisy fresh frames always differ from the held one
        np.testing.assert_array_equal(result.new_measurement[2:], sequence.new_sample[2:])

    def test_preset(self):
        """Presets should be accepted in place of a config."""
        sequence = make_synthetic_sequence(duration=0.5, poll_rate_hz=100.0)
        result = replay_sequence(sequence, config=None, preset="smooth")
        assert np.all(np.isfinite(result.filtered[1:]))

    def test_tracks_motion(self):
        """Filtered pose should follow the synthetic head turn."""
        sequence = make_synthetic_sequence(duration=6.0)

        result = replay_sequence(sequence, config=quiet_config())

        # Final held pose: yaw amplitude 30 degrees
        assert result.filtered[-1, 3] == pytest.approx(30.0, abs=2.0)
        assert result.filtered[-1, 0] == pytest.approx(5.0, abs=0.5)


class TestButterworth:
    """Test zero-phase reference filter."""

    def test_preserves_constant(self):
        """Constant signal should pass unchanged."""
        data = np.full((200, 6), 3.0)
        filtered = apply_butterworth_filter(data, 2.0, 100.0)
        np.testing.assert_allclose(filtered, 3.0, atol=1e-8)

    def test_attenuates_high_frequency(self):
        """High frequency noise should be reduced."""
        fps = 100.0
        t = np.arange(500) / fps
        low = np.sin(2 * np.pi * 0.5 * t)
        data = low + 0.5 * np.sin(2 * np.pi * 20 * t)

        filtered = apply_butterworth_filter(data, 2.0, fps)

        assert np.mean((filtered - low) ** 2) < np.mean((data - low) ** 2)

    def test_pose_array_filters_each_axis(self):
        """A (N, 6) pose array should match filtering each axis alone."""
        sequence = make_synthetic_sequence(duration=2.0)
        fps = 250.0

        filtered = apply_butterworth_filter(sequence.poses, 2.0, fps)

        for i in range(6):
            np.testing.assert_allclose(
                filtered[:, i], apply_butterworth_filter(sequence.poses[:, i], 2.0, fps)
            )


class TestLag:
    """Test lag estimation."""

    def test_detects_shift(self):
        """A delayed copy should be detected as lagging."""
        rng = np.random.default_rng(0)
        fps = 100.0
        reference = np.cumsum(rng.normal(size=1000))
        delayed = np.empty_like(reference)
        delayed[5:] = reference[:-5]
        delayed[:5] = reference[0]

        lag = estimate_lag(reference, delayed, fps, max_lag_seconds=0.5)

        assert lag == pytest.approx(0.05)

    def test_static_signal(self):
        """No motion should give NaN."""
        lag = estimate_lag(np.ones(100), np.ones(100), 100.0, 0.5)
        assert np.isnan(lag)


class TestMetrics:
    """Test quality metrics."""

    def test_filter_reduces_jitter(self):
        """Filtered output should be smoother than the raw recording."""
        sequence = make_synthetic_sequence(duration=10.0)
        result = replay_sequence(sequence, config=quiet_config())

        metrics = compute_metrics(result.raw, result.filtered, result.timestamps)

        assert metrics["valid_frames"] == sequence.n_frames - 1
        assert metrics["total_frames"] == sequence.n_frames
        assert metrics["jitter_improvement"] > 1.0
        assert np.isfinite(metrics["rmse_to_reference"])
        assert "rmse_yaw" in metrics

    def test_too_short(self):
        """Very short recordings should report NaN metrics."""
        raw = np.zeros((4, 6))
        filtered = np.zeros((4, 6))
        timestamps = np.arange(4) * 0.01

        metrics = compute_metrics(raw, filtered, timestamps, EvaluationConfig())

        assert metrics["valid_frames"] == 4
        assert np.isnan(metrics["rmse_to_reference"])
        assert np.isnan(metrics["lag_seconds"])

    def test_identical_signals(self):
        """Identical raw and filtered data should show no jitter improvement."""
        sequence = make_synthetic_sequence(duration=2.0)

        metrics = compute_metrics(sequence.poses, sequence.poses, sequence.timestamps)

        assert metrics["jitter_improvement"] == pytest.approx(1.0)
