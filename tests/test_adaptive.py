"""Tests for posefilter.adaptive module."""

import pytest
import numpy as np
from posefilter.adaptive import AdaptiveProcessNoiseScaler, MIN_ALPHA, MAX_ALPHA
from posefilter.kalman import LinearKalmanFilter


def make_filter(prior_var=1.0, r=0.0):
    """Filter with pose selection, given prior variance and measurement noise."""
    kf = LinearKalmanFilter()
    for i in range(6):
        kf.measurement_matrix[i, i] = 1.0
    kf.measurement_noise_cov = np.eye(6) * r
    kf.state_cov_prior = np.eye(12) * prior_var
    return kf


class TestAlphaComputation:
    """Test process noise scale factor."""

    def test_known_value(self):
        """Alpha should be sqrt(T1 / T2)."""
        kf = make_filter(prior_var=1.0)
        kf.innovation[0] = 2.0
        scaler = AdaptiveProcessNoiseScaler(window_length=0.5)

        # dt == window_length -> f = 0.5, estimate trace = 0.5 * 4 = 2, T2 = 6
        alpha = scaler.compute_alpha(kf, 0.5)

        assert alpha == pytest.approx(np.sqrt(2.0 / 6.0))
        assert scaler.innovation_cov_estimate[0, 0] == pytest.approx(2.0)

    def test_zero_innovation_gives_minimum(self):
        """No innovation signal should mean minimum trust."""
        kf = make_filter(prior_var=1.0, r=0.1)
        scaler = AdaptiveProcessNoiseScaler()
        assert scaler.compute_alpha(kf, 0.03) == MIN_ALPHA

    def test_zero_prior_gives_minimum(self):
        """Zero predicted measurement variance should fall back to minimum."""
        kf = make_filter(prior_var=0.0)
        kf.innovation[:] = 10.0
        scaler = AdaptiveProcessNoiseScaler()
        assert scaler.compute_alpha(kf, 0.03) == MIN_ALPHA

    def test_innovation_below_measurement_noise(self):
        """Innovations explained by measurement noise should give minimum trust."""
        kf = make_filter(prior_var=1.0, r=100.0)
        kf.innovation[:] = 1.0
        scaler = AdaptiveProcessNoiseScaler()
        assert scaler.compute_alpha(kf, 0.03) == MIN_ALPHA

    @pytest.mark.parametrize("magnitude", [0.0, 1e-12, 1e-3, 1.0, 1e3, 1e12, 1e200])
    @pytest.mark.parametrize("prior_var", [0.0, 1e-300, 1e-6, 1.0, 1e6])
    def test_alpha_bounded(self, magnitude, prior_var):
        """Alpha should stay in [0.001, 1000] for any magnitudes."""
        kf = make_filter(prior_var=prior_var, r=0.01)
        kf.innovation[:] = magnitude
        scaler = AdaptiveProcessNoiseScaler()

        with np.errstate(over="ignore", invalid="ignore"):
            alpha = scaler.compute_alpha(kf, 0.03)

        assert MIN_ALPHA <= alpha <= MAX_ALPHA

    def test_zero_dt_and_window(self):
        """Degenerate weighting should not divide by zero."""
        kf = make_filter()
        kf.innovation[:] = 1.0
        scaler = AdaptiveProcessNoiseScaler(window_length=0.0)
        alpha = scaler.compute_alpha(kf, 0.0)
        assert alpha == MIN_ALPHA
        assert not scaler.innovation_cov_estimate.any()


class TestInnovationEstimate:
    """Test exponentially weighted innovation covariance."""

    def test_longer_window_smooths_more(self):
        """A longer window should weight the newest innovation less."""
        kf = make_filter()
        kf.innovation[:] = 1.0

        short = AdaptiveProcessNoiseScaler(window_length=0.1)
        long = AdaptiveProcessNoiseScaler(window_length=10.0)
        short.compute_alpha(kf, 0.1)
        long.compute_alpha(kf, 0.1)

        assert short.innovation_cov_estimate[0, 0] > long.innovation_cov_estimate[0, 0]

    def test_estimate_decays(self):
        """Estimate should decay once innovations vanish."""
        kf = make_filter()
        scaler = AdaptiveProcessNoiseScaler(window_length=0.5)

        kf.innovation[:] = 3.0
        scaler.compute_alpha(kf, 0.1)
        first = scaler.innovation_cov_estimate[0, 0]

        kf.innovation[:] = 0.0
        scaler.compute_alpha(kf, 0.1)

        assert 0.0 < scaler.innovation_cov_estimate[0, 0] < first


class TestUpdate:
    """Test process noise rescaling."""

    def test_sets_scaled_process_noise(self):
        """update() should write alpha * base_cov into the filter."""
        kf = make_filter(prior_var=1.0)
        kf.innovation[0] = 2.0
        scaler = AdaptiveProcessNoiseScaler(window_length=0.5)
        scaler.base_cov = np.eye(12) * 3.0

        alpha = scaler.update(kf, 0.5)

        np.testing.assert_allclose(kf.process_noise_cov, alpha * 3.0 * np.eye(12))
        assert scaler.last_alpha == alpha

    def test_init_resets_estimate(self):
        """init() should clear the innovation estimate and base covariance."""
        kf = make_filter()
        kf.innovation[:] = 5.0
        scaler = AdaptiveProcessNoiseScaler()
        scaler.base_cov[:] = 1.0
        scaler.update(kf, 0.1)

        scaler.init()

        assert not scaler.innovation_cov_estimate.any()
        assert not scaler.base_cov.any()
        assert scaler.last_alpha == MIN_ALPHA
