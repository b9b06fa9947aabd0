"""
Innovation-based adaptive process noise.

Rescales a Kalman filter's process noise so responsiveness follows how well
recent predictions matched observations (Mehra-style adaptive filtering):
- alpha > 1: innovations larger than the model expects, inflate process noise
- alpha < 1: filter over-reacts to noise, shrink process noise
"""

import math

import numpy as np

from .config import NUM_MEASUREMENT_DOF, NUM_STATE_DOF
from .kalman import LinearKalmanFilter


# Bounds on the process noise scale factor
MIN_ALPHA = 0.001
MAX_ALPHA = 1000.0


class AdaptiveProcessNoiseScaler:
    """
    Scale a nominal process noise covariance from innovation statistics.

    Attributes:
        base_cov: Nominal process noise (NS, NS), rebuilt by the owner each step
        innovation_cov_estimate: Exponentially weighted innovation covariance (NZ, NZ)
        window_length: Smoothing time constant in seconds
        last_alpha: Scale factor applied by the most recent update
    """

    def __init__(
        self,
        window_length: float = 0.5,
        num_state: int = NUM_STATE_DOF,
        num_measurement: int = NUM_MEASUREMENT_DOF,
    ):
        self.window_length = window_length
        self.num_state = num_state
        self.num_measurement = num_measurement
        self.init()

    def init(self) -> None:
        """Zero the nominal covariance and the innovation estimate."""
        self.base_cov = np.zeros((self.num_state, self.num_state))
        self.innovation_cov_estimate = np.zeros(
            (self.num_measurement, self.num_measurement)
        )
        self.last_alpha = MIN_ALPHA

    def compute_alpha(self, kf: LinearKalmanFilter, dt: float) -> float:
        """
        Update the innovation estimate and return the process noise scale.

        Args:
            kf: Filter whose innovation, measurement model and prior covariance are read
            dt: Time since the previous measurement (seconds)

        Returns:
            Scale factor in [MIN_ALPHA, MAX_ALPHA]
        """
        denominator = dt + self.window_length
        f = dt / denominator if denominator > 0 else 0.0

        outer = np.outer(kf.innovation, kf.innovation)
        self.innovation_cov_estimate = f * outer + (1.0 - f) * self.innovation_cov_estimate

        H = kf.measurement_matrix
        t1 = np.trace(self.innovation_cov_estimate - kf.measurement_noise_cov)
        t2 = np.trace(H @ kf.state_cov_prior @ H.T)

        alpha = MIN_ALPHA
        if t1 > 0.0 and t2 > 0.0:
            alpha = math.sqrt(t1 / t2)
            # max() keeps MIN_ALPHA when alpha is NaN (inf / inf)
            alpha = min(MAX_ALPHA, max(MIN_ALPHA, alpha))

        return alpha

    def update(self, kf: LinearKalmanFilter, dt: float) -> float:
        """Set kf.process_noise_cov = alpha * base_cov and return alpha."""
        alpha = self.compute_alpha(kf, dt)
        kf.process_noise_cov = alpha * self.base_cov
        self.last_alpha = alpha
        return alpha
