"""
Linear Kalman filter.

Generic discrete-time filter over a fixed-size state and measurement vector.
All matrices are public attributes; the owner fills in the model
(transition, measurement, noise covariances) before stepping the filter.
"""

import numpy as np
from scipy import linalg

from .config import NUM_MEASUREMENT_DOF, NUM_STATE_DOF


class LinearKalmanFilter:
    """
    Kalman filter with separate time and measurement updates.

    Shapes (NS = state size, NZ = measurement size):
        state, state_prior:             (NS,)
        state_cov, state_cov_prior:     (NS, NS)
        process_noise_cov:              (NS, NS)
        transition_matrix:              (NS, NS)
        measurement_matrix:             (NZ, NS)
        measurement_noise_cov:          (NZ, NZ)
        kalman_gain:                    (NS, NZ)
        innovation:                     (NZ,)
    """

    def __init__(
        self,
        num_state: int = NUM_STATE_DOF,
        num_measurement: int = NUM_MEASUREMENT_DOF,
    ):
        self.num_state = num_state
        self.num_measurement = num_measurement
        self.init()

    def init(self) -> None:
        """Allocate and zero all matrices and vectors."""
        ns, nz = self.num_state, self.num_measurement

        self.measurement_noise_cov = np.zeros((nz, nz))
        self.process_noise_cov = np.zeros((ns, ns))
        self.kalman_gain = np.zeros((ns, nz))
        self.measurement_matrix = np.zeros((nz, ns))
        self.state_cov = np.zeros((ns, ns))
        self.state_cov_prior = np.zeros((ns, ns))
        self.transition_matrix = np.zeros((ns, ns))

        self.state = np.zeros(ns)
        self.state_prior = np.zeros(ns)
        self.innovation = np.zeros(nz)

    def time_update(self) -> None:
        """Predict the prior state and covariance."""
        F = self.transition_matrix
        self.state_prior[:] = F @ self.state
        self.state_cov_prior[:] = F @ self.state_cov @ F.T + self.process_noise_cov

    def measurement_update(self, measurement: np.ndarray) -> None:
        """
        Correct the prior with a measurement.

        A singular innovation covariance falls back to its pseudo-inverse;
        accuracy degrades but the update always completes. A non-finite
        innovation covariance (prior overflowed after a huge dt) yields a
        NaN gain, so the estimate turns NaN until the next init().

        Args:
            measurement: Observed vector (NZ,)
        """
        H = self.measurement_matrix
        P_prior = self.state_cov_prior

        innovation_cov = H @ P_prior @ H.T + self.measurement_noise_cov
        cross_cov = P_prior @ H.T

        if not np.all(np.isfinite(innovation_cov)):
            gain = np.full_like(cross_cov, np.nan)
        else:
            # K = P_prior H^T S^-1, solved as S^T K^T = (P_prior H^T)^T
            try:
                gain = linalg.solve(innovation_cov.T, cross_cov.T, check_finite=False).T
            except linalg.LinAlgError:
                gain = cross_cov @ np.linalg.pinv(innovation_cov)

        self.kalman_gain[:] = gain
        self.innovation[:] = np.asarray(measurement, dtype=float) - H @ self.state_prior
        self.state[:] = self.state_prior + gain @ self.innovation
        self.state_cov[:] = P_prior - gain @ H @ P_prior

    @property
    def pose(self) -> np.ndarray:
        """Measured part of the state (copy)."""
        return self.state[: self.num_measurement].copy()

    @property
    def pose_variance(self) -> np.ndarray:
        """Posterior variance of the measured part of the state."""
        return np.diag(self.state_cov)[: self.num_measurement].copy()
