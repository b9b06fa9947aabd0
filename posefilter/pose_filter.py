"""
Adaptive Kalman head-pose filter loop.

Pipeline per tick:
1. Reset if the noise sliders changed
2. Measure elapsed time, detect whether the input is a new measurement
3. Kalman step (adaptive process noise, predict, correct) on new measurements
4. Size the deadzone from the estimated variance and apply it
"""

from typing import Optional, Sequence

import numpy as np

from .adaptive import AdaptiveProcessNoiseScaler
from .clock import Clock, MonotonicClock
from .config import (
    NUM_MEASUREMENT_DOF,
    NUM_TRANSLATION_DOF,
    PoseFilterConfig,
    map_slider_value,
)
from .deadzone import DeadzoneFilter
from .kalman import LinearKalmanFilter


def fill_transition_matrix(transition_matrix: np.ndarray, dt: float) -> None:
    """
    Write the constant-velocity model into a (12, 12) transition matrix.

    Diagonal ones plus position += velocity * dt.
    """
    n = NUM_MEASUREMENT_DOF
    for i in range(n):
        transition_matrix[i, i] = 1.0
        transition_matrix[i + n, i + n] = 1.0
        transition_matrix[i, i + n] = dt


def fill_process_noise_cov(
    target: np.ndarray, dt: float, config: PoseFilterConfig
) -> None:
    """
    Write the nominal process noise for an interval dt.

    Movement at fixed velocity plus superimposed brownian motion. Each axis
    gets an independent (position, velocity) block scaled by sigma^2 * dt:

        [[1, c],
         [c, b]]

    with c = process_pos_vel_coupling and b = process_vel_scale.

    Args:
        target: (12, 12) matrix, modified in place
        dt: Interval in seconds
        config: Filter configuration with sigmas and model constants
    """
    n = NUM_MEASUREMENT_DOF
    a_pos = config.process_sigma_pos ** 2 * dt
    a_rot = config.process_sigma_rot ** 2 * dt
    c = config.process_pos_vel_coupling
    b = config.process_vel_scale

    for i in range(n):
        a = a_pos if i < NUM_TRANSLATION_DOF else a_rot
        target[i, i] = a
        target[i, i + n] = a * c
        target[i + n, i] = a * c
        target[i + n, i + n] = a * b


class PoseFilterLoop:
    """
    Smooth a 6-DOF pose stream with an adaptive Kalman filter and deadzone.

    The first call after construction or reset only starts the clock and
    returns None. New measurements are taken from the caller's new_sample
    flag when given, otherwise from any change in the raw input; a repeated
    identical pose is therefore indistinguishable from "no new frame".

    Example:
        loop = PoseFilterLoop(PoseFilterConfig())
        for pose in tracker_frames():
            smoothed = loop.filter(pose)
            if smoothed is not None:
                ...
    """

    def __init__(
        self,
        config: Optional[PoseFilterConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config if config is not None else PoseFilterConfig()
        self.clock = clock if clock is not None else MonotonicClock()

        self.kf = LinearKalmanFilter()
        self.noise_scaler = AdaptiveProcessNoiseScaler(
            window_length=self.config.adaptivity_window_length
        )
        self.deadzone = DeadzoneFilter(exponent=self.config.deadzone_exponent)

        self.reset()

    def reset(self) -> None:
        """Reinitialize all filter state from the current configuration."""
        config = self.config
        kf = self.kf

        kf.init()
        self.noise_scaler.init()

        fill_transition_matrix(kf.transition_matrix, config.nominal_dt)
        for i in range(NUM_MEASUREMENT_DOF):
            # Extract positions, i.e. the first 6 state components
            kf.measurement_matrix[i, i] = 1.0

        noise_variance_position = map_slider_value(config.noise_pos_slider_value)
        noise_variance_angle = map_slider_value(config.noise_rot_slider_value)
        for i in range(NUM_MEASUREMENT_DOF):
            if i < NUM_TRANSLATION_DOF:
                kf.measurement_noise_cov[i, i] = noise_variance_position
            else:
                kf.measurement_noise_cov[i, i] = noise_variance_angle

        fill_process_noise_cov(self.noise_scaler.base_cov, config.nominal_dt, config)
        kf.process_noise_cov = self.noise_scaler.base_cov.copy()
        kf.state_cov = self.noise_scaler.base_cov.copy()

        self.last_input = np.zeros(NUM_MEASUREMENT_DOF)
        self.first_run = True
        self.dt_since_last_input = 0.0
        self.last_new_measurement = False
        self.minimal_state_var = np.full(NUM_MEASUREMENT_DOF, np.inf)
        self.deadzone.reset()

        self._tuning_key = config.tuning_key()
        self.clock.start()

    def is_new_measurement(
        self, pose: np.ndarray, new_sample: Optional[bool] = None
    ) -> bool:
        """Explicit flag if given, otherwise any change from the last raw input."""
        if new_sample is not None:
            return bool(new_sample)
        return bool(np.any(pose != self.last_input))

    def _kalman_step(self, pose: np.ndarray, new_input: bool) -> np.ndarray:
        if new_input:
            dt = self.dt_since_last_input
            fill_transition_matrix(self.kf.transition_matrix, dt)
            fill_process_noise_cov(self.noise_scaler.base_cov, dt, self.config)
            self.noise_scaler.window_length = self.config.adaptivity_window_length
            self.noise_scaler.update(self.kf, dt)
            self.kf.time_update()
            self.kf.measurement_update(pose)
        return self.kf.pose

    def _update_deadzone_size(self) -> None:
        # A converged estimate of a constant input has minimal covariance, so
        # sizing from (variance - minimum) makes the stationary deadzone zero.
        variance = self.kf.pose_variance
        self.minimal_state_var = np.minimum(self.minimal_state_var, variance)
        self.deadzone.dz_size = (
            np.sqrt(variance - self.minimal_state_var) * self.config.deadzone_scale
        )

    def filter(
        self, pose: Sequence[float], new_sample: Optional[bool] = None
    ) -> Optional[np.ndarray]:
        """
        Process one tick.

        Args:
            pose: Raw pose (x, y, z, yaw, pitch, roll)
            new_sample: True/False if the source knows whether this is a new
                frame; None to detect it from a change in the raw pose

        Returns:
            Smoothed pose (6,), or None on the warm-up tick after a reset
        """
        pose = np.asarray(pose, dtype=float)
        if pose.shape != (NUM_MEASUREMENT_DOF,):
            raise ValueError(
                f"Expected pose with {NUM_MEASUREMENT_DOF} components, got shape {pose.shape}"
            )

        if self.config.tuning_key() != self._tuning_key:
            self.reset()

        # Start the clock on the first evaluation; there is no dt yet
        if self.first_run:
            self.clock.start()
            self.first_run = False
            return None

        new_input = self.is_new_measurement(pose, new_sample)
        self.last_new_measurement = new_input

        dt = self.clock.elapsed_seconds()
        self.dt_since_last_input += dt
        self.clock.start()

        output = self._kalman_step(pose, new_input)

        self._update_deadzone_size()
        self.deadzone.exponent = self.config.deadzone_exponent
        output = self.deadzone.filter(output)

        if new_input:
            self.dt_since_last_input = 0.0
            self.last_input = pose.copy()

        return output

    @property
    def alpha(self) -> float:
        """Process noise scale applied at the last Kalman step."""
        return self.noise_scaler.last_alpha
