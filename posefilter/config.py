"""Configuration for adaptive Kalman head-pose filtering."""

from dataclasses import dataclass, field


# Pose layout: translation first, then rotation
POSE_AXES = ["x", "y", "z", "yaw", "pitch", "roll"]

# Axis name to index mapping
AXIS_INDEX = {name: i for i, name in enumerate(POSE_AXES)}

# Measured pose components and full state (pose + velocity)
NUM_MEASUREMENT_DOF = len(POSE_AXES)
NUM_STATE_DOF = 2 * NUM_MEASUREMENT_DOF

# Translation axes come first in the pose vector
NUM_TRANSLATION_DOF = 3


def map_slider_value(value: float) -> float:
    """
    Map a noise slider position to a measurement noise variance.

    Slider range 0..100 covers 0.001..10 on a log scale.
    """
    return 10.0 ** (value * 0.04 - 3.0)


@dataclass
class PoseFilterConfig:
    """Tuning parameters for the pose filter loop."""

    # Measurement noise (mapped through map_slider_value)
    noise_pos_slider_value: float = 40.0  # cm
    noise_rot_slider_value: float = 40.0  # degrees

    # Physical process noise magnitudes
    process_sigma_pos: float = 0.5
    process_sigma_rot: float = 0.5

    # Process noise model: position/velocity coupling and velocity scale
    process_pos_vel_coupling: float = 1.0
    process_vel_scale: float = 20.0

    # Innovation covariance smoothing time constant (seconds)
    adaptivity_window_length: float = 0.5

    # Deadzone: std-dev multiplier and soft-knee sharpness
    deadzone_scale: float = 8.0
    deadzone_exponent: float = 2.0

    # dt used to seed the matrices before the first real interval (seconds)
    nominal_dt: float = 0.03

    def tuning_key(self) -> tuple[float, float]:
        """Values whose change forces a filter reset."""
        return (self.noise_pos_slider_value, self.noise_rot_slider_value)

    def validate(self) -> None:
        """Raise ValueError for magnitudes the filter cannot use."""
        non_negative = {
            "process_sigma_pos": self.process_sigma_pos,
            "process_sigma_rot": self.process_sigma_rot,
            "adaptivity_window_length": self.adaptivity_window_length,
            "deadzone_scale": self.deadzone_scale,
            "process_vel_scale": self.process_vel_scale,
            "nominal_dt": self.nominal_dt,
        }
        for name, value in non_negative.items():
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

        if self.deadzone_exponent <= 0:
            raise ValueError(
                f"deadzone_exponent must be positive, got {self.deadzone_exponent}"
            )


@dataclass
class EvaluationConfig:
    """Configuration for offline quality metrics."""

    # Zero-phase reference low-pass filter
    reference_cutoff_hz: float = 2.0
    reference_order: int = 2

    # Search window for lag estimation (seconds)
    max_lag_seconds: float = 0.5


@dataclass
class ReplayConfig:
    """Complete configuration for replaying a recording through the filter."""

    filter: PoseFilterConfig = field(default_factory=PoseFilterConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)

    # Verbosity
    verbose: bool = True
    log_interval: int = 500


# Preset configurations
def get_preset_config(preset: str) -> ReplayConfig:
    """Get preset configuration."""
    config = ReplayConfig()

    if preset == "default":
        pass  # Use defaults

    elif preset == "smooth":
        # Trust measurements less, suppress more residual jitter
        config.filter.noise_pos_slider_value = 55.0
        config.filter.noise_rot_slider_value = 55.0
        config.filter.deadzone_scale = 12.0

    elif preset == "responsive":
        # Low latency: trust measurements more, adapt faster
        config.filter.noise_pos_slider_value = 25.0
        config.filter.noise_rot_slider_value = 25.0
        config.filter.deadzone_scale = 4.0
        config.filter.adaptivity_window_length = 0.25

    return config
