"""
Offline replay of recorded pose sequences.

Main entry point for evaluating filter tuning: feeds a recording through
PoseFilterLoop with recorded timing and scores the output.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import signal

from .clock import ReplayClock
from .config import (
    NUM_MEASUREMENT_DOF,
    POSE_AXES,
    EvaluationConfig,
    ReplayConfig,
    get_preset_config,
)
from .data_loader import PoseSequence
from .pose_filter import PoseFilterLoop


@dataclass
class ReplayResult:
    """Complete result of replaying a recording."""

    # Tick times: (N,)
    timestamps: np.ndarray

    # Raw input poses: (N, 6)
    raw: np.ndarray

    # Smoothed poses: (N, 6), NaN on warm-up ticks
    filtered: np.ndarray

    # Deadzone size used at each tick: (N, 6)
    deadzone_size: np.ndarray

    # Process noise scale after each tick: (N,)
    alpha: np.ndarray

    # Ticks treated as new measurements: (N,)
    new_measurement: np.ndarray


def replay_sequence(
    sequence: PoseSequence,
    config: Optional[ReplayConfig] = None,
    preset: Optional[str] = None,
    use_sample_flags: bool = True,
) -> ReplayResult:
    """
    Run a recording through the filter loop.

    Args:
        sequence: Recorded poses and timestamps
        config: Replay configuration (optional)
        preset: Preset name ("default", "smooth", "responsive")
        use_sample_flags: Pass the recording's new_sample flags to the loop;
            if False (or the recording has none) new frames are detected
            from changes in the raw pose

    Returns:
        ReplayResult with per-tick outputs and diagnostics
    """
    # Get configuration
    if config is None:
        if preset is not None:
            config = get_preset_config(preset)
        else:
            config = ReplayConfig()

    config.filter.validate()

    flags = sequence.new_sample if use_sample_flags else None

    if config.verbose:
        print("=" * 50)
        print("Pose Filter Replay")
        print("=" * 50)
        print(f"  Ticks: {sequence.n_frames}")
        print(f"  Sample flags: {'recorded' if flags is not None else 'change detection'}")
        print(f"  Noise sliders: pos={config.filter.noise_pos_slider_value}, "
              f"rot={config.filter.noise_rot_slider_value}")

    n = sequence.n_frames
    filtered = np.full((n, NUM_MEASUREMENT_DOF), np.nan)
    deadzone_size = np.zeros((n, NUM_MEASUREMENT_DOF))
    alpha = np.zeros(n)
    new_measurement = np.zeros(n, dtype=bool)

    clock = ReplayClock(now=float(sequence.timestamps[0]) if n else 0.0)
    loop = PoseFilterLoop(config.filter, clock=clock)

    for i in range(n):
        clock.set_time(sequence.timestamps[i])
        new_sample = None if flags is None else bool(flags[i])

        output = loop.filter(sequence.poses[i], new_sample=new_sample)

        if output is not None:
            filtered[i] = output
            new_measurement[i] = loop.last_new_measurement
        deadzone_size[i] = loop.deadzone.dz_size
        alpha[i] = loop.alpha

        if config.verbose and i > 0 and i % config.log_interval == 0:
            print(f"  Tick {i:6d}: alpha={alpha[i]:.3g}, "
                  f"max deadzone={deadzone_size[i].max():.4f}")

    if config.verbose:
        print("\n[Complete]")
        print(f"  New measurements: {new_measurement.sum()}/{n}")

    return ReplayResult(
        timestamps=sequence.timestamps,
        raw=sequence.poses,
        filtered=filtered,
        deadzone_size=deadzone_size,
        alpha=alpha,
        new_measurement=new_measurement,
    )


def apply_butterworth_filter(
    data: np.ndarray, cutoff_hz: float, fps: float, order: int = 2
) -> np.ndarray:
    """
    Offline "ground truth" for a recorded pose track.

    Runs a low-pass forward and backward over the whole recording, so it
    has no lag and sees future ticks; the causal filter loop is scored
    against it. Ticks run along axis 0, so a single axis (N,) or a full
    (N, 6) pose array both work.

    Args:
        data: Poses sampled at the polling rate
        cutoff_hz: Cutoff in Hz (EvaluationConfig.reference_cutoff_hz)
        fps: Polling rate estimated from the timestamps
        order: Butterworth order
    """
    # Keep the normalized cutoff inside (0, 1) for slow polling rates
    normalized_cutoff = np.clip(cutoff_hz / (fps / 2), 0.01, 0.99)
    b, a = signal.butter(order, normalized_cutoff, btype="low")
    return signal.filtfilt(b, a, data, axis=0)


def estimate_lag(
    reference: np.ndarray, delayed: np.ndarray, fps: float, max_lag_seconds: float
) -> float:
    """
    Estimate how far `delayed` trails `reference` (seconds).

    Cross-correlates the first differences so constant offsets do not
    dominate. Returns NaN when the reference does not move.
    """
    ref_d = np.diff(reference)
    del_d = np.diff(delayed)
    if ref_d.size == 0 or np.std(ref_d) == 0.0 or np.std(del_d) == 0.0:
        return float("nan")

    correlation = signal.correlate(del_d - del_d.mean(), ref_d - ref_d.mean())
    lags = signal.correlation_lags(del_d.size, ref_d.size)

    max_lag = max(1, int(round(max_lag_seconds * fps)))
    window = np.abs(lags) <= max_lag
    best = lags[window][np.argmax(correlation[window])]
    return float(best) / fps


def compute_metrics(
    raw: np.ndarray,
    filtered: np.ndarray,
    timestamps: np.ndarray,
    config: Optional[EvaluationConfig] = None,
) -> dict[str, float]:
    """
    Compute quality metrics comparing raw and filtered poses.

    Args:
        raw: Raw poses (N, 6)
        filtered: Filtered poses (N, 6), NaN rows are ignored
        timestamps: Tick times (N,)
        config: Evaluation configuration

    Returns:
        Dictionary of metrics
    """
    if config is None:
        config = EvaluationConfig()

    metrics = {}

    valid_mask = ~np.isnan(filtered).any(axis=1)
    n_valid = int(valid_mask.sum())
    metrics["valid_frames"] = n_valid
    metrics["total_frames"] = len(raw)

    # filtfilt needs more samples than its padding
    if n_valid < 3 * (config.reference_order + 1) + 3:
        metrics["rmse_to_reference"] = float("nan")
        metrics["jitter_raw"] = float("nan")
        metrics["jitter_filtered"] = float("nan")
        metrics["jitter_improvement"] = float("nan")
        metrics["lag_seconds"] = float("nan")
        return metrics

    raw_valid = raw[valid_mask]
    filt_valid = filtered[valid_mask]
    fps = 1.0 / float(np.median(np.diff(timestamps[valid_mask])))

    # Zero-phase reference: best achievable smoothing with hindsight
    reference = apply_butterworth_filter(
        raw_valid, config.reference_cutoff_hz, fps, config.reference_order
    )

    diff = filt_valid - reference
    metrics["rmse_to_reference"] = float(np.sqrt(np.mean(diff ** 2)))
    for i, axis in enumerate(POSE_AXES):
        metrics[f"rmse_{axis}"] = float(np.sqrt(np.mean(diff[:, i] ** 2)))

    # Jitter: mean magnitude of second differences
    raw_accel = np.abs(np.diff(raw_valid, n=2, axis=0)).mean()
    filt_accel = np.abs(np.diff(filt_valid, n=2, axis=0)).mean()
    metrics["jitter_raw"] = float(raw_accel)
    metrics["jitter_filtered"] = float(filt_accel)
    metrics["jitter_improvement"] = float(raw_accel / (filt_accel + 1e-12))

    lags = [
        estimate_lag(reference[:, i], filt_valid[:, i], fps, config.max_lag_seconds)
        for i in range(NUM_MEASUREMENT_DOF)
    ]
    lags = [lag for lag in lags if not np.isnan(lag)]
    metrics["lag_seconds"] = float(np.mean(lags)) if lags else float("nan")

    return metrics
