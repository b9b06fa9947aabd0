"""Loading, saving and synthesizing recorded head-pose sequences."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from .config import NUM_MEASUREMENT_DOF, NUM_TRANSLATION_DOF, POSE_AXES


@dataclass
class PoseSequence:
    """A sequence of raw poses sampled by the caller's polling loop."""

    # Tick times in seconds: (N,)
    timestamps: np.ndarray

    # Raw poses: (N, 6) in (x, y, z, yaw, pitch, roll) order
    poses: np.ndarray

    # Optional per-tick "fresh tracker frame" flags: (N,)
    new_sample: Optional[np.ndarray] = None

    @property
    def n_frames(self) -> int:
        """Number of ticks in the sequence."""
        return len(self.timestamps)

    def get_axis(self, axis: str) -> np.ndarray:
        """Get one pose component over time as (N,) array."""
        return self.poses[:, POSE_AXES.index(axis)]


def dataframe_to_sequence(df: pd.DataFrame) -> PoseSequence:
    """Convert DataFrame with timestamp + axis columns to PoseSequence."""
    missing = [c for c in ["timestamp", *POSE_AXES] if c not in df.columns]
    if missing:
        raise ValueError(f"Recording is missing columns: {missing}")

    timestamps = df["timestamp"].to_numpy(dtype=float)
    poses = df[POSE_AXES].to_numpy(dtype=float)

    new_sample = None
    if "new_sample" in df.columns:
        new_sample = df["new_sample"].to_numpy(dtype=bool)

    return PoseSequence(timestamps=timestamps, poses=poses, new_sample=new_sample)


def load_pose_recording(filepath: Path | str) -> PoseSequence:
    """Load a pose recording from CSV or Excel (.xlsx)."""
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Recording not found: {filepath}")

    if filepath.suffix == ".xlsx":
        df = pd.read_excel(filepath)
    else:
        df = pd.read_csv(filepath)

    return dataframe_to_sequence(df)


def sequence_to_dataframe(sequence: PoseSequence) -> pd.DataFrame:
    """Convert PoseSequence to a DataFrame (inverse of dataframe_to_sequence)."""
    df = pd.DataFrame(sequence.poses, columns=POSE_AXES)
    df.insert(0, "timestamp", sequence.timestamps)
    if sequence.new_sample is not None:
        df["new_sample"] = sequence.new_sample
    return df


def save_pose_recording(sequence: PoseSequence, filepath: Path | str) -> None:
    """Save a pose sequence as CSV."""
    sequence_to_dataframe(sequence).to_csv(filepath, index=False)


def make_synthetic_sequence(
    duration: float = 10.0,
    poll_rate_hz: float = 250.0,
    camera_rate_hz: float = 60.0,
    noise_pos: float = 0.05,
    noise_rot: float = 0.2,
    seed: Optional[int] = 0,
) -> PoseSequence:
    """
    Generate a noisy head-pose recording.

    The head holds still, turns, then holds still again on every axis. The
    tracker delivers frames at camera_rate_hz while the caller polls at
    poll_rate_hz, so most ticks repeat the previous frame exactly.

    Args:
        duration: Length in seconds
        poll_rate_hz: Rate at which the filter is invoked
        camera_rate_hz: Rate at which fresh measurements arrive
        noise_pos: Measurement noise std for translation (cm)
        noise_rot: Measurement noise std for rotation (degrees)
        seed: Random seed (None for nondeterministic)

    Returns:
        PoseSequence with new_sample flags marking fresh frames
    """
    rng = np.random.default_rng(seed)

    n_ticks = int(duration * poll_rate_hz)
    timestamps = np.arange(n_ticks) / poll_rate_hz

    # Smooth step between 40% and 60% of the recording
    t0, t1 = 0.4 * duration, 0.6 * duration
    u = np.clip((timestamps - t0) / (t1 - t0), 0.0, 1.0)
    ramp = u * u * (3.0 - 2.0 * u)

    amplitude = np.array([5.0, -3.0, 8.0, 30.0, -15.0, 5.0])
    clean = ramp[:, None] * amplitude[None, :]

    noise_std = np.array(
        [noise_pos] * NUM_TRANSLATION_DOF
        + [noise_rot] * (NUM_MEASUREMENT_DOF - NUM_TRANSLATION_DOF)
    )

    # Sample-and-hold: each tick sees the latest camera frame
    frame_index = np.floor(timestamps * camera_rate_hz).astype(int)
    new_sample = np.ones(n_ticks, dtype=bool)
    new_sample[1:] = frame_index[1:] != frame_index[:-1]

    poses = np.zeros((n_ticks, NUM_MEASUREMENT_DOF))
    current = clean[0] + rng.normal(0.0, noise_std)
    for i in range(n_ticks):
        if new_sample[i]:
            current = clean[i] + rng.normal(0.0, noise_std)
        poses[i] = current

    return PoseSequence(timestamps=timestamps, poses=poses, new_sample=new_sample)
