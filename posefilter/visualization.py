"""Visualization utilities for replay results."""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

from .config import NUM_TRANSLATION_DOF, POSE_AXES
from .replay import ReplayResult


def plot_replay(
    result: ReplayResult,
    output_path: Path | str | None = None,
    figsize: tuple[int, int] = (14, 10),
) -> plt.Figure:
    """
    Plot raw vs filtered pose for every axis.

    Args:
        result: Replay result
        output_path: Optional path to save figure
        figsize: Figure size

    Returns:
        Matplotlib figure
    """
    fig, axes = plt.subplots(3, 2, figsize=figsize, sharex=True)

    t = result.timestamps - result.timestamps[0]

    for i, axis_name in enumerate(POSE_AXES):
        # Translation in the left column, rotation in the right
        ax = axes[i % NUM_TRANSLATION_DOF, i // NUM_TRANSLATION_DOF]
        unit = "cm" if i < NUM_TRANSLATION_DOF else "deg"

        ax.plot(t, result.raw[:, i], "r-", label="Raw", linewidth=1, alpha=0.5)
        ax.plot(t, result.filtered[:, i], "b-", label="Filtered", linewidth=1.5)
        ax.set_ylabel(f"{axis_name} ({unit})")
        ax.set_title(f"{axis_name} (max deadzone: {np.max(result.deadzone_size[:, i]):.3f})")
        ax.legend(loc="upper left")
        ax.grid(True, alpha=0.3)

    for ax in axes[-1]:
        ax.set_xlabel("Time (s)")

    plt.tight_layout()

    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches="tight")

    plt.close(fig)
    return fig


def plot_adaptation(
    result: ReplayResult,
    output_path: Path | str | None = None,
    figsize: tuple[int, int] = (12, 6),
) -> plt.Figure:
    """
    Plot process noise scale and deadzone size over time.

    Args:
        result: Replay result
        output_path: Optional path to save figure
        figsize: Figure size

    Returns:
        Matplotlib figure
    """
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize, sharex=True)

    t = result.timestamps - result.timestamps[0]

    ax1.semilogy(t, result.alpha, "k-", linewidth=1)
    ax1.set_ylabel("Process noise scale")
    ax1.set_title("Adaptive process noise")
    ax1.grid(True, alpha=0.3)

    for i, axis_name in enumerate(POSE_AXES):
        ax2.plot(t, result.deadzone_size[:, i], label=axis_name, linewidth=1)
    ax2.set_xlabel("Time (s)")
    ax2.set_ylabel("Deadzone size")
    ax2.legend(loc="upper right")
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()

    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches="tight")

    plt.close(fig)
    return fig
