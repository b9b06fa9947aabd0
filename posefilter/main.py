"""
Main entry point for offline pose filter evaluation.

Usage:
    python -m posefilter.main --input recording.csv --preset smooth --plot
    python -m posefilter.main --synthetic --duration 20
"""

import argparse
from pathlib import Path

import numpy as np

from .config import get_preset_config
from .data_loader import (
    PoseSequence,
    load_pose_recording,
    make_synthetic_sequence,
    save_pose_recording,
)
from .replay import compute_metrics, replay_sequence


def export_filtered_csv(output_path: Path, sequence: PoseSequence, filtered: np.ndarray) -> None:
    """
    Export filtered poses in the recording format.

    Args:
        output_path: Path to save the CSV file
        sequence: Original recording (timestamps and sample flags are kept)
        filtered: (n_frames, 6) filtered poses
    """
    save_pose_recording(
        PoseSequence(
            timestamps=sequence.timestamps,
            poses=filtered,
            new_sample=sequence.new_sample,
        ),
        output_path,
    )


def main():
    parser = argparse.ArgumentParser(
        description="Adaptive Kalman head-pose filter replay"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input",
        type=str,
        help="Recorded pose file (CSV or .xlsx)",
    )
    source.add_argument(
        "--synthetic",
        action="store_true",
        help="Generate a synthetic noisy recording",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Synthetic recording length in seconds",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="output/replay",
        help="Output directory for results",
    )
    parser.add_argument(
        "--preset",
        type=str,
        choices=["default", "smooth", "responsive"],
        default="default",
        help="Configuration preset",
    )
    parser.add_argument(
        "--noise-pos",
        type=float,
        default=None,
        help="Override position noise slider (0-100)",
    )
    parser.add_argument(
        "--noise-rot",
        type=float,
        default=None,
        help="Override rotation noise slider (0-100)",
    )
    parser.add_argument(
        "--ignore-sample-flags",
        action="store_true",
        help="Detect new frames from pose changes even if the recording flags them",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save raw vs filtered plots",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress verbose output",
    )

    args = parser.parse_args()

    # Load configuration
    config = get_preset_config(args.preset)
    config.verbose = not args.quiet

    if args.noise_pos is not None:
        config.filter.noise_pos_slider_value = args.noise_pos
    if args.noise_rot is not None:
        config.filter.noise_rot_slider_value = args.noise_rot

    print(f"Using preset '{args.preset}'")

    # Load data
    if args.synthetic:
        print(f"Generating {args.duration:.1f}s synthetic recording...")
        sequence = make_synthetic_sequence(duration=args.duration)
    else:
        print(f"Loading {args.input}...")
        sequence = load_pose_recording(args.input)
    print(f"Loaded {sequence.n_frames} ticks")

    # Create output directory
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    result = replay_sequence(
        sequence,
        config=config,
        use_sample_flags=not args.ignore_sample_flags,
    )

    metrics = compute_metrics(
        result.raw,
        result.filtered,
        result.timestamps,
        config.evaluation,
    )

    print(f"\n{'─'*60}")
    print("Results")
    print(f"{'─'*60}")
    print(f"  Valid ticks: {metrics['valid_frames']}/{metrics['total_frames']}")
    print(f"  RMSE to zero-phase reference: {metrics['rmse_to_reference']:.4f}")
    print(f"  Jitter improvement: {metrics['jitter_improvement']:.1f}x")
    print(f"  Lag: {metrics['lag_seconds'] * 1000:.1f} ms")

    filtered_csv_path = output_dir / "filtered.csv"
    export_filtered_csv(filtered_csv_path, sequence, result.filtered)
    print(f"  Filtered poses saved to: {filtered_csv_path}")

    if args.plot:
        from .visualization import plot_adaptation, plot_replay

        print("\nGenerating plots...")
        plot_replay(result, output_dir / "poses.png")
        plot_adaptation(result, output_dir / "adaptation.png")

    print(f"\n{'='*50}")
    print("Replay complete!")
    print(f"Results saved to: {output_dir}")
    print(f"{'='*50}")


if __name__ == "__main__":
    main()
