"""
Adaptive Kalman Head-Pose Filtering

This module implements real-time smoothing of a 6-DOF head pose
(x, y, z, yaw, pitch, roll) for driving a game or simulator viewpoint.

Key features:
- 12-state constant-velocity Kalman filter (pose + velocity)
- Innovation-based adaptive process noise for low lag during motion
- Variance-sized soft deadzone that vanishes once the estimate converges
- Injectable clock and offline replay for deterministic evaluation
"""
