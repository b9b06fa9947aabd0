"""Soft-knee deadzone for removing residual jitter."""

import numpy as np

from .config import NUM_MEASUREMENT_DOF


class DeadzoneFilter:
    """
    Per-axis soft deadzone around the previous output.

    For |delta| much smaller than dz_size the change is suppressed, for
    |delta| much larger it passes almost unchanged. The exponent sets the
    sharpness of the transition. An axis with dz_size == 0 passes through.
    """

    def __init__(self, exponent: float = 2.0, size: int = NUM_MEASUREMENT_DOF):
        self.exponent = exponent
        self.size = size
        self.reset()

    def reset(self) -> None:
        self.dz_size = np.zeros(self.size)
        self.last_output = np.zeros(self.size)

    def filter(self, value: np.ndarray) -> np.ndarray:
        """
        Apply the deadzone and remember the result.

        Args:
            value: Input vector (size,)

        Returns:
            Filtered vector (size,)
        """
        value = np.asarray(value, dtype=float)
        out = np.empty(self.size)

        for i in range(self.size):
            dz = self.dz_size[i]
            if dz > 0.0:
                delta = value[i] - self.last_output[i]
                with np.errstate(over="ignore"):
                    f = (abs(delta) / dz) ** self.exponent
                if np.isinf(f):
                    out[i] = value[i]
                else:
                    out[i] = self.last_output[i] + f / (f + 1.0) * delta
            else:
                out[i] = value[i]

        self.last_output[:] = out
        return out
