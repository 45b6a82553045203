"""Channel helpers shared by the pipeline stages.

AIDEV-NOTE: This module contains the small numeric helpers used throughout
the stencil pipeline: 8-bit clamping, brightness and pixel counting.
"""

import numpy as np

from models import PixelBuffer

BLACK = 0
WHITE = 255


def clamp_to_channel(values: np.ndarray) -> np.ndarray:
    """Convert float samples to 8-bit channel values.

    Args:
        values: Array of real-valued samples

    Returns:
        uint8 array, rounded half-to-even and clamped to [0, 255]

    AIDEV-NOTE: Mirrors clamped 8-bit canvas storage, which rounds to the
    nearest integer with ties to even and stores NaN as 0.
    """
    values = np.nan_to_num(values, nan=BLACK, posinf=WHITE, neginf=BLACK)
    return np.clip(np.rint(values), BLACK, WHITE).astype(np.uint8)


def channel_sum(buffer: PixelBuffer) -> np.ndarray:
    """Per-pixel R + G + B as an (height, width) int array."""
    return buffer.pixels[:, :, :3].astype(np.int32).sum(axis=2)


def brightness(buffer: PixelBuffer) -> np.ndarray:
    """Unweighted RGB average (0-255) per pixel."""
    return channel_sum(buffer) / 3.0


def count_white_pixels(buffer: PixelBuffer) -> int:
    """Count pixels whose R, G and B are all 255."""
    rgb = buffer.pixels[:, :, :3]
    return int(np.all(rgb == WHITE, axis=2).sum())


def is_binary(buffer: PixelBuffer) -> bool:
    """True if every R, G, B sample is exactly 0 or 255."""
    rgb = buffer.pixels[:, :, :3]
    return bool(np.all((rgb == BLACK) | (rgb == WHITE)))
