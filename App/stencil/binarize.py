"""Thresholding and inversion stages.

AIDEV-NOTE: Both stages work on every pixel, border included, and leave
alpha alone. The threshold test is strict: brightness equal to the threshold
maps to black.
"""

import numpy as np

from models import PixelBuffer

from .utils import BLACK, WHITE, channel_sum


def apply_threshold(buffer: PixelBuffer, threshold: int) -> PixelBuffer:
    """Binarize a buffer on its unweighted RGB average.

    Args:
        buffer: Source pixels (not modified)
        threshold: Brightness cutoff, 0-255

    Returns:
        New PixelBuffer with R = G = B = 255 where (R + G + B) / 3 > threshold,
        otherwise 0

    AIDEV-NOTE: Compared as R + G + B > 3 * threshold, which gives exactly
    the same answer as real division without float rounding at the boundary.
    """
    output = buffer.copy()
    pixels = output.pixels
    binary = np.where(channel_sum(buffer) > 3 * threshold, WHITE, BLACK).astype(np.uint8)
    pixels[:, :, 0] = binary
    pixels[:, :, 1] = binary
    pixels[:, :, 2] = binary
    return output


def invert(buffer: PixelBuffer, enabled: bool = True) -> PixelBuffer:
    """Flip R, G and B to 255 - v when ``enabled``; otherwise copy."""
    output = buffer.copy()
    if enabled:
        rgb = output.pixels[:, :, :3]
        rgb[...] = WHITE - rgb
    return output
