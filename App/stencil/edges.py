"""Sobel edge detection over the red channel.

AIDEV-NOTE: Only the red channel is sampled and the result is written to
R, G and B alike. Colour images therefore get edge detection on red alone;
this matches the reference output and must not be replaced with a
luminance-weighted convolution.
"""

import logging
import time

import numpy as np

from models import PixelBuffer

from .utils import clamp_to_channel

logger = logging.getLogger(__name__)

SOBEL_X = np.array(
    [
        [-1, 0, 1],
        [-2, 0, 2],
        [-1, 0, 1],
    ],
    dtype=np.float64,
)

SOBEL_Y = np.array(
    [
        [-1, -2, -1],
        [0, 0, 0],
        [1, 2, 1],
    ],
    dtype=np.float64,
)


def _correlate_interior(plane: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Apply a 3x3 kernel at every interior position of ``plane``.

    Returns an array of shape (height - 2, width - 2). The kernel is never
    evaluated outside the plane.
    """
    height, width = plane.shape
    out = np.zeros((height - 2, width - 2), dtype=np.float64)
    for dy in range(3):
        for dx in range(3):
            weight = kernel[dy, dx]
            if weight:
                out += weight * plane[dy : dy + height - 2, dx : dx + width - 2]
    return out


def gradient_magnitude(red: np.ndarray) -> np.ndarray:
    """Raw Sobel gradient magnitude for the interior of a channel plane.

    Args:
        red: (height, width) channel samples

    Returns:
        (height - 2, width - 2) float array of sqrt(gx^2 + gy^2); empty
        when either dimension is below 3
    """
    plane = np.asarray(red, dtype=np.float64)
    height, width = plane.shape
    if height < 3 or width < 3:
        return np.zeros((max(height - 2, 0), max(width - 2, 0)), dtype=np.float64)

    gx = _correlate_interior(plane, SOBEL_X)
    gy = _correlate_interior(plane, SOBEL_Y)
    return np.sqrt(gx * gx + gy * gy)


def detect_edges(buffer: PixelBuffer, edge_strength: float) -> PixelBuffer:
    """Replace interior pixels with their scaled edge magnitude.

    Args:
        buffer: Source pixels (not modified)
        edge_strength: Magnitude multiplier; 0 skips the stage

    Returns:
        New PixelBuffer. The 1-pixel border keeps its original values and
        alpha is never touched.
    """
    output = buffer.copy()
    if edge_strength <= 0:
        return output

    width, height = buffer.size
    if width < 3 or height < 3:
        logger.debug("Image %dx%d has no interior, skipping edge pass", width, height)
        return output

    start = time.perf_counter()

    # Snapshot of the red channel, read before anything is written
    red = buffer.pixels[:, :, 0].astype(np.float64)
    # Flat regions at infinite strength give 0 * inf = NaN, stored as 0
    with np.errstate(invalid="ignore"):
        scaled = gradient_magnitude(red) * edge_strength
    gray = clamp_to_channel(scaled)

    interior = output.pixels[1:-1, 1:-1]
    interior[:, :, 0] = gray
    interior[:, :, 1] = gray
    interior[:, :, 2] = gray

    logger.debug(
        "Edge pass on %dx%d at strength %.2f took %.3fs",
        width,
        height,
        edge_strength,
        time.perf_counter() - start,
    )
    return output
