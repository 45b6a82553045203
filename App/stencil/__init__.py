"""Image-to-stencil conversion pipeline.

AIDEV-NOTE: This package turns a decoded RGBA image into a black/white
stencil. Organized into modular components:
- processor: process(), StencilProcessor orchestrator and StencilSession
- edges: Sobel edge detection on the red channel
- binarize: brightness threshold and colour inversion
- utils: 8-bit clamping, brightness and pixel statistics
"""

from .binarize import apply_threshold, invert
from .edges import detect_edges, gradient_magnitude
from .processor import StencilProcessor, StencilSession, process

__all__ = [
    "StencilProcessor",
    "StencilSession",
    "apply_threshold",
    "detect_edges",
    "gradient_magnitude",
    "invert",
    "process",
]
