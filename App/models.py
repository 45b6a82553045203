"""Data models and constants for the Stencilify processor."""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Mapping, Sequence

import numpy as np

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)

# AIDEV-NOTE: Defaults match the editor sliders - keep in sync with the UI
DEFAULT_THRESHOLD = 128
DEFAULT_EDGE_STRENGTH = 1.0
DEFAULT_INVERT = False

THRESHOLD_MIN = 0
THRESHOLD_MAX = 255

CHANNELS = 4  # R, G, B, A
DEFAULT_EXPORT_NAME = "stencil.png"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


# --- Pixel Buffer ---


@dataclass(eq=False)
class PixelBuffer:
    """Fixed-size RGBA pixel grid.

    AIDEV-NOTE: ``data`` is a flat uint8 array, four channels per pixel,
    row-major. Length is always width * height * 4; buffers are never
    resized, a new one is created per source image.
    """

    width: int
    height: int
    data: np.ndarray = field(repr=False)

    def __post_init__(self):
        if int(self.width) != self.width or int(self.height) != self.height:
            raise ValueError(
                f"Buffer dimensions must be integers, got {self.width}x{self.height}"
            )
        self.width = int(self.width)
        self.height = int(self.height)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )

        data = np.asarray(self.data)
        if data.dtype != np.uint8:
            if data.size and (data.min() < 0 or data.max() > 255):
                raise ValueError("Channel values must be in the range 0-255")
            data = data.astype(np.uint8)
        data = data.reshape(-1)

        expected = self.width * self.height * CHANNELS
        if data.size != expected:
            raise ValueError(
                f"Buffer length {data.size} does not match "
                f"{self.width}x{self.height}x{CHANNELS} = {expected}"
            )
        self.data = data

    # Constructors

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        rgba: "tuple[int, int, int, int]" = (0, 0, 0, 255),
    ) -> "PixelBuffer":
        """Create a buffer filled with a single color."""
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[:, :] = rgba
        return cls(width, height, pixels)

    @classmethod
    def from_bytes(
        cls, width: int, height: int, data: "bytes | bytearray | Sequence[int]"
    ) -> "PixelBuffer":
        """Build a buffer from a flat RGBA byte sequence.

        Args:
            width: Image width in pixels
            height: Image height in pixels
            data: RGBA samples, length width * height * 4

        Raises:
            ValueError: If the length does not match the dimensions
        """
        if isinstance(data, (bytes, bytearray, memoryview)):
            array = np.frombuffer(bytes(data), dtype=np.uint8).copy()
        else:
            array = np.asarray(list(data), dtype=np.int64)
        return cls(width, height, array)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an (height, width, 4) array."""
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise ValueError(
                f"Expected an array of shape (height, width, 4), got {array.shape}"
            )
        height, width = array.shape[:2]
        return cls(width, height, array.copy())

    @classmethod
    def from_image(cls, image: "Image.Image") -> "PixelBuffer":
        """Wrap an already decoded Pillow image.

        AIDEV-NOTE: Always convert to RGBA for consistent processing.
        """
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        width, height = image.size
        return cls(width, height, np.frombuffer(image.tobytes(), dtype=np.uint8).copy())

    def to_image(self) -> "Image.Image":
        """Return the buffer as a Pillow RGBA image for display or export."""
        from PIL import Image

        return Image.fromarray(self.pixels.copy())

    # Access

    @property
    def pixels(self) -> np.ndarray:
        """(height, width, 4) view sharing memory with ``data``."""
        return self.data.reshape(self.height, self.width, CHANNELS)

    @property
    def size(self) -> "tuple[int, int]":
        return self.width, self.height

    def index(self, x: int, y: int) -> int:
        """Offset of the red channel of pixel (x, y) within ``data``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer"
            )
        return (y * self.width + x) * CHANNELS

    def get_pixel(self, x: int, y: int) -> "tuple[int, int, int, int]":
        i = self.index(x, y)
        r, g, b, a = self.data[i : i + CHANNELS]
        return int(r), int(g), int(b), int(a)

    def set_pixel(self, x: int, y: int, rgba: "Sequence[int]") -> None:
        i = self.index(x, y)
        self.data[i : i + CHANNELS] = rgba

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())

    def same_pixels(self, other: "PixelBuffer") -> bool:
        """True if ``other`` has the same dimensions and channel values."""
        return self.size == other.size and np.array_equal(self.data, other.data)


# --- Stencil Parameters ---


def _parse_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ValueError(f"{name} must be a finite number, got {value!r}")
    return number


def _parse_flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class StencilParameters:
    """Settings for a single stencil run.

    A new run is triggered whenever any value changes or a new image is
    loaded, so instances are immutable.
    """

    threshold: int = DEFAULT_THRESHOLD  # 0-255, brightness cutoff
    edge_strength: float = DEFAULT_EDGE_STRENGTH  # >= 0, typically 0-5
    invert: bool = DEFAULT_INVERT  # swap black and white after thresholding

    def clamped(self) -> "StencilParameters":
        """Return a copy with every value pulled into its valid range.

        Raises:
            ValueError: If a value is NaN
        """
        if math.isnan(self.edge_strength) or math.isnan(self.threshold):
            raise ValueError(
                f"Parameters must not be NaN, got threshold={self.threshold!r}, "
                f"edge_strength={self.edge_strength!r}"
            )
        threshold = int(round(min(max(self.threshold, THRESHOLD_MIN), THRESHOLD_MAX)))
        edge_strength = max(float(self.edge_strength), 0.0)
        if threshold != self.threshold or edge_strength != self.edge_strength:
            logger.info(
                "Clamped parameters: threshold %s -> %d, edge strength %s -> %.3f",
                self.threshold,
                threshold,
                self.edge_strength,
                edge_strength,
            )
        return StencilParameters(
            threshold=threshold,
            edge_strength=edge_strength,
            invert=bool(self.invert),
        )

    def replace(self, **changes: Any) -> "StencilParameters":
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, values: "Mapping[str, Any]") -> "StencilParameters":
        """Parse collaborator input (form fields, slider values, JSON).

        Args:
            values: Mapping with any of ``threshold``, ``edge_strength``
                (or ``edgeStrength``) and ``invert``

        Returns:
            Clamped StencilParameters; missing keys take defaults

        Raises:
            ValueError: If a value cannot be parsed
        """
        threshold = values.get("threshold", DEFAULT_THRESHOLD)
        if "edge_strength" in values:
            edge_strength = values["edge_strength"]
        else:
            edge_strength = values.get("edgeStrength", DEFAULT_EDGE_STRENGTH)
        invert = values.get("invert", DEFAULT_INVERT)

        params = cls(
            threshold=_parse_number("threshold", threshold),
            edge_strength=_parse_number("edge_strength", edge_strength),
            invert=_parse_flag("invert", invert),
        )
        return params.clamped()


# --- Processing Results ---


@dataclass
class ProcessedStencil:
    """Result of the stencil pipeline."""

    buffer: PixelBuffer
    parameters: StencilParameters

    # Whether the Sobel pass ran (edge strength > 0)
    edge_pass_applied: bool = False

    # Statistics
    white_pixel_count: int = 0
    black_pixel_count: int = 0

    # Session generation that produced this result (0 for one-off runs)
    generation: int = 0

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height
