"""Stencil pipeline orchestration.

AIDEV-NOTE: Stage order is fixed: edge detection -> threshold -> invert.
Every run starts from the untouched source pixels, never from a previous
result, so changing a parameter back restores the earlier output exactly.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from models import PixelBuffer, ProcessedStencil, StencilParameters

from .binarize import apply_threshold, invert
from .edges import detect_edges
from .utils import count_white_pixels

logger = logging.getLogger(__name__)


def process(
    source: PixelBuffer, parameters: StencilParameters | None = None
) -> PixelBuffer:
    """Turn a source image into a stencil.

    Args:
        source: Decoded RGBA pixels (not modified)
        parameters: Stencil settings, defaults if None; clamped before use

    Returns:
        New PixelBuffer of the same size with R, G, B all 0 or 255
    """
    return StencilProcessor(parameters).run(source).buffer


class StencilProcessor:
    """Runs the stencil stages for one parameter set."""

    def __init__(self, parameters: StencilParameters | None = None):
        self.parameters = (parameters or StencilParameters()).clamped()

    def detect_edges(self, buffer: PixelBuffer) -> PixelBuffer:
        return detect_edges(buffer, self.parameters.edge_strength)

    def apply_threshold(self, buffer: PixelBuffer) -> PixelBuffer:
        return apply_threshold(buffer, self.parameters.threshold)

    def invert(self, buffer: PixelBuffer) -> PixelBuffer:
        return invert(buffer, self.parameters.invert)

    def run(self, source: PixelBuffer, generation: int = 0) -> ProcessedStencil:
        """Execute the complete pipeline.

        Args:
            source: Decoded RGBA pixels (not modified)
            generation: Session generation to stamp on the result

        Returns:
            ProcessedStencil with the output buffer and statistics
        """
        params = self.parameters
        start = time.perf_counter()

        buffer = self.detect_edges(source)
        buffer = self.apply_threshold(buffer)
        buffer = self.invert(buffer)

        white = count_white_pixels(buffer)
        total = buffer.width * buffer.height
        logger.debug(
            "Stencil %dx%d (threshold=%d, edge_strength=%.2f, invert=%s): "
            "%d white / %d black in %.3fs",
            buffer.width,
            buffer.height,
            params.threshold,
            params.edge_strength,
            params.invert,
            white,
            total - white,
            time.perf_counter() - start,
        )

        return ProcessedStencil(
            buffer=buffer,
            parameters=params,
            edge_pass_applied=params.edge_strength > 0,
            white_pixel_count=white,
            black_pixel_count=total - white,
            generation=generation,
        )


@dataclass(frozen=True)
class PendingRun:
    """Snapshot of the inputs for one in-flight run."""

    generation: int
    source: PixelBuffer
    parameters: StencilParameters


class StencilSession:
    """Recomputes the stencil whenever the image or a setting changes.

    AIDEV-NOTE: Each change bumps ``generation``. A result is published only
    if it was started at the current generation; anything computed for a
    superseded image or parameter set is dropped, never mixed in.
    """

    def __init__(self, parameters: StencilParameters | None = None):
        self._source: PixelBuffer | None = None
        self._parameters = (parameters or StencilParameters()).clamped()
        self._generation = 0
        self._result: ProcessedStencil | None = None
        self._listeners: "list[Callable[[ProcessedStencil], None]]" = []

    @property
    def source(self) -> PixelBuffer | None:
        return self._source

    @property
    def parameters(self) -> StencilParameters:
        return self._parameters

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def result(self) -> ProcessedStencil | None:
        """Latest published stencil, or None before the first run."""
        return self._result

    def subscribe(self, callback: "Callable[[ProcessedStencil], None]") -> None:
        """Call ``callback`` with every published result."""
        self._listeners.append(callback)

    def load(self, source: PixelBuffer) -> ProcessedStencil:
        """Install a new source image and process it."""
        # Own a private copy so later changes by the caller can't leak in
        self._source = source.copy()
        self._result = None
        logger.debug("Loaded %dx%d source image", source.width, source.height)
        return self.refresh()

    def update(self, **changes: Any) -> ProcessedStencil | None:
        """Change one or more settings and reprocess.

        Returns:
            The new result, or None when no image is loaded yet
        """
        self._parameters = self._parameters.replace(**changes).clamped()
        if self._source is None:
            self._generation += 1
            return None
        return self.refresh()

    def begin_run(self) -> PendingRun:
        """Start a run and capture the inputs it will use.

        Raises:
            RuntimeError: If no source image has been loaded
        """
        if self._source is None:
            raise RuntimeError("No source image loaded")
        self._generation += 1
        return PendingRun(self._generation, self._source, self._parameters)

    def complete_run(self, pending: PendingRun, result: ProcessedStencil) -> bool:
        """Publish ``result`` unless a newer run has started since.

        Returns:
            True if the result was published, False if it was discarded
        """
        if pending.generation != self._generation:
            logger.debug(
                "Discarding stale stencil from generation %d (current %d)",
                pending.generation,
                self._generation,
            )
            return False

        self._result = result
        for callback in list(self._listeners):
            # A listener may start a newer run; stop handing out this one
            if pending.generation != self._generation:
                break
            callback(result)
        return True

    def refresh(self) -> ProcessedStencil:
        """Reprocess the current source with the current settings."""
        pending = self.begin_run()
        result = StencilProcessor(pending.parameters).run(
            pending.source, generation=pending.generation
        )
        self.complete_run(pending, result)
        return result
