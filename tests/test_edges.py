import numpy as np
import pytest

from models import PixelBuffer
from stencil.edges import detect_edges, gradient_magnitude


def _gray_buffer(plane, alpha=255):
    """Build an RGBA buffer whose R, G and B all equal ``plane``."""
    plane = np.asarray(plane, dtype=np.uint8)
    pixels = np.empty(plane.shape + (4,), dtype=np.uint8)
    pixels[:, :, 0] = plane
    pixels[:, :, 1] = plane
    pixels[:, :, 2] = plane
    pixels[:, :, 3] = alpha
    return PixelBuffer.from_array(pixels)


def _random_buffer(width, height, seed=0):
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    return PixelBuffer.from_array(pixels)


def test_zero_strength_is_identity():
    source = _random_buffer(6, 5)
    result = detect_edges(source, 0)
    assert result.same_pixels(source)
    assert result is not source


@pytest.mark.parametrize("strength", [0.5, 1.0, 5.0])
def test_border_is_left_unmodified(strength):
    source = _random_buffer(7, 5, seed=3)
    result = detect_edges(source, strength)

    np.testing.assert_array_equal(result.pixels[0], source.pixels[0])
    np.testing.assert_array_equal(result.pixels[-1], source.pixels[-1])
    np.testing.assert_array_equal(result.pixels[:, 0], source.pixels[:, 0])
    np.testing.assert_array_equal(result.pixels[:, -1], source.pixels[:, -1])


def test_alpha_is_never_touched():
    source = _random_buffer(5, 5, seed=7)
    result = detect_edges(source, 2.0)
    np.testing.assert_array_equal(result.pixels[:, :, 3], source.pixels[:, :, 3])


def test_source_buffer_is_not_mutated():
    source = _random_buffer(5, 4, seed=11)
    before = source.data.copy()
    detect_edges(source, 1.0)
    np.testing.assert_array_equal(source.data, before)


def test_uniform_image_has_zero_interior_gradient():
    source = PixelBuffer.blank(6, 6, (100, 100, 100, 255))
    result = detect_edges(source, 3.0)

    interior = result.pixels[1:-1, 1:-1, :3]
    assert np.all(interior == 0)
    assert np.all(gradient_magnitude(source.pixels[:, :, 0]) == 0)


def test_diagonal_edge_produces_clamped_nonzero_magnitude():
    plane = [
        [0, 0, 255],
        [0, 255, 255],
        [255, 255, 255],
    ]
    source = _gray_buffer(plane)

    magnitude = gradient_magnitude(source.pixels[:, :, 0])
    assert magnitude.shape == (1, 1)
    assert magnitude[0, 0] == pytest.approx(765 * np.sqrt(2))

    result = detect_edges(source, 1.0)
    r, g, b, a = result.get_pixel(1, 1)
    assert 0 < r <= 255
    assert r == g == b == 255
    assert a == 255


def test_magnitude_is_scaled_by_strength():
    plane = [
        [0, 10, 10],
        [0, 10, 10],
        [0, 10, 10],
    ]
    source = _gray_buffer(plane)

    # gx = 10 + 20 + 10, gy = 0
    assert detect_edges(source, 1.0).get_pixel(1, 1)[:3] == (40, 40, 40)
    assert detect_edges(source, 0.5).get_pixel(1, 1)[:3] == (20, 20, 20)


def test_magnitude_rounds_half_to_even():
    plane = [
        [0, 10, 10],
        [0, 10, 10],
        [0, 10, 10],
    ]
    source = _gray_buffer(plane)
    # 40 * 0.0625 = 2.5
    assert detect_edges(source, 0.0625).get_pixel(1, 1)[0] == 2


def test_only_the_red_channel_is_sampled():
    pixels = np.zeros((3, 3, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    # Strong edge in green and blue, flat red
    pixels[:, 2, 1] = 255
    pixels[:, 2, 2] = 255
    source = PixelBuffer.from_array(pixels)

    assert detect_edges(source, 1.0).get_pixel(1, 1) == (0, 0, 0, 255)


@pytest.mark.parametrize("width, height", [(1, 1), (2, 5), (5, 2), (2, 2)])
def test_images_without_interior_are_a_no_op(width, height):
    source = _random_buffer(width, height, seed=5)
    result = detect_edges(source, 2.0)
    assert result.same_pixels(source)
    assert gradient_magnitude(source.pixels[:, :, 0]).size == 0
