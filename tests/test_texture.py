"""Tests for percentile-stretched grayscale textures."""

import math
import unittest

import numpy as np

from grismview.models import NormParams
from grismview.normalization import sort_flat_array
from grismview.texture import (
    FLAT_STRETCH_VALUE,
    TextureSlot,
    normalize_2d,
    scale_to_byte,
    texture_from_data,
)


class TestNormalize(unittest.TestCase):
    def test_explicit_bounds(self) -> None:
        texture = texture_from_data([[0.0, 5.0, 10.0]], NormParams(vmin=0.0, vmax=10.0))
        self.assertEqual(texture.pixels.tolist(), [[0, 128, 255]])
        self.assertEqual(texture.pixels.dtype, np.uint8)
        self.assertEqual((texture.vmin, texture.vmax), (0.0, 10.0))

    def test_clipped_outside_bounds(self) -> None:
        out = normalize_2d([[-5.0, 20.0]], NormParams(vmin=0.0, vmax=10.0))
        self.assertEqual(out.tolist(), [[0.0, 1.0]])

    def test_flat_stretch(self) -> None:
        out = normalize_2d([[3.0, 4.0]], NormParams(vmin=5.0, vmax=5.0))
        self.assertTrue(np.all(out == FLAT_STRETCH_VALUE))
        texture = texture_from_data([[2.0, 2.0], [2.0, 2.0]], NormParams())
        self.assertEqual(texture.pixels.tolist(), [[0, 0], [0, 0]])

    def test_nan_maps_to_zero(self) -> None:
        texture = texture_from_data([[math.nan, 10.0]], NormParams(vmin=0.0, vmax=10.0))
        self.assertEqual(texture.pixels.tolist(), [[0, 255]])

    def test_scale_to_byte_rounds(self) -> None:
        self.assertEqual(scale_to_byte(np.array([0.0, 0.5, 1.0, 1.5])).tolist(), [0, 128, 255, 255])


class TestTextureFromData(unittest.TestCase):
    def test_percentile_bounds(self) -> None:
        data = np.arange(1.0, 102.0).reshape(1, 101)
        texture = texture_from_data(data, NormParams(pmin=0, pmax=100))
        self.assertEqual((texture.vmin, texture.vmax), (1.0, 101.0))
        self.assertEqual(texture.shape, (1, 101))
        self.assertEqual(int(texture.pixels[0, 0]), 0)
        self.assertEqual(int(texture.pixels[0, -1]), 255)

    def test_zeros_ignored_for_bounds(self) -> None:
        texture = texture_from_data([[0.0, 2.0, 4.0]], NormParams(pmin=0, pmax=100))
        self.assertEqual((texture.vmin, texture.vmax), (2.0, 4.0))
        texture = texture_from_data(
            [[0.0, 2.0, 4.0]], NormParams(pmin=0, pmax=100), exclude_zero=False
        )
        self.assertEqual(texture.vmin, 0.0)

    def test_uses_supplied_sorted_array(self) -> None:
        data = np.array([[1.0, 2.0], [3.0, 4.0]])
        cached = sort_flat_array(np.array([[0.5, 8.0]]))
        texture = texture_from_data(data, NormParams(pmin=0, pmax=100), sorted_array=cached)
        self.assertEqual((texture.vmin, texture.vmax), (0.5, 8.0))

    def test_one_explicit_bound(self) -> None:
        texture = texture_from_data([[1.0, 2.0, 3.0]], NormParams(pmin=0, pmax=100, vmin=0.0))
        self.assertEqual((texture.vmin, texture.vmax), (0.0, 3.0))

    def test_nothing_to_draw(self) -> None:
        self.assertIsNone(texture_from_data(None, NormParams()))
        self.assertIsNone(texture_from_data(np.empty((0, 4)), NormParams()))
        self.assertIsNone(texture_from_data(np.ones(4), NormParams()))

    def test_rgba(self) -> None:
        texture = texture_from_data([[0.0, 10.0]], NormParams(vmin=0.0, vmax=10.0))
        rgba = texture.rgba()
        self.assertEqual(rgba.shape, (1, 2, 4))
        self.assertEqual(rgba[0, 1].tolist(), [255, 255, 255, 255])
        self.assertEqual(rgba[0, 0].tolist(), [0, 0, 0, 255])


class TestTextureSlot(unittest.TestCase):
    def setUp(self) -> None:
        self.a = texture_from_data([[0.0, 1.0]], NormParams(vmin=0.0, vmax=1.0))
        self.b = texture_from_data([[1.0, 0.0]], NormParams(vmin=0.0, vmax=1.0))

    def test_replace_releases_previous(self) -> None:
        slot = TextureSlot()
        slot.replace(self.a)
        self.assertEqual(slot.released, 0)
        slot.replace(self.a)
        self.assertEqual(slot.released, 0)
        slot.replace(self.b)
        self.assertEqual(slot.released, 1)
        self.assertIs(slot.texture, self.b)

    def test_released_on_error(self) -> None:
        slot = TextureSlot()
        with self.assertRaises(RuntimeError):
            with slot:
                slot.replace(self.a)
                raise RuntimeError("draw failed")
        self.assertIsNone(slot.texture)
        self.assertEqual(slot.released, 1)


if __name__ == "__main__":
    unittest.main()
