"""Texture-from-data — percentile-stretched 8-bit grayscale buffers."""

import logging
from collections.abc import Sequence

import numpy as np

from grismview.models import GrayscaleTexture, NormParams
from grismview.normalization import resolve_norm, sort_flat_array

logger = logging.getLogger(__name__)

# Every pixel maps here when vmax <= vmin
FLAT_STRETCH_VALUE = 0.0


def _resolve_bounds(
    data: np.ndarray,
    norm: NormParams,
    sorted_array: np.ndarray | None,
    exclude_zero: bool,
) -> tuple[float, float]:
    if norm.vmin is not None and norm.vmax is not None:
        return float(norm.vmin), float(norm.vmax)
    if sorted_array is None:
        sorted_array = sort_flat_array(data, exclude_zero)
    resolved = resolve_norm(norm, sorted_array, exclude_zero)
    return float(resolved.vmin), float(resolved.vmax)


def normalize_2d(
    data: np.ndarray | Sequence[Sequence[float]],
    norm: NormParams,
    sorted_array: np.ndarray | None = None,
    exclude_zero: bool = True,
) -> np.ndarray:
    """Stretch `data` into [0, 1] between vmin and vmax.

    Explicit vmin/vmax in `norm` take precedence; missing bounds come from the
    pmin/pmax percentiles of `sorted_array`, which is built on demand when not
    supplied. A flat stretch (vmax <= vmin) gives FLAT_STRETCH_VALUE everywhere
    and NaN pixels map to 0.
    """
    arr = np.asarray(data, dtype=np.float64)
    vmin, vmax = _resolve_bounds(arr, norm, sorted_array, exclude_zero)
    if not vmax > vmin:
        return np.full(arr.shape, FLAT_STRETCH_VALUE)
    normalized = (arr - vmin) / (vmax - vmin)
    return np.clip(np.nan_to_num(normalized, nan=0.0), 0.0, 1.0)


def scale_to_byte(normalized: np.ndarray) -> np.ndarray:
    """[0, 1] floats to uint8 grayscale, rounded."""
    return np.rint(np.clip(np.asarray(normalized) * 255.0, 0.0, 255.0)).astype(np.uint8)


def texture_from_data(
    data: np.ndarray | Sequence[Sequence[float]] | None,
    norm: NormParams,
    sorted_array: np.ndarray | None = None,
    exclude_zero: bool = True,
) -> GrayscaleTexture | None:
    """Build the display buffer for a 2D array.

    Args:
        data: 2D pixel values.
        norm: Percentile and/or explicit value bounds.
        sorted_array: Cached output of sort_flat_array for `data`, if any.
        exclude_zero: Ignore zeros when deriving bounds.

    Returns:
        GrayscaleTexture with the same (rows, columns) as `data`, or None when
        there is nothing to draw.
    """
    if data is None:
        return None
    arr = np.asarray(data, dtype=np.float64)
    if arr.ndim != 2 or arr.size == 0:
        return None
    vmin, vmax = _resolve_bounds(arr, norm, sorted_array, exclude_zero)
    pixels = scale_to_byte(normalize_2d(arr, NormParams(norm.pmin, norm.pmax, vmin, vmax)))
    return GrayscaleTexture(pixels=pixels, vmin=vmin, vmax=vmax)


class TextureSlot:
    """Owns the texture currently on display.

    Replacing the texture releases the previous one, and leaving the ``with``
    block releases whatever is held, error paths included.
    """

    def __init__(self):
        self._texture: GrayscaleTexture | None = None
        self.released = 0

    @property
    def texture(self) -> GrayscaleTexture | None:
        return self._texture

    def replace(self, texture: GrayscaleTexture | None) -> GrayscaleTexture | None:
        if texture is not self._texture:
            self.release()
            self._texture = texture
        return texture

    def release(self) -> None:
        if self._texture is not None:
            logger.debug("releasing %dx%d texture", *self._texture.shape)
            self._texture = None
            self.released += 1

    def __enter__(self) -> "TextureSlot":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
