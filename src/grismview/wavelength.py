"""Wavelength axis lookups — binary searches over a monotonic wavelength array."""

import math
from bisect import bisect_left
from collections.abc import Sequence

import numpy as np

from grismview.models import CollapseWindow, NearestWavelength, SliceIndices


def get_wavelength_slice_indices(
    wavelength: Sequence[float] | np.ndarray, wave_min: float, wave_max: float
) -> SliceIndices:
    """Half-open column range [start_idx, end_idx) covering wave_min..wave_max.

    Bounds may be passed in either order. Both ends are inclusive in wavelength,
    so ``[1, 2, 3, 4, 5]`` with (2, 4) gives (1, 4). Results are clamped to
    [0, len(wavelength)]; an empty array gives (0, 0).
    """
    waves = np.asarray(wavelength, dtype=np.float64)
    n = waves.size
    if n == 0:
        return SliceIndices(start_idx=0, end_idx=0)
    low, high = (wave_min, wave_max) if wave_min <= wave_max else (wave_max, wave_min)
    start = int(np.searchsorted(waves, low, side="left"))
    end = int(np.searchsorted(waves, high, side="right"))
    start = max(0, min(n, start))
    end = max(start, min(n, end))
    return SliceIndices(start_idx=start, end_idx=end)


def find_nearest_wavelength_index(
    wavelength: Sequence[float] | np.ndarray, target: float
) -> NearestWavelength | None:
    """Index of the sample closest to `target`; ties go to the lower index.

    Returns None for an empty array.
    """
    n = len(wavelength)
    if n == 0:
        return None

    idx = bisect_left(wavelength, target)
    if idx >= n:
        idx = n - 1
    if idx > 0 and abs(wavelength[idx - 1] - target) <= abs(wavelength[idx] - target):
        idx -= 1
    return NearestWavelength(index=idx, wavelength=float(wavelength[idx]))


def get_2d_slice(data: np.ndarray, rows: SliceIndices, cols: SliceIndices) -> np.ndarray:
    """Sub-array ``data[rows, cols]`` with half-open index ranges."""
    return np.asarray(data)[rows.start_idx : rows.end_idx, cols.start_idx : cols.end_idx]


def spatial_slice_indices(window: CollapseWindow, height: int) -> SliceIndices:
    """Row range of a collapse window, clamped to the image rows, upper pixel inclusive.

    A non-finite bound gives the empty range (0, 0).
    """
    finite = math.isfinite(window.spatial_min) and math.isfinite(window.spatial_max)
    if height <= 0 or not finite:
        return SliceIndices(start_idx=0, end_idx=0)
    low = min(window.spatial_min, window.spatial_max)
    high = max(window.spatial_min, window.spatial_max)
    start = math.floor(min(max(low, 0), height - 1))
    # The pixel holding the upper bound is included
    end = math.ceil(min(max(high, 0), height - 1)) + 1
    return SliceIndices(start_idx=start, end_idx=end)


def get_collapsed_2d_slice(
    data: np.ndarray, wavelength: Sequence[float] | np.ndarray, window: CollapseWindow
) -> np.ndarray:
    """Cut the collapse window out of a 2D spectrum.

    Raises:
        ValueError: The data width does not match the wavelength length.
    """
    arr = np.asarray(data)
    width = arr.shape[1] if arr.ndim == 2 else 0
    if width != len(wavelength):
        raise ValueError(
            f"Data width ({width}) does not match wavelength length ({len(wavelength)})"
        )
    cols = get_wavelength_slice_indices(wavelength, window.wave_min, window.wave_max)
    rows = spatial_slice_indices(window, arr.shape[0])
    return get_2d_slice(arr, rows, cols)
