"""Percentile stretch — sorted-array statistics behind the vmin/vmax sliders."""

import logging
import math
from collections.abc import Hashable, Sequence
from dataclasses import replace
from typing import overload

import numpy as np

from grismview.models import NormParams

logger = logging.getLogger(__name__)

# Sliders never let pmin and pmax get closer than this (percent)
MIN_PERCENTILE_GAP = 5.0
# Returned for every requested percentile when nothing survives exclusion
EMPTY_PERCENTILE_VALUE = 0.0


def sort_flat_array(data: np.ndarray | Sequence[Sequence[float]], exclude_zero: bool = True) -> np.ndarray:
    """Flatten, drop masked pixels, and sort ascending.

    NaN and infinite values are always dropped; exact zeros are dropped when
    `exclude_zero` is set (zero marks masked detector pixels).

    Args:
        data: 2D array (or nested lists) of pixel values.
        exclude_zero: Whether to drop values equal to 0.

    Returns:
        1D float64 array, sorted ascending. Never aliases `data`.
    """
    flat = np.asarray(data, dtype=np.float64).ravel()
    keep = np.isfinite(flat)
    if exclude_zero:
        keep &= flat != 0
    return np.sort(flat[keep])


def _exclude_zero(sorted_arr: np.ndarray, exclude_zero: bool) -> np.ndarray:
    arr = np.asarray(sorted_arr, dtype=np.float64)
    if exclude_zero:
        # Sorted input: zeros form one contiguous run
        lo = np.searchsorted(arr, 0.0, side="left")
        hi = np.searchsorted(arr, 0.0, side="right")
        if hi > lo:
            arr = np.concatenate((arr[:lo], arr[hi:]))
    return arr


def _interpolate(base: np.ndarray, p: float) -> float:
    n = base.size
    p = min(100.0, max(0.0, p))
    rank = p / 100.0 * (n - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(base[lower])
    weight = rank - lower
    return float(base[lower] * (1 - weight) + base[upper] * weight)


@overload
def percentile_from_sorted_array(
    sorted_arr: np.ndarray | Sequence[float], p: float, exclude_zero: bool = True
) -> float: ...


@overload
def percentile_from_sorted_array(
    sorted_arr: np.ndarray | Sequence[float], p: Sequence[float], exclude_zero: bool = True
) -> list[float]: ...


def percentile_from_sorted_array(sorted_arr, p, exclude_zero=True):
    """Value at percentile `p` by linear interpolation between order statistics.

    The rank is ``p / 100 * (n - 1)``, matching NumPy's default "linear" method.
    Percentiles outside [0, 100] are clamped.

    Args:
        sorted_arr: Ascending values (see sort_flat_array).
        p: One percentile or a sequence of them.
        exclude_zero: Ignore exact zeros in `sorted_arr`.

    Returns:
        A float for a scalar `p`, a list of floats for a sequence. When no values
        remain, every result is EMPTY_PERCENTILE_VALUE (0.0).
    """
    scalar = not isinstance(p, (Sequence, np.ndarray))
    ps = [p] if scalar else list(p)
    base = _exclude_zero(sorted_arr, exclude_zero)
    if base.size == 0:
        results = [EMPTY_PERCENTILE_VALUE for _ in ps]
    else:
        results = [_interpolate(base, float(q)) for q in ps]
    return results[0] if scalar else results


def find_percentile_in_sorted_array(
    sorted_arr: np.ndarray | Sequence[float], value: float, exclude_zero: bool = True
) -> float | None:
    """Inverse of percentile_from_sorted_array: the percentile rank of `value`.

    Returns None when nothing remains after exclusion, 0 at or below the minimum
    and 100 above the maximum.
    """
    base = _exclude_zero(sorted_arr, exclude_zero)
    n = base.size
    if n == 0:
        return None
    if n == 1:
        return 0.0 if value <= base[0] else 100.0

    idx = int(np.searchsorted(base, value, side="left"))
    if idx == 0:
        return 0.0
    if idx >= n:
        return 100.0

    lower_value = float(base[idx - 1])
    upper_value = float(base[idx])
    if upper_value == lower_value:
        return (idx - 1) / (n - 1) * 100.0
    weight = (value - lower_value) / (upper_value - lower_value)
    return (idx - 1 + weight) / (n - 1) * 100.0


def adjust_pmin(
    norm: NormParams, new_pmin: float, sorted_arr: np.ndarray | None, exclude_zero: bool = True
) -> NormParams:
    """Move the lower slider, keeping MIN_PERCENTILE_GAP below pmax.

    vmin is recomputed from the cached sorted array, or cleared when there is none.
    """
    pmin = min(max(new_pmin, 0.0), norm.pmax - MIN_PERCENTILE_GAP)
    vmin = None
    if sorted_arr is not None:
        vmin = percentile_from_sorted_array(sorted_arr, pmin, exclude_zero)
    return replace(norm, pmin=pmin, vmin=vmin)


def adjust_pmax(
    norm: NormParams, new_pmax: float, sorted_arr: np.ndarray | None, exclude_zero: bool = True
) -> NormParams:
    """Move the upper slider, keeping MIN_PERCENTILE_GAP above pmin."""
    pmax = max(min(new_pmax, 100.0), norm.pmin + MIN_PERCENTILE_GAP)
    vmax = None
    if sorted_arr is not None:
        vmax = percentile_from_sorted_array(sorted_arr, pmax, exclude_zero)
    return replace(norm, pmax=pmax, vmax=vmax)


def resolve_norm(
    norm: NormParams, sorted_arr: np.ndarray, exclude_zero: bool = True
) -> NormParams:
    """Fill whichever of vmin/vmax is missing from the percentiles."""
    vmin = norm.vmin
    vmax = norm.vmax
    if vmin is None:
        vmin = percentile_from_sorted_array(sorted_arr, norm.pmin, exclude_zero)
    if vmax is None:
        vmax = percentile_from_sorted_array(sorted_arr, norm.pmax, exclude_zero)
    return replace(norm, vmin=vmin, vmax=vmax)


class SortedArrayCache:
    """Holds the sorted copy of one source array.

    The cache is keyed by the identity of the source plus a caller-supplied
    version token; a new token (or a different array) forces a re-sort, nothing
    else does. The source is held so its identity cannot be recycled.
    Only one sorted array is kept at a time.
    """

    def __init__(self, exclude_zero: bool = True):
        self.exclude_zero = exclude_zero
        self._source: np.ndarray | None = None
        self._version: Hashable = None
        self._sorted: np.ndarray | None = None

    @property
    def sorted_array(self) -> np.ndarray | None:
        return self._sorted

    def get(self, source: np.ndarray, version: Hashable = 0) -> np.ndarray:
        """Sorted copy of `source`, re-sorting only when the key changes."""
        stale = (
            self._sorted is None or source is not self._source or version != self._version
        )
        if stale:
            logger.debug("re-sorting %d values (version=%r)", np.size(source), version)
            self._sorted = sort_flat_array(source, self.exclude_zero)
            self._source = source
            self._version = version
        return self._sorted

    def invalidate(self) -> None:
        self._source = None
        self._version = None
        self._sorted = None
