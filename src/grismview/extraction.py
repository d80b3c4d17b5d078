"""Spectral aggregation — box extraction of 1D spectra from 2D grism data.

Everything here is a pure function of already-resident arrays, so any of it can
be handed to a worker thread or process unchanged.
"""

import logging
import math
from collections.abc import Sequence
from typing import Literal

import numpy as np

from grismview.models import (
    CollapseWindow,
    ExtractedSpectrum,
    GrismOffsets,
    RoiState,
    Spectrum1DPoint,
    SpectrumStats,
)
from grismview.wavelength import (
    get_2d_slice,
    get_wavelength_slice_indices,
    spatial_slice_indices,
)

logger = logging.getLogger(__name__)

CollapseAxis = Literal["row", "column"]


def _ordered_clamped(a: float, b: float, upper: float) -> tuple[float, float]:
    a = min(max(a, 0.0), upper)
    b = min(max(b, 0.0), upper)
    return (a, b) if a < b else (b, a)


def _finite_window(window: CollapseWindow) -> bool:
    return all(
        math.isfinite(v)
        for v in (window.wave_min, window.wave_max, window.spatial_min, window.spatial_max)
    )


def _on_pixel_grid(positions: np.ndarray, size: int) -> np.ndarray:
    """Mask of detector positions that hit a whole pixel inside [0, size)."""
    return (positions >= 0) & (positions < size) & (positions == np.floor(positions))


def extract_aperture_1d(
    flux: np.ndarray | None,
    error: np.ndarray | None,
    offsets: GrismOffsets | None,
    roi: RoiState,
    window: CollapseWindow,
) -> list[Spectrum1DPoint]:
    """Sum the spatial aperture of every wavelength column inside the ROI.

    The collapse window is given in ROI-local pixels: columns along the
    dispersion axis, rows across it. Both ranges are clamped to the ROI and put
    in order. ROI-local (col, row) maps to the detector as
    ``x = roi.x + col - dx``, ``y = roi.y + row - dy``. Pixels off the detector,
    pixels that fall between detector pixels (fractional offsets) and pixels
    whose flux or error is NaN are skipped.

    Flux is an unweighted sum over the aperture and errors add in quadrature.
    A column with no usable pixel is left out of the result rather than
    reported as zero.

    Args:
        flux: Detector flux, shape (height, width).
        error: Detector 1-sigma error, same shape as `flux`.
        offsets: Exposure offset between ROI and detector pixels.
        roi: Region of interest on the detector.
        window: Collapse window in ROI-local pixels.

    Returns:
        One Spectrum1DPoint per usable column, in column order, with the
        ROI-local column index as the wavelength coordinate. Empty when any
        input is missing, the ROI is degenerate or a window bound is not finite.
    """
    if flux is None or error is None or offsets is None:
        return []
    if roi.width <= 0 or roi.height <= 0:
        return []
    if not _finite_window(window):
        return []

    flux = np.asarray(flux)
    error = np.asarray(error)
    if flux.ndim != 2 or flux.shape != error.shape:
        logger.warning(
            "flux/error shape mismatch %s vs %s; nothing extracted", flux.shape, error.shape
        )
        return []
    height, width = flux.shape

    wave_lo, wave_hi = _ordered_clamped(window.wave_min, window.wave_max, roi.width)
    spatial_lo, spatial_hi = _ordered_clamped(window.spatial_min, window.spatial_max, roi.height)

    cols = np.arange(math.floor(wave_lo), math.ceil(wave_hi))
    rows = np.arange(math.floor(spatial_lo), math.ceil(spatial_hi))

    image_x = roi.x + cols - offsets.dx
    image_y = roi.y + rows - offsets.dy
    col_ok = _on_pixel_grid(image_x, width)
    row_ok = _on_pixel_grid(image_y, height)
    cols = cols[col_ok]
    image_x = image_x[col_ok].astype(np.intp)
    image_y = image_y[row_ok].astype(np.intp)
    if cols.size == 0 or image_y.size == 0:
        return []

    # (rows, cols) aperture block, accumulated in float64 whatever the input dtype
    block_flux = flux[np.ix_(image_y, image_x)].astype(np.float64)
    block_err = error[np.ix_(image_y, image_x)].astype(np.float64)
    valid = ~(np.isnan(block_flux) | np.isnan(block_err))

    count = valid.sum(axis=0)
    flux_sum = np.where(valid, block_flux, 0.0).sum(axis=0)
    err_sum_sq = np.where(valid, block_err * block_err, 0.0).sum(axis=0)
    err = np.sqrt(err_sum_sq)

    spectrum: list[Spectrum1DPoint] = []
    for col, n, f, e in zip(cols, count, flux_sum, err):
        if n == 0:
            continue
        f = float(f)
        e = float(e)
        spectrum.append(
            Spectrum1DPoint(
                wavelength=float(col),
                flux=f,
                error=e,
                flux_minus_err=f - e,
                flux_plus_err=f + e,
            )
        )
    return spectrum


def collapse_flux_and_error(
    flux_2d: np.ndarray, error_2d: np.ndarray, axis: CollapseAxis = "row"
) -> tuple[np.ndarray, np.ndarray]:
    """Collapse a 2D flux/error pair to 1D.

    ``axis="row"`` sums over rows (one value per column, the usual spectrum);
    ``axis="column"`` sums over columns (a spatial profile).
    """
    flux_2d = np.asarray(flux_2d, dtype=np.float64)
    error_2d = np.asarray(error_2d, dtype=np.float64)
    if flux_2d.size == 0:
        return np.empty(0), np.empty(0)
    ax = 0 if axis == "row" else 1
    flux_1d = flux_2d.sum(axis=ax)
    error_1d = np.sqrt((error_2d * error_2d).sum(axis=ax))
    return flux_1d, error_1d


def extract_1d_spectrum(
    extracted: ExtractedSpectrum, window: CollapseWindow, axis: CollapseAxis = "row"
) -> tuple[np.ndarray, np.ndarray, np.ndarray] | None:
    """Collapse the window of a server-side 2D extraction.

    Returns:
        (wavelength, flux, error), or None when the source is not covered or
        carries no error array, or when a window bound is not finite.
    """
    if not extracted.covered or extracted.error_2d is None:
        return None
    if not _finite_window(window):
        return None

    cols = get_wavelength_slice_indices(extracted.wavelength, window.wave_min, window.wave_max)
    rows = spatial_slice_indices(window, np.shape(extracted.spectrum_2d)[0])

    flux_2d = get_2d_slice(extracted.spectrum_2d, rows, cols)
    error_2d = get_2d_slice(extracted.error_2d, rows, cols)
    flux_1d, error_1d = collapse_flux_and_error(flux_2d, error_2d, axis)
    wavelength = np.asarray(extracted.wavelength, dtype=np.float64)[cols.start_idx : cols.end_idx]
    return wavelength, flux_1d, error_1d


def format_1d_spectrum(
    wavelength: Sequence[float] | np.ndarray,
    flux: Sequence[float] | np.ndarray,
    error: Sequence[float] | np.ndarray,
) -> list[Spectrum1DPoint]:
    """Zip parallel arrays into chart points; the shortest input wins."""
    n = min(len(wavelength), len(flux), len(error))
    points: list[Spectrum1DPoint] = []
    for i in range(n):
        f = float(flux[i])
        e = float(error[i])
        points.append(
            Spectrum1DPoint(
                wavelength=float(wavelength[i]),
                flux=f,
                error=e,
                flux_minus_err=f - e,
                flux_plus_err=f + e,
            )
        )
    return points


def extract_formatted_1d_spectrum(
    extracted: ExtractedSpectrum, window: CollapseWindow, axis: CollapseAxis = "row"
) -> list[Spectrum1DPoint] | None:
    result = extract_1d_spectrum(extracted, window, axis)
    if result is None:
        return None
    return format_1d_spectrum(*result)


def compute_spectrum_stats(spectrum: Sequence[Spectrum1DPoint]) -> SpectrumStats:
    """Axis extents for a 1D chart. An empty spectrum gets unit ranges."""
    if not spectrum:
        return SpectrumStats(wavelengths=(), wave_min=0.0, wave_max=1.0, flux_min=0.0, flux_max=1.0)
    wavelengths = tuple(p.wavelength for p in spectrum)
    return SpectrumStats(
        wavelengths=wavelengths,
        wave_min=min(wavelengths),
        wave_max=max(wavelengths),
        flux_min=min(p.flux_minus_err for p in spectrum),
        flux_max=max(p.flux_plus_err for p in spectrum),
    )
