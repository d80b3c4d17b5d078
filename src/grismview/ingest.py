"""Ingest boundary — validate fetched payloads before they reach the numeric core.

The fetching layer hands over raw buffers and decoded JSON; this module turns
them into model objects and is the only place that raises on bad data.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

import numpy as np

from grismview.models import (
    ExtractedSpectrum,
    Footprint,
    GrismFrame,
    GrismOffsets,
    RaDec,
)

logger = logging.getLogger(__name__)


class GrismDataError(ValueError):
    """Fetched data does not match its declared shape or schema."""


def _fail(message: str) -> GrismDataError:
    logger.error(message)
    return GrismDataError(message)


def frame_from_buffers(
    flux_buffer: bytes,
    error_buffer: bytes,
    width: int,
    height: int,
    dtype: str = "<f2",
) -> GrismFrame:
    """Decode raw detector buffers (little-endian float16 by default).

    Raises:
        GrismDataError: Non-positive dimensions or a buffer whose element count
            is not width * height.
    """
    if width <= 0 or height <= 0:
        raise _fail(f"invalid frame size {width}x{height}")
    expected = width * height
    arrays = []
    for label, buf in (("flux", flux_buffer), ("error", error_buffer)):
        itemsize = np.dtype(dtype).itemsize
        if len(buf) % itemsize:
            raise _fail(f"{label} buffer of {len(buf)} bytes is not a whole number of {dtype}")
        arr = np.frombuffer(buf, dtype=dtype)
        if arr.size != expected:
            raise _fail(f"{label} buffer holds {arr.size} values, expected {width}x{height}={expected}")
        arrays.append(arr.reshape(height, width))
    return GrismFrame(flux=arrays[0], error=arrays[1])


def frame_from_arrays(flux: Any, error: Any) -> GrismFrame:
    """Wrap already-decoded 2D arrays, checking they agree."""
    flux_arr = np.asarray(flux)
    error_arr = np.asarray(error)
    if flux_arr.ndim != 2:
        raise _fail(f"flux must be 2D, got shape {flux_arr.shape}")
    if flux_arr.shape != error_arr.shape:
        raise _fail(f"flux shape {flux_arr.shape} does not match error shape {error_arr.shape}")
    return GrismFrame(flux=flux_arr, error=error_arr)


def offsets_from_payload(payload: Mapping[str, Any] | None) -> GrismOffsets | None:
    """``{"dx": .., "dy": ..}`` to GrismOffsets; None stays None (not fetched yet).

    Offsets keep their fractional part; non-finite values are rejected.
    """
    if payload is None:
        return None
    try:
        dx = float(payload["dx"])
        dy = float(payload["dy"])
    except (KeyError, TypeError, ValueError) as exc:
        raise _fail(f"bad offsets payload {payload!r}: {exc}") from exc
    if not (math.isfinite(dx) and math.isfinite(dy)):
        raise _fail(f"offsets must be finite, got dx={dx}, dy={dy}")
    return GrismOffsets(dx=dx, dy=dy)


def spectrum_from_payload(payload: Mapping[str, Any]) -> ExtractedSpectrum:
    """Decode an extraction response.

    An uncovered response is returned as-is (covered=False, empty arrays) so
    callers can render nothing without treating it as an error.
    """
    covered = bool(payload.get("covered", False))
    if not covered:
        return ExtractedSpectrum(
            wavelength=np.empty(0), spectrum_2d=np.empty((0, 0)), covered=False
        )

    try:
        wavelength = np.asarray(payload["wavelength"], dtype=np.float64)
        spectrum_2d = np.asarray(payload["spectrum_2d"], dtype=np.float64)
    except KeyError as exc:
        raise _fail(f"spectrum payload missing {exc}") from exc
    except ValueError as exc:
        raise _fail(f"spectrum payload is not rectangular: {exc}") from exc

    if spectrum_2d.ndim != 2:
        raise _fail(f"spectrum_2d must be 2D, got shape {spectrum_2d.shape}")
    if spectrum_2d.shape[1] != wavelength.size:
        raise _fail(
            f"spectrum_2d width {spectrum_2d.shape[1]} does not match "
            f"{wavelength.size} wavelengths"
        )
    if wavelength.size > 1 and np.any(np.diff(wavelength) < 0):
        raise _fail("wavelength array is not ascending")

    error_2d = None
    if payload.get("error_2d") is not None:
        try:
            error_2d = np.asarray(payload["error_2d"], dtype=np.float64)
        except ValueError as exc:
            raise _fail(f"error_2d is not rectangular: {exc}") from exc
        if error_2d.shape != spectrum_2d.shape:
            raise _fail(
                f"error_2d shape {error_2d.shape} does not match spectrum_2d {spectrum_2d.shape}"
            )
    return ExtractedSpectrum(
        wavelength=wavelength, spectrum_2d=spectrum_2d, covered=True, error_2d=error_2d
    )


def _ra_dec(pair: Any, where: str) -> RaDec:
    try:
        ra, dec = pair
        return RaDec(ra=float(ra), dec=float(dec))
    except (TypeError, ValueError) as exc:
        raise _fail(f"{where}: expected [ra, dec], got {pair!r}") from exc


def footprints_from_payload(items: Iterable[Mapping[str, Any]]) -> tuple[Footprint, ...]:
    """Decode ``[{id, footprint: {vertices, center}, meta}, ...]``."""
    footprints: list[Footprint] = []
    for item in items:
        try:
            fp_id = str(item["id"])
            body = item["footprint"]
            raw_vertices = body["vertices"]
        except (KeyError, TypeError) as exc:
            raise _fail(f"bad footprint entry {item!r}: missing {exc}") from exc
        vertices = tuple(_ra_dec(v, f"footprint {fp_id} vertex") for v in raw_vertices)
        if len(vertices) < 3:
            logger.warning("footprint %s has %d vertices; skipped", fp_id, len(vertices))
            continue
        center = body.get("center")
        footprints.append(
            Footprint(
                id=fp_id,
                vertices=vertices,
                center=_ra_dec(center, f"footprint {fp_id} center") if center is not None else None,
                meta=MappingProxyType(dict(item.get("meta") or {})),
            )
        )
    return tuple(footprints)
