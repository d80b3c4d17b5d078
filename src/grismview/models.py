"""Data model definitions — explicit boundaries between ingest, compute, and render layers."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import numpy as np


@dataclass(frozen=True)
class ViewState:
    """Globe camera. Owned by the caller, passed into every projection call."""

    yaw_deg: float = 0.0  # Azimuthal rotation about the polar axis, [0, 360)
    pitch_deg: float = 0.0  # Elevation, [-90, 90]
    scale: float = 1.0  # Zoom factor (> 0)

    @classmethod
    def normalized(cls, yaw_deg: float, pitch_deg: float, scale: float = 1.0) -> "ViewState":
        """Build a ViewState with yaw wrapped and pitch clamped."""
        yaw = yaw_deg % 360.0
        if yaw >= 360.0:
            yaw = 0.0
        pitch = max(-90.0, min(90.0, pitch_deg))
        return cls(yaw_deg=yaw, pitch_deg=pitch, scale=scale)


@dataclass(frozen=True)
class ProjectedPoint:
    """A single (RA, Dec) after the yaw/pitch rotation. Recomputed every redraw."""

    x: float  # Orthographic x (unit sphere)
    y: float  # Orthographic y (unit sphere)
    z: float  # Depth toward the viewer
    visible: bool  # False on the far hemisphere


@dataclass(frozen=True)
class ScreenPoint:
    x: float  # Pixels, right-positive
    y: float  # Pixels, down-positive


@dataclass(frozen=True)
class GlobeGeometry:
    """Where the globe sits on the canvas."""

    center_x: float
    center_y: float
    initial_radius: float  # Globe radius in pixels at scale == 1


@dataclass(frozen=True)
class RaDec:
    ra: float  # Right ascension (degrees)
    dec: float  # Declination (degrees)


@dataclass(frozen=True)
class Footprint:
    """Sky coverage polygon of one survey exposure."""

    id: str
    vertices: tuple[RaDec, ...]
    center: RaDec | None = None
    meta: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def with_meta(self, **patch: Any) -> "Footprint":
        """Return a copy with `patch` merged into meta."""
        return replace(self, meta=MappingProxyType({**self.meta, **patch}))


@dataclass(frozen=True)
class NormParams:
    """Percentile stretch. vmin/vmax are stale as soon as the data sample changes."""

    pmin: float = 1.0  # Lower percentile, 0-100
    pmax: float = 99.0  # Upper percentile, 0-100
    vmin: float | None = None  # Physical lower bound derived from pmin
    vmax: float | None = None  # Physical upper bound derived from pmax


@dataclass(frozen=True)
class CollapseWindow:
    """Wavelength x spatial sub-rectangle of a 2D spectrum. Bounds may come in either order."""

    wave_min: float
    wave_max: float
    spatial_min: float
    spatial_max: float


@dataclass(frozen=True)
class RoiState:
    """Region of interest on the raw detector frame (pixels)."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class GrismOffsets:
    """Per-exposure pixel offset between ROI-local and detector coordinates."""

    dx: float  # May be fractional; such positions fall between detector pixels
    dy: float


@dataclass(frozen=True)
class GrismFrame:
    """Validated detector flux/error pair for one exposure."""

    flux: np.ndarray  # shape (height, width)
    error: np.ndarray  # shape (height, width)

    @property
    def height(self) -> int:
        return int(self.flux.shape[0])

    @property
    def width(self) -> int:
        return int(self.flux.shape[1])


@dataclass(frozen=True)
class ExtractedSpectrum:
    """Server-side 2D extraction around a source."""

    wavelength: np.ndarray  # Observed-frame µm, ascending
    spectrum_2d: np.ndarray  # shape (spatial, wavelength)
    covered: bool  # False: no usable data, render nothing
    error_2d: np.ndarray | None = None


@dataclass(frozen=True)
class Spectrum1DPoint:
    """One wavelength bin of a 1D spectrum."""

    wavelength: float
    flux: float
    error: float
    flux_minus_err: float
    flux_plus_err: float


@dataclass(frozen=True)
class SpectrumStats:
    """Axis extents for charting a 1D spectrum."""

    wavelengths: tuple[float, ...]
    wave_min: float
    wave_max: float
    flux_min: float
    flux_max: float


@dataclass(frozen=True)
class SliceIndices:
    start_idx: int
    end_idx: int  # Exclusive


@dataclass(frozen=True)
class NearestWavelength:
    index: int
    wavelength: float


@dataclass(frozen=True)
class GrayscaleTexture:
    """8-bit stretched image, same shape as the source array."""

    pixels: np.ndarray  # uint8, shape (height, width)
    vmin: float
    vmax: float

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self.pixels.shape[0]), int(self.pixels.shape[1]))

    def rgba(self) -> np.ndarray:
        """Expand to an opaque (height, width, 4) RGBA buffer."""
        h, w = self.shape
        out = np.empty((h, w, 4), dtype=np.uint8)
        out[..., 0] = self.pixels
        out[..., 1] = self.pixels
        out[..., 2] = self.pixels
        out[..., 3] = 255
        return out
