"""Plotly interactive renderers — footprint globe and 1D spectrum chart.

Both consume core outputs only: screen-space points from the projection layer
and Spectrum1DPoint rows from extraction.
"""

from collections.abc import Sequence

import numpy as np
import plotly.graph_objects as go

from grismview.models import Footprint, ScreenPoint, Spectrum1DPoint, ViewState
from grismview.projection import globe_geometry, project_footprint, project_graticule
from grismview.units import WaveFrame, WaveUnit, to_display_wavelength

_BG = "#ffffff"
_GRID_COLOR = "#222222"
_FOOTPRINT_COLOR = "#123454"
_FLUX_COLOR = "#1f4e79"
_ERR_FILL = "rgba(31, 78, 121, 0.2)"


def _joined(runs: Sequence[Sequence[ScreenPoint]], close: bool = False) -> tuple[list, list]:
    """Concatenate runs into one x/y pair using None separators."""
    xs: list[float | None] = []
    ys: list[float | None] = []
    for run in runs:
        xs += [p.x for p in run]
        ys += [p.y for p in run]
        if close and run:
            xs.append(run[0].x)
            ys.append(run[0].y)
        xs.append(None)
        ys.append(None)
    return xs, ys


def render_globe_figure(
    footprints: Sequence[Footprint],
    view: ViewState,
    width: int = 800,
    height: int = 800,
) -> go.Figure:
    """Render the graticule and every fully visible footprint for `view`.

    Args:
        footprints: Survey footprints in RA/Dec.
        view: Camera yaw/pitch/scale.
        width: Canvas width in pixels.
        height: Canvas height in pixels.

    Returns:
        Plotly Figure in screen pixel coordinates (y axis reversed).
    """
    geometry = globe_geometry(width, height)

    gx, gy = _joined(project_graticule(view, geometry))
    grid_trace = go.Scatter(
        x=gx,
        y=gy,
        mode="lines",
        line=dict(color=_GRID_COLOR, width=1),
        opacity=0.5,
        hoverinfo="skip",
        name="graticule",
    )

    polygons = []
    for fp in footprints:
        polygon = project_footprint(fp, view, geometry)
        if polygon is not None:
            polygons.append(polygon)
    fx, fy = _joined(polygons, close=True)
    footprint_trace = go.Scatter(
        x=fx,
        y=fy,
        mode="lines",
        line=dict(color=_FOOTPRINT_COLOR, width=1),
        opacity=0.6,
        hoverinfo="skip",
        name="footprints",
    )

    r = geometry.initial_radius * view.scale
    fig = go.Figure(data=[grid_trace, footprint_trace])
    fig.update_layout(
        paper_bgcolor=_BG,
        plot_bgcolor=_BG,
        showlegend=False,
        margin=dict(l=0, r=0, t=0, b=0),
        width=width,
        height=height,
        dragmode=False,
        xaxis=dict(visible=False, range=[0, width], autorange=False, fixedrange=True),
        # Screen pixels: y grows downward
        yaxis=dict(visible=False, range=[height, 0], autorange=False, fixedrange=True),
        shapes=[
            dict(
                type="circle",
                x0=geometry.center_x - r,
                y0=geometry.center_y - r,
                x1=geometry.center_x + r,
                y1=geometry.center_y + r,
                line=dict(color="#000000", width=1),
            )
        ],
    )
    return fig


def render_spectrum_figure(
    spectrum: Sequence[Spectrum1DPoint],
    unit: WaveUnit = "µm",
    frame: WaveFrame = "observe",
    z_redshift: float = 0.0,
    pixel_axis: bool = False,
) -> go.Figure:
    """Render a 1D spectrum with a ±1σ band.

    Args:
        spectrum: Extracted points, in wavelength order.
        unit: Display unit for the x axis.
        frame: Observed or rest frame.
        z_redshift: Redshift used for the rest frame.
        pixel_axis: Wavelengths are ROI column indices; skip unit conversion.
    """
    waves = np.array([p.wavelength for p in spectrum], dtype=np.float64)
    if not pixel_axis:
        waves = np.array([to_display_wavelength(w, unit, frame, z_redshift) for w in waves])
    upper = [p.flux_plus_err for p in spectrum]
    lower = [p.flux_minus_err for p in spectrum]

    band_trace = go.Scatter(
        x=np.concatenate([waves, waves[::-1]]),
        y=upper + lower[::-1],
        fill="toself",
        fillcolor=_ERR_FILL,
        line=dict(width=0),
        hoverinfo="skip",
        name="±1σ",
    )
    flux_trace = go.Scatter(
        x=waves,
        y=[p.flux for p in spectrum],
        mode="lines",
        line=dict(color=_FLUX_COLOR, width=1, shape="hvh"),
        name="flux",
    )

    x_title = "pixel" if pixel_axis else f"wavelength [{unit}] ({frame})"
    fig = go.Figure(data=[band_trace, flux_trace])
    fig.update_layout(
        paper_bgcolor=_BG,
        plot_bgcolor=_BG,
        showlegend=False,
        margin=dict(l=50, r=10, t=10, b=40),
        xaxis=dict(title=x_title),
        yaxis=dict(title="flux"),
    )
    return fig
