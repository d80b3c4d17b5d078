"""Globe projection layer — RA/Dec to orthographic screen coordinates and back.

Rotation convention: a sky direction is the unit vector
``(cos ra cos dec, sin dec, sin ra cos dec)``. Yaw rotates it about the polar (Y)
axis, pitch then rotates it about the X axis, and the viewer looks down -Z, so
``z >= 0`` is the near hemisphere. Under this convention the sky point at the
screen centre is ``ra = yaw + 90``, ``dec = pitch``.
"""

import math
from collections.abc import Iterable

from grismview.models import (
    Footprint,
    GlobeGeometry,
    ProjectedPoint,
    RaDec,
    ScreenPoint,
    ViewState,
)

# Longitude offset between the camera yaw and the RA at screen centre
_CENTER_RA_OFFSET_DEG = 90.0
# Pitch limit used while dragging; the exact poles stay reachable via go-to
_PAN_PITCH_LIMIT_DEG = 89.0
_WHEEL_ZOOM_RATE = 0.0015
# Angular sampling of graticule lines (degrees)
GRATICULE_SEGMENT_DEG = 2.0


def wrap_deg_360(deg: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = deg % 360.0
    # -1e-17 % 360 rounds to 360.0
    if wrapped >= 360.0:
        return 0.0
    return wrapped


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def project_ra_dec(
    ra_deg: float, dec_deg: float, yaw_deg: float, pitch_deg: float
) -> ProjectedPoint:
    """Rotate a sky direction into camera space and drop the depth axis.

    Args:
        ra_deg: Right ascension in degrees.
        dec_deg: Declination in degrees.
        yaw_deg: Camera yaw in degrees, about the polar axis.
        pitch_deg: Camera pitch in degrees, about the screen X axis.

    Returns:
        ProjectedPoint with unit-sphere x/y, depth z and a front-hemisphere flag.
    """
    ra = math.radians(ra_deg)
    dec = math.radians(dec_deg)
    yaw = math.radians(yaw_deg)
    pitch = math.radians(pitch_deg)

    cx = math.cos(ra) * math.cos(dec)
    cy = math.sin(dec)
    cz = math.sin(ra) * math.cos(dec)

    # Yaw: about Y
    cos_y = math.cos(yaw)
    sin_y = math.sin(yaw)
    x1 = cos_y * cx + sin_y * cz
    z1 = -sin_y * cx + cos_y * cz
    y1 = cy

    # Pitch: about X
    cos_p = math.cos(pitch)
    sin_p = math.sin(pitch)
    y2 = cos_p * y1 - sin_p * z1
    z2 = sin_p * y1 + cos_p * z1

    return ProjectedPoint(x=x1, y=y2, z=z2, visible=z2 >= 0)


def to_screen(
    point: ProjectedPoint,
    center_x: float,
    center_y: float,
    scale: float,
    initial_radius: float,
) -> ScreenPoint:
    """Place a projected point on the canvas (screen Y grows downward)."""
    r = initial_radius * scale
    return ScreenPoint(x=center_x + point.x * r, y=center_y - point.y * r)


def view_to_center_ra_dec(yaw_deg: float, pitch_deg: float) -> RaDec:
    """Sky coordinate under the screen centre for a given camera."""
    return RaDec(
        ra=wrap_deg_360(yaw_deg + _CENTER_RA_OFFSET_DEG),
        dec=clamp(pitch_deg, -90.0, 90.0),
    )


def center_ra_dec_to_view(ra_deg: float, dec_deg: float) -> tuple[float, float]:
    """Camera (yaw, pitch) that puts (ra, dec) at the screen centre."""
    return (
        wrap_deg_360(ra_deg - _CENTER_RA_OFFSET_DEG),
        clamp(dec_deg, -90.0, 90.0),
    )


def globe_geometry(width: float, height: float, fill: float = 0.9) -> GlobeGeometry:
    """Centre the globe on a width x height canvas, filling `fill` of the short side."""
    return GlobeGeometry(
        center_x=width / 2,
        center_y=height / 2,
        initial_radius=min(width, height) / 2 * fill,
    )


def pan_view(view: ViewState, dx_px: float, dy_px: float, sensitivity: float = 0.3) -> ViewState:
    """Apply a pointer drag of (dx, dy) pixels. Slower when zoomed in."""
    step = sensitivity / view.scale
    return ViewState(
        yaw_deg=wrap_deg_360(view.yaw_deg + dx_px * step),
        pitch_deg=clamp(
            view.pitch_deg + dy_px * step, -_PAN_PITCH_LIMIT_DEG, _PAN_PITCH_LIMIT_DEG
        ),
        scale=view.scale,
    )


def zoom_view(
    view: ViewState, wheel_delta: float, min_scale: float = 0.1, max_scale: float = 1000.0
) -> ViewState:
    """Apply a mouse-wheel delta; positive deltas zoom out."""
    # Bounded exponent keeps huge deltas from overflowing
    factor = math.exp(clamp(-wheel_delta * _WHEEL_ZOOM_RATE, -700.0, 700.0))
    return ViewState(
        yaw_deg=view.yaw_deg,
        pitch_deg=view.pitch_deg,
        scale=clamp(view.scale * factor, min_scale, max_scale),
    )


def go_to(view: ViewState, ra_deg: float, dec_deg: float) -> ViewState:
    """Re-centre the camera on (ra, dec), keeping the zoom."""
    yaw, pitch = center_ra_dec_to_view(ra_deg, dec_deg)
    return ViewState(yaw_deg=yaw, pitch_deg=pitch, scale=view.scale)


def project_polyline(
    points: Iterable[RaDec], view: ViewState, geometry: GlobeGeometry
) -> list[list[ScreenPoint]]:
    """Project a RA/Dec polyline, breaking it wherever it passes behind the globe.

    Returns:
        Drawable runs of screen points. Hidden vertices never join two runs.
    """
    runs: list[list[ScreenPoint]] = []
    current: list[ScreenPoint] = []
    for p in points:
        projected = project_ra_dec(p.ra, p.dec, view.yaw_deg, view.pitch_deg)
        if not projected.visible:
            if current:
                runs.append(current)
                current = []
            continue
        current.append(
            to_screen(
                projected,
                geometry.center_x,
                geometry.center_y,
                view.scale,
                geometry.initial_radius,
            )
        )
    if current:
        runs.append(current)
    return runs


def project_footprint(
    footprint: Footprint, view: ViewState, geometry: GlobeGeometry
) -> list[ScreenPoint] | None:
    """Screen polygon for a footprint, or None unless every vertex faces the viewer."""
    projected = [
        project_ra_dec(v.ra, v.dec, view.yaw_deg, view.pitch_deg)
        for v in footprint.vertices
    ]
    if not projected or not all(p.visible for p in projected):
        return None
    return [
        to_screen(p, geometry.center_x, geometry.center_y, view.scale, geometry.initial_radius)
        for p in projected
    ]


def graticule_steps(scale: float) -> tuple[float, float]:
    """(RA step, Dec step) in degrees; the grid gets denser as the view zooms in."""
    if scale < 1.5:
        return 45.0, 30.0
    if scale < 4:
        return 30.0, 15.0
    if scale < 10:
        return 20.0, 10.0
    if scale < 50:
        return 10.0, 5.0
    if scale < 150:
        return 2.0, 1.0
    return 1.0, 0.5


def _frange(start: float, stop: float, step: float, inclusive: bool) -> list[float]:
    n = int(math.floor((stop - start) / step + 1e-9))
    values = [start + i * step for i in range(n + 1)]
    if not inclusive and values and values[-1] >= stop:
        values.pop()
    return values


def graticule_lines(ra_step: float, dec_step: float) -> list[list[RaDec]]:
    """Meridians then parallels, sampled every GRATICULE_SEGMENT_DEG. Poles are skipped."""
    lines: list[list[RaDec]] = []
    dec_samples = _frange(-90.0, 90.0, GRATICULE_SEGMENT_DEG, inclusive=True)
    for ra in _frange(0.0, 360.0, ra_step, inclusive=False):
        lines.append([RaDec(ra=ra, dec=dec) for dec in dec_samples])

    ra_samples = _frange(0.0, 360.0, GRATICULE_SEGMENT_DEG, inclusive=False)
    for dec in _frange(-90.0, 90.0, dec_step, inclusive=True):
        if abs(dec) == 90.0:
            continue
        # Close the ring so the last segment reaches back to ra = 0
        ring = [RaDec(ra=ra, dec=dec) for ra in ra_samples]
        ring.append(RaDec(ra=0.0, dec=dec))
        lines.append(ring)
    return lines


def project_graticule(view: ViewState, geometry: GlobeGeometry) -> list[list[ScreenPoint]]:
    """All visible graticule runs for the current view."""
    ra_step, dec_step = graticule_steps(view.scale)
    runs: list[list[ScreenPoint]] = []
    for line in graticule_lines(ra_step, dec_step):
        runs.extend(project_polyline(line, view, geometry))
    return runs
