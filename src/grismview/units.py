"""Wavelength display conversion between observed-frame µm and the chosen unit/frame."""

import math
from typing import Literal

WaveUnit = Literal["µm", "Å"]
WaveFrame = Literal["observe", "rest"]

ANGSTROM_PER_MICRON = 1e4
MICRON_PER_ANGSTROM = 1e-4
SPEED_OF_LIGHT_KM_S = 299792.458

# "µ" (micro sign) and "μ" (Greek mu) both show up in labels and payloads
_MICRON_SPELLINGS = frozenset({"µm", "μm", "um"})


def _is_micron(unit: str) -> bool:
    return unit in _MICRON_SPELLINGS


def _z_factor(z_redshift: float) -> float:
    z_factor = 1 + (z_redshift if math.isfinite(z_redshift) else 0.0)
    # z = -1 would divide by zero
    return z_factor or 1.0


def display_factor(unit: WaveUnit, frame: WaveFrame, z_redshift: float) -> float:
    """Multiplicative factor from observed-frame µm to the display value."""
    factor = 1.0
    if not _is_micron(unit):
        factor *= ANGSTROM_PER_MICRON
    if frame == "rest":
        factor /= _z_factor(z_redshift)
    return factor


def to_display_wavelength(
    value_um: float, unit: WaveUnit, frame: WaveFrame, z_redshift: float
) -> float:
    frame_value_um = value_um if frame == "observe" else value_um / _z_factor(z_redshift)
    if _is_micron(unit):
        return frame_value_um
    return frame_value_um * ANGSTROM_PER_MICRON


def from_display_wavelength(
    display_value: float, unit: WaveUnit, frame: WaveFrame, z_redshift: float
) -> float:
    """Inverse of to_display_wavelength: back to observed-frame µm."""
    if _is_micron(unit):
        value_um_in_frame = display_value
    else:
        value_um_in_frame = display_value / ANGSTROM_PER_MICRON
    if frame == "observe":
        return value_um_in_frame
    return value_um_in_frame * _z_factor(z_redshift)


def format_wavelength(
    value_um: float,
    unit: WaveUnit,
    frame: WaveFrame,
    z_redshift: float,
    digits: int = 4,
) -> str:
    """Label text: ``"4.1000 μm"`` or ``"41000 Å"``."""
    v = to_display_wavelength(value_um, unit, frame, z_redshift)
    if _is_micron(unit):
        return f"{v:.{digits}f} μm"
    return f"{_round_half_up(v)} Å"


def _round_half_up(v: float) -> int | float:
    if not math.isfinite(v):
        return v
    # Python's round() is banker's rounding; labels round .5 up
    return math.floor(v + 0.5)


def to_input_value(value: float, digits: int = 6) -> str:
    """Text for a numeric input field, rounded to `digits`; empty when not finite."""
    if not math.isfinite(value):
        return ""
    rounded = round(value, digits)
    if rounded == int(rounded):
        return str(int(rounded))
    return repr(rounded)


def velocity_offset_km_s(observed_um: float, rest_um: float, z_redshift: float) -> float:
    """Line-of-sight velocity of `observed_um` relative to `rest_um` at redshift z."""
    expected_um = rest_um * _z_factor(z_redshift)
    return (observed_um / expected_um - 1) * SPEED_OF_LIGHT_KM_S
