"""Runtime settings read from the environment (``.env`` is loaded by the entry points)."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

_ROOT = Path(__file__).parent.parent.parent

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """An environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    """Defaults for the stretch sliders and globe controls."""

    pmin: float = 1.0  # Default lower stretch percentile
    pmax: float = 99.0  # Default upper stretch percentile
    exclude_zero: bool = True  # Treat exact zeros as masked pixels
    pan_sensitivity: float = 0.3  # Degrees per dragged pixel at scale 1
    min_scale: float = 0.1
    max_scale: float = 1000.0
    log_level: str = "INFO"
    results_dir: Path = _ROOT / "results"


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_settings() -> Settings:
    """Build Settings from GRISMVIEW_* environment variables.

    Raises:
        ConfigError: On unparsable values or an invalid percentile/scale range.
    """
    defaults = Settings()
    settings = Settings(
        pmin=_float("GRISMVIEW_PMIN", defaults.pmin),
        pmax=_float("GRISMVIEW_PMAX", defaults.pmax),
        exclude_zero=_bool("GRISMVIEW_EXCLUDE_ZERO", defaults.exclude_zero),
        pan_sensitivity=_float("GRISMVIEW_PAN_SENSITIVITY", defaults.pan_sensitivity),
        min_scale=_float("GRISMVIEW_MIN_SCALE", defaults.min_scale),
        max_scale=_float("GRISMVIEW_MAX_SCALE", defaults.max_scale),
        log_level=os.environ.get("GRISMVIEW_LOG_LEVEL", defaults.log_level).upper(),
        results_dir=Path(os.environ.get("GRISMVIEW_RESULTS_DIR", str(defaults.results_dir))),
    )
    if not 0 <= settings.pmin < settings.pmax <= 100:
        raise ConfigError(
            f"need 0 <= GRISMVIEW_PMIN < GRISMVIEW_PMAX <= 100, got {settings.pmin}, {settings.pmax}"
        )
    if not 0 < settings.min_scale <= settings.max_scale:
        raise ConfigError(
            f"need 0 < GRISMVIEW_MIN_SCALE <= GRISMVIEW_MAX_SCALE, got {settings.min_scale}, {settings.max_scale}"
        )
    if settings.log_level not in logging.getLevelNamesMapping():
        raise ConfigError(f"unknown GRISMVIEW_LOG_LEVEL {settings.log_level!r}")
    return settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
