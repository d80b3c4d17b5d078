"""CLI entry point for a grism quick-look PNG.

Reads an ``.npz`` holding ``flux`` and ``error`` detector arrays (and optionally
``dx``/``dy``), box-extracts the requested ROI, and writes a PNG:

    uv run grismview-quicklook exposure.npz --roi 100 200 180 40 --wave 10 150 --spatial 15 25
"""

import argparse
import logging
import math
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import numpy as np  # noqa: E402

from grismview.config import ConfigError, configure_logging, load_settings  # noqa: E402
from grismview.extraction import extract_aperture_1d  # noqa: E402
from grismview.ingest import GrismDataError, frame_from_arrays, offsets_from_payload  # noqa: E402
from grismview.models import (  # noqa: E402
    CollapseWindow,
    GrismOffsets,
    NormParams,
    RoiState,
)
from grismview.renderers.static import save_quicklook  # noqa: E402
from grismview.texture import texture_from_data  # noqa: E402

logger = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="grismview-quicklook", description=__doc__.splitlines()[0])
    p.add_argument("path", type=Path, help=".npz with flux and error arrays")
    p.add_argument("--roi", nargs=4, type=int, metavar=("X", "Y", "W", "H"), required=True)
    p.add_argument("--wave", nargs=2, type=float, metavar=("MIN", "MAX"), help="ROI columns")
    p.add_argument("--spatial", nargs=2, type=float, metavar=("MIN", "MAX"), help="ROI rows")
    p.add_argument("--dx", type=float, help="override the offset stored in the file")
    p.add_argument("--dy", type=float)
    p.add_argument("--pmin", type=float)
    p.add_argument("--pmax", type=float)
    p.add_argument("-o", "--output", type=Path)
    return p


def roi_cutout(
    flux: np.ndarray, roi: RoiState, offsets: GrismOffsets
) -> tuple[np.ndarray, float, float]:
    """Detector pixels under the ROI.

    Returns:
        (cutout, shift_x, shift_y), where the shifts are the ROI-local position of
        the cutout's first column and row. They are non-zero when the ROI hangs
        off the detector edge or the offsets are fractional.
    """
    left = roi.x - offsets.dx
    top = roi.y - offsets.dy
    x0 = max(math.ceil(left), 0)
    y0 = max(math.ceil(top), 0)
    x1 = max(math.ceil(left + roi.width), 0)
    y1 = max(math.ceil(top + roi.height), 0)
    return flux[y0:y1, x0:x1], x0 - left, y0 - top


def window_in_cutout(window: CollapseWindow, shift_x: float, shift_y: float) -> CollapseWindow:
    """Move a ROI-local collapse window into cutout pixel coordinates."""
    return CollapseWindow(
        wave_min=window.wave_min - shift_x,
        wave_max=window.wave_max - shift_x,
        spatial_min=window.spatial_min - shift_y,
        spatial_max=window.spatial_max - shift_y,
    )


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    try:
        settings = load_settings()
    except ConfigError as exc:
        logging.basicConfig()
        logger.error("%s", exc)
        return 2
    configure_logging(settings.log_level)

    with np.load(args.path) as npz:
        try:
            frame = frame_from_arrays(npz["flux"], npz["error"])
        except KeyError as exc:
            logger.error("%s has no %s array", args.path, exc)
            return 1
        except GrismDataError:
            return 1
        stored = {key: float(npz[key]) if key in npz else 0.0 for key in ("dx", "dy")}
    overrides = {"dx": args.dx, "dy": args.dy}
    try:
        offsets = offsets_from_payload(
            {key: stored[key] if value is None else value for key, value in overrides.items()}
        )
    except GrismDataError:
        return 1

    roi = RoiState(*args.roi)
    wave = args.wave or (0, roi.width)
    spatial = args.spatial or (0, roi.height)
    window = CollapseWindow(wave[0], wave[1], spatial[0], spatial[1])
    spectrum = extract_aperture_1d(frame.flux, frame.error, offsets, roi, window)
    logger.info("extracted %d columns from %s", len(spectrum), args.path.name)

    cutout, shift_x, shift_y = roi_cutout(frame.flux, roi, offsets)
    norm = NormParams(
        pmin=args.pmin if args.pmin is not None else settings.pmin,
        pmax=args.pmax if args.pmax is not None else settings.pmax,
    )
    texture = texture_from_data(cutout, norm, exclude_zero=settings.exclude_zero)

    output = args.output or settings.results_dir / f"{args.path.stem}_quicklook.png"
    path = save_quicklook(
        texture,
        spectrum,
        output,
        window=window_in_cutout(window, shift_x, shift_y),
        title=args.path.stem,
    )
    print(f"Saved: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
