"""Matplotlib static PNG renderer — 2D stretch plus box-extracted 1D spectrum."""

from collections.abc import Sequence
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from grismview.models import (
    CollapseWindow,
    GrayscaleTexture,
    Spectrum1DPoint,
)

_ROOT = Path(__file__).parent.parent.parent.parent


def render_quicklook(
    texture: GrayscaleTexture | None,
    spectrum: Sequence[Spectrum1DPoint],
    window: CollapseWindow | None = None,
    title: str = "",
) -> Figure:
    """Two-panel figure: stretched 2D image on top, 1D spectrum below.

    Args:
        texture: Output of texture_from_data; None leaves the top panel blank.
        spectrum: Output of extract_aperture_1d.
        window: Collapse window to outline on the image.
        title: Figure title.

    Returns:
        matplotlib Figure object.
    """
    fig, (ax_img, ax_spec) = plt.subplots(2, 1, figsize=(10, 6), height_ratios=(1, 1))
    if title:
        fig.suptitle(title)

    if texture is not None:
        ax_img.imshow(texture.pixels, cmap="gray", vmin=0, vmax=255, origin="lower", aspect="auto")
        ax_img.set_title(f"vmin={texture.vmin:.3g}  vmax={texture.vmax:.3g}", fontsize=9)
        if window is not None:
            x0 = min(window.wave_min, window.wave_max)
            y0 = min(window.spatial_min, window.spatial_max)
            ax_img.add_patch(
                Rectangle(
                    (x0 - 0.5, y0 - 0.5),
                    abs(window.wave_max - window.wave_min),
                    abs(window.spatial_max - window.spatial_min),
                    fill=False,
                    edgecolor="#e8a33d",
                    linewidth=1,
                )
            )
    ax_img.axis("off")

    if spectrum:
        waves = np.array([p.wavelength for p in spectrum])
        ax_spec.fill_between(
            waves,
            [p.flux_minus_err for p in spectrum],
            [p.flux_plus_err for p in spectrum],
            step="mid",
            color="#1f4e79",
            alpha=0.25,
            linewidth=0,
        )
        ax_spec.step(waves, [p.flux for p in spectrum], where="mid", color="#1f4e79", linewidth=1)
    ax_spec.set_xlabel("column [pixel]")
    ax_spec.set_ylabel("flux")

    fig.tight_layout()
    return fig


def save_quicklook(
    texture: GrayscaleTexture | None,
    spectrum: Sequence[Spectrum1DPoint],
    output_path: Path | None = None,
    window: CollapseWindow | None = None,
    title: str = "",
) -> Path:
    """Save a quick-look PNG.

    Args:
        texture: Stretched 2D image.
        spectrum: Extracted 1D spectrum.
        output_path: Destination path. Auto-generated under results/ if None.
        window: Collapse window to outline.
        title: Figure title; also names the file when output_path is None.

    Returns:
        Path to the saved file.
    """
    if output_path is None:
        stem = (title or "quicklook").replace(" ", "_")
        output_path = _ROOT / "results" / f"{stem}.png"

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig = render_quicklook(texture, spectrum, window=window, title=title)
    try:
        fig.savefig(output_path)
    finally:
        plt.close(fig)
    return output_path
