"""
Visual check of a stitched volume.

Saves coronal (front view) and sagittal (side view) maximum intensity
projections side by side, in physical millimetres, optionally marking where
each input volume starts and ends along z.
"""

import logging
import os

import matplotlib
matplotlib.use('agg')
import matplotlib.pyplot as plt
import numpy as np
import SimpleITK as sitk

from .config import PREVIEW_DPI, PREVIEW_FIGSIZE, PREVIEW_WINDOW

logger = logging.getLogger(__name__)


def projections(volume):
    """
    Returns:
        (coronal_mip, sagittal_mip): arrays of shape (Z, X) and (Z, Y)
    """
    arr = sitk.GetArrayFromImage(volume)  # Shape: (Z, Y, X)
    coronal_mip = np.max(arr, axis=1)   # Max along Y axis
    sagittal_mip = np.max(arr, axis=2)  # Max along X axis
    return coronal_mip, sagittal_mip


def save_preview(volume, path, ranges=None, title=None, window=PREVIEW_WINDOW):
    """
    Write a PNG preview of `volume`.

    Args:
        volume: stitched SimpleITK image
        path: output .png path
        ranges: optional list of (index, z_min, z_max), see coverage.stitching_ranges
        title: figure title
        window: (vmin, vmax) display window
    """
    coronal_mip, sagittal_mip = projections(volume)
    size = volume.GetSize()
    spacing = volume.GetSpacing()
    origin = volume.GetOrigin()

    z_lo = origin[2]
    z_hi = origin[2] + size[2] * spacing[2]
    x_extent = (origin[0], origin[0] + size[0] * spacing[0], z_lo, z_hi)
    y_extent = (origin[1], origin[1] + size[1] * spacing[1], z_lo, z_hi)

    fig, axes = plt.subplots(1, 2, figsize=PREVIEW_FIGSIZE)
    if title:
        fig.suptitle(title, fontsize=12)

    axes[0].imshow(coronal_mip, cmap='gray', vmin=window[0], vmax=window[1],
                   origin='lower', extent=x_extent, aspect='equal')
    axes[0].set_title("Coronal MIP (front view)")
    axes[0].set_xlabel("X (mm)")
    axes[0].set_ylabel("Z (mm)")

    axes[1].imshow(sagittal_mip, cmap='gray', vmin=window[0], vmax=window[1],
                   origin='lower', extent=y_extent, aspect='equal')
    axes[1].set_title("Sagittal MIP (side view)")
    axes[1].set_xlabel("Y (mm)")

    if ranges:
        colors = plt.cm.tab10.colors
        for i, z_min, z_max in ranges:
            color = colors[i % len(colors)]
            for ax in axes:
                ax.axhline(z_min, color=color, linestyle='--', linewidth=1)
                ax.axhline(z_max, color=color, linestyle=':', linewidth=1)
            axes[0].text(x_extent[0], z_min, f" {i}", color=color, va='bottom', fontsize=8)

    plt.tight_layout()
    out_dir = os.path.dirname(os.fspath(path))
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    plt.savefig(path, dpi=PREVIEW_DPI, bbox_inches='tight')
    plt.close(fig)

    logger.debug("Saved preview to %s", path)
