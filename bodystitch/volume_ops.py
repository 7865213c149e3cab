"""
VOLUME PRIMITIVES
=================
Thin SimpleITK wrappers for everything the stitcher needs but does not
implement itself: file I/O, cropping, constant padding, resampling onto
another grid, binary masks and voxelwise arithmetic.

Every function returns a new SimpleITK image. Where the classic ITK tools
write into a destination image, callers here simply rebind the name:

    counts = add(binary, counts)
"""

import logging
import os

import SimpleITK as sitk

from .config import INTERPOLATOR, SENTINEL_VALUE
from .errors import VolumeIOError

logger = logging.getLogger(__name__)


# ============================================================================
# FILE I/O
# ============================================================================

def load_series(folder):
    """Load a DICOM series folder as a single SimpleITK image"""
    reader = sitk.ImageSeriesReader()
    file_names = reader.GetGDCMSeriesFileNames(str(folder))
    if not file_names:
        raise VolumeIOError(f"No DICOM series found in {folder}")

    logger.debug("Reading %d DICOM files from %s", len(file_names), folder)
    reader.SetFileNames(file_names)
    return reader.Execute()


def load_volume(path):
    """
    Load a volume from an image file (NIfTI, MHA, NRRD, ...) or a DICOM folder.

    Raises:
        VolumeIOError: if the path does not exist or cannot be decoded
    """
    path = os.fspath(path)
    if not os.path.exists(path):
        raise VolumeIOError(f"Volume not found: {path}")

    try:
        if os.path.isdir(path):
            img = load_series(path)
        else:
            img = sitk.ReadImage(path)
    except RuntimeError as e:
        raise VolumeIOError(f"Failed to read {path}: {e}") from e

    logger.debug("Loaded %s: %s", os.path.basename(path), describe(img))
    return img


def save_volume(volume, path):
    """Write a volume, creating the output folder if needed"""
    path = os.fspath(path)
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    try:
        sitk.WriteImage(volume, path)
    except RuntimeError as e:
        raise VolumeIOError(f"Failed to write {path}: {e}") from e

    logger.debug("Saved %s: %s", os.path.basename(path), describe(volume))


# ============================================================================
# GEOMETRY
# ============================================================================

def describe(volume):
    """One-line size/spacing/origin summary, used in logs"""
    size = volume.GetSize()
    s = volume.GetSpacing()
    o = volume.GetOrigin()
    return (f"size={size}, spacing=({s[0]:.4f}, {s[1]:.4f}, {s[2]:.2f}), "
            f"origin=({o[0]:.2f}, {o[1]:.2f}, {o[2]:.2f})")


def axis_extent(volume, axis):
    """
    Physical range covered by a volume along one axis, assuming that axis
    points along its positive physical direction (see check_geometry).

    Returns:
        (start, end) where end = origin + size * spacing
    """
    start = volume.GetOrigin()[axis]
    end = start + volume.GetSize()[axis] * volume.GetSpacing()[axis]
    return start, end


def clone(volume):
    """Independent deep copy of a volume, pixels and geometry"""
    return sitk.Image(volume)


def ones_like(volume):
    """Float image of ones on the grid of `volume`"""
    ones = sitk.Image(volume.GetSize(), sitk.sitkFloat32)
    ones.CopyInformation(volume)
    return ones + 1.0


def subimage(volume, start_x, start_y, start_z, size_x, size_y, size_z):
    """Extract an axis-aligned region; the origin follows the first kept voxel"""
    return sitk.RegionOfInterest(
        volume,
        [int(size_x), int(size_y), int(size_z)],
        [int(start_x), int(start_y), int(start_z)],
    )


def pad(volume, pad_x0, pad_x1, pad_y0, pad_y1, pad_z0, pad_z1, fill_value=SENTINEL_VALUE):
    """
    Grow a volume by constant-valued border slices.

    Existing voxels keep their physical position: the origin moves back by
    the lower padding.
    """
    return sitk.ConstantPad(
        volume,
        [int(pad_x0), int(pad_y0), int(pad_z0)],
        [int(pad_x1), int(pad_y1), int(pad_z1)],
        float(fill_value),
    )


def resample(source, template, interpolator=INTERPOLATOR, out_of_bounds_fill=SENTINEL_VALUE):
    """
    Resample `source` onto the grid of `template` (identity transform).

    Args:
        source: SimpleITK image to interpolate
        template: SimpleITK image providing size, spacing, origin, direction
        interpolator: SimpleITK interpolation method
        out_of_bounds_fill: value for template voxels outside the source

    Returns:
        Float32 image on the template grid
    """
    resampler = sitk.ResampleImageFilter()
    resampler.SetReferenceImage(template)
    resampler.SetInterpolator(interpolator)
    resampler.SetDefaultPixelValue(float(out_of_bounds_fill))
    resampler.SetOutputPixelType(sitk.sitkFloat32)
    resampler.SetTransform(sitk.Transform())

    return resampler.Execute(source)


# ============================================================================
# MASKS AND ARITHMETIC
# ============================================================================

def threshold(volume, low, high):
    """1.0 where low <= value <= high, else 0.0"""
    mask = sitk.BinaryThreshold(
        volume,
        lowerThreshold=float(low),
        upperThreshold=float(high),
        insideValue=1,
        outsideValue=0,
    )
    return sitk.Cast(mask, sitk.sitkFloat32)


def invert_binary(volume):
    """1 - value, for 0/1 masks"""
    return 1.0 - sitk.Cast(volume, sitk.sitkFloat32)


def mul(a, b):
    return sitk.Multiply(a, b)


def add(a, b):
    return sitk.Add(a, b)


def div(a, b):
    return sitk.Divide(a, b)
