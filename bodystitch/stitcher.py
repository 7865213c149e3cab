"""
VOLUME STITCHER
===============
Merges overlapping whole-body acquisitions into one continuous volume along
the z axis.

Pipeline:
1. Trim `margin` slices from both z ends of every input
2. Find the physical z-range covered by all inputs
3. Pad the first volume up to that range (the target grid)
4. Resample every other volume onto the target grid and accumulate it
5. Divide the running sum by the contribution count
6. Crop away border slices nobody covered

Overlaps are resolved either by first-contributor-wins (the earliest input
that covers a voxel keeps it) or by averaging every covering input.

Coverage is tracked with an explicit mask channel: each input carries a
ones-image that is padded with 0 and resampled with nearest neighbour, so a
real sample equal to SENTINEL_VALUE is still counted as covered.

Inputs are assumed to be registered in-plane already. check_geometry()
rejects inputs whose in-plane grids differ instead of producing garbage.
"""

import logging
import math

import numpy as np
import SimpleITK as sitk

from .config import (
    COVERAGE_INTERPOLATOR,
    DEFAULT_AVERAGE_OVERLAP,
    DEFAULT_MARGIN,
    DIRECTION_TOLERANCE,
    EXTENT_DECIMALS,
    GEOMETRY_TOLERANCE,
    INTERPOLATOR,
    OUTPUT_PIXEL_TYPE,
    SENTINEL_VALUE,
    STITCH_AXIS,
    STITCH_DIRECTION,
)
from .coverage import report_coverage, stitching_ranges
from .errors import IncompatibleGeometryError, InsufficientInputError
from .volume_ops import (
    add,
    axis_extent,
    describe,
    div,
    invert_binary,
    mul,
    ones_like,
    pad,
    resample,
    subimage,
    threshold,
)

logger = logging.getLogger(__name__)

AXIS_NAMES = 'xyz'


# ============================================================================
# PREPARATION
# ============================================================================

def trim_margin(volume, margin):
    """
    Drop `margin` slices from both z ends, keeping the full x/y extent.

    Acquisition edges often carry motion or field distortion, so they are
    removed before alignment. The result is cast to float32.

    Raises:
        ValueError: if margin is negative
        IncompatibleGeometryError: if no slice would remain
    """
    if margin < 0:
        raise ValueError(f"Margin must be non-negative, got {margin}")

    size_x, size_y, size_z = volume.GetSize()
    remaining = size_z - 2 * margin
    if remaining < 1:
        raise IncompatibleGeometryError(
            f"Margin {margin} leaves no slices in a volume with {size_z} slices")

    trimmed = subimage(volume, 0, 0, margin, size_x, size_y, remaining)
    return sitk.Cast(trimmed, sitk.sitkFloat32)


def check_geometry(volumes):
    """
    Verify that all volumes can be stitched onto the grid of the first one.

    Volumes must be 3D and scalar, have their slice index axis pointing along
    physical +z, share the direction cosines of the first volume, and cover
    the same in-plane physical region (origin and extent along x and y within
    GEOMETRY_TOLERANCE of a reference voxel). Spacing is allowed to differ,
    resampling takes care of it.

    Feet-first or flipped-z volumes must be reoriented (e.g. sitk.DICOMOrient
    or sitk.Flip) before stitching.

    Raises:
        IncompatibleGeometryError
    """
    for i, vol in enumerate(volumes):
        if vol.GetDimension() != 3:
            raise IncompatibleGeometryError(
                f"Volume {i} has {vol.GetDimension()} dimensions, expected 3")
        if vol.GetNumberOfComponentsPerPixel() != 1:
            raise IncompatibleGeometryError(
                f"Volume {i} has {vol.GetNumberOfComponentsPerPixel()} components per voxel, expected 1")

        # Row-major 3x3: column STITCH_AXIS is every third entry
        slice_axis = np.array(vol.GetDirection())[STITCH_AXIS::3]
        if not np.allclose(slice_axis, STITCH_DIRECTION, atol=DIRECTION_TOLERANCE):
            raise IncompatibleGeometryError(
                f"Volume {i} slice axis points along {tuple(slice_axis)}, expected "
                f"{STITCH_DIRECTION}; reorient it before stitching")

    ref = volumes[0]
    ref_direction = np.array(ref.GetDirection())
    in_plane = [axis for axis in range(3) if axis != STITCH_AXIS]
    tolerance = GEOMETRY_TOLERANCE * min(ref.GetSpacing()[axis] for axis in in_plane)

    for i, vol in enumerate(volumes[1:], start=1):
        if not np.allclose(vol.GetDirection(), ref_direction, atol=DIRECTION_TOLERANCE):
            raise IncompatibleGeometryError(
                f"Volume {i} direction {vol.GetDirection()} differs from volume 0 {ref.GetDirection()}")

        for axis in in_plane:
            ref_start, ref_end = axis_extent(ref, axis)
            start, end = axis_extent(vol, axis)
            if abs(start - ref_start) > tolerance or abs(end - ref_end) > tolerance:
                name = AXIS_NAMES[axis]
                raise IncompatibleGeometryError(
                    f"Volume {i} covers {name}=[{start:.2f}, {end:.2f}] mm, "
                    f"expected {name}=[{ref_start:.2f}, {ref_end:.2f}] mm")


def stitching_extent(volumes):
    """
    Returns:
        (min_extent, max_extent): physical z-range covered by all volumes
    """
    extents = [axis_extent(vol, STITCH_AXIS) for vol in volumes]
    return min(e[0] for e in extents), max(e[1] for e in extents)


def slices_needed(distance, spacing):
    """
    Number of whole slices needed to span `distance` mm.

    The quotient is rounded to EXTENT_DECIMALS before taking the ceiling, so
    3.0000000001 slices is 3 and not 4.
    """
    return max(0, int(math.ceil(round(distance / spacing, EXTENT_DECIMALS))))


# ============================================================================
# ACCUMULATION
# ============================================================================

class Accumulator(object):
    """
    Running sum and contribution count on the target grid of one stitch.

    The target grid is the first volume padded along z with pad_below and
    pad_above slices. `target` holds the sum of all accepted contributions,
    `counts` the number of contributions per voxel.
    """

    def __init__(self, reference, pad_below, pad_above,
                 average_overlap=DEFAULT_AVERAGE_OVERLAP, interpolator=INTERPOLATOR):
        self.average_overlap = average_overlap
        self.interpolator = interpolator

        padded = pad(reference, 0, 0, 0, 0, pad_below, pad_above, SENTINEL_VALUE)
        self.counts = pad(ones_like(reference), 0, 0, 0, 0, pad_below, pad_above, 0.0)
        self.target = mul(padded, self.counts)

    def add(self, candidate):
        """Resample a volume onto the target grid and accumulate it"""
        values = resample(candidate, self.target, self.interpolator, SENTINEL_VALUE)
        binary = resample(ones_like(candidate), self.target, COVERAGE_INTERPOLATOR, 0.0)

        # First contributor wins: only fill voxels nobody has written yet
        if not self.average_overlap:
            empty = threshold(self.counts, 0, 0)
            binary = mul(binary, empty)

        self.target = add(mul(values, binary), self.target)
        self.counts = add(binary, self.counts)

    def covered_range(self):
        """
        First and last z slice where any voxel has at least one contribution.

        Returns:
            (z_start, z_stop) as a half-open slice range
        """
        covered = invert_binary(threshold(self.counts, 0, 0))
        arr = sitk.GetArrayFromImage(covered)  # (Z, Y, X)
        per_slice = arr.reshape(arr.shape[0], -1).any(axis=1)

        indices = np.flatnonzero(per_slice)
        if indices.size == 0:
            return 0, 0
        return int(indices[0]), int(indices[-1]) + 1

    def finalize(self):
        """
        Divide the sum by the counts and crop the uncovered border slices.

        Voxels with zero contributions get a denominator of 1; their sum is
        already 0, so they resolve to 0.
        """
        z_start, z_stop = self.covered_range()

        zero = threshold(self.counts, 0, 0)
        counts = add(zero, self.counts)
        result = div(self.target, counts)

        size_x, size_y, size_z = result.GetSize()
        if z_start > 0 or z_stop < size_z:
            logger.debug("Cropping z to [%d, %d) of %d slices", z_start, z_stop, size_z)
        result = subimage(result, 0, 0, z_start, size_x, size_y, z_stop - z_start)

        return sitk.Cast(result, OUTPUT_PIXEL_TYPE)


# ============================================================================
# STITCHER
# ============================================================================

class VolumeStitcher(object):
    """
    Stitch an ordered list of volumes along z.

    Args:
        margin: slices discarded from both z ends of every input
        average_overlap: average overlapping inputs instead of keeping the
            first contributor
        interpolator: SimpleITK interpolator used to resample inputs onto
            the target grid

    Example:
        >>> stitcher = VolumeStitcher(margin=2, average_overlap=True)
        >>> body = stitcher.stitch([torso, pelvis, legs])
    """

    def __init__(self, margin=DEFAULT_MARGIN, average_overlap=DEFAULT_AVERAGE_OVERLAP,
                 interpolator=INTERPOLATOR):
        if margin < 0:
            raise ValueError(f"Margin must be non-negative, got {margin}")

        self.margin = margin
        self.average_overlap = average_overlap
        self.interpolator = interpolator

        # z-ranges and gap/overlap relations of the trimmed inputs of the last stitch
        self.ranges = []
        self.relations = []

    def stitch(self, volumes):
        """
        Returns:
            float32 SimpleITK image covering the union of all inputs along z

        Raises:
            InsufficientInputError: fewer than 2 volumes
            IncompatibleGeometryError: volumes that do not share an in-plane grid
                or whose slice axis does not point along +z
        """
        volumes = list(volumes)
        if len(volumes) < 2:
            raise InsufficientInputError(f"Need at least 2 volumes to stitch, got {len(volumes)}")

        check_geometry(volumes)
        trimmed = [trim_margin(vol, self.margin) for vol in volumes]
        self.ranges = stitching_ranges(trimmed)
        self.relations = report_coverage(trimmed)

        min_extent, max_extent = stitching_extent(trimmed)
        first = trimmed[0]
        first_min, first_max = axis_extent(first, STITCH_AXIS)
        spacing = first.GetSpacing()[STITCH_AXIS]

        pad_below = slices_needed(first_min - min_extent, spacing)
        pad_above = slices_needed(max_extent - first_max, spacing)
        logger.debug("Z-range [%.2f, %.2f] mm: padding volume 0 with %d slices below, %d above",
                     min_extent, max_extent, pad_below, pad_above)

        accumulator = Accumulator(first, pad_below, pad_above,
                                  self.average_overlap, self.interpolator)
        for i, candidate in enumerate(trimmed[1:], start=1):
            accumulator.add(candidate)
            logger.debug("Accumulated volume %d: %s", i, describe(candidate))

        result = accumulator.finalize()
        logger.info("Stitched %d volumes (%s): %s",
                    len(trimmed), 'averaging' if self.average_overlap else 'first wins', describe(result))
        return result


def stitch_volumes(volumes, margin=DEFAULT_MARGIN, average_overlap=DEFAULT_AVERAGE_OVERLAP):
    """Stitch volumes with a one-off VolumeStitcher"""
    return VolumeStitcher(margin, average_overlap).stitch(volumes)
