"""
Coverage analysis along the stitching axis.

Lists the z-range of every input and checks consecutive ranges (sorted by
their start) for physical gaps, overlaps or exact adjacency. Gaps are not an
error: voxels nobody covers resolve to 0 in the stitched volume.
"""

import logging

from .config import STITCH_AXIS
from .volume_ops import axis_extent

logger = logging.getLogger(__name__)


def stitching_ranges(volumes, axis=STITCH_AXIS):
    """
    Returns:
        list of (index, z_min, z_max) in input order
    """
    ranges = []
    for i, vol in enumerate(volumes):
        z_min, z_max = axis_extent(vol, axis)
        ranges.append((i, z_min, z_max))
    return ranges


def find_gaps(ranges, tolerance=1e-6):
    """
    Relate consecutive ranges after sorting them by start position.

    Returns:
        list of (kind, lower_index, upper_index, size_mm) where kind is
        'gap', 'overlap' or 'adjacent' and size_mm is the gap or overlap
        length (0.0 when adjacent)
    """
    relations = []
    sorted_ranges = sorted(ranges, key=lambda r: r[1])

    for (lower_idx, _, lower_max), (upper_idx, upper_min, _) in zip(sorted_ranges, sorted_ranges[1:]):
        if upper_min - lower_max > tolerance:
            relations.append(('gap', lower_idx, upper_idx, upper_min - lower_max))
        elif lower_max - upper_min > tolerance:
            relations.append(('overlap', lower_idx, upper_idx, lower_max - upper_min))
        else:
            relations.append(('adjacent', lower_idx, upper_idx, 0.0))

    return relations


def report_coverage(volumes, axis=STITCH_AXIS):
    """Log the z-range of each volume and how they meet; returns the relations"""
    ranges = stitching_ranges(volumes, axis)
    for i, z_min, z_max in ranges:
        logger.info("  volume %d: Z=[%.1f, %.1f] mm | extent: %.1f mm", i, z_min, z_max, z_max - z_min)

    relations = find_gaps(ranges)
    for kind, lower, upper, size in relations:
        if kind == 'gap':
            logger.warning("  GAP of %.1f mm between volume %d and volume %d (filled with 0)", size, lower, upper)
        elif kind == 'overlap':
            logger.info("  overlap of %.1f mm between volume %d and volume %d", size, lower, upper)
        else:
            logger.info("  volume %d and volume %d are adjacent", lower, upper)

    return relations
