"""
Stitching configuration.

All run-time choices (margin, averaging, output path) come from function
arguments or command-line flags; the values below are their defaults and the
fixed constants of the algorithm.
"""

import SimpleITK as sitk


# ============================================================================
# CONFIGURATION
# ============================================================================

# Volumes are concatenated along the third spatial axis (z, head-to-toe).
# Fixed: cropping and padding in stitcher.py act on z
STITCH_AXIS = 2
# Physical direction the slice index axis must point along (z increasing)
STITCH_DIRECTION = (0.0, 0.0, 1.0)

# Fill value for synthetic padding and out-of-bounds resampling of data.
# Never used to decide coverage, see the coverage channel in stitcher.py
SENTINEL_VALUE = -123456789.0

DEFAULT_MARGIN = 0
DEFAULT_AVERAGE_OVERLAP = False

INTERPOLATOR = sitk.sitkLinear
COVERAGE_INTERPOLATOR = sitk.sitkNearestNeighbor

OUTPUT_PIXEL_TYPE = sitk.sitkFloat32

# Decimals kept when converting a physical distance into a slice count
EXTENT_DECIMALS = 6

# Allowed in-plane origin/extent mismatch, as a fraction of the reference spacing
GEOMETRY_TOLERANCE = 0.5
DIRECTION_TOLERANCE = 1e-6


# ============================================================================
# PREVIEW
# ============================================================================

PREVIEW_DPI = 150
PREVIEW_WINDOW = (-200, 300)  # HU display window
PREVIEW_FIGSIZE = (12, 8)
