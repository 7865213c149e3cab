"""Stitch overlapping whole-body volumes into one continuous volume along z."""

from .errors import (
    IncompatibleGeometryError,
    InsufficientInputError,
    StitchingError,
    VolumeIOError,
)
from .stitcher import VolumeStitcher, stitch_volumes
from .volume_ops import load_volume, save_volume

__version__ = "0.1.0"

__all__ = [
    "VolumeStitcher",
    "stitch_volumes",
    "load_volume",
    "save_volume",
    "StitchingError",
    "InsufficientInputError",
    "IncompatibleGeometryError",
    "VolumeIOError",
]
