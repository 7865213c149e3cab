"""Exceptions raised while loading and stitching volumes."""


class StitchingError(Exception):
    pass


class InsufficientInputError(StitchingError, ValueError):
    """Fewer than two volumes were given to the stitcher."""
    pass


class IncompatibleGeometryError(StitchingError, ValueError):
    """Volumes that do not share an in-plane grid, or cannot be trimmed."""
    pass


class VolumeIOError(StitchingError, OSError):
    pass
