import numpy as np
import pytest
import SimpleITK as sitk


def physical_grid(size, origin, spacing):
    """Physical (x, y, z) coordinates of every voxel, each indexed (Z, Y, X)"""
    sx, sy, sz = size
    z, y, x = np.meshgrid(
        origin[2] + np.arange(sz) * spacing[2],
        origin[1] + np.arange(sy) * spacing[1],
        origin[0] + np.arange(sx) * spacing[0],
        indexing='ij',
    )
    return x, y, z


def volume_from_function(func, size=(10, 10, 10), origin=(0.0, 0.0, 0.0), spacing=(1.0, 1.0, 1.0)):
    """Float32 volume whose voxel value is func(x, y, z) at its physical position"""
    x, y, z = physical_grid(size, origin, spacing)
    return volume_from_array(func(x, y, z), origin, spacing)


def volume_from_array(arr, origin=(0.0, 0.0, 0.0), spacing=(1.0, 1.0, 1.0)):
    """`arr` is indexed (Z, Y, X)"""
    img = sitk.GetImageFromArray(np.asarray(arr, dtype=np.float32))
    img.SetOrigin(origin)
    img.SetSpacing(spacing)
    return img


def evaluate_on(volume, func):
    """func(x, y, z) sampled on the grid of `volume`, indexed (Z, Y, X)"""
    x, y, z = physical_grid(volume.GetSize(), volume.GetOrigin(), volume.GetSpacing())
    return np.asarray(func(x, y, z), dtype=np.float32)


def ramp_a(x, y, z):
    return 100.0 + z + 0.5 * x


def ramp_b(x, y, z):
    return 500.0 + 2.0 * z + 0.25 * y


@pytest.fixture
def make_volume():
    return volume_from_function


@pytest.fixture
def make_array_volume():
    return volume_from_array


@pytest.fixture
def sample():
    return evaluate_on


@pytest.fixture
def ramps():
    return ramp_a, ramp_b


@pytest.fixture
def two_volumes():
    """
    A covers z=[4, 14) mm, B covers z=[0, 10) mm, both 10x10x10 at 1 mm,
    overlapping on z=[4, 10).
    """
    a = volume_from_function(ramp_a, origin=(0.0, 0.0, 4.0))
    b = volume_from_function(ramp_b, origin=(0.0, 0.0, 0.0))
    return a, b


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
