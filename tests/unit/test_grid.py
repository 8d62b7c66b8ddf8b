"""Unit tests for grid construction, bin indexing and accumulators."""

import numpy as np
import pytest

from pylsdisp.core.accumulator import ResidenceAccumulator, normalize_concentration
from pylsdisp.core.grid import GridAxis, bin_index, make_grid
from pylsdisp.core.models import BoundaryError, InvalidConfigError


def test_make_grid_cell_sizes_and_offsets():
    grid = make_grid(100.0, 400.0, 0.0, 50.0, 3, 5)

    assert grid.primary.cell_size == pytest.approx(100.0)
    assert grid.primary.offset_constant == pytest.approx(1.0)
    assert grid.height.cell_size == pytest.approx(10.0)
    assert grid.height.offset_constant == 0.0
    assert grid.shape == (3, 5)
    np.testing.assert_allclose(grid.primary.edges, [100.0, 200.0, 300.0, 400.0])
    np.testing.assert_allclose(grid.primary.centers, [150.0, 250.0, 350.0])


def test_zero_fields_shapes():
    grid = make_grid(0.0, 1.0, 0.0, 10.0, 4, 2)
    pgrid, depgrid = grid.zero_fields()

    assert pgrid.shape == (4, 2)
    assert depgrid.shape == (4,)
    assert np.all(pgrid == 0.0)
    assert np.all(depgrid == 0)


@pytest.mark.parametrize("coord, expected", [
    (0.0, 0),
    (24.999, 0),
    (25.0, 1),
    (50.0, 2),
    (99.999, 3),
])
def test_bin_index_half_open(coord, expected):
    axis = GridAxis(0.0, 100.0, 4)
    assert bin_index(coord, axis) == expected


def test_bin_index_with_offset_axis():
    axis = GridAxis(-50.0, 50.0, 4)
    assert bin_index(-50.0, axis) == 0
    assert bin_index(-25.0, axis) == 1
    assert bin_index(0.0, axis) == 2
    assert bin_index(49.0, axis) == 3


@pytest.mark.parametrize("coord", [-0.001, 100.0, 150.0])
def test_bin_index_out_of_range_raises(coord):
    axis = GridAxis(0.0, 100.0, 4)
    with pytest.raises(BoundaryError):
        bin_index(coord, axis)


@pytest.mark.parametrize("args", [
    (0.0, 100.0, 0),
    (100.0, 0.0, 3),
    (5.0, 5.0, 3),
    (0.0, float("inf"), 3),
])
def test_invalid_axis_rejected(args):
    with pytest.raises(InvalidConfigError):
        GridAxis(*args)


def test_accumulator_merge_and_normalise():
    grid = make_grid(0.0, 100.0, 0.0, 50.0, 2, 2)
    a = ResidenceAccumulator(grid)
    b = ResidenceAccumulator(grid)
    a.add_residence(0, 1, 1.5)
    b.add_residence(0, 1, 0.5)
    b.add_deposit(1)

    a.merge(b)

    assert a.pgrid[0, 1] == pytest.approx(2.0)
    np.testing.assert_array_equal(a.depgrid, [0, 1])
    c = a.concentration(n_particles=4)
    assert c[0, 1] == pytest.approx(2.0 / (4 * 50.0 * 25.0))
    # pgrid is left untouched by normalisation
    assert a.pgrid[0, 1] == pytest.approx(2.0)


def test_accumulator_merge_shape_mismatch():
    a = ResidenceAccumulator(make_grid(0.0, 1.0, 0.0, 1.0, 2, 2))
    b = ResidenceAccumulator(make_grid(0.0, 1.0, 0.0, 1.0, 3, 2))
    with pytest.raises(ValueError):
        a.merge(b)


def test_normalize_zero_particles_gives_zero_field():
    pgrid = np.ones((2, 3))
    c = normalize_concentration(pgrid, 0, 1.0, 1.0)
    assert np.all(c == 0.0)
