from concurrent.futures import ThreadPoolExecutor

import numpy
import pytest

from ppa import PointPattern, Window
from ppa.errors import (GeometryError, InsufficientPoints, InvalidParameter,
                        PointOutsideWindow)
from ppa.geometry import Polygon

SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


class TestConstruction:
    def test_points_outside(self, unit_square):
        with pytest.raises(PointOutsideWindow) as excinfo:
            PointPattern([(0.5, 0.5), (1.5, 0.5), (0.2, -0.1)], unit_square)
        assert excinfo.value.indices == (1, 2)
        assert isinstance(excinfo.value, GeometryError)

    def test_tolerance(self, unit_square):
        pattern = PointPattern([(1.0 + 1e-12, 0.5)], unit_square)
        assert len(pattern) == 1
        with pytest.raises(PointOutsideWindow):
            PointPattern([(1.05, 0.5)], unit_square)
        assert len(PointPattern([(1.05, 0.5)], unit_square, tol=0.1)) == 1

    def test_dimension_mismatch(self, unit_square):
        with pytest.raises(GeometryError):
            PointPattern([(0.5, 0.5, 0.5)], unit_square)

    def test_non_finite(self, unit_square):
        with pytest.raises(GeometryError):
            PointPattern([(0.5, numpy.nan)], unit_square)

    def test_single_point(self, unit_square):
        pattern = PointPattern((0.25, 0.75), unit_square)
        assert pattern.points.shape == (1, 2)

    def test_empty(self, unit_square):
        pattern = PointPattern([], unit_square)
        assert len(pattern) == 0
        assert pattern.points.shape == (0, 2)
        assert pattern.intensity() == 0.0
        assert pattern.squared_intensity() == 0.0
        with pytest.raises(InsufficientPoints):
            pattern.nearest_distances()

    def test_polygon_window(self):
        pattern = PointPattern([(0.5, 0.5)], SQUARE)
        assert isinstance(pattern.window, Polygon)
        assert pattern.window.area == pytest.approx(1.0)

    def test_three_dimensions(self):
        window = Window.box(0, 1, 0, 1, 0, 1)
        pattern = PointPattern([(0.1, 0.2, 0.3), (0.4, 0.5, 0.6)], window)
        assert pattern.dim == 3
        assert pattern.intensity() == pytest.approx(2.0)
        with pytest.raises(InvalidParameter):
            pattern.clark_evans()


class TestImmutability:
    def test_points_read_only(self, csr_pattern):
        with pytest.raises(ValueError):
            csr_pattern.points[0, 0] = 0.5

    def test_input_copied(self, unit_square):
        points = numpy.array([(0.5, 0.5), (0.25, 0.25)])
        pattern = PointPattern(points, unit_square)
        points[0, 0] = 0.0
        assert pattern[0][0] == 0.5

    def test_no_reassignment(self, csr_pattern, unit_square):
        with pytest.raises(TypeError):
            csr_pattern.window = unit_square
        with pytest.raises(TypeError):
            del csr_pattern.window


class TestNeighbors:
    def test_two_points(self, two_points):
        assert two_points.nearest_distances().tolist() == [1.0, 1.0]
        assert two_points.nearest_neighbors().tolist() == [1, 0]
        assert two_points.mean_nearest_distance() == pytest.approx(1.0)
        i, j, d = two_points.pair_distances(1.0)
        assert i.tolist() == [0, 1]
        assert j.tolist() == [1, 0]
        assert d.tolist() == [1.0, 1.0]
        i, j, d = two_points.pair_distances(0.99)
        assert len(d) == 0

    def test_single_point(self, unit_square):
        with pytest.raises(InsufficientPoints) as excinfo:
            PointPattern([(0.5, 0.5)], unit_square).nearest_distances()
        assert excinfo.value.required == 2
        assert excinfo.value.actual == 1

    def test_duplicates(self, unit_square):
        pattern = PointPattern([(0.5, 0.5), (0.5, 0.5), (0.1, 0.1)],
                               unit_square)
        dists = pattern.nearest_distances()
        assert dists[:2].tolist() == [0.0, 0.0]
        assert dists[2] == pytest.approx(numpy.sqrt(0.32))
        assert pattern.nearest_neighbors().tolist() == [1, 0, 0]

    def test_clark_evans(self, lattice_pattern, csr_pattern):
        assert lattice_pattern.clark_evans() == pytest.approx(2.0)
        assert 0.7 < csr_pattern.clark_evans() < 1.3

    def test_intensity(self, two_points):
        assert two_points.intensity() == pytest.approx(1.0)
        assert two_points.squared_intensity() == pytest.approx(0.5)

    def test_boundary_distances(self, two_points):
        assert two_points.boundary_distances().tolist() == [0.0, 0.0]

    def test_pair_weights(self, two_points):
        i, j, d, w = two_points.pair_weights('none', 1.0)
        assert w.tolist() == [1.0, 1.0]
        i, j, d, w = two_points.pair_weights('border', 1.0)
        assert w.tolist() == [0.0, 0.0]
        with pytest.raises(InvalidParameter):
            two_points.pair_weights('ripley', 1.0)


class TestCaching:
    def test_index_is_cached(self, csr_pattern):
        assert csr_pattern.spatial_index() is csr_pattern.spatial_index()
        assert (csr_pattern.nearest_distances() is
                csr_pattern.nearest_distances())

    def test_concurrent_access(self, csr_pattern):
        def weights(__):
            return csr_pattern.pair_weights('isotropic', 0.1)

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(weights, range(32)))
        assert all(result is results[0] for result in results)


class TestRadii:
    def test_default(self, csr_pattern):
        assert csr_pattern.rmax() == pytest.approx(0.25)
        rvals = csr_pattern.rvals()
        assert len(rvals) == 49
        assert rvals[0] == 0.0
        assert rvals[-1] == pytest.approx(0.25)

    def test_steps(self, two_points):
        rvals = two_points.rvals(rmax=1.5, rsamples=4, steps=True)
        expected = [0.0, 0.5, 1.0 - 1.5e-6, 1.0, 1.0 + 1.5e-6, 1.5]
        assert rvals == pytest.approx(expected, abs=1e-12)
        assert numpy.all(numpy.diff(rvals) > 0.0)


class TestFrames:
    def test_round_trip(self, csr_pattern, unit_square):
        frame = csr_pattern.to_frame()
        assert list(frame.columns) == ['x', 'y']
        assert len(frame) == len(csr_pattern)
        pattern = PointPattern.from_frame(frame, unit_square)
        assert numpy.array_equal(pattern.points, csr_pattern.points)

    def test_custom_columns(self, two_points):
        frame = two_points.to_frame(columns=['east', 'north'])
        pattern = PointPattern.from_frame(frame, two_points.window,
                                          columns=['east', 'north'])
        assert pattern.points.tolist() == [[0.0, 0.0], [1.0, 0.0]]

    def test_missing_columns(self, two_points):
        frame = two_points.to_frame()
        with pytest.raises(InvalidParameter):
            PointPattern.from_frame(frame, two_points.window,
                                    columns=['x', 'z'])
        with pytest.raises(InvalidParameter):
            two_points.to_frame(columns=['x'])
